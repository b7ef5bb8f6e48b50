"""Local disk media storage. Can be swapped for S3/R2 later.

Any object with ``put(key, data, content_type) -> str`` and ``delete(key)``
can stand in for ``LocalStorage`` in the media pipeline.
"""

from pathlib import Path

import config


class LocalStorage:
    def __init__(self, base_dir: Path | None = None, public_url: str | None = None):
        self.base = Path(base_dir or config.DATA_DIR)
        self.public_url = (public_url or config.MEDIA_PUBLIC_URL).rstrip("/")
        self._ensure_dirs()

    def _ensure_dirs(self) -> None:
        self.media_dir.mkdir(parents=True, exist_ok=True)

    @property
    def media_dir(self) -> Path:
        return self.base / "media"

    def media_path(self, key: str) -> Path:
        path = (self.media_dir / key).resolve()
        if not path.is_relative_to(self.media_dir.resolve()):
            raise ValueError(f"Invalid media key '{key}'")
        return path

    def public_uri(self, key: str) -> str:
        return f"{self.public_url}/{key}"

    def put(self, key: str, data: bytes, content_type: str) -> str:
        path = self.media_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return self.public_uri(key)

    def delete(self, key: str) -> None:
        self.media_path(key).unlink(missing_ok=True)

    def exists(self, key: str) -> bool:
        return self.media_path(key).exists()

    def keys(self) -> list[str]:
        """All stored media keys, relative to the media dir."""
        return sorted(
            str(p.relative_to(self.media_dir)).replace("\\", "/")
            for p in self.media_dir.rglob("*")
            if p.is_file()
        )
