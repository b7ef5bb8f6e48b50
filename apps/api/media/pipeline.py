"""All-or-nothing media upload for a single report submission.

The whole batch is validated before the first byte is written. Files are
then stored one by one; if any write fails the files already written for
this batch are removed again and ``UploadFailure`` is raised.
"""

import asyncio
import logging
import random
import re
import string
import time
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Protocol

import config
from errors import FileTooLarge, UnsupportedMediaType, UploadFailure, ValidationError

logger = logging.getLogger(__name__)

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class MediaStorage(Protocol):
    def put(self, key: str, data: bytes, content_type: str) -> str: ...

    def delete(self, key: str) -> None: ...


@dataclass(frozen=True)
class MediaUpload:
    data: bytes
    content_type: str
    size: int | None = None
    filename: str | None = None

    @property
    def effective_size(self) -> int:
        return max(self.size or 0, len(self.data))

    @property
    def display_name(self) -> str:
        return self.filename or "upload"


@dataclass(frozen=True)
class StoredMedia:
    key: str
    uri: str


def validate_batch(files: list[MediaUpload]) -> None:
    """Raise on the first file that fails type or size checks."""
    allowed = ", ".join(sorted(config.ALLOWED_MEDIA_TYPES))
    max_mb = config.MAX_MEDIA_SIZE // (1024 * 1024)
    for f in files:
        if f.content_type not in config.ALLOWED_MEDIA_TYPES:
            raise UnsupportedMediaType(
                f"File \"{f.display_name}\" has an unsupported format ({f.content_type}). "
                f"Only {allowed} files are allowed."
            )
        if f.effective_size > config.MAX_MEDIA_SIZE:
            raise FileTooLarge(f"File \"{f.display_name}\" is too large. Maximum size is {max_mb}MB.")


def _extension(f: MediaUpload) -> str:
    ext = PurePosixPath(f.filename or "").suffix.lstrip(".").lower()
    if ext and ext.isalnum():
        return ext
    return config.MEDIA_EXTENSIONS[f.content_type]


def media_key(submitter_id: str, f: MediaUpload, now_ms: int | None = None, rng: random.Random | None = None) -> str:
    """``{submitter}/{epoch_ms}-{random9}.{ext}``"""
    owner = _UNSAFE_KEY_CHARS.sub("_", submitter_id)
    if owner in ("", ".", ".."):
        raise ValidationError("A submitter identity is required to upload media.")
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    rng = rng or random.SystemRandom()
    suffix = "".join(rng.choice(_SUFFIX_ALPHABET) for _ in range(9))
    return f"{owner}/{now_ms}-{suffix}.{_extension(f)}"


class MediaPipeline:
    def __init__(self, storage: MediaStorage):
        self.storage = storage

    async def upload(self, submitter_id: str, files: list[MediaUpload]) -> list[StoredMedia]:
        """Validate then store the batch. Returns stored media in input order."""
        validate_batch(files)

        keys: list[str] = []
        for f in files:
            key = media_key(submitter_id, f)
            while key in keys:
                key = media_key(submitter_id, f)
            keys.append(key)

        stored: list[StoredMedia] = []
        for f, key in zip(files, keys):
            try:
                uri = await asyncio.to_thread(self.storage.put, key, f.data, f.content_type)
            except Exception as exc:
                logger.error("Upload of %s failed after %d/%d files: %s", key, len(stored), len(files), exc)
                await self.rollback(stored)
                raise UploadFailure(
                    f"Uploading \"{f.display_name}\" failed. No files were saved; please try again."
                ) from exc
            stored.append(StoredMedia(key=key, uri=uri))
        return stored

    async def rollback(self, stored: list[StoredMedia]) -> None:
        """Best-effort removal of files written for a failed submission."""
        for item in stored:
            try:
                await asyncio.to_thread(self.storage.delete, item.key)
            except Exception as exc:
                logger.warning("Could not remove orphaned upload %s: %s", item.key, exc)
