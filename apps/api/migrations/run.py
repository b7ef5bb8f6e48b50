"""Simple SQL migration runner for the reports schema."""

import asyncio
import sys
from pathlib import Path

# Add api root to path so we can import config
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import asyncpg
from dotenv import load_dotenv

_root = Path(__file__).resolve().parent.parent.parent.parent
load_dotenv(_root / ".env")

MIGRATIONS_DIR = Path(__file__).parent


def pending_migrations(applied: set[str]) -> list[Path]:
    """SQL files not yet recorded in ``_migrations``, in filename order."""
    return [p for p in sorted(MIGRATIONS_DIR.glob("*.sql")) if p.name not in applied]


async def run_migrations(database_url: str | None = None) -> list[str]:
    import config

    database_url = database_url or config.DATABASE_URL
    if not database_url:
        print("ERROR: DATABASE_URL not set")
        sys.exit(1)

    conn = await asyncpg.connect(database_url)
    applied_now: list[str] = []
    try:
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS _migrations (
                filename TEXT PRIMARY KEY,
                applied_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
        """)
        applied = {row["filename"] for row in await conn.fetch("SELECT filename FROM _migrations")}

        for sql_file in pending_migrations(applied):
            print(f"  APPLY {sql_file.name}")
            async with conn.transaction():
                await conn.execute(sql_file.read_text(encoding="utf-8"))
                await conn.execute("INSERT INTO _migrations (filename) VALUES ($1)", sql_file.name)
            applied_now.append(sql_file.name)
    finally:
        await conn.close()

    print(f"Migrations complete ({len(applied_now)} applied).")
    return applied_now


if __name__ == "__main__":
    asyncio.run(run_migrations())
