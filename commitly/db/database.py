import logging
from pathlib import Path

import aiosqlite

from commitly.config import settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

_db: aiosqlite.Connection | None = None


async def init_db(database_path: str | None = None) -> aiosqlite.Connection:
    global _db
    db_path = database_path or settings.database_path
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    _db = await aiosqlite.connect(str(db_path))
    _db.row_factory = aiosqlite.Row

    if settings.deployment_mode == "lambda":
        # EFS lacks mmap support required for WAL; use DELETE journal mode
        await _db.execute("PRAGMA journal_mode=DELETE")
        await _db.execute("PRAGMA busy_timeout=5000")
    elif db_path != ":memory:":
        await _db.execute("PRAGMA journal_mode=WAL")

    await run_migrations(_db)
    logger.info("Database initialized at %s", db_path)
    return _db


async def close_db() -> None:
    global _db
    if _db is not None:
        await _db.close()
        _db = None
        logger.info("Database connection closed")


async def run_migrations(db: aiosqlite.Connection) -> int:
    """Apply pending migrations in version order. Returns the resulting version."""
    try:
        async with db.execute("SELECT MAX(version) FROM schema_version") as cursor:
            row = await cursor.fetchone()
            current_version = row[0] if row and row[0] else 0
    except aiosqlite.OperationalError:
        current_version = 0

    for mf in sorted(MIGRATIONS_DIR.glob("*.sql")):
        version = int(mf.stem.split("_")[0])
        if version > current_version:
            logger.info("Applying migration %s", mf.name)
            await db.executescript(mf.read_text())
            await db.commit()
            current_version = version

    logger.info("Migrations complete (at version %d)", current_version)
    return current_version
