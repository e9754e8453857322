"""Database migration runner."""

import logging
from pathlib import Path

import aiosqlite

from daycounter.utils.errors import StorageError

logger = logging.getLogger(__name__)


async def init_database(db_path: Path) -> None:
    """Initialize the database with the schema."""
    schema_path = Path(__file__).parent / "schema.sql"

    try:
        async with aiosqlite.connect(db_path) as db:
            # Read and execute schema
            schema_sql = schema_path.read_text(encoding="utf-8")

            await db.executescript(schema_sql)
            await db.commit()
    except aiosqlite.Error as e:
        raise StorageError(f"Could not initialize database at {db_path}: {e}") from e

    logger.info(f"Database initialized at {db_path}")


async def run_migrations(db_path: Path) -> None:
    """Run any pending migrations.

    The schema is idempotent (CREATE ... IF NOT EXISTS), so this only
    ensures it has been applied.
    """
    await init_database(db_path)
