import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite

LOGGER = logging.getLogger(__name__)


class AsyncDatabaseInitializer:
    """
    Own the single SQLite connection used by the service.

    - The database file is located at: <database_dir>/app.db
    - `connect()` opens the connection with bounded retries (`attempts` tries,
      `delay_seconds` apart) and creates the IMAGE_RECORD table if missing.
      When every attempt fails a RuntimeError is raised so start-up aborts.
    - `connection()` yields the shared connection, connecting lazily if
      `connect()` has not run yet.
    - `close()` releases the connection; it is called on shutdown.
    """

    def __init__(self, database_dir: Path | str, attempts: int = 5, delay_seconds: float = 5.0) -> None:
        db_dir = Path(database_dir).expanduser()

        # If the path exists but is not a directory, that's a configuration error.
        if db_dir.exists() and not db_dir.is_dir():
            raise RuntimeError(
                f"DATABASE_DIR={str(database_dir)!r} points to a file, not a directory "
                f"({db_dir}). Please set DATABASE_DIR to a directory path."
            )

        self.db_dir = db_dir
        self.db_path = self.db_dir / "app.db"
        self.attempts = max(1, attempts)
        self.delay_seconds = delay_seconds
        self._conn: Optional[aiosqlite.Connection] = None

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    async def connect(self) -> None:
        """Open the connection and ensure the schema, retrying on failure."""
        if self._conn is not None:
            return

        last_error: Optional[BaseException] = None
        for attempt in range(1, self.attempts + 1):
            try:
                self.db_dir.mkdir(parents=True, exist_ok=True)
                conn = await aiosqlite.connect(self.db_path)
                try:
                    await self._create_schema(conn)
                except Exception:
                    await conn.close()
                    raise
                self._conn = conn
                LOGGER.info("Connected to SQLite database at %s", self.db_path)
                return
            except Exception as exc:  # pylint: disable=broad-exception-caught
                last_error = exc
                remaining = self.attempts - attempt
                if remaining <= 0:
                    break
                LOGGER.warning(
                    "Database connection failed (%s). Retrying in %.1fs... (%d attempts left)",
                    exc,
                    self.delay_seconds,
                    remaining,
                )
                await asyncio.sleep(self.delay_seconds)

        LOGGER.error("Database connection failed after %d attempts: %s", self.attempts, last_error)
        raise RuntimeError(f"Failed to connect to database at {self.db_path}") from last_error

    @staticmethod
    async def _create_schema(conn: aiosqlite.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS IMAGE_RECORD (
                id TEXT PRIMARY KEY,
                original_url TEXT NOT NULL,
                original_size INTEGER NOT NULL,
                original_format TEXT NOT NULL,
                compressed_url TEXT NOT NULL,
                compressed_size INTEGER NOT NULL,
                compression_ratio REAL NOT NULL,
                detected_regions TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
            """
        )
        await conn.commit()

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Async context manager yielding the shared `aiosqlite.Connection`."""
        await self.connect()
        yield self._conn

    async def close(self) -> None:
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        await conn.close()
        LOGGER.info("Database connection closed.")
