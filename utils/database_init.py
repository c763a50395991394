import os
import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite

DB_FILENAME = "scholarflow.db"

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS ACCOUNT (
        uid TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        display_name TEXT NOT NULL,
        password_hash TEXT NOT NULL,
        created_at REAL NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS CURRENT_ACCOUNT (
        slot INTEGER PRIMARY KEY CHECK (slot = 1),
        uid TEXT NOT NULL REFERENCES ACCOUNT(uid)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS SESSION (
        id TEXT PRIMARY KEY,
        account_uid TEXT NOT NULL REFERENCES ACCOUNT(uid),
        topic TEXT NOT NULL,
        diagram TEXT NOT NULL DEFAULT '',
        image_ref TEXT,
        pinned INTEGER NOT NULL DEFAULT 0,
        created_at REAL NOT NULL,
        updated_at REAL NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS MESSAGE (
        seq INTEGER PRIMARY KEY AUTOINCREMENT,
        id TEXT NOT NULL UNIQUE,
        session_id TEXT NOT NULL REFERENCES SESSION(id),
        role TEXT NOT NULL,
        content TEXT NOT NULL,
        created_at REAL NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS FILE (
        seq INTEGER PRIMARY KEY AUTOINCREMENT,
        id TEXT NOT NULL UNIQUE,
        session_id TEXT NOT NULL REFERENCES SESSION(id),
        name TEXT NOT NULL,
        size_bytes INTEGER NOT NULL,
        mime_type TEXT NOT NULL,
        uploaded_at REAL NOT NULL,
        content_b64 TEXT NOT NULL,
        summary TEXT,
        preview_b64 TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_session_account ON SESSION(account_uid)",
    "CREATE INDEX IF NOT EXISTS idx_message_session ON MESSAGE(session_id, seq)",
    "CREATE INDEX IF NOT EXISTS idx_file_session ON FILE(session_id, seq)",
)


class AsyncDatabaseInitializer:
    """
    Manage the async SQLite database that backs the session store.

    - The database file is located at: <DATABASE_DIR>/scholarflow.db
    - `database_dir` may be passed explicitly; otherwise DATABASE_DIR is
      required and a RuntimeError is raised if it is missing or invalid.
    - `ensure_database()` creates any missing tables and indexes. Existing
      data is kept, so sessions survive a restart.
    - Subsequent calls to `ensure_database()` on the same instance are no-ops,
      so it is safe for `connection()` to call it.
    """

    def __init__(self, database_dir: Optional[Path | str] = None) -> None:
        env_dir = str(database_dir) if database_dir is not None else os.getenv("DATABASE_DIR")

        if env_dir is None or not env_dir.strip():
            raise RuntimeError(
                "DATABASE_DIR environment variable must be set to a writable "
                "directory path where the SQLite database file will be stored."
            )

        db_dir = Path(env_dir).expanduser()

        if db_dir.exists() and not db_dir.is_dir():
            raise RuntimeError(
                f"DATABASE_DIR={env_dir!r} points to a file, not a directory "
                f"({db_dir}). Please set DATABASE_DIR to a directory path."
            )

        try:
            db_dir.mkdir(parents=True, exist_ok=True)
        except Exception as exc:
            raise RuntimeError(
                f"Failed to create or access database directory at {db_dir}"
            ) from exc

        self.db_dir = db_dir
        self.db_path = self.db_dir / DB_FILENAME
        self._initialized = False

    async def ensure_database(self) -> None:
        """
        Create the schema at `self.db_path` if it is not there yet.

        Subsequent calls on the same instance are no-ops.
        """
        if self._initialized:
            return

        max_attempts = 3
        for attempt in range(1, max_attempts + 1):
            try:
                async with aiosqlite.connect(self.db_path) as db:
                    await db.execute("PRAGMA journal_mode=WAL;")
                    for statement in SCHEMA:
                        await db.execute(statement)
                    await db.commit()
                break
            except FileNotFoundError:
                # On some platforms a transient missing file error may occur; retry a few times.
                if attempt >= max_attempts:
                    raise
                await asyncio.sleep(0.1 * attempt)

        self._initialized = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Async context manager yielding an `aiosqlite.Connection`.

        The schema is created on first use via `ensure_database()`.
        """
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path)
        try:
            await conn.execute("PRAGMA foreign_keys=ON;")
            yield conn
        finally:
            await conn.close()
