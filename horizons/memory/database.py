"""
SQLite database manager for horizons.

Initialises the project/task schema and applies incremental migrations.
Uses WAL mode for concurrent read safety with single-writer asyncio pattern.
"""

import logging
import os
import sqlite3
from contextlib import asynccontextmanager
from typing import AsyncIterator

import aiosqlite

from ..config import settings
from ..exceptions import StorageError

logger = logging.getLogger(__name__)


_DDL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS projects (
    id          TEXT PRIMARY KEY,
    title       TEXT NOT NULL,
    body        TEXT NOT NULL DEFAULT '',
    created_at  TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_projects_title ON projects(title);

CREATE TABLE IF NOT EXISTS tasks (
    id          TEXT PRIMARY KEY,
    project_id  TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    title       TEXT NOT NULL,
    body        TEXT NOT NULL DEFAULT '',
    status      TEXT NOT NULL DEFAULT 'To Do',
    created_at  TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at  TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_tasks_project ON tasks(project_id);
"""

# Schema migrations applied after the main DDL.
# Each entry is attempted once; "duplicate column" means it is already applied.
_MIGRATIONS = [
    # 001: scheduling details on tasks
    "ALTER TABLE tasks ADD COLUMN duration INTEGER;",
    "ALTER TABLE tasks ADD COLUMN min_chunk INTEGER;",
    "ALTER TABLE tasks ADD COLUMN location TEXT;",
]


class DatabaseManager:
    """Manages the SQLite connection and schema for horizons."""

    def __init__(self, db_path: str | None = None) -> None:
        self.db_path = db_path or settings.db_path
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        """Open connection and run DDL + migrations."""
        os.makedirs(os.path.dirname(self.db_path) or ".", exist_ok=True)

        self._conn = await aiosqlite.connect(self.db_path)
        self._conn.row_factory = aiosqlite.Row

        await self._conn.executescript(_DDL)

        for migration_sql in _MIGRATIONS:
            try:
                await self._conn.execute(migration_sql)
                await self._conn.commit()
            except sqlite3.OperationalError as e:
                if "duplicate column" not in str(e).lower():
                    raise
                logger.debug("Migration already applied: %s", migration_sql)

        await self._conn.commit()
        logger.info("Database initialised: %s", self.db_path)

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    @asynccontextmanager
    async def get_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield the shared connection. Callers must not close it."""
        if self._conn is None:
            raise StorageError("DatabaseManager not initialised; call init() first")
        yield self._conn
