"""
Weekly Rhythm - Document Storage
Async PostgreSQL with asyncpg. State collections are opaque JSON documents keyed by name.
"""

import json
from typing import Any, Dict, Optional, List

import asyncpg

from config import get_storage_config
from errors import PersistenceError
from logger import logger
from models import AppState


# Document keys for the four state collections
SCHEDULE_EVENTS_KEY = "scheduleEvents"
SMART_REMINDERS_KEY = "smartReminders"
DND_WINDOWS_KEY = "dndWindows"
PAUSE_UNTIL_KEY = "pauseUntil"

SCHEMA = """
CREATE TABLE IF NOT EXISTS app_data (
    user_id TEXT NOT NULL,
    key TEXT NOT NULL,
    data JSONB,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (user_id, key)
)
"""

UPSERT = """
INSERT INTO app_data (user_id, key, data, updated_at)
VALUES ($1, $2, $3::jsonb, NOW())
ON CONFLICT (user_id, key) DO UPDATE SET data = EXCLUDED.data, updated_at = NOW()
"""


class Database:
    """Async database connection manager."""

    def __init__(self):
        self._pool = None

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self, database_url: Optional[str] = None):
        """Create connection pool and make sure the document table exists."""
        cfg = get_storage_config()
        try:
            self._pool = await asyncpg.create_pool(
                database_url or cfg.database_url,
                min_size=cfg.min_pool_size,
                max_size=cfg.max_pool_size
            )
            async with self._pool.acquire() as conn:
                await conn.execute(SCHEMA)
        except (asyncpg.PostgresError, OSError) as e:
            raise PersistenceError(f"Could not connect to storage: {e}") from e
        logger.info("Database connected")

    async def disconnect(self):
        """Close connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("Database disconnected")

    def _require_pool(self):
        if self._pool is None:
            raise PersistenceError("Storage is not connected.")
        return self._pool

    async def fetch(self, query: str, *args) -> List[dict]:
        """Fetch multiple rows."""
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(query, *args)
                return [dict(row) for row in rows]
        except (asyncpg.PostgresError, OSError) as e:
            raise PersistenceError(f"Storage read failed: {e}") from e

    async def fetch_one(self, query: str, *args) -> Optional[dict]:
        """Fetch single row."""
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                row = await conn.fetchrow(query, *args)
                return dict(row) if row else None
        except (asyncpg.PostgresError, OSError) as e:
            raise PersistenceError(f"Storage read failed: {e}") from e

    async def execute(self, query: str, *args) -> str:
        """Execute query (INSERT, UPDATE, DELETE)."""
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                return await conn.execute(query, *args)
        except (asyncpg.PostgresError, OSError) as e:
            raise PersistenceError(f"Storage write failed: {e}") from e

    async def execute_many_atomic(self, query: str, rows: List[tuple]):
        """Run one statement for every row inside a single transaction."""
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    await conn.executemany(query, rows)
        except (asyncpg.PostgresError, OSError) as e:
            raise PersistenceError(f"Storage batch write failed: {e}") from e


# Global database instance
db = Database()


# ============================================
# DOCUMENT QUERIES
# ============================================

async def load_document(user_id: str, key: str, database: Database = db) -> Any:
    row = await database.fetch_one(
        "SELECT data FROM app_data WHERE user_id = $1 AND key = $2",
        user_id, key
    )
    if row is None or row["data"] is None:
        return None
    data = row["data"]
    return json.loads(data) if isinstance(data, str) else data


async def save_document(user_id: str, key: str, value: Any, database: Database = db):
    await database.execute(UPSERT, user_id, key, json.dumps(value))


async def batch_write_local_data(user_id: str, data_to_migrate: Dict[str, Any], database: Database = db) -> int:
    """
    Write several documents as one atomic operation.

    None values are skipped. Returns the number of documents written.
    """
    rows = [
        (user_id, key, json.dumps(value))
        for key, value in data_to_migrate.items()
        if value is not None
    ]
    if rows:
        await database.execute_many_atomic(UPSERT, rows)
    return len(rows)


# ============================================
# STATE SNAPSHOTS
# ============================================

def state_to_documents(state: AppState) -> Dict[str, Any]:
    dumped = state.model_dump(mode="json")
    return {
        SCHEDULE_EVENTS_KEY: dumped["schedule_events"],
        SMART_REMINDERS_KEY: dumped["smart_reminders"],
        DND_WINDOWS_KEY: dumped["dnd_windows"],
        PAUSE_UNTIL_KEY: dumped["pause_until"],
    }


async def save_state(user_id: str, state: AppState, database: Database = db) -> int:
    """Persist all collections atomically. A cleared pause is written as an explicit null."""
    documents = state_to_documents(state)
    rows = [(user_id, key, json.dumps(value)) for key, value in documents.items()]
    await database.execute_many_atomic(UPSERT, rows)
    return len(rows)


async def load_state(user_id: str, database: Database = db) -> AppState:
    return AppState.model_validate({
        "schedule_events": await load_document(user_id, SCHEDULE_EVENTS_KEY, database) or [],
        "smart_reminders": await load_document(user_id, SMART_REMINDERS_KEY, database) or [],
        "dnd_windows": await load_document(user_id, DND_WINDOWS_KEY, database) or [],
        "pause_until": await load_document(user_id, PAUSE_UNTIL_KEY, database),
    })
