# singularity/database.py
"""
Handles asynchronous database interactions using asyncpg for PostgreSQL.
Encapsulates all database logic within the DatabaseManager class.
"""
import json
import logging
import asyncpg
import config
from typing import Optional, Dict, Any, List

from .definitions import item_defs

log = logging.getLogger(__name__)

META_LAST_SAVE_ID = "last_world_save_id"


def _load_json(value: Any, default: Any) -> Any:
    """asyncpg hands JSONB columns back as strings unless a codec is registered."""
    if value is None:
        return default
    if isinstance(value, (dict, list)):
        return value
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError):
        log.warning("Malformed JSON in database column: %r", value)
        return default


class DatabaseManager:
    """A class to manage the application's PostgreSQL connection pool and queries."""

    def __init__(self):
        self.pool: Optional[asyncpg.Pool] = None

    async def connect(self):
        """Creates the connection pool."""
        try:
            self.pool = await asyncpg.create_pool(**config.DB_CONFIG)
            log.info("Successfully connected to PostgreSQL and created connection pool.")
        except Exception:
            log.exception("!!! Failed to connect to PostgreSQL database. Server cannot start.")
            raise

    async def close(self):
        """Closes the connection pool."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            log.info("PostgreSQL connection pool closed.")

    async def execute_query(self, query: str, *params) -> str:
        """Executes a data-modifying query. Returns the status string."""
        if not self.pool: raise ConnectionError("Database pool not initialized.")
        async with self.pool.acquire() as conn:
            return await conn.execute(query, *params)

    async def fetch_one_query(self, query: str, *params) -> Optional[asyncpg.Record]:
        """Executes a query that is expected to return at most one row."""
        if not self.pool: raise ConnectionError("Database pool not initialized.")
        async with self.pool.acquire() as conn:
            return await conn.fetchrow(query, *params)

    async def fetch_all_query(self, query: str, *params) -> List[asyncpg.Record]:
        """Executes a query that returns multiple rows."""
        if not self.pool: raise ConnectionError("Database pool not initialized.")
        async with self.pool.acquire() as conn:
            return await conn.fetch(query, *params)

    async def init_db(self):
        """Initializes the database schema and seeds the default item catalog."""
        log.info("--- Initializing PostgreSQL database schema ---")
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute("""
                    CREATE TABLE IF NOT EXISTS item_templates (
                        id INTEGER PRIMARY KEY,
                        shortname TEXT UNIQUE NOT NULL,
                        name TEXT NOT NULL,
                        type TEXT NOT NULL DEFAULT 'GENERAL',
                        category TEXT NOT NULL DEFAULT 'Misc',
                        stats JSONB DEFAULT '{}'::jsonb
                    )
                """)
                await conn.execute("""
                    CREATE TABLE IF NOT EXISTS landmarks (
                        id SERIAL PRIMARY KEY,
                        name TEXT NOT NULL,
                        display_name TEXT,
                        pos_x REAL NOT NULL DEFAULT 0,
                        pos_y REAL NOT NULL DEFAULT 0,
                        pos_z REAL NOT NULL DEFAULT 0,
                        yaw REAL NOT NULL DEFAULT 0
                    )
                """)
                await conn.execute("""
                    CREATE TABLE IF NOT EXISTS storage_records (
                        player_id BIGINT PRIMARY KEY,
                        data JSONB NOT NULL DEFAULT '{}'::jsonb,
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    )
                """)
                await conn.execute("""
                    CREATE TABLE IF NOT EXISTS terminal_placements (
                        landmark_class TEXT PRIMARY KEY,
                        locations JSONB NOT NULL DEFAULT '[]'::jsonb,
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    )
                """)
                await conn.execute("""
                    CREATE TABLE IF NOT EXISTS storage_meta (
                        key TEXT PRIMARY KEY,
                        value TEXT
                    )
                """)

        # --- Seed Essential Data ---
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                log.info("Seeding item templates...")
                template_records = [
                    (t['id'], t['shortname'], t['name'], t['type'], t['category'], json.dumps(t.get('stats', {})))
                    for t in item_defs.DEFAULT_ITEM_TEMPLATES
                ]
                await conn.executemany("""
                    INSERT INTO item_templates (id, shortname, name, type, category, stats)
                    VALUES ($1, $2, $3, $4, $5, $6)
                    ON CONFLICT (id) DO NOTHING
                """, template_records)
        log.info("--- Database initialization complete ---")

    # --- Catalog & World ---
    async def load_item_templates(self) -> List[Dict[str, Any]]:
        rows = await self.fetch_all_query("SELECT * FROM item_templates ORDER BY id")
        templates = []
        for row in rows:
            template = dict(row)
            template['stats'] = _load_json(template.get('stats'), {})
            templates.append(template)
        return templates

    async def load_landmarks(self) -> List[Dict[str, Any]]:
        rows = await self.fetch_all_query("SELECT * FROM landmarks ORDER BY id")
        return [dict(row) for row in rows]

    # --- Storage Records ---
    async def load_storage_records(self) -> List[Dict[str, Any]]:
        """Returns every stored player record document."""
        rows = await self.fetch_all_query("SELECT player_id, data FROM storage_records ORDER BY player_id")
        documents = []
        for row in rows:
            data = _load_json(row['data'], {})
            data.setdefault('player_id', row['player_id'])
            documents.append(data)
        return documents

    async def save_storage_record(self, player_id: int, data: Dict[str, Any]) -> str:
        query = """
            INSERT INTO storage_records (player_id, data, updated_at)
            VALUES ($1, $2, NOW())
            ON CONFLICT (player_id) DO UPDATE SET data = EXCLUDED.data, updated_at = NOW()
        """
        return await self.execute_query(query, player_id, json.dumps(data))

    async def delete_storage_record(self, player_id: int) -> str:
        return await self.execute_query("DELETE FROM storage_records WHERE player_id = $1", player_id)

    # --- Terminal Placements ---
    async def load_placements(self) -> Dict[str, List[Dict[str, Any]]]:
        rows = await self.fetch_all_query("SELECT landmark_class, locations FROM terminal_placements")
        return {row['landmark_class']: _load_json(row['locations'], []) for row in rows}

    async def replace_placements(self, placements: Dict[str, List[Dict[str, Any]]]) -> bool:
        """Replaces the whole placement table in one transaction."""
        if not self.pool: raise ConnectionError("Database pool not initialized.")
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute("DELETE FROM terminal_placements")
                if placements:
                    await conn.executemany(
                        "INSERT INTO terminal_placements (landmark_class, locations) VALUES ($1, $2)",
                        [(name, json.dumps(locations)) for name, locations in placements.items()]
                    )
        return True

    # --- Meta ---
    async def get_meta(self, key: str) -> Optional[str]:
        row = await self.fetch_one_query("SELECT value FROM storage_meta WHERE key = $1", key)
        return row['value'] if row else None

    async def set_meta(self, key: str, value: Optional[str]) -> str:
        query = """
            INSERT INTO storage_meta (key, value) VALUES ($1, $2)
            ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value
        """
        return await self.execute_query(query, key, value)


db_manager = DatabaseManager()
