import logging
import asyncpg
from .config import settings

log = logging.getLogger(__name__)

class Database:
    """Query-only pool over the storage tables. The game server owns every write."""

    def __init__(self):
        self.pool = None

    @property
    def is_connected(self) -> bool:
        return self.pool is not None

    async def connect(self):
        self.pool = await asyncpg.create_pool(
            host=settings.db_host,
            port=settings.db_port,
            user=settings.db_user,
            password=settings.db_password,
            database=settings.db_name,
            ssl=settings.db_sslmode,
            min_size=1,
            max_size=5,
            command_timeout=30,
        )
        log.info("Read-only storage pool created: %s@%s", settings.db_name, settings.db_host)

    async def disconnect(self):
        if self.pool:
            await self.pool.close()
            self.pool = None
            log.info("Storage pool closed.")

    async def fetch_one(self, query: str, *args):
        """Fetch a single row"""
        async with self.pool.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetch_all(self, query: str, *args):
        """Fetch multiple rows"""
        async with self.pool.acquire() as conn:
            return await conn.fetch(query, *args)

db = Database()
