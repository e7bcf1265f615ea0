"""Database connection management"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool
from journal_api.config import settings

logger = logging.getLogger(__name__)


class Database:
    """Database connection pool manager"""

    def __init__(
        self,
        connection_string: str = settings.database_url,
        table: str = settings.journal_table,
        min_size: int = settings.db_pool_min_size,
        max_size: int = settings.db_pool_max_size,
    ):
        self.connection_string = connection_string
        self.table = table
        self.min_size = min_size
        self.max_size = max_size
        self._pool: Optional[AsyncConnectionPool] = None

    async def init_pool(self) -> None:
        """Initialize connection pool"""
        logger.info("Initializing database connection pool")
        self._pool = AsyncConnectionPool(
            self.connection_string,
            min_size=self.min_size,
            max_size=self.max_size,
            open=False
        )
        await self._pool.open()

    async def close_pool(self) -> None:
        """Close connection pool"""
        if self._pool:
            logger.info("Closing database connection pool")
            await self._pool.close()
            self._pool = None

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Get database connection from pool"""
        if not self._pool:
            raise RuntimeError("Database pool not initialized")

        async with self._pool.connection() as conn:
            conn.row_factory = dict_row
            yield conn

    async def ensure_schema(self) -> None:
        """Create the key-value table if it does not exist"""
        async with self.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    sql.SQL(
                        """
                        CREATE TABLE IF NOT EXISTS {table} (
                            pk TEXT NOT NULL,
                            sk TEXT NOT NULL,
                            item JSONB NOT NULL,
                            PRIMARY KEY (pk, sk)
                        )
                        """
                    ).format(table=sql.Identifier(self.table))
                )
            await conn.commit()
        logger.info(f"Ensured key-value table {self.table}")
