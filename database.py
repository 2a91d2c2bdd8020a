"""
PostgreSQL access for the travel planner API.

A single asyncpg pool is created at startup. Callers never hold on to a
connection: every repository call borrows one through session() (reads)
or transaction() (writes) and gives it back when the block ends.
"""

import asyncpg
import logging
from typing import Optional, Any
from contextlib import asynccontextmanager

from config import DatabaseConfig

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """Pool owner handing out per-call connection scopes"""

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.pool: Optional[asyncpg.Pool] = None

    async def connect(self):
        if self.pool is not None:
            logger.warning("connect() called twice; reusing the existing pool")
            return

        try:
            self.pool = await asyncpg.create_pool(
                dsn=self.config.asyncpg_dsn,
                min_size=self.config.min_pool_size,
                max_size=self.config.max_pool_size,
                command_timeout=self.config.command_timeout,
                ssl=self.config.asyncpg_ssl,
            )
        except (OSError, asyncpg.PostgresError) as e:
            logger.error(f"Could not open pool for {self.config.database}@{self.config.host}: {e}")
            raise

        logger.info(
            f"Pool ready for {self.config.database}@{self.config.host}:{self.config.port} "
            f"(size {self.config.min_pool_size}-{self.config.max_pool_size})"
        )

    async def disconnect(self):
        if self.pool is None:
            return
        await self.pool.close()
        self.pool = None
        logger.info("Pool closed")

    @asynccontextmanager
    async def session(self):
        """
        Borrow a connection for one read call.

            async with db.session() as conn:
                rows = await conn.fetch(sql, *params)
        """
        if self.pool is None:
            raise RuntimeError("DatabaseConnection.connect() has not been awaited")

        async with self.pool.acquire() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self):
        """
        Borrow a connection with an open transaction for one write call.

        Leaving the block normally commits. An exception rolls back every
        statement issued on the connection and is re-raised to the caller.
        """
        async with self.session() as conn:
            try:
                async with conn.transaction():
                    yield conn
            except Exception as e:
                logger.error(f"Transaction rolled back: {e}")
                raise

    async def fetchval(self, query: str, *args, column: int = 0) -> Any:
        async with self.session() as conn:
            return await conn.fetchval(query, *args, column=column)

    async def check_connection(self) -> bool:
        """True when the pool can run a trivial query"""
        try:
            return await self.fetchval("SELECT 1") == 1
        except (OSError, RuntimeError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            logger.error(f"Database check failed: {e}")
            return False
