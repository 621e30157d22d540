"""Async PostgreSQL connection pool backing the Postgres data source.

Reads are routed to an optional read replica. Connection failures are
raised to the caller as-is; nothing here retries or adds timeouts around
queries.
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from pageutils.config import PageUtilsConfig, config

logger = logging.getLogger(__name__)


def build_conninfo(cfg: PageUtilsConfig = config, host: str = None, port: int = None) -> str:
    """Build psycopg conninfo string for the primary (or a given) host."""
    parts = [
        f"host={host or cfg.db_host}",
        f"port={port or cfg.db_port}",
        f"dbname={cfg.db_name}",
        f"connect_timeout={cfg.connect_timeout_seconds}",
    ]
    if cfg.db_user:
        parts.append(f"user={cfg.db_user}")
    if cfg.db_password:
        parts.append(f"password={cfg.db_password}")
    return " ".join(parts)


async def _fetch_rows(conn: psycopg.AsyncConnection, query, params) -> list[dict[str, Any]]:
    async with conn.cursor() as cur:
        await cur.execute(query, params)
        if cur.description:
            rows = await cur.fetchall()
            return [dict(row) for row in rows]
        return []


class SnapshotSession:
    """Runs every read on one connection inside a single read-only transaction."""

    def __init__(self, conn: psycopg.AsyncConnection):
        self._conn = conn

    async def fetch(self, query, params: tuple = None) -> list[dict[str, Any]]:
        return await _fetch_rows(self._conn, query, params)


class PgPool:
    """Manages the async connection pool(s) to PostgreSQL."""

    def __init__(self, cfg: PageUtilsConfig = config):
        self._config = cfg
        self._primary_pool: Optional[AsyncConnectionPool] = None
        self._replica_pool: Optional[AsyncConnectionPool] = None

    def _make_pool(self, conninfo: str, min_size: int) -> AsyncConnectionPool:
        return AsyncConnectionPool(
            conninfo=conninfo,
            min_size=min_size,
            max_size=self._config.pool_max_size,
            open=False,
            kwargs={"row_factory": dict_row, "autocommit": True},
            check=AsyncConnectionPool.check_connection,
            max_lifetime=self._config.pool_max_lifetime,
            max_idle=self._config.pool_max_idle,
        )

    async def initialize(self, conninfo: str = None, replica_conninfo: str = None):
        """Open the primary (and optional replica) pools."""
        if conninfo is None:
            conninfo = build_conninfo(self._config)
        if replica_conninfo is None and self._config.replica_host:
            replica_conninfo = build_conninfo(
                self._config, self._config.replica_host, self._config.replica_port
            )

        self._primary_pool = self._make_pool(conninfo, self._config.pool_min_size)
        await self._primary_pool.open()
        logger.info("Primary connection pool initialized")

        if replica_conninfo:
            self._replica_pool = self._make_pool(replica_conninfo, 1)
            await self._replica_pool.open()
            logger.info("Replica connection pool initialized")

    async def close(self):
        if self._primary_pool:
            await self._primary_pool.close()
            self._primary_pool = None
            logger.info("Primary pool closed")
        if self._replica_pool:
            await self._replica_pool.close()
            self._replica_pool = None
            logger.info("Replica pool closed")

    @asynccontextmanager
    async def connection(
        self, prefer_replica: bool = False
    ) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Check out a connection.

        Args:
            prefer_replica: If True and replica pool is available, use replica.
        """
        target_pool = self._primary_pool
        if prefer_replica and self._replica_pool:
            target_pool = self._replica_pool

        if not target_pool:
            raise RuntimeError("Pool not initialized. Call initialize() first.")

        async with target_pool.connection() as conn:
            yield conn

    async def fetch(self, query, params: tuple = None) -> list[dict[str, Any]]:
        """Run a query in a read-only transaction and return all rows as dicts."""
        async with self.connection(prefer_replica=True) as conn:
            async with conn.transaction():
                await conn.execute("SET TRANSACTION READ ONLY")
                return await _fetch_rows(conn, query, params)

    @asynccontextmanager
    async def snapshot(self) -> AsyncGenerator[SnapshotSession, None]:
        """Yield a session whose reads all see the same database snapshot."""
        async with self.connection(prefer_replica=True) as conn:
            async with conn.transaction():
                await conn.execute(
                    "SET TRANSACTION ISOLATION LEVEL REPEATABLE READ, READ ONLY"
                )
                yield SnapshotSession(conn)


pool = PgPool()
