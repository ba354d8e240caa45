import asyncio
import logging
from datetime import datetime
from typing import Any, Protocol

import asyncpg

from event_sink.domain import InsertionRecord
from event_sink.errors import TargetError
from event_sink.insertion import build_insert
from event_sink.service_config import PostgresConfig
from event_sink.utils import redact_dsn

logger = logging.getLogger(__name__)

EXPECTED_INSERT_STATUS = "INSERT 0 1"


class RecordWriter(Protocol):
    def begin_record(self, timestamp: datetime) -> InsertionRecord:
        ...

    async def persist(self, record: InsertionRecord) -> None:
        ...

    async def ping(self) -> bool:
        ...


class PostgresWriter:
    """
    Writes one row per record through an asyncpg connection pool.

    Each persist call checks out exactly one connection and issues exactly one
    INSERT. Nothing is retried; every failure comes back as a TargetError.
    """

    def __init__(self, config: PostgresConfig, *, pool: asyncpg.Pool | None = None):
        self.table = config.table
        self.time_column = config.time_column
        self._connection_config = config.connection
        self._pool = pool

    async def __aenter__(self) -> "PostgresWriter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_value, tb) -> None:
        await self.close()

    # ----------------------------
    # Pool lifecycle
    # ----------------------------
    async def connect(self) -> None:
        if self._pool is not None:
            raise RuntimeError("Writer pool already open")

        connection = self._connection_config
        logger.info(
            "Creating PostgreSQL pool for %s (min=%s max=%s)",
            redact_dsn(connection.dsn) if connection.dsn else f"{connection.host}:{connection.port}/{connection.dbname}",
            connection.min_size,
            connection.max_size,
        )
        self._pool = await asyncpg.create_pool(**connection.pool_kwargs())

    async def close(self) -> None:
        if self._pool is None:
            return
        try:
            await self._pool.close()
        finally:
            self._pool = None
            logger.info("PostgreSQL pool closed")

    def _require_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Writer is not connected; call connect() or use it as an async context manager")
        return self._pool

    # ----------------------------
    # Public API
    # ----------------------------
    def begin_record(self, timestamp: datetime) -> InsertionRecord:
        return InsertionRecord(time_column=self.time_column, timestamp=timestamp)

    async def persist(self, record: InsertionRecord) -> None:
        prepared = build_insert(self.table, record)
        pool = self._require_pool()

        try:
            async with pool.acquire(timeout=self._connection_config.acquire_timeout) as connection:
                status = await connection.execute(prepared.typed_sql, *prepared.values)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as e:
            logger.exception("Insert into %s failed", self.table)
            raise TargetError(str(e) or type(e).__name__) from e

        if status != EXPECTED_INSERT_STATUS:
            raise TargetError(f"Unexpected result for insert into {self.table}: {status}")

        logger.debug("Inserted row into %s: columns=%s", self.table, list(prepared.columns))

    async def ping(self) -> bool:
        pool = self._require_pool()
        try:
            async with pool.acquire(timeout=self._connection_config.acquire_timeout) as connection:
                result: Any = await connection.fetchval("SELECT 1")
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as e:
            logger.warning(f"Database ping failed: {e}")
            return False
        return result == 1
