from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from sqlalchemy import event, inspect, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from .config import Settings
from .schema import METADATA

LOGGER = logging.getLogger("request_ingestor.db")


def _configure_sqlite(engine: AsyncEngine) -> None:
    """Let SQLAlchemy manage transactions itself so SAVEPOINTs behave."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        # Stop the driver from emitting its own BEGIN.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")


class DatabaseSession:
    """Manage the SQLAlchemy engine and the request schema.

    The engine uses ``NullPool``: every ``engine.begin()`` opens a fresh
    connection and closes it when the block exits, so a batch never shares its
    connection with another.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._engine: Optional[AsyncEngine] = None

    async def open(self) -> AsyncEngine:
        if self._engine is not None:
            return self._engine

        deadline = time.time() + self._settings.connect_timeout
        attempts = 0
        while True:
            attempts += 1
            async_engine = self._create_engine()
            try:
                LOGGER.info("Connecting to database (attempt %s)", attempts)
                async with async_engine.connect() as connection:
                    await connection.execute(text("SELECT 1"))
                self._engine = async_engine
                LOGGER.info("Connected to database")
                break
            except OperationalError as exc:
                await async_engine.dispose()
                if time.time() >= deadline:
                    raise RuntimeError("Database connection timed out") from exc
                LOGGER.warning("Database not ready yet (%s), retrying...", exc)
                await asyncio.sleep(min(2 * attempts, 10))

        return self._engine

    def _create_engine(self) -> AsyncEngine:
        url = make_url(self._settings.database_url)
        engine = create_async_engine(url, poolclass=NullPool)
        if url.get_backend_name() == "sqlite":
            _configure_sqlite(engine)
        return engine

    async def ensure_schema(self) -> None:
        """Create any missing tables. Safe to call repeatedly."""
        async with self.engine.begin() as conn:
            await conn.run_sync(METADATA.create_all)
        LOGGER.info("Schema ready (%s tables)", len(METADATA.tables))

    async def table_names(self) -> list[str]:
        async with self.engine.connect() as conn:
            return await conn.run_sync(
                lambda sync_conn: inspect(sync_conn).get_table_names()
            )

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Engine not initialised; call open() first")
        return self._engine

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None

    async def __aenter__(self) -> "DatabaseSession":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()
