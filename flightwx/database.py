"""Database configuration and session management."""

from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from flightwx.config.settings import DatabaseConfig

# Import models so they are attached to Base.metadata before table creation
from flightwx.models import Base  # noqa: F401 - ensures metadata is registered

logger = logging.getLogger(__name__)

_SCHEMA_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _normalise_schema_name(raw_schema: str | None) -> str | None:
    """Return a sanitised schema name or None when invalid/empty."""

    if raw_schema is None:
        return None

    schema = raw_schema.strip()
    if not schema:
        return None

    if not _SCHEMA_NAME_PATTERN.fullmatch(schema):
        logger.warning(
            "Ignoring invalid schema name '%s'; falling back to default search_path.",
            raw_schema,
        )
        return None

    return schema


def _quote_identifier(identifier: str) -> str:
    """Return a double-quoted SQL identifier, escaping inner quotes."""

    return identifier.replace('"', '""')


def _create_engine(config: DatabaseConfig, debug: bool) -> AsyncEngine:
    """Create an async engine with environment-appropriate pooling."""

    engine_options: dict[str, Any] = {
        "echo": debug,
        "future": True,
        "pool_pre_ping": True,
    }

    if config.serverless or debug:
        # Disable pooling when working with serverless databases (or in debug).
        engine_options["poolclass"] = NullPool

    return create_async_engine(config.url, **engine_options)


class Database:
    """Owns the async engine and hands out sessions bound to the configured schema."""

    def __init__(self, config: DatabaseConfig, debug: bool = False):
        self.schema = _normalise_schema_name(config.schema_name)
        if self.schema:
            # Ensure SQLAlchemy emits DDL for the configured schema.
            for table in Base.metadata.tables.values():
                if table.schema is None:
                    table.schema = self.schema
        self.engine: AsyncEngine = _create_engine(config, debug)
        self.session_factory = async_sessionmaker(
            self.engine,
            expire_on_commit=False,
            class_=AsyncSession,
        )

    async def _ensure_search_path(self, target: Any) -> None:
        if not self.schema:
            return

        quoted_schema = _quote_identifier(self.schema)
        await target.execute(text(f'SET search_path TO "{quoted_schema}", public'))

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Async context manager that yields a configured SQLAlchemy session."""

        async with self.session_factory() as session:
            await self._ensure_search_path(session)
            yield session

    async def init_models(self) -> None:
        """Create database tables if they do not exist."""

        async with self.engine.begin() as conn:
            if self.schema:
                quoted_schema = _quote_identifier(self.schema)
                await conn.execute(
                    text(f'CREATE SCHEMA IF NOT EXISTS "{quoted_schema}"')
                )
            await self._ensure_search_path(conn)
            await conn.run_sync(Base.metadata.create_all)

        if self.schema:
            logger.info("Ensured database tables in schema '%s'.", self.schema)
        else:
            logger.info("Ensured database tables in default schema.")

    async def dispose(self) -> None:
        """Dispose of the engine and release pooled connections."""

        await self.engine.dispose()


__all__ = ["Database"]
