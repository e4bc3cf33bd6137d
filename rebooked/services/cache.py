"""Pack cache backed by the ai_pack_cache table.

Entries are keyed by serialized preferences and carry an expires_at
timestamp (24h by default). Expired rows are never deleted: a lookup simply
ignores them, and the next upsert for the same key overwrites them.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rebooked.config import settings
from rebooked.models.ai_pack import AIPackCache

logger = logging.getLogger(__name__)


def upsert_statement(session: AsyncSession, model, values: dict[str, Any], key: str, update: list[str]):
    """INSERT ... ON CONFLICT (key) DO UPDATE for Postgres and SQLite."""
    dialect = session.get_bind().dialect.name
    insert = sqlite.insert if dialect == "sqlite" else postgresql.insert
    stmt = insert(model).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=[key],
        set_={col: stmt.excluded[col] for col in update},
    )


class PackCacheService:
    """Async read-through cache for generated packs."""

    def __init__(self, session_factory: async_sessionmaker, ttl_hours: int | None = None):
        self._session_factory = session_factory
        self.ttl = timedelta(hours=settings.pack_cache_ttl_hours if ttl_hours is None else ttl_hours)

    async def get(self, key: str, now: datetime | None = None) -> Any | None:
        """Return the cached payload for key, or None on miss / expiry."""
        now = now or datetime.now(timezone.utc)
        async with self._session_factory() as session:
            result = await session.execute(
                select(AIPackCache.pack_data)
                .where(AIPackCache.cache_key == key)
                .where(AIPackCache.expires_at > now)
            )
            row = result.first()
        if row is None:
            return None
        logger.info("Cache HIT | key=%s", key[:40])
        return row[0]

    async def set(self, key: str, data: Any, now: datetime | None = None) -> datetime:
        """Upsert an entry, returning its expiry time."""
        now = now or datetime.now(timezone.utc)
        expires_at = now + self.ttl
        async with self._session_factory() as session:
            stmt = upsert_statement(
                session,
                AIPackCache,
                {"cache_key": key, "pack_data": data, "expires_at": expires_at, "created_at": now},
                key="cache_key",
                update=["pack_data", "expires_at"],
            )
            await session.execute(stmt)
            await session.commit()
        logger.info("Cache SET | key=%s | ttl=%s", key[:40], self.ttl)
        return expires_at
