"""Feature flag provider over the ai_settings table.

Flags are read fresh on every call so an admin toggle takes effect on the
very next request. A missing row reads as disabled.
"""

import logging
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from rebooked.models.ai_pack import AISetting
from rebooked.services.cache import upsert_statement

logger = logging.getLogger(__name__)


class FeatureFlagProvider(Protocol):
    async def is_enabled(self, feature_name: str) -> bool: ...


class SqlFeatureFlags:
    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def is_enabled(self, feature_name: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(AISetting.is_enabled).where(AISetting.feature_name == feature_name)
            )
            enabled = result.scalar_one_or_none()
        return bool(enabled)

    async def set_enabled(self, feature_name: str, enabled: bool, updated_by: str | None = None) -> bool:
        async with self._session_factory() as session:
            stmt = upsert_statement(
                session,
                AISetting,
                {
                    "feature_name": feature_name,
                    "is_enabled": enabled,
                    "updated_at": datetime.now(timezone.utc),
                    "updated_by": updated_by,
                },
                key="feature_name",
                update=["is_enabled", "updated_at", "updated_by"],
            )
            await session.execute(stmt)
            await session.commit()
        logger.info("Feature flag | %s=%s | by=%s", feature_name, enabled, (updated_by or "-")[:8])
        return enabled
