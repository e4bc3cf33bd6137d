"""Data fetchers — active accommodations and bursaries for the pack prompt.

Accommodation filters come from the same preference fields used for cache
keying; each filter is applied only when the field is present. Bursaries are
not narrowed by preferences.
"""

import logging
import time
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from rebooked.models.listings import Accommodation, Bursary
from rebooked.orchestrator.errors import DataAccessError
from rebooked.orchestrator.schemas import Preferences

logger = logging.getLogger(__name__)

ACTIVE = "active"


def accommodations_query(prefs: Preferences) -> Select:
    stmt = select(Accommodation).where(Accommodation.status == ACTIVE)
    if prefs.university:
        stmt = stmt.where(Accommodation.university == prefs.university)
    if prefs.city:
        stmt = stmt.where(Accommodation.city == prefs.city)
    if prefs.maxBudget:
        stmt = stmt.where(Accommodation.monthly_cost <= prefs.maxBudget)
    return stmt


def bursaries_query() -> Select:
    return select(Bursary).where(Bursary.status == ACTIVE)


class ListingFetcher:
    """Read-only access to the listings owned by the admin back-office."""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def fetch(self, prefs: Preferences) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        start = time.monotonic()
        async with self._session_factory() as session:
            try:
                result = await session.execute(accommodations_query(prefs))
                accommodations = [row.to_dict() for row in result.scalars().all()]
            except (SQLAlchemyError, OSError) as e:
                raise DataAccessError(f"Failed to fetch accommodations: {str(e)[:200]}") from e

            try:
                result = await session.execute(bursaries_query())
                bursaries = [row.to_dict() for row in result.scalars().all()]
            except (SQLAlchemyError, OSError) as e:
                raise DataAccessError(f"Failed to fetch bursaries: {str(e)[:200]}") from e

        logger.info(
            "Listings fetched | accommodations=%d bursaries=%d | %dms",
            len(accommodations), len(bursaries), int((time.monotonic() - start) * 1000),
        )
        return accommodations, bursaries
