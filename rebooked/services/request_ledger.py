"""Request ledger.

Every pack generation attempt gets a row in ai_pack_requests: created as
'processing' before any expensive work, then moved to 'completed' once a
result (cached or fresh) is in hand. The admin dashboard reads the same
rows for usage stats.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from rebooked.models.ai_pack import AIPackRequest
from rebooked.orchestrator.schemas import UsageStats

logger = logging.getLogger(__name__)

STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


class RequestLedger:
    """Append/update log of generation attempts."""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def create(self, user_id: str, request_data: dict[str, Any]) -> uuid.UUID:
        async with self._session_factory() as session:
            record = AIPackRequest(
                id=uuid.uuid4(),
                user_id=user_id,
                request_data=request_data,
                status=STATUS_PROCESSING,
                created_at=datetime.now(timezone.utc),
            )
            request_id = record.id
            session.add(record)
            await session.commit()
        logger.info("Ledger | created request=%s | user=%s", request_id, user_id[:8])
        return request_id

    async def complete(self, request_id: uuid.UUID, response_data: Any) -> None:
        await self._finish(request_id, STATUS_COMPLETED, response_data)

    async def fail(self, request_id: uuid.UUID, reason: str) -> None:
        await self._finish(request_id, STATUS_FAILED, {"error": reason})

    async def _finish(self, request_id: uuid.UUID, status: str, response_data: Any) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(AIPackRequest)
                .where(AIPackRequest.id == request_id)
                .values(
                    status=status,
                    response_data=response_data,
                    completed_at=datetime.now(timezone.utc),
                )
            )
            await session.commit()
        logger.info("Ledger | request=%s | status=%s", request_id, status)

    async def recent(self, limit: int = 50) -> list[AIPackRequest]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(AIPackRequest)
                .order_by(AIPackRequest.created_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def usage_stats(records: Iterable[AIPackRequest], now: datetime | None = None) -> UsageStats:
    """Dashboard numbers over a window of ledger rows.

    Success rate is the share of rows in 'completed'; average response time
    (seconds) only counts completed rows that have a completed_at.
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    records = list(records)
    total = len(records)
    if not total:
        return UsageStats()

    today = sum(
        1 for r in records
        if r.created_at is not None and _as_utc(r.created_at).date() == now.date()
    )
    completed = [r for r in records if r.status == STATUS_COMPLETED]
    durations = [
        (_as_utc(r.completed_at) - _as_utc(r.created_at)).total_seconds()
        for r in completed
        if r.completed_at is not None and r.created_at is not None
    ]
    avg = sum(durations) / len(durations) if durations else 0

    return UsageStats(
        totalRequests=total,
        todayRequests=today,
        successRate=_round_half_up(len(completed) / total * 100),
        avgResponseTime=_round_half_up(avg),
    )
