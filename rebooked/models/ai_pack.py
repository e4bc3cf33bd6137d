"""AI pack generator tables — cache, request ledger and feature settings."""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from rebooked.models.base import Base, JSONType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AIPackCache(Base):
    """Generated pack bundles keyed by serialized preferences, with TTL.

    Expired rows are never deleted; they are skipped at read time and
    overwritten by the next upsert with the same key.
    """

    __tablename__ = "ai_pack_cache"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    cache_key: Mapped[str] = mapped_column(String, unique=True, nullable=False, index=True)
    pack_data: Mapped[Any] = mapped_column(JSONType, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True,
    )
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=_utcnow,
    )


class AIPackRequest(Base):
    """One row per generation attempt, for the admin usage dashboard."""

    __tablename__ = "ai_pack_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    request_data: Mapped[Any] = mapped_column(JSONType, nullable=False)
    status: Mapped[str | None] = mapped_column(String(20), insert_default="processing")
    response_data: Mapped[Any | None] = mapped_column(JSONType)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=_utcnow, index=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class AISetting(Base):
    """Global on/off switch per AI feature."""

    __tablename__ = "ai_settings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    feature_name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    is_enabled: Mapped[bool | None] = mapped_column(Boolean, insert_default=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    updated_by: Mapped[str | None] = mapped_column(String(64))
