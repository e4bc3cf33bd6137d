"""Accommodation and Bursary models — owned by the admin back-office.

This service only reads them; only rows with status 'active' are ever
visible to the pack generator.
"""

import uuid
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Float, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from rebooked.models.base import Base, JSONType


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    return value


class _RowMixin:
    def to_dict(self) -> dict[str, Any]:
        """Column values as a JSON-ready dict, in table column order."""
        return {
            col.name: _jsonable(getattr(self, col.key))
            for col in self.__table__.columns
        }


class Accommodation(_RowMixin, Base):
    """A student accommodation listing."""

    __tablename__ = "accommodations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    property_name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    city: Mapped[str | None] = mapped_column(String(100), index=True)
    province: Mapped[str | None] = mapped_column(String(100))
    university: Mapped[str | None] = mapped_column(String(255), index=True)
    monthly_cost: Mapped[float | None] = mapped_column(Float)
    rooms_available: Mapped[int | None] = mapped_column(Integer)
    units: Mapped[int | None] = mapped_column(Integer)
    amenities: Mapped[list | None] = mapped_column(JSONType)
    certified_universities: Mapped[list | None] = mapped_column(JSONType)
    image_urls: Mapped[list | None] = mapped_column(JSONType)
    nsfas_accredited: Mapped[bool | None] = mapped_column(Boolean)
    accreditation_number: Mapped[str | None] = mapped_column(String(100))
    gender_policy: Mapped[str | None] = mapped_column(String(50))
    description: Mapped[str | None] = mapped_column(Text)
    rating: Mapped[float | None] = mapped_column(Float)
    contact_person: Mapped[str | None] = mapped_column(String(255))
    contact_email: Mapped[str | None] = mapped_column(String(255))
    contact_phone: Mapped[str | None] = mapped_column(String(50))
    website: Mapped[str | None] = mapped_column(String(500))
    status: Mapped[str | None] = mapped_column(String(20), index=True, insert_default="active")
    added_by: Mapped[str | None] = mapped_column(String(64))
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class Bursary(_RowMixin, Base):
    """A bursary / funding opportunity."""

    __tablename__ = "bursaries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    provider: Mapped[str | None] = mapped_column(String(255))
    amount: Mapped[str | None] = mapped_column(String(100))
    description: Mapped[str | None] = mapped_column(Text)
    requirements: Mapped[str | None] = mapped_column(Text)
    qualifications: Mapped[str | None] = mapped_column(Text)
    application_process: Mapped[str | None] = mapped_column(Text)
    coverage_details: Mapped[dict | None] = mapped_column(JSONType)
    required_documents: Mapped[list | None] = mapped_column(JSONType)
    opening_date: Mapped[date | None] = mapped_column(Date)
    closing_date: Mapped[date | None] = mapped_column(Date)
    status: Mapped[str | None] = mapped_column(String(20), index=True, insert_default="active")
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
