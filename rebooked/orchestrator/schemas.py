"""Pydantic models for API input/output of the bursary pack generator.

Split into: preferences (input), packs and pack results (AI output),
API envelopes, and admin settings.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError, field_validator

FALLBACK_MESSAGE = "AI generated a text response instead of structured data"


# ═══════════════ PREFERENCES (input) ═══════════════

class Preferences(BaseModel):
    """Student preferences — every field optional.

    The raw dict as received is kept alongside the typed view because the
    cache key is the exact serialized form of what the caller sent.
    """

    model_config = ConfigDict(extra="allow")

    university: str | None = None
    city: str | None = None
    maxBudget: float | None = None
    fieldOfStudy: str | None = None
    academicPerformance: Literal["excellent", "good", "average", "below-average", ""] | None = None
    nsfasEligible: bool | None = None
    diversity: str | None = None

    _raw: dict[str, Any] | None = PrivateAttr(default=None)

    @field_validator("maxBudget", mode="before")
    @classmethod
    def _blank_budget(cls, v: Any) -> Any:
        # The form sends "" when no budget is entered
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @classmethod
    def from_raw(cls, raw: dict[str, Any] | None) -> "Preferences":
        """Typed view of raw input. Fields with unusable values are ignored."""
        data = dict(raw or {})
        try:
            prefs = cls.model_validate(data)
        except ValidationError as e:
            bad = {err["loc"][0] for err in e.errors() if err["loc"]}
            prefs = cls.model_validate({k: v for k, v in data.items() if k not in bad})
        prefs._raw = dict(raw or {})
        return prefs

    @property
    def raw(self) -> dict[str, Any]:
        if self._raw is not None:
            return self._raw
        return self.model_dump(exclude_none=True)

    def budget_display(self) -> str:
        """maxBudget as the caller wrote it, e.g. '4000' rather than '4000.0'."""
        if not self.maxBudget:
            return ""
        raw_value = self.raw.get("maxBudget")
        if isinstance(raw_value, (str, int)) and not isinstance(raw_value, bool):
            return str(raw_value).strip()
        if float(self.maxBudget).is_integer():
            return str(int(self.maxBudget))
        return str(self.maxBudget)

    def cache_key(self, canonical: bool = False) -> str:
        """Serialized preferences used as the cache key.

        By default the key is the compact JSON of the raw input in the order
        it was received, so reordered keys produce a different entry.
        """
        data = self.raw
        if canonical:
            data = {k: data[k] for k in sorted(data) if data[k] is not None}
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False, sort_keys=canonical)


# ═══════════════ PACKS (AI output) ═══════════════

class Pack(BaseModel):
    """One accommodation + bursary recommendation. Shape is not enforced."""

    model_config = ConfigDict(extra="allow")

    packName: Any = None
    accommodation: Any = None
    bursary: Any = None
    financialBreakdown: Any = None
    applicationStrategy: Any = None
    whyMatch: Any = None


class ValidPacks(BaseModel):
    """The model's JSON output, parsed but otherwise untouched."""

    kind: Literal["packs"] = "packs"
    data: Any = None

    @property
    def packs(self) -> list[Pack]:
        if not isinstance(self.data, list):
            return []
        return [Pack.model_validate(p) for p in self.data if isinstance(p, dict)]

    def count(self) -> int:
        return len(self.data) if isinstance(self.data, list) else 0

    def payload(self) -> Any:
        return self.data


class RawFallback(BaseModel):
    """Free-text model output that could not be parsed as JSON."""

    kind: Literal["raw"] = "raw"
    raw_response: str = ""
    message: str = FALLBACK_MESSAGE

    @property
    def packs(self) -> list[Pack]:
        return []

    def count(self) -> int:
        return 0

    def payload(self) -> dict[str, str]:
        return {"raw_response": self.raw_response, "message": self.message}


PackResult = Union[ValidPacks, RawFallback]


def pack_result_from_payload(payload: Any) -> PackResult:
    """Rebuild the variant from a payload stored in the cache or ledger."""
    if isinstance(payload, dict) and "raw_response" in payload and set(payload) <= {"raw_response", "message"}:
        return RawFallback(
            raw_response=str(payload.get("raw_response", "")),
            message=str(payload.get("message") or FALLBACK_MESSAGE),
        )
    return ValidPacks(data=payload)


# ═══════════════ API ENVELOPES ═══════════════

class GeneratePackRequest(BaseModel):
    preferences: dict[str, Any] = Field(default_factory=dict)


class GeneratePackResponse(BaseModel):
    pack: Any = None
    fromCache: bool = False


class PackOutcome(BaseModel):
    """Orchestrator result before it is put on the wire."""

    result: ValidPacks | RawFallback
    from_cache: bool = False

    def to_response(self) -> GeneratePackResponse:
        return GeneratePackResponse(pack=self.result.payload(), fromCache=self.from_cache)


# ═══════════════ ADMIN ═══════════════

class AISettingsState(BaseModel):
    feature_name: str
    is_enabled: bool


class AISettingsUpdate(BaseModel):
    is_enabled: bool


class PackRequestRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: str
    status: str | None = None
    request_data: Any = None
    response_data: Any = None
    created_at: datetime | None = None
    completed_at: datetime | None = None


class UsageStats(BaseModel):
    totalRequests: int = 0
    todayRequests: int = 0
    successRate: int = 0
    avgResponseTime: int = 0


class PackRequestsOverview(BaseModel):
    requests: list[PackRequestRecord] = Field(default_factory=list)
    stats: UsageStats = Field(default_factory=UsageStats)
