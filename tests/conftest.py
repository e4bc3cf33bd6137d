"""Shared test fixtures and configuration."""

import json
import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

# No real credentials during tests
os.environ.setdefault("AI_GATEWAY_API_KEY", "")
os.environ.setdefault("SUPABASE_URL", "")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "")

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from rebooked.models import Base  # noqa: E402
from rebooked.orchestrator.pipeline import BursaryPackOrchestrator  # noqa: E402


# ═══════════════ SAMPLE DATA ═══════════════

SAMPLE_PACKS = [
    {
        "packName": "Hatfield Scholar Starter",
        "accommodation": {"property_name": "Hatfield Studios", "address": "1 Burnett St, Hatfield"},
        "bursary": {"name": "Funza Lushaka", "provider": "Department of Basic Education"},
        "financialBreakdown": "Covers tuition and R3500/month accommodation",
        "applicationStrategy": "Apply before 31 January",
        "whyMatch": "Within budget and NSFAS accredited",
    },
]


@pytest.fixture
def sample_accommodations():
    return [
        {
            "id": "a1",
            "property_name": "Hatfield Studios",
            "type": "apartment",
            "address": "1 Burnett St, Hatfield",
            "city": "Pretoria",
            "monthly_cost": 3500,
            "nsfas_accredited": True,
            "status": "active",
        },
    ]


@pytest.fixture
def sample_bursaries():
    return [
        {
            "id": "b1",
            "name": "Funza Lushaka",
            "provider": "Department of Basic Education",
            "amount": "Full cost of study",
            "status": "active",
        },
    ]


@pytest.fixture
def fenced_completion():
    return "Here are your packs:\n```json\n" + json.dumps(SAMPLE_PACKS) + "\n```"


# ═══════════════ FAKE COLLABORATORS ═══════════════

class FakeIdentity:
    def __init__(self, tokens: dict[str, str] | None = None, admins: set[str] | None = None):
        self.tokens = tokens if tokens is not None else {"good-token": "user-1234-abcd"}
        self.admins = admins or set()
        self.calls: list[str] = []

    async def verify(self, token: str) -> str | None:
        self.calls.append(token)
        return self.tokens.get(token)

    async def is_admin(self, user_id: str) -> bool:
        return user_id in self.admins


class FakeFlags:
    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.calls = 0

    async def is_enabled(self, feature_name: str) -> bool:
        self.calls += 1
        return self.enabled


class FakeLedger:
    def __init__(self, fail_on_create: bool = False):
        self.records: dict[uuid.UUID, dict[str, Any]] = {}
        self.fail_on_create = fail_on_create

    async def create(self, user_id: str, request_data: dict[str, Any]) -> uuid.UUID:
        if self.fail_on_create:
            raise RuntimeError("insert failed")
        request_id = uuid.uuid4()
        self.records[request_id] = {
            "user_id": user_id,
            "request_data": request_data,
            "status": "processing",
            "response_data": None,
        }
        return request_id

    async def complete(self, request_id: uuid.UUID, response_data: Any) -> None:
        self.records[request_id].update(status="completed", response_data=response_data)

    async def fail(self, request_id: uuid.UUID, reason: str) -> None:
        self.records[request_id].update(status="failed", response_data={"error": reason})

    def only(self) -> dict[str, Any]:
        assert len(self.records) == 1
        return next(iter(self.records.values()))


class FakeCache:
    """Dict-backed cache honouring expires_at against a movable clock."""

    def __init__(self, fail_reads: bool = False, fail_writes: bool = False):
        self.entries: dict[str, tuple[Any, datetime]] = {}
        self.now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        self.ttl = timedelta(hours=24)
        self.reads = 0
        self.writes = 0
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes

    async def get(self, key: str) -> Any | None:
        self.reads += 1
        if self.fail_reads:
            raise RuntimeError("cache unavailable")
        entry = self.entries.get(key)
        if entry and entry[1] > self.now:
            return entry[0]
        return None

    async def set(self, key: str, data: Any) -> datetime:
        self.writes += 1
        if self.fail_writes:
            raise RuntimeError("cache unavailable")
        expires_at = self.now + self.ttl
        self.entries[key] = (data, expires_at)
        return expires_at


class FakeListings:
    def __init__(self, accommodations=None, bursaries=None, error: Exception | None = None):
        self.accommodations = accommodations or []
        self.bursaries = bursaries or []
        self.error = error
        self.calls = 0

    async def fetch(self, prefs):
        self.calls += 1
        if self.error:
            raise self.error
        return self.accommodations, self.bursaries


class FakeCompletion:
    def __init__(self, text: str = "[]", error: Exception | None = None):
        self.text = text
        self.error = error
        self.prompts: list[tuple[str, str]] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def complete(self, system: str, user_message: str) -> str:
        self.prompts.append((system, user_message))
        if self.error:
            raise self.error
        return self.text


@pytest.fixture
def fakes(sample_accommodations, sample_bursaries, fenced_completion):
    """Bundle of fakes wired for a successful generation."""

    class Fakes:
        identity = FakeIdentity()
        flags = FakeFlags()
        ledger = FakeLedger()
        cache = FakeCache()
        listings = FakeListings(sample_accommodations, sample_bursaries)
        completion = FakeCompletion(fenced_completion)

        def orchestrator(self, **kwargs) -> BursaryPackOrchestrator:
            kwargs.setdefault("canonical_cache_keys", False)
            kwargs.setdefault("record_failures", False)
            return BursaryPackOrchestrator(
                identity=self.identity,
                flags=self.flags,
                ledger=self.ledger,
                cache=self.cache,
                listings=self.listings,
                completion=self.completion,
                feature_name="bursary_pack_generator",
                **kwargs,
            )

    return Fakes()


# ═══════════════ IN-MEMORY DATABASE ═══════════════

@pytest.fixture
async def session_factory():
    """Fresh in-memory SQLite schema per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()
