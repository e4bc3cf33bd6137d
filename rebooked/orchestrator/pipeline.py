"""Orchestrator — runs one bursary pack generation request end to end.

Responsibilities:
  - Resolve the caller from the bearer token
  - Honour the global feature flag (read fresh each call)
  - Record the attempt in the request ledger before any expensive work
  - Serve from the cache when a non-expired entry exists
  - Otherwise fetch listings, build the prompt, call the model, normalize
    the output, write the cache
  - Complete the ledger record with whatever was returned

Concurrent identical misses are not de-duplicated; each one generates and the
last cache upsert wins.
"""

import logging
import time
import uuid
from typing import Any, Protocol

from rebooked.config import settings
from rebooked.orchestrator.errors import FeatureDisabled, Unauthorized
from rebooked.orchestrator.schemas import PackOutcome, PackResult, Preferences, pack_result_from_payload
from rebooked.services.pack_parser import normalize_packs
from rebooked.services.prompt_builder import build_prompt

logger = logging.getLogger(__name__)


# ═══════════════ COLLABORATORS ═══════════════

class IdentityVerifier(Protocol):
    async def verify(self, token: str) -> str | None: ...


class FeatureFlags(Protocol):
    async def is_enabled(self, feature_name: str) -> bool: ...


class Ledger(Protocol):
    async def create(self, user_id: str, request_data: dict[str, Any]) -> uuid.UUID: ...
    async def complete(self, request_id: uuid.UUID, response_data: Any) -> None: ...
    async def fail(self, request_id: uuid.UUID, reason: str) -> None: ...


class PackCache(Protocol):
    async def get(self, key: str) -> Any | None: ...
    async def set(self, key: str, data: Any) -> Any: ...


class Listings(Protocol):
    async def fetch(self, prefs: Preferences) -> tuple[list[dict], list[dict]]: ...


class Completion(Protocol):
    async def complete(self, system: str, user_message: str) -> str: ...


# ═══════════════ ORCHESTRATOR ═══════════════

class BursaryPackOrchestrator:
    """Auth → flag → ledger → cache → (fetch → prompt → complete → normalize → cache) → ledger."""

    def __init__(
        self,
        identity: IdentityVerifier,
        flags: FeatureFlags,
        ledger: Ledger,
        cache: PackCache,
        listings: Listings,
        completion: Completion,
        feature_name: str | None = None,
        canonical_cache_keys: bool | None = None,
        record_failures: bool | None = None,
    ):
        self.identity = identity
        self.flags = flags
        self.ledger = ledger
        self.cache = cache
        self.listings = listings
        self.completion = completion
        self.feature_name = feature_name or settings.pack_feature_name
        self.canonical_cache_keys = (
            settings.canonical_cache_keys if canonical_cache_keys is None else canonical_cache_keys
        )
        self.record_failures = (
            settings.ledger_record_failures if record_failures is None else record_failures
        )

    async def generate(self, token: str | None, raw_preferences: dict[str, Any] | None) -> PackOutcome:
        if not token:
            raise Unauthorized("Missing authorization header")
        user_id = await self.identity.verify(token)
        if not user_id:
            raise Unauthorized("Unauthorized")

        if not await self.flags.is_enabled(self.feature_name):
            logger.info("Pack generation rejected — feature disabled | user=%s", user_id[:8])
            raise FeatureDisabled("AI feature is currently disabled")

        request_id = await self._open_record(user_id, dict(raw_preferences or {}))
        prefs = Preferences.from_raw(raw_preferences)

        start = time.monotonic()
        try:
            outcome = await self._resolve(prefs)
        except Exception as e:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.error("Pack generation failed | request=%s | %dms | %s", request_id, elapsed_ms, str(e)[:300])
            if self.record_failures and request_id is not None:
                await self._safe_ledger(self.ledger.fail(request_id, str(e)[:500]), request_id)
            raise

        if request_id is not None:
            await self._safe_ledger(self.ledger.complete(request_id, outcome.result.payload()), request_id)

        logger.info(
            "Pack generation done | request=%s | from_cache=%s | packs=%d | %dms",
            request_id, outcome.from_cache, outcome.result.count(),
            int((time.monotonic() - start) * 1000),
        )
        return outcome

    async def _resolve(self, prefs: Preferences) -> PackOutcome:
        cache_key = prefs.cache_key(canonical=self.canonical_cache_keys)

        cached = await self._cache_lookup(cache_key)
        if cached is not None:
            return PackOutcome(result=pack_result_from_payload(cached), from_cache=True)

        result = await self._generate_fresh(prefs)

        try:
            await self.cache.set(cache_key, result.payload())
        except Exception as e:
            logger.warning("Cache write failed — continuing | %s", str(e)[:200])

        return PackOutcome(result=result, from_cache=False)

    async def _generate_fresh(self, prefs: Preferences) -> PackResult:
        accommodations, bursaries = await self.listings.fetch(prefs)
        system, user_message = build_prompt(prefs, accommodations, bursaries)
        text = await self.completion.complete(system, user_message)
        return normalize_packs(text)

    async def _cache_lookup(self, key: str) -> Any | None:
        # A broken cache read is a miss, not a failure
        try:
            return await self.cache.get(key)
        except Exception as e:
            logger.warning("Cache read failed — treating as miss | %s", str(e)[:200])
            return None

    async def _open_record(self, user_id: str, request_data: dict[str, Any]) -> uuid.UUID | None:
        try:
            return await self.ledger.create(user_id, request_data)
        except Exception as e:
            logger.error("Error creating request record — continuing untracked | %s", str(e)[:200])
            return None

    async def _safe_ledger(self, op, request_id: uuid.UUID) -> None:
        try:
            await op
        except Exception as e:
            logger.warning("Ledger update failed | request=%s | %s", request_id, str(e)[:200])
