"""ReBooked Living backend — FastAPI application entry point.

Provides the /api/generate-bursary-pack endpoint used by the website's pack
generator, plus the admin AI settings endpoints.
"""

import logging
import time
from collections import defaultdict
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from rebooked.config import settings
from rebooked.orchestrator.errors import Forbidden, PackPipelineError, Unauthorized
from rebooked.orchestrator.pipeline import BursaryPackOrchestrator
from rebooked.orchestrator.schemas import (
    AISettingsState,
    AISettingsUpdate,
    GeneratePackRequest,
    PackRequestRecord,
    PackRequestsOverview,
)
from rebooked.services.auth import SupabaseIdentityVerifier, bearer_token
from rebooked.services.feature_flags import SqlFeatureFlags
from rebooked.services.request_ledger import RequestLedger, usage_stats

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger("rebooked")

RECENT_REQUESTS_LIMIT = 50


# ═══════════════ RATE LIMITER ═══════════════

class RateLimiter:
    """Fixed-window rate limiter by IP."""

    def __init__(self, max_requests: int, window_seconds: int = 60):
        self.max_requests = max_requests
        self.window = window_seconds
        self._hits: dict[str, list[float]] = defaultdict(list)

    def is_limited(self, ip: str) -> bool:
        now = time.monotonic()
        window_start = now - self.window
        hits = self._hits[ip]
        # Remove expired entries
        self._hits[ip] = [t for t in hits if t > window_start]
        if len(self._hits[ip]) >= self.max_requests:
            return True
        self._hits[ip].append(now)
        return False


rate_limiter = RateLimiter(settings.rate_limit_per_minute)


# ═══════════════ DEPENDENCIES ═══════════════

def get_identity() -> SupabaseIdentityVerifier:
    from rebooked.database import async_session_factory
    return SupabaseIdentityVerifier(async_session_factory)


def get_feature_flags() -> SqlFeatureFlags:
    from rebooked.database import async_session_factory
    return SqlFeatureFlags(async_session_factory)


def get_ledger() -> RequestLedger:
    from rebooked.database import async_session_factory
    return RequestLedger(async_session_factory)


def get_orchestrator() -> BursaryPackOrchestrator:
    from rebooked.database import async_session_factory
    from rebooked.services.cache import PackCacheService
    from rebooked.services.listings import ListingFetcher
    from rebooked.services.llm_client import CompletionClient

    return BursaryPackOrchestrator(
        identity=SupabaseIdentityVerifier(async_session_factory),
        flags=SqlFeatureFlags(async_session_factory),
        ledger=RequestLedger(async_session_factory),
        cache=PackCacheService(async_session_factory),
        listings=ListingFetcher(async_session_factory),
        completion=CompletionClient(),
    )


async def require_admin(
    authorization: str | None = Header(default=None),
    identity: SupabaseIdentityVerifier = Depends(get_identity),
) -> str:
    token = bearer_token(authorization)
    if not token:
        raise Unauthorized("Missing authorization header")
    user_id = await identity.verify(token)
    if not user_id:
        raise Unauthorized("Unauthorized")
    if not await identity.is_admin(user_id):
        raise Forbidden("Admin access required")
    return user_id


# ═══════════════ LIFESPAN ═══════════════

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "ReBooked backend starting | has_ai_key=%s | has_auth=%s",
        settings.has_ai_key, settings.has_auth,
    )

    # Initialize database (graceful degradation if unavailable)
    from rebooked.database import close_db, init_db
    db_ok = await init_db()
    logger.info("Database: %s", "connected" if db_ok else "unavailable (continuing without)")

    yield

    await close_db()
    logger.info("ReBooked backend shutting down")


# ═══════════════ APP ═══════════════

app = FastAPI(
    title="ReBooked Living API",
    description="Student accommodation + bursary pack recommendations",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["POST", "PUT", "OPTIONS", "GET"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


@app.exception_handler(PackPipelineError)
async def pipeline_error_handler(request: Request, exc: PackPipelineError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


# ═══════════════ ENDPOINTS ═══════════════

@app.get("/health")
async def health():
    return {
        "status": "ok",
        "has_ai_key": settings.has_ai_key,
        "has_auth": settings.has_auth,
    }


@app.post("/api/generate-bursary-pack")
async def generate_bursary_pack(
    request: Request,
    authorization: str | None = Header(default=None),
    orchestrator: BursaryPackOrchestrator = Depends(get_orchestrator),
):
    """Generate (or serve cached) accommodation + bursary packs."""
    client_ip = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
    if not client_ip:
        client_ip = request.client.host if request.client else "unknown"

    if rate_limiter.is_limited(client_ip):
        return JSONResponse(
            status_code=429,
            content={"error": "Too many requests. Please wait a minute and try again."},
        )

    try:
        body = await request.json()
        pack_req = GeneratePackRequest.model_validate(body)
    except (ValueError, ValidationError):
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    start = time.monotonic()
    try:
        outcome = await orchestrator.generate(bearer_token(authorization), pack_req.preferences)
    except PackPipelineError:
        raise
    except Exception as e:
        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.error("Pack generation crashed | %dms | %s", elapsed_ms, str(e)[:300])
        return JSONResponse(status_code=500, content={"error": str(e) or "An unknown error occurred"})

    elapsed_ms = int((time.monotonic() - start) * 1000)
    logger.info("Pack request served | from_cache=%s | %dms | ip=%s", outcome.from_cache, elapsed_ms, client_ip)
    return outcome.to_response().model_dump()


@app.get("/api/admin/ai-settings", response_model=AISettingsState)
async def get_ai_settings(
    admin_id: str = Depends(require_admin),
    flags: SqlFeatureFlags = Depends(get_feature_flags),
):
    enabled = await flags.is_enabled(settings.pack_feature_name)
    return AISettingsState(feature_name=settings.pack_feature_name, is_enabled=enabled)


@app.put("/api/admin/ai-settings", response_model=AISettingsState)
async def update_ai_settings(
    update: AISettingsUpdate,
    admin_id: str = Depends(require_admin),
    flags: SqlFeatureFlags = Depends(get_feature_flags),
):
    enabled = await flags.set_enabled(settings.pack_feature_name, update.is_enabled, updated_by=admin_id)
    logger.info("AI feature %s by admin=%s", "enabled" if enabled else "disabled", admin_id[:8])
    return AISettingsState(feature_name=settings.pack_feature_name, is_enabled=enabled)


@app.get("/api/admin/ai-requests", response_model=PackRequestsOverview)
async def list_ai_requests(
    admin_id: str = Depends(require_admin),
    ledger: RequestLedger = Depends(get_ledger),
):
    records = await ledger.recent(RECENT_REQUESTS_LIMIT)
    return PackRequestsOverview(
        requests=[PackRequestRecord.model_validate(r) for r in records],
        stats=usage_stats(records),
    )


def run():
    import uvicorn
    uvicorn.run("rebooked.main:app", host=settings.host, port=settings.port)
