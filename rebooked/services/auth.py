"""Identity verification against Supabase Auth.

Docs: https://supabase.com/docs/reference/self-hosting-auth/returns-the-user-for-the-jwt
"""

import logging
import time

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from rebooked.config import settings
from rebooked.models.user_role import UserRole

logger = logging.getLogger(__name__)


def bearer_token(authorization: str | None) -> str | None:
    """Pull the token out of an 'Authorization: Bearer ...' header."""
    if not authorization:
        return None
    token = authorization.replace("Bearer ", "", 1).strip()
    return token or None


class SupabaseIdentityVerifier:
    """Resolves bearer tokens to user ids and checks the admin role."""

    def __init__(
        self,
        session_factory: async_sessionmaker | None = None,
        base_url: str | None = None,
        service_key: str | None = None,
        timeout: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._session_factory = session_factory
        self.base_url = (base_url if base_url is not None else settings.supabase_url).rstrip("/")
        self.service_key = service_key if service_key is not None else settings.supabase_service_role_key
        self.timeout = timeout
        self._transport = transport

    async def verify(self, token: str) -> str | None:
        """Return the user id for a valid access token, else None."""
        if not token or not self.base_url:
            return None

        start = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(
                    f"{self.base_url}/auth/v1/user",
                    headers={"apikey": self.service_key, "Authorization": f"Bearer {token}"},
                )
            elapsed_ms = int((time.monotonic() - start) * 1000)

            if resp.status_code != 200:
                logger.info("Auth rejected | status=%d | %dms", resp.status_code, elapsed_ms)
                return None

            user_id = resp.json().get("id")
            if not user_id:
                return None
            logger.debug("Auth OK | user=%s | %dms", str(user_id)[:8], elapsed_ms)
            return str(user_id)

        except httpx.HTTPError as e:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.warning("Auth service error | %dms | %s", elapsed_ms, str(e)[:200])
            return None

    async def is_admin(self, user_id: str) -> bool:
        if self._session_factory is None:
            return False
        async with self._session_factory() as session:
            result = await session.execute(
                select(UserRole.id)
                .where(UserRole.user_id == user_id)
                .where(UserRole.role == "admin")
                .limit(1)
            )
            return result.first() is not None
