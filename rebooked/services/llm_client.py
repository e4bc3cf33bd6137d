"""Async chat-completions client for the AI gateway, with logging and error mapping.

No retries: a 429 is surfaced as RateLimited and a 402 as QuotaExhausted so
the caller (ultimately the student) decides what to do.
"""

import asyncio
import logging
import time

import httpx

from rebooked.config import settings
from rebooked.orchestrator.errors import (
    CompletionTimeout,
    QuotaExhausted,
    RateLimited,
    UpstreamError,
)

logger = logging.getLogger(__name__)


class CompletionClient:
    """Calls an OpenAI-style /chat/completions endpoint."""

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        model: str | None = None,
        timeout_seconds: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url or settings.ai_gateway_url
        self.api_key = api_key if api_key is not None else settings.ai_gateway_api_key
        self.model = model or settings.ai_model
        self.timeout_seconds = timeout_seconds or settings.ai_timeout_seconds
        self._transport = transport

    async def complete(self, system: str, user_message: str) -> str:
        """Return the text content of the first choice."""
        if not self.api_key:
            raise UpstreamError("AI gateway API key is not configured")

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user_message},
            ],
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        start = time.monotonic()
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds, connect=10.0),
                transport=self._transport,
            ) as client:
                resp = await asyncio.wait_for(
                    client.post(self.url, json=payload, headers=headers),
                    timeout=self.timeout_seconds,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.warning(
                "LLM timeout | model=%s | %dms (hard limit %ds)",
                self.model, elapsed_ms, self.timeout_seconds,
            )
            raise CompletionTimeout(f"AI request timed out after {elapsed_ms}ms")
        except httpx.HTTPError as e:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.warning("LLM connection error | model=%s | %dms | %s", self.model, elapsed_ms, str(e)[:200])
            raise UpstreamError(f"AI API connection error: {str(e)[:200]}") from e

        elapsed_ms = int((time.monotonic() - start) * 1000)

        if resp.status_code == 429:
            logger.warning("LLM rate limited | model=%s | %dms", self.model, elapsed_ms)
            raise RateLimited("Rate limit exceeded. Please try again later.")
        if resp.status_code == 402:
            logger.error("LLM quota exhausted | model=%s | %dms", self.model, elapsed_ms)
            raise QuotaExhausted("AI usage limit reached. Please contact support.")
        if not resp.is_success:
            logger.error(
                "LLM error | model=%s | status=%d | %dms | %s",
                self.model, resp.status_code, elapsed_ms, resp.text[:200],
            )
            raise UpstreamError(f"AI API error: {resp.status_code}")

        try:
            data = resp.json()
            text = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error("LLM malformed envelope | model=%s | %s", self.model, resp.text[:200])
            raise UpstreamError("AI API returned an unexpected response") from e

        usage = data.get("usage") or {}
        logger.info(
            "LLM OK | model=%s | tokens_in=%s tokens_out=%s | %dms",
            self.model, usage.get("prompt_tokens", "?"), usage.get("completion_tokens", "?"), elapsed_ms,
        )
        return text or ""
