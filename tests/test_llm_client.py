"""Tests for the completion client — request shape and error mapping."""

import json

import httpx
import pytest

from rebooked.orchestrator.errors import (
    CompletionTimeout,
    QuotaExhausted,
    RateLimited,
    UpstreamError,
)
from rebooked.services.llm_client import CompletionClient

GATEWAY = "https://gateway.test/v1/chat/completions"


def make_client(handler, **kwargs) -> CompletionClient:
    kwargs.setdefault("api_key", "test-key")
    return CompletionClient(
        url=GATEWAY,
        model="google/gemini-2.5-flash",
        timeout_seconds=5,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def ok_response(content: str) -> httpx.Response:
    return httpx.Response(200, json={
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 120, "completion_tokens": 40},
    })


class TestCompletionRequest:
    @pytest.mark.asyncio
    async def test_returns_first_choice_content(self):
        client = make_client(lambda req: ok_response("[]"))
        assert await client.complete("sys", "user") == "[]"

    @pytest.mark.asyncio
    async def test_request_shape(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return ok_response("ok")

        await make_client(handler).complete("You are an advisor", "Student Profile:")
        assert seen["url"] == GATEWAY
        assert seen["auth"] == "Bearer test-key"
        assert seen["body"] == {
            "model": "google/gemini-2.5-flash",
            "messages": [
                {"role": "system", "content": "You are an advisor"},
                {"role": "user", "content": "Student Profile:"},
            ],
        }

    @pytest.mark.asyncio
    async def test_single_attempt_only(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(429)

        with pytest.raises(RateLimited):
            await make_client(handler).complete("s", "u")
        assert len(calls) == 1


class TestCompletionErrors:
    @pytest.mark.asyncio
    async def test_429_rate_limited(self):
        with pytest.raises(RateLimited) as exc:
            await make_client(lambda r: httpx.Response(429)).complete("s", "u")
        assert exc.value.status_code == 429
        assert "try again later" in exc.value.message

    @pytest.mark.asyncio
    async def test_402_quota_exhausted(self):
        with pytest.raises(QuotaExhausted) as exc:
            await make_client(lambda r: httpx.Response(402)).complete("s", "u")
        assert exc.value.status_code == 402
        assert "contact support" in exc.value.message

    @pytest.mark.asyncio
    async def test_other_status_is_upstream_error(self):
        with pytest.raises(UpstreamError) as exc:
            await make_client(lambda r: httpx.Response(503, text="down")).complete("s", "u")
        assert exc.value.message == "AI API error: 503"
        assert exc.value.status_code == 500

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(CompletionTimeout):
            await make_client(handler).complete("s", "u")

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(UpstreamError) as exc:
            await make_client(handler).complete("s", "u")
        assert not isinstance(exc.value, CompletionTimeout)

    @pytest.mark.asyncio
    async def test_malformed_envelope(self):
        with pytest.raises(UpstreamError):
            await make_client(lambda r: httpx.Response(200, json={"choices": []})).complete("s", "u")

    @pytest.mark.asyncio
    async def test_missing_api_key_fails_before_network(self):
        calls = []

        def handler(request):
            calls.append(request)
            return ok_response("x")

        with pytest.raises(UpstreamError):
            await make_client(handler, api_key="").complete("s", "u")
        assert calls == []
