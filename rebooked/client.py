"""Client for the pack generator endpoint, plus a plain-text pack renderer.

Packs come straight from the language model, so every field is rendered
with "N/A" style fallbacks.
"""

import logging
from typing import Any

import httpx

from rebooked.orchestrator.schemas import GeneratePackResponse, Pack

logger = logging.getLogger(__name__)

GENERATE_PATH = "/api/generate-bursary-pack"


class PackClientError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class BursaryPackClient:
    """Async client used by scripts and other services to request packs."""

    def __init__(
        self,
        base_url: str,
        access_token: str | None,
        timeout: int = 90,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.timeout = timeout
        self._transport = transport

    async def generate(self, preferences: dict[str, Any]) -> GeneratePackResponse:
        if not self.access_token:
            raise PackClientError("Please log in to use the AI pack generator", 401)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    f"{self.base_url}{GENERATE_PATH}",
                    json={"preferences": preferences},
                    headers={"Authorization": f"Bearer {self.access_token}"},
                )
        except httpx.HTTPError as e:
            raise PackClientError(f"Failed to generate packs. Please try again. ({str(e)[:100]})") from e

        try:
            data = resp.json()
        except ValueError:
            data = {}

        if not resp.is_success:
            message = data.get("error") if isinstance(data, dict) else None
            raise PackClientError(message or f"Request failed with status {resp.status_code}", resp.status_code)

        return GeneratePackResponse.model_validate(data)


def packs_from_payload(payload: Any) -> list[Pack]:
    """Only a JSON list counts as packs; the raw-text fallback renders as none."""
    if not isinstance(payload, list):
        return []
    return [Pack.model_validate(p) for p in payload if isinstance(p, dict)]


def _field(obj: Any, key: str, default: str) -> str:
    if isinstance(obj, dict) and obj.get(key):
        return str(obj[key])
    return default


def render_pack(pack: Pack, index: int) -> str:
    lines = [
        str(pack.packName) if pack.packName else f"Pack {index + 1}",
        "",
        "Accommodation:",
        f"  {_field(pack.accommodation, 'property_name', 'N/A')}",
        f"  {_field(pack.accommodation, 'address', 'Address not available')}",
        "Bursary:",
        f"  {_field(pack.bursary, 'name', 'N/A')}",
        f"  {_field(pack.bursary, 'provider', 'Provider not available')}",
    ]
    for title, value in (
        ("Financial Breakdown", pack.financialBreakdown),
        ("Why This Match?", pack.whyMatch),
        ("Application Strategy", pack.applicationStrategy),
    ):
        if value:
            lines += [f"{title}:", f"  {value}"]
    return "\n".join(lines)


def render_response(response: GeneratePackResponse) -> str:
    packs = packs_from_payload(response.pack)
    if not packs:
        return "No packs could be generated for these preferences."
    header = "Generated packs from cache" if response.fromCache else "AI has generated personalized packs for you"
    return "\n\n".join([header, *(render_pack(p, i) for i, p in enumerate(packs))])
