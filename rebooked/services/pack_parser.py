"""Response normalizer — turns completion text into a PackResult.

Lenient: text that is not JSON becomes a RawFallback instead of
an error, and parsed JSON is passed through without per-field validation.
"""

import json
import logging
import re

from rebooked.orchestrator.schemas import PackResult, RawFallback, ValidPacks

logger = logging.getLogger(__name__)

_JSON_FENCE = re.compile(r"```json\s*\n([\s\S]*?)\n\s*```")


def extract_fenced_json(text: str) -> str:
    """Content of the first ```json fence, or the whole text if there is none."""
    match = _JSON_FENCE.search(text)
    return match.group(1) if match else text


def normalize_packs(text: str) -> PackResult:
    try:
        parsed = json.loads(extract_fenced_json(text))
    except (json.JSONDecodeError, ValueError) as e:
        logger.warning("Pack JSON parse failed — returning raw text | %s", str(e)[:100])
        return RawFallback(raw_response=text)

    if not isinstance(parsed, list):
        logger.info("Pack JSON is a %s, not a list — passing through", type(parsed).__name__)
    return ValidPacks(data=parsed)
