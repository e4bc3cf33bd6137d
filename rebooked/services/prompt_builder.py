"""Prompt builder for the bursary pack generator.

Pure and deterministic: the same preferences and listings always produce the
same (system, user) pair.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

from rebooked.config import settings
from rebooked.orchestrator.schemas import Preferences

logger = logging.getLogger(__name__)

PACK_KEYS = (
    "packName",
    "accommodation",
    "bursary",
    "financialBreakdown",
    "applicationStrategy",
    "whyMatch",
)

PACK_INSTRUCTIONS = (
    "Create 3-5 personalized accommodation + bursary packs. For each pack, provide:\n"
    "1. Pack name (creative and descriptive)\n"
    "2. Recommended accommodation with key details\n"
    "3. Matching bursary with coverage breakdown\n"
    "4. Total financial picture (what's covered, what student pays)\n"
    "5. Application strategy and timeline\n"
    "6. Why this is a good match\n"
    "\n"
    f"Format as JSON array of pack objects with the keys: {', '.join(PACK_KEYS)}."
)


def load_prompt(name: str) -> str:
    """Load a prompt template from rebooked/prompts/{name}.txt."""
    prompt_path = Path(__file__).parent.parent / "prompts" / f"{name}.txt"
    return prompt_path.read_text(encoding="utf-8")


@lru_cache(maxsize=1)
def system_prompt() -> str:
    try:
        return load_prompt("bursary_pack_system").rstrip("\n")
    except FileNotFoundError:
        logger.warning("prompts/bursary_pack_system.txt missing — using built-in prompt")
        return _default_system_prompt()


def _default_system_prompt() -> str:
    return (
        "You are an expert South African student accommodation and bursary advisor. \n"
        "Your task is to analyze accommodations and bursaries and create personalized \"packs\" "
        "that match students with:\n"
        "1. Suitable accommodations that fit their needs and budget\n"
        "2. Bursaries that can fund those accommodations\n\n"
        "For each pack, explain:\n"
        "- Which bursary covers which costs (tuition, accommodation, books, living stipend)\n"
        "- Exact amounts and coverage details\n"
        "- How to apply and important dates\n"
        "- Why this combination is a good match\n\n"
        "Be specific, practical, and encouraging. Focus on actionable information."
    )


def profile_lines(prefs: Preferences) -> list[str]:
    """One line per profile field, blank when the field is absent."""
    return [
        f"University: {prefs.university}" if prefs.university else "",
        f"Preferred City: {prefs.city}" if prefs.city else "",
        f"Budget: Up to R{prefs.budget_display()}/month" if prefs.maxBudget else "",
        f"Field of Study: {prefs.fieldOfStudy}" if prefs.fieldOfStudy else "",
        f"Academic Performance: {prefs.academicPerformance}" if prefs.academicPerformance else "",
        "NSFAS Eligible: Yes" if prefs.nsfasEligible else "",
        f"Diversity: {prefs.diversity}" if prefs.diversity else "",
    ]


def _cap(rows: list[dict[str, Any]], limit: int) -> list[dict[str, Any]]:
    return rows[:limit] if limit > 0 else rows


def build_prompt(
    prefs: Preferences,
    accommodations: list[dict[str, Any]],
    bursaries: list[dict[str, Any]],
    max_accommodations: int | None = None,
    max_bursaries: int | None = None,
) -> tuple[str, str]:
    """Return (system_text, user_text) for the completion call."""
    if max_accommodations is None:
        max_accommodations = settings.prompt_max_accommodations
    if max_bursaries is None:
        max_bursaries = settings.prompt_max_bursaries

    accommodations = _cap(accommodations, max_accommodations)
    bursaries = _cap(bursaries, max_bursaries)

    user_text = "\n".join([
        "Student Profile:",
        *profile_lines(prefs),
        "",
        f"Available Accommodations: {json.dumps(accommodations, indent=2, ensure_ascii=False)}",
        "",
        f"Available Bursaries: {json.dumps(bursaries, indent=2, ensure_ascii=False)}",
        "",
        PACK_INSTRUCTIONS,
    ])
    return system_prompt(), user_text
