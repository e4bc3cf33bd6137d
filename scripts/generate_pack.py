#!/usr/bin/env python3
"""Request bursary packs from a running backend and print them.

Usage:
  REBOOKED_TOKEN=<access token> python scripts/generate_pack.py \
      --city Pretoria --max-budget 4000 --nsfas
"""

import argparse
import asyncio
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rebooked.client import BursaryPackClient, PackClientError, render_response  # noqa: E402


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate AI accommodation + bursary packs")
    parser.add_argument("--base-url", default=os.environ.get("REBOOKED_API_URL", "http://localhost:8000"))
    parser.add_argument("--token", default=os.environ.get("REBOOKED_TOKEN"))
    parser.add_argument("--university", default="")
    parser.add_argument("--city", default="")
    parser.add_argument("--max-budget", default="")
    parser.add_argument("--field-of-study", default="")
    parser.add_argument(
        "--academic-performance", default="",
        choices=["", "excellent", "good", "average", "below-average"],
    )
    parser.add_argument("--nsfas", action="store_true")
    parser.add_argument("--diversity", default="")
    return parser.parse_args(argv)


def preferences_from_args(args: argparse.Namespace) -> dict:
    # Same field order as the website form, so CLI and web share cache entries
    return {
        "university": args.university,
        "city": args.city,
        "maxBudget": args.max_budget,
        "fieldOfStudy": args.field_of_study,
        "academicPerformance": args.academic_performance,
        "nsfasEligible": args.nsfas,
        "diversity": args.diversity,
    }


async def main(argv: list[str]) -> int:
    args = parse_args(argv)
    client = BursaryPackClient(args.base_url, args.token)
    try:
        response = await client.generate(preferences_from_args(args))
    except PackClientError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    print(render_response(response))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:])))
