#!/usr/bin/env python
"""Generate synthetic gear-case matches for seeding a development catalog.

Reads gear and case records from JSON files, scores every pair with
jitter (jitter_score) and writes the non-zero matches as JSON. The
jitter makes seed data look organic; production ranking never uses it.

Usage:
    uv run python scripts/generate_matches.py gear.json cases.json -o matches.json
    uv run python scripts/generate_matches.py gear.json cases.json --seed 7 --save
"""

import argparse
import json
import random
import sys
from pathlib import Path
from typing import Any

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from casematch.core.logging import setup_logging
from casematch.models.match import MatchResult
from casematch.services.compatibility_engine import jitter_score, match_reason, score_match
from casematch.services.validation import RecordValidationError, coerce_case, coerce_gear

logger = setup_logging()


def generate_matches(
    gear_records: list[dict[str, Any]],
    case_records: list[dict[str, Any]],
    rng: random.Random,
) -> list[dict[str, Any]]:
    """Score every gear/case pair and keep the non-zero ones, best first per gear."""
    cases = []
    for index, record in enumerate(case_records):
        try:
            cases.append(coerce_case(record))
        except RecordValidationError as e:
            logger.warning(f"Skipping case #{index}: {e}")

    matches: list[dict[str, Any]] = []
    for index, record in enumerate(gear_records):
        try:
            gear = coerce_gear(record)
        except RecordValidationError as e:
            logger.warning(f"Skipping gear #{index}: {e}")
            continue

        scored: list[dict[str, Any]] = []
        for case in cases:
            exact = score_match(gear, case)
            score = jitter_score(exact, rng=rng)
            if score == 0:
                continue
            scored.append(
                {
                    "gear_id": gear.id,
                    "case_id": case.id,
                    "compatibility_score": score,
                    "dimension_score": exact.dimension_score,
                    "protection_score": exact.protection_score,
                    "brand_score": exact.brand_score,
                    "match_reason": match_reason(score),
                }
            )
        scored.sort(key=lambda m: m["compatibility_score"], reverse=True)
        matches.extend(scored)
    return matches


def _load(path: Path) -> list[dict[str, Any]]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON array of records")
    return data


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("gear", type=Path, help="JSON array of gear records")
    parser.add_argument("cases", type=Path, help="JSON array of case records")
    parser.add_argument("-o", "--output", type=Path, help="Write matches to this file")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the jitter")
    parser.add_argument(
        "--save", action="store_true", help="Upsert matches into the catalog database"
    )
    args = parser.parse_args(argv)

    for path in (args.gear, args.cases):
        if not path.exists():
            print(f"Error: file not found: {path}")
            return 1

    matches = generate_matches(_load(args.gear), _load(args.cases), random.Random(args.seed))
    print(f"Generated {len(matches)} gear-case matches")

    if args.output:
        args.output.write_text(json.dumps(matches, indent=2), encoding="utf-8")
        print(f"Wrote {args.output}")

    if args.save:
        from casematch.services.catalog_db import save_matches

        results = [MatchResult(**m) for m in matches]
        saved = save_matches(results)
        print(f"Saved {saved} matches to the catalog")

    return 0


if __name__ == "__main__":
    sys.exit(main())
