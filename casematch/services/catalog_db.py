"""Database service for reading the gear/case catalog and storing matches.

Rows are returned as raw dicts: validation happens per record in the
compatibility engine, so one bad catalog row cannot sink a whole ranking.
All public functions are synchronous.
"""

import time
from datetime import datetime, timezone
from typing import Any, Optional

from casematch.core.logging import log_db_query
from casematch.models.match import MatchResult
from casematch.services.db import get_supabase_client

GEAR_TABLE = "audio_gear"
CASE_TABLE = "cases"
MATCH_TABLE = "gear_case_matches"


def _rows(result: Any) -> list[dict[str, Any]]:
    if result.data and isinstance(result.data, list):
        return [row for row in result.data if isinstance(row, dict)]
    return []


def find_gear(gear_id: str) -> Optional[dict[str, Any]]:
    """Fetch one gear row by id, or None if it does not exist."""
    start = time.time()
    result = (
        get_supabase_client()
        .table(GEAR_TABLE)
        .select("*")
        .eq("id", gear_id)
        .limit(1)
        .execute()
    )
    log_db_query("select", GEAR_TABLE, (time.time() - start) * 1000)
    rows = _rows(result)
    return rows[0] if rows else None


def list_cases(
    case_type: Optional[str] = None,
    protection_level: Optional[str] = None,
) -> list[dict[str, Any]]:
    """Return candidate case rows with optional filters."""
    start = time.time()
    query = get_supabase_client().table(CASE_TABLE).select("*")

    if case_type:
        query = query.ilike("type", f"%{case_type}%")
    if protection_level:
        query = query.eq("protection_level", protection_level.lower())

    # Stable order keeps tie-breaking on input order reproducible
    result = query.order("id").execute()
    log_db_query("select", CASE_TABLE, (time.time() - start) * 1000)
    return _rows(result)


def save_matches(matches: list[MatchResult]) -> int:
    """Upsert computed matches keyed on (gear_id, case_id).

    Feedback counters on existing rows are left untouched.
    """
    if not matches:
        return 0

    now = datetime.now(timezone.utc).isoformat()
    payload = [
        {
            "gear_id": m.gear_id,
            "case_id": m.case_id,
            "compatibility_score": m.compatibility_score,
            "dimension_score": m.dimension_score,
            "feature_score": m.protection_score,
            "brand_score": m.brand_score,
            "match_reason": m.match_reason,
            "updated_at": now,
        }
        for m in matches
    ]

    start = time.time()
    result = (
        get_supabase_client()
        .table(MATCH_TABLE)
        .upsert(payload, on_conflict="gear_id,case_id")
        .execute()
    )
    log_db_query("upsert", MATCH_TABLE, (time.time() - start) * 1000)
    return len(_rows(result)) or len(payload)
