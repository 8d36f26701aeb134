"""FastAPI route definitions for the gear/case compatibility API."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from casematch.api.deps import get_app_settings, get_ranking_cache
from casematch.config import Settings
from casematch.core.logging import log_error
from casematch.models.match import MatchResult, RankingResult, ValidationIssue
from casematch.services.catalog_db import find_gear, list_cases, save_matches
from casematch.services.compatibility_engine import (
    WEIGHT_PROFILES,
    rank_candidates,
    resolve_weights,
    score_match,
)
from casematch.services.db import CatalogNotConfigured
from casematch.services.ranking_cache import RankingCache
from casematch.services.validation import RecordValidationError

router = APIRouter()


# ---------------------------------------------------------------------------
# Request / Response Models
# ---------------------------------------------------------------------------


class MatchRequest(BaseModel):
    # Raw records: validation errors are reported per field by the engine
    gear: dict[str, Any]
    case: dict[str, Any]
    profile: Optional[str] = None


class RankRequest(BaseModel):
    gear: dict[str, Any]
    cases: list[Any] = Field(default_factory=list)
    include_infeasible: bool = False
    profile: Optional[str] = None
    limit: Optional[int] = Field(default=None, gt=0)
    min_score: int = Field(default=0, ge=0, le=100)


class RankingResponse(BaseModel):
    gear_id: str
    profile: str
    matches: list[MatchResult]
    errors: list[ValidationIssue]
    total_candidates: int
    returned: int


class SaveMatchesResponse(BaseModel):
    gear_id: str
    saved: int
    excluded: int


def _to_response(ranking: RankingResult, limit: Optional[int]) -> RankingResponse:
    matches = ranking.matches[:limit] if limit else ranking.matches
    return RankingResponse(
        gear_id=ranking.gear_id,
        profile=ranking.profile,
        matches=matches,
        errors=ranking.errors,
        total_candidates=ranking.total_candidates,
        returned=len(matches),
    )


def _profile_or_400(profile: Optional[str], settings: Settings) -> str:
    try:
        name, _ = resolve_weights(profile or settings.score_profile)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return name


# ---------------------------------------------------------------------------
# Ad-hoc scoring (records supplied by the caller)
# ---------------------------------------------------------------------------


@router.post("/match", response_model=MatchResult)
async def score_pair(req: MatchRequest, settings: Settings = Depends(get_app_settings)):
    """Score a single gear/case pair."""
    profile = _profile_or_400(req.profile, settings)
    try:
        return score_match(req.gear, req.case, weights=profile, margin=settings.fit_margin_in)
    except RecordValidationError as e:
        raise HTTPException(status_code=422, detail=e.to_detail())


@router.post("/rank", response_model=RankingResponse)
async def rank_cases(req: RankRequest, settings: Settings = Depends(get_app_settings)):
    """Rank candidate cases for one gear item.

    Malformed cases are listed in ``errors`` and left out of ``matches``;
    a malformed gear record fails the whole request with 422.
    """
    profile = _profile_or_400(req.profile, settings)
    try:
        ranking = rank_candidates(
            req.gear,
            req.cases,
            include_infeasible=req.include_infeasible,
            weights=profile,
            margin=settings.fit_margin_in,
            min_score=req.min_score,
        )
    except RecordValidationError as e:
        raise HTTPException(status_code=422, detail=e.to_detail())
    return _to_response(ranking, req.limit or settings.max_results)


@router.get("/profiles")
async def get_profiles():
    """List the named weight profiles."""
    return {"profiles": {name: w.model_dump() for name, w in WEIGHT_PROFILES.items()}}


# ---------------------------------------------------------------------------
# Catalog-backed ranking
# ---------------------------------------------------------------------------


def _rank_from_catalog(
    gear_id: str,
    profile: str,
    include_infeasible: bool,
    settings: Settings,
    case_type: Optional[str] = None,
    protection_level: Optional[str] = None,
    min_score: int = 0,
) -> RankingResult:
    try:
        gear = find_gear(gear_id)
        if gear is None:
            raise HTTPException(status_code=404, detail=f"Gear {gear_id} not found")
        cases = list_cases(case_type=case_type, protection_level=protection_level)
    except CatalogNotConfigured as e:
        raise HTTPException(status_code=503, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        log_error("Catalog lookup failed", e, gear_id=gear_id)
        raise HTTPException(status_code=502, detail="Catalog lookup failed")

    try:
        return rank_candidates(
            gear,
            cases,
            include_infeasible=include_infeasible,
            weights=profile,
            margin=settings.fit_margin_in,
            min_score=min_score,
        )
    except RecordValidationError as e:
        raise HTTPException(status_code=422, detail=e.to_detail())


@router.get("/gear/{gear_id}/cases", response_model=RankingResponse)
def get_cases_for_gear(
    gear_id: str,
    include_infeasible: bool = False,
    profile: Optional[str] = None,
    limit: Optional[int] = Query(default=None, gt=0),
    min_score: int = Query(default=0, ge=0, le=100),
    case_type: Optional[str] = None,
    protection_level: Optional[str] = None,
    settings: Settings = Depends(get_app_settings),
    cache: RankingCache = Depends(get_ranking_cache),
):
    """Rank catalog cases for a catalog gear item."""
    profile_name = _profile_or_400(profile, settings)
    key = cache.make_key(
        gear_id, profile_name, include_infeasible, case_type, protection_level, min_score
    )

    ranking = cache.get(key)
    if ranking is None:
        ranking = _rank_from_catalog(
            gear_id,
            profile_name,
            include_infeasible,
            settings,
            case_type=case_type,
            protection_level=protection_level,
            min_score=min_score,
        )
        cache.set(key, ranking)

    return _to_response(ranking, limit or settings.max_results)


@router.post("/gear/{gear_id}/matches", response_model=SaveMatchesResponse)
def store_matches_for_gear(
    gear_id: str,
    profile: Optional[str] = None,
    settings: Settings = Depends(get_app_settings),
):
    """Rank catalog cases for a gear item and upsert the feasible matches."""
    profile_name = _profile_or_400(profile, settings)
    ranking = _rank_from_catalog(gear_id, profile_name, False, settings)
    try:
        saved = save_matches(ranking.matches)
    except Exception as e:
        log_error("Saving matches failed", e, gear_id=gear_id)
        raise HTTPException(status_code=502, detail="Saving matches failed")
    return SaveMatchesResponse(gear_id=gear_id, saved=saved, excluded=len(ranking.errors))
