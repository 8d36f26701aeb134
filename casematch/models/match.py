from typing import Optional

from pydantic import BaseModel, Field


class MatchResult(BaseModel):
    gear_id: str
    case_id: str
    compatibility_score: int = Field(ge=0, le=100)  # 0 - 100 overall
    dimension_score: int = Field(ge=0, le=100)
    protection_score: int = Field(ge=0, le=100)
    brand_score: int = Field(ge=0, le=100)
    feasible: bool = True
    profile: str = "default"
    match_reason: str = ""  # e.g. "Great fit with good protection"
    notes: list[str] = []  # Gate failures and applied bonuses


class ValidationIssue(BaseModel):
    """A candidate excluded from a batch because its record is malformed."""

    index: int  # position in the submitted batch
    record_id: Optional[str] = None
    field: str  # dotted path, e.g. "interiorDimensions.length"
    message: str


class RankingResult(BaseModel):
    gear_id: str
    profile: str = "default"
    matches: list[MatchResult]
    errors: list[ValidationIssue] = []
    total_candidates: int
