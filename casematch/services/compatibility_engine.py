"""Gear-to-case compatibility scoring engine.

Scores how well a protective case suits a piece of audio gear on a 0-100
scale and ranks candidate cases for one gear item.

Feasibility gate (hard rejection): if the gear is larger than the case
cavity on any axis, beyond a small margin, or heavier than the case is
rated to carry, the match scores 0 and no further scoring happens.

Feasible matches combine three sub-scores:
  - dimension score: how snugly the gear fills the cavity
  - protection score: case features, weighted up for fragile gear
  - brand score: same brand, or an explicit compatibility hint

The scoring path is deterministic. ``simulate_score`` adds jitter for
synthetic seed data only and is never used to rank real queries.
"""

import logging
import math
import random
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator

from casematch.core.enums import ProtectionLevel
from casematch.models.case import CaseItem
from casematch.models.gear import GearItem
from casematch.models.match import MatchResult, RankingResult, ValidationIssue
from casematch.services.validation import (
    RecordValidationError,
    coerce_case,
    coerce_gear,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

DEFAULT_FIT_MARGIN_IN: float = 0.5  # slack allowed per axis, inches

# Fill-ratio band that counts as a snug fit
SNUG_RATIO_LOW: float = 0.5
SNUG_RATIO_HIGH: float = 0.9
TIGHT_FIT_FLOOR: int = 50

PROTECTION_BASELINE: int = 50
FEATURE_BONUS: int = 10  # per waterproof / shockproof / dustproof
PROTECTION_LEVEL_ADJUSTMENT: dict[ProtectionLevel, int] = {
    ProtectionLevel.HIGH: 15,
    ProtectionLevel.MEDIUM: 5,
    ProtectionLevel.LOW: -10,
}

# Gear that needs a rigid shell; matched against category and type
FRAGILE_CATEGORIES: tuple[str, ...] = ("microphone", "interface", "mixer")
HARD_CASE_MARKERS: tuple[str, ...] = ("hard", "flight")
SOFT_CASE_MARKERS: tuple[str, ...] = ("soft", "bag", "pouch")
FRAGILE_HARD_BONUS: int = 10
FRAGILE_SOFT_PENALTY: int = -5

BRAND_MATCH_SCORE: int = 100
HINT_MATCH_SCORE: int = 80
NEUTRAL_BRAND_SCORE: int = 50

MATCH_REASONS: list[tuple[int, str]] = [
    (90, "Perfect fit with excellent protection"),
    (80, "Great fit with good protection"),
    (70, "Good fit with adequate protection"),
    (60, "Decent fit with reasonable protection"),
    (50, "Acceptable fit with basic protection"),
    (40, "Marginal fit with minimal protection"),
    (30, "Poor fit but usable in a pinch"),
    (20, "Not recommended but technically fits"),
]
LOWEST_MATCH_REASON = "Minimal compatibility, not recommended"

_AXES = ("length", "width", "height")

# =============================================================================
# Weight Profiles
# =============================================================================


class ScoreWeights(BaseModel):
    """Relative weight of each sub-score in the overall score."""

    dimension: float = Field(ge=0)
    protection: float = Field(ge=0)
    brand: float = Field(ge=0)

    @model_validator(mode="after")
    def check_total(self) -> "ScoreWeights":
        total = self.dimension + self.protection + self.brand
        if not math.isclose(total, 1.0, abs_tol=1e-6):
            raise ValueError(f"Score weights must sum to 1.0 (got {total:.3f})")
        return self


DEFAULT_PROFILE = "default"

WEIGHT_PROFILES: dict[str, ScoreWeights] = {
    DEFAULT_PROFILE: ScoreWeights(dimension=0.6, protection=0.3, brand=0.1),
    "protection_first": ScoreWeights(dimension=0.4, protection=0.5, brand=0.1),
    "fit_only": ScoreWeights(dimension=1.0, protection=0.0, brand=0.0),
}


def resolve_weights(
    weights: str | ScoreWeights | None = None,
) -> tuple[str, ScoreWeights]:
    """Resolve a profile name (or explicit weights) to (name, weights)."""
    if weights is None:
        return DEFAULT_PROFILE, WEIGHT_PROFILES[DEFAULT_PROFILE]
    if isinstance(weights, ScoreWeights):
        return "custom", weights
    name = weights.strip().lower()
    if name not in WEIGHT_PROFILES:
        raise ValueError(
            f"Unknown weight profile {weights!r}. "
            f"Available profiles: {', '.join(sorted(WEIGHT_PROFILES))}"
        )
    return name, WEIGHT_PROFILES[name]


# =============================================================================
# Sub-scores
# =============================================================================


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(score: int, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, score))


def dimension_score(avg_ratio: float) -> int:
    """Map the mean gear/cavity ratio onto the 0-100 fit curve.

    Below 0.5 the score climbs 0 -> 50 (too much empty space), 0.5-0.9
    climbs 50 -> 100 (snug), and past 0.9 it falls back toward 50 as the
    fit gets tight. The hard gate has already passed, so it never drops
    below 50 there.
    """
    if avg_ratio < SNUG_RATIO_LOW:
        raw = avg_ratio * 100
    elif avg_ratio <= SNUG_RATIO_HIGH:
        raw = 50 + (avg_ratio - SNUG_RATIO_LOW) / (SNUG_RATIO_HIGH - SNUG_RATIO_LOW) * 50
    else:
        raw = 100 - (avg_ratio - SNUG_RATIO_HIGH) / (1 - SNUG_RATIO_HIGH) * 50
        raw = max(TIGHT_FIT_FLOOR, raw)
    return _clamp(_round_half_up(raw))


def is_fragile(gear: GearItem) -> bool:
    text = f"{gear.category} {gear.type}".lower()
    return any(keyword in text for keyword in FRAGILE_CATEGORIES)


def case_shell(case: CaseItem) -> Optional[str]:
    """Classify a case type as "hard", "soft", or None (neither)."""
    case_type = case.type.lower()
    if any(marker in case_type for marker in HARD_CASE_MARKERS):
        return "hard"
    if any(marker in case_type for marker in SOFT_CASE_MARKERS):
        return "soft"
    return None


def protection_score(gear: GearItem, case: CaseItem) -> int:
    score = PROTECTION_BASELINE
    for feature in (case.waterproof, case.shockproof, case.dustproof):
        if feature:
            score += FEATURE_BONUS

    if case.protection_level is not None:
        score += PROTECTION_LEVEL_ADJUSTMENT[case.protection_level]

    # Shell type only matters for fragile gear
    if is_fragile(gear):
        shell = case_shell(case)
        if shell == "hard":
            score += FRAGILE_HARD_BONUS
        elif shell == "soft":
            score += FRAGILE_SOFT_PENALTY

    return _clamp(score)


def _hint_matches(hint: str, gear: GearItem) -> bool:
    hint_norm = hint.strip().lower()
    if not hint_norm:
        return False
    if gear.id and hint.strip() == gear.id:
        return True
    category = gear.category.strip().lower()
    if not category:
        return False
    return hint_norm in category or category in hint_norm


def brand_score(gear: GearItem, case: CaseItem) -> int:
    gear_brand = gear.brand.strip().lower()
    if gear_brand and gear_brand == case.brand.strip().lower():
        return BRAND_MATCH_SCORE
    if any(_hint_matches(hint, gear) for hint in case.compatible_with):
        return HINT_MATCH_SCORE
    return NEUTRAL_BRAND_SCORE


def match_reason(score: int) -> str:
    """Short human-readable label for an overall score."""
    for threshold, reason in MATCH_REASONS:
        if score >= threshold:
            return reason
    return LOWEST_MATCH_REASON


# =============================================================================
# Scoring
# =============================================================================


def _check_margin(margin: float) -> None:
    if not math.isfinite(margin) or margin < 0:
        raise ValueError(f"Fit margin must be a finite value >= 0 (got {margin})")


def _check_min_score(min_score: int) -> None:
    if not 0 <= min_score <= 100:
        raise ValueError(f"min_score must be between 0 and 100 (got {min_score})")


def _feasibility_violations(gear: GearItem, case: CaseItem, margin: float) -> list[str]:
    violations: list[str] = []
    gear_dims = gear.dimensions.in_inches()
    case_dims = case.interior_dimensions.in_inches()
    for axis, gear_dim, case_dim in zip(_AXES, gear_dims, case_dims):
        if gear_dim > case_dim + margin:
            violations.append(
                f"❌ Gear {axis} ({gear_dim:.1f}in) exceeds case interior "
                f"({case_dim:.1f}in)"
            )

    gear_weight = gear.weight_lb
    capacity = case.capacity_lb
    if gear_weight is not None and capacity is not None and gear_weight > capacity:
        violations.append(
            f"❌ Gear weight ({gear_weight:.1f}lb) exceeds case capacity "
            f"({capacity:.1f}lb)"
        )
    return violations


def _score(
    gear: GearItem,
    case: CaseItem,
    profile: str,
    weights: ScoreWeights,
    margin: float,
) -> MatchResult:
    """Score an already-validated pair."""
    # === HARD REJECTION: fit and weight gate ===
    violations = _feasibility_violations(gear, case, margin)
    if violations:
        return MatchResult(
            gear_id=gear.id,
            case_id=case.id,
            compatibility_score=0,
            dimension_score=0,
            protection_score=0,
            brand_score=0,
            feasible=False,
            profile=profile,
            match_reason="Does not fit",
            notes=violations,
        )

    notes: list[str] = []
    gear_dims = gear.dimensions.in_inches()
    case_dims = case.interior_dimensions.in_inches()
    avg_ratio = sum(g / c for g, c in zip(gear_dims, case_dims)) / len(_AXES)

    dim = dimension_score(avg_ratio)
    if avg_ratio < SNUG_RATIO_LOW:
        notes.append(f"ℹ️ Loose fit (fill ratio {avg_ratio:.2f}), consider extra padding")
    elif avg_ratio <= SNUG_RATIO_HIGH:
        notes.append(f"✅ Snug fit (fill ratio {avg_ratio:.2f})")
    else:
        notes.append(f"⚠️ Tight fit (fill ratio {avg_ratio:.2f})")

    prot = protection_score(gear, case)
    if is_fragile(gear) and case_shell(case) == "soft":
        notes.append("⚠️ Soft case for fragile gear")

    brand = brand_score(gear, case)
    if brand == BRAND_MATCH_SCORE:
        notes.append(f"✅ Same brand ({case.brand})")
    elif brand == HINT_MATCH_SCORE:
        notes.append("✅ Listed by the manufacturer as compatible")

    overall = _clamp(
        _round_half_up(
            weights.dimension * dim + weights.protection * prot + weights.brand * brand
        )
    )

    return MatchResult(
        gear_id=gear.id,
        case_id=case.id,
        compatibility_score=overall,
        dimension_score=dim,
        protection_score=prot,
        brand_score=brand,
        feasible=True,
        profile=profile,
        match_reason=match_reason(overall),
        notes=notes,
    )


def score_match(
    gear: GearItem | Mapping[str, Any],
    case: CaseItem | Mapping[str, Any],
    weights: str | ScoreWeights | None = None,
    margin: float = DEFAULT_FIT_MARGIN_IN,
) -> MatchResult:
    """Score one gear/case pair.

    Raises RecordValidationError if either record is malformed, and
    ValueError for an unknown weight profile or a negative margin. An
    infeasible pair is not an error: it comes back with ``feasible=False``
    and a score of 0.
    """
    _check_margin(margin)
    gear_item = coerce_gear(gear)
    case_item = coerce_case(case)
    profile, resolved = resolve_weights(weights)
    return _score(gear_item, case_item, profile, resolved, margin)


def rank_candidates(
    gear: GearItem | Mapping[str, Any],
    cases: Iterable[CaseItem | Mapping[str, Any]],
    include_infeasible: bool = False,
    weights: str | ScoreWeights | None = None,
    margin: float = DEFAULT_FIT_MARGIN_IN,
    max_workers: Optional[int] = None,
    min_score: int = 0,
) -> RankingResult:
    """Score every candidate case for one gear item and rank them.

    A malformed gear record raises RecordValidationError. Malformed case
    records are excluded and reported in ``errors``; the rest of the batch
    is still ranked.

    ``min_score`` drops feasible matches scoring below it. Infeasible
    results are governed by ``include_infeasible`` alone.

    Ordering: compatibility score desc, then dimension score desc, then
    input order.
    """
    _check_margin(margin)
    _check_min_score(min_score)
    gear_item = coerce_gear(gear)
    profile, resolved = resolve_weights(weights)
    records = list(cases)

    valid: list[CaseItem] = []
    errors: list[ValidationIssue] = []
    for index, record in enumerate(records):
        try:
            valid.append(coerce_case(record))
        except RecordValidationError as e:
            logger.warning(
                "Excluding case #%d (id=%s) for gear %s: %s",
                index,
                e.record_id,
                gear_item.id,
                e,
            )
            errors.append(e.to_issue(index))

    def _score_one(case_item: CaseItem) -> MatchResult:
        return _score(gear_item, case_item, profile, resolved, margin)

    if max_workers and len(valid) > 1:
        # map() yields in submission order, so input order survives
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            results = list(executor.map(_score_one, valid))
    else:
        results = [_score_one(c) for c in valid]

    if not include_infeasible:
        results = [r for r in results if r.compatibility_score > 0]
    if min_score:
        results = [
            r for r in results if not r.feasible or r.compatibility_score >= min_score
        ]

    results.sort(key=lambda r: (-r.compatibility_score, -r.dimension_score))

    logger.debug(
        "Ranked %d/%d cases for gear %s (profile=%s, excluded=%d)",
        len(results),
        len(records),
        gear_item.id,
        profile,
        len(errors),
    )
    return RankingResult(
        gear_id=gear_item.id,
        profile=profile,
        matches=results,
        errors=errors,
        total_candidates=len(records),
    )


# =============================================================================
# Synthetic Data
# =============================================================================


def simulate_score(
    gear: GearItem | Mapping[str, Any],
    case: CaseItem | Mapping[str, Any],
    rng: Optional[random.Random] = None,
    jitter: float = 5.0,
    weights: str | ScoreWeights | None = None,
) -> int:
    """Deterministic score plus uniform noise, for generated seed data only.

    Infeasible pairs stay at 0.
    """
    return jitter_score(score_match(gear, case, weights=weights), rng=rng, jitter=jitter)


def jitter_score(
    result: MatchResult,
    rng: Optional[random.Random] = None,
    jitter: float = 5.0,
) -> int:
    """Add uniform noise to an already computed match."""
    if not result.feasible:
        return 0
    rng = rng or random.Random()
    noisy = result.compatibility_score + rng.uniform(-jitter, jitter)
    return _clamp(_round_half_up(noisy))
