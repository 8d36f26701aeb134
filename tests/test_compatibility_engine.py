"""Tests for the gear-to-case compatibility scoring engine."""

import math
import random

import pytest
from pydantic import ValidationError

from casematch.services.compatibility_engine import (
    ScoreWeights,
    brand_score,
    dimension_score,
    jitter_score,
    match_reason,
    protection_score,
    rank_candidates,
    resolve_weights,
    score_match,
    simulate_score,
)
from casematch.services.validation import RecordValidationError, coerce_case, coerce_gear


def _make_gear(**overrides) -> dict:
    defaults = {
        "id": "g1",
        "name": "Korg Minilogue",
        "brand": "Korg",
        "category": "Synthesizer",
        "type": "synthesizer",
        "dimensions": {"length": 50, "width": 30, "height": 15, "unit": "cm"},
        "weight": {"value": 2.8, "unit": "kg"},
    }
    defaults.update(overrides)
    return defaults


def _make_case(**overrides) -> dict:
    defaults = {
        "id": "c1",
        "name": "Hardshell Synth Case",
        "brand": "Gator",
        "type": "Hard",
        "interiorDimensions": {"length": 52, "width": 32, "height": 17, "unit": "cm"},
        "maxWeight": {"value": 5, "unit": "kg"},
        "protectionLevel": "high",
        "waterproof": True,
        "shockproof": True,
    }
    defaults.update(overrides)
    return defaults


def _cube_gear(side: float = 10.0, **overrides) -> dict:
    defaults = {
        "dimensions": {"length": side, "width": side, "height": side, "unit": "in"},
        "weight": None,
    }
    defaults.update(overrides)
    return _make_gear(**defaults)


def _cube_case(side: float, case_id: str, **overrides) -> dict:
    defaults = {
        "id": case_id,
        "brand": "Gator",
        "type": "Waterproof",
        "interiorDimensions": {"length": side, "width": side, "height": side, "unit": "in"},
        "maxWeight": None,
        "protectionLevel": None,
        "waterproof": False,
        "shockproof": False,
    }
    defaults.update(overrides)
    return _make_case(**defaults)


# ---------------------------------------------------------------------------
# Reference Scenarios
# ---------------------------------------------------------------------------


class TestReferenceScenarios:
    def test_snug_hard_case(self):
        result = score_match(_make_gear(), _make_case())
        assert result.feasible
        # avg ratio ~0.927: tight but feasible
        assert 50 <= result.dimension_score <= 100
        assert result.dimension_score == 86
        assert result.protection_score == 85  # 50 + 10 + 10 + 15
        assert result.brand_score == 50
        expected = math.floor(0.6 * result.dimension_score + 0.3 * 85 + 0.1 * 50 + 0.5)
        assert result.compatibility_score == expected == 82

    def test_every_axis_too_large(self):
        gear = _make_gear(dimensions={"length": 60, "width": 16, "height": 35, "unit": "cm"})
        case = _make_case(
            interiorDimensions={"length": 28, "width": 8, "height": 18, "unit": "cm"}
        )
        result = score_match(gear, case)
        assert result.compatibility_score == 0
        assert result.dimension_score == 0
        assert not result.feasible
        assert len([n for n in result.notes if "exceeds case interior" in n]) == 3

    def test_equal_scores_rank_higher_dimension_first(self):
        # B: dim 70, protection 70 -> 68; A: dim 80, protection 50 -> 68
        case_b = _cube_case(10 / 0.66, "B", waterproof=True, shockproof=True)
        case_a = _cube_case(10 / 0.74, "A")
        ranking = rank_candidates(_cube_gear(), [case_b, case_a])

        assert [m.case_id for m in ranking.matches] == ["A", "B"]
        a, b = ranking.matches
        assert a.compatibility_score == b.compatibility_score == 68
        assert (a.dimension_score, b.dimension_score) == (80, 70)


# ---------------------------------------------------------------------------
# Feasibility Gate
# ---------------------------------------------------------------------------


class TestFeasibilityGate:
    def test_single_axis_violation_rejects(self):
        gear = _make_gear(dimensions={"length": 40, "width": 30, "height": 20, "unit": "cm"})
        result = score_match(gear, _make_case())
        assert result.compatibility_score == 0
        assert any("height" in n for n in result.notes)

    def test_within_margin_is_feasible(self):
        gear = _cube_gear(dimensions={"length": 20.4, "width": 8, "height": 4, "unit": "in"})
        case = _cube_case(0, "c", interiorDimensions={"length": 20, "width": 10, "height": 5})
        assert score_match(gear, case).feasible

    def test_beyond_margin_is_infeasible(self):
        gear = _cube_gear(dimensions={"length": 20.6, "width": 8, "height": 4, "unit": "in"})
        case = _cube_case(0, "c", interiorDimensions={"length": 20, "width": 10, "height": 5})
        assert score_match(gear, case).compatibility_score == 0

    def test_custom_margin(self):
        gear = _cube_gear(dimensions={"length": 20.6, "width": 8, "height": 4, "unit": "in"})
        case = _cube_case(0, "c", interiorDimensions={"length": 20, "width": 10, "height": 5})
        assert score_match(gear, case, margin=1.0).feasible
        assert not score_match(gear, case, margin=0.0).feasible

    def test_weight_gate_rejects_heavy_gear(self):
        gear = _make_gear(weight={"value": 12, "unit": "kg"})
        result = score_match(gear, _make_case())
        assert result.compatibility_score == 0
        assert not result.feasible
        assert any("capacity" in n for n in result.notes)

    def test_weight_gate_independent_of_fit(self):
        gear = _cube_gear(weight={"value": 50, "unit": "lb"})
        case = _cube_case(12, "c", maxWeight=20)
        assert score_match(gear, case).compatibility_score == 0

    def test_weight_class_capacity(self):
        gear = _make_gear(weight={"value": 6, "unit": "kg"})  # ~13.2 lb
        light = _make_case(maxWeight=None, weightClass="light")
        medium = _make_case(maxWeight=None, weightClass="medium")
        assert score_match(gear, light).compatibility_score == 0
        assert score_match(gear, medium).compatibility_score > 0

    def test_missing_weight_skips_gate(self):
        gear = _make_gear(weight=None)
        assert score_match(gear, _make_case(maxWeight=0.1)).feasible

    def test_unit_normalization(self):
        cm = score_match(_make_gear(), _make_case())
        inches = score_match(
            _make_gear(
                dimensions={"length": 50 / 2.54, "width": 30 / 2.54, "height": 15 / 2.54},
                weight={"value": 2.8 * 2.20462, "unit": "lb"},
            ),
            _make_case(),
        )
        assert cm.compatibility_score == inches.compatibility_score
        assert cm.dimension_score == inches.dimension_score

    def test_mixed_units_compared_after_conversion(self):
        # 500mm gear in a 20in (50.8cm) cavity fits
        gear = _make_gear(dimensions={"length": 500, "width": 300, "height": 150, "unit": "mm"})
        case = _make_case(
            interiorDimensions={"length": 20, "width": 12.5, "height": 6.5, "unit": "in"}
        )
        assert score_match(gear, case).feasible

    def test_meters_and_centimeters_score_alike(self):
        case = _make_case(
            interiorDimensions={"length": 0.7, "width": 0.4, "height": 0.2, "unit": "m"}
        )
        in_m = score_match(_make_gear(), case)
        in_cm = score_match(
            _make_gear(),
            _make_case(interiorDimensions={"length": 70, "width": 40, "height": 20, "unit": "cm"}),
        )
        assert in_m.model_dump() == in_cm.model_dump()


# ---------------------------------------------------------------------------
# Dimension Score
# ---------------------------------------------------------------------------


class TestDimensionScore:
    @pytest.mark.parametrize(
        "ratio, expected",
        [(0.0, 0), (0.25, 25), (0.5, 50), (0.7, 75), (0.9, 100), (0.95, 75), (1.0, 50)],
    )
    def test_curve_points(self, ratio, expected):
        assert dimension_score(ratio) == expected

    def test_tight_fit_floor(self):
        assert dimension_score(1.03) == 50

    def test_monotonic_in_snug_band(self):
        ratios = [0.5 + i * 0.01 for i in range(41)]
        scores = [dimension_score(r) for r in ratios]
        assert scores == sorted(scores)

    def test_monotonic_via_score_match(self):
        case = _cube_case(20, "c")
        scores = [
            score_match(_cube_gear(side), case).dimension_score
            for side in (10, 12, 14, 16, 18)  # ratios 0.5 .. 0.9
        ]
        assert scores == sorted(scores)


# ---------------------------------------------------------------------------
# Protection Score
# ---------------------------------------------------------------------------


class TestProtectionScore:
    def _score(self, gear: dict, case: dict) -> int:
        return protection_score(coerce_gear(gear), coerce_case(case))

    def test_baseline(self):
        case = _cube_case(12, "c")
        assert self._score(_make_gear(), case) == 50

    def test_features_are_additive(self):
        case = _cube_case(12, "c", waterproof=True, shockproof=True, dustproof=True)
        assert self._score(_make_gear(), case) == 80

    @pytest.mark.parametrize("level, expected", [("high", 65), ("medium", 55), ("low", 40)])
    def test_protection_level(self, level, expected):
        case = _cube_case(12, "c", protectionLevel=level)
        assert self._score(_make_gear(), case) == expected

    def test_hard_case_bonus_only_for_fragile_gear(self):
        hard = _cube_case(12, "c", type="Hard Case")
        assert self._score(_make_gear(), hard) == 50
        assert self._score(_make_gear(category="Microphone"), hard) == 60

    def test_flight_case_counts_as_hard(self):
        flight = _cube_case(12, "c", type="Flight")
        assert self._score(_make_gear(category="Audio Interface"), flight) == 60

    def test_soft_case_penalty_for_fragile_gear(self):
        soft = _cube_case(12, "c", type="Soft", protectionLevel="low")
        assert self._score(_make_gear(category="Mixer"), soft) == 35
        assert self._score(_make_gear(), soft) == 40

    def test_fragile_detected_from_type(self):
        soft = _cube_case(12, "c", type="Gig Bag")
        assert self._score(_make_gear(category="", type="mixer"), soft) == 45

    def test_clamped_to_100(self):
        case = _cube_case(
            12, "c", type="Flight", waterproof=True, shockproof=True, dustproof=True,
            protectionLevel="high",
        )
        assert self._score(_make_gear(category="Microphone"), case) == 100


# ---------------------------------------------------------------------------
# Brand Score
# ---------------------------------------------------------------------------


class TestBrandScore:
    def _score(self, gear: dict, case: dict) -> int:
        return brand_score(coerce_gear(gear), coerce_case(case))

    def test_exact_brand_match_is_case_insensitive(self):
        assert self._score(_make_gear(brand="Korg"), _make_case(brand="KORG")) == 100

    def test_hint_substring_of_category(self):
        case = _make_case(compatibleWith=["synth"])
        assert self._score(_make_gear(), case) == 80

    def test_category_substring_of_hint(self):
        case = _make_case(compatibleWith=["Keyboards and Synthesizers"])
        assert self._score(_make_gear(), case) == 80

    def test_hint_by_gear_id(self):
        case = _make_case(compatibleWith=["g1"])
        assert self._score(_make_gear(category=""), case) == 80

    def test_no_match_is_neutral(self):
        case = _make_case(compatibleWith=["Drum Machine"])
        assert self._score(_make_gear(), case) == 50

    def test_empty_category_does_not_match_every_hint(self):
        case = _make_case(compatibleWith=["Mixer"])
        assert self._score(_make_gear(id="x", category=""), case) == 50

    def test_empty_brands_do_not_match(self):
        assert self._score(_make_gear(brand=""), _make_case(brand="")) == 50


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class TestProperties:
    def test_deterministic(self):
        first = score_match(_make_gear(), _make_case())
        second = score_match(_make_gear(), _make_case())
        assert first.model_dump() == second.model_dump()

    def test_bounds(self):
        cases = [
            _make_case(),
            _cube_case(200, "huge"),
            _cube_case(10.2, "tight", type="Flight", dustproof=True, protectionLevel="high"),
            _cube_case(11, "soft", type="Soft", protectionLevel="low"),
            _cube_case(5, "small"),
        ]
        for gear in (_make_gear(), _cube_gear(), _cube_gear(category="Microphone")):
            for case in cases:
                result = score_match(gear, case)
                for value in (
                    result.compatibility_score,
                    result.dimension_score,
                    result.protection_score,
                    result.brand_score,
                ):
                    assert isinstance(value, int)
                    assert 0 <= value <= 100

    def test_inputs_are_not_mutated(self):
        gear, case = _make_gear(), _make_case()
        snapshot = (repr(gear), repr(case))
        score_match(gear, case)
        assert (repr(gear), repr(case)) == snapshot


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------


class TestRanking:
    def test_sorted_descending(self):
        cases = [_cube_case(30, "loose"), _cube_case(12, "snug"), _cube_case(8, "small")]
        ranking = rank_candidates(_cube_gear(), cases)
        scores = [m.compatibility_score for m in ranking.matches]
        assert scores == sorted(scores, reverse=True)
        assert [m.case_id for m in ranking.matches] == ["snug", "loose"]
        assert ranking.total_candidates == 3

    def test_infeasible_filtered_by_default(self):
        ranking = rank_candidates(_cube_gear(), [_cube_case(8, "small")])
        assert ranking.matches == []

    def test_include_infeasible(self):
        cases = [_cube_case(8, "small"), _cube_case(12, "snug")]
        ranking = rank_candidates(_cube_gear(), cases, include_infeasible=True)
        assert [m.case_id for m in ranking.matches] == ["snug", "small"]
        assert ranking.matches[-1].feasible is False

    def test_full_ties_keep_input_order(self):
        cases = [_cube_case(12, cid) for cid in ("first", "second", "third")]
        ranking = rank_candidates(_cube_gear(), cases)
        assert [m.case_id for m in ranking.matches] == ["first", "second", "third"]

    def test_malformed_cases_reported_not_ranked(self):
        cases = [
            _cube_case(12, "ok"),
            _cube_case(12, "negative", interiorDimensions={"length": -1, "width": 12, "height": 12}),
            {"id": "no-dims", "type": "Hard"},
            "not-a-record",
            _cube_case(12, "bad-weight", maxWeight="heavy"),
        ]
        ranking = rank_candidates(_cube_gear(), cases)

        assert [m.case_id for m in ranking.matches] == ["ok"]
        assert ranking.total_candidates == 5
        by_index = {issue.index: issue for issue in ranking.errors}
        assert set(by_index) == {1, 2, 3, 4}
        assert by_index[1].record_id == "negative"
        assert "length" in by_index[1].field
        assert "dimensions" in by_index[2].field.lower()
        assert by_index[3].field == "record"
        assert "weight" in by_index[4].field.lower()

    def test_malformed_gear_raises(self):
        with pytest.raises(RecordValidationError) as exc:
            rank_candidates({"id": "g", "weight": 1}, [_cube_case(12, "c")])
        assert "dimensions" in exc.value.field

    def test_thread_pool_matches_sequential(self):
        cases = [_cube_case(side, f"c{side}") for side in (11, 12, 14, 16, 20, 25, 9)]
        sequential = rank_candidates(_cube_gear(), cases)
        parallel = rank_candidates(_cube_gear(), cases, max_workers=4)
        assert [m.model_dump() for m in parallel.matches] == [
            m.model_dump() for m in sequential.matches
        ]

    def test_accepts_generator(self):
        ranking = rank_candidates(_cube_gear(), (_cube_case(12, c) for c in ("a", "b")))
        assert ranking.total_candidates == 2

    def test_min_score_drops_weak_matches(self):
        # snug scores 75, loose scores 40
        cases = [_cube_case(30, "loose"), _cube_case(12, "snug"), _cube_case(8, "small")]
        ranking = rank_candidates(_cube_gear(), cases, min_score=60)
        assert [m.case_id for m in ranking.matches] == ["snug"]
        assert ranking.total_candidates == 3

    def test_min_score_is_inclusive(self):
        ranking = rank_candidates(_cube_gear(), [_cube_case(12, "snug")], min_score=75)
        assert [m.case_id for m in ranking.matches] == ["snug"]

    def test_min_score_keeps_requested_infeasible(self):
        cases = [_cube_case(30, "loose"), _cube_case(12, "snug"), _cube_case(8, "small")]
        ranking = rank_candidates(_cube_gear(), cases, include_infeasible=True, min_score=60)
        assert [m.case_id for m in ranking.matches] == ["snug", "small"]

    @pytest.mark.parametrize("bad", [-1, 101])
    def test_min_score_out_of_range(self, bad):
        with pytest.raises(ValueError, match="min_score"):
            rank_candidates(_cube_gear(), [_cube_case(12, "snug")], min_score=bad)


class TestMarginValidation:
    @pytest.mark.parametrize("bad", [-0.1, float("nan"), float("inf")])
    def test_score_match_rejects_bad_margin(self, bad):
        with pytest.raises(ValueError, match="Fit margin"):
            score_match(_make_gear(), _make_case(), margin=bad)

    def test_rank_candidates_rejects_negative_margin(self):
        with pytest.raises(ValueError, match="Fit margin"):
            rank_candidates(_cube_gear(), [_cube_case(12, "snug")], margin=-0.5)

    def test_zero_margin_is_allowed(self):
        result = score_match(_cube_gear(), _cube_case(10, "exact"), margin=0)
        assert result.feasible is True


# ---------------------------------------------------------------------------
# Weight Profiles
# ---------------------------------------------------------------------------


class TestWeightProfiles:
    def test_default_profile(self):
        name, weights = resolve_weights(None)
        assert name == "default"
        assert (weights.dimension, weights.protection, weights.brand) == (0.6, 0.3, 0.1)

    def test_fit_only_uses_dimension_score(self):
        result = score_match(_make_gear(), _make_case(), weights="fit_only")
        assert result.compatibility_score == result.dimension_score
        assert result.profile == "fit_only"

    def test_protection_first_changes_score(self):
        default = score_match(_make_gear(), _make_case())
        protective = score_match(_make_gear(), _make_case(), weights="protection_first")
        # 0.4 * 86 + 0.5 * 85 + 0.1 * 50 = 81.9
        assert protective.compatibility_score == 82
        assert protective.profile != default.profile

    def test_unknown_profile(self):
        with pytest.raises(ValueError, match="Unknown weight profile"):
            score_match(_make_gear(), _make_case(), weights="vibes")

    def test_custom_weights(self):
        weights = ScoreWeights(dimension=0.5, protection=0.5, brand=0.0)
        result = score_match(_make_gear(), _make_case(), weights=weights)
        assert result.profile == "custom"
        assert result.compatibility_score == math.floor(0.5 * 86 + 0.5 * 85 + 0.5)

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValidationError):
            ScoreWeights(dimension=0.6, protection=0.6, brand=0.1)


# ---------------------------------------------------------------------------
# Synthetic Scores and Reasons
# ---------------------------------------------------------------------------


class TestSimulateScore:
    def test_jitter_within_bounds(self):
        exact = score_match(_make_gear(), _make_case()).compatibility_score
        rng = random.Random(42)
        for _ in range(200):
            noisy = simulate_score(_make_gear(), _make_case(), rng=rng)
            assert exact - 5 <= noisy <= exact + 5
            assert 0 <= noisy <= 100

    def test_seeded_rng_is_reproducible(self):
        first = [simulate_score(_make_gear(), _make_case(), rng=random.Random(7)) for _ in range(3)]
        second = [simulate_score(_make_gear(), _make_case(), rng=random.Random(7)) for _ in range(3)]
        assert first == second

    def test_infeasible_stays_zero(self):
        gear = _make_gear(weight={"value": 100, "unit": "kg"})
        assert simulate_score(gear, _make_case(), rng=random.Random(1)) == 0

    def test_does_not_leak_into_score_match(self):
        before = score_match(_make_gear(), _make_case())
        simulate_score(_make_gear(), _make_case(), rng=random.Random(3))
        assert score_match(_make_gear(), _make_case()) == before

    def test_jitter_score_reuses_existing_result(self):
        exact = score_match(_make_gear(), _make_case())
        rng = random.Random(11)
        for _ in range(50):
            noisy = jitter_score(exact, rng=rng)
            assert exact.compatibility_score - 5 <= noisy <= exact.compatibility_score + 5

    def test_jitter_score_matches_simulate_score(self):
        exact = score_match(_make_gear(), _make_case())
        assert jitter_score(exact, rng=random.Random(5)) == simulate_score(
            _make_gear(), _make_case(), rng=random.Random(5)
        )

    def test_jitter_score_infeasible_is_zero(self):
        result = score_match(_make_gear(), _make_case(maxWeight={"value": 1, "unit": "kg"}))
        assert jitter_score(result, rng=random.Random(2)) == 0


class TestMatchReason:
    @pytest.mark.parametrize(
        "score, reason",
        [
            (95, "Perfect fit with excellent protection"),
            (90, "Perfect fit with excellent protection"),
            (82, "Great fit with good protection"),
            (55, "Acceptable fit with basic protection"),
            (20, "Not recommended but technically fits"),
            (5, "Minimal compatibility, not recommended"),
        ],
    )
    def test_ladder(self, score, reason):
        assert match_reason(score) == reason

    def test_result_carries_reason(self):
        result = score_match(_make_gear(), _make_case())
        assert result.match_reason == "Great fit with good protection"
