"""Tests for multimodal fusion scoring."""

import random

import pytest

from colorvision_dashboard.enums import ColorBlindnessType, SeverityLevel
from colorvision_dashboard.lifecycle.fusion import (
    DIAGNOSIS_DISTRIBUTION,
    FusionScorer,
    FusionWeights,
    combine_confidence,
    derive_severity,
    select_diagnosis,
    validate_distribution,
)


class FixedRandom:
    """Random source returning fixed draws."""

    def __init__(self, uniform_value: float, random_value: float):
        self.uniform_value = uniform_value
        self.random_value = random_value

    def uniform(self, a, b):
        return self.uniform_value

    def random(self):
        return self.random_value


class TestCombineConfidence:
    def test_weighted_combination_without_jitter(self):
        assert combine_confidence(0.9, 0.7) == pytest.approx(0.82)

    def test_jitter_scales_result(self):
        assert combine_confidence(0.5, 0.5, jitter=0.95) == pytest.approx(0.475)

    def test_result_is_clamped_to_unit_interval(self):
        assert combine_confidence(1.0, 1.0, jitter=1.05) == 1.0
        assert combine_confidence(0.0, 0.0, jitter=0.95) == 0.0

    def test_custom_weights(self):
        weights = FusionWeights(fundus=0.5, erg=0.5)
        assert combine_confidence(0.9, 0.7, weights=weights) == pytest.approx(0.8)

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValueError):
            FusionWeights(fundus=0.5, erg=0.6)


class TestSelectDiagnosis:
    @pytest.mark.parametrize(
        "draw,expected",
        [
            (0.0, ColorBlindnessType.NORMAL),
            (0.39, ColorBlindnessType.NORMAL),
            (0.41, ColorBlindnessType.PROTANOPIA),
            (0.56, ColorBlindnessType.DEUTERANOPIA),
            (0.72, ColorBlindnessType.TRITANOPIA),
            (0.8, ColorBlindnessType.PROTANOMALY),
            (0.9, ColorBlindnessType.DEUTERANOMALY),
            (0.9999999, ColorBlindnessType.DEUTERANOMALY),
        ],
    )
    def test_cumulative_sampling(self, draw, expected):
        assert select_diagnosis(draw) == expected

    def test_draw_past_cumulative_total_defaults_to_normal(self):
        distribution = ((ColorBlindnessType.PROTANOPIA, 0.5),)
        assert select_diagnosis(0.75, distribution) == ColorBlindnessType.NORMAL

    def test_default_distribution_is_valid(self):
        validate_distribution(DIAGNOSIS_DISTRIBUTION)

    def test_distribution_must_sum_to_one(self):
        with pytest.raises(ValueError):
            validate_distribution(((ColorBlindnessType.NORMAL, 0.9),))

    def test_negative_weights_are_rejected(self):
        with pytest.raises(ValueError):
            validate_distribution(
                (
                    (ColorBlindnessType.NORMAL, 1.2),
                    (ColorBlindnessType.PROTANOPIA, -0.2),
                )
            )


class TestDeriveSeverity:
    def test_normal_is_always_none(self):
        assert derive_severity(ColorBlindnessType.NORMAL, 0.99) == SeverityLevel.NONE
        assert derive_severity(ColorBlindnessType.NORMAL, 0.1) == SeverityLevel.NONE

    @pytest.mark.parametrize(
        "confidence,expected",
        [
            (0.81, SeverityLevel.SEVERE),
            (0.8, SeverityLevel.MODERATE),
            (0.61, SeverityLevel.MODERATE),
            (0.6, SeverityLevel.MILD),
            (0.2, SeverityLevel.MILD),
        ],
    )
    def test_thresholds(self, confidence, expected):
        assert derive_severity(ColorBlindnessType.PROTANOPIA, confidence) == expected


class TestFusionScorer:
    def test_score_with_fixed_draws(self):
        scorer = FusionScorer(FixedRandom(uniform_value=1.0, random_value=0.5))

        result = scorer.score(0.9, 0.7)

        assert result.combined_confidence == pytest.approx(0.82)
        assert result.jitter == 1.0
        assert result.color_blindness_type == ColorBlindnessType.PROTANOPIA
        assert result.severity_level == SeverityLevel.SEVERE
        assert result.fundus_confidence == 0.9
        assert result.erg_confidence == 0.7

    def test_normal_diagnosis_has_no_severity(self):
        scorer = FusionScorer(FixedRandom(uniform_value=1.0, random_value=0.1))

        result = scorer.score(0.9, 0.9)

        assert result.color_blindness_type == ColorBlindnessType.NORMAL
        assert result.severity_level == SeverityLevel.NONE

    @pytest.mark.parametrize("seed", range(25))
    def test_invariants_hold_for_random_draws(self, seed):
        rng = random.Random(seed)
        result = FusionScorer(rng).score(rng.uniform(0.7, 1.0), rng.uniform(0.6, 0.9))

        assert 0.0 <= result.combined_confidence <= 1.0
        assert 0.95 <= result.jitter <= 1.05
        is_normal = result.color_blindness_type == ColorBlindnessType.NORMAL
        assert is_normal == (result.severity_level == SeverityLevel.NONE)
