"""Tests for simulated feature derivation."""

import random

import pytest

from colorvision_dashboard.enums import Modality
from colorvision_dashboard.lifecycle.derivation import (
    ATTENTION_SCORES,
    build_analysis_details,
    derive_erg_features,
    derive_features,
    derive_fundus_features,
    estimate_erg_confidence,
    estimate_fundus_confidence,
)
from colorvision_dashboard.schemas.features import (
    ErgFeatures,
    FundusFeatures,
    parse_features,
)


@pytest.mark.parametrize("seed", range(20))
def test_fundus_features_stay_in_range(seed):
    features, quality = derive_fundus_features(random.Random(seed))

    assert 0.6 <= quality <= 1.0
    assert 0.5 <= features.vessel_clarity <= 1.0
    assert 0.7 <= features.image_sharpness <= 1.0
    assert 0.6 <= features.illumination_quality <= 1.0


@pytest.mark.parametrize("seed", range(20))
def test_erg_features_stay_in_range(seed):
    features, quality = derive_erg_features(random.Random(seed))

    assert 0.6 <= quality <= 1.0
    assert 50 <= features.a_wave_amplitude <= 150
    assert 200 <= features.b_wave_amplitude <= 500
    assert 12 <= features.a_wave_latency <= 17
    assert 45 <= features.b_wave_latency <= 55
    assert 40 <= features.implicit_time <= 60
    assert 10 <= features.signal_to_noise_ratio <= 30


def test_derive_features_dispatches_on_modality():
    fundus, _ = derive_features(Modality.FUNDUS, random.Random(1))
    erg, _ = derive_features("erg", random.Random(1))

    assert isinstance(fundus, FundusFeatures)
    assert isinstance(erg, ErgFeatures)


def test_stored_features_parse_back_to_their_variant():
    fundus, _ = derive_fundus_features(random.Random(3))
    erg, _ = derive_erg_features(random.Random(3))

    assert parse_features(fundus.model_dump()) == fundus
    assert parse_features(erg.model_dump()) == erg


def test_confidence_estimates_use_modality_ranges():
    rng = random.Random(11)
    for _ in range(50):
        assert 0.7 <= estimate_fundus_confidence(rng) <= 1.0
        assert 0.6 <= estimate_erg_confidence(rng) <= 0.9


def test_analysis_details_breakdown():
    rng = random.Random(5)
    fundus, _ = derive_fundus_features(rng)
    erg, erg_quality = derive_erg_features(rng)

    details = build_analysis_details(fundus, erg, erg_quality, rng)

    assert details.cnn_features.optic_disc_analysis == fundus.optic_disc_detected
    assert details.cnn_features.vessel_analysis == fundus.vessel_clarity
    assert details.mlp_features.a_wave_analysis == erg.a_wave_amplitude
    assert details.mlp_features.signal_integrity == erg_quality
    assert details.fusion_weights.fundus_weight == 0.6
    assert details.fusion_weights.erg_weight == 0.4
    assert details.fusion_weights.attention_scores == ATTENTION_SCORES
    assert details.model_versions.cnn_version == "v2.1.0"
    assert details.model_versions.mlp_version == "v1.8.0"
    assert details.model_versions.fusion_version == "v1.3.0"
