"""
Simulated feature derivation.

Stands in for real image and signal processing: every value is drawn from a
bounded range so that derived features always validate against the typed
feature schemas.
"""

from __future__ import annotations

import random
from typing import Optional, Tuple, Union

from ..enums import Modality
from ..schemas.features import (
    AnalysisDetails,
    CnnFeatures,
    ColorDistribution,
    ErgFeatures,
    FundusFeatures,
    FusionWeightsDetail,
    MlpFeatures,
)
from .fusion import DEFAULT_WEIGHTS, FusionWeights

QUALITY_RANGE: Tuple[float, float] = (0.6, 1.0)
FUNDUS_CONFIDENCE_RANGE: Tuple[float, float] = (0.7, 1.0)
ERG_CONFIDENCE_RANGE: Tuple[float, float] = (0.6, 0.9)
ATTENTION_SCORES = [0.8, 0.7, 0.9, 0.6]


def derive_fundus_features(rng: random.Random) -> Tuple[FundusFeatures, float]:
    """Quality score and structural findings for a fundus image."""
    quality = rng.uniform(*QUALITY_RANGE)
    features = FundusFeatures(
        optic_disc_detected=rng.random() > 0.1,
        macula_detected=rng.random() > 0.15,
        vessel_clarity=rng.uniform(0.5, 1.0),
        image_sharpness=rng.uniform(0.7, 1.0),
        illumination_quality=rng.uniform(0.6, 1.0),
    )
    return features, quality


def derive_erg_features(rng: random.Random) -> Tuple[ErgFeatures, float]:
    """Signal quality and waveform features for an ERG recording."""
    quality = rng.uniform(*QUALITY_RANGE)
    features = ErgFeatures(
        a_wave_amplitude=rng.uniform(50, 150),
        b_wave_amplitude=rng.uniform(200, 500),
        a_wave_latency=rng.uniform(12, 17),
        b_wave_latency=rng.uniform(45, 55),
        implicit_time=rng.uniform(40, 60),
        oscillatory_potentials=rng.random() > 0.3,
        signal_to_noise_ratio=rng.uniform(10, 30),
        baseline_stability=rng.uniform(0.7, 1.0),
        artifact_detection=rng.random() > 0.8,
    )
    return features, quality


def derive_features(
    modality: Modality, rng: Optional[random.Random] = None
) -> Tuple[Union[FundusFeatures, ErgFeatures], float]:
    """Dispatch on modality. Returns ``(features, quality_score)``."""
    rng = rng or random.Random()
    if Modality(modality) == Modality.FUNDUS:
        return derive_fundus_features(rng)
    return derive_erg_features(rng)


def estimate_fundus_confidence(rng: random.Random) -> float:
    return rng.uniform(*FUNDUS_CONFIDENCE_RANGE)


def estimate_erg_confidence(rng: random.Random) -> float:
    return rng.uniform(*ERG_CONFIDENCE_RANGE)


def build_analysis_details(
    fundus: FundusFeatures,
    erg: ErgFeatures,
    erg_quality: float,
    rng: random.Random,
    weights: FusionWeights = DEFAULT_WEIGHTS,
) -> AnalysisDetails:
    """Per-modality breakdown recorded with a completed analysis."""
    return AnalysisDetails(
        cnn_features=CnnFeatures(
            optic_disc_analysis=fundus.optic_disc_detected,
            macula_analysis=fundus.macula_detected,
            vessel_analysis=fundus.vessel_clarity,
            color_distribution=ColorDistribution(
                red_channel_intensity=rng.uniform(0.6, 1.0),
                green_channel_intensity=rng.uniform(0.6, 1.0),
                blue_channel_intensity=rng.uniform(0.6, 1.0),
            ),
        ),
        mlp_features=MlpFeatures(
            a_wave_analysis=erg.a_wave_amplitude,
            b_wave_analysis=erg.b_wave_amplitude,
            cone_response=erg.oscillatory_potentials,
            signal_integrity=erg_quality,
        ),
        fusion_weights=FusionWeightsDetail(
            fundus_weight=weights.fundus,
            erg_weight=weights.erg,
            attention_scores=list(ATTENTION_SCORES),
        ),
    )
