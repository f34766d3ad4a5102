"""
Multimodal fusion scoring.

Combines a fundus-derived and an ERG-derived confidence into one combined
confidence, draws a colour-vision diagnosis from a fixed categorical
distribution, and derives a severity level from the two. Pure apart from the
injected random source; never touches the store.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from ..enums import ColorBlindnessType, SeverityLevel


@dataclass(frozen=True)
class FusionWeights:
    """Per-modality weights. Must sum to 1."""

    fundus: float = 0.6
    erg: float = 0.4

    def __post_init__(self) -> None:
        if not math.isclose(self.fundus + self.erg, 1.0):
            raise ValueError(
                f"Fusion weights must sum to 1.0, got {self.fundus + self.erg}"
            )


DEFAULT_WEIGHTS = FusionWeights()

# Multiplicative noise applied to the weighted confidence
JITTER_RANGE: Tuple[float, float] = (0.95, 1.05)

DIAGNOSIS_DISTRIBUTION: Tuple[Tuple[ColorBlindnessType, float], ...] = (
    (ColorBlindnessType.NORMAL, 0.40),
    (ColorBlindnessType.PROTANOPIA, 0.15),
    (ColorBlindnessType.DEUTERANOPIA, 0.15),
    (ColorBlindnessType.TRITANOPIA, 0.05),
    (ColorBlindnessType.PROTANOMALY, 0.125),
    (ColorBlindnessType.DEUTERANOMALY, 0.125),
)

SEVERE_THRESHOLD = 0.8
MODERATE_THRESHOLD = 0.6


def validate_distribution(
    distribution: Sequence[Tuple[ColorBlindnessType, float]],
) -> None:
    """Raise ValueError unless the weights are non-negative and sum to 1."""
    total = sum(weight for _, weight in distribution)
    if any(weight < 0 for _, weight in distribution):
        raise ValueError("Diagnosis weights must be non-negative")
    if not math.isclose(total, 1.0):
        raise ValueError(f"Diagnosis weights must sum to 1.0, got {total}")


validate_distribution(DIAGNOSIS_DISTRIBUTION)


def clamp_unit(value: float) -> float:
    """Clamp ``value`` into [0, 1]."""
    return min(1.0, max(0.0, value))


def combine_confidence(
    fundus_confidence: float,
    erg_confidence: float,
    jitter: float = 1.0,
    weights: FusionWeights = DEFAULT_WEIGHTS,
) -> float:
    """Weighted fusion of two confidences, perturbed by ``jitter`` and clamped to [0, 1]."""
    weighted = fundus_confidence * weights.fundus + erg_confidence * weights.erg
    return clamp_unit(weighted * jitter)


def select_diagnosis(
    draw: float,
    distribution: Sequence[Tuple[ColorBlindnessType, float]] = DIAGNOSIS_DISTRIBUTION,
) -> ColorBlindnessType:
    """Cumulative-weight sampling over a single uniform draw in [0, 1)."""
    cumulative = 0.0
    for diagnosis, weight in distribution:
        cumulative += weight
        if draw <= cumulative:
            return diagnosis
    # Float rounding can leave the cumulative sum a hair under 1.0
    return ColorBlindnessType.NORMAL


def derive_severity(
    diagnosis: ColorBlindnessType, combined_confidence: float
) -> SeverityLevel:
    """Normal is always None; otherwise severity follows the combined confidence."""
    if diagnosis == ColorBlindnessType.NORMAL:
        return SeverityLevel.NONE
    if combined_confidence > SEVERE_THRESHOLD:
        return SeverityLevel.SEVERE
    if combined_confidence > MODERATE_THRESHOLD:
        return SeverityLevel.MODERATE
    return SeverityLevel.MILD


@dataclass(frozen=True)
class FusionResult:
    """Output of one fusion pass."""

    fundus_confidence: float
    erg_confidence: float
    combined_confidence: float
    jitter: float
    color_blindness_type: ColorBlindnessType
    severity_level: SeverityLevel


class FusionScorer:
    """Stateless fusion scorer over an injectable random source."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        weights: FusionWeights = DEFAULT_WEIGHTS,
        jitter_range: Tuple[float, float] = JITTER_RANGE,
    ):
        self.rng = rng or random.Random()
        self.weights = weights
        self.jitter_range = jitter_range

    def score(self, fundus_confidence: float, erg_confidence: float) -> FusionResult:
        """Fuse two confidences and pick a diagnosis and severity."""
        jitter = self.rng.uniform(*self.jitter_range)
        combined = combine_confidence(
            fundus_confidence, erg_confidence, jitter=jitter, weights=self.weights
        )
        diagnosis = select_diagnosis(self.rng.random())
        return FusionResult(
            fundus_confidence=fundus_confidence,
            erg_confidence=erg_confidence,
            combined_confidence=combined,
            jitter=jitter,
            color_blindness_type=diagnosis,
            severity_level=derive_severity(diagnosis, combined),
        )
