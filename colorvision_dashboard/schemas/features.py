"""
Typed feature payloads.

Extracted features are a tagged variant per modality: ``FundusFeatures`` or
``ErgFeatures``, discriminated by ``modality``. They are persisted as JSON via
``model_dump()`` and read back through ``parse_features``.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class FundusFeatures(BaseModel):
    """Structural findings from a fundus photograph."""

    model_config = ConfigDict(extra="forbid")

    modality: Literal["fundus"] = "fundus"
    optic_disc_detected: bool
    macula_detected: bool
    vessel_clarity: float = Field(..., ge=0.5, le=1.0)
    image_sharpness: float = Field(..., ge=0.7, le=1.0)
    illumination_quality: float = Field(..., ge=0.6, le=1.0)


class ErgFeatures(BaseModel):
    """Waveform features from an ERG recording (amplitudes in µV, times in ms)."""

    model_config = ConfigDict(extra="forbid")

    modality: Literal["erg"] = "erg"
    a_wave_amplitude: float = Field(..., ge=50, le=150)
    b_wave_amplitude: float = Field(..., ge=200, le=500)
    a_wave_latency: float = Field(..., ge=12, le=17)
    b_wave_latency: float = Field(..., ge=45, le=55)
    implicit_time: float = Field(..., ge=40, le=60)
    oscillatory_potentials: bool
    signal_to_noise_ratio: float = Field(..., ge=10, le=30)
    baseline_stability: float = Field(..., ge=0.7, le=1.0)
    artifact_detection: bool


Features = Annotated[
    Union[FundusFeatures, ErgFeatures], Field(discriminator="modality")
]

_features_adapter: TypeAdapter = TypeAdapter(Features)


def parse_features(data: Dict[str, Any]) -> Union[FundusFeatures, ErgFeatures]:
    """Rebuild a typed feature object from its stored JSON form."""
    return _features_adapter.validate_python(data)


class ColorDistribution(BaseModel):
    red_channel_intensity: float
    green_channel_intensity: float
    blue_channel_intensity: float


class CnnFeatures(BaseModel):
    """Fundus branch of the multimodal model."""

    optic_disc_analysis: bool
    macula_analysis: bool
    vessel_analysis: float
    color_distribution: ColorDistribution


class MlpFeatures(BaseModel):
    """ERG branch of the multimodal model."""

    a_wave_analysis: float
    b_wave_analysis: float
    cone_response: bool
    signal_integrity: float


class FusionWeightsDetail(BaseModel):
    fundus_weight: float
    erg_weight: float
    attention_scores: List[float]


class ModelVersions(BaseModel):
    cnn_version: str = "v2.1.0"
    mlp_version: str = "v1.8.0"
    fusion_version: str = "v1.3.0"


class AnalysisDetails(BaseModel):
    """Per-modality breakdown stored alongside a completed analysis."""

    cnn_features: CnnFeatures
    mlp_features: MlpFeatures
    fusion_weights: FusionWeightsDetail
    model_versions: ModelVersions = Field(default_factory=ModelVersions)
