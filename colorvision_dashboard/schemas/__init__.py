"""Pydantic schemas for features and API requests."""

from .features import (
    AnalysisDetails,
    CnnFeatures,
    ColorDistribution,
    ErgFeatures,
    Features,
    FundusFeatures,
    FusionWeightsDetail,
    MlpFeatures,
    ModelVersions,
    parse_features,
)
from .requests import (
    AnalysisContext,
    ChatMessage,
    ChatRequest,
    ConsentRequest,
    DeleteRequest,
    MultimodalStartRequest,
    ProcessRequest,
)

__all__ = [
    "AnalysisContext",
    "AnalysisDetails",
    "ChatMessage",
    "ChatRequest",
    "CnnFeatures",
    "ColorDistribution",
    "ConsentRequest",
    "DeleteRequest",
    "ErgFeatures",
    "Features",
    "FundusFeatures",
    "FusionWeightsDetail",
    "MlpFeatures",
    "ModelVersions",
    "MultimodalStartRequest",
    "ProcessRequest",
    "parse_features",
]
