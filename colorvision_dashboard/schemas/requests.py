"""Request bodies accepted by the dashboard API."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, constr, model_validator


class ProcessRequest(BaseModel):
    """Start processing of an uploaded record.

    ``imageId`` (fundus) and ``ergId`` (ERG) are accepted as aliases of
    ``recordId``.
    """

    model_config = ConfigDict(populate_by_name=True)

    record_id: constr(min_length=1, max_length=36) = Field(
        ...,
        validation_alias=AliasChoices("recordId", "record_id", "imageId", "ergId"),
    )


class DeleteRequest(BaseModel):
    """Delete a record and its artifact, addressed by URL or record id."""

    model_config = ConfigDict(populate_by_name=True)

    url: Optional[constr(min_length=1)] = None
    record_id: Optional[constr(min_length=1, max_length=36)] = Field(
        default=None,
        validation_alias=AliasChoices("recordId", "record_id", "imageId", "ergId"),
    )

    @model_validator(mode="after")
    def require_target(self) -> "DeleteRequest":
        if not self.url and not self.record_id:
            raise ValueError("Either 'url' or 'recordId' must be provided")
        return self


class MultimodalStartRequest(BaseModel):
    """Start a multimodal analysis over two completed records."""

    model_config = ConfigDict(populate_by_name=True)

    fundus_id: constr(min_length=1, max_length=36) = Field(
        ..., validation_alias=AliasChoices("fundusId", "fundus_id")
    )
    erg_id: constr(min_length=1, max_length=36) = Field(
        ..., validation_alias=AliasChoices("ergId", "erg_id")
    )


class AnalysisContext(BaseModel):
    """Summary of a prior analysis passed to the assistant."""

    model_config = ConfigDict(extra="ignore")

    color_blindness_type: Optional[str] = None
    severity_level: Optional[str] = None
    combined_confidence: Optional[float] = None
    fundus_confidence: Optional[float] = None
    erg_confidence: Optional[float] = None


class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: constr(strip_whitespace=True, min_length=1, max_length=4000)
    context: List[AnalysisContext] = Field(default_factory=list)
    conversation_history: List[ChatMessage] = Field(
        default_factory=list,
        validation_alias=AliasChoices("conversationHistory", "conversation_history"),
    )


class ConsentRequest(BaseModel):
    """Consent form submission. HIPAA, data-processing and AI-analysis are required."""

    model_config = ConfigDict(populate_by_name=True)

    hipaa: bool = False
    data_processing: bool = Field(
        default=False, validation_alias=AliasChoices("dataProcessing", "data_processing")
    )
    ai_analysis: bool = Field(
        default=False, validation_alias=AliasChoices("aiAnalysis", "ai_analysis")
    )
    research: bool = False

    @property
    def complete(self) -> bool:
        return self.hipaa and self.data_processing and self.ai_analysis
