"""
SQLAlchemy models for the ColorVision dashboard.

Upload records (fundus images and ERG recordings) and multimodal analyses
each carry a processing-status column driven by the job lifecycle engine.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declared_attr

from ..enums import Modality
from .base import Base


def generate_id() -> str:
    """Generate an opaque record identifier."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


processing_status_enum = Enum(
    "pending",
    "processing",
    "completed",
    "failed",
    name="processing_status",
)

analysis_status_enum = Enum(
    "processing",
    "completed",
    "failed",
    name="analysis_status",
)

color_blindness_type_enum = Enum(
    "Normal",
    "Protanopia",
    "Deuteranopia",
    "Tritanopia",
    "Protanomaly",
    "Deuteranomaly",
    name="color_blindness_type",
)

severity_level_enum = Enum(
    "None",
    "Mild",
    "Moderate",
    "Severe",
    name="severity_level",
)


class PatientModel(Base):
    """An authenticated dashboard user."""

    __tablename__ = "patients"

    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(255), nullable=True)

    # Consent flags captured by the consent form
    consents = Column(JSON(none_as_null=True), nullable=True)
    consented_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    def has_required_consent(self) -> bool:
        consents = self.consents or {}
        return all(
            consents.get(key) for key in ("hipaa", "data_processing", "ai_analysis")
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "consents": self.consents,
            "consented_at": _iso(self.consented_at),
            "created_at": _iso(self.created_at),
        }


class PatientSessionModel(Base):
    """Opaque bearer session issued by the auth provider."""

    __tablename__ = "patient_sessions"

    token = Column(String(128), primary_key=True)
    patient_id = Column(
        String(36),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)


class UploadRecordMixin:
    """Columns shared by fundus images and ERG recordings.

    ``quality_score`` and ``extracted_features`` are only ever written together
    with ``processing_status = 'completed'``; the check constraint below
    rejects any other combination.
    """

    id = Column(String(36), primary_key=True, default=generate_id)

    @declared_attr
    def owner_id(cls):
        return Column(
            String(36),
            ForeignKey("patients.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )

    # Artifact
    filename = Column(String(255), nullable=False)
    artifact_url = Column(Text, nullable=False)
    file_size = Column(Integer, nullable=False, default=0)
    mime_type = Column(String(100), nullable=True)

    # Lifecycle
    processing_status = Column(
        processing_status_enum,
        nullable=False,
        default="pending",
        index=True,
    )
    quality_score = Column(Float, nullable=True)
    extracted_features = Column(JSON(none_as_null=True), nullable=True)
    failure_reason = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    processing_started_at = Column(DateTime(timezone=True), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)

    @declared_attr.directive
    def __table_args__(cls):
        table = cls.__tablename__
        return (
            CheckConstraint(
                "processing_status = 'completed' "
                "OR (quality_score IS NULL AND extracted_features IS NULL)",
                name=f"ck_{table}_completion_fields",
            ),
            Index(f"ix_{table}_owner_status", "owner_id", "processing_status"),
            Index(f"ix_{table}_status_started", "processing_status", "processing_started_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "modality": self.modality.value,
            "owner_id": self.owner_id,
            "filename": self.filename,
            "artifact_url": self.artifact_url,
            "file_size": self.file_size,
            "mime_type": self.mime_type,
            "processing_status": self.processing_status,
            "quality_score": self.quality_score,
            "extracted_features": self.extracted_features,
            "failure_reason": self.failure_reason,
            "created_at": _iso(self.created_at),
            "processing_started_at": _iso(self.processing_started_at),
            "processed_at": _iso(self.processed_at),
        }


class FundusImageModel(UploadRecordMixin, Base):
    """Uploaded retinal fundus photograph."""

    __tablename__ = "fundus_images"
    modality = Modality.FUNDUS


class ErgRecordingModel(UploadRecordMixin, Base):
    """Uploaded electroretinography recording."""

    __tablename__ = "erg_recordings"
    modality = Modality.ERG


UPLOAD_MODELS = {
    Modality.FUNDUS: FundusImageModel,
    Modality.ERG: ErgRecordingModel,
}


def upload_model_for(modality: Modality):
    """Return the ORM class that stores records of ``modality``."""
    return UPLOAD_MODELS[Modality(modality)]


class MultimodalAnalysisModel(Base):
    """Fusion of one completed fundus image and one completed ERG recording."""

    __tablename__ = "multimodal_analyses"

    id = Column(String(36), primary_key=True, default=generate_id)
    owner_id = Column(
        String(36),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    fundus_image_id = Column(
        String(36),
        ForeignKey("fundus_images.id", ondelete="SET NULL"),
        nullable=True,
    )
    erg_recording_id = Column(
        String(36),
        ForeignKey("erg_recordings.id", ondelete="SET NULL"),
        nullable=True,
    )

    analysis_status = Column(
        analysis_status_enum,
        nullable=False,
        default="processing",
        index=True,
    )

    # Scoring (completed only)
    fundus_confidence = Column(Float, nullable=True)
    erg_confidence = Column(Float, nullable=True)
    combined_confidence = Column(Float, nullable=True)
    color_blindness_type = Column(color_blindness_type_enum, nullable=True)
    severity_level = Column(severity_level_enum, nullable=True)
    analysis_details = Column(JSON(none_as_null=True), nullable=True)

    failure_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "analysis_status = 'completed' OR ("
            "combined_confidence IS NULL AND color_blindness_type IS NULL "
            "AND severity_level IS NULL AND analysis_details IS NULL)",
            name="ck_multimodal_analyses_completion_fields",
        ),
        CheckConstraint(
            "color_blindness_type IS NULL OR "
            "((color_blindness_type = 'Normal') = (severity_level = 'None'))",
            name="ck_multimodal_analyses_severity_matches_type",
        ),
        Index("ix_multimodal_analyses_owner_status", "owner_id", "analysis_status"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "fundus_image_id": self.fundus_image_id,
            "erg_recording_id": self.erg_recording_id,
            "analysis_status": self.analysis_status,
            "fundus_confidence": self.fundus_confidence,
            "erg_confidence": self.erg_confidence,
            "combined_confidence": self.combined_confidence,
            "color_blindness_type": self.color_blindness_type,
            "severity_level": self.severity_level,
            "analysis_details": self.analysis_details,
            "failure_reason": self.failure_reason,
            "created_at": _iso(self.created_at),
            "completed_at": _iso(self.completed_at),
        }
