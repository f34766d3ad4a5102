"""
Database services for the ColorVision dashboard.

Every lookup is scoped to the owning patient; a record owned by someone else
is indistinguishable from a missing one.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from ..enums import Modality, ProcessingStatus
from .models import (
    MultimodalAnalysisModel,
    PatientModel,
    upload_model_for,
)


class UploadRecordService:
    """Service for fundus image and ERG recording rows."""

    def __init__(self, db: Session, modality: Modality):
        self.db = db
        self.modality = Modality(modality)
        self.model = upload_model_for(self.modality)

    def create(
        self,
        owner_id: str,
        filename: str,
        artifact_url: str,
        file_size: int,
        mime_type: Optional[str] = None,
    ):
        """Insert a new record in pending state."""
        record = self.model(
            owner_id=owner_id,
            filename=filename,
            artifact_url=artifact_url,
            file_size=file_size,
            mime_type=mime_type,
            processing_status=ProcessingStatus.PENDING.value,
            created_at=datetime.now(timezone.utc),
        )

        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record

    def get(self, record_id: str, owner_id: str):
        """Get a record by ID."""
        return (
            self.db.query(self.model)
            .filter(self.model.id == record_id, self.model.owner_id == owner_id)
            .first()
        )

    def get_by_url(self, artifact_url: str, owner_id: str):
        """Get a record by its artifact URL."""
        return (
            self.db.query(self.model)
            .filter(
                self.model.artifact_url == artifact_url,
                self.model.owner_id == owner_id,
            )
            .first()
        )

    def list(
        self,
        owner_id: str,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Any]:
        """List records with optional status filtering, newest first."""
        query = self.db.query(self.model).filter(self.model.owner_id == owner_id)

        if status:
            query = query.filter(self.model.processing_status == status)

        return (
            query.order_by(desc(self.model.created_at))
            .offset(offset)
            .limit(limit)
            .all()
        )

    def delete(self, record) -> None:
        """Delete a record row."""
        self.db.delete(record)
        self.db.commit()


class AnalysisService:
    """Service for multimodal analysis rows."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, analysis_id: str, owner_id: str) -> Optional[MultimodalAnalysisModel]:
        """Get an analysis by ID."""
        return (
            self.db.query(MultimodalAnalysisModel)
            .filter(
                MultimodalAnalysisModel.id == analysis_id,
                MultimodalAnalysisModel.owner_id == owner_id,
            )
            .first()
        )

    def list(
        self,
        owner_id: str,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[MultimodalAnalysisModel]:
        """List analyses with optional status filtering, newest first."""
        query = self.db.query(MultimodalAnalysisModel).filter(
            MultimodalAnalysisModel.owner_id == owner_id
        )

        if status:
            query = query.filter(MultimodalAnalysisModel.analysis_status == status)

        return (
            query.order_by(desc(MultimodalAnalysisModel.created_at))
            .offset(offset)
            .limit(limit)
            .all()
        )


class PatientService:
    """Service for patient accounts and consent."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, email: str, full_name: Optional[str] = None) -> PatientModel:
        """Register a new patient."""
        patient = PatientModel(
            email=email.strip().lower(),
            full_name=full_name,
            created_at=datetime.now(timezone.utc),
        )

        self.db.add(patient)
        self.db.commit()
        self.db.refresh(patient)
        return patient

    def get(self, patient_id: str) -> Optional[PatientModel]:
        return self.db.get(PatientModel, patient_id)

    def get_by_email(self, email: str) -> Optional[PatientModel]:
        return (
            self.db.query(PatientModel)
            .filter(PatientModel.email == email.strip().lower())
            .first()
        )

    def set_consents(
        self, patient: PatientModel, consents: Dict[str, bool]
    ) -> PatientModel:
        """Replace the patient's consent flags."""
        patient.consents = dict(consents)
        patient.consented_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(patient)
        return patient

    def withdraw_consents(self, patient: PatientModel) -> PatientModel:
        """Clear every consent flag."""
        patient.consents = {key: False for key in (patient.consents or {})}
        patient.consented_at = None
        self.db.commit()
        self.db.refresh(patient)
        return patient
