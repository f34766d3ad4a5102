"""Consent, data export and logout endpoints."""

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import AuthContext, SessionAuthProvider, get_auth_context
from ..db.audit_service import AuditRecorder
from ..db.base import get_db
from ..db.services import AnalysisService, PatientService, UploadRecordService
from ..enums import AuditAction, Modality, ResourceType
from ..schemas.requests import ConsentRequest

logger = structlog.get_logger()

router = APIRouter(prefix="/api", tags=["account"])

EXPORT_LIMIT = 1000


def _patient_or_404(db: Session, auth: AuthContext):
    patient = PatientService(db).get(auth.user_id)
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")
    return patient


@router.get("/consent")
async def get_consent(
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Current consent flags of the caller."""
    patient = _patient_or_404(db, auth)
    return {
        "consents": patient.consents or {},
        "consented_at": patient.to_dict()["consented_at"],
        "complete": patient.has_required_consent(),
    }


@router.post("/consent")
async def grant_consent(
    request: ConsentRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Record the consent form. HIPAA, data-processing and AI-analysis are required."""
    if not request.complete:
        raise HTTPException(
            status_code=400, detail="Please accept all required consents to continue"
        )

    patient = _patient_or_404(db, auth)
    consents = request.model_dump()
    PatientService(db).set_consents(patient, consents)
    AuditRecorder(db).record(
        auth.user_id,
        AuditAction.CONSENT_GRANTED,
        ResourceType.PATIENT,
        patient.id,
        consents,
    )
    return {"success": True, "consents": consents}


@router.delete("/consent")
async def withdraw_consent(
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Withdraw every consent."""
    patient = _patient_or_404(db, auth)
    PatientService(db).withdraw_consents(patient)
    AuditRecorder(db).record(
        auth.user_id,
        AuditAction.CONSENT_WITHDRAWN,
        ResourceType.PATIENT,
        patient.id,
    )
    return {"success": True}


@router.get("/export")
async def export_data(
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Everything stored about the caller, including their audit trail."""
    patient = _patient_or_404(db, auth)
    audit = AuditRecorder(db)
    audit.record(auth.user_id, AuditAction.EXPORT_DATA, ResourceType.PATIENT, patient.id)

    return {
        "patient": patient.to_dict(),
        "fundus_images": [
            r.to_dict()
            for r in UploadRecordService(db, Modality.FUNDUS).list(
                auth.user_id, limit=EXPORT_LIMIT
            )
        ],
        "erg_recordings": [
            r.to_dict()
            for r in UploadRecordService(db, Modality.ERG).list(
                auth.user_id, limit=EXPORT_LIMIT
            )
        ],
        "analyses": [
            a.to_dict()
            for a in AnalysisService(db).list(auth.user_id, limit=EXPORT_LIMIT)
        ],
        "audit_events": [
            e.to_dict() for e in audit.recent_for_user(auth.user_id, limit=EXPORT_LIMIT)
        ],
    }


@router.post("/auth/logout")
async def logout(
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Revoke the caller's session."""
    SessionAuthProvider(db).revoke(auth.session_token)
    AuditRecorder(db).record(auth.user_id, AuditAction.USER_LOGOUT, ResourceType.SESSION)
    logger.info("user_logged_out", user_id=auth.user_id)
    return {"success": True}
