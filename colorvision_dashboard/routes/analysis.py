"""
Multimodal analysis endpoints.

Starting an analysis validates both source records synchronously and returns
the new analysis id at once; the fusion result is written later by a job and
observed by polling ``GET /api/analysis/{id}``.
"""

from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import AuthContext, get_auth_context
from ..config import Settings, get_settings
from ..db.audit_service import AuditRecorder
from ..db.base import get_db
from ..db.services import AnalysisService, UploadRecordService
from ..deps import get_dispatcher
from ..enums import AnalysisStatus, AuditAction, Modality, ResourceType
from ..exceptions import PreconditionError
from ..lifecycle.dispatcher import JobDispatcher
from ..lifecycle.engine import JobLifecycleEngine
from ..lifecycle.jobs import Job
from ..schemas.requests import MultimodalStartRequest
from .errors import to_http_exception

logger = structlog.get_logger()

router = APIRouter(prefix="/api/analysis", tags=["analysis"])


@router.post("/multimodal")
async def start_multimodal_analysis(
    request: MultimodalStartRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
    dispatcher: JobDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Create an analysis over a completed fundus image and ERG recording."""
    try:
        analysis = JobLifecycleEngine(db).start_analysis(
            auth.user_id, request.fundus_id, request.erg_id
        )
    except PreconditionError as e:
        raise to_http_exception(e)

    AuditRecorder(db).record(
        auth.user_id,
        AuditAction.START_AI_ANALYSIS,
        ResourceType.ANALYSIS,
        analysis.id,
        {"fundus_id": request.fundus_id, "erg_id": request.erg_id},
    )

    dispatcher.submit(
        Job.for_analysis(analysis.id, settings.analysis_processing_delay_seconds)
    )
    return {
        "success": True,
        "analysisId": analysis.id,
        "message": "Analysis started",
    }


@router.get("")
async def list_analyses(
    status: Optional[AnalysisStatus] = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    """List the caller's analyses, newest first."""
    analyses = AnalysisService(db).list(
        auth.user_id,
        status=status.value if status else None,
        limit=limit,
        offset=offset,
    )
    return [a.to_dict() for a in analyses]


@router.get("/{analysis_id}")
async def get_analysis(
    analysis_id: str,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Get one of the caller's analyses."""
    analysis = AnalysisService(db).get(analysis_id, auth.user_id)
    if not analysis:
        raise HTTPException(status_code=404, detail="Analysis not found")

    AuditRecorder(db).record(
        auth.user_id,
        AuditAction.VIEW_ANALYSIS_RESULT,
        ResourceType.ANALYSIS,
        analysis.id,
    )
    return analysis.to_dict()


@router.get("/{analysis_id}/report")
async def download_report(
    analysis_id: str,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Report for a completed analysis, including both source records."""
    analysis = AnalysisService(db).get(analysis_id, auth.user_id)
    if not analysis:
        raise HTTPException(status_code=404, detail="Analysis not found")
    if analysis.analysis_status != AnalysisStatus.COMPLETED.value:
        raise HTTPException(status_code=400, detail="Analysis is not completed")

    fundus = (
        UploadRecordService(db, Modality.FUNDUS).get(analysis.fundus_image_id, auth.user_id)
        if analysis.fundus_image_id
        else None
    )
    erg = (
        UploadRecordService(db, Modality.ERG).get(analysis.erg_recording_id, auth.user_id)
        if analysis.erg_recording_id
        else None
    )

    AuditRecorder(db).record(
        auth.user_id,
        AuditAction.DOWNLOAD_REPORT,
        ResourceType.ANALYSIS,
        analysis.id,
    )
    return {
        "analysis": analysis.to_dict(),
        "fundus_image": fundus.to_dict() if fundus else None,
        "erg_recording": erg.to_dict() if erg else None,
    }
