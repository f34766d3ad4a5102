"""
Upload record endpoints, one router per modality.

    POST   /api/{modality}/upload      store the artifact, insert a pending row
    GET    /api/{modality}             list the caller's records
    GET    /api/{modality}/{id}        fetch one record (polling)
    POST   /api/{modality}/process     start processing a pending record
    DELETE /api/{modality}/delete      remove a record and its artifact
"""

from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session

from ..auth import AuthContext, get_auth_context
from ..config import Settings, get_settings
from ..db.audit_service import AuditRecorder
from ..db.base import get_db
from ..db.services import UploadRecordService
from ..deps import get_artifact_store, get_dispatcher
from ..enums import MODALITY_ACTIONS, MODALITY_RESOURCE_TYPES, Modality, ProcessingStatus
from ..exceptions import ArtifactValidationError, StorageError
from ..lifecycle.dispatcher import JobDispatcher
from ..lifecycle.engine import JobLifecycleEngine
from ..lifecycle.jobs import Job
from ..schemas.requests import DeleteRequest, ProcessRequest
from ..storage import ArtifactStore
from .errors import to_http_exception

logger = structlog.get_logger()


def validate_artifact(
    modality: Modality,
    filename: str,
    content_type: Optional[str],
    size: int,
    settings: Settings,
) -> None:
    """Check an uploaded file's type and size for ``modality``.

    Raises:
        ArtifactValidationError: if the file is empty, too large or of the
            wrong type
    """
    if size == 0:
        raise ArtifactValidationError("No file provided")

    if modality == Modality.FUNDUS:
        if not (content_type or "").startswith("image/"):
            raise ArtifactValidationError("File must be an image")
        limit = settings.fundus_max_upload_bytes
    else:
        extension = PurePosixPath(filename or "").suffix.lower()
        allowed = settings.erg_extension_list()
        if extension not in allowed:
            raise ArtifactValidationError(
                f"File must be one of: {', '.join(allowed)}"
            )
        limit = settings.erg_max_upload_bytes

    if size > limit:
        raise ArtifactValidationError(
            f"File size must be less than {limit // (1024 * 1024)}MB"
        )


def processing_delay(modality: Modality, settings: Settings) -> float:
    if modality == Modality.FUNDUS:
        return settings.fundus_processing_delay_seconds
    return settings.erg_processing_delay_seconds


def build_upload_router(modality: Modality) -> APIRouter:
    """Create the router serving records of one modality."""
    modality = Modality(modality)
    actions = MODALITY_ACTIONS[modality]
    resource_type = MODALITY_RESOURCE_TYPES[modality]
    router = APIRouter(prefix=f"/api/{modality.value}", tags=[modality.value])

    @router.post("/upload", status_code=201)
    async def upload(
        file: UploadFile = File(...),
        auth: AuthContext = Depends(get_auth_context),
        db: Session = Depends(get_db),
        store: ArtifactStore = Depends(get_artifact_store),
        settings: Settings = Depends(get_settings),
    ) -> Dict[str, Any]:
        """Store an uploaded file and register it as a pending record."""
        try:
            if file.size is not None:
                validate_artifact(
                    modality, file.filename, file.content_type, file.size, settings
                )
            content = await file.read()
            validate_artifact(
                modality, file.filename, file.content_type, len(content), settings
            )
        except ArtifactValidationError as e:
            raise to_http_exception(e)

        try:
            url = store.put(
                f"{modality.value}/{auth.user_id}", file.filename or "upload", content
            )
        except StorageError as e:
            logger.error("upload_store_failed", modality=modality.value, error=e.message)
            raise HTTPException(status_code=500, detail="Upload failed")

        record = UploadRecordService(db, modality).create(
            owner_id=auth.user_id,
            filename=file.filename or "upload",
            artifact_url=url,
            file_size=len(content),
            mime_type=file.content_type,
        )
        AuditRecorder(db).record(
            auth.user_id,
            actions["upload"],
            resource_type,
            record.id,
            {"filename": record.filename, "file_size": record.file_size},
        )
        logger.info("record_uploaded", modality=modality.value, record_id=record.id)
        return {"url": url, "recordId": record.id}

    @router.get("")
    async def list_records(
        status: Optional[ProcessingStatus] = None,
        limit: int = Query(100, ge=1, le=1000),
        offset: int = Query(0, ge=0),
        auth: AuthContext = Depends(get_auth_context),
        db: Session = Depends(get_db),
    ) -> List[Dict[str, Any]]:
        """List the caller's records, newest first."""
        records = UploadRecordService(db, modality).list(
            auth.user_id,
            status=status.value if status else None,
            limit=limit,
            offset=offset,
        )
        return [r.to_dict() for r in records]

    @router.get("/{record_id}")
    async def get_record(
        record_id: str,
        auth: AuthContext = Depends(get_auth_context),
        db: Session = Depends(get_db),
    ) -> Dict[str, Any]:
        """Get one of the caller's records."""
        record = UploadRecordService(db, modality).get(record_id, auth.user_id)
        if not record:
            raise HTTPException(status_code=404, detail="Record not found")

        AuditRecorder(db).record(auth.user_id, actions["view"], resource_type, record.id)
        return record.to_dict()

    @router.post("/process")
    async def process(
        request: ProcessRequest,
        auth: AuthContext = Depends(get_auth_context),
        db: Session = Depends(get_db),
        dispatcher: JobDispatcher = Depends(get_dispatcher),
        settings: Settings = Depends(get_settings),
    ) -> Dict[str, Any]:
        """Move a pending record to processing and schedule its finalization.

        A repeated call on a record that is already processing is acknowledged
        without scheduling a second job.
        """
        service = UploadRecordService(db, modality)
        record = service.get(request.record_id, auth.user_id)
        if not record:
            raise HTTPException(status_code=404, detail="Record not found")

        engine = JobLifecycleEngine(db)
        if not engine.start_processing(modality, record.id):
            record = service.get(request.record_id, auth.user_id)
            if not record:
                raise HTTPException(status_code=404, detail="Record not found")
            status = ProcessingStatus(record.processing_status)
            if not status.is_terminal:
                return {"success": True, "message": "Processing already started"}
            raise HTTPException(
                status_code=400,
                detail=f"Record is already {status.value}",
            )

        handle = dispatcher.submit(
            Job.for_upload(modality, record.id, processing_delay(modality, settings))
        )
        return {"success": True, "message": "Processing started", "jobId": handle.job_id}

    @router.delete("/delete")
    async def delete(
        request: DeleteRequest,
        auth: AuthContext = Depends(get_auth_context),
        db: Session = Depends(get_db),
        store: ArtifactStore = Depends(get_artifact_store),
    ) -> Dict[str, Any]:
        """Delete a record and its backing artifact."""
        service = UploadRecordService(db, modality)
        if request.record_id:
            record = service.get(request.record_id, auth.user_id)
        else:
            record = service.get_by_url(request.url, auth.user_id)
        if not record:
            raise HTTPException(status_code=404, detail="Record not found")

        record_id = record.id
        artifact_url = record.artifact_url
        if store.owns(artifact_url):
            try:
                store.delete(artifact_url)
            except StorageError as e:
                logger.error("artifact_delete_failed", record_id=record_id, error=e.message)
                raise HTTPException(status_code=500, detail="Delete failed")
        else:
            logger.warning("artifact_outside_store", record_id=record_id, url=artifact_url)

        service.delete(record)
        AuditRecorder(db).record(
            auth.user_id,
            actions["delete"],
            resource_type,
            record_id,
            {"artifact_url": artifact_url},
        )
        return {"success": True}

    return router


fundus_router = build_upload_router(Modality.FUNDUS)
erg_router = build_upload_router(Modality.ERG)
