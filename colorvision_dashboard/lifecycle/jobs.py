"""
Deferred units of work run by a dispatcher.

A ``Job`` carries only identifiers; ``run_job`` opens its own session from a
session factory, so background work never touches the request's session.

Flow for an upload job:
1. Derive features for the record's modality (simulated)
2. Finalize the record as completed with features and quality score
3. On any error, finalize it as failed instead

Flow for an analysis job:
1. Load the analysis and both source records
2. Estimate per-modality confidences and fuse them
3. Finalize the analysis and record ``complete_ai_analysis``
4. On any error, finalize it as failed instead
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional

import structlog
from sqlalchemy.orm import Session
from ulid import ULID

from ..db.audit_service import AuditRecorder
from ..db.models import ErgRecordingModel, FundusImageModel, MultimodalAnalysisModel
from ..enums import AuditAction, Modality, ResourceType
from ..exceptions import RecordNotFoundError
from ..schemas.features import parse_features
from .derivation import (
    build_analysis_details,
    derive_features,
    estimate_erg_confidence,
    estimate_fundus_confidence,
)
from .engine import AnalysisSuccess, Failure, JobLifecycleEngine, Success
from .fusion import FusionScorer

logger = structlog.get_logger()

SessionFactory = Callable[[], Session]


class JobKind(str, Enum):
    UPLOAD = "upload"
    ANALYSIS = "analysis"


@dataclass(frozen=True)
class Job:
    """A unit of deferred finalization work."""

    kind: JobKind
    resource_id: str
    modality: Optional[Modality] = None
    delay_seconds: float = 0.0
    job_id: str = field(default_factory=lambda: str(ULID()))

    @classmethod
    def for_upload(cls, modality: Modality, record_id: str, delay_seconds: float = 0.0) -> "Job":
        return cls(
            kind=JobKind.UPLOAD,
            resource_id=record_id,
            modality=Modality(modality),
            delay_seconds=delay_seconds,
        )

    @classmethod
    def for_analysis(cls, analysis_id: str, delay_seconds: float = 0.0) -> "Job":
        return cls(
            kind=JobKind.ANALYSIS,
            resource_id=analysis_id,
            delay_seconds=delay_seconds,
        )


def _failure_reason(error: Exception) -> str:
    return str(error) or type(error).__name__


def process_upload(db: Session, job: Job, rng: random.Random) -> bool:
    """Derive features for an upload record and finalize it."""
    engine = JobLifecycleEngine(db)
    try:
        features, quality = derive_features(job.modality, rng)
        return engine.finalize(job.modality, job.resource_id, Success(features, quality))
    except Exception as e:
        logger.exception(
            "upload_processing_error",
            job_id=job.job_id,
            modality=job.modality.value,
            record_id=job.resource_id,
        )
        db.rollback()
        return engine.finalize(job.modality, job.resource_id, Failure(_failure_reason(e)))


def process_analysis(db: Session, job: Job, rng: random.Random) -> bool:
    """Fuse the two source records of an analysis and finalize it."""
    engine = JobLifecycleEngine(db)
    try:
        analysis = db.get(MultimodalAnalysisModel, job.resource_id)
        if analysis is None:
            raise RecordNotFoundError(ResourceType.ANALYSIS.value, job.resource_id)

        fundus = (
            db.get(FundusImageModel, analysis.fundus_image_id)
            if analysis.fundus_image_id
            else None
        )
        erg = (
            db.get(ErgRecordingModel, analysis.erg_recording_id)
            if analysis.erg_recording_id
            else None
        )
        if fundus is None:
            raise RecordNotFoundError(ResourceType.FUNDUS_IMAGE.value, analysis.fundus_image_id)
        if erg is None:
            raise RecordNotFoundError(ResourceType.ERG_DATA.value, analysis.erg_recording_id)

        fundus_features = parse_features(fundus.extracted_features)
        erg_features = parse_features(erg.extracted_features)

        scorer = FusionScorer(rng)
        fusion = scorer.score(
            estimate_fundus_confidence(rng), estimate_erg_confidence(rng)
        )
        details = build_analysis_details(
            fundus_features, erg_features, erg.quality_score, rng, scorer.weights
        )

        finalized = engine.finalize_analysis(
            job.resource_id, AnalysisSuccess(fusion=fusion, details=details)
        )
        if finalized:
            AuditRecorder(db).record(
                analysis.owner_id,
                AuditAction.COMPLETE_AI_ANALYSIS,
                ResourceType.ANALYSIS,
                job.resource_id,
                {
                    "color_blindness_type": fusion.color_blindness_type.value,
                    "severity_level": fusion.severity_level.value,
                    "combined_confidence": fusion.combined_confidence,
                },
            )
        return finalized
    except Exception as e:
        logger.exception(
            "analysis_processing_error",
            job_id=job.job_id,
            analysis_id=job.resource_id,
        )
        db.rollback()
        return engine.finalize_analysis(job.resource_id, Failure(_failure_reason(e)))


def run_job(
    job: Job,
    session_factory: SessionFactory,
    rng: Optional[random.Random] = None,
) -> bool:
    """Execute one job in a fresh session.

    Returns:
        True if the job finalized its resource
    """
    rng = rng or random.Random()
    db = session_factory()
    try:
        log = logger.bind(job_id=job.job_id, kind=job.kind.value, resource_id=job.resource_id)
        log.info("job_started")
        if job.kind == JobKind.UPLOAD:
            finalized = process_upload(db, job, rng)
        else:
            finalized = process_analysis(db, job, rng)
        log.info("job_finished", finalized=finalized)
        return finalized
    finally:
        db.close()


def reconcile_stale_jobs(
    session_factory: SessionFactory,
    timeout_seconds: int,
    now: Optional[datetime] = None,
) -> int:
    """Fail every record stuck in processing for longer than ``timeout_seconds``."""
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(seconds=timeout_seconds)
    db = session_factory()
    try:
        return JobLifecycleEngine(db).fail_stale(cutoff)
    finally:
        db.close()
