"""
Job Lifecycle Engine.

Drives upload records through ``pending -> processing -> completed | failed``
and multimodal analyses through ``processing -> completed | failed``.

Every transition is a single conditional UPDATE keyed on the expected current
status, so a status and its dependent fields change together and racing
callers cannot double-start or double-finalize a record. The engine holds no
state of its own; the database row is the only source of truth.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Union

import structlog
from sqlalchemy import update
from sqlalchemy.orm import Session

from ..enums import AnalysisStatus, Modality, ProcessingStatus
from ..exceptions import PreconditionError
from ..db.models import (
    ErgRecordingModel,
    FundusImageModel,
    MultimodalAnalysisModel,
    UPLOAD_MODELS,
    upload_model_for,
)
from ..schemas.features import AnalysisDetails, ErgFeatures, FundusFeatures
from .fusion import FusionResult, clamp_unit

logger = structlog.get_logger()

STALE_REASON = "Processing timed out"


@dataclass(frozen=True)
class Success:
    """Derived features and quality score for a completed upload."""

    features: Union[FundusFeatures, ErgFeatures]
    quality_score: float


@dataclass(frozen=True)
class Failure:
    reason: str


@dataclass(frozen=True)
class AnalysisSuccess:
    """Fusion output and breakdown for a completed analysis."""

    fusion: FusionResult
    details: AnalysisDetails


Outcome = Union[Success, Failure]
AnalysisOutcome = Union[AnalysisSuccess, Failure]


class JobLifecycleEngine:
    """Stateless transformer applying one forward transition per call."""

    def __init__(self, db: Session):
        self.db = db

    def start_processing(self, modality: Modality, record_id: str) -> bool:
        """Move a record from pending to processing.

        Returns:
            True if this call performed the transition, False if the record
            was missing or not pending (a repeated start is a no-op).
        """
        model = upload_model_for(modality)
        result = self.db.execute(
            update(model)
            .where(
                model.id == record_id,
                model.processing_status == ProcessingStatus.PENDING.value,
            )
            .values(
                processing_status=ProcessingStatus.PROCESSING.value,
                processing_started_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

        started = result.rowcount == 1
        logger.info(
            "processing_started" if started else "processing_start_skipped",
            modality=Modality(modality).value,
            record_id=record_id,
        )
        return started

    def finalize(self, modality: Modality, record_id: str, outcome: Outcome) -> bool:
        """Move a processing record to its terminal state.

        Success writes status, quality score, features and processed_at in
        one UPDATE; Failure writes the failed status and reason.

        Returns:
            True if the record was finalized, False if it was not processing.
        """
        modality = Modality(modality)
        model = upload_model_for(modality)
        now = datetime.now(timezone.utc)

        if isinstance(outcome, Success):
            if outcome.features.modality != modality.value:
                raise ValueError(
                    f"{outcome.features.modality} features cannot finalize a "
                    f"{modality.value} record"
                )
            values = {
                "processing_status": ProcessingStatus.COMPLETED.value,
                "quality_score": clamp_unit(outcome.quality_score),
                "extracted_features": outcome.features.model_dump(),
                "failure_reason": None,
                "processed_at": now,
            }
        elif isinstance(outcome, Failure):
            values = {
                "processing_status": ProcessingStatus.FAILED.value,
                "failure_reason": outcome.reason,
                "processed_at": now,
            }
        else:
            raise TypeError(f"Unsupported outcome: {outcome!r}")

        result = self.db.execute(
            update(model)
            .where(
                model.id == record_id,
                model.processing_status == ProcessingStatus.PROCESSING.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

        finalized = result.rowcount == 1
        if finalized:
            logger.info(
                "processing_finalized",
                modality=modality.value,
                record_id=record_id,
                status=values["processing_status"],
            )
        else:
            logger.warning(
                "finalize_skipped_not_processing",
                modality=modality.value,
                record_id=record_id,
            )
        return finalized

    def start_analysis(
        self, owner_id: str, fundus_id: str, erg_id: str
    ) -> MultimodalAnalysisModel:
        """Create an analysis in processing over two completed, owned records.

        Raises:
            PreconditionError: if either record is missing, not owned by
                ``owner_id`` or not completed. No analysis row is created.
        """
        fundus = (
            self.db.query(FundusImageModel)
            .filter(
                FundusImageModel.id == fundus_id,
                FundusImageModel.owner_id == owner_id,
                FundusImageModel.processing_status == ProcessingStatus.COMPLETED.value,
            )
            .first()
        )
        erg = (
            self.db.query(ErgRecordingModel)
            .filter(
                ErgRecordingModel.id == erg_id,
                ErgRecordingModel.owner_id == owner_id,
                ErgRecordingModel.processing_status == ProcessingStatus.COMPLETED.value,
            )
            .first()
        )
        if fundus is None or erg is None:
            raise PreconditionError("Selected data not found or not processed")

        analysis = MultimodalAnalysisModel(
            owner_id=owner_id,
            fundus_image_id=fundus.id,
            erg_recording_id=erg.id,
            analysis_status=AnalysisStatus.PROCESSING.value,
            created_at=datetime.now(timezone.utc),
        )
        self.db.add(analysis)
        self.db.commit()
        self.db.refresh(analysis)

        logger.info(
            "analysis_started",
            analysis_id=analysis.id,
            fundus_id=fundus.id,
            erg_id=erg.id,
        )
        return analysis

    def finalize_analysis(self, analysis_id: str, outcome: AnalysisOutcome) -> bool:
        """Move a processing analysis to completed or failed in one UPDATE."""
        now = datetime.now(timezone.utc)

        if isinstance(outcome, AnalysisSuccess):
            fusion = outcome.fusion
            values = {
                "analysis_status": AnalysisStatus.COMPLETED.value,
                "fundus_confidence": fusion.fundus_confidence,
                "erg_confidence": fusion.erg_confidence,
                "combined_confidence": clamp_unit(fusion.combined_confidence),
                "color_blindness_type": fusion.color_blindness_type.value,
                "severity_level": fusion.severity_level.value,
                "analysis_details": outcome.details.model_dump(),
                "failure_reason": None,
                "completed_at": now,
            }
        elif isinstance(outcome, Failure):
            values = {
                "analysis_status": AnalysisStatus.FAILED.value,
                "failure_reason": outcome.reason,
                "completed_at": now,
            }
        else:
            raise TypeError(f"Unsupported outcome: {outcome!r}")

        result = self.db.execute(
            update(MultimodalAnalysisModel)
            .where(
                MultimodalAnalysisModel.id == analysis_id,
                MultimodalAnalysisModel.analysis_status
                == AnalysisStatus.PROCESSING.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

        finalized = result.rowcount == 1
        if finalized:
            logger.info(
                "analysis_finalized",
                analysis_id=analysis_id,
                status=values["analysis_status"],
            )
        else:
            logger.warning("analysis_finalize_skipped", analysis_id=analysis_id)
        return finalized

    def fail_stale(self, cutoff: datetime, reason: str = STALE_REASON) -> int:
        """Fail every record and analysis stuck in processing since before ``cutoff``.

        Returns:
            Number of rows moved to failed
        """
        now = datetime.now(timezone.utc)
        total = 0

        for modality, model in UPLOAD_MODELS.items():
            result = self.db.execute(
                update(model)
                .where(
                    model.processing_status == ProcessingStatus.PROCESSING.value,
                    model.processing_started_at < cutoff,
                )
                .values(
                    processing_status=ProcessingStatus.FAILED.value,
                    failure_reason=reason,
                    processed_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount:
                logger.warning(
                    "stale_records_failed",
                    modality=modality.value,
                    count=result.rowcount,
                )
            total += result.rowcount

        result = self.db.execute(
            update(MultimodalAnalysisModel)
            .where(
                MultimodalAnalysisModel.analysis_status
                == AnalysisStatus.PROCESSING.value,
                MultimodalAnalysisModel.created_at < cutoff,
            )
            .values(
                analysis_status=AnalysisStatus.FAILED.value,
                failure_reason=reason,
                completed_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.warning("stale_analyses_failed", count=result.rowcount)
        total += result.rowcount

        self.db.commit()
        return total

