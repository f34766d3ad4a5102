"""
Database package for the ColorVision dashboard.
"""

from .audit_models import AuditEventModel
from .audit_service import AuditRecorder
from .base import Base, get_db, get_engine, get_session_local, init_database
from .models import (
    ErgRecordingModel,
    FundusImageModel,
    MultimodalAnalysisModel,
    PatientModel,
    PatientSessionModel,
)

__all__ = [
    "Base",
    "get_engine",
    "get_session_local",
    "get_db",
    "init_database",
    "AuditEventModel",
    "AuditRecorder",
    "ErgRecordingModel",
    "FundusImageModel",
    "MultimodalAnalysisModel",
    "PatientModel",
    "PatientSessionModel",
]
