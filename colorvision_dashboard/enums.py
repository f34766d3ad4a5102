"""
Canonical enums for records, analyses and the audit trail.

Stored values are the string values below; the database columns use the
same sets as SQL enums.
"""

from enum import Enum


class ProcessingStatus(str, Enum):
    """Lifecycle of an uploaded fundus image or ERG recording."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingStatus.COMPLETED, ProcessingStatus.FAILED)


class AnalysisStatus(str, Enum):
    """Lifecycle of a multimodal analysis. Analyses start in processing."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Modality(str, Enum):
    """Upload modality."""

    FUNDUS = "fundus"
    ERG = "erg"


class ColorBlindnessType(str, Enum):
    NORMAL = "Normal"
    PROTANOPIA = "Protanopia"
    DEUTERANOPIA = "Deuteranopia"
    TRITANOPIA = "Tritanopia"
    PROTANOMALY = "Protanomaly"
    DEUTERANOMALY = "Deuteranomaly"


class SeverityLevel(str, Enum):
    NONE = "None"
    MILD = "Mild"
    MODERATE = "Moderate"
    SEVERE = "Severe"


class ResourceType(str, Enum):
    """Resource kinds referenced by audit events."""

    FUNDUS_IMAGE = "fundus_image"
    ERG_DATA = "erg_data"
    ANALYSIS = "multimodal_analysis"
    PATIENT = "patient"
    SESSION = "session"


class AuditAction(str, Enum):
    """Fixed vocabulary of audited user actions."""

    # Data access
    VIEW_FUNDUS_IMAGE = "view_fundus_image"
    VIEW_ERG_DATA = "view_erg_data"
    VIEW_ANALYSIS_RESULT = "view_analysis_result"

    # Data modification
    UPLOAD_FUNDUS_IMAGE = "upload_fundus_image"
    UPLOAD_ERG_DATA = "upload_erg_data"
    DELETE_FUNDUS_IMAGE = "delete_fundus_image"
    DELETE_ERG_DATA = "delete_erg_data"

    # AI operations
    START_AI_ANALYSIS = "start_ai_analysis"
    COMPLETE_AI_ANALYSIS = "complete_ai_analysis"

    # Authentication
    USER_LOGIN = "user_login"
    USER_LOGOUT = "user_logout"

    # Consent management
    CONSENT_GRANTED = "consent_granted"
    CONSENT_WITHDRAWN = "consent_withdrawn"

    # Data export
    EXPORT_DATA = "export_data"
    DOWNLOAD_REPORT = "download_report"


# Per-modality audit vocabulary and resource naming.
MODALITY_ACTIONS = {
    Modality.FUNDUS: {
        "upload": AuditAction.UPLOAD_FUNDUS_IMAGE,
        "view": AuditAction.VIEW_FUNDUS_IMAGE,
        "delete": AuditAction.DELETE_FUNDUS_IMAGE,
    },
    Modality.ERG: {
        "upload": AuditAction.UPLOAD_ERG_DATA,
        "view": AuditAction.VIEW_ERG_DATA,
        "delete": AuditAction.DELETE_ERG_DATA,
    },
}

MODALITY_RESOURCE_TYPES = {
    Modality.FUNDUS: ResourceType.FUNDUS_IMAGE,
    Modality.ERG: ResourceType.ERG_DATA,
}
