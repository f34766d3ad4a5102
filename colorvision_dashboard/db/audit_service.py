"""
Audit Recorder.

Appends one immutable AuditEvent per user-triggered action. Writes are
best-effort: a failed audit write is logged and rolled back, and never
aborts the operation it accompanies.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import structlog
from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from ulid import ULID

from ..enums import AuditAction, ResourceType
from .audit_models import AuditEventModel

logger = structlog.get_logger()


def generate_ulid() -> str:
    """Generate a ULID for audit entries."""
    return str(ULID())


class AuditRecorder:
    """Best-effort writer for the audit trail.

    Usage:
        audit = AuditRecorder(db_session)
        audit.record(user_id, AuditAction.UPLOAD_FUNDUS_IMAGE,
                     ResourceType.FUNDUS_IMAGE, record.id, {"filename": name})

    The primary operation must be committed before ``record`` is called;
    the recorder commits its own row and rolls back only that row on failure.
    """

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        user_id: str,
        action: AuditAction,
        resource_type: Union[ResourceType, str],
        resource_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditEventModel]:
        """Append an audit event.

        Args:
            user_id: ID of the acting user
            action: Action from the fixed audit vocabulary
            resource_type: Kind of resource affected
            resource_id: ID of the resource, if any
            metadata: Free-form context for the event

        Returns:
            The persisted AuditEventModel, or None if the write failed
        """
        entry = AuditEventModel(
            id=generate_ulid(),
            user_id=user_id,
            action=AuditAction(action).value,
            resource_type=ResourceType(resource_type).value,
            resource_id=resource_id,
            metadata_=metadata or {},
            timestamp=datetime.now(timezone.utc),
        )

        try:
            self.db.add(entry)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "audit_write_failed",
                action=entry.action,
                resource_type=entry.resource_type,
                resource_id=resource_id,
                error=str(e),
            )
            return None

        return entry

    def recent_for_user(self, user_id: str, limit: int = 100) -> List[AuditEventModel]:
        """Most recent audit events for a user, newest first."""
        return (
            self.db.query(AuditEventModel)
            .filter(AuditEventModel.user_id == user_id)
            .order_by(desc(AuditEventModel.timestamp), desc(AuditEventModel.id))
            .limit(limit)
            .all()
        )
