"""
Audit Event Database Model.

Append-only record of user actions (uploads, views, deletions, analysis
start/completion, consent, exports). Rows are never updated or deleted.
"""

from typing import Any, Dict

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum,
    Index,
    String,
)
from sqlalchemy.sql import func

from ..enums import AuditAction
from .base import Base


audit_action_enum = Enum(
    *[action.value for action in AuditAction],
    name="audit_action",
)


class AuditEventModel(Base):
    """Immutable audit trail entry."""

    __tablename__ = "audit_events"

    # Primary key (ULID for sortability and uniqueness)
    id = Column(String(36), primary_key=True)

    # Who performed the action
    user_id = Column(String(36), nullable=False, index=True)

    # What action was performed
    action = Column(audit_action_enum, nullable=False, index=True)

    # What resource was affected
    resource_type = Column(String(50), nullable=False)
    resource_id = Column(String(128), nullable=True)

    # "metadata" is reserved on declarative classes
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)

    timestamp = Column(
        DateTime(timezone=True),
        nullable=False,
        default=func.now(),
        index=True,
    )

    __table_args__ = (
        Index("ix_audit_events_resource", "resource_type", "resource_id"),
        Index("ix_audit_events_user_ts", "user_id", "timestamp"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "action": self.action,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "metadata": self.metadata_,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
