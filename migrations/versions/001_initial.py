"""Create initial tables

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None

AUDIT_ACTIONS = (
    "view_fundus_image",
    "view_erg_data",
    "view_analysis_result",
    "upload_fundus_image",
    "upload_erg_data",
    "delete_fundus_image",
    "delete_erg_data",
    "start_ai_analysis",
    "complete_ai_analysis",
    "user_login",
    "user_logout",
    "consent_granted",
    "consent_withdrawn",
    "export_data",
    "download_report",
)

PROCESSING_STATUS_VALUES = ("pending", "processing", "completed", "failed")


def _processing_status_type(bind) -> sa.types.TypeEngine:
    """Postgres gets a reference to the type created once in ``upgrade``."""
    if bind.dialect.name == "postgresql":
        return postgresql.ENUM(
            *PROCESSING_STATUS_VALUES, name="processing_status", create_type=False
        )
    return sa.Enum(*PROCESSING_STATUS_VALUES, name="processing_status")


def _upload_table(name: str, status_type: sa.types.TypeEngine) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "owner_id",
            sa.String(36),
            sa.ForeignKey("patients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("artifact_url", sa.Text, nullable=False),
        sa.Column("file_size", sa.Integer, nullable=False),
        sa.Column("mime_type", sa.String(100), nullable=True),
        sa.Column("processing_status", status_type, nullable=False),
        sa.Column("quality_score", sa.Float, nullable=True),
        sa.Column("extracted_features", sa.JSON, nullable=True),
        sa.Column("failure_reason", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("processing_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "processing_status = 'completed' "
            "OR (quality_score IS NULL AND extracted_features IS NULL)",
            name=f"ck_{name}_completion_fields",
        ),
    )
    op.create_index(f"ix_{name}_owner_id", name, ["owner_id"])
    op.create_index(f"ix_{name}_processing_status", name, ["processing_status"])
    op.create_index(f"ix_{name}_owner_status", name, ["owner_id", "processing_status"])
    op.create_index(
        f"ix_{name}_status_started", name, ["processing_status", "processing_started_at"]
    )


def upgrade() -> None:
    # Patients and sessions
    op.create_table(
        "patients",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("consents", sa.JSON, nullable=True),
        sa.Column("consented_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_patients_email", "patients", ["email"], unique=True)

    op.create_table(
        "patient_sessions",
        sa.Column("token", sa.String(128), primary_key=True),
        sa.Column(
            "patient_id",
            sa.String(36),
            sa.ForeignKey("patients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_patient_sessions_patient_id", "patient_sessions", ["patient_id"]
    )

    # Upload records
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        postgresql.ENUM(*PROCESSING_STATUS_VALUES, name="processing_status").create(
            bind, checkfirst=True
        )
    status_type = _processing_status_type(bind)
    _upload_table("fundus_images", status_type)
    _upload_table("erg_recordings", status_type)

    # Multimodal analyses
    op.create_table(
        "multimodal_analyses",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "owner_id",
            sa.String(36),
            sa.ForeignKey("patients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "fundus_image_id",
            sa.String(36),
            sa.ForeignKey("fundus_images.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "erg_recording_id",
            sa.String(36),
            sa.ForeignKey("erg_recordings.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "analysis_status",
            sa.Enum("processing", "completed", "failed", name="analysis_status"),
            nullable=False,
        ),
        sa.Column("fundus_confidence", sa.Float, nullable=True),
        sa.Column("erg_confidence", sa.Float, nullable=True),
        sa.Column("combined_confidence", sa.Float, nullable=True),
        sa.Column(
            "color_blindness_type",
            sa.Enum(
                "Normal",
                "Protanopia",
                "Deuteranopia",
                "Tritanopia",
                "Protanomaly",
                "Deuteranomaly",
                name="color_blindness_type",
            ),
            nullable=True,
        ),
        sa.Column(
            "severity_level",
            sa.Enum("None", "Mild", "Moderate", "Severe", name="severity_level"),
            nullable=True,
        ),
        sa.Column("analysis_details", sa.JSON, nullable=True),
        sa.Column("failure_reason", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "analysis_status = 'completed' OR ("
            "combined_confidence IS NULL AND color_blindness_type IS NULL "
            "AND severity_level IS NULL AND analysis_details IS NULL)",
            name="ck_multimodal_analyses_completion_fields",
        ),
        sa.CheckConstraint(
            "color_blindness_type IS NULL OR "
            "((color_blindness_type = 'Normal') = (severity_level = 'None'))",
            name="ck_multimodal_analyses_severity_matches_type",
        ),
    )
    op.create_index(
        "ix_multimodal_analyses_owner_id", "multimodal_analyses", ["owner_id"]
    )
    op.create_index(
        "ix_multimodal_analyses_analysis_status",
        "multimodal_analyses",
        ["analysis_status"],
    )
    op.create_index(
        "ix_multimodal_analyses_owner_status",
        "multimodal_analyses",
        ["owner_id", "analysis_status"],
    )

    # Audit trail
    op.create_table(
        "audit_events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column(
            "action", sa.Enum(*AUDIT_ACTIONS, name="audit_action"), nullable=False
        ),
        sa.Column("resource_type", sa.String(50), nullable=False),
        sa.Column("resource_id", sa.String(128), nullable=True),
        sa.Column("metadata", sa.JSON, nullable=False),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_audit_events_user_id", "audit_events", ["user_id"])
    op.create_index("ix_audit_events_action", "audit_events", ["action"])
    op.create_index("ix_audit_events_timestamp", "audit_events", ["timestamp"])
    op.create_index(
        "ix_audit_events_resource", "audit_events", ["resource_type", "resource_id"]
    )
    op.create_index("ix_audit_events_user_ts", "audit_events", ["user_id", "timestamp"])


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_table("multimodal_analyses")
    op.drop_table("erg_recordings")
    op.drop_table("fundus_images")
    op.drop_table("patient_sessions")
    op.drop_table("patients")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for enum_name in (
            "audit_action",
            "severity_level",
            "color_blindness_type",
            "analysis_status",
            "processing_status",
        ):
            sa.Enum(name=enum_name).drop(bind, checkfirst=True)
