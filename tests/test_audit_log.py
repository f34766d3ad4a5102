"""
Tests for the AuditEvent model and AuditRecorder.

Verifies:
- AuditEventModel structure and to_dict()
- AuditRecorder appends events from the fixed vocabulary
- a failed audit write never undoes the operation it accompanies
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from colorvision_dashboard.db.audit_models import AuditEventModel
from colorvision_dashboard.db.audit_service import AuditRecorder, generate_ulid
from colorvision_dashboard.db.services import UploadRecordService
from colorvision_dashboard.enums import AuditAction, Modality, ResourceType


class TestAuditEventModel:
    def test_model_has_required_columns(self):
        columns = {c.name for c in AuditEventModel.__table__.columns}
        assert {
            "id",
            "user_id",
            "action",
            "resource_type",
            "resource_id",
            "metadata",
            "timestamp",
        }.issubset(columns)

    def test_to_dict_output(self):
        entry = AuditEventModel(
            id="01HZX",
            user_id="user-1",
            action="upload_fundus_image",
            resource_type="fundus_image",
            resource_id="rec-1",
            metadata_={"filename": "eye.png"},
            timestamp=datetime(2026, 1, 26, 12, 0, 0, tzinfo=timezone.utc),
        )

        result = entry.to_dict()

        assert result["action"] == "upload_fundus_image"
        assert result["metadata"] == {"filename": "eye.png"}
        assert result["timestamp"] == "2026-01-26T12:00:00+00:00"


class TestAuditRecorder:
    def test_record_event(self, db_session, patient):
        entry = AuditRecorder(db_session).record(
            patient.id,
            AuditAction.UPLOAD_ERG_DATA,
            ResourceType.ERG_DATA,
            "rec-1",
            {"filename": "trace.csv"},
        )

        assert entry is not None
        stored = db_session.get(AuditEventModel, entry.id)
        assert stored.action == "upload_erg_data"
        assert stored.resource_type == "erg_data"
        assert stored.metadata_ == {"filename": "trace.csv"}
        assert stored.timestamp is not None

    def test_metadata_defaults_to_empty(self, db_session, patient):
        entry = AuditRecorder(db_session).record(
            patient.id, AuditAction.USER_LOGOUT, ResourceType.SESSION
        )
        assert entry.metadata_ == {}
        assert entry.resource_id is None

    def test_action_must_come_from_vocabulary(self, db_session, patient):
        with pytest.raises(ValueError):
            AuditRecorder(db_session).record(patient.id, "reboot_server", ResourceType.PATIENT)

    def test_recent_for_user_is_newest_first(self, db_session, patient, other_patient):
        audit = AuditRecorder(db_session)
        first = audit.record(patient.id, AuditAction.CONSENT_GRANTED, ResourceType.PATIENT)
        second = audit.record(patient.id, AuditAction.EXPORT_DATA, ResourceType.PATIENT)
        audit.record(other_patient.id, AuditAction.EXPORT_DATA, ResourceType.PATIENT)

        events = audit.recent_for_user(patient.id)

        assert [e.id for e in events] == [second.id, first.id]

    def test_ulids_are_unique(self):
        first = generate_ulid()
        second = generate_ulid()
        assert len(first) == 26
        assert first != second

    def test_failed_write_does_not_undo_primary_operation(
        self, db_session, patient, monkeypatch
    ):
        record = UploadRecordService(db_session, Modality.FUNDUS).create(
            owner_id=patient.id,
            filename="eye.png",
            artifact_url="file:///tmp/eye.png",
            file_size=3,
        )

        def failing_commit():
            raise OperationalError("INSERT INTO audit_events", {}, Exception("disk full"))

        monkeypatch.setattr(db_session, "commit", failing_commit)
        entry = AuditRecorder(db_session).record(
            patient.id, AuditAction.UPLOAD_FUNDUS_IMAGE, ResourceType.FUNDUS_IMAGE, record.id
        )
        monkeypatch.undo()

        assert entry is None
        assert db_session.query(AuditEventModel).count() == 0
        assert UploadRecordService(db_session, Modality.FUNDUS).get(record.id, patient.id)
