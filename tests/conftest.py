"""Test configuration and fixtures."""

import random
from typing import Dict, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from colorvision_dashboard.api import app
from colorvision_dashboard.auth import SessionAuthProvider
from colorvision_dashboard.db import audit_models, models  # noqa: F401
from colorvision_dashboard.db.base import Base, get_db
from colorvision_dashboard.db.models import PatientModel
from colorvision_dashboard.db.services import PatientService, UploadRecordService
from colorvision_dashboard.deps import get_artifact_store, get_dispatcher
from colorvision_dashboard.enums import Modality
from colorvision_dashboard.lifecycle.dispatcher import InlineDispatcher
from colorvision_dashboard.lifecycle.engine import JobLifecycleEngine, Success
from colorvision_dashboard.lifecycle.derivation import derive_features
from colorvision_dashboard.storage import FileArtifactStore


@pytest.fixture
def engine():
    """A fresh in-memory database shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def patient(db_session) -> PatientModel:
    return PatientService(db_session).create("patient@example.com", "Test Patient")


@pytest.fixture
def other_patient(db_session) -> PatientModel:
    return PatientService(db_session).create("other@example.com", "Other Patient")


@pytest.fixture
def auth_headers(db_session, patient) -> Dict[str, str]:
    session = SessionAuthProvider(db_session).issue(patient.id, ttl_minutes=60)
    return {"Authorization": f"Bearer {session.token}"}


@pytest.fixture
def dispatcher(session_factory) -> InlineDispatcher:
    return InlineDispatcher(session_factory, random.Random(1234))


@pytest.fixture
def artifact_store(tmp_path) -> FileArtifactStore:
    return FileArtifactStore(tmp_path / "artifacts")


@pytest.fixture
def client(session_factory, dispatcher, artifact_store) -> Generator[TestClient, None, None]:
    """API client wired to the test database, an inline dispatcher and a temp store."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_artifact_store] = lambda: artifact_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_record(db_session):
    """Insert an upload record, optionally driving it to completed."""

    def _make(modality: Modality, owner_id: str, completed: bool = False, seed: int = 7):
        record = UploadRecordService(db_session, modality).create(
            owner_id=owner_id,
            filename=f"{modality.value}.dat",
            artifact_url=f"file:///tmp/{modality.value}.dat",
            file_size=16,
        )
        if completed:
            engine = JobLifecycleEngine(db_session)
            engine.start_processing(modality, record.id)
            features, quality = derive_features(modality, random.Random(seed))
            engine.finalize(modality, record.id, Success(features, quality))
            db_session.refresh(record)
        return record

    return _make
