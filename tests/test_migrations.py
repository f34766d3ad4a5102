"""Tests for the initial Alembic revision."""

import importlib.util
import io
from pathlib import Path

import pytest
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect

REVISION_PATH = Path(__file__).parent.parent / "migrations" / "versions" / "001_initial.py"

TABLES = {
    "patients",
    "patient_sessions",
    "fundus_images",
    "erg_recordings",
    "multimodal_analyses",
    "audit_events",
}


@pytest.fixture
def revision():
    spec = importlib.util.spec_from_file_location("initial_revision", REVISION_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _render_postgres(step) -> str:
    buffer = io.StringIO()
    context = MigrationContext.configure(
        dialect_name="postgresql",
        opts={"as_sql": True, "output_buffer": buffer},
    )
    with Operations.context(context):
        step()
    return buffer.getvalue()


def test_postgres_upgrade_creates_processing_status_once(revision):
    sql = _render_postgres(revision.upgrade)

    assert sql.count("CREATE TYPE processing_status") == 1
    assert sql.index("CREATE TYPE processing_status") < sql.index("CREATE TABLE fundus_images")
    assert "CREATE TABLE erg_recordings" in sql


def test_postgres_downgrade_drops_processing_status(revision):
    sql = _render_postgres(revision.downgrade)

    assert "DROP TYPE processing_status" in sql
    assert sql.index("DROP TABLE fundus_images") < sql.index("DROP TYPE processing_status")


def test_sqlite_upgrade_and_downgrade(revision):
    engine = create_engine("sqlite://")
    with engine.connect() as connection:
        with Operations.context(MigrationContext.configure(connection)):
            revision.upgrade()
        assert TABLES <= set(inspect(connection).get_table_names())

        with Operations.context(MigrationContext.configure(connection)):
            revision.downgrade()
        assert not TABLES & set(inspect(connection).get_table_names())
    engine.dispose()
