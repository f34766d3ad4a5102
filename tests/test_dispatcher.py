"""Tests for job dispatchers."""

import asyncio
import random

import pytest

from colorvision_dashboard.config import Settings
from colorvision_dashboard.enums import Modality
from colorvision_dashboard.lifecycle.dispatcher import (
    AsyncioDispatcher,
    InlineDispatcher,
    create_dispatcher,
)
from colorvision_dashboard.lifecycle.engine import JobLifecycleEngine
from colorvision_dashboard.lifecycle.jobs import Job


def _processing_record(db_session, patient, make_record, modality=Modality.FUNDUS):
    record = make_record(modality, patient.id)
    JobLifecycleEngine(db_session).start_processing(modality, record.id)
    return record


class TestCreateDispatcher:
    def test_asyncio_mode(self, session_factory):
        settings = Settings(job_dispatch_mode="asyncio")
        assert isinstance(create_dispatcher(settings, session_factory), AsyncioDispatcher)

    def test_inline_mode(self, session_factory):
        settings = Settings(job_dispatch_mode="INLINE")
        assert isinstance(create_dispatcher(settings, session_factory), InlineDispatcher)

    def test_unknown_mode(self, session_factory):
        with pytest.raises(ValueError, match="Unsupported job dispatch mode"):
            create_dispatcher(Settings(job_dispatch_mode="celery"), session_factory)


def test_inline_dispatcher_finalizes_before_returning(
    db_session, session_factory, patient, make_record
):
    record = _processing_record(db_session, patient, make_record)
    dispatcher = InlineDispatcher(session_factory, random.Random(1))

    handle = dispatcher.submit(Job.for_upload(Modality.FUNDUS, record.id, delay_seconds=30))

    assert handle.kind == "upload"
    assert handle.resource_id == record.id
    db_session.refresh(record)
    assert record.processing_status == "completed"


@pytest.mark.asyncio
async def test_asyncio_dispatcher_returns_before_finalizing(
    db_session, session_factory, patient, make_record
):
    record = _processing_record(db_session, patient, make_record, Modality.ERG)
    dispatcher = AsyncioDispatcher(session_factory, random.Random(1))

    handle = dispatcher.submit(Job.for_upload(Modality.ERG, record.id, delay_seconds=0.01))
    task = dispatcher.running_tasks[handle.job_id]

    db_session.refresh(record)
    assert record.processing_status == "processing"

    await task
    db_session.refresh(record)
    assert record.processing_status == "completed"

    await asyncio.sleep(0)
    assert handle.job_id not in dispatcher.running_tasks
    await dispatcher.stop()


@pytest.mark.asyncio
async def test_stop_cancels_pending_jobs(db_session, session_factory, patient, make_record):
    record = _processing_record(db_session, patient, make_record)
    dispatcher = AsyncioDispatcher(session_factory)

    dispatcher.submit(Job.for_upload(Modality.FUNDUS, record.id, delay_seconds=60))
    dispatcher.start_sweeper(interval_seconds=60, timeout_seconds=900)
    await dispatcher.stop()

    assert dispatcher.running_tasks == {}
    db_session.refresh(record)
    assert record.processing_status == "processing"


@pytest.mark.asyncio
async def test_many_records_process_concurrently(
    db_session, session_factory, patient, make_record
):
    records = [_processing_record(db_session, patient, make_record) for _ in range(5)]
    dispatcher = AsyncioDispatcher(session_factory, random.Random(4))

    handles = [
        dispatcher.submit(Job.for_upload(Modality.FUNDUS, r.id, delay_seconds=0.01))
        for r in records
    ]
    await asyncio.gather(*(dispatcher.running_tasks[h.job_id] for h in handles))

    for record in records:
        db_session.refresh(record)
        assert record.processing_status == "completed"
    await dispatcher.stop()
