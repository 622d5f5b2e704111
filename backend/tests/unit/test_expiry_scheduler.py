"""
Unit Tests for Expiry Scheduler Service

Tests the sweep that marks past-expiry certificates as expired.
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.models import CertificateRecord
from app.services.expiry_scheduler import (
    SWEEP_JOB_ID,
    expire_certificates,
    get_scheduler_status,
    scheduler,
    start_expiry_scheduler,
    stop_expiry_scheduler,
)

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def iso(moment: datetime) -> str:
    return moment.isoformat().replace("+00:00", "Z")


def make_record(record_id: str, expires_at, status="active") -> CertificateRecord:
    return CertificateRecord(
        id=record_id,
        template_id="classic-blue",
        publisher_id="org-42",
        recipient_email=f"{record_id}@example.com",
        content_hash=record_id * 64,
        certificate_key=(record_id * 64)[::-1],
        status=status,
        issued_at=iso(NOW - timedelta(days=60)),
        expires_at=expires_at,
        created_at=iso(NOW - timedelta(days=60)),
        updated_at=iso(NOW - timedelta(days=60)),
    )


class TestExpireCertificates:
    """Tests for expire_certificates function."""

    @pytest.mark.asyncio
    async def test_past_expiry_marked_expired(self, memory_store):
        await memory_store.insert_record(make_record("a", iso(NOW - timedelta(days=1))))
        await memory_store.insert_record(make_record("b", iso(NOW + timedelta(days=1))))
        await memory_store.insert_record(make_record("c", None))

        summary = await expire_certificates(memory_store, now=NOW)

        assert summary == {"records_scanned": 3, "records_expired": 1, "errors": 0}
        assert [r.id for r in await memory_store.list_records(status="expired")] == ["a"]
        assert len(await memory_store.list_records(status="active")) == 2

    @pytest.mark.asyncio
    async def test_inactive_records_not_scanned(self, memory_store):
        await memory_store.insert_record(
            make_record("a", iso(NOW - timedelta(days=1)), status="revoked")
        )
        summary = await expire_certificates(memory_store, now=NOW)
        assert summary["records_scanned"] == 0
        assert (await memory_store.list_records())[0].status == "revoked"

    @pytest.mark.asyncio
    async def test_unparseable_expiry_counted_as_error(self, memory_store):
        await memory_store.insert_record(make_record("a", "not-a-date"))
        summary = await expire_certificates(memory_store, now=NOW)
        assert summary["errors"] == 1
        assert summary["records_expired"] == 0

    @pytest.mark.asyncio
    async def test_defaults_to_configured_store(self):
        summary = await expire_certificates()
        assert summary["records_scanned"] == 0


class TestSchedulerLifecycle:
    """Tests for scheduler start/stop and status."""

    def test_status_before_start(self):
        status = get_scheduler_status()
        assert status["running"] is False
        assert "interval_hours" in status

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        try:
            start_expiry_scheduler()
            start_expiry_scheduler()  # second call is a no-op

            status = get_scheduler_status()
            assert status["running"] is True
            assert status["job_scheduled"] is True
            assert scheduler.get_job(SWEEP_JOB_ID) is not None
        finally:
            stop_expiry_scheduler()
