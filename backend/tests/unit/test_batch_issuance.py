"""
Unit tests for the batch issuance orchestrator.

A fake export pipeline keeps these tests fast and lets individual items
fail on demand; one test runs the real Pillow pipeline end to end.
"""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from app.middleware import RenderError
from app.models import BatchCandidate, BatchRequest, BatchState
from app.services import (
    BatchIssuanceOrchestrator,
    ExportedDocument,
    get_batch_registry,
    validate_batch,
)
from app.services.batch_task import execute_batch_job
from app.middleware import ValidationError
from identity_engine import compute_content_hash

BASE_URL = "https://certs.example.com"


class FakePipeline:
    """Export pipeline stand-in that records calls and fails on request."""

    def __init__(self, fail_names=(), fail_calls=(), degraded=False):
        self.fail_names = set(fail_names)
        self.fail_calls = set(fail_calls)
        self.degraded = degraded
        self.calls = []

    async def export(self, template, field_values):
        call_number = len(self.calls)
        self.calls.append(dict(field_values))
        if field_values.get("name") in self.fail_names or call_number in self.fail_calls:
            raise RenderError("Rasterization failed: boom")
        return ExportedDocument(
            content=f"%PDF-fake {field_values.get('name')}".encode(),
            width=569,
            height=437,
            media_type="application/pdf",
            degraded=self.degraded,
            warnings=["template image incomplete"] if self.degraded else [],
        )


def candidate(email="ada@example.com", name="Ada Lovelace", **extra):
    values = {"name": name, "date": "October 18, 2026", "certificateId": "CH-0001"}
    values.update(extra)
    return BatchCandidate(recipient_email=email, field_values=values)


def batch(*candidates, policy="skip"):
    return BatchRequest(
        template_id="classic-blue",
        publisher_id="org-42",
        candidates=list(candidates),
        duplicate_policy=policy,
    )


@pytest.fixture
def fake_pipeline():
    return FakePipeline()


@pytest.fixture
def orchestrator(memory_store, fake_pipeline):
    return BatchIssuanceOrchestrator(
        store=memory_store,
        pipeline=fake_pipeline,
        verification_base_url=BASE_URL,
        max_batch_size=10,
    )


def parse(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class TestIssueNew:
    @pytest.mark.asyncio
    async def test_new_candidates_are_issued(self, orchestrator, memory_store, classic_template):
        result = await orchestrator.run(
            classic_template, batch(candidate(), candidate(email="grace@example.com"))
        )

        assert result.state == BatchState.COMPLETED
        assert result.success is True
        assert (result.issued_count, result.duplicate_count, result.failed_count) == (2, 0, 0)
        assert result.progress == 100
        assert [item.outcome for item in result.items] == ["issued", "issued"]

        records = await memory_store.list_records()
        assert len(records) == 2
        for item in result.items:
            record = await memory_store.find_by_key(item.certificate_key)
            assert record.status == "active"
            assert record.document_url == f"{BASE_URL}/api/documents/{item.certificate_key}.pdf"
            assert await memory_store.get_blob(f"{item.certificate_key}.pdf") is not None
            assert record.watermark["verificationUrl"] == f"{BASE_URL}/verify/{item.certificate_key}"
            assert record.expires_at is None

    @pytest.mark.asyncio
    async def test_state_transitions_in_order(self, orchestrator, classic_template):
        states = []
        await orchestrator.run(classic_template, batch(candidate()), on_state=states.append)
        assert states == [
            BatchState.VALIDATING,
            BatchState.CLASSIFYING,
            BatchState.ISSUING,
            BatchState.COMPLETED,
        ]

    @pytest.mark.asyncio
    async def test_progress_never_decreases(self, orchestrator, memory_store, classic_template):
        await orchestrator.run(classic_template, batch(candidate()))

        progress = []
        await orchestrator.run(
            classic_template,
            batch(candidate(), candidate(email="b@example.com"), candidate(email="c@example.com")),
            on_progress=progress.append,
        )
        assert progress == sorted(progress)
        assert progress[-1] == 100
        assert 50 in progress

    @pytest.mark.asyncio
    async def test_expiry_from_validity_days(self, memory_store, fake_pipeline, classic_template):
        orchestrator = BatchIssuanceOrchestrator(
            memory_store, fake_pipeline, BASE_URL, validity_days=30
        )
        result = await orchestrator.run(classic_template, batch(candidate()))

        record = await memory_store.find_by_key(result.items[0].certificate_key)
        assert (parse(record.expires_at) - parse(record.issued_at)).days == 30

    @pytest.mark.asyncio
    async def test_degraded_export_flagged(self, memory_store, classic_template):
        orchestrator = BatchIssuanceOrchestrator(
            memory_store, FakePipeline(degraded=True), BASE_URL
        )
        result = await orchestrator.run(classic_template, batch(candidate()))

        [item] = result.items
        assert item.outcome == "issued"
        assert item.degraded is True
        assert "template image incomplete" in item.warnings


class TestDuplicates:
    @pytest.mark.asyncio
    async def test_rerun_with_skip_writes_nothing(
        self, orchestrator, memory_store, fake_pipeline, classic_template
    ):
        first = await orchestrator.run(
            classic_template, batch(candidate(), candidate(email="grace@example.com"))
        )
        renders_before = len(fake_pipeline.calls)

        second = await orchestrator.run(
            classic_template, batch(candidate(), candidate(email="grace@example.com"))
        )

        assert second.success is True
        assert (second.issued_count, second.duplicate_count) == (0, 2)
        assert [item.outcome for item in second.items] == ["skipped", "skipped"]
        assert [d.existing_certificate_key for d in second.duplicates] == [
            item.certificate_key for item in first.items
        ]
        assert len(fake_pipeline.calls) == renders_before
        assert len(await memory_store.list_records()) == 2

    @pytest.mark.asyncio
    async def test_rerun_with_update_reissues(
        self, orchestrator, memory_store, classic_template
    ):
        first = await orchestrator.run(classic_template, batch(candidate()))
        old_key = first.items[0].certificate_key
        old_record = await memory_store.find_by_key(old_key)

        second = await orchestrator.run(classic_template, batch(candidate(), policy="update"))

        [item] = second.items
        assert item.outcome == "updated"
        assert item.previous_key == old_key
        assert item.certificate_key != old_key
        assert (second.issued_count, second.duplicate_count) == (0, 1)

        records = await memory_store.list_records(status="active")
        assert len(records) == 1
        record = records[0]
        assert record.id == old_record.id
        assert record.content_hash == old_record.content_hash
        assert record.certificate_key == item.certificate_key
        assert parse(record.issued_at) > parse(old_record.issued_at)
        assert record.watermark["certificateKey"] == item.certificate_key
        assert await memory_store.find_by_key(old_key) is None
        assert await memory_store.get_blob(f"{old_key}.pdf") is None
        assert await memory_store.get_blob(f"{item.certificate_key}.pdf") is not None

    @pytest.mark.asyncio
    async def test_same_content_twice_in_one_batch_skip(
        self, orchestrator, memory_store, classic_template
    ):
        result = await orchestrator.run(classic_template, batch(candidate(), candidate()))

        assert (result.issued_count, result.duplicate_count) == (1, 1)
        assert [item.outcome for item in result.items] == ["issued", "skipped"]
        assert result.items[1].certificate_key == result.items[0].certificate_key
        assert len(await memory_store.list_records()) == 1

    @pytest.mark.asyncio
    async def test_same_content_twice_in_one_batch_update(
        self, orchestrator, memory_store, classic_template
    ):
        result = await orchestrator.run(
            classic_template, batch(candidate(), candidate(), policy="update")
        )

        assert [item.outcome for item in result.items] == ["issued", "updated"]
        assert result.items[1].previous_key == result.items[0].certificate_key
        records = await memory_store.list_records(status="active")
        assert len(records) == 1
        assert records[0].certificate_key == result.items[1].certificate_key

    @pytest.mark.asyncio
    async def test_repeat_of_failed_item_is_issued(self, memory_store, classic_template):
        orchestrator = BatchIssuanceOrchestrator(
            memory_store, FakePipeline(fail_calls={0}), BASE_URL
        )
        result = await orchestrator.run(classic_template, batch(candidate(), candidate()))

        assert [item.outcome for item in result.items] == ["failed", "issued"]
        assert result.duplicates == []
        assert len(await memory_store.list_records()) == 1

    @pytest.mark.asyncio
    async def test_old_blob_delete_failure_is_warning(
        self, orchestrator, memory_store, classic_template
    ):
        await orchestrator.run(classic_template, batch(candidate()))
        memory_store.delete_blob = AsyncMock(side_effect=OSError("permission denied"))

        result = await orchestrator.run(classic_template, batch(candidate(), policy="update"))

        [item] = result.items
        assert item.outcome == "updated"
        assert any("permission denied" in warning for warning in item.warnings)

    @pytest.mark.asyncio
    async def test_failed_update_not_listed_as_duplicate(
        self, orchestrator, memory_store, fake_pipeline, classic_template
    ):
        first = await orchestrator.run(classic_template, batch(candidate()))
        fake_pipeline.fail_calls = {len(fake_pipeline.calls)}

        result = await orchestrator.run(classic_template, batch(candidate(), policy="update"))

        [item] = result.items
        assert item.outcome == "failed"
        assert result.duplicates == []
        assert (result.duplicate_count, result.failed_count) == (0, 1)
        record = await memory_store.find_by_key(first.items[0].certificate_key)
        assert record.status == "active"


class TestFailures:
    @pytest.mark.asyncio
    async def test_render_failure_isolated(self, memory_store, classic_template):
        orchestrator = BatchIssuanceOrchestrator(
            memory_store, FakePipeline(fail_names={"Bad Render"}), BASE_URL
        )
        result = await orchestrator.run(
            classic_template,
            batch(
                candidate(),
                candidate(email="bad@example.com", name="Bad Render"),
                candidate(email="grace@example.com"),
            ),
        )

        assert result.state == BatchState.COMPLETED
        assert result.success is True
        assert (result.issued_count, result.failed_count) == (2, 1)
        failed = result.items[1]
        assert failed.outcome == "failed"
        assert failed.error.type == "render_error"
        assert failed.certificate_key is None
        assert len(await memory_store.list_records()) == 2

    @pytest.mark.asyncio
    async def test_all_items_failing_is_unsuccessful(self, memory_store, classic_template):
        orchestrator = BatchIssuanceOrchestrator(
            memory_store, FakePipeline(fail_names={"Ada Lovelace"}), BASE_URL
        )
        result = await orchestrator.run(classic_template, batch(candidate()))

        assert result.state == BatchState.COMPLETED
        assert result.success is False
        assert result.failed_count == 1

    @pytest.mark.asyncio
    async def test_blob_upload_failure_is_persistence_error(
        self, orchestrator, memory_store, classic_template
    ):
        memory_store.put_blob = AsyncMock(side_effect=OSError("bucket unavailable"))
        result = await orchestrator.run(classic_template, batch(candidate()))

        [item] = result.items
        assert item.outcome == "failed"
        assert item.error.type == "persistence_error"
        assert "bucket unavailable" in item.error.message
        assert await memory_store.list_records() == []

    @pytest.mark.asyncio
    async def test_record_write_failure_discards_blob(
        self, orchestrator, memory_store, classic_template
    ):
        memory_store.insert_record = AsyncMock(side_effect=OSError("db down"))
        result = await orchestrator.run(classic_template, batch(candidate()))

        assert result.items[0].error.type == "persistence_error"
        assert memory_store._blobs == {}

    @pytest.mark.asyncio
    async def test_lookup_warning_carried_to_item(
        self, orchestrator, memory_store, classic_template
    ):
        # Classification lookup fails; the insert-time uniqueness check succeeds
        memory_store.find_active_by_content_hash = AsyncMock(
            side_effect=[RuntimeError("timeout"), None]
        )
        result = await orchestrator.run(classic_template, batch(candidate()))

        [item] = result.items
        assert item.outcome == "issued"
        assert any("timeout" in warning for warning in item.warnings)


class TestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "bad",
        [
            candidate(email="not-an-email"),
            candidate(email="   "),
            candidate(name="   "),
            candidate(unknownField="x"),
        ],
    )
    async def test_invalid_candidate_fails_whole_batch(
        self, orchestrator, memory_store, fake_pipeline, classic_template, bad
    ):
        states = []
        result = await orchestrator.run(
            classic_template, batch(candidate(), bad), on_state=states.append
        )

        assert result.state == BatchState.FAILED
        assert states == [BatchState.VALIDATING, BatchState.FAILED]
        assert result.success is False
        assert result.error.type == "validation_error"
        assert result.items == []
        assert fake_pipeline.calls == []
        assert await memory_store.list_records() == []

    def test_validation_reports_every_problem(self, classic_template):
        request = batch(
            candidate(email="bad"),
            BatchCandidate(recipient_email="ok@example.com", field_values={"name": "X"}),
        )
        with pytest.raises(ValidationError) as exc_info:
            validate_batch(classic_template, request)

        problems = exc_info.value.details["problems"]
        assert {"index": 0, "field": "recipientEmail", "problem": "invalid"} in problems
        assert {"index": 1, "field": "date", "problem": "missing"} in problems
        assert {"index": 1, "field": "certificateId", "problem": "missing"} in problems

    def test_batch_size_limit(self, classic_template):
        request = batch(*[candidate(email=f"u{i}@example.com") for i in range(3)])
        with pytest.raises(ValidationError, match="no certificates were issued"):
            validate_batch(classic_template, request, max_batch_size=2)

    def test_template_mismatch(self, landscape_template):
        with pytest.raises(ValidationError):
            validate_batch(landscape_template, batch(candidate()))

    def test_blank_values_hash_like_unset_values(self, landscape_template):
        request = BatchRequest(
            template_id="uploaded-landscape",
            publisher_id="org-42",
            candidates=[
                BatchCandidate(
                    recipient_email=" ada@example.com ",
                    field_values={"name": "Ada", "date": "2026", "course": ""},
                )
            ],
        )
        [content] = validate_batch(landscape_template, request)
        clean = content.model_copy(
            update={
                "recipient_email": "ada@example.com",
                "field_values": {"name": "Ada", "date": "2026"},
            }
        )
        assert compute_content_hash(content) == compute_content_hash(clean)


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_between_items(self, orchestrator, memory_store, classic_template):
        cancel = asyncio.Event()

        def on_progress(percent):
            if percent > 0:
                cancel.set()

        result = await orchestrator.run(
            classic_template,
            batch(*[candidate(email=f"u{i}@example.com") for i in range(4)]),
            on_progress=on_progress,
            cancel_event=cancel,
        )

        assert result.state == BatchState.COMPLETED
        assert result.cancelled is True
        assert result.issued_count == 1
        assert len(result.items) == 1
        assert result.progress < 100
        assert len(await memory_store.list_records()) == 1


class TestRealPipeline:
    @pytest.mark.asyncio
    async def test_issue_with_pillow_pipeline(
        self, memory_store, pipeline, classic_template
    ):
        orchestrator = BatchIssuanceOrchestrator(memory_store, pipeline, BASE_URL)
        result = await orchestrator.run(classic_template, batch(candidate()))

        [item] = result.items
        assert item.outcome == "issued"
        assert item.degraded is False
        document = await memory_store.get_blob(f"{item.certificate_key}.pdf")
        assert document.startswith(b"%PDF")


class TestBatchTask:
    @pytest.mark.asyncio
    async def test_registry_entry_updated(self, orchestrator, classic_template):
        registry = get_batch_registry()
        job = registry.create("classic-blue", 1)

        await execute_batch_job(job, classic_template, batch(candidate()), orchestrator)

        assert job.state == BatchState.COMPLETED
        assert job.progress == 100
        assert job.result.issued_count == 1
        assert job.completed_at is not None
        assert registry.get(job.batch_id) is job

    @pytest.mark.asyncio
    async def test_unexpected_error_marks_failed(self, classic_template):
        orchestrator = AsyncMock()
        orchestrator.run.side_effect = RuntimeError("kaboom")
        job = get_batch_registry().create("classic-blue", 1)

        await execute_batch_job(job, classic_template, batch(candidate()), orchestrator)

        assert job.state == BatchState.FAILED
        assert job.result.success is False
        assert "kaboom" in job.result.error.message

    def test_cancel_request_sets_event(self):
        registry = get_batch_registry()
        job = registry.create("classic-blue", 1)
        registry.request_cancel(job.batch_id)
        assert job.cancel_event.is_set()
