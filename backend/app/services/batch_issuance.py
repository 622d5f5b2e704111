"""
Batch issuance orchestrator.

Drives many single-certificate issuances and updates through
Validating -> Classifying -> Issuing -> Completed. Only validation can
fail a batch (before any write); from Issuing onward failures are
recorded per item and the batch continues.

Items are processed one at a time. Classification runs for all
candidates before the first write, and each write for a content hash is
awaited before the next item starts, so no two writes for the same
content ever overlap.
"""

import asyncio
import logging
import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from app.middleware import IssuanceError, PersistenceError, ValidationError
from app.models import (
    BatchRequest,
    BatchResult,
    BatchState,
    CertificateContent,
    CertificateRecord,
    DuplicateInfo,
    ItemError,
    ItemResult,
    Template,
)
from identity_engine import build_watermark, derive_certificate_key, parse_iso_timestamp
from .certificate_store import CertificateStore
from .duplicate_resolver import ClassifiedCandidate, DuplicateResolver
from .export_pipeline import ExportedDocument, ExportPipeline

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
MAX_EMAIL_LENGTH = 254

ALLOWED_TRANSITIONS = {
    BatchState.QUEUED: {BatchState.VALIDATING},
    BatchState.VALIDATING: {BatchState.CLASSIFYING, BatchState.FAILED},
    BatchState.CLASSIFYING: {BatchState.ISSUING},
    BatchState.ISSUING: {BatchState.COMPLETED},
    BatchState.COMPLETED: set(),
    BatchState.FAILED: set(),
}

NEW_PHASE_END = 50.0
DUPLICATE_PHASE_END = 100.0

ProgressCallback = Callable[[float], None]
StateCallback = Callable[[BatchState], None]


def _format_iso(moment: datetime) -> str:
    return moment.isoformat(timespec="microseconds").replace("+00:00", "Z")


def build_candidate_contents(
    template: Template, request: BatchRequest
) -> list[CertificateContent]:
    """Turn request rows into certificate contents, in request order."""
    return [
        CertificateContent(
            template_id=template.id,
            publisher_id=request.publisher_id,
            recipient_email=candidate.recipient_email,
            field_values=dict(candidate.field_values),
        )
        for candidate in request.candidates
    ]


def validate_batch(
    template: Template, request: BatchRequest, max_batch_size: Optional[int] = None
) -> list[CertificateContent]:
    """
    Pre-flight validation of a whole batch.

    Returns:
        list[CertificateContent]: Contents to classify, in request order

    Raises:
        ValidationError: If any candidate is invalid; nothing is written
    """
    problems: list[dict] = []

    if request.template_id != template.id:
        problems.append(
            {
                "index": None,
                "field": "templateId",
                "problem": f"batch targets {request.template_id}, template is {template.id}",
            }
        )

    if not request.candidates:
        problems.append({"index": None, "field": None, "problem": "batch is empty"})

    if max_batch_size is not None and len(request.candidates) > max_batch_size:
        problems.append(
            {
                "index": None,
                "field": None,
                "problem": f"batch has {len(request.candidates)} candidates, "
                f"maximum is {max_batch_size}",
            }
        )

    known_fields = {field.id for field in template.fields}
    required_fields = [field for field in template.fields if field.required]

    for index, candidate in enumerate(request.candidates):
        email = candidate.recipient_email.strip()
        if not email:
            problems.append(
                {"index": index, "field": "recipientEmail", "problem": "missing"}
            )
        elif len(email) > MAX_EMAIL_LENGTH or not EMAIL_PATTERN.match(email):
            problems.append(
                {"index": index, "field": "recipientEmail", "problem": "invalid"}
            )

        for field_id in sorted(set(candidate.field_values) - known_fields):
            problems.append({"index": index, "field": field_id, "problem": "unknown"})

        for field in required_fields:
            value = candidate.field_values.get(field.id)
            if not value or not value.strip():
                problems.append(
                    {"index": index, "field": field.id, "problem": "missing"}
                )

    if problems:
        raise ValidationError(
            f"Batch validation failed with {len(problems)} problem(s); "
            "no certificates were issued",
            problems=problems,
        )

    return build_candidate_contents(template, request)


class BatchIssuanceOrchestrator:
    """Runs batches against a store and an export pipeline."""

    def __init__(
        self,
        store: CertificateStore,
        pipeline: ExportPipeline,
        verification_base_url: str,
        validity_days: Optional[int] = None,
        max_batch_size: Optional[int] = None,
    ):
        self.store = store
        self.pipeline = pipeline
        self.resolver = DuplicateResolver(store)
        self.verification_base_url = verification_base_url
        self.validity_days = validity_days
        self.max_batch_size = max_batch_size

    async def run(
        self,
        template: Template,
        request: BatchRequest,
        batch_id: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_state: Optional[StateCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> BatchResult:
        """
        Run one batch to completion.

        Args:
            template: Template every candidate is issued on
            request: Batch request (rows and duplicate policy)
            batch_id: Identifier reported in the result (generated if omitted)
            on_progress: Receives a non-decreasing percentage
            on_state: Receives each state transition
            cancel_event: Checked between items; when set the batch stops
                          early with a partial Completed result

        Returns:
            BatchResult: Completed (possibly partial) or Failed result
        """
        run = _BatchRun(
            self,
            template,
            request,
            batch_id or str(uuid.uuid4()),
            on_progress,
            on_state,
            cancel_event,
        )
        return await run.execute()


class _BatchRun:
    """State of one batch execution."""

    def __init__(
        self,
        orchestrator: BatchIssuanceOrchestrator,
        template: Template,
        request: BatchRequest,
        batch_id: str,
        on_progress: Optional[ProgressCallback],
        on_state: Optional[StateCallback],
        cancel_event: Optional[asyncio.Event],
    ):
        self.orchestrator = orchestrator
        self.store = orchestrator.store
        self.pipeline = orchestrator.pipeline
        self.template = template
        self.request = request
        self.batch_id = batch_id
        self.on_progress = on_progress
        self.on_state = on_state
        self.cancel_event = cancel_event

        self.state = BatchState.QUEUED
        self.progress = 0.0
        self.items: dict[int, ItemResult] = {}
        self.duplicates: list[DuplicateInfo] = []
        self.cancelled = False
        # content hash -> (certificate key, issued_at) written by this run
        self.issued: dict[str, tuple[str, str]] = {}

    # -- bookkeeping -------------------------------------------------------

    def _transition(self, new_state: BatchState) -> None:
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal batch transition {self.state.value} -> {new_state.value}"
            )
        logger.info(f"[BATCH] {self.batch_id}: {self.state.value} -> {new_state.value}")
        self.state = new_state
        if self.on_state:
            self.on_state(new_state)

    def _report(self, percent: float) -> None:
        self.progress = max(self.progress, min(percent, 100.0))
        if self.on_progress:
            self.on_progress(self.progress)

    def _cancel_requested(self) -> bool:
        if self.cancel_event is not None and self.cancel_event.is_set():
            if not self.cancelled:
                logger.warning(f"[BATCH] {self.batch_id}: cancellation requested")
            self.cancelled = True
        return self.cancelled

    def _result(self, success: Optional[bool] = None, error=None) -> BatchResult:
        items = [self.items[index] for index in sorted(self.items)]
        issued = sum(1 for item in items if item.outcome == "issued")
        duplicate = sum(1 for item in items if item.outcome in ("skipped", "updated"))
        failed = sum(1 for item in items if item.outcome == "failed")
        if success is None:
            success = (issued + duplicate) > 0
        return BatchResult(
            batch_id=self.batch_id,
            state=self.state,
            success=success,
            issued_count=issued,
            duplicate_count=duplicate,
            failed_count=failed,
            duplicates=self.duplicates,
            items=items,
            cancelled=self.cancelled,
            progress=self.progress,
            error=error,
        )

    def _next_issued_at(self, previous_iso: Optional[str]) -> str:
        now = datetime.now(timezone.utc)
        if previous_iso:
            previous = parse_iso_timestamp(previous_iso)
            # Keys derive from issued_at, so a reissue must be strictly later.
            if now <= previous:
                now = previous + timedelta(microseconds=1)
        return _format_iso(now)

    def _expires_at(self, issued_at: str) -> Optional[str]:
        days = self.orchestrator.validity_days
        if days is None:
            return None
        return _format_iso(parse_iso_timestamp(issued_at) + timedelta(days=days))

    def _failed_item(
        self, item: ClassifiedCandidate, error: IssuanceError
    ) -> ItemResult:
        logger.error(
            f"[BATCH] {self.batch_id}: item {item.index} failed: {error.message}"
        )
        return ItemResult(
            index=item.index,
            recipient_email=item.content.recipient_email,
            content_hash=item.content_hash,
            outcome="failed",
            error=ItemError(**error.to_dict()),
            warnings=[item.warning] if item.warning else [],
        )

    # -- lifecycle ---------------------------------------------------------

    async def execute(self) -> BatchResult:
        self._transition(BatchState.VALIDATING)
        try:
            contents = validate_batch(
                self.template, self.request, self.orchestrator.max_batch_size
            )
        except ValidationError as e:
            self._transition(BatchState.FAILED)
            return self._result(success=False, error=ItemError(**e.to_dict()))

        self._transition(BatchState.CLASSIFYING)
        classification = await self.orchestrator.resolver.classify(contents)

        self._transition(BatchState.ISSUING)
        await self._issue_new(classification.new)
        await self._resolve_duplicates(classification.duplicates)

        if not self.cancelled:
            self._report(DUPLICATE_PHASE_END)
        self._transition(BatchState.COMPLETED)
        result = self._result()
        logger.info(
            f"[BATCH] {self.batch_id}: completed - issued={result.issued_count}, "
            f"duplicates={result.duplicate_count}, failed={result.failed_count}"
            f"{', cancelled' if result.cancelled else ''}"
        )
        return result

    async def _issue_new(self, new_items: list[ClassifiedCandidate]) -> None:
        total = len(new_items)
        for position, item in enumerate(new_items):
            if self._cancel_requested():
                return
            self.items[item.index] = await self._guarded(self._issue, item)
            self._report((position + 1) / total * NEW_PHASE_END)
        self._report(NEW_PHASE_END)

    async def _resolve_duplicates(self, duplicates: list[ClassifiedCandidate]) -> None:
        total = len(duplicates)
        policy = self.request.duplicate_policy
        for position, item in enumerate(duplicates):
            if self._cancel_requested():
                return

            existing = self.issued.get(item.content_hash)
            existing_key = existing[0] if existing else item.existing_key

            if existing_key is None:
                # Earlier copy in this batch was not issued; this one is new.
                self.items[item.index] = await self._guarded(self._issue, item)
            else:
                if policy == "update":
                    outcome = await self._guarded(self._update, item, existing_key)
                else:
                    outcome = ItemResult(
                        index=item.index,
                        recipient_email=item.content.recipient_email,
                        content_hash=item.content_hash,
                        outcome="skipped",
                        certificate_key=existing_key,
                        warnings=[item.warning] if item.warning else [],
                    )
                self.items[item.index] = outcome
                if outcome.outcome != "failed":
                    self.duplicates.append(
                        DuplicateInfo(
                            recipient_email=item.content.recipient_email,
                            field_values=item.content.field_values,
                            existing_certificate_key=existing_key,
                        )
                    )

            span = DUPLICATE_PHASE_END - NEW_PHASE_END
            self._report(NEW_PHASE_END + (position + 1) / total * span)

    async def _guarded(self, action, item: ClassifiedCandidate, *args) -> ItemResult:
        try:
            return await action(item, *args)
        except IssuanceError as e:
            return self._failed_item(item, e)
        except Exception as e:
            logger.exception(f"[BATCH] {self.batch_id}: unexpected error on item {item.index}")
            error = IssuanceError(f"Unexpected error: {e}")
            error.error_type = "internal_error"
            return self._failed_item(item, error)

    # -- per-item work -----------------------------------------------------

    async def _store_document(self, certificate_key: str, document: ExportedDocument) -> str:
        try:
            return await self.store.put_blob(f"{certificate_key}.pdf", document.content)
        except Exception as e:
            raise PersistenceError("upload certificate document", str(e)) from e

    async def _discard_document(self, certificate_key: str, warnings: list[str]) -> None:
        try:
            await self.store.delete_blob(f"{certificate_key}.pdf")
        except Exception as e:
            message = f"Could not delete document {certificate_key}.pdf: {e}"
            logger.warning(f"[BATCH] {self.batch_id}: {message}")
            warnings.append(message)

    async def _issue(self, item: ClassifiedCandidate) -> ItemResult:
        content = item.content
        document = await self.pipeline.export(self.template, content.field_values)

        issued_at = self._next_issued_at(None)
        certificate_key = derive_certificate_key(item.content_hash, issued_at)
        document_url = await self._store_document(certificate_key, document)

        warnings = list(document.warnings)
        if item.warning:
            warnings.insert(0, item.warning)

        record = CertificateRecord(
            id=str(uuid.uuid4()),
            template_id=content.template_id,
            publisher_id=content.publisher_id,
            recipient_email=content.recipient_email,
            field_values=content.field_values,
            content_hash=item.content_hash,
            certificate_key=certificate_key,
            status="active",
            issued_at=issued_at,
            expires_at=self._expires_at(issued_at),
            document_url=document_url,
            watermark=build_watermark(
                certificate_key,
                item.content_hash,
                issued_at,
                content.publisher_id,
                content.template_id,
                self.orchestrator.verification_base_url,
            ),
            created_at=issued_at,
            updated_at=issued_at,
        )

        try:
            await self.store.insert_record(record)
        except Exception as e:
            await self._discard_document(certificate_key, warnings)
            raise PersistenceError("insert certificate record", str(e)) from e

        self.issued[item.content_hash] = (certificate_key, issued_at)
        logger.info(
            f"[BATCH] {self.batch_id}: issued {certificate_key[:12]} "
            f"for {content.recipient_email}"
        )
        return ItemResult(
            index=item.index,
            recipient_email=content.recipient_email,
            content_hash=item.content_hash,
            outcome="issued",
            certificate_key=certificate_key,
            document_url=document_url,
            degraded=document.degraded,
            warnings=warnings,
        )

    async def _update(self, item: ClassifiedCandidate, existing_key: str) -> ItemResult:
        content = item.content

        previous_issued_at = None
        if item.content_hash in self.issued:
            previous_issued_at = self.issued[item.content_hash][1]
        else:
            try:
                previous = await self.store.find_by_key(existing_key)
            except Exception as e:
                raise PersistenceError("read certificate record", str(e)) from e
            if previous is None:
                raise PersistenceError(
                    "update certificate record", f"certificate {existing_key} not found"
                )
            previous_issued_at = previous.issued_at

        document = await self.pipeline.export(self.template, content.field_values)

        issued_at = self._next_issued_at(previous_issued_at)
        certificate_key = derive_certificate_key(item.content_hash, issued_at)
        document_url = await self._store_document(certificate_key, document)

        warnings = list(document.warnings)
        if item.warning:
            warnings.insert(0, item.warning)

        patch = {
            "field_values": content.field_values,
            "certificate_key": certificate_key,
            "document_url": document_url,
            "issued_at": issued_at,
            "expires_at": self._expires_at(issued_at),
            "watermark": build_watermark(
                certificate_key,
                item.content_hash,
                issued_at,
                content.publisher_id,
                content.template_id,
                self.orchestrator.verification_base_url,
            ),
            "updated_at": issued_at,
        }

        try:
            await self.store.update_record(existing_key, patch)
        except Exception as e:
            await self._discard_document(certificate_key, warnings)
            reason = f"certificate {existing_key} not found" if isinstance(e, KeyError) else str(e)
            raise PersistenceError("update certificate record", reason) from e

        await self._discard_document(existing_key, warnings)

        self.issued[item.content_hash] = (certificate_key, issued_at)
        logger.info(
            f"[BATCH] {self.batch_id}: reissued {existing_key[:12]} as {certificate_key[:12]}"
        )
        return ItemResult(
            index=item.index,
            recipient_email=content.recipient_email,
            content_hash=item.content_hash,
            outcome="updated",
            certificate_key=certificate_key,
            previous_key=existing_key,
            document_url=document_url,
            degraded=document.degraded,
            warnings=warnings,
        )
