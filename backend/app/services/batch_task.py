"""
Background batch task.

Runs a queued batch through the orchestrator and records state, progress
and the final result on its registry entry.
"""

import asyncio
import logging

from app.config import settings
from app.models import BatchRequest, BatchResult, BatchState, ItemError, Template
from .batch_issuance import BatchIssuanceOrchestrator
from .batch_registry import BatchJob
from .export_pipeline import get_export_pipeline
from .store_factory import get_certificate_store

logger = logging.getLogger(__name__)


def build_orchestrator() -> BatchIssuanceOrchestrator:
    """Orchestrator wired to the configured store and export pipeline."""
    return BatchIssuanceOrchestrator(
        store=get_certificate_store(),
        pipeline=get_export_pipeline(),
        verification_base_url=settings.PUBLIC_BASE_URL,
        validity_days=settings.CERTIFICATE_VALIDITY_DAYS,
        max_batch_size=settings.MAX_BATCH_SIZE,
    )


async def execute_batch_job(
    job: BatchJob,
    template: Template,
    request: BatchRequest,
    orchestrator: BatchIssuanceOrchestrator | None = None,
) -> None:
    """
    Background task that runs one batch and stores its result.

    Args:
        job: Registry entry to update
        template: Template the batch issues on
        request: Batch request
        orchestrator: Orchestrator to use (defaults to the configured one)
    """
    orchestrator = orchestrator or build_orchestrator()
    logger.info(f"Starting batch {job.batch_id} ({job.candidate_count} candidates)")

    try:
        result = await orchestrator.run(
            template,
            request,
            batch_id=job.batch_id,
            on_progress=job.set_progress,
            on_state=job.set_state,
            cancel_event=job.cancel_event,
        )
        job.result = result

    except asyncio.CancelledError:
        logger.warning(f"Batch task cancelled: {job.batch_id}")
        raise

    except Exception as e:
        logger.exception(f"Batch task error: {job.batch_id}")
        job.set_state(BatchState.FAILED)
        job.result = BatchResult(
            batch_id=job.batch_id,
            state=BatchState.FAILED,
            success=False,
            progress=job.progress,
            error=ItemError(type="internal_error", message=str(e), details=None),
        )
