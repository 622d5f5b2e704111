"""
In-memory registry of submitted batches.

Tracks state, progress, the final result and a cancellation event per
batch so status can be polled while the batch runs in the background.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

from app.middleware import BatchNotFoundError
from app.models import BatchResult, BatchState

logger = logging.getLogger(__name__)

TERMINAL_STATES = {BatchState.COMPLETED, BatchState.FAILED}


@dataclass
class BatchJob:
    """Registry entry for one batch."""

    batch_id: str
    template_id: str
    candidate_count: int
    state: BatchState = BatchState.QUEUED
    progress: float = 0.0
    result: Optional[BatchResult] = None
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)
    submitted_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    completed_at: Optional[str] = None

    @property
    def is_finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def set_state(self, state: BatchState) -> None:
        self.state = state
        if state in TERMINAL_STATES:
            self.completed_at = datetime.now(timezone.utc).isoformat()

    def set_progress(self, progress: float) -> None:
        self.progress = max(self.progress, progress)


class BatchRegistry:
    """Job table keyed by batch ID."""

    def __init__(self):
        self._jobs: Dict[str, BatchJob] = {}

    def create(self, template_id: str, candidate_count: int) -> BatchJob:
        job = BatchJob(
            batch_id=f"batch_{uuid.uuid4()}",
            template_id=template_id,
            candidate_count=candidate_count,
        )
        self._jobs[job.batch_id] = job
        logger.info(
            f"[BATCH] Registered {job.batch_id}: {candidate_count} candidates "
            f"on template {template_id}"
        )
        return job

    def get(self, batch_id: str) -> BatchJob:
        """
        Look up a batch.

        Raises:
            BatchNotFoundError: If batch_id is unknown
        """
        job = self._jobs.get(batch_id)
        if job is None:
            raise BatchNotFoundError(batch_id)
        return job

    def request_cancel(self, batch_id: str) -> BatchJob:
        """Signal a running batch to stop after its current item."""
        job = self.get(batch_id)
        if not job.is_finished:
            job.cancel_event.set()
            logger.info(f"[BATCH] Cancellation requested for {batch_id}")
        return job


# Singleton registry instance
_registry_instance: BatchRegistry | None = None


def get_batch_registry() -> BatchRegistry:
    """Get the process-wide batch registry."""
    global _registry_instance

    if _registry_instance is None:
        _registry_instance = BatchRegistry()
    return _registry_instance


def reset_batch_registry() -> None:
    """Reset the registry singleton (for testing purposes)."""
    global _registry_instance
    _registry_instance = None
