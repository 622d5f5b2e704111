"""
Batch issuance endpoints.

Provides POST /api/batches for submitting a batch, GET /api/batches/{batch_id}
for polling its progress and result, POST /api/batches/{batch_id}/cancel,
and POST /api/batches/parse-rows for turning pasted spreadsheet rows into
candidates.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends

from app.config import settings
from app.models import (
    BatchRequest,
    BatchStatusResponse,
    BatchSubmitResponse,
    ParseRowsRequest,
    ParseRowsResponse,
)
from app.services import execute_batch_job, get_batch_registry, validate_batch
from app.services.bulk_rows import parse_bulk_rows
from app.services.rate_limiter import check_batch_rate_limit
from app.services.template_service import get_template

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/batches",
    response_model=BatchSubmitResponse,
    status_code=202,
    summary="Submit Batch",
    description="""
Issue certificates for many recipients on one template.

The batch is validated up front; any invalid row rejects the whole batch
with 422 and nothing is written. Valid batches run in the background:

`queued` → `validating` → `classifying` → `issuing` → `completed`

Candidates whose content was already issued are skipped or reissued
according to `duplicatePolicy`. Use GET /api/batches/{batchId} to poll.
""",
    responses={
        202: {"description": "Batch accepted"},
        404: {"description": "Template not found"},
        422: {"description": "Batch failed validation"},
        429: {"description": "Too many batch submissions"},
    },
    dependencies=[Depends(check_batch_rate_limit)],
)
async def submit_batch(
    request: BatchRequest,
    background_tasks: BackgroundTasks,
) -> BatchSubmitResponse:
    """
    Submit a batch for background issuance.

    Raises:
        TemplateNotFoundError: 404 if the template does not exist
        ValidationError: 422 if any candidate is invalid
    """
    logger.info(
        f"Batch submission received: template={request.template_id}, "
        f"candidates={len(request.candidates)}, policy={request.duplicate_policy}"
    )

    template = get_template(request.template_id)
    validate_batch(template, request, settings.MAX_BATCH_SIZE)

    job = get_batch_registry().create(template.id, len(request.candidates))
    background_tasks.add_task(execute_batch_job, job, template, request)

    return BatchSubmitResponse(
        batch_id=job.batch_id,
        state=job.state,
        candidate_count=job.candidate_count,
        message="Batch accepted for issuance",
    )


@router.get("/batches/{batch_id}", response_model=BatchStatusResponse)
async def get_batch_status(batch_id: str) -> BatchStatusResponse:
    """
    Get state, progress and (once finished) the result of a batch.

    Raises:
        BatchNotFoundError: 404 if batch_id is unknown
    """
    job = get_batch_registry().get(batch_id)
    return BatchStatusResponse(
        batch_id=job.batch_id,
        state=job.state,
        progress=job.progress,
        cancel_requested=job.cancel_event.is_set(),
        result=job.result,
    )


@router.post("/batches/{batch_id}/cancel", response_model=BatchStatusResponse)
async def cancel_batch(batch_id: str) -> BatchStatusResponse:
    """
    Ask a running batch to stop after its current item.

    Items already issued stay issued; the result is marked cancelled.
    Cancelling a finished batch has no effect.
    """
    job = get_batch_registry().request_cancel(batch_id)
    return BatchStatusResponse(
        batch_id=job.batch_id,
        state=job.state,
        progress=job.progress,
        cancel_requested=job.cancel_event.is_set(),
        result=job.result,
    )


@router.post("/batches/parse-rows", response_model=ParseRowsResponse)
async def parse_rows(request: ParseRowsRequest) -> ParseRowsResponse:
    """
    Parse pasted rows into batch candidates.

    The first line must be a header naming the template's field labels and
    an email column.
    """
    template = get_template(request.template_id)
    candidates, extra_columns = parse_bulk_rows(request.text, template.fields)
    return ParseRowsResponse(candidates=candidates, extra_columns=extra_columns)
