"""Pydantic models for batch issuance requests, results and status."""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field

DuplicatePolicy = Literal["skip", "update"]
ItemOutcome = Literal["issued", "skipped", "updated", "failed"]


class BatchState(str, Enum):
    """Lifecycle of one batch."""

    QUEUED = "queued"
    VALIDATING = "validating"
    CLASSIFYING = "classifying"
    ISSUING = "issuing"
    COMPLETED = "completed"
    FAILED = "failed"


class BatchCandidate(BaseModel):
    """One recipient row of a batch."""

    recipient_email: str = Field(..., alias="recipientEmail")
    field_values: dict[str, str] = Field(default_factory=dict, alias="fieldValues")

    model_config = {"populate_by_name": True}


class BatchRequest(BaseModel):
    """
    Request body for POST /api/batches.

    Attributes:
        template_id: Template every candidate is issued on
        publisher_id: Issuing organization
        candidates: Recipient rows
        duplicate_policy: What to do with content already issued
    """

    template_id: str = Field(..., alias="templateId", min_length=1)
    publisher_id: str = Field(..., alias="publisherId", min_length=1)
    candidates: list[BatchCandidate] = Field(..., min_length=1)
    duplicate_policy: DuplicatePolicy = Field(
        default="skip",
        alias="duplicatePolicy",
        description="'skip' leaves existing certificates untouched, 'update' reissues them",
    )

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {
                    "templateId": "classic-blue",
                    "publisherId": "org-42",
                    "duplicatePolicy": "skip",
                    "candidates": [
                        {
                            "recipientEmail": "ada@example.com",
                            "fieldValues": {
                                "name": "Ada Lovelace",
                                "date": "October 18, 2026",
                                "certificateId": "CH-0001",
                            },
                        }
                    ],
                }
            ]
        },
    }


class ItemError(BaseModel):
    """Error attached to one batch item."""

    type: str
    message: str
    details: Optional[dict] = None


class ItemResult(BaseModel):
    """Outcome of one candidate."""

    index: int
    recipient_email: str = Field(..., alias="recipientEmail")
    content_hash: Optional[str] = Field(None, alias="contentHash")
    outcome: ItemOutcome
    certificate_key: Optional[str] = Field(None, alias="certificateKey")
    previous_key: Optional[str] = Field(None, alias="previousKey")
    document_url: Optional[str] = Field(None, alias="documentUrl")
    degraded: bool = False
    error: Optional[ItemError] = None
    warnings: list[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class DuplicateInfo(BaseModel):
    """A candidate whose content was already issued."""

    recipient_email: str = Field(..., alias="recipientEmail")
    field_values: dict[str, str] = Field(..., alias="fieldValues")
    existing_certificate_key: Optional[str] = Field(
        None, alias="existingCertificateKey"
    )

    model_config = {"populate_by_name": True}


class BatchResult(BaseModel):
    """Aggregate result of a batch run."""

    batch_id: str = Field(..., alias="batchId")
    state: BatchState
    success: bool
    issued_count: int = Field(0, alias="issuedCount")
    duplicate_count: int = Field(0, alias="duplicateCount")
    failed_count: int = Field(0, alias="failedCount")
    duplicates: list[DuplicateInfo] = Field(default_factory=list)
    items: list[ItemResult] = Field(default_factory=list)
    cancelled: bool = False
    progress: float = Field(0, ge=0, le=100)
    error: Optional[ItemError] = None

    model_config = {"populate_by_name": True}


class BatchSubmitResponse(BaseModel):
    """Response body for POST /api/batches."""

    batch_id: str = Field(..., alias="batchId")
    state: BatchState
    candidate_count: int = Field(..., alias="candidateCount")
    message: str

    model_config = {"populate_by_name": True}


class BatchStatusResponse(BaseModel):
    """Response body for GET /api/batches/{batch_id}."""

    batch_id: str = Field(..., alias="batchId")
    state: BatchState
    progress: float = Field(..., ge=0, le=100)
    cancel_requested: bool = Field(False, alias="cancelRequested")
    result: Optional[BatchResult] = None

    model_config = {"populate_by_name": True}


class ParseRowsRequest(BaseModel):
    """Request body for POST /api/batches/parse-rows."""

    template_id: str = Field(..., alias="templateId")
    text: str = Field(..., description="Pasted table, first line is the header")

    model_config = {"populate_by_name": True}


class ParseRowsResponse(BaseModel):
    """Response body for POST /api/batches/parse-rows."""

    candidates: list[BatchCandidate]
    extra_columns: list[str] = Field(default_factory=list, alias="extraColumns")

    model_config = {"populate_by_name": True}
