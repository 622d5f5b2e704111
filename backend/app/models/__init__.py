"""Pydantic models for API request/response schemas."""

from .template import FieldDefinition, Point, Template, TemplateListResponse
from .certificate import (
    CertificateContent,
    CertificateRecord,
    ClassifiedItem,
    ClassifyRequest,
    ClassifyResponse,
    HashResponse,
    KeyRequest,
    KeyResponse,
    VerificationResponse,
)
from .batch import (
    BatchCandidate,
    BatchRequest,
    BatchResult,
    BatchState,
    BatchStatusResponse,
    BatchSubmitResponse,
    DuplicateInfo,
    ItemError,
    ItemResult,
    ParseRowsRequest,
    ParseRowsResponse,
)
from .layout import (
    DragRequest,
    DragResponse,
    PlaceRequest,
    PlaceResponse,
    PreviewNode,
    PreviewRequest,
    PreviewResponse,
    ScaleRequest,
    ScaleResponse,
)
from .document_response import DocumentErrorResponse

__all__ = [
    "FieldDefinition",
    "Point",
    "Template",
    "TemplateListResponse",
    "CertificateContent",
    "CertificateRecord",
    "ClassifiedItem",
    "ClassifyRequest",
    "ClassifyResponse",
    "HashResponse",
    "KeyRequest",
    "KeyResponse",
    "VerificationResponse",
    "BatchCandidate",
    "BatchRequest",
    "BatchResult",
    "BatchState",
    "BatchStatusResponse",
    "BatchSubmitResponse",
    "DuplicateInfo",
    "ItemError",
    "ItemResult",
    "ParseRowsRequest",
    "ParseRowsResponse",
    "DragRequest",
    "DragResponse",
    "PlaceRequest",
    "PlaceResponse",
    "PreviewNode",
    "PreviewRequest",
    "PreviewResponse",
    "ScaleRequest",
    "ScaleResponse",
    "DocumentErrorResponse",
]
