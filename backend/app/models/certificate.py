"""Pydantic models for certificate content, records and identity endpoints."""

from typing import Literal, Optional

from pydantic import BaseModel, Field

CertificateStatus = Literal["active", "revoked", "expired"]


class CertificateContent(BaseModel):
    """
    Logical identity of a certificate.

    Two contents with the same template, publisher, recipient and field
    values hash identically regardless of field order.
    """

    template_id: str = Field(..., alias="templateId", min_length=1)
    publisher_id: str = Field(..., alias="publisherId", min_length=1)
    recipient_email: str = Field(..., alias="recipientEmail", min_length=1)
    field_values: dict[str, str] = Field(
        default_factory=dict,
        alias="fieldValues",
        description="Field values keyed by field ID",
    )

    model_config = {"populate_by_name": True}


class CertificateRecord(BaseModel):
    """Persisted certificate record."""

    id: str
    template_id: str = Field(..., alias="templateId")
    publisher_id: str = Field(..., alias="publisherId")
    recipient_email: str = Field(..., alias="recipientEmail")
    field_values: dict[str, str] = Field(default_factory=dict, alias="fieldValues")
    content_hash: str = Field(..., alias="contentHash")
    certificate_key: str = Field(..., alias="certificateKey")
    status: CertificateStatus = "active"
    issued_at: str = Field(..., alias="issuedAt")
    expires_at: Optional[str] = Field(None, alias="expiresAt")
    document_url: Optional[str] = Field(None, alias="documentUrl")
    watermark: dict[str, str] = Field(default_factory=dict)
    created_at: str = Field(..., alias="createdAt")
    updated_at: str = Field(..., alias="updatedAt")

    model_config = {"populate_by_name": True}


class HashResponse(BaseModel):
    """Response body for POST /api/certificates/hash."""

    content_hash: str = Field(..., alias="contentHash")

    model_config = {"populate_by_name": True}


class KeyRequest(BaseModel):
    """Request body for POST /api/certificates/key."""

    content_hash: str = Field(
        ..., alias="contentHash", pattern=r"^[a-f0-9]{64}$"
    )
    issued_at: str = Field(
        ...,
        alias="issuedAt",
        min_length=1,
        examples=["2026-10-18T09:30:00.000000Z"],
    )

    model_config = {"populate_by_name": True}


class KeyResponse(BaseModel):
    """Response body for POST /api/certificates/key."""

    certificate_key: str = Field(..., alias="certificateKey")

    model_config = {"populate_by_name": True}


class ClassifyRequest(BaseModel):
    """Request body for POST /api/certificates/classify."""

    candidates: list[CertificateContent] = Field(..., min_length=1)


class ClassifiedItem(BaseModel):
    """One candidate as seen by the duplicate resolver."""

    index: int
    recipient_email: str = Field(..., alias="recipientEmail")
    content_hash: str = Field(..., alias="contentHash")
    existing_key: Optional[str] = Field(None, alias="existingKey")
    source: Optional[str] = Field(
        None, description="Where the duplicate was found: 'storage' or 'batch'"
    )
    warning: Optional[str] = None

    model_config = {"populate_by_name": True}


class ClassifyResponse(BaseModel):
    """Response body for POST /api/certificates/classify."""

    new: list[ClassifiedItem]
    duplicates: list[ClassifiedItem]


class VerificationResponse(BaseModel):
    """Public view of a certificate for GET /api/verify/{certificate_key}."""

    valid: bool = Field(..., description="Active and not past its expiry")
    certificate_key: str = Field(..., alias="certificateKey")
    content_hash: str = Field(..., alias="contentHash")
    status: CertificateStatus
    template_id: str = Field(..., alias="templateId")
    publisher_id: str = Field(..., alias="publisherId")
    recipient_email: str = Field(..., alias="recipientEmail")
    field_values: dict[str, str] = Field(..., alias="fieldValues")
    issued_at: str = Field(..., alias="issuedAt")
    expires_at: Optional[str] = Field(None, alias="expiresAt")
    document_url: Optional[str] = Field(None, alias="documentUrl")

    model_config = {"populate_by_name": True}
