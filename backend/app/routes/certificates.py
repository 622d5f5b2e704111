"""
Certificate identity endpoints.

Provides content hashing, key derivation, duplicate classification and
public verification of issued certificates.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException

from app.middleware import CertificateNotFoundError
from app.models import (
    CertificateContent,
    ClassifiedItem,
    ClassifyRequest,
    ClassifyResponse,
    HashResponse,
    KeyRequest,
    KeyResponse,
    VerificationResponse,
)
from app.services import DuplicateResolver, get_certificate_store
from identity_engine import (
    MalformedContentError,
    compute_content_hash,
    derive_certificate_key,
    parse_iso_timestamp,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _is_expired(expires_at: str | None) -> bool:
    if not expires_at:
        return False
    return parse_iso_timestamp(expires_at) <= datetime.now(timezone.utc)


@router.post("/certificates/hash", response_model=HashResponse)
async def hash_content(content: CertificateContent) -> HashResponse:
    """
    Compute the content hash of a certificate.

    The hash is independent of field order and of issuance time.
    """
    try:
        return HashResponse(content_hash=compute_content_hash(content))
    except MalformedContentError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/certificates/key", response_model=KeyResponse)
async def derive_key(request: KeyRequest) -> KeyResponse:
    """Derive the certificate key for a content hash issued at a given instant."""
    try:
        key = derive_certificate_key(request.content_hash, request.issued_at)
    except MalformedContentError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return KeyResponse(certificate_key=key)


@router.post("/certificates/classify", response_model=ClassifyResponse)
async def classify_candidates(request: ClassifyRequest) -> ClassifyResponse:
    """
    Split candidates into new and duplicate without writing anything.

    Duplicates carry the key of the existing certificate, or of the
    earlier candidate in the same request.
    """
    resolver = DuplicateResolver(get_certificate_store())
    classification = await resolver.classify(request.candidates)

    def to_item(candidate) -> ClassifiedItem:
        return ClassifiedItem(
            index=candidate.index,
            recipient_email=candidate.content.recipient_email,
            content_hash=candidate.content_hash,
            existing_key=candidate.existing_key,
            source=candidate.source,
            warning=candidate.warning,
        )

    return ClassifyResponse(
        new=[to_item(c) for c in classification.new],
        duplicates=[to_item(c) for c in classification.duplicates],
    )


@router.get("/verify/{certificate_key}", response_model=VerificationResponse)
async def verify_certificate(certificate_key: str) -> VerificationResponse:
    """
    Look up a certificate by key.

    Raises:
        CertificateNotFoundError: 404 if no certificate has this key
    """
    logger.info(f"Verification request: {certificate_key[:12]}")
    record = await get_certificate_store().find_by_key(certificate_key)
    if record is None:
        raise CertificateNotFoundError(certificate_key)

    return VerificationResponse(
        valid=record.status == "active" and not _is_expired(record.expires_at),
        certificate_key=record.certificate_key,
        content_hash=record.content_hash,
        status=record.status,
        template_id=record.template_id,
        publisher_id=record.publisher_id,
        recipient_email=record.recipient_email,
        field_values=record.field_values,
        issued_at=record.issued_at,
        expires_at=record.expires_at,
        document_url=record.document_url,
    )
