"""Content-addressed identity for certificates: content hashes and public keys."""

import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Any, Mapping

from .exceptions import MalformedContentError

logger = logging.getLogger(__name__)

REQUIRED_IDENTIFIERS = ("template_id", "publisher_id", "recipient_email")


def canonicalize_content(
    template_id: str,
    publisher_id: str,
    recipient_email: str,
    field_values: Mapping[str, str],
) -> str:
    """Serialize certificate content deterministically.

    Field values are ordered by field id so insertion order never leaks
    into the digest. Identifiers are stripped and values that are empty
    after stripping are dropped, so an unset optional field and a blank
    one describe the same content. Only the logical identity tuple is
    serialized.

    Raises:
        MalformedContentError: If an identifier is missing or empty.
    """
    identifiers = {
        "template_id": (template_id or "").strip(),
        "publisher_id": (publisher_id or "").strip(),
        "recipient_email": (recipient_email or "").strip(),
    }
    for name in REQUIRED_IDENTIFIERS:
        if not identifiers[name]:
            raise MalformedContentError(f"Certificate content is missing {name}")

    payload = {
        "templateId": identifiers["template_id"],
        "publisherId": identifiers["publisher_id"],
        "recipientEmail": identifiers["recipient_email"],
        "fieldValues": {
            key: field_values[key]
            for key in sorted(field_values)
            if field_values[key] and field_values[key].strip()
        },
    }
    return json.dumps(
        payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )


def compute_content_hash(content: Any) -> str:
    """Compute SHA-256 digest of certificate content, returning 64-char hex.

    Args:
        content: Any object exposing template_id, publisher_id,
            recipient_email and field_values (e.g. CertificateContent).

    Returns:
        64-character lowercase hexadecimal SHA-256 digest.

    Raises:
        MalformedContentError: If an identifier is missing or empty.
    """
    canonical = canonicalize_content(
        content.template_id,
        content.publisher_id,
        content.recipient_email,
        content.field_values,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def derive_certificate_key(content_hash: str, issued_at_iso: str) -> str:
    """Derive the public certificate key for one issuance event.

    The key changes with every issuance timestamp while the content hash
    stays stable, so an updated certificate gets a new shareable key.

    Args:
        content_hash: Digest from compute_content_hash().
        issued_at_iso: ISO-8601 issuance timestamp supplied by the caller.

    Returns:
        64-character lowercase hexadecimal SHA-256 digest.
    """
    if not content_hash or not issued_at_iso:
        raise MalformedContentError(
            "content_hash and issued_at_iso are required to derive a key"
        )
    data = f"{content_hash}|{issued_at_iso}"
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with a Z suffix."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_iso_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; a Z suffix or no offset means UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def build_watermark(
    certificate_key: str,
    content_hash: str,
    issued_at_iso: str,
    publisher_id: str,
    template_id: str,
    verification_base_url: str,
) -> dict[str, str]:
    """Build the watermark block stored alongside an issued certificate."""
    watermark = {
        "certificateKey": certificate_key,
        "contentHash": content_hash,
        "issuedAt": issued_at_iso,
        "publisherId": publisher_id,
        "templateId": template_id,
        "verificationUrl": f"{verification_base_url.rstrip('/')}/verify/{certificate_key}",
    }
    logger.debug(f"Built watermark for certificate {certificate_key[:12]}")
    return watermark
