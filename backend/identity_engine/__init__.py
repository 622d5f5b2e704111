"""Content-addressed certificate identity module."""

from .content_hasher import (
    build_watermark,
    canonicalize_content,
    compute_content_hash,
    derive_certificate_key,
    parse_iso_timestamp,
    utc_now_iso,
)
from .exceptions import IdentityError, MalformedContentError

__all__ = [
    "build_watermark",
    "canonicalize_content",
    "compute_content_hash",
    "derive_certificate_key",
    "parse_iso_timestamp",
    "utc_now_iso",
    "IdentityError",
    "MalformedContentError",
]
