"""Custom exceptions for certificate identity derivation."""


class IdentityError(Exception):
    """Base exception for identity derivation errors."""

    pass


class MalformedContentError(IdentityError):
    """Certificate content is missing a required identifier."""

    pass
