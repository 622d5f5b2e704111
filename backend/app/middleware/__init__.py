"""FastAPI middleware and the issuance error taxonomy."""

from .error_handler import (
    ErrorHandlerMiddleware,
    IssuanceError,
    ValidationError,
    ClassificationError,
    RenderError,
    PersistenceError,
    TemplateNotFoundError,
    CertificateNotFoundError,
    BatchNotFoundError,
)

__all__ = [
    "ErrorHandlerMiddleware",
    "IssuanceError",
    "ValidationError",
    "ClassificationError",
    "RenderError",
    "PersistenceError",
    "TemplateNotFoundError",
    "CertificateNotFoundError",
    "BatchNotFoundError",
]
