"""
Centralized error handling middleware for FastAPI.

Defines the issuance error taxonomy and provides consistent error
responses and logging for all API routes.
"""

import logging
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class IssuanceError(Exception):
    """Base exception for certificate issuance errors."""

    error_type = "issuance_error"

    def __init__(self, message: str, status_code: int = 500, details: Any = None):
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict:
        """Serialize for per-item batch results and API responses."""
        return {
            "type": self.error_type,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(IssuanceError):
    """Raised when a batch fails pre-flight validation. Batch-fatal."""

    error_type = "validation_error"

    def __init__(self, message: str, problems: list[dict] | None = None):
        super().__init__(
            message=message,
            status_code=422,
            details={"problems": problems or []},
        )


class ClassificationError(IssuanceError):
    """Raised when the duplicate lookup for one candidate fails."""

    error_type = "classification_error"

    def __init__(self, content_hash: str, reason: str):
        super().__init__(
            message=f"Duplicate lookup failed: {reason}",
            status_code=503,
            details={"content_hash": content_hash, "reason": reason},
        )


class RenderError(IssuanceError):
    """Raised when a certificate document cannot be rendered."""

    error_type = "render_error"

    def __init__(self, message: str, details: Any = None):
        super().__init__(message=message, status_code=500, details=details)


class PersistenceError(IssuanceError):
    """Raised when a document upload or record write fails."""

    error_type = "persistence_error"

    def __init__(self, operation: str, reason: str):
        super().__init__(
            message=f"Failed to {operation}: {reason}",
            status_code=500,
            details={"operation": operation, "reason": reason},
        )


class TemplateNotFoundError(IssuanceError):
    """Raised when template ID is not found."""

    error_type = "template_not_found"

    def __init__(self, template_id: str, available: list[str] | None = None):
        super().__init__(
            message=f"Template not found: {template_id}",
            status_code=404,
            details={"template_id": template_id, "available": available or []},
        )


class CertificateNotFoundError(IssuanceError):
    """Raised when a certificate key is not found."""

    error_type = "certificate_not_found"

    def __init__(self, certificate_key: str):
        super().__init__(
            message=f"Certificate not found: {certificate_key}",
            status_code=404,
            details={"certificate_key": certificate_key},
        )


class BatchNotFoundError(IssuanceError):
    """Raised when batch ID is not found."""

    error_type = "batch_not_found"

    def __init__(self, batch_id: str):
        super().__init__(
            message=f"Batch not found: {batch_id}",
            status_code=404,
            details={"batch_id": batch_id},
        )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Middleware that catches unhandled exceptions and returns consistent error responses.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            response = await call_next(request)
            return response

        except IssuanceError as e:
            logger.error(
                f"{type(e).__name__}: {e.message}",
                extra={"status_code": e.status_code, "details": e.details},
            )
            return JSONResponse(
                status_code=e.status_code,
                content={
                    "error": e.message,
                    "details": e.details,
                },
            )

        except Exception as e:
            # Log full stack trace for unexpected errors
            logger.exception(f"Unhandled exception: {str(e)}")
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Internal server error",
                    "message": str(e) if logger.isEnabledFor(logging.DEBUG) else None,
                },
            )
