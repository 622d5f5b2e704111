"""
Document endpoint for retrieving issued certificate documents.

Provides GET /api/documents/{name} for downloading a stored certificate PDF.
"""

import logging
import re

from fastapi import APIRouter
from fastapi.responses import JSONResponse, Response

from app.models import DocumentErrorResponse
from app.services import get_certificate_store

logger = logging.getLogger(__name__)

router = APIRouter()

# Documents are named after their 64-hex certificate key
DOCUMENT_NAME_PATTERN = re.compile(r"^[a-f0-9]{64}\.pdf$")


def _validate_document_name(name: str) -> bool:
    """
    Validate a document name to prevent path traversal.

    Args:
        name: Requested document name

    Returns:
        bool: True if the name is a certificate key followed by .pdf
    """
    return bool(DOCUMENT_NAME_PATTERN.match(name))


@router.get(
    "/documents/{name}",
    summary="Download Certificate Document",
    description="""
Download the PDF document of an issued certificate.

**Response:**
- **200**: PDF download
- **404**: Invalid name or document not found

**Security:** Names must be `{certificateKey}.pdf` to prevent path traversal.
""",
    responses={
        200: {"description": "Document download successful"},
        404: {
            "description": "Document not found",
            "model": DocumentErrorResponse,
        },
    },
)
async def download_document(name: str) -> Response:
    """
    Serve a stored certificate document.

    Args:
        name: Document name, {certificate_key}.pdf

    Returns:
        Response with the PDF bytes, or a 404 JSON error
    """
    logger.info(f"Document request: {name}")

    if not _validate_document_name(name):
        logger.warning(f"Invalid document name: {name}")
        return JSONResponse(
            status_code=404,
            content=DocumentErrorResponse(
                error="invalid_name",
                name=name,
                message="Invalid document name. Expected {certificateKey}.pdf.",
            ).model_dump(),
        )

    content = await get_certificate_store().get_blob(name)
    if content is None:
        logger.warning(f"Document not found: {name}")
        return JSONResponse(
            status_code=404,
            content=DocumentErrorResponse(
                error="not_found",
                name=name,
                message=f"Document not found: {name}",
            ).model_dump(),
        )

    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{name}"'},
    )
