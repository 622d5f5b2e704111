"""
Document endpoint response models.

Provides error response schemas for document download error cases.
"""

from pydantic import BaseModel, Field


class DocumentErrorResponse(BaseModel):
    """Error response for document download failures."""

    error: str = Field(..., description="Error type identifier")
    name: str = Field(..., description="Document name that was requested")
    message: str = Field(..., description="Human-readable error message")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "error": "invalid_name",
                    "name": "../secrets",
                    "message": "Invalid document name.",
                },
                {
                    "error": "not_found",
                    "name": "3f2a...c9.pdf",
                    "message": "Document not found",
                },
            ]
        }
    }
