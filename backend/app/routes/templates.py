"""
Template registry API endpoints.

Provides endpoints for listing and retrieving certificate templates.
"""

import logging

from fastapi import APIRouter, HTTPException

from app.models import Template, TemplateListResponse
from app.services.template_service import get_all_templates, get_template

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/templates", response_model=TemplateListResponse, tags=["Templates"])
async def list_templates() -> TemplateListResponse:
    """
    Get list of available certificate templates.

    Returns every template with its image source, native dimensions (when
    declared) and field layout.

    Raises:
        HTTPException: 500 if the template registry cannot be read
    """
    try:
        templates = get_all_templates()
        logger.info(f"Loaded {len(templates)} templates")
        return TemplateListResponse(templates=templates)

    except FileNotFoundError as e:
        logger.error(f"Template registry not found: {e}")
        raise HTTPException(
            status_code=500, detail="Template configuration file not found"
        )

    except ValueError as e:
        logger.error(f"Template loading error: {e}")
        raise HTTPException(
            status_code=500, detail=f"Invalid template configuration: {str(e)}"
        )


@router.get("/templates/{template_id}", response_model=Template, tags=["Templates"])
async def read_template(template_id: str) -> Template:
    """
    Get one template by ID.

    Raises:
        TemplateNotFoundError: 404 if no template has this ID
    """
    return get_template(template_id)
