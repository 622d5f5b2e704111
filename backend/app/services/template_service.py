"""
Template lookup for routes and services.

Wraps the layout engine's YAML registry, applies configured font defaults
and returns validated Template models.
"""

import logging

from app.config import settings
from app.middleware import TemplateNotFoundError
from app.models import Template
from layout_engine import list_available_templates, load_template

logger = logging.getLogger(__name__)


def _to_template(raw: dict) -> Template:
    fields = []
    for field in raw.get("fields", []):
        field = dict(field)
        field.setdefault("fontSize", settings.DEFAULT_FONT_SIZE)
        field.setdefault("fontFamily", settings.DEFAULT_FONT_FAMILY)
        fields.append(field)
    return Template.model_validate({**raw, "fields": fields})


def get_template(template_id: str) -> Template:
    """
    Load one template by ID.

    Raises:
        TemplateNotFoundError: If the registry has no such template
    """
    try:
        raw = load_template(template_id, settings.TEMPLATES_FILE)
    except ValueError as e:
        logger.warning(f"Template lookup failed for '{template_id}': {e}")
        raise TemplateNotFoundError(
            template_id, available=list_available_templates(settings.TEMPLATES_FILE)
        ) from e
    return _to_template(raw)


def get_all_templates() -> list[Template]:
    return [
        get_template(template_id)
        for template_id in list_available_templates(settings.TEMPLATES_FILE)
    ]
