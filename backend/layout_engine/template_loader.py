"""
Template loader for certificate layouts.

This module loads certificate templates from templates.yaml and provides
functions to retrieve and validate template configurations.
"""

import yaml
from pathlib import Path
from typing import Any

DEFAULT_TEMPLATES_FILE = Path(__file__).parent / "templates.yaml"


def _read_templates(templates_file: str | Path | None) -> list[dict[str, Any]]:
    template_path = Path(templates_file) if templates_file else DEFAULT_TEMPLATES_FILE

    if not template_path.exists():
        raise FileNotFoundError(
            f"templates.yaml not found. Ensure file exists at {template_path}"
        )

    try:
        with open(template_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML format in {template_path.name}: {e}")

    if not data or "templates" not in data:
        raise ValueError(f"{template_path.name} must contain a 'templates' key")

    return data["templates"]


def list_available_templates(templates_file: str | Path | None = None) -> list[str]:
    """
    Returns list of available template IDs.

    Args:
        templates_file: Optional registry path (defaults to the bundled file)

    Returns:
        List of template IDs (e.g., ["classic-blue", "uploaded-landscape"])
    """
    return [template["id"] for template in _read_templates(templates_file)]


def load_template(
    template_id: str, templates_file: str | Path | None = None
) -> dict[str, Any]:
    """
    Load a template configuration by ID.

    Args:
        template_id: ID of the template to load (e.g., "classic-blue")
        templates_file: Optional registry path (defaults to the bundled file)

    Returns:
        Dictionary containing the template image source, dimensions and fields

    Raises:
        ValueError: If template_id is invalid or not found
        FileNotFoundError: If the registry file doesn't exist
    """
    # Input validation
    if not template_id or not isinstance(template_id, str):
        raise ValueError("template_id must be a non-empty string")

    templates = _read_templates(templates_file)

    for template in templates:
        if template.get("id") == template_id:
            field_ids = [field.get("id") for field in template.get("fields", [])]
            if len(field_ids) != len(set(field_ids)):
                raise ValueError(f"Template '{template_id}' has duplicate field IDs")
            return template

    available = [template["id"] for template in templates]
    raise ValueError(
        f"Invalid template '{template_id}'. "
        f"Available templates: {', '.join(available)}"
    )
