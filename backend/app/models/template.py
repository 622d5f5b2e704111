"""
Pydantic models for certificate templates and their field definitions.

These models define the structure of template data loaded from the
template registry and returned by the templates API.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from layout_engine import Dimensions

TextAlign = Literal["left", "center", "right"]


class Point(BaseModel):
    """2D point in pixels."""

    x: float = Field(..., description="X coordinate")
    y: float = Field(..., description="Y coordinate")


class FieldDefinition(BaseModel):
    """
    One text placeholder on a template.

    The anchor is the alignment reference point horizontally and the
    vertical center of the text line, in native template pixels.
    """

    id: str = Field(..., description="Stable field identifier")
    label: str = Field(..., description="Human-readable field label")
    anchor: Point = Field(..., description="Anchor point in native template pixels")
    text_align: TextAlign = Field(
        default="center",
        alias="textAlign",
        description="Horizontal alignment relative to the anchor",
    )
    font_size: float = Field(
        default=16,
        alias="fontSize",
        gt=0,
        description="Font size in native template pixels",
    )
    font_family: str = Field(
        default="serif", alias="fontFamily", description="Font family name"
    )
    color: str = Field(default="#000000", description="Text color as hex string")
    show_in_output: bool = Field(
        default=True,
        alias="showInOutput",
        description="Whether the field is drawn on exported documents",
    )
    required: bool = Field(
        default=True, description="Whether every certificate must fill this field"
    )

    model_config = {"populate_by_name": True}


class Template(BaseModel):
    """
    Certificate template: a background image plus its field layout.

    Immutable once referenced by issued certificates.
    """

    id: str = Field(..., description="Unique template identifier")
    name: str = Field(..., description="Human-readable name for UI display")
    description: Optional[str] = Field(None, description="Short description")
    image_source: str = Field(
        ...,
        alias="imageSource",
        description="Image path, absolute or relative to TEMPLATE_ASSET_DIR",
    )
    native_width: Optional[int] = Field(
        None, alias="nativeWidth", gt=0, description="Native image width in pixels"
    )
    native_height: Optional[int] = Field(
        None, alias="nativeHeight", gt=0, description="Native image height in pixels"
    )
    fields: list[FieldDefinition] = Field(
        default_factory=list, description="Text fields placed on the template"
    )

    model_config = {"populate_by_name": True}

    @property
    def declared_dimensions(self) -> Optional[Dimensions]:
        """Native dimensions if both are declared, otherwise None."""
        if self.native_width is None or self.native_height is None:
            return None
        return Dimensions(self.native_width, self.native_height)

    def get_field(self, field_id: str) -> Optional[FieldDefinition]:
        for field in self.fields:
            if field.id == field_id:
                return field
        return None


class TemplateListResponse(BaseModel):
    """Response model for GET /api/templates endpoint."""

    templates: list[Template] = Field(
        ..., description="List of available certificate templates"
    )
