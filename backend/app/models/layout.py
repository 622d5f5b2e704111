"""Pydantic models for the layout and preview-scaling endpoints."""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from .template import FieldDefinition, Point


class PlaceRequest(BaseModel):
    """Request body for POST /api/layout/place."""

    field: FieldDefinition
    measured_width: float = Field(..., alias="measuredWidth", ge=0)
    measured_height: float = Field(..., alias="measuredHeight", ge=0)

    model_config = {"populate_by_name": True}


class PlaceResponse(BaseModel):
    """Top-left render position in native pixels."""

    render_x: float = Field(..., alias="renderX")
    render_y: float = Field(..., alias="renderY")

    model_config = {"populate_by_name": True}


class ScaleRequest(BaseModel):
    """
    Request body for POST /api/layout/scale.

    Viewport dimensions default to the configured preview area.
    """

    native_width: float = Field(..., alias="nativeWidth", gt=0)
    native_height: float = Field(..., alias="nativeHeight", gt=0)
    viewport_width: Optional[float] = Field(None, alias="viewportWidth", gt=0)
    viewport_height: Optional[float] = Field(None, alias="viewportHeight", gt=0)
    point: Optional[Point] = None
    direction: Literal["toPreview", "toNative"] = "toPreview"

    model_config = {"populate_by_name": True}


class ScaleResponse(BaseModel):
    """Scale factor, scaled size and the optionally converted point."""

    scale: float
    scaled_width: float = Field(..., alias="scaledWidth")
    scaled_height: float = Field(..., alias="scaledHeight")
    point: Optional[Point] = None

    model_config = {"populate_by_name": True}


class PreviewRequest(BaseModel):
    """Request body for POST /api/layout/preview."""

    template_id: str = Field(..., alias="templateId")
    field_values: dict[str, str] = Field(default_factory=dict, alias="fieldValues")
    viewport_width: Optional[float] = Field(None, alias="viewportWidth", gt=0)
    viewport_height: Optional[float] = Field(None, alias="viewportHeight", gt=0)

    model_config = {"populate_by_name": True}


class PreviewNode(BaseModel):
    """A text node positioned in preview space."""

    field_id: str = Field(..., alias="fieldId")
    text: str
    x: float
    y: float
    width: float
    height: float
    font_size: float = Field(..., alias="fontSize")
    font_family: str = Field(..., alias="fontFamily")
    color: str
    text_align: str = Field(..., alias="textAlign")

    model_config = {"populate_by_name": True}


class PreviewResponse(BaseModel):
    """Preview layout of a template at viewport scale."""

    template_id: str = Field(..., alias="templateId")
    scale: float
    native_width: float = Field(..., alias="nativeWidth")
    native_height: float = Field(..., alias="nativeHeight")
    scaled_width: float = Field(..., alias="scaledWidth")
    scaled_height: float = Field(..., alias="scaledHeight")
    nodes: list[PreviewNode]

    model_config = {"populate_by_name": True}


class DragRequest(BaseModel):
    """
    Request body for POST /api/layout/drag.

    The drop point is where the anchor ended up in preview space.
    """

    template_id: str = Field(..., alias="templateId")
    field_id: str = Field(..., alias="fieldId")
    scale: float = Field(..., gt=0, le=1)
    drop_point: Point = Field(..., alias="dropPoint")

    model_config = {"populate_by_name": True}


class DragResponse(BaseModel):
    """The field with its anchor moved to the drop point, in native pixels."""

    field: FieldDefinition
    previous_anchor: Point = Field(..., alias="previousAnchor")

    model_config = {"populate_by_name": True}
