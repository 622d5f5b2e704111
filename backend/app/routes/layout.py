"""
Layout endpoints for the template editor.

Provides anchor placement, preview scaling, a scaled preview of a filled
template and drag-to-reposition of field anchors. Anchors are always
stored in native template pixels.
"""

import logging

from fastapi import APIRouter, HTTPException

from app.config import settings
from app.models import (
    DragRequest,
    DragResponse,
    PlaceRequest,
    PlaceResponse,
    PreviewNode,
    PreviewRequest,
    PreviewResponse,
    ScaleRequest,
    ScaleResponse,
)
from app.models import Point as PointModel
from app.services import get_export_pipeline
from app.services.template_service import get_template
from layout_engine import (
    Dimensions,
    DragSession,
    Point,
    compute_scale,
    place,
    preview_layout,
    scaled_dimensions,
    to_native,
    to_preview,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _viewport(width: float | None, height: float | None) -> Dimensions:
    return Dimensions(
        width or settings.MAX_PREVIEW_WIDTH, height or settings.MAX_PREVIEW_HEIGHT
    )


@router.post("/layout/place", response_model=PlaceResponse)
async def place_field(request: PlaceRequest) -> PlaceResponse:
    """Top-left render position of a field's measured text, in native pixels."""
    try:
        placement = place(
            request.field, request.measured_width, request.measured_height
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return PlaceResponse(render_x=placement.render_x, render_y=placement.render_y)


@router.post("/layout/scale", response_model=ScaleResponse)
async def scale_template(request: ScaleRequest) -> ScaleResponse:
    """
    Fit a template into a viewport.

    When a point is supplied it is converted in the requested direction
    (native to preview, or preview to native).
    """
    native = Dimensions(request.native_width, request.native_height)
    scale = compute_scale(
        _viewport(request.viewport_width, request.viewport_height), native
    )
    scaled = scaled_dimensions(native, scale)

    point = None
    if request.point is not None:
        convert = to_preview if request.direction == "toPreview" else to_native
        converted = convert(Point(request.point.x, request.point.y), scale)
        point = PointModel(x=converted.x, y=converted.y)

    return ScaleResponse(
        scale=scale,
        scaled_width=scaled.width,
        scaled_height=scaled.height,
        point=point,
    )


@router.post("/layout/preview", response_model=PreviewResponse)
async def preview_template(request: PreviewRequest) -> PreviewResponse:
    """
    Lay out a filled template in preview space.

    Nodes are the export placements scaled down, so preview and output
    agree on where every field lands.
    """
    template = get_template(request.template_id)
    pipeline = get_export_pipeline()

    _, native, _ = await pipeline.load_template_image(template)
    scale = compute_scale(
        _viewport(request.viewport_width, request.viewport_height), native
    )
    scaled = scaled_dimensions(native, scale)

    nodes = preview_layout(
        await pipeline.layout_nodes(template, request.field_values), scale
    )
    logger.info(
        f"Preview of {template.id}: scale={scale:.4f}, {len(nodes)} nodes"
    )

    return PreviewResponse(
        template_id=template.id,
        scale=scale,
        native_width=native.width,
        native_height=native.height,
        scaled_width=scaled.width,
        scaled_height=scaled.height,
        nodes=[
            PreviewNode(
                field_id=node.field_id,
                text=node.text,
                x=node.render_x,
                y=node.render_y,
                width=node.width,
                height=node.height,
                font_size=node.font_size,
                font_family=node.font_family,
                color=node.color,
                text_align=node.text_align,
            )
            for node in nodes
        ],
    )


@router.post("/layout/drag", response_model=DragResponse)
async def drag_field(request: DragRequest) -> DragResponse:
    """
    Move a field's anchor to a point dropped in preview space.

    Returns a copy of the field with its new native anchor; the template
    itself is not modified.
    """
    template = get_template(request.template_id)
    field = template.get_field(request.field_id)
    if field is None:
        raise HTTPException(
            status_code=404,
            detail=f"Field '{request.field_id}' not found on template {template.id}",
        )

    _, native, _ = await get_export_pipeline().load_template_image(template)

    session = DragSession.start(
        field.id, Point(field.anchor.x, field.anchor.y), request.scale, native
    )
    anchor = session.move_to(Point(request.drop_point.x, request.drop_point.y)).finish()

    logger.info(
        f"Dragged {template.id}.{field.id} to ({anchor.x:.1f}, {anchor.y:.1f})"
    )
    return DragResponse(
        field=field.model_copy(update={"anchor": PointModel(x=anchor.x, y=anchor.y)}),
        previous_anchor=field.anchor,
    )
