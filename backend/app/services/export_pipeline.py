"""
Export pipeline: template + field values -> one-page certificate document.

Steps:
1. Wait (bounded) for the template image to finish loading
2. Resolve native dimensions (declared, else from the image)
3. Build a clean layout tree with the anchor layout engine
4. Rasterize the tree at native resolution
5. Wrap the bitmap as a single-page document

Everything happens in native space; the preview viewport never affects
the output.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from app.config import settings
from app.middleware import RenderError
from app.models import Template
from layout_engine import Dimensions, PlacedText, build_layout_nodes
from .asset_loader import AssetLoader, FileAssetLoader
from .pillow_rasterizer import PillowRasterizer
from .rasterizer import LayoutTree, Rasterizer

logger = logging.getLogger(__name__)


@dataclass
class ExportedDocument:
    """Rendered certificate document."""

    content: bytes
    width: int
    height: int
    media_type: str
    degraded: bool = False
    warnings: list[str] = field(default_factory=list)


def resolve_native_dimensions(template: Template, image: Optional[Any]) -> Dimensions:
    """
    Native export size of a template.

    Declared dimensions win; otherwise the loaded image decides. There is
    no fallback size.

    Raises:
        RenderError: If neither is available
    """
    declared = template.declared_dimensions
    if declared is not None:
        return Dimensions(int(declared.width), int(declared.height))
    if image is not None:
        width, height = image.size
        return Dimensions(int(width), int(height))
    raise RenderError(
        f"Cannot determine native dimensions for template {template.id}",
        details={"template_id": template.id, "image_source": template.image_source},
    )


class ExportPipeline:
    """Builds, rasterizes and encodes certificate documents."""

    def __init__(
        self,
        rasterizer: Rasterizer,
        asset_loader: AssetLoader,
        load_timeout_ms: int = 5000,
    ):
        self.rasterizer = rasterizer
        self.asset_loader = asset_loader
        self.load_timeout_ms = load_timeout_ms

    async def _measure(
        self, text: str, font_size: float, font_family: str
    ) -> tuple[float, float]:
        metrics = await self.rasterizer.measure_text(text, font_size, font_family)
        return metrics.width, metrics.height

    async def layout_nodes(
        self, template: Template, field_values: Mapping[str, str]
    ) -> list[PlacedText]:
        """Native-space placements for every visible, non-empty field."""
        try:
            return await build_layout_nodes(template.fields, field_values, self._measure)
        except RenderError:
            raise
        except Exception as e:
            raise RenderError(
                f"Failed to lay out fields: {e}", details={"template_id": template.id}
            ) from e

    async def load_template_image(self, template: Template):
        """Wait for the template image; returns (image, dimensions, complete)."""
        try:
            asset = await self.asset_loader.wait_until_loaded(
                template.image_source, self.load_timeout_ms
            )
        except Exception as e:
            raise RenderError(
                f"Failed to load template image: {e}",
                details={"image_source": template.image_source},
            ) from e

        dimensions = resolve_native_dimensions(template, asset.image)
        return asset.image, dimensions, asset.complete

    async def export(
        self, template: Template, field_values: Mapping[str, str]
    ) -> ExportedDocument:
        """
        Render one certificate document.

        Args:
            template: Template to render on
            field_values: Field values keyed by field ID

        Returns:
            ExportedDocument: Document bytes at native resolution

        Raises:
            RenderError: If the image or dimensions are unavailable, or the
                         rasterizer fails
        """
        image, dimensions, complete = await self.load_template_image(template)
        warnings = []
        if not complete:
            warnings.append(
                f"Template image {template.image_source} did not finish loading "
                f"within {self.load_timeout_ms} ms; output is degraded"
            )

        width, height = int(dimensions.width), int(dimensions.height)
        tree = LayoutTree(
            width=width,
            height=height,
            background=image,
            nodes=await self.layout_nodes(template, field_values),
        )

        try:
            bitmap = await self.rasterizer.render_layout_tree(tree)
            document = await self.rasterizer.encode_as_document(bitmap, width, height)
        except RenderError:
            raise
        except Exception as e:
            logger.error(f"Rasterization failed for template {template.id}: {e}")
            raise RenderError(
                f"Rasterization failed: {e}", details={"template_id": template.id}
            ) from e
        finally:
            tree.nodes.clear()
            tree.background = None

        logger.info(
            f"Exported certificate on {template.id} at {width}x{height}"
            f"{' (degraded)' if warnings else ''}"
        )
        return ExportedDocument(
            content=document,
            width=width,
            height=height,
            media_type=self.rasterizer.document_media_type,
            degraded=not complete,
            warnings=warnings,
        )


# Singleton pipeline instance
_pipeline_instance: ExportPipeline | None = None


def get_export_pipeline() -> ExportPipeline:
    """Get the configured export pipeline (Pillow rasterizer, filesystem assets)."""
    global _pipeline_instance

    if _pipeline_instance is None:
        _pipeline_instance = ExportPipeline(
            rasterizer=PillowRasterizer(font_directory=settings.FONT_DIRECTORY),
            asset_loader=FileAssetLoader(
                asset_dir=settings.TEMPLATE_ASSET_DIR,
                poll_interval_ms=settings.ASSET_POLL_INTERVAL_MS,
            ),
            load_timeout_ms=settings.ASSET_LOAD_TIMEOUT_MS,
        )
    return _pipeline_instance


def reset_export_pipeline() -> None:
    """Reset the pipeline singleton (for testing purposes)."""
    global _pipeline_instance
    _pipeline_instance = None
