"""
PillowRasterizer - text metrics, drawing and PDF encoding with Pillow.

Implements the Rasterizer interface. Fonts are looked up as
``{FONT_DIRECTORY}/{family}.ttf``; families without a file fall back to
Pillow's bundled scalable default font.
"""

import asyncio
import io
import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from PIL import Image, ImageColor, ImageDraw, ImageFont

from .rasterizer import LayoutTree, Rasterizer, TextMetrics

logger = logging.getLogger(__name__)

# 72 dpi makes one PDF point equal to one native pixel.
DOCUMENT_DPI = 72.0


@lru_cache(maxsize=64)
def _load_font(font_directory: Optional[str], font_family: str, font_size: float):
    if font_directory:
        font_path = Path(font_directory) / f"{font_family}.ttf"
        if font_path.exists():
            return ImageFont.truetype(str(font_path), size=font_size)
        logger.debug(f"[PILLOW] No font file for family '{font_family}', using default")
    return ImageFont.load_default(size=font_size)


def _line_metrics(font, text: str) -> TextMetrics:
    width = font.getlength(text)
    if hasattr(font, "getmetrics"):
        ascent, descent = font.getmetrics()
        height = ascent + descent
    else:
        left, top, right, bottom = font.getbbox(text)
        height = bottom - top
    return TextMetrics(width=float(width), height=float(height))


class PillowRasterizer(Rasterizer):
    """Rasterizer backed by Pillow."""

    def __init__(self, font_directory: Optional[str] = None):
        self._font_directory = font_directory
        logger.info("[PILLOW] PillowRasterizer initialized")

    @property
    def document_media_type(self) -> str:
        return "application/pdf"

    def _font(self, font_family: str, font_size: float):
        return _load_font(self._font_directory, font_family, float(font_size))

    async def measure_text(
        self, text: str, font_size: float, font_family: str
    ) -> TextMetrics:
        font = self._font(font_family, font_size)
        return _line_metrics(font, text)

    def _render(self, tree: LayoutTree) -> bytes:
        canvas = Image.new("RGB", (tree.width, tree.height), "white")

        if tree.background is not None:
            background = tree.background
            if background.size != (tree.width, tree.height):
                background = background.resize((tree.width, tree.height))
            if background.mode in ("RGBA", "LA", "P"):
                background = background.convert("RGBA")
                canvas.paste(background, (0, 0), background)
            else:
                canvas.paste(background.convert("RGB"), (0, 0))

        draw = ImageDraw.Draw(canvas)
        for node in tree.nodes:
            font = self._font(node.font_family, node.font_size)
            draw.text(
                (node.render_x, node.render_y),
                node.text,
                font=font,
                fill=ImageColor.getrgb(node.color),
            )

        output = io.BytesIO()
        canvas.save(output, format="PNG")
        return output.getvalue()

    async def render_layout_tree(self, tree: LayoutTree) -> bytes:
        logger.debug(
            f"[PILLOW] Rendering {len(tree.nodes)} nodes at {tree.width}x{tree.height}"
        )
        return await asyncio.to_thread(self._render, tree)

    def _encode(self, bitmap: bytes, width: int, height: int) -> bytes:
        with Image.open(io.BytesIO(bitmap)) as image:
            page = image.convert("RGB")
        if page.size != (width, height):
            page = page.resize((width, height))

        output = io.BytesIO()
        page.save(output, format="PDF", resolution=DOCUMENT_DPI)
        return output.getvalue()

    async def encode_as_document(self, bitmap: bytes, width: int, height: int) -> bytes:
        return await asyncio.to_thread(self._encode, bitmap, width, height)
