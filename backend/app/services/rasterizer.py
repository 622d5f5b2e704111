"""
Rasterizer abstraction layer for rendering backends.

Defines the interface for turning a positioned layout tree into a bitmap
and a bitmap into a one-page document, allowing the export pipeline to
swap rendering backends.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, NamedTuple, Optional

from layout_engine import PlacedText


class TextMetrics(NamedTuple):
    """Measured size of one line of text in pixels."""

    width: float
    height: float


@dataclass
class LayoutTree:
    """
    Clean, off-screen description of one certificate page.

    Owned by a single export call and discarded after rasterization.
    """

    width: int
    height: int
    background: Optional[Any] = None
    nodes: list[PlacedText] = field(default_factory=list)


class Rasterizer(ABC):
    """
    Abstract base class for rasterization backends.

    Implementations:
    - PillowRasterizer: Pillow text metrics, drawing, and PDF encoding
    """

    @abstractmethod
    async def measure_text(
        self, text: str, font_size: float, font_family: str
    ) -> TextMetrics:
        """
        Measure one line of text on this rendering surface.

        Args:
            text: Text to measure
            font_size: Font size in native pixels
            font_family: Font family name

        Returns:
            TextMetrics: Advance width and line height in native pixels
        """
        pass

    @abstractmethod
    async def render_layout_tree(self, tree: LayoutTree) -> bytes:
        """
        Render a layout tree to a bitmap at the tree's native size.

        Returns:
            bytes: PNG image data
        """
        pass

    @abstractmethod
    async def encode_as_document(self, bitmap: bytes, width: int, height: int) -> bytes:
        """
        Wrap a bitmap as a single-page document sized to the bitmap.

        Returns:
            bytes: Document data (PDF for the bundled backend)
        """
        pass

    @property
    @abstractmethod
    def document_media_type(self) -> str:
        """Media type of documents produced by encode_as_document()."""
        pass
