"""
Template asset loading with a bounded wait.

Rasterizing against a partially loaded template image is a correctness
bug, so exports block until the image decodes completely. When the
timeout elapses the loader hands back whatever decoded so far (possibly
nothing) and flags the result as incomplete; callers treat that as
degraded output, never as success.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from PIL import Image, ImageFile

logger = logging.getLogger(__name__)


@dataclass
class LoadedAsset:
    """Result of waiting for a template image."""

    source: str
    image: Optional[Any]
    complete: bool


class AssetLoader(ABC):
    """Abstract base class for template asset loaders."""

    @abstractmethod
    async def wait_until_loaded(self, source: str, timeout_ms: int) -> LoadedAsset:
        """
        Wait until the image at source is fully loaded or the timeout elapses.

        Args:
            source: Image source of a template
            timeout_ms: Maximum wait in milliseconds

        Returns:
            LoadedAsset: complete=True with the decoded image, or
                         complete=False with a partial image or None
        """
        pass


class FileAssetLoader(AssetLoader):
    """
    Loads template images from the local filesystem.

    Relative sources resolve against asset_dir. A file that is missing or
    still being written is retried every poll interval until the deadline.
    """

    def __init__(self, asset_dir: str, poll_interval_ms: int = 100):
        self.asset_dir = Path(asset_dir)
        self.poll_interval = poll_interval_ms / 1000

    def resolve(self, source: str) -> Path:
        path = Path(source)
        if not path.is_absolute():
            path = self.asset_dir / path
        return path

    def _try_load(self, path: Path) -> Optional[Image.Image]:
        if not path.exists():
            return None
        try:
            with Image.open(path) as image:
                image.load()
                return image.copy()
        except OSError as e:
            # Truncated or still being written
            logger.debug(f"Template image not ready: {path} ({e})")
            return None

    def _load_partial(self, path: Path) -> Optional[Image.Image]:
        if not path.exists():
            return None
        parser = ImageFile.Parser()
        try:
            parser.feed(path.read_bytes())
        except (OSError, SyntaxError, ValueError) as e:
            logger.warning(f"Could not decode any of template image {path}: {e}")
            return None
        if parser.image is None:
            return None
        return parser.image.copy()

    async def wait_until_loaded(self, source: str, timeout_ms: int) -> LoadedAsset:
        path = self.resolve(source)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_ms / 1000

        while True:
            image = await asyncio.to_thread(self._try_load, path)
            if image is not None:
                logger.debug(f"Template image loaded: {path} {image.size}")
                return LoadedAsset(source=source, image=image, complete=True)

            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            await asyncio.sleep(min(self.poll_interval, remaining))

        partial = await asyncio.to_thread(self._load_partial, path)
        logger.warning(
            f"Template image {path} did not finish loading within {timeout_ms} ms; "
            f"continuing with {'partial image' if partial is not None else 'no background'}"
        )
        return LoadedAsset(source=source, image=partial, complete=False)
