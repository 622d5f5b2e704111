#!/usr/bin/env python3
"""
Generate placeholder background images for every registered template.

Creates one PNG per template in the asset directory, sized to the
template's declared native dimensions. Templates without declared
dimensions get UNDECLARED_SIZE so the export pipeline reads the size
from the image.

Run with: python backend/scripts/generate_template_assets.py [asset_dir]
"""

import sys
from pathlib import Path

from PIL import Image, ImageDraw

# Add backend to Python path
backend_path = Path(__file__).parent.parent
sys.path.insert(0, str(backend_path))

from app.config import settings
from layout_engine import list_available_templates, load_template

UNDECLARED_SIZE = (800, 600)
BACKGROUND = (250, 248, 240)
BORDER = (26, 35, 126)


def draw_placeholder(width: int, height: int) -> Image.Image:
    """Plain certificate background with a double border."""
    image = Image.new("RGB", (width, height), BACKGROUND)
    draw = ImageDraw.Draw(image)
    outer = max(4, min(width, height) // 40)
    inner = outer * 2
    draw.rectangle([outer, outer, width - outer, height - outer], outline=BORDER, width=3)
    draw.rectangle([inner, inner, width - inner, height - inner], outline=BORDER, width=1)
    return image


def main():
    asset_dir = Path(sys.argv[1] if len(sys.argv) > 1 else settings.TEMPLATE_ASSET_DIR)
    asset_dir.mkdir(parents=True, exist_ok=True)
    print(f"Writing template assets to {asset_dir}")

    for template_id in list_available_templates(settings.TEMPLATES_FILE):
        template = load_template(template_id, settings.TEMPLATES_FILE)
        width = template.get("nativeWidth") or UNDECLARED_SIZE[0]
        height = template.get("nativeHeight") or UNDECLARED_SIZE[1]

        output_path = asset_dir / template["imageSource"]
        output_path.parent.mkdir(parents=True, exist_ok=True)
        draw_placeholder(int(width), int(height)).save(output_path, "PNG")
        print(f"  ✓ {template_id}: {output_path.name} ({width}x{height})")

    return 0


if __name__ == "__main__":
    sys.exit(main())
