"""Turn markup into bitmaps for the PDF pipeline."""
from __future__ import annotations

import asyncio
import math
from typing import Optional, Protocol

import numpy as np
from PIL import Image, ImageDraw

from ata_renderer.model.elements import RasterImage, RenderedLayout
from ata_renderer.model.errors import RasterizationError
from ata_renderer.parser.media_loader import MediaLoader
from ata_renderer.renderer.fonts import FontBook
from ata_renderer.renderer.markup_layout import ImageOp, LayoutResult, MarkupLayoutEngine, RectOp, TextOp
from ata_renderer.utils.logger import get_logger

LOGGER = get_logger(__name__)

BACKGROUND = (255, 255, 255)
INK = (0, 0, 0)


class Rasterizer(Protocol):
    """Renders markup at a fixed CSS width.

    ``measure`` reports line geometry at scale 1 and must agree with what
    ``render_to_image`` paints, because line numbers are derived from it.
    """

    def measure(self, markup: str, width_px: int) -> RenderedLayout: ...

    async def render_to_image(self, markup: str, width_px: int, scale: float = 1.0) -> RasterImage: ...


class PillowRasterizer:
    """Software rasterizer built on the markup layout engine and Pillow."""

    def __init__(self, fonts: Optional[FontBook] = None, media: Optional[MediaLoader] = None) -> None:
        self.fonts = fonts or FontBook()
        self.engine = MarkupLayoutEngine(self.fonts, media if media is not None else MediaLoader())

    def measure(self, markup: str, width_px: int) -> RenderedLayout:
        result = self._layout(markup, width_px)
        return RenderedLayout(width=result.width, height=result.height, lines=list(result.lines))

    async def render_to_image(self, markup: str, width_px: int, scale: float = 1.0) -> RasterImage:
        return await asyncio.to_thread(self.render_sync, markup, width_px, scale)

    def render_sync(self, markup: str, width_px: int, scale: float = 1.0) -> RasterImage:
        result = self._layout(markup, width_px)
        try:
            image = self.paint(result, scale)
        except (OSError, ValueError) as e:
            raise RasterizationError(f"Failed to paint markup: {e}") from e
        LOGGER.debug("Rasterized %dx%d px at scale %s", image.width, image.height, scale)
        return RasterImage.from_array(np.array(image.convert("RGB"), dtype=np.uint8))

    def paint(self, result: LayoutResult, scale: float = 1.0) -> Image.Image:
        width = max(1, int(math.ceil(result.width * scale)))
        height = max(1, int(math.ceil(result.height * scale)))
        image = Image.new("RGB", (width, height), BACKGROUND)
        draw = ImageDraw.Draw(image)

        for op in result.ops:
            if isinstance(op, TextOp):
                font = self.fonts.get(op.family, op.bold, op.italic, op.size_px * scale)
                draw.text((op.x * scale, op.baseline * scale), op.text, font=font, fill=INK, anchor="ls")
            elif isinstance(op, RectOp):
                line_width = max(1, round(op.line_width * scale))
                left, top = op.x * scale, op.y * scale
                right = max(left, (op.x + op.width) * scale - 1)
                bottom = max(top, (op.y + op.height) * scale - 1)
                if op.height == 0:
                    draw.line([(left, top), (right, top)], fill=INK, width=line_width)
                else:
                    draw.rectangle([left, top, right, bottom], outline=INK, width=line_width)
            elif isinstance(op, ImageOp):
                size = (max(1, round(op.width * scale)), max(1, round(op.height * scale)))
                picture = op.image.resize(size, Image.Resampling.LANCZOS)
                image.paste(picture, (round(op.x * scale), round(op.y * scale)), picture if picture.mode == "RGBA" else None)
        return image

    def _layout(self, markup: str, width_px: int) -> LayoutResult:
        if width_px <= 0:
            raise RasterizationError(f"Cannot render markup at width {width_px}")
        try:
            return self.engine.layout(markup, float(width_px))
        except (OSError, ValueError) as e:
            raise RasterizationError(f"Failed to lay out markup: {e}") from e


def to_pil_image(pixels: np.ndarray) -> Image.Image:
    """RGB Pillow image over a pixel array (or a row range of one)."""
    return Image.fromarray(np.ascontiguousarray(pixels[:, :, :3], dtype=np.uint8))
