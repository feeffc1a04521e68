"""Line-number gutter kept in lockstep with rendered text lines."""
from __future__ import annotations

import base64
import math
from typing import List

from ata_renderer.model.elements import RenderedLayout
from ata_renderer.model.layout_config import LayoutConfig

# Baseline offset of a number inside its line box in the editor SVG
_SVG_BASELINE_OFFSET = 21


class LineNumberGutter:
    """Generate line-number labels using the global line height."""

    def __init__(self, config: LayoutConfig) -> None:
        self._config = config

    @property
    def line_height(self) -> int:
        return self._config.line_height_px

    def count_lines(self, layout: RenderedLayout) -> int:
        """Number of visually occupied lines up to the last non-blank text.

        The count comes from where the last glyph ends, so it matches the
        rendered text even when wrapping differs from any prediction.
        """
        last = layout.last_text_line()
        if last is None:
            return 1
        return max(1, math.ceil(last.glyph_bottom / self.line_height))

    def labels(self, count: int) -> List[str]:
        return [str(number) for number in range(1, max(count, 0) + 1)]

    def numbers_markup(self, count: int) -> str:
        """Gutter column body for the export container, one ``div`` per line."""
        return "".join(f"<div>{label}</div>" for label in self.labels(count))

    def editor_background(self, color: str = "#9ca3af", lines: int | None = None) -> str:
        """Tiling SVG with pre-generated numbers for the live editor, as a data URL."""
        total = lines if lines is not None else self._config.editor_line_numbers
        height = total * self.line_height
        parts = [
            f'<svg xmlns="http://www.w3.org/2000/svg" width="50" height="{height}">',
            f"<style>text {{ font-family: courier, monospace; font-size: 12px; fill: {color}; }}</style>",
        ]
        for number in range(1, total + 1):
            y = (number - 1) * self.line_height + _SVG_BASELINE_OFFSET
            parts.append(f'<text x="40" y="{y}" text-anchor="end">{number}</text>')
        parts.append("</svg>")
        encoded = base64.b64encode("".join(parts).encode("utf-8")).decode("ascii")
        return f"data:image/svg+xml;base64,{encoded}"
