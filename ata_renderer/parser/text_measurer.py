"""Measure rendered text width with the PDF font metrics."""
from __future__ import annotations

from reportlab.pdfbase import pdfmetrics

from ata_renderer.model.layout_config import LayoutConfig
from ata_renderer.utils.logger import get_logger

LOGGER = get_logger(__name__)

# Approximation for Latin alphabets when no metrics are available
FALLBACK_WIDTH_FACTOR = 0.5


class TextMeasurer:
    """Width of text runs in points for one font face and size.

    The face is the one the PDF text is painted with, so preview wrapping
    and painted output agree. Unknown faces degrade to a fixed width per
    character.
    """

    def __init__(self, font_name: str, font_size: float) -> None:
        self.font_name = font_name
        self.font_size = font_size
        self._metrics_available = self._has_font_metrics(font_name)

    @classmethod
    def for_preview(cls, config: LayoutConfig) -> "TextMeasurer":
        return cls(config.pdf_font_name, config.preview_font_size_pt)

    @property
    def uses_fallback(self) -> bool:
        return not self._metrics_available

    def measure(self, text: str) -> float:
        if not text:
            return 0.0
        if not self._metrics_available:
            return self.estimate(text)
        return pdfmetrics.stringWidth(text, self.font_name, self.font_size)

    def estimate(self, text: str) -> float:
        return len(text) * self.font_size * FALLBACK_WIDTH_FACTOR

    @staticmethod
    def _has_font_metrics(font_name: str) -> bool:
        try:
            pdfmetrics.getFont(font_name)
        except KeyError:
            LOGGER.warning("Font %s unavailable; falling back to estimated character widths", font_name)
            return False
        return True
