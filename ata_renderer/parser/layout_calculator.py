"""Convert minutes HTML into wrapped lines and live-preview pages."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from ata_renderer.model.document_model import MinutesDocument
from ata_renderer.model.elements import PageFrame, WrappedLine
from ata_renderer.model.layout_config import LayoutConfig
from ata_renderer.parser.content_parser import ContentParser
from ata_renderer.parser.line_wrapper import LineWrapper
from ata_renderer.parser.text_measurer import TextMeasurer
from ata_renderer.utils.logger import get_logger

LOGGER = get_logger(__name__)


@dataclass(slots=True)
class PageBudget:
    """Vertical space of a preview page, in points."""

    page_height: float
    line_height: float
    first_header: float
    continuation_header: float
    footer_reserve: float

    @property
    def usable_bottom(self) -> float:
        return self.page_height - self.footer_reserve

    @classmethod
    def from_config(cls, config: LayoutConfig) -> "PageBudget":
        return cls(
            page_height=config.page_height_pt,
            line_height=config.preview_line_height_pt,
            first_header=config.preview_first_header_pt,
            continuation_header=config.preview_margin_pt + config.preview_continuation_header_pt,
            footer_reserve=config.preview_margin_pt + config.preview_footer_pt,
        )


class PreviewPaginator:
    """Split a flat line stream into preview pages.

    Only the on-screen preview uses this; the PDF export slices its own
    rendered canvas and may break pages at different lines.
    """

    def __init__(self, budget: PageBudget) -> None:
        self._budget = budget

    @classmethod
    def from_config(cls, config: LayoutConfig) -> "PreviewPaginator":
        return cls(PageBudget.from_config(config))

    def paginate(self, lines: Sequence[WrappedLine]) -> List[PageFrame]:
        budget = self._budget
        pages: List[PageFrame] = []
        current: List[WrappedLine] = []
        running = budget.first_header

        for line in lines:
            if current and running + budget.line_height > budget.usable_bottom:
                pages.append(PageFrame(lines=current, page_number=len(pages) + 1))
                current = []
                running = budget.continuation_header
            current.append(line)
            running += budget.line_height

        if current or not pages:
            pages.append(PageFrame(lines=current, page_number=len(pages) + 1))
        return pages

    def capacity(self, first_page: bool = True) -> int:
        """Number of lines that fit on a first or continuation page."""
        budget = self._budget
        start = budget.first_header if first_page else budget.continuation_header
        return max(int((budget.usable_bottom - start) // budget.line_height), 1)


class LayoutCalculator:
    """Transform minutes HTML into the preview document model."""

    def __init__(self, config: LayoutConfig, measurer: Optional[TextMeasurer] = None) -> None:
        self._config = config
        self._parser = ContentParser()
        self._wrapper = LineWrapper(measurer or TextMeasurer.for_preview(config), config.preview_content_width_pt)
        self._paginator = PreviewPaginator.from_config(config)

    # ------------------------------------------------------------------
    # Public API
    def calculate(self, html: str) -> MinutesDocument:
        """Return blocks, wrapped lines and preview pages for ``html``."""
        blocks = self._parser.parse(html)
        lines = self._wrapper.wrap_blocks(blocks)
        pages = self._paginator.paginate(lines)
        LOGGER.debug("Preview layout: %d blocks, %d lines, %d pages", len(blocks), len(lines), len(pages))
        return MinutesDocument(blocks=blocks, lines=lines, pages=pages)
