"""Aggregate model combining parsed blocks and preview pagination."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from ata_renderer.model.elements import ContentBlock, PageFrame, WrappedLine


@dataclass(slots=True)
class MinutesDocument:
    """Flattened preview representation that renderers consume."""

    blocks: List[ContentBlock]
    lines: List[WrappedLine]
    pages: List[PageFrame] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def first_line_number(self, page_index: int) -> int:
        """Sequential number of the first line on the given page (0-based index)."""
        return sum(len(page.lines) for page in self.pages[:page_index]) + 1
