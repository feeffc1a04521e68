"""Greedy word wrapping against a fixed content-width budget."""
from __future__ import annotations

from typing import List, Protocol, Sequence, Tuple

from ata_renderer.model.elements import WrappedLine


class WidthMeasurer(Protocol):
    def measure(self, text: str) -> float: ...


class LineWrapper:
    """Pack words into lines no wider than ``width_budget``.

    Every word is measured together with one trailing space. A word that is
    wider than the whole budget still gets a line of its own; words are
    never hyphenated.
    """

    def __init__(self, measurer: WidthMeasurer, width_budget: float) -> None:
        if width_budget <= 0:
            raise ValueError("width_budget must be positive")
        self._measurer = measurer
        self.width_budget = width_budget

    def wrap(self, text: str, alignment: str = "justify") -> List[WrappedLine]:
        """Wrap one paragraph of plain text."""
        words = text.split()
        if not words:
            return [WrappedLine(text="", width=0.0, is_justified=False, is_last_line_of_paragraph=True)]

        widths = [self._measurer.measure(word + " ") for word in words]
        ranges = self.break_points(widths, self.width_budget)
        is_justified = alignment == "justify"

        lines: List[WrappedLine] = []
        for index, (start, end) in enumerate(ranges):
            lines.append(
                WrappedLine(
                    text=" ".join(words[start:end]),
                    width=sum(widths[start:end]),
                    is_justified=is_justified,
                    is_last_line_of_paragraph=index == len(ranges) - 1,
                )
            )
        return lines

    def wrap_blocks(self, blocks) -> List[WrappedLine]:
        """Wrap a sequence of content blocks into one flat line stream."""
        lines: List[WrappedLine] = []
        for block in blocks:
            lines.extend(self.wrap(block.text, block.alignment))
        return lines

    @staticmethod
    def break_points(widths: Sequence[float], budget: float) -> List[Tuple[int, int]]:
        """Return ``(start, end)`` word index ranges, one per line."""
        ranges: List[Tuple[int, int]] = []
        start = 0
        current = 0.0
        for index, width in enumerate(widths):
            if index > start and current + width > budget:
                ranges.append((start, index))
                start = index
                current = 0.0
            current += width
        if start < len(widths):
            ranges.append((start, len(widths)))
        return ranges
