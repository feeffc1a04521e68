"""Slice a tall master canvas into A4 page bodies.

Cuts are first placed on whole canvas lines; the scanner then looks a few
lines above that position for a band of blank pixel rows and cuts in the
middle of it, so no rendered line is split between two pages.
"""
from __future__ import annotations

import math
from typing import Iterator, List, Optional

import numpy as np

from ata_renderer.model.elements import RasterImage, RasterSlice
from ata_renderer.model.layout_config import LayoutConfig
from ata_renderer.utils.logger import get_logger

LOGGER = get_logger(__name__)


class RasterPaginator:
    """Line-aligned page slicing over canvas pixels."""

    def __init__(self, config: LayoutConfig) -> None:
        self._config = config

    @property
    def canvas_line_height(self) -> int:
        return self._config.canvas_line_height_px

    # ------------------------------------------------------------------
    # Public API
    def body_top_pt(self, header_height_pt: float) -> float:
        """Y position (points from the page top) where the body image starts."""
        return self._config.export_margin_pt + header_height_pt + self._config.header_gap_pt

    def available_height_pt(self, header_height_pt: float) -> float:
        config = self._config
        return config.page_height_pt - self.body_top_pt(header_height_pt) - config.export_margin_pt - config.footer_buffer_pt

    def px_to_pt(self, canvas_width: int) -> float:
        """Points per canvas pixel once the canvas is scaled to the content width."""
        return self._config.export_content_width_pt / canvas_width

    def theoretical_slice_px(self, canvas_width: int, header_height_pt: float) -> int:
        """Whole canvas lines that fit in the page body, never less than one line."""
        available_px = self.available_height_pt(header_height_pt) / self.px_to_pt(canvas_width)
        lines = max(1, math.floor(available_px / self.canvas_line_height))
        return lines * self.canvas_line_height

    def iter_slices(self, master: RasterImage, header_height_pt: float) -> Iterator[RasterSlice]:
        """Yield page slices covering the master canvas exactly once, top to bottom."""
        canvas_height = master.height
        theoretical = self.theoretical_slice_px(master.width, header_height_pt)
        search_range = self.canvas_line_height * self._config.safe_cut_search_lines

        cursor = 0
        page_number = 1
        while cursor < canvas_height:
            theoretical_cut = cursor + theoretical
            safe_cut = False
            if theoretical_cut >= canvas_height:
                height = canvas_height - cursor
            else:
                search_start = max(cursor + self.canvas_line_height, theoretical_cut - search_range)
                found = self.find_safe_cut(master.pixels, theoretical_cut, search_start)
                cut = found if found is not None else theoretical_cut
                safe_cut = found is not None
                height = max(cut - cursor, self.canvas_line_height)
                height = min(height, canvas_height - cursor)

            LOGGER.debug(
                "Page %d: rows %d-%d (%d px, theoretical %d px, safe cut %s)",
                page_number, cursor, cursor + height, height, theoretical, safe_cut,
            )
            yield RasterSlice(page_number=page_number, top_px=cursor, height_px=height, safe_cut=safe_cut)
            cursor += height
            page_number += 1

    def plan(self, master: RasterImage, header_height_pt: float) -> List[RasterSlice]:
        return list(self.iter_slices(master, header_height_pt))

    def count_pages(self, master: RasterImage, header_height_pt: float) -> int:
        """Pre-pass: run the slicing loop without producing output."""
        return sum(1 for _ in self.iter_slices(master, header_height_pt))

    def find_safe_cut(self, pixels: np.ndarray, theoretical_y: int, search_start: Optional[int] = None) -> Optional[int]:
        """Scan upward from ``theoretical_y`` for a blank band; return its middle row.

        A band is a contiguous run of sampled-blank rows, followed up to its
        top or to ``search_start``. Its middle row must also be free of ink
        across the full width; otherwise the nearest such row in the band is
        used. Returns None when no band of at least ``safe_cut_min_gap_px``
        rows offers one.
        """
        config = self._config
        if search_start is None:
            search_start = theoretical_y - self.canvas_line_height * config.safe_cut_search_lines
        search_start = max(0, int(search_start))
        search_end = min(int(theoretical_y), pixels.shape[0] - 1)
        if search_end < search_start:
            return None

        window = pixels[search_start:search_end + 1]
        blank = self.blank_rows(window)
        clean = self.clean_rows(window)
        offset = len(blank) - 1
        while offset >= 0:
            if not blank[offset]:
                offset -= 1
                continue
            run_bottom = offset
            while offset >= 0 and blank[offset]:
                offset -= 1
            run_top = offset + 1
            if run_bottom - run_top + 1 < config.safe_cut_min_gap_px:
                continue
            row = self._clean_row_near_middle(clean, run_top, run_bottom)
            if row is not None:
                return search_start + row
        return None

    def blank_rows(self, rows: np.ndarray) -> np.ndarray:
        """Boolean mask of rows whose sampled pixels are near-white."""
        config = self._config
        if rows.shape[0] == 0:
            return np.zeros(0, dtype=bool)
        width = rows.shape[1]
        samples = config.safe_cut_samples
        columns = (np.arange(samples) * width // samples).astype(int)
        sampled = rows[:, columns, :3]
        white = np.all(sampled > config.safe_cut_white_threshold, axis=2)
        return white.sum(axis=1) / samples > config.safe_cut_blank_ratio

    def clean_rows(self, rows: np.ndarray) -> np.ndarray:
        """Boolean mask of rows where every pixel is near-white."""
        if rows.shape[0] == 0:
            return np.zeros(0, dtype=bool)
        return (rows[:, :, :3] > self._config.safe_cut_white_threshold).all(axis=(1, 2))

    @staticmethod
    def _clean_row_near_middle(clean: np.ndarray, run_top: int, run_bottom: int) -> Optional[int]:
        candidates = np.arange(run_top, run_bottom + 1)
        candidates = candidates[clean[run_top:run_bottom + 1]]
        if candidates.size == 0:
            return None
        middle = (run_top + run_bottom) // 2
        return int(candidates[np.argmin(np.abs(candidates - middle))])
