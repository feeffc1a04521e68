"""Immutable layout constants shared by every typesetting component."""
from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

A4_WIDTH_PT = 595.28
A4_HEIGHT_PT = 841.89


@dataclass(frozen=True, slots=True)
class LayoutConfig:
    """Page geometry, fonts and tuning knobs for preview and export.

    Two unit systems coexist. The live preview works in points against the
    PDF font metrics; the editor, gutter, export container and raster slicer
    work in CSS pixels with ``line_height_px`` as their single line height.
    """

    # Page geometry (points)
    page_width_pt: float = A4_WIDTH_PT
    page_height_pt: float = A4_HEIGHT_PT
    export_margin_pt: float = 50.0

    # PDF vector text
    pdf_font_name: str = "Times-Roman"
    pdf_bold_font_name: str = "Times-Bold"
    footer_font_size_pt: float = 10.0
    cnpj_font_size_pt: float = 9.0
    footer_offset_pt: float = 15.0
    cnpj_line_gap_pt: float = 12.0

    # Raster page assembly
    header_gap_pt: float = 10.0
    footer_buffer_pt: float = 50.0
    max_header_height_pt: float = 200.0
    fallback_header_height_pt: float = 80.0
    jpeg_quality: int = 80
    raster_scale: int = 2

    # Safe-cut scanner
    safe_cut_search_lines: int = 3
    safe_cut_min_gap_px: int = 20
    safe_cut_samples: int = 30
    safe_cut_white_threshold: int = 252
    safe_cut_blank_ratio: float = 0.9

    # Live preview (points)
    preview_margin_pt: float = 70.0
    preview_font_size_pt: float = 12.0
    preview_line_height_pt: float = 20.0
    preview_first_header_pt: float = 150.0
    preview_continuation_header_pt: float = 50.0
    preview_footer_pt: float = 50.0

    # Editor / export container (CSS pixels)
    line_height_px: int = 28
    container_width_px: int = 734
    gutter_width_px: int = 40
    content_font_size_pt: float = 14.0
    gutter_font_size_pt: float = 11.0
    content_padding_top_px: int = 3
    container_padding_bottom_px: int = 50
    header_font_size_pt: float = 10.0
    editor_line_numbers: int = 1000
    editor_gutter_padding_px: int = 80
    editor_padding_top_px: int = 4

    # Signatures
    signature_padding_top_px: int = 120
    signature_padding_bottom_px: int = 50
    signature_min_width_px: int = 250
    signature_gap_px: int = 60

    # DOCX header image
    docx_header_width_px: int = 700
    docx_header_padding_px: int = 10
    docx_header_max_width_px: int = 600

    @property
    def preview_content_width_pt(self) -> float:
        """Wrap budget of the live preview (page width minus both margins)."""
        return self.page_width_pt - 2 * self.preview_margin_pt

    @property
    def export_content_width_pt(self) -> float:
        return self.page_width_pt - 2 * self.export_margin_pt

    @property
    def text_column_width_px(self) -> int:
        """Width of the content column beside the gutter; equals the editor body width."""
        return self.container_width_px - self.gutter_width_px

    @property
    def canvas_line_height_px(self) -> int:
        return self.line_height_px * self.raster_scale

    def with_overrides(self, **overrides: Any) -> "LayoutConfig":
        return replace(self, **overrides)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "LayoutConfig":
        """Build a config from a plain mapping, rejecting unknown keys."""
        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ValueError(f"Unknown layout settings: {', '.join(unknown)}")

        values = {}
        for key, raw in data.items():
            default = getattr(cls(), key)
            try:
                values[key] = _coerce(default, raw)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"Invalid value for {key}: {raw!r}") from exc
        config = cls(**values)
        config.validate()
        return config

    def validate(self) -> None:
        if self.line_height_px <= 0 or self.preview_line_height_pt <= 0:
            raise ValueError("Line height must be positive")
        if self.gutter_width_px >= self.container_width_px:
            raise ValueError("Gutter must be narrower than the export container")
        if self.raster_scale < 1:
            raise ValueError("Raster scale must be at least 1")
        if not 0 < self.safe_cut_blank_ratio <= 1:
            raise ValueError("safe_cut_blank_ratio must be within (0, 1]")


def _coerce(default: Any, raw: Any) -> Any:
    if isinstance(default, int) and isinstance(raw, float) and not raw.is_integer():
        raise ValueError(f"expected a whole number, got {raw!r}")
    return type(default)(raw)


def load_layout_config(path: Path | None) -> LayoutConfig:
    """Read a JSON override file; ``None`` yields the defaults."""
    if path is None:
        return LayoutConfig()
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"Layout config must be a JSON object: {path}")
    return LayoutConfig.from_mapping(payload)
