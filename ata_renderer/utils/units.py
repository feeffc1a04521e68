"""Unit conversion helpers shared by the layout engine and the DOCX export."""
from __future__ import annotations

CSS_PX_PER_INCH = 96
POINTS_PER_INCH = 72
MM_PER_INCH = 25.4


def points_to_px(value: float) -> float:
    """Convert typographic points to CSS pixels (96dpi)."""
    return value * CSS_PX_PER_INCH / POINTS_PER_INCH


def inches_to_px(value: float) -> float:
    return value * CSS_PX_PER_INCH


def mm_to_px(value: float) -> float:
    return inches_to_px(value / MM_PER_INCH)


def px_to_inches(value: float) -> float:
    return value / CSS_PX_PER_INCH
