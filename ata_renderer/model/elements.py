"""In-memory representation of minutes content, layout and export results."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

import numpy as np


@dataclass(slots=True)
class ContentBlock:
    """One top-level block of the minutes body."""

    tag: str
    text: str
    alignment: str = "justify"
    html: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()


@dataclass(slots=True)
class WrappedLine:
    """A single typeset line of the live preview."""

    text: str
    width: float
    is_justified: bool
    is_last_line_of_paragraph: bool

    @property
    def renders_justified(self) -> bool:
        """Last lines of a paragraph are left-aligned even when justified."""
        return self.is_justified and not self.is_last_line_of_paragraph


@dataclass(slots=True)
class PageFrame:
    """Preview page holding consecutive wrapped lines."""

    lines: List[WrappedLine]
    page_number: int


@dataclass(slots=True)
class SignatureEntry:
    """Signer appended to the end of an exported document."""

    id: int
    name: str
    role: str


@dataclass(slots=True)
class HeaderTemplate:
    """User-authored header markup with placeholder tokens."""

    id: str
    name: str
    html: str
    footer_text: str = ""


@dataclass(frozen=True, slots=True)
class MeetingMetadata:
    """Substitution source for header placeholders, built fresh per export."""

    condo_name: str
    company_name: str = ""
    date: str = ""
    start_time: str = ""
    end_time: str = ""
    year: str = ""
    page_num: int = 1
    total_pages: int = 1
    cnpj: str = ""
    company_logo_url: Optional[str] = None
    condo_logo_url: Optional[str] = None

    def with_page(self, page_num: int, total_pages: int) -> "MeetingMetadata":
        return replace(self, page_num=page_num, total_pages=total_pages)


@dataclass(slots=True)
class MediaAsset:
    """Image bytes resolved from a logo or header ``src`` attribute."""

    source: str
    media_type: str
    binary_data: bytes
    size: int
    metadata: Dict[str, object] = field(default_factory=dict)


@dataclass(slots=True)
class TextLine:
    """A line box laid out by the software rasterizer (CSS pixels)."""

    text: str
    x: float
    top: float
    line_height: float
    glyph_bottom: float
    width: float = 0.0

    @property
    def bottom(self) -> float:
        return self.top + self.line_height


@dataclass(slots=True)
class RenderedLayout:
    """Geometry of rendered markup, used for line counting."""

    width: float
    height: float
    lines: List[TextLine] = field(default_factory=list)

    def last_text_line(self) -> Optional[TextLine]:
        """Return the last line that contains non-whitespace text."""
        for line in reversed(self.lines):
            if line.text.strip():
                return line
        return None


@dataclass(slots=True)
class RasterImage:
    """Rasterized bitmap with ``pixels`` as an ``H x W x 3`` uint8 array."""

    pixels: np.ndarray
    width: int
    height: int

    @classmethod
    def from_array(cls, pixels: np.ndarray) -> "RasterImage":
        height, width = pixels.shape[:2]
        return cls(pixels=pixels, width=int(width), height=int(height))

    @property
    def aspect_ratio(self) -> float:
        """Height over width."""
        return self.height / self.width if self.width else 0.0


@dataclass(slots=True)
class RasterSlice:
    """Pixel-row range of the master canvas that becomes one PDF page."""

    page_number: int
    top_px: int
    height_px: int
    safe_cut: bool = False

    @property
    def bottom_px(self) -> int:
        return self.top_px + self.height_px


@dataclass(slots=True)
class ExportRequest:
    """Everything an export pipeline consumes."""

    content_html: str
    metadata: MeetingMetadata
    header: HeaderTemplate
    signatures: List[SignatureEntry] = field(default_factory=list)
    show_line_numbers: bool = True
    align_header_to_content: bool = True


@dataclass(slots=True)
class ExportProgress:
    """Progress event emitted by the export pipelines."""

    stage: str
    page: int = 0
    total_pages: int = 0


@dataclass(slots=True)
class ExportArtifact:
    """Binary result of an export, not persisted by the engine."""

    filename: str
    media_type: str
    content: bytes
    page_count: Optional[int] = None
