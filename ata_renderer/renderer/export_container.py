"""Off-screen markup rasterized by the PDF pipeline."""
from __future__ import annotations

import html as html_lib
from typing import Sequence

from bs4 import BeautifulSoup

from ata_renderer.model.elements import SignatureEntry
from ata_renderer.model.layout_config import LayoutConfig
from ata_renderer.parser.line_gutter import LineNumberGutter
from ata_renderer.renderer.markup_layout import parse_css
from ata_renderer.renderer.utils import MONO_STACK, SERIF_STACK, strip_spacing, style_to_css

SIGNATURE_BLOCK_SPACING_PX = 40
GUTTER_PADDING_RIGHT_PX = 5
EDITOR_HEADING_TAGS = ("h1", "h2", "h3")


class ExportContainerBuilder:
    """Build the gutter + content container and the per-page header wrapper.

    Content blocks lose their own spacing declarations so every line sits on
    the ``line_height_px`` grid shared with the gutter.
    """

    def __init__(self, config: LayoutConfig, gutter: LineNumberGutter | None = None) -> None:
        self._config = config
        self._gutter = gutter or LineNumberGutter(config)

    # ------------------------------------------------------------------
    # Public API
    def normalize_content(self, content_html: str) -> str:
        """Editor markup with spacing stripped and headings at body size."""
        soup = BeautifulSoup(strip_spacing(content_html), "html.parser")
        for heading in soup.find_all(EDITOR_HEADING_TAGS):
            declarations = parse_css(heading.get("style"))
            declarations["font-size"] = f"{self._config.content_font_size_pt:g}pt"
            heading["style"] = style_to_css(declarations)
        return str(soup)

    def content_column(self, content_html: str, signatures: Sequence[SignatureEntry] = (), padded: bool = True) -> str:
        """Text column; ``padded=False`` gives the geometry used for line counting."""
        config = self._config
        style = {
            "width": f"{config.text_column_width_px}px",
            "font-family": SERIF_STACK,
            "font-size": f"{config.content_font_size_pt:g}pt",
            "text-align": "justify",
            "line-height": f"{config.line_height_px}px",
            "padding-top": f"{config.content_padding_top_px}px" if padded else "",
        }
        body = self.normalize_content(content_html) + self.signature_section(signatures)
        return f'<div style="{style_to_css(style)}">{body}</div>'

    def gutter_column(self, line_count: int) -> str:
        config = self._config
        style = {
            "width": f"{config.gutter_width_px}px",
            "padding-right": f"{GUTTER_PADDING_RIGHT_PX}px",
            "text-align": "left",
            "font-family": MONO_STACK,
            "font-size": f"{config.gutter_font_size_pt:g}pt",
            "line-height": f"{config.line_height_px}px",
            "padding-top": f"{config.content_padding_top_px}px",
        }
        return f'<div style="{style_to_css(style)}">{self._gutter.numbers_markup(line_count)}</div>'

    def signature_section(self, signatures: Sequence[SignatureEntry]) -> str:
        """Wrapped row of centred, upper-cased name/role blocks."""
        if not signatures:
            return ""
        config = self._config
        section = {
            "padding-top": f"{config.signature_padding_top_px}px",
            "padding-bottom": f"{config.signature_padding_bottom_px}px",
            "display": "flex",
            "flex-wrap": "wrap",
            "justify-content": "space-around",
            "gap": f"{config.signature_gap_px}px",
            "width": "100%",
        }
        block = {
            "text-align": "center",
            "min-width": f"{config.signature_min_width_px}px",
            "padding-bottom": f"{SIGNATURE_BLOCK_SPACING_PX}px",
        }
        blocks = []
        for signature in signatures:
            name = html_lib.escape(signature.name.upper())
            role = html_lib.escape(signature.role.upper())
            blocks.append(
                f'<div style="{style_to_css(block)}">'
                f'<div style="font-weight: bold; text-transform: uppercase">{name}</div>'
                f'<div style="text-transform: uppercase">{role}</div>'
                "</div>"
            )
        return f'<div style="{style_to_css(section)}">{"".join(blocks)}</div>'

    def container(self, content_html: str, line_count: int, signatures: Sequence[SignatureEntry] = (),
                  show_line_numbers: bool = True) -> str:
        """Full-width flex row: gutter (optional) then the text column."""
        config = self._config
        style = {
            "display": "flex",
            "width": f"{config.container_width_px}px",
            "padding-bottom": f"{config.container_padding_bottom_px}px",
        }
        gutter = self.gutter_column(line_count) if show_line_numbers else ""
        return f'<div style="{style_to_css(style)}">{gutter}{self.content_column(content_html, signatures)}</div>'

    def header_container(self, header_html: str, align_to_content: bool = True) -> str:
        """Header wrapper at container width; unaligned headers span only the text column."""
        config = self._config
        style = {
            "width": f"{config.container_width_px}px",
            "font-family": SERIF_STACK,
            "font-size": f"{config.header_font_size_pt:g}pt",
            "padding-left": "" if align_to_content else f"{config.gutter_width_px}px",
        }
        return f'<div style="{style_to_css(style)}">{_full_width_tables(header_html)}</div>'

    def flow_header_container(self, header_html: str) -> str:
        """Padded fixed-width header rendered once for the DOCX repeating header."""
        config = self._config
        padding = config.docx_header_padding_px
        style = {
            "width": f"{config.docx_header_width_px + 2 * padding}px",
            "padding": f"{padding}px",
            "font-family": SERIF_STACK,
            "font-size": f"{config.header_font_size_pt:g}pt",
        }
        return f'<div style="{style_to_css(style)}">{_full_width_tables(header_html)}</div>'


def _full_width_tables(markup: str) -> str:
    soup = BeautifulSoup(markup or "", "html.parser")
    for table in soup.find_all("table"):
        declarations = parse_css(table.get("style"))
        declarations.update({"border-collapse": "collapse", "width": "100%"})
        table["style"] = style_to_css(declarations)
    return str(soup)
