"""Common helpers shared by renderer implementations."""
from __future__ import annotations

from typing import Dict, Iterable

from bs4 import BeautifulSoup

from ata_renderer.model.layout_config import LayoutConfig
from ata_renderer.renderer.markup_layout import parse_css

SPACING_PROPERTIES = (
    "margin", "margin-top", "margin-bottom", "margin-left", "margin-right",
    "padding", "padding-top", "padding-bottom", "padding-left", "padding-right",
    "line-height",
)

SERIF_STACK = "'Times New Roman', serif"
MONO_STACK = "'Courier New', monospace"


def style_to_css(style: Dict[str, object]) -> str:
    """Serialize a property mapping into an inline ``style`` value."""
    return "; ".join(f"{name}: {value}" for name, value in style.items() if value is not None and value != "")


def strip_spacing(markup: str, properties: Iterable[str] = SPACING_PROPERTIES) -> str:
    """Drop spacing declarations from every element so blocks keep the global line height."""
    soup = BeautifulSoup(markup or "", "html.parser")
    dropped = set(properties)
    for tag in soup.find_all(style=True):
        declarations = {k: v for k, v in parse_css(tag["style"]).items() if k not in dropped}
        if declarations:
            tag["style"] = style_to_css(declarations)
        else:
            del tag["style"]
    return str(soup)


def editor_body_css(config: LayoutConfig, show_line_numbers: bool = True, background: str = "") -> str:
    """Stylesheet for the live editor body in numbered or plain mode.

    ``background`` is the gutter image from
    :meth:`LineNumberGutter.editor_background`; it is ignored when line
    numbers are hidden.
    """
    body = {
        "font-family": SERIF_STACK,
        "font-size": f"{config.content_font_size_pt:g}pt",
        "line-height": f"{config.line_height_px}px",
        "text-align": "justify",
        "color": "#000000",
        "box-sizing": "border-box",
        "width": f"{config.container_width_px}px",
        "max-width": f"{config.container_width_px}px",
        "margin": "0 auto",
        "padding-top": f"{config.editor_padding_top_px}px",
    }
    if show_line_numbers:
        body["padding-left"] = f"{config.editor_gutter_padding_px}px"
        if background:
            body["background-image"] = f"url('{background}')"
            body["background-repeat"] = "no-repeat"
            body["background-position"] = "0 0"
            body["background-attachment"] = "local"

    blocks = {
        "margin": "0 !important",
        "padding": "0 !important",
        "line-height": f"{config.line_height_px}px !important",
    }
    headings = {"font-size": f"{config.content_font_size_pt:g}pt !important", "font-weight": "bold"}
    return (
        f"body {{ {style_to_css(body)}; }}\n"
        f"p, h1, h2, h3, h4, h5, h6, div, li, ol, ul {{ {style_to_css(blocks)}; }}\n"
        f"h1, h2, h3 {{ {style_to_css(headings)}; }}\n"
    )
