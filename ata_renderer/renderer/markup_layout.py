"""Lay out a subset of HTML and inline CSS into positioned draw operations.

Everything here works in CSS pixels at scale 1. The rasterizer paints the
resulting operations at any scale by multiplying coordinates and font
sizes, so text wraps identically at every resolution.

Supported: block flow for ``p``/``div``/``h1``-``h6``/lists/``img``,
inline ``strong``/``b``/``em``/``i``/``span``/``br``, tables with
``colspan``/``rowspan`` and ``col`` widths, and flex rows (``flex-wrap``,
``gap``, ``justify-content``). Anything else flows as plain text.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple, Union

from bs4 import BeautifulSoup, Comment, NavigableString, Tag
from PIL import Image

from ata_renderer.model.elements import TextLine
from ata_renderer.parser.line_wrapper import LineWrapper
from ata_renderer.parser.media_loader import MediaLoader
from ata_renderer.renderer.fonts import FontBook, family_for
from ata_renderer.utils.logger import get_logger
from ata_renderer.utils.units import inches_to_px, mm_to_px, points_to_px

LOGGER = get_logger(__name__)

BLOCK_TAGS = {
    "p", "div", "h1", "h2", "h3", "h4", "h5", "h6", "ul", "ol", "li", "table",
    "blockquote", "section", "article", "header", "footer", "center", "pre", "img", "hr",
}
# Blocks that occupy one line even when they contain nothing
LINE_TAGS = {"p", "h1", "h2", "h3", "h4", "h5", "h6", "li", "pre"}
HEADING_SCALE = {"h1": 2.0, "h2": 1.5, "h3": 1.17, "h4": 1.0, "h5": 0.83, "h6": 0.67}
SKIPPED_TAGS = {"script", "style", "head", "title", "meta", "link", "colgroup", "col"}

DEFAULT_FONT_PX = 16.0
NORMAL_LINE_HEIGHT = 1.2
TABLE_CELL_PADDING = 5.0
TABLE_BORDER = 1.0

_WHITESPACE = re.compile(r"[ \t\r\n\f\v]+")
_LENGTH = re.compile(r"^(-?\d*\.?\d+)\s*(px|pt|em|rem|%|in|cm|mm)?$")


# ----------------------------------------------------------------------
# Styles
@dataclass(slots=True)
class ComputedStyle:
    """Inherited text properties of an element."""

    font_px: float = DEFAULT_FONT_PX
    family: str = "serif"
    bold: bool = False
    italic: bool = False
    align: str = "left"
    uppercase: bool = False
    line_height_px: Optional[float] = None
    line_height_factor: Optional[float] = None

    def line_height(self) -> float:
        if self.line_height_px is not None:
            return self.line_height_px
        factor = self.line_height_factor if self.line_height_factor is not None else NORMAL_LINE_HEIGHT
        return self.font_px * factor


def parse_css(style: Optional[str]) -> Dict[str, str]:
    """Parse an inline ``style`` attribute into lower-cased declarations."""
    declarations: Dict[str, str] = {}
    for part in (style or "").split(";"):
        if ":" not in part:
            continue
        name, value = part.split(":", 1)
        value = value.replace("!important", "").strip().lower()
        if name.strip():
            declarations[name.strip().lower()] = value
    return declarations


def parse_length(value: Optional[str], font_px: float = DEFAULT_FONT_PX, reference: Optional[float] = None) -> Optional[float]:
    """Convert a CSS length to pixels; unitless numbers count as pixels."""
    if value is None:
        return None
    match = _LENGTH.match(str(value).strip().lower())
    if not match:
        return None
    number = float(match.group(1))
    unit = match.group(2) or "px"
    if unit == "px":
        return number
    if unit == "pt":
        return points_to_px(number)
    if unit in ("em", "rem"):
        return number * font_px
    if unit == "%":
        return number * reference / 100.0 if reference is not None else None
    if unit == "in":
        return inches_to_px(number)
    if unit == "cm":
        return mm_to_px(number * 10)
    return mm_to_px(number)


def _box_sides(value: Optional[str], font_px: float, reference: float) -> Tuple[float, float, float, float]:
    """Expand a ``padding``/``margin`` shorthand into (top, right, bottom, left)."""
    if not value:
        return (0.0, 0.0, 0.0, 0.0)
    parts = [parse_length(p, font_px, reference) or 0.0 for p in value.split()]
    if len(parts) == 1:
        return (parts[0],) * 4
    if len(parts) == 2:
        return (parts[0], parts[1], parts[0], parts[1])
    if len(parts) == 3:
        return (parts[0], parts[1], parts[2], parts[1])
    return tuple(parts[:4])


# ----------------------------------------------------------------------
# Draw operations
@dataclass(slots=True)
class TextOp:
    x: float
    baseline: float
    text: str
    family: str
    bold: bool
    italic: bool
    size_px: float


@dataclass(slots=True)
class RectOp:
    x: float
    y: float
    width: float
    height: float
    line_width: float = TABLE_BORDER


@dataclass(slots=True)
class ImageOp:
    x: float
    y: float
    width: float
    height: float
    image: Image.Image


DrawOp = Union[TextOp, RectOp, ImageOp]


def _shift(op: DrawOp, dx: float, dy: float) -> DrawOp:
    if isinstance(op, TextOp):
        return replace(op, x=op.x + dx, baseline=op.baseline + dy)
    return replace(op, x=op.x + dx, y=op.y + dy)


@dataclass(slots=True)
class LayoutResult:
    """Draw operations plus line geometry for one laid-out fragment."""

    width: float
    height: float = 0.0
    ops: List[DrawOp] = field(default_factory=list)
    lines: List[TextLine] = field(default_factory=list)

    def absorb(self, other: "LayoutResult", dx: float, dy: float) -> None:
        self.ops.extend(_shift(op, dx, dy) for op in other.ops)
        for line in other.lines:
            self.lines.append(replace(line, x=line.x + dx, top=line.top + dy, glyph_bottom=line.glyph_bottom + dy))


# ----------------------------------------------------------------------
# Inline tokens
@dataclass(slots=True)
class _Run:
    text: str
    style: ComputedStyle
    width: float = 0.0


@dataclass(slots=True)
class _Word:
    runs: List[_Run] = field(default_factory=list)

    @property
    def width(self) -> float:
        return sum(run.width for run in self.runs)

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)


_BREAK = object()


class MarkupLayoutEngine:
    """Position markup inside a fixed-width column."""

    def __init__(self, fonts: Optional[FontBook] = None, media: Optional[MediaLoader] = None) -> None:
        self.fonts = fonts or FontBook()
        self.media = media

    def layout(self, markup: str, width: float, base_style: Optional[ComputedStyle] = None) -> LayoutResult:
        soup = BeautifulSoup(markup or "", "html.parser")
        result = LayoutResult(width=width)
        style = base_style or ComputedStyle()
        result.height = self._flow(list(soup.children), style, 0.0, width, 0.0, result)
        LOGGER.debug("Laid out %d lines in %.1fx%.1f px", len(result.lines), width, result.height)
        return result

    # ------------------------------------------------------------------
    # Block flow
    def _flow(self, nodes: Sequence, style: ComputedStyle, x: float, width: float, y: float,
              out: LayoutResult, marker: str = "") -> float:
        pending: List = []
        after_block = False
        for node in nodes:
            if isinstance(node, Comment):
                continue
            if isinstance(node, Tag) and node.name in SKIPPED_TAGS:
                continue
            if isinstance(node, Tag) and node.name in BLOCK_TAGS:
                if pending:
                    y = self._inline(pending, style, x, width, y, out, after_block, marker)
                    pending, marker = [], ""
                y = self._block(node, style, x, width, y, out, marker)
                marker = ""
                after_block = True
            else:
                pending.append(node)
        if pending:
            y = self._inline(pending, style, x, width, y, out, after_block, marker)
        return y

    def _block(self, el: Tag, inherited: ComputedStyle, x: float, width: float, y: float,
               out: LayoutResult, marker: str = "") -> float:
        style = self._compute_style(el, inherited)
        css = parse_css(el.get("style"))
        if el.name == "img":
            return self._image(el, style, css, x, width, y, out)
        if el.name == "table":
            return self._table(el, style, css, x, width, y, out)
        if el.name == "hr":
            out.ops.append(RectOp(x, y + 7, width, 0.0))
            return y + 16

        box_width = min(parse_length(css.get("width"), style.font_px, width) or width, width)
        pad_top, pad_right, pad_bottom, pad_left = _box_sides(css.get("padding"), style.font_px, width)
        pad_top = parse_length(css.get("padding-top"), style.font_px, width) or pad_top
        pad_right = parse_length(css.get("padding-right"), style.font_px, width) or pad_right
        pad_bottom = parse_length(css.get("padding-bottom"), style.font_px, width) or pad_bottom
        pad_left = parse_length(css.get("padding-left"), style.font_px, width) or pad_left
        inner_x = x + pad_left
        inner_width = max(box_width - pad_left - pad_right, 1.0)

        top = y
        y += pad_top
        content_top = y
        if css.get("display") == "flex":
            y = self._flex(el, style, css, inner_x, inner_width, y, out)
        elif el.name in ("ul", "ol"):
            y = self._list(el, style, inner_x, inner_width, y, out)
        else:
            y = self._flow(list(el.children), style, inner_x, inner_width, y, out, marker)
            if y == content_top and el.name in LINE_TAGS:
                if marker:
                    y = self._inline([], style, inner_x, inner_width, y, out, False, marker)
                else:
                    y = self._empty_line(style, inner_x, y, out)
        y += pad_bottom

        min_height = parse_length(css.get("min-height") or css.get("height"), style.font_px)
        if min_height is not None and y - top < min_height:
            y = top + min_height
        return y

    def _list(self, el: Tag, style: ComputedStyle, x: float, width: float, y: float, out: LayoutResult) -> float:
        ordered = el.name == "ol"
        index = 0
        for child in el.children:
            if not isinstance(child, Tag) or child.name != "li":
                continue
            index += 1
            marker = f"{index}. " if ordered else "• "
            y = self._block(child, style, x, width, y, out, marker=marker)
        return y

    def _empty_line(self, style: ComputedStyle, x: float, y: float, out: LayoutResult) -> float:
        line_height = style.line_height()
        ascent, descent = self.fonts.get(style.family, style.bold, style.italic, style.font_px).getmetrics()
        glyph_bottom = y + (line_height - ascent - descent) / 2 + ascent + descent
        out.lines.append(TextLine(text="", x=x, top=y, line_height=line_height, glyph_bottom=glyph_bottom))
        return y + line_height

    # ------------------------------------------------------------------
    # Inline formatting
    def _inline(self, nodes: Sequence, style: ComputedStyle, x: float, width: float, y: float,
                out: LayoutResult, after_block: bool, marker: str) -> float:
        tokens: List = []
        state = {"open": False}
        if marker:
            tokens.append(_Word([self._run(marker.strip(), style)]))
        for node in nodes:
            self._collect(node, style, tokens, state)
        while after_block and tokens and tokens[0] is _BREAK:
            tokens.pop(0)
        if not any(token is _BREAK or token.runs for token in tokens):
            return y

        segments: List[List[_Word]] = [[]]
        for token in tokens:
            if token is _BREAK:
                segments.append([])
            else:
                segments[-1].append(token)
        if len(segments) > 1 and not segments[-1]:
            segments.pop()

        for segment in segments:
            if not segment:
                y = self._empty_line(style, x, y, out)
                continue
            y = self._place_words(segment, style, x, width, y, out)
        return y

    def _collect(self, node, style: ComputedStyle, tokens: List, state: Dict[str, bool]) -> None:
        if isinstance(node, Comment):
            return
        if isinstance(node, NavigableString):
            text = _WHITESPACE.sub(" ", str(node))
            if style.uppercase:
                text = text.upper()
            for piece in re.split(r"( )", text):
                if piece == " ":
                    state["open"] = False
                elif piece:
                    if state["open"] and tokens and tokens[-1] is not _BREAK:
                        tokens[-1].runs.append(self._run(piece, style))
                    else:
                        tokens.append(_Word([self._run(piece, style)]))
                        state["open"] = True
            return
        if not isinstance(node, Tag) or node.name in SKIPPED_TAGS or node.name == "img":
            return
        if node.name == "br":
            tokens.append(_BREAK)
            state["open"] = False
            return
        child_style = self._compute_style(node, style)
        for child in node.children:
            self._collect(child, child_style, tokens, state)

    def _run(self, text: str, style: ComputedStyle) -> _Run:
        return _Run(text=text, style=style, width=self.fonts.measure(text, style.family, style.bold, style.italic, style.font_px))

    def _space_width(self, word: _Word) -> float:
        style = word.runs[-1].style
        return self.fonts.measure(" ", style.family, style.bold, style.italic, style.font_px)

    def _place_words(self, words: List[_Word], style: ComputedStyle, x: float, width: float, y: float,
                     out: LayoutResult) -> float:
        spaces = [self._space_width(word) for word in words]
        ranges = LineWrapper.break_points([w.width + s for w, s in zip(words, spaces)], width)
        line_height = style.line_height()

        for index, (start, end) in enumerate(ranges):
            line_words = words[start:end]
            line_spaces = spaces[start:end]
            is_last = index == len(ranges) - 1
            words_width = sum(word.width for word in line_words)
            natural = words_width + sum(line_spaces[:-1])

            ascent, descent = 0, 0
            for word in line_words:
                for run in word.runs:
                    run_ascent, run_descent = self.fonts.get(run.style.family, run.style.bold, run.style.italic,
                                                             run.style.font_px).getmetrics()
                    ascent, descent = max(ascent, run_ascent), max(descent, run_descent)
            baseline = y + (line_height - ascent - descent) / 2 + ascent

            justify = style.align == "justify" and not is_last and len(line_words) > 1
            if justify:
                gaps = [(width - words_width) / (len(line_words) - 1)] * (len(line_words) - 1)
                start_x = x
            else:
                gaps = line_spaces[:-1]
                slack = max(width - natural, 0.0)
                start_x = x + {"center": slack / 2, "right": slack}.get(style.align, 0.0)

            cursor = start_x
            for position, word in enumerate(line_words):
                for run in word.runs:
                    out.ops.append(TextOp(cursor, baseline, run.text, run.style.family, run.style.bold,
                                          run.style.italic, run.style.font_px))
                    cursor += run.width
                if position < len(gaps):
                    cursor += gaps[position]

            out.lines.append(TextLine(
                text=" ".join(word.text for word in line_words),
                x=start_x,
                top=y,
                line_height=line_height,
                glyph_bottom=baseline + descent,
                width=width if justify else natural,
            ))
            y += line_height
        return y

    # ------------------------------------------------------------------
    # Replaced elements
    def _image(self, el: Tag, style: ComputedStyle, css: Dict[str, str], x: float, width: float, y: float,
               out: LayoutResult) -> float:
        image = self.media.open_image(el.get("src", "")) if self.media else None
        attr_width = parse_length(el.get("width"))
        attr_height = parse_length(el.get("height"))
        natural_w, natural_h = image.size if image is not None else (0, 0)

        if attr_width and attr_height:
            box_w, box_h = attr_width, attr_height
        elif attr_width and natural_w:
            box_w, box_h = attr_width, attr_width * natural_h / natural_w
        elif attr_height and natural_h:
            box_w, box_h = attr_height * natural_w / natural_h, attr_height
        else:
            box_w, box_h = float(natural_w), float(natural_h)
        if not box_w or not box_h:
            return y

        max_w = parse_length(css.get("max-width"), style.font_px, width)
        max_h = parse_length(css.get("max-height"), style.font_px)
        if max_w is not None:
            box_w = min(box_w, max_w)
        if max_h is not None:
            box_h = min(box_h, max_h)
        if box_w > width:
            box_h, box_w = box_h * width / box_w, width

        centered = "auto" in css.get("margin", "") or style.align == "center"
        left = x + (width - box_w) / 2 if centered else x
        if image is not None:
            ratio = min(box_w / natural_w, box_h / natural_h)
            draw_w, draw_h = natural_w * ratio, natural_h * ratio
            out.ops.append(ImageOp(left + (box_w - draw_w) / 2, y + (box_h - draw_h) / 2, draw_w, draw_h, image))
        return y + box_h

    # ------------------------------------------------------------------
    # Tables
    def _table(self, table: Tag, style: ComputedStyle, css: Dict[str, str], x: float, width: float, y: float,
               out: LayoutResult) -> float:
        table_width = min(parse_length(css.get("width"), style.font_px, width) or width, width)
        rows = [tr for tr in table.find_all("tr") if tr.find_parent("table") is table]

        occupied = set()
        cells = []
        for r, tr in enumerate(rows):
            row_style = self._compute_style(tr, style)
            c = 0
            for td in tr.find_all(["td", "th"], recursive=False):
                while (r, c) in occupied:
                    c += 1
                rowspan = _span(td.get("rowspan"))
                colspan = _span(td.get("colspan"))
                for i in range(rowspan):
                    for j in range(colspan):
                        occupied.add((r + i, c + j))
                cells.append((r, c, rowspan, colspan, td, row_style))
                c += colspan
        if not cells:
            return y

        n_rows = max(r for r, _ in occupied) + 1
        n_cols = max(c for _, c in occupied) + 1
        col_widths = self._column_widths(table, n_cols, table_width)
        chrome = 2 * TABLE_CELL_PADDING + TABLE_BORDER

        row_heights = []
        for r in range(n_rows):
            height = parse_length(parse_css(rows[r].get("style")).get("height")) if r < len(rows) else None
            row_heights.append(height or 0.0)

        laid_out = []
        for r, c, rowspan, colspan, td, row_style in cells:
            cell_style = self._compute_style(td, row_style)
            cell_width = sum(col_widths[c:c + colspan])
            fragment = LayoutResult(width=max(cell_width - chrome, 1.0))
            fragment.height = self._flow(list(td.children), cell_style, 0.0, fragment.width, 0.0, fragment)
            laid_out.append((r, c, rowspan, colspan, td, fragment))
            if rowspan == 1:
                row_heights[r] = max(row_heights[r], fragment.height + chrome)

        for r, _c, rowspan, _colspan, _td, fragment in laid_out:
            if rowspan > 1:
                needed = fragment.height + chrome
                available = sum(row_heights[r:r + rowspan])
                if needed > available:
                    row_heights[r + rowspan - 1] += needed - available
        row_heights = [max(h, chrome) for h in row_heights]

        row_tops = [0.0]
        for height in row_heights:
            row_tops.append(row_tops[-1] + height)

        for r, c, rowspan, colspan, td, fragment in laid_out:
            cell_x = x + sum(col_widths[:c])
            cell_y = y + row_tops[r]
            cell_w = sum(col_widths[c:c + colspan])
            cell_h = sum(row_heights[r:r + rowspan])
            valign = parse_css(td.get("style")).get("vertical-align") or td.get("valign") or "middle"
            free = cell_h - chrome - fragment.height
            offset = {"top": 0.0, "bottom": free}.get(valign, free / 2)
            out.absorb(fragment, cell_x + TABLE_BORDER / 2 + TABLE_CELL_PADDING,
                       cell_y + TABLE_BORDER / 2 + TABLE_CELL_PADDING + max(offset, 0.0))
            out.ops.append(RectOp(cell_x, cell_y, cell_w, cell_h))
        return y + row_tops[-1]

    @staticmethod
    def _column_widths(table: Tag, n_cols: int, table_width: float) -> List[float]:
        cols = [col for col in table.find_all("col") if col.find_parent("table") is table]
        if len(cols) == n_cols:
            percents = [parse_length(parse_css(col.get("style")).get("width") or col.get("width"), reference=100.0)
                        for col in cols]
            if all(p for p in percents):
                total = sum(percents)
                return [table_width * p / total for p in percents]
        return [table_width / n_cols] * n_cols

    # ------------------------------------------------------------------
    # Flex rows
    def _flex(self, el: Tag, style: ComputedStyle, css: Dict[str, str], x: float, width: float, y: float,
              out: LayoutResult) -> float:
        children = [child for child in el.children if isinstance(child, Tag) and child.name not in SKIPPED_TAGS]
        if not children:
            return y
        gap = parse_length(css.get("gap") or css.get("column-gap"), style.font_px, width) or 0.0
        wraps = css.get("flex-wrap") == "wrap"
        justify = css.get("justify-content", "flex-start")

        bases: List[Optional[float]] = []
        for child in children:
            child_css = parse_css(child.get("style"))
            basis = parse_length(child_css.get("width"), style.font_px, width)
            if basis is None:
                basis = parse_length(child_css.get("min-width"), style.font_px, width)
            bases.append(basis)
        if not wraps:
            fixed = sum(b for b in bases if b is not None)
            autos = sum(1 for b in bases if b is None)
            share = max(width - fixed - gap * (len(children) - 1), 0.0) / autos if autos else 0.0
            bases = [b if b is not None else share for b in bases]
        else:
            bases = [min(b, width) if b is not None else width for b in bases]

        rows: List[List[int]] = [[]]
        used = 0.0
        for index, basis in enumerate(bases):
            needed = basis if not rows[-1] else used + gap + basis
            if wraps and rows[-1] and needed > width:
                rows.append([])
                needed = basis
            rows[-1].append(index)
            used = needed

        for row_number, row in enumerate(rows):
            if row_number:
                y += gap
            total = sum(bases[i] for i in row)
            free = max(width - total - gap * (len(row) - 1), 0.0)
            if justify == "space-around":
                free = max(width - total, 0.0)
                positions = []
                cursor = x + free / (2 * len(row))
                for i in row:
                    positions.append(cursor)
                    cursor += bases[i] + free / len(row)
            elif justify == "space-between" and len(row) > 1:
                spacing = (width - total) / (len(row) - 1)
                positions, cursor = [], x
                for i in row:
                    positions.append(cursor)
                    cursor += bases[i] + spacing
            else:
                cursor = x + {"center": free / 2, "flex-end": free}.get(justify, 0.0)
                positions = []
                for i in row:
                    positions.append(cursor)
                    cursor += bases[i] + gap

            row_height = 0.0
            for i, left in zip(row, positions):
                fragment = LayoutResult(width=bases[i])
                fragment.height = self._block(children[i], style, 0.0, bases[i], 0.0, fragment)
                out.absorb(fragment, left, y)
                row_height = max(row_height, fragment.height)
            y += row_height
        return y

    # ------------------------------------------------------------------
    # Cascade
    def _compute_style(self, el: Tag, parent: ComputedStyle) -> ComputedStyle:
        style = replace(parent)
        name = el.name
        if name in HEADING_SCALE:
            style.font_px = parent.font_px * HEADING_SCALE[name]
            style.bold = True
        elif name in ("strong", "b", "th"):
            style.bold = True
        elif name in ("em", "i"):
            style.italic = True
        elif name == "center":
            style.align = "center"
        elif name in ("pre", "code", "tt"):
            style.family = "mono"

        if el.get("align"):
            style.align = el["align"].lower()

        css = parse_css(el.get("style"))
        if "font-size" in css:
            size = parse_length(css["font-size"], parent.font_px, parent.font_px)
            if size:
                style.font_px = size
        if "font-family" in css:
            style.family = family_for(css["font-family"])
        weight = css.get("font-weight")
        if weight:
            style.bold = weight in ("bold", "bolder") or (weight.isdigit() and int(weight) >= 600)
        if "font-style" in css:
            style.italic = css["font-style"] in ("italic", "oblique")
        if css.get("text-align") in ("left", "center", "right", "justify"):
            style.align = css["text-align"]
        if "text-transform" in css:
            style.uppercase = css["text-transform"] == "uppercase"
        if "line-height" in css:
            self._apply_line_height(style, css["line-height"])
        return style

    @staticmethod
    def _apply_line_height(style: ComputedStyle, value: str) -> None:
        if value == "normal":
            style.line_height_px, style.line_height_factor = None, None
            return
        try:
            style.line_height_factor, style.line_height_px = float(value), None
            return
        except ValueError:
            pass
        pixels = parse_length(value, style.font_px, style.font_px)
        if pixels is not None:
            style.line_height_px, style.line_height_factor = pixels, None


def _span(value) -> int:
    try:
        return max(1, int(value))
    except (TypeError, ValueError):
        return 1
