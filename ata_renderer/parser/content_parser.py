"""Parse editor HTML into top-level content blocks and plain text."""
from __future__ import annotations

import html as html_lib
import re
from typing import Iterable, List, Optional

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from ata_renderer.model.elements import ContentBlock
from ata_renderer.utils.text_normalizer import TextNormalizer

DEFAULT_ALIGNMENT = "justify"
ALIGNMENTS = {"left", "center", "right", "justify"}
LIST_TAGS = {"ul", "ol"}
EMPTY_PARAGRAPH_HTML = "<p><br></p>"

_TEXT_ALIGN_PATTERN = re.compile(r"text-align\s*:\s*([a-z]+)", re.IGNORECASE)
_SOURCE_WHITESPACE = re.compile(r"[ \t\r\n\f\v]+")
_BOLD_PATTERN = re.compile(r"\*\*(.*?)\*\*")
_SENTENCE_BOUNDARY = re.compile(r"(?<=\.)\s+(?=[A-ZÁÀÂÃÉÊÍÓÔÕÚÇ0-9])")


class ContentParser:
    """Split minutes HTML into the blocks the layout engine works on."""

    def __init__(self, normalizer: Optional[TextNormalizer] = None) -> None:
        self._inline = normalizer or TextNormalizer()
        self._multiline = TextNormalizer(keep_newlines=True)

    def parse(self, html: str) -> List[ContentBlock]:
        """Return one block per top-level element; list items become their own blocks."""
        soup = self._soup(html)
        blocks: List[ContentBlock] = []
        for node in soup.children:
            blocks.extend(self._node_to_blocks(node))
        return blocks

    def plain_text(self, html: str) -> str:
        """Plain text with one line per block and per ``<br>``; empty blocks stay blank."""
        soup = self._soup(html)
        lines: List[str] = []
        for node in soup.children:
            if isinstance(node, Comment):
                continue
            if isinstance(node, NavigableString):
                text = self._multiline.normalize_text(str(node))
                if text.strip():
                    lines.append(text.strip())
                continue
            if not isinstance(node, Tag):
                continue
            if node.name in LIST_TAGS:
                lines.extend(block.text for block in self._list_blocks(node))
                continue
            if node.name == "table":
                lines.extend(self._row_text(row) for row in self._table_rows(node))
                continue
            lines.append(self._multiline.normalize_text(block_text(node)).strip("\n"))
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Block extraction
    def _node_to_blocks(self, node) -> Iterable[ContentBlock]:
        if isinstance(node, Comment):
            return
        if isinstance(node, NavigableString):
            text = self._inline.normalize_text(str(node))
            if text:
                yield ContentBlock(tag="p", text=text, html=html_lib.escape(text))
            return
        if not isinstance(node, Tag):
            return

        if node.name in LIST_TAGS:
            yield from self._list_blocks(node)
            return
        if node.name == "table":
            for row in self._table_rows(node):
                yield ContentBlock(tag="tr", text=self._row_text(row), alignment="left", html=str(row))
            return

        yield ContentBlock(
            tag=node.name,
            text=self._inline.normalize_text(block_text(node)),
            alignment=resolve_alignment(node),
            html=node.decode_contents(),
        )

    def _list_blocks(self, node: Tag) -> List[ContentBlock]:
        ordered = node.name == "ol"
        alignment = resolve_alignment(node, default="left")
        blocks: List[ContentBlock] = []
        for index, item in enumerate(node.find_all("li", recursive=False), start=1):
            marker = f"{index}." if ordered else "•"
            text = self._inline.normalize_text(block_text(item))
            blocks.append(
                ContentBlock(
                    tag="li",
                    text=f"{marker} {text}".rstrip(),
                    alignment=resolve_alignment(item, default=alignment),
                    html=item.decode_contents(),
                )
            )
        return blocks

    @staticmethod
    def _table_rows(table: Tag) -> List[Tag]:
        return [row for row in table.find_all("tr") if row.find_parent("table") is table]

    def _row_text(self, row: Tag) -> str:
        cells = [self._inline.normalize_text(block_text(cell)) for cell in row.find_all(["td", "th"])]
        return " ".join(cell for cell in cells if cell)

    @staticmethod
    def _soup(html: str) -> BeautifulSoup:
        return BeautifulSoup(html or "", "html.parser")


def block_text(node: Tag) -> str:
    """Concatenate the text of a block, turning each <br> into a newline."""
    parts: List[str] = []
    for descendant in node.descendants:
        if isinstance(descendant, Tag):
            if descendant.name == "br":
                parts.append("\n")
        elif isinstance(descendant, NavigableString) and not isinstance(descendant, Comment):
            parts.append(_SOURCE_WHITESPACE.sub(" ", str(descendant)))
    return "".join(parts)


def resolve_alignment(node: Tag, default: str = DEFAULT_ALIGNMENT) -> str:
    """Read ``text-align`` from the inline style or the legacy ``align`` attribute."""
    style = node.get("style") or ""
    match = _TEXT_ALIGN_PATTERN.search(style)
    candidate = match.group(1).lower() if match else (node.get("align") or "").lower()
    return candidate if candidate in ALIGNMENTS else default


def minutes_to_html(text: str) -> str:
    """Turn generated minutes text into editor HTML, one paragraph per line."""
    stripped = (text or "").strip()
    if not stripped:
        return EMPTY_PARAGRAPH_HTML

    parts: List[str] = []
    for line in stripped.split("\n"):
        if not line.strip():
            parts.append(EMPTY_PARAGRAPH_HTML)
            continue
        escaped = html_lib.escape(line, quote=False)
        formatted = _BOLD_PATTERN.sub(r"<strong>\1</strong>", escaped)
        parts.append(f"<p>{formatted}</p>")
    return "".join(parts)


def to_continuous_text(html: str) -> str:
    """Collapse the whole body into a single paragraph."""
    text = ContentParser().plain_text(html)
    continuous = re.sub(r"\s+", " ", text).strip()
    if not continuous:
        return EMPTY_PARAGRAPH_HTML
    return f"<p>{html_lib.escape(continuous, quote=False)}</p>"


def to_paragraphs(html: str, sentences_per_paragraph: int = 5) -> str:
    """Regroup continuous text into paragraphs of a few sentences each."""
    if sentences_per_paragraph < 1:
        raise ValueError("sentences_per_paragraph must be positive")

    text = re.sub(r"\s+", " ", ContentParser().plain_text(html)).strip()
    sentences = [s for s in _SENTENCE_BOUNDARY.split(text) if s.strip()]
    paragraphs = [
        " ".join(sentences[i : i + sentences_per_paragraph]).strip()
        for i in range(0, len(sentences), sentences_per_paragraph)
    ]
    html_parts = [f"<p>{html_lib.escape(p, quote=False)}</p>" for p in paragraphs if p]
    return "".join(html_parts) or EMPTY_PARAGRAPH_HTML
