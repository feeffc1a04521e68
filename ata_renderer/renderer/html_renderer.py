"""Render the preview model into a printable HTML document."""
from __future__ import annotations

import datetime as dt
import html as html_lib
from pathlib import Path
from typing import List

from ata_renderer.model.document_model import MinutesDocument
from ata_renderer.model.elements import MeetingMetadata, PageFrame, WrappedLine
from ata_renderer.model.layout_config import LayoutConfig
from ata_renderer.parser.header_template import DEFAULT_COMPANY_NAME
from ata_renderer.renderer.utils import style_to_css


class PreviewHtmlRenderer:
    """Produce one fixed-size A4 sheet per preview page, with gutter and footer."""

    def __init__(self, output_path: Path, config: LayoutConfig, metadata: MeetingMetadata) -> None:
        self._output_path = output_path
        self._config = config
        self._metadata = metadata

    def render(self, model: MinutesDocument) -> None:
        self._output_path.parent.mkdir(parents=True, exist_ok=True)
        self._output_path.write_text(self.build_html(model), encoding="utf-8")

    def build_html(self, model: MinutesDocument) -> str:
        sheets = [self._page_to_div(model, index, page) for index, page in enumerate(model.pages)]
        body = "\n".join(sheets)
        config = self._config
        return f"""<!DOCTYPE html>
<html lang=\"pt-BR\">
<head>
  <meta charset=\"utf-8\" />
  <title>Ata - {html_lib.escape(self._metadata.condo_name)}</title>
  <style>
    body {{ margin: 0; padding: 0; background: #e5e7eb; }}
    .sheet {{ position: relative; width: 210mm; height: 297mm; padding: {config.preview_margin_pt:g}pt; box-sizing: border-box; background: white; color: black; margin: 0 auto 24px auto; page-break-after: always; }}
    .sheet-header {{ position: absolute; top: 0; left: 0; width: 100%; height: {config.preview_first_header_pt:g}pt; box-sizing: border-box; padding: 30pt; display: flex; justify-content: space-between; align-items: flex-start; border-bottom: 1px solid #e5e7eb; }}
    .sheet-header > div {{ width: 33%; }}
    .gutter {{ position: absolute; left: 0; top: {config.preview_first_header_pt:g}pt; bottom: {config.preview_footer_pt:g}pt; width: 30pt; padding-top: 4pt; text-align: right; font-family: monospace; font-size: 9pt; border-right: 1px solid #d1d5db; }}
    .content {{ position: absolute; left: 35pt; right: 30pt; top: {config.preview_first_header_pt:g}pt; bottom: {config.preview_footer_pt:g}pt; font-family: 'Times New Roman', serif; font-size: {config.preview_font_size_pt:g}pt; }}
    .line {{ white-space: nowrap; overflow: hidden; height: {config.preview_line_height_pt:g}pt; line-height: {config.preview_line_height_pt:g}pt; }}
    .sheet-footer {{ position: absolute; bottom: 0; left: 0; width: 100%; height: {config.preview_footer_pt:g}pt; display: flex; align-items: center; justify-content: center; border-top: 1px solid #e5e7eb; font-size: 8pt; color: #6b7280; }}
    @media print {{ body {{ background: white; }} .sheet {{ margin: 0; }} }}
  </style>
</head>
<body>
{body}
</body>
</html>
"""

    def _page_to_div(self, model: MinutesDocument, index: int, page: PageFrame) -> str:
        first_number = model.first_line_number(index)
        numbers = "".join(
            f'<div class="line">{first_number + offset}</div>' for offset in range(len(page.lines))
        )
        lines = "".join(self._line_to_div(line) for line in page.lines)
        condo = html_lib.escape(self._metadata.condo_name)
        return (
            '  <div class="sheet">\n'
            f"    {self._header(page)}\n"
            f'    <div class="gutter">{numbers}</div>\n'
            f'    <div class="content">{lines}</div>\n'
            f'    <div class="sheet-footer">{condo} - Página {page.page_number}</div>\n'
            "  </div>"
        )

    def _header(self, page: PageFrame) -> str:
        metadata = self._metadata
        logo = ""
        if metadata.company_logo_url:
            logo = f'<img src="{html_lib.escape(metadata.company_logo_url, quote=True)}" style="height: 36pt; object-fit: contain" alt="Logo" />'
        company = html_lib.escape(metadata.company_name or DEFAULT_COMPANY_NAME)
        date = html_lib.escape(metadata.date or dt.date.today().strftime("%d/%m/%Y"))
        parts: List[str] = [
            f'<div>{logo}<div style="font-size: 8pt; text-align: center">{company}</div></div>',
            '<div style="text-align: center"><div style="font-weight: bold; font-size: 10pt">ATA DA ASSEMBLEIA</div>'
            f'<div style="font-size: 9pt">{html_lib.escape(metadata.condo_name)}</div></div>',
            f'<div style="text-align: right; font-size: 8pt"><div>Folha: {page.page_number}</div><div>Data: {date}</div></div>',
        ]
        return f'<div class="sheet-header">{"".join(parts)}</div>'

    @staticmethod
    def _line_to_div(line: WrappedLine) -> str:
        align = "justify" if line.renders_justified else "left"
        style = {"text-align": align, "text-align-last": align}
        return f'<div class="line" style="{style_to_css(style)}">{html_lib.escape(line.text)}</div>'
