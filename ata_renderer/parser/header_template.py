"""Expand header and footer templates with meeting metadata."""
from __future__ import annotations

import html as html_lib
import re
from typing import Dict, Optional

from ata_renderer.model.elements import MeetingMetadata

DEFAULT_COMPANY_NAME = "Sua Empresa"
DEFAULT_CONDO_NAME = "EDIFÍCIO"
DEFAULT_FOOTER_TEMPLATE = "CONDOMÍNIO DO EDIFÍCIO {{CONDO_NAME}}"

LOGO_IMG_STYLE = "max-height: 60px; max-width: 80px; display: block; margin: auto; object-fit: contain;"
LOGO_TOKENS = ("COMPANY_LOGO", "CONDO_LOGO")

PLACEHOLDERS = (
    ("Nome da Empresa", "{{COMPANY_NAME}}"),
    ("Nome do Condomínio", "{{CONDO_NAME}}"),
    ("Logo Empresa", "{{COMPANY_LOGO}}"),
    ("Logo Condomínio", "{{CONDO_LOGO}}"),
    ("Data", "{{DATE}}"),
    ("Início", "{{START_TIME}}"),
    ("Término", "{{END_TIME}}"),
    ("Ano", "{{YEAR}}"),
    ("Paginação (1/X)", "{{PAGE_NUM}}"),
    ("CNPJ", "{{CNPJ}}"),
)

DEFAULT_HEADER_HTML = """
<table style="border-collapse: collapse; width: 100%; border: 1px solid rgb(0, 0, 0);" border="1"><colgroup><col style="width: 18.9164%;"><col style="width: 19.9208%;"><col style="width: 16.6524%;"><col style="width: 15.7229%;"><col style="width: 14.5319%;"><col style="width: 14.2557%;"></colgroup>
<tbody>
<tr style="height: 64.6591px;">
<td style="text-align: center; vertical-align: middle;" rowspan="2">{{COMPANY_LOGO}}<br>{{COMPANY_NAME}}</td>
<td style="text-align: center; vertical-align: middle;" rowspan="2"><strong>ATA DA ASSEMBLEIA</strong><br><strong>GERAL ORDINARIA</strong><br><strong>VIRTUAL</strong></td>
<td style="text-align: center; vertical-align: middle;" rowspan="2">{{CONDO_LOGO}}<br>{{CONDO_NAME}}</td>
<td style="text-align: center; vertical-align: middle;"><p>DATA EVENTO:<br>{{DATE}}</p></td>
<td style="text-align: center; vertical-align: middle;">Pág: {{PAGE_NUM}}</td>
<td style="text-align: center; vertical-align: middle;">BAIXE SEU<br>APP AQUI</td>
</tr>
<tr style="height: 88.3523px; text-align: center;">
<td style="vertical-align: middle;">Início: {{START_TIME}}<br>Término: {{END_TIME}}</td>
<td style="vertical-align: middle;">A.G.O_V<br>{{YEAR}}</td>
<td style="vertical-align: middle;">CNPJ<br>{{CNPJ}}</td>
</tr>
</tbody>
</table>
"""


def _logo_img_pattern(token: str) -> re.Pattern:
    return re.compile(r"<img[^>]*src=[\"']?\{\{" + token + r"\}\}[\"']?[^>]*>", re.IGNORECASE)


_LOGO_IMG_PATTERNS = {token: _logo_img_pattern(token) for token in LOGO_TOKENS}


class HeaderTemplateEngine:
    """Substitute placeholder tokens in user-authored header markup.

    Expansion is a pure function of the template and the metadata: every
    occurrence of a token is replaced, unknown text is left alone, and a
    missing logo removes its token (or the ``img`` that references it).
    """

    def expand(self, template_html: str, metadata: MeetingMetadata) -> str:
        processed = template_html or ""
        for token, value in self._text_values(metadata).items():
            processed = processed.replace("{{" + token + "}}", value)

        processed = self._expand_logo(processed, "COMPANY_LOGO", metadata.company_logo_url)
        processed = self._expand_logo(processed, "CONDO_LOGO", metadata.condo_logo_url)
        return processed

    def expand_footer(self, footer_text: str, metadata: MeetingMetadata) -> str:
        """Footer line with the same text tokens; blank input yields the default footer."""
        template = footer_text.strip() if footer_text else ""
        processed = template or DEFAULT_FOOTER_TEMPLATE
        for token, value in self._text_values(metadata).items():
            processed = processed.replace("{{" + token + "}}", value)
        for token in LOGO_TOKENS:
            processed = processed.replace("{{" + token + "}}", "")
        return processed

    # ------------------------------------------------------------------
    # Helpers
    @staticmethod
    def _text_values(metadata: MeetingMetadata) -> Dict[str, str]:
        return {
            "COMPANY_NAME": metadata.company_name or DEFAULT_COMPANY_NAME,
            "CONDO_NAME": (metadata.condo_name or DEFAULT_CONDO_NAME).upper(),
            "DATE": metadata.date,
            "START_TIME": metadata.start_time,
            "END_TIME": metadata.end_time,
            "YEAR": metadata.year,
            "PAGE_NUM": f"{metadata.page_num}/{metadata.total_pages}",
            "TOTAL_PAGES": str(metadata.total_pages),
            "CNPJ": metadata.cnpj,
        }

    @staticmethod
    def _expand_logo(processed: str, token: str, url: Optional[str]) -> str:
        replacement = logo_img_tag(url) if url else ""
        processed = _LOGO_IMG_PATTERNS[token].sub(lambda _match: replacement, processed)
        return processed.replace("{{" + token + "}}", replacement)


def logo_img_tag(url: str) -> str:
    """Fixed-box, centered, aspect-preserving logo element."""
    src = html_lib.escape(url, quote=True)
    return f'<img src="{src}" width="80" height="60" style="{LOGO_IMG_STYLE}" />'
