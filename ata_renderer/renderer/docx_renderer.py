"""Re-flow minutes into a DOCX document using python-docx."""
from __future__ import annotations

import io
from typing import Callable, Optional, Sequence

from docx import Document
from docx.enum.section import WD_ORIENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Inches, Mm, Pt

from ata_renderer.model.elements import ExportArtifact, ExportProgress, ExportRequest, RasterImage, SignatureEntry
from ata_renderer.model.errors import RasterizationError
from ata_renderer.model.layout_config import LayoutConfig
from ata_renderer.parser.content_parser import ContentParser
from ata_renderer.parser.header_template import DEFAULT_CONDO_NAME, HeaderTemplateEngine
from ata_renderer.renderer.export_container import ExportContainerBuilder
from ata_renderer.renderer.pdf_renderer import require_condo_name
from ata_renderer.renderer.rasterizer import PillowRasterizer, Rasterizer, to_pil_image
from ata_renderer.utils.logger import get_logger
from ata_renderer.utils.units import px_to_inches

LOGGER = get_logger(__name__)

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
BODY_FONT = "Times New Roman"
FALLBACK_HEADER_TITLE = "ATA DA ASSEMBLEIA GERAL ORDINÁRIA"
SIGNATURE_RULE = "_" * 32
SIGNATURE_SPACERS = 3

ProgressCallback = Callable[[ExportProgress], None]


def docx_filename(condo_name: str) -> str:
    return f"Ata-{condo_name or 'Condominio'}.docx"


class FlowExportPipeline:
    """Build a DOCX with one repeating header image and natively flowed paragraphs.

    Page breaks are left to the word processor and do not follow the PDF
    slices.
    """

    def __init__(
        self,
        config: LayoutConfig | None = None,
        rasterizer: Rasterizer | None = None,
        header_engine: HeaderTemplateEngine | None = None,
        parser: ContentParser | None = None,
    ) -> None:
        self._config = config or LayoutConfig()
        self._rasterizer = rasterizer or PillowRasterizer()
        self._headers = header_engine or HeaderTemplateEngine()
        self._parser = parser or ContentParser()
        self._builder = ExportContainerBuilder(self._config)

    async def render_header_image(self, request: ExportRequest) -> Optional[RasterImage]:
        config = self._config
        expanded = self._headers.expand(request.header.html, request.metadata.with_page(1, 1))
        markup = self._builder.flow_header_container(expanded)
        width = config.docx_header_width_px + 2 * config.docx_header_padding_px
        try:
            return await self._rasterizer.render_to_image(markup, width, config.raster_scale)
        except RasterizationError as e:
            LOGGER.warning("DOCX header rasterization failed, using text header: %s", e)
            return None

    async def export(self, request: ExportRequest, progress: ProgressCallback | None = None) -> ExportArtifact:
        require_condo_name(request)
        notify = progress or (lambda _event: None)

        notify(ExportProgress(stage="rasterize"))
        header_image = await self.render_header_image(request)

        document = Document()
        section = document.sections[0]
        section.orientation = WD_ORIENT.PORTRAIT
        section.page_width = Mm(210)
        section.page_height = Mm(297)
        section.top_margin = Inches(1.2)
        section.bottom_margin = Inches(1)
        section.left_margin = Inches(0.75)
        section.right_margin = Inches(0.75)

        self._build_header(section, header_image, request)
        self._build_footer(section, request)
        notify(ExportProgress(stage="body"))
        self._build_body(document, self._parser.plain_text(request.content_html))
        self._build_signatures(document, request.signatures)

        buffer = io.BytesIO()
        document.save(buffer)
        notify(ExportProgress(stage="done"))
        LOGGER.info("DOCX export finished for %s", request.metadata.condo_name)
        return ExportArtifact(
            filename=docx_filename(request.metadata.condo_name),
            media_type=DOCX_MEDIA_TYPE,
            content=buffer.getvalue(),
        )

    # ------------------------------------------------------------------
    # Document parts
    def _build_header(self, section, header_image: Optional[RasterImage], request: ExportRequest) -> None:
        header = section.header
        header.is_linked_to_previous = False
        paragraph = header.paragraphs[0]
        paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER

        if header_image is not None:
            config = self._config
            logical_width = header_image.width / config.raster_scale
            width_px = min(logical_width, config.docx_header_max_width_px)
            height_px = width_px * header_image.aspect_ratio
            paragraph.add_run().add_picture(
                _png_stream(header_image),
                width=Inches(px_to_inches(width_px)),
                height=Inches(px_to_inches(height_px)),
            )
            return

        title = paragraph.add_run(FALLBACK_HEADER_TITLE)
        title.bold = True
        title.font.size = Pt(14)
        condo = header.add_paragraph()
        condo.alignment = WD_ALIGN_PARAGRAPH.CENTER
        condo.add_run((request.metadata.condo_name or DEFAULT_CONDO_NAME).upper()).font.size = Pt(12)

    def _build_footer(self, section, request: ExportRequest) -> None:
        footer = section.footer
        footer.is_linked_to_previous = False
        text = self._headers.expand_footer(request.header.footer_text, request.metadata)

        first = footer.paragraphs[0]
        first.alignment = WD_ALIGN_PARAGRAPH.CENTER
        run = first.add_run(text)
        run.bold = True
        run.font.size = Pt(10)

        cnpj = footer.add_paragraph()
        cnpj.alignment = WD_ALIGN_PARAGRAPH.CENTER
        cnpj.add_run(f"CNPJ: {request.metadata.cnpj}").font.size = Pt(9)

    @staticmethod
    def _build_body(document, text: str) -> None:
        for line in text.split("\n"):
            if not line.strip():
                document.add_paragraph()
                continue
            paragraph = document.add_paragraph()
            paragraph.alignment = WD_ALIGN_PARAGRAPH.JUSTIFY
            paragraph.paragraph_format.space_after = Pt(6)
            run = paragraph.add_run(line)
            run.font.name = BODY_FONT
            run.font.size = Pt(12)

    @staticmethod
    def _build_signatures(document, signatures: Sequence[SignatureEntry]) -> None:
        if not signatures:
            return
        for _ in range(SIGNATURE_SPACERS):
            document.add_paragraph()

        for signature in signatures:
            rule = document.add_paragraph()
            rule.alignment = WD_ALIGN_PARAGRAPH.CENTER
            rule.paragraph_format.space_before = Pt(20)
            rule.add_run(SIGNATURE_RULE).font.size = Pt(12)

            name = document.add_paragraph()
            name.alignment = WD_ALIGN_PARAGRAPH.CENTER
            name_run = name.add_run(signature.name.upper())
            name_run.bold = True
            name_run.font.size = Pt(12)

            role = document.add_paragraph()
            role.alignment = WD_ALIGN_PARAGRAPH.CENTER
            role.add_run(signature.role).font.size = Pt(11)


def _png_stream(image: RasterImage) -> io.BytesIO:
    stream = io.BytesIO()
    to_pil_image(image.pixels).save(stream, format="PNG")
    stream.seek(0)
    return stream
