"""Render minutes into a raster-sliced PDF using ReportLab."""
from __future__ import annotations

import io
from typing import Callable, Optional

from PIL import Image
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from ata_renderer.model.elements import ExportArtifact, ExportProgress, ExportRequest, RasterImage, RasterSlice
from ata_renderer.model.errors import ExportPreconditionError, RasterizationError
from ata_renderer.model.layout_config import LayoutConfig
from ata_renderer.parser.header_template import HeaderTemplateEngine
from ata_renderer.parser.line_gutter import LineNumberGutter
from ata_renderer.renderer.export_container import ExportContainerBuilder
from ata_renderer.renderer.raster_paginator import RasterPaginator
from ata_renderer.renderer.rasterizer import PillowRasterizer, Rasterizer, to_pil_image
from ata_renderer.utils.debug import DebugDumper
from ata_renderer.utils.logger import get_logger

LOGGER = get_logger(__name__)

PDF_FILENAME = "ata-profissional.pdf"
PDF_MEDIA_TYPE = "application/pdf"
PRECONDITION_MESSAGE = "Por favor, selecione um condomínio antes de gerar o documento."

ProgressCallback = Callable[[ExportProgress], None]


def require_condo_name(request: ExportRequest) -> None:
    """Refuse an export before any work when no condo is selected."""
    if not (request.metadata.condo_name or "").strip():
        raise ExportPreconditionError(PRECONDITION_MESSAGE)


class RasterExportPipeline:
    """Rasterize the gutter + content container once and slice it into A4 pages.

    Every page carries its own rasterized header ("page X of Y"), so the page
    total is computed by a pre-pass over the same slicing loop before the
    first page is drawn.
    """

    def __init__(
        self,
        config: LayoutConfig | None = None,
        rasterizer: Rasterizer | None = None,
        header_engine: HeaderTemplateEngine | None = None,
        debug: DebugDumper | None = None,
    ) -> None:
        self._config = config or LayoutConfig()
        self._rasterizer = rasterizer or PillowRasterizer()
        self._headers = header_engine or HeaderTemplateEngine()
        self._gutter = LineNumberGutter(self._config)
        self._builder = ExportContainerBuilder(self._config, self._gutter)
        self._paginator = RasterPaginator(self._config)
        self._debug = debug

    # ------------------------------------------------------------------
    # Public API
    def count_lines(self, request: ExportRequest) -> int:
        """Line numbers needed for the content column as it will be rendered."""
        markup = self._builder.content_column(request.content_html, padded=False)
        layout = self._rasterizer.measure(markup, self._config.text_column_width_px)
        return self._gutter.count_lines(layout)

    def build_container(self, request: ExportRequest) -> str:
        line_count = self.count_lines(request) if request.show_line_numbers else 0
        LOGGER.debug("Export container uses %d line numbers", line_count)
        return self._builder.container(request.content_html, line_count, request.signatures, request.show_line_numbers)

    async def render_master(self, request: ExportRequest) -> RasterImage:
        config = self._config
        markup = self.build_container(request)
        try:
            master = await self._rasterizer.render_to_image(markup, config.container_width_px, config.raster_scale)
        except RasterizationError:
            LOGGER.error("Master canvas rasterization failed; aborting PDF export")
            raise
        if master.width <= 0 or master.height <= 0:
            raise RasterizationError("Master canvas is empty")
        return master

    async def render_header(self, request: ExportRequest, page_num: int, total_pages: int) -> Optional[RasterImage]:
        """Rasterize the header for one page; None when it cannot be produced."""
        config = self._config
        metadata = request.metadata.with_page(page_num, total_pages)
        expanded = self._headers.expand(request.header.html, metadata)
        markup = self._builder.header_container(expanded, request.align_header_to_content)
        try:
            image = await self._rasterizer.render_to_image(markup, config.container_width_px, config.raster_scale)
        except RasterizationError as e:
            LOGGER.warning("Header rasterization failed on page %d: %s", page_num, e)
            return None
        if image.width <= 0 or image.height <= 0:
            LOGGER.warning("Header for page %d rendered empty", page_num)
            return None
        return image

    def header_height_pt(self, header: Optional[RasterImage]) -> float:
        """Height of a header scaled to the content width, capped; fallback when missing."""
        config = self._config
        if header is None:
            return config.fallback_header_height_pt
        return min(config.export_content_width_pt * header.aspect_ratio, config.max_header_height_pt)

    async def export(self, request: ExportRequest, progress: ProgressCallback | None = None) -> ExportArtifact:
        require_condo_name(request)
        notify = progress or (lambda _event: None)
        config = self._config

        notify(ExportProgress(stage="rasterize"))
        master = await self.render_master(request)
        LOGGER.info("Master canvas %dx%d px", master.width, master.height)

        # Pre-pass: reserve the first header's height for every page and count pages
        first_header = await self.render_header(request, 1, 1)
        reserved_header_pt = self.header_height_pt(first_header)
        total_pages = self._paginator.count_pages(master, reserved_header_pt)
        LOGGER.info("PDF will have %d page(s); header reserve %.1fpt", total_pages, reserved_header_pt)
        notify(ExportProgress(stage="paginate", total_pages=total_pages))

        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=(config.page_width_pt, config.page_height_pt))
        pdf.setTitle(f"Ata - {request.metadata.condo_name}")

        slices = []
        for raster_slice in self._paginator.iter_slices(master, reserved_header_pt):
            header = await self.render_header(request, raster_slice.page_number, total_pages)
            self._draw_header(pdf, header, reserved_header_pt)
            self._draw_slice(pdf, master, raster_slice, reserved_header_pt)
            if raster_slice.page_number == 1:
                self._draw_footer(pdf, request)
            pdf.showPage()
            slices.append(raster_slice)
            notify(ExportProgress(stage="page", page=raster_slice.page_number, total_pages=total_pages))

        pdf.save()
        if self._debug is not None:
            self._debug.dump_slices(slices)
        notify(ExportProgress(stage="done", page=len(slices), total_pages=total_pages))
        LOGGER.info("PDF export finished with %d page(s)", len(slices))
        return ExportArtifact(filename=PDF_FILENAME, media_type=PDF_MEDIA_TYPE, content=buffer.getvalue(),
                              page_count=len(slices))

    # ------------------------------------------------------------------
    # Page drawing
    def _draw_header(self, pdf: canvas.Canvas, header: Optional[RasterImage], reserved_pt: float) -> None:
        if header is None:
            return
        config = self._config
        height = min(self.header_height_pt(header), reserved_pt)
        width = min(height / header.aspect_ratio, config.export_content_width_pt)
        top = config.export_margin_pt
        pdf.drawImage(
            ImageReader(to_pil_image(header.pixels)),
            config.export_margin_pt,
            config.page_height_pt - top - height,
            width=width,
            height=height,
        )

    def _draw_slice(self, pdf: canvas.Canvas, master: RasterImage, raster_slice: RasterSlice, header_pt: float) -> None:
        config = self._config
        rows = master.pixels[raster_slice.top_px:raster_slice.bottom_px]
        page_image = Image.new("RGB", (master.width, raster_slice.height_px), (255, 255, 255))
        page_image.paste(to_pil_image(rows), (0, 0))

        encoded = io.BytesIO()
        page_image.save(encoded, format="JPEG", quality=config.jpeg_quality)
        encoded.seek(0)

        height_pt = raster_slice.height_px * self._paginator.px_to_pt(master.width)
        top = self._paginator.body_top_pt(header_pt)
        pdf.drawImage(
            ImageReader(encoded),
            config.export_margin_pt,
            config.page_height_pt - top - height_pt,
            width=config.export_content_width_pt,
            height=height_pt,
        )

    def _draw_footer(self, pdf: canvas.Canvas, request: ExportRequest) -> None:
        config = self._config
        center_x = config.export_margin_pt + config.export_content_width_pt / 2
        footer_y = config.export_margin_pt + config.footer_offset_pt
        text = self._headers.expand_footer(request.header.footer_text, request.metadata)

        pdf.setFont(config.pdf_bold_font_name, config.footer_font_size_pt)
        pdf.drawCentredString(center_x, footer_y, text)
        pdf.setFont(config.pdf_bold_font_name, config.cnpj_font_size_pt)
        pdf.drawCentredString(center_x, footer_y - config.cnpj_line_gap_pt, f"CNPJ: {request.metadata.cnpj}")
