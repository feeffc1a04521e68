"""Single-flight coordination of PDF and DOCX exports."""
from __future__ import annotations

from typing import Optional

from ata_renderer.model.elements import ExportArtifact, ExportRequest
from ata_renderer.model.errors import ExportInProgressError
from ata_renderer.model.layout_config import LayoutConfig
from ata_renderer.renderer.docx_renderer import FlowExportPipeline
from ata_renderer.renderer.pdf_renderer import ProgressCallback, RasterExportPipeline
from ata_renderer.renderer.rasterizer import PillowRasterizer, Rasterizer
from ata_renderer.utils.debug import DebugDumper
from ata_renderer.utils.logger import get_logger

LOGGER = get_logger(__name__)


class ExportSession:
    """Runs at most one export at a time; a host disables its trigger while ``busy``."""

    def __init__(
        self,
        config: LayoutConfig | None = None,
        rasterizer: Rasterizer | None = None,
        debug: DebugDumper | None = None,
    ) -> None:
        config = config or LayoutConfig()
        rasterizer = rasterizer or PillowRasterizer()
        self.pdf = RasterExportPipeline(config, rasterizer, debug=debug)
        self.docx = FlowExportPipeline(config, rasterizer)
        self._active: Optional[str] = None

    @property
    def busy(self) -> bool:
        return self._active is not None

    async def export_pdf(self, request: ExportRequest, progress: ProgressCallback | None = None) -> ExportArtifact:
        self._acquire("pdf")
        try:
            return await self.pdf.export(request, progress)
        finally:
            self._active = None

    async def export_docx(self, request: ExportRequest, progress: ProgressCallback | None = None) -> ExportArtifact:
        self._acquire("docx")
        try:
            return await self.docx.export(request, progress)
        finally:
            self._active = None

    def _acquire(self, kind: str) -> None:
        if self._active is not None:
            LOGGER.warning("Rejected %s export: %s export still running", kind, self._active)
            raise ExportInProgressError(f"A {self._active} export is already in progress")
        self._active = kind
