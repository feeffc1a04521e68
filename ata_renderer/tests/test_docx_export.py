"""Tests for the flowed DOCX export."""
import io
import unittest

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Inches, Pt

from ata_renderer.model.elements import ExportRequest, HeaderTemplate, MeetingMetadata, SignatureEntry
from ata_renderer.model.errors import ExportPreconditionError, RasterizationError
from ata_renderer.model.layout_config import LayoutConfig
from ata_renderer.renderer.docx_renderer import (
    DOCX_MEDIA_TYPE,
    FALLBACK_HEADER_TITLE,
    SIGNATURE_RULE,
    FlowExportPipeline,
    docx_filename,
)
from ata_renderer.tests.fakes import FakeRasterizer

CONTENT = "<p>Abertura da assembleia.</p><p><br></p><p>Primeira linha<br>Segunda linha</p>"


def make_request(**kwargs) -> ExportRequest:
    defaults = dict(
        content_html=CONTENT,
        metadata=MeetingMetadata(condo_name="Edifício Sol", cnpj="12.345.678/0001-90"),
        header=HeaderTemplate(id="1", name="Padrão", html="<p>{{CONDO_NAME}} {{PAGE_NUM}}</p>",
                              footer_text="{{CONDO_NAME}} - Rodapé"),
    )
    defaults.update(kwargs)
    return ExportRequest(**defaults)


class FailingHeaderRasterizer(FakeRasterizer):
    async def render_to_image(self, markup, width_px, scale=1.0):
        raise RasterizationError("no canvas")


class FlowExportPipelineTest(unittest.IsolatedAsyncioTestCase):
    async def export(self, rasterizer=None, **kwargs):
        pipeline = FlowExportPipeline(LayoutConfig(), rasterizer or FakeRasterizer())
        artifact = await pipeline.export(make_request(**kwargs))
        return artifact, Document(io.BytesIO(artifact.content))

    async def test_body_paragraphs_follow_plain_text_lines(self):
        artifact, document = await self.export()

        self.assertEqual(artifact.filename, "Ata-Edifício Sol.docx")
        self.assertEqual(artifact.media_type, DOCX_MEDIA_TYPE)
        self.assertIsNone(artifact.page_count)

        texts = [p.text for p in document.paragraphs]
        self.assertEqual(texts, ["Abertura da assembleia.", "", "Primeira linha", "Segunda linha"])
        first = document.paragraphs[0]
        self.assertEqual(first.alignment, WD_ALIGN_PARAGRAPH.JUSTIFY)
        self.assertEqual(first.paragraph_format.space_after, Pt(6))
        self.assertEqual(first.runs[0].font.name, "Times New Roman")
        self.assertEqual(first.runs[0].font.size, Pt(12))

    async def test_page_setup(self):
        _artifact, document = await self.export()
        section = document.sections[0]

        self.assertAlmostEqual(section.page_width.mm, 210, places=0)
        self.assertAlmostEqual(section.page_height.mm, 297, places=0)
        self.assertEqual(section.top_margin, Inches(1.2))
        self.assertEqual(section.bottom_margin, Inches(1))
        self.assertEqual(section.left_margin, Inches(0.75))
        self.assertEqual(section.right_margin, Inches(0.75))

    async def test_signature_blocks(self):
        signatures = [SignatureEntry(1, "Maria Souza", "Síndica"), SignatureEntry(2, "João Lima", "Secretário")]
        _artifact, document = await self.export(signatures=signatures)

        texts = [p.text for p in document.paragraphs]
        body_end = 4
        self.assertEqual(texts[body_end:body_end + 3], ["", "", ""])
        self.assertEqual(texts[body_end + 3:], [
            SIGNATURE_RULE, "MARIA SOUZA", "Síndica",
            SIGNATURE_RULE, "JOÃO LIMA", "Secretário",
        ])
        name = document.paragraphs[body_end + 4]
        self.assertTrue(name.runs[0].bold)
        self.assertEqual(name.alignment, WD_ALIGN_PARAGRAPH.CENTER)
        self.assertEqual(document.paragraphs[body_end + 3].paragraph_format.space_before, Pt(20))
        self.assertEqual(document.paragraphs[body_end + 5].runs[0].font.size, Pt(11))

    async def test_header_picture_and_footer(self):
        rasterizer = FakeRasterizer(header_size=(1440, 200))
        _artifact, document = await self.export(rasterizer)
        section = document.sections[0]

        self.assertEqual(rasterizer.header_pages, ["1/1"])
        header_xml = section.header._element.xml
        self.assertIn("<pic:pic", header_xml)
        shapes = section.header.paragraphs[0]._element.xpath(".//wp:extent")
        self.assertEqual(int(shapes[0].get("cx")), Inches(600 / 96))

        footer_texts = [p.text for p in section.footer.paragraphs]
        self.assertEqual(footer_texts, ["EDIFÍCIO SOL - Rodapé", "CNPJ: 12.345.678/0001-90"])
        self.assertTrue(section.footer.paragraphs[0].runs[0].bold)

    async def test_text_header_when_rasterization_fails(self):
        _artifact, document = await self.export(FailingHeaderRasterizer())
        header_texts = [p.text for p in document.sections[0].header.paragraphs]
        self.assertEqual(header_texts, [FALLBACK_HEADER_TITLE, "EDIFÍCIO SOL"])

    async def test_missing_condo_is_rejected(self):
        pipeline = FlowExportPipeline(LayoutConfig(), FakeRasterizer())
        with self.assertRaises(ExportPreconditionError):
            await pipeline.export(make_request(metadata=MeetingMetadata(condo_name="")))

    async def test_progress_stages(self):
        events = []
        pipeline = FlowExportPipeline(LayoutConfig(), FakeRasterizer())
        await pipeline.export(make_request(), events.append)
        self.assertEqual([e.stage for e in events], ["rasterize", "body", "done"])


class DocxFilenameTest(unittest.TestCase):
    def test_filename(self):
        self.assertEqual(docx_filename("Residencial Alfa"), "Ata-Residencial Alfa.docx")
        self.assertEqual(docx_filename(""), "Ata-Condominio.docx")


if __name__ == "__main__":
    unittest.main()
