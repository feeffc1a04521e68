"""
Integration tests for the command-line pipeline.

Runs the real rasterizer end to end and checks the written artifacts.
"""

import io
import re
import tempfile
import unittest
from pathlib import Path

from docx import Document

from ata_renderer.main import build_preview_model, load_content, load_header, main, parse_signature
from ata_renderer.model.errors import TemplateNotFoundError
from ata_renderer.parser.header_template import DEFAULT_HEADER_HTML
from ata_renderer.parser.template_store import HeaderTemplateStore

MINUTES_TEXT = """ATA DA ASSEMBLEIA GERAL ORDINÁRIA

Aos dezenove dias do mês de outubro, reuniram-se os condôminos em assembleia **virtual**.
Foram aprovadas as contas do exercício anterior.
"""


class CommandLineTest(unittest.TestCase):
    """End-to-end runs of ``main``."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.content = self.root / "ata.txt"
        self.content.write_text(MINUTES_TEXT, encoding="utf-8")
        self.output = self.root / "out"

    def tearDown(self):
        self._tmp.cleanup()

    def test_full_export(self):
        code = main([
            str(self.content), "--output", str(self.output), "--pdf", "--docx",
            "--condo", "Edifício Sol", "--cnpj", "12.345.678/0001-90", "--date", "19/10/2026",
            "--signature", "Maria Souza:Síndica", "--debug",
        ])
        self.assertEqual(code, 0)

        preview = (self.output / "preview.html").read_text(encoding="utf-8")
        self.assertIn("Edifício Sol - Página 1", preview)

        pdf = (self.output / "ata-profissional.pdf").read_bytes()
        self.assertTrue(pdf.startswith(b"%PDF"))
        self.assertEqual(len(re.findall(rb"/Type /Page\b", pdf)), 1)

        document = Document(io.BytesIO((self.output / "Ata-Edifício Sol.docx").read_bytes()))
        texts = [p.text for p in document.paragraphs]
        self.assertEqual(texts[0], "ATA DA ASSEMBLEIA GERAL ORDINÁRIA")
        self.assertIn("MARIA SOUZA", texts)

        self.assertTrue((self.output / "debug" / "preview_model.json").exists())
        self.assertTrue((self.output / "debug" / "raster_slices.json").exists())

    def test_export_without_condo_fails_cleanly(self):
        with self.assertLogs("ata_renderer.main", level="ERROR"):
            code = main([str(self.content), "--output", str(self.output), "--pdf"])
        self.assertEqual(code, 2)
        self.assertFalse((self.output / "ata-profissional.pdf").exists())

    def test_preview_only(self):
        code = main([str(self.content), "--output", str(self.output), "--continuous"])
        self.assertEqual(code, 0)
        self.assertEqual(sorted(p.name for p in self.output.iterdir()), ["preview.html"])

    def test_missing_content_file(self):
        with self.assertRaises(FileNotFoundError):
            main([str(self.root / "nada.html")])


class HelpersTest(unittest.TestCase):
    def test_load_content_converts_text_files(self):
        with tempfile.TemporaryDirectory() as tmp:
            text = Path(tmp) / "ata.md"
            text.write_text("Linha **forte**", encoding="utf-8")
            html = Path(tmp) / "ata.html"
            html.write_text("<p>pronto</p>", encoding="utf-8")

            self.assertEqual(load_content(text), "<p>Linha <strong>forte</strong></p>")
            self.assertEqual(load_content(html), "<p>pronto</p>")

    def test_load_header_sources(self):
        self.assertEqual(load_header().html, DEFAULT_HEADER_HTML)
        with tempfile.TemporaryDirectory() as tmp:
            store_path = Path(tmp) / "headers.json"
            saved = HeaderTemplateStore(store_path).save("Próprio", "<p>{{CONDO_NAME}}</p>", "antigo")

            header = load_header(store_path, saved.id, footer_text="novo")
            self.assertEqual(header.html, "<p>{{CONDO_NAME}}</p>")
            self.assertEqual(header.footer_text, "novo")
            with self.assertRaises(TemplateNotFoundError):
                load_header(store_path, "404")

            header_file = Path(tmp) / "cabecalho.html"
            header_file.write_text("<b>{{PAGE_NUM}}</b>", encoding="utf-8")
            self.assertEqual(load_header(header_file=header_file).name, "cabecalho")

        with self.assertRaises(ValueError):
            load_header(template_id="1")

    def test_parse_signature(self):
        signature = parse_signature(" Maria Souza : Síndica ", 3)
        self.assertEqual((signature.id, signature.name, signature.role), (3, "Maria Souza", "Síndica"))
        self.assertEqual(parse_signature("João").role, "")
        with self.assertRaises(ValueError):
            parse_signature(":Síndica")

    def test_build_preview_model(self):
        model = build_preview_model("<p>Um.</p><p>Dois.</p>")
        self.assertEqual(model.page_count, 1)
        self.assertEqual([line.text for line in model.lines], ["Um.", "Dois."])


if __name__ == "__main__":
    unittest.main()
