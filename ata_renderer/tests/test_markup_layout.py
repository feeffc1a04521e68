"""Tests for the HTML/CSS layout engine behind the software rasterizer."""
import base64
import io
import unittest

from PIL import Image

from ata_renderer.parser.media_loader import MediaLoader
from ata_renderer.renderer.markup_layout import (
    ComputedStyle,
    ImageOp,
    MarkupLayoutEngine,
    RectOp,
    TextOp,
    parse_css,
    parse_length,
)

LINE = 28.0

LONG_TEXT = (
    "Aos dezenove dias do mês de outubro reuniram-se os condôminos em assembleia geral ordinária "
    "para deliberar sobre a prestação de contas e a eleição do síndico."
)


def png_data_url(width: int, height: int) -> str:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), (10, 20, 30)).save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


class CssHelpersTest(unittest.TestCase):
    def test_parse_length(self):
        cases = [
            ("10", 10.0),
            ("10px", 10.0),
            ("12pt", 16.0),
            ("1in", 96.0),
            ("2.54cm", 96.0),
            ("25.4mm", 96.0),
            ("2em", 20.0),
            ("50%", 100.0),
        ]
        for value, expected in cases:
            self.assertAlmostEqual(parse_length(value, font_px=10.0, reference=200.0), expected, msg=value)
        self.assertIsNone(parse_length("50%"))
        self.assertIsNone(parse_length("auto"))
        self.assertIsNone(parse_length(None))

    def test_parse_css(self):
        declarations = parse_css("Font-Size: 14pt; text-align:JUSTIFY !important;; bogus")
        self.assertEqual(declarations, {"font-size": "14pt", "text-align": "justify"})


class MarkupLayoutEngineTest(unittest.TestCase):
    def setUp(self):
        self.engine = MarkupLayoutEngine()
        self.style = ComputedStyle(line_height_px=LINE)

    def layout(self, markup, width=400.0):
        return self.engine.layout(markup, width, self.style)

    def test_empty_paragraph_occupies_one_line(self):
        for markup in ("<p><br></p>", "<p></p>"):
            result = self.layout(markup)
            self.assertEqual(len(result.lines), 1, markup)
            self.assertEqual(result.lines[0].text, "")
            self.assertEqual(result.height, LINE)

    def test_breaks_split_lines(self):
        result = self.layout("<p>primeira<br>segunda</p><p>terceira<br></p>")
        self.assertEqual([line.text for line in result.lines], ["primeira", "segunda", "terceira"])
        self.assertEqual([line.top for line in result.lines], [0.0, LINE, 2 * LINE])
        self.assertEqual(result.height, 3 * LINE)

    def test_glyphs_end_inside_their_line_box(self):
        result = self.layout("<p>Abertura</p><p>Encerramento</p>")
        for line in result.lines:
            self.assertGreater(line.glyph_bottom, line.top)
            self.assertLessEqual(line.glyph_bottom, line.bottom)

    def test_wrapping_and_justification(self):
        result = self.engine.layout(f"<p style='text-align: justify'>{LONG_TEXT}</p>", 200.0, self.style)

        self.assertGreater(len(result.lines), 2)
        self.assertEqual(" ".join(line.text for line in result.lines), LONG_TEXT)
        for line in result.lines[:-1]:
            self.assertAlmostEqual(line.width, 200.0)
        self.assertLess(result.lines[-1].width, 200.0)

    def test_lists_get_markers(self):
        result = self.layout("<ul><li>Um</li><li>Dois</li></ul><ol><li>Três</li><li></li></ol>")
        self.assertEqual([line.text for line in result.lines], ["• Um", "• Dois", "1. Três", "2."])

    def test_inline_styles(self):
        result = self.layout("<p><strong>Forte</strong> <span style='text-transform: uppercase'>alto</span></p>"
                             "<h1>Título</h1>")
        texts = {op.text: op for op in result.ops if isinstance(op, TextOp)}

        self.assertTrue(texts["Forte"].bold)
        self.assertIn("ALTO", texts)
        self.assertAlmostEqual(texts["Título"].size_px, 2 * self.style.font_px)
        self.assertTrue(texts["Título"].bold)

    def test_centered_line_starts_right_of_margin(self):
        result = self.layout("<p style='text-align: center'>meio</p>")
        line = result.lines[0]
        self.assertAlmostEqual(line.x, (400.0 - line.width) / 2)

    def test_padding_offsets_content(self):
        result = self.layout("<div style='padding-top: 3px; padding-left: 20px'><p>x</p></div>")
        self.assertEqual(result.lines[0].top, 3.0)
        self.assertEqual(result.lines[0].x, 20.0)
        self.assertEqual(result.height, 3.0 + LINE)

    def test_skipped_tags_are_ignored(self):
        result = self.layout("<style>p { color: red }</style><p>visível</p>")
        self.assertEqual([line.text for line in result.lines], ["visível"])

    def test_flex_children_sit_side_by_side(self):
        markup = ("<div style='display: flex'>"
                  "<div style='width: 100px'><p>A</p><p>B</p></div>"
                  "<div style='width: 200px'><p>C</p></div></div>")
        result = self.layout(markup)

        positions = {line.text: (line.x, line.top) for line in result.lines}
        self.assertEqual(positions["A"], (0.0, 0.0))
        self.assertEqual(positions["B"], (0.0, LINE))
        self.assertEqual(positions["C"], (100.0, 0.0))
        self.assertEqual(result.height, 2 * LINE)

    def test_flex_wrap_moves_blocks_to_next_row(self):
        markup = ("<div style='display: flex; flex-wrap: wrap; gap: 10px'>"
                  "<div style='min-width: 250px'><p>A</p></div>"
                  "<div style='min-width: 250px'><p>B</p></div></div>")
        result = self.layout(markup)
        tops = [line.top for line in result.lines]
        self.assertEqual(tops, [0.0, LINE + 10.0])

    def test_table_cells_and_borders(self):
        markup = "<table><tr><td>A</td><td>B</td></tr></table>"
        result = self.engine.layout(markup, 200.0, ComputedStyle(line_height_px=LINE, align="left"))

        rects = [op for op in result.ops if isinstance(op, RectOp)]
        self.assertEqual(len(rects), 2)
        self.assertEqual([r.x for r in rects], [0.0, 100.0])
        lines = {line.text: line for line in result.lines}
        self.assertAlmostEqual(lines["A"].x, 5.5)
        self.assertAlmostEqual(lines["B"].x, 105.5)
        self.assertAlmostEqual(result.height, LINE + 11.0)

    def test_table_column_widths_and_rowspan(self):
        markup = ("<table><colgroup><col style='width: 25%'><col style='width: 75%'></colgroup>"
                  "<tr><td rowspan='2'>L</td><td>R1</td></tr><tr><td>R2</td></tr></table>")
        result = self.engine.layout(markup, 400.0, ComputedStyle(line_height_px=LINE))

        rects = [op for op in result.ops if isinstance(op, RectOp)]
        self.assertEqual([(r.x, r.width) for r in rects], [(0.0, 100.0), (100.0, 300.0), (100.0, 300.0)])
        self.assertAlmostEqual(rects[0].height, rects[1].height + rects[2].height)

    def test_image_keeps_aspect_ratio_inside_box(self):
        engine = MarkupLayoutEngine(media=MediaLoader())
        markup = f"<img src='{png_data_url(40, 20)}' width='80' height='60'>"
        result = engine.layout(markup, 300.0, self.style)

        images = [op for op in result.ops if isinstance(op, ImageOp)]
        self.assertEqual(len(images), 1)
        self.assertAlmostEqual(images[0].width, 80.0)
        self.assertAlmostEqual(images[0].height, 40.0)
        self.assertAlmostEqual(images[0].y, 10.0)
        self.assertEqual(result.height, 60.0)

    def test_unresolvable_image_takes_no_space(self):
        engine = MarkupLayoutEngine(media=MediaLoader())
        result = engine.layout("<img src='{{COMPANY_LOGO}}'><p>x</p>", 300.0, self.style)
        self.assertEqual(result.height, LINE)


if __name__ == "__main__":
    unittest.main()
