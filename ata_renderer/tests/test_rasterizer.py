"""Tests for the Pillow rasterizer and its agreement with line counting."""
import math
import unittest

import numpy as np

from ata_renderer.model.errors import RasterizationError
from ata_renderer.model.layout_config import LayoutConfig
from ata_renderer.parser.line_gutter import LineNumberGutter
from ata_renderer.renderer.export_container import ExportContainerBuilder
from ata_renderer.renderer.raster_paginator import RasterPaginator
from ata_renderer.renderer.rasterizer import PillowRasterizer, to_pil_image

MINUTES = (
    "<p>Aos dezenove dias do mês de outubro reuniram-se os condôminos do edifício em assembleia geral "
    "ordinária virtual para deliberar sobre a prestação de contas do exercício anterior.</p>"
    "<p><br></p>"
    "<h2>Deliberações</h2>"
    "<ul><li>Aprovação das contas.</li><li>Eleição do síndico.</li></ul>"
    "<p>Nada mais havendo a tratar, encerrou-se a reunião.</p>"
)


class PillowRasterizerTest(unittest.TestCase):
    def setUp(self):
        self.config = LayoutConfig()
        self.rasterizer = PillowRasterizer()
        self.builder = ExportContainerBuilder(self.config)

    def test_line_count_matches_rendered_lines(self):
        column = self.builder.content_column(MINUTES, padded=False)
        layout = self.rasterizer.measure(column, self.config.text_column_width_px)
        count = LineNumberGutter(self.config).count_lines(layout)

        self.assertGreater(len(layout.lines), 6)
        self.assertEqual(count, len(layout.lines))
        for index, line in enumerate(layout.lines):
            self.assertAlmostEqual(line.top, index * self.config.line_height_px)

    def test_render_dimensions_follow_scale(self):
        markup = "<p style='line-height: 28px'>Abertura</p><p style='line-height: 28px'>Encerramento</p>"
        image = self.rasterizer.render_sync(markup, 300, scale=2.0)

        self.assertEqual(image.width, 600)
        self.assertEqual(image.height, math.ceil(56 * 2.0))
        self.assertEqual(image.pixels.shape, (image.height, image.width, 3))
        self.assertEqual(image.pixels.dtype, np.uint8)

    def test_text_paints_ink_on_white(self):
        image = self.rasterizer.render_sync("<p>Assembleia</p>", 300)
        self.assertEqual(image.pixels[:, -1].min(), 255)
        self.assertLess(image.pixels.min(), 100)

    def test_table_borders_are_drawn(self):
        image = self.rasterizer.render_sync("<table><tr><td>x</td></tr></table>", 100)
        self.assertEqual(image.pixels[0, 0].tolist(), [0, 0, 0])
        self.assertEqual(image.pixels[0, 99].tolist(), [0, 0, 0])

    def test_empty_markup_gives_minimal_canvas(self):
        image = self.rasterizer.render_sync("", 50)
        self.assertEqual((image.width, image.height), (50, 1))

    def test_rejects_non_positive_width(self):
        with self.assertRaises(RasterizationError):
            self.rasterizer.measure("<p>x</p>", 0)

    def test_to_pil_image_accepts_row_slices(self):
        pixels = np.zeros((10, 4, 3), dtype=np.uint8)
        image = to_pil_image(pixels[2:5])
        self.assertEqual(image.size, (4, 3))
        self.assertEqual(image.mode, "RGB")


class RenderedPageCutTest(unittest.TestCase):
    """Page cuts over a canvas painted with real glyphs."""

    PARAGRAPH = (
        "<p>ÁÉÔ ÍTALO ÂNGELO e ÉRICA ÚRSULA aprovaram por unanimidade a prestação de contas "
        "do exercício, a previsão orçamentária e a contratação da manutenção dos elevadores.</p>"
    )

    def setUp(self):
        self.config = LayoutConfig()
        self.rasterizer = PillowRasterizer()
        self.builder = ExportContainerBuilder(self.config)
        self.paginator = RasterPaginator(self.config)

    def test_safe_cuts_land_on_fully_white_rows(self):
        content = "<h2>ÓRGÃOS DA ADMINISTRAÇÃO</h2>" + self.PARAGRAPH * 40
        layout = self.rasterizer.measure(self.builder.content_column(content, padded=False),
                                         self.config.text_column_width_px)
        line_count = LineNumberGutter(self.config).count_lines(layout)
        master = self.rasterizer.render_sync(self.builder.container(content, line_count),
                                             self.config.container_width_px, scale=self.config.raster_scale)

        slices = self.paginator.plan(master, header_height_pt=60.0)
        self.assertGreater(len(slices), 2)
        safe = [page for page in slices[:-1] if page.safe_cut]
        self.assertTrue(safe)
        threshold = self.config.safe_cut_white_threshold
        for page in safe:
            row = master.pixels[page.bottom_px]
            self.assertTrue((row > threshold).all(), f"ink on cut row {page.bottom_px}")


class AsyncRenderTest(unittest.IsolatedAsyncioTestCase):
    async def test_render_to_image_runs_off_the_event_loop(self):
        rasterizer = PillowRasterizer()
        image = await rasterizer.render_to_image("<p>Olá</p>", 120, scale=2.0)
        self.assertEqual(image.width, 240)


if __name__ == "__main__":
    unittest.main()
