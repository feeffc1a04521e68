"""Tests for text measurement and greedy line wrapping."""
import unittest

from ata_renderer.model.layout_config import LayoutConfig
from ata_renderer.parser.line_wrapper import LineWrapper
from ata_renderer.parser.text_measurer import TextMeasurer

SAMPLE = (
    "Aos dezenove dias do mês de outubro reuniram-se os condôminos do edifício em assembleia "
    "geral ordinária virtual para deliberar sobre a prestação de contas do exercício anterior, "
    "a previsão orçamentária e a eleição do síndico para o próximo mandato."
)


class CharMeasurer:
    """Every character is 10 units wide."""

    def measure(self, text: str) -> float:
        return 10.0 * len(text)


class TextMeasurerTest(unittest.TestCase):
    def test_measures_with_pdf_font_metrics(self) -> None:
        measurer = TextMeasurer("Times-Roman", 12)
        self.assertFalse(measurer.uses_fallback)
        self.assertGreater(measurer.measure("Assembleia"), 0)
        self.assertLess(measurer.measure("i"), measurer.measure("W"))

    def test_unknown_font_falls_back_to_estimate(self) -> None:
        with self.assertLogs("ata_renderer.parser.text_measurer", level="WARNING"):
            measurer = TextMeasurer("No-Such-Face", 12)
        self.assertTrue(measurer.uses_fallback)
        self.assertEqual(measurer.measure("abcd"), 4 * 12 * 0.5)

    def test_empty_text_has_zero_width(self) -> None:
        self.assertEqual(TextMeasurer.for_preview(LayoutConfig()).measure(""), 0.0)


class LineWrapperTest(unittest.TestCase):
    """Greedy packing against a width budget."""

    def test_lines_fit_budget_unless_single_overflowing_word(self) -> None:
        measurer = TextMeasurer("Times-Roman", 12)
        budget = 200.0
        lines = LineWrapper(measurer, budget).wrap(SAMPLE + " Pneumoultramicroscopicossilicovulcanoconiótico")

        self.assertGreater(len(lines), 3)
        for line in lines:
            words = line.text.split(" ")
            width = sum(measurer.measure(word + " ") for word in words)
            if width > budget:
                self.assertEqual(len(words), 1, line.text)
            self.assertAlmostEqual(line.width, width)

    def test_no_words_lost_or_reordered(self) -> None:
        lines = LineWrapper(TextMeasurer("Times-Roman", 12), 150).wrap(SAMPLE)
        self.assertEqual(" ".join(line.text for line in lines), " ".join(SAMPLE.split()))

    def test_last_line_flagged_and_not_rendered_justified(self) -> None:
        lines = LineWrapper(CharMeasurer(), 100).wrap("um dois três quatro cinco seis sete", "justify")

        self.assertGreaterEqual(len(lines), 2)
        self.assertTrue(lines[-1].is_last_line_of_paragraph)
        self.assertFalse(lines[-1].renders_justified)
        for line in lines[:-1]:
            self.assertFalse(line.is_last_line_of_paragraph)
            self.assertTrue(line.renders_justified)

    def test_left_aligned_lines_are_never_justified(self) -> None:
        lines = LineWrapper(CharMeasurer(), 100).wrap("um dois três quatro cinco seis", "left")
        self.assertTrue(all(not line.renders_justified for line in lines))

    def test_empty_paragraph_yields_one_empty_line(self) -> None:
        lines = LineWrapper(CharMeasurer(), 100).wrap("   ")
        self.assertEqual(len(lines), 1)
        self.assertEqual(lines[0].text, "")
        self.assertTrue(lines[0].is_last_line_of_paragraph)

    def test_overflowing_word_gets_its_own_line(self) -> None:
        lines = LineWrapper(CharMeasurer(), 50).wrap("a palavraenorme b")
        self.assertEqual([line.text for line in lines], ["a", "palavraenorme", "b"])

    def test_break_points(self) -> None:
        self.assertEqual(LineWrapper.break_points([30, 30, 30, 80, 10], 60), [(0, 2), (2, 3), (3, 4), (4, 5)])
        self.assertEqual(LineWrapper.break_points([], 60), [])

    def test_rejects_non_positive_budget(self) -> None:
        with self.assertRaises(ValueError):
            LineWrapper(CharMeasurer(), 0)


if __name__ == "__main__":
    unittest.main()
