"""Resolve TrueType faces for the software rasterizer."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Tuple

import reportlab
from PIL import ImageFont

from ata_renderer.utils.logger import get_logger

LOGGER = get_logger(__name__)

FontKey = Tuple[str, bool, bool]

# Liberation faces are metric-compatible with Times New Roman / Arial / Courier New
FONT_CANDIDATES: Dict[FontKey, List[str]] = {
    ("serif", False, False): ["LiberationSerif-Regular.ttf", "Times New Roman.ttf", "times.ttf", "DejaVuSerif.ttf"],
    ("serif", True, False): ["LiberationSerif-Bold.ttf", "Times New Roman Bold.ttf", "timesbd.ttf", "DejaVuSerif-Bold.ttf"],
    ("serif", False, True): ["LiberationSerif-Italic.ttf", "Times New Roman Italic.ttf", "timesi.ttf", "DejaVuSerif-Italic.ttf"],
    ("serif", True, True): ["LiberationSerif-BoldItalic.ttf", "Times New Roman Bold Italic.ttf", "timesbi.ttf", "DejaVuSerif-BoldItalic.ttf"],
    ("sans", False, False): ["LiberationSans-Regular.ttf", "Arial.ttf", "arial.ttf", "DejaVuSans.ttf"],
    ("sans", True, False): ["LiberationSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf", "DejaVuSans-Bold.ttf"],
    ("sans", False, True): ["LiberationSans-Italic.ttf", "Arial Italic.ttf", "ariali.ttf", "DejaVuSans-Oblique.ttf"],
    ("sans", True, True): ["LiberationSans-BoldItalic.ttf", "Arial Bold Italic.ttf", "arialbi.ttf", "DejaVuSans-BoldOblique.ttf"],
    ("mono", False, False): ["LiberationMono-Regular.ttf", "Courier New.ttf", "cour.ttf", "DejaVuSansMono.ttf"],
    ("mono", True, False): ["LiberationMono-Bold.ttf", "Courier New Bold.ttf", "courbd.ttf", "DejaVuSansMono-Bold.ttf"],
    ("mono", False, True): ["LiberationMono-Italic.ttf", "Courier New Italic.ttf", "couri.ttf", "DejaVuSansMono-Oblique.ttf"],
    ("mono", True, True): ["LiberationMono-BoldItalic.ttf", "Courier New Bold Italic.ttf", "courbi.ttf", "DejaVuSansMono-BoldOblique.ttf"],
}

# Bitstream Vera ships inside the ReportLab distribution
BUNDLED_FACES: Dict[Tuple[bool, bool], str] = {
    (False, False): "Vera.ttf",
    (True, False): "VeraBd.ttf",
    (False, True): "VeraIt.ttf",
    (True, True): "VeraBI.ttf",
}
BUNDLED_FONT_DIR = Path(reportlab.__file__).resolve().parent / "fonts"


def family_for(css_family: str) -> str:
    """Map a CSS ``font-family`` list onto serif, sans or mono."""
    value = (css_family or "").lower()
    if "mono" in value or "courier" in value:
        return "mono"
    if "sans" in value or "arial" in value or "helvetica" in value or "calibri" in value:
        return "sans"
    return "serif"


class FontBook:
    """Caches Pillow fonts by family, weight, style and pixel size."""

    def __init__(self, extra_dirs: Optional[List[Path]] = None) -> None:
        self._extra_dirs = [Path(d) for d in (extra_dirs or [])]
        self._paths: Dict[FontKey, Optional[str]] = {}
        self._fonts: Dict[Tuple[FontKey, float], ImageFont.FreeTypeFont] = {}

    def get(self, family: str, bold: bool, italic: bool, size_px: float) -> ImageFont.FreeTypeFont:
        key: FontKey = (family if (family, bold, italic) in FONT_CANDIDATES else "serif", bold, italic)
        size = round(max(size_px, 1.0), 2)
        cached = self._fonts.get((key, size))
        if cached is not None:
            return cached

        path = self._resolve_path(key)
        font = ImageFont.truetype(path, size) if path else ImageFont.load_default(size=size)
        self._fonts[(key, size)] = font
        return font

    def measure(self, text: str, family: str, bold: bool, italic: bool, size_px: float) -> float:
        return self.get(family, bold, italic, size_px).getlength(text)

    # ------------------------------------------------------------------
    # Face lookup
    def _resolve_path(self, key: FontKey) -> Optional[str]:
        if key in self._paths:
            return self._paths[key]

        path = None
        for name in FONT_CANDIDATES[key]:
            path = self._try_face(name)
            if path:
                break
        if path is None:
            bundled = BUNDLED_FONT_DIR / BUNDLED_FACES[(key[1], key[2])]
            if bundled.is_file():
                path = str(bundled)
        if path is None:
            LOGGER.warning("No TrueType face found for %s; using Pillow's default font", key)
        else:
            LOGGER.debug("Font %s resolved to %s", key, path)
        self._paths[key] = path
        return path

    def _try_face(self, name: str) -> Optional[str]:
        for directory in self._extra_dirs:
            candidate = directory / name
            if candidate.is_file():
                return str(candidate)
        try:
            font = ImageFont.truetype(name, 12)
        except OSError:
            return None
        return font.path
