"""Test cases for logo and image loading."""

import base64
import io
import tempfile
import unittest
from pathlib import Path
from unittest.mock import Mock

import requests
from PIL import Image

from ata_renderer.parser.media_loader import MediaLoader


def png_bytes(size=(4, 3)):
    buffer = io.BytesIO()
    Image.new("RGB", size, (255, 0, 0)).save(buffer, format="PNG")
    return buffer.getvalue()


class MediaLoaderTest(unittest.TestCase):
    """Resolve image sources into assets and Pillow images."""

    def setUp(self):
        """Set up a loader with a mocked HTTP session."""
        self.session = Mock(spec=requests.Session)
        self.loader = MediaLoader(timeout=3, session=self.session)

    def test_data_url(self):
        data = png_bytes()
        src = "data:image/png;base64," + base64.b64encode(data).decode("ascii")

        asset = self.loader.load(src)
        self.assertEqual(asset.media_type, "image/png")
        self.assertEqual(asset.binary_data, data)
        self.assertEqual(asset.size, len(data))

        image = self.loader.open_image(src)
        self.assertEqual(image.size, (4, 3))
        self.assertEqual(image.mode, "RGBA")

    def test_local_file_and_file_url(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "logo.png"
            path.write_bytes(png_bytes((8, 8)))

            self.assertEqual(self.loader.load(str(path)).media_type, "image/png")
            self.assertEqual(self.loader.open_image(path.as_uri()).size, (8, 8))

    def test_missing_file_is_logged_and_skipped(self):
        with self.assertLogs("ata_renderer.parser.media_loader", level="WARNING"):
            self.assertIsNone(self.loader.load("/nao/existe/logo.png"))

    def test_http_source_uses_session(self):
        response = Mock()
        response.content = png_bytes()
        response.headers = {"Content-Type": "image/png; charset=binary"}
        self.session.get.return_value = response

        asset = self.loader.load("https://example.com/logo.png")
        self.loader.load("https://example.com/logo.png")

        self.session.get.assert_called_once_with("https://example.com/logo.png", timeout=3)
        self.assertEqual(asset.media_type, "image/png")

    def test_cache_keeps_most_recent_sources(self):
        response = Mock()
        response.content = png_bytes()
        response.headers = {"Content-Type": "image/png"}
        self.session.get.return_value = response
        loader = MediaLoader(timeout=3, session=self.session, cache_size=2)

        for name in ("a", "b", "a", "c", "a", "b"):
            loader.load(f"https://example.com/{name}.png")

        fetched = [c.args[0].rsplit("/", 1)[1] for c in self.session.get.call_args_list]
        self.assertEqual(fetched, ["a.png", "b.png", "c.png", "b.png"])
        self.assertEqual(len(loader._cache), 2)

    def test_http_failure_returns_none(self):
        self.session.get.side_effect = requests.ConnectionError("offline")
        with self.assertLogs("ata_renderer.parser.media_loader", level="WARNING"):
            self.assertIsNone(self.loader.load("http://example.com/logo.png"))

    def test_unresolved_sources(self):
        self.assertIsNone(self.loader.load(""))
        self.assertIsNone(self.loader.load("{{COMPANY_LOGO}}"))
        self.session.get.assert_not_called()

    def test_undecodable_image(self):
        src = "data:image/png;base64," + base64.b64encode(b"not an image").decode("ascii")
        with self.assertLogs("ata_renderer.parser.media_loader", level="WARNING"):
            self.assertIsNone(self.loader.open_image(src))


if __name__ == "__main__":
    unittest.main()
