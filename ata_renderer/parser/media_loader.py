"""
Logo and image loader.

Resolves ``src`` attributes found in header templates and content markup
(data URLs, local paths, ``file://`` and ``http(s)`` URLs) into media assets
the rasterizer can paint.
"""

import base64
import binascii
import io
import mimetypes
from collections import OrderedDict
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

import requests
from PIL import Image, UnidentifiedImageError

from ..model.elements import MediaAsset
from ..utils.logger import get_logger

LOGGER = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10
DEFAULT_CACHE_SIZE = 32


class MediaLoader:
    """Loads and caches images referenced by markup."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS, session: Optional[requests.Session] = None,
                 cache_size: int = DEFAULT_CACHE_SIZE):
        self.timeout = timeout
        self.session = session or requests.Session()
        self.cache_size = cache_size
        self._cache: "OrderedDict[str, Optional[MediaAsset]]" = OrderedDict()

    def load(self, src: str) -> Optional[MediaAsset]:
        """Return the asset behind ``src`` or None when it cannot be resolved."""
        src = (src or "").strip()
        if not src:
            return None
        if src in self._cache:
            self._cache.move_to_end(src)
            return self._cache[src]
        asset = self._resolve(src)
        self._cache[src] = asset
        # least recently used sources go first
        while len(self._cache) > self.cache_size:
            self._cache.popitem(last=False)
        return asset

    def open_image(self, src: str) -> Optional[Image.Image]:
        """Decode the asset as an RGBA Pillow image."""
        asset = self.load(src)
        if asset is None:
            return None
        try:
            with Image.open(io.BytesIO(asset.binary_data)) as image:
                return image.convert("RGBA")
        except (UnidentifiedImageError, OSError) as e:
            LOGGER.warning("Cannot decode image %s: %s", _short(src), e)
            return None

    # ------------------------------------------------------------------
    # Source resolution
    def _resolve(self, src: str) -> Optional[MediaAsset]:
        if src.startswith("data:"):
            return self._from_data_url(src)

        parsed = urlparse(src)
        if parsed.scheme in ("http", "https"):
            return self._from_http(src)
        if parsed.scheme == "file":
            return self._from_path(src, Path(unquote(parsed.path)))
        if "{{" in src:
            return None
        return self._from_path(src, Path(src))

    def _from_data_url(self, src: str) -> Optional[MediaAsset]:
        header, _, payload = src.partition(",")
        media_type = header[5:].split(";")[0] or "application/octet-stream"
        try:
            if ";base64" in header:
                data = base64.b64decode(payload, validate=False)
            else:
                data = unquote(payload).encode("utf-8")
        except (binascii.Error, ValueError) as e:
            LOGGER.warning("Invalid data URL image: %s", e)
            return None
        return self._asset(src, media_type, data)

    def _from_http(self, src: str) -> Optional[MediaAsset]:
        try:
            response = self.session.get(src, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            LOGGER.warning("Failed to fetch image %s: %s", _short(src), e)
            return None
        media_type = response.headers.get("Content-Type", "").split(";")[0] or self._guess_type(src)
        return self._asset(src, media_type, response.content)

    def _from_path(self, src: str, path: Path) -> Optional[MediaAsset]:
        if not path.is_file():
            LOGGER.warning("Image file not found: %s", path)
            return None
        return self._asset(src, self._guess_type(str(path)), path.read_bytes())

    @staticmethod
    def _guess_type(name: str) -> str:
        media_type, _ = mimetypes.guess_type(name)
        return media_type or "application/octet-stream"

    @staticmethod
    def _asset(src: str, media_type: str, data: bytes) -> MediaAsset:
        return MediaAsset(source=src, media_type=media_type, binary_data=data, size=len(data))


def _short(src: str, limit: int = 60) -> str:
    return src if len(src) <= limit else src[:limit] + "..."
