import base64
import binascii
import io
import logging
from pathlib import Path
from typing import Dict, Optional, Union

import requests
from PIL import Image, UnidentifiedImageError

from .exceptions import AssetLoadFailure

logger = logging.getLogger(__name__)


class ImageProcessor:
    """Load template and logo images from disk, URLs or data URLs."""

    def __init__(self, base_url: Optional[str] = None, timeout: float = 30.0,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/') if base_url else None
        self.timeout = timeout
        self.session = session or requests.Session()
        # Decoded images are shared read-only between pages of one export
        self._cache: Dict[str, Image.Image] = {}

    def load_image(self, source: Union[str, Path]) -> Image.Image:
        """Load an image and flatten it onto white.

        Args:
            source: File path, http(s) URL, server-relative path or data: URL

        Returns:
            RGB image

        Raises:
            AssetLoadFailure: If the image cannot be fetched or decoded
        """
        key = str(source)
        if key in self._cache:
            return self._cache[key]

        data = self._read_bytes(key)
        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            raise AssetLoadFailure(key, str(e))

        logger.debug(f"Loaded image {key[:80]}: {img.size[0]}x{img.size[1]} pixels")
        img = self._flatten(img)
        self._cache[key] = img
        return img

    def _read_bytes(self, source: str) -> bytes:
        if source.startswith('data:'):
            try:
                header, encoded = source.split(',', 1)
                if ';base64' in header:
                    return base64.b64decode(encoded)
                return encoded.encode('utf-8')
            except (ValueError, binascii.Error) as e:
                raise AssetLoadFailure(source[:40], f"bad data URL: {e}")

        url = source
        if source.startswith('/') and self.base_url and not Path(source).exists():
            url = f"{self.base_url}{source}"

        if url.startswith(('http://', 'https://')):
            try:
                response = self.session.get(url, timeout=self.timeout)
                response.raise_for_status()
                return response.content
            except requests.exceptions.RequestException as e:
                raise AssetLoadFailure(url, str(e))

        path = Path(source)
        if not path.exists():
            raise AssetLoadFailure(source, "file not found")
        try:
            return path.read_bytes()
        except OSError as e:
            raise AssetLoadFailure(source, str(e))

    def _flatten(self, img: Image.Image) -> Image.Image:
        # Pages print on white, so transparency is composited rather than kept
        if img.mode in ('RGBA', 'LA', 'P'):
            img = img.convert('RGBA')
            background = Image.new('RGB', img.size, (255, 255, 255))
            background.paste(img, mask=img.split()[3])
            return background
        if img.mode != 'RGB':
            return img.convert('RGB')
        return img
