"""
Text measurement shared by layout and drawing.

The layout engine measures with the same fonts the renderer draws with, so a
fitted size stays fitted on the page.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
from PIL import ImageFont
import logging

from .config import FONT_FILES

logger = logging.getLogger(__name__)

# Line box height as a multiple of font size
LINE_SPACING = 1.16

# CSS weight names -> which font file draws them
WEIGHT_FILES = {
    "regular": "regular",
    "medium": "regular",
    "semibold": "bold",
    "bold": "bold",
    "extrabold": "bold",
    "black": "black",
}


@dataclass(frozen=True)
class FontSpec:
    """Font size in page units plus a weight name."""
    size: float
    weight: str = "regular"

    def scaled(self, factor: float) -> "FontSpec":
        return FontSpec(self.size * factor, self.weight)


class TextMeasurer:
    """Measurement capability injected into fitting and layout.

    Subclasses provide `measure`; everything else derives from it.
    """

    line_spacing = LINE_SPACING

    def measure(self, text: str, font: FontSpec) -> float:
        """Single-line advance width of text in page units."""
        raise NotImplementedError

    def line_height(self, font: FontSpec) -> float:
        return font.size * self.line_spacing

    def block_height(self, lines: List[str], font: FontSpec) -> float:
        return max(1, len(lines)) * self.line_height(font)

    def wrap(self, text: str, max_width: float, font: FontSpec) -> List[str]:
        """Wrap text to fit within max width using this measurer."""
        if not text:
            return []

        words = text.split()
        lines = []
        current_line = []

        # Build lines by adding words until width limit is reached
        for word in words:
            test_line = ' '.join(current_line + [word])
            if self.measure(test_line, font) <= max_width:
                current_line.append(word)
            else:
                if current_line:
                    lines.append(' '.join(current_line))
                    current_line = [word]
                else:
                    # Single word is too long for the width - keep it on its own line
                    lines.append(word)

        if current_line:
            lines.append(' '.join(current_line))

        return lines


class PilTextMeasurer(TextMeasurer):
    """Measure with Pillow FreeType fonts; the renderer draws with the same objects."""

    def __init__(self, font_files: Optional[Dict[str, str]] = None):
        self.font_files = dict(font_files or FONT_FILES)
        self._fonts: Dict[Tuple[str, float], ImageFont.FreeTypeFont] = {}
        self._missing = set()

    def get_font(self, font: FontSpec) -> ImageFont.FreeTypeFont:
        """Load (and cache) the font for a size and weight."""
        role = WEIGHT_FILES.get(font.weight, "regular")
        size = max(1.0, round(font.size, 2))
        key = (role, size)
        cached = self._fonts.get(key)
        if cached is not None:
            return cached

        path = self.font_files.get(role)
        loaded = None
        if path and path not in self._missing:
            try:
                loaded = ImageFont.truetype(path, size)
            except OSError:
                logger.warning(f"Font file {path} not found, using Pillow's default font")
                self._missing.add(path)
        if loaded is None:
            # Pillow's bundled FreeType face keeps measuring and drawing consistent
            loaded = ImageFont.load_default(size=size)

        self._fonts[key] = loaded
        return loaded

    def measure(self, text: str, font: FontSpec) -> float:
        if not text:
            return 0.0
        return float(self.get_font(font).getlength(text))
