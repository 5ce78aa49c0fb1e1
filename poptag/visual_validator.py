"""
Checks on rendered pages: blank pages, content running off the edge and
output size.
"""

from typing import Any, Dict, Tuple
from PIL import Image, ImageDraw
import numpy as np
import logging

logger = logging.getLogger(__name__)

# The card border (#e5e7eb) is lighter than this, so it never counts as clipped text
EDGE_CONTENT_THRESHOLD = 200
CONTENT_THRESHOLD = 250


class VisualValidator:
    """Inspect rendered POP pages."""

    @staticmethod
    def is_blank(image: Image.Image, threshold: int = 0) -> bool:
        """True when the page has no pixel darker than near-white."""
        img_array = np.array(image.convert('L'))
        return int(np.sum(img_array < CONTENT_THRESHOLD)) <= threshold

    @staticmethod
    def detect_clipping(image: Image.Image,
                        margin_px: int = 2,
                        threshold: int = 10,
                        content_threshold: int = EDGE_CONTENT_THRESHOLD) -> Dict[str, bool]:
        """
        Detect if dark content touches the page edges.

        Args:
            image: Rendered page
            margin_px: Pixels from edge to check
            threshold: Minimum number of dark pixels to count as content

        Returns:
            Dict with clipping detection for each edge plus 'any'
        """
        img_array = np.array(image.convert('L'))
        height, width = img_array.shape

        regions = {
            'top': img_array[0:margin_px, :],
            'bottom': img_array[height - margin_px:height, :],
            'left': img_array[:, 0:margin_px],
            'right': img_array[:, width - margin_px:width],
        }

        results = {}
        for edge, region in regions.items():
            results[edge] = bool(np.sum(region < content_threshold) > threshold)
            if results[edge]:
                logger.warning(f"Content detected at {edge} edge - possible clipping")

        results['any'] = any(results.values())
        return results

    @staticmethod
    def get_content_bounds(image: Image.Image,
                           content_threshold: int = CONTENT_THRESHOLD) -> Tuple[int, int, int, int]:
        """
        Get the bounding box of actual content (non-white pixels).

        Returns:
            (left, top, right, bottom) coordinates of content, zeros when blank
        """
        content_mask = np.array(image.convert('L')) < content_threshold

        rows = np.any(content_mask, axis=1)
        cols = np.any(content_mask, axis=0)

        if not np.any(rows) or not np.any(cols):
            return (0, 0, 0, 0)

        rmin, rmax = np.where(rows)[0][[0, -1]]
        cmin, cmax = np.where(cols)[0][[0, -1]]

        return (int(cmin), int(rmin), int(cmax), int(rmax))

    @staticmethod
    def validate_page(image: Image.Image,
                      page_size: Tuple[float, float],
                      scale: float) -> Dict[str, Any]:
        """
        Validate one exported page.

        Returns:
            Dict with validation results and a debug overlay when something is off
        """
        expected_width = int(round(page_size[0] * scale))
        expected_height = int(round(page_size[1] * scale))
        dimension_match = (abs(image.width - expected_width) <= 1 and
                           abs(image.height - expected_height) <= 1)

        blank = VisualValidator.is_blank(image)
        clipping = VisualValidator.detect_clipping(image, margin_px=1)
        bounds = VisualValidator.get_content_bounds(image, EDGE_CONTENT_THRESHOLD)

        debug_image = None
        if clipping['any']:
            debug_image = VisualValidator.create_debug_overlay(image, bounds, clipping)

        return {
            'valid': dimension_match and not blank and not clipping['any'],
            'dimension_match': dimension_match,
            'blank': blank,
            'clipping': clipping,
            'content_bounds': bounds,
            'debug_image': debug_image,
        }

    @staticmethod
    def create_debug_overlay(image: Image.Image,
                             content_bounds: Tuple[int, int, int, int],
                             clipping: Dict[str, bool]) -> Image.Image:
        """Create a debug overlay showing issues."""
        debug_img = image.convert('RGB').copy()
        draw = ImageDraw.Draw(debug_img, 'RGBA')

        # Content bounds in green
        if content_bounds != (0, 0, 0, 0):
            draw.rectangle(content_bounds, outline=(0, 255, 0, 128), width=2)

        # Clipped edges in red
        width, height = debug_img.size
        if clipping['top']:
            draw.rectangle((0, 0, width, 5), fill=(255, 0, 0, 128))
        if clipping['bottom']:
            draw.rectangle((0, height - 5, width, height), fill=(255, 0, 0, 128))
        if clipping['left']:
            draw.rectangle((0, 0, 5, height), fill=(255, 0, 0, 128))
        if clipping['right']:
            draw.rectangle((width - 5, 0, width, height), fill=(255, 0, 0, 128))

        return debug_img
