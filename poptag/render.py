"""
Page rendering: draws laid-out primitives onto a Pillow page surface.

The surface is the page in points multiplied by a uniform scale, so the
same layout renders at preview size (1x) and print size (3x).
"""

import logging
from typing import Callable, Dict, Optional, Tuple

from PIL import Image, ImageColor, ImageDraw, ImageFilter

from .exceptions import AssetLoadFailure
from .image_processor import ImageProcessor
from .layout import LabelLayoutEngine
from .models import ItemTransform, PopSettings, Product, Template
from .primitives import EmbeddedImage, Group, Line, Rect, Text
from .text_metrics import PilTextMeasurer

logger = logging.getLogger(__name__)

Point = Tuple[float, float]

ANCHORS_X = {"left": "l", "center": "m", "right": "r"}
ANCHORS_Y = {"top": "a", "center": "m"}


class PageSurface:
    """A white page of page_width x page_height points drawn at `scale`."""

    def __init__(self, page_width: float, page_height: float, scale: float = 1.0):
        self.page_width = page_width
        self.page_height = page_height
        self.scale = scale
        self.pixel_size = (int(round(page_width * scale)), int(round(page_height * scale)))
        self.image = Image.new('RGB', self.pixel_size, 'white')

    def clear(self, color: str = "#ffffff"):
        self.image.paste(ImageColor.getrgb(color), (0, 0) + self.pixel_size)


class PageRenderer:
    """Composes one page: background, template image, then the product group."""

    def __init__(self, page_width: float, page_height: float,
                 measurer: Optional[PilTextMeasurer] = None,
                 image_processor: Optional[ImageProcessor] = None):
        self.page_width = page_width
        self.page_height = page_height
        self.measurer = measurer or PilTextMeasurer()
        self.layout_engine = LabelLayoutEngine(self.measurer)
        self.image_processor = image_processor or ImageProcessor()

    def new_surface(self, scale: float = 1.0) -> PageSurface:
        return PageSurface(self.page_width, self.page_height, scale)

    def render_page(self, surface: PageSurface, product: Optional[Product],
                    settings: PopSettings, template: Optional[Template] = None,
                    transforms: Optional[Dict[str, ItemTransform]] = None) -> Optional[Group]:
        """Clear the surface and draw one product onto it.

        A template image that fails to load is logged and the page falls back
        to the plain background; it never aborts the page.

        Returns:
            The drawn group, or None for a blank page
        """
        template = template or Template()
        surface.clear(template.background_color if not template.has_background_image else "#ffffff")

        if product is None:
            return None

        has_background = False
        if template.has_background_image:
            try:
                background = self.image_processor.load_image(template.image_url)
                self.draw_group(surface, Group(
                    children=[EmbeddedImage(background, 0, 0, self.page_width, self.page_height,
                                            role="template-background")],
                    width=self.page_width, height=self.page_height, role="template"))
                has_background = True
            except AssetLoadFailure as e:
                logger.error(f"Template background unavailable, using default page: {e}")

        group = self.layout_engine.layout(product, self.page_width, self.page_height,
                                          settings, has_background)
        group.transform = (transforms or {}).get(product.sku)
        self.draw_group(surface, group)
        return group

    def draw_group(self, surface: PageSurface, group: Group):
        """Rasterize a group (and its transform) onto the surface."""
        layer = Image.new('RGBA', surface.pixel_size, (0, 0, 0, 0))
        to_pixels, size_factor = self._mapping(group, surface.scale)
        painter = _LayerPainter(layer, self.measurer, to_pixels, size_factor)
        for child in group.children:
            painter.draw(child)

        transform = group.transform
        if transform is not None and transform.angle:
            # Transform angles are clockwise; Pillow rotates counter-clockwise
            pivot = (transform.left * surface.scale, transform.top * surface.scale)
            layer = layer.rotate(-transform.angle, resample=Image.Resampling.BICUBIC, center=pivot)

        surface.image.paste(layer, (0, 0), layer)

    def _mapping(self, group: Group, scale: float) -> Tuple[Callable[[float, float], Point], float]:
        transform = group.transform
        if transform is None:
            return (lambda x, y: (x * scale, y * scale)), scale

        def to_pixels(x: float, y: float) -> Point:
            return ((transform.left + (x - group.x) * transform.scale_x) * scale,
                    (transform.top + (y - group.y) * transform.scale_y) * scale)

        # Font sizes, strokes and radii follow the smaller axis
        return to_pixels, scale * min(transform.scale_x, transform.scale_y)


class _LayerPainter:
    """Draws primitives in page units onto an RGBA layer."""

    def __init__(self, layer: Image.Image, measurer: PilTextMeasurer,
                 to_pixels: Callable[[float, float], Point], size_factor: float):
        self.layer = layer
        self.draw_ctx = ImageDraw.Draw(layer)
        self.measurer = measurer
        self.to_pixels = to_pixels
        self.size_factor = size_factor

    def draw(self, primitive):
        if isinstance(primitive, Group):
            for child in primitive.children:
                self.draw(child)
        elif isinstance(primitive, Rect):
            self._draw_rect(primitive)
        elif isinstance(primitive, Text):
            self._draw_text(primitive)
        elif isinstance(primitive, Line):
            self._draw_line(primitive)
        elif isinstance(primitive, EmbeddedImage):
            self._draw_image(primitive)
        else:
            raise TypeError(f"Cannot draw {type(primitive).__name__}")

    def _box(self, rect: Rect) -> Tuple[int, int, int, int]:
        x0, y0 = self.to_pixels(rect.x, rect.y)
        x1, y1 = self.to_pixels(rect.x + rect.width, rect.y + rect.height)
        return (int(round(min(x0, x1))), int(round(min(y0, y1))),
                int(round(max(x0, x1))), int(round(max(y0, y1))))

    def _width(self, stroke_width: float) -> int:
        return max(1, int(round(stroke_width * self.size_factor)))

    def _composite(self, patch: Image.Image, x: int, y: int):
        # alpha_composite rejects negative destinations, so crop instead
        if x < 0 or y < 0:
            patch = patch.crop((max(0, -x), max(0, -y), patch.width, patch.height))
            x, y = max(0, x), max(0, y)
        if patch.width > 0 and patch.height > 0:
            self.layer.alpha_composite(patch, dest=(x, y))

    def _draw_rect(self, rect: Rect):
        box = self._box(rect)
        width, height = box[2] - box[0], box[3] - box[1]
        if width <= 0 or height <= 0:
            return
        radius = int(round(rect.radius * self.size_factor))

        if rect.shadow is not None:
            self._draw_shadow(rect, box, radius)

        if rect.gradient is not None:
            mask = Image.new('L', (width, height), 0)
            ImageDraw.Draw(mask).rounded_rectangle((0, 0, width - 1, height - 1), radius, fill=255)
            ramp = Image.linear_gradient('L').rotate(90).resize((width, height))
            start = Image.new('RGBA', (width, height), ImageColor.getcolor(rect.gradient.start_color, 'RGBA'))
            end = Image.new('RGBA', (width, height), ImageColor.getcolor(rect.gradient.end_color, 'RGBA'))
            patch = Image.composite(end, start, ramp)
            patch.putalpha(mask)
            self._composite(patch, box[0], box[1])
        elif rect.fill or rect.stroke:
            self.draw_ctx.rounded_rectangle(
                box, radius, fill=rect.fill,
                outline=rect.stroke if rect.stroke_width else None,
                width=self._width(rect.stroke_width) if rect.stroke else 0,
            )
            return

        if rect.stroke and rect.stroke_width:
            self.draw_ctx.rounded_rectangle(box, radius, outline=rect.stroke,
                                            width=self._width(rect.stroke_width))

    def _draw_shadow(self, rect: Rect, box: Tuple[int, int, int, int], radius: int):
        shadow = rect.shadow
        blur = max(1, int(round(shadow.blur * self.size_factor)))
        pad = blur * 2
        width, height = box[2] - box[0], box[3] - box[1]
        mask = Image.new('L', (width + pad * 2, height + pad * 2), 0)
        ImageDraw.Draw(mask).rounded_rectangle((pad, pad, pad + width, pad + height), radius,
                                               fill=int(255 * shadow.opacity))
        mask = mask.filter(ImageFilter.GaussianBlur(blur / 2))
        patch = Image.new('RGBA', mask.size, ImageColor.getcolor(shadow.color, 'RGBA'))
        patch.putalpha(mask)
        offset_x = int(round(shadow.offset_x * self.size_factor))
        offset_y = int(round(shadow.offset_y * self.size_factor))
        self._composite(patch, box[0] - pad + offset_x, box[1] - pad + offset_y)

    def _draw_text(self, text: Text):
        font = self.measurer.get_font(text.font.scaled(self.size_factor))
        anchor = ANCHORS_X.get(text.anchor_x, "l") + ANCHORS_Y.get(text.anchor_y, "a")
        line_height = self.measurer.line_height(text.font)
        for index, line in enumerate(text.lines):
            x, y = self.to_pixels(text.x, text.y + index * line_height)
            self.draw_ctx.text((x, y), line, font=font, fill=text.fill, anchor=anchor)

    def _draw_line(self, line: Line):
        start = self.to_pixels(line.x1, line.y1)
        end = self.to_pixels(line.x2, line.y2)
        self.draw_ctx.line([start, end], fill=line.stroke, width=self._width(line.stroke_width))

    def _draw_image(self, item: EmbeddedImage):
        x0, y0 = self.to_pixels(item.x, item.y)
        x1, y1 = self.to_pixels(item.x + item.width, item.y + item.height)
        size = (max(1, int(round(x1 - x0))), max(1, int(round(y1 - y0))))
        patch = item.image.convert('RGBA').resize(size, Image.Resampling.LANCZOS)
        self._composite(patch, int(round(x0)), int(round(y0)))
