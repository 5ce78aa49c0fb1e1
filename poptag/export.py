import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from PIL import Image

from .config import OUTPUT_DIR, PRINT_SCALE
from .dimensions import A4_POINTS
from .image_processor import ImageProcessor
from .models import ItemTransform, PopSettings, Product, Template
from .output_formats import (
    OutputFormat, dpi_for_scale, save_images, save_pdf, send_to_printer
)
from .render import PageRenderer
from .text_metrics import PilTextMeasurer
from .visual_validator import VisualValidator

logger = logging.getLogger(__name__)


class PopExporter:
    """Render POP pages for preview, file export and printing."""

    def __init__(self, page_width: float = None, page_height: float = None,
                 measurer: Optional[PilTextMeasurer] = None,
                 image_processor: Optional[ImageProcessor] = None,
                 print_scale: float = None):
        # Use provided dimensions or fall back to A4
        self.page_width = page_width if page_width is not None else A4_POINTS[0]
        self.page_height = page_height if page_height is not None else A4_POINTS[1]
        self.print_scale = print_scale if print_scale is not None else PRINT_SCALE
        self.renderer = PageRenderer(self.page_width, self.page_height,
                                     measurer=measurer, image_processor=image_processor)
        self.validator = VisualValidator()

    @property
    def page_size(self):
        return (self.page_width, self.page_height)

    def render_preview(self, products: Sequence[Product], index: int,
                       settings: PopSettings, template: Optional[Template] = None,
                       transforms: Optional[Dict[str, ItemTransform]] = None) -> Image.Image:
        """Draw the page for products[index] at 1x; a blank page when out of range."""
        product = products[index] if 0 <= index < len(products) else None
        surface = self.renderer.new_surface(1.0)
        self.renderer.render_page(surface, product, settings, template, transforms)
        return surface.image

    def export_pages(self, products: Sequence[Product], settings: PopSettings,
                     template: Optional[Template] = None,
                     transforms: Optional[Dict[str, ItemTransform]] = None,
                     scale: Optional[float] = None) -> List[Image.Image]:
        """Render one image per product, in order, at print resolution.

        Pages are rendered one after another on fresh surfaces, so each page
        reflects only its own product.
        """
        scale = scale if scale is not None else self.print_scale
        pages = []
        for number, product in enumerate(products, start=1):
            surface = self.renderer.new_surface(scale)
            self.renderer.render_page(surface, product, settings, template, transforms)
            if self.validator.is_blank(surface.image):
                logger.warning(f"Page {number} ({product.sku}) rendered blank")
            pages.append(surface.image)
            logger.debug(f"Rendered page {number}/{len(products)}: {product.sku}")
        logger.info(f"Exported {len(pages)} page(s) at {scale}x")
        return pages

    def generate(self, products: Sequence[Product], settings: PopSettings,
                 output_filename: str = "pop.pdf",
                 output_format: Optional[OutputFormat] = None,
                 template: Optional[Template] = None,
                 transforms: Optional[Dict[str, ItemTransform]] = None) -> Path:
        """Export every product and write the pages to a file.

        Args:
            products: Products in page order
            settings: Presentation settings
            output_filename: File name, or a path
            output_format: Format; PDF when not given

        Returns:
            Path to the generated file (or the directory holding numbered images)
        """
        output_path = Path(output_filename)
        if not output_path.is_absolute() and output_path.parent == Path('.'):
            OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
            output_path = OUTPUT_DIR / output_filename
        else:
            output_path.parent.mkdir(parents=True, exist_ok=True)

        output_format = output_format or OutputFormat.PDF
        pages = self.export_pages(products, settings, template, transforms)
        if not pages:
            raise ValueError("Nothing to export: the product list is empty")

        if output_format == OutputFormat.PDF:
            return save_pdf(pages, output_path, self.page_size)
        return save_images(pages, output_path, output_format, dpi_for_scale(self.print_scale))

    def print_pages(self, products: Sequence[Product], settings: PopSettings,
                    template: Optional[Template] = None,
                    transforms: Optional[Dict[str, ItemTransform]] = None,
                    printer: Optional[str] = None) -> str:
        """Export to a PDF and send it to the print queue."""
        pdf_path = self.generate(products, settings, "print-job.pdf", OutputFormat.PDF,
                                 template, transforms)
        job = send_to_printer(pdf_path, printer or None)
        logger.info(f"Sent {len(products)} page(s) to printer: {job}")
        return job
