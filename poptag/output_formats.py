"""Output sinks for rendered pages: PDF, raster files and the system printer."""

import io
import logging
import subprocess
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from PIL import Image
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)


class OutputFormat(Enum):
    """Supported output formats."""
    PDF = "pdf"
    PNG = "png"
    JPG = "jpg"
    JPEG = "jpeg"
    TIFF = "tiff"
    TIF = "tif"
    WEBP = "webp"


# Map file extensions to formats
EXTENSION_TO_FORMAT = {
    '.pdf': OutputFormat.PDF,
    '.png': OutputFormat.PNG,
    '.jpg': OutputFormat.JPG,
    '.jpeg': OutputFormat.JPEG,
    '.tiff': OutputFormat.TIFF,
    '.tif': OutputFormat.TIF,
    '.webp': OutputFormat.WEBP,
}

# Formats that hold a whole export in one file
MULTIPAGE_FORMATS = {OutputFormat.PDF, OutputFormat.TIFF, OutputFormat.TIF}

POINTS_PER_INCH = 72


def detect_format_from_filename(filename: str) -> OutputFormat:
    """Detect output format from filename extension.

    Raises:
        ValueError: If format cannot be detected or is unsupported
    """
    ext = Path(filename).suffix.lower()
    if ext not in EXTENSION_TO_FORMAT:
        raise ValueError(
            f"Unsupported or missing file extension: {ext}. "
            f"Supported formats: {', '.join(EXTENSION_TO_FORMAT.keys())}"
        )
    return EXTENSION_TO_FORMAT[ext]


def supports_multiple_pages(format: OutputFormat) -> bool:
    return format in MULTIPAGE_FORMATS


def get_pil_format_string(format: OutputFormat) -> str:
    """Get PIL format string for the output format."""
    format_map = {
        OutputFormat.PNG: "PNG",
        OutputFormat.JPG: "JPEG",
        OutputFormat.JPEG: "JPEG",
        OutputFormat.TIFF: "TIFF",
        OutputFormat.TIF: "TIFF",
        OutputFormat.WEBP: "WEBP",
    }
    return format_map.get(format, format.value.upper())


def dpi_for_scale(scale: float) -> int:
    """Effective resolution of a page rendered at `scale` pixels per point."""
    return int(round(POINTS_PER_INCH * scale))


def save_image_with_metadata(image: Image.Image, output_path: Path,
                             format: OutputFormat, dpi: int) -> None:
    """Save one page image with format-appropriate parameters."""
    save_params = {'dpi': (dpi, dpi)}

    if format in (OutputFormat.JPG, OutputFormat.JPEG):
        save_params['quality'] = 95
        save_params['optimize'] = True
    elif format == OutputFormat.PNG:
        save_params['compress_level'] = 6
    elif format in (OutputFormat.TIFF, OutputFormat.TIF):
        save_params['compression'] = 'tiff_lzw'
    elif format == OutputFormat.WEBP:
        save_params['quality'] = 95
        save_params['method'] = 6

    image.save(str(output_path), get_pil_format_string(format), **save_params)


def save_pdf(images: List[Image.Image], output_path: Path,
             page_size: Tuple[float, float]) -> Path:
    """Write one PDF page per image, each drawn edge to edge.

    Args:
        images: Rendered pages, in order
        output_path: Destination file
        page_size: Page size in points, (595, 842) for A4 portrait
    """
    width, height = page_size
    c = canvas.Canvas(str(output_path), pagesize=(width, height))

    for img in images:
        img_buffer = io.BytesIO()
        img.save(img_buffer, format='PNG', compress_level=0, optimize=False)
        img_buffer.seek(0)
        # ReportLab origin is bottom-left; a full-page image needs no flip
        c.drawImage(ImageReader(img_buffer), 0, 0, width=width, height=height)
        c.showPage()

    c.save()
    logger.info(f"Generated PDF with {len(images)} page(s): {output_path}")
    return output_path


def save_images(images: List[Image.Image], output_path: Path,
                format: OutputFormat, dpi: int) -> Path:
    """Save pages as raster files.

    A single page, or a multi-page TIFF, goes to output_path; otherwise pages
    are numbered name_001.png, name_002.png and the directory is returned.
    """
    if len(images) == 1:
        save_image_with_metadata(images[0], output_path, format, dpi)
    elif supports_multiple_pages(format):
        images[0].save(
            str(output_path),
            save_all=True,
            append_images=images[1:],
            dpi=(dpi, dpi),
            compression='tiff_lzw',
        )
    else:
        base_path = output_path.parent / output_path.stem
        suffix = output_path.suffix
        for i, img in enumerate(images):
            numbered_path = Path(f"{base_path}_{i+1:03d}{suffix}")
            save_image_with_metadata(img, numbered_path, format, dpi)
        logger.info(f"Generated {len(images)} image files")
        return output_path.parent

    logger.info(f"Generated {format.value.upper()}: {output_path}")
    return output_path


def send_to_printer(pdf_path: Path, printer: Optional[str] = None,
                    copies: int = 1) -> str:
    """Submit a PDF to the system print queue with `lp`.

    Returns:
        The job line printed by lp

    Raises:
        RuntimeError: If lp is missing or rejects the job
    """
    command = ['lp', '-n', str(copies)]
    if printer:
        command += ['-d', printer]
    command.append(str(pdf_path))

    logger.debug(f"Printing with: {' '.join(command)}")
    try:
        result = subprocess.run(command, capture_output=True, text=True, timeout=30)
    except (OSError, subprocess.TimeoutExpired) as e:
        raise RuntimeError(f"Could not run lp: {e}")
    if result.returncode != 0:
        raise RuntimeError(f"lp failed: {result.stderr.strip() or result.returncode}")
    return result.stdout.strip()
