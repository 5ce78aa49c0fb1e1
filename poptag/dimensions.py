from typing import Tuple
from pint import UnitRegistry


# Initialize unit registry
ureg = UnitRegistry()

POINTS_PER_INCH = 72.0

# A4 portrait at 72 DPI, the canvas every layout constant is tuned against
A4_POINTS = (595, 842)


def parse_dimension(value: str) -> float:
    """Parse a physical dimension string and convert it to PDF points.

    Args:
        value: Dimension string (e.g., "210mm", "8.27in", "21cm", "595pt", "595")

    Returns:
        The dimension in points (1/72 inch) as a float

    Raises:
        ValueError: If the dimension cannot be parsed or converted
    """
    try:
        # Validate input first
        if not value or not isinstance(value, str):
            raise ValueError("Dimension must be a non-empty string")

        value = value.strip()

        # A bare number is already in points
        try:
            return float(value)
        except ValueError:
            pass

        # pint reads "pt" as pint (the volume), so handle points first
        if value.endswith('pt'):
            return float(value[:-2].strip())
        elif value.endswith('px'):
            # CSS pixels: 96 per inch
            return float(value[:-2].strip()) / 96.0 * POINTS_PER_INCH

        quantity = ureg(value)
        return quantity.to(ureg.inch).magnitude * POINTS_PER_INCH
    except Exception as e:
        raise ValueError(f"Invalid dimension '{value}': {str(e)}")


def page_size_points(width: str, height: str) -> Tuple[int, int]:
    """Convert a physical page size to whole points.

    210mm x 297mm rounds to the 595 x 842 canvas.
    """
    width_pt = int(round(parse_dimension(width)))
    height_pt = int(round(parse_dimension(height)))
    validate_page_dimensions(width_pt, height_pt)
    return width_pt, height_pt


def validate_page_dimensions(width: float, height: float) -> None:
    """Validate that a page size is usable for a portrait price tag.

    Raises:
        ValueError: If dimensions are invalid
    """
    MIN_SIZE = 144  # 2 inches
    MAX_SIZE = 2384  # A1 long edge

    if width <= 0 or height <= 0:
        raise ValueError("Page dimensions must be positive")

    if width < MIN_SIZE or height < MIN_SIZE:
        raise ValueError(f"Page dimensions must be at least {MIN_SIZE} points")

    if width > MAX_SIZE or height > MAX_SIZE:
        raise ValueError(f"Page dimensions must not exceed {MAX_SIZE} points")

    if width > height:
        raise ValueError("Price tags are laid out in portrait; width must not exceed height")


def format_dimension_for_display(points: float) -> str:
    """Format a dimension in points for display, e.g. "595pt (210.0mm)"."""
    millimetres = points / POINTS_PER_INCH * 25.4
    return f"{points:.0f}pt ({millimetres:.1f}mm)"
