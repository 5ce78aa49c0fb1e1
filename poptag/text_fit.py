"""
Font size fitting for variable-length label text.

Both fitters step the size down one unit at a time. Neither truncates text:
when the floor is reached the caller draws at the floor and the text may
overflow its box.
"""

from typing import List

from .text_metrics import FontSpec, TextMeasurer


def line_count_floor(starting_size: float) -> float:
    """Smallest size fit_to_line_count will go to."""
    return max(12.0, starting_size * 0.7)


def fit_to_line_count(measurer: TextMeasurer, text: str, max_width: float,
                      max_lines: int, starting_size: float, weight: str = "bold") -> float:
    """Shrink until text wrapped at max_width takes at most max_lines lines.

    Returns:
        The fitted size, never below max(12, starting_size * 0.7)
    """
    def line_count(size: float) -> int:
        return len(measurer.wrap(text, max_width, FontSpec(size, weight)))

    size = starting_size
    if line_count(size) <= max_lines:
        return size

    floor = line_count_floor(starting_size)
    while size > floor:
        size = max(floor, size - 1)
        if line_count(size) <= max_lines:
            return size
    return size


def fit_to_width(measurer: TextMeasurer, text: str, max_width: float,
                 starting_size: float, min_size: float, weight: str = "bold") -> float:
    """Shrink until the single-line width of text fits max_width or min_size is hit."""
    size = starting_size
    while size > min_size and measurer.measure(text, FontSpec(size, weight)) > max_width:
        size = max(min_size, size - 1)
    return size


def fitted_lines(measurer: TextMeasurer, text: str, max_width: float,
                 font: FontSpec) -> List[str]:
    """Wrapped lines for an already fitted font."""
    return measurer.wrap(text, max_width, font) or ([text] if text else [])
