import pytest
from poptag.dimensions import (
    A4_POINTS, format_dimension_for_display, page_size_points,
    parse_dimension, validate_page_dimensions
)


class TestDimensionParsing:
    """Test dimension parsing with various units."""

    def test_parse_points(self):
        assert parse_dimension("595pt") == 595.0
        assert parse_dimension("842 pt") == 842.0

    def test_parse_no_unit_defaults_to_points(self):
        assert parse_dimension("595") == 595.0
        assert parse_dimension("12.5") == 12.5

    def test_parse_inches(self):
        assert parse_dimension("1in") == pytest.approx(72.0)
        assert parse_dimension("8.5in") == pytest.approx(612.0)

    def test_parse_millimeters(self):
        assert parse_dimension("25.4mm") == pytest.approx(72.0, rel=1e-6)
        assert parse_dimension("210mm") == pytest.approx(595.28, rel=1e-3)

    def test_parse_centimeters(self):
        assert parse_dimension("2.54cm") == pytest.approx(72.0, rel=1e-6)

    def test_parse_pixels(self):
        assert parse_dimension("96px") == pytest.approx(72.0)

    def test_parse_with_whitespace(self):
        assert parse_dimension("  1in  ") == pytest.approx(72.0)

    @pytest.mark.parametrize("value", ["", "twelve", "10kg", "5 seconds"])
    def test_parse_invalid(self, value):
        with pytest.raises(ValueError):
            parse_dimension(value)

    def test_parse_non_string(self):
        with pytest.raises(ValueError):
            parse_dimension(None)


class TestPageSize:
    """Physical page sizes rounded to whole points."""

    def test_a4_rounds_to_canvas(self):
        assert page_size_points("210mm", "297mm") == A4_POINTS

    def test_letter(self):
        assert page_size_points("8.5in", "11in") == (612, 792)

    def test_landscape_rejected(self):
        with pytest.raises(ValueError, match="portrait"):
            page_size_points("297mm", "210mm")


class TestDimensionValidation:
    """Usable page bounds."""

    def test_valid_dimensions(self):
        validate_page_dimensions(595, 842)
        validate_page_dimensions(144, 144)
        validate_page_dimensions(2384, 2384)

    def test_non_positive(self):
        with pytest.raises(ValueError, match="positive"):
            validate_page_dimensions(0, 842)
        with pytest.raises(ValueError, match="positive"):
            validate_page_dimensions(595, -1)

    def test_too_small(self):
        with pytest.raises(ValueError, match="at least"):
            validate_page_dimensions(100, 842)

    def test_too_large(self):
        with pytest.raises(ValueError, match="exceed"):
            validate_page_dimensions(595, 3000)


class TestDimensionDisplay:

    def test_format_for_display(self):
        assert format_dimension_for_display(595) == "595pt (209.9mm)"
        assert format_dimension_for_display(72) == "72pt (25.4mm)"
