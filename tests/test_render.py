"""Rendering tests: real fonts and Pillow surfaces at preview scale."""

import base64
import io
from unittest.mock import Mock

import pytest
import requests
from PIL import Image, ImageChops

from poptag.exceptions import AssetLoadFailure
from poptag.image_processor import ImageProcessor
from poptag.models import ItemTransform, PopSettings, Product, Template
from poptag.primitives import EmbeddedImage, Group, Line, LinearGradient, Rect, Text
from poptag.render import PageRenderer, PageSurface
from poptag.text_metrics import FontSpec
from poptag.visual_validator import VisualValidator

PAGE_WIDTH = 595
PAGE_HEIGHT = 842


@pytest.fixture
def renderer():
    return PageRenderer(PAGE_WIDTH, PAGE_HEIGHT)


@pytest.fixture
def product():
    return Product(sku="K60", name="Keramik 60x60", brand="Roman", normal_price=50000,
                   promo_price=35000, discount=30)


@pytest.fixture
def red_template(tmp_path):
    path = tmp_path / "background.png"
    Image.new('RGB', (200, 280), (255, 0, 0)).save(path)
    return Template(id="t1", name="Red", image_url=str(path), type="custom")


class TestPageSurface:
    """Surface sizing and clearing."""

    def test_preview_size(self):
        assert PageSurface(PAGE_WIDTH, PAGE_HEIGHT).image.size == (595, 842)

    def test_print_scale_size(self):
        surface = PageSurface(PAGE_WIDTH, PAGE_HEIGHT, scale=3)
        assert surface.pixel_size == (1785, 2526)
        assert surface.image.size == (1785, 2526)

    def test_clear_fills_page(self):
        surface = PageSurface(100, 150)
        surface.image.paste((0, 0, 0), (0, 0, 50, 50))
        surface.clear("#ff0000")
        assert surface.image.getpixel((10, 10)) == (255, 0, 0)


class TestRenderPage:
    """Composing one product page."""

    def test_draws_product(self, renderer, product):
        surface = renderer.new_surface()
        group = renderer.render_page(surface, product, PopSettings())

        assert group is not None
        assert group.role == "pop-item"
        assert not VisualValidator.is_blank(surface.image)

    def test_no_product_is_blank(self, renderer):
        surface = renderer.new_surface()
        assert renderer.render_page(surface, None, PopSettings()) is None
        assert VisualValidator.is_blank(surface.image)

    def test_page_is_cleared_between_products(self, renderer, product):
        surface = renderer.new_surface()
        renderer.render_page(surface, product, PopSettings())
        renderer.render_page(surface, None, PopSettings())
        assert VisualValidator.is_blank(surface.image)

    def test_content_stays_inside_page(self, renderer, product):
        surface = renderer.new_surface()
        renderer.render_page(surface, product, PopSettings())
        assert not VisualValidator.detect_clipping(surface.image)['any']

    def test_template_image_replaces_card(self, renderer, product, red_template):
        surface = renderer.new_surface()
        group = renderer.render_page(surface, product, PopSettings(), red_template)

        assert group.find("background") == []
        assert surface.image.getpixel((5, 5)) == (255, 0, 0)

    def test_broken_template_falls_back(self, renderer, product, tmp_path, caplog):
        template = Template(image_url=str(tmp_path / "missing.png"), type="custom")
        surface = renderer.new_surface()
        group = renderer.render_page(surface, product, PopSettings(), template)

        assert len(group.find("background")) == 1
        assert surface.image.getpixel((5, 5)) == (255, 255, 255)
        assert "Template background unavailable" in caplog.text

    def test_unreadable_template_falls_back(self, renderer, product, tmp_path, caplog):
        template = Template(image_url=str(tmp_path), type="custom")
        surface = renderer.new_surface()
        group = renderer.render_page(surface, product, PopSettings(), template)

        assert len(group.find("background")) == 1
        assert "Template background unavailable" in caplog.text

    def test_default_template_colour(self, renderer, product):
        template = Template(background_color="#fef3c7")
        surface = renderer.new_surface()
        renderer.render_page(surface, None, PopSettings(), template)
        assert surface.image.getpixel((5, 5)) == (254, 243, 199)

    def test_transform_moves_content(self, renderer, product):
        settings = PopSettings()
        plain = renderer.new_surface()
        renderer.render_page(plain, product, settings)
        moved = renderer.new_surface()
        renderer.render_page(moved, product, settings,
                             transforms={"K60": ItemTransform(left=40, top=60)})

        before = VisualValidator.get_content_bounds(plain.image, 200)
        after = VisualValidator.get_content_bounds(moved.image, 200)
        assert after[0] - before[0] == pytest.approx(40, abs=2)
        assert after[1] - before[1] == pytest.approx(60, abs=2)

    def test_transform_for_other_sku_is_ignored(self, renderer, product):
        settings = PopSettings()
        plain = renderer.new_surface()
        renderer.render_page(plain, product, settings)
        other = renderer.new_surface()
        group = renderer.render_page(other, product, settings,
                                     transforms={"OTHER": ItemTransform(left=40, top=60)})

        assert group.transform is None
        assert ImageChops.difference(plain.image, other.image).getbbox() is None

    def test_same_layout_at_two_scales(self, renderer, product):
        small = renderer.new_surface(1)
        large = renderer.new_surface(2)
        renderer.render_page(small, product, PopSettings())
        renderer.render_page(large, product, PopSettings())

        small_bounds = VisualValidator.get_content_bounds(small.image, 200)
        large_bounds = VisualValidator.get_content_bounds(large.image, 200)
        for a, b in zip(small_bounds, large_bounds):
            assert b == pytest.approx(a * 2, abs=6)


class TestDrawGroup:
    """Individual primitives on a small surface."""

    def draw(self, renderer, *children, transform=None):
        surface = PageSurface(100, 100)
        renderer.draw_group(surface, Group(children=list(children), width=100, height=100,
                                           transform=transform))
        return surface.image

    def test_rect_fill(self, renderer):
        image = self.draw(renderer, Rect(10, 10, 20, 20, fill="#000000"))
        assert image.getpixel((20, 20)) == (0, 0, 0)
        assert image.getpixel((50, 50)) == (255, 255, 255)

    def test_gradient_runs_left_to_right(self, renderer):
        image = self.draw(renderer, Rect(0, 0, 100, 20, gradient=LinearGradient("#000000", "#ffffff")))
        left = image.getpixel((2, 10))[0]
        right = image.getpixel((97, 10))[0]
        assert left < 40
        assert right > 215

    def test_line(self, renderer):
        image = self.draw(renderer, Line(0, 50, 100, 50, stroke="#000000", stroke_width=3))
        assert image.getpixel((50, 50)) == (0, 0, 0)

    def test_text(self, renderer):
        image = self.draw(renderer, Text("Rp", 10, 10, FontSpec(30, "bold")))
        assert VisualValidator.get_content_bounds(image) != (0, 0, 0, 0)

    def test_embedded_image_is_stretched(self, renderer):
        patch = Image.new('RGB', (4, 4), (0, 0, 255))
        image = self.draw(renderer, EmbeddedImage(patch, 0, 0, 50, 100))
        assert image.getpixel((45, 95)) == (0, 0, 255)
        assert image.getpixel((55, 50)) == (255, 255, 255)

    def test_scale_transform(self, renderer):
        image = self.draw(renderer, Rect(0, 0, 10, 10, fill="#000000"),
                          transform=ItemTransform(left=0, top=0, scale_x=2, scale_y=2))
        assert image.getpixel((15, 15)) == (0, 0, 0)

    def test_non_uniform_scale_sizes_follow_smaller_axis(self, renderer):
        group = Group(width=100, height=100,
                      transform=ItemTransform(left=0, top=0, scale_x=0.5, scale_y=2))
        to_pixels, size_factor = renderer._mapping(group, 2)
        assert to_pixels(10, 10) == (10, 40)
        assert size_factor == 1

    def test_stretched_text_keeps_its_width(self, renderer):
        text = Text("Rp", 10, 10, FontSpec(30, "bold"))
        plain = VisualValidator.get_content_bounds(self.draw(renderer, text))
        stretched = VisualValidator.get_content_bounds(self.draw(
            renderer, text, transform=ItemTransform(left=10, top=10, scale_x=1, scale_y=2)))
        assert stretched[2] - stretched[0] == pytest.approx(plain[2] - plain[0], abs=2)

    def test_rotation_moves_pixels(self, renderer):
        plain = self.draw(renderer, Rect(40, 10, 20, 5, fill="#000000"))
        rotated = self.draw(renderer, Rect(40, 10, 20, 5, fill="#000000"),
                            transform=ItemTransform(left=50, top=50, angle=90))
        assert ImageChops.difference(plain, rotated).getbbox() is not None

    def test_unknown_primitive_rejected(self, renderer):
        with pytest.raises(TypeError):
            self.draw(renderer, object())


class TestImageProcessor:
    """Template image loading."""

    def test_loads_and_flattens_transparency(self, tmp_path):
        path = tmp_path / "logo.png"
        Image.new('RGBA', (10, 10), (0, 0, 0, 0)).save(path)
        img = ImageProcessor().load_image(str(path))
        assert img.mode == 'RGB'
        assert img.getpixel((5, 5)) == (255, 255, 255)

    def test_caches_loaded_images(self, tmp_path):
        path = tmp_path / "bg.png"
        Image.new('RGB', (10, 10), (0, 255, 0)).save(path)
        processor = ImageProcessor()
        assert processor.load_image(str(path)) is processor.load_image(str(path))

    def test_data_url(self):
        buffer = io.BytesIO()
        Image.new('RGB', (3, 3), (0, 0, 255)).save(buffer, format='PNG')
        url = "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode('ascii')
        assert ImageProcessor().load_image(url).getpixel((1, 1)) == (0, 0, 255)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(AssetLoadFailure):
            ImageProcessor().load_image(str(tmp_path / "nope.png"))

    def test_directory_raises(self, tmp_path):
        with pytest.raises(AssetLoadFailure):
            ImageProcessor().load_image(str(tmp_path))

    def test_undecodable_file_raises(self, tmp_path):
        path = tmp_path / "bad.png"
        path.write_bytes(b"not an image")
        with pytest.raises(AssetLoadFailure):
            ImageProcessor().load_image(str(path))

    def test_server_relative_path_uses_base_url(self):
        buffer = io.BytesIO()
        Image.new('RGB', (2, 2), (9, 9, 9)).save(buffer, format='PNG')
        response = Mock(content=buffer.getvalue())
        response.raise_for_status = Mock()
        session = Mock()
        session.get = Mock(return_value=response)

        processor = ImageProcessor(base_url="https://pop.example.com/", session=session)
        processor.load_image("/uploads/bg.png")
        assert session.get.call_args[0][0] == "https://pop.example.com/uploads/bg.png"

    def test_http_error_raises(self):
        session = Mock()
        session.get = Mock(side_effect=requests.exceptions.ConnectionError("down"))
        with pytest.raises(AssetLoadFailure):
            ImageProcessor(session=session).load_image("https://pop.example.com/bg.png")
