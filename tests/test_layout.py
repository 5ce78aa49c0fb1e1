"""Layout engine tests with a deterministic measurement double."""

import pytest
from unittest.mock import Mock

from poptag.layout import DENSITY_PROFILES, LabelLayoutEngine
from poptag.models import DiscountType, LayoutDensity, PopSettings, PriceOption, Product
from poptag.primitives import Group, Line, Rect, Text
from poptag.text_metrics import TextMeasurer

PAGE_WIDTH = 595
PAGE_HEIGHT = 842


def char_width(text, font):
    return len(text) * font.size * 0.5


def bounds(primitive):
    """(left, top, right, bottom) of a rect or line."""
    if isinstance(primitive, Line):
        return (min(primitive.x1, primitive.x2), min(primitive.y1, primitive.y2),
                max(primitive.x1, primitive.x2), max(primitive.y1, primitive.y2))
    return (primitive.x, primitive.y, primitive.x + primitive.width, primitive.y + primitive.height)


@pytest.fixture
def measurer():
    m = TextMeasurer()
    m.measure = Mock(side_effect=char_width)
    return m


@pytest.fixture
def engine(measurer):
    return LabelLayoutEngine(measurer)


@pytest.fixture
def settings():
    return PopSettings(show_strike_price=True, layout=LayoutDensity.ONE)


def layout(engine, product, settings, has_background_image=False):
    return engine.layout(product, PAGE_WIDTH, PAGE_HEIGHT, settings, has_background_image)


def badge_texts(group, role):
    return [primitive.content for primitive in group.find(role)]


class TestKeramikScenario:
    """A single-price product with one percent discount."""

    @pytest.fixture
    def group(self, engine, settings):
        product = Product(sku="K60", name="Keramik 60x60", normal_price=50000,
                          promo_price=35000, discount=30)
        return layout(engine, product, settings)

    def test_background_rect(self, group):
        backgrounds = group.find("background")
        assert len(backgrounds) == 1
        assert isinstance(backgrounds[0], Rect)
        assert (backgrounds[0].width, backgrounds[0].height) == (PAGE_WIDTH, PAGE_HEIGHT)

    def test_name_and_divider(self, group):
        assert badge_texts(group, "name") == ["Keramik 60x60"]
        assert len(group.find("divider")) == 1

    def test_strikethrough_normal_price(self, group):
        strikes = group.find("strike-price")
        assert len(strikes) == 1
        assert strikes[0].texts() == ["Rp 50.000"]
        assert len(strikes[0].find("strike-line")) == 1

    def test_promo_price_block(self, group):
        blocks = group.find("price-block")
        assert len(blocks) == 1
        assert blocks[0].texts() == ["Rp.", "35", ".000"]

    def test_single_discount_card(self, group):
        assert len(group.find("badge-card")) == 1
        assert badge_texts(group, "badge-label") == ["DISKON"]
        assert badge_texts(group, "badge-value") == ["30%"]

    def test_stack_runs_top_to_bottom(self, group):
        name = group.find("name")[0]
        divider = group.find("divider")[0]
        block = group.find("price-block")[0]
        badge = group.find("discount-badge")[0]
        assert name.y < divider.y1 < block.y < badge.y

    def test_price_block_centered(self, group):
        block = group.find("price-block")[0]
        assert block.x + block.width / 2 == pytest.approx(PAGE_WIDTH / 2)


class TestCutScenario:
    """Flat-cut products get exactly one amount card."""

    def test_one_cut_card(self, engine, settings):
        product = Product(sku="CUT1", name="Cat Tembok", normal_price=50000, promo_price=35000,
                          discount=30, extra_discount=5, discount_type=DiscountType.CUT,
                          discount_amount=15000)
        group = layout(engine, product, settings)

        assert len(group.find("badge-card")) == 1
        assert badge_texts(group, "badge-label")[0] in ("POTONGAN HARGA", "POTONGAN")
        assert badge_texts(group, "badge-value") == ["Rp 15.000"]
        assert not any("%" in text for text in group.find("discount-badge")[0].texts())

    def test_cut_card_has_gradient_header_and_shadow(self, engine, settings):
        product = Product(sku="CUT2", normal_price=50000, promo_price=40000,
                          discount_type=DiscountType.CUT, discount_amount=10000)
        group = layout(engine, product, settings)

        header = group.find("badge-header")[0]
        frame = group.find("badge-frame")[0]
        assert header.gradient is not None
        assert frame.shadow is not None
        assert header.height < frame.height

    def test_legacy_amount_in_base_discount(self, engine, settings):
        product = Product(sku="LEG", normal_price=50000, promo_price=45000, discount=5000)
        group = layout(engine, product, settings)
        assert badge_texts(group, "badge-value") == ["Rp 5.000"]


class TestPriceRows:
    """Multiple units of measure stack as rows."""

    @pytest.fixture
    def product(self):
        return Product(sku="ROWS", name="Paku Beton", price_options=[
            PriceOption(10000, 8000, "Pcs"),
            PriceOption(110000, 90000, "Dus"),
        ])

    def test_two_blocks_one_separator(self, engine, settings, product):
        group = layout(engine, product, settings)
        blocks = group.find("price-block")
        assert len(blocks) == 2
        assert len(group.find("row-separator")) == 1
        assert blocks[0].y < group.find("row-separator")[0].y1 < blocks[1].y

    def test_rows_carry_their_uom(self, engine, settings, product):
        group = layout(engine, product, settings)
        assert badge_texts(group, "price-uom") == ["/Pcs", "/Dus"]

    def test_rows_strike_only_discounted_rows(self, engine, settings):
        product = Product(sku="ROWS2", price_options=[
            PriceOption(10000, 8000, "Pcs"),
            PriceOption(110000, 110000, "Dus"),
        ])
        group = layout(engine, product, settings)
        assert len(group.find("strike-price")) == 1

    def test_zero_promo_row_shows_normal_price(self, engine, settings):
        product = Product(sku="ROWS3", price_options=[
            PriceOption(10000, 0, "Pcs"),
            PriceOption(110000, 90000, "Dus"),
        ])
        group = layout(engine, product, settings)
        assert group.find("price-block")[0].texts()[1:] == ["10", ".000", "/Pcs"]

    def test_rows_are_smaller_than_single_price(self, engine, settings, product):
        rows = layout(engine, product, settings)
        single = layout(engine, Product(sku="ONE", normal_price=10000, promo_price=8000), settings)
        row_main = rows.find("price-main")[0].font.size
        single_main = single.find("price-main")[0].font.size
        assert row_main < single_main

    def test_three_rows_shrink_further(self, engine, settings, product):
        three = Product(sku="ROWS4", price_options=product.price_options + [
            PriceOption(1000000, 900000, "Palet")])
        two_size = layout(engine, product, settings).find("price-main")[0].font.size
        three_size = layout(engine, three, settings).find("price-main")[0].font.size
        assert three_size < two_size
        assert len(layout(engine, three, settings).find("row-separator")) == 2


class TestGranite:
    """Two price columns for per-meter tiles."""

    @pytest.fixture
    def product(self):
        return Product(sku="GRN", name="Granit 60x60 Polished", desc_segment="GRANIT",
                       normal_price=300000, promo_price=250000, discount=10, uom="BOX",
                       base_price_per_meter=200000, final_price_per_meter=170000)

    def test_two_columns(self, engine, settings, product):
        group = layout(engine, product, settings)
        left, right = group.find("price-block")
        assert left.x + left.width / 2 < PAGE_WIDTH / 2 < right.x + right.width / 2
        assert badge_texts(group, "price-uom") == ["/BOX", "/Mtr"]

    def test_both_columns_struck_when_discounted(self, engine, settings, product):
        group = layout(engine, product, settings)
        strikes = group.find("strike-price")
        assert [strike.texts()[0] for strike in strikes] == ["Rp 300.000", "Rp 200.000"]

    def test_columns_fit_their_width(self, engine, settings, product):
        group = layout(engine, product, settings)
        profile = DENSITY_PROFILES[LayoutDensity.ONE]
        content_width = PAGE_WIDTH * profile.content_ratio
        column_gap = max(20 * profile.group_scale, content_width * 0.1)
        column_width = (content_width - column_gap) / 2
        for block in group.find("price-block"):
            assert block.width <= column_width + 1

    def test_missing_meter_price_uses_single_price(self, engine, settings, product):
        product.final_price_per_meter = None
        group = layout(engine, product, settings)
        assert len(group.find("price-block")) == 1


class TestDiscountOnly:
    """A discount with no usable price draws only the enlarged badge."""

    def test_no_price_blocks(self, engine, settings):
        group = layout(engine, Product(sku="DO", name="Semua Cat", discount=20), settings)
        assert group.find("price-block") == []
        assert group.find("strike-price") == []
        assert badge_texts(group, "badge-value") == ["20%"]

    def test_badge_is_enlarged(self, engine, settings):
        discount_only = layout(engine, Product(sku="DO", discount=20), settings)
        priced = layout(engine, Product(sku="PR", normal_price=50000, promo_price=40000,
                                        discount=20), settings)
        big = discount_only.find("badge-frame")[0]
        small = priced.find("badge-frame")[0]
        assert big.height == pytest.approx(small.height * 2)
        assert discount_only.find("badge-value")[0].font.size > priced.find("badge-value")[0].font.size


class TestBadges:
    """Percent cards and the no-discount case."""

    def test_no_discount_draws_no_badge(self, engine, settings):
        group = layout(engine, Product(sku="ND", name="Lem", normal_price=20000,
                                       promo_price=20000), settings)
        for role in ("discount-badge", "badge-card", "badge-frame", "badge-header",
                     "badge-label", "badge-value"):
            assert group.find(role) == []
        assert group.find("strike-price") == []

    def test_member_card_beside_discount_card(self, engine, settings):
        product = Product(sku="MB", normal_price=100000, promo_price=85000,
                          discount=10, extra_discount=5, member_discount=2)
        group = layout(engine, product, settings)
        assert badge_texts(group, "badge-label") == ["DISKON", "MEMBER"]
        assert badge_texts(group, "badge-value") == ["10% + 5%", "2%"]
        assert len(group.find("badge-divider")) == 1

    def test_member_header_uses_blue_gradient(self, engine, settings):
        product = Product(sku="MB2", normal_price=100000, promo_price=97000, member_discount=3)
        group = layout(engine, product, settings)
        header = group.find("badge-header")[0]
        assert header.gradient.start_color == "#1d4ed8"

    def test_up_to_label(self, engine, settings):
        product = Product(sku="UP", normal_price=100000, promo_price=50000, discount=50, up_to=True)
        assert badge_texts(layout(engine, product, settings), "badge-label") == ["DISKON UP TO"]

    def test_long_value_shrinks_inside_card(self, engine, settings, measurer):
        product = Product(sku="LONG", normal_price=100000, promo_price=50000,
                          discount=12.5, extra_discount=7.5, disc3=2.5, member_discount=15)
        group = layout(engine, product, settings)
        for card in group.find("badge-card"):
            value = card.find("badge-value")[0]
            assert value.font.size <= DENSITY_PROFILES[LayoutDensity.ONE].badge_value_size * \
                DENSITY_PROFILES[LayoutDensity.ONE].group_scale


class TestHeaderText:
    """Brand, name and description fitting."""

    def test_brand_segment_preferred(self, engine, settings):
        product = Product(sku="B1", brand="Avian", brand_segment="AVIAN BRANDS",
                          normal_price=10000, promo_price=10000)
        assert badge_texts(layout(engine, product, settings), "brand") == ["AVIAN BRANDS"]

    def test_no_brand_no_brand_text(self, engine, settings):
        group = layout(engine, Product(sku="B2", normal_price=10000, promo_price=10000), settings)
        assert group.find("brand") == []

    def test_long_name_keeps_one_line_with_discount(self, engine, settings):
        product = Product(sku="N1", name="Cat Tembok Interior Premium Warna Putih Susu 25 Kg",
                          normal_price=100000, promo_price=90000, discount=10)
        name = layout(engine, product, settings).find("name")[0]
        assert len(name.lines) >= 1
        assert name.font.size >= 12

    def test_name_larger_without_discount(self, engine, settings):
        discounted = layout(engine, Product(sku="N2", name="Lem", normal_price=100,
                                            promo_price=90, discount=10), settings)
        plain = layout(engine, Product(sku="N3", name="Lem", normal_price=100,
                                       promo_price=100), settings)
        assert plain.find("name")[0].font.size == pytest.approx(
            discounted.find("name")[0].font.size * 1.15)

    def test_description_segment_preferred(self, engine, settings):
        product = Product(sku="D1", description="5 KG", desc_segment="CAT TEMBOK",
                          normal_price=10000, promo_price=10000)
        assert badge_texts(layout(engine, product, settings), "description") == ["CAT TEMBOK"]

    def test_empty_product_still_lays_out(self, engine, settings):
        group = layout(engine, Product(sku="EMPTY"), settings)
        assert len(group.find("background")) == 1
        assert len(group.find("divider")) == 1
        assert group.find("name") == []


class TestSettings:
    """Strike price, background and density switches."""

    def test_strike_price_switch(self, engine):
        product = Product(sku="S1", normal_price=50000, promo_price=35000, discount=30)
        off = PopSettings(show_strike_price=False)
        group = engine.layout(product, PAGE_WIDTH, PAGE_HEIGHT, off)
        assert group.find("strike-price") == []
        assert len(group.find("price-block")) == 1

    def test_template_background_drops_card(self, engine, settings):
        product = Product(sku="S2", normal_price=50000, promo_price=35000)
        group = layout(engine, product, settings, has_background_image=True)
        assert group.find("background") == []

    @pytest.mark.parametrize("density", list(LayoutDensity))
    def test_every_density_lays_out(self, engine, density):
        product = Product(sku="S3", name="Keramik", normal_price=50000, promo_price=35000, discount=30)
        group = engine.layout(product, PAGE_WIDTH, PAGE_HEIGHT, PopSettings(layout=density))
        assert len(group.find("price-block")) == 1

    def test_denser_layouts_use_smaller_prices(self, engine):
        product = Product(sku="S4", normal_price=50000, promo_price=35000)
        sizes = [engine.layout(product, PAGE_WIDTH, PAGE_HEIGHT, PopSettings(layout=density))
                 .find("price-main")[0].font.size
                 for density in (LayoutDensity.ONE, LayoutDensity.TWO, LayoutDensity.FOUR)]
        assert sizes == sorted(sizes, reverse=True)

    def test_barcode_placeholder(self, engine, settings):
        settings.show_barcode = True
        product = Product(sku="S5", normal_price=50000, promo_price=35000, barcode="1234567890123")
        first = layout(engine, product, settings)
        second = layout(engine, product, settings)

        placeholder = first.find("barcode-placeholder")
        assert len(placeholder) == 1
        bars = placeholder[0].find("barcode-bar")
        assert 0 < len(bars) <= 35
        assert [bar.x for bar in bars] == [bar.x for bar in second.find("barcode-bar")]

    def test_group_origin(self, engine, settings):
        product = Product(sku="S6", normal_price=50000, promo_price=35000)
        group = engine.layout(product, PAGE_WIDTH, PAGE_HEIGHT, settings, x=10, y=20)
        assert isinstance(group, Group)
        assert (group.x, group.y) == (10, 20)
        assert group.find("background")[0].x == 10


class TestNoClipping:
    """Shapes stay on the page for every pricing branch."""

    @pytest.mark.parametrize("product", [
        Product(sku="C1", name="Keramik", brand="Roman", normal_price=50000, promo_price=35000,
                discount=30, extra_discount=5, member_discount=2),
        Product(sku="C2", discount=20),
        Product(sku="C3", normal_price=50000, promo_price=40000,
                discount_type=DiscountType.CUT, discount_amount=10000),
        Product(sku="C4", desc_segment="GRANIT", normal_price=300000, promo_price=250000,
                discount=10, uom="BOX", base_price_per_meter=200000, final_price_per_meter=170000),
        Product(sku="C5", name="Paku", discount=10, price_options=[
            PriceOption(10000, 8000, "Pcs"), PriceOption(110000, 90000, "Dus"),
            PriceOption(1000000, 900000, "Palet")]),
    ], ids=["tiers", "discount-only", "cut", "granite", "rows"])
    @pytest.mark.parametrize("density", list(LayoutDensity))
    def test_shapes_inside_page(self, engine, product, density):
        settings = PopSettings(layout=density, show_barcode=True)
        group = engine.layout(product, PAGE_WIDTH, PAGE_HEIGHT, settings)
        for primitive in group.walk():
            if not isinstance(primitive, (Rect, Line)):
                continue
            left, top, right, bottom = bounds(primitive)
            assert left >= 0 and top >= 0, primitive.role
            assert right <= PAGE_WIDTH and bottom <= PAGE_HEIGHT, primitive.role
