"""
POP label layout engine.

Composes one product into a vertical stack of drawing primitives: brand,
name, description, divider, price block(s) and discount badge. All sizes
derive from the density profile; text that does not fit is shrunk, never
truncated.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
import logging

from .models import LayoutDensity, MemberProvenance, PopSettings, PriceOption, Product
from .pricing import (
    FlatCut, PercentTiers, ResolvedPricing,
    format_percent, format_price, percent_value_text, resolve, split_price_tail
)
from .primitives import (
    Group, LinearGradient, Line, Rect, Shadow, Text, barcode_placeholder
)
from .text_fit import fit_to_line_count, fit_to_width, fitted_lines
from .text_metrics import FontSpec, TextMeasurer

logger = logging.getLogger(__name__)


# Colours
BRAND_COLOR = "#374151"
NAME_COLOR = "#111827"
MUTED_COLOR = "#6b7280"
DIVIDER_COLOR = "#e5e7eb"
STRIKE_COLOR = "#dc2626"
PRICE_COLOR = "#0284c7"
BADGE_VALUE_COLOR = "#4b5563"
CARD_FILL = "#f8fafc"
CARD_STROKE = "#d1d5db"
DISCOUNT_COLORS = ("#ef4444", "#ef4444")
MEMBER_COLORS = ("#1d4ed8", "#60a5fa")


@dataclass(frozen=True)
class DensityProfile:
    """Size constants for one layout density, before the group scale."""
    group_scale: float
    content_ratio: float
    brand_size: float
    name_size: float
    description_size: float
    price_size: float
    strike_size: float
    badge_label_size: float
    badge_value_size: float
    badge_row_height: float
    meter_scale: float


DENSITY_PROFILES: Dict[LayoutDensity, DensityProfile] = {
    LayoutDensity.FOUR: DensityProfile(
        group_scale=1.1 * 1.05, content_ratio=0.74, brand_size=36, name_size=11,
        description_size=12, price_size=50, strike_size=18, badge_label_size=12,
        badge_value_size=26, badge_row_height=70, meter_scale=1.0,
    ),
    LayoutDensity.TWO: DensityProfile(
        group_scale=1.16 * 1.05, content_ratio=0.84, brand_size=39, name_size=15,
        description_size=14, price_size=62, strike_size=20, badge_label_size=13,
        badge_value_size=31, badge_row_height=84, meter_scale=1.06,
    ),
    LayoutDensity.ONE: DensityProfile(
        group_scale=1.22 * 1.05, content_ratio=0.88, brand_size=42, name_size=19,
        description_size=16, price_size=78, strike_size=22, badge_label_size=14,
        badge_value_size=38, badge_row_height=96, meter_scale=1.12,
    ),
}


class LabelLayoutEngine:
    """Turns a product into a Group of primitives for one page."""

    def __init__(self, measurer: TextMeasurer):
        self.measurer = measurer

    def layout(self, product: Product, page_width: float, page_height: float,
               settings: PopSettings, has_background_image: bool = False,
               x: float = 0.0, y: float = 0.0,
               provenance: Optional[MemberProvenance] = None) -> Group:
        """Compose one product into a page-sized group.

        Args:
            product: Product to lay out
            page_width: Page width in points
            page_height: Page height in points
            settings: Strike price, density and barcode switches
            has_background_image: Skip the plain card background when a template image is drawn
            x, y: Origin of the group on the page
            provenance: Override for how the tier-4 discount is read

        Returns:
            Group with role "pop-item"
        """
        pricing = resolve(product, provenance)
        composer = _LabelComposer(self.measurer, settings, page_width, page_height, x, y)
        group = composer.compose(product, pricing, has_background_image)
        logger.debug(f"Laid out {product.sku}: {len(group.children)} primitives, "
                     f"content ends at y={composer.cursor:.1f}")
        return group


class _LabelComposer:
    """Single-use builder holding the vertical cursor while one label is composed."""

    def __init__(self, measurer: TextMeasurer, settings: PopSettings,
                 page_width: float, page_height: float, x: float, y: float):
        self.measurer = measurer
        self.settings = settings
        self.profile = DENSITY_PROFILES[settings.layout]
        self.gs = self.profile.group_scale
        self.x = x
        self.y = y
        self.page_width = page_width
        self.page_height = page_height
        self.center_x = x + page_width / 2
        self.content_width = page_width * self.profile.content_ratio
        self.cursor = y + page_height * 0.3
        self.group = Group(x=x, y=y, width=page_width, height=page_height, role="pop-item")

    def compose(self, product: Product, pricing: ResolvedPricing, has_background_image: bool) -> Group:
        if not has_background_image:
            self.group.add(Rect(self.x, self.y, self.page_width, self.page_height,
                                fill="#ffffff", stroke=DIVIDER_COLOR, stroke_width=1,
                                role="background"))

        self._add_brand(product)
        self._add_name(product.name, pricing.has_any_discount)
        self._add_description(product.display_description)
        self._add_divider(len(pricing.price_rows))

        if not pricing.is_discount_only:
            if pricing.is_meter_priced:
                self._add_meter_prices(pricing)
            elif len(pricing.price_rows) > 1:
                self._add_price_rows(pricing.price_rows)
            elif pricing.price_rows:
                self._add_single_price(pricing)

        if isinstance(pricing.discount, FlatCut):
            self._add_cut_badge(pricing.discount.amount, pricing.is_discount_only)
        elif isinstance(pricing.discount, PercentTiers):
            self._add_percent_badge(pricing.discount, pricing.up_to, pricing.is_discount_only)

        if self.settings.show_barcode:
            self._add_barcode(product.barcode or product.sku)

        return self.group

    # -- header -------------------------------------------------------------

    def _add_brand(self, product: Product):
        label = product.brand_label
        if not label:
            return
        base_size = self.profile.brand_size * self.gs
        size = fit_to_width(self.measurer, label, self.content_width, base_size,
                            max(14, base_size * 0.65), weight="bold")
        self.group.add(Text(label, self.center_x, self.cursor, FontSpec(size, "bold"),
                            fill=BRAND_COLOR, anchor_x="center", anchor_y="center", role="brand"))
        self.cursor += size + 10 * self.gs

    def _add_name(self, name: str, has_any_discount: bool):
        base_size = self.profile.name_size * self.gs
        name_size = base_size if has_any_discount else base_size * 1.15
        max_lines = 1 if has_any_discount else 2
        size = fit_to_line_count(self.measurer, name, self.content_width, max_lines,
                                 name_size, weight="bold")
        font = FontSpec(size, "bold")
        lines = fitted_lines(self.measurer, name, self.content_width, font)
        if lines:
            self.group.add(Text(name, self.center_x, self.cursor, font, fill=NAME_COLOR,
                                anchor_x="center", anchor_y="top", lines=lines, role="name"))
        height = max(name_size, self.measurer.line_height(font) * len(lines))
        self.cursor += height + 6 * self.gs

    def _add_description(self, description: Optional[str]):
        if not description:
            self.cursor += 6 * self.gs
            return
        font = FontSpec(self.profile.description_size * self.gs, "medium")
        lines = fitted_lines(self.measurer, description, self.content_width, font)
        self.group.add(Text(description, self.center_x, self.cursor, font, fill=MUTED_COLOR,
                            anchor_x="center", anchor_y="top", lines=lines, role="description"))
        height = max(font.size, self.measurer.block_height(lines, font))
        self.cursor += height + 10 * self.gs

    def _add_divider(self, row_count: int):
        width = self.content_width * 0.9
        self.group.add(Line(self.center_x - width / 2, self.cursor, self.center_x + width / 2,
                            self.cursor, stroke=DIVIDER_COLOR, stroke_width=1, role="divider"))
        self.cursor += (4 if row_count > 1 else 10) * self.gs

    # -- prices -------------------------------------------------------------

    def _strike_price(self, price: float, uom: Optional[str], align_x: float,
                      scale: float = 1.0, gap_scale: float = 1.0) -> float:
        """Draw a struck-through normal price at the cursor; returns the vertical advance."""
        if not self.settings.show_strike_price or not price:
            return 0.0

        size = self.profile.strike_size * self.gs * scale
        font = FontSpec(size)
        top = self.cursor
        content = f"Rp {format_price(price)}"
        width = self.measurer.measure(content, font)

        strike = Group(x=align_x - width / 2, y=top, role="strike-price")
        strike.add(Text(content, align_x, top, font, fill=STRIKE_COLOR,
                        anchor_x="center", anchor_y="top", role="strike-text"))
        if uom:
            strike.add(Text(f"/{uom}", align_x + width / 2 + 6 * self.gs, top + size * 0.1,
                            FontSpec(max(10, size * 0.7), "semibold"), fill=MUTED_COLOR,
                            role="strike-uom"))

        line_width = width + (18 * self.gs * scale if uom else 0)
        line_y = top + size / 2
        strike.add(Line(align_x - width / 2, line_y, align_x - width / 2 + line_width, line_y,
                        stroke=STRIKE_COLOR, stroke_width=2, role="strike-line"))
        strike.width = line_width
        strike.height = size
        self.group.add(strike)
        return size + 10 * self.gs * gap_scale

    def _price_fonts(self, size_scale: float) -> Tuple[FontSpec, FontSpec, FontSpec, FontSpec]:
        local = self.profile.price_size * self.gs * size_scale
        currency = FontSpec(max(12, local * 0.4), "bold")
        main = FontSpec(local, "black")
        tail = FontSpec(max(10, local * 0.35), "extrabold")
        uom = FontSpec(max(10, local * 0.22), "semibold")
        return currency, main, tail, uom

    def _price_block_width(self, main_text: str, tail_text: str, uom_text: str,
                           size_scale: float) -> float:
        currency, main, tail, uom = self._price_fonts(size_scale)
        gap_main = 6 * self.gs * size_scale
        gap_tail = 4 * self.gs * size_scale if tail_text else 0
        tail_width = self.measurer.measure(tail_text, tail) if tail_text else 0
        uom_width = self.measurer.measure(uom_text, uom) if uom_text else 0
        return (self.measurer.measure("Rp.", currency) + gap_main
                + self.measurer.measure(main_text, main) + gap_tail
                + max(tail_width, uom_width))

    def _price_block(self, price: float, uom: Optional[str], align_x: float, top: float,
                     scale: float = 1.0, max_width: Optional[float] = None) -> float:
        """Draw "Rp." + main digits + ".tail" (+ "/uom") centred on align_x; returns its height."""
        main_text, tail = split_price_tail(format_price(price))
        tail_text = f".{tail}" if tail else ""
        uom_text = f"/{uom}" if uom else ""

        size_scale = scale
        if max_width:
            while size_scale > 0.6 and self._price_block_width(main_text, tail_text, uom_text, size_scale) > max_width:
                size_scale = max(0.6, size_scale - 0.04)

        local = self.profile.price_size * self.gs * size_scale
        currency, main, tail_font, uom_font = self._price_fonts(size_scale)
        gap_main = 6 * self.gs * size_scale
        gap_tail = 4 * self.gs * size_scale if tail_text else 0
        currency_width = self.measurer.measure("Rp.", currency)
        main_width = self.measurer.measure(main_text, main)
        tail_width = self.measurer.measure(tail_text, tail_font) if tail_text else 0
        total_width = currency_width + gap_main + main_width + gap_tail + tail_width
        start_x = align_x - total_width / 2

        block = Group(x=start_x, y=top, width=total_width, role="price-block")
        block.add(Text("Rp.", start_x, top + local * 0.12, currency, fill=PRICE_COLOR,
                       role="price-currency"))
        main_x = start_x + currency_width + gap_main
        block.add(Text(main_text, main_x, top, main, fill=PRICE_COLOR, role="price-main"))

        tail_x = main_x + main_width + gap_tail
        tail_top = top
        tail_height = 0.0
        if tail_text:
            tail_top = top + local * 0.08
            tail_height = self.measurer.line_height(tail_font)
            block.add(Text(tail_text, tail_x, tail_top, tail_font, fill=PRICE_COLOR,
                           role="price-tail"))

        if uom_text:
            uom_top = tail_top + tail_height + 1 * self.gs if tail_text else top + local * 0.35
            block.add(Text(uom_text, tail_x, uom_top, uom_font, fill=PRICE_COLOR,
                           role="price-uom"))

        height = max(self.measurer.line_height(main), tail_top - top + tail_height)
        block.height = height
        self.group.add(block)
        return height

    def _add_meter_prices(self, pricing: ResolvedPricing):
        """Granite tiles: per-unit price on the left, per-meter on the right."""
        scale = self.profile.meter_scale
        if not pricing.has_any_discount:
            scale *= 1.12
        column_gap = max(20 * self.gs, self.content_width * 0.1)
        column_width = (self.content_width - column_gap) / 2
        left_x = self.center_x - (column_width / 2 + column_gap / 2)
        right_x = self.center_x + (column_width / 2 + column_gap / 2)
        primary = pricing.primary_price

        if pricing.has_any_discount:
            strike_scale = scale * 0.9
            left = self._strike_price(primary.normal_price, primary.uom, left_x, strike_scale)
            right = self._strike_price(pricing.meter_base_price, "Mtr", right_x, strike_scale)
            self.cursor += max(left, right)

        left_height = self._price_block(primary.promo_price, primary.uom, left_x, self.cursor,
                                        scale, column_width)
        right_height = self._price_block(pricing.meter_final_price, "Mtr", right_x, self.cursor,
                                         scale, column_width)
        self.cursor += max(left_height, right_height) + 10 * self.gs

    def _add_price_rows(self, rows: List[PriceOption]):
        """Stacked rows, one per unit of measure, separated by thin lines."""
        row_scale = 0.58 if len(rows) >= 3 else 0.72
        strike_scale = row_scale * 0.48
        gap = 3 * self.gs

        for index, row in enumerate(rows):
            effective_promo = row.promo_price if row.promo_price > 0 else row.normal_price
            if row.normal_price > 0 and row.normal_price > effective_promo:
                self.cursor += self._strike_price(row.normal_price, row.uom, self.center_x,
                                                  strike_scale, gap_scale=0.4)

            height = self._price_block(effective_promo, row.uom, self.center_x, self.cursor,
                                       row_scale, self.content_width * 0.9)
            self.cursor += height + gap

            if index < len(rows) - 1:
                width = self.content_width * 0.86
                self.group.add(Line(self.center_x - width / 2, self.cursor,
                                    self.center_x + width / 2, self.cursor,
                                    stroke=DIVIDER_COLOR, stroke_width=1, role="row-separator"))
                self.cursor += gap

    def _add_single_price(self, pricing: ResolvedPricing):
        primary = pricing.primary_price
        if pricing.has_any_discount:
            self.cursor += self._strike_price(primary.normal_price, primary.uom, self.center_x)
        scale = 1.45 if pricing.has_any_discount else 1.65
        height = self._price_block(primary.promo_price, primary.uom, self.center_x, self.cursor,
                                   scale, self.content_width)
        self.cursor += height + 10 * self.gs

    # -- badges -------------------------------------------------------------

    def _badge_shadow(self) -> Shadow:
        return Shadow(color="#0f172a", opacity=0.15, blur=6, offset_y=2)

    def _add_cut_badge(self, amount: float, discount_only: bool):
        """Single card: red header "POTONGAN HARGA", amount below."""
        row_width = self.content_width if discount_only else self.content_width * 0.6
        height_scale = 1.6 if discount_only else 1.0
        row_height = self.profile.badge_row_height * self.gs * height_scale
        header_height = row_height * (0.28 if discount_only else 0.42)
        row_x = self.center_x - row_width / 2
        row_y = self.cursor + 6 * self.gs
        radius = 16 * self.gs
        text_width = max(40, row_width - 24 * self.gs)

        label_font = FontSpec(self.profile.badge_label_size * self.gs * (1.4 if discount_only else 1),
                              "extrabold")
        label = "POTONGAN HARGA"
        if self.measurer.measure(label, label_font) > text_width:
            label = "POTONGAN"

        value = f"Rp {format_price(amount)}"
        value_size = self.profile.badge_value_size * self.gs * (1.8 if discount_only else 1)
        value_size = fit_to_width(self.measurer, value, text_width, value_size,
                                  max(16, value_size * 0.5), weight="extrabold")

        badge = Group(x=row_x, y=row_y, width=row_width, height=row_height, role="discount-badge")
        card = Group(x=row_x, y=row_y, width=row_width, height=row_height, role="badge-card")
        card.add(Rect(row_x, row_y, row_width, row_height, fill=CARD_FILL, stroke=CARD_STROKE,
                      stroke_width=1, radius=radius, shadow=self._badge_shadow(), role="badge-frame"))
        card.add(Rect(row_x, row_y, row_width, header_height, radius=radius,
                      gradient=LinearGradient(*DISCOUNT_COLORS), role="badge-header"))
        card.add(Text(label, self.center_x, row_y + header_height * 0.5, label_font,
                      fill="#ffffff", anchor_x="center", anchor_y="center", role="badge-label"))
        card.add(Text(value, self.center_x, row_y + header_height + (row_height - header_height) * 0.55,
                      FontSpec(value_size, "extrabold"), fill=BADGE_VALUE_COLOR,
                      anchor_x="center", anchor_y="center", role="badge-value"))
        badge.add(card)
        self.group.add(badge)
        self.cursor = row_y + row_height

    def _add_percent_badge(self, discount: PercentTiers, up_to: bool, discount_only: bool):
        """Percent cards side by side: combined tiers, then member."""
        items = []
        if discount.parts:
            items.append(("DISKON UP TO" if up_to else "DISKON", percent_value_text(discount),
                          DISCOUNT_COLORS))
        if discount.member_percent > 0:
            items.append(("MEMBER", f"{format_percent(discount.member_percent)}%", MEMBER_COLORS))
        if not items:
            return

        label_size = self.profile.badge_label_size * self.gs * (1.7 if discount_only else 1)
        value_size = self.profile.badge_value_size * self.gs * (2.2 if discount_only else 1)

        if discount_only or len(items) > 1:
            row_width = self.content_width
        else:
            row_width = self.content_width * 0.4
        if len(items) == 1:
            label, value, _ = items[0]
            text_width = max(self.measurer.measure(label, FontSpec(label_size, "extrabold")),
                             self.measurer.measure(value, FontSpec(value_size, "extrabold")))
            row_width = min(self.content_width,
                            max(self.content_width * 0.4, text_width + 36 * self.gs))

        height_scale = 2.0 if discount_only else 1.0
        row_height = self.profile.badge_row_height * self.gs * height_scale
        header_height = row_height * (0.3 if discount_only else 0.42)
        row_x = self.center_x - row_width / 2
        row_y = self.cursor + 6 * self.gs
        radius = 16 * self.gs
        cell_width = row_width / len(items)
        text_max = max(40, cell_width - 24 * self.gs)
        value_color = BADGE_VALUE_COLOR if len(items) > 1 else STRIKE_COLOR

        badge = Group(x=row_x, y=row_y, width=row_width, height=row_height, role="discount-badge")
        badge.add(Rect(row_x, row_y, row_width, row_height, fill=CARD_FILL, stroke=CARD_STROKE,
                       stroke_width=1, radius=radius, shadow=self._badge_shadow(), role="badge-frame"))

        for index, (label, value, colors) in enumerate(items):
            cell_x = row_x + cell_width * index
            cell_center = cell_x + cell_width / 2
            label_fit = fit_to_width(self.measurer, label, text_max, label_size,
                                     max(10, label_size * 0.7), weight="extrabold")
            value_fit = fit_to_width(self.measurer, value, text_max, value_size,
                                     max(16, value_size * 0.5), weight="extrabold")

            card = Group(x=cell_x, y=row_y, width=cell_width, height=row_height, role="badge-card")
            card.add(Rect(cell_x, row_y, cell_width, row_height, fill=CARD_FILL,
                          radius=radius, role="badge-cell"))
            card.add(Rect(cell_x, row_y, cell_width, header_height, radius=radius,
                          gradient=LinearGradient(*colors), role="badge-header"))
            card.add(Text(label, cell_center, row_y + header_height * 0.5,
                          FontSpec(label_fit, "extrabold"), fill="#ffffff",
                          anchor_x="center", anchor_y="center", role="badge-label"))
            card.add(Text(value, cell_center,
                          row_y + header_height + (row_height - header_height) * 0.55,
                          FontSpec(value_fit, "extrabold"), fill=value_color,
                          anchor_x="center", anchor_y="center", role="badge-value"))
            if index > 0:
                card.add(Line(cell_x, row_y + 6, cell_x, row_y + row_height - 6,
                              stroke=CARD_STROKE, stroke_width=1, role="badge-divider"))
            badge.add(card)

        self.group.add(badge)
        self.cursor = row_y + row_height

    # -- extras -------------------------------------------------------------

    def _add_barcode(self, code: str):
        width = self.content_width * 0.5
        top = max(self.cursor + 16 * self.gs, self.y + self.page_height * 0.86 - 40)
        self.group.add(barcode_placeholder(code, self.center_x - width / 2, top, width))
        self.group.add(Text(code, self.center_x, top + 44, FontSpec(10 * self.gs), fill=NAME_COLOR,
                            anchor_x="center", anchor_y="top", role="barcode-text"))
        self.cursor = top + 44 + 10 * self.gs
