"""
Price and discount resolution.

Turns a product's mixed discount fields into one unambiguous view for the
layout engine. Classification only: promo prices are never recomputed from
percentages or the other way round.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple, Union

from .models import (
    DiscountType, MemberProvenance, PriceOption, Product, to_number, to_optional_number
)

logger = logging.getLogger(__name__)

GRANITE_MARKER = "GRANIT"

# Catalog records carry the member discount in tier 4 as one of these values
CATALOG_MEMBER_SENTINELS = (2, 3)

# Legacy records put a currency amount in the base percent field
LEGACY_CUT_THRESHOLD = 100


@dataclass(frozen=True)
class NoDiscount:
    pass


@dataclass(frozen=True)
class PercentTiers:
    parts: Tuple[float, ...] = ()
    member_percent: float = 0.0


@dataclass(frozen=True)
class FlatCut:
    amount: float


DiscountKind = Union[NoDiscount, PercentTiers, FlatCut]


@dataclass
class ResolvedPricing:
    primary_price: PriceOption
    price_rows: List[PriceOption] = field(default_factory=list)
    discount: DiscountKind = field(default_factory=NoDiscount)
    up_to: bool = False
    has_any_discount: bool = False
    is_meter_priced: bool = False
    meter_base_price: Optional[float] = None
    meter_final_price: Optional[float] = None

    @property
    def alternate_prices(self) -> List[PriceOption]:
        """Price rows, only when the product sells in more than one unit."""
        return list(self.price_rows) if len(self.price_rows) > 1 else []

    @property
    def is_discount_only(self) -> bool:
        return self.has_any_discount and not self.price_rows


def format_price(price) -> str:
    """Format an amount with Indonesian digit grouping: 50000 -> "50.000"."""
    value = to_number(price)
    sign = "-" if value < 0 else ""
    rounded = round(abs(value), 3)
    integer = int(rounded)
    text = f"{integer:,}".replace(",", ".")
    if rounded != integer:
        fraction = f"{rounded:.3f}".split(".")[1].rstrip("0")
        text = f"{text},{fraction}"
    return sign + text


def format_percent(value) -> str:
    """Format a percentage with at most one meaningful decimal: 12.50 -> "12.5"."""
    fixed = f"{to_number(value):.2f}"
    if fixed.endswith(".00"):
        return fixed[:-3]
    if fixed.endswith("0"):
        return fixed[:-1]
    return fixed


def split_price_tail(formatted: str) -> Tuple[str, str]:
    """Split "35.000" into ("35", "000") at the last group separator."""
    index = formatted.rfind(".")
    if index < 0:
        return formatted, ""
    return formatted[:index], formatted[index + 1:]


def _tier_four_from_catalog(raw: float) -> Tuple[float, float]:
    """Catalog lookups: only the sentinel magnitudes mean "member"."""
    if raw in CATALOG_MEMBER_SENTINELS:
        return 0.0, raw
    return raw, 0.0


def _tier_four_from_custom_entry(raw: float) -> Tuple[float, float]:
    """Ad hoc entry: any positive tier 4 was typed into the member field."""
    if raw > 0:
        return 0.0, raw
    return raw, 0.0


# provenance -> fn(raw tier 4) -> (extra percent, member percent)
TIER_FOUR_STRATEGIES: Dict[MemberProvenance, Callable[[float], Tuple[float, float]]] = {
    MemberProvenance.CATALOG: _tier_four_from_catalog,
    MemberProvenance.CUSTOM_ENTRY: _tier_four_from_custom_entry,
}


def _price_rows(product: Product) -> List[PriceOption]:
    if product.price_options:
        rows = product.price_options
    else:
        rows = [PriceOption(product.normal_price, product.promo_price, product.uom)]

    resolved = []
    for row in rows:
        normal = to_number(row.normal_price)
        promo = to_number(row.promo_price)
        if normal > 0 or promo > 0:
            resolved.append(PriceOption(normal, promo, row.uom or None))
    return resolved


def is_granite(product: Product) -> bool:
    label = f"{product.desc_segment or ''} {product.description or ''}".upper()
    return GRANITE_MARKER in label


def resolve(product: Product, provenance: Optional[MemberProvenance] = None) -> ResolvedPricing:
    """Classify a product's prices and discounts.

    Args:
        product: The product to resolve
        provenance: Which tier-4 rule applies; defaults to the product's own

    Returns:
        ResolvedPricing. Never raises for a structurally valid product.
    """
    provenance = provenance or product.provenance
    rows = _price_rows(product)
    primary = rows[0] if rows else PriceOption(
        to_number(product.normal_price), to_number(product.promo_price), product.uom or None
    )

    base = to_number(product.discount)
    tier2 = to_number(product.extra_discount)
    tier3 = to_number(product.disc3)
    tier4_extra, member = TIER_FOUR_STRATEGIES[provenance](to_number(product.member_discount))
    cut_amount = to_number(product.discount_amount)

    has_any_discount = any(value > 0 for value in (base, tier2, tier3, tier4_extra, member, cut_amount))

    if product.discount_type == DiscountType.CUT:
        discount = FlatCut(cut_amount) if cut_amount > 0 else NoDiscount()
    elif base > LEGACY_CUT_THRESHOLD:
        logger.debug(f"Base discount {base} of {product.sku} read as a currency amount")
        discount = FlatCut(base)
    else:
        parts = tuple(value for value in (base, tier2, tier3, tier4_extra) if value > 0)
        if parts or member > 0:
            discount = PercentTiers(parts=parts, member_percent=member if member > 0 else 0.0)
        else:
            discount = NoDiscount()

    meter_base = to_optional_number(product.base_price_per_meter)
    meter_final = to_optional_number(product.final_price_per_meter)
    has_meter_price = meter_base is not None and meter_final is not None
    is_meter_priced = is_granite(product) and has_meter_price and len(rows) <= 1

    return ResolvedPricing(
        primary_price=primary,
        price_rows=rows,
        discount=discount,
        up_to=bool(product.up_to),
        has_any_discount=has_any_discount,
        is_meter_priced=is_meter_priced,
        meter_base_price=meter_base if has_meter_price else None,
        meter_final_price=meter_final if has_meter_price else None,
    )


def percent_value_text(discount: PercentTiers) -> str:
    """Join the percent tiers for the badge: "12% + 5%"."""
    return " + ".join(f"{format_percent(value)}%" for value in discount.parts)
