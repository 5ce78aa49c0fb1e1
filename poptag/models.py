"""
Data model shared by the resolver, layout engine and renderer.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


def to_number(value: Any) -> float:
    """Coerce a loosely typed numeric field to a finite float.

    None, empty strings, NaN, infinities and unparsable values become 0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def to_flag(value: Any) -> bool:
    """Read a boolean field that may arrive as a string: "false" and "0" are False."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def to_optional_number(value: Any) -> Optional[float]:
    """Like to_number, but keeps "missing" distinguishable from zero."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class LayoutDensity(Enum):
    """How many price tags share one printed page."""
    ONE = "1"
    TWO = "2"
    FOUR = "4"


class DiscountType(Enum):
    PERCENT = "percent"
    CUT = "cut"


class MemberProvenance(Enum):
    """Where a product record came from, which decides how tier 4 is read."""
    CATALOG = "catalog"
    CUSTOM_ENTRY = "custom"


@dataclass
class PriceOption:
    """One unit-of-measure price row."""
    normal_price: float = 0.0
    promo_price: float = 0.0
    uom: Optional[str] = None


@dataclass
class Product:
    """A product as the core sees it, already shaped by its source."""
    sku: str
    name: str = ""
    normal_price: float = 0.0
    promo_price: float = 0.0
    discount: float = 0.0           # base percent tier
    extra_discount: float = 0.0     # tier 2
    disc3: float = 0.0              # tier 3
    member_discount: float = 0.0    # tier 4, extra percent or member percent
    discount_type: DiscountType = DiscountType.PERCENT
    discount_amount: float = 0.0
    up_to: bool = False
    barcode: str = ""
    brand: Optional[str] = None
    brand_segment: Optional[str] = None
    description: Optional[str] = None
    desc_segment: Optional[str] = None
    uom: Optional[str] = None
    price_options: List[PriceOption] = field(default_factory=list)
    base_price_per_meter: Optional[float] = None
    final_price_per_meter: Optional[float] = None
    brand_logo_url: Optional[str] = None
    is_custom: bool = False

    @property
    def brand_label(self) -> Optional[str]:
        return self.brand_segment or self.brand or None

    @property
    def display_description(self) -> Optional[str]:
        return self.desc_segment or self.description or None

    @property
    def provenance(self) -> MemberProvenance:
        return MemberProvenance.CUSTOM_ENTRY if self.is_custom else MemberProvenance.CATALOG

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Product":
        """Build a Product from a backend or JSON record.

        Accepts the backend's camelCase keys as well as snake_case ones.
        Numeric fields are coerced, never rejected.
        """
        def pick(*keys, default=None):
            for key in keys:
                if key in record and record[key] is not None:
                    return record[key]
            return default

        raw_type = str(pick("discountType", "discount_type", default="percent")).lower()
        discount_type = DiscountType.CUT if raw_type == "cut" else DiscountType.PERCENT

        options = []
        for row in pick("customPriceOptions", "price_options", default=[]) or []:
            if not isinstance(row, dict):
                continue
            options.append(PriceOption(
                normal_price=to_number(row.get("normalPrice", row.get("normal_price"))),
                promo_price=to_number(row.get("promoPrice", row.get("promo_price"))),
                uom=row.get("uom") or None,
            ))

        sku = str(pick("sku", "code", "pd_code", default=""))
        return cls(
            sku=sku,
            name=str(pick("name", default="")),
            normal_price=to_number(pick("normalPrice", "normal_price")),
            promo_price=to_number(pick("promoPrice", "promo_price")),
            discount=to_number(pick("discount")),
            extra_discount=to_number(pick("extraDiscount", "extra_discount", "disc2")),
            disc3=to_number(pick("disc3")),
            member_discount=to_number(pick("memberDiscount", "member_discount")),
            discount_type=discount_type,
            discount_amount=to_number(pick("discountAmount", "discount_amount")),
            up_to=to_flag(pick("upTo", "up_to", default=False)),
            barcode=str(pick("barcode", default=sku)),
            brand=pick("brand"),
            brand_segment=pick("brandSegment", "brand_segment"),
            description=pick("description"),
            desc_segment=pick("descSegment", "desc_segment"),
            uom=pick("uom"),
            price_options=options,
            base_price_per_meter=to_optional_number(pick("basePricePerMeter", "base_price_per_meter")),
            final_price_per_meter=to_optional_number(pick("finalPricePerMeter", "final_price_per_meter")),
            brand_logo_url=pick("brandLogoUrl", "brand_logo_url"),
            is_custom=to_flag(pick("isCustom", "is_custom", default=False)),
        )


@dataclass
class PopSettings:
    """Session-wide presentation settings."""
    show_strike_price: bool = True
    layout: LayoutDensity = LayoutDensity.ONE
    show_barcode: bool = False


@dataclass
class Template:
    """A page background: flat colour, or an uploaded image."""
    id: str = "default"
    name: str = "Default"
    description: str = ""
    image_url: Optional[str] = None
    type: str = "default"
    background_color: str = "#ffffff"

    @property
    def has_background_image(self) -> bool:
        return self.type == "custom" and bool(self.image_url)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Template":
        return cls(
            id=str(record.get("id", "")),
            name=str(record.get("name", "")),
            description=str(record.get("description") or ""),
            image_url=record.get("imageUrl") or record.get("image_url"),
            type=record.get("type") or "custom",
        )


@dataclass
class ItemTransform:
    """Manual repositioning of a label group on its page."""
    left: float = 0.0
    top: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    angle: float = 0.0
