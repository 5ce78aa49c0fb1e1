"""
Local product sources: the built-in fallback catalog and ad hoc entries.
"""

import logging
import math
import re
import time
from dataclasses import replace
from typing import Dict, List, Optional

from .exceptions import ProductEntryError
from .models import DiscountType, PriceOption, Product

logger = logging.getLogger(__name__)

LOCAL_PRODUCTS: Dict[str, Product] = {
    'SKU001': Product(sku='SKU001', name='Produk ABC', normal_price=50000,
                      promo_price=35000, discount=30, barcode='1234567890123'),
    'SKU002': Product(sku='SKU002', name='Minyak Goreng Premium 2L', normal_price=45000,
                      promo_price=38000, discount=16, barcode='2345678901234'),
    'SKU003': Product(sku='SKU003', name='Susu UHT Coklat 1L', normal_price=18000,
                      promo_price=15000, discount=17, barcode='3456789012345'),
    'SKU004': Product(sku='SKU004', name='Deterjen Bubuk 1kg', normal_price=32000,
                      promo_price=25000, discount=22, barcode='4567890123456'),
    'SKU005': Product(sku='SKU005', name='Beras Premium 5kg', normal_price=75000,
                      promo_price=65000, discount=13, barcode='5678901234567'),
}

CUSTOM_DEFAULT_NAME = 'Produk Custom'


def search_local_product(sku: str) -> Optional[Product]:
    """Case-insensitive lookup in the built-in catalog; returns a copy."""
    product = LOCAL_PRODUCTS.get((sku or '').strip().upper())
    if product is None:
        return None
    return replace(product, price_options=list(product.price_options))


def normalize_sku(value: str) -> str:
    """Strip all whitespace from typed SKUs."""
    return re.sub(r'\s+', '', value or '')


def brand_slug(brand: Optional[str]) -> Optional[str]:
    """"Mitra Bangunan" -> "MITRA_BANGUNAN"."""
    if not brand or not brand.strip():
        return None
    slug = re.sub(r'[^A-Z0-9]+', '_', brand.strip().upper()).strip('_')
    return slug or None


def _parse_amount(raw, label: str, field: str) -> Optional[float]:
    """None for an empty field; raise for anything that is not a finite number."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ProductEntryError(f"{label} tidak valid", field)
    if not math.isfinite(value):
        raise ProductEntryError(f"{label} tidak valid", field)
    return value


def build_custom_product(name: str = '', brand: str = '', description: str = '',
                         uom: str = '', normal_price=None, final_price=None,
                         discount=None, extra_discount=None, member_discount=None,
                         price_cut=None, use_price_cut: bool = False, up_to: bool = False,
                         price_options: Optional[List[PriceOption]] = None,
                         now_ms: Optional[int] = None) -> Product:
    """Build a product from ad hoc entry fields.

    Args:
        normal_price: Must be > 0 when given
        final_price: Defaults to the normal price; must be >= 0
        discount, extra_discount, member_discount: Percentages, each >= 0
        price_cut: Flat amount, used when use_price_cut is set; > 0 and below the normal price
        now_ms: Clock override for the CUSTOM-<millis> SKU

    Raises:
        ProductEntryError: With a user-facing message naming the bad field
    """
    normal = _parse_amount(normal_price, 'Harga normal', 'normal_price')
    if normal is not None and normal <= 0:
        raise ProductEntryError('Harga normal tidak valid', 'normal_price')
    normal = normal or 0.0

    final = _parse_amount(final_price, 'Harga final', 'final_price')
    if final is not None and final < 0:
        raise ProductEntryError('Harga final tidak valid', 'final_price')
    promo = normal if final is None else final

    percent = 0.0
    extra = 0.0
    member = 0.0
    discount_type = DiscountType.PERCENT
    cut_amount = 0.0

    if not use_price_cut:
        entered = {}
        for raw, label, field in ((discount, 'Diskon utama', 'discount'),
                                  (extra_discount, 'Extra Diskon', 'extra_discount'),
                                  (member_discount, 'Diskon Member', 'member_discount')):
            value = _parse_amount(raw, label, field) or 0.0
            if value < 0:
                raise ProductEntryError(f"{label} tidak valid", field)
            entered[field] = value
        percent = entered["discount"]
        extra = entered["extra_discount"]
        member = entered["member_discount"]
    else:
        cut = _parse_amount(price_cut, 'Potongan harga', 'price_cut')
        if cut is not None and cut <= 0:
            raise ProductEntryError('Potongan harga tidak valid', 'price_cut')
        cut = cut or 0.0
        if cut > 0 and normal > 0 and cut >= normal:
            raise ProductEntryError('Potongan harga tidak boleh melebihi harga normal', 'price_cut')
        percent = math.floor(cut / normal * 100 + 0.5) if cut > 0 and normal > 0 else 0
        discount_type = DiscountType.CUT
        cut_amount = cut

    sku = f"CUSTOM-{now_ms if now_ms is not None else int(time.time() * 1000)}"
    brand_name = (brand or '').strip()
    slug = brand_slug(brand_name)

    product = Product(
        sku=sku,
        name=(name or '').strip() or CUSTOM_DEFAULT_NAME,
        normal_price=normal,
        promo_price=promo,
        discount=percent,
        extra_discount=extra,
        member_discount=member,
        discount_type=discount_type,
        discount_amount=cut_amount,
        up_to=bool(up_to),
        barcode=sku,
        brand=brand_name or None,
        description=(description or '').strip() or None,
        uom=(uom or '').strip() or None,
        price_options=list(price_options or []),
        brand_logo_url=f"/brands/{slug}.png" if slug else None,
        is_custom=True,
    )
    logger.debug(f"Built custom product {product.sku} ({product.discount_type.value})")
    return product
