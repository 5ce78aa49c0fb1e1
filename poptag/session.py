import logging
from typing import Dict, List, Optional

from .exceptions import MalformedInput
from .models import ItemTransform, PopSettings, Product, Template

logger = logging.getLogger(__name__)


class EditingSession:
    """Products, settings, template and manual transforms for one editing run.

    Renderers read from the session; only the methods below mutate it.
    """

    def __init__(self, settings: Optional[PopSettings] = None,
                 template: Optional[Template] = None):
        self.products: List[Product] = []
        self.settings = settings or PopSettings()
        self.template = template or Template()
        self.item_transforms: Dict[str, ItemTransform] = {}
        self._active_index = 0

    @property
    def active_index(self) -> int:
        return self._active_index

    @property
    def active_product(self) -> Optional[Product]:
        if not self.products:
            return None
        return self.products[self._active_index]

    @property
    def total_pages(self) -> int:
        """Pages shown in the editor; an empty session still shows one blank page."""
        return max(len(self.products), 1)

    def has_product(self, sku: str) -> bool:
        return any(product.sku == sku for product in self.products)

    def add_product(self, product: Product) -> int:
        """Append a product and make it the active page.

        Raises:
            MalformedInput: If a product with the same SKU is already in the session
        """
        if self.has_product(product.sku):
            raise MalformedInput(f"Produk sudah ditambahkan: {product.sku}", {'sku': product.sku})
        self.products.append(product)
        self._active_index = len(self.products) - 1
        logger.debug(f"Added {product.sku}, {len(self.products)} product(s) in session")
        return self._active_index

    def remove_product(self, sku: str) -> bool:
        """Remove a product and its transform; False when the SKU is not present."""
        for index, product in enumerate(self.products):
            if product.sku == sku:
                del self.products[index]
                self.item_transforms.pop(sku, None)
                self.set_active_index(self._active_index)
                return True
        return False

    def set_active_index(self, index: int) -> int:
        """Select a page; out-of-range indices are clamped."""
        self._active_index = min(max(index, 0), max(len(self.products) - 1, 0))
        return self._active_index

    def select_product(self, sku: str) -> bool:
        for index, product in enumerate(self.products):
            if product.sku == sku:
                self._active_index = index
                return True
        return False

    def on_transform_end(self, sku: str, transform: ItemTransform):
        """Record where the user left a label after moving or resizing it."""
        if not self.has_product(sku):
            logger.warning(f"Ignoring transform for unknown product {sku}")
            return
        self.item_transforms[sku] = transform

    def reset_transform(self, sku: str):
        self.item_transforms.pop(sku, None)
