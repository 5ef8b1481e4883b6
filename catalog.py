"""
Catalog Module
==============
Product catalog and inventory.

The catalog is the single owner of Product records. Products are
immutable values: a stock change or edit swaps in a new Product, so
order lines that captured the old value stay untouched.

Stock only moves through two paths:
- completed orders (apply_order, floored at zero)
- inventory edits (update_product)
"""

import logging
from typing import Dict, List, Any, Optional, Iterable
from dataclasses import dataclass, asdict, replace

from prometheus_client import Gauge

from ids import IdAllocator, UuidIdAllocator


logger = logging.getLogger(__name__)


CATEGORIES = ("Food", "Drinks", "Dessert", "Snacks")


def _check_category(category: str):
    if category not in CATEGORIES:
        raise ValueError(f"Unknown category {category!r}; expected one of {', '.join(CATEGORIES)}")


low_stock_products = Gauge(
    'catalog_low_stock_products',
    'Products at or below the low-stock threshold'
)


class UnknownProductError(KeyError):
    """Raised when a product id is not in the catalog."""
    pass


# ============================================================================
# PRODUCT
# ============================================================================

@dataclass(frozen=True)
class Product:
    """
    Immutable catalog entry.

    Prices and stock are whole currency units / pieces.
    """
    id: str
    name: str
    price: int
    category: str
    stock: int
    image: str = ""
    is_deleted: bool = False

    def __post_init__(self):
        if self.price < 0:
            raise ValueError(f"Invalid price for {self.name}: {self.price}")
        if self.stock < 0:
            raise ValueError(f"Invalid stock for {self.name}: {self.stock}")

    def with_stock(self, stock: int) -> 'Product':
        """Create new product with updated stock (never below zero)."""
        return replace(self, stock=max(0, stock))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ============================================================================
# CATALOG
# ============================================================================

class Catalog:
    """
    In-memory product catalog.

    Insertion order is display order.
    """

    EDITABLE_FIELDS = {"name", "price", "category", "stock", "image"}

    def __init__(
        self,
        products: Optional[Iterable[Product]] = None,
        id_allocator: Optional[IdAllocator] = None
    ):
        self._products: Dict[str, Product] = {}
        self._ids = id_allocator or UuidIdAllocator()

        for product in products or ():
            self._products[product.id] = product

    def __len__(self) -> int:
        return len(self._products)

    def __contains__(self, product_id: str) -> bool:
        return product_id in self._products

    def get(self, product_id: str) -> Product:
        """
        Get product by id (deleted products included).

        Raises:
            UnknownProductError: If the id is not in the catalog
        """
        try:
            return self._products[product_id]
        except KeyError:
            raise UnknownProductError(product_id)

    def all(self) -> List[Product]:
        """All products, soft-deleted ones included."""
        return list(self._products.values())

    def selectable(
        self,
        category: Optional[str] = None,
        query: Optional[str] = None
    ) -> List[Product]:
        """
        Products offered at the point of sale.

        Args:
            category: Only this category ("All" or None for every category)
            query: Case-insensitive substring of the product name

        Returns:
            Non-deleted products matching the filters
        """
        needle = (query or "").strip().lower()

        return [
            product for product in self._products.values()
            if not product.is_deleted
            and (category in (None, "", "All") or product.category == category)
            and needle in product.name.lower()
        ]

    def low_stock(self, threshold: int) -> List[Product]:
        """Non-deleted products with stock at or below threshold."""
        products = [
            product for product in self._products.values()
            if not product.is_deleted and product.stock <= threshold
        ]
        low_stock_products.set(len(products))
        return products

    # ========================================================================
    # INVENTORY EDITS
    # ========================================================================

    def add_product(
        self,
        name: str,
        price: int,
        category: str,
        stock: int = 0,
        image: str = ""
    ) -> Product:
        """
        Add a new product to the catalog.

        Raises:
            ValueError: If name is empty, price/stock is negative or the
                category is not one of CATEGORIES
        """
        if not name or not name.strip():
            raise ValueError("Product name required")

        _check_category(category)

        product = Product(
            id=self._ids.next_id("prd"),
            name=name.strip(),
            price=price,
            category=category,
            stock=stock,
            image=image
        )
        self._products[product.id] = product

        logger.info(f"Product added: {product.name} ({product.id}, price={price}, stock={stock})")

        return product

    def update_product(self, product_id: str, **changes: Any) -> Product:
        """
        Edit product fields.

        Args:
            product_id: Product to edit
            **changes: Any of name, price, category, stock, image

        Raises:
            UnknownProductError: If the id is not in the catalog
            ValueError: If a field is not editable or a value is invalid
        """
        current = self.get(product_id)

        unknown = set(changes) - self.EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not editable: {sorted(unknown)}")

        if "category" in changes:
            _check_category(changes["category"])

        updated = replace(current, **changes)
        self._products[product_id] = updated

        logger.info(f"Product updated: {product_id} {sorted(changes)}")

        return updated

    def soft_delete(self, product_id: str) -> Product:
        """
        Hide product from the point of sale; history keeps referring to it.

        Raises:
            UnknownProductError: If the id is not in the catalog
        """
        deleted = replace(self.get(product_id), is_deleted=True)
        self._products[product_id] = deleted

        logger.info(f"Product soft-deleted: {product_id}")

        return deleted

    # ========================================================================
    # ORDER EFFECTS
    # ========================================================================

    def apply_order(self, order) -> None:
        """
        Decrement stock for every product referenced by a completed order.

        Stock never goes below zero. Products missing from the catalog are
        skipped with a warning.
        """
        for item in order.items:
            product_id = item.product.id
            current = self._products.get(product_id)

            if current is None:
                logger.warning(f"Order {order.id} references unknown product {product_id}")
                continue

            self._products[product_id] = current.with_stock(current.stock - item.quantity)

            logger.debug(
                f"Stock {product_id}: {current.stock} -> "
                f"{self._products[product_id].stock}"
            )
