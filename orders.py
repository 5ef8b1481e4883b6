"""
Orders Module
=============
Immutable order records, the totals rule, and the append-only order book.

Totals rule (deterministic, integer currency units):
    subtotal = sum(price * quantity)
    tax      = subtotal * tax_percent / 100 (half-up) for Dine-In, else 0
    total    = subtotal + tax

An Order validates its own totals on construction and cannot be
modified afterwards.
"""

import logging
from typing import Dict, List, Any, Optional, Tuple, Iterable
from datetime import datetime
from dataclasses import dataclass
from enum import Enum

from prometheus_client import Counter, Histogram

from catalog import Product
from payment import PaymentMethod


logger = logging.getLogger(__name__)


DEFAULT_TAX_PERCENT = 10


# ============================================================================
# METRICS
# ============================================================================

orders_recorded = Counter(
    'orders_recorded_total',
    'Orders appended to the order book',
    ['order_type', 'status']
)
order_value = Histogram(
    'order_value',
    'Order total distribution (currency units)',
    buckets=(10_000, 25_000, 50_000, 100_000, 250_000, 500_000, 1_000_000)
)


# ============================================================================
# ENUMS
# ============================================================================

class OrderType(Enum):
    DINE_IN = "Dine-In"
    TAKE_AWAY = "Take Away"


class OrderStatus(Enum):
    COMPLETED = "Completed"
    PENDING = "Pending"
    CANCELLED = "Cancelled"


# ============================================================================
# ORDER ITEM
# ============================================================================

@dataclass(frozen=True)
class OrderItem:
    """
    Immutable order line.

    Holds the product as it was when the line was sold.
    """
    product: Product
    quantity: int

    def __post_init__(self):
        if self.quantity < 1:
            raise ValueError(
                f"Invalid quantity for {self.product.name}: {self.quantity}"
            )

    @property
    def line_total(self) -> int:
        return self.product.price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product.id,
            "name": self.product.name,
            "price": self.product.price,
            "quantity": self.quantity,
            "line_total": self.line_total,
        }


# ============================================================================
# TOTALS
# ============================================================================

@dataclass(frozen=True)
class OrderTotals:
    subtotal: int
    tax: int
    total: int

    def to_dict(self) -> Dict[str, int]:
        return {"subtotal": self.subtotal, "tax": self.tax, "total": self.total}


def compute_tax(subtotal: int, order_type: OrderType, tax_percent: int = DEFAULT_TAX_PERCENT) -> int:
    """Dine-In tax, rounded half-up to whole currency units; Take Away is untaxed."""
    if order_type != OrderType.DINE_IN:
        return 0
    return (subtotal * tax_percent + 50) // 100


def compute_totals(
    lines: Iterable[Any],
    order_type: OrderType,
    tax_percent: int = DEFAULT_TAX_PERCENT
) -> OrderTotals:
    """
    Compute order totals.

    Args:
        lines: Anything with ``product.price`` and ``quantity``
        order_type: Dine-In is taxed, Take Away is not
        tax_percent: Dine-In tax percentage

    Returns:
        OrderTotals where total == subtotal + tax
    """
    subtotal = sum(line.product.price * line.quantity for line in lines)
    tax = compute_tax(subtotal, order_type, tax_percent)
    return OrderTotals(subtotal=subtotal, tax=tax, total=subtotal + tax)


# ============================================================================
# ORDER
# ============================================================================

@dataclass(frozen=True)
class Order:
    """
    Completed sale (immutable).

    Raises:
        ValueError: On construction when the totals are inconsistent
    """
    id: str
    created_at: datetime
    order_type: OrderType
    items: Tuple[OrderItem, ...]
    subtotal: int
    tax: int
    total: int
    status: OrderStatus = OrderStatus.COMPLETED
    table_id: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None

    def __post_init__(self):
        errors = self.validate()
        if errors:
            raise ValueError(f"Invalid order {self.id}: {'; '.join(errors)}")

    def validate(self) -> List[str]:
        """Return integrity errors (empty when valid)."""
        errors = []

        if not self.items:
            errors.append("Order has no items")

        expected_subtotal = sum(item.line_total for item in self.items)
        if self.subtotal != expected_subtotal:
            errors.append(f"Subtotal mismatch: {self.subtotal} != {expected_subtotal}")

        if self.tax < 0:
            errors.append(f"Negative tax: {self.tax}")

        if self.total != self.subtotal + self.tax:
            errors.append(f"Total mismatch: {self.total} != {self.subtotal + self.tax}")

        return errors

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "created_at": self.created_at.isoformat(),
            "order_type": self.order_type.value,
            "items": [item.to_dict() for item in self.items],
            "item_count": self.item_count,
            "subtotal": self.subtotal,
            "tax": self.tax,
            "total": self.total,
            "status": self.status.value,
            "table_id": self.table_id,
            "payment_method": self.payment_method.value if self.payment_method else None,
        }


# ============================================================================
# ORDER BOOK
# ============================================================================

class OrderBook:
    """
    Append-only order collection.

    Iteration yields orders in the order they were recorded.
    """

    def __init__(self):
        self._orders: List[Order] = []
        self._by_id: Dict[str, Order] = {}

    def __iter__(self):
        return iter(list(self._orders))

    def __len__(self) -> int:
        return len(self._orders)

    def append(self, order: Order) -> None:
        """
        Raises:
            ValueError: If an order with the same id was already recorded
        """
        if order.id in self._by_id:
            raise ValueError(f"Duplicate order id: {order.id}")

        self._orders.append(order)
        self._by_id[order.id] = order

        orders_recorded.labels(
            order_type=order.order_type.value,
            status=order.status.value
        ).inc()
        order_value.observe(order.total)

        logger.info(
            f"Order recorded: {order.id} ({order.order_type.value}, "
            f"total={order.total}, items={order.item_count})"
        )

    def get(self, order_id: str) -> Optional[Order]:
        return self._by_id.get(order_id)
