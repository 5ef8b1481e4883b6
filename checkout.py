"""
Checkout Session
================
Drives one in-progress sale from cart to completed order.

    CART --start_checkout--> PAYMENT_SELECTION --select_payment_method-->
    PAYMENT_PROCESSING --(terminal sequence)--> SUCCESS --reset--> CART

Guard failures (empty cart, editing outside CART, unknown table...)
are logged and reported as False/None; they never raise.

The completed Order is handed to the order sink exactly once. The sink
owns the side effects (order book, stock, table status).
"""

import asyncio
import logging
from typing import Callable, Dict, List, Any, Optional
from datetime import datetime
from dataclasses import dataclass

from prometheus_client import Counter

from catalog import Product
from checkout_state import CheckoutState, CheckoutStateMachine
from ids import IdAllocator, UuidIdAllocator
from orders import (
    DEFAULT_TAX_PERCENT,
    Order,
    OrderItem,
    OrderStatus,
    OrderTotals,
    OrderType,
    compute_totals,
)
from payment import PaymentMethod, SimulatedPaymentTerminal
from tables import TableRegistry, TableStatus


logger = logging.getLogger(__name__)


checkout_rejections = Counter(
    'checkout_guard_rejections_total',
    'Checkout actions rejected by a guard',
    ['action']
)
checkouts_completed = Counter(
    'checkouts_completed_total',
    'Completed checkouts',
    ['order_type', 'payment_method']
)


@dataclass
class CartLine:
    product: Product
    quantity: int = 1

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


class CheckoutSession:
    """
    Single point-of-sale checkout.

    Only one payment can be in flight per session; while it runs, every
    other action is rejected until the session is back in CART.
    """

    def __init__(
        self,
        order_sink: Callable[[Order], None],
        tables: Optional[TableRegistry] = None,
        payment_terminal: Optional[SimulatedPaymentTerminal] = None,
        id_allocator: Optional[IdAllocator] = None,
        tax_percent: int = DEFAULT_TAX_PERCENT
    ):
        self._ids = id_allocator or UuidIdAllocator()
        self.session_id = self._ids.next_id("chk")
        self.state_machine = CheckoutStateMachine(self.session_id)

        self._order_sink = order_sink
        self._tables = tables
        self.payment_terminal = payment_terminal or SimulatedPaymentTerminal()
        self.tax_percent = tax_percent

        # Insertion order is display order
        self._cart: Dict[str, CartLine] = {}
        self.order_type = OrderType.DINE_IN
        self.table_id: Optional[str] = None
        self.payment_method: Optional[PaymentMethod] = None
        self.processing_status = ""
        self.last_order: Optional[Order] = None

        self._processing_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> CheckoutState:
        return self.state_machine.current_state

    # ========================================================================
    # GUARDS
    # ========================================================================

    def _reject(self, action: str, reason: str) -> bool:
        checkout_rejections.labels(action=action).inc()
        logger.warning(f"Checkout {self.session_id}: {action} rejected ({reason})")
        return False

    def _require_cart(self, action: str) -> bool:
        if self.state_machine.is_editable():
            return True
        return self._reject(action, f"state is {self.state.value}")

    # ========================================================================
    # CART
    # ========================================================================

    def add_item(self, product: Product) -> bool:
        """Add one unit of a product (increments an existing line)."""
        if not self._require_cart("add_item"):
            return False

        if product.is_deleted:
            return self._reject("add_item", f"product {product.id} is deleted")

        line = self._cart.get(product.id)
        if line:
            line.quantity += 1
        else:
            self._cart[product.id] = CartLine(product=product, quantity=1)

        logger.debug(f"Cart {self.session_id}: +1 {product.name}")
        return True

    def set_quantity(self, product_id: str, delta: int) -> bool:
        """Adjust a line by delta; the quantity never drops below 1."""
        if not self._require_cart("set_quantity"):
            return False

        line = self._cart.get(product_id)
        if line is None:
            return self._reject("set_quantity", f"product {product_id} not in cart")

        line.quantity = max(1, line.quantity + delta)
        return True

    def remove_item(self, product_id: str) -> bool:
        if not self._require_cart("remove_item"):
            return False

        if self._cart.pop(product_id, None) is None:
            return self._reject("remove_item", f"product {product_id} not in cart")

        return True

    def set_order_type(self, order_type: OrderType) -> bool:
        if not self._require_cart("set_order_type"):
            return False

        self.order_type = order_type

        # Take Away orders never hold a table
        if order_type != OrderType.DINE_IN:
            self.table_id = None

        return True

    def select_table(self, table_id: Optional[str]) -> bool:
        """
        Attach a table to a Dine-In order (None clears the selection).

        Only Available tables can be chosen.
        """
        if not self._require_cart("select_table"):
            return False

        if table_id:
            reason = self._table_problem(table_id)
            if reason:
                return self._reject("select_table", reason)

        self.table_id = table_id or None
        return True

    def _table_problem(self, table_id: str) -> Optional[str]:
        """Why the table cannot hold this order, or None if it can."""
        if self.order_type != OrderType.DINE_IN:
            return f"{self.order_type.value} orders take no table"

        if self._tables is None:
            return None

        if table_id not in self._tables:
            return f"unknown table {table_id}"

        table = self._tables.get(table_id)
        if table.status != TableStatus.AVAILABLE:
            return f"{table.name} is {table.status.value}"

        return None

    def lines(self) -> List[CartLine]:
        return list(self._cart.values())

    def is_empty(self) -> bool:
        return not self._cart

    def compute_totals(self) -> OrderTotals:
        """Totals of the current cart, recomputed on every call."""
        return compute_totals(self._cart.values(), self.order_type, self.tax_percent)

    # ========================================================================
    # CHECKOUT FLOW
    # ========================================================================

    def start_checkout(self) -> bool:
        """CART -> PAYMENT_SELECTION; rejected on an empty cart."""
        if self.state != CheckoutState.CART:
            return self._reject("start_checkout", f"state is {self.state.value}")

        if self.is_empty():
            return self._reject("start_checkout", "cart is empty")

        # the table may have been booked or occupied since it was chosen
        if self.table_id:
            reason = self._table_problem(self.table_id)
            if reason:
                return self._reject("start_checkout", reason)

        return self.state_machine.transition(CheckoutState.PAYMENT_SELECTION, reason="start_checkout")

    def cancel_payment(self) -> bool:
        """PAYMENT_SELECTION -> CART, keeping the cart."""
        if self.state != CheckoutState.PAYMENT_SELECTION:
            return self._reject("cancel_payment", f"state is {self.state.value}")

        return self.state_machine.transition(CheckoutState.CART, reason="cancel_payment")

    async def select_payment_method(self, method: PaymentMethod) -> Optional[Order]:
        """
        Pay and complete the order.

        Runs the terminal's status sequence, then records the order and
        moves to SUCCESS. Cancelling the awaiting caller does not stop the
        sequence: the order still completes.

        If the order sink refuses the order, the session returns to
        PAYMENT_SELECTION with the cart intact and the error is re-raised.

        Returns:
            The completed Order, or None if not in PAYMENT_SELECTION
        """
        if self.state != CheckoutState.PAYMENT_SELECTION:
            self._reject("select_payment_method", f"state is {self.state.value}")
            return None

        self.payment_method = method
        self.state_machine.transition(CheckoutState.PAYMENT_PROCESSING, reason=method.value)

        self._processing_task = asyncio.create_task(self._process_payment(method))
        self._processing_task.add_done_callback(self._collect_processing_result)
        return await asyncio.shield(self._processing_task)

    def _collect_processing_result(self, task: asyncio.Task):
        # retrieve the outcome even when the awaiting caller was cancelled
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                f"Checkout {self.session_id}: payment task failed ({task.exception()!r})"
            )

    async def _process_payment(self, method: PaymentMethod) -> Order:
        lines = [OrderItem(product=line.product, quantity=line.quantity) for line in self._cart.values()]
        totals = self.compute_totals()

        await self.payment_terminal.process(method, totals.total, on_status=self._set_processing_status)

        order = Order(
            id=self._ids.next_id("ord"),
            created_at=datetime.now(),
            order_type=self.order_type,
            items=tuple(lines),
            subtotal=totals.subtotal,
            tax=totals.tax,
            total=totals.total,
            status=OrderStatus.COMPLETED,
            table_id=self.table_id,
            payment_method=method
        )

        try:
            self._order_sink(order)
        except Exception as e:
            checkout_rejections.labels(action="record_order").inc()
            logger.error(f"Checkout {self.session_id}: order {order.id} not recorded ({str(e)})")
            self.payment_method = None
            self.processing_status = ""
            self.state_machine.transition(CheckoutState.PAYMENT_SELECTION, reason="order_not_recorded")
            raise

        self.last_order = order
        self.state_machine.transition(CheckoutState.SUCCESS, reason=f"order {order.id}")

        checkouts_completed.labels(
            order_type=order.order_type.value,
            payment_method=method.value
        ).inc()

        logger.info(f"Checkout {self.session_id} completed order {order.id} (total={order.total})")

        return order

    def _set_processing_status(self, status: str):
        self.processing_status = status

    def reset(self) -> bool:
        """Start a new order: clear everything and return to CART."""
        if self.state == CheckoutState.PAYMENT_PROCESSING:
            return self._reject("reset", "payment in progress")

        if self.state == CheckoutState.PAYMENT_SELECTION:
            self.state_machine.transition(CheckoutState.CART, reason="reset")
        elif self.state == CheckoutState.SUCCESS:
            self.state_machine.transition(CheckoutState.CART, reason="new_order")

        self._cart.clear()
        self.order_type = OrderType.DINE_IN
        self.table_id = None
        self.payment_method = None
        self.processing_status = ""
        self.last_order = None
        self._processing_task = None

        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "order_type": self.order_type.value,
            "table_id": self.table_id,
            "items": [line.to_dict() for line in self._cart.values()],
            **self.compute_totals().to_dict(),
            "payment_method": self.payment_method.value if self.payment_method else None,
            "processing_status": self.processing_status,
            "last_order": self.last_order.to_dict() if self.last_order else None,
            "history": [step.to_dict() for step in self.state_machine.history],
        }
