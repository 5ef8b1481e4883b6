"""
Restaurant Controller
=====================
Single owner of the back-office state.

Responsibilities:
- Own every collection (catalog, tables, orders, expenses, bookings, users)
- Expose each mutation as one explicit operation
- Act as the order sink for the checkout session
- Serve the derived reports

Completing an order (append order, decrement stock, occupy table) is one
synchronous step with no suspension point, so it is all-or-nothing on the
event loop.
"""

from datetime import date, datetime, time
from typing import Dict, Any, Optional
from dataclasses import dataclass

import structlog

import ledger
import seed
from advice import FinancialAdvisor
from bookings import Booking, BookingBook
from catalog import Catalog, Product
from checkout import CheckoutSession
from config import Config
from expenses import Expense, ExpenseBook
from ids import IdAllocator, UuidIdAllocator
from orders import DEFAULT_TAX_PERCENT, Order, OrderBook
from payment import PaymentMethod, SimulatedPaymentTerminal
from tables import Table, TableRegistry, TableStatus, UnknownTableError
from users import User, UserDirectory, UserRole

# Structured logging
logger = structlog.get_logger(__name__)


@dataclass
class RestaurantState:
    """Every in-memory collection of one restaurant."""
    catalog: Catalog
    tables: TableRegistry
    orders: OrderBook
    expenses: ExpenseBook
    bookings: BookingBook
    users: UserDirectory


def create_state(
    seed_demo_data: bool = True,
    id_allocator: Optional[IdAllocator] = None
) -> RestaurantState:
    """Build a fresh state, optionally loaded with the demo data."""
    ids = id_allocator or UuidIdAllocator()

    tables = TableRegistry(seed.initial_tables() if seed_demo_data else ())

    return RestaurantState(
        catalog=Catalog(seed.initial_products() if seed_demo_data else (), id_allocator=ids),
        tables=tables,
        orders=OrderBook(),
        expenses=ExpenseBook(id_allocator=ids),
        bookings=BookingBook(tables, id_allocator=ids),
        users=UserDirectory(seed.initial_users() if seed_demo_data else (), id_allocator=ids)
    )


class RestaurantController:
    """
    Back-office controller.

    This class:
    - Routes actions to the owning collection
    - Records completed orders atomically
    - Builds reports from the current collections

    This class does NOT:
    - Cache any derived figure
    - Render or format anything for display
    """

    def __init__(
        self,
        state: Optional[RestaurantState] = None,
        payment_terminal: Optional[SimulatedPaymentTerminal] = None,
        advisor: Optional[FinancialAdvisor] = None,
        id_allocator: Optional[IdAllocator] = None,
        tax_percent: int = DEFAULT_TAX_PERCENT,
        low_stock_threshold: int = 10,
        recent_orders_limit: int = 5,
        currency: str = "IDR"
    ):
        self._ids = id_allocator or UuidIdAllocator()
        self.state = state or create_state(id_allocator=self._ids)
        self.advisor = advisor or FinancialAdvisor(enabled=False)
        self.low_stock_threshold = low_stock_threshold
        self.recent_orders_limit = recent_orders_limit
        self.currency = currency

        self.checkout = CheckoutSession(
            order_sink=self.record_order,
            tables=self.state.tables,
            payment_terminal=payment_terminal,
            id_allocator=self._ids,
            tax_percent=tax_percent
        )

        logger.info(
            "restaurant_controller_created",
            products=len(self.state.catalog),
            tables=len(self.state.tables),
            users=len(self.state.users),
            checkout_session=self.checkout.session_id
        )

    @classmethod
    def from_config(cls, config: Config) -> 'RestaurantController':
        ids = UuidIdAllocator()
        return cls(
            state=create_state(config.features.seed_demo_data, id_allocator=ids),
            payment_terminal=SimulatedPaymentTerminal(step_delay=config.payment.step_delay_seconds),
            advisor=FinancialAdvisor.from_config(config),
            id_allocator=ids,
            tax_percent=config.core.dine_in_tax_percent,
            low_stock_threshold=config.core.low_stock_threshold,
            recent_orders_limit=config.core.recent_orders_limit,
            currency=config.core.currency
        )

    # ========================================================================
    # ORDER SINK
    # ========================================================================

    def record_order(self, order: Order) -> None:
        """
        Record a completed order and apply its effects.

        Validates before mutating anything, then appends the order,
        decrements stock and marks the table Occupied.

        Raises:
            UnknownTableError: If the order names an unregistered table
            ValueError: If the order id was already recorded
        """
        if order.table_id is not None and order.table_id not in self.state.tables:
            raise UnknownTableError(order.table_id)

        self.state.orders.append(order)
        self.state.catalog.apply_order(order)

        if order.table_id is not None:
            self.state.tables.update_status(order.table_id, TableStatus.OCCUPIED)

        logger.info(
            "order_recorded",
            order_id=order.id,
            order_type=order.order_type.value,
            total=order.total,
            table_id=order.table_id
        )

    # ========================================================================
    # CHECKOUT
    # ========================================================================

    def add_to_cart(self, product_id: str) -> bool:
        """
        Raises:
            UnknownProductError: If the product is not in the catalog
        """
        return self.checkout.add_item(self.state.catalog.get(product_id))

    async def pay(self, method: PaymentMethod) -> Optional[Order]:
        return await self.checkout.select_payment_method(method)

    # ========================================================================
    # INVENTORY
    # ========================================================================

    def add_product(self, name: str, price: int, category: str, stock: int = 0, image: str = "") -> Product:
        product = self.state.catalog.add_product(name, price, category, stock, image)
        logger.info("product_added", product_id=product.id)
        return product

    def update_product(self, product_id: str, **changes: Any) -> Product:
        return self.state.catalog.update_product(product_id, **changes)

    def delete_product(self, product_id: str) -> Product:
        return self.state.catalog.soft_delete(product_id)

    # ========================================================================
    # TABLES & BOOKINGS
    # ========================================================================

    def update_table_status(self, table_id: str, status: TableStatus) -> Table:
        table = self.state.tables.update_status(table_id, status)
        logger.info("table_status_updated", table_id=table_id, status=status.value)
        return table

    def create_booking(
        self,
        customer_name: Optional[str],
        table_id: Optional[str],
        booking_date: Optional[date],
        booking_time: Optional[time],
        party_size: int = 2
    ) -> Optional[Booking]:
        booking = self.state.bookings.create(
            customer_name, table_id, booking_date, booking_time, party_size
        )
        if booking is None:
            logger.warning("booking_rejected", table_id=table_id)
        return booking

    # ========================================================================
    # EXPENSES
    # ========================================================================

    def record_expense(
        self,
        category: str,
        amount: int,
        description: str,
        expense_date: Optional[datetime] = None
    ) -> Optional[Expense]:
        return self.state.expenses.record(category, amount, description, expense_date)

    # ========================================================================
    # USERS
    # ========================================================================

    def register_user(self, name: str, email: str, password: str) -> User:
        return self.state.users.register(name, email, password)

    def login(self, email: str, password: str) -> User:
        return self.state.users.authenticate(email, password)

    def approve_user(self, user_id: str, role: UserRole = UserRole.STAFF) -> User:
        user = self.state.users.approve(user_id, role)
        logger.info("user_approved", user_id=user_id, role=role.value)
        return user

    def reject_user(self, user_id: str) -> User:
        user = self.state.users.reject(user_id)
        logger.info("user_rejected", user_id=user_id)
        return user

    # ========================================================================
    # REPORTS
    # ========================================================================

    def stats(self) -> ledger.HeadlineStats:
        return ledger.headline_stats(self.state.orders, self.state.expenses)

    def period_report(self, start: Optional[date] = None, end: Optional[date] = None) -> ledger.PeriodReport:
        return ledger.period_report(self.state.orders, self.state.expenses, ledger.Period(start, end))

    def ledger_view(self, start: Optional[date] = None, end: Optional[date] = None) -> ledger.LedgerView:
        return ledger.LedgerView(self.state.orders, self.state.expenses, ledger.Period(start, end))

    def balance_sheet(self, start: Optional[date] = None, end: Optional[date] = None) -> Dict[str, Any]:
        report = self.period_report(start, end)
        return {
            "period": report.period.to_dict(),
            "net_profit": report.net_profit,
            "opening_equity": ledger.SIMULATED_EQUITY_OFFSET,
            "equity": ledger.simulated_equity(report),
        }

    def dashboard(self) -> Dict[str, Any]:
        return {
            "currency": self.currency,
            "stats": self.stats().to_dict(),
            "occupied_tables": ledger.occupied_table_count(self.state.tables.all()),
            "recent_orders": [
                order.to_dict()
                for order in ledger.recent_orders(self.state.orders, self.recent_orders_limit)
            ],
            "low_stock": [
                product.to_dict()
                for product in self.state.catalog.low_stock(self.low_stock_threshold)
            ],
        }

    async def financial_advice(self, start: Optional[date] = None, end: Optional[date] = None) -> str:
        """Advisory text for the period; never alters financial state."""
        report = self.period_report(start, end)
        summary = ledger.advice_summary(report, self.state.expenses)

        logger.info("financial_advice_requested", period=report.period.to_dict())

        return await self.advisor.get_advice(summary)
