"""
Ledger & Reporting
==================
Financial views derived from the order and expense collections.

Everything here is a pure function of its inputs and is recomputed on
every read; nothing is cached. Callers pass snapshots (any iterable) of
the two append-only collections.

Reports:
- headline_stats: revenue, cost, profit, pending orders
- period_report: P&L over an inclusive date range
- LedgerView: one row per order (debit) and per expense (credit)
- simulated_equity: placeholder balance-sheet figure
"""

import logging
from typing import Dict, List, Any, Optional, Iterable, Iterator
from datetime import date, datetime, time
from dataclasses import dataclass

from expenses import Expense
from orders import Order, OrderStatus
from tables import Table, TableStatus


logger = logging.getLogger(__name__)


# Fixed opening-equity figure shown on the balance sheet
SIMULATED_EQUITY_OFFSET = 50_000_000


# ============================================================================
# HEADLINE STATS
# ============================================================================

@dataclass(frozen=True)
class HeadlineStats:
    revenue: int
    cost: int
    profit: int
    pending_orders: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "revenue": self.revenue,
            "cost": self.cost,
            "profit": self.profit,
            "pending_orders": self.pending_orders,
        }


def headline_stats(orders: Iterable[Order], expenses: Iterable[Expense]) -> HeadlineStats:
    """
    Dashboard figures over all orders and expenses.

    pending_orders counts orders with status Pending; checkout only
    produces Completed orders, so it is 0 today.
    """
    orders = list(orders)
    revenue = sum(order.total for order in orders)
    cost = sum(expense.amount for expense in expenses)
    pending = sum(1 for order in orders if order.status == OrderStatus.PENDING)

    return HeadlineStats(
        revenue=revenue,
        cost=cost,
        profit=revenue - cost,
        pending_orders=pending
    )


# ============================================================================
# PERIOD FILTER
# ============================================================================

@dataclass(frozen=True)
class Period:
    """
    Inclusive date range. Either bound may be None (unbounded).

    The end bound covers the whole end day.
    """
    start: Optional[date] = None
    end: Optional[date] = None

    @property
    def start_at(self) -> Optional[datetime]:
        return datetime.combine(_as_date(self.start), time.min) if self.start else None

    @property
    def end_at(self) -> Optional[datetime]:
        return datetime.combine(_as_date(self.end), time.max) if self.end else None

    def contains(self, moment: datetime) -> bool:
        start_at = self.start_at
        end_at = self.end_at

        if start_at is not None and moment < start_at:
            return False
        if end_at is not None and moment > end_at:
            return False
        return True

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
        }


ALL_TIME = Period()


def _as_date(value: date) -> date:
    # datetime is a subclass of date; drop the clock part
    return value.date() if isinstance(value, datetime) else value


def filter_orders(orders: Iterable[Order], period: Period = ALL_TIME) -> List[Order]:
    return [order for order in orders if period.contains(order.created_at)]


def filter_expenses(expenses: Iterable[Expense], period: Period = ALL_TIME) -> List[Expense]:
    return [expense for expense in expenses if period.contains(expense.date)]


# ============================================================================
# PROFIT & LOSS
# ============================================================================

@dataclass(frozen=True)
class PeriodReport:
    period: Period
    total_sales: int
    total_tax: int
    total_expense: int
    net_profit: int
    order_count: int
    expense_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period.to_dict(),
            "total_sales": self.total_sales,
            "total_tax": self.total_tax,
            "total_expense": self.total_expense,
            "net_profit": self.net_profit,
            "order_count": self.order_count,
            "expense_count": self.expense_count,
        }


def period_report(
    orders: Iterable[Order],
    expenses: Iterable[Expense],
    period: Period = ALL_TIME
) -> PeriodReport:
    """
    Profit & loss for a period.

    Sales are order subtotals (tax excluded); net profit is sales minus
    expenses.
    """
    in_orders = filter_orders(orders, period)
    in_expenses = filter_expenses(expenses, period)

    total_sales = sum(order.subtotal for order in in_orders)
    total_tax = sum(order.tax for order in in_orders)
    total_expense = sum(expense.amount for expense in in_expenses)

    return PeriodReport(
        period=period,
        total_sales=total_sales,
        total_tax=total_tax,
        total_expense=total_expense,
        net_profit=total_sales - total_expense,
        order_count=len(in_orders),
        expense_count=len(in_expenses)
    )


def simulated_equity(report: PeriodReport) -> int:
    """Balance-sheet equity: net profit plus a fixed opening figure."""
    return report.total_sales - report.total_expense + SIMULATED_EQUITY_OFFSET


# ============================================================================
# LEDGER
# ============================================================================

@dataclass(frozen=True)
class LedgerRow:
    date: datetime
    description: str
    debit: Optional[int]
    credit: Optional[int]
    source: str
    reference: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "description": self.description,
            "debit": self.debit,
            "credit": self.credit,
            "source": self.source,
            "reference": self.reference,
        }


class LedgerView:
    """
    Lazy, restartable general-ledger rows.

    Order rows come first (debit = total), then expense rows
    (credit = amount), each in insertion order. Every iteration starts
    over from the underlying collections.
    """

    def __init__(
        self,
        orders: Iterable[Order],
        expenses: Iterable[Expense],
        period: Period = ALL_TIME
    ):
        self._orders = orders
        self._expenses = expenses
        self.period = period

    def __iter__(self) -> Iterator[LedgerRow]:
        for order in self._orders:
            if self.period.contains(order.created_at):
                yield LedgerRow(
                    date=order.created_at,
                    description=f"Sales Order #{order.id[:5]}",
                    debit=order.total,
                    credit=None,
                    source="order",
                    reference=order.id
                )

        for expense in self._expenses:
            if self.period.contains(expense.date):
                yield LedgerRow(
                    date=expense.date,
                    description=expense.description,
                    debit=None,
                    credit=expense.amount,
                    source="expense",
                    reference=expense.id
                )


# ============================================================================
# DASHBOARD EXTRAS
# ============================================================================

def occupied_table_count(tables: Iterable[Table]) -> int:
    return sum(1 for table in tables if table.status == TableStatus.OCCUPIED)


def recent_orders(orders: Iterable[Order], limit: int = 5) -> List[Order]:
    """Newest first."""
    ordered = list(orders)
    return list(reversed(ordered[-limit:])) if limit > 0 else []


def advice_summary(report: PeriodReport, expenses: Iterable[Expense]) -> str:
    """Plain-text summary handed to the financial advisor."""
    breakdown = ", ".join(
        f"{expense.description}({expense.amount})"
        for expense in filter_expenses(expenses, report.period)
    )
    return (
        f"Total Sales: {report.total_sales}, "
        f"Total Expense: {report.total_expense}, "
        f"Net Profit: {report.net_profit}. "
        f"Breakdown expenses: {breakdown}"
    )
