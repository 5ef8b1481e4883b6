import unittest
from datetime import date, datetime

from catalog import Product
from expenses import Expense
from ledger import (
    SIMULATED_EQUITY_OFFSET,
    LedgerView,
    Period,
    advice_summary,
    headline_stats,
    occupied_table_count,
    period_report,
    recent_orders,
    simulated_equity,
)
from orders import Order, OrderItem, OrderStatus, OrderType
from tables import Table, TableStatus


def make_order(order_id, created_at, price=35000, quantity=2, order_type=OrderType.DINE_IN, status=OrderStatus.COMPLETED):
    item = OrderItem(Product("1", "Nasi Goreng Spesial", price, "Food", 50), quantity)
    subtotal = item.line_total
    tax = (subtotal * 10 + 50) // 100 if order_type == OrderType.DINE_IN else 0
    return Order(
        id=order_id,
        created_at=created_at,
        order_type=order_type,
        items=(item,),
        subtotal=subtotal,
        tax=tax,
        total=subtotal + tax,
        status=status
    )


def make_expense(expense_id, when, amount, description="Beras"):
    return Expense(id=expense_id, date=when, category="Ingredients", amount=amount, description=description)


class HeadlineStatsTests(unittest.TestCase):
    """Dashboard revenue, cost and profit"""

    def test_profit_example(self):
        """77000 + 20000 revenue less 30000 cost is 67000 profit"""
        orders = [
            make_order("ord_a", datetime(2024, 1, 1)),
            make_order("ord_b", datetime(2024, 1, 2), price=20000, quantity=1, order_type=OrderType.TAKE_AWAY),
        ]
        expenses = [make_expense("exp_a", datetime(2024, 1, 1), 30000)]

        stats = headline_stats(orders, expenses)

        self.assertEqual(stats.revenue, 97000)
        self.assertEqual(stats.cost, 30000)
        self.assertEqual(stats.profit, 67000)
        self.assertEqual(stats.pending_orders, 0)

    def test_pending_orders_counted(self):
        orders = [make_order("ord_a", datetime(2024, 1, 1), status=OrderStatus.PENDING)]
        self.assertEqual(headline_stats(orders, []).pending_orders, 1)

    def test_empty_collections(self):
        stats = headline_stats([], [])
        self.assertEqual((stats.revenue, stats.cost, stats.profit), (0, 0, 0))


class PeriodReportTests(unittest.TestCase):
    """Profit and loss over an inclusive date range"""

    def setUp(self):
        self.orders = [
            make_order("ord_a", datetime(2024, 1, 1, 9, 0)),
            make_order("ord_b", datetime(2024, 1, 31, 23, 59, 59)),
            make_order("ord_c", datetime(2024, 2, 1, 0, 0)),
        ]
        self.expenses = [
            make_expense("exp_a", datetime(2024, 1, 15), 30000),
            make_expense("exp_b", datetime(2024, 2, 2), 50000),
        ]

    def test_end_date_is_inclusive(self):
        """An order late on the end date counts; the next day does not"""
        report = period_report(self.orders, self.expenses, Period(date(2024, 1, 1), date(2024, 1, 31)))

        self.assertEqual(report.order_count, 2)
        self.assertEqual(report.total_sales, 140000)
        self.assertEqual(report.total_tax, 14000)
        self.assertEqual(report.total_expense, 30000)
        self.assertEqual(report.net_profit, 110000)

    def test_start_date_is_inclusive(self):
        report = period_report(self.orders, self.expenses, Period(start=date(2024, 2, 1)))

        self.assertEqual(report.order_count, 1)
        self.assertEqual(report.expense_count, 1)

    def test_unbounded_period_covers_everything(self):
        report = period_report(self.orders, self.expenses)

        self.assertEqual(report.order_count, 3)
        self.assertEqual(report.total_expense, 80000)

    def test_sales_exclude_tax(self):
        """Net profit uses subtotals, not totals"""
        report = period_report(self.orders[:1], [])
        self.assertEqual(report.total_sales, 70000)
        self.assertEqual(report.net_profit, 70000)

    def test_simulated_equity(self):
        report = period_report(self.orders[:1], self.expenses[:1])
        self.assertEqual(simulated_equity(report), 40000 + SIMULATED_EQUITY_OFFSET)


class LedgerViewTests(unittest.TestCase):
    """General ledger rows"""

    def test_order_row_then_expense_row(self):
        """One order and one expense give a debit row then a credit row"""
        order = make_order("ord_abcdefg", datetime(2024, 1, 2))
        expense = make_expense("exp_a", datetime(2024, 1, 1), 30000, "Gas")

        rows = list(LedgerView([order], [expense]))

        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[0].debit, 77000)
        self.assertIsNone(rows[0].credit)
        self.assertEqual(rows[0].description, "Sales Order #ord_a")
        self.assertIsNone(rows[1].debit)
        self.assertEqual(rows[1].credit, 30000)
        self.assertEqual(rows[1].description, "Gas")

    def test_view_is_restartable(self):
        """Iterating twice sees the collection as it is at each pass"""
        orders = [make_order("ord_a", datetime(2024, 1, 2))]
        view = LedgerView(orders, [])

        self.assertEqual(len(list(view)), 1)
        orders.append(make_order("ord_b", datetime(2024, 1, 3)))
        self.assertEqual(len(list(view)), 2)

    def test_view_honours_period(self):
        orders = [make_order("ord_a", datetime(2024, 1, 2)), make_order("ord_b", datetime(2024, 3, 2))]
        view = LedgerView(orders, [], Period(end=date(2024, 1, 31)))

        self.assertEqual([row.reference for row in view], ["ord_a"])


class DashboardExtrasTests(unittest.TestCase):

    def test_recent_orders_newest_first(self):
        orders = [make_order(f"ord_{i}", datetime(2024, 1, i + 1)) for i in range(7)]
        recent = recent_orders(orders, limit=5)
        self.assertEqual([o.id for o in recent], ["ord_6", "ord_5", "ord_4", "ord_3", "ord_2"])

    def test_occupied_table_count(self):
        tables = [
            Table("1", 1, 4, TableStatus.OCCUPIED),
            Table("2", 2, 2, TableStatus.BOOKED),
            Table("3", 3, 2, TableStatus.OCCUPIED),
        ]
        self.assertEqual(occupied_table_count(tables), 2)

    def test_advice_summary(self):
        report = period_report([make_order("ord_a", datetime(2024, 1, 2))], [make_expense("exp_a", datetime(2024, 1, 1), 30000)])
        summary = advice_summary(report, [make_expense("exp_a", datetime(2024, 1, 1), 30000)])

        self.assertEqual(
            summary,
            "Total Sales: 70000, Total Expense: 30000, Net Profit: 40000. Breakdown expenses: Beras(30000)"
        )


if __name__ == '__main__':
    unittest.main()
