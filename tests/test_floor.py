import unittest
from datetime import date, datetime, time

from bookings import BookingBook
from expenses import ExpenseBook
from ids import SequentialIdAllocator
from tables import TableRegistry, TableStatus, UnknownTableError
import seed


class TableRegistryTests(unittest.TestCase):
    """Floor plan and table status"""

    def setUp(self):
        self.tables = TableRegistry(seed.initial_tables())

    def test_seed_floor_plan(self):
        """Twelve tables; every third one seats four"""
        self.assertEqual(len(self.tables), 12)
        self.assertEqual(self.tables.get("1").capacity, 4)
        self.assertEqual(self.tables.get("2").capacity, 2)
        self.assertEqual(self.tables.get("4").capacity, 4)
        self.assertEqual(self.tables.get("1").name, "Table 1")

    def test_update_status(self):
        self.tables.update_status("3", TableStatus.OCCUPIED)

        self.assertEqual(self.tables.get("3").status, TableStatus.OCCUPIED)
        self.assertEqual(len(self.tables.available()), 11)

    def test_unknown_table(self):
        with self.assertRaises(UnknownTableError):
            self.tables.update_status("99", TableStatus.BOOKED)


class BookingTests(unittest.TestCase):
    """Reservations"""

    def setUp(self):
        self.tables = TableRegistry(seed.initial_tables())
        self.bookings = BookingBook(self.tables, id_allocator=SequentialIdAllocator())

    def test_booking_marks_table_booked(self):
        """A booking reserves the table"""
        booking = self.bookings.create("Andi", "5", date(2024, 3, 1), time(19, 30), 4)

        self.assertIsNotNone(booking)
        self.assertEqual(booking.id, "bkg_000001")
        self.assertEqual(booking.table_name, "Table 5")
        self.assertEqual(self.tables.get("5").status, TableStatus.BOOKED)
        self.assertEqual(booking.to_dict()["time"], "19:30")

    def test_missing_fields_rejected(self):
        """Name, table, date and time are all required"""
        self.assertIsNone(self.bookings.create("", "5", date(2024, 3, 1), time(19, 0)))
        self.assertIsNone(self.bookings.create("Andi", None, date(2024, 3, 1), time(19, 0)))
        self.assertIsNone(self.bookings.create("Andi", "5", None, time(19, 0)))
        self.assertIsNone(self.bookings.create("Andi", "5", date(2024, 3, 1), None))
        self.assertEqual(len(self.bookings), 0)

    def test_unavailable_table_rejected(self):
        """Only Available tables can be booked"""
        self.tables.update_status("2", TableStatus.OCCUPIED)

        self.assertIsNone(self.bookings.create("Andi", "2", date(2024, 3, 1), time(19, 0)))
        self.assertEqual(self.tables.get("2").status, TableStatus.OCCUPIED)

    def test_unknown_table_rejected(self):
        self.assertIsNone(self.bookings.create("Andi", "42", date(2024, 3, 1), time(19, 0)))

    def test_invalid_party_size_rejected(self):
        self.assertIsNone(self.bookings.create("Andi", "5", date(2024, 3, 1), time(19, 0), 0))


class ExpenseTests(unittest.TestCase):
    """Expense book"""

    def setUp(self):
        self.expenses = ExpenseBook(id_allocator=SequentialIdAllocator())

    def test_record_expense(self):
        expense = self.expenses.record("Ingredients", 30000, "Beras", datetime(2024, 1, 5))

        self.assertEqual(expense.id, "exp_000001")
        self.assertEqual(expense.amount, 30000)
        self.assertEqual([e.id for e in self.expenses], ["exp_000001"])

    def test_negative_amount_rejected(self):
        """Negative amounts are not recorded"""
        self.assertIsNone(self.expenses.record("Other", -1, "Refund"))
        self.assertEqual(len(self.expenses), 0)

    def test_default_date_is_now(self):
        before = datetime.now()
        expense = self.expenses.record("Utilities", 100000, "Listrik")
        self.assertGreaterEqual(expense.date, before)

    def test_unlisted_category_still_recorded(self):
        expense = self.expenses.record("Repairs", 5000, "Kursi")
        self.assertEqual(expense.category, "Repairs")


if __name__ == '__main__':
    unittest.main()
