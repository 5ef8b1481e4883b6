import asyncio
import unittest

from catalog import Catalog
from checkout import CheckoutSession
from checkout_state import CheckoutState, CheckoutStateMachine, StateTransitionError
from ids import SequentialIdAllocator
from orders import OrderType
from payment import PROCESSING_STEPS, PaymentMethod, SimulatedPaymentTerminal
from tables import TableRegistry, TableStatus
import seed


class StateMachineTests(unittest.TestCase):
    """Checkout transition table"""

    def setUp(self):
        self.machine = CheckoutStateMachine("chk_test")

    def test_starts_in_cart(self):
        self.assertEqual(self.machine.current_state, CheckoutState.CART)
        self.assertTrue(self.machine.is_editable())

    def test_full_cycle(self):
        """CART -> SELECTION -> PROCESSING -> SUCCESS -> CART"""
        for target in (
            CheckoutState.PAYMENT_SELECTION,
            CheckoutState.PAYMENT_PROCESSING,
            CheckoutState.SUCCESS,
            CheckoutState.CART,
        ):
            self.assertTrue(self.machine.transition(target))

        history = self.machine.history
        self.assertEqual(len(history), 5)
        self.assertIsNone(history[0].source)
        self.assertEqual(history[-1].source, CheckoutState.SUCCESS)

    def test_processing_cannot_return_to_cart(self):
        """A payment in flight never goes straight back to CART"""
        self.machine.transition(CheckoutState.PAYMENT_SELECTION)
        self.machine.transition(CheckoutState.PAYMENT_PROCESSING)

        self.assertTrue(self.machine.is_processing())
        with self.assertRaises(StateTransitionError):
            self.machine.transition(CheckoutState.CART)

    def test_refused_order_returns_to_selection(self):
        """PROCESSING may fall back to method selection"""
        self.machine.transition(CheckoutState.PAYMENT_SELECTION)
        self.machine.transition(CheckoutState.PAYMENT_PROCESSING)

        self.assertTrue(self.machine.transition(CheckoutState.PAYMENT_SELECTION, reason="order_not_recorded"))
        self.assertEqual(self.machine.history[-1].reason, "order_not_recorded")

    def test_cart_cannot_skip_to_success(self):
        with self.assertRaises(StateTransitionError):
            self.machine.transition(CheckoutState.SUCCESS)


class CheckoutSessionTests(unittest.IsolatedAsyncioTestCase):
    """Cart editing, guards and the payment flow"""

    def setUp(self):
        self.catalog = Catalog(seed.initial_products())
        self.tables = TableRegistry(seed.initial_tables())
        self.recorded = []
        self.session = CheckoutSession(
            order_sink=self.recorded.append,
            tables=self.tables,
            payment_terminal=SimulatedPaymentTerminal(step_delay=0),
            id_allocator=SequentialIdAllocator()
        )
        self.nasi = self.catalog.get("1")
        self.teh = self.catalog.get("3")

    def test_same_product_twice_is_one_line(self):
        """Adding a product twice yields one line of quantity 2"""
        self.session.add_item(self.nasi)
        self.session.add_item(self.nasi)

        lines = self.session.lines()
        self.assertEqual(len(lines), 1)
        self.assertEqual(lines[0].quantity, 2)

    def test_quantity_floors_at_one(self):
        """Repeated decrements never go below 1"""
        self.session.add_item(self.nasi)
        for _ in range(5):
            self.session.set_quantity(self.nasi.id, -1)

        self.assertEqual(self.session.lines()[0].quantity, 1)

    def test_remove_item(self):
        self.session.add_item(self.nasi)
        self.assertTrue(self.session.remove_item(self.nasi.id))
        self.assertTrue(self.session.is_empty())
        self.assertFalse(self.session.remove_item(self.nasi.id))

    def test_deleted_product_cannot_be_added(self):
        deleted = self.catalog.soft_delete("2")
        self.assertFalse(self.session.add_item(deleted))
        self.assertTrue(self.session.is_empty())

    def test_totals_follow_order_type(self):
        """Switching to Take Away drops the tax"""
        self.session.add_item(self.nasi)
        self.session.add_item(self.nasi)
        self.assertEqual(self.session.compute_totals().total, 77000)

        self.session.set_order_type(OrderType.TAKE_AWAY)
        self.assertEqual(self.session.compute_totals().total, 70000)

    def test_empty_cart_cannot_start_checkout(self):
        """start_checkout on an empty cart stays in CART"""
        self.assertFalse(self.session.start_checkout())
        self.assertEqual(self.session.state, CheckoutState.CART)
        self.assertEqual(self.recorded, [])

    def test_unknown_table_rejected(self):
        self.assertFalse(self.session.select_table("99"))
        self.assertIsNone(self.session.table_id)

    def test_booked_table_rejected(self):
        self.tables.update_status("3", TableStatus.BOOKED)

        self.assertFalse(self.session.select_table("3"))
        self.assertIsNone(self.session.table_id)

    def test_occupied_table_rejected(self):
        self.tables.update_status("5", TableStatus.OCCUPIED)

        self.assertFalse(self.session.select_table("5"))
        self.assertIsNone(self.session.table_id)

    def test_take_away_takes_no_table(self):
        self.session.set_order_type(OrderType.TAKE_AWAY)

        self.assertFalse(self.session.select_table("2"))
        self.assertIsNone(self.session.table_id)

    def test_switching_to_take_away_drops_table(self):
        """A table chosen for Dine-In is released on Take Away"""
        self.assertTrue(self.session.select_table("2"))
        self.session.set_order_type(OrderType.TAKE_AWAY)

        self.assertIsNone(self.session.table_id)

    def test_table_booked_after_selection_blocks_checkout(self):
        """start_checkout re-checks the chosen table"""
        self.session.add_item(self.nasi)
        self.assertTrue(self.session.select_table("6"))
        self.tables.update_status("6", TableStatus.BOOKED)

        self.assertFalse(self.session.start_checkout())
        self.assertEqual(self.session.state, CheckoutState.CART)

    def test_cart_locked_outside_cart_state(self):
        """No cart edits once checkout has started"""
        self.session.add_item(self.nasi)
        self.session.start_checkout()

        self.assertFalse(self.session.add_item(self.teh))
        self.assertFalse(self.session.set_quantity(self.nasi.id, 1))
        self.assertFalse(self.session.set_order_type(OrderType.TAKE_AWAY))
        self.assertFalse(self.session.select_table("1"))
        self.assertEqual(self.session.lines()[0].quantity, 1)

    def test_cancel_keeps_cart(self):
        self.session.add_item(self.nasi)
        self.session.start_checkout()

        self.assertTrue(self.session.cancel_payment())
        self.assertEqual(self.session.state, CheckoutState.CART)
        self.assertEqual(len(self.session.lines()), 1)

    async def test_pay_outside_selection_returns_none(self):
        self.session.add_item(self.nasi)
        self.assertIsNone(await self.session.select_payment_method(PaymentMethod.CASH))
        self.assertEqual(self.recorded, [])

    async def test_payment_completes_order(self):
        """Paying produces exactly one order and moves to SUCCESS"""
        self.session.add_item(self.nasi)
        self.session.add_item(self.nasi)
        self.session.select_table("4")
        self.session.start_checkout()

        order = await self.session.select_payment_method(PaymentMethod.QRIS)

        self.assertEqual(self.session.state, CheckoutState.SUCCESS)
        self.assertEqual(self.recorded, [order])
        self.assertEqual(order.id, "ord_000002")
        self.assertEqual(order.total, 77000)
        self.assertEqual(order.table_id, "4")
        self.assertEqual(order.payment_method, PaymentMethod.QRIS)
        self.assertEqual(self.session.last_order, order)
        self.assertEqual(self.session.processing_status, PROCESSING_STEPS[-1])

    async def test_actions_rejected_while_processing(self):
        """Every action is refused while the payment runs"""
        self.session.payment_terminal = SimulatedPaymentTerminal(step_delay=0.01)
        self.session.add_item(self.nasi)
        self.session.start_checkout()

        task = asyncio.create_task(self.session.select_payment_method(PaymentMethod.CARD))
        await asyncio.sleep(0)

        self.assertEqual(self.session.state, CheckoutState.PAYMENT_PROCESSING)
        self.assertFalse(self.session.reset())
        self.assertFalse(self.session.cancel_payment())
        self.assertFalse(self.session.add_item(self.teh))
        self.assertIsNone(await self.session.select_payment_method(PaymentMethod.CASH))

        await task
        self.assertEqual(len(self.recorded), 1)

    async def test_cancelled_caller_still_completes(self):
        """Cancelling the awaiting caller does not abort the payment"""
        self.session.payment_terminal = SimulatedPaymentTerminal(step_delay=0.01)
        self.session.add_item(self.nasi)
        self.session.start_checkout()

        task = asyncio.create_task(self.session.select_payment_method(PaymentMethod.CASH))
        await asyncio.sleep(0.005)
        task.cancel()

        while self.session.state != CheckoutState.SUCCESS:
            await asyncio.sleep(0.01)

        self.assertEqual(len(self.recorded), 1)

    async def test_reset_after_success(self):
        """A new order starts from a clean Dine-In cart"""
        self.session.add_item(self.nasi)
        self.session.select_table("2")
        self.session.start_checkout()
        await self.session.select_payment_method(PaymentMethod.CASH)

        self.assertTrue(self.session.reset())

        self.assertEqual(self.session.state, CheckoutState.CART)
        self.assertTrue(self.session.is_empty())
        self.assertEqual(self.session.order_type, OrderType.DINE_IN)
        self.assertIsNone(self.session.table_id)
        self.assertIsNone(self.session.last_order)


def _refuse(order):
    raise ValueError(f"cannot record {order.id}")


class RefusedOrderTests(unittest.IsolatedAsyncioTestCase):
    """A failing order sink leaves the session recoverable"""

    def setUp(self):
        self.catalog = Catalog(seed.initial_products())
        self.session = CheckoutSession(
            order_sink=_refuse,
            payment_terminal=SimulatedPaymentTerminal(step_delay=0),
            id_allocator=SequentialIdAllocator()
        )
        self.nasi = self.catalog.get("1")

    async def test_error_reaches_caller(self):
        self.session.add_item(self.nasi)
        self.session.add_item(self.nasi)
        self.session.start_checkout()

        with self.assertRaises(ValueError):
            await self.session.select_payment_method(PaymentMethod.CARD)

        self.assertEqual(self.session.state, CheckoutState.PAYMENT_SELECTION)
        self.assertEqual(self.session.lines()[0].quantity, 2)
        self.assertIsNone(self.session.payment_method)
        self.assertIsNone(self.session.last_order)
        self.assertEqual(self.session.processing_status, "")

    async def test_cashier_can_cancel_or_reset(self):
        self.session.add_item(self.nasi)
        self.session.start_checkout()

        with self.assertRaises(ValueError):
            await self.session.select_payment_method(PaymentMethod.CASH)

        self.assertTrue(self.session.cancel_payment())
        self.assertEqual(self.session.state, CheckoutState.CART)
        self.assertTrue(self.session.reset())
        self.assertTrue(self.session.is_empty())

    async def test_cancelled_caller_does_not_strand_session(self):
        """The refusal is collected even when nobody awaits it"""
        self.session.payment_terminal = SimulatedPaymentTerminal(step_delay=0.01)
        self.session.add_item(self.nasi)
        self.session.start_checkout()

        task = asyncio.create_task(self.session.select_payment_method(PaymentMethod.QRIS))
        await asyncio.sleep(0.005)
        task.cancel()

        while self.session.state == CheckoutState.PAYMENT_PROCESSING:
            await asyncio.sleep(0.01)

        self.assertEqual(self.session.state, CheckoutState.PAYMENT_SELECTION)
        self.assertTrue(self.session.cancel_payment())


if __name__ == '__main__':
    unittest.main()
