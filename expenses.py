"""
Expenses Module
===============
Append-only operating expense records.
"""

import logging
from typing import Dict, List, Any, Optional
from datetime import datetime
from dataclasses import dataclass

from ids import IdAllocator, UuidIdAllocator


logger = logging.getLogger(__name__)


EXPENSE_CATEGORIES = ("Ingredients", "Utilities", "Salary", "Marketing", "Other")


@dataclass(frozen=True)
class Expense:
    id: str
    date: datetime
    category: str
    amount: int
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "category": self.category,
            "amount": self.amount,
            "description": self.description,
        }


class ExpenseBook:
    """Append-only expense collection (insertion order preserved)."""

    def __init__(self, id_allocator: Optional[IdAllocator] = None):
        self._ids = id_allocator or UuidIdAllocator()
        self._expenses: List[Expense] = []

    def __iter__(self):
        return iter(list(self._expenses))

    def __len__(self) -> int:
        return len(self._expenses)

    def record(
        self,
        category: str,
        amount: int,
        description: str,
        date: Optional[datetime] = None
    ) -> Optional[Expense]:
        """
        Record an expense.

        Returns:
            The expense, or None when the amount is negative
        """
        if amount is None or amount < 0:
            logger.warning(f"Expense rejected: invalid amount {amount}")
            return None

        if category not in EXPENSE_CATEGORIES:
            logger.warning(f"Unlisted expense category: {category}")

        expense = Expense(
            id=self._ids.next_id("exp"),
            date=date or datetime.now(),
            category=category,
            amount=amount,
            description=description or ""
        )
        self._expenses.append(expense)

        logger.info(f"Expense recorded: {expense.id} {category} {amount}")

        return expense
