"""
Tables Module
=============
Dining tables and their status.
"""

import logging
from typing import Dict, List, Any, Optional, Iterable
from dataclasses import dataclass
from enum import Enum


logger = logging.getLogger(__name__)


class TableStatus(Enum):
    """Table occupancy status."""
    AVAILABLE = "Available"
    BOOKED = "Booked"
    OCCUPIED = "Occupied"


class UnknownTableError(KeyError):
    """Raised when a table id is not registered."""
    pass


@dataclass
class Table:
    """Dining table (mutated in place by status updates)."""
    id: str
    number: int
    capacity: int
    status: TableStatus = TableStatus.AVAILABLE

    @property
    def name(self) -> str:
        return f"Table {self.number}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "number": self.number,
            "name": self.name,
            "capacity": self.capacity,
            "status": self.status.value,
        }


class TableRegistry:
    """In-memory table provider."""

    def __init__(self, tables: Optional[Iterable[Table]] = None):
        self._tables: Dict[str, Table] = {}
        for table in tables or ():
            self._tables[table.id] = table

    def __len__(self) -> int:
        return len(self._tables)

    def __contains__(self, table_id: str) -> bool:
        return table_id in self._tables

    def get(self, table_id: str) -> Table:
        """
        Raises:
            UnknownTableError: If the id is not registered
        """
        try:
            return self._tables[table_id]
        except KeyError:
            raise UnknownTableError(table_id)

    def all(self) -> List[Table]:
        return list(self._tables.values())

    def available(self) -> List[Table]:
        return self.with_status(TableStatus.AVAILABLE)

    def with_status(self, status: TableStatus) -> List[Table]:
        return [table for table in self._tables.values() if table.status == status]

    def update_status(self, table_id: str, status: TableStatus) -> Table:
        """
        Set a table's status.

        Raises:
            UnknownTableError: If the id is not registered
        """
        table = self.get(table_id)
        old_status = table.status
        table.status = status

        logger.info(f"{table.name}: {old_status.value} -> {status.value}")

        return table
