"""
Bookings Module
===============
Table reservations. A booking is created once and never changed.
"""

import logging
from typing import Dict, List, Any, Optional
from datetime import date, time, datetime
from dataclasses import dataclass, field

from ids import IdAllocator, UuidIdAllocator
from tables import TableRegistry, TableStatus


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Booking:
    """Immutable reservation record."""
    id: str
    customer_name: str
    table_id: str
    table_name: str
    date: date
    time: time
    party_size: int
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "customer_name": self.customer_name,
            "table_id": self.table_id,
            "table_name": self.table_name,
            "date": self.date.isoformat(),
            "time": self.time.strftime("%H:%M"),
            "party_size": self.party_size,
            "created_at": self.created_at.isoformat(),
        }


class BookingBook:
    """
    Append-only booking collection.

    Creating a booking marks its table as Booked.
    """

    def __init__(self, tables: TableRegistry, id_allocator: Optional[IdAllocator] = None):
        self._tables = tables
        self._ids = id_allocator or UuidIdAllocator()
        self._bookings: List[Booking] = []

    def __iter__(self):
        return iter(list(self._bookings))

    def __len__(self) -> int:
        return len(self._bookings)

    def create(
        self,
        customer_name: Optional[str],
        table_id: Optional[str],
        booking_date: Optional[date],
        booking_time: Optional[time],
        party_size: int = 2
    ) -> Optional[Booking]:
        """
        Reserve an available table.

        Args:
            customer_name: Guest name
            table_id: Table to reserve (must be Available)
            booking_date: Reservation date
            booking_time: Reservation time
            party_size: Number of guests

        Returns:
            The booking, or None when a required field is missing,
            the table is unknown or not available
        """
        if not customer_name or not customer_name.strip() or not table_id \
                or booking_date is None or booking_time is None:
            logger.warning("Booking rejected: name, table, date and time required")
            return None

        if party_size is None or party_size < 1:
            logger.warning(f"Booking rejected: invalid party size {party_size}")
            return None

        if table_id not in self._tables:
            logger.warning(f"Booking rejected: unknown table {table_id}")
            return None

        table = self._tables.get(table_id)
        if table.status != TableStatus.AVAILABLE:
            logger.warning(
                f"Booking rejected: {table.name} is {table.status.value}"
            )
            return None

        booking = Booking(
            id=self._ids.next_id("bkg"),
            customer_name=customer_name.strip(),
            table_id=table.id,
            table_name=table.name,
            date=booking_date,
            time=booking_time,
            party_size=party_size
        )

        self._bookings.append(booking)
        self._tables.update_status(table.id, TableStatus.BOOKED)

        logger.info(
            f"Booking created: {booking.id} for {booking.customer_name} "
            f"({table.name}, {booking_date.isoformat()} {booking_time.strftime('%H:%M')}, "
            f"pax={party_size})"
        )

        return booking
