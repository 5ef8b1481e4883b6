"""
Demo data: the starting catalog, floor plan and staff accounts.
"""

from datetime import datetime
from typing import List

from catalog import Product
from tables import Table, TableStatus
from users import User, UserRole, UserStatus, hash_password


def initial_products() -> List[Product]:
    return [
        Product("1", "Nasi Goreng Spesial", 35000, "Food", 50, "https://picsum.photos/seed/nasi/200/200"),
        Product("2", "Ayam Bakar Madu", 42000, "Food", 30, "https://picsum.photos/seed/ayam/200/200"),
        Product("3", "Es Teh Manis", 8000, "Drinks", 100, "https://picsum.photos/seed/tea/200/200"),
        Product("4", "Jus Alpukat", 18000, "Drinks", 20, "https://picsum.photos/seed/avocado/200/200"),
        Product("5", "Brownies Lumer", 25000, "Dessert", 15, "https://picsum.photos/seed/brownie/200/200"),
        Product("6", "Kentang Goreng", 15000, "Snacks", 40, "https://picsum.photos/seed/fries/200/200"),
    ]


def initial_tables(count: int = 12) -> List[Table]:
    # every third table seats four
    return [
        Table(
            id=str(i + 1),
            number=i + 1,
            capacity=4 if i % 3 == 0 else 2,
            status=TableStatus.AVAILABLE
        )
        for i in range(count)
    ]


def initial_users() -> List[User]:
    return [
        User(
            id="admin1",
            name="Main Admin",
            email="admin@restomaster.com",
            password_hash=hash_password("admin123"),
            role=UserRole.ADMINISTRATOR,
            status=UserStatus.ACTIVE,
            joined_at=datetime(2023, 2, 1)
        ),
        User(
            id="staff1",
            name="Siti Kasir",
            email="staff@restomaster.com",
            password_hash=hash_password("staff123"),
            role=UserRole.STAFF,
            status=UserStatus.ACTIVE,
            joined_at=datetime(2023, 12, 15)
        ),
        User(
            id="staff2",
            name="Budi Waiter",
            email="waiter@restomaster.com",
            password_hash=hash_password("waiter123"),
            role=UserRole.STAFF,
            status=UserStatus.PENDING
        ),
    ]
