"""
Identifier Allocation
=====================
Uniqueness is the only contract an identifier carries.

Two allocators share one interface:
- UuidIdAllocator: random, prefixed ids (default at runtime)
- SequentialIdAllocator: monotonic counter, handy for deterministic tests
"""

import itertools
import threading
import uuid
from abc import ABC, abstractmethod


class IdAllocator(ABC):
    """Interface for id allocation."""

    @abstractmethod
    def next_id(self, prefix: str) -> str:
        """Return a new id that has never been handed out with this prefix."""
        pass


class UuidIdAllocator(IdAllocator):
    """Allocates ids like ``ord_3f9a1c2b7d4e``."""

    def __init__(self, length: int = 12):
        self.length = length

    def next_id(self, prefix: str) -> str:
        return f"{prefix}_{uuid.uuid4().hex[:self.length]}"


class SequentialIdAllocator(IdAllocator):
    """Allocates ``prefix_000001``, ``prefix_000002``... across all prefixes."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next_id(self, prefix: str) -> str:
        with self._lock:
            value = next(self._counter)
        return f"{prefix}_{value:06d}"
