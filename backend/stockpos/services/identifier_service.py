# Overview: Service-layer operations for identifiers; sale id generation.

from __future__ import annotations

import itertools
import threading
import uuid


def uuid_sale_id() -> str:
    """Default sale id: 32 upper-case hex chars from a random UUID4."""
    return uuid.uuid4().hex.upper()


class SequentialSaleIds:
    """
    Monotonic sale ids ("S-000001", "S-000002", ...).

    Process-local; suitable for tests and single-process deployments. The sale
    processor still collision-checks every generated id against the Sale store.
    """

    def __init__(self, prefix: str = "S", start: int = 1, width: int = 6):
        self.prefix = prefix
        self.width = width
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            value = next(self._counter)
        return f"{self.prefix}-{value:0{self.width}d}"
