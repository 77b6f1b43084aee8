"""ID generators.

Order ids come from a per-book monotonic sequence: execution priority is
ascending order id, so ids must be dense, ordered integers.

Decryption ticket ids are opaque strings. They sort by creation time, but
carry a random tail so a ticket id cannot be derived from another one.
"""

import secrets
import threading
import time


class OrderIdSequence:
    """Monotonic integer sequence starting at ``start``."""

    def __init__(self, start: int = 1) -> None:
        self._next = start
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            value = self._next
            self._next += 1
            return value

    @property
    def peek(self) -> int:
        return self._next


_TICKET_PREFIX = "dt_"
_RANDOM_BYTES = 6


def generate_ticket_id() -> str:
    """``dt_`` + 12 hex digits of epoch milliseconds + 12 random hex digits."""
    millis = time.time_ns() // 1_000_000
    return f"{_TICKET_PREFIX}{millis:012x}{secrets.token_hex(_RANDOM_BYTES)}"
