"""
Identifier generation for students and transactions.

Ids are millisecond timestamps rendered as strings, which keeps them
compatible with the ids already stored by earlier versions of the app.
Two ids minted in the same millisecond would collide, so the generator
never hands out a value less than or equal to the previous one.
"""

import threading
import time
from typing import Callable, Optional


def _millis() -> int:
    return time.time_ns() // 1_000_000


class IdGenerator:
    """Strictly increasing id source, safe to share between threads."""

    def __init__(self, clock: Optional[Callable[[], int]] = None):
        self._clock = clock or _millis
        self._last = 0
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            value = max(self._clock(), self._last + 1)
            self._last = value
            return str(value)


# Shared by every store in the process
default_id_generator = IdGenerator()
