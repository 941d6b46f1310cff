"""
ids.py: External-id generators for modal views.

Slack echoes a view's ``external_id`` back in its submission payload, which is
how a submission finds the view that opened it. The driver takes any
zero-argument callable returning a str.
"""

import itertools
import time
import uuid
from typing import Callable

IdGenerator = Callable[[], str]


class MonotonicIds:
    """
    Strictly increasing ids derived from the wall clock, e.g. ``view-01729353600123456789``.

    Ids keep increasing across restarts, and a zero-padded width keeps string
    order equal to numeric order.
    """

    def __init__(self, prefix: str = "view-") -> None:
        self._prefix = prefix
        self._last = 0

    def __call__(self) -> str:
        value = max(time.time_ns(), self._last + 1)
        self._last = value
        return f"{self._prefix}{value:020d}"


class SequentialIds:
    """``view-1``, ``view-2``, ... Process-local; not safe across restarts."""

    def __init__(self, prefix: str = "view-", start: int = 1) -> None:
        self._prefix = prefix
        self._counter = itertools.count(start)

    def __call__(self) -> str:
        return f"{self._prefix}{next(self._counter)}"


def random_ids(prefix: str = "view-") -> IdGenerator:
    return lambda: f"{prefix}{uuid.uuid4().hex}"
