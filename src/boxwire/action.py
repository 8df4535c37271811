"""Actions and transactions — batched box writes.

Inside a transaction, box writes are buffered instead of notifying. When
the transaction exits, each written box is written again with its last
buffered value, so every subscriber hears about each box exactly once.
Nested transactions flush at their own exit; the flushed writes land in
the enclosing transaction's buffer.
"""

from __future__ import annotations

import functools
import logging
from contextlib import contextmanager
from typing import Callable, Iterator, ParamSpec, TypeVar

from boxwire import _anchor
from boxwire._anchor import EMPTY
from boxwire._tracking import buffering

P = ParamSpec("P")
R = TypeVar("R")

logger = logging.getLogger("boxwire.action")


@contextmanager
def batch() -> Iterator[None]:
    """Context manager for batching box writes.

    If the block raises, the buffered writes are discarded.

    Usage:
        with batch():
            first("Ada")
            last("Lovelace")
            # reactions run here, after both are written
    """
    try:
        with buffering() as buffer:
            yield
    except BaseException:
        # Hand back whatever an enclosing transaction had buffered.
        for box, previous in buffer.items():
            _anchor.pending[box._id] = previous
        raise
    if buffer:
        logger.debug("Flushing %d buffered writes", len(buffer))
    writes = [(box, _anchor.pending[box._id]) for box in buffer]
    # Cleared before any reaction runs: a flush that raises part way leaves
    # no buffered value behind, and a flushed box's own re-entrant writes
    # don't see its stale buffered value.
    for box, _ in writes:
        _anchor.pending[box._id] = EMPTY
    for box, value in writes:
        if value is not EMPTY:
            box.set(value)


def transaction(fn: Callable[[], R]) -> R:
    """Call fn with box writes batched; returns fn's return value.

    Usage:
        transaction(lambda: (a(1), b(2)))
    """
    with batch():
        return fn()


def action(fn: Callable[P, R]) -> Callable[P, R]:
    """Decorator: batch all box writes inside fn.

    Reactions only run after fn returns, not during.

    Usage:
        @action
        def swap():
            x, y = a(), b()
            a(y)
            b(x)
            # reactions see both writes at once, not one at a time
    """

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        with batch():
            return fn(*args, **kwargs)

    return wrapper
