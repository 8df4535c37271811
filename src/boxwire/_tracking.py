"""Engine state — the heart of boxwire.

Uses contextvars to hold the process-wide single-slot state: which reaction
is currently running, whether a tracked read is resolving a box value, and
which transaction buffer (if any) is collecting writes. Every activation is
token based so the previous value is restored on every exit path.
"""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator

if TYPE_CHECKING:
    from boxwire.box import Box
    from boxwire.reaction import Reaction

# The currently-running reaction. Box reads consult it for bookkeeping and
# new reactions take it as their parent.
active_reaction: contextvars.ContextVar[Reaction | None] = contextvars.ContextVar(
    "active_reaction", default=None
)

# True only while a tracked read resolves a box's value.
tracked_read: contextvars.ContextVar[bool] = contextvars.ContextVar(
    "tracked_read", default=False
)

# Boxes written inside the innermost open transaction, in write order, each
# mapped to the pending value it had before this transaction first wrote it.
# None means no transaction is open (an empty dict is an open transaction).
transaction_buffer: contextvars.ContextVar[dict[Box, object] | None] = (
    contextvars.ContextVar("transaction_buffer", default=None)
)


@contextmanager
def activate(reaction: Reaction | None) -> Iterator[None]:
    """Install reaction as the active one for the duration of the block."""
    token = active_reaction.set(reaction)
    try:
        yield
    finally:
        active_reaction.reset(token)


@contextmanager
def tracking() -> Iterator[None]:
    """Suppress passive-read bookkeeping for the duration of the block."""
    token = tracked_read.set(True)
    try:
        yield
    finally:
        tracked_read.reset(token)


@contextmanager
def buffering() -> Iterator[dict[Box, object]]:
    """Open a fresh transaction buffer; yields it and restores the previous one."""
    buffer: dict[Box, object] = {}
    token = transaction_buffer.set(buffer)
    try:
        yield buffer
    finally:
        transaction_buffer.reset(token)
