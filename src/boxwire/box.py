"""Boxes — reactive value cells.

Reading a box while a reaction runs records it; reading it through the
reaction's track() function subscribes the reaction to it. Writing a box
re-runs every subscribed reaction synchronously, or buffers the write when a
transaction is open.

All state lives in _anchor — instances are thin handles holding an _id.
"""

from __future__ import annotations

import logging
import weakref
from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Generic, TypeVar

from boxwire import _anchor
from boxwire._anchor import EMPTY
from boxwire._tracking import active_reaction, tracked_read, tracking, transaction_buffer
from boxwire.errors import MixedReadError, ProtocolError
from boxwire.reaction import notify

if TYPE_CHECKING:
    from boxwire.reaction import Reaction

T = TypeVar("T")
K = TypeVar("K")

logger = logging.getLogger("boxwire.box")


class Box(Generic[T]):
    """A single value cell. Call with no arguments to read, one to write."""

    __slots__ = ("_id", "__weakref__")

    def __init__(self, value: T = None, name: str = "") -> None:
        self._id = _anchor.new_id()
        _anchor.names[self._id] = f"B{self._id}={name}"
        _anchor.values[self._id] = value
        _anchor.subscribers[self._id] = set()
        _anchor.pending[self._id] = EMPTY
        weakref.finalize(self, _anchor.release, self._id)

    def __call__(self, *args):
        if not args:
            return self.get()
        if len(args) > 1:
            raise ProtocolError(f"{self.id} takes at most one value, got {len(args)}")
        self.set(args[0])
        return None

    @property
    def id(self) -> str:
        return _anchor.names[self._id]

    @property
    def subscribers(self) -> frozenset[Reaction]:
        return frozenset(_anchor.subscribers[self._id])

    @property
    def pending(self) -> object:
        """The value buffered by an open transaction, or EMPTY."""
        return _anchor.pending[self._id]

    def get(self) -> T:
        """Passive read. Records the box on the running reaction without subscribing."""
        rx = active_reaction.get()
        if rx is not None and not tracked_read.get():
            if self in _anchor.subscribed_reads[rx._id]:
                raise MixedReadError(self, rx)
            _anchor.passive_reads[rx._id].add(self)
        return _anchor.values[self._id]

    def set(self, value: T) -> None:
        """Write and notify, or buffer the value if a transaction is open."""
        buffer = transaction_buffer.get()
        if buffer is not None:
            buffer.setdefault(self, _anchor.pending[self._id])
            _anchor.pending[self._id] = value
            return
        _anchor.values[self._id] = value
        notify(self)

    def _tracked_read(self, rx: Reaction) -> T:
        """Subscribe rx to this box and return the value."""
        if self in _anchor.passive_reads[rx._id]:
            raise MixedReadError(self, rx)
        _anchor.subscribers[self._id].add(rx)
        _anchor.subscribed_reads[rx._id].add(self)
        logger.debug("Link %s -> %s", rx.id, self.id)
        with tracking():
            return self.get()

    def __repr__(self) -> str:
        return f"Box({self.id}, {_anchor.values[self._id]!r})"


def boxes(mapping: MutableMapping[K, object]) -> MutableMapping[K, Box]:
    """Replace every value of mapping with a Box holding it, in place.

    Usage:
        state = boxes({"count": 0, "label": "clicks"})
        state["count"](1)
    """
    for key in list(mapping):
        mapping[key] = Box(mapping[key], name=str(key))
    return mapping
