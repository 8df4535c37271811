"""Reactions — computations re-run when the boxes they track are written.

A reaction's computation receives a single argument, track(), and every box
read through it becomes a dependency. Edges and child reactions are torn
down and rebuilt on every run, so dependencies always reflect the most
recent run only.

Reactions created while another reaction runs become its children. Pausing
or unsubscribing a reaction cascades to its children, and a write that hits
both a reaction and one of its descendants only re-runs the ancestor: the
descendant is about to be replaced by that run anyway.

All state lives in _anchor — instances are thin handles holding an _id.
"""

from __future__ import annotations

import logging
import weakref
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterator, TypeVar

from boxwire import _anchor
from boxwire._tracking import activate, active_reaction
from boxwire.errors import ProtocolError

if TYPE_CHECKING:
    from boxwire.box import Box

    Track = Callable[[Box], Any]

T = TypeVar("T")

logger = logging.getLogger("boxwire.reaction")


class ReactionState(Enum):
    ON = "on"
    PAUSED = "paused"
    # Paused, and at least one dependency was written since.
    PAUSED_STALE = "paused_stale"
    OFF = "off"


class Reaction:
    """A computation that re-runs when any box it tracked is written.

    Use rx() to create and run one. Calling the reaction forces a run; on a
    paused reaction that is how it resumes.
    """

    __slots__ = ("_id", "__weakref__")

    def __init__(self, fn: Callable[[Track], Any]) -> None:
        self._id = _anchor.new_id()
        parent = active_reaction.get()
        _anchor.names[self._id] = f"R{self._id}={getattr(fn, '__name__', '')}"
        _anchor.fns[self._id] = fn
        _anchor.subscribed_reads[self._id] = set()
        _anchor.passive_reads[self._id] = set()
        _anchor.children[self._id] = set()
        _anchor.runs[self._id] = 0
        _anchor.states[self._id] = ReactionState.ON
        _anchor.parents[self._id] = weakref.ref(parent) if parent is not None else None
        if parent is not None:
            _anchor.children[parent._id].add(self)
        weakref.finalize(self, _anchor.release, self._id)
        if parent is not None:
            logger.debug("Created %s; child of %s", self.id, parent.id)
        else:
            logger.debug("Created %s", self.id)

    def __call__(self) -> Any:
        return _run(self)

    def run(self) -> Any:
        """Run now. Returns the computation's return value (None when resuming)."""
        return _run(self)

    resume = run

    def pause(self) -> None:
        """Suspend this reaction and all its descendants."""
        _pause(self)

    def unsubscribe(self) -> None:
        """Drop all dependency edges and child reactions. The reaction goes OFF."""
        _unsubscribe(self)

    @property
    def id(self) -> str:
        return _anchor.names[self._id]

    @property
    def fn(self) -> Callable[[Track], Any]:
        return _anchor.fns[self._id]

    @property
    def state(self) -> ReactionState:
        return _anchor.states[self._id]

    @property
    def runs(self) -> int:
        return _anchor.runs[self._id]

    @property
    def parent(self) -> Reaction | None:
        ref = _anchor.parents[self._id]
        return ref() if ref is not None else None

    @property
    def children(self) -> frozenset[Reaction]:
        return frozenset(_anchor.children[self._id])

    @property
    def subscribed_reads(self) -> frozenset[Box]:
        return frozenset(_anchor.subscribed_reads[self._id])

    @property
    def passive_reads(self) -> frozenset[Box]:
        return frozenset(_anchor.passive_reads[self._id])

    def __repr__(self) -> str:
        return f"Reaction({self.id}, {self.state.value}, runs={self.runs})"


def _run(rx: Reaction) -> Any:
    if _anchor.states[rx._id] is ReactionState.PAUSED:
        # Never went stale so its own output is unchanged. Children may have.
        _anchor.states[rx._id] = ReactionState.ON
        for child in list(_anchor.children[rx._id]):
            _run(child)
        return None

    # Drop everything, including children; this run rebuilds it.
    _unsubscribe(rx)

    def track(box: Box) -> Any:
        try:
            tracked_read = box._tracked_read
        except AttributeError:
            raise ProtocolError(f"track() expects a Box, got {box!r}") from None
        return tracked_read(rx)

    with activate(rx):
        result = _anchor.fns[rx._id](track)
    _anchor.runs[rx._id] += 1
    if _anchor.subscribed_reads[rx._id]:
        _anchor.states[rx._id] = ReactionState.ON
    logger.debug(
        "Run %d of %s: %d tracked, %d passive",
        _anchor.runs[rx._id],
        rx.id,
        len(_anchor.subscribed_reads[rx._id]),
        len(_anchor.passive_reads[rx._id]),
    )
    return result


def _unsubscribe(rx: Reaction) -> None:
    sr = _anchor.subscribed_reads[rx._id]
    pr = _anchor.passive_reads[rx._id]
    # Never ran, so there are no connections. A first run that raised still
    # leaves the edges it made before failing; those are torn down here.
    if not _anchor.runs[rx._id] and not (sr or pr or _anchor.children[rx._id]):
        return
    for child in _anchor.children[rx._id]:
        _unsubscribe(child)
    _anchor.children[rx._id] = set()
    for box in sr:
        _anchor.subscribers[box._id].discard(rx)
    _anchor.subscribed_reads[rx._id] = set()
    _anchor.passive_reads[rx._id] = set()
    _anchor.states[rx._id] = ReactionState.OFF


def _pause(rx: Reaction) -> None:
    for child in _anchor.children[rx._id]:
        _pause(child)
    _anchor.states[rx._id] = ReactionState.PAUSED


def _ancestors(rx: Reaction) -> Iterator[Reaction]:
    parent = rx.parent
    while parent is not None:
        yield parent
        parent = parent.parent


def _outermost(rx: Reaction, among: set[Reaction]) -> Reaction:
    """The highest ancestor of rx that is also in among, else rx itself."""
    top = rx
    for ancestor in _ancestors(rx):
        if ancestor in among:
            top = ancestor
    return top


def notify(box: Box) -> None:
    """Re-run (or mark stale) every reaction subscribed to box.

    Ancestors are handled before descendants, and a descendant whose
    ancestor is also subscribed is collapsed into that ancestor.
    """
    # Copy: subscribers change while reactions re-run.
    to_run = set(_anchor.subscribers[box._id])
    logger.debug("Write %s, notifying %d reactions", box.id, len(to_run))
    ordered = sorted(to_run, key=lambda rx: (sum(1 for _ in _ancestors(rx)), rx._id))
    handled: set[Reaction] = set()
    for rx in ordered:
        rx = _outermost(rx, to_run)
        if rx in handled:
            continue
        handled.add(rx)
        if rx not in _anchor.subscribers[box._id]:
            # Torn down by an earlier run in this pass.
            continue
        if _anchor.states[rx._id] is ReactionState.PAUSED:
            _anchor.states[rx._id] = ReactionState.PAUSED_STALE
        elif _anchor.states[rx._id] is not ReactionState.PAUSED_STALE:
            _run(rx)


def rx(fn: Callable[[Track], T]) -> Reaction:
    """Create a reaction and run it immediately. Usable as a decorator.

    Usage:
        count = Box(0, "count")
        log = []

        @rx
        def printer(track):
            log.append(track(count))
        # log == [0]

        count(1)
        # log == [0, 1]

        printer.unsubscribe()
        count(2)
        # log == [0, 1]
    """
    reaction = Reaction(fn)
    reaction.run()
    return reaction


def adopt(parent: Reaction | None, fn: Callable[[], T]) -> T:
    """Call fn with parent installed as the active reaction.

    Reactions created inside fn become children of parent, so pausing or
    unsubscribing parent cascades to them. parent is not run.
    """
    with activate(parent):
        return fn()
