"""Data anchor — plain Python structures that hold all reactive state.

This module stores the raw data for all Boxes and Reactions. Handles only
carry an integer id; everything else is looked up here. Entries are dropped
by release() when the owning handle is garbage-collected.
"""

import itertools

# Shared
names: dict[int, str] = {}

# Box state
values: dict[int, object] = {}
subscribers: dict[int, set] = {}  # box_id -> set of Reactions
pending: dict[int, object] = {}  # box_id -> buffered value or EMPTY

# Reaction state
fns: dict[int, object] = {}  # rx_id -> callable(track)
subscribed_reads: dict[int, set] = {}  # rx_id -> set of Boxes (real edges)
passive_reads: dict[int, set] = {}  # rx_id -> set of Boxes (no edges)
children: dict[int, set] = {}  # rx_id -> set of Reactions
runs: dict[int, int] = {}
states: dict[int, object] = {}
parents: dict[int, object] = {}  # rx_id -> weakref.ref(parent) or None

_tables = (
    names, values, subscribers, pending,
    fns, subscribed_reads, passive_reads, children, runs, states, parents,
)

# ID generation — itertools.count is thread-safe (C-level GIL atomic)
_id_counter = itertools.count()


class _Empty:
    __slots__ = ()

    def __repr__(self) -> str:
        return "EMPTY"


# No buffered value. Compared with `is`.
EMPTY = _Empty()


def new_id() -> int:
    return next(_id_counter)


def release(id_: int) -> None:
    for table in _tables:
        table.pop(id_, None)
