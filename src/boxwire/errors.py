"""boxwire error hierarchy.

All boxwire-specific errors inherit from ReactiveError for easy catching.
Errors raised by a reaction's own computation propagate unchanged.
"""


class ReactiveError(Exception):
    """Base error for all boxwire operations."""


class ProtocolError(ReactiveError, TypeError):
    """A box or tracked-read call was made with the wrong arguments."""


class MixedReadError(ReactiveError):
    """One reaction read the same box both tracked and passively in one run."""

    def __init__(self, box, reaction) -> None:
        self.box = box
        self.reaction = reaction
        super().__init__(f"Mixed tracked/passive read of {box.id} in {reaction.id}")
