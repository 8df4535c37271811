"""boxwire: fine-grained reactive boxes and reactions for Python."""

from importlib.metadata import version as _version

__version__ = _version("boxwire")

from boxwire.errors import ReactiveError, ProtocolError, MixedReadError
from boxwire.reaction import Reaction, ReactionState, rx, adopt
from boxwire.box import Box, boxes
from boxwire.action import action, batch, transaction
# textual NOT auto-imported — opt-in only

__all__ = [
    "Box",
    "boxes",
    "Reaction",
    "ReactionState",
    "rx",
    "adopt",
    "action",
    "batch",
    "transaction",
    "ReactiveError",
    "ProtocolError",
    "MixedReadError",
]
