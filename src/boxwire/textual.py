"""Textual integration for boxwire. Opt-in — requires textual.

Reactions that touch widgets are split in two: a data function that tracks
boxes and always runs, and an effect that only runs while the app's widget
tree is queryable. NoMatches from widget queries is swallowed here, not at
callsites.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, TypeVar

from textual.css.query import NoMatches

from boxwire.reaction import Reaction, rx as _rx

T = TypeVar("T")

logger = logging.getLogger("boxwire.textual")

# Module-owned pause state — keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app, root: Reaction | None = None) -> Iterator[None]:
    """Suspend guarded effects during widget replacement.

    If root is given its whole subtree is paused too, and resumed on exit:
    every reaction that missed a write while paused runs exactly once.
    """
    key = id(app)
    _paused_apps.add(key)
    if root is not None:
        root.pause()
    try:
        yield
    finally:
        _paused_apps.discard(key)
        if root is not None:
            root.resume()


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def reaction(
    app,
    data_fn: Callable[[Callable[..., Any]], T],
    effect_fn: Callable[[T], None],
) -> Reaction:
    """rx() that safely bridges to Textual widgets.

    data_fn(track) runs on every notification so dependencies stay live.
    effect_fn(value) is skipped while the app is paused or not running, and
    NoMatches raised by its widget queries is ignored.

    Usage:
        count = Box(0, "count")
        reaction(app, lambda track: track(count),
                 lambda v: app.query_one("#count").update(str(v)))
    """

    def _bound(track):
        value = data_fn(track)
        if not is_safe(app):
            return
        try:
            effect_fn(value)
        except NoMatches:
            logger.debug("Widget query missed in %s", getattr(effect_fn, "__name__", effect_fn))

    _bound.__name__ = getattr(data_fn, "__name__", "_bound")
    return _rx(_bound)
