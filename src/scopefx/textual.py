"""Textual integration for ScopeFX. Opt-in — requires textual.

Binds effect scopes to widget lifetime: everything created in setup()
belongs to the widget's scope, and teardown() (called from on_unmount by
ScopedMixin) stops it. A widget that is garbage collected without being
torn down has its scope stopped by a finalizer. Guarded reaction()/autorun()
make widget-touching effects safe to fire while the app is being rebuilt or
shut down.

// [LAW:single-enforcer] Guard + NoMatches + thread-marshal enforced here, not at callsites.
// [LAW:locality-or-seam] Textual coupling isolated in this module — core ScopeFX stays agnostic.
// [LAW:no-shared-mutable-globals] _paused_apps and _node_scopes have a single owner (this
//   module) and an explicit API; neither writes attributes onto the app or widget.
"""

from __future__ import annotations

import logging
import threading
import weakref
from contextlib import contextmanager
from typing import Callable, TypeVar

from textual.css.query import NoMatches
from scopefx import autorun as _autorun, reaction as _reaction
from scopefx.errors import DisposalError
from scopefx.scope import RegisterCleanup, Scope

logger = logging.getLogger("scopefx.textual")

R = TypeVar("R")

# Apps keyed by id() so multiple apps work in tests. Node scopes are keyed
# weakly on the node itself: an entry never outlives its widget.
_paused_apps: set[int] = set()
_node_scopes: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()


# ─── Lifecycle ───────────────────────────────────────────────────────────────


def _stop_orphan(scope: Scope) -> None:
    """Finalizer for a node collected while its scope was still running."""
    if not scope.active:
        return
    logger.debug("Node collected without teardown; stopping %r", scope)
    try:
        scope.stop()
    except DisposalError as exc:
        # Nobody to raise to from a finalizer
        logger.warning("Failed to stop orphaned scope #%d: %s", scope.id, exc)


def setup(node, fn: Callable[[RegisterCleanup], R]) -> R:
    """Run fn inside node's scope, creating it on first use.

    The scope is not detached: a node set up while another scope is running
    (a parent widget's setup, say) is stopped together with it.
    """
    scope = _node_scopes.get(node)
    if scope is None or not scope.active:
        scope = Scope()
        _node_scopes[node] = scope
        weakref.finalize(node, _stop_orphan, scope).atexit = False
    return scope.run(fn)


def teardown(node) -> None:
    """Stop node's scope. Safe to call more than once."""
    scope = _node_scopes.pop(node, None)
    if scope is not None:
        scope.stop()


def node_scope(node) -> Scope | None:
    return _node_scopes.get(node)


class ScopedMixin:
    """Mix into a Widget, Screen, or App to stop its effects on unmount.

    Usage:
        class Counter(ScopedMixin, Static):
            def on_mount(self) -> None:
                self.setup_scope(lambda on_cleanup: autorun(app, self._refresh))
    """

    def setup_scope(self, fn: Callable[[RegisterCleanup], R]) -> R:
        return setup(self, fn)

    def on_unmount(self) -> None:
        teardown(self)


# ─── Guarded effects ─────────────────────────────────────────────────────────


@contextmanager
def pause(app):
    """Suspend guarded reactions during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def _guard(app, fn):
    """Wrap fn: skip when unsafe, swallow NoMatches, marshal to the main thread."""
    main = threading.get_ident()

    def _safe(*args):
        try:
            fn(*args)
        except NoMatches:
            pass

    def _guarded(*args):
        if not is_safe(app):
            return
        if threading.get_ident() != main:
            app.call_from_thread(_safe, *args)
        else:
            _safe(*args)

    return _guarded


def reaction(app, data_fn, effect_fn, *, fire_immediately=False):
    """reaction() whose effect_fn safely touches Textual widgets."""
    return _reaction(data_fn, _guard(app, effect_fn), fire_immediately=fire_immediately)


def autorun(app, fn):
    """autorun() whose fn safely touches Textual widgets."""
    return _autorun(_guard(app, fn))
