"""Computed values — derived state with automatic dependency tracking.

A Computed wraps a function. When evaluated, it tracks which observables
the function reads and caches the result. When any dependency changes,
the cached value is invalidated. On next read, it re-evaluates.

Computed values are lazy — they only recompute when read. They are
effects: the current scope captures them on construction, and stopping
them drops the cache and every subscription.

All state lives in _anchor — instances are thin handles holding an _id.
"""

from __future__ import annotations

import weakref
from typing import TypeVar, Generic, Callable
from scopefx._tracking import current_derivation
from scopefx.scope import register_effect, unregister_effect
from scopefx import _anchor

T = TypeVar("T")

_UNSET = object()


class Computed(Generic[T]):
    """A derived value that auto-tracks dependencies and caches the result."""

    __slots__ = ("_id", "_name", "_owner", "_stopped_fn")

    def __init__(self, fn: Callable[[], T]) -> None:
        self._id = _anchor.new_id()
        self._name = getattr(fn, "__name__", type(fn).__name__)
        self._stopped_fn = None
        owner = register_effect(self)
        self._owner = weakref.ref(owner) if owner is not None else None
        _anchor.derivation_fns[self._id] = fn
        _anchor.cached_values[self._id] = _UNSET
        _anchor.dirty_flags[self._id] = True
        _anchor.dependencies[self._id] = set()
        _anchor.observers[self._id] = set()

    @property
    def _dependencies(self) -> set:
        return _anchor.dependencies[self._id]

    @property
    def active(self) -> bool:
        return self._id in _anchor.derivation_fns

    def get(self) -> T:
        """Read the computed value. Recomputes if dirty.

        Once stopped, evaluates fn on every read without tracking anything.
        """
        if not self.active:
            token = current_derivation.set(None)
            try:
                return self._stopped_fn()
            finally:
                current_derivation.reset(token)

        derivation = current_derivation.get()
        if derivation is not None and derivation.active:
            _anchor.observers[self._id].add(derivation)
            derivation._dependencies.add(self)

        if _anchor.dirty_flags[self._id]:
            return self._recompute()

        return _anchor.cached_values[self._id]

    def _recompute(self) -> T:
        """Re-evaluate the function, tracking dependencies."""
        self._drop_dependencies()

        token = current_derivation.set(self)
        try:
            value = _anchor.derivation_fns[self._id]()
        finally:
            current_derivation.reset(token)

        if self.active:
            _anchor.cached_values[self._id] = value
            _anchor.dirty_flags[self._id] = False
        return value

    def _run(self) -> None:
        """Called when a dependency changed.

        For Computed, we mark dirty and propagate to our own observers.
        We don't recompute eagerly — that happens on next .get().
        """
        if not self.active or _anchor.dirty_flags[self._id]:
            return
        _anchor.dirty_flags[self._id] = True
        for observer in list(_anchor.observers[self._id]):
            observer._run()

    def _drop_dependencies(self) -> None:
        deps = _anchor.dependencies[self._id]
        for dep in deps:
            dep._remove_observer(self)
        deps.clear()

    def _remove_observer(self, observer) -> None:
        observers = _anchor.observers.get(self._id)
        if observers is not None:
            observers.discard(observer)

    def stop(self) -> None:
        """Disconnect from all dependencies and observers. Idempotent.

        Only the handle keeps fn afterwards; _anchor forgets this computed.
        """
        if not self.active:
            return
        self._stopped_fn = _anchor.derivation_fns.pop(self._id)
        for dep in _anchor.dependencies.pop(self._id):
            dep._remove_observer(self)
        del _anchor.observers[self._id]
        del _anchor.dirty_flags[self._id]
        del _anchor.cached_values[self._id]
        owner, self._owner = self._owner, None
        unregister_effect(self, owner() if owner is not None else None)

    def __repr__(self) -> str:
        if not self.active:
            state = "stopped"
        elif _anchor.dirty_flags[self._id]:
            state = "dirty"
        else:
            state = f"cached={_anchor.cached_values[self._id]!r}"
        return f"Computed({self._name}, {state})"


def computed(fn: Callable[[], T]) -> Computed[T]:
    """Decorator/factory to create a Computed from a function.

    Usage:
        counter = Observable(0)

        @computed
        def doubled():
            return counter.get() * 2

        doubled.get()  # 0
        counter.set(5)
        doubled.get()  # 10
    """
    return Computed(fn)
