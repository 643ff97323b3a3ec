"""Observable values — state that tracks its readers.

When an Observable is read inside a Computed or Reaction evaluation,
the dependency is automatically registered. When the Observable changes,
every dependent is re-run synchronously.

Observables are plain state, not effects: they hold no subscriptions of
their own, so scopes never capture them.

All state lives in _anchor — instances are thin handles holding an _id.
"""

from __future__ import annotations

from typing import TypeVar, Generic
from scopefx._tracking import current_derivation
from scopefx import _anchor

T = TypeVar("T")


class Observable(Generic[T]):
    """A single observable value with automatic dependency tracking."""

    __slots__ = ("_id",)

    def __init__(self, value: T) -> None:
        self._id = _anchor.new_id()
        _anchor.values[self._id] = value
        _anchor.observers[self._id] = set()

    def get(self) -> T:
        """Read the value. If inside a derivation, registers the dependency."""
        derivation = current_derivation.get()
        if derivation is not None and derivation.active:
            _anchor.observers[self._id].add(derivation)
            derivation._dependencies.add(self)
        return _anchor.values[self._id]

    def peek(self) -> T:
        """Read the value without registering a dependency."""
        return _anchor.values[self._id]

    def set(self, value: T) -> None:
        """Write a new value. Dependents re-run before set() returns."""
        old = _anchor.values[self._id]
        if old is not value and old != value:
            _anchor.values[self._id] = value
            for observer in list(_anchor.observers[self._id]):
                observer._run()

    def _remove_observer(self, observer) -> None:
        """Remove an observer. Called during dependency cleanup."""
        _anchor.observers[self._id].discard(observer)

    @property
    def observer_count(self) -> int:
        """Number of live derivations reading this value. Useful for testing."""
        return len(_anchor.observers[self._id])

    def __repr__(self) -> str:
        return f"Observable({_anchor.values[self._id]!r})"
