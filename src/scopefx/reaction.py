"""Reactions — side effects triggered by observable state changes.

Unlike Computed (which is lazy and only evaluates on read), a Reaction
eagerly re-runs its side effect whenever its tracked dependencies change.

Two flavors:
- autorun(fn): runs fn immediately, re-runs when any observable it read changes.
- reaction(data_fn, effect_fn): tracks data_fn, calls effect_fn with the new value
  only when data_fn's result changes.

Both are captured by the scope that is current when they are created, so
stopping that scope stops them.

All state lives in _anchor — instances are thin handles holding an _id.
"""

from __future__ import annotations

import weakref
from typing import TypeVar, Callable
from scopefx._tracking import current_derivation
from scopefx.scope import register_effect, unregister_effect
from scopefx import _anchor

T = TypeVar("T")


class Reaction:
    """A reactive side effect that re-runs when its dependencies change.

    Reactions run eagerly (unlike Computed which is lazy). Stopping one
    drops its function from _anchor, releasing everything it closes over.
    """

    __slots__ = ("_id", "_name", "_owner")

    def __init__(self, fn: Callable) -> None:
        self._id = _anchor.new_id()
        self._name = getattr(fn, "__name__", type(fn).__name__)
        owner = register_effect(self)
        self._owner = weakref.ref(owner) if owner is not None else None
        _anchor.derivation_fns[self._id] = fn
        _anchor.dependencies[self._id] = set()

    @property
    def _dependencies(self) -> set:
        return _anchor.dependencies[self._id]

    @property
    def active(self) -> bool:
        return self._id in _anchor.derivation_fns

    def _track(self):
        """Evaluate fn with this reaction as the current derivation."""
        deps = _anchor.dependencies[self._id]
        for dep in deps:
            dep._remove_observer(self)
        deps.clear()

        token = current_derivation.set(self)
        try:
            return _anchor.derivation_fns[self._id]()
        finally:
            current_derivation.reset(token)

    def _run(self) -> None:
        if self.active:
            self._track()

    def stop(self) -> None:
        """Stop this reaction. Disconnects from all dependencies. Idempotent."""
        if not self.active:
            return
        del _anchor.derivation_fns[self._id]
        for dep in _anchor.dependencies.pop(self._id):
            dep._remove_observer(self)
        owner, self._owner = self._owner, None
        unregister_effect(self, owner() if owner is not None else None)

    def __repr__(self) -> str:
        state = "active" if self.active else "stopped"
        return f"{type(self).__name__}({self._name}, {state})"


class _DataReaction(Reaction):
    """Internal: reaction(data_fn, effect_fn) implementation.

    Tracks data_fn's dependencies. When they change, re-runs data_fn.
    If the result differs from last time, calls effect_fn with the new value.
    """

    __slots__ = ("_effect_fn", "_last_value", "_initialized")

    def __init__(self, data_fn: Callable, effect_fn: Callable) -> None:
        self._effect_fn = effect_fn
        self._last_value = None
        self._initialized = False
        super().__init__(data_fn)

    def _run(self) -> None:
        if not self.active:
            return
        new_value = self._track()
        if not self.active:  # data_fn stopped us
            return
        if not self._initialized or new_value != self._last_value:
            self._last_value = new_value
            self._initialized = True
            self._effect_fn(new_value)

    def stop(self) -> None:
        super().stop()
        self._effect_fn = None
        self._last_value = None


def autorun(fn: Callable[[], None]) -> Reaction:
    """Run fn immediately, then re-run whenever any observable it reads changes.

    Returns the Reaction (call .stop() to end it, or stop its scope).

    Usage:
        counter = Observable(0)
        log = []

        r = autorun(lambda: log.append(counter.get()))
        # log == [0] — ran immediately

        counter.set(1)
        # log == [0, 1] — re-ran because counter changed

        r.stop()
        counter.set(2)
        # log == [0, 1] — stopped
    """
    r = Reaction(fn)
    r._run()  # Initial run to establish dependencies
    return r


def reaction(
    data_fn: Callable[[], T],
    effect_fn: Callable[[T], None],
    *,
    fire_immediately: bool = False,
) -> Reaction:
    """Track data_fn's observables; call effect_fn when the result changes.

    Unlike autorun, effect_fn only fires when data_fn's *return value* changes,
    not on every dependency notification.

    Usage:
        first = Observable("Alice")
        last = Observable("Smith")

        effects = []
        r = reaction(
            lambda: f"{first.get()} {last.get()}",
            lambda name: effects.append(name),
        )
        # effects == [] — data_fn ran to establish deps, but effect doesn't fire yet

        first.set("Bob")
        # effects == ["Bob Smith"]

        r.stop()
    """
    r = _DataReaction(data_fn, effect_fn)
    if fire_immediately:
        r._run()
    else:
        # Establish deps, but suppress the initial effect
        r._last_value = r._track()
        r._initialized = True
    return r
