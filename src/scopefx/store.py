"""Store — key-based Observable container with a scope for its reactions.

A Store wraps a schema of named Observables. reconcile() supports schema
evolution: add new keys and re-register reactions without losing existing
values. Reactions are not returned and tracked by hand — setup_fn runs
inside a fresh scope owned by the store, which captures them all.
"""

from __future__ import annotations

import weakref
from typing import Callable

from scopefx.observable import Observable
from scopefx.scope import Scope, register_effect, unregister_effect


class Store:
    """Key-based Observable container with reaction lifecycle.

    The store itself is an effect: a store built inside a scope is stopped
    along with it.
    """

    def __init__(self, schema: dict[str, object], initial: dict | None = None) -> None:
        owner = register_effect(self)
        self._owner = weakref.ref(owner) if owner is not None else None
        self._observables: dict[str, Observable] = {}
        self._reactions: Scope | None = None
        self._stopped = False
        for key, default in schema.items():
            value = initial.get(key, default) if initial else default
            self._observables[key] = Observable(value)

    @property
    def active(self) -> bool:
        return not self._stopped

    @property
    def reactions(self) -> Scope | None:
        """The scope holding the reactions of the last reconcile()."""
        return self._reactions

    def get(self, key: str) -> object:
        obs = self._observables.get(key)
        return obs.get() if obs is not None else None

    def set(self, key: str, value: object) -> None:
        obs = self._observables.get(key)
        if obs is not None:
            obs.set(value)

    def update(self, values: dict) -> None:
        for key, value in values.items():
            self.set(key, value)

    def _add_keys(self, schema: dict[str, object]) -> list[str]:
        new_keys = []
        for key, default in schema.items():
            if key not in self._observables:
                self._observables[key] = Observable(default)
                new_keys.append(key)
        return new_keys

    def reconcile(self, schema: dict[str, object], setup_fn: Callable[[Store], object]) -> None:
        """Schema evolution: add new keys, re-register reactions.

        Existing Observable values are untouched. New keys get defaults.
        Old reactions are stopped. setup_fn(store) runs in a new scope that
        captures every reaction it creates.
        """
        self._add_keys(schema)
        self._stop_reactions()
        self._reactions = Scope(detached=True)
        self._reactions.run(lambda on_cleanup: setup_fn(self))

    def _stop_reactions(self) -> None:
        scope, self._reactions = self._reactions, None
        if scope is not None:
            scope.stop()

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        owner, self._owner = self._owner, None
        unregister_effect(self, owner() if owner is not None else None)
        self._stop_reactions()

    def __repr__(self) -> str:
        return f"Store({sorted(self._observables)!r})"
