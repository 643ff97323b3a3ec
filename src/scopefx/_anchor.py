"""Data anchor — plain Python structures that hold all scope and reactive state.

Scopes, Observables, Computeds, and Reactions are thin handles holding an
``_id``. Their data lives here, so behavior modules can be reloaded while
the data persists. Stopping a scope or effect pops its entries.
"""

import itertools

# Observable state
values: dict[int, object] = {}
observers: dict[int, set] = {}  # obs_id -> set of derivations

# Derivation state (Computed + Reaction)
dependencies: dict[int, set] = {}  # deriv_id -> set of observable-likes
dirty_flags: dict[int, bool] = {}
cached_values: dict[int, object] = {}
derivation_fns: dict[int, object] = {}  # deriv_id -> callable; present while active

# Scope state
scope_active: dict[int, bool] = {}  # False only while stop() walks the tree
scope_parents: dict[int, object] = {}  # scope_id -> weakref.ref to parent handle
scope_children: dict[int, list] = {}  # scope_id -> owned disposables, creation order
scope_cleanups: dict[int, list] = {}  # scope_id -> zero-arg callbacks, registration order

# itertools.count is thread-safe (C-level GIL atomic)
_id_counter = itertools.count(1)


def new_id() -> int:
    return next(_id_counter)
