"""ScopeFX: effect scopes for reactive Python — capture effects, dispose them as a unit."""

from importlib.metadata import version as _version

__version__ = _version("scopefx")

from scopefx.errors import DisposalError, InactiveScopeError, NoActiveScopeError, ScopeError
from scopefx.scope import (
    Disposable,
    Scope,
    current_scope,
    effect_scope,
    register_cleanup,
    register_effect,
    run,
    run_in_scope,
    stop,
)
from scopefx.observable import Observable
from scopefx.computed import Computed, computed
from scopefx.reaction import Reaction, autorun, reaction
from scopefx.store import Store
# hot_reload and textual NOT auto-imported — opt-in only

__all__ = [
    "Scope",
    "Disposable",
    "effect_scope",
    "run",
    "run_in_scope",
    "stop",
    "register_cleanup",
    "register_effect",
    "current_scope",
    "ScopeError",
    "InactiveScopeError",
    "NoActiveScopeError",
    "DisposalError",
    "Observable",
    "Computed",
    "computed",
    "Reaction",
    "autorun",
    "reaction",
    "Store",
]
