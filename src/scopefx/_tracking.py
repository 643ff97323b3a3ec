"""Ambient tracking state — what is being evaluated, and which scope is open.

Both pieces of state are contextvars, so every thread, asyncio task, or
copied context sees its own values:

- ``current_derivation``: the Computed/Reaction currently evaluating. Any
  Observable read while it is set registers itself as a dependency.
- the scope stack: the Scopes entered via ``Scope.run`` / ``Scope.activate``,
  innermost last. Effects created while a scope is on top are captured by it.
"""

from __future__ import annotations

import contextvars
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from scopefx.computed import Computed
    from scopefx.reaction import Reaction
    from scopefx.scope import Scope

    Derivation = Computed | Reaction

current_derivation: contextvars.ContextVar[Derivation | None] = contextvars.ContextVar(
    "current_derivation", default=None
)

# Immutable tuples: a push sets a new tuple, a pop resets the token, so the
# prior stack is restored exactly on every exit path.
_scope_stack: contextvars.ContextVar[tuple[Scope, ...]] = contextvars.ContextVar(
    "scope_stack", default=()
)


def push_scope(scope: Scope) -> contextvars.Token:
    """Make scope the current scope. Pair every call with pop_scope(token)."""
    return _scope_stack.set(_scope_stack.get() + (scope,))


def pop_scope(token: contextvars.Token) -> None:
    """Restore the stack to what it was before the matching push_scope()."""
    _scope_stack.reset(token)


def current_scope() -> Scope | None:
    """The innermost open scope in this context, or None."""
    stack = _scope_stack.get()
    return stack[-1] if stack else None


def scope_stack() -> tuple[Scope, ...]:
    """Every open scope in this context, outermost first. Useful for testing."""
    return _scope_stack.get()
