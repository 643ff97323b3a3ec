"""Effect scopes — containers that capture effects and dispose them as a unit.

Every Computed, Reaction, Store, or nested Scope created while a scope is
running is appended to that scope's children. Stopping the scope stops all
of them (recursively, in creation order) and then runs the cleanup callbacks
registered against it.

    scope = Scope()

    def setup(on_cleanup):
        autorun(lambda: log.append(counter.get()))
        on_cleanup(lambda: print("bye"))
        return "ready"

    scope.run(setup)   # "ready"; the autorun now belongs to scope
    scope.stop()       # autorun stopped, then "bye"

A scope created with ``detached=True`` is never captured by an enclosing
scope and has to be stopped on its own.

All state lives in _anchor — instances are thin handles holding an _id.
"""

from __future__ import annotations

import logging
import weakref
from contextlib import contextmanager
from typing import Callable, Iterator, Protocol, TypeVar, runtime_checkable

from scopefx import _anchor
from scopefx._tracking import current_scope, pop_scope, push_scope, scope_stack
from scopefx.errors import DisposalError, InactiveScopeError, NoActiveScopeError

logger = logging.getLogger("scopefx.scope")

R = TypeVar("R")

Cleanup = Callable[[], None]
RegisterCleanup = Callable[[Cleanup], Cleanup]


@runtime_checkable
class Disposable(Protocol):
    """Anything a scope can own: becomes permanently inert after stop()."""

    @property
    def active(self) -> bool: ...

    def stop(self) -> None: ...


def register_effect(effect: Disposable) -> Scope | None:
    """Attach a newly constructed effect to the current scope, if there is one.

    Effect-like primitives call this exactly once during __init__, before
    writing any state of their own. Returns the capturing scope, so the
    effect can leave it again via unregister_effect() if stopped on its own.
    """
    scope = current_scope()
    if scope is not None:
        scope._add_child(effect)
    return scope


def unregister_effect(effect: Disposable, owner: Scope | None) -> None:
    """Drop an effect that was stopped directly from the scope that captured it."""
    if owner is not None:
        owner._discard_child(effect)


class Scope:
    """A hierarchical owner of effects, nested scopes, and cleanup callbacks."""

    __slots__ = ("_id", "_detached", "__weakref__")

    def __init__(self, *, detached: bool = False) -> None:
        parent = None if detached else current_scope()
        self._id = _anchor.new_id()
        self._detached = detached
        if parent is not None:
            # Raises for a stopped parent before any state is written
            parent._add_child(self)

        _anchor.scope_active[self._id] = True
        _anchor.scope_children[self._id] = []
        _anchor.scope_cleanups[self._id] = []
        _anchor.scope_parents[self._id] = weakref.ref(parent) if parent is not None else None
        logger.debug(
            "Created scope #%d (parent=%s, detached=%s)",
            self._id, parent._id if parent is not None else None, detached,
        )

    @property
    def id(self) -> int:
        return self._id

    @property
    def active(self) -> bool:
        return _anchor.scope_active.get(self._id, False)

    @property
    def detached(self) -> bool:
        return self._detached

    @property
    def parent(self) -> Scope | None:
        ref = _anchor.scope_parents.get(self._id)
        return ref() if ref is not None else None

    @property
    def children(self) -> tuple[Disposable, ...]:
        """Owned effects and scopes, in creation order. Empty once stopped."""
        return tuple(_anchor.scope_children.get(self._id, ()))

    @property
    def cleanups(self) -> tuple[Cleanup, ...]:
        return tuple(_anchor.scope_cleanups.get(self._id, ()))

    def _add_child(self, child: Disposable) -> None:
        if not self.active:
            raise InactiveScopeError(
                f"cannot capture a new {type(child).__name__}: {self!r} is stopped"
            )
        _anchor.scope_children[self._id].append(child)

    def _discard_child(self, child: Disposable) -> None:
        # Skipped while this scope is stopping: its child list is being iterated.
        if self.active:
            _anchor.scope_children[self._id].remove(child)

    # --- Run / extend ---

    @contextmanager
    def activate(self) -> Iterator[RegisterCleanup]:
        """Make this scope current for the duration of the with-block.

        Yields the bound register_cleanup. The previous scope is restored on
        every exit path; an exception leaves the scope active with whatever
        it captured so far.

        Usage:
            with scope.activate() as on_cleanup:
                autorun(...)
                on_cleanup(close_socket)
        """
        if not self.active:
            raise InactiveScopeError(f"cannot run {self!r}: already stopped")
        token = push_scope(self)
        try:
            yield self.register_cleanup
        finally:
            pop_scope(token)

    def run(self, fn: Callable[[RegisterCleanup], R]) -> R:
        """Call fn(register_cleanup) with this scope current; return its result.

        May be called any number of times while the scope is active. Each call
        adds to the same children and cleanups.
        """
        with self.activate() as register_cleanup:
            return fn(register_cleanup)

    def register_cleanup(self, cb: Cleanup) -> Cleanup:
        """Run cb when this scope stops. Only valid inside one of its runs.

        Returns cb, so it also works as a decorator.
        """
        if not self.active:
            raise InactiveScopeError(f"cannot register cleanup on {self!r}: already stopped")
        if self not in scope_stack():
            raise NoActiveScopeError(
                f"register_cleanup() for {self!r} called outside of its run()"
            )
        _anchor.scope_cleanups[self._id].append(cb)
        return cb

    # --- Disposal ---

    def stop(self) -> None:
        """Stop every child, then run every cleanup. Idempotent.

        Failures are collected across the whole tree and raised afterwards as
        a single DisposalError. A BaseException (KeyboardInterrupt, say) is
        re-raised as itself, but only once the walk has finished.
        """
        errors: list[BaseException] = []
        self._stop(errors)
        if not errors:
            return
        logger.warning("%d failure(s) while stopping scope #%d", len(errors), self._id)
        for exc in errors:
            if not isinstance(exc, Exception):
                raise exc
        raise DisposalError(f"failed to stop scope #{self._id} cleanly", errors)

    def _stop(self, errors: list[BaseException]) -> None:
        sid = self._id
        if not self.active:
            return
        # Flip first: nested stops must not detach themselves from a list
        # that is being iterated, and nothing may be added from here on.
        _anchor.scope_active[sid] = False

        children = _anchor.scope_children[sid]
        cleanups = _anchor.scope_cleanups[sid]
        logger.debug(
            "Stopping scope #%d (%d children, %d cleanups)", sid, len(children), len(cleanups)
        )

        for child in children:
            if isinstance(child, Scope):
                child._stop(errors)
                continue
            try:
                child.stop()
            except DisposalError as exc:
                errors.extend(exc.exceptions)
            except BaseException as exc:
                errors.append(exc)

        for cb in cleanups:
            try:
                cb()
            except BaseException as exc:
                errors.append(exc)

        parent = self.parent
        if parent is not None:
            parent._discard_child(self)

        del _anchor.scope_active[sid]
        del _anchor.scope_children[sid]
        del _anchor.scope_cleanups[sid]
        del _anchor.scope_parents[sid]

    def __repr__(self) -> str:
        kind = "detached " if self._detached else ""
        if not self.active:
            return f"Scope(#{self._id}, {kind}stopped)"
        return (
            f"Scope(#{self._id}, {kind}active, "
            f"{len(_anchor.scope_children[self._id])} children, "
            f"{len(_anchor.scope_cleanups[self._id])} cleanups)"
        )


# ─── Functional API ──────────────────────────────────────────────────────────


def effect_scope(*, detached: bool = False) -> Scope:
    """Create an empty scope. Captured by the current scope unless detached."""
    return Scope(detached=detached)


def run(scope: Scope, fn: Callable[[RegisterCleanup], R]) -> R:
    """Call fn(register_cleanup) with scope current. See Scope.run."""
    return scope.run(fn)


def run_in_scope(
    fn: Callable[[RegisterCleanup], R], *, detached: bool = False
) -> tuple[Scope, R]:
    """Create a scope, run fn in it, and return (scope, fn's result).

    Same as Scope(detached=detached).run(fn). If fn raises, the error
    propagates unchanged and the partly built scope stays active, owned by
    the enclosing scope if there is one. Use Scope() and run() directly when
    a detached scope must be stopped after a failed setup.

    Usage:
        scope, counter = run_in_scope(use_counter)
        ...
        scope.stop()
    """
    scope = Scope(detached=detached)
    try:
        result = scope.run(fn)
    except Exception as exc:
        exc.add_note(f"left active: {scope!r}")
        raise
    return scope, result


def stop(target: Disposable) -> None:
    """Stop a scope or an effect. Idempotent."""
    target.stop()


def register_cleanup(cb: Cleanup) -> Cleanup:
    """Register cb on the current scope. Usable as a decorator.

    Usage:
        def use_ticker():
            timer = start_timer()
            register_cleanup(timer.cancel)
            return timer

        scope.run(lambda on_cleanup: use_ticker())
    """
    scope = current_scope()
    if scope is None:
        raise NoActiveScopeError("register_cleanup() called outside of any scope")
    return scope.register_cleanup(cb)


__all__ = [
    "Disposable",
    "Scope",
    "current_scope",
    "effect_scope",
    "register_cleanup",
    "register_effect",
    "run",
    "run_in_scope",
    "stop",
    "unregister_effect",
]
