"""Errors raised by scope misuse and by disposal."""

from __future__ import annotations


class ScopeError(RuntimeError):
    """A scope was used in a way its lifecycle does not allow."""


class InactiveScopeError(ScopeError):
    """The scope has already been stopped and cannot be extended."""


class NoActiveScopeError(ScopeError):
    """A cleanup was registered outside of any run of its scope."""


class DisposalError(ExceptionGroup):
    """One or more children or cleanups failed while a scope was stopping.

    Raised once, after the whole tree has been walked. ``exceptions`` holds
    every failure in the order it happened.
    """

    def derive(self, excs):
        return DisposalError(self.message, excs)
