"""Storage-level errors surfaced to the route-handler layer."""

from __future__ import annotations


class NotFoundError(Exception):
    """Raised when a row requested by id does not exist (or is not owned by the caller)."""


class ConflictError(Exception):
    """Raised when a write would violate a uniqueness invariant.

    Example: a second ProgressRecord for the same (user, package) pair.
    Not recovered locally — the caller owns the business decision.
    """


class InvalidTransitionError(Exception):
    """A progress status change that the package lifecycle does not allow."""
