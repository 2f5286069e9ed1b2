"""Exception hierarchy for tic."""

from __future__ import annotations


class TicError(Exception):
    """Base class for all tic errors."""


class ValidationError(TicError):
    """A create/update would break a field or relationship rule.

    ``rule`` names the violated rule (e.g. ``parent-cycle``) so callers can
    tell the user which relationship was rejected.
    """

    def __init__(self, rule: str, message: str):
        super().__init__(message)
        self.rule = rule


class NotFoundError(TicError):
    """The targeted work item does not exist.

    ``where`` is ``"local"`` when raised by the local store and ``"remote"``
    when raised by a remote source.
    """

    def __init__(self, item_id: str, where: str = "local"):
        super().__init__(f"Work item not found: {item_id}")
        self.item_id = item_id
        self.where = where


class RemoteError(TicError):
    """A remote source call failed (I/O, decode, remote-side rejection)."""


class QueueError(TicError):
    """The mutation queue file could not be read."""
