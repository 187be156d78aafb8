"""Exception taxonomy shared by the store, commands, event bus and facade."""

from __future__ import annotations


class EffectForgeError(Exception):
    """Base class for all engine errors."""


class ValidationError(EffectForgeError, ValueError):
    """Raised when a project document or update is malformed.

    Always raised before any mutation; the document is left untouched.
    """


class IndexOutOfRange(EffectForgeError, IndexError):
    """Raised when a command addresses a position that no longer exists."""


class MissingDependency(EffectForgeError, ValueError):
    """Raised when a collaborator or required argument was not supplied."""

    @classmethod
    def required(cls, name: str) -> MissingDependency:
        return cls(f"{name} is required")


class HandlerError(EffectForgeError):
    """Wraps an exception raised by an event subscriber.

    Never propagates out of ``EventBus.emit``; collected for inspection only.
    """

    def __init__(self, event_type: str, handler_name: str, original: BaseException) -> None:
        super().__init__(f"handler {handler_name!r} failed for {event_type!r}: {original}")
        self.event_type = event_type
        self.handler_name = handler_name
        self.original = original
