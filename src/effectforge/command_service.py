"""Undo/redo engine: a single linear history of executed commands."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass

from effectforge.commands import Command
from effectforge.events import EventBus, EventType

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY = 50


@dataclass(frozen=True)
class HistoryEntry:
    """Read-only view of a command on one of the stacks."""

    index: int
    kind: str
    description: str
    timestamp: float


@dataclass(frozen=True)
class CommandState:
    can_undo: bool
    can_redo: bool
    undo_count: int
    redo_count: int
    last_command: str | None
    next_redo: str | None


class CommandService:
    """Executes commands and keeps the undo and redo stacks.

    Undo is strict LIFO. Executing a new command discards everything on the
    redo stack. The oldest undo entry is dropped once ``max_history`` is hit.
    """

    def __init__(
        self, event_bus: EventBus | None = None, *, max_history: int = DEFAULT_MAX_HISTORY
    ) -> None:
        if max_history < 1:
            msg = f"max_history must be positive, got {max_history}"
            raise ValueError(msg)
        self._event_bus = event_bus
        self._undo: deque[Command] = deque(maxlen=max_history)
        self._redo: list[Command] = []
        self.max_history = max_history

    def _publish(self, event_type: EventType, command: Command, **extra: str) -> None:
        if self._event_bus is not None:
            payload = {"kind": command.kind, "description": command.description, **extra}
            self._event_bus.emit(event_type, payload)

    def execute(self, command: Command) -> None:
        """Run ``command``. On failure neither stack changes and the error is re-raised."""
        try:
            command.execute()
        except Exception as exc:
            logger.warning("Command %r failed: %s", command.description, exc)
            self._publish(EventType.COMMAND_ERROR, command, error=str(exc))
            raise
        self._undo.append(command)
        self._redo.clear()
        logger.info("Executed: %s", command.description)
        self._publish(EventType.COMMAND_EXECUTED, command)

    def undo(self) -> bool:
        """Revert the most recent command. Returns False when there is nothing to undo."""
        if not self._undo:
            return False
        command = self._undo.pop()
        try:
            command.undo()
        except Exception as exc:
            self._undo.append(command)
            logger.warning("Undo of %r failed: %s", command.description, exc)
            self._publish(EventType.COMMAND_ERROR, command, error=str(exc))
            raise
        self._redo.append(command)
        logger.info("Undone: %s", command.description)
        self._publish(EventType.COMMAND_UNDONE, command)
        return True

    def redo(self) -> bool:
        """Re-apply the most recently undone command. Returns False when there is none."""
        if not self._redo:
            return False
        command = self._redo.pop()
        try:
            command.execute()
        except Exception as exc:
            self._redo.append(command)
            logger.warning("Redo of %r failed: %s", command.description, exc)
            self._publish(EventType.COMMAND_ERROR, command, error=str(exc))
            raise
        self._undo.append(command)
        logger.info("Redone: %s", command.description)
        self._publish(EventType.COMMAND_REDONE, command)
        return True

    def undo_to_index(self, index: int) -> int:
        """Undo the ``index + 1`` most recent commands (0 = just the last one).

        Returns how many commands were undone.
        """
        if not 0 <= index < len(self._undo):
            return 0
        count = 0
        for _ in range(index + 1):
            if not self.undo():
                break
            count += 1
        return count

    def redo_to_index(self, index: int) -> int:
        """Redo the ``index + 1`` most recently undone commands."""
        if not 0 <= index < len(self._redo):
            return 0
        count = 0
        for _ in range(index + 1):
            if not self.redo():
                break
            count += 1
        return count

    def can_undo(self) -> bool:
        return bool(self._undo)

    def can_redo(self) -> bool:
        return bool(self._redo)

    @staticmethod
    def _entries(stack) -> list[HistoryEntry]:
        return [
            HistoryEntry(i, c.kind, c.description, c.timestamp)
            for i, c in enumerate(reversed(stack))
        ]

    def get_undo_history(self) -> list[HistoryEntry]:
        """Most recent first; entry ``i`` is reached with ``undo_to_index(i)``."""
        return self._entries(self._undo)

    def get_redo_history(self) -> list[HistoryEntry]:
        return self._entries(self._redo)

    def get_state(self) -> CommandState:
        return CommandState(
            can_undo=self.can_undo(),
            can_redo=self.can_redo(),
            undo_count=len(self._undo),
            redo_count=len(self._redo),
            last_command=self._undo[-1].description if self._undo else None,
            next_redo=self._redo[-1].description if self._redo else None,
        )

    def clear(self) -> None:
        undo_count, redo_count = len(self._undo), len(self._redo)
        self._undo.clear()
        self._redo.clear()
        logger.info("Cleared command history")
        if self._event_bus is not None:
            self._event_bus.emit(
                EventType.COMMAND_CLEARED, {"undo_count": undo_count, "redo_count": redo_count}
            )
