"""Tests for the undo/redo command service."""

from dataclasses import dataclass
from typing import ClassVar

import pytest

from effectforge.command_service import CommandService
from effectforge.commands import AddEffectCommand, Command, DeleteEffectCommand
from effectforge.events import EventBus, EventType
from effectforge.models import Effect
from effectforge.state import ProjectStateStore


@dataclass(frozen=True, kw_only=True)
class ExplodingCommand(Command):
    """Fails on execute or undo, as configured."""

    kind: ClassVar[str] = "test.explode"

    fail_execute: bool = False
    fail_undo: bool = False

    def execute(self) -> None:
        if self.fail_execute:
            raise RuntimeError("boom")

    def undo(self) -> None:
        if self.fail_undo:
            raise RuntimeError("no way back")


def _add(service: CommandService, store: ProjectStateStore, name: str) -> AddEffectCommand:
    command = AddEffectCommand.create(store, Effect(id=f"{name.lower()}-id", name=name))
    service.execute(command)
    return command


def _ids(store: ProjectStateStore) -> list[str]:
    return [e.id for e in store.get_state().effects]


def test_add_undo_redo(command_service: CommandService):
    store = ProjectStateStore()
    _add(command_service, store, "Glow")
    assert command_service.can_undo()

    assert command_service.undo() is True
    assert store.effect_count() == 0
    assert not command_service.can_undo()
    assert command_service.can_redo()

    assert command_service.redo() is True
    assert _ids(store) == ["glow-id"]


def test_undo_is_lifo(command_service: CommandService):
    store = ProjectStateStore()
    for name in ("A", "B", "C"):
        _add(command_service, store, name)

    command_service.undo()
    assert _ids(store) == ["a-id", "b-id"]
    command_service.undo()
    assert _ids(store) == ["a-id"]
    command_service.undo()
    assert _ids(store) == []


def test_empty_stacks_return_false(command_service: CommandService):
    assert command_service.undo() is False
    assert command_service.redo() is False


def test_execute_clears_redo(command_service: CommandService):
    store = ProjectStateStore()
    _add(command_service, store, "A")
    command_service.undo()
    assert command_service.can_redo()
    _add(command_service, store, "B")
    assert not command_service.can_redo()


def test_max_history_drops_oldest(event_bus: EventBus):
    service = CommandService(event_bus, max_history=2)
    store = ProjectStateStore()
    for name in ("A", "B", "C"):
        _add(service, store, name)

    assert service.get_state().undo_count == 2
    assert service.undo() and service.undo()
    assert service.undo() is False
    assert _ids(store) == ["a-id"]


@pytest.mark.parametrize("max_history", [0, -5])
def test_max_history_must_be_positive(max_history: int) -> None:
    with pytest.raises(ValueError, match="max_history"):
        CommandService(max_history=max_history)


def test_failed_execute_changes_nothing(command_service: CommandService, event_bus: EventBus):
    store = ProjectStateStore()
    _add(command_service, store, "A")
    with pytest.raises(RuntimeError, match="boom"):
        command_service.execute(
            ExplodingCommand(store=store, description="Explode", fail_execute=True)
        )

    state = command_service.get_state()
    assert state.undo_count == 1
    assert state.last_command == "Added A"
    [error] = event_bus.get_event_history(EventType.COMMAND_ERROR)
    assert error.payload["kind"] == "test.explode"
    assert error.payload["error"] == "boom"


def test_failed_execute_keeps_redo_stack(command_service: CommandService):
    store = ProjectStateStore()
    _add(command_service, store, "A")
    command_service.undo()
    with pytest.raises(RuntimeError):
        command_service.execute(
            ExplodingCommand(store=store, description="Explode", fail_execute=True)
        )
    assert command_service.can_redo()


def test_failed_undo_restores_stack(command_service: CommandService):
    store = ProjectStateStore()
    command_service.execute(ExplodingCommand(store=store, description="Stuck", fail_undo=True))
    with pytest.raises(RuntimeError, match="no way back"):
        command_service.undo()
    assert command_service.get_state().last_command == "Stuck"
    assert not command_service.can_redo()


def test_stale_redo_restores_stack(command_service: CommandService, store: ProjectStateStore):
    command_service.execute(DeleteEffectCommand.create(store, 0))
    command_service.undo()
    store.remove_effect(0)
    with pytest.raises(IndexError):
        command_service.redo()
    assert command_service.get_state().redo_count == 1


def test_undo_and_redo_to_index(command_service: CommandService):
    store = ProjectStateStore()
    for name in ("A", "B", "C", "D"):
        _add(command_service, store, name)

    assert command_service.undo_to_index(2) == 3
    assert _ids(store) == ["a-id"]
    assert command_service.redo_to_index(1) == 2
    assert _ids(store) == ["a-id", "b-id", "c-id"]


def test_to_index_out_of_range_is_a_no_op(command_service: CommandService):
    store = ProjectStateStore()
    _add(command_service, store, "A")
    assert command_service.undo_to_index(5) == 0
    assert command_service.undo_to_index(-1) == 0
    assert command_service.redo_to_index(0) == 0
    assert store.effect_count() == 1


def test_histories_are_most_recent_first(command_service: CommandService):
    store = ProjectStateStore()
    for name in ("A", "B", "C"):
        _add(command_service, store, name)
    command_service.undo()

    undo_history = command_service.get_undo_history()
    assert [e.description for e in undo_history] == ["Added B", "Added A"]
    assert [e.index for e in undo_history] == [0, 1]
    assert undo_history[0].kind == "effect.add"
    assert [e.description for e in command_service.get_redo_history()] == ["Added C"]


def test_get_state(command_service: CommandService):
    store = ProjectStateStore()
    _add(command_service, store, "A")
    _add(command_service, store, "B")
    command_service.undo()

    state = command_service.get_state()
    assert state.can_undo and state.can_redo
    assert (state.undo_count, state.redo_count) == (1, 1)
    assert state.last_command == "Added A"
    assert state.next_redo == "Added B"


def test_clear(command_service: CommandService, event_bus: EventBus):
    store = ProjectStateStore()
    _add(command_service, store, "A")
    _add(command_service, store, "B")
    command_service.undo()
    command_service.clear()

    assert not command_service.can_undo()
    assert not command_service.can_redo()
    [cleared] = event_bus.get_event_history(EventType.COMMAND_CLEARED)
    assert dict(cleared.payload) == {"undo_count": 1, "redo_count": 1}


def test_lifecycle_events(command_service: CommandService, event_bus: EventBus):
    store = ProjectStateStore()
    _add(command_service, store, "A")
    command_service.undo()
    command_service.redo()

    types = [e.type for e in event_bus.get_event_history()]
    assert types == ["command:executed", "command:undone", "command:redone"]
    assert event_bus.get_event_history()[0].payload["description"] == "Added A"


def test_works_without_event_bus():
    service = CommandService()
    store = ProjectStateStore()
    _add(service, store, "A")
    assert service.undo()
    service.clear()
