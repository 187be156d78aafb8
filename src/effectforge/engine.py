"""Wiring: build one store, bus, command history and operations facade."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from effectforge.command_service import CommandService
from effectforge.config import AppConfig
from effectforge.events import EventBus
from effectforge.operations import EffectOperationsService
from effectforge.providers import DefaultsProvider
from effectforge.state import ProjectStateStore

logger = logging.getLogger(__name__)


@dataclass
class Engine:
    store: ProjectStateStore
    event_bus: EventBus
    command_service: CommandService
    operations: EffectOperationsService


def build_engine(
    config: AppConfig | None = None, *, defaults_provider: DefaultsProvider | None = None
) -> Engine:
    """Construct a fully wired engine.

    Nothing here is global; call it once at the application's top level and
    pass the pieces down, or call it per test for isolated instances.
    """
    config = config or AppConfig()
    event_bus = EventBus(history_limit=config.history.event_history_limit)
    command_service = CommandService(event_bus, max_history=config.history.max_undo)
    store = ProjectStateStore(config.project.new_project())
    operations = EffectOperationsService(
        command_service, event_bus, defaults_provider=defaults_provider
    )
    logger.debug(
        "Engine ready (max_undo=%d, event_history_limit=%d)",
        config.history.max_undo,
        config.history.event_history_limit,
    )
    return Engine(store, event_bus, command_service, operations)
