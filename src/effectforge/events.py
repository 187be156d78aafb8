"""In-process publish/subscribe bus."""

from __future__ import annotations

import copy
import logging
import time
from collections import defaultdict, deque
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any, TypedDict

from effectforge.errors import HandlerError

logger = logging.getLogger(__name__)


class EventType(StrEnum):
    EFFECT_CREATED = "effectCreated"
    EFFECT_CREATED_WITH_CONFIG = "effectCreatedWithConfig"
    EFFECT_UPDATED = "effectUpdated"
    EFFECT_DELETED = "effectDeleted"
    EFFECTS_REORDERED = "effectsReordered"
    EFFECT_VISIBILITY_TOGGLED = "effectVisibilityToggled"
    SECONDARY_EFFECT_CREATED = "secondaryEffectCreated"
    SECONDARY_EFFECT_UPDATED = "secondaryEffectUpdated"
    SECONDARY_EFFECT_DELETED = "secondaryEffectDeleted"
    SECONDARY_EFFECTS_REORDERED = "secondaryEffectsReordered"
    KEYFRAME_EFFECT_CREATED = "keyframeEffectCreated"
    KEYFRAME_EFFECT_UPDATED = "keyframeEffectUpdated"
    KEYFRAME_EFFECT_DELETED = "keyframeEffectDeleted"
    KEYFRAME_EFFECTS_REORDERED = "keyframeEffectsReordered"
    PROJECT_SETTINGS_UPDATED = "projectSettingsUpdated"
    COMMAND_EXECUTED = "command:executed"
    COMMAND_UNDONE = "command:undone"
    COMMAND_REDONE = "command:redone"
    COMMAND_CLEARED = "command:cleared"
    COMMAND_ERROR = "command:error"


# -- payloads ------------------------------------------------------------------


class EffectPayload(TypedDict):
    effect: dict[str, Any]
    index: int


class EffectCreatedPayload(EffectPayload):
    effect_type: str


class EffectUpdatedPayload(TypedDict):
    index: int
    effect: dict[str, Any]
    previous: dict[str, Any]


class ReorderPayload(TypedDict):
    from_index: int
    to_index: int


class VisibilityPayload(TypedDict):
    index: int
    effect_id: str
    visible: bool


class NestedEffectPayload(TypedDict):
    parent_index: int
    index: int
    effect: dict[str, Any]


class NestedReorderPayload(TypedDict):
    parent_index: int
    from_index: int
    to_index: int


class KeyframePayload(NestedEffectPayload):
    frame: int


class ProjectSettingsPayload(TypedDict):
    changes: dict[str, Any]


class CommandPayload(TypedDict):
    kind: str
    description: str


class CommandErrorPayload(CommandPayload):
    error: str


class CommandClearedPayload(TypedDict):
    undo_count: int
    redo_count: int


PAYLOAD_SCHEMAS: dict[EventType, type] = {
    EventType.EFFECT_CREATED: EffectCreatedPayload,
    EventType.EFFECT_CREATED_WITH_CONFIG: EffectCreatedPayload,
    EventType.EFFECT_UPDATED: EffectUpdatedPayload,
    EventType.EFFECT_DELETED: EffectPayload,
    EventType.EFFECTS_REORDERED: ReorderPayload,
    EventType.EFFECT_VISIBILITY_TOGGLED: VisibilityPayload,
    EventType.SECONDARY_EFFECT_CREATED: NestedEffectPayload,
    EventType.SECONDARY_EFFECT_UPDATED: NestedEffectPayload,
    EventType.SECONDARY_EFFECT_DELETED: NestedEffectPayload,
    EventType.SECONDARY_EFFECTS_REORDERED: NestedReorderPayload,
    EventType.KEYFRAME_EFFECT_CREATED: KeyframePayload,
    EventType.KEYFRAME_EFFECT_UPDATED: KeyframePayload,
    EventType.KEYFRAME_EFFECT_DELETED: KeyframePayload,
    EventType.KEYFRAME_EFFECTS_REORDERED: NestedReorderPayload,
    EventType.PROJECT_SETTINGS_UPDATED: ProjectSettingsPayload,
    EventType.COMMAND_EXECUTED: CommandPayload,
    EventType.COMMAND_UNDONE: CommandPayload,
    EventType.COMMAND_REDONE: CommandPayload,
    EventType.COMMAND_CLEARED: CommandClearedPayload,
    EventType.COMMAND_ERROR: CommandErrorPayload,
}


@dataclass(frozen=True)
class Event:
    """A published event. The payload is a read-only copy of what was emitted."""

    type: str
    payload: Mapping[str, Any]
    timestamp: float = field(default_factory=time.time)
    meta: Mapping[str, Any] = field(default_factory=dict)


def _frozen(value: Any, *, deep: bool = True) -> Any:
    """Copy ``value`` into read-only containers: mappings become proxies, sequences tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: _frozen(item, deep=deep) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_frozen(item, deep=deep) for item in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(_frozen(item, deep=deep) for item in value)
    return copy.deepcopy(value) if deep else value


def _frozen_mapping(event_type: str, data: Mapping[str, Any] | None) -> Mapping[str, Any]:
    try:
        return _frozen(data or {})
    except Exception:
        # Leaves that cannot be copied are shared; the containers stay read-only.
        logger.warning("Payload for %s could not be deep-copied; sharing its values", event_type)
        return _frozen(data or {}, deep=False)


Handler = Callable[[Event], Any]


@dataclass(eq=False)
class _Subscription:
    handler: Handler
    once: bool = False


class EventBus:
    """Synchronous pub/sub with an inspectable, bounded history."""

    def __init__(self, history_limit: int = 1000) -> None:
        self._subscriptions: dict[str, list[_Subscription]] = defaultdict(list)
        self._history: deque[Event] = deque(maxlen=history_limit)
        self.handler_errors: deque[HandlerError] = deque(maxlen=history_limit)

    def subscribe(
        self, event_type: str, handler: Handler, *, once: bool = False
    ) -> Callable[[], None]:
        """Register ``handler``; returns a callable that unsubscribes it."""
        subscription = _Subscription(handler, once)
        self._subscriptions[str(event_type)].append(subscription)

        def unsubscribe() -> None:
            self._discard(str(event_type), subscription)

        return unsubscribe

    def _discard(self, event_type: str, subscription: _Subscription) -> None:
        subscriptions = self._subscriptions.get(event_type, [])
        if subscription in subscriptions:
            subscriptions.remove(subscription)

    def emit(
        self,
        event_type: str,
        payload: Mapping[str, Any] | None = None,
        meta: Mapping[str, Any] | None = None,
    ) -> Event:
        """Deliver an event to every current subscriber, in subscription order.

        The payload handed to handlers is a copy that is read-only at every
        level. Handler failures are logged and collected in ``handler_errors``;
        they never reach the caller and never stop later handlers.
        """
        event_type = str(event_type)
        event = Event(
            type=event_type,
            payload=_frozen_mapping(event_type, payload),
            meta=_frozen_mapping(event_type, meta),
        )
        self._history.append(event)
        for subscription in tuple(self._subscriptions.get(event.type, ())):
            if subscription.once:
                self._discard(event.type, subscription)
            try:
                subscription.handler(event)
            except Exception as exc:
                name = getattr(subscription.handler, "__qualname__", repr(subscription.handler))
                error = HandlerError(event.type, name, exc)
                self.handler_errors.append(error)
                logger.exception("Event handler %s failed for %s", name, event.type)
        return event

    def clear(self) -> None:
        """Drop all subscribers, history and recorded handler errors."""
        self._subscriptions.clear()
        self._history.clear()
        self.handler_errors.clear()

    def get_event_history(self, event_type: str | None = None) -> list[Event]:
        if event_type is None:
            return list(self._history)
        return [event for event in self._history if event.type == str(event_type)]

    def subscriber_count(self, event_type: str) -> int:
        return len(self._subscriptions.get(str(event_type), ()))

    def get_stats(self) -> dict[str, int]:
        """Subscriber count per event type that currently has subscribers."""
        return {
            event_type: len(subscriptions)
            for event_type, subscriptions in self._subscriptions.items()
            if subscriptions
        }

    def replay_events(self, events: Iterable[Event]) -> list[Event]:
        """Emit recorded events again, in order, marking each with ``is_replay``."""
        events = list(events)
        logger.info("Replaying %d events", len(events))
        return [
            self.emit(event.type, event.payload, {**event.meta, "is_replay": True})
            for event in events
        ]
