"""EffectOperationsService - the single entry point for effect mutations.

Every operation follows the same path: validate arguments, build a command,
run it through the :class:`CommandService`, publish an event, bump a counter.
"""

from __future__ import annotations

import copy
import logging
import time
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from effectforge.center import detect_and_apply_center
from effectforge.command_service import CommandService
from effectforge.commands import (
    AddEffectCommand,
    AddKeyframeEffectCommand,
    AddSecondaryEffectCommand,
    DeleteEffectCommand,
    DeleteKeyframeEffectCommand,
    DeleteSecondaryEffectCommand,
    ReorderEffectsCommand,
    ReorderKeyframeEffectsCommand,
    ReorderSecondaryEffectsCommand,
    UpdateEffectCommand,
    UpdateKeyframeEffectCommand,
    UpdateProjectSettingsCommand,
    UpdateSecondaryEffectCommand,
)
from effectforge.errors import IndexOutOfRange, MissingDependency, ValidationError
from effectforge.events import EventBus, EventType
from effectforge.models import Effect, EffectType, KeyframeEffect, Project
from effectforge.providers import (
    DefaultsProvider,
    EffectCatalog,
    EffectCatalogEntry,
    resolve_catalog_entry,
)
from effectforge.state import ProjectStateStore

logger = logging.getLogger(__name__)

DEFAULT_PERCENT_CHANCE = 100


@dataclass
class OperationMetrics:
    effects_created: int = 0
    effects_updated: int = 0
    effects_deleted: int = 0
    effects_reordered: int = 0
    secondary_effects_created: int = 0
    secondary_effects_updated: int = 0
    secondary_effects_deleted: int = 0
    secondary_effects_reordered: int = 0
    keyframe_effects_created: int = 0
    keyframe_effects_updated: int = 0
    keyframe_effects_deleted: int = 0
    keyframe_effects_reordered: int = 0
    project_settings_updated: int = 0
    operation_errors: int = 0
    last_operation_time: float | None = None


def deep_merge(base: Mapping[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``patch`` into a copy of ``base``; non-mappings replace."""
    merged = copy.deepcopy(dict(base))
    for key, value in patch.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _effect_patch(updated: Effect | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(updated, Effect):
        fields = updated.model_fields_set - {"id"}
        # class_name and registry_key fall back to the name; that fallback is not a change.
        fields -= {f for f in ("class_name", "registry_key") if getattr(updated, f) == updated.name}
        return updated.model_dump(include=fields)
    if isinstance(updated, Mapping):
        unknown = sorted(set(updated) - set(Effect.model_fields))
        if unknown:
            msg = f"unknown effect fields: {', '.join(unknown)}"
            raise ValidationError(msg)
        return {k: v for k, v in updated.items() if k != "id"}
    msg = f"effect update must be an Effect or a mapping, got {type(updated).__name__}"
    raise ValidationError(msg)


def _build_effect(data: Mapping[str, Any]) -> Effect:
    try:
        return Effect.model_validate(data)
    except PydanticValidationError as exc:
        msg = f"invalid effect: {exc}"
        raise ValidationError(msg) from exc


def _merged_effect(current: Effect, updated: Effect | Mapping[str, Any]) -> Effect:
    merged = deep_merge(current.model_dump(), _effect_patch(updated))
    merged["id"] = current.id
    return _build_effect(merged)


def _require(**values: Any) -> None:
    for name, value in values.items():
        if value is None or (isinstance(value, str) and not value.strip()):
            raise MissingDependency.required(name)


class EffectOperationsService:
    """Facade over the store, the command history and the event bus."""

    def __init__(
        self,
        command_service: CommandService | None,
        event_bus: EventBus | None,
        *,
        defaults_provider: DefaultsProvider | None = None,
    ) -> None:
        _require(command_service=command_service, event_bus=event_bus)
        self._command_service = command_service
        self._event_bus = event_bus
        self._defaults_provider = defaults_provider
        self._metrics = OperationMetrics()

    # -- infrastructure --------------------------------------------------------

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        try:
            yield
        except Exception:
            self._metrics.operation_errors += 1
            logger.exception("Operation %s failed", name)
            raise
        self._metrics.last_operation_time = time.time()

    def _count(self, counter: str) -> None:
        setattr(self._metrics, counter, getattr(self._metrics, counter) + 1)

    async def _seeded_config(
        self, effect_name: str, project_state: ProjectStateStore
    ) -> dict[str, Any]:
        defaults: dict[str, Any] = {}
        if self._defaults_provider is not None:
            defaults = await self._defaults_provider.get_defaults(effect_name)
        return detect_and_apply_center(defaults or {}, project_state.get_resolution_dimensions())

    def get_operation_metrics(self) -> dict[str, Any]:
        return asdict(self._metrics)

    def reset_operation_metrics(self) -> None:
        self._metrics = OperationMetrics()

    # -- primary effects -------------------------------------------------------

    def _add_primary(
        self,
        project_state: ProjectStateStore,
        entry: EffectCatalogEntry,
        config: dict[str, Any],
        percent_chance: float | None,
        event_type: EventType,
    ) -> Effect:
        effect = _build_effect(
            {
                "name": entry.name,
                "class_name": entry.class_name,
                "registry_key": entry.registry_key,
                "type": entry.category,
                "visible": True,
                "percent_chance": percent_chance,
                "config": config,
            }
        )
        command = AddEffectCommand.create(project_state, effect)
        self._command_service.execute(command)
        self._event_bus.emit(
            event_type,
            {
                "effect": effect.model_dump(mode="json"),
                "index": command.index,
                "effect_type": str(effect.type),
            },
        )
        self._count("effects_created")
        logger.info("Created effect %s (%s) at %d", effect.name, effect.id, command.index)
        return effect

    async def create_effect(
        self,
        effect_name: str,
        effect_type: EffectType | str = EffectType.PRIMARY,
        project_state: ProjectStateStore | None = None,
        available_effects: EffectCatalog | None = None,
    ) -> Effect:
        """Create an effect from the catalog, seeded with the provider's defaults."""
        _require(effect_name=effect_name, project_state=project_state)
        with self._operation("create_effect"):
            entry = resolve_catalog_entry(available_effects, effect_name, effect_type)
            config = await self._seeded_config(entry.name, project_state)
            return self._add_primary(
                project_state, entry, config, DEFAULT_PERCENT_CHANCE, EventType.EFFECT_CREATED
            )

    def create_effect_with_config(
        self,
        effect_name: str,
        effect_type: EffectType | str = EffectType.PRIMARY,
        project_state: ProjectStateStore | None = None,
        config: Mapping[str, Any] | None = None,
        percent_chance: float | None = DEFAULT_PERCENT_CHANCE,
        available_effects: EffectCatalog | None = None,
    ) -> Effect:
        """Create an effect with a caller-built config, stored as given."""
        _require(effect_name=effect_name, project_state=project_state)
        with self._operation("create_effect_with_config"):
            return self._add_primary(
                project_state,
                resolve_catalog_entry(available_effects, effect_name, effect_type),
                copy.deepcopy(dict(config or {})),
                percent_chance,
                EventType.EFFECT_CREATED_WITH_CONFIG,
            )

    def update_effect(
        self,
        index: int,
        updated_effect: Effect | Mapping[str, Any],
        project_state: ProjectStateStore | None = None,
    ) -> Effect:
        """Deep-merge ``updated_effect`` into the effect at ``index``, keeping its id."""
        _require(index=index, updated_effect=updated_effect, project_state=project_state)
        with self._operation("update_effect"):
            current = project_state.get_effect(index)
            command = UpdateEffectCommand.create(
                project_state, index, _merged_effect(current, updated_effect)
            )
            self._command_service.execute(command)
            self._event_bus.emit(
                EventType.EFFECT_UPDATED,
                {
                    "index": index,
                    "effect": command.updated.model_dump(mode="json"),
                    "previous": command.previous.model_dump(mode="json"),
                },
            )
            self._count("effects_updated")
            return command.updated

    def delete_effect(self, index: int, project_state: ProjectStateStore | None = None) -> Effect:
        _require(index=index, project_state=project_state)
        with self._operation("delete_effect"):
            command = DeleteEffectCommand.create(project_state, index)
            self._command_service.execute(command)
            self._event_bus.emit(
                EventType.EFFECT_DELETED,
                {"effect": command.effect.model_dump(mode="json"), "index": index},
            )
            self._count("effects_deleted")
            return command.effect

    def reorder_effects(
        self, from_index: int, to_index: int, project_state: ProjectStateStore | None = None
    ) -> None:
        """Move one effect; the effects between the two positions shift by one."""
        _require(from_index=from_index, to_index=to_index, project_state=project_state)
        with self._operation("reorder_effects"):
            command = ReorderEffectsCommand.create(project_state, from_index, to_index)
            self._command_service.execute(command)
            self._event_bus.emit(
                EventType.EFFECTS_REORDERED, {"from_index": from_index, "to_index": to_index}
            )
            self._count("effects_reordered")

    def toggle_effect_visibility(
        self,
        effect_id: str | None = None,
        project_state: ProjectStateStore | None = None,
        *,
        index: int | None = None,
    ) -> Effect:
        """Flip ``visible`` on one effect, found by id (preferred) or by index."""
        _require(project_state=project_state)
        if effect_id is None and index is None:
            raise MissingDependency.required("effect_id or index")
        with self._operation("toggle_effect_visibility"):
            if effect_id is not None:
                index = project_state.find_effect_index(effect_id)
                if index is None:
                    msg = f"no effect with id {effect_id!r}"
                    raise IndexOutOfRange(msg)
            current = project_state.get_effect(index)
            visible = not current.visible
            command = UpdateEffectCommand.create(
                project_state,
                index,
                current.model_copy(update={"visible": visible}),
                description=f"{'Shown' if visible else 'Hid'} {current.label}",
            )
            self._command_service.execute(command)
            self._event_bus.emit(
                EventType.EFFECT_VISIBILITY_TOGGLED,
                {"index": index, "effect_id": current.id, "visible": visible},
            )
            self._count("effects_updated")
            return command.updated

    # -- secondary effects -----------------------------------------------------

    async def create_secondary_effect(
        self,
        parent_index: int,
        effect_name: str,
        project_state: ProjectStateStore | None = None,
        config: Mapping[str, Any] | None = None,
        available_effects: EffectCatalog | None = None,
    ) -> Effect:
        """Attach a new secondary effect to the effect at ``parent_index``.

        Without ``config`` the defaults provider is consulted, as for
        :meth:`create_effect`.
        """
        _require(parent_index=parent_index, effect_name=effect_name, project_state=project_state)
        with self._operation("create_secondary_effect"):
            entry = resolve_catalog_entry(available_effects, effect_name, EffectType.SECONDARY)
            if config is None:
                seeded = await self._seeded_config(entry.name, project_state)
            else:
                seeded = copy.deepcopy(dict(config))
            effect = _build_effect(
                {
                    "name": entry.name,
                    "class_name": entry.class_name,
                    "registry_key": entry.registry_key,
                    "type": EffectType.SECONDARY,
                    "percent_chance": DEFAULT_PERCENT_CHANCE,
                    "config": seeded,
                }
            )
            command = AddSecondaryEffectCommand.create(project_state, parent_index, effect)
            self._command_service.execute(command)
            self._event_bus.emit(
                EventType.SECONDARY_EFFECT_CREATED,
                {
                    "parent_index": parent_index,
                    "index": command.index,
                    "effect": effect.model_dump(mode="json"),
                },
            )
            self._count("secondary_effects_created")
            return effect

    def delete_secondary_effect(
        self, parent_index: int, index: int, project_state: ProjectStateStore | None = None
    ) -> Effect:
        _require(parent_index=parent_index, index=index, project_state=project_state)
        with self._operation("delete_secondary_effect"):
            command = DeleteSecondaryEffectCommand.create(project_state, parent_index, index)
            self._command_service.execute(command)
            self._event_bus.emit(
                EventType.SECONDARY_EFFECT_DELETED,
                {
                    "parent_index": parent_index,
                    "index": index,
                    "effect": command.item.model_dump(mode="json"),
                },
            )
            self._count("secondary_effects_deleted")
            return command.item

    def reorder_secondary_effects(
        self,
        parent_index: int,
        from_index: int,
        to_index: int,
        project_state: ProjectStateStore | None = None,
    ) -> None:
        _require(
            parent_index=parent_index,
            from_index=from_index,
            to_index=to_index,
            project_state=project_state,
        )
        with self._operation("reorder_secondary_effects"):
            command = ReorderSecondaryEffectsCommand.create(
                project_state, parent_index, from_index, to_index
            )
            self._command_service.execute(command)
            self._event_bus.emit(
                EventType.SECONDARY_EFFECTS_REORDERED,
                {"parent_index": parent_index, "from_index": from_index, "to_index": to_index},
            )
            self._count("secondary_effects_reordered")

    def _update_secondary(
        self,
        parent_index: int,
        index: int,
        updated_effect: Effect | Mapping[str, Any],
        project_state: ProjectStateStore,
        description: str | None = None,
    ) -> Effect:
        current = project_state.get_secondary_effect(parent_index, index)
        command = UpdateSecondaryEffectCommand.create(
            project_state, parent_index, index, _merged_effect(current, updated_effect), description
        )
        self._command_service.execute(command)
        self._event_bus.emit(
            EventType.SECONDARY_EFFECT_UPDATED,
            {
                "parent_index": parent_index,
                "index": index,
                "effect": command.updated.model_dump(mode="json"),
            },
        )
        self._count("secondary_effects_updated")
        return command.updated

    def update_secondary_effect(
        self,
        parent_index: int,
        index: int,
        updated_effect: Effect | Mapping[str, Any],
        project_state: ProjectStateStore | None = None,
    ) -> Effect:
        _require(
            parent_index=parent_index,
            index=index,
            updated_effect=updated_effect,
            project_state=project_state,
        )
        with self._operation("update_secondary_effect"):
            return self._update_secondary(parent_index, index, updated_effect, project_state)

    def toggle_secondary_effect_visibility(
        self, parent_index: int, index: int, project_state: ProjectStateStore | None = None
    ) -> Effect:
        _require(parent_index=parent_index, index=index, project_state=project_state)
        with self._operation("toggle_secondary_effect_visibility"):
            current = project_state.get_secondary_effect(parent_index, index)
            visible = not current.visible
            return self._update_secondary(
                parent_index,
                index,
                {"visible": visible},
                project_state,
                f"{'Shown' if visible else 'Hid'} {current.label}",
            )

    # -- keyframe effects ------------------------------------------------------

    async def create_keyframe_effect(
        self,
        parent_index: int,
        effect_name: str,
        frame: int,
        project_state: ProjectStateStore | None = None,
        config: Mapping[str, Any] | None = None,
        available_effects: EffectCatalog | None = None,
    ) -> KeyframeEffect:
        """Schedule a new effect at ``frame`` on the effect at ``parent_index``."""
        _require(
            parent_index=parent_index,
            effect_name=effect_name,
            frame=frame,
            project_state=project_state,
        )
        with self._operation("create_keyframe_effect"):
            entry = resolve_catalog_entry(available_effects, effect_name, EffectType.KEYFRAME)
            if config is None:
                seeded = await self._seeded_config(entry.name, project_state)
            else:
                seeded = copy.deepcopy(dict(config))
            try:
                keyframe = KeyframeEffect(
                    frame=frame,
                    effect=Effect(
                        name=entry.name,
                        class_name=entry.class_name,
                        registry_key=entry.registry_key,
                        type=EffectType.KEYFRAME,
                        percent_chance=DEFAULT_PERCENT_CHANCE,
                        config=seeded,
                    ),
                )
            except PydanticValidationError as exc:
                msg = f"invalid keyframe effect: {exc}"
                raise ValidationError(msg) from exc
            command = AddKeyframeEffectCommand.create(project_state, parent_index, keyframe)
            self._command_service.execute(command)
            self._event_bus.emit(
                EventType.KEYFRAME_EFFECT_CREATED,
                {
                    "parent_index": parent_index,
                    "index": command.index,
                    "frame": frame,
                    "effect": keyframe.effect.model_dump(mode="json"),
                },
            )
            self._count("keyframe_effects_created")
            return keyframe

    def delete_keyframe_effect(
        self, parent_index: int, index: int, project_state: ProjectStateStore | None = None
    ) -> KeyframeEffect:
        _require(parent_index=parent_index, index=index, project_state=project_state)
        with self._operation("delete_keyframe_effect"):
            command = DeleteKeyframeEffectCommand.create(project_state, parent_index, index)
            self._command_service.execute(command)
            self._event_bus.emit(
                EventType.KEYFRAME_EFFECT_DELETED,
                {
                    "parent_index": parent_index,
                    "index": index,
                    "frame": command.item.frame,
                    "effect": command.item.effect.model_dump(mode="json"),
                },
            )
            self._count("keyframe_effects_deleted")
            return command.item

    def reorder_keyframe_effects(
        self,
        parent_index: int,
        from_index: int,
        to_index: int,
        project_state: ProjectStateStore | None = None,
    ) -> None:
        _require(
            parent_index=parent_index,
            from_index=from_index,
            to_index=to_index,
            project_state=project_state,
        )
        with self._operation("reorder_keyframe_effects"):
            command = ReorderKeyframeEffectsCommand.create(
                project_state, parent_index, from_index, to_index
            )
            self._command_service.execute(command)
            self._event_bus.emit(
                EventType.KEYFRAME_EFFECTS_REORDERED,
                {"parent_index": parent_index, "from_index": from_index, "to_index": to_index},
            )
            self._count("keyframe_effects_reordered")

    def _update_keyframe(
        self,
        parent_index: int,
        index: int,
        updated_effect: Effect | Mapping[str, Any],
        project_state: ProjectStateStore,
        frame: int | None = None,
        description: str | None = None,
    ) -> KeyframeEffect:
        current = project_state.get_keyframe_effect(parent_index, index)
        try:
            updated = KeyframeEffect(
                frame=current.frame if frame is None else frame,
                effect=_merged_effect(current.effect, updated_effect),
            )
        except PydanticValidationError as exc:
            msg = f"invalid keyframe effect: {exc}"
            raise ValidationError(msg) from exc
        command = UpdateKeyframeEffectCommand.create(
            project_state, parent_index, index, updated, description
        )
        self._command_service.execute(command)
        self._event_bus.emit(
            EventType.KEYFRAME_EFFECT_UPDATED,
            {
                "parent_index": parent_index,
                "index": index,
                "frame": command.updated.frame,
                "effect": command.updated.effect.model_dump(mode="json"),
            },
        )
        self._count("keyframe_effects_updated")
        return command.updated

    def update_keyframe_effect(
        self,
        parent_index: int,
        index: int,
        updated_effect: Effect | Mapping[str, Any],
        project_state: ProjectStateStore | None = None,
        *,
        frame: int | None = None,
    ) -> KeyframeEffect:
        """Merge ``updated_effect`` into a keyframe's effect, optionally moving its frame."""
        _require(
            parent_index=parent_index,
            index=index,
            updated_effect=updated_effect,
            project_state=project_state,
        )
        with self._operation("update_keyframe_effect"):
            return self._update_keyframe(parent_index, index, updated_effect, project_state, frame)

    def toggle_keyframe_effect_visibility(
        self, parent_index: int, index: int, project_state: ProjectStateStore | None = None
    ) -> KeyframeEffect:
        _require(parent_index=parent_index, index=index, project_state=project_state)
        with self._operation("toggle_keyframe_effect_visibility"):
            current = project_state.get_keyframe_effect(parent_index, index).effect
            visible = not current.visible
            return self._update_keyframe(
                parent_index,
                index,
                {"visible": visible},
                project_state,
                description=f"{'Shown' if visible else 'Hid'} {current.label}",
            )

    # -- project settings ------------------------------------------------------

    def update_project_settings(
        self, project_state: ProjectStateStore | None = None, **changes: Any
    ) -> Project:
        """Change project-level fields (resolution, orientation, frames, ...) undoably."""
        _require(project_state=project_state)
        if not changes:
            msg = "no project settings given"
            raise ValidationError(msg)
        with self._operation("update_project_settings"):
            command = UpdateProjectSettingsCommand.create(project_state, changes)
            self._command_service.execute(command)
            self._event_bus.emit(EventType.PROJECT_SETTINGS_UPDATED, {"changes": command.changes})
            self._count("project_settings_updated")
            return project_state.get_state()
