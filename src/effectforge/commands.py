"""Reversible commands over the project store.

Every command is a frozen value object. Whatever the inverse needs (the
effect being deleted, the value being overwritten, the previous document) is
captured when the command is created through its ``create`` class method,
never read back from the store at undo time.
"""

from __future__ import annotations

import copy
import re
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, Self

from effectforge.models import Effect, KeyframeEffect, Project
from effectforge.state import ProjectStateStore

# -- descriptions ----------------------------------------------------------------


def humanize_property(name: str) -> str:
    """``ringThickness`` / ``ring_thickness`` -> ``ring thickness``."""
    spaced = re.sub(r"(?<=[a-z0-9])([A-Z])", r" \1", name).replace("_", " ")
    return " ".join(spaced.split()).lower()


def describe_add(effect: Effect) -> str:
    return f"Added {effect.label}"


def describe_delete(effect: Effect, index: int) -> str:
    return f"Deleted {effect.label} at position {index + 1}"


def describe_move(
    effect: Effect, from_index: int, to_index: int, parent: Effect | None = None
) -> str:
    direction = "up" if to_index < from_index else "down"
    suffix = f" in {parent.label}" if parent is not None else ""
    return f"Moved {effect.label} {direction}{suffix}"


def describe_update(previous: Effect, updated: Effect) -> str:
    """Summarise what changed between two versions of an effect."""
    if previous.visible != updated.visible:
        return f"{'Shown' if updated.visible else 'Hid'} {updated.label}"
    keys = sorted(set(previous.config) | set(updated.config))
    changed = [
        humanize_property(k) for k in keys if previous.config.get(k) != updated.config.get(k)
    ]
    if len(changed) == 1:
        return f"Changed {changed[0]} in {updated.label}"
    if 1 < len(changed) <= 3:
        return f"Changed {', '.join(changed)} in {updated.label}"
    if changed:
        return f"Changed {len(changed)} properties in {updated.label}"
    if previous.name != updated.name:
        return f"Renamed {previous.label} to {updated.label}"
    return f"Updated {updated.label} properties"


def describe_settings(changes: Mapping[str, Any]) -> str:
    fields = ", ".join(humanize_property(k) for k in changes)
    return f"Changed project {fields}" if fields else "Updated project settings"


# -- base ----------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class Command:
    """Base command: a forward action and its exact inverse."""

    kind: ClassVar[str] = "command"

    store: ProjectStateStore = field(repr=False, compare=False)
    description: str
    timestamp: float = field(default_factory=time.time)

    def execute(self) -> None:
        raise NotImplementedError

    def undo(self) -> None:
        raise NotImplementedError


# -- primary effects -----------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class AddEffectCommand(Command):
    kind: ClassVar[str] = "effect.add"

    effect: Effect
    index: int

    @classmethod
    def create(cls, store: ProjectStateStore, effect: Effect) -> AddEffectCommand:
        return cls(
            store=store,
            effect=effect.model_copy(deep=True),
            index=store.effect_count(),
            description=describe_add(effect),
        )

    def execute(self) -> None:
        self.store.add_effect(self.effect, self.index)

    def undo(self) -> None:
        self.store.remove_effect(self.index, expected_id=self.effect.id)


@dataclass(frozen=True, kw_only=True)
class DeleteEffectCommand(Command):
    kind: ClassVar[str] = "effect.delete"

    effect: Effect
    index: int

    @classmethod
    def create(cls, store: ProjectStateStore, index: int) -> DeleteEffectCommand:
        effect = store.get_effect(index)
        return cls(
            store=store, effect=effect, index=index, description=describe_delete(effect, index)
        )

    def execute(self) -> None:
        self.store.remove_effect(self.index, expected_id=self.effect.id)

    def undo(self) -> None:
        self.store.add_effect(self.effect, self.index)


def _pin_id(updated: Effect, effect_id: str) -> Effect:
    return Effect.model_validate({**updated.model_dump(), "id": effect_id})


@dataclass(frozen=True, kw_only=True)
class UpdateEffectCommand(Command):
    kind: ClassVar[str] = "effect.update"

    index: int
    previous: Effect
    updated: Effect

    @classmethod
    def create(
        cls, store: ProjectStateStore, index: int, updated: Effect, description: str | None = None
    ) -> UpdateEffectCommand:
        previous = store.get_effect(index)
        updated = _pin_id(updated, previous.id)
        return cls(
            store=store,
            index=index,
            previous=previous,
            updated=updated,
            description=description or describe_update(previous, updated),
        )

    def execute(self) -> None:
        self.store.replace_effect(self.index, self.updated, expected_id=self.previous.id)

    def undo(self) -> None:
        self.store.replace_effect(self.index, self.previous, expected_id=self.previous.id)


@dataclass(frozen=True, kw_only=True)
class ReorderEffectsCommand(Command):
    kind: ClassVar[str] = "effect.reorder"

    from_index: int
    to_index: int

    @classmethod
    def create(
        cls, store: ProjectStateStore, from_index: int, to_index: int
    ) -> ReorderEffectsCommand:
        moved = store.get_effect(from_index)
        return cls(
            store=store,
            from_index=from_index,
            to_index=to_index,
            description=describe_move(moved, from_index, to_index),
        )

    def execute(self) -> None:
        self.store.reorder_effects(self.from_index, self.to_index)

    def undo(self) -> None:
        self.store.reorder_effects(self.to_index, self.from_index)


# -- nested effects ------------------------------------------------------------
#
# Secondary and keyframe commands share their logic; ``target`` selects the
# store methods (``add_secondary_effect``, ``remove_keyframe_effect``, ...).


def _nested_effect(item: Effect | KeyframeEffect) -> Effect:
    return item.effect if isinstance(item, KeyframeEffect) else item


@dataclass(frozen=True, kw_only=True)
class NestedCommand(Command):
    target: ClassVar[str] = ""

    parent_index: int
    parent_id: str

    def _call(self, action: str, *args: Any, **kwargs: Any) -> Any:
        suffix = "effects" if action == "reorder" else "effect"
        method = getattr(self.store, f"{action}_{self.target}_{suffix}")
        return method(self.parent_index, *args, parent_id=self.parent_id, **kwargs)


@dataclass(frozen=True, kw_only=True)
class AddNestedEffectCommand(NestedCommand):
    item: Effect | KeyframeEffect
    index: int

    @classmethod
    def create(
        cls, store: ProjectStateStore, parent_index: int, item: Effect | KeyframeEffect
    ) -> Self:
        parent = store.get_effect(parent_index)
        children = getattr(parent, f"{cls.target}_effects")
        effect = _nested_effect(item)
        if isinstance(item, KeyframeEffect):
            description = f"Added {effect.label} at frame {item.frame} to {parent.label}"
        else:
            description = f"Added {effect.label} to {parent.label}"
        return cls(
            store=store,
            parent_index=parent_index,
            parent_id=parent.id,
            item=item.model_copy(deep=True),
            index=len(children),
            description=description,
        )

    def execute(self) -> None:
        self._call("add", self.item, self.index)

    def undo(self) -> None:
        self._call("remove", self.index, _nested_effect(self.item).id)


@dataclass(frozen=True, kw_only=True)
class DeleteNestedEffectCommand(NestedCommand):
    item: Effect | KeyframeEffect
    index: int

    @classmethod
    def create(cls, store: ProjectStateStore, parent_index: int, index: int) -> Self:
        parent = store.get_effect(parent_index)
        item = getattr(store, f"get_{cls.target}_effect")(parent_index, index)
        return cls(
            store=store,
            parent_index=parent_index,
            parent_id=parent.id,
            item=item,
            index=index,
            description=f"Removed {_nested_effect(item).label} from {parent.label}",
        )

    def execute(self) -> None:
        self._call("remove", self.index, _nested_effect(self.item).id)

    def undo(self) -> None:
        self._call("add", self.item, self.index)


@dataclass(frozen=True, kw_only=True)
class UpdateNestedEffectCommand(NestedCommand):
    index: int
    previous: Effect | KeyframeEffect
    updated: Effect | KeyframeEffect

    @classmethod
    def create(
        cls,
        store: ProjectStateStore,
        parent_index: int,
        index: int,
        updated: Effect | KeyframeEffect,
        description: str | None = None,
    ) -> Self:
        parent = store.get_effect(parent_index)
        previous = getattr(store, f"get_{cls.target}_effect")(parent_index, index)
        previous_effect = _nested_effect(previous)
        if isinstance(updated, KeyframeEffect):
            updated = KeyframeEffect(
                frame=updated.frame, effect=_pin_id(updated.effect, previous_effect.id)
            )
        elif isinstance(previous, KeyframeEffect):
            updated = KeyframeEffect(
                frame=previous.frame, effect=_pin_id(updated, previous_effect.id)
            )
        else:
            updated = _pin_id(updated, previous_effect.id)
        text = description or describe_update(previous_effect, _nested_effect(updated))
        return cls(
            store=store,
            parent_index=parent_index,
            parent_id=parent.id,
            index=index,
            previous=previous,
            updated=updated,
            description=f"{text} in {parent.label}",
        )

    def execute(self) -> None:
        self._call("replace", self.index, self.updated, _nested_effect(self.previous).id)

    def undo(self) -> None:
        self._call("replace", self.index, self.previous, _nested_effect(self.previous).id)


@dataclass(frozen=True, kw_only=True)
class ReorderNestedEffectsCommand(NestedCommand):
    from_index: int
    to_index: int

    @classmethod
    def create(
        cls, store: ProjectStateStore, parent_index: int, from_index: int, to_index: int
    ) -> Self:
        parent = store.get_effect(parent_index)
        moved = _nested_effect(getattr(store, f"get_{cls.target}_effect")(parent_index, from_index))
        return cls(
            store=store,
            parent_index=parent_index,
            parent_id=parent.id,
            from_index=from_index,
            to_index=to_index,
            description=describe_move(moved, from_index, to_index, parent),
        )

    def execute(self) -> None:
        self._call("reorder", self.from_index, self.to_index)

    def undo(self) -> None:
        self._call("reorder", self.to_index, self.from_index)


class AddSecondaryEffectCommand(AddNestedEffectCommand):
    kind = "secondary.add"
    target = "secondary"


class DeleteSecondaryEffectCommand(DeleteNestedEffectCommand):
    kind = "secondary.delete"
    target = "secondary"


class UpdateSecondaryEffectCommand(UpdateNestedEffectCommand):
    kind = "secondary.update"
    target = "secondary"


class ReorderSecondaryEffectsCommand(ReorderNestedEffectsCommand):
    kind = "secondary.reorder"
    target = "secondary"


class AddKeyframeEffectCommand(AddNestedEffectCommand):
    kind = "keyframe.add"
    target = "keyframe"


class DeleteKeyframeEffectCommand(DeleteNestedEffectCommand):
    kind = "keyframe.delete"
    target = "keyframe"


class UpdateKeyframeEffectCommand(UpdateNestedEffectCommand):
    kind = "keyframe.update"
    target = "keyframe"


class ReorderKeyframeEffectsCommand(ReorderNestedEffectsCommand):
    kind = "keyframe.reorder"
    target = "keyframe"


# -- project settings ----------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class UpdateProjectSettingsCommand(Command):
    """Change project-level fields; undo restores the whole previous document."""

    kind: ClassVar[str] = "project.update"

    changes: dict[str, Any]
    previous: Project

    @classmethod
    def create(
        cls, store: ProjectStateStore, changes: Mapping[str, Any]
    ) -> UpdateProjectSettingsCommand:
        return cls(
            store=store,
            changes=copy.deepcopy(dict(changes)),
            previous=store.get_state(),
            description=describe_settings(changes),
        )

    def execute(self) -> None:
        self.store.update(self.changes)

    def undo(self) -> None:
        self.store.initialize_project(self.previous)
