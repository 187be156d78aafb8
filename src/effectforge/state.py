"""The project document store.

``ProjectStateStore`` exclusively owns one :class:`~effectforge.models.Project`.
Readers only ever get deep copies, and every write builds a new document and
swaps it in, so a failed or half-computed change is never observable.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import Any

import jsonschema
from pydantic import ValidationError as PydanticValidationError

from effectforge.center import ScalingContext, rescale_config
from effectforge.errors import IndexOutOfRange, ValidationError
from effectforge.models import Effect, KeyframeEffect, Project
from effectforge.resolution import Dimensions
from effectforge.validation import validate_project_json

logger = logging.getLogger(__name__)

SECONDARY = "secondary_effects"
KEYFRAME = "keyframe_effects"


def _child_id(item: Effect | KeyframeEffect) -> str:
    return item.effect.id if isinstance(item, KeyframeEffect) else item.id


def _rescale_effect(effect: Effect, context: ScalingContext) -> Effect:
    return effect.model_copy(
        update={
            "config": rescale_config(effect.config, context),
            "secondary_effects": [_rescale_effect(e, context) for e in effect.secondary_effects],
            "keyframe_effects": [
                kf.model_copy(update={"effect": _rescale_effect(kf.effect, context)})
                for kf in effect.keyframe_effects
            ],
        }
    )


def _jsonable(data: Mapping[str, Any]) -> dict[str, Any]:
    result = copy.deepcopy(dict(data))
    if isinstance(result.get("effects"), list):
        result["effects"] = [
            e.model_dump(mode="json") if isinstance(e, Effect) else e for e in result["effects"]
        ]
    return result


class ProjectStateStore:
    """Owns the current project document."""

    def __init__(self, initial: Project | Mapping[str, Any] | None = None) -> None:
        self._project = Project()
        if initial is not None:
            self.initialize_project(initial)

    # -- whole-document operations ------------------------------------------

    @staticmethod
    def _build(data: Project | Mapping[str, Any]) -> Project:
        if isinstance(data, Project):
            raw = data.model_dump(mode="json")
        elif isinstance(data, Mapping):
            raw = _jsonable(data)
        else:
            msg = f"project data must be a mapping, got {type(data).__name__}"
            raise ValidationError(msg)
        try:
            validate_project_json(raw)
        except jsonschema.ValidationError as exc:
            path = "/".join(str(p) for p in exc.absolute_path) or "<root>"
            msg = f"invalid project document at {path}: {exc.message}"
            raise ValidationError(msg) from exc
        try:
            return Project.model_validate(raw)
        except PydanticValidationError as exc:
            msg = f"invalid project document: {exc}"
            raise ValidationError(msg) from exc

    def initialize_project(self, data: Project | Mapping[str, Any]) -> Project:
        """Replace the whole document. Nothing changes if ``data`` is invalid."""
        self._project = self._build(data)
        logger.info(
            "Initialized project %r (%s effects)", self._project.name, len(self._project.effects)
        )
        return self.get_state()

    def get_state(self) -> Project:
        return self._project.model_copy(deep=True)

    def update(self, partial: Mapping[str, Any]) -> Project:
        """Merge project-level fields into the document.

        A change of resolution or orientation that alters the canvas size
        rewrites every position in every effect config (nested effects
        included) for the new canvas before the document is swapped in.
        Effects are not accepted here; use the effect mutators or
        ``initialize_project`` to replace them.
        """
        if "effects" in partial:
            msg = "effects cannot be changed through update; use the effect mutators"
            raise ValidationError(msg)
        unknown = sorted(set(partial) - set(Project.model_fields))
        if unknown:
            msg = f"unknown project fields: {', '.join(unknown)}"
            raise ValidationError(msg)
        merged = {**self._project.model_dump(mode="json"), **_jsonable(partial)}
        candidate = self._build(merged)

        context = ScalingContext(self._project.dimensions, candidate.dimensions)
        if context.changed:
            logger.info(
                "Canvas changed from %dx%d to %dx%d, rescaling %d effects",
                *context.old,
                *context.new,
                len(candidate.effects),
            )
            candidate = candidate.model_copy(
                update={"effects": [_rescale_effect(e, context) for e in candidate.effects]}
            )
        self._project = candidate
        return self.get_state()

    def get_resolution_dimensions(self) -> Dimensions:
        return self._project.dimensions

    # -- queries -------------------------------------------------------------

    def effect_count(self) -> int:
        return len(self._project.effects)

    def get_effect(self, index: int) -> Effect:
        return self._effect_at(index).model_copy(deep=True)

    def find_effect_index(self, effect_id: str) -> int | None:
        for index, effect in enumerate(self._project.effects):
            if effect.id == effect_id:
                return index
        return None

    def get_secondary_effect(self, parent_index: int, child_index: int) -> Effect:
        return self._child_at(parent_index, SECONDARY, child_index).model_copy(deep=True)

    def get_keyframe_effect(self, parent_index: int, child_index: int) -> KeyframeEffect:
        return self._child_at(parent_index, KEYFRAME, child_index).model_copy(deep=True)

    # -- top-level structural mutators (used by commands) ----------------------

    def add_effect(self, effect: Effect, index: int | None = None) -> int:
        """Insert a copy of ``effect``; appends when ``index`` is None."""
        effects = list(self._project.effects)
        index = len(effects) if index is None else index
        if not 0 <= index <= len(effects):
            msg = f"cannot insert effect at {index}; project has {len(effects)} effects"
            raise IndexOutOfRange(msg)
        effects.insert(index, effect.model_copy(deep=True))
        self._swap_effects(effects)
        logger.debug("Added effect %s at %d", effect.id, index)
        return index

    def remove_effect(self, index: int, expected_id: str | None = None) -> Effect:
        removed = self._effect_at(index, expected_id)
        effects = list(self._project.effects)
        del effects[index]
        self._swap_effects(effects)
        logger.debug("Removed effect %s from %d", removed.id, index)
        return removed.model_copy(deep=True)

    def replace_effect(self, index: int, effect: Effect, expected_id: str | None = None) -> Effect:
        previous = self._effect_at(index, expected_id)
        effects = list(self._project.effects)
        effects[index] = effect.model_copy(deep=True)
        self._swap_effects(effects)
        return previous.model_copy(deep=True)

    def reorder_effects(self, from_index: int, to_index: int) -> None:
        """Move the effect at ``from_index`` so it ends up at ``to_index``."""
        effects = list(self._project.effects)
        self._check_positions(len(effects), from_index, to_index, "effect")
        effects.insert(to_index, effects.pop(from_index))
        self._swap_effects(effects)

    # -- nested structural mutators --------------------------------------------

    def add_secondary_effect(
        self,
        parent_index: int,
        effect: Effect,
        index: int | None = None,
        *,
        parent_id: str | None = None,
    ) -> int:
        return self._add_child(parent_index, SECONDARY, effect, index, parent_id)

    def remove_secondary_effect(
        self,
        parent_index: int,
        child_index: int,
        expected_id: str | None = None,
        *,
        parent_id: str | None = None,
    ) -> Effect:
        return self._remove_child(parent_index, SECONDARY, child_index, expected_id, parent_id)

    def replace_secondary_effect(
        self,
        parent_index: int,
        child_index: int,
        effect: Effect,
        expected_id: str | None = None,
        *,
        parent_id: str | None = None,
    ) -> Effect:
        return self._replace_child(
            parent_index, SECONDARY, child_index, effect, expected_id, parent_id
        )

    def reorder_secondary_effects(
        self, parent_index: int, from_index: int, to_index: int, *, parent_id: str | None = None
    ) -> None:
        self._reorder_children(parent_index, SECONDARY, from_index, to_index, parent_id)

    def add_keyframe_effect(
        self,
        parent_index: int,
        keyframe: KeyframeEffect,
        index: int | None = None,
        *,
        parent_id: str | None = None,
    ) -> int:
        return self._add_child(parent_index, KEYFRAME, keyframe, index, parent_id)

    def remove_keyframe_effect(
        self,
        parent_index: int,
        child_index: int,
        expected_id: str | None = None,
        *,
        parent_id: str | None = None,
    ) -> KeyframeEffect:
        return self._remove_child(parent_index, KEYFRAME, child_index, expected_id, parent_id)

    def replace_keyframe_effect(
        self,
        parent_index: int,
        child_index: int,
        keyframe: KeyframeEffect,
        expected_id: str | None = None,
        *,
        parent_id: str | None = None,
    ) -> KeyframeEffect:
        return self._replace_child(
            parent_index, KEYFRAME, child_index, keyframe, expected_id, parent_id
        )

    def reorder_keyframe_effects(
        self, parent_index: int, from_index: int, to_index: int, *, parent_id: str | None = None
    ) -> None:
        self._reorder_children(parent_index, KEYFRAME, from_index, to_index, parent_id)

    # -- internals ---------------------------------------------------------------

    def _swap_effects(self, effects: list[Effect]) -> None:
        self._project = self._project.model_copy(update={"effects": effects})

    def _effect_at(self, index: int, expected_id: str | None = None) -> Effect:
        effects = self._project.effects
        if not 0 <= index < len(effects):
            msg = f"no effect at index {index}; project has {len(effects)} effects"
            raise IndexOutOfRange(msg)
        effect = effects[index]
        if expected_id is not None and effect.id != expected_id:
            msg = f"effect at index {index} is {effect.id!r}, expected {expected_id!r}"
            raise IndexOutOfRange(msg)
        return effect

    def _child_at(
        self,
        parent_index: int,
        collection: str,
        child_index: int,
        expected_id: str | None = None,
        parent_id: str | None = None,
    ) -> Effect | KeyframeEffect:
        children = getattr(self._effect_at(parent_index, parent_id), collection)
        if not 0 <= child_index < len(children):
            msg = f"no {collection} entry at index {child_index} of effect {parent_index}"
            raise IndexOutOfRange(msg)
        child = children[child_index]
        if expected_id is not None and _child_id(child) != expected_id:
            found = _child_id(child)
            msg = f"{collection} entry {child_index} is {found!r}, expected {expected_id!r}"
            raise IndexOutOfRange(msg)
        return child

    @staticmethod
    def _check_positions(length: int, from_index: int, to_index: int, what: str) -> None:
        for position in (from_index, to_index):
            if not 0 <= position < length:
                msg = f"cannot move {what} {from_index} -> {to_index}; only {length} present"
                raise IndexOutOfRange(msg)

    @staticmethod
    def _check_depth(item: Effect | KeyframeEffect) -> None:
        effect = item.effect if isinstance(item, KeyframeEffect) else item
        if effect.has_nested_effects:
            msg = f"nested effect {effect.id!r} cannot carry nested effects of its own"
            raise ValidationError(msg)

    def _with_children(self, parent_index: int, collection: str, children: list) -> None:
        effects = list(self._project.effects)
        effects[parent_index] = effects[parent_index].model_copy(update={collection: children})
        self._swap_effects(effects)

    def _add_child(self, parent_index, collection, item, index, parent_id) -> int:
        self._check_depth(item)
        children = list(getattr(self._effect_at(parent_index, parent_id), collection))
        index = len(children) if index is None else index
        if not 0 <= index <= len(children):
            msg = f"cannot insert into {collection} at {index}; parent has {len(children)}"
            raise IndexOutOfRange(msg)
        children.insert(index, item.model_copy(deep=True))
        self._with_children(parent_index, collection, children)
        return index

    def _remove_child(self, parent_index, collection, child_index, expected_id, parent_id):
        removed = self._child_at(parent_index, collection, child_index, expected_id, parent_id)
        children = list(getattr(self._project.effects[parent_index], collection))
        del children[child_index]
        self._with_children(parent_index, collection, children)
        return removed.model_copy(deep=True)

    def _replace_child(self, parent_index, collection, child_index, item, expected_id, parent_id):
        self._check_depth(item)
        previous = self._child_at(parent_index, collection, child_index, expected_id, parent_id)
        children = list(getattr(self._project.effects[parent_index], collection))
        children[child_index] = item.model_copy(deep=True)
        self._with_children(parent_index, collection, children)
        return previous.model_copy(deep=True)

    def _reorder_children(self, parent_index, collection, from_index, to_index, parent_id) -> None:
        children = list(getattr(self._effect_at(parent_index, parent_id), collection))
        self._check_positions(len(children), from_index, to_index, collection)
        children.insert(to_index, children.pop(from_index))
        self._with_children(parent_index, collection, children)
