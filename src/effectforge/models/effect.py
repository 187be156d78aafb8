"""Effect tree models."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from effectforge.models.enums import EffectType


def new_effect_id() -> str:
    """Generate an opaque effect id. Ids are assigned once and never regenerated."""
    return f"effect-{uuid4().hex[:12]}"


class Effect(BaseModel):
    """One visual transformation step, with at most one level of nested effects."""

    id: str = Field(default_factory=new_effect_id, min_length=1, frozen=True)
    name: str = Field(min_length=1)
    class_name: str = ""
    registry_key: str = ""
    type: EffectType = EffectType.PRIMARY
    visible: bool = True
    percent_chance: float | None = Field(default=None, ge=0, le=100)
    config: dict[str, Any] = Field(default_factory=dict)
    secondary_effects: list[Effect] = Field(default_factory=list)
    keyframe_effects: list[KeyframeEffect] = Field(default_factory=list)

    @field_validator("type", mode="before")
    @classmethod
    def _accept_legacy_type(cls, value: object) -> object:
        if isinstance(value, str):
            return EffectType(value)
        return value

    @model_validator(mode="after")
    def _fill_names_and_check_depth(self) -> Effect:
        if not self.class_name:
            self.class_name = self.name
        if not self.registry_key:
            self.registry_key = self.name
        for child in self.nested_effects():
            if child.has_nested_effects:
                msg = f"nested effect {child.id!r} cannot carry nested effects of its own"
                raise ValueError(msg)
        return self

    @property
    def has_nested_effects(self) -> bool:
        return bool(self.secondary_effects or self.keyframe_effects)

    def nested_effects(self) -> Iterator[Effect]:
        """Secondary effects first, then keyframe effects, in list order."""
        yield from self.secondary_effects
        for keyframe in self.keyframe_effects:
            yield keyframe.effect

    @property
    def label(self) -> str:
        """Display name used in history descriptions."""
        return self.name or self.class_name or "effect"


class KeyframeEffect(BaseModel):
    """An effect scheduled at a specific frame of its parent."""

    frame: int = Field(ge=0)
    effect: Effect


Effect.model_rebuild()
