"""EffectForge data models - pure Pydantic, no I/O beyond project save/load."""

from effectforge.models.effect import Effect, KeyframeEffect, new_effect_id
from effectforge.models.enums import EffectType
from effectforge.models.project import Project, ProjectLoadError

__all__ = [
    "Effect",
    "EffectType",
    "KeyframeEffect",
    "Project",
    "ProjectLoadError",
    "new_effect_id",
]
