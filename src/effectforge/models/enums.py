"""Enumerations used throughout EffectForge."""

from enum import StrEnum


class EffectType(StrEnum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    KEYFRAME = "keyFrame"
    FINAL = "final"

    @classmethod
    def _missing_(cls, value: object) -> "EffectType | None":
        # Spellings found in older project files.
        if isinstance(value, str):
            return _LEGACY_EFFECT_TYPES.get(value.strip().lower())
        return None


_LEGACY_EFFECT_TYPES = {
    "keyframe": EffectType.KEYFRAME,
    "finalimage": EffectType.FINAL,
    "final_image": EffectType.FINAL,
}
