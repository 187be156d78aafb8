"""Canvas geometry: center detection and proportional rescaling of positions.

Effect configs are open mappings. Some of their values describe a location on
the canvas, and those come in three shapes:

* a legacy ``Point`` - a bare ``{"x": .., "y": ..}`` mapping without a name,
* a ``Position`` - ``{"name": "position", "x": .., "y": ..}``,
* an ``ArcPath`` - ``{"name": "arc-path", "center": {..}, "radius": .., ...}``.

When the canvas changes size or orientation a value that sat on the exact
center is moved to the new center, everything else is scaled proportionally.
Rewritten values carry a marker key recording which of the two happened.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from effectforge.resolution import Dimensions

logger = logging.getLogger(__name__)

CENTER_OVERRIDE_FLAG = "__centerOverrideApplied"
PROPORTIONAL_SCALE_FLAG = "__proportionallyScaled"

DEFAULT_TOLERANCE = 0.01
FALLBACK_TOLERANCE = 0.05
MIN_ARC_RADIUS = 10

# Checked when no canvas is known, so older configs authored against a
# common size still count as centered.
COMMON_DIMENSIONS: tuple[Dimensions, ...] = (
    Dimensions(1080, 1920),
    Dimensions(1920, 1080),
    Dimensions(720, 720),
    Dimensions(1080, 1080),
    Dimensions(800, 600),
    Dimensions(1280, 720),
    Dimensions(2560, 1440),
    Dimensions(3840, 2160),
    Dimensions(640, 480),
    Dimensions(320, 240),
)


@dataclass(frozen=True)
class ScalingContext:
    """The canvas before and after a resolution or orientation change."""

    old: Dimensions
    new: Dimensions

    @property
    def scale_x(self) -> float:
        return self.new.width / self.old.width

    @property
    def scale_y(self) -> float:
        return self.new.height / self.old.height

    @property
    def average_scale(self) -> float:
        return (self.scale_x + self.scale_y) / 2

    @property
    def changed(self) -> bool:
        return self.old != self.new


@dataclass(frozen=True)
class Point:
    """Legacy unnamed x/y pair."""

    x: float
    y: float
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def anchor(self) -> tuple[float, float]:
        return self.x, self.y


@dataclass(frozen=True)
class Position:
    """A named ``position`` value."""

    x: float
    y: float
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def anchor(self) -> tuple[float, float]:
        return self.x, self.y


@dataclass(frozen=True)
class ArcPath:
    """A circular path around ``center``."""

    center: Point
    radius: float
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def anchor(self) -> tuple[float, float]:
        return self.center.anchor


PositionLike = Point | Position | ArcPath


def _is_coordinate(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _normalise(value: float) -> int | float:
    return int(value) if float(value).is_integer() else value


def _at_most(delta: float, limit: float) -> bool:
    return delta <= limit or math.isclose(delta, limit, rel_tol=1e-9, abs_tol=1e-9)


def parse_position_like(value: object) -> PositionLike | None:
    """Classify a config value, returning ``None`` for anything non-positional."""
    if not isinstance(value, Mapping):
        return None
    name = value.get("name")
    if name == "arc-path":
        center = value.get("center")
        radius = value.get("radius")
        if (
            isinstance(center, Mapping)
            and _is_coordinate(center.get("x"))
            and _is_coordinate(center.get("y"))
            and _is_coordinate(radius)
        ):
            return ArcPath(Point(center["x"], center["y"], dict(center)), radius, dict(value))
        return None
    if not (_is_coordinate(value.get("x")) and _is_coordinate(value.get("y"))):
        return None
    if name == "position":
        return Position(value["x"], value["y"], dict(value))
    if not name:
        return Point(value["x"], value["y"], dict(value))
    return None


def get_center_position(width: float, height: float) -> tuple[int | float, int | float]:
    """Exact canvas center; integral coordinates come back as ``int``.

    Odd sizes give half-pixel centers such as ``(540.5, 300.5)``. They are
    left unrounded so that ``is_center_position`` always accepts the result.
    """
    return _normalise(width / 2), _normalise(height / 2)


def _within_center(x: float, y: float, dimensions: Dimensions, tolerance: float) -> bool:
    cx, cy = dimensions.width / 2, dimensions.height / 2
    return _at_most(abs(x - cx), dimensions.width * tolerance) and _at_most(
        abs(y - cy), dimensions.height * tolerance
    )


def is_center_position(
    x: float,
    y: float,
    dimensions: Dimensions | None = None,
    tolerance: float = DEFAULT_TOLERANCE,
) -> bool:
    """Whether (x, y) sits on the canvas center.

    With ``dimensions`` each axis may be off by ``tolerance`` of its length,
    inclusive. Without them the point is checked against the common canvas
    sizes with a looser 5% tolerance.
    """
    if dimensions is not None:
        return _within_center(x, y, dimensions, tolerance)
    return any(_within_center(x, y, dims, FALLBACK_TOLERANCE) for dims in COMMON_DIMENSIONS)


def should_apply_center(
    field_name: str, value: object, dimensions: Dimensions | None = None
) -> bool:
    """True when a position-like value should snap to the canvas center."""
    parsed = parse_position_like(value)
    if parsed is None:
        return False
    if "center" in (field_name or "").lower():
        return True
    return is_center_position(*parsed.anchor, dimensions)


def _tagged(raw: dict[str, Any], flag: str, **changes: Any) -> dict[str, Any]:
    result = {**raw, **changes}
    result.pop(CENTER_OVERRIDE_FLAG, None)
    result.pop(PROPORTIONAL_SCALE_FLAG, None)
    result[flag] = True
    return result


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def _scaled_radius(radius: float, context: ScalingContext) -> int | float:
    max_radius = _normalise(min(context.new.width, context.new.height) / 2)
    return _clamp(_round_half_up(radius * context.average_scale), MIN_ARC_RADIUS, max_radius)


def scale_field_value(value: Any, old: Dimensions, new: Dimensions) -> Any:
    """Proportionally map a position-like value from ``old`` to ``new``.

    Values that are not position-like are returned unchanged.
    """
    parsed = parse_position_like(value)
    if parsed is None:
        return value
    context = ScalingContext(old, new)
    if isinstance(parsed, ArcPath):
        cx = _clamp(_round_half_up(parsed.center.x * context.scale_x), 0, new.width - 1)
        cy = _clamp(_round_half_up(parsed.center.y * context.scale_y), 0, new.height - 1)
        return _tagged(
            parsed.raw,
            PROPORTIONAL_SCALE_FLAG,
            center={**parsed.center.raw, "x": cx, "y": cy},
            radius=_scaled_radius(parsed.radius, context),
        )
    x = _round_half_up(parsed.x * context.scale_x)
    y = _round_half_up(parsed.y * context.scale_y)
    if isinstance(parsed, Point):
        x = _clamp(x, 0, new.width - 1)
        y = _clamp(y, 0, new.height - 1)
    return _tagged(parsed.raw, PROPORTIONAL_SCALE_FLAG, x=x, y=y)


def _center_value(
    parsed: PositionLike, dimensions: Dimensions, context: ScalingContext | None = None
) -> dict[str, Any]:
    cx, cy = get_center_position(dimensions.width, dimensions.height)
    if isinstance(parsed, ArcPath):
        changes: dict[str, Any] = {"center": {**parsed.center.raw, "x": cx, "y": cy}}
        if context is not None:
            changes["radius"] = _scaled_radius(parsed.radius, context)
        return _tagged(parsed.raw, CENTER_OVERRIDE_FLAG, **changes)
    return _tagged(parsed.raw, CENTER_OVERRIDE_FLAG, x=cx, y=cy)


def process_field_value(field_name: str, value: Any, context: ScalingContext) -> Any:
    """Re-center a centered value, scale any other position, pass the rest through."""
    parsed = parse_position_like(value)
    if parsed is None:
        return value
    if should_apply_center(field_name, value, context.old):
        logger.debug("Re-centering %r for %dx%d", field_name, *context.new)
        return _center_value(parsed, context.new, context)
    logger.debug("Scaling %r from %dx%d to %dx%d", field_name, *context.old, *context.new)
    return scale_field_value(value, context.old, context.new)


def _walk(value: Any, field_name: str, transform) -> Any:
    if parse_position_like(value) is not None:
        return transform(field_name, value)
    if isinstance(value, Mapping):
        return {key: _walk(item, str(key), transform) for key, item in value.items()}
    if isinstance(value, list):
        return [_walk(item, field_name, transform) for item in value]
    return value


def rescale_config(config: Mapping[str, Any], context: ScalingContext) -> dict[str, Any]:
    """Apply :func:`process_field_value` to every position in a nested config.

    Returns a new structure; ``config`` is left untouched.
    """
    return _walk(config, "", lambda name, value: process_field_value(name, value, context))


def detect_and_apply_center(config: Mapping[str, Any], dimensions: Dimensions) -> dict[str, Any]:
    """Snap the centered positions of a fresh config onto the canvas center."""

    def _apply(name: str, value: Any) -> Any:
        if should_apply_center(name, value, dimensions):
            return _center_value(parse_position_like(value), dimensions)
        return value

    return _walk(config, "", _apply)
