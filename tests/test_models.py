"""Tests for EffectForge data models."""

import json

import pytest
from pydantic import ValidationError

from effectforge.models import Effect, EffectType, KeyframeEffect, Project, ProjectLoadError
from effectforge.resolution import Dimensions


def test_enums():
    assert EffectType.PRIMARY == "primary"
    assert EffectType.KEYFRAME == "keyFrame"
    assert EffectType.FINAL == "final"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("keyframe", EffectType.KEYFRAME),
        ("finalImage", EffectType.FINAL),
        ("secondary", EffectType.SECONDARY),
    ],
)
def test_legacy_effect_types(raw: str, expected: EffectType) -> None:
    assert EffectType(raw) is expected
    assert Effect(name="Glow", type=raw).type is expected


def test_unknown_effect_type_rejected():
    with pytest.raises(ValidationError):
        Effect(name="Glow", type="tertiary")


def test_effect_defaults():
    effect = Effect(name="Glow")
    assert effect.id
    assert effect.class_name == "Glow"
    assert effect.registry_key == "Glow"
    assert effect.type is EffectType.PRIMARY
    assert effect.visible is True
    assert effect.percent_chance is None
    assert effect.config == {}
    assert not effect.has_nested_effects


def test_effect_ids_are_unique():
    assert len({Effect(name="Glow").id for _ in range(50)}) == 50


def test_effect_id_is_frozen():
    effect = Effect(name="Glow")
    with pytest.raises(ValidationError):
        effect.id = "other"


def test_effect_id_survives_round_trip(glow: Effect):
    restored = Effect.model_validate_json(glow.model_dump_json())
    assert restored.id == glow.id
    assert restored.model_dump() == glow.model_dump()


@pytest.mark.parametrize("chance", [-1, 100.5, 150])
def test_percent_chance_bounds(chance: float) -> None:
    with pytest.raises(ValidationError):
        Effect(name="Glow", percent_chance=chance)


def test_nesting_depth_limited():
    grandchild = Effect(name="Spark")
    child = Effect(name="Fade", secondary_effects=[grandchild])
    with pytest.raises(ValidationError, match="cannot carry nested effects"):
        Effect(name="Glow", secondary_effects=[child])
    with pytest.raises(ValidationError):
        Effect(name="Glow", keyframe_effects=[KeyframeEffect(frame=1, effect=child)])


def test_nested_effects_order(hexagon: Effect):
    assert [e.name for e in hexagon.nested_effects()] == ["Fade", "Pulse"]


def test_keyframe_frame_non_negative():
    with pytest.raises(ValidationError):
        KeyframeEffect(frame=-1, effect=Effect(name="Pulse"))


def test_project_defaults():
    project = Project()
    assert project.target_resolution == 1920
    assert project.is_horizontal is True
    assert project.number_of_frames == 100
    assert project.effects == []
    assert project.dimensions == Dimensions(1920, 1080)


def test_project_dimensions_follow_orientation():
    assert Project(is_horizontal=False).dimensions == Dimensions(1080, 1920)
    square = Project(target_resolution="square", is_horizontal=False)
    assert square.dimensions == Dimensions(1080, 1080)
    assert Project(target_resolution="4k").dimensions == Dimensions(3840, 2160)


@pytest.mark.parametrize("field", [{"target_resolution": 1234}, {"number_of_frames": 0}])
def test_project_rejects_invalid_fields(field: dict) -> None:
    with pytest.raises(ValidationError):
        Project(**field)


def test_project_save_and_load(tmp_path, sample_project: Project):
    saved = sample_project.save(tmp_path)
    assert saved == tmp_path / "project.json"

    loaded = Project.load(tmp_path)
    assert loaded.model_dump() == sample_project.model_dump()
    assert [e.id for e in loaded.effects] == ["glow-1", "blur-1", "hex-1"]


def test_project_save_to_json_path(tmp_path, sample_project: Project):
    path = sample_project.save(tmp_path / "nested" / "demo.json")
    assert path.exists()
    assert json.loads(path.read_text())["name"] == "neon-demo"


def test_project_load_missing_file(tmp_path):
    with pytest.raises(ProjectLoadError, match="not found"):
        Project.load(tmp_path / "missing.json")


def test_project_load_invalid_json(tmp_path):
    path = tmp_path / "project.json"
    path.write_text("{not json")
    with pytest.raises(ProjectLoadError, match="invalid JSON"):
        Project.load(path)


def test_project_load_invalid_structure(tmp_path):
    path = tmp_path / "project.json"
    path.write_text(json.dumps({"effects": [{"name": ""}]}))
    with pytest.raises(ProjectLoadError, match="invalid structure"):
        Project.load(path)
