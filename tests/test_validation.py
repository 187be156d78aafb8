"""Tests for JSON schema validation of project documents."""

import jsonschema
import pytest

from effectforge.models import Project
from effectforge.validation import iter_project_errors, validate_project_json


def test_valid_project_passes(sample_project: Project):
    validate_project_json(sample_project.model_dump(mode="json"))


def test_empty_project_passes():
    validate_project_json({})


def test_effects_must_be_a_list():
    with pytest.raises(jsonschema.ValidationError):
        validate_project_json({"effects": {"name": "Glow"}})


def test_effect_requires_name():
    with pytest.raises(jsonschema.ValidationError):
        validate_project_json({"effects": [{"id": "a"}]})


def test_unknown_top_level_field_rejected():
    with pytest.raises(jsonschema.ValidationError):
        validate_project_json({"name": "demo", "scene": {}})


def test_keyframe_needs_frame():
    data = {"effects": [{"name": "Hex", "keyframe_effects": [{"effect": {"name": "Pulse"}}]}]}
    with pytest.raises(jsonschema.ValidationError):
        validate_project_json(data)


def test_legacy_type_spelling_allowed():
    validate_project_json({"effects": [{"name": "Pulse", "type": "keyframe"}]})


def test_iter_project_errors_reports_paths():
    problems = iter_project_errors(
        {"number_of_frames": 0, "effects": [{"name": "Glow", "visible": "yes"}]}
    )
    assert len(problems) == 2
    assert any(p.startswith("effects/0/visible:") for p in problems)
    assert any(p.startswith("number_of_frames:") for p in problems)


def test_iter_project_errors_empty_for_valid(sample_project: Project):
    assert iter_project_errors(sample_project.model_dump(mode="json")) == []
