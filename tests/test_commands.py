"""Tests for reversible commands and their descriptions."""

import dataclasses

import pytest

from effectforge.commands import (
    AddEffectCommand,
    AddKeyframeEffectCommand,
    AddSecondaryEffectCommand,
    DeleteEffectCommand,
    DeleteSecondaryEffectCommand,
    ReorderEffectsCommand,
    ReorderKeyframeEffectsCommand,
    UpdateEffectCommand,
    UpdateKeyframeEffectCommand,
    UpdateProjectSettingsCommand,
    UpdateSecondaryEffectCommand,
    describe_move,
    describe_settings,
    describe_update,
    humanize_property,
)
from effectforge.errors import IndexOutOfRange
from effectforge.models import Effect, KeyframeEffect
from effectforge.resolution import Dimensions
from effectforge.state import ProjectStateStore


def _snapshot(store: ProjectStateStore) -> dict:
    return store.get_state().model_dump()


def _assert_inverse(store: ProjectStateStore, command) -> None:
    before = _snapshot(store)
    command.execute()
    after = _snapshot(store)
    assert after != before
    command.undo()
    assert _snapshot(store) == before
    command.execute()
    assert _snapshot(store) == after


# -- inverse law ----------------------------------------------------------------


def test_add_effect_inverse(store: ProjectStateStore):
    _assert_inverse(store, AddEffectCommand.create(store, Effect(name="Spark")))


def test_delete_effect_inverse(store: ProjectStateStore):
    _assert_inverse(store, DeleteEffectCommand.create(store, 1))


def test_update_effect_inverse(store: ProjectStateStore):
    _assert_inverse(store, UpdateEffectCommand.create(store, 0, Effect(name="Glow", visible=False)))


def test_reorder_effects_inverse(store: ProjectStateStore):
    _assert_inverse(store, ReorderEffectsCommand.create(store, 0, 2))


def test_settings_inverse(store: ProjectStateStore):
    _assert_inverse(store, UpdateProjectSettingsCommand.create(store, {"is_horizontal": False}))


@pytest.mark.parametrize(
    "build",
    [
        lambda s: AddSecondaryEffectCommand.create(s, 2, Effect(name="Spark")),
        lambda s: DeleteSecondaryEffectCommand.create(s, 2, 0),
        lambda s: UpdateSecondaryEffectCommand.create(s, 2, 0, Effect(name="Fade", visible=False)),
        lambda s: AddKeyframeEffectCommand.create(
            s, 2, KeyframeEffect(frame=5, effect=Effect(name="Flash"))
        ),
        lambda s: UpdateKeyframeEffectCommand.create(
            s, 2, 0, KeyframeEffect(frame=40, effect=Effect(name="Pulse"))
        ),
    ],
)
def test_nested_commands_inverse(store: ProjectStateStore, build) -> None:
    _assert_inverse(store, build(store))


# -- captured state -------------------------------------------------------------


def test_add_captures_append_index(store: ProjectStateStore):
    command = AddEffectCommand.create(store, Effect(id="spark-1", name="Spark"))
    assert command.index == 3
    command.execute()
    assert store.get_effect(3).id == "spark-1"


def test_delete_undo_reinserts_at_original_index(store: ProjectStateStore):
    command = DeleteEffectCommand.create(store, 1)
    command.execute()
    assert [e.id for e in store.get_state().effects] == ["glow-1", "hex-1"]
    command.undo()
    assert store.get_effect(1).id == "blur-1"


def test_delete_captures_effect_snapshot(store: ProjectStateStore):
    command = DeleteEffectCommand.create(store, 0)
    command.effect.config["intensity"] = 99
    assert store.get_effect(0).config["intensity"] == 0.5


def test_update_pins_effect_id(store: ProjectStateStore):
    command = UpdateEffectCommand.create(store, 0, Effect(id="other", name="Glow"))
    assert command.updated.id == "glow-1"
    assert command.previous.id == "glow-1"


def test_reorder_rotates(store: ProjectStateStore):
    command = ReorderEffectsCommand.create(store, 0, 2)
    command.execute()
    assert [e.id for e in store.get_state().effects] == ["blur-1", "hex-1", "glow-1"]
    command.undo()
    assert [e.id for e in store.get_state().effects] == ["glow-1", "blur-1", "hex-1"]


def test_stale_command_fails_instead_of_guessing(store: ProjectStateStore):
    command = DeleteEffectCommand.create(store, 0)
    store.remove_effect(0)
    with pytest.raises(IndexOutOfRange):
        command.execute()
    assert store.effect_count() == 2


def test_nested_command_checks_parent(store: ProjectStateStore):
    command = AddSecondaryEffectCommand.create(store, 2, Effect(name="Spark"))
    assert command.parent_id == "hex-1"
    store.reorder_effects(2, 0)
    with pytest.raises(IndexOutOfRange):
        command.execute()


def test_keyframe_update_keeps_frame_for_plain_effect(store: ProjectStateStore):
    command = UpdateKeyframeEffectCommand.create(store, 2, 0, Effect(name="Pulse", visible=False))
    assert command.updated.frame == 12
    assert command.updated.effect.id == "pulse-1"


def test_reorder_keyframes(store: ProjectStateStore):
    flash = KeyframeEffect(frame=30, effect=Effect(id="flash-1", name="Flash"))
    store.add_keyframe_effect(2, flash)
    command = ReorderKeyframeEffectsCommand.create(store, 2, 1, 0)
    command.execute()
    assert store.get_keyframe_effect(2, 0).effect.id == "flash-1"
    assert command.description == "Moved Flash up in Hex"
    command.undo()
    assert store.get_keyframe_effect(2, 0).effect.id == "pulse-1"


def test_settings_undo_restores_dimensions(store: ProjectStateStore):
    command = UpdateProjectSettingsCommand.create(store, {"target_resolution": 1280})
    command.execute()
    assert store.get_resolution_dimensions() == Dimensions(1280, 720)
    command.undo()
    assert store.get_resolution_dimensions() == Dimensions(1920, 1080)
    assert store.get_effect(1).config["origin"] == {"x": 100, "y": 200}


def test_commands_are_frozen(store: ProjectStateStore):
    command = DeleteEffectCommand.create(store, 0)
    with pytest.raises(dataclasses.FrozenInstanceError):
        command.index = 2


def test_command_kinds():
    assert AddEffectCommand.kind == "effect.add"
    assert AddSecondaryEffectCommand.kind == "secondary.add"
    assert ReorderKeyframeEffectsCommand.kind == "keyframe.reorder"
    assert UpdateProjectSettingsCommand.kind == "project.update"


# -- descriptions ---------------------------------------------------------------


def test_creation_descriptions(store: ProjectStateStore):
    assert AddEffectCommand.create(store, Effect(name="Spark")).description == "Added Spark"
    assert DeleteEffectCommand.create(store, 1).description == "Deleted Blur at position 2"
    assert DeleteSecondaryEffectCommand.create(store, 2, 0).description == "Removed Fade from Hex"
    add_keyframe = AddKeyframeEffectCommand.create(
        store, 2, KeyframeEffect(frame=5, effect=Effect(name="Flash"))
    )
    assert add_keyframe.description == "Added Flash at frame 5 to Hex"
    hide_fade = UpdateSecondaryEffectCommand.create(store, 2, 0, Effect(name="Fade", visible=False))
    assert hide_fade.description == "Hid Fade in Hex"


@pytest.mark.parametrize(
    ("name", "expected"),
    [("ringThickness", "ring thickness"), ("ring_thickness", "ring thickness"), ("x", "x")],
)
def test_humanize_property(name: str, expected: str) -> None:
    assert humanize_property(name) == expected


@pytest.mark.parametrize(
    ("updated", "expected"),
    [
        ({"visible": False}, "Hid Glow"),
        ({"config": {"intensity": 0.9}}, "Changed intensity in Glow"),
        (
            {"config": {"ringThickness": 1, "speed": 2, "tint": 3}},
            "Changed ring thickness, speed, tint in Glow",
        ),
        ({"config": {"a": 1, "b": 2, "c": 3, "d": 4}}, "Changed 4 properties in Glow"),
        ({"name": "Halo"}, "Renamed Glow to Halo"),
        ({"percent_chance": 50}, "Updated Glow properties"),
    ],
)
def test_describe_update(updated: dict, expected: str) -> None:
    previous = Effect(name="Glow", visible=True, config={})
    assert describe_update(previous, previous.model_copy(update=updated)) == expected


def test_describe_shown():
    hidden = Effect(name="Glow", visible=False)
    assert describe_update(hidden, hidden.model_copy(update={"visible": True})) == "Shown Glow"


def test_describe_move_and_settings():
    effect = Effect(name="Blur")
    assert describe_move(effect, 0, 2) == "Moved Blur down"
    assert describe_move(effect, 2, 0, Effect(name="Hex")) == "Moved Blur up in Hex"
    assert describe_settings({"targetResolution": 1280}) == "Changed project target resolution"
    assert describe_settings({}) == "Updated project settings"
