"""Shared fixtures for EffectForge tests."""

from pathlib import Path

import pytest

from effectforge.command_service import CommandService
from effectforge.events import EventBus
from effectforge.models import Effect, KeyframeEffect, Project
from effectforge.operations import EffectOperationsService
from effectforge.providers import StaticDefaultsProvider
from effectforge.state import ProjectStateStore


@pytest.fixture
def glow() -> Effect:
    return Effect(
        id="glow-1",
        name="Glow",
        class_name="GlowEffect",
        registry_key="glow",
        config={
            "position": {"name": "position", "x": 960, "y": 540},
            "intensity": 0.5,
        },
    )


@pytest.fixture
def blur() -> Effect:
    return Effect(
        id="blur-1",
        name="Blur",
        config={"origin": {"x": 100, "y": 200}, "amount": 3},
    )


@pytest.fixture
def hexagon() -> Effect:
    return Effect(
        id="hex-1",
        name="Hex",
        config={
            "path": {
                "name": "arc-path",
                "center": {"x": 960, "y": 540},
                "radius": 400,
                "startAngle": 0,
                "endAngle": 360,
            },
        },
        secondary_effects=[
            Effect(
                id="fade-1",
                name="Fade",
                type="secondary",
                config={"anchor": {"x": 10, "y": 20}},
            ),
        ],
        keyframe_effects=[
            KeyframeEffect(
                frame=12,
                effect=Effect(
                    id="pulse-1",
                    name="Pulse",
                    type="keyFrame",
                    config={"focus": {"name": "position", "x": 960, "y": 540}},
                ),
            ),
        ],
    )


@pytest.fixture
def sample_project(glow: Effect, blur: Effect, hexagon: Effect) -> Project:
    return Project(
        name="neon-demo",
        artist="tester",
        target_resolution=1920,
        is_horizontal=True,
        number_of_frames=120,
        effects=[glow, blur, hexagon],
    )


@pytest.fixture
def store(sample_project: Project) -> ProjectStateStore:
    return ProjectStateStore(sample_project)


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def command_service(event_bus: EventBus) -> CommandService:
    return CommandService(event_bus)


@pytest.fixture
def defaults_provider() -> StaticDefaultsProvider:
    return StaticDefaultsProvider(
        {
            "Glow": {
                "center": {"x": 0, "y": 0},
                "position": {"name": "position", "x": 100, "y": 200},
                "intensity": 0.5,
            },
            "Sparkle": {"anchor": {"x": 961, "y": 541}, "count": 12},
        }
    )


@pytest.fixture
def operations(
    command_service: CommandService,
    event_bus: EventBus,
    defaults_provider: StaticDefaultsProvider,
) -> EffectOperationsService:
    return EffectOperationsService(command_service, event_bus, defaults_provider=defaults_provider)


@pytest.fixture
def project_file(tmp_path: Path, sample_project: Project) -> Path:
    return sample_project.save(tmp_path / "project.json")
