"""Project model - the document root with save/load."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from effectforge.models.effect import Effect
from effectforge.resolution import DEFAULT_RESOLUTION, Dimensions, get_dimensions, parse_resolution


class ProjectLoadError(ValueError):
    """Raised when a project file cannot be loaded."""


class Project(BaseModel):
    """A complete EffectForge project: canvas settings plus the effect stack."""

    name: str = ""
    artist: str = ""
    target_resolution: int | str = DEFAULT_RESOLUTION
    is_horizontal: bool = True
    number_of_frames: int = Field(default=100, gt=0)
    color_scheme: str | dict[str, Any] | None = None
    effects: list[Effect] = Field(default_factory=list)

    @field_validator("target_resolution")
    @classmethod
    def _known_bucket(cls, value: int | str) -> int | str:
        parse_resolution(value)
        return value

    @property
    def dimensions(self) -> Dimensions:
        return get_dimensions(self.target_resolution, self.is_horizontal)

    def save(self, path: Path) -> Path:
        """Save project to a JSON file (or ``project.json`` inside a directory)."""
        save_path = path if path.suffix == ".json" else path / "project.json"
        save_path.parent.mkdir(parents=True, exist_ok=True)
        save_path.write_text(self.model_dump_json(indent=2))
        return save_path

    @classmethod
    def load(cls, path: Path) -> Project:
        """Load project from JSON file."""
        if path.is_dir():
            path = path / "project.json"
        try:
            text = path.read_text()
        except FileNotFoundError:
            msg = f"project file not found: {path}"
            raise ProjectLoadError(msg) from None
        except PermissionError:
            msg = f"permission denied reading project file: {path}"
            raise ProjectLoadError(msg) from None
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            msg = f"project file contains invalid JSON: {exc}"
            raise ProjectLoadError(msg) from None
        try:
            return cls.model_validate(data)
        except PydanticValidationError as exc:
            msg = f"project file has invalid structure: {exc}"
            raise ProjectLoadError(msg) from None
