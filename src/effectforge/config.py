"""Application configuration with pydantic-settings + TOML."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, TomlConfigSettingsSource

from effectforge.models import Project
from effectforge.resolution import DEFAULT_RESOLUTION, parse_resolution


def _default_config_dir() -> Path:
    return Path.home() / ".effectforge"


class HistorySettings(BaseSettings):
    """Undo history and event log limits."""

    max_undo: int = Field(default=50, ge=1)
    event_history_limit: int = Field(default=1000, ge=1)


class ProjectDefaults(BaseSettings):
    """Canvas settings for new projects."""

    target_resolution: int | str = DEFAULT_RESOLUTION
    is_horizontal: bool = True
    number_of_frames: int = Field(default=100, gt=0)

    @field_validator("target_resolution")
    @classmethod
    def _known_bucket(cls, value: int | str) -> int | str:
        parse_resolution(value)
        return value

    def new_project(self, name: str = "") -> Project:
        return Project(
            name=name,
            target_resolution=self.target_resolution,
            is_horizontal=self.is_horizontal,
            number_of_frames=self.number_of_frames,
        )


class AppConfig(BaseSettings):
    """Root application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="EFFECTFORGE_",
        env_nested_delimiter="__",
    )

    config_dir: Path = Field(default_factory=_default_config_dir)
    history: HistorySettings = Field(default_factory=HistorySettings)
    project: ProjectDefaults = Field(default_factory=ProjectDefaults)

    @classmethod
    def settings_customise_sources(cls, settings_cls, **kwargs):  # type: ignore[override]
        toml_path = _default_config_dir() / "config.toml"
        sources = (
            kwargs.get("init_settings"),
            kwargs.get("env_settings"),
        )
        if toml_path.exists():
            sources = (*sources, TomlConfigSettingsSource(settings_cls, toml_file=toml_path))
        return (*sources, kwargs.get("dotenv_settings"), kwargs.get("file_secret_settings"))

    def ensure_dirs(self) -> None:
        """Create the config directory if it doesn't exist."""
        self.config_dir.mkdir(parents=True, exist_ok=True)


def load_config() -> AppConfig:
    """Load application config, creating the config directory if needed."""
    config = AppConfig()
    config.ensure_dirs()
    return config
