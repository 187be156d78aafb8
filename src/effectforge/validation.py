"""Structural validation of raw project documents."""

from __future__ import annotations

import json
from functools import cache
from pathlib import Path
from typing import Any

import jsonschema

_SCHEMA_PATH = Path(__file__).parent / "schemas" / "project.schema.json"


@cache
def _project_schema() -> dict[str, Any]:
    return json.loads(_SCHEMA_PATH.read_text())


def validate_project_json(data: dict[str, Any]) -> None:
    """Validate project data dict against project.schema.json.

    Parameters
    ----------
    data:
        The project data dictionary to validate.

    Raises
    ------
    jsonschema.ValidationError
        If the data does not conform to the schema.
    """
    jsonschema.validate(data, _project_schema())


def iter_project_errors(data: dict[str, Any]) -> list[str]:
    """Every schema violation in ``data`` as ``path: message`` strings."""
    validator = jsonschema.Draft202012Validator(_project_schema())
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path])
    return [f"{'/'.join(str(p) for p in e.absolute_path) or '<root>'}: {e.message}" for e in errors]
