"""CLI entry point using Typer."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer

app = typer.Typer(
    name="effectforge",
    help="Inspect, validate and rescale layered effect projects.",
    no_args_is_help=True,
)


@app.command()
def resolutions(
    category: Annotated[
        str | None,
        typer.Option("--category", "-c", help="Only list one category (e.g. HD, Mobile)"),
    ] = None,
) -> None:
    """List the known resolution buckets."""
    from effectforge.resolution import list_resolutions

    buckets = list_resolutions(category)
    if not buckets:
        typer.echo(f"No resolutions in category {category!r}", err=True)
        raise typer.Exit(1)
    for key, bucket in buckets:
        size = f"{bucket.width}x{bucket.height}"
        typer.echo(f"{key:>5}  {size:<10} {bucket.name} ({bucket.category})")


@app.command()
def dimensions(
    resolution: Annotated[str, typer.Argument(help="Bucket id or alias, e.g. 1920, hd, 4k")],
    vertical: Annotated[bool, typer.Option("--vertical", help="Portrait orientation")] = False,
) -> None:
    """Print the canvas size for a resolution and orientation."""
    from effectforge.resolution import get_dimensions

    try:
        dims = get_dimensions(resolution, is_horizontal=not vertical)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    typer.echo(f"{dims.width}x{dims.height}")


@app.command()
def validate(
    project_path: Annotated[Path, typer.Argument(help="Path to project directory or JSON")],
) -> None:
    """Check a project file against the project schema and model."""
    from effectforge.errors import ValidationError
    from effectforge.state import ProjectStateStore
    from effectforge.validation import iter_project_errors

    path = project_path / "project.json" if project_path.is_dir() else project_path
    try:
        data = json.loads(path.read_text())
    except FileNotFoundError:
        typer.echo(f"Error: project file not found: {path}", err=True)
        raise typer.Exit(1) from None
    except json.JSONDecodeError as e:
        typer.echo(f"Error: invalid JSON: {e}", err=True)
        raise typer.Exit(1) from None

    if not isinstance(data, dict):
        typer.echo("Error: project file must contain a JSON object", err=True)
        raise typer.Exit(1)
    problems = iter_project_errors(data)
    if problems:
        typer.echo(f"Invalid: {len(problems)} problem(s)")
        for problem in problems:
            typer.echo(f"  \u2717 {problem}")
        raise typer.Exit(1)
    try:
        store = ProjectStateStore(data)
    except ValidationError as e:
        typer.echo(f"Invalid: {e}")
        raise typer.Exit(1) from None
    dims = store.get_resolution_dimensions()
    typer.echo(
        f"Valid: {store.get_state().name or path.stem} "
        f"({store.effect_count()} effects, {dims.width}x{dims.height})"
    )


@app.command()
def rescale(
    project_path: Annotated[Path, typer.Argument(help="Path to project directory or JSON")],
    resolution: Annotated[
        str,
        typer.Option("--resolution", "-r", help="Target bucket id or alias"),
    ],
    horizontal: Annotated[
        bool | None,
        typer.Option("--horizontal/--vertical", help="Target orientation (default: keep)"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write here instead of overwriting the project"),
    ] = None,
) -> None:
    """Move a project to another resolution, keeping centered positions centered."""
    from effectforge.errors import ValidationError
    from effectforge.models.project import Project, ProjectLoadError
    from effectforge.resolution import parse_resolution
    from effectforge.state import ProjectStateStore

    try:
        project = Project.load(project_path)
        bucket = parse_resolution(resolution)
    except (ProjectLoadError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    store = ProjectStateStore(project)
    before = store.get_resolution_dimensions()
    changes: dict[str, object] = {"target_resolution": bucket}
    if horizontal is not None:
        changes["is_horizontal"] = horizontal
    try:
        updated = store.update(changes)
    except ValidationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    after = store.get_resolution_dimensions()
    save_path = updated.save(output or project_path)
    typer.echo(
        f"Rescaled {before.width}x{before.height} -> {after.width}x{after.height}: {save_path}"
    )


@app.callback(invoke_without_command=True)
def main(
    version: Annotated[
        bool, typer.Option("--version", "-v", help="Show version")
    ] = False,
) -> None:
    """EffectForge - project state, undo/redo and canvas geometry for effect stacks."""
    if version:
        from effectforge import __version__

        typer.echo(f"effectforge {__version__}")
        raise typer.Exit()
