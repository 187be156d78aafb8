"""EffectForge - project state, undo/redo commands and canvas geometry for effect stacks."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("effectforge")
except PackageNotFoundError:
    __version__ = "unknown"
