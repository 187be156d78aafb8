"""External collaborators: the effect catalog and the defaults provider."""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from effectforge.models import EffectType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EffectCatalogEntry:
    """What the catalog knows about one effect."""

    name: str
    class_name: str
    registry_key: str
    category: EffectType

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], category: EffectType) -> EffectCatalogEntry:
        # Catalogs from the plugin layer use camelCase keys.
        name = data.get("name") or data.get("registryKey") or data.get("registry_key")
        if not name:
            msg = "catalog entry is missing a name"
            raise ValueError(msg)
        raw_category = data.get("category") or data.get("type")
        return cls(
            name=name,
            class_name=data.get("className") or data.get("class_name") or name,
            registry_key=data.get("registryKey") or data.get("registry_key") or name,
            category=EffectType(raw_category) if raw_category else category,
        )


EffectCatalog = Mapping[str, Iterable[EffectCatalogEntry | Mapping[str, Any]]]


def resolve_catalog_entry(
    available_effects: EffectCatalog | None, name: str, effect_type: EffectType | str
) -> EffectCatalogEntry:
    """Find ``name`` in the catalog, searching the requested type's bucket first.

    An effect not listed anywhere resolves to a bare entry named after itself.
    When the catalog files the effect under another category, that category
    wins over the requested type.
    """
    requested = EffectType(effect_type)
    buckets = dict(available_effects or {})
    ordered = [str(requested)] + [key for key in buckets if key != str(requested)]
    for key in ordered:
        for raw in buckets.get(key, ()):
            bucket_type = EffectType(key) if _is_effect_type(key) else requested
            entry = (
                raw
                if isinstance(raw, EffectCatalogEntry)
                else EffectCatalogEntry.from_mapping(raw, bucket_type)
            )
            if name in (entry.name, entry.registry_key, entry.class_name):
                if entry.category != requested:
                    logger.warning(
                        "Effect %r requested as %s but catalogued as %s; using %s",
                        name,
                        requested,
                        entry.category,
                        entry.category,
                    )
                return entry
    logger.debug("Effect %r not in catalog, using bare entry", name)
    return EffectCatalogEntry(name=name, class_name=name, registry_key=name, category=requested)


def _is_effect_type(value: str) -> bool:
    try:
        EffectType(value)
    except ValueError:
        return False
    return True


@runtime_checkable
class DefaultsProvider(Protocol):
    """Supplies the default config for a freshly created effect."""

    async def get_defaults(self, effect_name: str) -> dict[str, Any]:
        """Return the default config for ``effect_name`` (may suspend)."""
        ...


class StaticDefaultsProvider:
    """In-memory defaults provider for tests and offline use.

    Returns deep copies so callers can never mutate the stored defaults.
    """

    def __init__(
        self, defaults: Mapping[str, Mapping[str, Any]] | None = None, delay: float = 0.0
    ) -> None:
        self._defaults = {name: dict(config) for name, config in (defaults or {}).items()}
        self.delay = delay
        self.requests: list[str] = []

    async def get_defaults(self, effect_name: str) -> dict[str, Any]:
        self.requests.append(effect_name)
        if self.delay:
            await asyncio.sleep(self.delay)
        return copy.deepcopy(self._defaults.get(effect_name, {}))
