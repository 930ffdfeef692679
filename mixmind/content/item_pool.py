"""
Item Pool Index - read-only catalog of lesson items.

Built once per content version. Items are indexed by module, track and
difficulty; module item lists keep catalog order.
"""

from __future__ import annotations

import json
from collections import defaultdict
from importlib import resources
from pathlib import Path
from typing import Iterable, Optional

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from mixmind.content.models import ExerciseType, LessonItem, Module, Track
from mixmind.exceptions import CatalogError, UnknownItemError, UnknownModuleError


# =============================================================================
# CATALOG FILE SCHEMA
# =============================================================================


class _ItemSpec(BaseModel):
    id: str
    exercise_type: ExerciseType
    difficulty: int = Field(ge=1, le=5)
    estimated_seconds: int = Field(gt=0)
    prompt: str = ""
    track: Optional[Track] = None  # inherits the module track when omitted


class _ModuleSpec(BaseModel):
    id: str
    title: str
    track: Track
    order: int
    starter_for: Optional[str] = None
    items: list[_ItemSpec] = Field(default_factory=list)


class _CatalogSpec(BaseModel):
    version: str
    modules: list[_ModuleSpec]


# =============================================================================
# INDEX
# =============================================================================


class ItemPoolIndex:
    """
    In-memory index over the lesson catalog.

    Lookups:
    - items_for(module_id): items of a module in catalog order
    - by_id(item_id): single item
    - items_for_track(track) / items_at_difficulty(level)
    """

    def __init__(self, modules: Iterable[Module], items: Iterable[LessonItem], version: str = "dev"):
        self.version = version
        self._modules: dict[str, Module] = {}
        self._items: dict[str, LessonItem] = {}
        self._by_module: dict[str, list[LessonItem]] = defaultdict(list)
        self._by_track: dict[Track, list[LessonItem]] = defaultdict(list)
        self._by_difficulty: dict[int, list[LessonItem]] = defaultdict(list)

        for module in modules:
            if module.id in self._modules:
                raise CatalogError(f"Duplicate module id: {module.id}")
            self._modules[module.id] = module

        for item in items:
            if item.id in self._items:
                raise CatalogError(f"Duplicate item id: {item.id}")
            if item.module_id not in self._modules:
                raise CatalogError(f"Item {item.id} references unknown module {item.module_id}")
            self._items[item.id] = item
            self._by_module[item.module_id].append(item)
            self._by_track[item.track].append(item)
            self._by_difficulty[item.difficulty].append(item)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def items_for(self, module_id: str, strict: bool = False) -> list[LessonItem]:
        """Items of a module in catalog order (empty for unknown modules unless strict)."""
        if module_id not in self._modules:
            if strict:
                raise UnknownModuleError(module_id)
            return []
        return list(self._by_module[module_id])

    def by_id(self, item_id: str) -> LessonItem:
        try:
            return self._items[item_id]
        except KeyError:
            raise UnknownItemError(item_id) from None

    def get(self, item_id: str) -> LessonItem | None:
        return self._items.get(item_id)

    def items_for_track(self, track: Track) -> list[LessonItem]:
        return list(self._by_track[Track(track)])

    def items_at_difficulty(self, difficulty: int) -> list[LessonItem]:
        return list(self._by_difficulty[difficulty])

    def module(self, module_id: str) -> Module:
        try:
            return self._modules[module_id]
        except KeyError:
            raise UnknownModuleError(module_id) from None

    def modules(self, track: Track | None = None) -> list[Module]:
        """Modules sorted by (track, order)."""
        found = [m for m in self._modules.values() if track is None or m.track == Track(track)]
        return sorted(found, key=lambda m: (m.track.value, m.order, m.id))

    def starter_modules(self) -> dict[str, Module]:
        """Dedicated starter modules keyed by the spirit tag they introduce."""
        return {m.starter_for: m for m in self._modules.values() if m.starter_for}


# =============================================================================
# LOADING
# =============================================================================


def build_index(data: dict) -> ItemPoolIndex:
    """Build an index from a parsed catalog document."""
    try:
        spec = _CatalogSpec.model_validate(data)
    except ValidationError as e:
        raise CatalogError(f"Invalid catalog: {e}") from e

    modules = []
    items = []
    for mod in spec.modules:
        modules.append(
            Module(
                id=mod.id,
                title=mod.title,
                track=mod.track,
                order=mod.order,
                starter_for=mod.starter_for,
            )
        )
        for it in mod.items:
            items.append(
                LessonItem(
                    id=it.id,
                    module_id=mod.id,
                    track=it.track or mod.track,
                    difficulty=it.difficulty,
                    estimated_seconds=it.estimated_seconds,
                    exercise_type=it.exercise_type,
                    prompt=it.prompt,
                )
            )

    return ItemPoolIndex(modules, items, version=spec.version)


def load_catalog(path: str | Path | None = None) -> ItemPoolIndex:
    """
    Load a catalog JSON file.

    Args:
        path: Catalog file, or None for the bundled catalog

    Returns:
        ItemPoolIndex for the catalog
    """
    try:
        if path is None:
            raw = resources.files("mixmind.content").joinpath("data/catalog.json").read_text(encoding="utf-8")
        else:
            raw = Path(path).read_text(encoding="utf-8")
        data = json.loads(raw)
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogError(f"Cannot read catalog {path or '<bundled>'}: {e}") from e

    index = build_index(data)
    logger.debug(f"Loaded catalog {index.version}: {len(index)} items")
    return index
