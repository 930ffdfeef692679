"""
Unit tests for the Item Pool Index and catalog loading.
"""

import json

import pytest

from conftest import make_item, make_pool
from mixmind.content.item_pool import ItemPoolIndex, build_index, load_catalog
from mixmind.content.models import ExerciseType, Module, Track
from mixmind.exceptions import CatalogError, UnknownItemError, UnknownModuleError


class TestBundledCatalog:
    """Tests against the catalog shipped with the package."""

    def test_loads(self, catalog):
        assert len(catalog) > 0
        assert catalog.version

    def test_module_items_keep_catalog_order(self, catalog):
        ids = [item.id for item in catalog.items_for("ch1-intro")]
        assert ids[:3] == ["ch1-01", "ch1-02", "ch1-03"]

    def test_every_start_module_exists(self, catalog):
        from mixmind.placement.placement_engine import START_MODULES

        for module_id in START_MODULES.values():
            assert catalog.items_for(module_id, strict=True)

    def test_starter_modules(self, catalog):
        starters = catalog.starter_modules()
        assert starters["gin"].id == "sp-gin-starter"
        assert starters["gin-alternative"].track == Track.ZERO_PROOF

    def test_items_inherit_module_track(self, catalog):
        assert all(i.track == Track.ZERO_PROOF for i in catalog.items_for("zp1-intro"))


class TestLookups:
    """Tests for index lookups."""

    @pytest.fixture
    def pool(self):
        return make_pool({
            "m1": [make_item("a", "m1", difficulty=1), make_item("b", "m1", difficulty=2)],
            "m2": [make_item("c", "m2", difficulty=2, track=Track.LOW_ABV)],
        })

    def test_by_id(self, pool):
        assert pool.by_id("c").module_id == "m2"
        assert "c" in pool
        assert "zz" not in pool

    def test_by_id_unknown_raises(self, pool):
        with pytest.raises(UnknownItemError) as exc:
            pool.by_id("zz")
        assert exc.value.item_id == "zz"
        # Also a KeyError for mapping-style callers
        assert isinstance(exc.value, KeyError)

    def test_unknown_module_is_empty(self, pool):
        assert pool.items_for("nope") == []

    def test_unknown_module_strict_raises(self, pool):
        with pytest.raises(UnknownModuleError):
            pool.items_for("nope", strict=True)

    def test_by_track_and_difficulty(self, pool):
        assert [i.id for i in pool.items_for_track(Track.LOW_ABV)] == ["c"]
        assert [i.id for i in pool.items_at_difficulty(2)] == ["b", "c"]

    def test_returned_lists_are_copies(self, pool):
        pool.items_for("m1").clear()
        assert len(pool.items_for("m1")) == 2


class TestCatalogValidation:
    """Tests for rejecting inconsistent catalogs."""

    def test_duplicate_item_id(self):
        with pytest.raises(CatalogError):
            make_pool({"m1": [make_item("a", "m1")], "m2": [make_item("a", "m2")]})

    def test_item_in_unknown_module(self):
        modules = [Module(id="m1", title="m1", track=Track.ALCOHOLIC, order=0)]
        with pytest.raises(CatalogError):
            ItemPoolIndex(modules, [make_item("a", "m9")])

    def test_schema_errors(self):
        bad = {"version": "1", "modules": [{
            "id": "m1", "title": "M", "track": "alcoholic", "order": 1,
            "items": [{"id": "a", "exercise_type": "essay", "difficulty": 1, "estimated_seconds": 30}],
        }]}
        with pytest.raises(CatalogError):
            build_index(bad)

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"version": "t1", "modules": [{
            "id": "m1", "title": "M", "track": "zero-proof", "order": 1,
            "items": [{"id": "a", "exercise_type": "order", "difficulty": 3, "estimated_seconds": 40}],
        }]}))

        pool = load_catalog(path)

        assert pool.version == "t1"
        assert pool.by_id("a").exercise_type == ExerciseType.ORDER
        assert pool.by_id("a").track == Track.ZERO_PROOF

    def test_unreadable_file(self, tmp_path):
        with pytest.raises(CatalogError):
            load_catalog(tmp_path / "missing.json")
