"""Tests for site dataset loading and the site catalog."""

import json

import pytest

from exemptlot.core.types import UNKNOWN
from exemptlot.ingestion.sites import (
    DatasetError,
    load_dataset,
    load_sites_from_json,
    site_to_json,
)
from exemptlot.storage.sites import InMemorySiteStore, SiteCatalog, new_user_site


def _record(**kwargs) -> dict:
    values = {
        "id": "ALB-001",
        "label": "14 Kiewa Street",
        "zone": "R1 General Residential",
        "lot_size_m2": 650,
        "frontage_m": 15,
        "corner_lot": False,
        "setbacks_m": {"front": 6},
    }
    values.update(kwargs)
    return values


class TestLoadSitesFromJson:
    def test_minimal_record_defaults(self):
        (site,) = load_sites_from_json({"properties": [_record()]})
        assert site.bal == UNKNOWN
        assert site.flood_category == UNKNOWN
        assert not site.flood_control_lot
        assert not site.prechecks.heritage_item
        assert site.latitude is None

    def test_dataset_keys_mapped(self):
        (site,) = load_sites_from_json({"properties": [_record(
            bal="BAL-29", floodCategory="FLOODWAY", floodControlLot=True,
            prechecks={"heritage_item": True}, latitude=-36.08, longitude=146.91,
            foreshore_proximity=True,
        )]})
        assert site.bal == "BAL-29"
        assert site.flood_category == "FLOODWAY"
        assert site.flood_control_lot
        assert site.prechecks.heritage_item
        assert site.latitude == -36.08
        assert site.foreshore_proximity

    def test_wrong_shape(self):
        with pytest.raises(DatasetError, match=r"expected \{ properties"):
            load_sites_from_json([_record()])

    def test_missing_field_names_index(self):
        bad = _record()
        del bad["frontage_m"]
        with pytest.raises(DatasetError, match=r'Missing "frontage_m" in properties\[1\]'):
            load_sites_from_json({"properties": [_record(), bad]})

    @pytest.mark.parametrize("key,value,kind", [
        ("label", 5, "string"),
        ("lot_size_m2", "650", "number"),
        ("lot_size_m2", True, "number"),
        ("corner_lot", "no", "boolean"),
        ("setbacks_m", [], "object"),
    ])
    def test_wrong_types(self, key, value, kind):
        with pytest.raises(DatasetError, match=rf"properties\[0\]\.{key} must be {kind}"):
            load_sites_from_json({"properties": [_record(**{key: value})]})

    def test_site_to_json_reloads(self):
        (site,) = load_sites_from_json({"properties": [_record(bal="BAL-19")]})
        (again,) = load_sites_from_json({"properties": [site_to_json(site)]})
        assert again == site


class TestLoadDataset:
    def test_bundled_curated_dataset(self, tmp_path):
        sites = load_dataset("curated", data_dir=tmp_path)
        assert len(sites) >= 10
        assert len({s.id for s in sites}) == len(sites)
        assert any(s.prechecks.heritage_item for s in sites)
        assert any(s.flood_category == "FLOODWAY" for s in sites)

    def test_data_dir_overrides_bundle(self, tmp_path):
        (tmp_path / "properties.json").write_text(
            "\ufeff" + json.dumps({"properties": [_record(id="X-001")]}), encoding="utf-8",
        )
        assert [s.id for s in load_dataset("curated", data_dir=tmp_path)] == ["X-001"]

    def test_full_inventory_missing(self, tmp_path):
        with pytest.raises(DatasetError, match="Full inventory unavailable"):
            load_dataset("full", data_dir=tmp_path)

    def test_invalid_json(self, tmp_path):
        (tmp_path / "properties-full.json").write_text("{not json")
        with pytest.raises(DatasetError, match="not valid JSON"):
            load_dataset("full", data_dir=tmp_path)

    def test_unknown_dataset(self, tmp_path):
        with pytest.raises(DatasetError, match="Unknown dataset"):
            load_dataset("everything", data_dir=tmp_path)


class TestSiteCatalog:
    def test_new_user_site_defaults(self):
        site = new_user_site(label="  ")
        assert site.id.startswith("USR_")
        assert site.label == "Untitled sample"
        assert site.zone == "R1 General Residential"

    @pytest.mark.asyncio
    async def test_user_sites_listed_first(self, site):
        catalog = SiteCatalog([site], InMemorySiteStore())
        await catalog.load()
        added = await catalog.add(new_user_site(label="Back shed lot"))
        assert [s.id for s in catalog.list_sites()] == [added.id, site.id]
        assert catalog.get(added.id) is added

    @pytest.mark.asyncio
    async def test_persisted_sites_loaded(self, site):
        store = InMemorySiteStore()
        await store.add(new_user_site(label="Earlier"))
        catalog = SiteCatalog([site], store)
        await catalog.load()
        assert catalog.list_sites()[0].label == "Earlier"

    @pytest.mark.asyncio
    async def test_get_unknown(self, site):
        catalog = SiteCatalog([site], InMemorySiteStore())
        await catalog.load()
        assert catalog.get("NOPE") is None
