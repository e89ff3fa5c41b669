from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from carbonpick.boavizta import BoaviztaClient
from carbonpick.catalog import (
    catalog_path,
    fetch_catalog,
    get_catalog,
    load_catalog,
    save_catalog,
)
from carbonpick.core.exceptions import ConfigurationError, RemoteLookupError, ResourceNotFoundError
from carbonpick.types import CandidateInstance

if TYPE_CHECKING:
    from conftest import FakeBoavizta

pytestmark = [pytest.mark.unit]


INSTANCES = (
    CandidateInstance("a1.medium", 1, 2, 0, 10.5, 3.25),
    CandidateInstance("p3.2xlarge", 8, 61, 1, 300.0, 120.0),
)


class TestCatalogPath:
    def test_provider_is_lowercased(self, tmp_path: Path):
        assert catalog_path(tmp_path, "AWS") == tmp_path / "aws_instances.json"


class TestLoadCatalog:
    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ResourceNotFoundError) as exc_info:
            load_catalog(tmp_path / "aws_instances.json")
        assert exc_info.value.what == "catalog cache"

    def test_drops_rows_without_cost(self, tmp_path: Path):
        path = tmp_path / "aws_instances.json"
        path.write_text(json.dumps([
            {"name": "a1.medium", "vcpu": 1, "memory": 2, "gpu": 0, "manu_cost": 10.5, "usage_cost": 3.25},
            {"name": "x1.unpriced", "vcpu": 64, "memory": 976, "gpu": 0},
            {"name": "p3.2xlarge", "vcpu": 8, "memory": 61, "gpu": 1, "manu_cost": 300, "usage_cost": 120},
        ]))
        assert load_catalog(path) == INSTANCES

    def test_accepts_mapping_keyed_by_name(self, tmp_path: Path):
        path = tmp_path / "aws_instances.json"
        path.write_text(json.dumps({
            "a1.medium": {"vcpu": 1, "memory": 2, "gpu": 0, "manu_cost": 10.5, "usage_cost": 3.25},
        }))
        assert load_catalog(path) == INSTANCES[:1]

    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "aws_instances.json"
        path.write_text("[{")
        with pytest.raises(ConfigurationError, match="Unreadable"):
            load_catalog(path)

    def test_wrong_top_level_type(self, tmp_path: Path):
        path = tmp_path / "aws_instances.json"
        path.write_text("42")
        with pytest.raises(ConfigurationError, match="JSON array"):
            load_catalog(path)

    def test_bad_row(self, tmp_path: Path):
        path = tmp_path / "aws_instances.json"
        path.write_text(json.dumps([{"name": "x", "vcpu": "many", "manu_cost": 1}]))
        with pytest.raises(ConfigurationError, match="Invalid row"):
            load_catalog(path)


class TestSaveCatalog:
    def test_round_trip(self, tmp_path: Path):
        path = tmp_path / "cache" / "aws_instances.json"
        save_catalog(path, INSTANCES)
        assert load_catalog(path) == INSTANCES

    def test_flat_array_of_records(self, tmp_path: Path):
        path = tmp_path / "aws_instances.json"
        save_catalog(path, INSTANCES[:1])
        assert json.loads(path.read_text()) == [
            {"name": "a1.medium", "vcpu": 1, "memory": 2, "gpu": 0, "manu_cost": 10.5, "usage_cost": 3.25},
        ]

    def test_overwrite_leaves_no_temp_files(self, tmp_path: Path):
        path = tmp_path / "aws_instances.json"
        save_catalog(path, INSTANCES)
        save_catalog(path, INSTANCES[1:])
        assert load_catalog(path) == INSTANCES[1:]
        assert [p.name for p in tmp_path.iterdir()] == ["aws_instances.json"]

    def test_failed_replace_removes_temp_file(self, tmp_path: Path):
        path = tmp_path / "aws_instances.json"
        path.mkdir()
        with pytest.raises(OSError):
            save_catalog(path, INSTANCES)
        assert [p.name for p in tmp_path.iterdir()] == ["aws_instances.json"]
        assert list(path.iterdir()) == []


class TestFetchCatalog:
    def test_fetches_in_listing_order(self, client: BoaviztaClient):
        catalog = fetch_catalog(client, "aws", max_workers=4)
        assert [c.name for c in catalog] == ["small", "medium", "large", "gpu"]
        assert catalog[3] == CandidateInstance("gpu", 8, 64, 1, 5.0, 5.0)

    def test_skips_failed_lookups(self, client: BoaviztaClient, fake_api: FakeBoavizta):
        del fake_api.instance_costs["medium"]
        fake_api.instance_costs["large"] = (None, 1.0)

        catalog = fetch_catalog(client, "aws", max_workers=2)

        assert [c.name for c in catalog] == ["small", "gpu"]

    def test_skips_malformed_entries(self, client: BoaviztaClient, fake_api: FakeBoavizta):
        fake_api.instances["small"] = "not an object"  # type: ignore[assignment]
        catalog = fetch_catalog(client, "aws")
        assert [c.name for c in catalog] == ["medium", "large", "gpu"]

    def test_listing_failure_propagates(self, client: BoaviztaClient):
        with pytest.raises(RemoteLookupError):
            fetch_catalog(client, "nimbus")


class TestGetCatalog:
    def test_populates_cache_on_miss(self, client: BoaviztaClient, tmp_path: Path):
        catalog = get_catalog(client, "aws", tmp_path)
        assert load_catalog(tmp_path / "aws_instances.json") == catalog

    def test_uses_cache_without_requests(self, client: BoaviztaClient, fake_api: FakeBoavizta, tmp_path: Path):
        save_catalog(catalog_path(tmp_path, "aws"), INSTANCES)
        assert get_catalog(client, "aws", tmp_path) == INSTANCES
        assert fake_api.requests == []

    def test_refresh_refetches(self, client: BoaviztaClient, fake_api: FakeBoavizta, tmp_path: Path):
        save_catalog(catalog_path(tmp_path, "aws"), INSTANCES)
        catalog = get_catalog(client, "aws", tmp_path, refresh=True)
        assert [c.name for c in catalog] == ["small", "medium", "large", "gpu"]
        assert load_catalog(catalog_path(tmp_path, "aws")) == catalog

    def test_corrupt_cache_is_refetched(self, client: BoaviztaClient, tmp_path: Path):
        catalog_path(tmp_path, "aws").write_text("{broken")
        catalog = get_catalog(client, "aws", tmp_path)
        assert len(catalog) == 4

    def test_unwritable_cache_still_returns_catalog(self, client: BoaviztaClient, tmp_path: Path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        catalog = get_catalog(client, "aws", blocker / "cache")
        assert [c.name for c in catalog] == ["small", "medium", "large", "gpu"]
        assert blocker.read_text() == ""

    def test_empty_result_not_cached(self, client: BoaviztaClient, fake_api: FakeBoavizta, tmp_path: Path):
        fake_api.instance_costs.clear()
        assert get_catalog(client, "aws", tmp_path) == ()
        assert not catalog_path(tmp_path, "aws").exists()
