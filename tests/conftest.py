from __future__ import annotations

import json
from collections.abc import Iterator
from typing import Any

import httpx
import pytest

from carbonpick.boavizta import BoaviztaClient
from carbonpick.config import Settings
from carbonpick.infra.http import HttpClient

BASE_URL = "http://boavizta.test"


class FakeBoavizta:
    """In-memory stand-in for the carbon API, served through httpx.MockTransport.

    Server impacts are deterministic: manufacture is 100 per CPU unit, usage
    is 1 per GB of RAM, halved when the usage location is SWE.
    """

    def __init__(self) -> None:
        self.archetypes: dict[str, dict[str, Any]] = {
            "dellR740": {
                "CPU": {
                    "units": {"default": 2},
                    "core_units": {"default": 24},
                    "name": {"default": "xeon gold 6134"},
                },
                "RAM": {"units": {"default": 12}, "capacity": {"default": 32}},
                "GPU": {"units": {"default": 0}},
            },
        }
        self.cpus: dict[str, dict[str, Any]] = {
            "xeon gold 6134": {"core_units": 8, "tdp": 130, "family": "Skylake"},
        }
        self.instances: dict[str, dict[str, Any]] = {
            "small": {"vcpu": {"default": 2}, "memory": {"default": 8}, "gpu_units": {"default": 0}},
            "medium": {"vcpu": {"default": 4}, "memory": {"default": 16}, "gpu_units": {"default": 0}},
            "large": {"vcpu": {"default": 8}, "memory": {"default": 32}, "gpu_units": {"default": 0}},
            "gpu": {"vcpu": {"default": 8}, "memory": {"default": 64}, "gpu_units": {"default": 1}},
        }
        self.instance_costs: dict[str, tuple[Any, Any]] = {
            "small": (0.1, 0.1),
            "medium": (1.0, 1.0),
            "large": (0.5, 0.5),
            "gpu": (5.0, 5.0),
        }
        self.providers = ["aws", "alces"]
        self.failing_cpus: set[str] = set()
        self.requests: list[httpx.Request] = []

    # ─── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    def _impact(embedded: Any, use: Any) -> dict[str, Any]:
        return {
            "impacts": {
                "gwp": {
                    "embedded": {"value": embedded, "unit": "kgCO2eq"},
                    "use": {"value": use, "unit": "kgCO2eq"},
                    "unit": "kgCO2eq",
                }
            }
        }

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    # ─── Routing ─────────────────────────────────────────────────────

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        params = request.url.params

        match request.method, request.url.path:
            case "GET", "/v1/server/archetypes":
                return httpx.Response(200, json=sorted(self.archetypes))
            case "GET", "/v1/server/archetype_config":
                config = self.archetypes.get(params.get("archetype", ""))
                if config is None:
                    return httpx.Response(404, json={"detail": "archetype not found"})
                return httpx.Response(200, json=config)
            case "GET", "/v1/utils/name_to_cpu":
                cpu = self.cpus.get(params.get("cpu_name", ""))
                if cpu is None:
                    return httpx.Response(404, json={"detail": "cpu not found"})
                return httpx.Response(200, json=cpu)
            case "POST", "/v1/server/":
                body = json.loads(request.content)
                config = body["configuration"]
                if config["cpu"].get("name") in self.failing_cpus:
                    return httpx.Response(500, text="impact model crashed")
                memory = sum(r["units"] * r["capacity"] for r in config["ram"])
                usage = float(memory)
                if body["usage"]["usage_location"] == "SWE":
                    usage /= 2
                return httpx.Response(200, json=self._impact(100.0 * config["cpu"].get("units", 1), usage))
            case "GET", "/v1/cloud/instance/all_providers":
                return httpx.Response(200, json=self.providers)
            case "GET", "/v1/cloud/instance/instance_config":
                return httpx.Response(200, json={"archetype": params.get("archetype")})
            case "GET", "/v1/cloud/instance/all_instance_data":
                if params.get("provider") not in self.providers:
                    return httpx.Response(404, json={"detail": "unknown provider"})
                return httpx.Response(200, json={"data": self.instances})
            case "GET", "/v1/cloud/instance":
                cost = self.instance_costs.get(params.get("instance_type", ""))
                if cost is None:
                    return httpx.Response(404, json={"detail": "instance not found"})
                return httpx.Response(200, json=self._impact(*cost))

        return httpx.Response(404, json={"detail": "no route"})


@pytest.fixture
def fake_api() -> FakeBoavizta:
    return FakeBoavizta()


@pytest.fixture
def transport(fake_api: FakeBoavizta) -> httpx.MockTransport:
    return httpx.MockTransport(fake_api.handle)


@pytest.fixture
def client(transport: httpx.MockTransport) -> Iterator[BoaviztaClient]:
    with BoaviztaClient(HttpClient(BASE_URL, retries=1, transport=transport)) as c:
        yield c


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(endpoint_url=BASE_URL, retries=1, cache_dir=tmp_path / "cache", max_workers=4)
