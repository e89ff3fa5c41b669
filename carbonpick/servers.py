"""Cluster files and server resolution.

A cluster file is YAML with a list of servers and a usage profile:

    configuration:
      - name: dellR740          # archetype, completed from the carbon API
        count: 4
        cpu: {units: 2}         # explicit values win over archetype defaults
      - cpu: {units: 1, core_units: 8, name: "xeon gold 6134"}
        ram: [{units: 4, capacity: 16}]
        gpu: {units: 1}
    usage:
      use_time_ratio: 0.8
      usage_location: FRA
      hours_life_time: 35040

Resolution precedence for each field is: value in the file, then the
archetype default, then the CPU lookup by name.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from carbonpick.boavizta import BoaviztaClient
from carbonpick.core.exceptions import (
    ConfigurationError,
    RemoteLookupError,
    ResourceNotFoundError,
)
from carbonpick.types import Cluster, CpuSpec, RamSpec, ServerSpec, UsageProfile

__all__ = [
    "build_cluster",
    "parse_server",
    "parse_usage",
    "read_cluster_file",
    "resolve_server",
]


# =============================================================================
# File loading
# =============================================================================


def read_cluster_file(path: str | Path) -> dict[str, Any]:
    """Load and shape-check a cluster YAML file.

    Raises:
        ResourceNotFoundError: If the file does not exist.
        ConfigurationError: If it is not valid YAML or has no server list.
    """
    path = Path(path)
    if not path.is_file():
        raise ResourceNotFoundError(path, "cluster file")
    try:
        with path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Cluster file {path} must contain a mapping")
    servers = raw.get("configuration")
    if not isinstance(servers, list) or not servers:
        raise ConfigurationError(f"Cluster file {path} has no 'configuration' list of servers")
    return raw


# =============================================================================
# Parsing helpers
# =============================================================================


def _dig(data: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _default(archetype: dict[str, Any], component: str, field: str) -> Any:
    return _dig(archetype, component, field, "default")


def _first(*values: Any) -> Any:
    """First value that is not None."""
    return next((v for v in values if v is not None), None)


def _as_int(
    value: Any, what: str, *, required: bool = False, minimum: int | None = None
) -> int | None:
    if value is None:
        if required:
            raise ConfigurationError(f"{what} is required")
        return None
    if isinstance(value, bool):
        raise ConfigurationError(f"{what} must be an integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{what} must be an integer, got {value!r}") from e
    if minimum is not None and number < minimum:
        raise ConfigurationError(f"{what} must be >= {minimum}, got {number}")
    return number


def _as_float(value: Any, what: str) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{what} must be a number, got {value!r}") from e


def _mapping(raw: Any, what: str) -> dict[str, Any]:
    match raw:
        case None:
            return {}
        case dict():
            return raw
        case _:
            raise ConfigurationError(f"{what} must be a mapping, got {raw!r}")


def _ram_entries(raw: Any) -> list[dict[str, Any]]:
    match raw:
        case None:
            return []
        case dict():
            return [raw]
        case list():
            return [_mapping(entry, "ram entry") for entry in raw]
        case _:
            raise ConfigurationError(f"ram must be a mapping or a list, got {raw!r}")


def parse_server(raw: dict[str, Any]) -> ServerSpec:
    """Build a ServerSpec from an already complete description."""
    cpu = _mapping(raw.get("cpu"), "cpu")
    gpu = _mapping(raw.get("gpu"), "gpu")

    ram = tuple(
        RamSpec(
            units=_as_int(entry.get("units"), "ram.units", required=True, minimum=0),  # type: ignore[arg-type]
            capacity=_as_int(entry.get("capacity"), "ram.capacity", required=True, minimum=0),  # type: ignore[arg-type]
        )
        for entry in _ram_entries(raw.get("ram"))
    )

    return ServerSpec(
        cpu=CpuSpec(
            units=_as_int(cpu.get("units"), "cpu.units", minimum=0),
            core_units=_as_int(cpu.get("core_units"), "cpu.core_units", minimum=0),
            tdp=_as_float(cpu.get("tdp"), "cpu.tdp"),
            name=cpu.get("name"),
            family=cpu.get("family"),
        ),
        ram=ram,
        gpu_units=_as_int(gpu.get("units"), "gpu.units", minimum=0) or 0,
        count=_first(_as_int(raw.get("count"), "count"), 1),
        name=raw.get("name"),
    )


def parse_usage(raw: dict[str, Any] | None) -> UsageProfile:
    raw = raw or {}
    defaults = UsageProfile()
    return UsageProfile(
        use_time_ratio=_first(
            _as_float(raw.get("use_time_ratio"), "usage.use_time_ratio"), defaults.use_time_ratio
        ),
        usage_location=str(raw.get("usage_location") or defaults.usage_location),
        hours_life_time=_first(
            _as_int(raw.get("hours_life_time"), "usage.hours_life_time"), defaults.hours_life_time
        ),
    )


# =============================================================================
# Resolution against the carbon API
# =============================================================================


def resolve_server(client: BoaviztaClient, raw: dict[str, Any]) -> ServerSpec:
    """Complete a server description from its archetype, if it names one.

    Raises:
        RemoteLookupError: If the archetype or CPU lookup fails.
        ConfigurationError: If the merged description is incomplete.
    """
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Server entry must be a mapping, got {raw!r}")

    archetype_name = raw.get("name")
    if not archetype_name:
        return parse_server(raw)

    archetype = client.server_archetype_config(archetype_name)
    cpu = _mapping(raw.get("cpu"), "cpu")
    gpu = _mapping(raw.get("gpu"), "gpu")

    cpu_name = _first(cpu.get("name"), _default(archetype, "CPU", "name"))
    cpu_data = client.cpu_by_name(cpu_name) if cpu_name else {}

    ram_entries = _ram_entries(raw.get("ram"))
    if len(ram_entries) <= 1:
        entry = ram_entries[0] if ram_entries else {}
        ram_entries = [{
            "units": _first(entry.get("units"), _default(archetype, "RAM", "units")),
            "capacity": _first(entry.get("capacity"), _default(archetype, "RAM", "capacity")),
        }]

    merged = {
        "name": archetype_name,
        "count": raw.get("count"),
        "cpu": {
            "units": _first(cpu.get("units"), _default(archetype, "CPU", "units")),
            "core_units": _first(
                cpu.get("core_units"),
                _default(archetype, "CPU", "core_units"),
                cpu_data.get("core_units"),
            ),
            "tdp": _first(cpu.get("tdp"), cpu_data.get("tdp")),
            "name": cpu_name,
            "family": _first(cpu.get("family"), cpu_data.get("family")),
        },
        "ram": ram_entries,
        "gpu": {"units": _first(gpu.get("units"), _default(archetype, "GPU", "units"))},
    }
    return parse_server(merged)


def build_cluster(client: BoaviztaClient, raw: dict[str, Any]) -> Cluster:
    """Resolve every server in a cluster file.

    A server whose archetype cannot be looked up is skipped with a warning;
    an incomplete description is a configuration error.
    """
    servers: list[ServerSpec] = []
    for index, entry in enumerate(raw.get("configuration") or []):
        try:
            servers.append(resolve_server(client, entry))
        except RemoteLookupError as e:
            logger.warning("Skipping server #{index}: {error}", index=index + 1, error=e)

    return Cluster(servers=tuple(servers), usage=parse_usage(raw.get("usage")))
