"""Cloud instance catalog with carbon costs, cached on disk per provider.

The cache is a flat JSON array, one object per instance type:

    [{"name": "m5.xlarge", "vcpu": 4, "memory": 16, "gpu": 0,
      "manu_cost": 110.2, "usage_cost": 95.7}, ...]

Rows without cost data are dropped on load. Writes go to a temporary file
in the same directory and are renamed into place, so readers never see a
partial file.
"""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

from loguru import logger

from carbonpick.boavizta import BoaviztaClient
from carbonpick.constants import CATALOG_FILE_SUFFIX, DEFAULT_MAX_WORKERS
from carbonpick.core.exceptions import (
    ConfigurationError,
    RemoteLookupError,
    ResourceNotFoundError,
)
from carbonpick.types import CandidateInstance, CarbonCost

__all__ = [
    "catalog_path",
    "fetch_catalog",
    "get_catalog",
    "load_catalog",
    "save_catalog",
]


def catalog_path(cache_dir: Path, provider: str) -> Path:
    return cache_dir / f"{provider.lower()}{CATALOG_FILE_SUFFIX}"


# =============================================================================
# Parsing helpers (pure functions)
# =============================================================================


def _safe_int(value: Any, default: int = 0) -> int:
    """Parse int, default on failure."""
    try:
        return int(value) if value is not None else default
    except (ValueError, TypeError):
        return default


def _spec_value(entry: dict[str, Any], key: str) -> Any:
    """Instance data fields come either bare or as {"default": value}."""
    value = entry.get(key)
    if isinstance(value, dict):
        return value.get("default")
    return value


def _to_candidate(name: str, entry: Any, cost: CarbonCost) -> CandidateInstance | None:
    if not isinstance(entry, dict):
        logger.warning("Skipping instance type '{name}': malformed entry", name=name)
        return None
    try:
        return CandidateInstance(
            name=name,
            vcpu=_safe_int(_spec_value(entry, "vcpu")),
            memory=_safe_int(_spec_value(entry, "memory")),
            gpu=_safe_int(_spec_value(entry, "gpu_units")),
            manufacture_cost=cost.manufacture,
            usage_cost=cost.usage,
        )
    except ValueError as e:
        logger.warning("Skipping instance type '{name}': {error}", name=name, error=e)
        return None


# =============================================================================
# Cache file
# =============================================================================


def load_catalog(path: Path) -> tuple[CandidateInstance, ...]:
    """Read a cached catalog.

    Raises:
        ResourceNotFoundError: If the file does not exist.
        ConfigurationError: If the file is not a valid catalog.
    """
    if not path.is_file():
        raise ResourceNotFoundError(path, "catalog cache")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Unreadable catalog cache {path}: {e}") from e

    match raw:
        case list():
            rows = raw
        case dict():
            rows = [{"name": k, **v} for k, v in raw.items() if isinstance(v, dict)]
        case _:
            raise ConfigurationError(f"Catalog cache {path} must be a JSON array")

    instances: list[CandidateInstance] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        try:
            instance = CandidateInstance.from_record(row)
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid row in catalog cache {path}: {row!r}") from e
        # Row is useless unless it has cost data
        if instance is not None:
            instances.append(instance)
    return tuple(instances)


def save_catalog(path: Path, instances: Iterable[CandidateInstance]) -> None:
    """Write the catalog atomically."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps([i.to_record() for i in instances], indent=2)

    f = tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
    )
    tmp = Path(f.name)
    try:
        with f:
            f.write(payload)
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


# =============================================================================
# Population from the carbon API
# =============================================================================


def fetch_catalog(
    client: BoaviztaClient,
    provider: str,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> tuple[CandidateInstance, ...]:
    """Fetch every instance type of a provider with its carbon cost.

    Cost lookups run concurrently; an instance type whose lookup fails is
    skipped. Catalog order follows the provider listing.

    Raises:
        RemoteLookupError: If the instance type listing itself fails.
    """
    listing = client.list_instance_types(provider)
    names = list(listing)
    logger.info("Fetching carbon costs for {n} {provider} instance types", n=len(names), provider=provider)

    def lookup(name: str) -> CarbonCost | None:
        try:
            return client.instance_cost(provider, name)
        except RemoteLookupError as e:
            logger.warning("Failed to grab carbon cost for '{name}': {reason}", name=name, reason=e.reason)
            return None

    with ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="catalog") as pool:
        costs = list(pool.map(lookup, names))

    instances = tuple(
        candidate
        for name, cost in zip(names, costs, strict=True)
        if cost is not None and (candidate := _to_candidate(name, listing[name], cost)) is not None
    )
    logger.debug("{ok}/{total} instance types priced", ok=len(instances), total=len(names))
    return instances


def get_catalog(
    client: BoaviztaClient,
    provider: str,
    cache_dir: Path,
    max_workers: int = DEFAULT_MAX_WORKERS,
    *,
    refresh: bool = False,
) -> tuple[CandidateInstance, ...]:
    """Cached catalog for a provider, populated from the API on a miss.

    An empty fetch result is not cached, so a later run can retry. A cache
    write failure is logged and the fetched catalog is still returned.
    """
    path = catalog_path(cache_dir, provider)

    if not refresh and path.is_file():
        try:
            return load_catalog(path)
        except ConfigurationError as e:
            logger.warning("Ignoring catalog cache: {error}", error=e)

    instances = fetch_catalog(client, provider, max_workers)
    if instances:
        try:
            save_catalog(path, instances)
        except OSError as e:
            logger.warning("Could not cache instance types at {path}: {error}", path=path, error=e)
        else:
            logger.info("Instance types cached at {path}", path=path.resolve())
    return instances
