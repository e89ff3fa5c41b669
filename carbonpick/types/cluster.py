"""Server, usage profile and cluster descriptions."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from carbonpick.constants import (
    DEFAULT_HOURS_LIFE_TIME,
    DEFAULT_USAGE_LOCATION,
    DEFAULT_USE_TIME_RATIO,
)
from carbonpick.core.exceptions import ConfigurationError
from carbonpick.types.spec import ResourceRequirement

__all__ = [
    "Cluster",
    "CpuSpec",
    "RamSpec",
    "ServerSpec",
    "UsageProfile",
]


@dataclass(frozen=True, slots=True)
class CpuSpec:
    units: int | None = None
    core_units: int | None = None
    tdp: float | None = None
    name: str | None = None
    family: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload = {
            "units": self.units,
            "core_units": self.core_units,
            "tdp": self.tdp,
            "name": self.name,
            "family": self.family,
        }
        return {k: v for k, v in payload.items() if v is not None}


@dataclass(frozen=True, slots=True)
class RamSpec:
    units: int
    capacity: int  # GB per unit

    @property
    def total(self) -> int:
        return self.units * self.capacity


@dataclass(frozen=True, slots=True)
class ServerSpec:
    """A fully resolved on-premises server description.

    count is the number of identical replicas in the cluster.
    name is the archetype it was resolved from, if any.
    """

    cpu: CpuSpec
    ram: tuple[RamSpec, ...]
    gpu_units: int = 0
    count: int = 1
    name: str | None = None

    def __post_init__(self) -> None:
        if self.count < 1:
            raise ConfigurationError(f"Server count must be >= 1, got {self.count}")
        if not self.ram:
            raise ConfigurationError(f"Server {self.label!r} has no RAM entries")

    @property
    def requirement(self) -> ResourceRequirement:
        """Resources an instance must offer to replace one of these servers."""
        return ResourceRequirement(
            vcpu=(self.cpu.core_units or 1) * (self.cpu.units or 1),
            memory=sum(r.total for r in self.ram),
            gpu=self.gpu_units,
        )

    @property
    def label(self) -> str:
        if self.name:
            return self.name
        vcpu = (self.cpu.core_units or 1) * (self.cpu.units or 1)
        memory = sum(r.total for r in self.ram)
        return f"{vcpu} vCPU / {memory} GB"

    def to_configuration(self) -> dict[str, Any]:
        """Server configuration body for the carbon API.

        The API expects RAM as a list even for a single entry.
        """
        config: dict[str, Any] = {
            "cpu": self.cpu.to_payload(),
            "ram": [{"units": r.units, "capacity": r.capacity} for r in self.ram],
        }
        if self.gpu_units:
            config["gpu"] = {"units": self.gpu_units}
        return config


@dataclass(frozen=True, slots=True)
class UsageProfile:
    use_time_ratio: float = DEFAULT_USE_TIME_RATIO
    usage_location: str = DEFAULT_USAGE_LOCATION
    hours_life_time: int = DEFAULT_HOURS_LIFE_TIME

    def __post_init__(self) -> None:
        if not 0 <= self.use_time_ratio <= 1:
            raise ConfigurationError(
                f"use_time_ratio must be within [0, 1], got {self.use_time_ratio}"
            )
        if self.hours_life_time <= 0:
            raise ConfigurationError(
                f"hours_life_time must be > 0, got {self.hours_life_time}"
            )


@dataclass(frozen=True, slots=True)
class Cluster:
    servers: tuple[ServerSpec, ...]
    usage: UsageProfile = field(default_factory=UsageProfile)

    @property
    def entries(self) -> tuple[tuple[ServerSpec, int], ...]:
        return tuple((s, s.count) for s in self.servers)

    def with_usage(self, **changes: Any) -> Cluster:
        """New cluster with some usage profile fields overridden."""
        return replace(self, usage=replace(self.usage, **changes))
