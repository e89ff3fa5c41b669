"""Instance specifications, resource requirements and carbon costs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "CandidateInstance",
    "CarbonCost",
    "ClusterCost",
    "ResourceRequirement",
]


@dataclass(frozen=True, slots=True)
class ResourceRequirement:
    """Minimum resources a workload needs from an instance type.

    Memory uses the same unit as the catalog (GB).
    """

    vcpu: int = 0
    memory: int = 0
    gpu: int = 0

    def __post_init__(self) -> None:
        for dimension in ("vcpu", "memory", "gpu"):
            if getattr(self, dimension) < 0:
                raise ValueError(f"{dimension} must be >= 0, got {getattr(self, dimension)}")

    def within(self, other: ResourceRequirement) -> bool:
        """True if every dimension is <= the corresponding one in other."""
        return self.vcpu <= other.vcpu and self.memory <= other.memory and self.gpu <= other.gpu


@dataclass(frozen=True, slots=True)
class CandidateInstance:
    """A cloud instance type with its precomputed carbon costs.

    Costs are in kgCO2eq: manufacture_cost is the embedded emission,
    usage_cost is the emission for the declared usage period (one year).
    """

    name: str
    vcpu: int
    memory: int
    gpu: int
    manufacture_cost: float
    usage_cost: float

    def __post_init__(self) -> None:
        if self.manufacture_cost < 0 or self.usage_cost < 0:
            raise ValueError(
                f"Carbon costs must be non-negative for '{self.name}': "
                f"manufacture={self.manufacture_cost}, usage={self.usage_cost}"
            )

    @property
    def total_cost(self) -> float:
        return self.manufacture_cost + self.usage_cost

    def to_record(self) -> dict[str, Any]:
        """Row written to the catalog cache file."""
        return {
            "name": self.name,
            "vcpu": self.vcpu,
            "memory": self.memory,
            "gpu": self.gpu,
            "manu_cost": self.manufacture_cost,
            "usage_cost": self.usage_cost,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> CandidateInstance | None:
        """Build from a cache row. Rows without cost data yield None."""
        if record.get("manu_cost") is None:
            return None
        return cls(
            name=str(record["name"]),
            vcpu=int(record.get("vcpu") or 0),
            memory=int(record.get("memory") or 0),
            gpu=int(record.get("gpu") or 0),
            manufacture_cost=float(record["manu_cost"]),
            usage_cost=float(record.get("usage_cost") or 0.0),
        )


@dataclass(frozen=True, slots=True)
class CarbonCost:
    """Per-unit carbon cost split into manufacture and usage (kgCO2eq)."""

    manufacture: float
    usage: float

    @property
    def total(self) -> float:
        return self.manufacture + self.usage

    def scaled(self, count: int) -> CarbonCost:
        return CarbonCost(manufacture=self.manufacture * count, usage=self.usage * count)


@dataclass(frozen=True, slots=True)
class ClusterCost:
    """Cluster-wide carbon totals.

    skipped lists the servers whose cost could not be looked up; they
    contribute nothing to the totals.
    """

    manufacture: float = 0.0
    usage: float = 0.0
    skipped: tuple[str, ...] = field(default_factory=tuple)

    @property
    def total(self) -> float:
        return self.manufacture + self.usage

    @property
    def complete(self) -> bool:
        return not self.skipped
