"""Instance selection and carbon cost amortization.

Pure functions, no I/O. Selection filters candidates that cover a resource
requirement on every dimension and ranks them by combined carbon cost
(manufacture + usage). Ties keep input order.

Example:
    from carbonpick.selection import select_best_instance
    from carbonpick.types import ResourceRequirement

    best = select_best_instance(ResourceRequirement(vcpu=4, memory=16), catalog)
    if best is None:
        ...  # nothing in the catalog fits, not an error
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from functools import reduce

from carbonpick.constants import HOURS_PER_YEAR
from carbonpick.types import (
    CandidateInstance,
    CarbonCost,
    Cluster,
    ClusterCost,
    ResourceRequirement,
    ServerSpec,
)

type CostLookup = Callable[[ServerSpec], CarbonCost | None]
"""Per-unit cost of a server, or None when the lookup failed."""

__all__ = [
    "CostLookup",
    "aggregate_cluster_cost",
    "amortize_cost",
    "is_eligible",
    "lifetime_years",
    "select_best_instance",
    "select_instances",
]


def is_eligible(candidate: CandidateInstance, requirement: ResourceRequirement) -> bool:
    """True if the candidate meets or exceeds the requirement on all dimensions."""
    return (
        candidate.vcpu >= requirement.vcpu
        and candidate.memory >= requirement.memory
        and candidate.gpu >= requirement.gpu
    )


def select_instances(
    requirement: ResourceRequirement,
    candidates: Iterable[CandidateInstance],
    k: int = 1,
) -> tuple[CandidateInstance, ...]:
    """Select up to k eligible candidates, lowest combined carbon cost first.

    Args:
        requirement: Minimum vCPU, memory and GPU.
        candidates: Catalog to choose from, in catalog order.
        k: Maximum number of candidates to return.

    Returns:
        Ranked candidates. Empty when nothing is eligible. Candidates with
        equal cost keep their input order.

    Raises:
        ValueError: If k < 1.
    """
    if k < 1:
        raise ValueError(f"k must be >= 1, got {k}")

    eligible = [c for c in candidates if is_eligible(c, requirement)]
    # sorted() is stable, so equal costs stay in catalog order
    return tuple(sorted(eligible, key=lambda c: c.total_cost)[:k])


def select_best_instance(
    requirement: ResourceRequirement,
    candidates: Iterable[CandidateInstance],
) -> CandidateInstance | None:
    """Cheapest-carbon eligible candidate, or None if nothing fits."""
    best = select_instances(requirement, candidates, k=1)
    return best[0] if best else None


def lifetime_years(hours_life_time: int) -> int:
    """Lifetime in whole years, rounded up, at least 1.

    Raises:
        ValueError: If hours_life_time is not positive.
    """
    if hours_life_time <= 0:
        raise ValueError(f"hours_life_time must be > 0, got {hours_life_time}")
    return max(1, math.ceil(hours_life_time / HOURS_PER_YEAR))


def amortize_cost(total_cost: float, hours_life_time: int) -> float:
    """Spread a total carbon cost (kgCO2eq) over the lifetime in years."""
    return total_cost / lifetime_years(hours_life_time)


def aggregate_cluster_cost(cluster: Cluster, cost_fn: CostLookup) -> ClusterCost:
    """Sum count-weighted per-server costs across the cluster.

    cost_fn is called once per server entry. A None result marks the server
    as skipped: it is recorded in ClusterCost.skipped and adds nothing.
    """

    def accumulate(acc: ClusterCost, entry: tuple[ServerSpec, int]) -> ClusterCost:
        server, count = entry
        unit = cost_fn(server)
        if unit is None:
            return ClusterCost(acc.manufacture, acc.usage, (*acc.skipped, server.label))
        cost = unit.scaled(count)
        return ClusterCost(
            manufacture=acc.manufacture + cost.manufacture,
            usage=acc.usage + cost.usage,
            skipped=acc.skipped,
        )

    return reduce(accumulate, cluster.entries, ClusterCost())
