"""Cluster footprint assessment, recommendations and their rendering."""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from loguru import logger
from rich.console import Console
from rich.table import Table
from rich.text import Text

from carbonpick.boavizta import BoaviztaClient
from carbonpick.constants import DEFAULT_MAX_WORKERS
from carbonpick.core.exceptions import RemoteLookupError
from carbonpick.selection import (
    aggregate_cluster_cost,
    amortize_cost,
    lifetime_years,
    select_instances,
)
from carbonpick.types import (
    CandidateInstance,
    CarbonCost,
    Cluster,
    ClusterCost,
    ResourceRequirement,
    ServerSpec,
    UsageProfile,
)

__all__ = [
    "ClusterFootprint",
    "Recommendation",
    "assess_cluster",
    "fetch_server_costs",
    "recommend",
    "render_footprint",
    "render_recommendations",
]

UNIT = "kgCO2eq"


# =============================================================================
# Models
# =============================================================================


@dataclass(frozen=True, slots=True)
class ClusterFootprint:
    usage: UsageProfile
    cost: ClusterCost

    @property
    def years(self) -> int:
        return lifetime_years(self.usage.hours_life_time)

    @property
    def amortized(self) -> float:
        """Total cost per year of lifetime."""
        return amortize_cost(self.cost.total, self.usage.hours_life_time)


@dataclass(frozen=True, slots=True)
class Recommendation:
    """Ranked instance types able to replace one server entry.

    An empty options tuple means nothing in the catalog fits.
    """

    server: ServerSpec
    options: tuple[CandidateInstance, ...]

    @property
    def requirement(self) -> ResourceRequirement:
        return self.server.requirement

    @property
    def fits(self) -> bool:
        return bool(self.options)

    def yearly_cost(self, instance: CandidateInstance) -> float:
        """Carbon cost of running `count` of this instance for a year."""
        return instance.total_cost * self.server.count


# =============================================================================
# Assessment
# =============================================================================


def fetch_server_costs(
    client: BoaviztaClient,
    cluster: Cluster,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> dict[ServerSpec, CarbonCost | None]:
    """Per-unit cost of each distinct server, None where the lookup failed."""
    distinct = list(dict.fromkeys(cluster.servers))

    def lookup(server: ServerSpec) -> CarbonCost | None:
        try:
            return client.server_cost(server, cluster.usage)
        except RemoteLookupError as e:
            logger.warning("Skipping server '{label}': {reason}", label=server.label, reason=e.reason)
            return None

    with ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="servers") as pool:
        costs = list(pool.map(lookup, distinct))
    return dict(zip(distinct, costs, strict=True))


def assess_cluster(
    client: BoaviztaClient,
    cluster: Cluster,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> ClusterFootprint:
    costs = fetch_server_costs(client, cluster, max_workers)
    return ClusterFootprint(
        usage=cluster.usage,
        cost=aggregate_cluster_cost(cluster, costs.get),
    )


def recommend(
    cluster: Cluster,
    catalog: Sequence[CandidateInstance],
    top: int = 1,
) -> tuple[Recommendation, ...]:
    return tuple(
        Recommendation(server=server, options=select_instances(server.requirement, catalog, k=top))
        for server in cluster.servers
    )


# =============================================================================
# Rendering
# =============================================================================


def render_footprint(console: Console, title: str, footprint: ClusterFootprint) -> None:
    usage = footprint.usage
    cost = footprint.cost

    console.print(Text(title, style="bold"))
    console.print(
        f"Location {usage.usage_location}, use ratio {usage.use_time_ratio:g}, "
        f"lifetime {usage.hours_life_time} h ({footprint.years} y)",
        style="dim",
    )
    console.print(f"Cluster manufacture cost: {cost.manufacture:.2f} {UNIT}")
    console.print(f"Cluster usage cost: {cost.usage:.2f} {UNIT}")
    console.print()
    console.print(f"Total cost: {cost.total:.2f} {UNIT}")
    console.print(f"Amortized cost: {footprint.amortized:.2f} {UNIT} per year")
    if cost.skipped:
        console.print(
            f"Incomplete: no carbon data for {', '.join(cost.skipped)}",
            style="yellow",
        )


def _describe(requirement: ResourceRequirement) -> str:
    return f"{requirement.vcpu} vCPU, {requirement.memory} GB, {requirement.gpu} GPU"


def render_recommendations(
    console: Console,
    provider_name: str,
    recommendations: Sequence[Recommendation],
) -> None:
    console.print(Text(f"Best options on {provider_name}", style="bold"))

    for rec in recommendations:
        label = f"{rec.server.count} x {rec.server.label} ({_describe(rec.requirement)})"
        if not rec.fits:
            console.print(f"{label}: no {provider_name} instance type fits", style="yellow")
            continue

        table = Table(title=label, title_justify="left")
        table.add_column("Instance")
        table.add_column("vCPUs", justify="right")
        table.add_column("GPUs", justify="right")
        table.add_column("Memory", justify="right")
        table.add_column(f"Manufacture ({UNIT})", justify="right")
        table.add_column(f"Usage ({UNIT})", justify="right")
        table.add_column(f"Yearly for {rec.server.count} ({UNIT})", justify="right")

        for instance in rec.options:
            table.add_row(
                instance.name,
                str(instance.vcpu),
                str(instance.gpu),
                str(instance.memory),
                f"{instance.manufacture_cost:.2f}",
                f"{instance.usage_cost:.2f}",
                f"{rec.yearly_cost(instance):.2f}",
            )
        console.print(table)
