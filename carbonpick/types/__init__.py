"""Type definitions for carbonpick."""

from carbonpick.types.cluster import (
    Cluster,
    CpuSpec,
    RamSpec,
    ServerSpec,
    UsageProfile,
)
from carbonpick.types.spec import (
    CandidateInstance,
    CarbonCost,
    ClusterCost,
    ResourceRequirement,
)

__all__ = [
    # Selection inputs
    "CandidateInstance",
    "ResourceRequirement",
    # Costs
    "CarbonCost",
    "ClusterCost",
    # Cluster description
    "Cluster",
    "CpuSpec",
    "RamSpec",
    "ServerSpec",
    "UsageProfile",
]
