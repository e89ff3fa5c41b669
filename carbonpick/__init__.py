"""carbonpick - lowest-carbon cloud instances for an on-premises cluster.

Example:

    from carbonpick import (
        BoaviztaClient, ResourceRequirement, get_catalog, load_settings,
        select_best_instance,
    )

    settings = load_settings()
    with BoaviztaClient.from_settings(settings) as client:
        catalog = get_catalog(client, "aws", settings.cache_dir)

    best = select_best_instance(ResourceRequirement(vcpu=16, memory=64), catalog)
"""

from carbonpick.boavizta import BoaviztaClient
from carbonpick.catalog import fetch_catalog, get_catalog, load_catalog, save_catalog
from carbonpick.config import Settings, load_settings, resolve_provider
from carbonpick.core.exceptions import (
    CarbonpickError,
    ConfigurationError,
    RemoteLookupError,
    ResourceNotFoundError,
)
from carbonpick.logging import LogConfig, setup_logging, teardown_logging
from carbonpick.report import (
    ClusterFootprint,
    Recommendation,
    assess_cluster,
    recommend,
)
from carbonpick.selection import (
    aggregate_cluster_cost,
    amortize_cost,
    is_eligible,
    lifetime_years,
    select_best_instance,
    select_instances,
)
from carbonpick.servers import build_cluster, read_cluster_file, resolve_server
from carbonpick.types import (
    CandidateInstance,
    CarbonCost,
    Cluster,
    ClusterCost,
    CpuSpec,
    RamSpec,
    ResourceRequirement,
    ServerSpec,
    UsageProfile,
)

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Types
    "CandidateInstance",
    "CarbonCost",
    "Cluster",
    "ClusterCost",
    "CpuSpec",
    "RamSpec",
    "ResourceRequirement",
    "ServerSpec",
    "UsageProfile",
    # Selection
    "aggregate_cluster_cost",
    "amortize_cost",
    "is_eligible",
    "lifetime_years",
    "select_best_instance",
    "select_instances",
    # Carbon API
    "BoaviztaClient",
    # Catalog
    "fetch_catalog",
    "get_catalog",
    "load_catalog",
    "save_catalog",
    # Cluster
    "build_cluster",
    "read_cluster_file",
    "resolve_server",
    # Reporting
    "ClusterFootprint",
    "Recommendation",
    "assess_cluster",
    "recommend",
    # Config
    "Settings",
    "load_settings",
    "resolve_provider",
    # Logging
    "LogConfig",
    "setup_logging",
    "teardown_logging",
    # Exceptions
    "CarbonpickError",
    "ConfigurationError",
    "RemoteLookupError",
    "ResourceNotFoundError",
]
