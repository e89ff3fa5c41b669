"""Command line interface.

    carbonpick report --provider aws --cluster cluster.yaml --top 3
    carbonpick archetypes
    carbonpick archetype-config --archetype dellR740
    carbonpick providers
    carbonpick instance-config --archetype m5.xlarge

Exit status is 0 on success (including partial reports with skipped items),
1 when a lookup the command cannot do without fails, 2 on configuration
errors or missing input files.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Callable, Sequence
from dataclasses import replace
from typing import Any

import httpx
from loguru import logger
from rich.console import Console

from carbonpick.boavizta import BoaviztaClient
from carbonpick.catalog import get_catalog
from carbonpick.config import Settings, load_settings, resolve_provider
from carbonpick.constants import COMPARE_HOURS_LIFE_TIME, COMPARE_USAGE_LOCATION
from carbonpick.core.exceptions import (
    ConfigurationError,
    RemoteLookupError,
    ResourceNotFoundError,
)
from carbonpick.logging import LogConfig, setup_logging, teardown_logging
from carbonpick.report import (
    assess_cluster,
    recommend,
    render_footprint,
    render_recommendations,
)
from carbonpick.selection import lifetime_years
from carbonpick.servers import build_cluster, read_cluster_file

type Handler = Callable[[argparse.Namespace, Settings, BoaviztaClient, Console], int]

EXIT_OK = 0
EXIT_LOOKUP_FAILED = 1
EXIT_CONFIG = 2


def _positive_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid integer value '{raw}'") from exc
    if value < 1:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got {value}")
    return value


# =============================================================================
# Commands
# =============================================================================


def _report(args: argparse.Namespace, settings: Settings, client: BoaviztaClient, console: Console) -> int:
    provider_name = resolve_provider(settings, args.provider)
    cluster = build_cluster(client, read_cluster_file(args.cluster))

    render_footprint(console, "On prem usage", assess_cluster(client, cluster, settings.max_workers))
    console.rule()

    if not args.no_compare:
        variant = cluster.with_usage(
            usage_location=args.compare_location,
            hours_life_time=args.compare_hours,
        )
        years = lifetime_years(args.compare_hours)
        render_footprint(
            console,
            f"The same system, but in {args.compare_location} over {years} years",
            assess_cluster(client, variant, settings.max_workers),
        )
        console.rule()

    try:
        catalog = get_catalog(
            client, args.provider.lower(), settings.cache_dir, settings.max_workers, refresh=args.refresh
        )
    except RemoteLookupError as e:
        logger.error("Could not fetch the {provider} catalog: {error}", provider=provider_name, error=e)
        console.print(f"Could not fetch instance types for {provider_name}: {e.reason}", style="red")
        return EXIT_LOOKUP_FAILED

    render_recommendations(console, provider_name, recommend(cluster, catalog, top=args.top))
    return EXIT_OK


def _listing(fetch: Callable[[BoaviztaClient, argparse.Namespace], Any]) -> Handler:
    def handler(args: argparse.Namespace, _: Settings, client: BoaviztaClient, console: Console) -> int:
        try:
            data = fetch(client, args)
        except RemoteLookupError as e:
            console.print(str(e), style="red")
            return EXIT_LOOKUP_FAILED
        console.print_json(data=data)
        return EXIT_OK

    return handler


# =============================================================================
# Parser
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="carbonpick",
        description="Estimate a cluster's carbon footprint and find the lowest-carbon cloud instances for it",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log lookups and skipped items in detail")
    parser.add_argument("--log-file", type=str, default=None, help="Also write a DEBUG log to this file")
    parser.add_argument(
        "--endpoint", type=str, default=None,
        help="Carbon API base URL (overrides BOAVIZTA_ENDPOINT_URL and config files)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    report = sub.add_parser("report", help="Cluster footprint and best cloud instance types")
    report.add_argument("--provider", type=str, default=None, help="Cloud provider key (e.g. aws, alces)")
    report.add_argument("--cluster", type=str, default=None, help="Cluster YAML file")
    report.add_argument("--top", type=_positive_int, default=1, help="Options to list per server (default 1)")
    report.add_argument("--refresh", action="store_true", help="Ignore the cached instance catalog")
    report.add_argument("--compare-location", type=str, default=COMPARE_USAGE_LOCATION)
    report.add_argument("--compare-hours", type=_positive_int, default=COMPARE_HOURS_LIFE_TIME)
    report.add_argument("--no-compare", action="store_true", help="Skip the comparison scenario")
    report.set_defaults(handler=_report)

    sub.add_parser("archetypes", help="List server archetypes").set_defaults(
        handler=_listing(lambda c, _: c.server_archetypes())
    )

    archetype_config = sub.add_parser("archetype-config", help="Show a server archetype")
    archetype_config.add_argument("--archetype", type=str, required=True)
    archetype_config.set_defaults(handler=_listing(lambda c, a: c.server_archetype_config(a.archetype)))

    sub.add_parser("providers", help="List cloud providers").set_defaults(
        handler=_listing(lambda c, _: c.cloud_providers())
    )

    instance_config = sub.add_parser("instance-config", help="Show a cloud instance configuration")
    instance_config.add_argument("--archetype", type=str, required=True)
    instance_config.set_defaults(handler=_listing(lambda c, a: c.cloud_instance_config(a.archetype)))

    return parser


def _check_report_args(args: argparse.Namespace, settings: Settings) -> None:
    """Fail on missing mandatory input before anything is printed."""
    resolve_provider(settings, args.provider)
    if not args.cluster:
        raise ConfigurationError("No cluster given")
    read_cluster_file(args.cluster)


def main(
    argv: Sequence[str] | None = None,
    *,
    settings: Settings | None = None,
    console: Console | None = None,
    transport: httpx.BaseTransport | None = None,
) -> int:
    args = build_parser().parse_args(argv)
    console = console or Console()
    errors = Console(stderr=True)

    logger.remove()
    handlers = setup_logging(
        LogConfig(level="DEBUG" if args.verbose else "WARNING", file=args.log_file)
    )
    try:
        settings = settings or load_settings()
        if args.endpoint:
            settings = replace(settings, endpoint_url=args.endpoint)
        if args.command == "report":
            _check_report_args(args, settings)

        with BoaviztaClient.from_settings(settings, transport=transport) as client:
            return args.handler(args, settings, client, console)
    except (ConfigurationError, ResourceNotFoundError) as e:
        errors.print(f"Error: {e}", style="red")
        return EXIT_CONFIG
    finally:
        teardown_logging(handlers)


def cli() -> None:
    sys.exit(main())
