"""Client for a Boavizta-compatible carbon footprint API.

The client is built once per run and passed explicitly to whatever needs it:

    client = BoaviztaClient.from_settings(load_settings())
    cost = client.instance_cost("aws", "m5.xlarge")

Every lookup either returns parsed data or raises RemoteLookupError, so
callers can skip a failing item and keep going.
"""

from __future__ import annotations

from numbers import Real
from typing import TYPE_CHECKING, Any, Final

import httpx
from loguru import logger

from carbonpick.constants import CRITERIA_GWP, HOURS_PER_YEAR
from carbonpick.core.exceptions import RemoteLookupError
from carbonpick.infra.http import HttpClient, HttpError
from carbonpick.types import CarbonCost, ServerSpec, UsageProfile

if TYPE_CHECKING:
    from carbonpick.config import Settings

# =============================================================================
# Endpoints
# =============================================================================

SERVER_ARCHETYPES: Final[str] = "/v1/server/archetypes"
SERVER_ARCHETYPE_CONFIG: Final[str] = "/v1/server/archetype_config"
SERVER_IMPACT: Final[str] = "/v1/server/"
NAME_TO_CPU: Final[str] = "/v1/utils/name_to_cpu"
CLOUD_PROVIDERS: Final[str] = "/v1/cloud/instance/all_providers"
CLOUD_INSTANCE_CONFIG: Final[str] = "/v1/cloud/instance/instance_config"
CLOUD_INSTANCE_DATA: Final[str] = "/v1/cloud/instance/all_instance_data"
CLOUD_INSTANCE_IMPACT: Final[str] = "/v1/cloud/instance"


# =============================================================================
# Parsing helpers (pure functions)
# =============================================================================


def _dig(data: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _number(value: Any, subject: str, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise RemoteLookupError(subject, f"{what} is not a number: {value!r}")
    return float(value)


def parse_gwp(data: Any, subject: str) -> CarbonCost:
    """Extract embedded and use GWP values (kgCO2eq) from an impact response."""
    gwp = _dig(data, "impacts", CRITERIA_GWP)
    if not isinstance(gwp, dict):
        raise RemoteLookupError(subject, "response has no impacts.gwp section")
    return CarbonCost(
        manufacture=_number(_dig(gwp, "embedded", "value"), subject, "embedded impact"),
        usage=_number(_dig(gwp, "use", "value"), subject, "use impact"),
    )


# =============================================================================
# Client
# =============================================================================


class BoaviztaClient:
    def __init__(self, http: HttpClient) -> None:
        self._http = http
        self._log = logger.bind(component="boavizta")

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> BoaviztaClient:
        http = HttpClient(
            settings.require_endpoint(),
            timeout=settings.timeout,
            retries=settings.retries,
            transport=transport,
        )
        return cls(http)

    def _get(self, subject: str, path: str, params: dict[str, Any] | None = None) -> Any:
        try:
            return self._http.get(path, params=params).data
        except HttpError as e:
            raise RemoteLookupError(subject, str(e)) from e

    def _post(
        self, subject: str, path: str, body: dict[str, Any], params: dict[str, Any] | None = None
    ) -> Any:
        try:
            return self._http.post(path, json=body, params=params).data
        except HttpError as e:
            raise RemoteLookupError(subject, str(e)) from e

    # ─── On-premises servers ─────────────────────────────────────────

    def server_archetypes(self) -> Any:
        return self._get("server archetypes", SERVER_ARCHETYPES)

    def server_archetype_config(self, archetype: str) -> dict[str, Any]:
        subject = f"server archetype '{archetype}'"
        data = self._get(
            subject, SERVER_ARCHETYPE_CONFIG, {"archetype": archetype, "verbose": "false"}
        )
        if not isinstance(data, dict):
            raise RemoteLookupError(subject, "archetype config is not an object")
        return data

    def cpu_by_name(self, cpu_name: str) -> dict[str, Any]:
        subject = f"CPU '{cpu_name}'"
        data = self._get(subject, NAME_TO_CPU, {"cpu_name": cpu_name, "verbose": "false"})
        if not isinstance(data, dict):
            raise RemoteLookupError(subject, "CPU lookup is not an object")
        return data

    def server_cost(self, server: ServerSpec, usage: UsageProfile) -> CarbonCost:
        """Per-unit yearly carbon cost of one server under a usage profile."""
        subject = f"server '{server.label}'"
        body = {
            "configuration": server.to_configuration(),
            "usage": {
                "use_time_ratio": usage.use_time_ratio,
                "hours_life_time": HOURS_PER_YEAR,
                "usage_location": usage.usage_location,
            },
        }
        data = self._post(subject, SERVER_IMPACT, body, {"verbose": "false"})
        cost = parse_gwp(data, subject)
        self._log.debug(
            "{subject}: manufacture={m} usage={u} kgCO2eq",
            subject=subject, m=cost.manufacture, u=cost.usage,
        )
        return cost

    # ─── Cloud instances ─────────────────────────────────────────────

    def cloud_providers(self) -> Any:
        return self._get("cloud providers", CLOUD_PROVIDERS)

    def cloud_instance_config(self, archetype: str) -> Any:
        return self._get(
            f"cloud instance archetype '{archetype}'",
            CLOUD_INSTANCE_CONFIG,
            {"archetype": archetype},
        )

    def list_instance_types(self, provider: str) -> dict[str, dict[str, Any]]:
        """Raw instance data for a provider, keyed by instance type."""
        subject = f"{provider} instance types"
        data = _dig(self._get(subject, CLOUD_INSTANCE_DATA, {"provider": provider}), "data")
        if not isinstance(data, dict):
            raise RemoteLookupError(subject, "response has no 'data' mapping")
        return data

    def instance_cost(self, provider: str, instance_type: str) -> CarbonCost:
        """Yearly carbon cost of one cloud instance type."""
        subject = f"{provider} instance '{instance_type}'"
        data = self._get(
            subject,
            CLOUD_INSTANCE_IMPACT,
            {
                "provider": provider,
                "instance_type": instance_type,
                "verbose": "false",
                "criteria": CRITERIA_GWP,
                "duration": HOURS_PER_YEAR,
            },
        )
        return parse_gwp(data, subject)

    # ─── Lifecycle ───────────────────────────────────────────────────

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> BoaviztaClient:
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()
