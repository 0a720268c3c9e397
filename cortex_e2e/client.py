"""
Cortex client used to interact with a Cortex cluster from tests.

`CortexClient` is the single entry point: it owns one tenant-scoped HTTP
client and routes each call to the distributor, querier, ruler or
alertmanager.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional, Union

import httpx

from .alertmanager import AlertmanagerClient
from .config import ClientConfig
from .exceptions import AlertmanagerNotConfiguredError
from .models import AlertmanagerConfig, ConfigOutcome, QueryResult, RuleGroup, TimeSeries
from .querier import QuerierClient
from .remote_write import DistributorClient
from .ruler import RulerClient
from .transport import build_http_client

logger = logging.getLogger(__name__)


class CortexClient:
    """
    Client for one tenant of one Cortex cluster.

    Push, query and ruler calls are bounded by `config.timeout`. Alertmanager
    calls take a per-call timeout instead.

    Example:
        >>> config = ClientConfig(
        ...     distributor_address="distributor:8080",
        ...     querier_address="querier:8080",
        ...     ruler_address="ruler:8080",
        ...     org_id="user-1",
        ... )
        >>> with CortexClient(config) as client:
        ...     client.push([series])
        ...     result = client.query("series_1")
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            config: Endpoint addresses, tenant and timeout
            transport: Underlying HTTP transport (defaults to a pooled HTTP transport)
        """
        self.config = config
        self.http_client = build_http_client(config.org_id, transport, config.timeout)

        self.distributor = DistributorClient(
            self.http_client, config.url(config.distributor_address), config.timeout,
        )
        self.querier = QuerierClient(
            self.http_client, config.url(config.querier_address), config.timeout,
        )
        self.ruler = RulerClient(
            self.http_client,
            config.url(config.ruler_address),
            config.timeout,
            strict_status=config.strict_status,
        )
        self._alertmanager: Optional[AlertmanagerClient] = None
        if config.has_alertmanager:
            self._alertmanager = AlertmanagerClient(
                self.http_client, config.url(config.alertmanager_address),
            )

        logger.debug(f"Created Cortex client for tenant {config.org_id}")

    @classmethod
    def from_addresses(
        cls,
        distributor_address: str,
        querier_address: str,
        alertmanager_address: str,
        ruler_address: str,
        org_id: str,
    ) -> "CortexClient":
        """Create a client from endpoint addresses, using default settings otherwise."""
        return cls(ClientConfig(
            distributor_address=distributor_address,
            querier_address=querier_address,
            ruler_address=ruler_address,
            org_id=org_id,
            alertmanager_address=alertmanager_address,
        ))

    def close(self) -> None:
        """Close the HTTP client and its connections."""
        self.http_client.close()

    def __enter__(self) -> "CortexClient":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()

    @property
    def alertmanager(self) -> AlertmanagerClient:
        """
        The alertmanager client.

        Raises:
            AlertmanagerNotConfiguredError: If no alertmanager address is configured
        """
        if self._alertmanager is None:
            raise AlertmanagerNotConfiguredError(
                "No alertmanager address configured for this client"
            )
        return self._alertmanager

    # =========================================================================
    # Distributor
    # =========================================================================

    def push(self, timeseries: Iterable[TimeSeries]) -> httpx.Response:
        """Push time series to the distributor and return its raw response."""
        return self.distributor.push(timeseries)

    # =========================================================================
    # Querier
    # =========================================================================

    def query(self, query: str, ts: Optional[Union[datetime, float]] = None) -> QueryResult:
        """Run an instant query."""
        return self.querier.query(query, ts)

    def query_raw(self, query: str) -> tuple[httpx.Response, bytes]:
        """Run an instant query and return the undecoded response and body."""
        return self.querier.query_raw(query)

    def label_values(self, label: str) -> list[str]:
        """Get label values. Cortex doesn't support a start/end time here."""
        return self.querier.label_values(label)

    def label_names(self) -> list[str]:
        """Get label names. Cortex doesn't support a start/end time here."""
        return self.querier.label_names()

    # =========================================================================
    # Ruler
    # =========================================================================

    def get_rule_groups(self) -> dict[str, list[RuleGroup]]:
        """Get all rule groups of the tenant, keyed by namespace."""
        return self.ruler.get_rule_groups()

    def set_rule_group(self, rule_group: RuleGroup, namespace: str) -> None:
        """Create or replace a rule group in a namespace."""
        self.ruler.set_rule_group(rule_group, namespace)

    def delete_rule_group(self, namespace: str, group_name: str) -> None:
        """Delete a rule group."""
        self.ruler.delete_rule_group(namespace, group_name)

    # =========================================================================
    # Alertmanager
    # =========================================================================

    def get_alertmanager_config(self, timeout: Optional[float] = None) -> Optional[AlertmanagerConfig]:
        """Get the tenant's alertmanager configuration, or None if it has none."""
        return self.alertmanager.get_config(timeout=timeout)

    def set_alertmanager_config(
        self,
        config: str,
        templates: Optional[dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> ConfigOutcome:
        """Upload the tenant's alertmanager configuration."""
        return self.alertmanager.set_config(config, templates, timeout=timeout)

    def delete_alertmanager_config(self, timeout: Optional[float] = None) -> ConfigOutcome:
        """Delete the tenant's alertmanager configuration."""
        return self.alertmanager.delete_config(timeout=timeout)
