"""
Client for the Cortex alertmanager's per-tenant configuration API.

Reads go through the status endpoint, which embeds the active configuration as
a YAML string inside a JSON envelope. Writes and deletes go through the
configuration API, which takes a YAML document holding the configuration and
its template files.

A 404 from the alertmanager means the tenant has no configuration. That is
returned as a value (None or ConfigOutcome.NOT_FOUND), not raised.
"""

import json
import logging
from typing import Optional

import httpx
import yaml

from .exceptions import CortexDecodeError, UnexpectedStatusError
from .models import AlertmanagerConfig, AlertmanagerUserConfig, ConfigOutcome
from .transport import BaseAPIClient, response_text

logger = logging.getLogger(__name__)

STATUS_PATH = "/api/prom/api/v1/status"
ALERTS_PATH = "/api/v1/alerts"


class AlertmanagerClient(BaseAPIClient):
    """
    Client for the alertmanager endpoint.

    Unlike the other role clients this one imposes no timeout of its own:
    each call takes the caller's `timeout` (None waits indefinitely).

    Example:
        >>> am = AlertmanagerClient(http_client, "http://alertmanager:8080")
        >>> am.set_config("route:\\n  receiver: 'default'\\n", timeout=30)
        >>> am.get_config(timeout=30).route["receiver"]
        'default'
    """

    def __init__(self, http_client: httpx.Client, base_url: str):
        super().__init__(http_client, base_url, timeout=None)

    def _unexpected_status(self, response: httpx.Response, operation: str, action: str) -> UnexpectedStatusError:
        return UnexpectedStatusError(
            f"{action} config failed with status {response.status_code} "
            f"and error {response_text(response, 500)}",
            status_code=response.status_code,
            response_body=response_text(response),
            operation=operation,
        )

    def get_config(self, timeout: Optional[float] = None) -> Optional[AlertmanagerConfig]:
        """
        Get the tenant's active alertmanager configuration.

        Args:
            timeout: Deadline in seconds for the call, None for no limit

        Returns:
            The parsed configuration, or None if the tenant has none

        Raises:
            CortexDecodeError: If the status envelope or embedded YAML is invalid
            CortexConnectionError: If connection fails
            CortexTimeoutError: If request times out
        """
        response = self._request("GET", STATUS_PATH, operation="get_alertmanager_config", timeout=timeout)

        if response.status_code == 404:
            logger.debug("No alertmanager configuration for tenant")
            return None

        try:
            status = json.loads(response.content)
            config_yaml = status["data"]["configYAML"]
            if not isinstance(config_yaml, str):
                raise TypeError(f"configYAML must be a string, got {type(config_yaml).__name__}")
        except (ValueError, KeyError, TypeError) as e:
            raise CortexDecodeError(
                f"Invalid alertmanager status response (HTTP {response.status_code}): {e}",
                status_code=response.status_code,
                response_body=response_text(response),
                operation="get_alertmanager_config",
            ) from e

        try:
            return AlertmanagerConfig.from_yaml(config_yaml)
        except (yaml.YAMLError, ValueError, TypeError) as e:
            raise CortexDecodeError(
                f"Invalid alertmanager configuration: {e}",
                status_code=response.status_code,
                response_body=response_text(response),
                operation="get_alertmanager_config",
            ) from e

    def set_config(
        self,
        config: str,
        templates: Optional[dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> ConfigOutcome:
        """
        Upload the tenant's alertmanager configuration.

        Args:
            config: Alertmanager configuration YAML
            templates: Mapping of template file name to content
            timeout: Deadline in seconds for the call, None for no limit

        Returns:
            ConfigOutcome.OK on 201, ConfigOutcome.NOT_FOUND on 404

        Raises:
            UnexpectedStatusError: On any other status
            CortexConnectionError: If connection fails
            CortexTimeoutError: If request times out
        """
        user_config = AlertmanagerUserConfig(
            alertmanager_config=config,
            template_files=dict(templates or {}),
        )

        response = self._request(
            "POST",
            ALERTS_PATH,
            operation="set_alertmanager_config",
            content=user_config.to_yaml().encode("utf-8"),
            timeout=timeout,
        )

        if response.status_code == 404:
            return ConfigOutcome.NOT_FOUND
        if response.status_code != 201:
            raise self._unexpected_status(response, "set_alertmanager_config", "setting")
        return ConfigOutcome.OK

    def delete_config(self, timeout: Optional[float] = None) -> ConfigOutcome:
        """
        Delete the tenant's alertmanager configuration.

        Args:
            timeout: Deadline in seconds for the call, None for no limit

        Returns:
            ConfigOutcome.OK on 200, ConfigOutcome.NOT_FOUND on 404

        Raises:
            UnexpectedStatusError: On any other status
            CortexConnectionError: If connection fails
            CortexTimeoutError: If request times out
        """
        response = self._request("DELETE", ALERTS_PATH, operation="delete_alertmanager_config", timeout=timeout)

        if response.status_code == 404:
            return ConfigOutcome.NOT_FOUND
        if response.status_code != 200:
            raise self._unexpected_status(response, "delete_alertmanager_config", "deleting")
        return ConfigOutcome.OK
