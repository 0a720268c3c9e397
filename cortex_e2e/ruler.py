"""
Client for the ruler's rule group configuration API.

Rule groups are exchanged as YAML documents under /api/prom/rules, scoped
by namespace and group name.
"""

import logging
from typing import Optional
from urllib.parse import quote

import httpx
import yaml

from .config import DEFAULT_TIMEOUT
from .exceptions import CortexDecodeError, UnexpectedStatusError
from .models import RuleGroup
from .transport import BaseAPIClient, response_text

logger = logging.getLogger(__name__)

RULES_PATH = "/api/prom/rules"

YAML_HEADERS = {"Content-Type": "application/yaml"}


def escape_segment(segment: str) -> str:
    """Percent-encode a namespace or group name for use as one path segment."""
    escaped = quote(segment, safe="")
    # "." and ".." would otherwise be collapsed as dot-segments.
    if escaped in (".", ".."):
        escaped = escaped.replace(".", "%2E")
    return escaped


class RulerClient(BaseAPIClient):
    """
    Client for the ruler endpoint.

    By default the write operations accept any response the ruler sends
    back and only log non-2xx statuses. With `strict_status=True` all
    operations raise UnexpectedStatusError on non-2xx responses.

    Example:
        >>> ruler = RulerClient(http_client, "http://ruler:8080")
        >>> ruler.set_rule_group(RuleGroup(name="group_1", rules=[...]), "test/ns")
        >>> groups = ruler.get_rule_groups()["test/ns"]
    """

    def __init__(
        self,
        http_client: httpx.Client,
        base_url: str,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        strict_status: bool = False,
    ):
        super().__init__(http_client, base_url, timeout)
        self.strict_status = strict_status

    def _check_status(self, response: httpx.Response, operation: str) -> None:
        if response.is_success:
            return
        if self.strict_status:
            raise UnexpectedStatusError(
                f"{operation} failed with status {response.status_code} "
                f"and error {response_text(response, 500)}",
                status_code=response.status_code,
                response_body=response_text(response),
                operation=operation,
            )
        logger.warning(
            f"{operation} returned HTTP {response.status_code}: {response_text(response, 500)}"
        )

    def get_rule_groups(self) -> dict[str, list[RuleGroup]]:
        """
        Get all rule groups of the tenant.

        Returns:
            Mapping of namespace to its rule groups, in the order returned

        Raises:
            CortexDecodeError: If the body is not a YAML mapping of rule groups
            UnexpectedStatusError: On non-2xx responses, in strict mode
            CortexConnectionError: If connection fails
            CortexTimeoutError: If request times out
        """
        response = self._request("GET", RULES_PATH, operation="get_rule_groups")
        self._check_status(response, "get_rule_groups")

        try:
            data = yaml.safe_load(response.content)
        except yaml.YAMLError as e:
            raise CortexDecodeError(
                f"Invalid YAML in rule groups response: {e}",
                status_code=response.status_code,
                response_body=response_text(response),
                operation="get_rule_groups",
            ) from e

        if data is None:
            return {}
        if not isinstance(data, dict) or not all(
            isinstance(groups, list) and all(isinstance(g, dict) for g in groups)
            for groups in data.values()
        ):
            raise CortexDecodeError(
                "Rule groups response must map namespaces to lists of rule groups",
                status_code=response.status_code,
                response_body=response_text(response),
                operation="get_rule_groups",
            )

        return {
            str(namespace): [RuleGroup.from_dict(group) for group in groups]
            for namespace, groups in data.items()
        }

    def set_rule_group(self, group: RuleGroup, namespace: str) -> None:
        """
        Create or replace a rule group in a namespace.

        Raises:
            UnexpectedStatusError: On non-2xx responses, in strict mode
            CortexConnectionError: If connection fails
            CortexTimeoutError: If request times out
        """
        response = self._request(
            "POST",
            f"{RULES_PATH}/{escape_segment(namespace)}",
            operation="set_rule_group",
            content=group.to_yaml().encode("utf-8"),
            headers=YAML_HEADERS,
        )
        self._check_status(response, "set_rule_group")

    def delete_rule_group(self, namespace: str, group_name: str) -> None:
        """
        Delete a rule group.

        Raises:
            UnexpectedStatusError: On non-2xx responses, in strict mode
            CortexConnectionError: If connection fails
            CortexTimeoutError: If request times out
        """
        response = self._request(
            "DELETE",
            f"{RULES_PATH}/{escape_segment(namespace)}/{escape_segment(group_name)}",
            operation="delete_rule_group",
            headers=YAML_HEADERS,
        )
        self._check_status(response, "delete_rule_group")
