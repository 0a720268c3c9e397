"""
Client for the querier's Prometheus-compatible HTTP API.

Provides instant queries, label discovery, and a raw query escape hatch for
tests that assert on the exact response body.
"""

import json
import logging
from datetime import datetime
from typing import Any, Optional, Union
from urllib.parse import quote, quote_plus

import httpx

from .exceptions import CortexDecodeError, CortexQueryError, UnexpectedStatusError
from .models import QueryResult, decode_query_result
from .transport import BaseAPIClient, response_text

logger = logging.getLogger(__name__)

API_PREFIX = "/api/prom/api/v1"


def format_time(ts: Union[datetime, float, int]) -> str:
    """Format a timestamp as Unix seconds for the `time` query parameter."""
    if isinstance(ts, datetime):
        ts = ts.timestamp()
    ts = float(ts)
    return str(int(ts)) if ts.is_integer() else repr(ts)


class QuerierClient(BaseAPIClient):
    """
    Client for the querier endpoint.

    Label discovery does not accept a time range: Cortex does not support
    start/end on those endpoints, so the client offers no way to pass them.

    Example:
        >>> querier = QuerierClient(http_client, "http://querier:8080")
        >>> result = querier.query("series_1")
        >>> assert isinstance(result, Vector)
    """

    def _decode_envelope(self, response: httpx.Response, operation: str) -> Any:
        """
        Decode a Prometheus API response envelope and return its `data` member.

        Raises:
            CortexDecodeError: If the body is not a JSON envelope
            CortexQueryError: If the envelope reports an error
            UnexpectedStatusError: If a success envelope comes with a non-2xx status
        """
        try:
            envelope = json.loads(response.content)
        except ValueError as e:
            raise CortexDecodeError(
                f"Invalid JSON response for {operation} (HTTP {response.status_code}): {e}",
                status_code=response.status_code,
                response_body=response_text(response),
                operation=operation,
            ) from e

        if not isinstance(envelope, dict) or "status" not in envelope:
            raise CortexDecodeError(
                f"Missing status in response for {operation} (HTTP {response.status_code})",
                status_code=response.status_code,
                response_body=response_text(response),
                operation=operation,
            )

        for warning in envelope.get("warnings") or []:
            logger.warning(f"{operation}: {warning}")

        if envelope["status"] != "success":
            raise CortexQueryError(
                f"{operation} failed: {envelope.get('error', 'Unknown error')}",
                error_type=envelope.get("errorType"),
                status_code=response.status_code,
                response_body=response_text(response),
                operation=operation,
            )

        if not response.is_success:
            raise UnexpectedStatusError(
                f"{operation} returned HTTP {response.status_code}",
                status_code=response.status_code,
                response_body=response_text(response),
                operation=operation,
            )

        return envelope.get("data")

    def _decode_string_list(self, response: httpx.Response, operation: str) -> list[str]:
        data = self._decode_envelope(response, operation)
        if not isinstance(data, list):
            raise CortexDecodeError(
                f"Expected a list of strings for {operation}, got {type(data).__name__}",
                status_code=response.status_code,
                response_body=response_text(response),
                operation=operation,
            )
        return [str(item) for item in data]

    def query(
        self,
        promql: str,
        time: Optional[Union[datetime, float]] = None,
    ) -> QueryResult:
        """
        Execute an instant query via /api/v1/query.

        Args:
            promql: PromQL query expression
            time: Evaluation timestamp, defaults to the querier's current time

        Returns:
            Scalar, Vector, Matrix or String depending on the expression

        Raises:
            CortexQueryError: If the query fails
            CortexDecodeError: If the response cannot be decoded
            CortexConnectionError: If connection fails
            CortexTimeoutError: If request times out
        """
        params: dict[str, str] = {"query": promql}
        if time is not None:
            params["time"] = format_time(time)

        response = self._request("GET", f"{API_PREFIX}/query", operation="query", params=params)
        data = self._decode_envelope(response, "query")

        if not isinstance(data, dict):
            raise CortexDecodeError(
                "Missing data in query response",
                status_code=response.status_code,
                response_body=response_text(response),
                operation="query",
            )
        try:
            return decode_query_result(data)
        except ValueError as e:
            raise CortexDecodeError(
                f"Invalid query result: {e}",
                status_code=response.status_code,
                response_body=response_text(response),
                operation="query",
            ) from e

    def query_raw(self, promql: str) -> tuple[httpx.Response, bytes]:
        """
        Execute an instant query and return the response without decoding it.

        Returns:
            Tuple of (response, body)

        Raises:
            CortexConnectionError: If connection fails
            CortexTimeoutError: If request times out
        """
        path = f"{API_PREFIX}/query?query={quote_plus(promql)}"
        response = self._request("GET", path, operation="query_raw")
        return response, response.content

    def label_values(self, label: str) -> list[str]:
        """
        Get values for a label via /api/v1/label/{label}/values.

        Raises:
            CortexQueryError: If the querier reports an error
            CortexDecodeError: If the response cannot be decoded
            CortexConnectionError: If connection fails
            CortexTimeoutError: If request times out
        """
        path = f"{API_PREFIX}/label/{quote(label, safe='')}/values"
        response = self._request("GET", path, operation="label_values")
        return self._decode_string_list(response, "label_values")

    def label_names(self) -> list[str]:
        """
        Get all label names via /api/v1/labels.

        Raises:
            CortexQueryError: If the querier reports an error
            CortexDecodeError: If the response cannot be decoded
            CortexConnectionError: If connection fails
            CortexTimeoutError: If request times out
        """
        response = self._request("GET", f"{API_PREFIX}/labels", operation="label_names")
        return self._decode_string_list(response, "label_names")
