"""
Tenant-scoped HTTP transport and the request plumbing shared by all role clients.

Every request leaving the client goes through one `httpx.Client` whose
transport stamps the tenant header, so the distributor, querier, ruler and
alertmanager all see the same X-Scope-OrgID.
"""

import logging
import time
from typing import Any, Iterator, NoReturn, Optional

import httpx

from .config import DEFAULT_TIMEOUT
from .exceptions import CortexConnectionError, CortexTimeoutError

logger = logging.getLogger(__name__)

ORG_ID_HEADER = "X-Scope-OrgID"

# Sentinel meaning "use the client's fixed per-call timeout"
INSTANCE_TIMEOUT: Any = object()


class TenantScopedTransport(httpx.BaseTransport):
    """
    Transport that sets the tenant header on every request.

    Any existing X-Scope-OrgID value is overwritten. Everything else about the
    request is passed to the wrapped transport unchanged.
    """

    def __init__(self, org_id: str, next_transport: Optional[httpx.BaseTransport] = None):
        self.org_id = org_id
        self.next_transport = next_transport or httpx.HTTPTransport()

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        request.headers[ORG_ID_HEADER] = self.org_id
        return self.next_transport.handle_request(request)

    def close(self) -> None:
        self.next_transport.close()


def build_http_client(
    org_id: str,
    transport: Optional[httpx.BaseTransport] = None,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
) -> httpx.Client:
    """
    Create the HTTP client shared by all role clients of one tenant.

    Args:
        org_id: Tenant ID to stamp on every request
        transport: Underlying transport (defaults to a pooled HTTP transport)
        timeout: Default timeout in seconds
    """
    # Cluster endpoints are always dialed directly, never through env proxies.
    return httpx.Client(
        transport=TenantScopedTransport(org_id, transport),
        timeout=timeout,
        trust_env=False,
    )


class DeadlineStream(httpx.SyncByteStream):
    """
    Response body stream that fails once the operation's deadline has passed.

    httpx timeouts bound each network phase separately, so a body that
    trickles in slowly never trips them. Wrapping the body stream bounds the
    whole call: a chunk that arrives after the deadline raises ReadTimeout.
    """

    def __init__(self, stream: httpx.SyncByteStream, deadline: float, request: httpx.Request):
        self.stream = stream
        self.deadline = deadline
        self.request = request

    def check(self) -> None:
        if time.monotonic() >= self.deadline:
            raise httpx.ReadTimeout("Operation deadline exceeded", request=self.request)

    def __iter__(self) -> Iterator[bytes]:
        self.check()
        for chunk in self.stream:
            self.check()
            yield chunk

    def close(self) -> None:
        self.stream.close()


def response_text(response: httpx.Response, limit: Optional[int] = None) -> str:
    """Decode a response body for diagnostics, optionally truncated."""
    text = response.content.decode("utf-8", errors="replace")
    return text[:limit] if limit is not None else text


class BaseAPIClient:
    """
    Base class for the role clients.

    Issues single-shot requests against one endpoint and translates transport
    failures into CortexTransportError subclasses. Responses are fully read
    and closed before they are returned.
    """

    def __init__(
        self,
        http_client: httpx.Client,
        base_url: str,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
    ):
        """
        Args:
            http_client: Shared tenant-scoped HTTP client
            base_url: Base URL of the endpoint (e.g., http://querier:8080)
            timeout: Per-call timeout in seconds, None for no limit
        """
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _handle_request_error(
        self,
        e: httpx.TransportError,
        operation: str,
        timeout: Optional[float],
    ) -> NoReturn:
        """Translate an httpx transport failure into a client error."""
        if isinstance(e, httpx.TimeoutException):
            limit = f" after {timeout}s" if timeout is not None else ""
            raise CortexTimeoutError(
                f"Request for {operation} timed out{limit}",
                operation=operation,
            ) from e
        raise CortexConnectionError(
            f"Failed to connect to {self.base_url} for {operation}: {e}",
            operation=operation,
        ) from e

    def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        params: Optional[dict[str, Any]] = None,
        content: Optional[bytes] = None,
        headers: Optional[dict[str, str]] = None,
        timeout: Any = INSTANCE_TIMEOUT,
    ) -> httpx.Response:
        """
        Issue one request and return the fully read response.

        Args:
            method: HTTP method
            path: Path relative to the base URL, already escaped
            operation: Operation name used in logs and errors
            params: Query string parameters
            content: Request body
            headers: Extra request headers
            timeout: Deadline in seconds for the whole call, None for no limit;
                defaults to the client's timeout

        Raises:
            CortexTimeoutError: If the request times out
            CortexConnectionError: If no response could be obtained
        """
        if timeout is INSTANCE_TIMEOUT:
            timeout = self.timeout
        deadline = time.monotonic() + timeout if timeout is not None else None

        url = f"{self.base_url}{path}"
        logger.debug(f"{operation}: {method} {url}")

        try:
            # Connect, pool wait and each socket read are also capped at
            # `timeout`; the deadline stream bounds the call as a whole.
            with self.http_client.stream(
                method,
                url,
                params=params,
                content=content,
                headers=headers,
                timeout=timeout,
            ) as response:
                if deadline is not None:
                    response.stream = DeadlineStream(response.stream, deadline, response.request)
                response.read()
        except httpx.TransportError as e:
            self._handle_request_error(e, operation, timeout)

        logger.debug(f"{operation}: HTTP {response.status_code} ({len(response.content)} bytes)")
        return response
