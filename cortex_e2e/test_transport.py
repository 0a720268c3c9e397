"""
Tests for the tenant-scoped transport and the shared request plumbing.
"""

import socket
import time

import httpx
import pytest
from hypothesis import given
from hypothesis import strategies as st

from cortex_e2e.exceptions import CortexConnectionError, CortexTimeoutError
from cortex_e2e.transport import (
    ORG_ID_HEADER,
    BaseAPIClient,
    TenantScopedTransport,
    build_http_client,
)


org_ids = st.text(
    alphabet="abcdefghijklmnopqrstuvwxyz0123456789-_.",
    min_size=1,
    max_size=40,
)


def _echo_org_id(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, text=request.headers.get(ORG_ID_HEADER, ""))


class TestTenantScopedTransport:
    """Tests for X-Scope-OrgID injection."""

    @given(org_id=org_ids)
    def test_sets_header_on_every_request(self, org_id: str):
        with build_http_client(org_id, httpx.MockTransport(_echo_org_id)) as http_client:
            for method in ("GET", "POST", "DELETE"):
                response = http_client.request(method, "http://querier:8080/anything")
                assert response.text == org_id

    def test_overwrites_existing_header(self):
        with build_http_client("user-1", httpx.MockTransport(_echo_org_id)) as http_client:
            response = http_client.get(
                "http://querier:8080/anything",
                headers={ORG_ID_HEADER: "someone-else"},
            )
        assert response.text == "user-1"

    def test_leaves_body_and_other_headers_alone(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        with build_http_client("user-1", httpx.MockTransport(handler)) as http_client:
            http_client.post(
                "http://distributor:8080/api/prom/push",
                content=b"\x00\x01payload",
                headers={"Content-Type": "application/x-protobuf"},
            )

        assert seen[0].content == b"\x00\x01payload"
        assert seen[0].headers["Content-Type"] == "application/x-protobuf"
        assert seen[0].headers.get_list(ORG_ID_HEADER) == ["user-1"]

    def test_close_closes_wrapped_transport(self):
        closed = []

        class ClosingTransport(httpx.MockTransport):
            def close(self) -> None:
                closed.append(True)

        transport = TenantScopedTransport("user-1", ClosingTransport(_echo_org_id))
        transport.close()
        assert closed == [True]


class TestBaseAPIClient:
    """Tests for error translation and response handling."""

    def test_timeout_is_translated(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with build_http_client("user-1", httpx.MockTransport(handler)) as http_client:
            api = BaseAPIClient(http_client, "http://querier:8080", timeout=5.0)
            with pytest.raises(CortexTimeoutError) as exc_info:
                api._request("GET", "/api/prom/api/v1/labels", operation="label_names")

        assert exc_info.value.operation == "label_names"
        assert "5.0s" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)

    def test_connect_error_is_translated(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with build_http_client("user-1", httpx.MockTransport(handler)) as http_client:
            api = BaseAPIClient(http_client, "http://querier:8080")
            with pytest.raises(CortexConnectionError):
                api._request("GET", "/", operation="query")

    def test_response_is_read_and_closed(self):
        with build_http_client("user-1", httpx.MockTransport(_echo_org_id)) as http_client:
            api = BaseAPIClient(http_client, "http://querier:8080/")
            response = api._request("GET", "/", operation="query")

        assert response.is_closed
        assert response.content == b"user-1"

    def test_non_responding_endpoint_times_out(self):
        # Accepts connections into the backlog but never answers.
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as server:
            server.bind(("127.0.0.1", 0))
            server.listen(1)
            host, port = server.getsockname()

            with build_http_client("user-1") as http_client:
                api = BaseAPIClient(http_client, f"http://{host}:{port}", timeout=0.5)
                start = time.monotonic()
                with pytest.raises(CortexTimeoutError):
                    api._request("POST", "/api/prom/push", operation="push", content=b"x")
                elapsed = time.monotonic() - start

        assert elapsed < 5.0

    def test_slow_body_is_bounded_by_whole_call_deadline(self, slow_body_server):
        with build_http_client("user-1") as http_client:
            api = BaseAPIClient(http_client, f"http://{slow_body_server}", timeout=0.5)
            start = time.monotonic()
            with pytest.raises(CortexTimeoutError) as exc_info:
                api._request("GET", "/api/prom/api/v1/labels", operation="label_names")
            elapsed = time.monotonic() - start

        # Each byte arrives well within the read timeout; only the overall
        # deadline can stop the call.
        assert elapsed < 2.0
        assert exc_info.value.operation == "label_names"
        assert "0.5s" in str(exc_info.value)

    def test_deadline_does_not_affect_fast_responses(self):
        with build_http_client("user-1", httpx.MockTransport(_echo_org_id)) as http_client:
            api = BaseAPIClient(http_client, "http://querier:8080", timeout=0.5)
            response = api._request("GET", "/", operation="query")

        assert response.content == b"user-1"
