"""
Pytest configuration and fixtures for the Cortex E2E client tests.

Unit tests answer requests with httpx.MockTransport. Tests marked
`integration` talk to a real cluster and only run when its addresses are
given on the command line.
"""

import socket
import threading

import httpx
import pytest
from hypothesis import settings, Verbosity

from cortex_e2e.client import CortexClient
from cortex_e2e.config import ClientConfig

# Configure Hypothesis profiles
settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    deadline=None,
)

settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.verbose,
    deadline=None,
)

settings.register_profile(
    "dev",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)


def pytest_configure(config):
    """Configure pytest with custom settings."""
    # Load the default hypothesis profile
    settings.load_profile("default")


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--distributor-address",
        action="store",
        default="",
        help="host:port of the distributor under test",
    )
    parser.addoption(
        "--querier-address",
        action="store",
        default="",
        help="host:port of the querier under test",
    )
    parser.addoption(
        "--ruler-address",
        action="store",
        default="",
        help="host:port of the ruler under test",
    )
    parser.addoption(
        "--alertmanager-address",
        action="store",
        default="",
        help="host:port of the alertmanager under test",
    )
    parser.addoption(
        "--org-id",
        action="store",
        default="user-1",
        help="Tenant ID used by integration tests",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests when no cluster addresses were given."""
    if config.getoption("--distributor-address"):
        return
    skip = pytest.mark.skip(reason="needs --distributor-address and friends")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def client_config():
    """Configuration pointing at fake endpoint addresses."""
    return ClientConfig(
        distributor_address="distributor:8080",
        querier_address="querier:8080",
        ruler_address="ruler:8080",
        alertmanager_address="alertmanager:8080",
        org_id="user-1",
    )


@pytest.fixture
def mock_cluster(client_config):
    """
    Factory for clients whose requests are answered by a handler.

    Returns (client, requests) where `requests` records every request the
    handler saw.
    """
    clients = []

    def factory(handler, config=None):
        requests: list[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        client = CortexClient(config or client_config, transport=httpx.MockTransport(record))
        clients.append(client)
        return client, requests

    yield factory

    for client in clients:
        client.close()


@pytest.fixture
def cluster_config(request):
    """Configuration for the cluster given on the command line."""
    return ClientConfig(
        distributor_address=request.config.getoption("--distributor-address"),
        querier_address=request.config.getoption("--querier-address"),
        ruler_address=request.config.getoption("--ruler-address"),
        alertmanager_address=request.config.getoption("--alertmanager-address"),
        org_id=request.config.getoption("--org-id"),
    )


@pytest.fixture
def slow_body_server():
    """
    HTTP endpoint that answers headers at once, then sends one body byte
    every 0.2s.

    Yields its host:port address.
    """
    stop = threading.Event()
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(5)
    server.settimeout(0.1)
    host, port = server.getsockname()

    def serve():
        while not stop.is_set():
            try:
                conn, _ = server.accept()
            except OSError:
                continue
            with conn:
                try:
                    conn.recv(65536)
                    conn.sendall(
                        b"HTTP/1.1 200 OK\r\n"
                        b"Content-Type: application/json\r\n"
                        b"Content-Length: 40\r\n\r\n"
                    )
                    for _ in range(40):
                        if stop.wait(0.2):
                            break
                        conn.sendall(b" ")
                except OSError:
                    # The client gave up and closed the connection.
                    pass

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()

    yield f"{host}:{port}"

    stop.set()
    thread.join()
    server.close()
