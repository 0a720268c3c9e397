"""
Tests for the CortexClient entry point.
"""

import httpx
import pytest

from cortex_e2e import CortexClient, TimeSeries
from cortex_e2e.exceptions import AlertmanagerNotConfiguredError


class TestConstruction:
    """Tests for building clients."""

    def test_from_addresses(self):
        with CortexClient.from_addresses(
            "distributor:8080", "querier:8080", "alertmanager:8080", "ruler:8080", "user-1",
        ) as client:
            assert client.config.org_id == "user-1"
            assert client.config.timeout == 5.0
            assert client.distributor.base_url == "http://distributor:8080"
            assert client.querier.base_url == "http://querier:8080"
            assert client.ruler.base_url == "http://ruler:8080"
            assert client.alertmanager.base_url == "http://alertmanager:8080"

    def test_empty_alertmanager_address(self):
        with CortexClient.from_addresses(
            "distributor:8080", "querier:8080", "", "ruler:8080", "user-1",
        ) as client:
            with pytest.raises(AlertmanagerNotConfiguredError):
                client.alertmanager

    def test_empty_org_id_is_rejected(self):
        with pytest.raises(ValueError):
            CortexClient.from_addresses("d:1", "q:1", "", "r:1", "")

    def test_context_manager_closes_http_client(self, client_config):
        with CortexClient(client_config, transport=httpx.MockTransport(lambda r: httpx.Response(200))) as client:
            pass

        assert client.http_client.is_closed


class TestRouting:
    """Tests that each call reaches the right endpoint for the right tenant."""

    def test_each_call_goes_to_its_component(self, mock_cluster):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/query"):
                return httpx.Response(200, json={
                    "status": "success",
                    "data": {"resultType": "vector", "result": []},
                })
            if request.url.path.endswith("/labels"):
                return httpx.Response(200, json={"status": "success", "data": []})
            return httpx.Response(200)

        client, requests = mock_cluster(handler)

        client.push([TimeSeries.from_dict({"__name__": "series_1"}, [(1.0, 1000)])])
        client.query("series_1")
        client.label_names()
        client.delete_rule_group("ns", "group_1")
        client.delete_alertmanager_config()

        assert [r.url.host for r in requests] == [
            "distributor", "querier", "querier", "ruler", "alertmanager",
        ]
        assert {r.headers["X-Scope-OrgID"] for r in requests} == {"user-1"}
