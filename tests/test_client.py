"""Tests for the cluster HTTP client."""

import time

import httpx
import pytest

from pirate_node.client import (
    ClusterClient,
    ClusterConnectionError,
    ClusterNotFoundError,
    ClusterResponseError,
    parse_http_address,
)


def make_client(handler, **kwargs) -> ClusterClient:
    kwargs.setdefault("sniff_on_start", False)
    return ClusterClient("localhost", 9200, transport=httpx.MockTransport(handler), **kwargs)


class TestParseHttpAddress:
    """Tests for published address parsing."""

    @pytest.mark.parametrize("address,expected", [
        ("inet[/10.0.0.1:9200]", "10.0.0.1:9200"),
        ("inet[es-1.local/10.0.0.2:9201]", "10.0.0.2:9201"),
        ("10.0.0.3:9200", "10.0.0.3:9200"),
        ("es-3/10.0.0.4:9200", "10.0.0.4:9200"),
        ("", None),
        ("inet[/nohost]", None),
    ])
    def test_forms(self, address, expected):
        assert parse_http_address(address) == expected


class TestClusterOperations:
    """Tests for the individual API operations."""

    @pytest.mark.asyncio
    async def test_index_exists_true_and_false(self):
        def handler(request):
            assert request.method == "HEAD"
            return httpx.Response(200 if request.url.path == "/torrents" else 404)

        client = make_client(handler)

        assert await client.index_exists("torrents") is True
        assert await client.index_exists("missing") is False
        await client.close()

    @pytest.mark.asyncio
    async def test_index_exists_raises_on_server_error(self):
        client = make_client(lambda request: httpx.Response(503))

        with pytest.raises(ClusterResponseError) as exc_info:
            await client.index_exists("torrents")

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_delete_index(self):
        seen = []

        def handler(request):
            seen.append((request.method, str(request.url)))
            return httpx.Response(200, json={"acknowledged": True})

        client = make_client(handler)

        result = await client.delete_index("torrents")

        assert result == {"acknowledged": True}
        assert seen == [("DELETE", "http://localhost:9200/torrents")]

    @pytest.mark.asyncio
    async def test_delete_missing_index_raises_not_found(self):
        client = make_client(lambda request: httpx.Response(404, json={"error": "missing"}))

        with pytest.raises(ClusterNotFoundError) as exc_info:
            await client.delete_index("torrents")

        assert exc_info.value.response == {"error": "missing"}

    @pytest.mark.asyncio
    async def test_shutdown_targets_local_node(self):
        seen = []

        def handler(request):
            seen.append((request.method, request.url.path))
            return httpx.Response(200, json={"cluster_name": "piratesbey"})

        client = make_client(handler)

        await client.shutdown_node()

        assert seen == [("POST", "/_cluster/nodes/_local/_shutdown")]

    @pytest.mark.asyncio
    async def test_search_with_query_string_uses_get_params(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"hits": {"total": 0, "hits": []}})

        client = make_client(handler)

        await client.search("torrents", "torrent", params={"q": "pirate bay", "size": 10, "sort": ["seeders:desc", "_score"]})

        assert seen["method"] == "GET"
        assert seen["path"] == "/torrents/torrent/_search"
        assert seen["params"] == {"q": "pirate bay", "size": "10", "sort": "seeders:desc,_score"}

    @pytest.mark.asyncio
    async def test_search_with_body_uses_post(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = request.content
            return httpx.Response(200, json={"hits": {"hits": []}})

        client = make_client(handler)

        await client.search("torrents", "torrent", body={"query": {"match_all": {}}})

        assert seen["method"] == "POST"
        assert b"match_all" in seen["body"]

    @pytest.mark.asyncio
    async def test_transport_failure_is_wrapped(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)

        with pytest.raises(ClusterConnectionError) as exc_info:
            await client.index_exists("torrents")

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        client = make_client(lambda request: httpx.Response(200))
        await client.index_exists("torrents")

        await client.close()
        await client.close()


class TestSniffing:
    """Tests for node discovery."""

    NODES = {
        "cluster_name": "piratesbey",
        "nodes": {
            "a": {"name": "pirate-1", "http_address": "inet[/10.0.0.1:9200]"},
            "b": {"name": "pirate-2", "http_address": "inet[/10.0.0.2:9200]"},
            "c": {"name": "client-only"},
        },
    }

    @pytest.mark.asyncio
    async def test_sniff_on_start_discovers_hosts(self):
        hosts_used = []

        def handler(request):
            if request.url.path == "/_nodes/_all/http":
                return httpx.Response(200, json=self.NODES)
            hosts_used.append(f"{request.url.host}:{request.url.port}")
            return httpx.Response(200)

        client = make_client(handler, sniff_on_start=True)

        await client.index_exists("torrents")
        await client.index_exists("torrents")

        assert client.hosts == ["10.0.0.1:9200", "10.0.0.2:9200"]
        assert sorted(hosts_used) == ["10.0.0.1:9200", "10.0.0.2:9200"]

    @pytest.mark.asyncio
    async def test_sniff_failure_keeps_seed(self):
        def handler(request):
            if request.url.path == "/_nodes/_all/http":
                return httpx.Response(500)
            return httpx.Response(200)

        client = make_client(handler, sniff_on_start=True)

        assert await client.index_exists("torrents") is True
        assert client.hosts == ["localhost:9200"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response_kwargs", [
        {"text": "OK"},
        {"json": ["node-a"]},
        {"json": {"nodes": ["node-a"]}},
        {"json": {"nodes": {"a": "inet[/10.0.0.1:9200]"}}},
        {"json": {"nodes": {"a": {"http": "10.0.0.1:9200"}}}},
    ])
    async def test_malformed_node_info_keeps_seed(self, response_kwargs):
        """A sniff answer without node info leaves the request unaffected."""
        def handler(request):
            if request.url.path == "/_nodes/_all/http":
                return httpx.Response(200, **response_kwargs)
            return httpx.Response(200)

        client = make_client(handler, sniff_on_start=True)

        assert await client.index_exists("torrents") is True
        assert client.hosts == ["localhost:9200"]

    @pytest.mark.asyncio
    async def test_resniffs_after_interval(self):
        sniffs = []

        def handler(request):
            if request.url.path == "/_nodes/_all/http":
                sniffs.append(time.monotonic())
                return httpx.Response(200, json=self.NODES)
            return httpx.Response(200)

        client = make_client(handler, sniff_on_start=True, sniff_interval=60)

        await client.index_exists("torrents")
        await client.index_exists("torrents")
        assert len(sniffs) == 1

        client._last_sniff = time.monotonic() - 61
        await client.index_exists("torrents")

        assert len(sniffs) == 2

    @pytest.mark.asyncio
    async def test_no_sniff_when_disabled(self):
        paths = []

        def handler(request):
            paths.append(request.url.path)
            return httpx.Response(200)

        client = make_client(handler, sniff_on_start=False)

        await client.index_exists("torrents")

        assert paths == ["/torrents"]

    def test_from_settings(self, settings):
        client = ClusterClient.from_settings(settings)

        assert client.seed == "localhost:9200"
        assert client.sniff_interval == 60.0
