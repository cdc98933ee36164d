"""Shared fixtures for pirate node tests."""

import json
from typing import Callable, Dict, List, Tuple

import httpx
import pytest

from pirate_node.config import DataSourceSettings, SearchSettings, Settings
from pirate_node.identity import NodeIdentity


@pytest.fixture
def identity() -> NodeIdentity:
    """A node identity with a fixed name."""
    return NodeIdentity(node_name="pirate-123")


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at localhost with no sniffing and no settle delay."""
    return Settings(
        search=SearchSettings(host="localhost", port=9200, master=True),
        data_source=DataSourceSettings(
            url="mysql://db.local:3306/pirates",
            user="pirate",
            password="arr",
        ),
        sniff_on_start=False,
        river_settle_delay=0,
    )


class FakeCluster:
    """In-memory stand-in for the cluster HTTP API.

    Tracks whether the torrents index and the river exist, and records every
    request as ``(method, path)``. Submitting a river creates the index, as
    the real river does on its first run.
    """

    def __init__(self, index_exists: bool = False, river_exists: bool = False):
        self.index_exists = index_exists
        self.river_exists = river_exists
        self.requests: List[Tuple[str, str]] = []
        self.bodies: Dict[Tuple[str, str], object] = {}
        self.failures: Dict[Tuple[str, str], int] = {}

    def fail(self, method: str, path: str, status: int = 500) -> None:
        self.failures[(method, path)] = status

    def handler(self, request: httpx.Request) -> httpx.Response:
        key = (request.method, request.url.path)
        self.requests.append(key)
        if request.content:
            self.bodies[key] = json.loads(request.content)

        if key in self.failures:
            return httpx.Response(self.failures[key], json={"error": "boom"})

        method, path = key
        if path == "/torrents":
            if method == "HEAD":
                return httpx.Response(200 if self.index_exists else 404)
            if method == "DELETE":
                if not self.index_exists:
                    return httpx.Response(404, json={"error": "IndexMissingException[[torrents] missing]"})
                self.index_exists = False
                return httpx.Response(200, json={"acknowledged": True})
        if path.startswith("/_river/"):
            if method == "DELETE":
                if not self.river_exists:
                    return httpx.Response(404, json={"error": "TypeMissingException"})
                self.river_exists = False
                return httpx.Response(200, json={"acknowledged": True})
            if method == "PUT" and path.endswith("/_meta"):
                self.river_exists = True
                self.index_exists = True
                return httpx.Response(201, json={"created": True})
        return httpx.Response(400, json={"error": f"unexpected {method} {path}"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_cluster() -> FakeCluster:
    return FakeCluster()


@pytest.fixture
def make_cluster() -> Callable[..., FakeCluster]:
    return FakeCluster
