"""Async client for the search daemon's HTTP API.

Wraps ``httpx.AsyncClient`` with the handful of cluster operations the node
needs, plus node sniffing: the published HTTP addresses of every cluster node
are fetched on the first request and again whenever ``sniff_interval``
seconds have passed. Requests are spread round-robin over the known hosts.
Sniffing piggybacks on regular requests; no background task is started.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Mapping, Optional

import httpx

from .config import Settings
from .exceptions import PirateNodeError

logger = logging.getLogger(__name__)

SNIFF_PATH = "/_nodes/_all/http"


class ClusterError(PirateNodeError):
    """Base exception for cluster API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None, response: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response


class ClusterConnectionError(ClusterError):
    """Raised when a request cannot reach the cluster."""


class ClusterResponseError(ClusterError):
    """Raised when the cluster answers with an error status."""


class ClusterNotFoundError(ClusterResponseError):
    """Raised when the addressed resource does not exist."""


def parse_http_address(address: str) -> Optional[str]:
    """Extract ``host:port`` from a published HTTP address.

    Handles both ``inet[hostname/10.0.0.1:9200]`` (1.x) and
    ``hostname/10.0.0.1:9200`` / ``10.0.0.1:9200`` forms.
    """
    if not address:
        return None
    value = address.strip()
    if value.startswith("inet[") and value.endswith("]"):
        value = value[len("inet["):-1]
    value = value.rsplit("/", 1)[-1]
    if ":" not in value:
        return None
    return value


def _hosts_from_node_info(data: Any) -> List[str]:
    """Collect published HTTP addresses from a node info response.

    Entries that are not shaped like node info are skipped.
    """
    nodes = data.get("nodes") if isinstance(data, dict) else None
    if not isinstance(nodes, dict):
        return []

    hosts: List[str] = []
    for node in nodes.values():
        if not isinstance(node, dict):
            continue
        http = node.get("http")
        address = node.get("http_address") or (http.get("publish_address") if isinstance(http, dict) else None)
        parsed = parse_http_address(address) if isinstance(address, str) else None
        if parsed and parsed not in hosts:
            hosts.append(parsed)
    return hosts


def _encode_params(params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    encoded = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            value = ",".join(str(v) for v in value)
        encoded[key] = value
    return encoded


class ClusterClient:
    """
    Handle to the cluster's remote API.

    Usage:
        client = ClusterClient("localhost", 9200)
        if await client.index_exists("torrents"):
            await client.delete_index("torrents")
        await client.close()
    """

    def __init__(
        self,
        host: str,
        port: int,
        scheme: str = "http",
        sniff_on_start: bool = True,
        sniff_interval: float = 60.0,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            host: Seed host of the cluster API.
            port: Seed port of the cluster API.
            scheme: URL scheme for every host.
            sniff_on_start: Discover cluster nodes before the first request.
            sniff_interval: Seconds after which the node list is refreshed.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (tests use ``httpx.MockTransport``).
        """
        self.seed = f"{host}:{port}"
        self.scheme = scheme
        self.sniff_interval = sniff_interval
        self.timeout = timeout
        self.hosts: List[str] = [self.seed]
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None
        self._next_host = 0
        self._sniffing = False
        self._last_sniff: Optional[float] = None if sniff_on_start else time.monotonic()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ClusterClient":
        """Build a client bound to ``settings.search``."""
        search = settings.search
        return cls(
            search.host,
            search.port,
            scheme=search.scheme,
            sniff_on_start=settings.sniff_on_start,
            sniff_interval=settings.sniff_interval,
            timeout=settings.request_timeout,
            transport=transport,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=10.0),
                transport=self._transport,
            )
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()
            self._http_client = None

    def _next_base_url(self) -> str:
        host = self.hosts[self._next_host % len(self.hosts)]
        self._next_host += 1
        return f"{self.scheme}://{host}"

    async def _send(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> httpx.Response:
        client = await self._get_client()
        url = f"{self._next_base_url()}{path}"
        try:
            return await client.request(method, url, params=_encode_params(params), json=json)
        except httpx.HTTPError as e:
            raise ClusterConnectionError(f"{method} {path} failed: {e}") from e

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _raise_for_status(self, method: str, path: str, response: httpx.Response) -> None:
        if response.is_success:
            return
        body = self._decode(response)
        message = f"{method} {path} returned {response.status_code}"
        if response.status_code == 404:
            raise ClusterNotFoundError(message, status_code=404, response=body)
        raise ClusterResponseError(message, status_code=response.status_code, response=body)

    def _sniff_due(self) -> bool:
        if self._sniffing:
            return False
        if self._last_sniff is None:
            return True
        return time.monotonic() - self._last_sniff >= self.sniff_interval

    async def sniff(self) -> List[str]:
        """Refresh the host list from the cluster's node info.

        Failures are logged and leave the current host list untouched.

        Returns:
            The host list in use after the refresh.
        """
        self._sniffing = True
        try:
            response = await self._send("GET", SNIFF_PATH)
            self._raise_for_status("GET", SNIFF_PATH, response)
            hosts = _hosts_from_node_info(self._decode(response))

            if hosts:
                self.hosts = hosts
                logger.debug(f"Sniffed {len(hosts)} cluster hosts: {hosts}")
            else:
                logger.warning("Sniff returned no HTTP-enabled nodes, keeping current hosts")
        except ClusterError as e:
            logger.warning(f"Cluster sniff failed, keeping current hosts: {e}")
        finally:
            self._last_sniff = time.monotonic()
            self._sniffing = False
        return self.hosts

    async def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Perform an API request and return the decoded body.

        Raises:
            ClusterConnectionError: On transport failures.
            ClusterNotFoundError: On 404 responses.
            ClusterResponseError: On any other non-2xx response.
        """
        if self._sniff_due():
            await self.sniff()
        response = await self._send(method, path, params=params, json=json)
        self._raise_for_status(method, path, response)
        return self._decode(response)

    async def index_exists(self, index: str) -> bool:
        """Check whether an index exists."""
        if self._sniff_due():
            await self.sniff()
        path = f"/{index}"
        response = await self._send("HEAD", path)
        if response.status_code == 404:
            return False
        self._raise_for_status("HEAD", path, response)
        return True

    async def delete_index(self, index: str) -> Any:
        """Delete an index."""
        return await self.request("DELETE", f"/{index}")

    async def shutdown_node(self, node_id: str = "_local") -> Any:
        """Ask the cluster to shut down a node (this node by default)."""
        return await self.request("POST", f"/_cluster/nodes/{node_id}/_shutdown")

    async def search(
        self,
        index: str,
        doc_type: Optional[str] = None,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Run a search request.

        Args:
            index: Index to search.
            doc_type: Optional document type.
            body: Query DSL body. When absent the request is a GET and the
                query is expected in ``params`` (``q``).
            params: URL parameters such as ``q``, ``size`` or ``from``.
        """
        path = f"/{index}/{doc_type}/_search" if doc_type else f"/{index}/_search"
        method = "POST" if body is not None else "GET"
        return await self.request(method, path, json=body, params=params)
