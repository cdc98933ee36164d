"""
Pirate node: supervises the local search daemon and the torrents index.

A PirateNode owns every collaborator it uses (settings, identity, event bus,
readiness detector, cluster client), so several nodes can live in one
process. Typical use:

    node = PirateNode("/opt/elasticsearch", Settings())
    node.on("error", lambda event: log.warning(event.data))
    await node.start(on_ready=lambda: print("ready"))
    await node.wait_until_ready()
    await node.setup_index()
    hits = await node.full_search("ubuntu iso", {"size": 10})
    await node.shutdown()

Operations that talk to the cluster require the client created by
``initialize()``, which ``start()`` calls once the daemon reports readiness.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

import httpx

from .client import ClusterClient
from .config import Settings
from .daemon import (
    ConfigMaterializer,
    DaemonProcess,
    MarkerReadinessDetector,
    NodeState,
    ReadinessDetector,
    resolve_java_home,
)
from .events import EventBus, EventHandler
from .exceptions import NodeNotInitializedError, NodeStateError
from .identity import NodeIdentity
from .queries import build_full_search_request, build_search_request
from .reindex import ReindexOrchestrator
from .river import JdbcRiver, RiverDefinition

logger = logging.getLogger(__name__)


class PirateNode:
    """Controls the search daemon for this node."""

    def __init__(
        self,
        install_root: Path,
        settings: Optional[Settings] = None,
        identity: Optional[NodeIdentity] = None,
        detector: Optional[ReadinessDetector] = None,
        java_home_resolver: Callable[[], str] = resolve_java_home,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            install_root: Daemon installation root. Cannot be None.
            settings: Runtime configuration; loaded from the environment if omitted.
            identity: Node identity; a fresh node name is generated if omitted.
            detector: Readiness strategy; defaults to scanning stdout for
                ``identity.readiness_marker``.
            java_home_resolver: Returns the Java home injected into the daemon.
            transport: httpx transport for the cluster client.
        """
        self.install_root = Path(install_root)
        self.settings = settings if settings is not None else Settings()
        self.identity = identity or NodeIdentity.generate()
        self.detector = detector or MarkerReadinessDetector(self.identity.readiness_marker)
        self.bus = EventBus()
        self.materializer = ConfigMaterializer(self.install_root, self.settings, self.identity)
        self.client: Optional[ClusterClient] = None
        self._resolve_java_home = java_home_resolver
        self._transport = transport
        self._process: Optional[DaemonProcess] = None
        self._on_ready: Optional[Callable[[], Any]] = None

    @property
    def state(self) -> NodeState:
        if self._process is None:
            return NodeState.NOT_STARTED
        return self._process.state

    @property
    def process(self) -> Optional[DaemonProcess]:
        return self._process

    def on(self, event_type: str, handler: EventHandler) -> None:
        """Subscribe to node events (``"error"`` carries raw stderr chunks)."""
        self.bus.subscribe(event_type, handler)

    def initialize(self) -> ClusterClient:
        """Create the cluster client. Calling it again returns the same client."""
        if self.client is None:
            self.client = ClusterClient.from_settings(self.settings, transport=self._transport)
            logger.debug(f"Cluster client bound to {self.client.seed}")
        return self.client

    async def start(self, on_ready: Optional[Callable[[], Any]] = None) -> None:
        """Write the daemon configuration and launch the daemon.

        Returns once the process is spawned. ``on_ready`` is scheduled on the
        event loop (never called inline) exactly once, after ``initialize()``
        has run.

        Raises:
            NodeStateError: If the node was already started.
            JavaHomeNotFoundError: If no Java runtime can be located.
            DaemonConfigError: If the persisted configuration is unreadable.
        """
        if self._process is not None:
            raise NodeStateError(f"Node {self.identity.node_name} was already started")

        java_home = self._resolve_java_home()
        self.materializer.materialize()

        self._on_ready = on_ready
        process = DaemonProcess(
            self.install_root,
            self.identity,
            self.bus,
            self.detector,
            on_ready=self._handle_ready,
        )
        self._process = process
        try:
            await process.spawn(java_home)
        except Exception:
            self._process = None
            raise

    def _handle_ready(self) -> None:
        self.initialize()
        if self._on_ready is not None:
            asyncio.get_running_loop().call_soon(self._on_ready)

    async def wait_until_ready(self) -> None:
        """Suspend until the daemon is ready.

        There is no built-in timeout; wrap in ``asyncio.wait_for`` if needed.

        Raises:
            NodeStateError: If the node was not started or the daemon exited first.
        """
        if self._process is None:
            raise NodeStateError(f"Node {self.identity.node_name} has not been started")
        await self._process.wait_until_ready()

    def _require_client(self, operation: str) -> ClusterClient:
        if self.client is None:
            raise NodeNotInitializedError(operation)
        return self.client

    async def shutdown(self) -> Any:
        """Shut down this node through the cluster API."""
        client = self._require_client("shut down node")
        logger.info(f"Shutting down node {self.identity.node_name}")
        return await client.shutdown_node()

    async def setup_index(self) -> None:
        """Regenerate the torrents index and import data from the relational source."""
        client = self._require_client("set up index")
        river = JdbcRiver(client, self.settings.river_name, settle_delay=self.settings.river_settle_delay)
        definition = RiverDefinition.from_data_source(self.settings.data_source)
        await ReindexOrchestrator(client, river, definition).setup_index()

    async def search(self, query: str, options: Optional[Mapping[str, Any]] = None) -> Any:
        """Search torrents with a plain query-string query."""
        return await self._run_search("search", build_search_request(query, options))

    async def full_search(self, query: str, options: Optional[Mapping[str, Any]] = None) -> Any:
        """Search torrents with the seeder-weighted function-score query."""
        return await self._run_search("search", build_full_search_request(query, options))

    async def _run_search(self, operation: str, request: Dict[str, Any]) -> Any:
        client = self._require_client(operation)
        index = request.pop("index")
        doc_type = request.pop("type")
        body = request.pop("body", None)
        return await client.search(index, doc_type, body=body, params=request)

    async def close(self) -> None:
        """Stop the child process if it is still running and release the client."""
        if self._process is not None:
            await self._process.terminate()
        if self.client is not None:
            await self.client.close()
