"""Supervisor for a torrent search node and its index."""

from .client import (
    ClusterClient,
    ClusterConnectionError,
    ClusterError,
    ClusterNotFoundError,
    ClusterResponseError,
)
from .config import DataSourceSettings, SearchSettings, Settings
from .daemon import (
    ConfigMaterializer,
    DaemonConfigError,
    JavaHomeNotFoundError,
    MarkerReadinessDetector,
    NodeState,
    ReadinessDetector,
)
from .events import Event, EventBus, EventType
from .exceptions import NodeNotInitializedError, NodeStateError, PirateNodeError
from .identity import CLUSTER_NAME, DOCUMENT_TYPE, INDEX_NAME, NodeIdentity
from .node import PirateNode
from .queries import ScoredSearchPolicy, build_full_search_request, build_search_request
from .reindex import ReindexOrchestrator
from .river import JdbcRiver, RiverDefinition, TORRENT_DOCUMENT_MAPPING

__all__ = [
    "CLUSTER_NAME",
    "DOCUMENT_TYPE",
    "INDEX_NAME",
    "ClusterClient",
    "ClusterConnectionError",
    "ClusterError",
    "ClusterNotFoundError",
    "ClusterResponseError",
    "ConfigMaterializer",
    "DaemonConfigError",
    "DataSourceSettings",
    "Event",
    "EventBus",
    "EventType",
    "JavaHomeNotFoundError",
    "JdbcRiver",
    "MarkerReadinessDetector",
    "NodeIdentity",
    "NodeNotInitializedError",
    "NodeState",
    "NodeStateError",
    "PirateNode",
    "PirateNodeError",
    "ReadinessDetector",
    "ReindexOrchestrator",
    "RiverDefinition",
    "ScoredSearchPolicy",
    "SearchSettings",
    "Settings",
    "TORRENT_DOCUMENT_MAPPING",
    "build_full_search_request",
    "build_search_request",
]
