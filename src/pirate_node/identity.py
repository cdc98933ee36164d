"""Node identity: cluster-wide names and the per-start node name."""

from __future__ import annotations

import math
import random
import time
from dataclasses import dataclass

# Default name for the distributed cluster.
CLUSTER_NAME = "piratesbey"

# Name of the torrents index and its only document type.
INDEX_NAME = "torrents"
DOCUMENT_TYPE = "torrent"

NODE_NAME_PREFIX = "pirate-"


@dataclass(frozen=True)
class NodeIdentity:
    """Names that identify this node inside the cluster.

    The node name is generated once per process start. It is built from the
    current time and a random factor, so two nodes started together are very
    unlikely (but not guaranteed) to collide.
    """

    node_name: str
    cluster_name: str = CLUSTER_NAME

    @classmethod
    def generate(cls, cluster_name: str = CLUSTER_NAME) -> "NodeIdentity":
        """Create an identity with a freshly generated node name."""
        now_ms = int(time.time() * 1000)
        suffix = math.ceil(random.random() * now_ms)
        return cls(node_name=f"{NODE_NAME_PREFIX}{suffix}", cluster_name=cluster_name)

    @property
    def readiness_marker(self) -> str:
        """Literal text the daemon prints once this node has booted."""
        return f"[{self.node_name}] started"
