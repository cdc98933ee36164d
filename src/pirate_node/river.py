"""JDBC river: the import connector that fills the torrents index.

The river is a remote-managed job living under ``/_river/<name>``. It is never
updated in place: every reindex deletes the old definition and submits a new
one, which also (re)creates the target index with the mapping below.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from .client import ClusterClient, ClusterNotFoundError, ClusterResponseError
from .config import DataSourceSettings
from .identity import DOCUMENT_TYPE, INDEX_NAME

logger = logging.getLogger(__name__)

SOURCE_SQL = "select * from torrents"

TORRENT_DOCUMENT_MAPPING: Dict[str, Any] = {
    "_id": {
        "type": "string",
        "path": "hash",
        "index": "not_analyzed",
    },
    "properties": {
        "hash": {"type": "string", "index": "not_analyzed"},
        "uploaded": {"type": "date", "index": "not_analyzed"},
        "size": {"type": "long", "index": "not_analyzed"},
        "title": {"type": "string", "analyzer": "english"},
        "source": {"type": "string", "analyzer": "english"},
        "nfo": {"type": "string", "analyzer": "english"},
        "seeders": {"type": "long", "index": "not_analyzed"},
        "leechers": {"type": "long", "index": "not_analyzed"},
    },
}


class RiverDefinition(BaseModel):
    """One import job from the relational source into the index."""

    url: str = Field(..., description="JDBC connection URL")
    user: Optional[str] = None
    password: Optional[str] = None
    sql: str = SOURCE_SQL
    index: str = INDEX_NAME
    type: str = DOCUMENT_TYPE
    number_of_shards: int = Field(default=5, ge=1)
    number_of_replicas: int = Field(default=1, ge=0)
    mapping: Dict[str, Any] = Field(default_factory=lambda: copy.deepcopy(TORRENT_DOCUMENT_MAPPING))

    @classmethod
    def from_data_source(cls, data_source: DataSourceSettings) -> "RiverDefinition":
        return cls(url=data_source.jdbc_url, user=data_source.user, password=data_source.password)

    def to_body(self) -> Dict[str, Any]:
        """Request body for ``PUT /_river/<name>/_meta``."""
        return {
            "type": "jdbc",
            "jdbc": {
                "url": self.url,
                "user": self.user,
                "password": self.password,
                "sql": self.sql,
                "index": self.index,
                "type": self.type,
                "index_settings": {
                    "index": {
                        "number_of_shards": self.number_of_shards,
                        "number_of_replicas": self.number_of_replicas,
                    },
                },
                "type_mapping": {
                    self.type: self.mapping,
                },
            },
        }


class JdbcRiver:
    """Manages one named river through the cluster client."""

    def __init__(self, client: ClusterClient, name: str, settle_delay: float = 2.0):
        self.client = client
        self.name = name
        self.settle_delay = settle_delay

    @property
    def path(self) -> str:
        return f"/_river/{self.name}"

    async def delete(self) -> None:
        """Delete the river definition.

        A missing river is not an error, nor is any other error status the
        cluster answers with; only transport failures are raised.
        """
        try:
            await self.client.request("DELETE", self.path)
            logger.debug(f"Deleted river {self.name}")
        except ClusterNotFoundError:
            logger.debug(f"River {self.name} did not exist")
        except ClusterResponseError as e:
            logger.warning(f"Ignoring error while deleting river {self.name}: {e}")

    async def create(self, definition: RiverDefinition) -> Any:
        """Submit a river definition."""
        return await self.client.request("PUT", f"{self.path}/_meta", json=definition.to_body())

    async def recreate(self, definition: RiverDefinition) -> Any:
        """Delete, let the cluster tear the old river down, then create once.

        Creating right after deletion is rejected while the previous river's
        state is still being removed, hence the fixed settle delay.
        """
        await self.delete()
        if self.settle_delay > 0:
            await asyncio.sleep(self.settle_delay)
        return await self.create(definition)
