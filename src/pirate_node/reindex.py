"""Rebuilds the torrents index from the relational source."""

from __future__ import annotations

import logging

from .client import ClusterClient
from .identity import INDEX_NAME
from .river import JdbcRiver, RiverDefinition

logger = logging.getLogger(__name__)


class ReindexOrchestrator:
    """
    Drops the target index and recreates the import river.

    Steps run strictly in sequence and the first failure propagates; nothing
    is rolled back. If the index was deleted but the river could not be
    created, running ``setup_index()`` again is the recovery path. Running it
    twice in a row converges to the same state.
    """

    def __init__(
        self,
        client: ClusterClient,
        river: JdbcRiver,
        definition: RiverDefinition,
        index: str = INDEX_NAME,
    ):
        self.client = client
        self.river = river
        self.definition = definition
        self.index = index

    async def setup_index(self) -> None:
        """Delete the index if present, then recreate the river."""
        try:
            exists = await self.client.index_exists(self.index)
        except Exception as e:
            logger.error(f"Could not check whether index {self.index} exists: {e}")
            raise

        if exists:
            logger.info(f"Deleting index {self.index}")
            try:
                await self.client.delete_index(self.index)
            except Exception as e:
                logger.error(f"Failed to delete index {self.index}: {e}")
                raise

        logger.info("Importing data from the relational source into the index...")
        try:
            await self.river.recreate(self.definition)
        except Exception as e:
            logger.error(f"Failed to recreate river {self.river.name}: {e}")
            raise
        logger.info(f"River {self.river.name} submitted for index {self.index}")
