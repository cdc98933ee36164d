"""Materializes the daemon configuration file before every start."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

from ..config import Settings
from ..exceptions import PirateNodeError
from ..identity import NodeIdentity

logger = logging.getLogger(__name__)


class DaemonConfigError(PirateNodeError):
    """Raised when the persisted daemon configuration cannot be used."""

    def __init__(self, message: str, path: Path):
        super().__init__(f"{message}: {path}")
        self.path = path


class ConfigMaterializer:
    """
    Merges the persisted daemon configuration with runtime overrides.

    The file at ``<install_root>/config/<config_file_name>`` is used as the
    base when present. The ``cluster``, ``node`` and ``network`` sections are
    always replaced as a whole; every other top-level key is kept as is.
    The result is written back on every call so the freshly generated node
    name reaches the daemon.
    """

    def __init__(self, install_root: Path, settings: Settings, identity: NodeIdentity):
        self.install_root = Path(install_root)
        self.settings = settings
        self.identity = identity

    @property
    def path(self) -> Path:
        """Location of the daemon configuration file."""
        return self.install_root / "config" / self.settings.config_file_name

    def load(self) -> Dict[str, Any]:
        """Read the persisted configuration, or an empty one if absent.

        Raises:
            DaemonConfigError: If the file exists but is not a JSON object.
        """
        if not self.path.exists():
            return {}

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DaemonConfigError(f"Unparseable daemon configuration ({e})", self.path) from e

        if not isinstance(data, dict):
            raise DaemonConfigError(
                f"Daemon configuration must be a JSON object, got {type(data).__name__}",
                self.path,
            )
        return data

    def overrides(self) -> Dict[str, Any]:
        """Sections owned by the supervisor."""
        search = self.settings.search
        return {
            "cluster": {
                "name": self.identity.cluster_name,
            },
            "node": {
                "name": self.identity.node_name,
                "master": search.master,
            },
            "network": {
                "bind_host": search.host,
                "publish_host": search.host,
            },
        }

    def materialize(self) -> Dict[str, Any]:
        """Merge overrides into the persisted configuration and write it back.

        Returns:
            The configuration that was written.
        """
        config = self.load()
        config.update(self.overrides())

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(config, indent=2), encoding="utf-8")
        logger.info(f"Wrote daemon configuration for node {self.identity.node_name} to {self.path}")
        return config
