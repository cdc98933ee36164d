"""
Pirate node runtime configuration.

Settings are loaded from environment variables prefixed with ``PIRATE_``;
nested sections use ``__`` as delimiter:

- PIRATE_SEARCH__HOST / PIRATE_SEARCH__PORT: remote API of the local daemon
- PIRATE_SEARCH__MASTER: whether this node is master-eligible
- PIRATE_DATA_SOURCE__URL / __USER / __PASSWORD: relational source the
  import connector reads from (never contacted directly by this package)

The remaining fields tune the cluster client and the reindex sequence. Their
defaults are the values the daemon expects in production.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SearchSettings(BaseModel):
    """Where the daemon's remote API listens and how the node joins the cluster."""

    host: str = Field(default="localhost", description="Bind/publish host and API host")
    port: int = Field(default=9200, ge=1, le=65535, description="HTTP API port")
    master: bool = Field(default=True, description="Node is master-eligible")
    scheme: str = Field(default="http", description="Scheme used by the cluster client")

    @property
    def address(self) -> str:
        """``host:port`` form used for the seed connection."""
        return f"{self.host}:{self.port}"


class DataSourceSettings(BaseModel):
    """Connection parameters of the relational source feeding the index."""

    url: str = Field(default="", description="JDBC-style URL, with or without 'jdbc:' prefix")
    user: Optional[str] = Field(default=None, description="Database user")
    password: Optional[str] = Field(default=None, description="Database password")

    @property
    def jdbc_url(self) -> str:
        """URL passed to the import connector."""
        if self.url.startswith("jdbc:"):
            return self.url
        return f"jdbc:{self.url}"


class Settings(BaseSettings):
    """Pirate node configuration settings."""

    search: SearchSettings = Field(default_factory=SearchSettings)
    data_source: DataSourceSettings = Field(default_factory=DataSourceSettings)

    # Cluster client
    sniff_on_start: bool = True
    sniff_interval: float = Field(default=60.0, gt=0, description="Seconds between topology refreshes")
    request_timeout: float = Field(default=30.0, gt=0)

    # Daemon
    config_file_name: str = "elasticsearch.json"

    # Import connector
    river_name: str = "my_mysql_river"
    river_settle_delay: float = Field(
        default=2.0,
        ge=0,
        description="Seconds to wait between deleting and recreating the connector",
    )

    model_config = SettingsConfigDict(
        env_prefix="PIRATE_",
        env_nested_delimiter="__",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("river_name")
    @classmethod
    def _validate_river_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned or "/" in cleaned:
            raise ValueError(f"river_name must be a non-empty path segment, got: {value!r}")
        return cleaned
