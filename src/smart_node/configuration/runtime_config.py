"""Local runtime settings: cache location, JavaScript runtime and log level."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field

from smart_node.core.errors import ConfigurationError

from .base_config import BaseConfig


class RuntimeConfig(BaseConfig):
    """Settings for the local side of the pipeline."""

    SMART_NODE_CACHE_DIR: Path = Field(
        default_factory=lambda: Path("~/.smart-node-cache"),
        description="Directory holding one JSON record per translation cache key.",
    )

    SMART_NODE_RUNTIME: str = Field(
        default="node",
        description="JavaScript runtime executable used to run generated programs.",
    )

    LOG_LEVEL: str = Field(
        default="WARNING",
        description="Log level for diagnostics written to stderr.",
    )

    @property
    def cache_dir(self) -> Path:
        try:
            return self.SMART_NODE_CACHE_DIR.expanduser()
        except RuntimeError as exc:
            raise ConfigurationError(
                f"Cannot resolve SMART_NODE_CACHE_DIR {str(self.SMART_NODE_CACHE_DIR)!r}: {exc}"
            ) from exc


@lru_cache()
def get_runtime_config() -> RuntimeConfig:
    """Return cached runtime settings instance."""

    return RuntimeConfig()
