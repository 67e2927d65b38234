"""Configuration: environment settings and YAML pipeline tunables."""

from chunkwise.config.loader import load_config
from chunkwise.config.settings import Settings

__all__ = ["Settings", "load_config"]
