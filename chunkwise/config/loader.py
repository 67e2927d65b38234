"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. ``config/config.yaml`` -- pipeline tunables checked into the repo
  2. ``.env`` file          -- local developer overrides (not committed)
  3. Environment vars       -- set at deploy time

:func:`load_config` reads the YAML file first, then deep-merges the
environment-derived values on top.
"""

from pathlib import Path

import yaml

from chunkwise.config.settings import Settings

_DEFAULTS: dict = {
    "segmentation": {
        "max_chunk_size": 500,
        "overlap": 50,
        "preserve_structure": True,
    },
    "enrichment": {
        "batch_size": 10,
        "batch_delay_ms": 200,
        "max_document_length": 20000,
        "max_context_tokens": 150,
        "save_prompt": True,
    },
    "chunk_store": {
        "batch_size": 100,
    },
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.  A missing file falls
            back to built-in defaults.
        settings: Pre-built settings; a fresh :class:`Settings` is created
            when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config: dict = {}
    _deep_merge(config, _copy(_DEFAULTS))

    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
        _deep_merge(config, yaml_config)

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "enrichment": {
            "enabled": settings.is_context_generation_enabled(),
            "model": settings.context_model,
        },
        "embedding": {
            "available_providers": settings.get_available_embedding_providers(),
        },
        "pipeline": {
            "max_retries": settings.ingestion_max_retries,
            "retry_backoff_seconds": settings.ingestion_retry_backoff_seconds,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(config, env_overrides)
    return config


def _copy(value: dict) -> dict:
    return {k: _copy(v) if isinstance(v, dict) else v for k, v in value.items()}


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
