"""Engine configuration with support for environment variables and YAML files.

Configuration priority (highest to lowest):
1. Explicit kwargs passed to load_config()
2. Environment variables (CATALOG_*)
3. YAML config file (explicit path, or catalog.config.yaml discovered from cwd)
4. Default values

Example catalog.config.yaml:
```yaml
engine:
  base_url: http://localhost:3000
  api_key: your-api-key
  http_timeout: 10.0
  bulk_path: /api/catalog/{entity}/bulk
```

The settings may also sit at the top level of the file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

# Users place this in their project root (or any parent of the cwd)
CONFIG_FILENAME = "catalog.config.yaml"
CONFIG_SECTION = "engine"


@dataclass
class EngineConfig:
    """Configuration for the bulk mutation side of the engine.

    The pure tree operations need no configuration; only the
    BulkOperationCoordinator talks to the catalog backend.

    Attributes:
        base_url: Catalog backend URL. Must be configured for bulk operations.
        api_key: Optional API key sent as a bearer token.
        http_timeout: Seconds before a bulk request times out (default: 10.0).
        bulk_path: Bulk endpoint path, `{entity}` is replaced by the entity
            name (default: /api/catalog/{entity}/bulk).
        shutdown_timeout: Max seconds to wait for in-flight requests when
            shutting down (default: 5.0).
    """

    base_url: str | None = None
    api_key: str | None = None
    http_timeout: float = 10.0
    bulk_path: str = "/api/catalog/{entity}/bulk"
    shutdown_timeout: float = 5.0


def find_config_file(start_path: str | Path | None = None) -> Path | None:
    """Find catalog.config.yaml in start_path or the nearest parent.

    Args:
        start_path: Directory to start search from (default: cwd).

    Returns:
        Path to config file if found, None otherwise.
    """
    current = Path(start_path) if start_path else Path.cwd()

    for parent in [current, *current.parents]:
        config_path = parent / CONFIG_FILENAME
        if config_path.is_file():
            return config_path

    return None


def _load_yaml_config(config_file: str | Path | None) -> dict[str, Any]:
    """Read the engine settings out of a YAML file.

    A missing file yields no settings. A file that is not valid YAML, or
    whose top level or `engine:` section is not a mapping, raises
    ConfigError.
    """
    path = Path(config_file) if config_file else find_config_file()
    if path is None or not path.exists():
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"{path} must contain a mapping, got {type(data).__name__}"
        )

    if CONFIG_SECTION in data:
        section = data[CONFIG_SECTION]
        if not isinstance(section, dict):
            raise ConfigError(f"'{CONFIG_SECTION}' in {path} must be a mapping")
        return section

    return {k: v for k, v in data.items() if not isinstance(v, dict)}


def load_config(
    config_file: str | Path | None = None,
    **overrides: Any,
) -> EngineConfig:
    """Load engine configuration with priority: overrides > env vars > yaml > defaults.

    Args:
        config_file: Optional path to YAML config file. When omitted,
            catalog.config.yaml is looked up from the cwd upwards.
        **overrides: Direct config overrides (highest priority).

    Returns:
        EngineConfig instance.

    Raises:
        ConfigError: The config file exists but is not a usable mapping.

    Example:
        # From environment variables
        config = load_config()

        # From YAML file with overrides
        config = load_config("catalog.yaml", api_key="override-key")

        # Explicit configuration
        config = load_config(base_url="http://localhost:3000")
    """
    config: dict[str, Any] = {}

    # 1. Load from YAML file (lowest priority after defaults)
    config.update(_load_yaml_config(config_file))

    # 2. Override with environment variables
    env_mapping = {
        "base_url": "CATALOG_BASE_URL",
        "api_key": "CATALOG_API_KEY",
        "http_timeout": "CATALOG_HTTP_TIMEOUT",
        "bulk_path": "CATALOG_BULK_PATH",
        "shutdown_timeout": "CATALOG_SHUTDOWN_TIMEOUT",
    }

    for key, env_var in env_mapping.items():
        if env_val := os.getenv(env_var):
            config[key] = env_val

    # 3. Override with explicit kwargs (highest priority)
    config.update({k: v for k, v in overrides.items() if v is not None})

    # Type conversions
    for key in ("http_timeout", "shutdown_timeout"):
        if key in config:
            config[key] = float(config[key])

    known = EngineConfig.__dataclass_fields__
    return EngineConfig(**{k: v for k, v in config.items() if k in known})
