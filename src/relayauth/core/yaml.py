"""YAML configuration loading for relayauth.

Used by [SessionConfig.from_yaml()][relayauth.session.config.SessionConfig.from_yaml]
and [ClientConfig.from_yaml()][relayauth.session.config.ClientConfig.from_yaml].
Parsing goes through ``yaml.safe_load`` so that YAML tags can never
instantiate Python objects.

Examples:
    ```python
    from relayauth.core.yaml import load_yaml

    config = load_yaml("config/relayauth.yaml")
    ```
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError


def load_yaml(config_path: str | Path) -> dict[str, Any]:
    """Load and parse a YAML configuration file into a dictionary.

    Args:
        config_path: Path to the YAML file (absolute or relative).

    Returns:
        Parsed configuration. An existing but empty file yields ``{}``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If the file is not valid YAML or its top level
            is not a mapping.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with path.open(encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config root must be a mapping, got {type(data).__name__}: {config_path}"
        )
    return data
