"""YAML configuration loading.

Uses ``yaml.safe_load`` so a config file can only produce plain strings,
numbers, lists and dicts. Used by
[RelayPool.from_yaml()][nostrkit.core.pool.RelayPool.from_yaml] and the
CLI ``listen`` command.

Examples:
    ```python
    from nostrkit.core.yaml import load_yaml

    config = load_yaml("relays.yaml")
    pool = RelayPool.from_dict(config)
    ```
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from nostrkit.exceptions import ConfigurationError


def load_yaml(config_path: str | Path) -> dict[str, Any]:
    """Load and parse a YAML configuration file.

    Args:
        config_path: Path to the YAML file (absolute or relative).

    Returns:
        The parsed mapping. An empty file yields an empty dict.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If the file is not valid YAML or its top level
            is not a mapping.

    Warning:
        The structure is not validated here; pass the result to
        [RelayPoolConfig][nostrkit.core.pool.RelayPoolConfig].
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
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")
    return data
