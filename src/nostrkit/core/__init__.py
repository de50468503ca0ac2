"""Core layer: relay session pool, structured logging and YAML config loading.

Sits at the top of the DAG and depends on
[nostrkit.models][nostrkit.models], [nostrkit.nips][nostrkit.nips] and
[nostrkit.utils][nostrkit.utils].

Attributes:
    RelayPool: Pool of relay WebSocket sessions with single-slot callbacks.
        See [RelayPool][nostrkit.core.pool.RelayPool].
    RelayConnection: Per-relay state, outbound queue and keepalive task.
        See [RelayConnection][nostrkit.core.connection.RelayConnection].
    Logger: Structured logger supporting key=value and JSON output modes.
        See [Logger][nostrkit.core.logger.Logger].
    YAML: Safe YAML loading with ``yaml.safe_load()``.
        See [load_yaml()][nostrkit.core.yaml.load_yaml].

Examples:
    ```python
    from nostrkit.core import RelayPool

    pool = RelayPool.from_yaml("relays.yaml")
    async with pool:
        ...
    ```
"""

from .connection import RelayConnection
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .pool import (
    KeepaliveConfig,
    RelayPool,
    RelayPoolConfig,
    RelayTimeoutsConfig,
    TransportConfig,
)
from .yaml import load_yaml


__all__ = [
    "KeepaliveConfig",
    "Logger",
    "RelayConnection",
    "RelayPool",
    "RelayPoolConfig",
    "RelayTimeoutsConfig",
    "StructuredFormatter",
    "TransportConfig",
    "format_kv_pairs",
    "load_yaml",
]
