"""Key loading and WebSocket transport utilities.

The utils layer depends only on [nostrkit.models][nostrkit.models] and is
used by [nostrkit.core][nostrkit.core] and the CLI.

Attributes:
    keys: Private key loading from environment variables (nsec1 bech32 or
        hex) with Pydantic validation.
    transport: aiohttp-based WebSocket connector used by the relay pool,
        with optional TLS verification bypass.
"""

from nostrkit.utils.keys import ENV_PRIVATE_KEY, KeysConfig, load_keys_from_env
from nostrkit.utils.transport import AiohttpConnector, Connector, WebSocketLike


__all__ = [
    "ENV_PRIVATE_KEY",
    "AiohttpConnector",
    "Connector",
    "KeysConfig",
    "WebSocketLike",
    "load_keys_from_env",
]
