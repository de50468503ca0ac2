r"""nostrkit -- Nostr key material, event codec and relay session pool.

Layers follow a DAG where imports flow strictly downward:

```text
                 core          Relay pool, logging, YAML config
               /   |
           nips  utils         NIP-01 codec, signers, keys/env, transport
               \   |
              models           Frozen keys, events, filters, messages
                 |
             exceptions
```

Attributes:
    models: Keys, events, filters and wire messages. No I/O.
    nips: NIP-01 serialization/signing/verification and NIP-07 signers.
    utils: Environment key loading and the aiohttp WebSocket connector.
    core: [RelayPool][nostrkit.core.pool.RelayPool], logger, YAML loading.

Note:
    Top-level imports (``from nostrkit import RelayPool``) use lazy loading
    and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("nostrkit")

__all__ = [
    "Event",
    "ExternalSigner",
    "Filter",
    "LocalSigner",
    "Logger",
    "PrivateKey",
    "PublicKey",
    "RelayPool",
    "RelayPoolConfig",
    "Signer",
    "sign_event",
    "verify_event",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "Logger": ("nostrkit.core", "Logger"),
    "RelayPool": ("nostrkit.core", "RelayPool"),
    "RelayPoolConfig": ("nostrkit.core", "RelayPoolConfig"),
    "Event": ("nostrkit.models", "Event"),
    "Filter": ("nostrkit.models", "Filter"),
    "PrivateKey": ("nostrkit.models", "PrivateKey"),
    "PublicKey": ("nostrkit.models", "PublicKey"),
    "ExternalSigner": ("nostrkit.nips", "ExternalSigner"),
    "LocalSigner": ("nostrkit.nips", "LocalSigner"),
    "Signer": ("nostrkit.nips", "Signer"),
    "sign_event": ("nostrkit.nips", "sign_event"),
    "verify_event": ("nostrkit.nips", "verify_event"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'nostrkit' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
