"""Signing key sourced from the process environment.

The CLI and any long-running listener resolve their identity through
[KeysConfig][nostrkit.utils.keys.KeysConfig]: the config names an
environment variable, and validation reads and parses it immediately, so
a bad ``nsec`` aborts startup instead of the first publish.

Warning:
    Configuration files only ever carry the *name* of the variable. The
    secret itself stays out of YAML, logs and ``model_dump`` output.

Examples:
    ```python
    config = KeysConfig(keys_env="LISTENER_KEY")
    signer = LocalSigner(config.keys)
    ```
"""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, Field, model_validator

from nostrkit.models.keys import PrivateKey


ENV_PRIVATE_KEY = "PRIVATE_KEY"  # pragma: allowlist secret


def load_keys_from_env(env_var: str = ENV_PRIVATE_KEY) -> PrivateKey:
    """Read ``env_var`` and parse it as an ``nsec1...`` or 64-char hex key.

    Raises:
        ValueError: The variable is unset or blank.
        KeyMaterialError: The value is not a usable secp256k1 secret.
    """
    raw = os.environ.get(env_var, "")
    if not raw.strip():
        raise ValueError(
            f"{env_var} environment variable is required "
            "(create a key with `python -m nostrkit keygen`)"
        )
    return PrivateKey.parse(raw)


class KeysConfig(BaseModel):
    """Identity settings for components that sign events.

    ``keys`` is filled from ``keys_env`` during validation unless the caller
    passes a [PrivateKey][nostrkit.models.keys.PrivateKey] directly.
    """

    model_config = {"arbitrary_types_allowed": True}

    keys_env: str = Field(
        default=ENV_PRIVATE_KEY,
        min_length=1,
        description="Name of the environment variable holding the nsec or hex key",
    )
    keys: PrivateKey = Field(description="Signing key resolved from keys_env")

    @model_validator(mode="before")
    @classmethod
    def _resolve_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "keys" in data:
            return data
        return {**data, "keys": load_keys_from_env(data.get("keys_env", ENV_PRIVATE_KEY))}
