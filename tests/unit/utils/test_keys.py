"""
Unit tests for utils.keys module.

Tests:
- ENV_PRIVATE_KEY constant
- load_keys_from_env() - environment variable loading with hex and nsec keys
- KeysConfig - Pydantic model that loads keys from the environment
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from nostrkit.exceptions import InvalidKeyEncodingError, InvalidPrefixError, KeyMaterialError
from nostrkit.models.keys import PrivateKey
from nostrkit.utils.keys import ENV_PRIVATE_KEY, KeysConfig, load_keys_from_env


# Valid secp256k1 test keys (DO NOT USE IN PRODUCTION)
VALID_HEX_KEY = (
    "67dea2ed018072d675f5415ecfaed7d2597555e202d85b3d65ea4e58d2d92ffa"  # pragma: allowlist secret
)
VALID_NSEC_KEY = (
    "nsec1vl029mgpspedva04g90vltkh6fvh240zqtv9k0t9af8935ke9laqsnlfe5"  # pragma: allowlist secret
)

INVALID_KEYS = [
    "invalid_key",
    "0" * 32,
    "0" * 128,
    "nsec1invalid",
    "npub10elfcs4fr0l0r8af98jlmgdh9c8tcxjvz9qkw038js35mp4dma8qzvjptg",
    "xyz" * 21 + "x",
]


class TestEnvPrivateKeyConstant:
    """ENV_PRIVATE_KEY constant value."""

    def test_constant_value(self):
        assert ENV_PRIVATE_KEY == "PRIVATE_KEY"  # pragma: allowlist secret


class TestLoadKeysFromEnv:
    """load_keys_from_env()."""

    def test_raises_when_env_var_not_set(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="PRIVATE_KEY environment variable is required"):
                load_keys_from_env("PRIVATE_KEY")

    def test_raises_when_env_var_is_empty(self):
        with patch.dict(os.environ, {"PRIVATE_KEY": ""}):  # pragma: allowlist secret
            with pytest.raises(ValueError, match="keygen"):
                load_keys_from_env("PRIVATE_KEY")

    def test_loads_hex(self):
        with patch.dict(os.environ, {"PRIVATE_KEY": VALID_HEX_KEY}):
            assert load_keys_from_env() == PrivateKey.from_hex(VALID_HEX_KEY)

    def test_loads_nsec(self):
        with patch.dict(os.environ, {"PRIVATE_KEY": VALID_NSEC_KEY}):
            assert load_keys_from_env().hex == VALID_HEX_KEY

    def test_custom_env_var(self):
        with patch.dict(os.environ, {"MY_RELAY_KEY": VALID_NSEC_KEY}):
            assert load_keys_from_env("MY_RELAY_KEY").nsec == VALID_NSEC_KEY

    def test_surrounding_whitespace_ignored(self):
        with patch.dict(os.environ, {"PRIVATE_KEY": f"  {VALID_HEX_KEY}\n"}):
            assert load_keys_from_env().hex == VALID_HEX_KEY

    @pytest.mark.parametrize("value", INVALID_KEYS)
    def test_invalid_keys_raise_key_material_error(self, value):
        with patch.dict(os.environ, {"PRIVATE_KEY": value}):
            with pytest.raises(KeyMaterialError):
                load_keys_from_env()

    def test_npub_is_prefix_error(self):
        with patch.dict(os.environ, {"PRIVATE_KEY": INVALID_KEYS[4]}):
            with pytest.raises(InvalidPrefixError):
                load_keys_from_env()

    def test_bad_hex_is_encoding_error(self):
        with patch.dict(os.environ, {"PRIVATE_KEY": "xyz" * 21 + "x"}):
            with pytest.raises(InvalidKeyEncodingError):
                load_keys_from_env()


class TestKeysConfig:
    """KeysConfig Pydantic model."""

    def test_loads_from_default_env(self):
        with patch.dict(os.environ, {"PRIVATE_KEY": VALID_HEX_KEY}):
            config = KeysConfig()
            assert config.keys_env == "PRIVATE_KEY"
            assert config.keys.hex == VALID_HEX_KEY

    def test_loads_from_custom_env(self):
        with patch.dict(os.environ, {"LISTENER_KEY": VALID_NSEC_KEY}):
            config = KeysConfig(keys_env="LISTENER_KEY")
            assert config.keys.hex == VALID_HEX_KEY

    def test_explicit_keys_skip_env(self):
        key = PrivateKey.generate()
        with patch.dict(os.environ, {}, clear=True):
            assert KeysConfig(keys=key).keys is key

    def test_missing_env_fails_validation(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValidationError, match="PRIVATE_KEY"):
                KeysConfig()

    def test_invalid_key_fails_validation(self):
        with patch.dict(os.environ, {"PRIVATE_KEY": "invalid_key"}):
            with pytest.raises(ValidationError):
                KeysConfig()

    def test_empty_env_name_rejected(self):
        with pytest.raises(ValidationError):
            KeysConfig(keys_env="", keys=PrivateKey.generate())
