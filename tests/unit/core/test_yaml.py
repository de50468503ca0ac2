"""
Unit tests for core.yaml module.

Tests:
- load_yaml() parsing of mappings and empty files
- FileNotFoundError for missing files
- ConfigurationError for invalid YAML and non-mapping documents
- safe_load refuses arbitrary Python object tags
"""

import pytest

from nostrkit.core.yaml import load_yaml
from nostrkit.exceptions import ConfigurationError


class TestLoadYaml:
    """load_yaml()."""

    def test_mapping(self, tmp_path):
        path = tmp_path / "relays.yaml"
        path.write_text("relays:\n  - wss://nos.lol\nverify_events: false\n")
        assert load_yaml(path) == {"relays": ["wss://nos.lol"], "verify_events": False}

    def test_accepts_str_path(self, tmp_path):
        path = tmp_path / "relays.yaml"
        path.write_text("keepalive: {interval: 15}\n")
        assert load_yaml(str(path)) == {"keepalive": {"interval": 15}}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml(path) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("relays: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_yaml(path)

    def test_list_document_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- wss://nos.lol\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_yaml(path)

    def test_python_tags_refused(self, tmp_path):
        path = tmp_path / "unsafe.yaml"
        path.write_text("value: !!python/object/apply:os.system ['true']\n")
        with pytest.raises(ConfigurationError):
            load_yaml(path)
