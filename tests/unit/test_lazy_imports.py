"""Tests for lazy import system in nostrkit.__init__."""

from __future__ import annotations

import importlib
import sys

import pytest


class TestLazyImports:
    """Test PEP 562 lazy loading in nostrkit.__init__."""

    def test_lazy_import_does_not_eagerly_load(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Importing nostrkit does not load its subpackages."""
        for mod in list(sys.modules):
            if mod == "nostrkit" or mod.startswith("nostrkit."):
                monkeypatch.delitem(sys.modules, mod)

        importlib.import_module("nostrkit")

        assert "nostrkit.core" not in sys.modules
        assert "nostrkit.models" not in sys.modules
        assert "nostrkit.nips" not in sys.modules
        assert "nostrkit.utils" not in sys.modules

    def test_lazy_import_resolves_on_access(self) -> None:
        from nostrkit import RelayPool
        from nostrkit.core.pool import RelayPool as DirectRelayPool

        assert RelayPool is DirectRelayPool

    def test_lazy_function_resolves(self) -> None:
        from nostrkit import verify_event
        from nostrkit.nips.nip01 import verify_event as direct

        assert verify_event is direct

    def test_lazy_import_caches_after_first_access(self) -> None:
        """Resolved attributes are cached in the module globals."""
        import nostrkit

        _ = nostrkit.PrivateKey

        assert "PrivateKey" in vars(nostrkit)

    def test_lazy_import_invalid_attribute(self) -> None:
        import nostrkit

        with pytest.raises(AttributeError, match="no_such_thing"):
            _ = getattr(nostrkit, "no_such_thing")  # noqa: B009

    def test_all_exports_are_in_lazy_imports(self) -> None:
        """__all__ and _LAZY_IMPORTS stay in sync."""
        import nostrkit

        assert set(nostrkit.__all__) == set(nostrkit._LAZY_IMPORTS)

    def test_dir_returns_all(self) -> None:
        import nostrkit

        assert dir(nostrkit) == nostrkit.__all__

    def test_version_is_accessible(self) -> None:
        """__version__ is read from package metadata."""
        import nostrkit

        assert isinstance(nostrkit.__version__, str)
        assert nostrkit.__version__
