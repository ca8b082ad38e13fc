"""Tests for lazy import system in relayauth.__init__."""

from __future__ import annotations

import pytest


class TestLazyImports:
    """Test PEP 562 lazy loading in relayauth.__init__."""

    def test_lazy_import_resolves_on_access(self) -> None:
        from relayauth import RelayAuthSession
        from relayauth.session.session import RelayAuthSession as DirectSession

        assert RelayAuthSession is DirectSession

    def test_lazy_import_caches_after_first_access(self) -> None:
        import relayauth

        _ = relayauth.SignerAdapter

        assert "SignerAdapter" in vars(relayauth)

    def test_lazy_import_invalid_attribute(self) -> None:
        import relayauth

        with pytest.raises(AttributeError, match="no_such_thing"):
            _ = getattr(relayauth, "no_such_thing")  # noqa: B009

    def test_all_exports_are_in_lazy_imports(self) -> None:
        import relayauth

        assert set(relayauth.__all__) == set(relayauth._LAZY_IMPORTS)

    def test_every_lazy_import_resolves(self) -> None:
        import relayauth

        for name in relayauth.__all__:
            assert getattr(relayauth, name) is not None

    def test_dir_lists_public_api(self) -> None:
        import relayauth

        assert "AuthClient" in dir(relayauth)
