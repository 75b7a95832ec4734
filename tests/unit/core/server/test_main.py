"""Tests for the server entry point's bind guard."""

from __future__ import annotations

import pytest

from moodlens.core.server import main


@pytest.mark.parametrize("host", ["127.0.0.1", "localhost", "::1"])
def test_loopback_hosts(host):
    assert main._is_loopback_host(host)


@pytest.mark.parametrize("host", ["0.0.0.0", "192.168.1.10", "example.com"])
def test_non_loopback_hosts(host):
    assert not main._is_loopback_host(host)


def test_refuses_public_bind(monkeypatch):
    monkeypatch.setenv("MOODLENS_HOST", "0.0.0.0")
    monkeypatch.setattr(main, "create_app", lambda **kwargs: pytest.fail("server created"))
    with pytest.raises(RuntimeError, match="non-loopback"):
        main.run()


def test_insecure_bind_override(monkeypatch):
    started = {}

    class _FakeServer:
        def run(self, **kwargs):
            started.update(kwargs)

    monkeypatch.setenv("MOODLENS_HOST", "0.0.0.0")
    monkeypatch.setenv("MOODLENS_ALLOW_INSECURE_BIND", "true")
    monkeypatch.setattr(main, "create_app", lambda **kwargs: _FakeServer())
    main.run()
    assert started == {"transport": "streamable-http", "host": "0.0.0.0", "port": 8011}
