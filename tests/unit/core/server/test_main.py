"""Tests for the server entry point: bind guard, transport and startup log."""

from __future__ import annotations

import logging

import pytest

from compass.core.server import main


@pytest.mark.parametrize(
    "host, expected",
    [
        ("127.0.0.1", True),
        ("::1", True),
        ("localhost", True),
        ("0.0.0.0", False),
        ("10.0.0.5", False),
        ("example.com", False),
    ],
)
def test_is_loopback_host(host, expected):
    assert main._is_loopback_host(host) is expected


def test_refuses_public_bind(monkeypatch):
    monkeypatch.setenv("COMPASS_HOST", "0.0.0.0")
    monkeypatch.setenv("COMPASS_ALLOW_INSECURE_BIND", "false")
    with pytest.raises(RuntimeError, match="non-loopback"):
        main.run()


def test_starts_streamable_http(monkeypatch):
    calls = {}

    class _FakeServer:
        def run(self, **kwargs):
            calls.update(kwargs)

    monkeypatch.setenv("COMPASS_PORT", "9123")
    monkeypatch.setattr(main, "create_app", lambda settings_override: _FakeServer())
    main.run()
    assert calls == {"transport": "streamable-http", "host": "127.0.0.1", "port": 9123}


def test_startup_logs_provider_order(monkeypatch, caplog):
    class _FakeServer:
        def run(self, **kwargs):
            pass

    monkeypatch.setenv("PROVIDER_PRIORITY", '["anthropic", "groq"]')
    monkeypatch.setattr(main, "create_app", lambda settings_override: _FakeServer())
    with caplog.at_level(logging.INFO, logger=main.__name__):
        main.run()
    assert "Provider order: anthropic -> groq (preferred: auto)" in caplog.text
    assert "POST /api/chat/stream" in caplog.text
