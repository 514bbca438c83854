"""Tests for environment configuration."""

import pytest

from apps.approvals.config import (
    DEFAULT_TIMELINE_URL,
    DEFAULT_WEBHOOK_ENDPOINT,
    AppConfig,
    _redact,
)

_ENV_KEYS = (
    "WEBHOOK_ENDPOINT",
    "DISPATCH_TIMEOUT",
    "DISPATCH_MAX_ATTEMPTS",
    "DISPATCH_BASE_DELAY",
    "TIMELINE_URL",
    "QUEUE_LIMIT",
    "BACKEND_CORS_ORIGINS",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    config = AppConfig()
    assert config.webhook_endpoint == DEFAULT_WEBHOOK_ENDPOINT
    assert config.timeline_url == DEFAULT_TIMELINE_URL
    assert config.dispatch_timeout == 30.0
    assert config.dispatch_max_attempts == 3
    assert config.dispatch_base_delay == 1.0
    assert config.queue_limit == 100
    assert config.cors_origins == []
    assert config.log_level == "info"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("WEBHOOK_ENDPOINT", "https://hooks.example/action")
    monkeypatch.setenv("DISPATCH_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("DISPATCH_BASE_DELAY", "0.25")
    monkeypatch.setenv("BACKEND_CORS_ORIGINS", "http://a.example, ,http://b.example")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    config = AppConfig()
    assert config.webhook_endpoint == "https://hooks.example/action"
    assert config.dispatch_max_attempts == 5
    assert config.dispatch_base_delay == 0.25
    assert config.cors_origins == ["http://a.example", "http://b.example"]
    assert config.log_level == "debug"


def test_malformed_numbers_fail_fast(monkeypatch):
    monkeypatch.setenv("QUEUE_LIMIT", "lots")
    with pytest.raises(ValueError, match="QUEUE_LIMIT"):
        AppConfig()


def test_malformed_float_fails_fast(monkeypatch):
    monkeypatch.setenv("DISPATCH_TIMEOUT", "soon")
    with pytest.raises(ValueError, match="DISPATCH_TIMEOUT"):
        AppConfig()


def test_max_attempts_must_be_positive(monkeypatch):
    monkeypatch.setenv("DISPATCH_MAX_ATTEMPTS", "0")
    with pytest.raises(ValueError, match="DISPATCH_MAX_ATTEMPTS"):
        AppConfig()


def test_redact():
    assert _redact("") == "***"
    assert _redact("short") == "***"
    assert _redact("https://hooks.example/x") == "http***/x"


def test_to_dict_redacts_webhook_urls():
    data = AppConfig().to_dict()
    assert data["webhook_endpoint"] != DEFAULT_WEBHOOK_ENDPOINT
    assert "***" in data["webhook_endpoint"]
    assert "***" in data["timeline_url"]
    assert data["queue_limit"] == 100

    raw = AppConfig().to_dict(redact_secrets=False)
    assert raw["webhook_endpoint"] == DEFAULT_WEBHOOK_ENDPOINT
