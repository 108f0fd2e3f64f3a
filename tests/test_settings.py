import os

import pytest

from core.errors import ConfigurationError
from core.settings import DEFAULT_USER_AGENT, ScanSettings, parse_bool


def test_defaults():
    settings = ScanSettings.from_env(env={})
    assert settings.navigation_timeout_ms == 30000
    assert settings.headless is True
    assert settings.user_agent == DEFAULT_USER_AGENT
    assert settings.concurrency_limit == 10
    assert settings.customer_filter is None
    assert settings.session_mode == "isolated"


def test_environment_values():
    settings = ScanSettings.from_env(env={
        "BROWSER_TIMEOUT": "45000",
        "BROWSER_HEADLESS": "false",
        "BROWSER_USER_AGENT": "scanner/1.0",
        "BATCH_SIZE": "4",
        "CUSTOMER_FILTER": "acme",
        "SETTLE_DELAY_MS": "0",
        "EXTRACTOR_TIMEOUT": "2.5",
        "SESSION_MODE": "Pooled",
        "RESULTS_DIR": "/tmp/out",
    })
    assert settings.navigation_timeout_ms == 45000
    assert settings.headless is False
    assert settings.user_agent == "scanner/1.0"
    assert settings.concurrency_limit == 4
    assert settings.customer_filter == "acme"
    assert settings.settle_delay_ms == 0
    assert settings.extractor_timeout_s == 2.5
    assert settings.session_mode == "pooled"
    assert settings.results_dir == "/tmp/out"


def test_dotenv_file_is_loaded(tmp_path, monkeypatch):
    monkeypatch.delenv("BATCH_SIZE", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("BATCH_SIZE=3\n")

    settings = ScanSettings.from_env(dotenv_path=str(env_file))

    try:
        assert settings.concurrency_limit == 3
    finally:
        os.environ.pop("BATCH_SIZE", None)


@pytest.mark.parametrize("env", [
    {"BATCH_SIZE": "0"},
    {"BATCH_SIZE": "ten"},
    {"BROWSER_TIMEOUT": "-1"},
    {"BROWSER_HEADLESS": "maybe"},
    {"SESSION_MODE": "shared"},
    {"EXTRACTOR_TIMEOUT": "0"},
])
def test_invalid_environment_values(env):
    with pytest.raises(ConfigurationError):
        ScanSettings.from_env(env=env)


def test_overrides_skip_none():
    settings = ScanSettings().with_overrides(concurrency_limit=2, headless=None, customer_filter=None)
    assert settings.concurrency_limit == 2
    assert settings.headless is True


def test_overrides_are_validated():
    with pytest.raises(ConfigurationError):
        ScanSettings().with_overrides(concurrency_limit=0)


@pytest.mark.parametrize("value,expected", [("true", True), ("YES", True), ("0", False), (" off ", False)])
def test_parse_bool(value, expected):
    assert parse_bool(value) is expected
