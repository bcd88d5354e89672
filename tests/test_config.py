"""Tests for settings loaded from the environment."""

from pathlib import Path

import pytest
from hqpeak.config import ConfigError, load_settings

ENV_VARS = (
    "HQPEAK_TIMEZONE",
    "HQPEAK_PERIODS_FILE",
    "HQPEAK_PROVIDERS",
    "HQPEAK_HTTP_TIMEOUT",
    "NEVIWEB_USERNAME",
    "NEVIWEB_PASSWORD",
    "NEVIWEB_PARTICIPANT_ID",
)


@pytest.fixture
def env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Point at an empty .env so a developer's own file is not picked up
    env_file = tmp_path / ".env"
    env_file.write_text("")
    return env_file


def test_defaults(env):
    """Defaults apply when nothing is set."""
    settings = load_settings(env)

    assert settings.timezone == "America/New_York"
    assert settings.providers == ("hydro", "neviweb")
    assert settings.periods_file is None
    assert settings.neviweb_username is None
    assert settings.neviweb_participant_id == "11689"
    assert settings.http_timeout == 30.0


def test_environment_overrides(env, monkeypatch):
    """Environment variables override every default."""
    monkeypatch.setenv("HQPEAK_TIMEZONE", "America/Toronto")
    monkeypatch.setenv("HQPEAK_PROVIDERS", "Neviweb, hydro")
    monkeypatch.setenv("HQPEAK_PERIODS_FILE", "/etc/hqpeak/periods.yaml")
    monkeypatch.setenv("HQPEAK_HTTP_TIMEOUT", "5")
    monkeypatch.setenv("NEVIWEB_USERNAME", "user@example.com")
    monkeypatch.setenv("NEVIWEB_PASSWORD", "secret")

    settings = load_settings(env)

    assert settings.tz.key == "America/Toronto"
    assert settings.providers == ("neviweb", "hydro")
    assert settings.periods_file == Path("/etc/hqpeak/periods.yaml")
    assert settings.http_timeout == 5.0
    assert settings.neviweb_username == "user@example.com"
    assert "secret" not in repr(settings)


def test_dotenv_file_is_loaded(env, monkeypatch):
    """Values from a .env file are picked up."""
    env.write_text("NEVIWEB_USERNAME=from-dotenv\n")
    settings = load_settings(env)
    assert settings.neviweb_username == "from-dotenv"
    monkeypatch.delenv("NEVIWEB_USERNAME", raising=False)


def test_unknown_provider(env, monkeypatch):
    """Unknown provider names are rejected."""
    monkeypatch.setenv("HQPEAK_PROVIDERS", "hydro,ontario")
    with pytest.raises(ConfigError, match="ontario"):
        load_settings(env)


def test_invalid_timeout(env, monkeypatch):
    """A non-numeric timeout is rejected."""
    monkeypatch.setenv("HQPEAK_HTTP_TIMEOUT", "soon")
    with pytest.raises(ConfigError, match="HQPEAK_HTTP_TIMEOUT"):
        load_settings(env)


def test_unknown_timezone(env, monkeypatch):
    """An unknown time zone is rejected."""
    monkeypatch.setenv("HQPEAK_TIMEZONE", "Mars/Olympus_Mons")
    with pytest.raises(ConfigError, match="Mars/Olympus_Mons"):
        load_settings(env)
