"""Runtime settings loaded from the environment."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

DEFAULT_TIMEZONE = "America/New_York"
DEFAULT_PROVIDERS = ("hydro", "neviweb")
DEFAULT_PARTICIPANT_ID = "11689"
DEFAULT_HTTP_TIMEOUT = 30.0


class HqPeakError(Exception):
    """Base exception for hqpeak errors."""
    pass


class ConfigError(HqPeakError):
    """Raised when the environment does not describe a usable setup."""
    pass


@dataclass
class Settings:
    """Settings for providers, time zone and period table."""

    timezone: str = DEFAULT_TIMEZONE
    periods_file: Path | None = None
    providers: tuple[str, ...] = DEFAULT_PROVIDERS
    neviweb_username: str | None = None
    neviweb_password: str | None = field(default=None, repr=False)
    neviweb_participant_id: str = DEFAULT_PARTICIPANT_ID
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def load_settings(env_file: Path | None = None) -> Settings:
    """Build Settings from environment variables (and a .env file, if any)."""
    load_dotenv(env_file)

    periods_file = os.environ.get("HQPEAK_PERIODS_FILE")
    providers = tuple(
        name.strip().lower()
        for name in os.environ.get("HQPEAK_PROVIDERS", ",".join(DEFAULT_PROVIDERS)).split(",")
        if name.strip()
    )
    unknown = [name for name in providers if name not in DEFAULT_PROVIDERS]
    if unknown:
        raise ConfigError(
            f"Unknown provider(s) in HQPEAK_PROVIDERS: {', '.join(unknown)}\n"
            f"Valid values: {', '.join(DEFAULT_PROVIDERS)}"
        )

    try:
        timeout = float(os.environ.get("HQPEAK_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT))
    except ValueError:
        raise ConfigError("HQPEAK_HTTP_TIMEOUT must be a number of seconds")

    timezone = os.environ.get("HQPEAK_TIMEZONE", DEFAULT_TIMEZONE)
    try:
        ZoneInfo(timezone)
    except (KeyError, ValueError):
        raise ConfigError(f"Unknown time zone in HQPEAK_TIMEZONE: {timezone}")

    return Settings(
        timezone=timezone,
        periods_file=Path(periods_file) if periods_file else None,
        providers=providers or DEFAULT_PROVIDERS,
        neviweb_username=os.environ.get("NEVIWEB_USERNAME"),
        neviweb_password=os.environ.get("NEVIWEB_PASSWORD"),
        neviweb_participant_id=os.environ.get("NEVIWEB_PARTICIPANT_ID", DEFAULT_PARTICIPANT_ID),
        http_timeout=timeout,
    )
