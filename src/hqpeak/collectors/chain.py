"""Provider protocol and fallback chain."""

import logging
from collections.abc import Sequence
from typing import Protocol

from ..config import ConfigError, Settings
from ..models import PeakEvent
from .hydro_quebec import HydroQuebecProvider
from .neviweb import NeviwebProvider, NeviwebSession

logger = logging.getLogger(__name__)


class PeakDataProvider(Protocol):
    name: str

    def retrieve_events(self) -> list[PeakEvent]: ...


class FallbackProvider:
    """Tries each provider in order and returns the first non-empty result."""

    name = "fallback"

    def __init__(self, providers: Sequence[PeakDataProvider]):
        if not providers:
            raise ConfigError("At least one peak data provider is required")
        self.providers = list(providers)

    def retrieve_events(self) -> list[PeakEvent]:
        for provider in self.providers:
            events = provider.retrieve_events()
            if events:
                logger.info("Retrieved %d peak event(s) from %s", len(events), provider.name)
                return events
            logger.warning("No peak events from %s", provider.name)
        return []


def build_provider(settings: Settings) -> FallbackProvider:
    """Assemble the provider chain named in settings."""
    providers: list[PeakDataProvider] = []
    for name in settings.providers:
        if name == "hydro":
            providers.append(HydroQuebecProvider(timeout=settings.http_timeout))
        elif name == "neviweb":
            if not (settings.neviweb_username and settings.neviweb_password):
                logger.debug("Neviweb credentials not set, leaving it out of the chain")
                continue
            providers.append(
                NeviwebProvider(
                    NeviwebSession(settings.neviweb_username, settings.neviweb_password),
                    participant_id=settings.neviweb_participant_id,
                    timeout=settings.http_timeout,
                )
            )
        else:
            raise ConfigError(f"Unknown provider: {name}")
    return FallbackProvider(providers)
