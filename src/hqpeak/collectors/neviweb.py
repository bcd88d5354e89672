"""Sinopé Neviweb collector.

Fetches CPC-D peak events for a Neviweb program participant. Neviweb needs a
session id obtained from a login request; the session is held by a
NeviwebSession owned by the provider.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import httpx

from ..config import DEFAULT_HTTP_TIMEOUT, DEFAULT_PARTICIPANT_ID
from ..models import PeakEvent

logger = logging.getLogger(__name__)

API_BASE = "https://neviweb.com/api"
LOGIN_URL = f"{API_BASE}/login"
EVENTS_URL = API_BASE + "/program-participants/{participant_id}/events"
CPC_D_PROGRAM_ID = "4"

# Neviweb reports startDateTime two hours early, without an offset
START_TIME_CORRECTION = timedelta(hours=2)
LOOKAROUND = timedelta(days=2)

HEADERS = {
    "accept": "application/json",
    "content-type": "application/json",
}


@dataclass
class NeviwebSession:
    """Credentials and the current session id."""

    username: str | None
    password: str | None = field(repr=False)
    session_id: str | None = None

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)

    def invalidate(self) -> None:
        self.session_id = None


def parse_start(value: str) -> datetime:
    """Parse Neviweb's startDateTime.

    It arrives as '2025-12-03 09:00:00', which is UTC but missing the 'T'
    separator and 'Z' suffix, and is two hours earlier than the real start.
    """
    start = datetime.fromisoformat(value.strip().replace(" ", "T") + "Z")
    return start + START_TIME_CORRECTION


def parse_end(value: str) -> datetime:
    """Parse Neviweb's endDateTime, which is reported correctly."""
    end = datetime.fromisoformat(value.strip())
    if end.tzinfo is None:
        end = end.replace(tzinfo=timezone.utc)
    return end


def parse_events(data: Any) -> list[PeakEvent]:
    """Convert a Neviweb events response into PeakEvents."""
    if not isinstance(data, list):
        return []

    events = []
    for item in data:
        try:
            events.append(
                PeakEvent(begin=parse_start(item["startDateTime"]), end=parse_end(item["endDateTime"]))
            )
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            logger.warning("Skipping malformed Neviweb event %s: %s", item, e)
            continue
    return events


class NeviwebProvider:
    """Peak data provider backed by the Neviweb API."""

    name = "neviweb"

    def __init__(
        self,
        session: NeviwebSession,
        participant_id: str = DEFAULT_PARTICIPANT_ID,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        clock: Callable[[], datetime] | None = None,
    ):
        self.session = session
        self.participant_id = participant_id
        self.timeout = timeout
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def login(self) -> bool:
        """Open a new session. Returns False on any failure."""
        logger.info("Neviweb login started")
        if not self.session.has_credentials:
            logger.error("Neviweb credentials missing: set NEVIWEB_USERNAME and NEVIWEB_PASSWORD")
            return False

        try:
            response = httpx.post(
                LOGIN_URL,
                headers=HEADERS,
                json={
                    "username": self.session.username,
                    "password": self.session.password,
                    "interface": "neviweb",
                    "stayConnected": 1,
                },
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.error("Failed to login to Neviweb API: %s", e)
            return False

        if not response.is_success:
            logger.error("Error during Neviweb login, status: %s", response.status_code)
            return False

        try:
            data = response.json()
        except ValueError as e:
            logger.error("Invalid Neviweb login response: %s", e)
            return False

        if not isinstance(data, dict) or not data.get("session"):
            logger.error("Invalid Neviweb login, response data: %s", data)
            return False

        self.session.session_id = data["session"]
        logger.info("Neviweb login completed successfully")
        return True

    def build_params(self) -> dict[str, str]:
        now = self.clock()
        return {
            "embed": "phases",
            "from": (now - LOOKAROUND).isoformat(),
            "to": (now + LOOKAROUND).isoformat(),
            "program$id": CPC_D_PROGRAM_ID,
        }

    def fetch_data(self, retry_login: bool = True) -> Any:
        """GET the events list, re-logging in and retrying once on failure."""
        url = EVENTS_URL.format(participant_id=self.participant_id)
        try:
            response = httpx.get(
                url,
                params=self.build_params(),
                headers={**HEADERS, "session-id": self.session.session_id or ""},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            if retry_login:
                logger.info("Session may have expired, attempting to re-login")
                self.session.invalidate()
                if not self.login():
                    return []
                return self.fetch_data(retry_login=False)
            logger.error("Failed to fetch data at URL: %s (%s)", url, e)
            return []

        if not response.is_success:
            logger.error("HTTP error %s from Neviweb: %s", response.status_code, response.text)
            return []

        try:
            data = response.json()
        except ValueError as e:
            logger.error("Invalid JSON from Neviweb: %s", e)
            return []

        logger.debug("Fetched data: %s", data)
        return data

    def retrieve_events(self) -> list[PeakEvent]:
        if not self.session.session_id and not self.login():
            return []
        return parse_events(self.fetch_data())
