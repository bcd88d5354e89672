"""Hydro-Québec open data collector.

Fetches announced peak events for the CPC-D (winter credit) offer from the
Hydro-Québec open data portal. No authentication is needed.
"""

import logging
from datetime import datetime
from typing import Any

import httpx

from ..config import DEFAULT_HTTP_TIMEOUT
from ..models import PeakEvent

logger = logging.getLogger(__name__)

API_BASE_URL = (
    "https://donnees.hydroquebec.com/api/explore/v2.1/catalog/datasets/evenements-pointe/records"
)
OFFER = "CPC-D"
DEFAULT_LIMIT = 5


def build_params(limit: int = DEFAULT_LIMIT) -> dict[str, Any]:
    """Query parameters for the most recent CPC-D events."""
    return {
        "where": f'offre = "{OFFER}"',
        "order_by": "datedebut desc",
        "limit": limit,
    }


def parse_records(data: dict[str, Any]) -> list[PeakEvent]:
    """Convert an API response into PeakEvents.

    Records look like:
        {"offre": "CPC-D", "datedebut": "2025-01-16T11:00:00+00:00",
         "datefin": "2025-01-16T14:00:00+00:00", "plagehoraire": "AM", ...}
    """
    events = []
    for record in data.get("results") or []:
        try:
            begin = datetime.fromisoformat(record["datedebut"])
            end = datetime.fromisoformat(record["datefin"])
            events.append(PeakEvent(begin=begin, end=end))
        except (KeyError, TypeError, ValueError) as e:
            # Skip invalid records
            logger.warning("Skipping malformed Hydro-Quebec record %s: %s", record, e)
            continue

    return events


class HydroQuebecProvider:
    """Peak data provider backed by the Hydro-Québec open data API."""

    name = "hydro"

    def __init__(self, timeout: float = DEFAULT_HTTP_TIMEOUT, limit: int = DEFAULT_LIMIT):
        self.timeout = timeout
        self.limit = limit

    def fetch_json(self) -> dict[str, Any]:
        response = httpx.get(API_BASE_URL, params=build_params(self.limit), timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def retrieve_events(self) -> list[PeakEvent]:
        """Fetch and parse events. Any failure yields an empty list."""
        try:
            data = self.fetch_json()
        except httpx.HTTPError as e:
            logger.error("Failed to fetch JSON data at URL: %s (%s)", API_BASE_URL, e)
            return []
        except ValueError as e:
            logger.error("Invalid JSON from Hydro-Quebec: %s", e)
            return []

        logger.debug("Raw data received from Hydro-Quebec: %s", data)
        if not isinstance(data, dict):
            logger.error("Unexpected Hydro-Quebec response shape: %r", data)
            return []
        return parse_records(data)
