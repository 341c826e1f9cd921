"""
Client for the Dawarich points API, the source of recorded positions.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import requests

from geotagmedia.errors import TransportError, TransportTimeout
from geotagmedia.models import LocationCandidate
from geotagmedia.timestamps import TimestampField, format_api_timestamp

logger = logging.getLogger(__name__)

# (connect, read) seconds
DEFAULT_TIMEOUT = (15, 120)


@dataclass(frozen=True)
class PointFields:
    """
    JSON keys of a point in the API response.

    :param collection: key holding the point list when the response is an
        object rather than a bare list
    """

    latitude: str = "latitude"
    longitude: str = "longitude"
    timestamp: str = "timestamp"
    country: str = "country"
    city: str = "city"
    country_code: str = "country_code"
    collection: Optional[str] = None


def _to_float(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def parse_point(point, fields: PointFields = PointFields()) -> LocationCandidate:
    """
    Build a candidate from one JSON point. Values that cannot be used are
    left as None for the selector to drop.
    """
    if not isinstance(point, dict):
        logger.debug("ignoring non-object point %r", point)
        return LocationCandidate(None, None)
    return LocationCandidate(
        latitude=_to_float(point.get(fields.latitude)),
        longitude=_to_float(point.get(fields.longitude)),
        timestamp=TimestampField.from_json(point.get(fields.timestamp)).to_instant(),
        country=_to_text(point.get(fields.country)),
        city=_to_text(point.get(fields.city)),
        country_code=_to_text(point.get(fields.country_code)),
    )


class DawarichClient:
    """
    Query recorded points for a time range.
    """

    def __init__(self, base_url: str, api_key: str, timeout=DEFAULT_TIMEOUT,
                 fields: PointFields = PointFields(), session: Optional[requests.Session] = None):
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout
        self.fields = fields
        self.session = session if session is not None else requests.Session()

    def query_range(self, start: datetime, end: datetime) -> list:
        """
        Get all points between start and end, inclusive. start may equal end.

        :return: list of LocationCandidate, possibly empty
        :raise TransportTimeout: the request timed out
        :raise TransportError: network, HTTP or payload problems
        """
        params = {
            "api_key": self.api_key,
            "start_at": format_api_timestamp(start),
            "end_at": format_api_timestamp(end),
            "order": "asc",
        }
        logger.debug("querying %s from %s to %s", self.base_url, params["start_at"], params["end_at"])
        try:
            resp = self.session.get(self.base_url, params=params, timeout=self.timeout)
            resp.raise_for_status()
        except requests.Timeout as err:
            raise TransportTimeout(f"Dawarich API timed out: {err}") from err
        except requests.RequestException as err:
            raise TransportError(f"Dawarich API request failed: {err}") from err
        try:
            payload = resp.json()
        except ValueError as err:
            raise TransportError(f"invalid JSON from Dawarich API: {resp.text[:200]!r}") from err
        if self.fields.collection and isinstance(payload, dict):
            payload = payload.get(self.fields.collection)
        if not isinstance(payload, list):
            raise TransportError(f"unexpected Dawarich API response type: {type(payload).__name__}")
        logger.debug("got %d points", len(payload))
        return [parse_point(pp, self.fields) for pp in payload]
