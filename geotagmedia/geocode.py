"""
Reverse geocoding through Photon, and the rules for merging its answer
with the place names that came with a recorded point.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from geopy.exc import GeocoderTimedOut, GeopyError
from geopy.geocoders import Photon

from geotagmedia.errors import TransportError, TransportTimeout
from geotagmedia.models import Place

logger = logging.getLogger(__name__)

DEFAULT_PHOTON_URL = "https://photon.komoot.io"
USER_AGENT = "geotag-media"


class EnrichmentPolicy(enum.Enum):
    FILL_MISSING = "fill-missing"
    ALWAYS_OVERRIDE = "always-override"


def needs_enrichment(place: Place, policy: EnrichmentPolicy) -> bool:
    """
    Decide whether reverse geocoding is worth a request for this place.
    """
    if policy is EnrichmentPolicy.ALWAYS_OVERRIDE:
        return True
    return bool(place.missing_fields())


def merge_places(primary: Place, enriched: Optional[Place], policy: EnrichmentPolicy) -> Place:
    """
    Combine the point's own place names with the geocoder's.

    With FILL_MISSING a geocoder value is only used where the primary one is
    empty. With ALWAYS_OVERRIDE any non-empty geocoder value wins. An empty
    geocoder value never clears a primary one.
    """
    if enriched is None:
        return primary
    merged = {}
    for kk in ("country", "city", "country_code"):
        ours = getattr(primary, kk)
        theirs = getattr(enriched, kk)
        if theirs and (policy is EnrichmentPolicy.ALWAYS_OVERRIDE or not ours):
            merged[kk] = theirs
        else:
            merged[kk] = ours
    return Place(**merged)


@dataclass(frozen=True)
class PlaceFields:
    """
    Keys under features[0].properties of a Photon answer. Each entry is
    tried in order and the first non-empty value is used.
    """

    country: tuple = ("country",)
    city: tuple = ("city", "county", "state")
    country_code: tuple = ("countrycode",)


def _first(properties: dict, keys: tuple) -> str:
    for kk in keys:
        vv = properties.get(kk)
        if vv:
            return str(vv)
    return ""


class PhotonEnricher:
    """
    Look up country, city and country code for a coordinate.
    """

    def __init__(self, api_url: str = DEFAULT_PHOTON_URL, timeout: float = 60,
                 fields: PlaceFields = PlaceFields(), geocoder=None):
        self.timeout = timeout
        self.fields = fields
        if geocoder is None:
            parts = urlsplit(api_url)
            domain = (parts.netloc + parts.path).rstrip("/")
            geocoder = Photon(scheme=parts.scheme or "https", domain=domain,
                              timeout=timeout, user_agent=USER_AGENT)
        self.geocoder = geocoder

    def place_from_raw(self, raw: dict) -> Place:
        """
        :param raw: one GeoJSON feature as returned by Photon
        """
        properties = raw.get("properties") or {}
        return Place(
            country=_first(properties, self.fields.country),
            city=_first(properties, self.fields.city),
            country_code=_first(properties, self.fields.country_code),
        )

    def reverse(self, latitude: float, longitude: float) -> Optional[Place]:
        """
        :return: Place, or None when Photon knows nothing about the spot
        :raise TransportTimeout: the request timed out
        :raise TransportError: any other geocoder failure
        """
        logger.debug("reverse geocoding %r, %r", latitude, longitude)
        try:
            location = self.geocoder.reverse((latitude, longitude), exactly_one=True, timeout=self.timeout)
        except GeocoderTimedOut as err:
            raise TransportTimeout(f"Photon API timed out: {err}") from err
        except GeopyError as err:
            raise TransportError(f"Photon API request failed: {err}") from err
        if location is None:
            logger.debug("no reverse geocoding result")
            return None
        place = self.place_from_raw(location.raw)
        logger.debug("Photon found %r", place)
        return place
