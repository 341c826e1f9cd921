"""
Find where a photo was taken: exact point lookup, then a padded time window,
then optional reverse geocoding of the winner.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from geotagmedia.errors import TransportError
from geotagmedia.geocode import EnrichmentPolicy, merge_places, needs_enrichment
from geotagmedia.models import MatchResult, Place
from geotagmedia.selector import select_closest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """
    :param place: point place names merged with the geocoder's
    :param geocoded: the geocoder answered and was merged in
    :param geocode_error: the geocoder failure, if one happened
    """

    match: MatchResult
    place: Place
    geocoded: bool = False
    geocode_error: Optional[TransportError] = None

    @property
    def latitude(self) -> float:
        return self.match.candidate.latitude

    @property
    def longitude(self) -> float:
        return self.match.candidate.longitude


class LocationResolver:
    """
    Resolve a capture instant to a position.

    :param client: anything with query_range(start, end)
    :param enricher: anything with reverse(latitude, longitude), or None
    :param window_seconds: padding on each side for the fallback query
    """

    def __init__(self, client, enricher=None, window_seconds: int = 60,
                 policy: EnrichmentPolicy = EnrichmentPolicy.FILL_MISSING):
        if window_seconds < 0:
            raise ValueError(f"window_seconds must not be negative: {window_seconds}")
        self.client = client
        self.enricher = enricher
        self.window = timedelta(seconds=window_seconds)
        self.policy = policy

    def find_match(self, target: datetime) -> Optional[MatchResult]:
        """
        Exact query first, then the windowed one if that found nothing.

        :raise TransportError: from the client; not turned into "no match"
        """
        logger.info("attempting exact query for %s", target.isoformat())
        match = select_closest(target, self.client.query_range(target, target))
        if match is not None:
            logger.info("exact match found")
            return match
        start, end = target - self.window, target + self.window
        logger.info("attempting query within %s to %s", start.isoformat(), end.isoformat())
        match = select_closest(target, self.client.query_range(start, end))
        if match is not None:
            logger.info("closest match found (difference: %.0fs)", match.delta_seconds)
        return match

    def enrich(self, match: MatchResult) -> Resolution:
        """
        Fill in or override place names from the geocoder as the policy says.
        A geocoder failure keeps the point's own names.
        """
        primary = match.candidate.place
        if self.enricher is None or not needs_enrichment(primary, self.policy):
            return Resolution(match, primary)
        candidate = match.candidate
        try:
            enriched = self.enricher.reverse(candidate.latitude, candidate.longitude)
        except TransportError as err:
            logger.warning("reverse geocoding failed, keeping point data: %s", err)
            return Resolution(match, primary, geocode_error=err)
        return Resolution(match, merge_places(primary, enriched, self.policy), geocoded=enriched is not None)

    def resolve(self, target: datetime) -> Optional[Resolution]:
        """
        :param target: capture instant, timezone aware
        :return: Resolution, or None when no usable point exists
        :raise TransportError: the point-tracking API failed
        """
        match = self.find_match(target)
        if match is None:
            return None
        return self.enrich(match)
