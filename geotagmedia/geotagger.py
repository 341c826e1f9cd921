"""
Geotag a folder of photos and videos, one file at a time.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from geotagmedia.dawarich import DawarichClient
from geotagmedia.errors import ExifToolError, TransportError, TransportTimeout
from geotagmedia.exiftool import ExifTool, WriteStatus
from geotagmedia.files import find_media
from geotagmedia.geocode import PhotonEnricher
from geotagmedia.metadata import fallback_capture_date
from geotagmedia.models import MediaTarget, Outcome
from geotagmedia.resolver import LocationResolver
from geotagmedia.timestamps import parse_timestamp

logger = logging.getLogger(__name__)

LARGE_FILE_BYTES = 200 * 1024 * 1024


@dataclass
class Summary:
    scanned: int = 0
    outcomes: Counter = field(default_factory=Counter)

    def count(self, outcome: Outcome) -> int:
        return self.outcomes[outcome]

    def log(self):
        logger.info("processing finished")
        logger.info(" * files scanned: %d", self.scanned)
        logger.info(" * files updated: %d", self.count(Outcome.UPDATED))
        logger.info(" * skipped, already had data: %d", self.count(Outcome.SKIPPED_HAS_DATA))
        logger.info(" * skipped, no API data: %d", self.count(Outcome.SKIPPED_NO_API_DATA))
        if self.count(Outcome.ERROR):
            logger.warning(" * files with errors: %d", self.count(Outcome.ERROR))


def build_resolver(config) -> LocationResolver:
    """
    Wire the Dawarich client and the Photon geocoder from a GeotagConfig.
    """
    client = DawarichClient(config.dawarich_api_url, config.dawarich_api_key,
                            timeout=(15, config.request_timeout))
    enricher = PhotonEnricher(config.photon_api_url, timeout=config.geocode_timeout)
    return LocationResolver(client, enricher, window_seconds=config.time_window_seconds,
                            policy=config.enrichment_policy)


class MediaGeotagger:
    """
    Add GPS position, country, city and country code to media files.
    """

    def __init__(self, config, resolver: Optional[LocationResolver] = None,
                 exiftool: Optional[ExifTool] = None, dry_run: bool = False):
        self.config = config
        self.resolver = resolver if resolver is not None else build_resolver(config)
        self.exiftool = exiftool if exiftool is not None else ExifTool(config.exiftool_path)
        self.dry_run = dry_run

    def capture_date(self, target: MediaTarget, raw: Optional[str]) -> Optional[datetime]:
        """
        Normalize the exiftool date, or fall back to reading the file directly.
        """
        if raw:
            return parse_timestamp(raw)
        logger.debug("no date tag from exiftool, trying fallback readers")
        return fallback_capture_date(target)

    def process(self, target: MediaTarget) -> Outcome:
        """
        Geotag a single file.

        :return: how the file ended up
        """
        name = target.path.name
        try:
            if target.path.stat().st_size > LARGE_FILE_BYTES:
                logger.info("large file %s, exiftool may take some time", name)
        except OSError as err:
            logger.error("cannot stat %s: %s", target.path, err)
            return Outcome.ERROR
        try:
            tags = self.exiftool.read_tags(target)
        except ExifToolError as err:
            logger.warning("reading tags of %s failed: %s", name, err)
            return Outcome.ERROR
        if self.config.overwrite_existing:
            logger.info("overwrite flag set, processing %s", name)
        elif tags.has_location_data():
            logger.info("%s already has location data", name)
            return Outcome.SKIPPED_HAS_DATA
        else:
            logger.info("processing needed: %s", ", ".join(tags.missing_reasons()))

        when = self.capture_date(target, tags.capture_date)
        if when is None:
            logger.warning("skipped %s, no usable timestamp (%r)", name, tags.capture_date)
            return Outcome.ERROR
        logger.info("creation date (UTC): %s", when.isoformat())

        try:
            resolution = self.resolver.resolve(when)
        except TransportTimeout as err:
            logger.error("location lookup for %s timed out: %s", name, err)
            return Outcome.ERROR
        except TransportError as err:
            logger.error("location lookup for %s failed: %s", name, err)
            return Outcome.ERROR
        if resolution is None:
            logger.info("no suitable GPS data found for %s", name)
            if self.config.overwrite_existing:
                logger.warning("%s not updated because no API data was found, despite overwrite flag", name)
                return Outcome.ERROR
            return Outcome.SKIPPED_NO_API_DATA

        place = resolution.place
        logger.info("writing lat=%s, lon=%s, country=%r, city=%r, code=%r",
                    resolution.latitude, resolution.longitude, place.country, place.city, place.country_code)
        if self.dry_run:
            logger.info("[DRY RUN] would write to %s", self.exiftool.describe_output(target))
            return Outcome.UPDATED
        status = self.exiftool.write_location(target, resolution.latitude, resolution.longitude, place)
        if status is WriteStatus.FAILED:
            return Outcome.ERROR
        return Outcome.UPDATED

    def run(self, folder, recursive: bool = False) -> Summary:
        """
        Loop through the folder, geotagging every supported file.
        """
        summary = Summary()
        targets = find_media(Path(folder), recursive)
        if not targets:
            logger.warning("no matching files found in %s", folder)
            return summary
        logger.info("%d files found in %s", len(targets), folder)
        for ii, target in enumerate(targets, 1):
            logger.info("[%d/%d] processing %s", ii, len(targets), target.path.name)
            summary.scanned += 1
            try:
                outcome = self.process(target)
            except Exception as err:  # pylint: disable=broad-except
                logger.debug(err, exc_info=True)
                logger.warning("stopping at %r: %s", target.path, err)
                raise
            summary.outcomes[outcome] += 1
        summary.log()
        return summary
