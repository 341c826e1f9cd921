"""
Fallback capture date readers for when exiftool reports no date tag.
"""
import logging
from datetime import datetime
from typing import Optional

import pytz
from hachoir.metadata import extractMetadata
from hachoir.parser import createParser
from PIL import Image

from geotagmedia.models import MediaKind, MediaTarget
from geotagmedia.timestamps import parse_timestamp

logger = logging.getLogger(__name__)

# EXIF DateTimeOriginal, then DateTime
PIL_DATE_TAGS = (36867, 306)


def _pil_date(target: MediaTarget) -> Optional[datetime]:
    try:
        with Image.open(target.path) as im:
            exif = im.getexif()
            # DateTimeOriginal lives in the Exif IFD, DateTime in IFD0
            values = dict(exif.get_ifd(0x8769))
            values.update({kk: vv for kk, vv in exif.items() if kk not in values})
    except Exception as err:  # noqa pylint: disable=broad-except
        logger.debug("PIL failed on %s: %s", target.path, err)
        return None
    for tag in PIL_DATE_TAGS:
        if values.get(tag):
            return parse_timestamp(str(values[tag]))
    return None


def _hachoir_date(target: MediaTarget) -> Optional[datetime]:
    # Hachoir has minimal metadata extraction, but covers most video containers.
    try:
        parser = createParser(target.path.as_posix())
        if parser is None:
            return None
        with parser:
            metadata = extractMetadata(parser)
    except Exception as err:  # noqa pylint: disable=broad-except
        logger.debug("hachoir failed on %s: %s", target.path, err)
        return None
    if metadata is None or not metadata.has("creation_date"):
        return None
    value = metadata.get("creation_date")
    if isinstance(value, datetime) and value.tzinfo is None:
        # QuickTime stores creation times in UTC
        value = pytz.utc.localize(value)
    return parse_timestamp(value)


def fallback_capture_date(target: MediaTarget) -> Optional[datetime]:
    """
    Best-effort capture date straight from the file; never raises.

    :return: UTC datetime or None
    """
    if target.kind is MediaKind.VIDEO:
        rval = _hachoir_date(target)
    else:
        rval = _pil_date(target)
    logger.debug("fallback capture date for %s: %r", target.path.name, rval)
    return rval
