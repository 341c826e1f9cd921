"""
Resolve GPS locations for photos and videos from a Dawarich point history and
write them back with exiftool.
"""
from geotagmedia.errors import GeotagError, TransportError, TransportTimeout
from geotagmedia.models import LocationCandidate, MatchResult, MediaKind, MediaTarget, Outcome, Place
from geotagmedia.resolver import LocationResolver, Resolution
from geotagmedia.selector import select_closest
from geotagmedia.timestamps import TimestampField, parse_timestamp

__version__ = "0.3.0"
