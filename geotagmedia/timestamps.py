"""
Turn the many date formats found in EXIF, QuickTime and API payloads into
timezone aware UTC datetimes.
"""
import enum
import logging
import re
from datetime import datetime
from typing import NamedTuple, Optional, Union

import pytz

logger = logging.getLogger(__name__)

API_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
# Zone carrying formats must come first, or the offset would be dropped by
# matching a bare local format.
ZONED_FORMATS = (
    "%Y:%m:%d %H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S%z",
    "%Y:%m:%dT%H:%M:%S%z",
)
LOCAL_FORMATS = (
    "%Y:%m:%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y:%m:%d %H:%M",
    "%Y-%m-%d %H:%M",
)
_TZ_COLON = re.compile(r"([+-]\d{2}):(\d{2})$")
_FRACTION = re.compile(r"(\d{2}:\d{2}:\d{2})\.\d+")


def to_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to UTC.

    Naive values are taken to be local time of this machine.
    """
    # astimezone() on a naive datetime assumes the system local zone
    return value.astimezone(pytz.utc)


def _clean(date_string: str) -> str:
    """
    Drop fractional seconds and the colon of a trailing +HH:MM offset.
    """
    cleaned = _FRACTION.sub(r"\1", date_string.strip())
    return _TZ_COLON.sub(r"\1\2", cleaned)


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Convert a metadata or API timestamp to a UTC datetime.

    :param value: date and time as a string, or a datetime to normalize
    :return: timezone aware datetime in UTC, or None when nothing matched
    """
    if isinstance(value, datetime):
        return to_utc(value)
    if not isinstance(value, str) or not value.strip():
        return None
    ds = _clean(value)
    for fmt in ZONED_FORMATS:
        logger.debug("trying %s with %s", ds, fmt)
        try:
            return datetime.strptime(ds, fmt).astimezone(pytz.utc)
        except ValueError:
            pass
    for fmt in LOCAL_FORMATS:
        logger.debug("trying %s with %s", ds, fmt)
        try:
            return to_utc(datetime.strptime(ds, fmt))
        except ValueError:
            pass
    logger.debug("trying fromisoformat")
    try:
        return to_utc(datetime.fromisoformat(value.strip()))
    except ValueError:
        pass
    logger.warning("failed to parse %s", value)
    return None


def format_api_timestamp(value: datetime) -> str:
    """
    Render a datetime the way the point-tracking API expects it, e.g.
    2024-06-01T12:00:00Z.
    """
    return to_utc(value).strftime(API_FORMAT)


class TimestampKind(enum.Enum):
    EPOCH = "epoch"
    ISO = "iso"
    MISSING = "missing"


class TimestampField(NamedTuple):
    """
    A timestamp as it appears in a JSON payload: epoch seconds, a date
    string, or nothing usable.
    """

    kind: TimestampKind
    value: Union[int, float, str, None] = None

    @classmethod
    def from_json(cls, raw) -> "TimestampField":
        """
        Classify a raw JSON value.
        """
        # bool is an int subclass, but never a timestamp
        if isinstance(raw, bool) or raw is None:
            return cls(TimestampKind.MISSING)
        if isinstance(raw, (int, float)):
            return cls(TimestampKind.EPOCH, raw)
        if isinstance(raw, str):
            text = raw.strip()
            if not text:
                return cls(TimestampKind.MISSING)
            if text.isdigit():
                return cls(TimestampKind.EPOCH, int(text))
            return cls(TimestampKind.ISO, text)
        return cls(TimestampKind.MISSING)

    def to_instant(self) -> Optional[datetime]:
        """
        :return: UTC datetime, or None if missing or unparseable
        """
        if self.kind is TimestampKind.EPOCH:
            try:
                return datetime.fromtimestamp(self.value, pytz.utc)
            except (OverflowError, OSError, ValueError):
                logger.warning("epoch value out of range: %r", self.value)
                return None
        if self.kind is TimestampKind.ISO:
            return parse_timestamp(self.value)
        return None
