"""
Value types passed between the API clients, the selector and the tag writer.
"""
import enum
import math
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

VIDEO_EXTENSIONS = (".mp4", ".mov")
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".tiff", ".heic", ".gif", ".cr2", ".dng")


@dataclass(frozen=True)
class Place:
    """Country, city and ISO country code; empty string means unknown."""

    country: str = ""
    city: str = ""
    country_code: str = ""

    def missing_fields(self) -> list:
        return [kk for kk in ("country", "city", "country_code") if not getattr(self, kk)]


@dataclass(frozen=True)
class LocationCandidate:
    """
    One reported position from the point-tracking API.
    """

    latitude: Optional[float]
    longitude: Optional[float]
    timestamp: Optional[datetime] = None
    country: str = ""
    city: str = ""
    country_code: str = ""

    def has_valid_coordinates(self) -> bool:
        """
        Missing, non-finite or out of range coordinates, or exactly (0, 0),
        do not count as a reading.
        """
        if self.latitude is None or self.longitude is None:
            return False
        if not (math.isfinite(self.latitude) and math.isfinite(self.longitude)):
            return False
        if abs(self.latitude) > 90 or abs(self.longitude) > 180:
            return False
        return not (self.latitude == 0 and self.longitude == 0)

    @property
    def place(self) -> Place:
        return Place(self.country, self.city, self.country_code)


@dataclass(frozen=True)
class MatchResult:
    candidate: LocationCandidate
    delta_seconds: float


class MediaKind(enum.Enum):
    IMAGE = "image"
    VIDEO = "video"


@dataclass(frozen=True)
class MediaTarget:
    """
    A file to annotate. Only the tag writer ever changes it.
    """

    path: Path
    kind: MediaKind

    @classmethod
    def from_path(cls, path) -> "MediaTarget":
        path = Path(path)
        kind = MediaKind.VIDEO if path.suffix.lower() in VIDEO_EXTENSIONS else MediaKind.IMAGE
        return cls(path, kind)

    @property
    def sidecar_path(self) -> Path:
        return self.path.with_suffix(".xmp")


class Outcome(enum.Enum):
    """How a single file ended up, for the end of run report."""

    UPDATED = "updated"
    SKIPPED_HAS_DATA = "skipped, already had data"
    SKIPPED_NO_API_DATA = "skipped, no API data"
    ERROR = "error"
