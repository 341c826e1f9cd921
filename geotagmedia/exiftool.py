"""
Read and write location tags by running exiftool.
"""
import enum
import json
import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import Optional

from geotagmedia.errors import ExifToolError
from geotagmedia.models import MediaKind, MediaTarget, Place

logger = logging.getLogger(__name__)

READ_TAGS = (
    "GPSLatitude",
    "GPSLongitude",
    "Country",
    "City",
    "XMP-iptcCore:CountryCode",
    "DateTimeOriginal",
    "OffsetTimeOriginal",
    "CreateDate",
    "MediaCreateDate",
    "TrackCreateDate",
)
# In order from most preferred to least:
DATE_KEYS = ("DateTimeOriginal", "CreateDate", "MediaCreateDate", "TrackCreateDate")
UNCHANGED_MARKERS = ("Nothing to write", "0 image files updated", "0 output files created")
# Written by cameras whose clock was never set
PLACEHOLDER_DATES = ("0000:00:00", "0000-00-00")


def locate_exiftool(configured: str) -> Optional[str]:
    """
    Use the configured executable if it can be found, otherwise whatever
    exiftool is on the PATH.
    """
    found = shutil.which(configured)
    if found:
        return found
    fallback = shutil.which("exiftool")
    if fallback:
        logger.warning("exiftool not found at %r, using %s from PATH", configured, fallback)
        return fallback
    logger.error("exiftool not found at %r or on the PATH", configured)
    return None


def convert_to_decimal(data) -> float:
    """
    Convert something like "40 deg 13' 6.96" N" to 40.2186 while handling N/S, E/W.
    Plain numbers, as exiftool prints them with -n, pass straight through.

    :return: single floating point version of given location
    :raise: ValueError on parsing problems
    """
    if isinstance(data, (int, float)) and not isinstance(data, bool):
        return float(data)
    logger.debug("parsing string: %s", data)
    try:
        return float(data)
    except (TypeError, ValueError):
        pass
    parts = str(data).split(" ")
    try:
        pm = -1.0 if parts[-1] in ("S", "W") else 1.0
        minutes = float(parts[2][0:-1])
        seconds = float(parts[3][0:-1]) / 60.0
        return pm * (float(parts[0]) + (minutes + seconds) / 60)
    except (IndexError, ValueError):
        raise ValueError(f"Cannot parse {data}")  # pylint: disable=raise-missing-from


def pending_sidecar(target: MediaTarget):
    """
    Where a new video sidecar is built before it replaces the old one.
    exiftool picks the output format from the extension, so it stays .xmp.
    """
    sidecar = target.sidecar_path
    return sidecar.with_name(sidecar.stem + ".tmp.xmp")


def _has_zone(date_string: str) -> bool:
    tail = date_string[10:]
    return "+" in tail or "-" in tail or tail.endswith("Z")


class WriteStatus(enum.Enum):
    WRITTEN = "written"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass(frozen=True)
class MediaTags:
    """
    The subset of a file's metadata that decides whether and how to geotag it.
    """

    latitude: Optional[float] = None
    longitude: Optional[float] = None
    country: str = ""
    city: str = ""
    country_code: str = ""
    capture_date: Optional[str] = None

    @classmethod
    def from_exiftool(cls, data: dict) -> "MediaTags":
        """
        :param data: one object of exiftool -j output
        """
        coords = []
        for kk in ("GPSLatitude", "GPSLongitude"):
            try:
                coords.append(convert_to_decimal(data[kk]) if kk in data else None)
            except ValueError:
                logger.warning("unparseable %s: %r", kk, data[kk])
                coords.append(None)
        capture_date = None
        for kk in DATE_KEYS:
            vv = data.get(kk)
            if vv and str(vv).strip() and not str(vv).strip().startswith(PLACEHOLDER_DATES):
                capture_date = str(vv).strip()
                if kk == "DateTimeOriginal" and not _has_zone(capture_date) and data.get("OffsetTimeOriginal"):
                    capture_date += str(data["OffsetTimeOriginal"]).strip()
                break
        return cls(
            latitude=coords[0],
            longitude=coords[1],
            country=str(data.get("Country") or "").strip(),
            city=str(data.get("City") or "").strip(),
            country_code=str(data.get("CountryCode") or "").strip(),
            capture_date=capture_date,
        )

    def missing_reasons(self) -> list:
        rval = []
        if self.latitude is None or self.longitude is None or (self.latitude == 0 and self.longitude == 0):
            rval.append("GPS coordinates missing or zero")
        if not self.country:
            rval.append("Country missing")
        if not self.city:
            rval.append("City missing")
        if not self.country_code:
            rval.append("Country Code missing")
        return rval

    def has_location_data(self) -> bool:
        return not self.missing_reasons()


class ExifTool:
    """
    Thin wrapper around the exiftool executable.
    """

    def __init__(self, executable: str = "exiftool"):
        self.executable = executable

    def _run(self, args: list) -> subprocess.CompletedProcess:
        cmd = [self.executable] + args
        logger.debug("running %s", cmd)
        return subprocess.run(cmd, capture_output=True, text=True, check=False)

    def read_tags(self, target: MediaTarget) -> MediaTags:
        """
        :raise ExifToolError: exiftool failed or printed something other than JSON
        """
        args = ["-j"] + [f"-{tag}" for tag in READ_TAGS] + [target.path.as_posix()]
        try:
            output = self._run(args)
        except OSError as err:
            raise ExifToolError(f"cannot run {self.executable}: {err}") from err
        if output.returncode != 0:
            raise ExifToolError(f"exiftool read failed (code {output.returncode}): {output.stderr.strip()}")
        try:
            data = json.loads(output.stdout)[0]
        except (ValueError, IndexError, KeyError) as err:
            raise ExifToolError(f"unexpected exiftool output: {output.stdout[:200]!r}") from err
        logger.debug(data)
        return MediaTags.from_exiftool(data)

    @staticmethod
    def location_args(latitude: float, longitude: float, place: Place) -> list:
        args = [
            f"-GPSLatitude={abs(latitude)}",
            f"-GPSLatitudeRef={'S' if latitude < 0 else 'N'}",
            f"-GPSLongitude={abs(longitude)}",
            f"-GPSLongitudeRef={'W' if longitude < 0 else 'E'}",
        ]
        if place.country:
            args.append(f"-Country={place.country}")
        if place.city:
            args.append(f"-City={place.city}")
        if place.country_code:
            args.append(f"-XMP-iptcCore:CountryCode={place.country_code}")
        return args

    def write_args(self, target: MediaTarget, latitude: float, longitude: float, place: Place) -> list:
        """
        Videos get a new XMP sidecar, written to a pending file first; images
        update their sidecar if one exists and are written in place otherwise.
        """
        tags = self.location_args(latitude, longitude, place)
        sidecar = target.sidecar_path
        if target.kind is MediaKind.VIDEO:
            return tags + ["-o", pending_sidecar(target).as_posix(), target.path.as_posix()]
        if sidecar.exists():
            return ["-overwrite_original"] + tags + [sidecar.as_posix()]
        return ["-overwrite_original"] + tags + [target.path.as_posix()]

    def describe_output(self, target: MediaTarget) -> str:
        if target.kind is MediaKind.VIDEO:
            return f"XMP sidecar {target.sidecar_path.name}"
        if target.sidecar_path.exists():
            return f"existing XMP sidecar {target.sidecar_path.name}"
        return f"file {target.path.name}"

    @staticmethod
    def _status(output: subprocess.CompletedProcess, description: str) -> WriteStatus:
        stdout, stderr = output.stdout.strip(), output.stderr.strip()
        logger.debug("exit code %d, stdout %r, stderr %r", output.returncode, stdout, stderr)
        if output.returncode == 0:
            if stderr:
                logger.warning("exiftool warnings: %s", stderr)
            return WriteStatus.WRITTEN
        if (output.returncode == 1 and "Error:" not in stderr
                and any(mm in stdout or mm in stderr for mm in UNCHANGED_MARKERS)):
            logger.info("no changes needed for %s", description)
            return WriteStatus.UNCHANGED
        logger.error("exiftool write failed (code %d) for %s: %s %s",
                     output.returncode, description, stderr, stdout)
        return WriteStatus.FAILED

    def write_location(self, target: MediaTarget, latitude: float, longitude: float, place: Place) -> WriteStatus:
        """
        Write GPS position and place names.

        A video's existing sidecar is only replaced once the new one has been
        written successfully.
        """
        args = self.write_args(target, latitude, longitude, place)
        description = self.describe_output(target)
        pending = pending_sidecar(target) if target.kind is MediaKind.VIDEO else None
        if pending is not None and pending.exists():
            # exiftool -o refuses to overwrite
            logger.debug("removing stale %s", pending)
            pending.unlink()
        try:
            output = self._run(args)
        except OSError as err:
            logger.error("cannot run %s: %s", self.executable, err)
            status = WriteStatus.FAILED
        else:
            status = self._status(output, description)
        if pending is not None:
            if status is WriteStatus.WRITTEN and not pending.exists():
                logger.error("exiftool reported success but %s was not created", pending.name)
                status = WriteStatus.FAILED
            elif status is WriteStatus.WRITTEN:
                os.replace(pending, target.sidecar_path)
            elif pending.exists():
                pending.unlink()
        if status is WriteStatus.WRITTEN:
            logger.info("metadata written to %s", description)
        return status
