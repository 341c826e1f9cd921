"""
Find the media files to geotag.
"""
import logging
from pathlib import Path

from geotagmedia.models import IMAGE_EXTENSIONS, VIDEO_EXTENSIONS, MediaTarget

logger = logging.getLogger(__name__)

ALL_EXTENSIONS = IMAGE_EXTENSIONS + VIDEO_EXTENSIONS


def is_valid_extension(filename: str, extensions=ALL_EXTENSIONS) -> bool:
    """
    Case-insensitive check of the file name against the allowed extensions.
    """
    return any(filename.lower().endswith(ext) for ext in extensions)


def find_media(folder, recursive: bool = False) -> list:
    """
    List supported files in folder, sorted by path.

    :param recursive: descend into subdirectories as well
    :return: list of MediaTarget
    """
    base = Path(folder)
    entries = base.rglob("*") if recursive else base.iterdir()
    rval = [MediaTarget.from_path(ff) for ff in entries if ff.is_file() and is_valid_extension(ff.name)]
    rval.sort(key=lambda tt: tt.path.as_posix())
    logger.debug("found %d media files in %s", len(rval), base)
    return rval
