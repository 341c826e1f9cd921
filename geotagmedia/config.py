"""
Settings stored as JSON under ~/.config/exif-updater, read once at start-up.
"""
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from geotagmedia.geocode import DEFAULT_PHOTON_URL, EnrichmentPolicy

logger = logging.getLogger(__name__)

DEFAULT_DAWARICH_API_URL = "https://your-api-host.com/api/v1/points"
DEFAULT_DAWARICH_API_KEY = "YOUR_API_KEY"

# New key first, then the names older versions wrote.
KEY_FALLBACKS = {
    "dawarich_api_url": ("dawarichApiUrl", "gpsApiUrl"),
    "dawarich_api_key": ("dawarichApiKey", "gpsApiKey"),
    "photon_api_url": ("photonApiUrl", "komootApiUrl"),
    "time_window_seconds": ("defaultTimeWindowSeconds",),
    "exiftool_path": ("exiftoolPath",),
    "overwrite_existing": ("overwriteExisting",),
    "always_query_photon": ("alwaysQueryPhoton",),
    "request_timeout": ("requestTimeoutSeconds",),
    "geocode_timeout": ("geocodeTimeoutSeconds",),
}


@dataclass(frozen=True)
class GeotagConfig:
    dawarich_api_url: str = DEFAULT_DAWARICH_API_URL
    dawarich_api_key: str = DEFAULT_DAWARICH_API_KEY
    photon_api_url: str = DEFAULT_PHOTON_URL
    time_window_seconds: int = 60
    exiftool_path: str = "exiftool"
    overwrite_existing: bool = False
    always_query_photon: bool = False
    request_timeout: float = 120
    geocode_timeout: float = 60

    @property
    def enrichment_policy(self) -> EnrichmentPolicy:
        if self.always_query_photon:
            return EnrichmentPolicy.ALWAYS_OVERRIDE
        return EnrichmentPolicy.FILL_MISSING


def default_config_path() -> Path:
    return Path(os.environ["HOME"]).joinpath(".config").joinpath("exif-updater").joinpath("config.json")


def _text(value) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _window(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int) and value >= 0:
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _flag(value) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if value in ("true", "false"):
        return value == "true"
    return None


def _seconds(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if value > 0 else None


CONVERTERS = {
    "dawarich_api_url": _text,
    "dawarich_api_key": _text,
    "photon_api_url": _text,
    "time_window_seconds": _window,
    "exiftool_path": _text,
    "overwrite_existing": _flag,
    "always_query_photon": _flag,
    "request_timeout": _seconds,
    "geocode_timeout": _seconds,
}


def config_from_dict(data: dict) -> GeotagConfig:
    """
    Build a config from parsed JSON, ignoring invalid values.
    """
    values = {}
    for field, keys in KEY_FALLBACKS.items():
        for key in keys:
            if key not in data or data[key] is None:
                continue
            converted = CONVERTERS[field](data[key])
            if converted is None:
                logger.warning("ignoring invalid value for %s: %r", key, data[key])
                continue
            if key != keys[0]:
                logger.debug("using deprecated key %s for %s", key, keys[0])
            values[field] = converted
            break
    return GeotagConfig(**values)


def load_config(path=None) -> GeotagConfig:
    """
    Read the config file. Anything wrong with the file as a whole gives the
    defaults.

    :param path: config file, default_config_path() when None
    """
    path = Path(path) if path is not None else default_config_path()
    if not path.exists():
        logger.debug("config file %s not found, using defaults", path)
        return GeotagConfig()
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as err:
        logger.warning("cannot read config file %s: %s, using defaults", path, err)
        return GeotagConfig()
    if not content.strip():
        logger.warning("config file %s is empty, using defaults", path)
        return GeotagConfig()
    try:
        data = json.loads(content)
    except ValueError:
        logger.warning("config file %s contains invalid JSON, using defaults", path)
        return GeotagConfig()
    if not isinstance(data, dict):
        logger.warning("config file %s is not a JSON object, using defaults", path)
        return GeotagConfig()
    logger.debug("loaded config from %s", path)
    return config_from_dict(data)


def save_config(config: GeotagConfig, path=None) -> Path:
    """
    Write the config with the current key names.
    """
    path = Path(path) if path is not None else default_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {keys[0]: getattr(config, field) for field, keys in KEY_FALLBACKS.items()}
    with open(path, "w", encoding="utf-8") as outfile:
        json.dump(data, outfile, indent=2)
    logger.info("configuration saved to %s", path)
    return path


def validate_config(config: GeotagConfig) -> list:
    """
    :return: human readable problems, empty when the config is usable
    """
    errors = []
    if not config.dawarich_api_url.strip():
        errors.append("Dawarich API URL cannot be empty.")
    if not config.dawarich_api_key.strip():
        errors.append("Dawarich API key cannot be empty.")
    if not config.photon_api_url.strip():
        errors.append("Photon API URL cannot be empty.")
    if config.time_window_seconds < 0:
        errors.append("API time window must be a non-negative integer.")
    if not config.exiftool_path.strip():
        errors.append("exiftool path cannot be empty.")
    return errors
