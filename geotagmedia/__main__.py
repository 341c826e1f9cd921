"""
Command line entry point: python -m geotagmedia [options] [folder]
"""
import argparse
import dataclasses
import logging
import os
import sys
from pathlib import Path

from geotagmedia.config import default_config_path, load_config, save_config, validate_config
from geotagmedia.exiftool import ExifTool, locate_exiftool
from geotagmedia.geotagger import MediaGeotagger

logging.basicConfig(
    format="%(asctime)-15s %(levelname)s:%(name)s:%(funcName)s:%(lineno)d:%(message)s"
)
logger = logging.getLogger("geotagmedia")


def _parser() -> argparse.ArgumentParser:
    m_config = default_config_path()
    m_parser = argparse.ArgumentParser(
        description="Add GPS location and place names to photos and videos from a Dawarich point history"
    )
    m_parser.add_argument("-D", "--debug", action="store_true")
    m_parser.add_argument(
        "-d", "--dry-run", action="store_true", help="do not actually modify files"
    )
    m_parser.add_argument(
        "-R", "--recursive", action="store_true", help="also process files in subdirectories"
    )
    m_parser.add_argument(
        "-c", "--config", type=Path, default=m_config, help=f"configuration file (default: {m_config})"
    )
    m_parser.add_argument(
        "-o", "--overwrite", action="store_true", default=None,
        help="process files even when they already have location data",
    )
    m_parser.add_argument(
        "-p", "--always-photon", action="store_true", default=None,
        help="always reverse geocode with Photon and prefer its place names",
    )
    m_parser.add_argument(
        "-w", "--window", type=int, help="seconds to search either side of the capture time"
    )
    m_parser.add_argument("--api-url", help="Dawarich points API URL")
    m_parser.add_argument("--api-key", help="Dawarich API key")
    m_parser.add_argument("--photon-url", help="Photon API URL")
    m_parser.add_argument("--exiftool", help="path to the exiftool executable")
    m_parser.add_argument(
        "--save-config", action="store_true", help="write the effective settings back to the configuration file"
    )
    m_parser.add_argument(
        "folder",
        nargs="?",
        default=os.getcwd(),
        help="folder containing image/video files (default: current directory)",
    )
    return m_parser


def apply_overrides(config, args):
    """
    Replace config values with those given on the command line.
    """
    overrides = {
        "dawarich_api_url": args.api_url,
        "dawarich_api_key": args.api_key,
        "photon_api_url": args.photon_url,
        "time_window_seconds": args.window,
        "exiftool_path": args.exiftool,
        "overwrite_existing": args.overwrite,
        "always_query_photon": args.always_photon,
    }
    return dataclasses.replace(config, **{kk: vv for kk, vv in overrides.items() if vv is not None})


def main(argv=None) -> int:
    args = _parser().parse_args(argv)
    if args.debug:
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    config = apply_overrides(load_config(args.config), args)
    errors = validate_config(config)
    if errors:
        for error in errors:
            logger.error(error)
        return 1
    if args.save_config:
        save_config(config, args.config)

    exiftool_path = locate_exiftool(config.exiftool_path)
    if exiftool_path is None:
        return 1
    logger.info("using exiftool: %s", exiftool_path)
    if config.overwrite_existing:
        logger.info("overwrite existing data flag is on")
    if config.always_query_photon:
        logger.info("always query Photon flag is on")

    folder = Path(args.folder)
    if not folder.is_dir():
        logger.error("%s is not a directory", folder)
        return 1
    if args.dry_run:
        logger.info("*** DRY RUN, no files will be changed ***")

    geotagger = MediaGeotagger(config, exiftool=ExifTool(exiftool_path), dry_run=args.dry_run)
    geotagger.run(folder, recursive=args.recursive)
    return 0


if __name__ == "__main__":
    sys.exit(main())
