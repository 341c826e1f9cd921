#!/usr/bin/python3
"""
Unit tests for geotagmedia.geotagger, geotagmedia.files and the command line
"""

import datetime
import pathlib
import tempfile
import unittest
from unittest import mock

import pytz

from geotagmedia.__main__ import apply_overrides, _parser, main
from geotagmedia.config import GeotagConfig
from geotagmedia.errors import ExifToolError, TransportError, TransportTimeout
from geotagmedia.exiftool import MediaTags, WriteStatus
from geotagmedia.files import find_media
from geotagmedia.geotagger import MediaGeotagger
from geotagmedia.models import LocationCandidate, MatchResult, MediaKind, MediaTarget, Outcome, Place
from geotagmedia.resolver import Resolution

WHEN = datetime.datetime(2024, 6, 1, 12, 0, 0, tzinfo=pytz.utc)
RESOLUTION = Resolution(MatchResult(LocationCandidate(48.1, 11.5, WHEN), 10), Place("Germany", "Munich", "DE"))
NEEDS_DATA = MediaTags(capture_date="2024-06-01T12:00:00Z")
HAS_DATA = MediaTags(48.1, 11.5, "Germany", "Munich", "DE", "2024-06-01T12:00:00Z")


class GeotaggerTest(unittest.TestCase):
    """Scratch folder, mocked resolver and exiftool."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.base = pathlib.Path(self.tmp.name)
        self.target = MediaTarget.from_path(self.base.joinpath("IMG_0001.jpg"))
        self.target.path.write_bytes(b"jpeg")
        self.resolver = mock.Mock()
        self.resolver.resolve.return_value = RESOLUTION
        self.exiftool = mock.Mock()
        self.exiftool.read_tags.return_value = NEEDS_DATA
        self.exiftool.write_location.return_value = WriteStatus.WRITTEN
        self.exiftool.describe_output.return_value = "file IMG_0001.jpg"

    def tearDown(self):
        self.tmp.cleanup()

    def tagger(self, dry_run=False, **config):
        return MediaGeotagger(GeotagConfig(**config), resolver=self.resolver,
                              exiftool=self.exiftool, dry_run=dry_run)


class TestProcess(GeotaggerTest):
    """Each file ends in exactly one outcome."""

    def test_updated(self):
        """Missing data, a match, a successful write."""
        self.assertEqual(self.tagger().process(self.target), Outcome.UPDATED)
        self.resolver.resolve.assert_called_once_with(WHEN)
        self.exiftool.write_location.assert_called_once_with(self.target, 48.1, 11.5, Place("Germany", "Munich", "DE"))

    def test_unchanged_counts_as_updated(self):
        """exiftool had nothing to change."""
        self.exiftool.write_location.return_value = WriteStatus.UNCHANGED
        self.assertEqual(self.tagger().process(self.target), Outcome.UPDATED)

    def test_already_has_data(self):
        """Complete files are left alone without any lookup."""
        self.exiftool.read_tags.return_value = HAS_DATA
        self.assertEqual(self.tagger().process(self.target), Outcome.SKIPPED_HAS_DATA)
        self.resolver.resolve.assert_not_called()

    def test_overwrite(self):
        """The overwrite flag processes complete files too."""
        self.exiftool.read_tags.return_value = HAS_DATA
        self.assertEqual(self.tagger(overwrite_existing=True).process(self.target), Outcome.UPDATED)

    def test_no_api_data(self):
        """No match is a skip, not an error."""
        self.resolver.resolve.return_value = None
        self.assertEqual(self.tagger().process(self.target), Outcome.SKIPPED_NO_API_DATA)
        self.exiftool.write_location.assert_not_called()

    def test_no_api_data_with_overwrite(self):
        """Unless the user asked to overwrite."""
        self.resolver.resolve.return_value = None
        self.assertEqual(self.tagger(overwrite_existing=True).process(self.target), Outcome.ERROR)

    @mock.patch("geotagmedia.geotagger.fallback_capture_date", return_value=None)
    def test_no_timestamp(self, fallback):
        """No date tag and nothing from the fallback readers."""
        self.exiftool.read_tags.return_value = MediaTags()
        self.assertEqual(self.tagger().process(self.target), Outcome.ERROR)
        fallback.assert_called_once_with(self.target)
        self.resolver.resolve.assert_not_called()

    @mock.patch("geotagmedia.geotagger.fallback_capture_date", return_value=WHEN)
    def test_fallback_timestamp(self, fallback):
        """The fallback reader's date is used when exiftool has none."""
        self.exiftool.read_tags.return_value = MediaTags()
        self.assertEqual(self.tagger().process(self.target), Outcome.UPDATED)
        self.resolver.resolve.assert_called_once_with(WHEN)

    def test_unparseable_timestamp(self):
        """A date tag that is not a date."""
        self.exiftool.read_tags.return_value = MediaTags(capture_date="0000:00:00 00:00:00")
        self.assertEqual(self.tagger().process(self.target), Outcome.ERROR)

    def test_transport_errors(self):
        """API failures and timeouts are errors for the file, not the run."""
        for error in (TransportError("500"), TransportTimeout("slow")):
            self.resolver.resolve.side_effect = error
            self.assertEqual(self.tagger().process(self.target), Outcome.ERROR)

    def test_read_error(self):
        """exiftool could not read the file."""
        self.exiftool.read_tags.side_effect = ExifToolError("bad file")
        self.assertEqual(self.tagger().process(self.target), Outcome.ERROR)

    def test_write_failed(self):
        """exiftool could not write."""
        self.exiftool.write_location.return_value = WriteStatus.FAILED
        self.assertEqual(self.tagger().process(self.target), Outcome.ERROR)

    def test_dry_run(self):
        """Nothing is written in a dry run."""
        self.assertEqual(self.tagger(dry_run=True).process(self.target), Outcome.UPDATED)
        self.exiftool.write_location.assert_not_called()


class TestRun(GeotaggerTest):
    """Whole folder runs."""

    def test_summary(self):
        """Outcomes are counted per file."""
        self.base.joinpath("IMG_0002.jpg").write_bytes(b"jpeg")
        self.base.joinpath("notes.txt").write_text("not media")
        self.exiftool.read_tags.side_effect = [NEEDS_DATA, HAS_DATA]
        summary = self.tagger().run(self.base)
        self.assertEqual(summary.scanned, 2)
        self.assertEqual(summary.count(Outcome.UPDATED), 1)
        self.assertEqual(summary.count(Outcome.SKIPPED_HAS_DATA), 1)
        self.assertEqual(summary.count(Outcome.ERROR), 0)

    def test_empty_folder(self):
        """Nothing to do."""
        empty = self.base.joinpath("empty")
        empty.mkdir()
        self.assertEqual(self.tagger().run(empty).scanned, 0)

    def test_unexpected_error_stops(self):
        """Unknown exceptions are not swallowed."""
        self.exiftool.read_tags.side_effect = RuntimeError("boom")
        self.assertRaises(RuntimeError, self.tagger().run, self.base)


class TestFindMedia(unittest.TestCase):
    """File enumeration."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.base = pathlib.Path(self.tmp.name)
        for name in ("b.JPG", "a.heic", "clip.MP4", "readme.md", "a.xmp"):
            self.base.joinpath(name).write_bytes(b"x")
        self.base.joinpath("sub").mkdir()
        self.base.joinpath("sub", "c.dng").write_bytes(b"x")

    def tearDown(self):
        self.tmp.cleanup()

    def test_flat(self):
        """Top level only, case-insensitive, sorted."""
        names = [tt.path.name for tt in find_media(self.base)]
        self.assertEqual(names, ["a.heic", "b.JPG", "clip.MP4"])

    def test_recursive(self):
        """Subdirectories when asked."""
        names = [tt.path.name for tt in find_media(self.base, recursive=True)]
        self.assertIn("c.dng", names)
        self.assertEqual(len(names), 4)

    def test_kinds(self):
        """Videos are recognized by extension."""
        kinds = {tt.path.name: tt.kind for tt in find_media(self.base)}
        self.assertEqual(kinds["clip.MP4"], MediaKind.VIDEO)
        self.assertEqual(kinds["b.JPG"], MediaKind.IMAGE)


class TestCommandLine(unittest.TestCase):
    """Argument handling."""

    def test_overrides(self):
        """Only given options replace config values."""
        args = _parser().parse_args(["-w", "300", "-p", "--api-key", "k", "/tmp"])
        config = apply_overrides(GeotagConfig(dawarich_api_url="u"), args)
        self.assertEqual(config.time_window_seconds, 300)
        self.assertTrue(config.always_query_photon)
        self.assertFalse(config.overwrite_existing)
        self.assertEqual(config.dawarich_api_key, "k")
        self.assertEqual(config.dawarich_api_url, "u")

    @mock.patch("geotagmedia.__main__.locate_exiftool", return_value="/usr/bin/exiftool")
    def test_missing_folder(self, _locate):
        """A folder that does not exist is an error."""
        with tempfile.TemporaryDirectory() as tmp:
            missing = pathlib.Path(tmp).joinpath("nope")
            self.assertEqual(main(["-c", pathlib.Path(tmp).joinpath("c.json").as_posix(), missing.as_posix()]), 1)

    @mock.patch("geotagmedia.__main__.locate_exiftool", return_value=None)
    def test_no_exiftool(self, _locate):
        """No exiftool anywhere."""
        with tempfile.TemporaryDirectory() as tmp:
            self.assertEqual(main(["-c", pathlib.Path(tmp).joinpath("c.json").as_posix(), tmp]), 1)

    def test_invalid_config(self):
        """An empty API key is refused before anything runs."""
        with tempfile.TemporaryDirectory() as tmp:
            self.assertEqual(main(["-c", pathlib.Path(tmp).joinpath("c.json").as_posix(), "--api-key", " ", tmp]), 1)


if __name__ == '__main__':
    unittest.main()
