"""
Exceptions shared by the API clients and the exiftool wrapper.
"""


class GeotagError(Exception):
    """Base class for everything this package raises on purpose."""


class TransportError(GeotagError):
    """
    An API could not be reached or answered with something unusable.

    Distinct from an empty result, which is not an error.
    """


class TransportTimeout(TransportError):
    """The request did not complete within the configured timeout."""


class ExifToolError(GeotagError):
    """exiftool failed to read a file or returned output we cannot parse."""
