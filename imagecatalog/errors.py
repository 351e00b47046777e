"""
Exception hierarchy for the image catalog.

Every error carries the HTTP status the web layer answers with, so request
handlers can translate a failure without knowing where it came from.
"""


class CatalogError(Exception):
    """Base class for expected catalog failures."""

    http_status = 500

    def __init__(self, message, http_status=None):
        super().__init__(message)
        self.message = message
        if http_status is not None:
            self.http_status = http_status


class InvalidArgument(CatalogError):
    """
    Bad input from a caller.

    Examples:
        - null query feature
        - bounding box that crosses the antimeridian
        - dates that are not RFC3339
    """

    http_status = 400


class Unauthenticated(CatalogError):
    """Credentials were missing or rejected."""

    http_status = 401


class Unauthorized(CatalogError):
    """Credentials were accepted but lack the required role."""

    http_status = 401


class NotFound(CatalogError):
    """No scene (or band, or sub-index) under the requested key."""

    http_status = 404


class AlreadyExists(CatalogError):
    """A non-overwriting put found an existing scene."""

    http_status = 409


class UpstreamError(CatalogError):
    """
    A vendor, WFS or event bus call failed or returned an unusable body.

    The upstream status is kept as ``http_status`` when there is one.
    """

    http_status = 502


class InternalError(CatalogError):
    """Store or parse failure that the caller cannot fix."""

    http_status = 500
