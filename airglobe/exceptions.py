"""
Error taxonomy for AirGlobe.

Only ValidationError is recovered locally (per state vector, inside the
parser). Everything else propagates to the HTTP layer, which turns it into
a 500 envelope.
"""

from typing import Optional


class AirGlobeError(Exception):
    """Base exception for all AirGlobe errors."""


class GeometryError(AirGlobeError):
    """Geometry has no coordinates, or a bounding box breaks its invariants."""


class ValidationError(AirGlobeError):
    """A single state vector has no usable ICAO24 identifier."""


class TelemetryError(AirGlobeError):
    """
    Failure talking to OpenSky or its identity provider.

    Carries the upstream status code and body text when one was received.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AuthError(TelemetryError):
    """OAuth2 token acquisition failed."""


class UpstreamError(TelemetryError):
    """Non-2xx status, transport failure or malformed payload."""


class UpstreamTimeoutError(TelemetryError):
    """State vector request exceeded its timeout."""
