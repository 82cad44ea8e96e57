# errors.py
# Exception types raised at the I/O boundaries.


class CompassError(Exception):
    """Base class for all building-compass errors."""


class GeolocationError(CompassError):
    """The platform could not deliver a position fix."""


class InvalidCoordinatesError(CompassError, ValueError):
    """Latitude / longitude could not be parsed as finite numbers."""


class BuildingFetchError(CompassError):
    """The building list could not be fetched from upstream."""

    def __init__(self, message: str, status_code: int = 502) -> None:
        super().__init__(message)
        self.status_code = status_code
