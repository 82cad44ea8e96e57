# compass_session.py
# Public entry point for one compass view.
# Owns no math, delegates to the estimator, geodesy and layout modules.

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from building_compass.buildings_api import BuildingsApiClient
from building_compass.compass_config import CompassConfig
from building_compass.errors import BuildingFetchError, GeolocationError
from building_compass.heading_estimator import HeadingEstimator, OrientationSensor
from building_compass.models import (
    Building, CompassFrame, Coord, SearchStatus, StartResult,
)
from building_compass.overpass_client import clamp_radius
from building_compass import radial_layout

logger = logging.getLogger(__name__)


class GeolocationProvider(ABC):
    """
    Interface expected from the platform position source.

    get_current_position() raises GeolocationError on failure.
    """

    supported: bool = True

    @abstractmethod
    async def get_current_position(
        self,
        timeout_s: float,
        maximum_age_s: float,
        high_accuracy: bool = True,
    ) -> Coord:
        """One-shot position fix."""


class CompassSession:
    """
    High-level facade for the building compass.

    Typical lifecycle:
        session = CompassSession(config, geolocation=gps, sensor=compass)
        await session.search()
        await session.start_orientation()

        # every animation frame:
        frame = session.frame()

        session.close()

    Args:
        config:      Optional CompassConfig; defaults to CompassConfig().
        geolocation: Position source, or None if the platform has none.
        sensor:      Orientation source, or None if the platform has none.
        fetcher:     Anything with `async fetch(coord, radius_m)`;
                     defaults to BuildingsApiClient.
    """

    def __init__(
        self,
        config: Optional[CompassConfig] = None,
        geolocation: Optional[GeolocationProvider] = None,
        sensor: Optional[OrientationSensor] = None,
        fetcher=None,
    ) -> None:
        self.config = config or CompassConfig()
        self._geolocation = geolocation
        self._sensor = sensor
        self._fetcher = fetcher or BuildingsApiClient(self.config)
        self._estimator = HeadingEstimator(self.config)

        self._radius_m = self.config.default_radius_m
        self._origin: Optional[Coord] = None
        self._buildings: List[Building] = []
        self._status = SearchStatus.IDLE
        self._message = "Ready to look up buildings around you."
        self._error = ""
        self._has_searched = False

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def estimator(self) -> HeadingEstimator:
        return self._estimator

    @property
    def origin(self) -> Optional[Coord]:
        return self._origin

    @property
    def buildings(self) -> List[Building]:
        return list(self._buildings)

    @property
    def radius_m(self) -> float:
        return self._radius_m

    @property
    def status(self) -> SearchStatus:
        return self._status

    @property
    def message(self) -> str:
        return self._message

    @property
    def error(self) -> str:
        return self._error

    @property
    def has_searched(self) -> bool:
        return self._has_searched

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def set_radius(self, radius) -> float:
        self._radius_m = clamp_radius(radius, self.config)
        return self._radius_m

    async def search(self) -> None:
        """
        Locate the user and fetch buildings around them.

        Any geolocation problem falls back to the configured default
        coordinate; the reason is kept in `error` and the search continues.
        """
        self._error = ""
        self._buildings = []
        self._has_searched = True

        if self._geolocation is None or not self._geolocation.supported:
            await self._fallback("This browser does not support geolocation.")
            return

        self._set_status(SearchStatus.LOCATING, "Getting your current location…")
        try:
            position = await asyncio.wait_for(
                self._geolocation.get_current_position(
                    timeout_s=self.config.geolocation_timeout_s,
                    maximum_age_s=self.config.geolocation_max_age_s,
                    high_accuracy=True,
                ),
                timeout=self.config.geolocation_timeout_s,
            )
        except asyncio.TimeoutError:
            await self._fallback("Could not get your location: timed out.")
            return
        except GeolocationError as e:
            await self._fallback(f"Could not get your location: {e}")
            return

        await self.search_around(position)

    async def search_around(self, position: Coord) -> None:
        """Fetch buildings around a known coordinate."""
        self._origin = position
        self._set_status(SearchStatus.SEARCHING, "Searching for nearby buildings…")
        try:
            found = await self._fetcher.fetch(position, self._radius_m)
        except BuildingFetchError as e:
            self._error = str(e)
            self._set_status(SearchStatus.FAILED, "Lookup failed.")
            return

        self._buildings = list(found)
        self._set_status(SearchStatus.READY, f"{len(self._buildings)} buildings nearby")

    # ------------------------------------------------------------------
    # Orientation
    # ------------------------------------------------------------------

    async def start_orientation(self) -> StartResult:
        return await self._estimator.start(self._sensor)

    def stop_orientation(self) -> None:
        self._estimator.stop()

    @property
    def orientation_error(self) -> str:
        return self._estimator.error_message

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def frame(self) -> CompassFrame:
        """
        Snapshot of everything the radial view draws this frame.

        Markers are only produced once a coordinate and at least one
        building are known.
        """
        heading = self._estimator.heading
        frame = CompassFrame(
            heading=heading,
            origin=self._origin,
            status=self._message,
            error=self._error,
            orientation_error=self.orientation_error,
        )
        if self._origin is None or not self._buildings:
            return frame

        shown = radial_layout.marker_buildings(self._buildings, self.config)
        frame.entries = radial_layout.layout(heading, self._origin, shown, self.config)
        frame.cardinals = radial_layout.cardinal_markers(heading)
        return frame

    def close(self) -> None:
        """Tear down; always releases the orientation listener and loop."""
        self._estimator.stop()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _fallback(self, reason: str) -> None:
        logger.warning(f"[Session] {reason} Falling back to {self.config.fallback_coord}.")
        self._error = reason
        self._set_status(SearchStatus.LOCATING, "Location unavailable, searching around a fallback point…")
        await self.search_around(self.config.fallback_coord)

    def _set_status(self, status: SearchStatus, message: str) -> None:
        self._status = status
        self._message = message
        logger.info(f"[Session] {message}")
