# main.py
# Entry point: simulates a compass session with a fake GPS fix and a noisy,
# irregular orientation sensor, printing what the radial view would draw.
# In production, replace the Simulated* classes with real platform sources.
#
#   building-compass              # offline simulation with canned buildings
#   building-compass --live       # fetch buildings through the HTTP proxy
#   building-compass --serve      # run the /api/buildings proxy

import argparse
import asyncio
import logging
import random
from typing import Callable, List

from building_compass.api_server import serve
from building_compass.buildings_api import BuildingsApiClient
from building_compass.compass_config import CompassConfig
from building_compass.compass_session import CompassSession, GeolocationProvider
from building_compass.heading_estimator import OrientationEvent, OrientationSensor
from building_compass.models import Building, Coord

# ------------------------------------------------------------------
# Simulation data (around Shibuya station, Tokyo)
# ------------------------------------------------------------------
ORIGIN = Coord(35.6570, 139.7031)

CANNED_BUILDINGS = [
    Building(1, "Shibuya Mark City", "commercial", Coord(35.6580, 139.6990)),
    Building(2, "Shibuya Hikarie", "commercial", Coord(35.6590, 139.7036)),
    Building(3, "Cerulean Tower", "hotel", Coord(35.6562, 139.6993)),
    Building(4, "Corner office", "office", Coord(35.6580, 139.7041), address="Dogenzaka 1"),
    Building(5, "yes", "yes", Coord(35.6566, 139.7040)),
    Building(6, "Scramble Square", "commercial", Coord(35.6585, 139.7022)),
]


class SimulatedGPS(GeolocationProvider):
    def __init__(self, position: Coord, delay_s: float = 0.2) -> None:
        self.position = position
        self.delay_s = delay_s

    async def get_current_position(self, timeout_s, maximum_age_s, high_accuracy=True) -> Coord:
        await asyncio.sleep(self.delay_s)
        return self.position


class SimulatedCompass(OrientationSensor):
    """Emits a slowly turning heading with jitter at a bursty, irregular rate."""

    def __init__(self, start_deg: float = 350.0, turn_deg_per_s: float = 20.0) -> None:
        self._listeners: List[Callable[[OrientationEvent], None]] = []
        self._heading = start_deg
        self._turn = turn_deg_per_s
        self._task = None

    def add_listener(self, callback) -> None:
        self._listeners.append(callback)
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._emit())

    def remove_listener(self, callback) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)
        if not self._listeners and self._task is not None:
            self._task.cancel()
            self._task = None

    async def _emit(self) -> None:
        while True:
            delay = random.choice([0.005, 0.01, 0.05, 0.2])
            await asyncio.sleep(delay)
            self._heading = (self._heading + self._turn * delay) % 360
            noisy = (self._heading + random.gauss(0, 6)) % 360
            for cb in list(self._listeners):
                cb(OrientationEvent(compass_heading=noisy))


class CannedBuildings:
    async def fetch(self, position: Coord, radius_m: float) -> List[Building]:
        return list(CANNED_BUILDINGS)


def print_frame(session: CompassSession) -> None:
    frame = session.frame()
    heading = "—" if frame.heading is None else f"{frame.heading:5.1f}°"
    print(f"\n  Heading {heading}   {frame.status}")
    if frame.error:
        print(f"  ! {frame.error}")
    if frame.orientation_error:
        print(f"  ! {frame.orientation_error}")
    ahead = [c.label for c in frame.cardinals if abs(c.relative_angle) <= 45]
    print(f"  Cardinals ahead: {', '.join(ahead)}")
    for entry in sorted(frame.entries, key=lambda e: e.relative_angle):
        near = "*" if entry.is_near else " "
        print(
            f"  {near} {entry.building.label:<20} "
            f"{entry.relative_angle:+7.1f}°  x={entry.screen_x_percent:5.1f}%  "
            f"row={entry.vertical_rank:<2} {entry.bearing.distance_m:6.0f} m"
        )


async def run(config: CompassConfig, live: bool, duration_s: float) -> None:
    fetcher = BuildingsApiClient(config) if live else CannedBuildings()
    session = CompassSession(
        config,
        geolocation=SimulatedGPS(ORIGIN),
        sensor=SimulatedCompass(),
        fetcher=fetcher,
    )
    try:
        await session.search()
        result = await session.start_orientation()
        if not result.ok:
            print(f"[Main] Orientation unavailable: {result.message}")

        print("\n--- Compass Loop Active ---")
        elapsed = 0.0
        while elapsed < duration_s:
            await asyncio.sleep(1.0)
            elapsed += 1.0
            print_frame(session)
    finally:
        session.close()

    print("\n--- Session complete ---")


def main() -> None:
    parser = argparse.ArgumentParser(description="Which building is in which direction?")
    parser.add_argument("--live", action="store_true", help="fetch buildings through the HTTP proxy")
    parser.add_argument("--serve", action="store_true", help="run the /api/buildings proxy")
    parser.add_argument("--port", type=int, default=5000)
    parser.add_argument("--duration", type=float, default=5.0, help="simulation length in seconds")
    args = parser.parse_args()

    # ------------------------------------------------------------------
    # Logging setup: configure once here, all modules inherit
    # ------------------------------------------------------------------
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    config = CompassConfig(api_base_url=f"http://127.0.0.1:{args.port}")

    if args.serve:
        serve(config, port=args.port)
        return

    asyncio.run(run(config, args.live, args.duration))


if __name__ == "__main__":
    main()
