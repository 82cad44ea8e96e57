"""Shared fakes for the platform sensors and the building fetch boundary."""
import asyncio

import pytest

from building_compass.compass_config import CompassConfig
from building_compass.compass_session import GeolocationProvider
from building_compass.errors import GeolocationError
from building_compass.heading_estimator import OrientationSensor
from building_compass.models import Building, Coord


class FakeSensor(OrientationSensor):
    """Orientation source driven by the test."""

    def __init__(self, supported=True, requires_permission=False, grant=True, consent_gate=None):
        self.supported = supported
        self.requires_permission = requires_permission
        self.grant = grant
        self.consent_gate = consent_gate     # asyncio.Event holding the consent prompt open
        self.permission_requests = 0
        self.listeners = []

    async def request_permission(self):
        self.permission_requests += 1
        if self.consent_gate is not None:
            await self.consent_gate.wait()
        return self.grant

    def add_listener(self, callback):
        self.listeners.append(callback)

    def remove_listener(self, callback):
        self.listeners.remove(callback)

    def emit(self, event):
        for cb in list(self.listeners):
            cb(event)


class FakeGPS(GeolocationProvider):
    def __init__(self, position=None, error=None, delay_s=0.0, supported=True):
        self.position = position
        self.error = error
        self.delay_s = delay_s
        self.supported = supported
        self.calls = []

    async def get_current_position(self, timeout_s, maximum_age_s, high_accuracy=True):
        self.calls.append((timeout_s, maximum_age_s, high_accuracy))
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.error is not None:
            raise GeolocationError(self.error)
        return self.position


class FakeFetcher:
    def __init__(self, buildings=None, error=None):
        self.buildings = buildings or []
        self.error = error
        self.calls = []

    async def fetch(self, position, radius_m):
        self.calls.append((position, radius_m))
        if self.error is not None:
            raise self.error
        return list(self.buildings)


@pytest.fixture
def config():
    return CompassConfig()


@pytest.fixture
def origin():
    return Coord(35.6570, 139.7031)


@pytest.fixture
def buildings():
    """Buildings around the origin: N, E, S, W, NE and a close one to the NW."""
    return [
        Building(1, "North tower", "office", Coord(35.6590, 139.7031)),
        Building(2, "East hall", "commercial", Coord(35.6570, 139.7055)),
        Building(3, "South house", "house", Coord(35.6555, 139.7031)),
        Building(4, "West mart", "retail", Coord(35.6570, 139.7010)),
        Building(5, "Corner office", "office", Coord(35.6580, 139.7041), address="Dogenzaka 1"),
        Building(6, "Kiosk", "kiosk", Coord(35.6575, 139.7025)),
    ]
