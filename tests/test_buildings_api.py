"""Tests for buildings_api.py, the client of GET /api/buildings."""
import asyncio

import pytest
import requests

from building_compass.buildings_api import BuildingsApiClient
from building_compass.compass_config import CompassConfig
from building_compass.errors import BuildingFetchError
from building_compass.models import Coord


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self.ok = status_code < 400
        self._payload = payload or {}

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.gets = []

    def get(self, url, **kwargs):
        self.gets.append((url, kwargs))
        if self.exc is not None:
            raise self.exc
        return self.response


def test_fetch_builds_request_and_parses():
    payload = {"buildings": [
        {"id": 1, "label": "Tower", "type": "office", "lat": 35.1, "lng": 139.2},
    ], "radius": 200}
    session = FakeSession(FakeResponse(200, payload))
    client = BuildingsApiClient(CompassConfig(api_base_url="http://api.test/"), session=session)

    found = asyncio.run(client.fetch(Coord(35.0, 139.0), 200))

    assert found[0].label == "Tower"
    assert found[0].location == Coord(35.1, 139.2)
    assert found[0].address is None
    url, kwargs = session.gets[0]
    assert url == "http://api.test/api/buildings"
    assert kwargs["params"] == {"lat": "35.0", "lng": "139.0", "radius": "200"}


def test_fetch_non_ok_raises():
    client = BuildingsApiClient(session=FakeSession(FakeResponse(500)))
    with pytest.raises(BuildingFetchError) as info:
        client.fetch_sync(Coord(0, 0), 200)
    assert info.value.status_code == 500


def test_fetch_network_error_raises():
    client = BuildingsApiClient(session=FakeSession(exc=requests.Timeout("slow")))
    with pytest.raises(BuildingFetchError):
        client.fetch_sync(Coord(0, 0), 200)


def test_fetch_malformed_payload_raises():
    client = BuildingsApiClient(session=FakeSession(FakeResponse(200, {"buildings": [{"id": 1}]})))
    with pytest.raises(BuildingFetchError):
        client.fetch_sync(Coord(0, 0), 200)
