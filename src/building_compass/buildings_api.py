# buildings_api.py
# Client side of GET /api/buildings.

import asyncio
import logging
from typing import List, Optional

import requests

from building_compass.compass_config import CompassConfig
from building_compass.errors import BuildingFetchError
from building_compass.models import Building, Coord

logger = logging.getLogger(__name__)

FETCH_FAILED_MESSAGE = "Failed to fetch building data."


class BuildingsApiClient:
    """
    Fetches the building list from the proxy endpoint.

    Args:
        config: CompassConfig for base URL and timeout.
        session: Optional requests.Session.
    """

    def __init__(
        self,
        config: Optional[CompassConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config or CompassConfig()
        self._http = session or requests.Session()

    async def fetch(self, position: Coord, radius_m: float) -> List[Building]:
        """Run the blocking request in a worker thread."""
        return await asyncio.to_thread(self.fetch_sync, position, radius_m)

    def fetch_sync(self, position: Coord, radius_m: float) -> List[Building]:
        """
        Raises:
            BuildingFetchError: endpoint unreachable or returned non-OK.
        """
        url = f"{self.config.api_base_url.rstrip('/')}/api/buildings"
        params = {
            "lat": str(position.lat),
            "lng": str(position.lon),
            "radius": str(radius_m),
        }
        try:
            response = self._http.get(url, params=params, timeout=self.config.http_timeout_s)
        except requests.RequestException as e:
            logger.error(f"[BuildingsAPI] Request failed: {e}")
            raise BuildingFetchError(FETCH_FAILED_MESSAGE) from e

        if not response.ok:
            logger.warning(f"[BuildingsAPI] Endpoint returned {response.status_code}")
            raise BuildingFetchError(FETCH_FAILED_MESSAGE, status_code=response.status_code)

        try:
            data = response.json()
            return [Building.from_dict(d) for d in data.get("buildings") or []]
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"[BuildingsAPI] Malformed response: {e}")
            raise BuildingFetchError(FETCH_FAILED_MESSAGE) from e
