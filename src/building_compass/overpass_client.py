# overpass_client.py
# Queries the OpenStreetMap Overpass API for buildings around a point
# and shapes the raw elements into Building records.
#
# Usage:
#   client = OverpassClient(config)
#   buildings = client.fetch_buildings(35.657, 139.703, radius=200)

import logging
import math
from typing import Dict, List, Optional

import requests

from building_compass.compass_config import CompassConfig
from building_compass.errors import BuildingFetchError
from building_compass.models import Building, Coord

logger = logging.getLogger(__name__)

DEFAULT_LABEL = "建物"          # shown when OSM has no usable name
DEFAULT_CATEGORY = "building"


# ---------------------------------------------------------------------------
# Query helpers
# ---------------------------------------------------------------------------

def clamp_radius(radius, config: Optional[CompassConfig] = None) -> float:
    """
    Coerce a user-supplied radius into the allowed search range.

    A missing or non-numeric value falls back to the default radius;
    an empty string counts as 0 and clamps to the minimum.
    """
    config = config or CompassConfig()
    if isinstance(radius, str) and not radius.strip():
        radius = 0
    try:
        value = float(radius)
    except (TypeError, ValueError):
        value = float(config.default_radius_m)
    if not math.isfinite(value):
        value = float(config.default_radius_m)
    value = float(min(max(value, config.min_radius_m), config.max_radius_m))
    return int(value) if value.is_integer() else value


def build_query(lat: float, lon: float, radius: float, timeout_s: int = 25) -> str:
    """Overpass QL for every building way/relation within radius metres."""
    around = f"(around:{radius},{lat},{lon})"
    return "".join([
        f"[out:json][timeout:{timeout_s}];",
        "(",
        f'way["building"]{around};',
        f'relation["building"]{around};',
        ");",
        "out center tags;",
    ])


def format_address(tags: Dict[str, str]) -> Optional[str]:
    if tags.get("addr:full"):
        return tags["addr:full"]
    street = tags.get("addr:street")
    number = tags.get("addr:housenumber")
    if street and number:
        return f"{street} {number}"
    if street:
        return street
    return None


def parse_elements(elements: List[dict]) -> List[Building]:
    """
    Turn Overpass elements into Buildings.

    Ways and relations carry their position in "center"; nodes carry it
    directly. Elements without any position are skipped.
    """
    buildings: List[Building] = []
    for element in elements:
        tags = element.get("tags") or {}
        center = element.get("center") or {}
        lat = element.get("lat", center.get("lat"))
        lon = element.get("lon", center.get("lon"))
        if lat is None or lon is None:
            continue
        buildings.append(Building(
            id=element["id"],
            label=tags.get("name") or tags.get("addr:housename") or tags.get("building") or DEFAULT_LABEL,
            category=tags.get("building") or DEFAULT_CATEGORY,
            location=Coord(float(lat), float(lon)),
            address=format_address(tags),
        ))
    return buildings


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class OverpassClient:
    """
    Thin wrapper around the Overpass interpreter endpoint.

    Args:
        config: CompassConfig for endpoint, timeouts and radius limits.
        session: Optional requests.Session (reused connections, tests).
    """

    def __init__(
        self,
        config: Optional[CompassConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config or CompassConfig()
        self._http = session or requests.Session()

    def fetch_buildings(self, lat: float, lon: float, radius: float) -> List[Building]:
        """
        Fetch buildings around a point.

        Args:
            lat, lon: Search centre in decimal degrees.
            radius:   Search radius in metres, already clamped.

        Returns:
            List of Building records.

        Raises:
            BuildingFetchError: upstream unreachable or returned non-OK.
        """
        query = build_query(lat, lon, radius, self.config.overpass_timeout_s)
        logger.info(f"[Overpass] Querying buildings within {radius} m of ({lat:.5f}, {lon:.5f})")
        try:
            response = self._http.post(
                self.config.overpass_endpoint,
                data={"data": query},
                headers={"Content-Type": "application/x-www-form-urlencoded; charset=UTF-8"},
                timeout=self.config.http_timeout_s,
            )
        except requests.RequestException as e:
            logger.error(f"[Overpass] Request failed: {e}")
            raise BuildingFetchError("Failed to fetch OSM data.") from e

        if not response.ok:
            logger.warning(f"[Overpass] Upstream returned {response.status_code}")
            raise BuildingFetchError("Failed to fetch OSM data.")

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"[Overpass] Invalid JSON: {e}")
            raise BuildingFetchError("Failed to fetch OSM data.") from e

        buildings = parse_elements(data.get("elements") or [])
        logger.info(f"[Overpass] {len(buildings)} buildings found.")
        return buildings
