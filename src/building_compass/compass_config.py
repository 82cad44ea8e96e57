# compass_config.py
# All tuneable constants in one place.
# Pass a CompassConfig instance to every module that needs settings.

from dataclasses import dataclass, field

from building_compass.models import Coord


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

CARDINAL_DIRECTIONS = (
    ("N", 0.0), ("NE", 45.0), ("E", 90.0), ("SE", 135.0),
    ("S", 180.0), ("SW", 225.0), ("W", 270.0), ("NW", 315.0),
)

# Shibuya, Tokyo, used whenever geolocation is unavailable
FALLBACK_COORD = Coord(35.65702, 139.70311)

OVERPASS_ENDPOINT = "https://overpass-api.de/api/interpreter"


# ---------------------------------------------------------------------------
# Main config
# ---------------------------------------------------------------------------

@dataclass
class CompassConfig:
    # Heading smoothing
    heading_history_size: int = 12
    tick_hz: float = 60.0                  # re-sampling rate of the heading loop

    # Radial layout
    near_threshold_m: float = 100.0        # buildings within this are emphasised
    rank_cycle: int = 20                   # vertical slots before wrapping to the top
    rank_spacing_px: float = 24.0
    placeholder_label: str = "yes"         # unnamed buildings, hidden from the radial view

    # Search
    fallback_coord: Coord = field(default_factory=lambda: FALLBACK_COORD)
    default_radius_m: int = 200
    min_radius_m: int = 50
    max_radius_m: int = 1000
    geolocation_timeout_s: float = 10.0
    geolocation_max_age_s: float = 30.0

    # Map query service
    overpass_endpoint: str = OVERPASS_ENDPOINT
    overpass_timeout_s: int = 25           # server-side query timeout
    http_timeout_s: float = 30.0           # client-side socket timeout
    api_base_url: str = "http://127.0.0.1:5000"

    @property
    def tick_interval_s(self) -> float:
        return 1.0 / self.tick_hz
