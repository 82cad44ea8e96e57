# models.py
# Shared data structures and enums used across all modules.

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


# ---------------------------------------------------------------------------
# Coordinate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Coord:
    """Immutable geographic coordinate."""
    lat: float
    lon: float


# ---------------------------------------------------------------------------
# Building
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Building:
    """A building returned by the map query service."""
    id: int
    label: str
    category: str                # OSM "building" tag value, e.g. "house"
    location: Coord
    address: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "type": self.category,
            "address": self.address,
            "lat": self.location.lat,
            "lng": self.location.lon,
        }

    @staticmethod
    def from_dict(d: dict) -> "Building":
        return Building(
            id=d["id"],
            label=d["label"],
            category=d.get("type", "building"),
            location=Coord(float(d["lat"]), float(d["lng"])),
            address=d.get("address"),
        )


# ---------------------------------------------------------------------------
# Derived geometry
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BearingResult:
    """Bearing and distance from the user to one target."""
    bearing_deg: float           # [0, 360)
    distance_m: float            # >= 0


@dataclass(frozen=True)
class LayoutEntry:
    """Screen placement of one building marker for the current heading."""
    building: Building
    bearing: BearingResult
    relative_angle: float        # (-180, 180], 0 = straight ahead
    vertical_rank: int
    vertical_offset_px: float
    screen_x_fraction: float     # offset from the 50% centre line
    is_near: bool

    @property
    def screen_x_percent(self) -> float:
        return 50.0 + self.screen_x_fraction * 100.0


@dataclass(frozen=True)
class CardinalMarker:
    """One of the eight fixed compass direction markers."""
    label: str
    angle: float
    relative_angle: float
    screen_x_fraction: float

    @property
    def screen_x_percent(self) -> float:
        return 50.0 + self.screen_x_fraction * 100.0


# ---------------------------------------------------------------------------
# Status enums
# ---------------------------------------------------------------------------

class HeadingState(Enum):
    IDLE       = "idle"
    LISTENING  = "listening"


class OrientationError(Enum):
    UNSUPPORTED = "unsupported"
    DENIED      = "denied"


class SearchStatus(Enum):
    IDLE       = "idle"
    LOCATING   = "locating"
    SEARCHING  = "searching"
    READY      = "ready"
    FAILED     = "failed"


@dataclass
class StartResult:
    """Returned by HeadingEstimator.start()."""
    ok: bool
    error: Optional[OrientationError] = None
    message: str = ""


@dataclass
class CompassFrame:
    """Everything the view needs to draw one frame."""
    heading: Optional[float]
    origin: Optional[Coord]
    entries: List[LayoutEntry] = field(default_factory=list)
    cardinals: List[CardinalMarker] = field(default_factory=list)
    status: str = ""
    error: str = ""
    orientation_error: str = ""

    @property
    def has_markers(self) -> bool:
        return bool(self.entries)
