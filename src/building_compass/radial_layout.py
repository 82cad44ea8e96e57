# radial_layout.py
# Projects real-world bearings onto a horizontal compass strip.
#
# The strip spans the full ±180° around the current heading; x is expressed
# as an offset from the 50% centre line. Markers that would overlap are
# stacked vertically by their rank in absolute-bearing order, which does not
# change as the user turns.

from typing import Iterable, List, Optional, Sequence

import numpy as np

from building_compass.compass_config import CARDINAL_DIRECTIONS, CompassConfig
from building_compass.geo_utils import bearing_result
from building_compass.models import Building, CardinalMarker, Coord, LayoutEntry


def relative_angle(absolute_bearing: float, heading: float) -> float:
    """
    Signed shortest angle from heading to bearing, in (-180, 180].

    Examples:
        relative_angle(0, 180)   ->  180
        relative_angle(350, 10)  ->  -20
    """
    diff = ((absolute_bearing - heading + 540.0) % 360.0) - 180.0
    if diff <= -180.0:
        return diff + 360.0
    return diff


def screen_x_fraction(rel_angle: float) -> float:
    """Horizontal offset from the centre, as a fraction of the view width."""
    return rel_angle / 180.0 * 0.5


def bearing_ranks(bearings: Sequence[float]) -> List[int]:
    """
    Position of each bearing in ascending order.

    Ties keep their input order, so the result is always a permutation
    of 0..N-1.
    """
    order = np.argsort(np.asarray(bearings, dtype=float), kind="stable")
    ranks = np.empty(len(order), dtype=int)
    ranks[order] = np.arange(len(order))
    return ranks.tolist()


def vertical_offset(rank: int, spacing: float = 24.0, cycle: int = 20) -> float:
    """Pixel offset from the vertical centre for a given rank."""
    return (rank % cycle) * spacing - (spacing * cycle) / 2


def cardinal_markers(heading: Optional[float]) -> List[CardinalMarker]:
    h = heading if heading is not None else 0.0
    markers = []
    for label, angle in CARDINAL_DIRECTIONS:
        rel = relative_angle(angle, h)
        markers.append(CardinalMarker(
            label=label,
            angle=angle,
            relative_angle=rel,
            screen_x_fraction=screen_x_fraction(rel),
        ))
    return markers


def marker_buildings(
    buildings: Iterable[Building],
    config: Optional[CompassConfig] = None,
) -> List[Building]:
    """Buildings worth a radial marker: drops the generic placeholder label."""
    placeholder = (config or CompassConfig()).placeholder_label
    return [b for b in buildings if b.label != placeholder]


def layout(
    heading: Optional[float],
    origin: Coord,
    buildings: Sequence[Building],
    config: Optional[CompassConfig] = None,
) -> List[LayoutEntry]:
    """
    Place every building on the compass strip.

    Args:
        heading:   Smoothed heading in degrees, or None (treated as north).
        origin:    The user's position.
        buildings: Buildings to place, in display order.
        config:    Spacing, cycle length and proximity threshold.

    Returns:
        One LayoutEntry per building, in the same order as the input.
    """
    config = config or CompassConfig()
    h = heading if heading is not None else 0.0

    results = [bearing_result(origin, b.location) for b in buildings]
    ranks = bearing_ranks([r.bearing_deg for r in results])

    entries = []
    for building, result, rank in zip(buildings, results, ranks):
        rel = relative_angle(result.bearing_deg, h)
        entries.append(LayoutEntry(
            building=building,
            bearing=result,
            relative_angle=rel,
            vertical_rank=rank,
            vertical_offset_px=vertical_offset(rank, config.rank_spacing_px, config.rank_cycle),
            screen_x_fraction=screen_x_fraction(rel),
            is_near=result.distance_m <= config.near_threshold_m,
        ))
    return entries
