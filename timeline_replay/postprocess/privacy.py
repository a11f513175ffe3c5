"""Grid-snapping obfuscation of extracted points."""

import dataclasses
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from timeline_replay.core.schema import Point

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrivacyLevel:
    id: str
    label: str
    description: str
    # Grid cell size in degrees. 0 disables obfuscation.
    grid_size: float


PRIVACY_LEVELS: tuple[PrivacyLevel, ...] = (
    PrivacyLevel("none", "None", "Raw data", 0.0),
    PrivacyLevel("low", "Low", "About 1 km / neighbourhood", 0.01),
    PrivacyLevel("medium", "Medium", "About 5 km / city district", 0.05),
    PrivacyLevel("high", "High", "About 50 km / region", 0.5),
    PrivacyLevel("max", "Max", "About 110 km / wide area", 1.0),
)


def get_privacy_level_by_id(level_id: str) -> PrivacyLevel | None:
    for level in PRIVACY_LEVELS:
        if level.id == level_id:
            return level
    return None


def snap_to_grid_center(value: float, grid_size: float) -> float:
    return math.floor(value / grid_size) * grid_size + grid_size / 2


def obfuscate_points(points: Sequence[Point], grid_size: float) -> list[Point]:
    """
    Snap every coordinate to the center of its grid cell.

    Timestamps and years are kept. The input is not modified; a new list is
    returned even when grid_size <= 0 disables snapping.
    """
    if grid_size <= 0:
        return list(points)
    logger.debug(f"Obfuscating {len(points)} points with {grid_size=}")
    return [
        dataclasses.replace(
            point,
            lat=snap_to_grid_center(point.lat, grid_size),
            lng=snap_to_grid_center(point.lng, grid_size),
        )
        for point in points
    ]
