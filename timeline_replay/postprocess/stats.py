"""Summary statistics over an extracted, time-sorted point DataFrame."""

import logging
import math
from typing import Optional

import numpy as np
import pandas as pd
from pydantic import BaseModel

from timeline_replay.core.schema import SchemaColumns as C

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
EARTH_CIRCUMFERENCE_KM = 40075.0
EARTH_MOON_DISTANCE_KM = 384400.0
MS_PER_DAY = 1000 * 60 * 60 * 24

HOP_KM = "HOP_KM"


class YearSummary(BaseModel):
    year: int
    points: int
    distance_km: int


class LongestHop(BaseModel):
    distance_km: int
    from_lat: float
    from_lng: float
    to_lat: float
    to_lng: float
    ts_ms: int


class TimelineStats(BaseModel):
    total_points: int
    total_distance_km: int
    yearly_breakdown: list[YearSummary]
    longest_hop: Optional[LongestHop]
    earth_circumferences: float
    moon_distance_percent: float
    average_points_per_day: float
    start_ts_ms: int
    end_ts_ms: int


def _round_half_up(value: float, ndigits: int = 0) -> float:
    scale = 10**ndigits
    return math.floor(value * scale + 0.5) / scale


def haversine_km(lat1, lng1, lat2, lng2):
    """Great-circle distance in kilometres. Works on scalars and numpy arrays alike."""
    lat1, lng1, lat2, lng2 = map(np.radians, (lat1, lng1, lat2, lng2))
    a = (
        np.sin((lat2 - lat1) / 2) ** 2
        + np.cos(lat1) * np.cos(lat2) * np.sin((lng2 - lng1) / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


def calculate_stats(df: pd.DataFrame) -> TimelineStats:
    """
    Distance and coverage statistics for a time-sorted point DataFrame.

    Each hop between consecutive points is attributed to the year of the later
    point. Hops are not filtered, so flights count toward the total.
    """
    if df.empty:
        return TimelineStats(
            total_points=0,
            total_distance_km=0,
            yearly_breakdown=[],
            longest_hop=None,
            earth_circumferences=0.0,
            moon_distance_percent=0.0,
            average_points_per_day=0.0,
            start_ts_ms=0,
            end_ts_ms=0,
        )

    lat = df[C.GPS_LATITUDE].to_numpy(dtype=float)
    lng = df[C.GPS_LONGITUDE].to_numpy(dtype=float)
    hops = np.zeros(len(df))
    hops[1:] = haversine_km(lat[:-1], lng[:-1], lat[1:], lng[1:])
    total_distance = float(hops.sum())

    by_year = (
        df.assign(**{HOP_KM: hops})
        .groupby(C.YEAR)
        .agg(points=(HOP_KM, "size"), distance=(HOP_KM, "sum"))
        .sort_index(ascending=False)
    )
    yearly_breakdown = [
        YearSummary(
            year=int(year),
            points=int(row["points"]),
            distance_km=int(_round_half_up(row["distance"])),
        )
        for year, row in by_year.iterrows()
    ]

    longest_hop = None
    if len(df) > 1 and hops.max() > 0:
        i = int(np.argmax(hops))
        longest_hop = LongestHop(
            distance_km=int(_round_half_up(hops[i])),
            from_lat=float(lat[i - 1]),
            from_lng=float(lng[i - 1]),
            to_lat=float(lat[i]),
            to_lng=float(lng[i]),
            ts_ms=int(df[C.TIMESTAMP_MS].iloc[i]),
        )

    start_ts_ms = int(df[C.TIMESTAMP_MS].min())
    end_ts_ms = int(df[C.TIMESTAMP_MS].max())
    days = max(1, math.ceil((end_ts_ms - start_ts_ms) / MS_PER_DAY))

    logger.info(f"Computed stats for {len(df)} points, {total_distance=:.1f}km")
    return TimelineStats(
        total_points=len(df),
        total_distance_km=int(_round_half_up(total_distance)),
        yearly_breakdown=yearly_breakdown,
        longest_hop=longest_hop,
        earth_circumferences=_round_half_up(total_distance / EARTH_CIRCUMFERENCE_KM, 2),
        moon_distance_percent=_round_half_up(total_distance / EARTH_MOON_DISTANCE_KM * 100, 2),
        average_points_per_day=_round_half_up(len(df) / days, 1),
        start_ts_ms=start_ts_ms,
        end_ts_ms=end_ts_ms,
    )


def format_distance(km: float) -> str:
    if km < 1:
        return f"{int(_round_half_up(km * 1000))}m"
    if km < 10:
        return f"{km:.1f}km"
    if km < 1000:
        return f"{int(_round_half_up(km))}km"
    return f"{km / 1000:.1f}k km"


def format_large_number(num: int) -> str:
    if num < 1000:
        return str(num)
    if num < 10000:
        return f"{num / 1000:.1f}K"
    if num < 1_000_000:
        return f"{int(_round_half_up(num / 1000))}K"
    return f"{num / 1_000_000:.1f}M"


def format_stats_summary(stats: TimelineStats) -> str:
    """One human-readable line, as printed after an ingestion run."""
    parts = [
        f"{format_large_number(stats.total_points)} points",
        f"{format_distance(stats.total_distance_km)} travelled",
    ]
    if stats.longest_hop is not None:
        parts.append(f"longest hop {format_distance(stats.longest_hop.distance_km)}")
    return ", ".join(parts)
