"""Extraction of time-ordered location samples from a parsed location history export."""

import logging
from collections.abc import Callable, Iterable
from typing import Any

from timeline_replay.core.limits import ScanLimits
from timeline_replay.core.schema import (
    Candidate,
    Point,
    is_within_timestamp_range,
    year_from_timestamp_ms,
)
from timeline_replay.ingestion.classifiers import (
    OFFSET_MINUTES_KEY,
    OFFSET_PATH_KEY,
    OFFSET_PATH_POINT_KEY,
    first_match,
    match_coordinates,
    parse_geo_string,
    parse_offset_minutes,
    recognize_waypoint_fallback,
)
from timeline_replay.ingestion.traversal import NodeVisit, ScanBudget, walk_tree

logger = logging.getLogger(__name__)

MS_PER_MINUTE = 60_000

ProgressCallback = Callable[[int], None]
YieldPoint = Callable[[], None]


class NoPointsFound(ValueError):
    """Extraction finished without a single valid location sample."""

    def __init__(
        self,
        message: str = (
            "No location points were found in this file. "
            "Run the diagnostics to see which formats were detected."
        ),
    ) -> None:
        super().__init__(message)


class _ProgressReporter:
    """Keeps reported percentages non-decreasing and below 100 until the result is ready."""

    def __init__(
        self,
        on_progress: ProgressCallback | None,
        yield_point: YieldPoint | None,
        estimated_total_nodes: int,
    ) -> None:
        self._on_progress = on_progress
        self._yield_point = yield_point
        self._estimated_total_nodes = max(1, estimated_total_nodes)
        self._last_percent = 0

    def checkpoint(self, scanned: int) -> None:
        percent = min(99, scanned * 100 // self._estimated_total_nodes)
        self._last_percent = max(self._last_percent, percent)
        if self._on_progress is not None:
            self._on_progress(self._last_percent)
        if self._yield_point is not None:
            self._yield_point()

    def complete(self) -> None:
        self._last_percent = 100
        if self._on_progress is not None:
            self._on_progress(100)


def candidates_from_visit(visit: NodeVisit) -> list[Candidate]:
    """
    Candidates contributed by one node.

    The node-level coordinate comes from the first recognizer that parses, and
    takes the node's own time or the inherited one. An offset path is expanded
    into one candidate per waypoint. Its elements are later visited as waypoints
    and only get node-level extraction when their own point fails to parse, so
    each waypoint is counted once.
    """
    node = visit.node
    if not isinstance(node, dict):
        return []

    candidates = []
    if visit.is_waypoint:
        winner = recognize_waypoint_fallback(node)
    else:
        winner = first_match(match_coordinates(node))
    if winner is not None:
        assert winner.coords is not None
        candidates.append(
            Candidate(lat=winner.coords.lat, lng=winner.coords.lng, ts_ms=visit.base_time_ms)
        )

    if visit.expands_offset_path:
        assert visit.base_time_ms is not None
        for waypoint in node[OFFSET_PATH_KEY]:
            if not isinstance(waypoint, dict):
                continue
            coords = parse_geo_string(waypoint.get(OFFSET_PATH_POINT_KEY))
            if coords is None:
                continue
            offset_minutes = parse_offset_minutes(waypoint.get(OFFSET_MINUTES_KEY))
            candidates.append(
                Candidate(
                    lat=coords.lat,
                    lng=coords.lng,
                    ts_ms=visit.base_time_ms + offset_minutes * MS_PER_MINUTE,
                )
            )
    return candidates


def finalize_points(candidates: Iterable[Candidate]) -> list[Point]:
    """Drop candidates without a usable timestamp, attach the year, and stable-sort by time."""
    points = [
        Point(
            lat=candidate.lat,
            lng=candidate.lng,
            ts_ms=candidate.ts_ms,
            year=year_from_timestamp_ms(candidate.ts_ms),
        )
        for candidate in candidates
        if candidate.ts_ms is not None and is_within_timestamp_range(candidate.ts_ms)
    ]
    points.sort(key=lambda point: point.ts_ms)
    return points


def extract(
    root: Any,
    on_progress: ProgressCallback | None = None,
    *,
    yield_point: YieldPoint | None = None,
    limits: ScanLimits = ScanLimits(),
) -> list[Point]:
    """
    Extract every recognizable location sample from a parsed export.

    Args:
        root: The decoded JSON document. It is never modified.
        on_progress: Called with non-decreasing percentages, at most 99 while the
            walk runs, then 100 once the result is ready.
        yield_point: Called after each progress report so an interactive host
            can hand control back to its scheduler.
        limits: Node-visit ceiling and progress cadence.

    Returns:
        Points sorted by timestamp. Equal timestamps keep document order.

    Raises:
        NoPointsFound: If no candidate survives timestamp resolution and filtering.
    """
    budget = ScanBudget(max_nodes=limits.max_nodes)
    progress = _ProgressReporter(on_progress, yield_point, limits.estimated_total_nodes)

    candidates: list[Candidate] = []
    for visit in walk_tree(
        root,
        budget,
        checkpoint_every=limits.progress_chunk_size,
        on_checkpoint=progress.checkpoint,
    ):
        candidates.extend(candidates_from_visit(visit))

    points = finalize_points(candidates)
    logger.info(
        f"Extracted {len(points)} points from {len(candidates)} candidates, {budget.scanned=}"
    )
    if not points:
        raise NoPointsFound()

    progress.complete()
    return points
