"""
Privacy-safe structural diagnosis of a location history export.

The walk reuses the extractor's traversal and recognizers, so the candidate
counts here match what extract() would have produced for the same document.
On top of that it records why each rejected candidate failed.

Only counts, categories and structural key/path names reach the report.
Nothing in this module copies a scanned string, number, coordinate or resolved
timestamp into it, and nothing here logs one either.
"""

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Any

from timeline_replay.core.limits import DiagnosticLimits
from timeline_replay.core.paths import child_path, index_path
from timeline_replay.core.report_schema import (
    DiagnosticReport,
    FileStats,
    FilterStats,
    RejectionRecord,
    SuccessSample,
)
from timeline_replay.core.schema import (
    CoordinateConvention,
    KnownFormat,
    RejectionStage,
    is_within_timestamp_range,
    json_type_of,
)
from timeline_replay.diagnostics.shape_summary import collect_key_names, extract_schema
from timeline_replay.ingestion.classifiers import (
    GEO_PREFIX,
    LATITUDE_E7_KEY,
    LONGITUDE_E7_KEY,
    OFFSET_MINUTES_KEY,
    OFFSET_PATH_KEY,
    OFFSET_PATH_POINT_KEY,
    first_match,
    is_present_time_value,
    match_coordinates,
    parse_geo_string,
    parse_offset_minutes,
    recognize_waypoint_fallback,
)
from timeline_replay.ingestion.extractor import MS_PER_MINUTE
from timeline_replay.ingestion.traversal import NodeVisit, ScanBudget, walk_tree

logger = logging.getLogger(__name__)

TIMESTAMP_FAILURE_LABEL = "timestamp"

# Keys whose mere presence counts toward a format.
_KEY_FORMATS = {
    LATITUDE_E7_KEY: KnownFormat.SCALED_INTEGER,
    LONGITUDE_E7_KEY: KnownFormat.SCALED_INTEGER,
    "startTime": KnownFormat.START_TIME_FIELD,
    "timestamp": KnownFormat.TIMESTAMP_FIELD,
    "timestampMs": KnownFormat.TIMESTAMP_MS_FIELD,
    "placeLocation": KnownFormat.PLACE_LOCATION,
    OFFSET_MINUTES_KEY: KnownFormat.DURATION_OFFSET,
}


def tally_formats(node: dict[str, Any], format_tally: dict[KnownFormat, int]) -> None:
    for key, value in node.items():
        if isinstance(value, str) and value.startswith(GEO_PREFIX):
            format_tally[KnownFormat.GEO_STRING] += 1
        if key in _KEY_FORMATS:
            format_tally[_KEY_FORMATS[key]] += 1
        if key == OFFSET_PATH_KEY and isinstance(value, list):
            format_tally[KnownFormat.OFFSET_PATH] += 1
        if key == OFFSET_PATH_POINT_KEY and isinstance(value, str):
            format_tally[KnownFormat.POINT_FIELD] += 1


class _DiagnosticAccumulator:
    """Counters for one diagnostic pass. Never stores a scanned value."""

    def __init__(self, limits: DiagnosticLimits) -> None:
        self.limits = limits
        self.format_tally = {fmt: 0 for fmt in KnownFormat}
        self.filter_stats = FilterStats()
        self.rejections: list[RejectionRecord] = []
        self.success_samples: list[SuccessSample] = []
        self.parse_failures: Counter[str] = Counter()
        self.max_depth = 0

    def reject(self, path: str, stage: RejectionStage, message: str) -> None:
        # The earliest rejections are the ones kept.
        if len(self.rejections) < self.limits.max_rejections:
            self.rejections.append(RejectionRecord(path=path, stage=stage, message=message))

    def reject_coords(self, path: str, convention: CoordinateConvention, message: str) -> None:
        self.filter_stats.invalid_coords += 1
        self.parse_failures[convention] += 1
        self.reject(path, RejectionStage.COORDS, message)

    def check_timestamp(
        self,
        path: str,
        convention: CoordinateConvention,
        ts_ms: int | None,
        context_time: Any,
    ) -> None:
        """Classify a candidate whose coordinates parsed, the same way finalize_points would."""
        if ts_ms is None:
            self.filter_stats.no_timestamp += 1
            if is_present_time_value(context_time):
                message = "Timestamp on node or ancestor could not be parsed"
            else:
                message = "No startTime/timestamp on node or its ancestors"
            self.reject(path, RejectionStage.TIMESTAMP, message)
        elif not is_within_timestamp_range(ts_ms):
            self.filter_stats.zero_or_negative_ts += 1
            self.reject(path, RejectionStage.FILTER, "Timestamp not positive or beyond supported range")
        else:
            self.filter_stats.successful_extraction += 1
            if len(self.success_samples) < self.limits.max_success_samples:
                self.success_samples.append(SuccessSample(path=path, format=convention))


def _diagnose_own_time(visit: NodeVisit, acc: _DiagnosticAccumulator) -> None:
    if visit.own_time_key is None or visit.base_time_ms is not None:
        return
    value = visit.context_time
    if isinstance(value, str):
        message = "Invalid date string format"
    else:
        message = f"Unexpected type: {json_type_of(value)}"
    acc.parse_failures[TIMESTAMP_FAILURE_LABEL] += 1
    acc.reject(child_path(visit.path, visit.own_time_key), RejectionStage.TIMESTAMP, message)


def _diagnose_node_coordinates(visit: NodeVisit, acc: _DiagnosticAccumulator) -> None:
    attempts = match_coordinates(visit.node)
    if not attempts:
        return
    acc.filter_stats.total_candidates += 1
    winner = first_match(attempts)
    if winner is None:
        failed = attempts[0]
        acc.reject_coords(
            child_path(visit.path, failed.key),
            failed.convention,
            failed.error or "Failed to parse coordinates",
        )
        return
    acc.check_timestamp(
        child_path(visit.path, winner.key),
        winner.convention,
        visit.base_time_ms,
        visit.context_time,
    )


def _diagnose_offset_path(visit: NodeVisit, acc: _DiagnosticAccumulator) -> None:
    assert visit.base_time_ms is not None
    path_locator = child_path(visit.path, OFFSET_PATH_KEY)
    for i, waypoint in enumerate(visit.node[OFFSET_PATH_KEY]):
        waypoint_path = index_path(path_locator, i)
        if not isinstance(waypoint, dict):
            acc.filter_stats.total_candidates += 1
            acc.reject_coords(
                waypoint_path,
                CoordinateConvention.OFFSET_PATH,
                f"Waypoint has type {json_type_of(waypoint)}, expected object",
            )
            continue
        coords = parse_geo_string(waypoint.get(OFFSET_PATH_POINT_KEY))
        if coords is None and recognize_waypoint_fallback(waypoint) is not None:
            # Counted as a node-level candidate when the waypoint itself is visited.
            continue
        acc.filter_stats.total_candidates += 1
        point_path = child_path(waypoint_path, OFFSET_PATH_POINT_KEY)
        if coords is None:
            acc.reject_coords(
                point_path, CoordinateConvention.OFFSET_PATH, "Failed to parse waypoint coordinates"
            )
            continue
        offset_minutes = parse_offset_minutes(waypoint.get(OFFSET_MINUTES_KEY))
        acc.check_timestamp(
            point_path,
            CoordinateConvention.OFFSET_PATH,
            visit.base_time_ms + offset_minutes * MS_PER_MINUTE,
            visit.context_time,
        )


def generate_recommendations(
    format_tally: dict[KnownFormat, int],
    filter_stats: FilterStats,
    parse_failures: Counter[str],
    limits: DiagnosticLimits,
) -> list[str]:
    """Plain-language hints derived purely from the counts."""
    recommendations = []

    if not any(format_tally.values()):
        recommendations.append(
            "No supported location format was detected. "
            "Make sure the file is a Timeline export from Google Takeout or the Maps app."
        )

    if filter_stats.no_timestamp > limits.no_timestamp_warning_threshold:
        recommendations.append(
            f"{filter_stats.no_timestamp} location candidates had no usable timestamp. "
            "Their parent nodes may lack startTime/timestamp."
        )
    if filter_stats.invalid_coords > 0:
        recommendations.append(
            f"{filter_stats.invalid_coords} coordinate values could not be parsed. "
            "The geo: strings or E7 fields may be malformed."
        )
    if filter_stats.zero_or_negative_ts > 0:
        recommendations.append(
            f"{filter_stats.zero_or_negative_ts} candidates were dropped for an invalid timestamp (ts <= 0)."
        )
    if filter_stats.successful_extraction > 0:
        recommendations.append(
            f"{filter_stats.successful_extraction} location points were detected successfully."
        )

    for label, count in sorted(parse_failures.items()):
        if count > limits.parse_failure_warning_threshold:
            recommendations.append(
                f"{count} parse errors in the {label} format. This format may not be supported."
            )

    if format_tally[KnownFormat.OFFSET_PATH] > 0:
        recommendations.append(
            f"timelinePath format detected {format_tally[KnownFormat.OFFSET_PATH]} times (supported)."
        )
    if format_tally[KnownFormat.SCALED_INTEGER] > 0:
        recommendations.append(
            f"latitudeE7/longitudeE7 format detected {format_tally[KnownFormat.SCALED_INTEGER]} times (supported)."
        )
    if format_tally[KnownFormat.DURATION_OFFSET] > 0:
        recommendations.append(
            f"durationMinutesOffset format detected {format_tally[KnownFormat.DURATION_OFFSET]} times "
            "(time offsets inside timelinePath)."
        )

    if not recommendations:
        recommendations.append("The data format was recognized normally.")
    return recommendations


def diagnose(
    root: Any,
    *,
    limits: DiagnosticLimits = DiagnosticLimits(),
    generated_at: datetime | None = None,
) -> DiagnosticReport:
    """
    Build a structural report of a parsed export without revealing any of its values.

    Safe to run on any decoded JSON value, including one extract() rejected.
    generated_at defaults to the current UTC time.
    """
    if generated_at is None:
        generated_at = datetime.now(timezone.utc)
    budget = ScanBudget(max_nodes=limits.max_nodes)
    acc = _DiagnosticAccumulator(limits)

    for visit in walk_tree(root, budget, track_paths=True):
        acc.max_depth = max(acc.max_depth, visit.depth)
        if not isinstance(visit.node, dict):
            continue
        tally_formats(visit.node, acc.format_tally)
        _diagnose_own_time(visit, acc)
        if not visit.is_waypoint or recognize_waypoint_fallback(visit.node) is not None:
            _diagnose_node_coordinates(visit, acc)
        if visit.expands_offset_path:
            _diagnose_offset_path(visit, acc)

    root_schema = extract_schema(root, limits)
    logger.info(
        f"Diagnosed document: {budget.scanned=} {acc.filter_stats.total_candidates=} "
        f"{acc.filter_stats.successful_extraction=}"
    )

    return DiagnosticReport(
        generated_at=generated_at.isoformat(timespec="seconds"),
        file_stats=FileStats(
            estimated_records=sum(acc.format_tally.values()),
            max_depth=acc.max_depth,
            unique_key_patterns=len(collect_key_names(root_schema)),
            scanned_nodes=budget.scanned,
            scan_limit_reached=budget.exhausted,
        ),
        format_tally=acc.format_tally,
        filter_stats=acc.filter_stats,
        success_samples=acc.success_samples,
        rejections=acc.rejections,
        root_schema=root_schema,
        recommendations=generate_recommendations(
            acc.format_tally, acc.filter_stats, acc.parse_failures, limits
        ),
    )
