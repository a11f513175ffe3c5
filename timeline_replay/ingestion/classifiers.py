"""
Stateless recognizers for the value shapes found in location history exports.

Nothing here raises on odd input: every function answers with None, a fallback
category, or an attempt record. Both walkers share these, which keeps the
diagnostic counts comparable to what extraction produces.
"""

import math
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from timeline_replay.core.limits import NumberShapeThresholds
from timeline_replay.core.schema import (
    EPOCH,
    MAX_TIMESTAMP_MS,
    CoordinateConvention,
    LatLng,
    NumberShape,
    StringShape,
    json_type_of,
)

GEO_PREFIX = "geo:"

# Checked in this order; the first one that parses wins.
GEO_STRING_KEYS = ("point", "placeLocation", "start", "end", "location")
LATITUDE_E7_KEY = "latitudeE7"
LONGITUDE_E7_KEY = "longitudeE7"

# Own absolute time of a node, first present wins.
ABSOLUTE_TIME_KEYS = ("startTime", "timestamp", "timestampMs")

OFFSET_PATH_KEY = "timelinePath"
OFFSET_PATH_POINT_KEY = "point"
OFFSET_MINUTES_KEY = "durationMinutesOffsetFromStartTime"

_ISO8601_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T")
_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_URL_RE = re.compile(r"^https?://")
_BASE64_RE = re.compile(r"^[A-Za-z0-9+/=]+$")
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_DIGITS_RE = re.compile(r"^\d+$")


def _is_real_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_finite_float(text: str) -> float | None:
    try:
        parsed = float(text)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def _as_finite_float(value: int | float) -> float | None:
    """None for NaN, infinities, and ints too large to convert to a float."""
    try:
        as_float = float(value)
    except OverflowError:
        return None
    return as_float if math.isfinite(as_float) else None


def _parse_int(text: str) -> int | None:
    # int() refuses digit strings past the interpreter's conversion length limit.
    try:
        return int(text)
    except ValueError:
        return None


def parse_geo_string(value: Any) -> LatLng | None:
    """
    Parse a "geo:<lat>,<lng>" string.

    No range validation is done here. Implausible values are left for the
    diagnostic report to surface.
    """
    if not isinstance(value, str) or not value.startswith(GEO_PREFIX):
        return None
    parts = value[len(GEO_PREFIX) :].split(",")
    if len(parts) < 2:
        return None
    lat = _parse_finite_float(parts[0])
    lng = _parse_finite_float(parts[1])
    if lat is None or lng is None:
        return None
    return LatLng(lat=lat, lng=lng)


def classify_number(
    value: int | float, thresholds: NumberShapeThresholds = NumberShapeThresholds()
) -> NumberShape:
    """Guess whether a number is a scaled coordinate, an epoch-ms timestamp, small, or other."""
    if _as_finite_float(value) is None:
        return NumberShape.OTHER
    magnitude = abs(value)
    is_integral = isinstance(value, int) or value.is_integer()
    if (
        is_integral
        and thresholds.scaled_coordinate_min_abs < magnitude < thresholds.scaled_coordinate_max_abs
    ):
        return NumberShape.SCALED_COORDINATE
    if thresholds.timestamp_min < value < thresholds.timestamp_max:
        return NumberShape.TIMESTAMP
    if magnitude < thresholds.small_max_abs:
        return NumberShape.SMALL
    return NumberShape.OTHER


def classify_string(value: str) -> StringShape:
    if value.startswith(GEO_PREFIX):
        return StringShape.GEO
    if _ISO8601_RE.match(value):
        return StringShape.ISO8601
    if _DATE_ONLY_RE.match(value):
        return StringShape.DATE_ONLY
    if _URL_RE.match(value):
        return StringShape.URL
    if len(value) > 20 and _BASE64_RE.match(value):
        return StringShape.BASE64_LIKE
    if len(value) > 100:
        return StringShape.LONG_TEXT
    return StringShape.TEXT


def describe_string_shape(value: str) -> str:
    """Category label for a string. Only the length ever leaves this function, never content."""
    shape = classify_string(value)
    if shape in (StringShape.LONG_TEXT, StringShape.TEXT):
        return f"{shape}({len(value)}chars)"
    return str(shape)


def is_present_time_value(value: Any) -> bool:
    return value is not None and value != "" and not isinstance(value, bool)


def find_own_time(obj: dict[str, Any]) -> tuple[str, Any] | None:
    """The node's own absolute-time field, if it has one."""
    for key in ABSOLUTE_TIME_KEYS:
        value = obj.get(key)
        if is_present_time_value(value):
            return key, value
    return None


def resolve_timestamp_ms(value: Any) -> int | None:
    """
    Resolve an absolute-time value to epoch milliseconds.

    Accepts ISO 8601 strings like '2022-01-12T17:18:24.190Z' (naive values are
    taken as UTC), digit-only strings holding epoch milliseconds, and plain
    numbers holding epoch milliseconds.
    """
    if _is_real_number(value):
        if _as_finite_float(value) is None or abs(value) > MAX_TIMESTAMP_MS:
            return None
        return int(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if _DIGITS_RE.match(text):
        millis = _parse_int(text)
        if millis is None or millis > MAX_TIMESTAMP_MS:
            return None
        return millis
    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    millis = (dt - EPOCH) // timedelta(milliseconds=1)
    return millis if abs(millis) <= MAX_TIMESTAMP_MS else None


def parse_offset_minutes(value: Any) -> int:
    """Whole minutes from an offset field. Unparseable offsets count as zero."""
    if _is_real_number(value):
        return int(value) if _as_finite_float(value) is not None else 0
    if isinstance(value, str):
        match = _LEADING_INT_RE.match(value)
        if match:
            minutes = _parse_int(match.group(1))
            return minutes if minutes is not None else 0
    return 0


@dataclass(frozen=True)
class RecognizerAttempt:
    """One recognizer's verdict on one object. coords is None when the value failed to parse."""

    convention: CoordinateConvention
    key: str
    coords: LatLng | None
    error: str | None = None


Recognizer = Callable[[dict[str, Any]], RecognizerAttempt | None]


def _geo_string_recognizer(key: str) -> Recognizer:
    def recognize(obj: dict[str, Any]) -> RecognizerAttempt | None:
        value = obj.get(key)
        if not isinstance(value, str) or not value.startswith(GEO_PREFIX):
            return None
        coords = parse_geo_string(value)
        return RecognizerAttempt(
            convention=CoordinateConvention.GEO_STRING,
            key=key,
            coords=coords,
            error=None if coords else "Failed to parse coordinates",
        )

    recognize.__name__ = f"recognize_geo_{key}"
    return recognize


def recognize_scaled_integer_pair(obj: dict[str, Any]) -> RecognizerAttempt | None:
    lat_e7 = obj.get(LATITUDE_E7_KEY)
    lng_e7 = obj.get(LONGITUDE_E7_KEY)
    if lat_e7 is None and lng_e7 is None:
        return None
    key = f"{LATITUDE_E7_KEY}/{LONGITUDE_E7_KEY}"
    if not (_is_real_number(lat_e7) and _is_real_number(lng_e7)):
        return RecognizerAttempt(
            convention=CoordinateConvention.SCALED_INTEGER,
            key=key,
            coords=None,
            error=f"Invalid types: lat={json_type_of(lat_e7)}, lng={json_type_of(lng_e7)}",
        )
    lat = _as_finite_float(lat_e7)
    lng = _as_finite_float(lng_e7)
    if lat is None or lng is None:
        return RecognizerAttempt(
            convention=CoordinateConvention.SCALED_INTEGER,
            key=key,
            coords=None,
            error="Scaled coordinate is not a finite number",
        )
    return RecognizerAttempt(
        convention=CoordinateConvention.SCALED_INTEGER,
        key=key,
        coords=LatLng(lat=lat / 1e7, lng=lng / 1e7),
    )


COORDINATE_RECOGNIZERS: tuple[Recognizer, ...] = (
    *(_geo_string_recognizer(key) for key in GEO_STRING_KEYS),
    recognize_scaled_integer_pair,
)


def match_coordinates(obj: dict[str, Any]) -> list[RecognizerAttempt]:
    """Every recognizer attempt on this object, in priority order."""
    attempts = []
    for recognizer in COORDINATE_RECOGNIZERS:
        attempt = recognizer(obj)
        if attempt is not None:
            attempts.append(attempt)
    return attempts


def first_match(attempts: list[RecognizerAttempt]) -> RecognizerAttempt | None:
    for attempt in attempts:
        if attempt.coords is not None:
            return attempt
    return None


def recognize_waypoint_fallback(waypoint: dict[str, Any]) -> RecognizerAttempt | None:
    """
    Node-level match for an offset-path element whose own point did not parse.

    None when the point parses, since the expanded path already yields that waypoint.
    """
    if parse_geo_string(waypoint.get(OFFSET_PATH_POINT_KEY)) is not None:
        return None
    return first_match(match_coordinates(waypoint))
