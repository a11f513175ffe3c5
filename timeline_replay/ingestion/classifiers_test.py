"""Tests for the value-shape recognizers."""

import math

import pytest

from timeline_replay.core.limits import NumberShapeThresholds
from timeline_replay.core.schema import CoordinateConvention, LatLng, NumberShape, StringShape
from timeline_replay.ingestion.classifiers import (
    classify_number,
    classify_string,
    describe_string_shape,
    find_own_time,
    first_match,
    match_coordinates,
    parse_geo_string,
    parse_offset_minutes,
    recognize_scaled_integer_pair,
    resolve_timestamp_ms,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("geo:35.6812,139.7671", LatLng(35.6812, 139.7671)),
        ("geo:-33.8688,151.2093", LatLng(-33.8688, 151.2093)),
        ("geo:1.5,2.5,100", LatLng(1.5, 2.5)),
        # No range validation.
        ("geo:91.0,181.0", LatLng(91.0, 181.0)),
    ],
)
def test_parse_geo_string_valid(value: str, expected: LatLng) -> None:
    assert parse_geo_string(value) == expected


@pytest.mark.parametrize(
    "value",
    ["35.6812,139.7671", "geo:", "geo:35.6", "geo:abc,1", "geo:1,nan", "geo:inf,1", 42, None],
)
def test_parse_geo_string_invalid(value: object) -> None:
    assert parse_geo_string(value) is None


def test_classify_number() -> None:
    assert classify_number(356812000) == NumberShape.SCALED_COORDINATE
    assert classify_number(-1_000_001) == NumberShape.SCALED_COORDINATE
    assert classify_number(1_000_000) == NumberShape.OTHER
    assert classify_number(1704067200000) == NumberShape.TIMESTAMP
    assert classify_number(35.6) == NumberShape.SMALL
    assert classify_number(-999) == NumberShape.SMALL
    assert classify_number(5000) == NumberShape.OTHER
    assert classify_number(math.inf) == NumberShape.OTHER


def test_classify_number_custom_thresholds() -> None:
    thresholds = NumberShapeThresholds(small_max_abs=10_000)
    assert classify_number(5000, thresholds) == NumberShape.SMALL


def test_classify_string() -> None:
    assert classify_string("geo:1,2") == StringShape.GEO
    assert classify_string("2024-01-01T00:00:00Z") == StringShape.ISO8601
    assert classify_string("2024-01-01") == StringShape.DATE_ONLY
    assert classify_string("https://example.com") == StringShape.URL
    assert classify_string("QUJDREVGR0hJSktMTU5PUFFSU1RVVg==") == StringShape.BASE64_LIKE
    assert classify_string("hello world") == StringShape.TEXT
    assert classify_string("x y " * 30) == StringShape.LONG_TEXT


def test_describe_string_shape_reports_length_only() -> None:
    assert describe_string_shape("Home sweet home") == "string(15chars)"
    assert describe_string_shape("a b " * 30) == "long-string(120chars)"
    assert describe_string_shape("geo:1,2") == "geo:lat,lng"
    assert "Home" not in describe_string_shape("Home sweet home")


def test_find_own_time_precedence() -> None:
    assert find_own_time({"timestamp": "b", "startTime": "a"}) == ("startTime", "a")
    assert find_own_time({"timestamp": "b", "timestampMs": "1"}) == ("timestamp", "b")
    assert find_own_time({"timestampMs": "1704067200000"}) == ("timestampMs", "1704067200000")


def test_find_own_time_ignores_absent_values() -> None:
    assert find_own_time({"startTime": None, "timestamp": "x"}) == ("timestamp", "x")
    assert find_own_time({"startTime": ""}) is None
    assert find_own_time({"startTime": False}) is None
    assert find_own_time({}) is None


@pytest.mark.parametrize(
    "value,expected",
    [
        ("2024-01-01T00:00:00Z", 1704067200000),
        ("2024-01-01T00:00:00.000Z", 1704067200000),
        ("2024-01-01T09:00:00+09:00", 1704067200000),
        ("2024-01-01T00:00:00", 1704067200000),
        ("2022-01-12T17:18:24.190Z", 1642007904190),
        ("1704067200000", 1704067200000),
        (1704067200000, 1704067200000),
        (1704067200000.7, 1704067200000),
        ("1970-01-01T00:00:00Z", 0),
        ("1969-12-31T23:59:59Z", -1000),
    ],
)
def test_resolve_timestamp_ms(value: object, expected: int) -> None:
    assert resolve_timestamp_ms(value) == expected


@pytest.mark.parametrize(
    "value", ["not a date", "", None, True, {"a": 1}, [1], math.nan, 10**20, "9" * 30]
)
def test_resolve_timestamp_ms_unresolvable(value: object) -> None:
    assert resolve_timestamp_ms(value) is None


@pytest.mark.parametrize(
    "value,expected",
    [(30, 30), ("30", 30), ("30min", 30), (" -5", -5), (2.9, 2), ("abc", 0), (None, 0), (True, 0)],
)
def test_parse_offset_minutes(value: object, expected: int) -> None:
    assert parse_offset_minutes(value) == expected


def test_scaled_integer_pair_zero_is_valid() -> None:
    attempt = recognize_scaled_integer_pair({"latitudeE7": 0, "longitudeE7": 0})
    assert attempt is not None
    assert attempt.coords == LatLng(0.0, 0.0)
    assert attempt.convention == CoordinateConvention.SCALED_INTEGER


def test_scaled_integer_pair_scaling() -> None:
    attempt = recognize_scaled_integer_pair({"latitudeE7": 356812000, "longitudeE7": 1397671000})
    assert attempt is not None
    assert attempt.coords == LatLng(35.6812, 139.7671)


def test_scaled_integer_pair_wrong_types() -> None:
    attempt = recognize_scaled_integer_pair({"latitudeE7": "356812000", "longitudeE7": 1})
    assert attempt is not None
    assert attempt.coords is None
    assert attempt.error == "Invalid types: lat=string, lng=number"

    assert recognize_scaled_integer_pair({"latitude": 1}) is None


def test_match_coordinates_priority() -> None:
    node = {
        "location": "geo:3,3",
        "latitudeE7": 40000000,
        "longitudeE7": 40000000,
        "point": "geo:1,1",
    }
    attempts = match_coordinates(node)
    assert [attempt.key for attempt in attempts] == [
        "point",
        "location",
        "latitudeE7/longitudeE7",
    ]
    winner = first_match(attempts)
    assert winner is not None
    assert winner.coords == LatLng(1.0, 1.0)


def test_first_match_skips_unparseable() -> None:
    attempts = match_coordinates({"point": "geo:broken", "latitudeE7": 10000000, "longitudeE7": 0})
    assert attempts[0].coords is None
    assert attempts[0].error == "Failed to parse coordinates"
    winner = first_match(attempts)
    assert winner is not None
    assert winner.convention == CoordinateConvention.SCALED_INTEGER


def test_non_geo_strings_are_not_candidates() -> None:
    assert match_coordinates({"point": "Tokyo Station", "location": 5}) == []


def test_values_beyond_float_range_are_not_errors() -> None:
    huge = 10**400
    assert classify_number(huge) == NumberShape.OTHER
    assert classify_number(-huge) == NumberShape.OTHER
    assert resolve_timestamp_ms(huge) is None
    assert parse_offset_minutes(huge) == 0

    attempt = recognize_scaled_integer_pair({"latitudeE7": huge, "longitudeE7": 1})
    assert attempt is not None
    assert attempt.coords is None
    assert attempt.error == "Scaled coordinate is not a finite number"


def test_digit_strings_past_int_conversion_limit() -> None:
    assert resolve_timestamp_ms("1" * 5000) is None
    assert parse_offset_minutes("9" * 5000) == 0
    assert parse_offset_minutes("-" + "9" * 5000) == 0
