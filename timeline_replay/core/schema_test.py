"""Tests for schema types and the point DataFrame."""

from datetime import datetime, timezone

import pandas as pd
from pandera.errors import SchemaError
import pytest

from timeline_replay.core.schema import (
    MAX_TIMESTAMP_MS,
    JsonType,
    Point,
    PointSchema,
    RejectionStage,
    SchemaColumns as C,
    is_within_timestamp_range,
    json_type_of,
    points_to_df,
    year_from_timestamp_ms,
)


def test_year_from_timestamp_ms() -> None:
    assert year_from_timestamp_ms(1704067200000) == 2024
    assert year_from_timestamp_ms(1704067199999) == 2023
    assert year_from_timestamp_ms(MAX_TIMESTAMP_MS) == 2262


def test_is_within_timestamp_range() -> None:
    assert not is_within_timestamp_range(0)
    assert not is_within_timestamp_range(-1)
    assert is_within_timestamp_range(1)
    assert is_within_timestamp_range(MAX_TIMESTAMP_MS)
    assert not is_within_timestamp_range(MAX_TIMESTAMP_MS + 1)


def test_max_timestamp_is_representable() -> None:
    assert pd.Timestamp(MAX_TIMESTAMP_MS, unit="ms") <= pd.Timestamp.max


def test_json_type_of() -> None:
    assert json_type_of(True) == JsonType.BOOLEAN
    assert json_type_of(1) == JsonType.NUMBER
    assert json_type_of(1.5) == JsonType.NUMBER
    assert json_type_of(None) == JsonType.NULL
    assert json_type_of("") == JsonType.STRING
    assert json_type_of([]) == JsonType.ARRAY
    assert json_type_of({}) == JsonType.OBJECT
    with pytest.raises(TypeError):
        json_type_of(object())


def test_point_timestamp_utc() -> None:
    point = Point(lat=1.0, lng=2.0, ts_ms=1704067200500, year=2024)
    assert point.timestamp_utc == datetime(2024, 1, 1, 0, 0, 0, 500_000, tzinfo=timezone.utc)


def test_points_to_df() -> None:
    df = points_to_df(
        [
            Point(lat=35.0, lng=139.0, ts_ms=1704067200000, year=2024),
            Point(lat=35.1, lng=139.1, ts_ms=1704067260000, year=2024),
        ]
    )
    assert list(df.columns) == [
        C.GPS_LATITUDE,
        C.GPS_LONGITUDE,
        C.TIMESTAMP_MS,
        C.TIMESTAMP_UTC,
        C.YEAR,
    ]
    assert df.index.name == C.DF_ID
    assert df[C.TIMESTAMP_UTC].iloc[1] == pd.Timestamp("2024-01-01T00:01:00Z")
    assert df[C.YEAR].tolist() == [2024, 2024]


def test_points_to_df_empty() -> None:
    df = points_to_df([])
    assert df.empty
    assert C.TIMESTAMP_MS in df.columns


def test_point_schema_rejects_non_positive_timestamps() -> None:
    df = points_to_df([Point(lat=1.0, lng=1.0, ts_ms=1, year=1970)])
    df[C.TIMESTAMP_MS] = 0
    with pytest.raises(SchemaError):
        PointSchema.validate(df)


def test_rejection_stages() -> None:
    assert [str(stage) for stage in RejectionStage] == ["coords", "timestamp", "filter"]
