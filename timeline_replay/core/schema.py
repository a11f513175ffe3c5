"""Schema definitions, constants, and enums for timeline_replay data structures."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import StrEnum

import pandas as pd
import pandera.pandas as pa
from pandera.typing import Series

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# pd.Timestamp.max expressed in epoch milliseconds (2262-04-11).
MAX_TIMESTAMP_MS = 9_223_372_036_854


class SchemaColumns(StrEnum):
    """Column names from the PointSchema."""

    # Used to refer to the DataFrame integer index.
    DF_ID = "df_id"

    GPS_LATITUDE = "GPS_LATITUDE"
    GPS_LONGITUDE = "GPS_LONGITUDE"
    TIMESTAMP_MS = "TIMESTAMP_MS"
    TIMESTAMP_UTC = "TIMESTAMP_UTC"
    YEAR = "YEAR"


class KnownFormat(StrEnum):
    """Encodings the diagnostic walker counts occurrences of."""

    GEO_STRING = "geo:lat,lng strings"
    SCALED_INTEGER = "latitudeE7/longitudeE7"
    OFFSET_PATH = "timelinePath array"
    START_TIME_FIELD = "startTime field"
    TIMESTAMP_FIELD = "timestamp field"
    TIMESTAMP_MS_FIELD = "timestampMs field"
    PLACE_LOCATION = "placeLocation"
    POINT_FIELD = "point field"
    DURATION_OFFSET = "durationMinutesOffset"


class CoordinateConvention(StrEnum):
    """Which recognizer produced a coordinate."""

    GEO_STRING = "geo-string"
    SCALED_INTEGER = "e7-coords"
    OFFSET_PATH = "timeline-path"


class RejectionStage(StrEnum):
    COORDS = "coords"
    TIMESTAMP = "timestamp"
    FILTER = "filter"


class NumberShape(StrEnum):
    SCALED_COORDINATE = "e7coords"
    TIMESTAMP = "timestamp"
    SMALL = "small"
    OTHER = "other"


class StringShape(StrEnum):
    GEO = "geo:lat,lng"
    ISO8601 = "ISO8601"
    DATE_ONLY = "date-only"
    URL = "url"
    BASE64_LIKE = "base64-like"
    LONG_TEXT = "long-string"
    TEXT = "string"


class JsonType(StrEnum):
    OBJECT = "object"
    ARRAY = "array"
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NULL = "null"


@dataclass(frozen=True)
class LatLng:
    lat: float
    lng: float


@dataclass(frozen=True)
class Candidate:
    """A recognized coordinate whose timestamp may still be unresolved."""

    lat: float
    lng: float
    ts_ms: int | None


@dataclass(frozen=True)
class Point:
    """A fully resolved location sample. ts_ms is always positive."""

    lat: float
    lng: float
    ts_ms: int
    year: int

    @property
    def timestamp_utc(self) -> datetime:
        return EPOCH + timedelta(milliseconds=self.ts_ms)


def year_from_timestamp_ms(ts_ms: int) -> int:
    """Calendar year of an epoch-millisecond timestamp, in UTC."""
    return (EPOCH + timedelta(milliseconds=ts_ms)).year


def is_within_timestamp_range(ts_ms: int) -> bool:
    return 0 < ts_ms <= MAX_TIMESTAMP_MS


def json_type_of(value: object) -> JsonType:
    """JSON type name of a decoded value. bool is checked before int."""
    if value is None:
        return JsonType.NULL
    if isinstance(value, bool):
        return JsonType.BOOLEAN
    if isinstance(value, (int, float)):
        return JsonType.NUMBER
    if isinstance(value, str):
        return JsonType.STRING
    if isinstance(value, list):
        return JsonType.ARRAY
    if isinstance(value, dict):
        return JsonType.OBJECT
    raise TypeError(f"Not a decoded JSON value: {type(value).__name__}")


class PointSchema(pa.DataFrameModel):
    GPS_LATITUDE: Series[float]
    GPS_LONGITUDE: Series[float]
    TIMESTAMP_MS: Series[int] = pa.Field(gt=0)
    TIMESTAMP_UTC: Series[pd.DatetimeTZDtype] = pa.Field(dtype_kwargs={"tz": "UTC"})
    YEAR: Series[int]

    class Config:
        strict = True
        coerce = True


def points_to_df(points: Sequence[Point]) -> pd.DataFrame:
    """
    Convert extracted points to a DataFrame conforming to PointSchema.

    Row order follows the input, so a time-sorted point list gives a time-sorted frame.
    """
    df = pd.DataFrame(
        {
            SchemaColumns.GPS_LATITUDE: pd.Series([p.lat for p in points], dtype="float64"),
            SchemaColumns.GPS_LONGITUDE: pd.Series([p.lng for p in points], dtype="float64"),
            SchemaColumns.TIMESTAMP_MS: pd.Series([p.ts_ms for p in points], dtype="int64"),
            SchemaColumns.YEAR: pd.Series([p.year for p in points], dtype="int64"),
        }
    )
    df[SchemaColumns.TIMESTAMP_UTC] = pd.to_datetime(
        df[SchemaColumns.TIMESTAMP_MS], unit="ms", utc=True
    )
    df = df[
        [
            SchemaColumns.GPS_LATITUDE,
            SchemaColumns.GPS_LONGITUDE,
            SchemaColumns.TIMESTAMP_MS,
            SchemaColumns.TIMESTAMP_UTC,
            SchemaColumns.YEAR,
        ]
    ]
    df.index.name = SchemaColumns.DF_ID
    return PointSchema.validate(df)
