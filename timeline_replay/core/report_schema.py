"""Report models produced by the diagnostic walker.

Every field holds a count, a category, or a structural key/path name. None of
them may carry a value read from the scanned document.
"""

from typing import Optional

from pydantic import BaseModel, Field

from timeline_replay.core.schema import (
    CoordinateConvention,
    JsonType,
    KnownFormat,
    NumberShape,
    RejectionStage,
)

REPORT_VERSION = "1.1.0"


class SchemaNode(BaseModel):
    """Abstract shape of one JSON node."""

    type: JsonType
    keys: Optional[list[str]] = None
    array_length: Optional[int] = None
    sample_string_format: Optional[str] = None
    number_range: Optional[NumberShape] = None
    children: Optional[dict[str, "SchemaNode"]] = None
    truncated: bool = False


SchemaNode.model_rebuild()


class FilterStats(BaseModel):
    """Where the coordinate candidates ended up."""

    total_candidates: int = 0
    invalid_coords: int = 0
    no_timestamp: int = 0
    zero_or_negative_ts: int = 0
    successful_extraction: int = 0


class SuccessSample(BaseModel):
    path: str
    format: CoordinateConvention


class RejectionRecord(BaseModel):
    path: str = Field(..., description="Structural locator built from key names and array indices")
    stage: RejectionStage
    message: str


class FileStats(BaseModel):
    estimated_records: int
    max_depth: int
    unique_key_patterns: int
    scanned_nodes: int
    scan_limit_reached: bool


class DiagnosticReport(BaseModel):
    """Privacy-safe structural report, meant to be pasted into a public bug tracker."""

    version: str = REPORT_VERSION
    generated_at: str
    file_stats: FileStats
    format_tally: dict[KnownFormat, int]
    filter_stats: FilterStats
    success_samples: list[SuccessSample]
    rejections: list[RejectionRecord]
    root_schema: SchemaNode
    recommendations: list[str]

    def found_formats(self) -> dict[KnownFormat, int]:
        return {fmt: count for fmt, count in self.format_tally.items() if count > 0}
