"""Shared schema definitions for backend-frontend communication."""

from enum import StrEnum

from pydantic import BaseModel, Field

from timeline_replay.postprocess.stats import TimelineStats


class ReportForm(StrEnum):
    """Text renderings of a diagnostic report."""

    DOWNLOAD = "download"
    CLIPBOARD = "clipboard"


# API Response Models
class PointRecord(BaseModel):
    """One extracted location sample."""

    lat: float
    lng: float
    ts_ms: int = Field(..., description="Epoch milliseconds, always positive")
    year: int


class ExtractResponse(BaseModel):
    """Response model for the extraction endpoint."""

    privacy_level: str
    points: list[PointRecord]
    stats: TimelineStats


class PrivacyLevelResponse(BaseModel):
    id: str
    label: str
    description: str
    grid_size: float = Field(..., description="Grid cell size in degrees, 0 disables obfuscation")
