"""Location history export loading functions that convert JSON files to point DataFrames."""

import json
import logging
from pathlib import Path
from typing import Any

import pandas as pd

from timeline_replay.core.limits import ScanLimits
from timeline_replay.core.schema import points_to_df
from timeline_replay.ingestion.extractor import ProgressCallback, extract
from timeline_replay.postprocess.privacy import get_privacy_level_by_id, obfuscate_points

logger = logging.getLogger(__name__)


def load_export_json(export_json_path: Path) -> Any:
    """
    Read and decode a location history export.

    Raises:
        FileNotFoundError: If the JSON file doesn't exist
        ValueError: If the file is not valid UTF-8 JSON
    """
    if not export_json_path.exists():
        raise FileNotFoundError(f"Location history file not found: {export_json_path}")

    try:
        with open(export_json_path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse JSON file {export_json_path}") from e
    except UnicodeDecodeError as e:
        raise ValueError(f"Failed to read JSON file {export_json_path}") from e


def load_location_history_to_df(
    export_json_path: Path,
    privacy_level: str = "none",
    limits: ScanLimits = ScanLimits(),
    on_progress: ProgressCallback | None = None,
) -> pd.DataFrame:
    """
    Extract the points of one export file into a DataFrame conforming to PointSchema.

    Args:
        export_json_path: Path to a location history JSON export
        privacy_level: Id of a privacy level from PRIVACY_LEVELS
        limits: Node-visit ceiling and progress cadence for the walk
        on_progress: Receives extraction progress percentages

    Raises:
        FileNotFoundError: If the JSON file doesn't exist
        ValueError: If the file is unreadable or the privacy level is unknown
        NoPointsFound: If the export holds no usable location samples
    """
    level = get_privacy_level_by_id(privacy_level)
    if level is None:
        raise ValueError(f"Unknown privacy level {privacy_level!r}")

    root = load_export_json(export_json_path)
    points = extract(root, on_progress, limits=limits)
    points = obfuscate_points(points, level.grid_size)

    df = points_to_df(points)
    logger.info(f"Loaded {len(df)} location points from {export_json_path} with {privacy_level=}")
    return df
