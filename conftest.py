"""Global pytest configuration and fixtures."""

from typing import Any

import pytest


@pytest.fixture
def semantic_segments_export() -> dict[str, Any]:
    """A small export in the semanticSegments layout: one path across two cities, then a visit."""
    return {
        "semanticSegments": [
            {
                "startTime": "2024-01-01T00:00:00Z",
                "timelinePath": [
                    {"point": "geo:35.6812,139.7671", "durationMinutesOffsetFromStartTime": "0"},
                    {"point": "geo:34.7025,135.4959", "durationMinutesOffsetFromStartTime": "150"},
                ],
            },
            {
                "startTime": "2025-03-01T12:00:00Z",
                "visit": {"topCandidate": {"placeLocation": "geo:43.0686,141.3508"}},
            },
        ]
    }
