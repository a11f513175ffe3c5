"""Tunable limits and heuristic thresholds for the walkers.

The numeric thresholds were inferred from observed exports rather than from any
documented schema. If a future export shifts its value ranges, these are the
knobs to revisit.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class NumberShapeThresholds:
    """Magnitude windows used to guess what a bare number encodes."""

    # Decimal degrees multiplied by 10^7. Exclusive bounds.
    scaled_coordinate_min_abs: int = 1_000_000
    scaled_coordinate_max_abs: int = 2_000_000_000
    # Epoch milliseconds, roughly 2001 to 2033. Exclusive bounds.
    timestamp_min: int = 1_000_000_000_000
    timestamp_max: int = 2_000_000_000_000
    small_max_abs: int = 1000


@dataclass(frozen=True)
class ScanLimits:
    """Work budget and progress cadence for the extraction walker."""

    max_nodes: int = 2_000_000
    # Tuned for host responsiveness, not correctness.
    progress_chunk_size: int = 30_000
    # Denominator for the progress estimate; real documents vary.
    estimated_total_nodes: int = 800_000


@dataclass(frozen=True)
class DiagnosticLimits:
    """Work budget, report caps and recommendation thresholds for the diagnostic walker."""

    max_nodes: int = 2_000_000
    max_rejections: int = 20
    max_success_samples: int = 5
    shape_max_depth: int = 8
    shape_max_keys: int = 50
    shape_max_expanded_keys: int = 20
    # Recommend checking parent timestamps once more candidates than this lack one.
    no_timestamp_warning_threshold: int = 0
    # Recommend checking a convention once it fails to parse more often than this.
    parse_failure_warning_threshold: int = 3
    number_thresholds: NumberShapeThresholds = field(default_factory=NumberShapeThresholds)
