"""Input adapters that load roster, pool and attested performance data."""

from .snapshot import (
    DEFAULT_PERFORMANCE_MAPPING,
    PerformanceRow,
    RoundSnapshot,
    load_performance_csv,
    load_snapshot,
)

__all__ = [
    "DEFAULT_PERFORMANCE_MAPPING",
    "PerformanceRow",
    "RoundSnapshot",
    "load_performance_csv",
    "load_snapshot",
]
