#!/usr/bin/env python3
"""
Dashboard view data models.

Derived from the history ledger on every build and never persisted.
"""

from datetime import datetime
from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field


@dataclass
class TableRow:
    """One history entry as shown in the dashboard table."""
    run_label: str
    page: str
    preset: str
    fetch_time_label: str
    scores: Dict[str, Optional[float]]
    report_url: Optional[str] = None
    run_url: Optional[str] = None


@dataclass
class TrendPoint:
    """A single (timestamp, score x 100) point of a trend series."""
    timestamp: datetime
    label: str
    value: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp.isoformat(),
            'label': self.label,
            'value': self.value
        }


@dataclass
class TrendSeries:
    """Ascending series of one metric for one (page, preset) pair."""
    page: str
    preset: str
    metric: str
    threshold: float
    points: List[TrendPoint] = field(default_factory=list)

    @property
    def threshold_line(self) -> List[float]:
        """Constant overlay, one value per point."""
        return [self.threshold for _ in self.points]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'page': self.page,
            'preset': self.preset,
            'metric': self.metric,
            'threshold': self.threshold,
            'points': [point.to_dict() for point in self.points]
        }


@dataclass
class DashboardView:
    """Sorted table plus every trend series."""
    rows: List[TableRow]
    series: List[TrendSeries]
    generated_at: datetime

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def find_series(self, page: str, preset: str, metric: str) -> Optional[TrendSeries]:
        for series in self.series:
            if (series.page, series.preset, series.metric) == (page, preset, metric):
                return series
        return None
