#!/usr/bin/env python3
"""
Core data models for the Lighthouse history ledger.

Contains all data structures used throughout the application.
"""

from .entry import (
    METRIC_NAMES,
    CategoryScores,
    EntryIdentity,
    HistoryEntry,
    ReportKey,
    RunContext,
    parse_instant,
)
from .dashboard import DashboardView, TableRow, TrendPoint, TrendSeries

__all__ = [
    'METRIC_NAMES', 'CategoryScores', 'EntryIdentity', 'HistoryEntry', 'ReportKey',
    'RunContext', 'parse_instant', 'DashboardView', 'TableRow', 'TrendPoint', 'TrendSeries'
]
