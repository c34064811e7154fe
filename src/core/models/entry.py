#!/usr/bin/env python3
"""
History entry data model.

Represents one Lighthouse measurement of one page under one preset,
as persisted in the history ledger.
"""

from datetime import datetime
from typing import Dict, Any, Optional, NamedTuple
from dataclasses import dataclass, field

import pytz
from dateutil import parser as date_parser

METRIC_NAMES = ('performance', 'accessibility', 'bestPractices', 'seo')

# Lighthouse category ids for each metric field
CATEGORY_IDS = {
    'performance': 'performance',
    'accessibility': 'accessibility',
    'bestPractices': 'best-practices',
    'seo': 'seo',
}

def parse_instant(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 instant into UTC; naive values are taken as UTC.

    Instants that fall outside the representable range once shifted to UTC
    count as unparseable.
    """
    if isinstance(value, datetime):
        dt = value
    elif not value or not isinstance(value, str):
        return None
    else:
        try:
            dt = date_parser.isoparse(value)
        except (ValueError, OverflowError):
            return None

    if dt.tzinfo is None:
        return pytz.utc.localize(dt)
    try:
        return dt.astimezone(pytz.utc)
    except OverflowError:
        return None


def _score(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


class ReportKey(NamedTuple):
    """Metadata decoded from an artifact filename."""
    page: str
    preset: str
    timestamp: str


class EntryIdentity(NamedTuple):
    """Structured identifier carried by every history entry."""
    page: str
    preset: str
    fetch_time: Optional[str]
    run_id: Optional[str]


@dataclass
class RunContext:
    """Identity of the run that produced a batch of entries."""
    run_id: Optional[str] = None
    run_number: Optional[int] = None
    run_url: Optional[str] = None


@dataclass
class CategoryScores:
    """Four independently optional category scores in [0, 1]."""
    performance: Optional[float] = None
    accessibility: Optional[float] = None
    best_practices: Optional[float] = None
    seo: Optional[float] = None

    def get(self, metric: str) -> Optional[float]:
        """Look up a score by its ledger name (e.g. ``bestPractices``)."""
        if metric == 'bestPractices':
            return self.best_practices
        if metric in ('performance', 'accessibility', 'seo'):
            return getattr(self, metric)
        raise KeyError(metric)

    def is_empty(self) -> bool:
        return all(self.get(name) is None for name in METRIC_NAMES)

    def to_dict(self) -> Dict[str, Optional[float]]:
        return {name: self.get(name) for name in METRIC_NAMES}

    @classmethod
    def from_dict(cls, data: Any) -> 'CategoryScores':
        if not isinstance(data, dict):
            return cls()
        return cls(
            performance=_score(data.get('performance')),
            accessibility=_score(data.get('accessibility')),
            best_practices=_score(data.get('bestPractices')),
            seo=_score(data.get('seo')),
        )

    @classmethod
    def from_categories(cls, categories: Any) -> 'CategoryScores':
        """Build scores from a Lighthouse ``categories`` object."""
        if not isinstance(categories, dict):
            return cls()

        def lookup(category_id: str) -> Optional[float]:
            category = categories.get(category_id)
            if not isinstance(category, dict):
                return None
            return _score(category.get('score'))

        return cls(
            performance=lookup(CATEGORY_IDS['performance']),
            accessibility=lookup(CATEGORY_IDS['accessibility']),
            best_practices=lookup(CATEGORY_IDS['bestPractices']),
            seo=lookup(CATEGORY_IDS['seo']),
        )


@dataclass
class HistoryEntry:
    """
    A single measurement persisted in the history ledger.

    Only ``report_url`` may change after an entry has been written. Entries
    loaded from the ledger keep their JSON object in ``source`` and are
    written back exactly as read, with only ``reportUrl`` overlaid.
    """
    page: str
    preset: str
    fetch_time: Optional[str]
    metrics: CategoryScores = field(default_factory=CategoryScores)
    run_id: Optional[str] = None
    run_number: Optional[int] = None
    run_url: Optional[str] = None
    report_url: Optional[str] = None
    source: Optional[Dict[str, Any]] = field(default=None, repr=False)

    @property
    def identity(self) -> EntryIdentity:
        return EntryIdentity(self.page, self.preset, self.fetch_time, self.run_id)

    @property
    def fetched_at(self) -> Optional[datetime]:
        """Parsed fetch time, or None when missing or unparseable."""
        return parse_instant(self.fetch_time)

    @property
    def run_sequence(self) -> int:
        """Run number for ordering; missing or non-numeric counts as 0."""
        value = self.run_number
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 0
        return int(value)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the ledger's JSON object shape."""
        if self.source is not None:
            data = dict(self.source)
            if self.report_url is not None:
                data['reportUrl'] = self.report_url
            return data

        data = {
            'runId': self.run_id,
            'runNumber': self.run_number,
            'runUrl': self.run_url,
            'page': self.page,
            'preset': self.preset,
            'fetchTime': self.fetch_time,
            'metrics': self.metrics.to_dict(),
        }
        if self.report_url is not None:
            data['reportUrl'] = self.report_url
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HistoryEntry':
        """Create an entry from a ledger JSON object."""
        return cls(
            page=data.get('page'),
            preset=data.get('preset'),
            fetch_time=data.get('fetchTime'),
            metrics=CategoryScores.from_dict(data.get('metrics')),
            run_id=data.get('runId'),
            run_number=data.get('runNumber'),
            run_url=data.get('runUrl'),
            report_url=data.get('reportUrl'),
            source=data,
        )

    def __repr__(self):
        return f"HistoryEntry(page='{self.page}', preset='{self.preset}', fetch_time='{self.fetch_time}')"
