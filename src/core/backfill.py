#!/usr/bin/env python3
"""
Backfill of missing report links in the history ledger.

Entries collected before their HTML report was available carry no
``reportUrl``. This pass matches them against the HTML artifacts present
on disk by the exact ``(page, preset, fetchTime)`` triple.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from core.exceptions import MalformedArtifactError
from core.filename_codec import decode, json_counterparts
from core.history_ledger import LedgerRepository, list_artifacts, load_report, read_fetch_time
from core.models.entry import HistoryEntry

logger = logging.getLogger(__name__)


@dataclass
class IndexEntry:
    """An HTML artifact with the fetch time read from its JSON counterpart."""
    page: str
    preset: str
    fetch_time: Optional[str]
    report_url: str

    def matches(self, entry: HistoryEntry) -> bool:
        return (self.page, self.preset, self.fetch_time) == (entry.page, entry.preset, entry.fetch_time)


def build_index(reports_dir: Union[str, Path], report_url_prefix: str = "lighthouse-reports") -> List[IndexEntry]:
    """
    Index every HTML artifact that has a parseable JSON counterpart.

    Counterparts are looked up by suffix substitution, ``.report.html`` to
    ``.report.json`` first and then ``.html`` to ``.json``.
    """
    reports_dir = Path(reports_dir)
    index = []

    for html_name in list_artifacts(reports_dir, '.html'):
        report = None
        for json_name in json_counterparts(html_name):
            try:
                report = load_report(reports_dir / json_name)
                break
            except MalformedArtifactError as e:
                logger.debug(e.message)

        if report is None:
            logger.debug(f"No JSON counterpart for {html_name}; not indexed")
            continue

        key = decode(html_name)
        index.append(IndexEntry(
            page=key.page,
            preset=key.preset,
            fetch_time=read_fetch_time(report),
            report_url=f"{report_url_prefix}/{html_name}"
        ))

    logger.debug(f"Indexed {len(index)} HTML reports in {reports_dir}")
    return index


def backfill(entries: List[HistoryEntry], index: List[IndexEntry]) -> int:
    """
    Set ``report_url`` on entries that lack one, in place.

    Entries already linked are skipped, which makes repeated passes
    idempotent. The first matching index entry wins.

    Returns:
        Number of entries updated
    """
    updated = 0
    for entry in entries:
        if entry.report_url:
            continue
        if not entry.page or not entry.preset or not entry.fetch_time:
            continue

        match = next((item for item in index if item.matches(entry)), None)
        if match:
            entry.report_url = match.report_url
            updated += 1

    return updated


class BackfillMatcher:
    """Runs a backfill pass against a ledger repository."""

    def __init__(self, repository: LedgerRepository, report_url_prefix: str = "lighthouse-reports"):
        self.repository = repository
        self.report_url_prefix = report_url_prefix

    def run(self, reports_dir: Union[str, Path]) -> int:
        """
        Load the ledger strictly, patch missing links and rewrite if needed.

        Raises:
            LedgerReadError, MalformedLedgerError: ledger left untouched
        """
        entries = self.repository.load(strict=True)
        index = build_index(reports_dir, self.report_url_prefix)

        updated = backfill(entries, index)
        if updated == 0:
            logger.info("No entries needed backfilling")
            return 0

        self.repository.rewrite(entries)
        logger.info(f"Backfilled reportUrl for {updated} history entries")
        return updated
