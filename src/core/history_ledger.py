#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
History Ledger for Lighthouse measurements.

The ledger is an append-only JSON array of history entries stored in a
single file. It is the sole system of record: every dashboard view is
derived from it. Entries are never deleted, and the only mutation ever
applied to a stored entry is filling in a missing ``reportUrl``.

There is no deduplication and no locking. Collecting the same run twice
yields duplicate entries, and two concurrent writers race on the
whole-file overwrite (the later one wins).
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from core.exceptions import LedgerReadError, LedgerWriteError, MalformedArtifactError, MalformedLedgerError
from core.filename_codec import decode, html_counterpart
from core.models.entry import CategoryScores, HistoryEntry, RunContext

logger = logging.getLogger(__name__)


class LedgerRepository(ABC):
    """Storage interface for the history ledger."""

    @abstractmethod
    def load(self, strict: bool = False) -> List[HistoryEntry]:
        """
        Load all entries in stored order.

        Args:
            strict: Raise MalformedLedgerError when the stored document is
                not an array instead of treating it as replaceable

        Returns:
            Stored entries; empty when nothing has been stored yet
        """
        pass

    @abstractmethod
    def rewrite(self, entries: List[HistoryEntry]) -> None:
        """Replace the stored ledger with ``entries`` as a whole."""
        pass

    def append(self, existing: List[HistoryEntry], new_entries: List[HistoryEntry]) -> List[HistoryEntry]:
        """
        Persist ``existing`` followed by ``new_entries``.

        The relative order of both lists is kept; nothing is re-sorted.

        Returns:
            The combined list that was written
        """
        combined = list(existing) + list(new_entries)
        self.rewrite(combined)
        logger.info(f"Appended {len(new_entries)} entries to history ({len(combined)} total)")
        return combined


class JsonFileLedger(LedgerRepository):
    """Ledger stored as a UTF-8 JSON array in a single file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read_document(self) -> Optional[Any]:
        try:
            raw = self.path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise LedgerReadError(str(self.path), e) from e

        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise LedgerReadError(str(self.path), e) from e

    def load(self, strict: bool = False) -> List[HistoryEntry]:
        document = self._read_document()
        if document is None:
            logger.info(f"No history ledger at {self.path}; starting empty")
            return []

        if not isinstance(document, list):
            if strict:
                raise MalformedLedgerError(str(self.path), "top-level value is not an array")
            logger.warning(f"History ledger {self.path} is not an array; it will be replaced")
            return []

        entries = []
        for position, item in enumerate(document):
            if not isinstance(item, dict):
                raise MalformedLedgerError(str(self.path), f"item {position} is not an object")
            entries.append(HistoryEntry.from_dict(item))

        logger.debug(f"Loaded {len(entries)} history entries from {self.path}")
        return entries

    def rewrite(self, entries: List[HistoryEntry]) -> None:
        payload = json.dumps([entry.to_dict() for entry in entries], indent=2, ensure_ascii=False)
        temp_path = self.path.with_name(f"{self.path.name}.tmp")

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with temp_path.open('w', encoding='utf-8') as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_path, self.path)
        except OSError as e:
            raise LedgerWriteError(str(self.path), e) from e

        logger.debug(f"Wrote {len(entries)} history entries to {self.path}")


def read_fetch_time(report: Dict[str, Any]) -> Optional[str]:
    """Fetch time as reported by Lighthouse, nested or top-level."""
    nested = report.get('lighthouseResult')
    if isinstance(nested, dict) and nested.get('fetchTime') is not None:
        return nested['fetchTime']
    return report.get('fetchTime')


def _read_categories(report: Dict[str, Any]) -> Any:
    if report.get('categories') is not None:
        return report['categories']
    nested = report.get('lighthouseResult')
    if isinstance(nested, dict):
        return nested.get('categories')
    return None


def list_artifacts(reports_dir: Union[str, Path], suffix: str) -> List[str]:
    """
    Sorted artifact filenames with the given suffix.

    A missing reports directory means zero artifacts.
    """
    try:
        names = os.listdir(reports_dir)
    except FileNotFoundError:
        logger.info(f"No reports directory at {reports_dir}")
        return []
    return sorted(name for name in names if name.endswith(suffix))


def load_report(path: Path) -> Dict[str, Any]:
    """Read one Lighthouse JSON report."""
    try:
        report = json.loads(path.read_text(encoding='utf-8'))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedArtifactError(str(path), f"unreadable JSON ({e})") from e

    if not isinstance(report, dict):
        raise MalformedArtifactError(str(path), "report is not a JSON object")
    return report


def parse_report(path: Path, run_context: RunContext, report_url_prefix: str = "lighthouse-reports") -> HistoryEntry:
    """
    Turn one JSON artifact into a history entry.

    Raises:
        MalformedArtifactError: unreadable JSON or no category scores at all
    """
    report = load_report(path)

    metrics = CategoryScores.from_categories(_read_categories(report))
    if metrics.is_empty():
        raise MalformedArtifactError(str(path), "no category scores")

    key = decode(path.name)

    report_url = None
    html_name = html_counterpart(path.name)
    if (path.parent / html_name).exists():
        report_url = f"{report_url_prefix}/{html_name}"

    return HistoryEntry(
        page=key.page,
        preset=key.preset,
        fetch_time=read_fetch_time(report),
        metrics=metrics,
        run_id=run_context.run_id,
        run_number=run_context.run_number,
        run_url=run_context.run_url,
        report_url=report_url,
    )


def collect(reports_dir: Union[str, Path], run_context: RunContext,
            report_url_prefix: str = "lighthouse-reports", max_workers: int = 1) -> List[HistoryEntry]:
    """
    Build history entries for every JSON artifact in ``reports_dir``.

    Malformed artifacts are skipped. Artifacts are independent, so they may
    be parsed on a thread pool; the result keeps the sorted listing order.
    ``reportUrl`` is set only when the HTML report already sits beside its
    JSON; the backfill pass links the rest later.

    Args:
        reports_dir: Directory written by the collector
        run_context: Identity of the current run, shared by every entry
        report_url_prefix: Relative link prefix for rendered reports
        max_workers: Parser threads (1 parses inline)

    Returns:
        Entries for the current pass
    """
    reports_dir = Path(reports_dir)
    names = list_artifacts(reports_dir, '.json')

    def _parse(name: str) -> Optional[HistoryEntry]:
        try:
            return parse_report(reports_dir / name, run_context, report_url_prefix)
        except MalformedArtifactError as e:
            logger.debug(e.message)
            return None

    if max_workers > 1 and len(names) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            parsed = list(executor.map(_parse, names))
    else:
        parsed = [_parse(name) for name in names]

    entries = [entry for entry in parsed if entry is not None]
    skipped = len(names) - len(entries)
    logger.info(f"Collected {len(entries)} entries from {len(names)} JSON reports ({skipped} skipped)")
    return entries
