#!/usr/bin/env python3
"""
Dashboard builder for Lighthouse history.

Derives a table view and per (page, preset, metric) trend series from the
history ledger, renders them into a single HTML document and publishes it
together with the current run's raw artifacts. The ledger is only read.
"""

import logging
import shutil
from collections import OrderedDict
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

import pytz
from jinja2 import Environment, FileSystemLoader, select_autoescape

from core.history_ledger import list_artifacts
from core.models.dashboard import DashboardView, TableRow, TrendPoint, TrendSeries
from core.models.entry import METRIC_NAMES, HistoryEntry

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 90.0

METRIC_LABELS = {
    'performance': 'Performance',
    'accessibility': 'Accessibility',
    'bestPractices': 'Best Practices',
    'seo': 'SEO',
}

_OLDEST = datetime.min.replace(tzinfo=pytz.UTC)


def format_instant(value: Optional[datetime]) -> str:
    """Display label for an instant, always in UTC."""
    if value is None:
        return ""
    return value.astimezone(pytz.UTC).strftime('%Y-%m-%d %H:%M UTC')


def to_percent(score: Optional[float]) -> Optional[float]:
    if score is None:
        return None
    return round(score * 100, 2)


def sort_entries(entries: Iterable[HistoryEntry]) -> List[HistoryEntry]:
    """
    Newest first by fetch time, then by run number.

    Missing or unparseable fetch times sort as the oldest; a missing run
    number counts as 0.
    """
    def sort_key(entry: HistoryEntry) -> Tuple[int, datetime, int]:
        fetched_at = entry.fetched_at
        if fetched_at is None:
            return (0, _OLDEST, entry.run_sequence)
        return (1, fetched_at, entry.run_sequence)

    return sorted(entries, key=sort_key, reverse=True)


def build_table(entries: Iterable[HistoryEntry]) -> List[TableRow]:
    rows = []
    for entry in sort_entries(entries):
        if entry.run_number is not None:
            run_label = f"#{entry.run_number}"
        else:
            run_label = entry.run_id or "local"

        fetched_at = entry.fetched_at
        rows.append(TableRow(
            run_label=run_label,
            page=entry.page or "",
            preset=entry.preset or "",
            fetch_time_label=format_instant(fetched_at) if fetched_at else (entry.fetch_time or ""),
            scores={name: to_percent(entry.metrics.get(name)) for name in METRIC_NAMES},
            report_url=entry.report_url,
            run_url=entry.run_url,
        ))
    return rows


def build_trend_series(entries: Iterable[HistoryEntry], page: str, preset: str, metric: str,
                       threshold: float = DEFAULT_THRESHOLD) -> TrendSeries:
    """
    Ascending series of one metric for one exact (page, preset) pair.

    Entries without a score for ``metric`` or without a valid fetch time
    are left out.
    """
    if metric not in METRIC_NAMES:
        raise ValueError(f"Unknown metric '{metric}'. Available: {', '.join(METRIC_NAMES)}")

    samples = []
    for entry in entries:
        if entry.page != page or entry.preset != preset:
            continue
        score = entry.metrics.get(metric)
        fetched_at = entry.fetched_at
        if score is None or fetched_at is None:
            continue
        samples.append((fetched_at, score))

    samples.sort(key=lambda sample: sample[0])
    points = [
        TrendPoint(timestamp=fetched_at, label=format_instant(fetched_at), value=to_percent(score))
        for fetched_at, score in samples
    ]
    return TrendSeries(page=page, preset=preset, metric=metric, threshold=threshold, points=points)


def group_pairs(entries: Iterable[HistoryEntry]) -> List[Tuple[str, str]]:
    """Distinct (page, preset) pairs, sorted."""
    pairs: Dict[Tuple[str, str], None] = OrderedDict()
    for entry in entries:
        pairs[(entry.page, entry.preset)] = None
    return sorted(pairs, key=lambda pair: (pair[0] or "", pair[1] or ""))


def build_view(entries: List[HistoryEntry], threshold: float = DEFAULT_THRESHOLD,
               generated_at: Optional[datetime] = None) -> DashboardView:
    """Derive the complete dashboard view; pure with respect to the ledger."""
    series = []
    for page, preset in group_pairs(entries):
        for metric in METRIC_NAMES:
            series.append(build_trend_series(entries, page, preset, metric, threshold))

    return DashboardView(
        rows=build_table(entries),
        series=series,
        generated_at=generated_at or datetime.now(timezone.utc),
    )


def _template_env() -> Environment:
    templates_path = Path(__file__).resolve().parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(templates_path)),
        autoescape=select_autoescape(enabled_extensions=("html", "xml", "j2")),
        trim_blocks=True,
        lstrip_blocks=True,
    )


class DashboardBuilder:
    """Renders and publishes the dashboard site."""

    def __init__(self, threshold: float = DEFAULT_THRESHOLD, report_url_prefix: str = "lighthouse-reports"):
        self.threshold = threshold
        self.report_url_prefix = report_url_prefix
        self.env = _template_env()

    def build_view(self, entries: List[HistoryEntry]) -> DashboardView:
        return build_view(entries, self.threshold)

    def render(self, view: DashboardView, has_artifacts: bool = False) -> str:
        """Render the dashboard HTML, or the "no data" page when there is nothing to show."""
        if view.is_empty and not has_artifacts:
            template = self.env.get_template("empty.html.j2")
            return template.render(generated_at=format_instant(view.generated_at))

        template = self.env.get_template("dashboard.html.j2")
        return template.render(
            rows=view.rows,
            series=[series.to_dict() for series in view.series],
            metric_labels=METRIC_LABELS,
            metrics=METRIC_NAMES,
            threshold=self.threshold,
            generated_at=format_instant(view.generated_at),
        )

    def copy_artifacts(self, reports_dir: Union[str, Path], site_dir: Union[str, Path]) -> List[str]:
        """Copy the current run's raw reports under the served tree."""
        reports_dir = Path(reports_dir)
        names = [name for name in list_artifacts(reports_dir, '') if name.endswith(('.html', '.json'))]
        if not names:
            return []

        target_dir = Path(site_dir) / self.report_url_prefix
        target_dir.mkdir(parents=True, exist_ok=True)
        for name in names:
            shutil.copy2(reports_dir / name, target_dir / name)

        logger.info(f"Copied {len(names)} report artifacts to {target_dir}")
        return names

    def publish(self, entries: List[HistoryEntry], reports_dir: Union[str, Path], site_dir: Union[str, Path],
                existing_site_dir: Optional[Union[str, Path]] = None) -> Path:
        """
        Write ``index.html`` and artifact copies into ``site_dir``.

        A previously published site, when given, is copied in first so older
        artifacts stay reachable.

        Returns:
            Path of the written index page
        """
        site_dir = Path(site_dir)
        site_dir.mkdir(parents=True, exist_ok=True)

        if existing_site_dir:
            existing = Path(existing_site_dir)
            if existing.is_dir():
                shutil.copytree(existing, site_dir, dirs_exist_ok=True)
                logger.info(f"Merged existing site from {existing}")
            else:
                logger.info(f"No existing site at {existing}; starting fresh")

        copied = self.copy_artifacts(reports_dir, site_dir)

        view = self.build_view(entries)
        if view.is_empty and not copied:
            logger.warning("No history entries and no fresh reports; writing empty dashboard")

        index_path = site_dir / "index.html"
        index_path.write_text(self.render(view, has_artifacts=bool(copied)), encoding="utf-8")
        logger.info(f"Dashboard written to {index_path} ({len(view.rows)} rows, {len(view.series)} series)")
        return index_path
