#!/usr/bin/env python3
"""
History command endpoints: collect a run into the ledger, backfill report
links and show ledger statistics.
"""

import logging
from argparse import Namespace
from collections import Counter

from .base import BaseCommand
from core.backfill import BackfillMatcher
from core.config import parse_run_number
from core.history_ledger import collect
from core.models.entry import RunContext

logger = logging.getLogger(__name__)


class HistoryCommand(BaseCommand):
    """Handle history ledger operations."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute history subcommand."""
        try:
            if subcommand == "update":
                return self.update(args)
            elif subcommand == "backfill":
                return self.backfill(args)
            elif subcommand == "stats":
                return self.stats(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except Exception as e:
            return self.handle_error(e, f"history {subcommand}")

    def _run_context(self, args: Namespace) -> RunContext:
        """Run context from the environment, overridden by CLI flags."""
        configured = self.config.run
        run_number = configured.run_number
        if getattr(args, 'run_number', None) is not None:
            run_number = parse_run_number(args.run_number)

        return RunContext(
            run_id=getattr(args, 'run_id', None) or configured.run_id,
            run_number=run_number,
            run_url=getattr(args, 'run_url', None) or configured.run_url
        )

    def update(self, args: Namespace) -> int:
        """Collect the current run's reports and append them to the ledger."""
        ledger = self.ledger_for(args)
        reports_dir = self.reports_dir_for(args)

        existing = ledger.load()
        current = collect(
            reports_dir,
            self._run_context(args),
            report_url_prefix=self.config.paths.report_url_prefix,
            max_workers=self.config.app.collect_workers
        )

        if not current:
            print(f"No usable Lighthouse JSON reports in {reports_dir}; history unchanged")
            return 0

        combined = ledger.append(existing, current)
        print(f"✅ Added {len(current)} entries to history ({len(combined)} total)")
        return 0

    def backfill(self, args: Namespace) -> int:
        """Fill in missing report links from the HTML reports on disk."""
        if getattr(args, 'history_path', None):
            matcher = BackfillMatcher(self.ledger_for(args), report_url_prefix=self.config.paths.report_url_prefix)
        else:
            matcher = self._container.get('backfill_matcher')
        updated = matcher.run(self.reports_dir_for(args))

        if updated:
            print(f"✅ Backfilled reportUrl for {updated} history entries")
        else:
            print("No entries needed backfilling")
        return 0

    def stats(self, args: Namespace) -> int:
        """Show statistics about the history ledger."""
        entries = self.ledger_for(args).load(strict=True)

        print(f"\n=== History Statistics ===")
        print(f"📊 Total entries: {len(entries)}")
        if not entries:
            return 0

        runs = {entry.run_id for entry in entries if entry.run_id}
        linked = sum(1 for entry in entries if entry.report_url)
        print(f"📊 Distinct runs: {len(runs)}")
        print(f"🔗 With report link: {linked} / {len(entries)}")

        print(f"📈 Entries by page and preset:")
        by_pair = Counter((entry.page, entry.preset) for entry in entries)
        for (page, preset), count in sorted(by_pair.items(), key=lambda item: (str(item[0][0]), str(item[0][1]))):
            print(f"  • {page} ({preset or 'unknown'}): {count}")

        fetch_times = sorted(entry.fetched_at for entry in entries if entry.fetched_at)
        if fetch_times:
            print(f"🕐 Oldest fetch: {fetch_times[0].isoformat()}")
            print(f"🕐 Newest fetch: {fetch_times[-1].isoformat()}")
        return 0
