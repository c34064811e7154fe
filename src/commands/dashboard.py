#!/usr/bin/env python3
"""
Dashboard command endpoints for publishing the history site.
"""

import logging
from argparse import Namespace
from pathlib import Path

from .base import BaseCommand

logger = logging.getLogger(__name__)


class DashboardCommand(BaseCommand):
    """Handle dashboard operations."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute dashboard subcommand."""
        try:
            if subcommand == "build":
                return self.build(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except Exception as e:
            return self.handle_error(e, f"dashboard {subcommand}")

    def build(self, args: Namespace) -> int:
        """Render the dashboard from the ledger and copy fresh reports."""
        paths = self.config.paths
        site_dir = Path(args.site_dir) if getattr(args, 'site_dir', None) else paths.site_dir

        existing_site_dir = getattr(args, 'existing_site_dir', None)
        if not existing_site_dir and self.config.has_existing_site():
            existing_site_dir = paths.existing_site_dir

        entries = self.ledger_for(args).load()
        builder = self._container.get('dashboard_builder')
        index_path = builder.publish(
            entries,
            self.reports_dir_for(args),
            site_dir,
            existing_site_dir=existing_site_dir
        )

        print(f"✅ Dashboard written to {index_path}")
        return 0
