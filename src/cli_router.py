#!/usr/bin/env python3
"""
CLI Router for the Lighthouse history tooling.

Modular command architecture for the history ledger and dashboard.
"""

import argparse
import logging
import sys
from typing import Optional, List

from commands import get_command, COMMANDS
from core.config import get_config_manager

logger = logging.getLogger(__name__)


class CLIRouter:
    """
    CLI router for Lighthouse history commands.

    Command structure:
    - python run.py history update --run-number 42
    - python run.py history backfill
    - python run.py history stats
    - python run.py dashboard build --existing-site-dir previous-site
    """

    def __init__(self, container=None):
        """Initialize CLI router."""
        self.container = container
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the main argument parser."""
        parser = argparse.ArgumentParser(
            description="Lighthouse score history ledger and dashboard",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=self._get_examples_text()
        )
        parser.add_argument('--verbose', action='store_true', help='Verbose output')

        subparsers = parser.add_subparsers(
            dest='command',
            help='Available commands',
            metavar='{command}'
        )

        self._add_history_parser(subparsers)
        self._add_dashboard_parser(subparsers)

        return parser

    def _add_history_parser(self, subparsers):
        """Add history command parser."""
        history_parser = subparsers.add_parser(
            'history',
            help='History ledger operations'
        )

        history_subparsers = history_parser.add_subparsers(
            dest='subcommand',
            help='History operations',
            metavar='{update,backfill,stats}'
        )

        # Update subcommand
        update_parser = history_subparsers.add_parser('update', help='Append the current run\'s reports to the ledger')
        update_parser.add_argument('--reports-dir', default=None, help='Directory with Lighthouse reports (default: from config)')
        update_parser.add_argument('--history-path', default=None, help='Ledger file (default: from config)')
        update_parser.add_argument('--run-id', default=None, help='Run identifier (default: GITHUB_RUN_ID)')
        update_parser.add_argument('--run-number', default=None, help='Numeric run sequence (default: GITHUB_RUN_NUMBER)')
        update_parser.add_argument('--run-url', default=None, help='Link to the run (default: GITHUB_RUN_URL)')

        # Backfill subcommand
        backfill_parser = history_subparsers.add_parser('backfill', help='Fill in missing report links from HTML reports on disk')
        backfill_parser.add_argument('--reports-dir', default=None, help='Directory with Lighthouse reports (default: from config)')
        backfill_parser.add_argument('--history-path', default=None, help='Ledger file (default: from config)')

        # Stats subcommand
        stats_parser = history_subparsers.add_parser('stats', help='Show ledger statistics')
        stats_parser.add_argument('--history-path', default=None, help='Ledger file (default: from config)')

    def _add_dashboard_parser(self, subparsers):
        """Add dashboard command parser."""
        dashboard_parser = subparsers.add_parser(
            'dashboard',
            help='Dashboard site operations'
        )

        dashboard_subparsers = dashboard_parser.add_subparsers(
            dest='subcommand',
            help='Dashboard operations',
            metavar='{build}'
        )

        build_parser = dashboard_subparsers.add_parser('build', help='Render the dashboard site from the ledger')
        build_parser.add_argument('--reports-dir', default=None, help='Directory with fresh Lighthouse reports (default: from config)')
        build_parser.add_argument('--history-path', default=None, help='Ledger file (default: from config)')
        build_parser.add_argument('--site-dir', default=None, help='Output directory (default: from config)')
        build_parser.add_argument('--existing-site-dir', default=None, help='Previously published site to merge in (default: EXISTING_SITE_DIR)')

    def _get_examples_text(self) -> str:
        """Get examples text for help."""
        return """
Examples:
  # Typical CI sequence after the collector has written lighthouse-reports/
  python run.py history update
  python run.py history backfill
  python run.py dashboard build --existing-site-dir gh-pages

  # Inspect the ledger
  python run.py history stats --history-path history/lighthouse-history.json

"""

    def route_command(self, args: Optional[List[str]] = None) -> int:
        """
        Route command to appropriate handler.

        Args:
            args: Command line arguments (uses sys.argv if None)

        Returns:
            Exit code
        """
        try:
            if args is None:
                args = sys.argv[1:]

            parsed_args = self.parser.parse_args(args)

            if not parsed_args.command:
                self.parser.print_help()
                return 1

            return self._handle_command(parsed_args)

        except SystemExit as e:
            # argparse calls sys.exit() on error or help
            return e.code if e.code is not None else 0
        except Exception as e:
            logger.error(f"CLI routing error: {e}", exc_info=True)
            return 1

    def _handle_command(self, args: argparse.Namespace) -> int:
        """Handle command structure."""
        logger.debug(f"Handling command: {args.command}")

        if args.command not in COMMANDS:
            available = ', '.join(COMMANDS.keys())
            logger.error(f"Unknown command '{args.command}'. Available: {available}")
            return 1

        subcommand = getattr(args, 'subcommand', None)
        if not subcommand:
            logger.error(f"No subcommand specified for '{args.command}'")
            try:
                self.parser.parse_args([args.command, '--help'])  # Show help
            except SystemExit:
                pass
            return 1

        try:
            command = get_command(args.command, self.container)
            return command.execute(subcommand, args)
        except Exception as e:
            logger.error(f"Error executing {args.command} {subcommand}: {e}", exc_info=True)
            return 1


def main(args: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code
    """
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    argv = sys.argv[1:] if args is None else args
    try:
        get_config_manager().update_logging(verbose='--verbose' in argv)
    except ValueError as e:
        logger.error(str(e))
        return 22

    router = CLIRouter()
    return router.route_command(argv)


if __name__ == '__main__':
    exit_code = main()
    sys.exit(exit_code)
