#!/usr/bin/env python3
"""
Base command class for the modular command architecture.

Provides common functionality and interface that all commands inherit.
Uses dependency injection for better testability and maintainability.
"""

import logging
from abc import ABC, abstractmethod
from argparse import Namespace
from pathlib import Path
from typing import List, Optional

from core.container import get_container
from core.exceptions import LighthouseHistoryError
from core.history_ledger import JsonFileLedger, LedgerRepository

logger = logging.getLogger(__name__)


class BaseCommand(ABC):
    """
    Base class for all command endpoints.

    Provides configuration, ledger access and error handling that all
    commands can use. Services come from the dependency injection container.
    """

    def __init__(self, container=None):
        """
        Initialize base command with dependency injection container.

        Args:
            container: Optional container instance. If None, uses global container.
        """
        self.logger = logging.getLogger(self.__class__.__name__)
        self._container = container or get_container()

    @property
    def config(self):
        """Get configuration from container."""
        return self._container.get('config')

    @property
    def ledger(self) -> LedgerRepository:
        """Get the configured history ledger from container."""
        return self._container.get('ledger')

    def ledger_for(self, args: Namespace) -> LedgerRepository:
        """Ledger at ``--history-path`` when given, otherwise the configured one."""
        history_path = getattr(args, 'history_path', None)
        if history_path:
            return JsonFileLedger(history_path)
        return self.ledger

    def reports_dir_for(self, args: Namespace) -> Path:
        reports_dir = getattr(args, 'reports_dir', None)
        return Path(reports_dir) if reports_dir else self.config.paths.reports_dir

    @abstractmethod
    def execute(self, subcommand: str, args: Namespace) -> int:
        """
        Execute the command with given subcommand and arguments.

        Args:
            subcommand: The specific action to perform
            args: Parsed command line arguments

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        pass

    def get_available_subcommands(self) -> List[str]:
        """
        Get list of available subcommands for this command.

        Returns:
            List of subcommand names
        """
        methods = []
        for attr_name in dir(self):
            if attr_name.startswith('_') or not callable(getattr(self, attr_name)):
                continue
            # Skip inherited helpers from base class
            if attr_name in BASE_HELPERS:
                continue
            methods.append(attr_name)
        return methods

    def handle_error(self, error: Exception, context: str = "") -> int:
        """
        Standard error handling for commands.

        Args:
            error: The exception that occurred
            context: Additional context about where the error occurred

        Returns:
            Appropriate exit code
        """
        error_msg = f"{context}: {error}" if context else str(error)

        if isinstance(error, LighthouseHistoryError):
            # Message already names the offending file
            self.logger.error(error_msg)
            self.logger.debug(f"Error details: {error.to_dict()}")
            return 1

        self.logger.error(error_msg, exc_info=True)

        # Map common exceptions to exit codes
        if isinstance(error, KeyboardInterrupt):
            self.logger.info("Command interrupted by user")
            return 130
        elif isinstance(error, FileNotFoundError):
            return 2
        elif isinstance(error, PermissionError):
            return 13
        elif isinstance(error, ValueError):
            return 22
        else:
            return 1


BASE_HELPERS = {
    'config', 'ledger', 'ledger_for', 'reports_dir_for', 'execute',
    'get_available_subcommands', 'handle_error',
}
