#!/usr/bin/env python3
"""
Command endpoints for the Lighthouse history tooling.

Each major functionality is handled by a dedicated command class.
"""

from typing import Dict, Type
from .base import BaseCommand
from .history import HistoryCommand
from .dashboard import DashboardCommand

# Command registry for easy extension
COMMANDS: Dict[str, Type[BaseCommand]] = {
    'history': HistoryCommand,
    'dashboard': DashboardCommand,
}


def get_command(command_name: str, container=None) -> BaseCommand:
    """Get a command instance by name."""
    if command_name not in COMMANDS:
        available = ', '.join(COMMANDS.keys())
        raise ValueError(f"Unknown command '{command_name}'. Available: {available}")

    command_class = COMMANDS[command_name]
    return command_class(container)
