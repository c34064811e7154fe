#!/usr/bin/env python3
"""
Standardized exception hierarchy for the Lighthouse history tooling.

Provides specific exception types for ledger, artifact and configuration
failures with enough context to name the offending file.
"""

from typing import Optional, Dict, Any


class LighthouseHistoryError(Exception):
    """Base exception for all Lighthouse history errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            context: Additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            'error_type': self.__class__.__name__,
            'error_code': self.error_code,
            'message': self.message,
            'context': self.context
        }


# Ledger-related exceptions
class LedgerError(LighthouseHistoryError):
    """Base exception for history ledger errors."""
    pass


class LedgerReadError(LedgerError):
    """Ledger file exists but could not be read or parsed."""

    def __init__(self, path: str, original_error: Exception):
        message = f"Failed to read history ledger {path}: {original_error}"
        context = {
            'path': str(path),
            'original_error': str(original_error)
        }
        super().__init__(message, context=context)


class LedgerWriteError(LedgerError):
    """Ledger file could not be written."""

    def __init__(self, path: str, original_error: Exception):
        message = f"Failed to write history ledger {path}: {original_error}"
        context = {
            'path': str(path),
            'original_error': str(original_error)
        }
        super().__init__(message, context=context)


class MalformedLedgerError(LedgerError):
    """Ledger file parsed but does not have the expected shape."""

    def __init__(self, path: str, issue: str):
        message = f"Malformed history ledger {path}: {issue}"
        context = {
            'path': str(path),
            'issue': issue
        }
        super().__init__(message, context=context)


# Artifact-related exceptions
class ArtifactError(LighthouseHistoryError):
    """Base exception for report artifact errors."""
    pass


class MalformedArtifactError(ArtifactError):
    """Report artifact could not be turned into a history entry."""

    def __init__(self, path: str, reason: str):
        message = f"Skipping report artifact {path}: {reason}"
        context = {
            'path': str(path),
            'reason': reason
        }
        super().__init__(message, context=context)
