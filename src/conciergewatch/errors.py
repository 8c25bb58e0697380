"""Exception hierarchy for conciergewatch."""

from __future__ import annotations


class ConciergeWatchError(Exception):
    """Base exception for all conciergewatch failures."""


class ConfigError(ConciergeWatchError):
    """Raised for missing or invalid runtime configuration."""


class StateWriteError(ConciergeWatchError):
    """Raised when the ledger file could not be written."""


class FetchError(ConciergeWatchError):
    """Raised when the watched page could not be rendered."""
