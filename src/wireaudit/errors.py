from __future__ import annotations


class WireAuditError(Exception):
    """Base class for errors that abort a wireaudit run."""


class ConfigError(WireAuditError):
    """Configuration file is unreadable or holds invalid values."""
