"""Public exception types for tally."""

from __future__ import annotations


class TallyError(Exception):
    """Base class for all tally exceptions."""


class CodecError(TallyError, ValueError):
    """Raised when a document cannot be decoded or encoded.

    Carries the aggregated validation message when the failure comes
    from schema validation rather than JSON parsing.
    """


class ConfigError(TallyError, ValueError):
    """Raised when configuration is invalid or a backend is misconfigured."""
