"""
Exception types raised by the estimation engine.

All of them are ValueErrors, so callers that only care about "bad input"
can keep catching ValueError.
"""

from __future__ import annotations


class EstimationError(ValueError):
    """Base class for engine errors."""


class ValidationError(EstimationError):
    """
    A work item, constants record or staffing row broke a domain rule.

    The message names the offending entity and the rule, e.g.
    "Invalid work item 3: Best case hours cannot be negative".
    """


class SessionFormatError(EstimationError):
    """A session file could not be parsed into a SessionState."""
