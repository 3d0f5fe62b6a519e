"""Exceptions raised by the lead engine.

Everything inherits from ``LeadEngineError`` so callers (the CLI in
particular) can report any engine failure with a single ``except`` clause.
"""

from typing import Any, Dict, Optional


class LeadEngineError(Exception):
    """Base exception for lead engine errors."""

    def __init__(self, message: str = "", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details: Dict[str, Any] = details or {}


class EmptyInputError(LeadEngineError):
    """Raised when a computation needs at least one element and got none.

    Analytics over a date window that contains no sourced leads has no top
    performers to report.
    """


class InvalidInputError(LeadEngineError):
    """Raised when a payload or option does not describe valid input."""
