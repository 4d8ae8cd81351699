"""
Domain exceptions for the arrival dispatch tracker.

All of them are raised synchronously by the registry, store, workflow and
sales layers; the message is meant to be shown to the operator as-is.
"""

from __future__ import annotations

from typing import Dict, Optional


class DispatchError(Exception):
    """Base exception for all dispatch domain errors"""
    pass


class ValidationError(DispatchError):
    """Raised when a submitted field is missing or invalid; nothing is committed"""

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        self.errors = dict(errors)
        if message is None:
            message = "; ".join(f"{field}: {reason}" for field, reason in self.errors.items())
        super().__init__(message)

    @classmethod
    def from_pydantic(cls, exc, prefix: str = "") -> "ValidationError":
        errors: Dict[str, str] = {}
        for err in exc.errors():
            loc = ".".join(str(part) for part in err.get("loc", ()))
            field = f"{prefix}.{loc}" if prefix and loc else (prefix or loc or "__root__")
            errors.setdefault(field, err.get("msg", "Invalid value"))
        return cls(errors)


class DuplicateNameError(DispatchError):
    """Raised when a registry insert collides with an existing name"""
    pass


class UnknownMakeError(DispatchError):
    """Raised when a model operation targets a manufacturer not in the registry"""
    pass


class UnknownArrivalError(DispatchError):
    """Raised when an arrival id is not in the store"""
    pass


class PreconditionError(DispatchError):
    """Raised when an action is refused because the record is not in the required state"""
    pass
