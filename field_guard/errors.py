"""
Exceptions raised by field-guard.

Denials and configuration problems have their own types so callers can map
them to responses deterministically. Exceptions raised by role predicates are
never wrapped in these types; they reach the caller unchanged.
"""

from typing import Any, Dict, Optional, Sequence


class GuardError(Exception):
    """Base exception for all field-guard errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(GuardError, AssertionError):
    """Raised when a permission table or its source is malformed."""


class NotPermittedError(GuardError):
    """
    Raised when the resolved roles do not grant an action.

    Attributes:
        action: The action that was denied.
        roles: The roles that were considered.
    """

    def __init__(
        self,
        action: Optional[str] = None,
        roles: Optional[Sequence[str]] = None,
    ):
        self.action = action
        self.roles = list(roles or [])
        super().__init__(
            f"Action '{action}' not permitted",
            {"action": action, "roles": self.roles},
        )
