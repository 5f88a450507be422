"""
Configuration settings for field-guard.

This module defines the configuration schema using Pydantic settings,
supporting environment variables, .env files, and direct configuration.
"""

import os
from typing import Optional

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class GuardSettings(BaseSettings):
    """
    Configuration for the guard's FastAPI integration.

    Environment Variable Mapping:
        All settings can be configured via environment variables by prefixing
        with 'FIELD_GUARD_' (e.g., FIELD_GUARD_PERMISSIONS_FILE,
        FIELD_GUARD_DENY_STATUS_CODE).

    Example:
        >>> settings = GuardSettings(
        ...     permissions_file="permissions.json",
        ...     deny_status_code=404,
        ... )
    """

    permissions_file: Optional[str] = Field(
        default=None,
        description="JSON file holding the role -> rules mapping",
    )
    deny_status_code: int = Field(
        default=403, description="HTTP status returned when an action is denied"
    )
    user_state_attribute: str = Field(
        default="principal",
        description="request.state attribute that holds the authenticated user",
    )

    # Development and debugging
    debug: bool = False
    """Log every role resolution and denial at DEBUG level."""

    model_config = ConfigDict(
        env_file=".env", env_prefix="FIELD_GUARD_", case_sensitive=False, extra="forbid"
    )

    def validate_configuration(self) -> None:
        """
        Validate the current configuration for common issues.

        Raises:
            ValueError: If configuration is invalid.
        """
        if not 400 <= self.deny_status_code < 500:
            raise ValueError(
                f"deny_status_code must be a 4xx status, got {self.deny_status_code}"
            )

        if not self.user_state_attribute.isidentifier():
            raise ValueError(
                f"Invalid user_state_attribute '{self.user_state_attribute}'"
            )

        if self.permissions_file and not os.path.isfile(self.permissions_file):
            raise ValueError(f"permissions_file not found: {self.permissions_file}")
