"""
FastAPI application setup for field-guard.

``setup_guard`` attaches a guard factory and its settings to the application
state and registers the handler that turns ``NotPermittedError`` into an
HTTP response.
"""

import logging
from typing import Mapping, Optional, Union

from fastapi import FastAPI, Request
from starlette.responses import JSONResponse

from .errors import NotPermittedError
from .guard import GuardFactory, create_guard
from .models import PermissionTable
from .settings import GuardSettings

logger = logging.getLogger(__name__)


def setup_guard(
    app: FastAPI,
    permissions: Union[PermissionTable, Mapping],
    settings: Optional[GuardSettings] = None,
) -> FastAPI:
    """
    Set up field-level authorization for a FastAPI application.

    This function:
    1. Validates the configuration
    2. Builds the guard factory from the permission table
    3. Registers the ``NotPermittedError`` exception handler

    Exceptions raised by role predicates are left to the application's own
    error handling.

    Args:
        app: The FastAPI application instance to configure.
        permissions: The permission table or its mapping form.
        settings: Configuration settings. If None, default settings are used.

    Returns:
        The configured FastAPI application instance.

    Raises:
        ValueError: If the settings are invalid.
        ConfigurationError: If the permission table is invalid.

    Example:
        >>> app = FastAPI()
        >>> app = setup_guard(app, {
        ...     "roles": {"owner": is_owner},
        ...     "actions": {"owner": ["read:email", "delete"]},
        ... })
    """
    settings = settings or GuardSettings()

    try:
        settings.validate_configuration()
    except ValueError as e:
        logger.error(f"Configuration validation failed: {e}")
        raise

    if settings.debug:
        logging.getLogger("field_guard").setLevel(logging.DEBUG)

    factory: GuardFactory = create_guard(permissions)
    app.state.guard_factory = factory
    app.state.guard_settings = settings

    async def not_permitted_handler(request: Request, exc: NotPermittedError):
        logger.info(
            f"Denied '{exc.action}' on {request.url.path}",
            extra={
                "endpoint": request.url.path,
                "method": request.method,
                "action": exc.action,
                "roles": exc.roles,
            },
        )
        return JSONResponse(
            {"error": "Not permitted"}, status_code=settings.deny_status_code
        )

    app.add_exception_handler(NotPermittedError, not_permitted_handler)
    logger.info("Guard exception handler configured")

    return app
