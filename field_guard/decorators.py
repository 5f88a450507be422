"""
FastAPI integration - request dependencies and endpoint decorators.

The guard itself knows nothing about HTTP. These helpers pick the current
user from ``request.state`` (where an authentication middleware left it),
build a ``GuardSession`` from the factory ``setup_guard`` stored on the app,
and let ``NotPermittedError`` propagate to the handler that turns it into a
403 response.
"""

import logging
from functools import wraps
from typing import Any, Awaitable, Callable, Optional

from fastapi import HTTPException, Request

from .guard import GuardFactory, GuardSession
from .settings import GuardSettings

logger = logging.getLogger(__name__)

ItemLoader = Callable[..., Awaitable[Any]]


def _get_settings(request: Request) -> GuardSettings:
    return getattr(request.app.state, "guard_settings", None) or GuardSettings()


def get_guard_factory(request: Request) -> GuardFactory:
    """
    Return the guard factory registered by ``setup_guard``.

    Raises:
        HTTPException: 500 if the application was not set up with a guard.
    """
    factory = getattr(request.app.state, "guard_factory", None)
    if factory is None:
        logger.error(
            "Guard factory not found in app state - setup_guard may not have been called",
            extra={"endpoint": request.url.path, "method": request.method},
        )
        raise HTTPException(
            status_code=500, detail="Internal server error - guard not configured"
        )
    return factory


def get_current_user(request: Request) -> Any:
    """Return the authenticated user from request state, or None for a guest."""
    settings = _get_settings(request)
    return getattr(request.state, settings.user_state_attribute, None)


def get_guard_session(request: Request) -> GuardSession:
    """
    FastAPI dependency giving a session for the current user and no item.

    Example:
        @app.post("/users")
        async def create_user(
            body: dict, guard: GuardSession = Depends(get_guard_session)
        ):
            return await guard.filter("create", body)
    """
    factory = get_guard_factory(request)
    return factory(get_current_user(request))


def require_action(action: str, item_loader: Optional[ItemLoader] = None):
    """
    Decorator that checks ``action`` before an async endpoint runs.

    The endpoint must accept ``request: Request``. When ``item_loader`` is
    given it is awaited with the endpoint's keyword arguments and its result
    becomes the session item that role predicates receive. The session is
    stored on ``request.state.guard`` so the endpoint can filter with the
    already-resolved roles.

    Args:
        action: Action the caller must be allowed to perform.
        item_loader: Optional coroutine function loading the target item.

    Example:
        @app.delete("/users/{user_id}")
        @require_action("delete", item_loader=load_user)
        async def delete_user(request: Request, user_id: str):
            ...

    Raises:
        ValueError: If ``action`` is empty or contains ':'.
    """
    if not action or ":" in action:
        raise ValueError(f"Invalid action name: {action!r}")

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            request = kwargs.get("request")
            if request is None:
                request = next((arg for arg in args if isinstance(arg, Request)), None)
            if request is None:
                logger.error(
                    f"Request object not found in {func.__name__} - ensure Request is a parameter",
                    extra={"function": func.__name__},
                )
                raise HTTPException(
                    status_code=500,
                    detail="Internal server error - Request object not found",
                )

            item = await item_loader(**kwargs) if item_loader else None
            session = get_guard_factory(request)(get_current_user(request), item)
            request.state.guard = session

            await session.ensure_allowed(action, item)
            return await func(*args, **kwargs)

        return wrapper

    return decorator
