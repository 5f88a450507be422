"""
Guard factory and per-request sessions.

``create_guard`` validates a permission table once and returns a factory.
Calling the factory with ``(user, item)`` gives a ``GuardSession`` whose
operations all share a single role resolution.

Example:
    >>> guard = create_guard({
    ...     "roles": {"owner": is_owner},
    ...     "actions": {"owner": ["read:email", "delete"]},
    ... })
    >>> session = guard(current_user, document)
    >>> await session.ensure_allowed("delete", document)
    >>> public = await session.filter("read", document)
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Union

from . import engine
from .errors import ConfigurationError
from .models import PermissionTable

logger = logging.getLogger(__name__)


class GuardSession:
    """
    Authorization view of one ``(user, item)`` pair.

    Role predicates run lazily on the first operation and at most once per
    session. Operations started before resolution finishes wait on the same
    pending task, which is shielded so a cancelled caller does not cancel it
    for the others, and a predicate failure is raised again, unchanged, by
    every operation that awaits it.
    """

    def __init__(self, table: PermissionTable, user: Any, item: Any = None):
        self.table = table
        self.user = user
        self.item = item
        self._resolution: Optional[asyncio.Future] = None

    def _roles(self) -> asyncio.Future:
        if self._resolution is None:
            self._resolution = asyncio.ensure_future(
                engine.resolve_roles(self.table, self.user, self.item)
            )
        return self._resolution

    async def resolve_roles(self) -> List[str]:
        """Return the roles that apply to this session's user and item."""
        return list(await asyncio.shield(self._roles()))

    determine_roles = resolve_roles

    async def ensure_allowed(self, action: str, item: Any = None) -> Any:
        """
        Return ``item`` if the session's roles may perform ``action``.

        Raises:
            NotPermittedError: If no resolved role grants the action.
        """
        roles = await asyncio.shield(self._roles())
        return engine.ensure_allowed(self.table, roles, action, item)

    async def filter(self, action: str, data: Any) -> Dict[str, Any]:
        """
        Return the part of ``data`` the session's roles may touch for ``action``.

        Raises:
            NotPermittedError: If no field rule exists for ``action``.
        """
        roles = await asyncio.shield(self._roles())
        return engine.filter_fields(self.table, roles, action, data)


class GuardFactory:
    """Creates ``GuardSession`` objects that share one permission table."""

    def __init__(self, table: PermissionTable):
        self.table = table

    def __call__(self, user: Any = None, item: Any = None) -> GuardSession:
        return GuardSession(self.table, user, item)


def create_guard(permissions: Union[PermissionTable, Mapping]) -> GuardFactory:
    """
    Build a guard factory from a permission table.

    Args:
        permissions: A ``PermissionTable`` or a mapping with optional
            ``roles`` and ``actions`` keys.

    Returns:
        A factory to call once per request with ``(user, item)``.

    Raises:
        ConfigurationError: If ``permissions`` is not a table or mapping, or
            the table content is invalid.
    """
    if isinstance(permissions, PermissionTable):
        table = permissions
    elif isinstance(permissions, Mapping):
        try:
            table = PermissionTable.from_mapping(permissions)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid permission table: {e}") from e
    else:
        raise ConfigurationError(
            "permissions must be a mapping or PermissionTable",
            {"type": type(permissions).__name__},
        )

    logger.info(
        f"Guard created with {len(table.roles)} custom roles "
        f"and rules for {len(table.actions)} roles",
        extra={"roles": list(table.role_names)},
    )
    return GuardFactory(table)
