"""
Guard engine - role resolution, access checks and field projection.

These functions hold all of the decision logic. They are stateless and take
the permission table explicitly; ``field_guard.guard`` wraps them in a
per-request session that memoizes the resolved roles.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Set

from pydantic import BaseModel

from .errors import NotPermittedError
from .models import (
    AUTHENTICATED_ROLE,
    GUEST_ROLE,
    RULE_SEPARATOR,
    PermissionTable,
    RolePredicate,
    matches_action,
)
from .paths import select_paths

logger = logging.getLogger(__name__)


async def _evaluate_role(
    name: str, predicate: RolePredicate, user: Any, item: Any
) -> bool:
    """Run one predicate, awaiting it if it returned an awaitable."""
    try:
        outcome = predicate(user, item)
        if hasattr(outcome, "__await__"):
            outcome = await outcome
    except Exception as exc:
        logger.warning(
            f"Role predicate '{name}' failed: {exc!r}",
            extra={"role_name": name},
        )
        raise
    return bool(outcome)


async def resolve_roles(table: PermissionTable, user: Any, item: Any = None) -> List[str]:
    """
    Determine the roles that apply to ``user`` acting on ``item``.

    A falsy user is a guest and gets ``["guest"]`` without any predicate
    running. Otherwise every custom role predicate runs concurrently and the
    result is ``["authenticated"]`` followed by the roles whose predicate
    held, in table order.

    Args:
        table: The permission table holding the role predicates.
        user: The acting user, or None for an anonymous request.
        item: The object being acted on, passed through to predicates.

    Returns:
        The resolved role names.

    Raises:
        Exception: Whatever the first failing predicate raised, unchanged.
    """
    if not user:
        return [GUEST_ROLE]

    outcomes = await asyncio.gather(
        *(_evaluate_role(name, predicate, user, item) for name, predicate in table.roles)
    )
    custom_roles = [
        name for (name, _), holds in zip(table.roles, outcomes) if holds
    ]

    logger.debug(
        f"Resolved custom roles {custom_roles}",
        extra={"roles": custom_roles},
    )
    return [AUTHENTICATED_ROLE] + custom_roles


def is_allowed(table: PermissionTable, roles: Iterable[str], action: str) -> bool:
    """True if any of ``roles`` has a rule granting ``action``."""
    return any(
        matches_action(rule, action)
        for role in roles
        for rule in table.rules_for(role)
    )


def ensure_allowed(
    table: PermissionTable, roles: Iterable[str], action: str, item: Any = None
) -> Any:
    """
    Return ``item`` unchanged if ``roles`` may perform ``action``.

    Raises:
        NotPermittedError: If no resolved role grants the action.
    """
    roles = list(roles)
    if not is_allowed(table, roles, action):
        logger.debug(
            f"Denied action '{action}' for roles {roles}",
            extra={"action": action, "roles": roles},
        )
        raise NotPermittedError(action, roles)
    return item


def permitted_fields(
    table: PermissionTable, roles: Iterable[str], action: str
) -> Set[str]:
    """Union of the field paths ``roles`` may touch for ``action``."""
    prefix = action + RULE_SEPARATOR
    return {
        rule[len(prefix):]
        for role in roles
        for rule in table.rules_for(role)
        if rule.startswith(prefix)
    }


def filter_fields(
    table: PermissionTable, roles: Iterable[str], action: str, data: Any
) -> Dict[str, Any]:
    """
    Project ``data`` down to the fields ``roles`` may touch for ``action``.

    Only explicit ``action:field`` rules count; a bare ``action`` rule grants
    no fields. Nested mappings keep their shape, lists and other values are
    selected whole or not at all.

    Args:
        table: The permission table.
        roles: Resolved role names.
        action: The action the data is being filtered for.
        data: A mapping or a pydantic model.

    Returns:
        A new nested dict holding only the permitted leaves.

    Raises:
        NotPermittedError: If the roles have no field rules for ``action``,
            even when ``data`` is empty.
        TypeError: If ``data`` is neither a mapping nor a pydantic model.
    """
    roles = list(roles)
    fields = permitted_fields(table, roles, action)
    if not fields:
        logger.debug(
            f"No fields permitted for action '{action}' with roles {roles}",
            extra={"action": action, "roles": roles},
        )
        raise NotPermittedError(action, roles)

    if isinstance(data, BaseModel):
        data = data.model_dump()
    if not isinstance(data, Mapping):
        raise TypeError(f"Cannot filter {type(data).__name__}; expected a mapping")

    return select_paths(data, fields)
