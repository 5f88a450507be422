"""
field-guard: per-request, field-level authorization

This package decides what a user may do with an item and which fields of a
document they may touch. Permissions are declared as a table of role
predicates and per-role rules such as ``"delete"`` or ``"read:address.city"``.

Features:
    - Implicit ``guest`` and ``authenticated`` roles plus custom roles decided
      by sync or async predicates, evaluated concurrently
    - One memoized role resolution per (user, item) session
    - Field projection with dotted paths that keeps nested document shape
    - Rules loadable from JSON, settings from the environment
    - FastAPI integration with a 403 handler for denials

Example:
    >>> from field_guard import create_guard
    >>>
    >>> guard = create_guard({
    ...     "roles": {"owner": lambda user, item: user.id == item["id"]},
    ...     "actions": {
    ...         "guest": ["create:email", "create:password"],
    ...         "owner": ["read:email", "update:email", "delete"],
    ...     },
    ... })
    >>> session = guard(current_user, item)
    >>> await session.ensure_allowed("delete", item)
    >>> visible = await session.filter("read", item)
"""

__version__ = "0.1.0"

from .errors import ConfigurationError, GuardError, NotPermittedError
from .guard import GuardFactory, GuardSession, create_guard
from .loader import load_actions, load_permission_table
from .models import (
    AUTHENTICATED_ROLE,
    GUEST_ROLE,
    PermissionTable,
    Principal,
    RolePredicate,
)
from .settings import GuardSettings
from .setup import setup_guard

__all__ = [
    "create_guard",
    "GuardFactory",
    "GuardSession",
    "PermissionTable",
    "Principal",
    "RolePredicate",
    "GUEST_ROLE",
    "AUTHENTICATED_ROLE",
    "GuardError",
    "ConfigurationError",
    "NotPermittedError",
    "GuardSettings",
    "load_actions",
    "load_permission_table",
    "setup_guard",
]
