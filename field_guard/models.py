"""
Core data models for field-guard.

This module defines the permission table the guard evaluates against, the
helpers that interpret permission rules, and the ``Principal`` used by the
FastAPI integration to represent an authenticated user.

Permission rules are strings of the form ``"<action>"`` or
``"<action>:<field.path>"``:

    - ``"delete"`` grants the bare ``delete`` action.
    - ``"read:email"`` grants ``read`` and exposes ``email`` when filtering.
    - ``"read:address.city"`` exposes the nested ``address.city`` leaf.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Union

GUEST_ROLE = "guest"
AUTHENTICATED_ROLE = "authenticated"
RULE_SEPARATOR = ":"

RolePredicate = Callable[[Any, Any], Union[bool, Awaitable[bool]]]
"""Decides whether ``(user, item)`` holds a role. May be sync or async."""


def rule_action(rule: str) -> str:
    """Return the action part of a permission rule."""
    return rule.split(RULE_SEPARATOR, 1)[0]


def rule_field(rule: str) -> Optional[str]:
    """Return the field path of a permission rule, or None for a bare action."""
    parts = rule.split(RULE_SEPARATOR, 1)
    return parts[1] if len(parts) == 2 else None


def matches_action(rule: str, action: str) -> bool:
    """True if ``rule`` grants ``action``, bare or field-scoped."""
    return rule == action or rule.startswith(action + RULE_SEPARATOR)


@dataclass(frozen=True)
class PermissionTable:
    """
    Immutable role predicates and per-role permission rules.

    Attributes:
        roles: Ordered ``(role_name, predicate)`` pairs. The order decides
            the order of custom roles in a resolved role list.
        actions: Role name to the ordered rules that role grants. The
            implicit ``guest`` and ``authenticated`` roles may appear here.

    Example:
        >>> table = PermissionTable.from_mapping({
        ...     "roles": {"owner": lambda user, item: user.id == item["owner_id"]},
        ...     "actions": {
        ...         "guest": ["create:email"],
        ...         "owner": ["read:email", "delete"],
        ...     },
        ... })
        >>> table.role_names
        ('owner',)
    """

    roles: Tuple[Tuple[str, RolePredicate], ...] = ()
    actions: Mapping = field(default_factory=dict)

    def __post_init__(self) -> None:
        roles = tuple((str(name), predicate) for name, predicate in self.roles)
        for name, predicate in roles:
            if name in (GUEST_ROLE, AUTHENTICATED_ROLE):
                raise ValueError(f"'{name}' is an implicit role and cannot be a custom role")
            if not callable(predicate):
                raise ValueError(f"Predicate for role '{name}' is not callable")

        if not isinstance(self.actions, Mapping):
            raise ValueError("actions must be a mapping of role name to rules")

        actions = {}
        for role, rules in self.actions.items():
            if isinstance(rules, str):
                raise ValueError(f"Rules for role '{role}' must be a list, not a string")
            rules = tuple(rules)
            for rule in rules:
                if not isinstance(rule, str) or not rule_action(rule):
                    raise ValueError(f"Role '{role}' has an empty or non-string rule")
                if rule_field(rule) == "":
                    raise ValueError(f"Rule '{rule}' for role '{role}' has an empty field")
            actions[str(role)] = rules

        object.__setattr__(self, "roles", roles)
        object.__setattr__(self, "actions", MappingProxyType(actions))

    @classmethod
    def from_mapping(cls, permissions: Mapping) -> "PermissionTable":
        """
        Build a table from ``{"roles": {...}, "actions": {...}}``.

        Both keys are optional. ``roles`` may be a mapping (its iteration
        order is kept) or a sequence of ``(name, predicate)`` pairs.
        """
        roles = permissions.get("roles") or ()
        if isinstance(roles, Mapping):
            roles = roles.items()
        return cls(roles=tuple(roles), actions=permissions.get("actions") or {})

    @property
    def role_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.roles)

    def rules_for(self, role: str) -> Tuple[str, ...]:
        """Rules granted to ``role``; an unknown role grants nothing."""
        return self.actions.get(role, ())


@dataclass
class Principal:
    """
    An authenticated user as seen by the FastAPI integration.

    The guard itself accepts any object as the user and only looks at its
    truthiness. Role predicates receive whatever object the application
    stored, so this class is a convenience, not a requirement.

    Attributes:
        id: Stable identifier for the user.
        name: Display name, if known.
        email: Email address, if known.
        raw: Claims or profile data from the authentication layer.
    """

    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    raw: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Principal ID cannot be empty")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "raw": self.raw,
        }
