"""
Loading permission rules from configuration.

Role predicates are code, so only the ``actions`` half of a permission table
can live in a file. The file is a JSON object mapping role names to lists of
rules:

    {
        "guest": ["create:email", "create:password"],
        "owner": ["read:email", "update:email", "delete"]
    }
"""

import json
import os
import logging
from collections.abc import Mapping
from typing import Dict, List, Union

from pydantic import RootModel, ValidationError, field_validator

from .errors import ConfigurationError
from .models import RULE_SEPARATOR, PermissionTable
from .settings import GuardSettings

logger = logging.getLogger(__name__)


class ActionsConfig(RootModel[Dict[str, List[str]]]):
    """Validated ``role -> rules`` mapping."""

    @field_validator("root")
    @classmethod
    def check_rules(cls, value: Dict[str, List[str]]) -> Dict[str, List[str]]:
        for role, rules in value.items():
            if not role:
                raise ValueError("Role names cannot be empty")
            for rule in rules:
                action, _, field_path = rule.partition(RULE_SEPARATOR)
                if not action:
                    raise ValueError(f"Rule '{rule}' for role '{role}' has no action")
                if RULE_SEPARATOR in rule and not field_path:
                    raise ValueError(f"Rule '{rule}' for role '{role}' has an empty field")
        return value


def load_actions(source: Union[str, os.PathLike, Mapping]) -> Dict[str, List[str]]:
    """
    Load and validate a ``role -> rules`` mapping.

    Args:
        source: Path to a JSON file, or an already-parsed mapping.

    Returns:
        The validated mapping.

    Raises:
        ConfigurationError: If the file cannot be read or parsed, or the
            content is not a valid rules mapping.
    """
    if not isinstance(source, (str, os.PathLike)):
        data = source
    else:
        try:
            with open(source, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Could not load permissions from {source}: {e}", {"path": source}
            ) from e

    try:
        actions = ActionsConfig.model_validate(data).root
    except ValidationError as e:
        raise ConfigurationError(f"Invalid permission rules: {e}") from e

    logger.info(
        f"Loaded rules for {len(actions)} roles",
        extra={"roles": list(actions)},
    )
    return actions


def load_permission_table(settings: GuardSettings, roles=None) -> PermissionTable:
    """
    Build a permission table from ``settings.permissions_file`` and code predicates.

    Args:
        settings: Settings naming the permissions file.
        roles: Role predicates, as a mapping or ``(name, predicate)`` pairs.

    Raises:
        ConfigurationError: If no permissions file is configured or it is invalid.
    """
    if not settings.permissions_file:
        raise ConfigurationError("permissions_file is not configured")

    actions = load_actions(settings.permissions_file)
    try:
        return PermissionTable.from_mapping({"roles": roles or {}, "actions": actions})
    except ValueError as e:
        raise ConfigurationError(f"Invalid permission table: {e}") from e
