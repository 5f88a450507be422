"""
Dotted-path flattening for nested documents.

Only mappings are descended into. Lists, tuples, scalars and any other
objects are kept as opaque leaf values, and so is an empty mapping.

Example:
    >>> flatten({"address": {"city": "Berlin", "tags": ["a", "b"]}})
    {'address.city': 'Berlin', 'address.tags': ['a', 'b']}
    >>> unflatten({"address.city": "Berlin"})
    {'address': {'city': 'Berlin'}}
"""

from collections.abc import Mapping
from typing import Any, Dict, Iterable

DEFAULT_DELIMITER = "."


def flatten(obj: Mapping, delimiter: str = DEFAULT_DELIMITER) -> Dict[str, Any]:
    """
    Flatten a nested mapping into ``{dotted_path: value}``.

    Args:
        obj: The mapping to flatten.
        delimiter: Separator placed between path segments.

    Returns:
        A new flat dictionary. Insertion order follows a depth-first walk of
        ``obj``.
    """
    flat: Dict[str, Any] = {}

    def walk(node: Mapping, prefix: str) -> None:
        for key, value in node.items():
            path = f"{prefix}{delimiter}{key}" if prefix else str(key)
            if isinstance(value, Mapping) and value:
                walk(value, path)
            else:
                flat[path] = value

    walk(obj, "")
    return flat


def unflatten(flat: Mapping, delimiter: str = DEFAULT_DELIMITER) -> Dict[str, Any]:
    """
    Rebuild a nested dictionary from ``{dotted_path: value}`` pairs.

    When two paths disagree about whether a segment is a leaf or a branch
    (e.g. ``"a"`` and ``"a.b"``), the path that comes first wins and the
    later one is dropped.
    """
    result: Dict[str, Any] = {}

    for path, value in flat.items():
        *parents, leaf = path.split(delimiter)
        node = result
        for segment in parents:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                node = None
                break
            node = child
        if node is None or leaf in node:
            continue
        node[leaf] = value

    return result


def select_paths(
    obj: Mapping, paths: Iterable[str], delimiter: str = DEFAULT_DELIMITER
) -> Dict[str, Any]:
    """
    Keep only the leaves of ``obj`` whose dotted path is in ``paths``.

    Matching is literal: a path naming an intermediate mapping selects
    nothing below it. Paths that do not exist in ``obj`` are ignored.
    """
    wanted = set(paths)
    selected = {
        path: value
        for path, value in flatten(obj, delimiter).items()
        if path in wanted
    }
    return unflatten(selected, delimiter)
