from __future__ import annotations

"""Field access helpers for backend document payloads."""

from typing import Any, Mapping


def lookup_field(source: Mapping[str, Any], path: str) -> Any:
    """Read a dotted field path such as ``doc.text`` from a hit source."""
    if path in source:
        return source[path]
    value: Any = source
    for part in path.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return None
        value = value[part]
    return value
