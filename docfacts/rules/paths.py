"""Endpoint path and verb normalization helpers."""

from __future__ import annotations

import re
from typing import List, Tuple

_PARAM_PATTERNS: List[Tuple[re.Pattern[str], str]] = [
    # Spring path variables with a regex constraint: {id:[0-9]+} -> {id}
    (re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\s*:\s*[^}]+\}"), r"{\1}"),
]
_LIST_ITEM = re.compile(r'"(?P<quoted>(?:\\.|[^"\\])*)"|(?P<bare>[^\s,{}\[\]"]+)')


def normalize_path(path: str) -> str:
    """Return a canonical representation for endpoint paths."""
    if not path:
        return "/"
    result = path.strip()
    if not result.startswith("/"):
        result = "/" + result
    for pattern, replacement in _PARAM_PATTERNS:
        result = pattern.sub(replacement, result)
    result = re.sub(r"/{2,}", "/", result)
    if len(result) > 1 and result.endswith("/"):
        result = result[:-1]
    return result or "/"


def join_paths(prefix: str, route: str) -> str:
    """Combine class-level and method-level paths; either side may be empty."""
    prefix_norm = normalize_path(prefix) if prefix else ""
    route_norm = normalize_path(route)
    if not prefix_norm or prefix_norm == "/":
        return route_norm
    if route_norm == "/":
        return prefix_norm
    return normalize_path(f"{prefix_norm}{route_norm}")


def method_upper(value: str) -> str:
    """Normalize HTTP verbs to uppercase."""
    return (value or "").strip().upper()


def split_list(value: str) -> List[str]:
    """Split an annotation array body (``{"a", "b"}``, ``[A::class]``, ``A.class, B.class``) into items.

    Quoted items are taken verbatim, so placeholders such as ``"${app.topic}"``
    keep their braces and commas inside a string do not split it.
    """
    items: List[str] = []
    for match in _LIST_ITEM.finditer(value or ""):
        quoted = match.group("quoted")
        if quoted is not None:
            item = quoted.strip()
        else:
            item = match.group("bare")
            for suffix in ("::class", ".class"):
                if item.endswith(suffix):
                    item = item[: -len(suffix)]
        if item and item not in items:
            items.append(item)
    return items


__all__ = ["join_paths", "method_upper", "normalize_path", "split_list"]
