"""
Safe nested-path access over string-keyed mappings.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence


def split_path(dotted: str) -> tuple[str, ...]:
    """'a.b.c' -> ('a', 'b', 'c'); blank segments are rejected."""
    parts = tuple(dotted.split("."))
    if not dotted or any(p == "" for p in parts):
        raise ValueError(f"Invalid dotted path: {dotted!r}")
    return parts


def join_path(path: Sequence[str]) -> str:
    return ".".join(path)


def get_path(data: Optional[Mapping[str, Any]], path: Sequence[str]) -> Optional[Any]:
    """
    Walk `path` through nested mappings.

    Returns None as soon as a segment is missing or an intermediate value is not
    a mapping; never raises for shape mismatches.
    """
    current: Any = data
    for segment in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(segment)
        if current is None:
            return None
    return current
