"""Structural locators like '$.semanticSegments[3].timelinePath[0]'.

Locators are built from key names and array indices only, never from values.
"""

from __future__ import annotations


def escape_path_segment(segment: str) -> str:
    """Escape a single key segment for dot-path representation.

    - Dots are escaped as '\\.' so keys like 'v1.2' remain one segment.
    - '[' is escaped as '\\[' so a key can't be mistaken for an index.
    - Backslashes are escaped as '\\\\' to preserve round-tripping.
    """
    if not isinstance(segment, str):
        segment = str(segment)
    return segment.replace('\\', '\\\\').replace('.', '\\.').replace('[', '\\[')


def child_path(parent: str, key: str) -> str:
    return f"{parent}.{escape_path_segment(key)}"


def index_path(parent: str, index: int) -> str:
    return f"{parent}[{index}]"
