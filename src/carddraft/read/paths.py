"""Path syntax of the read protocol.

Two addressing styles are supported:

* file paths, ``Alice/worldbook/Backstory/keys``: segments separated by
  ``/`` or ``\\``, optionally starting with the root folder (the card
  name or one of the aliases ``character`` / ``card``);
* dotted paths, ``worldbook.entries[0].content``: ``key`` or
  ``key[index]`` segments rooted at one of the readable sections.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping

from carddraft.errors import PathResolutionError

DEFAULT_ROOT_NAME = "character"
ROOT_ALIASES = frozenset({DEFAULT_ROOT_NAME, "card"})
DOT_PATH_ROOTS = ("card", "worldbook", "regex_scripts", "tavern_helper", "raw")

FULLWIDTH_SLASH = "／"

_SEPARATORS = re.compile(r"[\\/]")
_BRACKET_INDEX = re.compile(r"^\[(\d+)\]$")
_DOT_SEGMENT = re.compile(r"^([a-zA-Z0-9_]+)(?:\[(\d+)\])?$")


@dataclass(frozen=True)
class DotSegment:
    """One ``key`` or ``key[index]`` segment of a dotted path."""

    key: str
    index: int | None = None


def normalize_path_segment(value: Any) -> str:
    """Strip a name and replace path separators so it fits in one segment."""
    text = "" if value is None else str(value)
    return _SEPARATORS.sub(FULLWIDTH_SLASH, text.strip())


def parse_index_segment(segment: str) -> int | None:
    """Parse ``"3"`` or ``"[3]"`` as an index; anything else gives ``None``."""
    text = segment.strip()
    match = _BRACKET_INDEX.match(text)
    if match:
        return int(match.group(1))
    if text.isdigit() and text.isascii():
        return int(text)
    return None


def pick_root_name(snapshot: Mapping[str, Any]) -> str:
    """Return the root folder name: the card name, or ``character`` when unnamed."""
    card = snapshot.get("card")
    name = normalize_path_segment(card.get("name") if isinstance(card, dict) else "")
    return name or DEFAULT_ROOT_NAME


def is_file_path(path: str) -> bool:
    return "/" in path or "\\" in path


def parse_file_path(path: Any, root_name: str) -> tuple[str, ...]:
    """Split a file path into segments, dropping a leading root or alias segment.

    Raises
    ------
    PathResolutionError
        If the path is empty, or nothing remains after the root.
    """
    raw = "" if path is None else str(path).strip()
    if not raw:
        raise PathResolutionError("path is empty.", path=raw)
    parts = [normalize_path_segment(p) for p in raw.replace("\\", "/").split("/")]
    parts = [p for p in parts if p]
    if not parts:
        raise PathResolutionError("path is empty.", path=raw)

    if parts[0] in ROOT_ALIASES | {normalize_path_segment(root_name)}:
        parts.pop(0)
    if not parts:
        raise PathResolutionError("path is incomplete.", path=raw)
    return tuple(parts)


def parse_dot_path(path: Any) -> tuple[DotSegment, ...]:
    """Parse a dotted path restricted to the readable roots.

    Raises
    ------
    PathResolutionError
        If a segment is malformed or the root is not readable.
    """
    raw = "" if path is None else str(path).strip()
    segments: list[DotSegment] = []
    for part in raw.split("."):
        match = _DOT_SEGMENT.match(part)
        if match is None:
            raise PathResolutionError(
                "invalid path (only dotted keys with a single [i] index per segment are supported).",
                path=raw,
            )
        index = match.group(2)
        segments.append(DotSegment(key=match.group(1), index=None if index is None else int(index)))
    if segments[0].key not in DOT_PATH_ROOTS:
        raise PathResolutionError(f"root path not allowed: {segments[0].key}", path=raw)
    return tuple(segments)
