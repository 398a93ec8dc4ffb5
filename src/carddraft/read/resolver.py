"""Resolve read-protocol paths against a readable snapshot.

The snapshot is the dict form of a Draft restricted to the readable
sections: ``card``, ``worldbook``, ``regex_scripts``, ``tavern_helper``
and ``raw.dataExtensions`` (with ``vibePlan`` removed unless asked for).

File paths map onto a virtual folder tree::

    <card name>/
        description, personality, ...          card text files
        alternate_greetings/<i>
        worldbook/<comment | i>[/<key>...]
        regex_scripts/<name | i>[/<key>...]
        tavern_helper/scripts/<name | id | i>[/<key>...]
        tavern_helper/variables/<name>
"""
from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from carddraft.errors import PathResolutionError
from carddraft.model.nodes import CardDraft
from carddraft.model.normalize import normalize_card_draft
from carddraft.model.serializer import draft_to_dict
from carddraft.read.index_text import (
    CARD_TEXT_KEYS,
    build_read_index_text,
    build_regex_scripts_index_text,
    build_tavern_helper_index_text,
    build_worldbook_index_text,
)
from carddraft.read.paths import (
    DotSegment,
    normalize_path_segment,
    parse_dot_path,
    parse_file_path,
    parse_index_segment,
    pick_root_name,
)

VIBE_PLAN_KEY = "vibePlan"


@dataclass(frozen=True)
class Resolved:
    """Outcome of resolving one path: ``value`` when ``ok``, else ``error``."""

    ok: bool
    value: Any = None
    error: str | None = None


def build_readable_snapshot(draft: Any, include_vibe_plan: bool = False) -> dict[str, Any]:
    """Return the readable sections of ``draft`` as plain dicts and lists.

    Parameters
    ----------
    draft:
        A ``CardDraft`` or any value ``normalize_card_draft`` accepts.
    include_vibe_plan:
        Keep ``raw.dataExtensions.vibePlan`` in the snapshot.
    """
    card_draft = draft if isinstance(draft, CardDraft) else normalize_card_draft(draft)
    data = draft_to_dict(card_draft)
    extensions = copy.deepcopy(data["raw"]["dataExtensions"])
    if not include_vibe_plan:
        extensions.pop(VIBE_PLAN_KEY, None)
    return {
        "card": data["card"],
        "worldbook": data["worldbook"],
        "regex_scripts": data["regex_scripts"],
        "tavern_helper": data["tavern_helper"],
        "raw": {"dataExtensions": extensions},
    }


# ---------------------------------------------------------------------------
# Generic walkers
# ---------------------------------------------------------------------------


def get_by_dot_segments(root: Any, segments: Sequence[DotSegment]) -> Any:
    current = root
    for seg in segments:
        if not isinstance(current, dict):
            raise PathResolutionError(f"path goes past a leaf: {seg.key}", path=seg.key)
        if seg.key not in current:
            raise PathResolutionError(f"path does not exist: {seg.key}", path=seg.key)
        current = current[seg.key]
        if seg.index is not None:
            if not isinstance(current, list):
                raise PathResolutionError(f"path expects an array: {seg.key}", path=seg.key)
            if seg.index >= len(current):
                raise PathResolutionError(
                    f"path index out of range: {seg.key}[{seg.index}]", path=seg.key
                )
            current = current[seg.index]
    return current


def get_by_file_segments(value: Any, segments: Sequence[str]) -> Any:
    current = value
    for seg in segments:
        index = parse_index_segment(seg)
        if index is not None:
            if not isinstance(current, list):
                raise PathResolutionError(f"path expects an array: {seg}", path=seg)
            if index >= len(current):
                raise PathResolutionError(f"path index out of range: {seg}", path=seg)
            current = current[index]
            continue
        if not isinstance(current, dict):
            raise PathResolutionError(f"invalid path: {seg}", path=seg)
        if seg not in current:
            raise PathResolutionError(f"path does not exist: {seg}", path=seg)
        current = current[seg]
    return current


def pick_item(items: Sequence[Any], segment: str, name_of: Callable[[Any], Any]) -> Any:
    """Pick a list item by positional index or by its normalized name."""
    index = parse_index_segment(segment)
    if index is not None:
        if index >= len(items):
            raise PathResolutionError(f"path index out of range: {segment}", path=segment)
        return items[index]
    target = normalize_path_segment(segment)
    for item in items:
        if normalize_path_segment(name_of(item)) == target:
            return item
    raise PathResolutionError(f"path does not exist: {segment}", path=segment)


def _too_deep(parts: Sequence[str]) -> PathResolutionError:
    joined = "/".join(parts)
    return PathResolutionError(f"path is too deep: {joined}", path=joined)


# ---------------------------------------------------------------------------
# Section resolvers
# ---------------------------------------------------------------------------


def _resolve_card_file(snapshot: Mapping[str, Any], parts: Sequence[str]) -> Any:
    if len(parts) > 1:
        raise _too_deep(parts)
    value = snapshot["card"].get(parts[0])
    return "" if value is None else str(value)


def _resolve_alternate_greetings(snapshot: Mapping[str, Any], rest: Sequence[str]) -> Any:
    if not rest:
        raise PathResolutionError("path is incomplete: alternate_greetings", path="alternate_greetings")
    greetings = snapshot["card"].get("alternate_greetings") or []
    index = parse_index_segment(rest[0])
    if index is None:
        raise PathResolutionError(f"path expects an index: {rest[0]}", path=rest[0])
    if index >= len(greetings):
        raise PathResolutionError(f"path index out of range: {rest[0]}", path=rest[0])
    if len(rest) > 1:
        raise _too_deep(["alternate_greetings", *rest])
    return str(greetings[index])


def _resolve_worldbook(snapshot: Mapping[str, Any], rest: Sequence[str]) -> Any:
    if not rest:
        return build_worldbook_index_text(snapshot)
    entry = pick_item(snapshot["worldbook"]["entries"], rest[0], lambda e: e.get("comment"))
    if len(rest) == 1:
        return str(entry.get("content") or "")
    return get_by_file_segments(entry, rest[1:])


def _resolve_regex_scripts(snapshot: Mapping[str, Any], rest: Sequence[str]) -> Any:
    if not rest:
        return build_regex_scripts_index_text(snapshot)
    script = pick_item(snapshot["regex_scripts"], rest[0], lambda s: s.get("name"))
    if len(rest) == 1:
        return script
    return get_by_file_segments(script, rest[1:])


def _resolve_tavern_helper(snapshot: Mapping[str, Any], rest: Sequence[str]) -> Any:
    if len(rest) < 2:
        return build_tavern_helper_index_text(snapshot)
    area, name = rest[0], rest[1]
    pack = snapshot["tavern_helper"]

    if area == "scripts":
        try:
            script = pick_item(pack["scripts"], name, lambda s: s.get("name") or s.get("id"))
        except PathResolutionError:
            script = pick_item(pack["scripts"], name, lambda s: s.get("id"))
        if len(rest) == 2:
            return str(script.get("content") or "")
        return get_by_file_segments(script, rest[2:])

    if area == "variables":
        variables = pack["variables"]
        key = name if name in variables else next(
            (k for k in variables if normalize_path_segment(k) == normalize_path_segment(name)),
            None,
        )
        if key is None:
            raise PathResolutionError(f"path does not exist: {name}", path=name)
        if len(rest) > 2:
            raise _too_deep(["tavern_helper", *rest])
        return variables[key]

    raise PathResolutionError(f"path does not exist: {area}", path=area)


_SECTION_RESOLVERS: dict[str, Callable[[Mapping[str, Any], Sequence[str]], Any]] = {
    "alternate_greetings": _resolve_alternate_greetings,
    "worldbook": _resolve_worldbook,
    "regex_scripts": _resolve_regex_scripts,
    "tavern_helper": _resolve_tavern_helper,
}


def resolve_file_path(snapshot: Mapping[str, Any], path: Any) -> Any:
    """Resolve a file path against ``snapshot``.

    Raises
    ------
    PathResolutionError
        If the path does not address anything readable.
    """
    parts = parse_file_path(path, pick_root_name(snapshot))
    head, rest = parts[0], parts[1:]
    if head in CARD_TEXT_KEYS:
        return _resolve_card_file(snapshot, parts)
    resolver = _SECTION_RESOLVERS.get(head)
    if resolver is None:
        raise PathResolutionError(f"path does not exist: {head}", path=str(path))
    return resolver(snapshot, rest)


def resolve_dot_path(snapshot: Mapping[str, Any], path: Any) -> Any:
    """Resolve a dotted path such as ``worldbook.entries[0].content``."""
    return get_by_dot_segments(snapshot, parse_dot_path(path))


def resolve_file_content(snapshot: Mapping[str, Any], path: Any) -> Resolved:
    """Resolve a file path, returning ``Resolved(ok=False)`` instead of raising."""
    try:
        return Resolved(ok=True, value=resolve_file_path(snapshot, path))
    except PathResolutionError as exc:
        return Resolved(ok=False, error=exc.message)


def read_index_text(draft: Any, include_vibe_plan: bool = False) -> str:
    """Convenience wrapper: the full index text for ``draft``."""
    return build_read_index_text(build_readable_snapshot(draft, include_vibe_plan))
