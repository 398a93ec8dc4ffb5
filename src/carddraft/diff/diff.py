"""Structural diff restricted to the artifact subtrees of a Draft.

Only ``card``, ``worldbook``, ``regex_scripts`` and ``tavern_helper``
are compared; metadata, validation and ``raw`` never count as an
artifact change.  Paths use dotted keys and ``[i]`` indices, e.g.
``worldbook.entries[0].content``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from carddraft.model.nodes import CardDraft
from carddraft.model.serializer import draft_to_dict

ARTIFACT_KEYS = ("card", "worldbook", "regex_scripts", "tavern_helper")
MAX_CHANGED_PATHS = 200


@dataclass(frozen=True)
class ArtifactDiff:
    artifact_changed: bool
    changed_paths: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"artifactChanged": self.artifact_changed, "changedPaths": list(self.changed_paths)}


def _same_scalar(before: Any, after: Any) -> bool:
    # True == 1 in Python; a bool against a number is a type change.
    if isinstance(before, bool) != isinstance(after, bool):
        return False
    return before == after


def _diff(path: str, before: Any, after: Any, out: list[str], limit: int) -> None:
    if len(out) >= limit:
        return

    before_list = isinstance(before, (list, tuple))
    after_list = isinstance(after, (list, tuple))
    if before_list or after_list:
        if not (before_list and after_list) or len(before) != len(after):
            out.append(path)
            return
        for i, (b, a) in enumerate(zip(before, after)):
            if len(out) >= limit:
                return
            _diff(f"{path}[{i}]", b, a, out, limit)
        return

    before_dict = isinstance(before, dict)
    after_dict = isinstance(after, dict)
    if before_dict or after_dict:
        if not (before_dict and after_dict):
            out.append(path)
            return
        for key in sorted(set(before) | set(after), key=str):
            if len(out) >= limit:
                return
            _diff(f"{path}.{key}", before.get(key), after.get(key), out, limit)
        return

    if not _same_scalar(before, after):
        out.append(path)


def _as_dict(draft: Any) -> dict[str, Any]:
    if isinstance(draft, CardDraft):
        return draft_to_dict(draft)
    return draft if isinstance(draft, dict) else {}


def draft_artifact_diff(before: Any, after: Any, limit: int = MAX_CHANGED_PATHS) -> ArtifactDiff:
    """Compare the artifact subtrees of two Drafts.

    Parameters
    ----------
    before, after:
        ``CardDraft`` instances or their dict form.
    limit:
        Maximum number of changed paths to report.

    Returns
    -------
    ArtifactDiff
        ``artifact_changed`` plus the sorted, de-duplicated changed paths.
        Arrays whose length or type differs are reported as one path.
    """
    b, a = _as_dict(before), _as_dict(after)
    changed: list[str] = []
    for key in ARTIFACT_KEYS:
        _diff(key, b.get(key), a.get(key), changed, limit)
    paths = tuple(sorted(set(changed)))
    return ArtifactDiff(artifact_changed=bool(paths), changed_paths=paths)
