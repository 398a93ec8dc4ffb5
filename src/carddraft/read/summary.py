"""Content-free discovery surface: file tree and file-system summary.

Neither structure contains body text beyond a short head of each card
field; they exist so a caller can decide which paths to read next.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from carddraft.model.nodes import CardDraft
from carddraft.model.normalize import normalize_card_draft
from carddraft.model.serializer import draft_to_dict
from carddraft.read.index_text import CARD_TEXT_KEYS
from carddraft.read.paths import normalize_path_segment, parse_index_segment, pick_root_name

TEXT_HEAD_LEN = 160
FILE_PREVIEW_LIMIT = 10
META_PREVIEW_LIMIT = 8
VAR_KEY_PREVIEW_LIMIT = 24


@dataclass(frozen=True)
class FileNode:
    """A node of the virtual file tree; ``children`` is empty for files."""

    type: str
    name: str
    path: str
    children: tuple[FileNode, ...] = field(default_factory=tuple)

    @property
    def is_folder(self) -> bool:
        return self.type == "folder"

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type, "name": self.name, "path": self.path}
        if self.is_folder:
            out["children"] = [child.to_dict() for child in self.children]
        return out

    def walk(self):
        """Yield this node and every descendant, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()


def build_unique_names(items: Sequence[Any], name_of: Callable[[Any], Any]) -> list[str]:
    """Name each item by its normalized name, or ``[i]`` when the name is
    empty, shared, or itself reads as an index (``"1"``, ``"[2]"``).

    ``[i]`` names resolve positionally and index-like names are never
    emitted verbatim, so every returned name addresses exactly one item.
    """
    names = [normalize_path_segment(name_of(item)) for item in items]
    counts: dict[str, int] = {}
    for name in names:
        if name:
            counts[name] = counts.get(name, 0) + 1
    return [
        name if name and counts[name] == 1 and parse_index_segment(name) is None else f"[{i}]"
        for i, name in enumerate(names)
    ]


def _as_dict(draft: Any) -> dict[str, Any]:
    card_draft = draft if isinstance(draft, CardDraft) else normalize_card_draft(draft)
    return draft_to_dict(card_draft)


def _tree_names(data: dict[str, Any]) -> dict[str, list[str]]:
    pack = data["tavern_helper"]
    return {
        "card": list(CARD_TEXT_KEYS),
        "alternate_greetings": [str(i) for i in range(len(data["card"]["alternate_greetings"]))],
        "worldbook": build_unique_names(data["worldbook"]["entries"], lambda e: e["comment"]),
        "regex_scripts": build_unique_names(data["regex_scripts"], lambda s: s["name"]),
        "scripts": build_unique_names(pack["scripts"], lambda s: s["name"] or s["id"]),
        "variables": [normalize_path_segment(k) for k in pack["variables"]],
    }


def build_file_tree(draft: Any) -> FileNode:
    """Build the virtual folder tree of ``draft`` (names and paths only)."""
    data = _as_dict(draft)
    root = pick_root_name(data)
    names = _tree_names(data)

    def files(base: str, items: list[str]) -> tuple[FileNode, ...]:
        return tuple(FileNode("file", name, f"{base}/{name}") for name in items)

    def folder(base: str, name: str, children: tuple[FileNode, ...]) -> FileNode:
        return FileNode("folder", name, f"{base}/{name}", children)

    helper = f"{root}/tavern_helper"
    children = (
        *files(root, names["card"]),
        folder(root, "alternate_greetings", files(f"{root}/alternate_greetings", names["alternate_greetings"])),
        folder(root, "worldbook", files(f"{root}/worldbook", names["worldbook"])),
        folder(root, "regex_scripts", files(f"{root}/regex_scripts", names["regex_scripts"])),
        folder(
            root,
            "tavern_helper",
            (
                folder(helper, "scripts", files(f"{helper}/scripts", names["scripts"])),
                folder(helper, "variables", files(f"{helper}/variables", names["variables"])),
            ),
        ),
    )
    return FileNode("folder", root, root, children)


def _preview(items: Sequence[Any], limit: int = FILE_PREVIEW_LIMIT) -> dict[str, Any]:
    shown = list(items[:limit])
    return {"count": len(items), "preview": shown, "more": len(items) - len(shown)}


def _text_summary(value: str) -> dict[str, Any]:
    return {"len": len(value), "head": value[:TEXT_HEAD_LEN]}


def _card_summary(card: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {
        "name": card["name"],
        "tags": list(card["tags"]),
        "alternate_greetings_count": len(card["alternate_greetings"]),
    }
    for key in CARD_TEXT_KEYS:
        out[key] = _text_summary(card[key])
    return out


def _worldbook_meta(worldbook: dict[str, Any]) -> dict[str, Any]:
    entries = worldbook["entries"]
    return {
        "name": worldbook["name"],
        "entriesCount": len(entries),
        "entries": [
            {
                "i": i,
                "enabled": e["enabled"],
                "light": e["light"],
                "position": e["position"],
                "order": e["order"],
                "use_regex": e["use_regex"],
                "comment": e["comment"],
                "keysCount": len(e["keys"]),
                "secondaryKeysCount": len(e["secondary_keys"]),
                "secondary_logic": e["secondary_logic"],
            }
            for i, e in enumerate(entries[:META_PREVIEW_LIMIT])
        ],
        "entriesMore": max(0, len(entries) - META_PREVIEW_LIMIT),
    }


def _regex_meta(scripts: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "count": len(scripts),
        "items": [
            {
                "i": i,
                "name": s["name"],
                "enabled": s["enabled"],
                "placement": list(s["placement"]),
                "find": {
                    "style": s["find"]["style"],
                    "flags": s["find"]["flags"],
                    "patternLen": len(s["find"]["pattern"]),
                },
                "replaceLen": len(s["replace"]),
            }
            for i, s in enumerate(scripts[:META_PREVIEW_LIMIT])
        ],
        "itemsMore": max(0, len(scripts) - META_PREVIEW_LIMIT),
    }


def _tavern_helper_meta(pack: dict[str, Any]) -> dict[str, Any]:
    names = [normalize_path_segment(s["name"]) or normalize_path_segment(s["id"]) for s in pack["scripts"]]
    keys = sorted(pack["variables"])
    return {
        "scriptsCount": len(pack["scripts"]),
        "scriptNames": _preview(names),
        "variablesCount": len(keys),
        "variableKeysPreview": _preview(keys, VAR_KEY_PREVIEW_LIMIT),
    }


def build_file_system_summary(draft: Any, include_vibe_plan: bool = False) -> dict[str, Any]:
    """Summarize ``draft`` as counts, previews and key listings.

    Parameters
    ----------
    draft:
        A ``CardDraft`` or any value ``normalize_card_draft`` accepts.
    include_vibe_plan:
        Report whether a VibePlan is present under ``rawMeta``.

    Returns
    -------
    dict
        JSON-ready summary with ``root``, ``card``, ``fileTree``,
        ``worldbookMeta``, ``regexMeta``, ``tavernHelperMeta``,
        ``rawMeta`` and ``readHint`` keys.
    """
    data = _as_dict(draft)
    root = pick_root_name(data)
    names = _tree_names(data)
    extensions = data["raw"]["dataExtensions"]
    return {
        "root": root,
        "card": _card_summary(data["card"]),
        "fileTree": {
            "card": names["card"],
            "alternate_greetings": _preview(names["alternate_greetings"]),
            "worldbook": _preview(names["worldbook"]),
            "regex_scripts": _preview(names["regex_scripts"]),
            "tavern_helper": {
                "scripts": _preview(names["scripts"]),
                "variables": _preview(names["variables"], VAR_KEY_PREVIEW_LIMIT),
            },
        },
        "worldbookMeta": _worldbook_meta(data["worldbook"]),
        "regexMeta": _regex_meta(data["regex_scripts"]),
        "tavernHelperMeta": _tavern_helper_meta(data["tavern_helper"]),
        "rawMeta": {
            "dataExtensionsKeys": sorted(extensions),
            "vibePlanIncluded": bool(include_vibe_plan and extensions.get("vibePlan")),
        },
        "readHint": {
            "note": "Directory and metadata only; read file paths with kind=read to get bodies.",
            "examples": [
                f"{root}/description",
                f"{root}/worldbook/Entry name",
                f"{root}/regex_scripts/Regex name",
                f"{root}/tavern_helper/scripts/Script name",
            ],
        },
    }
