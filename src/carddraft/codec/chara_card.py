"""Draft <-> chara_card_v3 interchange document.

Export maps the canonical Draft onto the external card schema, filling
in the defaults external tools expect.  Import is the inverse: it maps
the known fields back and routes every unrecognised extension key into
``raw.dataExtensions`` so nothing is lost.

For a Draft built from recognised fields only, ``import(export(d))``
equals ``d`` field for field (``meta`` aside).  To make that hold, the
importer elides extension values that the exporter would have invented
on its own (``world`` equal to the card name, default ``fav``,
``talkativeness`` and ``depth_prompt``, the fallback worldbook name).

Usage
-----
::

    from carddraft.codec import ExportMode, card_draft_to_chara_card_v3

    doc = card_draft_to_chara_card_v3(draft, mode=ExportMode.PUBLISH)
    again = chara_card_to_card_draft(doc)
"""
from __future__ import annotations

import copy
import logging
import uuid
from enum import Enum
from typing import Any, Mapping, Union

from carddraft.codec.positions import (
    position_from_external,
    position_to_external,
    secondary_logic_from_code,
    secondary_logic_to_code,
)
from carddraft.codec.regex import build_find_regex_string
from carddraft.model.nodes import (
    CARD_TEXT_FIELDS,
    CardDraft,
    Light,
    RegexScript,
    TavernHelperPack,
    WorldbookEntry,
    WorldbookPosition,
)
from carddraft.model.normalize import (
    as_mapping,
    copy_bag,
    normalize_card_draft,
    normalize_regex_script,
    normalize_tavern_helper_pack,
    normalize_worldbook_entry,
    plain_number,
    to_bool,
    to_number,
    to_str,
)
from carddraft.model.serializer import (
    card_to_dict,
    entry_to_dict,
    helper_script_to_dict,
    regex_script_to_dict,
    tavern_helper_to_dict,
)

logger = logging.getLogger(__name__)

SPEC_NAME = "chara_card_v3"
SPEC_VERSION = "3.0"

DEFAULT_TALKATIVENESS = "0.5"
DEFAULT_DEPTH_PROMPT: dict[str, Any] = {"prompt": "", "depth": 4, "role": "system"}

# Entry extension keys written by the exporter from typed entry fields.
CODEC_ENTRY_EXTENSION_KEYS = frozenset({"position", "selectiveLogic", "depth", "role"})

# Card extension keys decoded into typed Draft sections.
KNOWN_CARD_EXTENSIONS = frozenset({"regex_scripts", "tavern_helper"})

_DEFAULT_AT_DEPTH_SLOT = 4


class ExportMode(Enum):
    """``work`` keeps the embedded vibe plan; ``publish`` strips it."""

    WORK = "work"
    PUBLISH = "publish"


def _coerce_draft(draft: Union[CardDraft, Mapping[str, Any], None]) -> CardDraft:
    return draft if isinstance(draft, CardDraft) else normalize_card_draft(draft)


def _coerce_mode(mode: Union[ExportMode, str, None]) -> ExportMode:
    if isinstance(mode, ExportMode):
        return mode
    return ExportMode.PUBLISH if to_str(mode) == ExportMode.PUBLISH.value else ExportMode.WORK


def _bool_like(value: Any, fallback: bool) -> bool:
    if value in ("true", "false"):
        return value == "true"
    return to_bool(value, fallback)


def fallback_worldbook_name(card_name: str) -> str:
    """Name given to an unnamed worldbook on export."""
    return f"{card_name.strip() or 'unknown'}_worldbook"


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def _ensure_world(extensions: dict[str, Any], fallback: str) -> None:
    world = extensions.get("world")
    if isinstance(world, str):
        extensions["world"] = world.strip() or fallback
    elif isinstance(world, dict):
        extensions["world"] = {**world, "name": to_str(world.get("name")).strip() or fallback}
    else:
        extensions["world"] = fallback


def _ensure_export_defaults(extensions: dict[str, Any]) -> None:
    extensions["fav"] = _bool_like(extensions.get("fav", False), False)
    extensions["talkativeness"] = to_str(extensions.get("talkativeness")).strip() or DEFAULT_TALKATIVENESS

    prompt = extensions.get("depth_prompt")
    prompt = prompt if isinstance(prompt, dict) else {}
    depth = to_number(prompt.get("depth"))
    extensions["depth_prompt"] = {
        **prompt,
        "prompt": to_str(prompt.get("prompt")),
        "depth": DEFAULT_DEPTH_PROMPT["depth"] if depth is None else int(depth),
        "role": to_str(prompt.get("role")) or DEFAULT_DEPTH_PROMPT["role"],
    }


def export_worldbook_entry(entry: WorldbookEntry, index: int) -> dict[str, Any]:
    """Map one entry onto the external ``character_book`` entry shape."""
    code, role = position_to_external(entry.position)
    if entry.position.is_at_depth:
        depth = entry.at_depth.depth if entry.at_depth is not None else 0
    else:
        depth = _DEFAULT_AT_DEPTH_SLOT

    extensions = copy_bag(entry.raw_extensions)
    extensions["position"] = code
    extensions["selectiveLogic"] = secondary_logic_to_code(entry.secondary_logic)
    extensions["depth"] = depth
    if role is not None:
        extensions["role"] = role

    entry_id = to_number(entry.id)
    return {
        "id": index if entry_id is None else plain_number(entry_id),
        "keys": list(entry.keys),
        "secondary_keys": list(entry.secondary_keys),
        "comment": entry.comment,
        "content": entry.content,
        "constant": entry.light is Light.BLUE,
        "selective": entry.light is Light.GREEN,
        "insertion_order": entry.order,
        "enabled": entry.enabled,
        "position": "at_depth" if entry.position.is_at_depth else entry.position.value,
        "use_regex": entry.use_regex,
        "extensions": extensions,
    }


def export_regex_script(script: RegexScript) -> dict[str, Any]:
    """Map one regex script onto the external script shape.

    ``findSource`` carries the Draft's own find (style, pattern, flags) next
    to the canonical ``findRegex`` literal so import can restore it.
    """
    return {
        "id": script.id or str(uuid.uuid4()),
        "scriptName": script.name,
        "findRegex": build_find_regex_string(script.find),
        "replaceString": script.replace,
        "trimStrings": list(script.trim_strings),
        "placement": list(script.placement),
        "disabled": not script.enabled,
        "markdownOnly": script.markdown_only,
        "promptOnly": script.prompt_only,
        "runOnEdit": script.options.run_on_edit,
        "substituteRegex": script.options.substitute_regex,
        "minDepth": script.options.min_depth,
        "maxDepth": script.options.max_depth,
        "findSource": {
            "style": script.find.style.value,
            "pattern": script.find.pattern,
            "flags": script.find.flags,
        },
    }


def export_tavern_helper(pack: TavernHelperPack) -> list[list[Any]]:
    """Export the helper pack as the ``[[key, value], ...]`` tuple list."""
    scripts = []
    for script in pack.scripts:
        item = helper_script_to_dict(script)
        item["id"] = item["id"] or str(uuid.uuid4())
        scripts.append(item)
    return [["scripts", scripts], ["variables", copy.deepcopy(pack.variables)]]


def card_draft_to_chara_card_v3(
    draft: Union[CardDraft, Mapping[str, Any], None],
    mode: Union[ExportMode, str] = ExportMode.WORK,
) -> dict[str, Any]:
    """Export a Draft as a chara_card_v3 document.

    Parameters
    ----------
    draft:
        A ``CardDraft`` or anything ``normalize_card_draft`` accepts.
    mode:
        ``ExportMode.PUBLISH`` (or ``"publish"``) drops the embedded
        ``vibePlan`` extension; anything else keeps it.

    Returns
    -------
    dict
        A fresh JSON-compatible document.
    """
    d = _coerce_draft(draft)
    export_mode = _coerce_mode(mode)

    extensions = copy.deepcopy(d.raw.data_extensions)
    if export_mode is ExportMode.PUBLISH:
        extensions.pop("vibePlan", None)

    name = d.card.name
    _ensure_world(extensions, name.strip())
    _ensure_export_defaults(extensions)

    scripts = [export_regex_script(s) for s in d.regex_scripts if (s.name or s.id).strip()]
    if scripts:
        extensions["regex_scripts"] = scripts
    if d.tavern_helper.scripts or d.tavern_helper.variables:
        extensions["tavern_helper"] = export_tavern_helper(d.tavern_helper)

    data: dict[str, Any] = card_to_dict(d.card)
    data.update({"creator": "", "character_version": "", "group_only_greetings": []})

    worldbook_name = d.worldbook.name.strip()
    if d.worldbook.entries or worldbook_name:
        data["character_book"] = {
            "name": worldbook_name or fallback_worldbook_name(name),
            "entries": [export_worldbook_entry(e, i) for i, e in enumerate(d.worldbook.entries)],
            "extensions": {},
        }
    data["extensions"] = extensions

    logger.debug(
        "Exported card %r (%s): %d entries, %d regex scripts",
        name,
        export_mode.value,
        len(d.worldbook.entries),
        len(scripts),
    )
    return {
        "name": data["name"],
        "spec": SPEC_NAME,
        "spec_version": SPEC_VERSION,
        "data": data,
        "fav": bool(extensions["fav"]),
        "description": data["description"],
        "personality": data["personality"],
        "scenario": data["scenario"],
        "first_mes": data["first_mes"],
        "mes_example": data["mes_example"],
        "tags": data["tags"],
        "create_date": d.meta.updated_at,
        "creatorcomment": "",
        "avatar": "none",
        "talkativeness": to_str(extensions["talkativeness"]) or DEFAULT_TALKATIVENESS,
    }


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


def _import_position(entry: Mapping[str, Any], ext: Mapping[str, Any]) -> WorldbookPosition:
    if to_number(ext.get("position")) is not None:
        return position_from_external(ext.get("position"), ext.get("role"))
    text = to_str(entry.get("position"))
    if text == "at_depth":
        return position_from_external(_DEFAULT_AT_DEPTH_SLOT, ext.get("role"))
    try:
        return WorldbookPosition(text)
    except ValueError:
        return WorldbookPosition.AFTER_CHAR


def import_worldbook_entry(raw: Any) -> WorldbookEntry:
    """Map an external ``character_book`` entry back to a ``WorldbookEntry``."""
    entry = as_mapping(raw)
    ext = as_mapping(entry.get("extensions"))
    position = _import_position(entry, ext)

    if to_bool(entry.get("constant"), False):
        light = Light.BLUE
    elif to_bool(entry.get("selective"), False):
        light = Light.GREEN
    else:
        light = Light.BLUE

    depth = to_number(ext.get("depth"))
    order = to_number(entry.get("insertion_order"))
    raw_extensions = {k: v for k, v in ext.items() if k not in CODEC_ENTRY_EXTENSION_KEYS}

    return normalize_worldbook_entry(
        {
            "id": entry.get("id"),
            "enabled": to_bool(entry.get("enabled"), True),
            "light": light.value,
            "keys": entry.get("keys"),
            "secondary_keys": entry.get("secondary_keys"),
            "secondary_logic": secondary_logic_from_code(ext.get("selectiveLogic")).value,
            "comment": entry.get("comment"),
            "content": entry.get("content"),
            "position": position.value,
            "at_depth": {"depth": 0 if depth is None else depth} if position.is_at_depth else None,
            "order": 100 if order is None else order,
            "use_regex": to_bool(entry.get("use_regex"), True),
            "raw_extensions": raw_extensions,
        }
    )


def _nullable_number(value: Any) -> Any:
    if value is None or value == "":
        return None
    return to_number(value)


def _import_find(script: Mapping[str, Any]) -> dict[str, Any]:
    find_regex = to_str(script.get("findRegex"))
    source = as_mapping(script.get("findSource"))
    if source:
        find = normalize_regex_script({"find": source}).find
        # An edited findRegex wins over a stale findSource.
        if build_find_regex_string(find) == find_regex:
            return {"style": find.style.value, "pattern": find.pattern, "flags": find.flags}
        logger.debug("findSource does not match findRegex %r; using the literal", find_regex)
    return {"style": "slash", "pattern": find_regex, "flags": ""}


def import_regex_script(raw: Any) -> RegexScript:
    """Map an external regex script back to a ``RegexScript``.

    The find comes from ``findSource`` when it still renders to
    ``findRegex``; otherwise ``findRegex`` is kept as a slash-style find.
    """
    script = as_mapping(raw)
    substitute = _nullable_number(script.get("substituteRegex"))
    return normalize_regex_script(
        {
            "id": to_str(script.get("id")),
            "name": to_str(script.get("scriptName")),
            "enabled": not to_bool(script.get("disabled"), False),
            "placement": script.get("placement"),
            "trimStrings": script.get("trimStrings"),
            "markdownOnly": to_bool(script.get("markdownOnly"), False),
            "promptOnly": to_bool(script.get("promptOnly"), False),
            "find": _import_find(script),
            "replace": to_str(script.get("replaceString")),
            "options": {
                "runOnEdit": to_bool(script.get("runOnEdit"), False),
                "substituteRegex": 0 if substitute is None else substitute,
                "minDepth": _nullable_number(script.get("minDepth")),
                "maxDepth": _nullable_number(script.get("maxDepth")),
            },
        }
    )


def import_tavern_helper(value: Any) -> TavernHelperPack:
    """Accept either the ``[[key, value], ...]`` tuple list or a plain object."""
    if isinstance(value, list):
        pairs: dict[str, Any] = {}
        for item in value:
            if isinstance(item, list) and len(item) >= 2:
                pairs[to_str(item[0])] = item[1]
        return normalize_tavern_helper_pack(pairs)
    return normalize_tavern_helper_pack(value)


def _elide_export_defaults(extensions: dict[str, Any], card_name: str) -> None:
    if extensions.get("world") == card_name.strip():
        del extensions["world"]
    if extensions.get("fav") is False:
        del extensions["fav"]
    if extensions.get("talkativeness") == DEFAULT_TALKATIVENESS:
        del extensions["talkativeness"]
    if extensions.get("depth_prompt") == DEFAULT_DEPTH_PROMPT:
        del extensions["depth_prompt"]


def chara_card_to_card_draft(doc: Any, now: str | None = None) -> CardDraft:
    """Import a chara_card v1/v2/v3 document as a ``CardDraft``.

    Flat (v1) cards without a ``data`` object are read from the root.
    Unrecognised extension keys land in ``raw.dataExtensions`` verbatim.
    """
    root = as_mapping(doc)
    data = root.get("data") if isinstance(root.get("data"), dict) else root
    extensions = as_mapping(data.get("extensions"))

    name = to_str(data.get("name"))
    raw_extensions = {k: copy.deepcopy(v) for k, v in extensions.items() if k not in KNOWN_CARD_EXTENSIONS}
    _elide_export_defaults(raw_extensions, name)

    book = as_mapping(data.get("character_book"))
    book_entries = book.get("entries")
    entries = [
        import_worldbook_entry(e) for e in (book_entries if isinstance(book_entries, list) else []) if isinstance(e, dict)
    ]
    book_name = to_str(book.get("name"))
    if entries and book_name == fallback_worldbook_name(name):
        book_name = ""

    scripts_raw = extensions.get("regex_scripts")
    scripts = [import_regex_script(s) for s in (scripts_raw if isinstance(scripts_raw, list) else []) if isinstance(s, dict)]

    draft = normalize_card_draft(
        {
            "meta": {
                "spec": to_str(root.get("spec")) or SPEC_NAME,
                "spec_version": to_str(root.get("spec_version")) or SPEC_VERSION,
            },
            "card": {
                **{key: data.get(key) for key in CARD_TEXT_FIELDS},
                "alternate_greetings": data.get("alternate_greetings"),
                "tags": data.get("tags"),
            },
            "worldbook": {"name": book_name, "entries": [entry_to_dict(e) for e in entries]},
            "regex_scripts": [regex_script_to_dict(s) for s in scripts],
            "tavern_helper": tavern_helper_to_dict(import_tavern_helper(extensions.get("tavern_helper"))),
            "raw": {"dataExtensions": raw_extensions},
        },
        now=now,
    )
    logger.debug(
        "Imported card %r: %d entries, %d regex scripts, %d passthrough extensions",
        draft.card.name,
        len(draft.worldbook.entries),
        len(draft.regex_scripts),
        len(raw_extensions),
    )
    return draft
