"""Defensive normalization of arbitrary JSON into the canonical Draft.

Every function here is total: it accepts any value (usually the result
of ``json.loads`` on untrusted input) and returns a fully populated
node.  Each scalar has an explicit coercion rule and each enum a named
fallback, so callers never need to check the shape of their input.

Passthrough bags are deep-copied so a normalized Draft never shares
mutable state with its input.
"""
from __future__ import annotations

import copy
import json
import math
from datetime import datetime, timezone
from typing import Any, Mapping, TypeVar

from carddraft.model.entry_ids import ensure_worldbook_entry_ids
from carddraft.model.nodes import (
    CARD_TEXT_FIELDS,
    AtDepth,
    CardDraft,
    CardFields,
    DraftMeta,
    FindStyle,
    HelperScript,
    Light,
    NextAction,
    NextActionType,
    Progress,
    ProgressStep,
    RawBag,
    RegexFind,
    RegexOptions,
    RegexScript,
    ScriptButton,
    SecondaryLogic,
    TaskStatus,
    TavernHelperPack,
    Validation,
    Worldbook,
    WorldbookEntry,
    WorldbookPosition,
)

E = TypeVar("E")


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def as_mapping(value: Any) -> Mapping[str, Any]:
    """Return ``value`` if it is a dict, else an empty dict."""
    return value if isinstance(value, dict) else {}


def to_str(value: Any) -> str:
    """Coerce to ``str``; ``None`` becomes ``""``."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def to_str_list(value: Any) -> tuple[str, ...]:
    """Coerce to a tuple of stripped, non-empty strings."""
    if not isinstance(value, (list, tuple)):
        return ()
    items = (to_str(item).strip() for item in value)
    return tuple(item for item in items if item)


def to_bool(value: Any, fallback: bool) -> bool:
    """Coerce to ``bool``; accepts ``1``/``0`` and ``"1"``/``"0"``."""
    if isinstance(value, bool):
        return value
    if value == 1 or value == "1":
        return True
    if value == 0 or value == "0":
        return False
    return bool(fallback)


def to_number(value: Any) -> int | float | None:
    """Coerce to a finite number or ``None``.  Booleans and blanks are rejected."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def to_int(value: Any) -> int | None:
    """Coerce to an ``int`` truncated toward zero, or ``None``."""
    number = to_number(value)
    return None if number is None else int(number)


def plain_number(value: int | float) -> int | float:
    """Return integral floats as ``int`` so JSON output stays stable."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def enum_or(enum_cls: type[E], value: Any, default: E) -> E:
    """Parse ``value`` as a member of ``enum_cls`` or return ``default``."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(to_str(value))  # type: ignore[call-arg]
    except ValueError:
        return default


def copy_bag(value: Any) -> dict[str, Any]:
    """Deep-copy a dict passthrough bag; anything else becomes ``{}``."""
    return copy.deepcopy(value) if isinstance(value, dict) else {}


def _first_present(primary: Mapping[str, Any], secondary: Mapping[str, Any], key: str) -> Any:
    value = primary.get(key)
    return secondary.get(key) if value is None else value


def _number_or_none(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return to_int(value)


# ---------------------------------------------------------------------------
# Sub-entity normalizers
# ---------------------------------------------------------------------------


def _normalize_entry_id(obj: Mapping[str, Any]) -> int | float | str | None:
    raw_id = obj.get("id")
    if raw_id is None:
        return None
    number = to_number(raw_id)
    if number is not None:
        return plain_number(number)
    return to_str(raw_id)


def normalize_worldbook_entry(raw: Any) -> WorldbookEntry:
    """Normalize one worldbook entry.

    Unknown fields are dropped; unknown external extension keys belong in
    ``raw_extensions``, which is kept verbatim (an empty bag becomes
    ``None``).
    """
    obj = as_mapping(raw)
    position = enum_or(WorldbookPosition, obj.get("position"), WorldbookPosition.AFTER_CHAR)

    at_depth: AtDepth | None = None
    if position.is_at_depth:
        depth = to_int(as_mapping(obj.get("at_depth")).get("depth"))
        if depth is not None:
            at_depth = AtDepth(depth=max(0, depth))

    order_raw = to_number(obj.get("order"))
    order = 100 if order_raw is None else plain_number(max(0, order_raw))

    light = Light.GREEN if to_str(obj.get("light")) == Light.GREEN.value else Light.BLUE
    raw_extensions = copy_bag(obj.get("raw_extensions")) or None

    return WorldbookEntry(
        id=_normalize_entry_id(obj),
        enabled=to_bool(obj.get("enabled"), True),
        light=light,
        keys=to_str_list(obj.get("keys")),
        secondary_keys=to_str_list(obj.get("secondary_keys")),
        secondary_logic=enum_or(SecondaryLogic, obj.get("secondary_logic"), SecondaryLogic.AND_ANY),
        comment=to_str(obj.get("comment")),
        content=to_str(obj.get("content")),
        position=position,
        at_depth=at_depth,
        order=order,
        use_regex=to_bool(obj.get("use_regex"), True),
        raw_extensions=raw_extensions,
    )


def normalize_regex_script(raw: Any) -> RegexScript:
    """Normalize one regex script.

    ``options`` fields may also appear at the top level of the script,
    and the legacy ``phase`` field (``display``/``prompt``/``both``) is
    honoured when neither ``markdownOnly`` nor ``promptOnly`` is given.
    """
    obj = as_mapping(raw)

    placement_values = obj.get("placement")
    placement: tuple[int, ...] = ()
    if isinstance(placement_values, (list, tuple)):
        numbers = (to_number(p) for p in placement_values)
        placement = tuple(int(n) for n in numbers if n is not None)

    find_obj = as_mapping(obj.get("find"))
    find = RegexFind(
        pattern=to_str(find_obj.get("pattern")),
        flags=to_str(find_obj.get("flags")),
        style=enum_or(FindStyle, find_obj.get("style"), FindStyle.RAW),
    )

    if "markdownOnly" in obj or "promptOnly" in obj:
        markdown_only = to_bool(obj.get("markdownOnly"), False)
        prompt_only = to_bool(obj.get("promptOnly"), False)
    else:
        phase = to_str(obj.get("phase"))
        markdown_only = phase == "display"
        prompt_only = phase == "prompt"

    options_obj = as_mapping(obj.get("options"))
    substitute = _number_or_none(_first_present(options_obj, obj, "substituteRegex"))
    options = RegexOptions(
        run_on_edit=to_bool(_first_present(options_obj, obj, "runOnEdit"), False),
        substitute_regex=0 if substitute is None else substitute,
        min_depth=_number_or_none(_first_present(options_obj, obj, "minDepth")),
        max_depth=_number_or_none(_first_present(options_obj, obj, "maxDepth")),
    )

    return RegexScript(
        id=to_str(obj.get("id")),
        name=to_str(obj.get("name")),
        enabled=to_bool(obj.get("enabled"), True),
        placement=placement,
        find=find,
        replace=to_str(obj.get("replace")),
        trim_strings=to_str_list(obj.get("trimStrings")),
        markdown_only=markdown_only,
        prompt_only=prompt_only,
        options=options,
    )


def normalize_helper_script(raw: Any) -> HelperScript:
    """Normalize one tavern-helper script.  ``type`` is forced to ``"script"``."""
    obj = as_mapping(raw)
    button_obj = as_mapping(obj.get("button"))
    buttons = button_obj.get("buttons")
    return HelperScript(
        id=to_str(obj.get("id")),
        name=to_str(obj.get("name")),
        type="script",
        info=to_str(obj.get("info")),
        enabled=to_bool(obj.get("enabled"), True),
        content=to_str(obj.get("content")),
        button=ScriptButton(
            enabled=to_bool(button_obj.get("enabled"), True),
            buttons=tuple(copy.deepcopy(buttons)) if isinstance(buttons, list) else (),
        ),
        data=copy_bag(obj.get("data")),
    )


def normalize_tavern_helper_pack(raw: Any) -> TavernHelperPack:
    """Normalize the tavern-helper pack; scripts with no identity or body are dropped."""
    obj = as_mapping(raw)
    scripts_raw = obj.get("scripts")
    scripts = tuple(
        script
        for script in (
            normalize_helper_script(s) for s in (scripts_raw if isinstance(scripts_raw, list) else [])
        )
        if script.id or script.name or script.content or script.info
    )
    return TavernHelperPack(scripts=scripts, variables=copy_bag(obj.get("variables")))


def normalize_next_action(raw: Any) -> NextAction | None:
    if not isinstance(raw, dict):
        return None
    return NextAction(
        type=enum_or(NextActionType, raw.get("type"), NextActionType.ASK_USER),
        text=to_str(raw.get("text")),
    )


def normalize_progress(raw: Any) -> Progress:
    """Normalize ``meta.progress``.

    Only ``stepIndex`` and ``stepName`` are required; when either is
    missing the default "Initialize" progress is returned.  The full
    checklist written by the linter is kept when present.
    """
    obj = as_mapping(raw)
    step_index = to_int(obj.get("stepIndex"))
    step_name = to_str(obj.get("stepName"))
    if step_index is None or not step_name:
        return Progress()

    steps_raw = obj.get("steps")
    steps: list[ProgressStep] = []
    for idx, item in enumerate(steps_raw if isinstance(steps_raw, list) else []):
        step = as_mapping(item)
        steps.append(
            ProgressStep(
                index=to_int(step.get("index")) or idx + 1,
                name=to_str(step.get("name")),
                status=enum_or(TaskStatus, step.get("status"), TaskStatus.TODO),
                done_criteria=to_str_list(step.get("doneCriteria")),
                blockers=to_str_list(step.get("blockers")),
                next_action=normalize_next_action(step.get("nextAction")) or NextAction(),
            )
        )

    return Progress(
        step_index=max(1, step_index),
        step_name=step_name,
        total_steps=to_int(obj.get("totalSteps")),
        steps=tuple(steps),
        next_action=normalize_next_action(obj.get("nextAction")),
    )


# ---------------------------------------------------------------------------
# Draft root
# ---------------------------------------------------------------------------


def create_empty_card_draft(now: str | None = None) -> CardDraft:
    """Return an empty Draft stamped with ``now`` (default: current time)."""
    return CardDraft(meta=DraftMeta(updated_at=now or now_iso()))


def normalize_card_draft(raw: Any, now: str | None = None) -> CardDraft:
    """Normalize any value into a ``CardDraft``.

    Parameters
    ----------
    raw:
        A dict in the JSON shape of a Draft, an existing ``CardDraft``
        (re-normalized through its dict form), or anything else (which
        yields an empty Draft).
    now:
        Timestamp used when the input carries no ``meta.updatedAt``.

    Returns
    -------
    CardDraft
        A fresh Draft whose worldbook entry ids are unique non-negative
        integers.
    """
    if isinstance(raw, CardDraft):
        from carddraft.model.serializer import draft_to_dict

        raw = draft_to_dict(raw)

    obj = as_mapping(raw)
    meta_obj = as_mapping(obj.get("meta"))
    card_obj = as_mapping(obj.get("card"))
    worldbook_obj = as_mapping(obj.get("worldbook"))
    validation_obj = as_mapping(obj.get("validation"))
    raw_obj = as_mapping(obj.get("raw"))

    meta = DraftMeta(
        spec=to_str(meta_obj.get("spec")) or "chara_card_v3",
        spec_version=to_str(meta_obj.get("spec_version")) or "3.0",
        updated_at=to_str(meta_obj.get("updatedAt")) or now or now_iso(),
        progress=normalize_progress(meta_obj.get("progress")),
    )

    text_fields = {key: to_str(card_obj.get(key)) for key in CARD_TEXT_FIELDS}
    card = CardFields(
        **text_fields,
        alternate_greetings=to_str_list(card_obj.get("alternate_greetings")),
        tags=to_str_list(card_obj.get("tags")),
    )

    entries_raw = worldbook_obj.get("entries")
    entries = [normalize_worldbook_entry(e) for e in (entries_raw if isinstance(entries_raw, list) else [])]
    worldbook = Worldbook(
        name=to_str(worldbook_obj.get("name")),
        entries=ensure_worldbook_entry_ids(entries).entries,
    )

    scripts_raw = obj.get("regex_scripts")
    regex_scripts = tuple(
        normalize_regex_script(s) for s in (scripts_raw if isinstance(scripts_raw, list) else [])
    )

    return CardDraft(
        meta=meta,
        card=card,
        worldbook=worldbook,
        regex_scripts=regex_scripts,
        tavern_helper=normalize_tavern_helper_pack(obj.get("tavern_helper")),
        validation=Validation(
            errors=to_str_list(validation_obj.get("errors")),
            warnings=to_str_list(validation_obj.get("warnings")),
        ),
        raw=RawBag(data_extensions=copy_bag(raw_obj.get("dataExtensions"))),
    )
