"""Draft serialization to and from plain dicts, JSON and YAML.

The dict form is the wire shape of a Draft (camelCase keys such as
``updatedAt``, ``dataExtensions`` and ``trimStrings`` are kept as the
external tools spell them).  Deserialization always goes through
``normalize_card_draft``, so any dict, however malformed, yields a
valid ``CardDraft``.

Usage
-----
::

    from carddraft.model.serializer import DraftSerializer

    serializer = DraftSerializer()
    data = serializer.to_dict(draft)
    text = serializer.to_json(draft)
    draft2 = serializer.from_json(text)
    assert draft == draft2
"""
from __future__ import annotations

import copy
import json
from typing import Any

import yaml

from carddraft.model.nodes import (
    CARD_TEXT_FIELDS,
    CardDraft,
    CardFields,
    DraftMeta,
    HelperScript,
    NextAction,
    Progress,
    ProgressStep,
    RegexScript,
    TavernHelperPack,
    Worldbook,
    WorldbookEntry,
)


def entry_to_dict(entry: WorldbookEntry) -> dict[str, Any]:
    """Serialize a worldbook entry; ``at_depth``/``raw_extensions`` only when present."""
    out: dict[str, Any] = {
        "id": entry.id,
        "enabled": entry.enabled,
        "light": entry.light.value,
        "keys": list(entry.keys),
        "secondary_keys": list(entry.secondary_keys),
        "secondary_logic": entry.secondary_logic.value,
        "comment": entry.comment,
        "content": entry.content,
        "position": entry.position.value,
        "order": entry.order,
        "use_regex": entry.use_regex,
    }
    if entry.at_depth is not None:
        out["at_depth"] = {"depth": entry.at_depth.depth}
    if entry.raw_extensions:
        out["raw_extensions"] = copy.deepcopy(entry.raw_extensions)
    return out


def regex_script_to_dict(script: RegexScript) -> dict[str, Any]:
    return {
        "id": script.id,
        "name": script.name,
        "enabled": script.enabled,
        "placement": list(script.placement),
        "find": {
            "pattern": script.find.pattern,
            "flags": script.find.flags,
            "style": script.find.style.value,
        },
        "replace": script.replace,
        "trimStrings": list(script.trim_strings),
        "markdownOnly": script.markdown_only,
        "promptOnly": script.prompt_only,
        "options": {
            "runOnEdit": script.options.run_on_edit,
            "substituteRegex": script.options.substitute_regex,
            "minDepth": script.options.min_depth,
            "maxDepth": script.options.max_depth,
        },
    }


def helper_script_to_dict(script: HelperScript) -> dict[str, Any]:
    return {
        "id": script.id,
        "name": script.name,
        "type": script.type,
        "info": script.info,
        "enabled": script.enabled,
        "content": script.content,
        "button": {
            "enabled": script.button.enabled,
            "buttons": copy.deepcopy(list(script.button.buttons)),
        },
        "data": copy.deepcopy(script.data),
    }


def tavern_helper_to_dict(pack: TavernHelperPack) -> dict[str, Any]:
    return {
        "scripts": [helper_script_to_dict(s) for s in pack.scripts],
        "variables": copy.deepcopy(pack.variables),
    }


def worldbook_to_dict(worldbook: Worldbook) -> dict[str, Any]:
    return {"name": worldbook.name, "entries": [entry_to_dict(e) for e in worldbook.entries]}


def card_to_dict(card: CardFields) -> dict[str, Any]:
    out: dict[str, Any] = {key: getattr(card, key) for key in CARD_TEXT_FIELDS}
    out["alternate_greetings"] = list(card.alternate_greetings)
    out["tags"] = list(card.tags)
    return out


def next_action_to_dict(action: NextAction) -> dict[str, Any]:
    return {"type": action.type.value, "text": action.text}


def _step_to_dict(step: ProgressStep) -> dict[str, Any]:
    return {
        "index": step.index,
        "name": step.name,
        "status": step.status.value,
        "doneCriteria": list(step.done_criteria),
        "blockers": list(step.blockers),
        "nextAction": next_action_to_dict(step.next_action),
    }


def progress_to_dict(progress: Progress) -> dict[str, Any]:
    out: dict[str, Any] = {"stepIndex": progress.step_index, "stepName": progress.step_name}
    if progress.total_steps is not None:
        out["totalSteps"] = progress.total_steps
        out["steps"] = [_step_to_dict(s) for s in progress.steps]
    if progress.next_action is not None:
        out["nextAction"] = next_action_to_dict(progress.next_action)
    return out


def meta_to_dict(meta: DraftMeta) -> dict[str, Any]:
    return {
        "spec": meta.spec,
        "spec_version": meta.spec_version,
        "updatedAt": meta.updated_at,
        "progress": progress_to_dict(meta.progress),
    }


def draft_to_dict(draft: CardDraft) -> dict[str, Any]:
    """Serialize a ``CardDraft`` to a freshly allocated JSON-compatible dict."""
    return {
        "meta": meta_to_dict(draft.meta),
        "card": card_to_dict(draft.card),
        "worldbook": worldbook_to_dict(draft.worldbook),
        "regex_scripts": [regex_script_to_dict(s) for s in draft.regex_scripts],
        "tavern_helper": tavern_helper_to_dict(draft.tavern_helper),
        "validation": {
            "errors": list(draft.validation.errors),
            "warnings": list(draft.validation.warnings),
        },
        "raw": {"dataExtensions": copy.deepcopy(draft.raw.data_extensions)},
    }


class DraftSerializer:
    """Converts between ``CardDraft`` objects and dict / JSON / YAML text."""

    def to_dict(self, draft: CardDraft) -> dict[str, Any]:
        """Serialize ``draft`` to a JSON-compatible dict."""
        return draft_to_dict(draft)

    def from_dict(self, data: Any) -> CardDraft:
        """Normalize ``data`` into a ``CardDraft``."""
        from carddraft.model.normalize import normalize_card_draft

        return normalize_card_draft(data)

    def to_json(self, draft: CardDraft, indent: int | None = 2) -> str:
        """Serialize ``draft`` to JSON text (non-ASCII characters kept as-is)."""
        return json.dumps(self.to_dict(draft), indent=indent, ensure_ascii=False)

    def from_json(self, text: str) -> CardDraft:
        """Parse JSON text into a ``CardDraft``.

        Raises
        ------
        json.JSONDecodeError
            If ``text`` is not valid JSON.
        """
        return self.from_dict(json.loads(text))

    def to_yaml(self, draft: CardDraft) -> str:
        """Serialize ``draft`` to YAML text."""
        return yaml.safe_dump(self.to_dict(draft), sort_keys=False, allow_unicode=True)

    def from_yaml(self, text: str) -> CardDraft:
        """Parse YAML text into a ``CardDraft``."""
        return self.from_dict(yaml.safe_load(text))
