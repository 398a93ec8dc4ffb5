"""Draft model module.

Exports the Draft node types, the normalizers that build them from
arbitrary JSON, entry-id repair, and the serializer for converting a
Draft to and from dict/JSON/YAML.
"""
from __future__ import annotations

from carddraft.model.entry_ids import (
    IdRepair,
    compute_next_worldbook_entry_id,
    ensure_worldbook_entry_ids,
)
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
    Task,
    TaskStatus,
    TavernHelperPack,
    Validation,
    VibePlan,
    Worldbook,
    WorldbookEntry,
    WorldbookPosition,
)
from carddraft.model.normalize import (
    create_empty_card_draft,
    normalize_card_draft,
    normalize_regex_script,
    normalize_tavern_helper_pack,
    normalize_worldbook_entry,
    now_iso,
)
from carddraft.model.serializer import DraftSerializer, draft_to_dict

__all__ = [
    # Node types
    "CardDraft",
    "CardFields",
    "DraftMeta",
    "Progress",
    "ProgressStep",
    "NextAction",
    "Validation",
    "RawBag",
    "Worldbook",
    "WorldbookEntry",
    "AtDepth",
    "RegexScript",
    "RegexFind",
    "RegexOptions",
    "TavernHelperPack",
    "HelperScript",
    "ScriptButton",
    "VibePlan",
    "Task",
    "CARD_TEXT_FIELDS",
    # Enums
    "Light",
    "SecondaryLogic",
    "WorldbookPosition",
    "FindStyle",
    "TaskStatus",
    "NextActionType",
    # Normalizers
    "create_empty_card_draft",
    "normalize_card_draft",
    "normalize_worldbook_entry",
    "normalize_regex_script",
    "normalize_tavern_helper_pack",
    "now_iso",
    # Entry ids
    "IdRepair",
    "ensure_worldbook_entry_ids",
    "compute_next_worldbook_entry_id",
    # Serializer
    "DraftSerializer",
    "draft_to_dict",
]
