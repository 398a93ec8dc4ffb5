"""Format codec module.

Exports the chara_card_v3 import/export pair, the position and
secondary-logic code tables, and the regex find helpers.
"""
from __future__ import annotations

from carddraft.codec.chara_card import (
    ExportMode,
    card_draft_to_chara_card_v3,
    chara_card_to_card_draft,
)
from carddraft.codec.positions import (
    position_from_external,
    position_to_external,
    secondary_logic_from_code,
    secondary_logic_to_code,
)
from carddraft.codec.regex import (
    CompileCheck,
    ResolvedFind,
    build_find_regex_string,
    resolve_find_regex,
    try_compile_regex,
)

__all__ = [
    "ExportMode",
    "card_draft_to_chara_card_v3",
    "chara_card_to_card_draft",
    "position_to_external",
    "position_from_external",
    "secondary_logic_to_code",
    "secondary_logic_from_code",
    "ResolvedFind",
    "CompileCheck",
    "resolve_find_regex",
    "build_find_regex_string",
    "try_compile_regex",
]
