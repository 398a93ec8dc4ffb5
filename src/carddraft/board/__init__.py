"""Board transcript module.

Exports the board builder/parser pair and the control-message helpers.
"""
from __future__ import annotations

from carddraft.board.board import (
    JSON_FENCE,
    UNINITIALIZED,
    VCARD_DRAFT_JSON_END,
    VCARD_DRAFT_JSON_START,
    BoardParseResult,
    build_draft_board_markdown,
    build_initial_draft_board_message,
    escape_board_payload,
    parse_draft_from_board_markdown,
)
from carddraft.board.control import (
    VCARD_CONTROL_PREFIX,
    ControlIntent,
    build_control_text,
    is_control_message_text,
)

__all__ = [
    "VCARD_DRAFT_JSON_START",
    "VCARD_DRAFT_JSON_END",
    "JSON_FENCE",
    "UNINITIALIZED",
    "BoardParseResult",
    "build_draft_board_markdown",
    "build_initial_draft_board_message",
    "escape_board_payload",
    "parse_draft_from_board_markdown",
    "VCARD_CONTROL_PREFIX",
    "ControlIntent",
    "build_control_text",
    "is_control_message_text",
]
