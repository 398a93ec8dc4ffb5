"""Lookup tables between Draft enums and external integer codes.

Two small bidirectional tables:

* worldbook position: the 10-way ``WorldbookPosition`` enum maps to an
  external ``(position, role)`` pair, where ``role`` is only meaningful
  for the depth-injected slot (external position ``4``);
* secondary logic: the 4-way ``SecondaryLogic`` enum maps to the
  external ``selectiveLogic`` integer.

Unknown codes fall back to ``after_char`` and ``and_any`` respectively.
"""
from __future__ import annotations

from typing import Any

from carddraft.model.nodes import SecondaryLogic, WorldbookPosition
from carddraft.model.normalize import to_number

AT_DEPTH_CODE = 4

_POSITION_TO_EXTERNAL: dict[WorldbookPosition, tuple[int, int | None]] = {
    WorldbookPosition.BEFORE_CHAR: (0, None),
    WorldbookPosition.AFTER_CHAR: (1, None),
    WorldbookPosition.BEFORE_AUTHOR_NOTE: (2, None),
    WorldbookPosition.AFTER_AUTHOR_NOTE: (3, None),
    WorldbookPosition.AT_DEPTH_SYSTEM: (AT_DEPTH_CODE, 0),
    WorldbookPosition.AT_DEPTH_USER: (AT_DEPTH_CODE, 1),
    WorldbookPosition.AT_DEPTH_ASSISTANT: (AT_DEPTH_CODE, 2),
    WorldbookPosition.BEFORE_EXAMPLE_MESSAGES: (5, None),
    WorldbookPosition.AFTER_EXAMPLE_MESSAGES: (6, None),
    WorldbookPosition.OUTLET: (7, None),
}

_EXTERNAL_TO_POSITION: dict[int, WorldbookPosition] = {
    code: position for position, (code, role) in _POSITION_TO_EXTERNAL.items() if role is None
}

_ROLE_TO_AT_DEPTH: dict[int, WorldbookPosition] = {
    role: position
    for position, (code, role) in _POSITION_TO_EXTERNAL.items()
    if role is not None
}

SECONDARY_LOGIC_TO_CODE: dict[SecondaryLogic, int] = {
    SecondaryLogic.AND_ANY: 0,
    SecondaryLogic.NOT_ALL: 1,
    SecondaryLogic.NOT_ANY: 2,
    SecondaryLogic.AND_ALL: 3,
}

CODE_TO_SECONDARY_LOGIC: dict[int, SecondaryLogic] = {
    code: logic for logic, code in SECONDARY_LOGIC_TO_CODE.items()
}


def position_to_external(position: WorldbookPosition) -> tuple[int, int | None]:
    """Map a position to its external ``(position, role)`` pair."""
    return _POSITION_TO_EXTERNAL.get(position, (1, None))


def position_from_external(position: Any, role: Any = None) -> WorldbookPosition:
    """Map an external ``(position, role)`` pair back to a ``WorldbookPosition``.

    Parameters
    ----------
    position:
        External position code; anything non-numeric or unknown yields
        ``after_char``.
    role:
        Consulted only when ``position`` is the depth slot; unknown roles
        default to ``at_depth_user``.
    """
    code = to_number(position)
    if code is None or code != int(code):
        return WorldbookPosition.AFTER_CHAR
    code = int(code)
    if code != AT_DEPTH_CODE:
        return _EXTERNAL_TO_POSITION.get(code, WorldbookPosition.AFTER_CHAR)
    role_code = to_number(role)
    if role_code is None or role_code != int(role_code):
        return WorldbookPosition.AT_DEPTH_USER
    return _ROLE_TO_AT_DEPTH.get(int(role_code), WorldbookPosition.AT_DEPTH_USER)


def secondary_logic_to_code(logic: SecondaryLogic) -> int:
    """Map secondary logic to the external ``selectiveLogic`` integer."""
    return SECONDARY_LOGIC_TO_CODE.get(logic, 0)


def secondary_logic_from_code(code: Any) -> SecondaryLogic:
    """Map an external ``selectiveLogic`` value back; unknown values give ``and_any``."""
    number = to_number(code)
    if number is None or number != int(number):
        return SecondaryLogic.AND_ANY
    return CODE_TO_SECONDARY_LOGIC.get(int(number), SecondaryLogic.AND_ANY)
