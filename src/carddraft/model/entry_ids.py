"""Worldbook entry id allocation and repair.

Entry ids must be unique non-negative integers.  External cards and
hand-edited drafts routinely break that (missing ids, duplicates,
strings, negative numbers), so ids are repaired deterministically in
list order: the first entry holding a valid id keeps it, every other
entry receives the next free id above the current maximum.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Mapping, Sequence, Union

from carddraft.model.nodes import WorldbookEntry

EntryLike = Union[WorldbookEntry, Mapping[str, Any]]


@dataclass(frozen=True)
class IdRepair:
    """Result of ``ensure_worldbook_entry_ids``.

    Parameters
    ----------
    changed:
        True when at least one id was replaced or re-typed.
    entries:
        The entries in their original order, with repaired ids.
    """

    changed: bool
    entries: tuple[Any, ...]


def to_non_negative_int(value: Any) -> int | None:
    """Parse ``value`` as a non-negative integer id, truncating fractions."""
    from carddraft.model.normalize import to_number

    number = to_number(value)
    if number is None:
        return None
    as_int = int(number)
    return as_int if as_int >= 0 else None


def _entry_id(entry: EntryLike) -> Any:
    if isinstance(entry, WorldbookEntry):
        return entry.id
    if isinstance(entry, Mapping):
        return entry.get("id")
    return None


def _with_id(entry: EntryLike, new_id: int) -> Any:
    if isinstance(entry, WorldbookEntry):
        return dataclasses.replace(entry, id=new_id)
    if isinstance(entry, Mapping):
        return {**entry, "id": new_id}
    return {"id": new_id}


def compute_next_worldbook_entry_id(entries: Sequence[EntryLike]) -> int:
    """Return one more than the largest valid id, or 0 when there is none."""
    max_id = -1
    for entry in entries:
        entry_id = to_non_negative_int(_entry_id(entry))
        if entry_id is not None:
            max_id = max(max_id, entry_id)
    return max_id + 1


def ensure_worldbook_entry_ids(entries: Sequence[EntryLike]) -> IdRepair:
    """Repair entry ids so they are unique non-negative integers.

    Parameters
    ----------
    entries:
        ``WorldbookEntry`` nodes or raw entry dicts.

    Returns
    -------
    IdRepair
        Entries whose id was already a unique ``int`` are returned
        unchanged (same object); others are copied with a new id.
    """
    used: set[int] = set()
    max_id = compute_next_worldbook_entry_id(entries) - 1
    changed = False
    out: list[Any] = []

    for entry in entries:
        original = _entry_id(entry)
        entry_id = to_non_negative_int(original)

        if entry_id is None or entry_id in used:
            entry_id = max_id + 1
            while entry_id in used:
                entry_id += 1
            max_id = max(max_id, entry_id)
            changed = True
        elif type(original) is not int:
            changed = True

        used.add(entry_id)
        if type(original) is int and original == entry_id:
            out.append(entry)
        else:
            out.append(_with_id(entry, entry_id))

    return IdRepair(changed=changed, entries=tuple(out))
