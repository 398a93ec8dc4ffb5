"""Read-protocol envelopes: requests, bounded reads and result text.

A model asks for parts of the Draft with a ``read`` request::

    {"kind": "read", "reads": [{"path": "Alice/worldbook/Backstory", "offset": 0, "limit": 1200}]}

and receives a ``read.result`` envelope with one item per read.  String
values are returned as bounded slices with pagination metadata;
structured values are inlined only when their compact JSON fits within
the read's ``limit``.  A failing item carries an ``error`` and never
aborts the rest of the batch.

Both envelopes are embedded in the transcript behind a text prefix and
a ```` ```json ```` fence.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Mapping

from carddraft.board.board import escape_board_payload
from carddraft.errors import PathResolutionError, ProtocolParseError
from carddraft.model.normalize import to_int
from carddraft.read.paths import is_file_path
from carddraft.read.resolver import build_readable_snapshot, resolve_dot_path, resolve_file_path

VCARD_READ_PREFIX = "【VCARD_READ】"
VCARD_READ_RESULT_PREFIX = "【VCARD_READ_RESULT】"

DEFAULT_LIMIT = 1200
MAX_LIMIT = 6000
MAX_READS = 8

VALUE_TOO_LARGE = "Value too large: read a more specific sub-path."
NOT_JSON = "Value is not JSON-serializable"

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```")


@dataclass(frozen=True)
class ReadRequest:
    """One normalized read: a path plus a clamped window."""

    path: str
    offset: int = 0
    limit: int = DEFAULT_LIMIT

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "offset": self.offset, "limit": self.limit}


@dataclass(frozen=True)
class ReadRequestResult:
    ok: bool
    reads: tuple[ReadRequest, ...] = ()
    error: str | None = None


@dataclass(frozen=True)
class ReadDisplayMessage:
    """A recognised read envelope: ``type`` is ``request`` or ``result``."""

    ok: bool
    type: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


def _clamp(value: Any, low: int, high: int | None, fallback: int) -> int:
    number = to_int(value)
    if number is None:
        number = fallback
    number = max(low, number)
    return number if high is None else min(high, number)


def _normalize_one_read(raw: Any) -> ReadRequest:
    obj = raw if isinstance(raw, dict) else {}
    path = ("" if obj.get("path") is None else str(obj.get("path"))).strip()
    if not path:
        raise ProtocolParseError("read.path must not be empty.")
    return ReadRequest(
        path=path,
        offset=_clamp(obj.get("offset"), 0, None, 0),
        limit=_clamp(obj.get("limit"), 1, MAX_LIMIT, DEFAULT_LIMIT),
    )


def normalize_read_request(item: Any) -> ReadRequestResult:
    """Validate a ``read`` request object and clamp every read's window.

    Parameters
    ----------
    item:
        The decoded request, ``{"kind": "read", "reads": [...]}``.

    Returns
    -------
    ReadRequestResult
        ``ok=False`` with an ``error`` when the kind is wrong, the batch
        is empty or larger than ``MAX_READS``, or a read has no path.
    """
    if not isinstance(item, dict) or str(item.get("kind") or "") != "read":
        return ReadRequestResult(ok=False, error="Not a read request.")
    raw_reads = item.get("reads") if isinstance(item.get("reads"), list) else []
    if not raw_reads:
        return ReadRequestResult(ok=False, error="read.reads must not be empty.")
    if len(raw_reads) > MAX_READS:
        return ReadRequestResult(
            ok=False, error=f"Too many reads in read.reads ({len(raw_reads)} > {MAX_READS})."
        )
    try:
        reads = tuple(_normalize_one_read(r) for r in raw_reads)
    except ProtocolParseError as exc:
        return ReadRequestResult(ok=False, error=exc.message)
    return ReadRequestResult(ok=True, reads=reads)


def json_type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    return "object"


def build_read_item(value: Any, read: ReadRequest) -> dict[str, Any]:
    """Turn a resolved value into a read-result item for ``read``."""
    if isinstance(value, str):
        offset = min(max(0, read.offset), len(value))
        limit = _clamp(read.limit, 1, MAX_LIMIT, DEFAULT_LIMIT)
        next_offset = offset + limit
        has_more = next_offset < len(value)
        return {
            "path": read.path,
            "type": "string",
            "offset": offset,
            "limit": limit,
            "totalLen": len(value),
            "hasMore": has_more,
            "nextOffset": next_offset if has_more else None,
            "value": value[offset:next_offset],
        }

    try:
        compact = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        return {"path": read.path, "type": json_type_name(value), "error": f"{NOT_JSON}: {exc}"}
    if len(compact) > read.limit:
        return {
            "path": read.path,
            "type": json_type_name(value),
            "approxLen": len(compact),
            "error": VALUE_TOO_LARGE,
        }
    return {"path": read.path, "type": json_type_name(value), "value": value}


def read_one(snapshot: Mapping[str, Any], read: ReadRequest) -> dict[str, Any]:
    """Resolve one read against ``snapshot``; failures become an error item."""
    try:
        if is_file_path(read.path):
            value = resolve_file_path(snapshot, read.path)
        else:
            value = resolve_dot_path(snapshot, read.path)
    except PathResolutionError as exc:
        return {"path": read.path, "error": exc.message}
    return build_read_item(value, read)


def _envelope(prefix: str, payload: Mapping[str, Any]) -> str:
    body = escape_board_payload(json.dumps(payload, indent=2, ensure_ascii=False))
    return "\n".join([prefix, "```json", body, "```"])


def build_read_result(
    draft: Any,
    reads: Any,
    include_vibe_plan: bool = False,
    meta: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Run a batch of reads and return the ``read.result`` payload dict.

    ``reads`` may hold ``ReadRequest`` objects or raw read dicts; raw
    dicts are clamped the same way ``normalize_read_request`` does.
    """
    snapshot = build_readable_snapshot(draft, include_vibe_plan=include_vibe_plan)
    items = []
    for raw in reads or ():
        if isinstance(raw, ReadRequest):
            read = raw
        else:
            try:
                read = _normalize_one_read(raw)
            except ProtocolParseError as exc:
                items.append({"path": "", "error": exc.message})
                continue
        items.append(read_one(snapshot, read))

    payload: dict[str, Any] = {"kind": "read.result"}
    if isinstance(meta, Mapping) and meta:
        payload["meta"] = dict(meta)
    payload["items"] = items
    return payload


def build_read_result_text(
    draft: Any,
    reads: Any,
    include_vibe_plan: bool = False,
    meta: Mapping[str, Any] | None = None,
) -> str:
    """Render the ``【VCARD_READ_RESULT】`` message for a batch of reads."""
    return _envelope(VCARD_READ_RESULT_PREFIX, build_read_result(draft, reads, include_vibe_plan, meta))


def build_read_request_text(reads: Any) -> str:
    """Render the ``【VCARD_READ】`` message for a batch of reads."""
    items = [r.to_dict() if isinstance(r, ReadRequest) else r for r in reads or ()]
    return _envelope(VCARD_READ_PREFIX, {"kind": "read", "reads": items})


def is_read_display_message_text(text: Any) -> bool:
    if not isinstance(text, str):
        return False
    stripped = text.lstrip()
    return stripped.startswith(VCARD_READ_PREFIX) or stripped.startswith(VCARD_READ_RESULT_PREFIX)


def parse_read_display_message(text: Any) -> ReadDisplayMessage:
    """Recognise a read request or read result message and decode its payload."""
    stripped = text.strip() if isinstance(text, str) else ""
    if stripped.startswith(VCARD_READ_PREFIX):
        kind, list_key, message_type = "read", "reads", "request"
    elif stripped.startswith(VCARD_READ_RESULT_PREFIX):
        kind, list_key, message_type = "read.result", "items", "result"
    else:
        return ReadDisplayMessage(ok=False)

    match = _FENCED_JSON.search(stripped)
    if match is None:
        return ReadDisplayMessage(ok=False)
    try:
        data = json.loads(match.group(1))
    except json.JSONDecodeError:
        return ReadDisplayMessage(ok=False)
    if not isinstance(data, dict) or data.get("kind") != kind or not isinstance(data.get(list_key), list):
        return ReadDisplayMessage(ok=False)
    return ReadDisplayMessage(ok=True, type=message_type, data=data)
