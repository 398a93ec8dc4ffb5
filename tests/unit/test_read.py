"""Unit tests for carddraft.read (paths, resolution and protocol envelopes)."""
from __future__ import annotations

import dataclasses
from typing import Any

import pytest

from carddraft.errors import PathResolutionError
from carddraft.model import CardDraft, RawBag
from carddraft.read import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    VCARD_READ_PREFIX,
    VCARD_READ_RESULT_PREFIX,
    ReadRequest,
    build_read_item,
    build_read_request_text,
    build_read_result,
    build_read_result_text,
    build_readable_snapshot,
    is_read_display_message_text,
    normalize_path_segment,
    normalize_read_request,
    parse_dot_path,
    parse_file_path,
    parse_index_segment,
    parse_read_display_message,
    pick_root_name,
    read_index_text,
    resolve_file_content,
)

from conftest import make_draft_dict, make_plan


def _read(draft: Any, path: str, **window: Any) -> dict[str, Any]:
    return build_read_result(draft, [{"path": path, **window}])["items"][0]


# ===========================================================================
# Path syntax
# ===========================================================================


class TestPaths:
    def test_segment_separators_replaced(self) -> None:
        assert normalize_path_segment(" a/b\\c ") == "a／b／c"

    @pytest.mark.parametrize(("segment", "expected"), [("3", 3), ("[3]", 3), ("x", None), ("-1", None)])
    def test_index_segment(self, segment: str, expected: int | None) -> None:
        assert parse_index_segment(segment) == expected

    def test_root_name(self) -> None:
        assert pick_root_name({"card": {"name": "Alice"}}) == "Alice"
        assert pick_root_name({"card": {"name": "  "}}) == "character"

    def test_file_path_root_dropped(self) -> None:
        assert parse_file_path("Alice/worldbook/Backstory", "Alice") == ("worldbook", "Backstory")
        assert parse_file_path("card\\description", "Alice") == ("description",)
        assert parse_file_path("/worldbook/", "Alice") == ("worldbook",)

    def test_file_path_empty(self) -> None:
        with pytest.raises(PathResolutionError, match="path is empty"):
            parse_file_path(" / ", "Alice")

    def test_file_path_incomplete(self) -> None:
        with pytest.raises(PathResolutionError, match="path is incomplete"):
            parse_file_path("Alice/", "Alice")

    def test_dot_path(self) -> None:
        segments = parse_dot_path("worldbook.entries[1].content")
        assert [(s.key, s.index) for s in segments] == [("worldbook", None), ("entries", 1), ("content", None)]

    def test_dot_path_bad_root(self) -> None:
        with pytest.raises(PathResolutionError, match="root path not allowed: meta"):
            parse_dot_path("meta.spec")

    def test_dot_path_bad_segment(self) -> None:
        with pytest.raises(PathResolutionError, match="invalid path"):
            parse_dot_path("card.tags[0][1]")


# ===========================================================================
# Snapshot
# ===========================================================================


class TestSnapshot:
    def test_sections(self, draft: CardDraft) -> None:
        snapshot = build_readable_snapshot(draft)
        assert set(snapshot) == {"card", "worldbook", "regex_scripts", "tavern_helper", "raw"}
        assert snapshot["raw"] == {"dataExtensions": {"custom": {"a": 1}}}

    def test_vibe_plan_hidden_by_default(self) -> None:
        data = make_draft_dict(raw={"dataExtensions": {"vibePlan": make_plan({"id": "T1"})}})
        assert "vibePlan" not in build_readable_snapshot(data)["raw"]["dataExtensions"]
        assert "vibePlan" in build_readable_snapshot(data, include_vibe_plan=True)["raw"]["dataExtensions"]


# ===========================================================================
# File paths
# ===========================================================================


class TestFilePaths:
    def test_paged_string(self, draft: CardDraft) -> None:
        item = _read(draft, "Alice/worldbook/Backstory", offset=0, limit=10)
        assert item["value"] == "abcdefghij"
        assert item["totalLen"] == 20
        assert item["hasMore"] is True
        assert item["nextOffset"] == 10

    def test_last_page(self, draft: CardDraft) -> None:
        item = _read(draft, "Alice/worldbook/Backstory", offset=10, limit=10)
        assert item["value"] == "klmnopqrst"
        assert item["hasMore"] is False
        assert item["nextOffset"] is None

    def test_offset_past_end(self, draft: CardDraft) -> None:
        item = _read(draft, "Alice/worldbook/Backstory", offset=99)
        assert item["offset"] == 20
        assert item["value"] == ""

    def test_aliases(self, draft: CardDraft) -> None:
        assert _read(draft, "character/description")["value"] == "A wandering archivist."
        assert _read(draft, "card/personality")["value"] == "Curious and patient."

    def test_entry_by_index(self, draft: CardDraft) -> None:
        assert _read(draft, "Alice/worldbook/1")["value"] == "The library never closes."

    def test_entry_field(self, draft: CardDraft) -> None:
        item = _read(draft, "Alice/worldbook/Backstory/keys")
        assert item["type"] == "array"
        assert item["value"] == ["Alice"]

    def test_section_index(self, draft: CardDraft) -> None:
        item = _read(draft, "Alice/worldbook")
        assert item["value"].startswith("worldbook/")

    def test_alternate_greetings(self, draft: CardDraft) -> None:
        assert _read(draft, "Alice/alternate_greetings/[1]")["value"] == "Welcome back."
        assert _read(draft, "Alice/alternate_greetings/5")["error"] == "path index out of range: 5"

    def test_regex_script(self, draft: CardDraft) -> None:
        item = _read(draft, "Alice/regex_scripts/Emote swap")
        assert item["type"] == "object"
        assert item["value"]["replace"] == "_$1_"
        assert _read(draft, "Alice/regex_scripts/0/replace")["value"] == "_$1_"

    def test_tavern_helper(self, draft: CardDraft) -> None:
        assert _read(draft, "Alice/tavern_helper/scripts/Dice")["value"] == "roll()"
        assert _read(draft, "Alice/tavern_helper/scripts/th-1")["value"] == "roll()"
        assert _read(draft, "Alice/tavern_helper/variables/mood")["value"] == "calm"
        assert _read(draft, "Alice/tavern_helper")["value"].startswith("tavern_helper/")

    def test_name_with_slash(self) -> None:
        data = make_draft_dict()
        data["worldbook"] = {"name": "", "entries": [{"id": 0, "comment": "a/b", "content": "slashed"}]}
        assert _read(data, "Alice/worldbook/a／b")["value"] == "slashed"

    def test_unnamed_card_root(self) -> None:
        data = make_draft_dict()
        data["card"] = {**data["card"], "name": ""}
        assert _read(data, "character/scenario")["value"] == "A library at dusk."

    @pytest.mark.parametrize(
        ("path", "error"),
        [
            ("Alice/worldbook/Missing", "path does not exist: Missing"),
            ("Alice/worldbook/7", "path index out of range: 7"),
            ("Alice/nothing", "path does not exist: nothing"),
            ("Alice/", "path is incomplete."),
            ("Alice/description/more", "path is too deep: description/more"),
        ],
    )
    def test_errors(self, draft: CardDraft, path: str, error: str) -> None:
        assert _read(draft, path) == {"path": path, "error": error}

    def test_resolve_file_content(self, draft: CardDraft) -> None:
        snapshot = build_readable_snapshot(draft)
        assert resolve_file_content(snapshot, "Alice/first_mes").value == "Hello, traveler."
        missing = resolve_file_content(snapshot, "Alice/nope")
        assert not missing.ok
        assert missing.error == "path does not exist: nope"


# ===========================================================================
# Dotted paths
# ===========================================================================


class TestDotPaths:
    def test_leaf(self, draft: CardDraft) -> None:
        assert _read(draft, "card.name")["value"] == "Alice"
        assert _read(draft, "worldbook.entries[1].content")["value"] == "The library never closes."

    def test_number(self, draft: CardDraft) -> None:
        item = _read(draft, "worldbook.entries[1].order")
        assert item == {"path": "worldbook.entries[1].order", "type": "number", "value": 50}

    def test_raw_extension(self, draft: CardDraft) -> None:
        assert _read(draft, "raw.dataExtensions.custom")["value"] == {"a": 1}

    @pytest.mark.parametrize(
        ("path", "error"),
        [
            ("meta.spec", "root path not allowed: meta"),
            ("card.nickname", "path does not exist: nickname"),
            ("card.name[0]", "path expects an array: name"),
            ("worldbook.entries[9]", "path index out of range: entries[9]"),
            ("card.name.first", "path goes past a leaf: first"),
        ],
    )
    def test_errors(self, draft: CardDraft, path: str, error: str) -> None:
        assert _read(draft, path)["error"] == error

    def test_vibe_plan_gated(self) -> None:
        data = make_draft_dict(raw={"dataExtensions": {"vibePlan": make_plan({"id": "T1"})}})
        hidden = build_read_result(data, [{"path": "raw.dataExtensions.vibePlan.goal"}])
        shown = build_read_result(data, [{"path": "raw.dataExtensions.vibePlan.goal"}], include_vibe_plan=True)
        assert hidden["items"][0]["error"] == "path does not exist: vibePlan"
        assert shown["items"][0]["value"] == "Build Alice"


# ===========================================================================
# Items and batches
# ===========================================================================


class TestReadItems:
    def test_structured_too_large(self, draft: CardDraft) -> None:
        item = _read(draft, "card.tags", limit=5)
        assert item["error"] == "Value too large: read a more specific sub-path."
        assert item["approxLen"] == len('["fantasy","library"]')
        assert "value" not in item

    def test_structured_fits(self) -> None:
        item = build_read_item({"a": [1, 2]}, ReadRequest(path="x", limit=100))
        assert item == {"path": "x", "type": "object", "value": {"a": [1, 2]}}

    def test_null_and_bool_types(self) -> None:
        assert build_read_item(None, ReadRequest(path="x"))["type"] == "null"
        assert build_read_item(True, ReadRequest(path="x"))["type"] == "boolean"

    def test_batch_independence(self, draft: CardDraft) -> None:
        result = build_read_result(
            draft, [{"path": "card.name"}, {"path": "Alice/nope"}, {"path": ""}, {"path": "card.scenario"}]
        )
        items = result["items"]
        assert result["kind"] == "read.result"
        assert items[0]["value"] == "Alice"
        assert "error" in items[1]
        assert items[2] == {"path": "", "error": "read.path must not be empty."}
        assert items[3]["value"] == "A library at dusk."

    def test_unserializable_value_fails_only_its_item(self, draft: CardDraft) -> None:
        odd = dataclasses.replace(draft, raw=RawBag(data_extensions={"blob": {1, 2}}))
        items = build_read_result(odd, [{"path": "raw.dataExtensions.blob"}, {"path": "card.name"}])["items"]
        assert items[0]["path"] == "raw.dataExtensions.blob"
        assert items[0]["error"].startswith("Value is not JSON-serializable")
        assert "value" not in items[0]
        assert items[1]["value"] == "Alice"

    def test_meta_echoed(self, draft: CardDraft) -> None:
        result = build_read_result(draft, [{"path": "card.name"}], meta={"turn": 3})
        assert list(result) == ["kind", "meta", "items"]
        assert result["meta"] == {"turn": 3}

    def test_index_text(self, draft: CardDraft) -> None:
        text = read_index_text(draft)
        assert text.startswith("[VCARD: readable index]\n\nAlice/")
        assert "Backstory: enabled=true, position=before_char, len=20 chars" in text
        assert "mes_example: (empty)" in text


# ===========================================================================
# Requests and envelopes
# ===========================================================================


class TestRequests:
    def test_clamping(self) -> None:
        result = normalize_read_request(
            {"kind": "read", "reads": [{"path": " a ", "offset": -4, "limit": 99999}, {"path": "b", "limit": 0}]}
        )
        assert result.ok
        assert result.reads == (
            ReadRequest(path="a", offset=0, limit=MAX_LIMIT),
            ReadRequest(path="b", offset=0, limit=1),
        )

    def test_default_limit(self) -> None:
        result = normalize_read_request({"kind": "read", "reads": [{"path": "a", "limit": "junk"}]})
        assert result.reads[0].limit == DEFAULT_LIMIT

    @pytest.mark.parametrize(
        ("item", "error"),
        [
            ({"kind": "patch"}, "Not a read request."),
            ("read", "Not a read request."),
            ({"kind": "read", "reads": []}, "read.reads must not be empty."),
            ({"kind": "read", "reads": [{"path": "a"}] * 9}, "Too many reads in read.reads (9 > 8)."),
            ({"kind": "read", "reads": [{"path": "  "}]}, "read.path must not be empty."),
        ],
    )
    def test_rejections(self, item: Any, error: str) -> None:
        result = normalize_read_request(item)
        assert not result.ok
        assert result.error == error

    def test_request_text_round_trip(self) -> None:
        text = build_read_request_text([ReadRequest(path="Alice/description")])
        assert text.startswith(VCARD_READ_PREFIX)
        assert is_read_display_message_text(text)
        message = parse_read_display_message(text)
        assert message.ok and message.type == "request"
        assert message.data["reads"] == [{"path": "Alice/description", "offset": 0, "limit": DEFAULT_LIMIT}]

    def test_result_text_escapes(self) -> None:
        data = make_draft_dict()
        data["card"] = {**data["card"], "description": "<b>`x`</b>"}
        text = build_read_result_text(data, [{"path": "card.description"}])
        assert text.startswith(VCARD_READ_RESULT_PREFIX)
        assert "<b>" not in text
        message = parse_read_display_message(text)
        assert message.ok and message.type == "result"
        assert message.data["items"][0]["value"] == "<b>`x`</b>"

    @pytest.mark.parametrize(
        "text",
        [
            "hello",
            f"{VCARD_READ_PREFIX}\nno fence",
            f"{VCARD_READ_PREFIX}\n```json\n{{bad\n```",
            f'{VCARD_READ_PREFIX}\n```json\n{{"kind": "read.result", "items": []}}\n```',
        ],
    )
    def test_unrecognised(self, text: str) -> None:
        assert parse_read_display_message(text).ok is False
