"""Unit tests for carddraft.model.normalize and carddraft.model.serializer."""
from __future__ import annotations

from typing import Any

import pytest

from carddraft.model import (
    CardDraft,
    DraftSerializer,
    FindStyle,
    Light,
    SecondaryLogic,
    WorldbookPosition,
    compute_next_worldbook_entry_id,
    create_empty_card_draft,
    ensure_worldbook_entry_ids,
    draft_to_dict,
    normalize_card_draft,
    normalize_regex_script,
    normalize_tavern_helper_pack,
    normalize_worldbook_entry,
)
from carddraft.model.normalize import (
    normalize_progress,
    to_bool,
    to_int,
    to_number,
    to_str,
    to_str_list,
)

from conftest import FIXED_NOW, make_draft_dict


# ===========================================================================
# Coercion helpers
# ===========================================================================


class TestCoercion:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(None, ""), ("x", "x"), (True, "true"), (3.0, "3"), (2.5, "2.5"), (7, "7")],
    )
    def test_to_str(self, value: Any, expected: str) -> None:
        assert to_str(value) == expected

    def test_to_str_list_drops_blanks(self) -> None:
        assert to_str_list([" a ", "", None, 3]) == ("a", "3")

    def test_to_str_list_non_list(self) -> None:
        assert to_str_list("a,b") == ()

    @pytest.mark.parametrize(
        ("value", "fallback", "expected"),
        [(True, False, True), (1, False, True), ("0", True, False), ("yes", True, True), (None, False, False)],
    )
    def test_to_bool(self, value: Any, fallback: bool, expected: bool) -> None:
        assert to_bool(value, fallback) is expected

    def test_to_number_rejects_bool_and_blank(self) -> None:
        assert to_number(True) is None
        assert to_number("  ") is None
        assert to_number(float("nan")) is None

    def test_to_number_parses_strings(self) -> None:
        assert to_number("12") == 12
        assert to_number("1.5") == 1.5

    def test_to_int_truncates(self) -> None:
        assert to_int("3.9") == 3
        assert to_int(-2.5) == -2


# ===========================================================================
# Worldbook entries
# ===========================================================================


class TestNormalizeWorldbookEntry:
    def test_defaults_from_garbage(self) -> None:
        entry = normalize_worldbook_entry("not an entry")
        assert entry.id is None
        assert entry.enabled is True
        assert entry.light is Light.BLUE
        assert entry.position is WorldbookPosition.AFTER_CHAR
        assert entry.order == 100
        assert entry.use_regex is True
        assert entry.raw_extensions is None

    def test_negative_order_clamped(self) -> None:
        assert normalize_worldbook_entry({"order": -5}).order == 0

    def test_unknown_position_falls_back(self) -> None:
        entry = normalize_worldbook_entry({"position": "somewhere"})
        assert entry.position is WorldbookPosition.AFTER_CHAR

    def test_at_depth_kept_only_for_depth_positions(self) -> None:
        deep = normalize_worldbook_entry({"position": "at_depth_user", "at_depth": {"depth": "3"}})
        flat = normalize_worldbook_entry({"position": "before_char", "at_depth": {"depth": 3}})
        assert deep.at_depth is not None and deep.at_depth.depth == 3
        assert flat.at_depth is None

    def test_secondary_logic_enum(self) -> None:
        entry = normalize_worldbook_entry({"secondary_logic": "not_any"})
        assert entry.secondary_logic is SecondaryLogic.NOT_ANY

    def test_raw_extensions_copied(self) -> None:
        bag = {"probability": 80}
        entry = normalize_worldbook_entry({"raw_extensions": bag})
        bag["probability"] = 10
        assert entry.raw_extensions == {"probability": 80}


# ===========================================================================
# Regex scripts / tavern helper
# ===========================================================================


class TestNormalizeRegexScript:
    def test_find_defaults_to_raw(self) -> None:
        script = normalize_regex_script({"find": {"pattern": "abc"}})
        assert script.find.style is FindStyle.RAW
        assert script.find.pattern == "abc"

    def test_placement_keeps_numbers_only(self) -> None:
        script = normalize_regex_script({"placement": [1, "2", "x", None]})
        assert script.placement == (1, 2)

    def test_legacy_phase(self) -> None:
        assert normalize_regex_script({"phase": "display"}).markdown_only is True
        assert normalize_regex_script({"phase": "prompt"}).prompt_only is True

    def test_explicit_flags_override_phase(self) -> None:
        script = normalize_regex_script({"phase": "display", "promptOnly": True})
        assert script.markdown_only is False
        assert script.prompt_only is True

    def test_options_read_from_top_level(self) -> None:
        script = normalize_regex_script({"minDepth": "2", "runOnEdit": 1})
        assert script.options.min_depth == 2
        assert script.options.run_on_edit is True
        assert script.options.max_depth is None


class TestNormalizeTavernHelper:
    def test_empty_scripts_dropped(self) -> None:
        pack = normalize_tavern_helper_pack({"scripts": [{}, {"name": "Dice"}]})
        assert [s.name for s in pack.scripts] == ["Dice"]

    def test_type_forced(self) -> None:
        pack = normalize_tavern_helper_pack({"scripts": [{"name": "x", "type": "other"}]})
        assert pack.scripts[0].type == "script"

    def test_variables_passthrough(self) -> None:
        pack = normalize_tavern_helper_pack({"variables": {"hp": 10}})
        assert pack.variables == {"hp": 10}


# ===========================================================================
# Progress
# ===========================================================================


class TestNormalizeProgress:
    def test_missing_fields_give_default(self) -> None:
        progress = normalize_progress({"stepIndex": 2})
        assert progress.step_index == 1
        assert progress.step_name == "Initialize"

    def test_step_index_clamped(self) -> None:
        progress = normalize_progress({"stepIndex": 0, "stepName": "x"})
        assert progress.step_index == 1


# ===========================================================================
# Draft root
# ===========================================================================


class TestNormalizeCardDraft:
    def test_empty_input(self) -> None:
        draft = normalize_card_draft(None, now=FIXED_NOW)
        assert isinstance(draft, CardDraft)
        assert draft.meta.updated_at == FIXED_NOW
        assert draft.meta.spec == "chara_card_v3"
        assert draft.regex_scripts == ()

    def test_create_empty(self) -> None:
        draft = create_empty_card_draft(now=FIXED_NOW)
        assert draft.meta.updated_at == FIXED_NOW
        assert draft.card.name == ""

    def test_entry_ids_repaired(self) -> None:
        draft = normalize_card_draft({"worldbook": {"entries": [{"id": 3}, {"id": 3}, {}]}})
        assert [e.id for e in draft.worldbook.entries] == [3, 4, 5]

    def test_card_draft_input_renormalized(self, draft: CardDraft) -> None:
        assert normalize_card_draft(draft) == draft

    def test_vibe_plan_raw(self) -> None:
        draft = normalize_card_draft({"raw": {"dataExtensions": {"vibePlan": {"tasks": []}}}})
        assert draft.vibe_plan_raw == {"tasks": []}

    def test_does_not_share_bags_with_input(self) -> None:
        data = make_draft_dict()
        draft = normalize_card_draft(data)
        data["raw"]["dataExtensions"]["custom"]["a"] = 2
        assert draft.raw.data_extensions["custom"] == {"a": 1}


# ===========================================================================
# Serializer
# ===========================================================================


class TestSerializer:
    def test_wire_keys(self, draft: CardDraft) -> None:
        data = draft_to_dict(draft)
        assert data["meta"]["updatedAt"] == FIXED_NOW
        assert "trimStrings" in data["regex_scripts"][0]
        assert data["raw"]["dataExtensions"] == {"custom": {"a": 1}}

    def test_at_depth_written_only_for_depth_positions(self, draft: CardDraft) -> None:
        entries = draft_to_dict(draft)["worldbook"]["entries"]
        assert "at_depth" not in entries[0]
        assert entries[1]["at_depth"] == {"depth": 2}

    def test_json_round_trip(self, draft: CardDraft) -> None:
        serializer = DraftSerializer()
        assert serializer.from_json(serializer.to_json(draft)) == draft

    def test_yaml_round_trip(self, draft: CardDraft) -> None:
        serializer = DraftSerializer()
        assert serializer.from_yaml(serializer.to_yaml(draft)) == draft


# ===========================================================================
# Entry ids
# ===========================================================================


class TestEntryIds:
    def test_string_and_missing_ids(self) -> None:
        repair = ensure_worldbook_entry_ids([{"id": "3"}, {"id": 3}, {}])
        assert repair.changed is True
        assert [e["id"] for e in repair.entries] == [3, 4, 5]

    def test_valid_ids_untouched(self) -> None:
        entries = [{"id": 0}, {"id": 7}]
        repair = ensure_worldbook_entry_ids(entries)
        assert repair.changed is False
        assert repair.entries[0] is entries[0]
        assert repair.entries[1] is entries[1]

    def test_negative_id_replaced(self) -> None:
        repair = ensure_worldbook_entry_ids([{"id": -1}, {"id": 2}])
        assert [e["id"] for e in repair.entries] == [3, 2]

    def test_next_id(self) -> None:
        assert compute_next_worldbook_entry_id([]) == 0
        assert compute_next_worldbook_entry_id([{"id": 4}, {"id": "x"}]) == 5
