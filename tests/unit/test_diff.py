"""Unit tests for carddraft.diff."""
from __future__ import annotations

from typing import Any

from carddraft.diff import draft_artifact_diff
from carddraft.model import CardDraft, normalize_card_draft

from conftest import make_draft_dict


def _changed(**overrides: Any) -> CardDraft:
    return normalize_card_draft(make_draft_dict(**overrides))


class TestArtifactDiff:
    def test_identity(self, draft: CardDraft) -> None:
        result = draft_artifact_diff(draft, draft)
        assert not result.artifact_changed
        assert result.changed_paths == ()

    def test_single_leaf(self, draft: CardDraft, draft_dict: dict[str, Any]) -> None:
        draft_dict["worldbook"]["entries"][1]["content"] = "Closed for repairs."
        result = draft_artifact_diff(draft, normalize_card_draft(draft_dict))
        assert result.changed_paths == ("worldbook.entries[1].content",)
        assert result.to_dict() == {
            "artifactChanged": True,
            "changedPaths": ["worldbook.entries[1].content"],
        }

    def test_array_length_change(self, draft: CardDraft, draft_dict: dict[str, Any]) -> None:
        draft_dict["card"]["tags"] = ["fantasy"]
        result = draft_artifact_diff(draft, normalize_card_draft(draft_dict))
        assert result.changed_paths == ("card.tags",)

    def test_meta_and_raw_ignored(self, draft: CardDraft) -> None:
        other = _changed(
            meta={"updatedAt": "2030-01-01T00:00:00.000Z"},
            raw={"dataExtensions": {"vibePlan": {"tasks": [{"id": "T1"}]}}},
            validation={"errors": ["x"]},
        )
        assert not draft_artifact_diff(draft, other).artifact_changed

    def test_sorted_and_multiple(self, draft: CardDraft, draft_dict: dict[str, Any]) -> None:
        draft_dict["tavern_helper"]["variables"]["mood"] = "tense"
        draft_dict["card"]["scenario"] = "A burning library."
        result = draft_artifact_diff(draft, normalize_card_draft(draft_dict))
        assert result.changed_paths == ("card.scenario", "tavern_helper.variables.mood")

    def test_added_key(self, draft: CardDraft, draft_dict: dict[str, Any]) -> None:
        draft_dict["tavern_helper"]["variables"]["hp"] = 10
        result = draft_artifact_diff(draft, normalize_card_draft(draft_dict))
        assert result.changed_paths == ("tavern_helper.variables.hp",)

    def test_limit(self) -> None:
        before = {"worldbook": {"entries": [{"content": "a"} for _ in range(300)]}}
        after = {"worldbook": {"entries": [{"content": "b"} for _ in range(300)]}}
        result = draft_artifact_diff(before, after)
        assert len(result.changed_paths) == 200
        assert draft_artifact_diff(before, after, limit=3).changed_paths == (
            "worldbook.entries[0].content",
            "worldbook.entries[1].content",
            "worldbook.entries[2].content",
        )

    def test_bool_against_number(self) -> None:
        before = {"tavern_helper": {"variables": {"flag": 1}}}
        after = {"tavern_helper": {"variables": {"flag": True}}}
        assert draft_artifact_diff(before, after).changed_paths == ("tavern_helper.variables.flag",)

    def test_int_against_float(self) -> None:
        before = {"tavern_helper": {"variables": {"n": 1}}}
        after = {"tavern_helper": {"variables": {"n": 1.0}}}
        assert not draft_artifact_diff(before, after).artifact_changed

    def test_type_change(self) -> None:
        before = {"tavern_helper": {"variables": {"v": [1]}}}
        after = {"tavern_helper": {"variables": {"v": {"0": 1}}}}
        assert draft_artifact_diff(before, after).changed_paths == ("tavern_helper.variables.v",)
