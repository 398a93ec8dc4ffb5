"""Unit tests for carddraft.read.summary and the index text caps."""
from __future__ import annotations

from carddraft.model import CardDraft
from carddraft.read import (
    build_file_system_summary,
    build_file_tree,
    build_readable_snapshot,
    build_unique_names,
    read_index_text,
    resolve_file_content,
)

from conftest import make_draft_dict, make_plan


class TestUniqueNames:
    def test_duplicates_and_blanks_use_index(self) -> None:
        names = build_unique_names(["a", "b", "a", "", "c/d"], lambda n: n)
        assert names == ["[0]", "b", "[2]", "[3]", "c／d"]

    def test_index_like_names_use_own_index(self) -> None:
        names = build_unique_names(["1", "[0]", "Second", " 2 "], lambda n: n)
        assert names == ["[0]", "[1]", "Second", "[3]"]


class TestFileTree:
    def test_root(self, draft: CardDraft) -> None:
        tree = build_file_tree(draft)
        assert tree.is_folder
        assert (tree.name, tree.path) == ("Alice", "Alice")

    def test_paths(self, draft: CardDraft) -> None:
        paths = {node.path for node in build_file_tree(draft).walk()}
        assert "Alice/description" in paths
        assert "Alice/alternate_greetings/1" in paths
        assert "Alice/worldbook/Backstory" in paths
        assert "Alice/regex_scripts/Emote swap" in paths
        assert "Alice/tavern_helper/scripts/Dice" in paths
        assert "Alice/tavern_helper/variables/mood" in paths

    def test_every_file_resolves(self, draft: CardDraft) -> None:
        snapshot = build_readable_snapshot(draft)
        files = [node for node in build_file_tree(draft).walk() if not node.is_folder]
        assert files
        for node in files:
            assert resolve_file_content(snapshot, node.path).ok, node.path

    def test_duplicate_entries_resolve_by_index(self) -> None:
        data = make_draft_dict()
        data["worldbook"] = {
            "name": "",
            "entries": [{"id": 0, "comment": "Same", "content": "one"}, {"id": 1, "comment": "Same", "content": "two"}],
        }
        snapshot = build_readable_snapshot(data)
        paths = [n.path for n in build_file_tree(data).walk() if n.path.startswith("Alice/worldbook/")]
        assert paths == ["Alice/worldbook/[0]", "Alice/worldbook/[1]"]
        assert resolve_file_content(snapshot, paths[1]).value == "two"

    def test_numeric_comment_resolves_to_its_own_entry(self) -> None:
        data = make_draft_dict()
        data["worldbook"] = {
            "name": "",
            "entries": [{"id": 0, "comment": "1", "content": "FIRST"}, {"id": 1, "comment": "Second", "content": "SECOND"}],
        }
        snapshot = build_readable_snapshot(data)
        paths = [n.path for n in build_file_tree(data).walk() if n.path.startswith("Alice/worldbook/")]
        assert paths == ["Alice/worldbook/[0]", "Alice/worldbook/Second"]
        assert [resolve_file_content(snapshot, p).value for p in paths] == ["FIRST", "SECOND"]

    def test_to_dict(self, draft: CardDraft) -> None:
        out = build_file_tree(draft).to_dict()
        assert out["type"] == "folder"
        description = out["children"][0]
        assert description == {"type": "file", "name": "description", "path": "Alice/description"}


class TestFileSystemSummary:
    def test_keys(self, draft: CardDraft) -> None:
        summary = build_file_system_summary(draft)
        assert set(summary) == {
            "root",
            "card",
            "fileTree",
            "worldbookMeta",
            "regexMeta",
            "tavernHelperMeta",
            "rawMeta",
            "readHint",
        }
        assert summary["root"] == "Alice"

    def test_card_heads(self, draft: CardDraft) -> None:
        card = build_file_system_summary(draft)["card"]
        assert card["description"] == {"len": 22, "head": "A wandering archivist."}
        assert card["alternate_greetings_count"] == 2

    def test_metas(self, draft: CardDraft) -> None:
        summary = build_file_system_summary(draft)
        assert summary["worldbookMeta"]["entriesCount"] == 2
        assert summary["worldbookMeta"]["entries"][0]["keysCount"] == 1
        assert summary["regexMeta"]["items"][0]["find"]["style"] == "slash"
        assert summary["tavernHelperMeta"]["variableKeysPreview"]["preview"] == ["mood"]

    def test_vibe_plan_flag(self) -> None:
        data = make_draft_dict(raw={"dataExtensions": {"vibePlan": make_plan({"id": "T1"})}})
        assert build_file_system_summary(data)["rawMeta"]["vibePlanIncluded"] is False
        assert build_file_system_summary(data, include_vibe_plan=True)["rawMeta"]["vibePlanIncluded"] is True
        assert build_file_system_summary(data)["rawMeta"]["dataExtensionsKeys"] == ["vibePlan"]

    def test_entry_preview_capped(self) -> None:
        entries = [{"id": i, "comment": f"e{i}", "content": "x"} for i in range(12)]
        summary = build_file_system_summary(make_draft_dict(worldbook={"name": "", "entries": entries}))
        assert len(summary["worldbookMeta"]["entries"]) == 8
        assert summary["worldbookMeta"]["entriesMore"] == 4
        assert summary["fileTree"]["worldbook"]["more"] == 2


class TestIndexCaps:
    def test_worldbook_more_line(self) -> None:
        entries = [{"id": i, "comment": f"e{i}", "content": "x"} for i in range(62)]
        text = read_index_text(make_draft_dict(worldbook={"name": "", "entries": entries}))
        assert "  - entries/: 62 items" in text
        assert "- … and 2 more" in text
        assert "e59:" in text
        assert "e60:" not in text

    def test_empty_sections(self) -> None:
        text = read_index_text({})
        assert "character/" in text
        assert "regex_scripts/\n    - (empty)" in text
        assert "alternate_greetings/: (empty)" in text
