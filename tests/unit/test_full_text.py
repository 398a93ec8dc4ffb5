"""Unit tests for carddraft.read.full_text."""
from __future__ import annotations

import pytest

from carddraft.model import CardDraft
from carddraft.read import (
    build_auto_full_text,
    build_full_text,
    build_readable_snapshot,
    estimate_tokens,
    resolve_file_content,
)
from carddraft.read.full_text import FULL_TEXT_CLOSE, FULL_TEXT_OPEN


def _header_paths(text: str, root: str) -> list[str]:
    paths = []
    for line in text.splitlines():
        if line.startswith(f"[{root}/") and line.endswith("]"):
            path = line[1:-1].split(" ")[0]
            if not path.endswith("/"):
                paths.append(path)
    return paths


class TestEstimateTokens:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [("", 0), (None, 0), ("abc", 1), ("abcd", 2), ("é", 1), ("中文", 2)],
    )
    def test_utf8_bytes_over_three(self, text: str | None, expected: int) -> None:
        assert estimate_tokens(text) == expected


class TestFullText:
    def test_frame(self, draft: CardDraft) -> None:
        text = build_full_text(build_readable_snapshot(draft))
        assert text.startswith(f'{FULL_TEXT_OPEN}\nroot="Alice"')
        assert text.endswith(FULL_TEXT_CLOSE)
        assert '[worldbook/ name="Alice lore"]' in text

    def test_bodies_under_paths(self, draft: CardDraft) -> None:
        text = build_full_text(build_readable_snapshot(draft))
        assert "[Alice/description]\nA wandering archivist.\n" in text
        assert "[Alice/mes_example]\n(empty)\n" in text
        assert "[Alice/alternate_greetings/[1]]\nWelcome back.\n" in text
        assert (
            '[Alice/worldbook/[0] comment="Backstory" enabled=true position="before_char"]\n'
            "abcdefghijklmnopqrst\n"
        ) in text
        assert '[Alice/regex_scripts/[0] name="Emote swap" enabled=true placement=[2]]\n{' in text
        assert '[Alice/tavern_helper/scripts/[0] name="Dice"' in text
        assert '[Alice/tavern_helper/variables/mood]\n"calm"\n' in text

    def test_every_header_path_resolves(self, draft: CardDraft) -> None:
        snapshot = build_readable_snapshot(draft)
        paths = _header_paths(build_full_text(snapshot), "Alice")
        assert "Alice/worldbook/[1]" in paths
        for path in paths:
            assert resolve_file_content(snapshot, path).ok, path

    def test_quotes_and_newlines_escaped_in_headers(self) -> None:
        snapshot = build_readable_snapshot(
            {"card": {"name": "Bo"}, "worldbook": {"entries": [{"comment": 'say "hi"\nnow', "content": "x"}]}}
        )
        text = build_full_text(snapshot)
        assert '[Bo/worldbook/[0] comment="say \\"hi\\"\\nnow" enabled=true' in text

    def test_empty_draft(self) -> None:
        text = build_full_text(build_readable_snapshot({}))
        assert 'root="character"' in text
        assert '[worldbook/ name="(empty)"]' in text
        assert "[character/alternate_greetings/]\n(empty)" in text
        assert "[character/worldbook/entries/]\n(empty)" in text
        assert "[character/regex_scripts/]\n(empty)" in text
        assert "[character/tavern_helper/variables/]\n(empty)" in text


class TestAutoFullText:
    def test_no_limit_always_injects(self, draft: CardDraft) -> None:
        expected = build_full_text(build_readable_snapshot(draft))
        assert build_auto_full_text(draft) == expected
        assert build_auto_full_text(draft, token_limit=0) == expected

    def test_limit_is_inclusive(self, draft: CardDraft) -> None:
        tokens = estimate_tokens(build_full_text(build_readable_snapshot(draft)))
        assert build_auto_full_text(draft, token_limit=tokens).startswith(FULL_TEXT_OPEN)
        assert build_auto_full_text(draft, token_limit=tokens - 1) == ""

    def test_vibe_plan_never_rendered(self) -> None:
        text = build_auto_full_text({"raw": {"dataExtensions": {"vibePlan": {"tasks": [{"id": "SECRET"}]}}}})
        assert "SECRET" not in text
