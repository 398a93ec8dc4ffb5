"""Shared test fixtures for carddraft.

Fixtures defined here are available to all tests in the suite without
needing an explicit import. Add project-wide fixtures here; keep
domain-specific fixtures close to the tests that use them.
"""
from __future__ import annotations

from typing import Any

import pytest

from carddraft.model import CardDraft, normalize_card_draft

FIXED_NOW = "2026-01-01T00:00:00.000Z"


def make_draft_dict(**overrides: Any) -> dict[str, Any]:
    """Return a complete, lint-clean Draft in its dict form."""
    data: dict[str, Any] = {
        "meta": {"spec": "chara_card_v3", "spec_version": "3.0", "updatedAt": FIXED_NOW},
        "card": {
            "name": "Alice",
            "description": "A wandering archivist.",
            "personality": "Curious and patient.",
            "scenario": "A library at dusk.",
            "first_mes": "Hello, traveler.",
            "mes_example": "",
            "creator_notes": "",
            "system_prompt": "",
            "post_history_instructions": "",
            "alternate_greetings": ["Hi again.", "Welcome back."],
            "tags": ["fantasy", "library"],
        },
        "worldbook": {
            "name": "Alice lore",
            "entries": [
                {
                    "id": 0,
                    "comment": "Backstory",
                    "content": "abcdefghijklmnopqrst",
                    "keys": ["Alice"],
                    "light": "green",
                    "position": "before_char",
                    "order": 100,
                },
                {
                    "id": 1,
                    "comment": "Library",
                    "content": "The library never closes.",
                    "light": "blue",
                    "position": "at_depth_system",
                    "at_depth": {"depth": 2},
                    "order": 50,
                },
            ],
        },
        "regex_scripts": [
            {
                "id": "rx-1",
                "name": "Emote swap",
                "placement": [2],
                "find": {"style": "slash", "pattern": "/\\*(.+?)\\*/g", "flags": ""},
                "replace": "_$1_",
            }
        ],
        "tavern_helper": {
            "scripts": [{"id": "th-1", "name": "Dice", "content": "roll()"}],
            "variables": {"mood": "calm"},
        },
        "raw": {"dataExtensions": {"custom": {"a": 1}}},
    }
    data.update(overrides)
    return data


def make_plan(*tasks: dict[str, Any], current: str = "") -> dict[str, Any]:
    """Return a raw VibePlan dict holding ``tasks``."""
    return {
        "version": "v1",
        "goal": "Build Alice",
        "createdAt": FIXED_NOW,
        "updatedAt": FIXED_NOW,
        "tasks": list(tasks),
        "cursor": {"currentTaskId": current},
    }


@pytest.fixture()
def package_name() -> str:
    """Return the importable package name for assertions."""
    return "carddraft"


@pytest.fixture()
def expected_version() -> str:
    """Return the current expected version string.

    Update this fixture when cutting a release so that the version
    test immediately catches stale ``__version__`` values.
    """
    return "0.1.0"


@pytest.fixture()
def now() -> str:
    return FIXED_NOW


@pytest.fixture()
def draft_dict() -> dict[str, Any]:
    return make_draft_dict()


@pytest.fixture()
def draft(draft_dict: dict[str, Any]) -> CardDraft:
    return normalize_card_draft(draft_dict)


@pytest.fixture()
def chain_plan() -> dict[str, Any]:
    """T1 <- T2 <- T3, all todo."""
    return make_plan(
        {"id": "T1", "title": "Name the card"},
        {"id": "T2", "title": "Write the description", "dependsOn": ["T1"]},
        {"id": "T3", "title": "Write the greeting", "dependsOn": ["T2"]},
    )
