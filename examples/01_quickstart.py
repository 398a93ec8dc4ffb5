#!/usr/bin/env python3
"""Example: Quickstart for carddraft

Minimal working example: normalize a Draft, lint it, export it as a
chara_card_v3 document and import it back.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install carddraft
"""
from __future__ import annotations

import json

import carddraft

DRAFT = {
    "card": {
        "name": "Mira",
        "description": "A lighthouse keeper who collects shipwreck stories.",
        "personality": "Wry, patient, superstitious about fog.",
        "scenario": "A storm has stranded {{user}} at the lighthouse.",
        "first_mes": "Shut the door, the fog gets in everywhere.",
        "tags": ["coastal", "mystery"],
    },
    "worldbook": {
        "entries": [
            {"comment": "The lamp", "content": "The lamp has not gone dark in forty years.", "keys": ["lamp"]},
            {"comment": "Fog", "content": "Locals say the fog carries voices.", "light": "blue"},
        ],
    },
}


def main() -> None:
    print(f"carddraft version: {carddraft.__version__}")

    # Step 1: Normalize raw input into a canonical Draft
    draft = carddraft.normalize(DRAFT)
    print(f"Draft: '{draft.card.name}', {len(draft.worldbook.entries)} worldbook entries")
    for entry in draft.worldbook.entries:
        print(f"  #{entry.id} {entry.comment} ({entry.light.value})")

    # Step 2: Lint
    result = carddraft.lint(draft)
    print(f"Lint: {len(result.errors)} errors, {len(result.warnings)} warnings")

    # Step 3: Export for publishing
    card = carddraft.export_card(draft, mode="publish")
    print(f"\nExported {card['spec']} {card['spec_version']} ({len(json.dumps(card))} bytes)")
    print(f"Character book: {card['data']['character_book']['name']}")

    # Step 4: Import it back
    back = carddraft.import_card(card)
    print(f"Re-imported: '{back.card.name}', first message: {back.card.first_mes!r}")


if __name__ == "__main__":
    main()
