#!/usr/bin/env python3
"""Example: Validation

Lint a Draft with problems in every section, show the diagnostic codes,
then compare default and strict mode.

Usage:
    python examples/02_validation.py

Requirements:
    pip install carddraft
"""
from __future__ import annotations

import carddraft
from carddraft.validator import Validator

BROKEN_DRAFT = {
    "card": {"name": "", "description": "Nameless wanderer."},
    "worldbook": {
        "entries": [
            {"comment": "Empty", "content": ""},
            {"comment": "Deep", "content": "Hidden lore.", "position": "at_depth_system"},
        ],
    },
    "regex_scripts": [
        {"name": "broken", "placement": [2], "find": {"pattern": "(unclosed", "flags": "g"}},
        {"name": "nowhere", "placement": [], "find": {"pattern": "x"}},
    ],
}


def main() -> None:
    draft = carddraft.normalize(BROKEN_DRAFT)

    # Default mode: errors block, warnings inform
    for diag in Validator().validate(draft):
        print(f"  [{diag.severity.value}] {diag.code} {diag.path}: {diag.message}")

    result = carddraft.lint(draft)
    print(f"\nDefault mode: {len(result.errors)} errors, {len(result.warnings)} warnings")

    # Strict mode promotes every warning to an error
    strict = carddraft.lint(draft, strict=True)
    print(f"Strict mode:  {len(strict.errors)} errors, {len(strict.warnings)} warnings")

    print(f"\nProgress state: {result.state.value}")
    if result.progress.next_action is not None:
        print(f"Next action: {result.progress.next_action.text[:80]}")


if __name__ == "__main__":
    main()
