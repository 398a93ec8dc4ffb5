#!/usr/bin/env python3
"""Example: Read protocol

Browse a Draft as a virtual file system: the discovery summary, the
file tree, the readable index and windowed reads by file or dotted path.

Usage:
    python examples/04_read_protocol.py

Requirements:
    pip install carddraft
"""
from __future__ import annotations

import json

import carddraft
from carddraft.read import build_file_system_summary, build_file_tree, build_read_result_text, read_index_text

DRAFT = {
    "card": {"name": "Oren", "description": "A cartographer of places that move. " * 20},
    "worldbook": {
        "entries": [
            {"comment": "Shifting roads", "content": "Roads here rearrange at dawn.", "keys": ["road"]},
            {"comment": "Shifting roads", "content": "A second entry with the same title."},
        ],
    },
    "regex_scripts": [{"name": "Hide notes", "placement": [2], "find": {"pattern": "\\[note:.*?\\]"}}],
}


def _print_tree(node, depth: int = 0) -> None:
    print(f"{'  ' * depth}{node.name}{'/' if node.type == 'folder' else ''}")
    for child in node.children:
        _print_tree(child, depth + 1)


def main() -> None:
    draft = carddraft.normalize(DRAFT)

    summary = build_file_system_summary(draft)
    print(f"Root folder: {summary['root']}")
    print(json.dumps(summary["card"], ensure_ascii=False, indent=2)[:200])

    print("\nFile tree:")
    _print_tree(build_file_tree(draft))

    print("\nIndex:")
    print(read_index_text(draft))

    # Duplicated names resolve by index; long strings are windowed
    items = carddraft.read(
        draft,
        ["Oren/worldbook/[1]", "card.description", "Oren/regex_scripts/missing"],
        limit=60,
    )
    for item in items:
        if "error" in item:
            print(f"  {item['path']}: error: {item['error']}")
        else:
            print(f"  {item['path']}: {item['value']!r}")

    # The envelope a model would see
    print()
    print(build_read_result_text(draft, [{"path": "card.name"}])[:160])


if __name__ == "__main__":
    main()
