#!/usr/bin/env python3
"""Example: Draft board in a chat transcript

Render the board for a Draft, embed it in a chat transcript, then find
and parse the last board the way a chat client would.

Usage:
    python examples/03_board_transcript.py

Requirements:
    pip install carddraft
"""
from __future__ import annotations

import carddraft
from carddraft.board import build_control_text, build_initial_draft_board_message


def main() -> None:
    # A fresh chat starts with an uninitialized board
    opening = build_initial_draft_board_message()
    print(f"Opening board parses: {carddraft.parse_board(opening).ok}")

    draft = carddraft.normalize({
        "card": {
            "name": "Quill",
            "description": "An automaton scribe. Beware <!-- comments --> and `backticks`.",
            "first_mes": "Ink ready.",
        },
    })
    board = carddraft.build_board(draft)
    print(f"\nBoard ({len(board)} chars):")
    print(board[:300])

    transcript = "\n\n".join([
        opening,
        "User: make me a scribe character",
        board,
        build_control_text(draft, reason="continue with the worldbook"),
    ])

    # The last board in the transcript wins
    parsed = carddraft.parse_board(transcript)
    if parsed.ok and parsed.draft is not None:
        print(f"\nParsed Draft: '{parsed.draft.card.name}'")
        print(f"Description survived escaping: {parsed.draft.card.description == draft.card.description}")
    else:
        print(f"\nParse failed: {parsed.error}")


if __name__ == "__main__":
    main()
