"""carddraft: character-card Draft toolkit.

Normalizes arbitrary card JSON into a canonical Draft, converts it to
and from the chara_card_v3 interchange format, lints it, schedules an
embedded task plan, embeds snapshots in a chat transcript and serves
bounded reads of its contents.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
::

    import carddraft

    draft = carddraft.import_card(card_json)
    result = carddraft.lint(draft)
    board = carddraft.build_board(draft)

    parsed = carddraft.parse_board(transcript + board)
    items = carddraft.read(parsed.draft, ["worldbook.entries[0].content"])

    card = carddraft.export_card(parsed.draft, mode="publish")

    carddraft.__version__
    '0.1.0'
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

__version__: str = "0.1.0"

# Load the ``read`` and ``diff`` subpackages before the same-named public
# functions below are defined, so a later submodule import cannot rebind
# ``carddraft.read`` / ``carddraft.diff`` to the module objects.
import carddraft.diff  # noqa: E402,F401
import carddraft.read  # noqa: E402,F401

if TYPE_CHECKING:
    from carddraft.board.board import BoardParseResult
    from carddraft.diff.diff import ArtifactDiff
    from carddraft.model.nodes import CardDraft
    from carddraft.validator.validator import LintResult


def normalize(raw: Any) -> "CardDraft":
    """Normalize any JSON-like value into a ``CardDraft``.

    Parameters
    ----------
    raw:
        A Draft dict (or anything else; missing fields get defaults).

    Returns
    -------
    CardDraft
        The canonical Draft.
    """
    from carddraft.model.normalize import normalize_card_draft

    return normalize_card_draft(raw)


def lint(draft: Any, strict: bool = False) -> "LintResult":
    """Lint a Draft and derive its progress.

    Parameters
    ----------
    draft:
        A ``CardDraft`` or a Draft dict.
    strict:
        Treat warnings as errors.

    Returns
    -------
    LintResult
        Errors, warnings and progress.
    """
    from carddraft.validator.validator import Validator, lint_card_draft

    return lint_card_draft(draft, validator=Validator(strict=strict))


def export_card(draft: Any, mode: str = "work") -> dict[str, Any]:
    """Export a Draft as a chara_card_v3 document.

    Parameters
    ----------
    draft:
        A ``CardDraft`` or a Draft dict.
    mode:
        ``"work"`` keeps the VibePlan; ``"publish"`` strips it.

    Returns
    -------
    dict[str, Any]
        The card document, ready for ``json.dumps``.
    """
    from carddraft.codec.chara_card import card_draft_to_chara_card_v3

    return card_draft_to_chara_card_v3(draft, mode=mode)


def import_card(doc: Any) -> "CardDraft":
    """Import a chara_card_v3 (or flat v2-style) document as a Draft."""
    from carddraft.codec.chara_card import chara_card_to_card_draft

    return chara_card_to_card_draft(doc)


def build_board(draft: Any) -> str:
    """Render the draft board Markdown for a Draft."""
    from carddraft.board.board import build_draft_board_markdown

    return build_draft_board_markdown(draft)


def parse_board(markdown: str) -> "BoardParseResult":
    """Extract the Draft from the last board in a transcript."""
    from carddraft.board.board import parse_draft_from_board_markdown

    return parse_draft_from_board_markdown(markdown)


def read(
    draft: Any,
    paths: list[str],
    offset: int = 0,
    limit: int | None = None,
    include_vibe_plan: bool = False,
) -> list[dict[str, Any]]:
    """Read paths from a Draft and return the read-result items.

    Parameters
    ----------
    draft:
        A ``CardDraft`` or a Draft dict.
    paths:
        File paths (``"Alice/worldbook/Backstory"``) or dotted paths
        (``"worldbook.entries[0].content"``).
    offset, limit:
        Window applied to every string value.
    include_vibe_plan:
        Allow reading ``raw.dataExtensions.vibePlan``.

    Returns
    -------
    list[dict[str, Any]]
        One item per path; failed items carry an ``error`` key.
    """
    from carddraft.read.protocol import DEFAULT_LIMIT, build_read_result

    reads = [
        {"path": p, "offset": offset, "limit": DEFAULT_LIMIT if limit is None else limit}
        for p in paths
    ]
    return build_read_result(draft, reads, include_vibe_plan=include_vibe_plan)["items"]


def diff(before: Any, after: Any) -> "ArtifactDiff":
    """Compare the artifact subtrees of two Drafts."""
    from carddraft.diff.diff import draft_artifact_diff

    return draft_artifact_diff(before, after)


__all__ = [
    "__version__",
    "normalize",
    "lint",
    "export_card",
    "import_card",
    "build_board",
    "parse_board",
    "read",
    "diff",
]
