"""CLI entry point for carddraft.

Invoked as::

    carddraft [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m carddraft.cli.main

Commands
--------
import        Convert a chara_card_v3 document into a Draft
export        Convert a Draft into a chara_card_v3 document
lint          Validate a Draft and show its progress
board         Render the draft board Markdown for a Draft
parse-board   Extract the last Draft from a board transcript
read          Run read-protocol paths against a Draft
tree          Show the virtual file tree of a Draft
summary       Dump the content-free file-system summary
diff          Compare the artifact subtrees of two Drafts
plan          Show the embedded VibePlan and the current task
advance       Mark a VibePlan task done and move the cursor
version       Show version information
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table
from rich.tree import Tree

console = Console()
err_console = Console(stderr=True)

_YAML_SUFFIXES = (".yaml", ".yml")


def _read_source(path: str) -> str:
    """Read a text file, exiting on error."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        err_console.print(f"[red]Error:[/red] File not found: {path}")
        sys.exit(1)
    except OSError as exc:
        err_console.print(f"[red]Error:[/red] Cannot read {path}: {exc}")
        sys.exit(1)


def _load_document(path: str) -> Any:
    """Load a JSON or YAML document (chosen by suffix), exiting on parse errors."""
    source = _read_source(path)
    try:
        if Path(path).suffix.lower() in _YAML_SUFFIXES:
            return yaml.safe_load(source)
        return json.loads(source)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        err_console.print(f"[red]Parse error[/red] in {path}: {exc}")
        sys.exit(1)


def _load_draft(path: str) -> Any:
    from carddraft.model import normalize_card_draft

    return normalize_card_draft(_load_document(path))


def _dump(data: Any, output_format: str) -> tuple[str, str]:
    if output_format == "yaml":
        return yaml.safe_dump(data, allow_unicode=True, sort_keys=False), "yaml"
    return json.dumps(data, indent=2, ensure_ascii=False), "json"


def _emit(text: str, lang: str, output: str | None, label: str) -> None:
    if output:
        Path(output).write_text(text, encoding="utf-8")
        console.print(f"[green]{label} written to[/green] {output}")
    elif lang == "text":
        click.echo(text)
    else:
        console.print(Syntax(text, lang, line_numbers=False, word_wrap=True))


def _severity_color(severity_name: str) -> str:
    """Map a DiagnosticSeverity name to a Rich color string."""
    colors = {
        "ERROR": "red",
        "WARNING": "yellow",
        "INFORMATION": "blue",
        "HINT": "dim",
    }
    return colors.get(severity_name, "white")


_format_option = click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "yaml"], case_sensitive=False),
    default="json",
    help="Output format",
)
_output_option = click.option("--output", "-o", default=None, help="Output file path (defaults to stdout)")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="carddraft")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Character-card Draft toolkit: codec, validator, board and read protocol."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)


# ---------------------------------------------------------------------------
# version command
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from carddraft import __version__

    table = Table(show_header=False, box=None)
    table.add_row("[bold]carddraft[/bold]", f"v{__version__}")
    table.add_row("Python", f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}")
    table.add_row("Platform", sys.platform)
    console.print(table)


# ---------------------------------------------------------------------------
# import / export commands
# ---------------------------------------------------------------------------


@cli.command(name="import")
@click.argument("file", type=click.Path(exists=False))
@_format_option
@_output_option
def import_command(file: str, output_format: str, output: str | None) -> None:
    """Convert a chara_card_v3 document into a Draft.

    FILE is the path to the card JSON (or YAML) document.
    """
    from carddraft.codec import chara_card_to_card_draft
    from carddraft.model import draft_to_dict

    draft = chara_card_to_card_draft(_load_document(file))
    text, lang = _dump(draft_to_dict(draft), output_format.lower())
    _emit(text, lang, output, "Draft")


@cli.command(name="export")
@click.argument("file", type=click.Path(exists=False))
@click.option(
    "--mode",
    type=click.Choice(["work", "publish"], case_sensitive=False),
    default="work",
    help="work keeps the VibePlan in the card; publish drops it",
)
@_format_option
@_output_option
def export_command(file: str, mode: str, output_format: str, output: str | None) -> None:
    """Convert a Draft into a chara_card_v3 document.

    FILE is the path to the Draft JSON (or YAML) document.
    """
    from carddraft.codec import ExportMode, card_draft_to_chara_card_v3

    doc = card_draft_to_chara_card_v3(_load_draft(file), mode=ExportMode(mode.lower()))
    text, lang = _dump(doc, output_format.lower())
    _emit(text, lang, output, "Card")


# ---------------------------------------------------------------------------
# lint command
# ---------------------------------------------------------------------------


@cli.command(name="lint")
@click.argument("file", type=click.Path(exists=False))
@click.option("--strict", is_flag=True, default=False, help="Treat warnings as errors")
def lint_command(file: str, strict: bool) -> None:
    """Validate a Draft and show its progress.

    FILE is the path to the Draft JSON (or YAML) document.
    """
    from carddraft.validator import Validator, lint_card_draft

    result = lint_card_draft(_load_draft(file), validator=Validator(strict=strict))
    progress = result.progress
    total = progress.total_steps or len(progress.steps) or 1
    console.print(f"[bold]Step {progress.step_index}/{total}[/bold] - {progress.step_name}")
    if progress.next_action is not None and progress.next_action.text:
        console.print(f"[dim]next: {progress.next_action.text}[/dim]")

    if not result.diagnostics:
        console.print(f"[green]OK[/green] {file} - no issues found")
        sys.exit(0)

    table = Table(title=f"Lint: {file}", show_lines=True)
    table.add_column("Severity", style="bold", min_width=10)
    table.add_column("Code", min_width=8)
    table.add_column("Path", min_width=10)
    table.add_column("Message")

    for d in result.diagnostics:
        color = _severity_color(d.severity.name)
        table.add_row(
            f"[{color}]{d.severity.name}[/{color}]",
            d.code,
            d.path,
            d.message + (f"\n[dim]hint: {d.suggestion}[/dim]" if d.suggestion else ""),
        )

    console.print(table)
    console.print(
        f"\n[bold]Summary:[/bold] {len(result.errors)} error(s), {len(result.warnings)} warning(s)"
    )

    if result.errors:
        sys.exit(1)


# ---------------------------------------------------------------------------
# board commands
# ---------------------------------------------------------------------------


@cli.command(name="board")
@click.argument("file", type=click.Path(exists=False))
@_output_option
def board_command(file: str, output: str | None) -> None:
    """Render the draft board Markdown for a Draft.

    FILE is the path to the Draft JSON (or YAML) document.
    """
    from carddraft.board import build_draft_board_markdown

    _emit(build_draft_board_markdown(_load_draft(file)), "text", output, "Board")


@cli.command(name="parse-board")
@click.argument("file", type=click.Path(exists=False))
@_format_option
@_output_option
def parse_board_command(file: str, output_format: str, output: str | None) -> None:
    """Extract the last Draft from a board transcript.

    FILE is a Markdown transcript containing one or more boards.
    """
    from carddraft.board import UNINITIALIZED, parse_draft_from_board_markdown
    from carddraft.model import draft_to_dict

    result = parse_draft_from_board_markdown(_read_source(file))
    if not result.ok:
        if result.error == UNINITIALIZED:
            err_console.print(f"[yellow]No board found[/yellow] in {file}")
        else:
            err_console.print(f"[red]Board error[/red] in {file}: {result.error}")
        sys.exit(1)

    text, lang = _dump(draft_to_dict(result.draft), output_format.lower())
    _emit(text, lang, output, "Draft")


# ---------------------------------------------------------------------------
# read commands
# ---------------------------------------------------------------------------


@cli.command(name="read")
@click.argument("file", type=click.Path(exists=False))
@click.argument("paths", nargs=-1)
@click.option("--offset", type=int, default=0, help="Start offset for string values")
@click.option("--limit", type=int, default=None, help="Maximum characters per read")
@click.option("--include-vibe-plan", is_flag=True, default=False, help="Allow reading the VibePlan")
@click.option("--raw", "raw_text", is_flag=True, default=False, help="Print the protocol message text")
@click.option("--full-text", is_flag=True, default=False, help="Without PATHS, print every body under its path")
@click.option("--token-limit", type=int, default=None, help="Skip the full text when it exceeds this estimate")
def read_command(
    file: str,
    paths: tuple[str, ...],
    offset: int,
    limit: int | None,
    include_vibe_plan: bool,
    raw_text: bool,
    full_text: bool,
    token_limit: int | None,
) -> None:
    """Run read-protocol paths against a Draft.

    FILE is the Draft document; PATHS are file paths
    (``Alice/worldbook/Backstory``) or dotted paths
    (``worldbook.entries[0].content``).  Without PATHS, prints the index,
    or with ``--full-text`` the path-labelled full text.
    """
    from carddraft.read import (
        DEFAULT_LIMIT,
        build_auto_full_text,
        build_read_result,
        build_read_result_text,
        normalize_read_request,
        read_index_text,
    )

    draft = _load_draft(file)
    if not paths:
        if full_text:
            text = build_auto_full_text(draft, token_limit=token_limit)
            if text:
                click.echo(text)
                return
            err_console.print(f"[yellow]Full text exceeds {token_limit} tokens[/yellow]; showing the index")
        click.echo(read_index_text(draft, include_vibe_plan=include_vibe_plan))
        return

    request = normalize_read_request(
        {
            "kind": "read",
            "reads": [
                {"path": p, "offset": offset, "limit": DEFAULT_LIMIT if limit is None else limit}
                for p in paths
            ],
        }
    )
    if not request.ok:
        err_console.print(f"[red]Error:[/red] {request.error}")
        sys.exit(1)

    if raw_text:
        click.echo(build_read_result_text(draft, request.reads, include_vibe_plan=include_vibe_plan))
        return

    payload = build_read_result(draft, request.reads, include_vibe_plan=include_vibe_plan)
    failed = 0
    for item in payload["items"]:
        if "error" in item:
            failed += 1
            err_console.print(f"[red]{item['path']}[/red]: {item['error']}")
            continue
        console.rule(f"[bold]{item['path']}[/bold] [dim]({item['type']})[/dim]")
        value = item["value"]
        if isinstance(value, str):
            click.echo(value)
            if item.get("hasMore"):
                console.print(f"[dim]... {item['totalLen']} chars total, next offset {item['nextOffset']}[/dim]")
        else:
            console.print(Syntax(json.dumps(value, indent=2, ensure_ascii=False), "json"))
    if failed:
        sys.exit(1)


@cli.command(name="tree")
@click.argument("file", type=click.Path(exists=False))
def tree_command(file: str) -> None:
    """Show the virtual file tree of a Draft."""
    from carddraft.read import FileNode, build_file_tree

    def add(branch: Tree, node: FileNode) -> None:
        for child in node.children:
            if child.is_folder:
                add(branch.add(f"[bold blue]{child.name}/[/bold blue]"), child)
            else:
                branch.add(child.name)

    root = build_file_tree(_load_draft(file))
    tree = Tree(f"[bold]{root.name}/[/bold]")
    add(tree, root)
    console.print(tree)


@cli.command(name="summary")
@click.argument("file", type=click.Path(exists=False))
@click.option("--include-vibe-plan", is_flag=True, default=False, help="Report the VibePlan")
@_format_option
@_output_option
def summary_command(file: str, include_vibe_plan: bool, output_format: str, output: str | None) -> None:
    """Dump the content-free file-system summary of a Draft."""
    from carddraft.read import build_file_system_summary

    summary = build_file_system_summary(_load_draft(file), include_vibe_plan=include_vibe_plan)
    text, lang = _dump(summary, output_format.lower())
    _emit(text, lang, output, "Summary")


# ---------------------------------------------------------------------------
# diff command
# ---------------------------------------------------------------------------


@cli.command(name="diff")
@click.argument("old", type=click.Path(exists=False))
@click.argument("new", type=click.Path(exists=False))
def diff_command(old: str, new: str) -> None:
    """Compare the artifact subtrees of two Drafts.

    OLD and NEW are paths to Draft documents.
    """
    from carddraft.diff import draft_artifact_diff

    result = draft_artifact_diff(_load_draft(old), _load_draft(new))
    if not result.artifact_changed:
        console.print("[green]No artifact changes between the two drafts.[/green]")
        sys.exit(0)

    console.print(f"[bold]Artifact diff:[/bold] {old} → {new}\n")
    for path in result.changed_paths:
        console.print(f"[yellow]~ {path}[/yellow]")
    console.print(f"\n[bold]{len(result.changed_paths)}[/bold] changed path(s)")


# ---------------------------------------------------------------------------
# plan commands
# ---------------------------------------------------------------------------


_STATUS_COLORS = {"done": "green", "doing": "cyan", "blocked": "red", "todo": "white"}


@cli.command(name="plan")
@click.argument("file", type=click.Path(exists=False))
def plan_command(file: str) -> None:
    """Show the embedded VibePlan and the task to work on next."""
    from carddraft.plan import pick_vibe_plan_current, summarize_vibe_plan_issues, vibe_plan_from_draft

    plan = vibe_plan_from_draft(_load_draft(file))
    if plan is None or not plan.tasks:
        console.print(f"[yellow]No VibePlan[/yellow] in {file}")
        sys.exit(0)

    table = Table(title=plan.goal or "VibePlan")
    table.add_column("Id", style="bold")
    table.add_column("Status")
    table.add_column("Title")
    table.add_column("Depends on")
    for task in plan.tasks:
        color = _STATUS_COLORS.get(task.status.value, "white")
        marker = " *" if task.id == plan.current_task_id else ""
        table.add_row(
            task.id + marker,
            f"[{color}]{task.status.value}[/{color}]",
            task.title,
            ", ".join(task.depends_on),
        )
    console.print(table)

    picked = pick_vibe_plan_current(plan)
    console.print(f"\n[bold]Next:[/bold] {json.dumps(picked.to_dict(), ensure_ascii=False)}")
    for issue in summarize_vibe_plan_issues(plan):
        err_console.print(f"[red]Plan issue:[/red] {issue}")


@cli.command(name="advance")
@click.argument("file", type=click.Path(exists=False))
@click.argument("task_id", required=False)
@click.option("--in-place", is_flag=True, default=False, help="Rewrite the file in place")
@_format_option
def advance_command(file: str, task_id: str | None, in_place: bool, output_format: str) -> None:
    """Mark a VibePlan task done and move the cursor.

    TASK_ID defaults to the task the scheduler currently picks.
    """
    from carddraft.model import draft_to_dict
    from carddraft.plan import (
        ResolutionType,
        advance_vibe_plan,
        pick_vibe_plan_current,
        vibe_plan_from_draft,
        with_vibe_plan,
    )

    draft = _load_draft(file)
    plan = vibe_plan_from_draft(draft)
    if plan is None:
        err_console.print(f"[red]Error:[/red] {file} has no VibePlan")
        sys.exit(1)

    if not task_id:
        picked = pick_vibe_plan_current(plan)
        if picked.type is not ResolutionType.OK:
            err_console.print(f"[red]Error:[/red] nothing to advance ({picked.type.value})")
            sys.exit(1)
        task_id = picked.task_id
    if plan.task_by_id(task_id) is None:
        err_console.print(f"[red]Error:[/red] unknown task {task_id!r}")
        sys.exit(1)

    next_plan = advance_vibe_plan(plan, task_id)
    updated = with_vibe_plan(draft, next_plan)
    err_console.print(f"[green]Done:[/green] {task_id} -> {next_plan.current_task_id or '(none)'}")

    text, lang = _dump(draft_to_dict(updated), output_format.lower())
    _emit(text, lang, file if in_place else None, "Draft")


if __name__ == "__main__":
    cli()
