"""Print every saved carddraft benchmark result as one table."""
from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

_RUN_HINT = (
    "python benchmarks/bench_throughput.py",
    "python benchmarks/bench_latency.py",
    "python benchmarks/bench_memory.py",
)


def _metric(data: dict[str, object], key: str, fmt: str) -> str:
    value = float(data.get(key, 0) or 0)  # type: ignore[arg-type]
    return fmt.format(value) if value > 0 else "n/a"


def build_table(results_dir: Path) -> Table | None:
    """Return a table of all ``*_baseline.json`` files, or ``None`` when there are none."""
    paths = sorted(results_dir.glob("*_baseline.json"))
    if not paths:
        return None

    table = Table(title="carddraft benchmark results")
    table.add_column("Operation", style="bold")
    table.add_column("Ops/sec", justify="right")
    table.add_column("Avg", justify="right")
    table.add_column("p50", justify="right")
    table.add_column("p95", justify="right")
    table.add_column("Peak mem", justify="right")

    for path in paths:
        data = json.loads(path.read_text(encoding="utf-8"))
        table.add_row(
            str(data.get("operation", path.stem)),
            _metric(data, "ops_per_second", "{:,.0f}"),
            _metric(data, "avg_latency_ms", "{:.3f}ms"),
            _metric(data, "p50_ms", "{:.3f}ms"),
            _metric(data, "p95_ms", "{:.3f}ms"),
            _metric(data, "peak_memory_kb", "{:,.0f}KB"),
        )
    return table


def main() -> None:
    console = Console()
    table = build_table(Path(__file__).parent / "results")
    if table is None:
        console.print("[yellow]No benchmark results yet.[/yellow] Run:")
        for command in _RUN_HINT:
            console.print(f"  {command}")
        return
    console.print(table)


if __name__ == "__main__":
    main()
