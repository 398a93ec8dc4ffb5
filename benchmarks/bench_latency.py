"""Benchmark: lint latency (p50/p95/mean).

Measures per-call latency of ``carddraft.lint`` on a Draft carrying a
worldbook, regex scripts and a chained VibePlan.
"""
from __future__ import annotations

import json
import sys
import time
from pathlib import Path
from typing import Any

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import carddraft

_WARMUP: int = 50
_ITERATIONS: int = 1_000


def _planned_draft(tasks: int = 30) -> dict[str, Any]:
    plan = {
        "version": "v1",
        "goal": "Bench",
        "tasks": [
            {"id": f"T{i}", "title": f"Task {i}", "dependsOn": [f"T{i - 1}"] if i else []}
            for i in range(tasks)
        ],
        "cursor": {"currentTaskId": f"T{tasks - 1}"},
    }
    return {
        "card": {"name": "Bench", "description": "d", "first_mes": "hi", "personality": "p", "scenario": "s"},
        "worldbook": {
            "entries": [{"id": i, "content": "x" * 200, "keys": ["k"], "light": "green"} for i in range(20)]
        },
        "regex_scripts": [
            {"name": f"r{i}", "placement": [1, 2], "find": {"pattern": "(?<w>\\w+)\\s+\\k<w>", "flags": "gi"}}
            for i in range(10)
        ],
        "raw": {"dataExtensions": {"vibePlan": plan}},
    }


def bench_lint_latency() -> dict[str, object]:
    """Benchmark lint latency on a planned Draft.

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms, p50_ms, p95_ms.
    """
    draft = carddraft.normalize(_planned_draft())

    # Warmup
    for _ in range(_WARMUP):
        carddraft.lint(draft)

    latencies_ms: list[float] = []
    for _ in range(_ITERATIONS):
        t0 = time.perf_counter()
        carddraft.lint(draft)
        latencies_ms.append((time.perf_counter() - t0) * 1000)

    sorted_lats = sorted(latencies_ms)
    n = len(sorted_lats)
    total = sum(latencies_ms) / 1000

    result: dict[str, object] = {
        "operation": "carddraft_lint_latency",
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "avg_latency_ms": round(sum(latencies_ms) / n, 4),
        "p50_ms": round(sorted_lats[int(n * 0.50)], 4),
        "p95_ms": round(sorted_lats[min(int(n * 0.95), n - 1)], 4),
    }
    print(
        f"[bench_latency] {result['operation']}: "
        f"p50={result['p50_ms']:.4f}ms  p95={result['p95_ms']:.4f}ms  "
        f"mean={result['avg_latency_ms']:.4f}ms"
    )
    return result


if __name__ == "__main__":
    result = bench_lint_latency()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "latency_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(result, fh, indent=2)
    print(f"Results saved to {output_path}")
