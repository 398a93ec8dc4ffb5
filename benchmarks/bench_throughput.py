"""Benchmark: Draft normalization and board round-trip throughput.

Measures how many normalize passes and board render/parse round trips
complete per second using the public carddraft API.
"""
from __future__ import annotations

import json
import sys
import time
from pathlib import Path
from typing import Any

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import carddraft

_ITERATIONS: int = 2_000
_BOARD_ITERATIONS: int = 300


def _sample_draft(entries: int = 20) -> dict[str, Any]:
    return {
        "card": {
            "name": "Bench",
            "description": "A benchmark character. " * 10,
            "personality": "Steady.",
            "scenario": "A quiet room.",
            "first_mes": "Hello <there>, `friend`.",
            "tags": ["bench"],
        },
        "worldbook": {
            "name": "Bench lore",
            "entries": [
                {"id": i, "comment": f"Entry {i}", "content": "lore " * 40, "keys": [f"k{i}"], "light": "green"}
                for i in range(entries)
            ],
        },
        "regex_scripts": [
            {"name": "swap", "placement": [2], "find": {"style": "slash", "pattern": "/a(b)c/g"}, "replace": "$1"}
        ],
    }


def bench_normalize_throughput() -> dict[str, object]:
    """Benchmark Draft normalization throughput.

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms.
    """
    sample = _sample_draft()
    start = time.perf_counter()
    for _ in range(_ITERATIONS):
        carddraft.normalize(sample)
    total = time.perf_counter() - start

    result: dict[str, object] = {
        "operation": "carddraft_normalize_throughput",
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "avg_latency_ms": round(total / _ITERATIONS * 1000, 4),
    }
    print(
        f"[bench_throughput] {result['operation']}: "
        f"{result['ops_per_second']:,.0f} ops/sec  "
        f"avg {result['avg_latency_ms']:.4f} ms"
    )
    return result


def bench_board_throughput() -> dict[str, object]:
    """Benchmark board rendering plus parsing (lint included on both sides).

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms.
    """
    draft = carddraft.normalize(_sample_draft())

    start = time.perf_counter()
    for _ in range(_BOARD_ITERATIONS):
        carddraft.parse_board(carddraft.build_board(draft))
    total = time.perf_counter() - start

    result: dict[str, object] = {
        "operation": "carddraft_board_round_trip",
        "iterations": _BOARD_ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_BOARD_ITERATIONS / total, 1),
        "avg_latency_ms": round(total / _BOARD_ITERATIONS * 1000, 4),
    }
    print(
        f"[bench_throughput] {result['operation']}: "
        f"{result['ops_per_second']:,.0f} ops/sec  "
        f"avg {result['avg_latency_ms']:.4f} ms"
    )
    return result


if __name__ == "__main__":
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)

    for bench_fn, fname in [
        (bench_normalize_throughput, "normalize_throughput_baseline.json"),
        (bench_board_throughput, "board_throughput_baseline.json"),
    ]:
        result = bench_fn()
        output_path = results_dir / fname
        with open(output_path, "w", encoding="utf-8") as fh:
            json.dump(result, fh, indent=2)
        print(f"Results saved to {output_path}")
