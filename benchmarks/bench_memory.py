"""Benchmark: Memory usage during read-protocol batches."""
from __future__ import annotations

import json
import sys
import tracemalloc
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import carddraft

_ITERATIONS: int = 300

_SAMPLE_DRAFT = {
    "card": {"name": "Mem", "description": "m" * 5000, "first_mes": "hi"},
    "worldbook": {"entries": [{"id": i, "comment": f"e{i}", "content": "w" * 2000} for i in range(50)]},
}

_PATHS = ["Mem/description", "Mem/worldbook/e10", "worldbook.entries[3].keys", "Mem/worldbook"]


def bench_read_memory() -> dict[str, object]:
    """Benchmark memory usage of repeated read batches.

    Returns
    -------
    dict with keys: operation, iterations, peak_memory_kb, current_memory_kb.
    """
    draft = carddraft.normalize(_SAMPLE_DRAFT)
    tracemalloc.start()
    try:
        for _ in range(_ITERATIONS):
            carddraft.read(draft, _PATHS, limit=500)
        current, peak = tracemalloc.get_traced_memory()
    finally:
        tracemalloc.stop()

    peak_kb = round(peak / 1024, 2)

    result: dict[str, object] = {
        "operation": "carddraft_read_memory",
        "iterations": _ITERATIONS,
        "peak_memory_kb": peak_kb,
        "current_memory_kb": round(current / 1024, 2),
        "ops_per_second": 0.0,
        "avg_latency_ms": 0.0,
    }
    print(f"[bench_memory] {result['operation']}: peak {peak_kb:.2f} KB over {_ITERATIONS} iterations")
    return result


if __name__ == "__main__":
    result = bench_read_memory()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "memory_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(result, fh, indent=2)
    print(f"Results saved to {output_path}")
