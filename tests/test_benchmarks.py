"""Structural tests for carddraft benchmark module."""
from __future__ import annotations

import importlib
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent / "benchmarks"))


def test_bench_throughput_importable() -> None:
    """Verify bench_throughput module can be imported."""
    mod = importlib.import_module("bench_throughput")
    assert hasattr(mod, "bench_normalize_throughput")
    assert hasattr(mod, "bench_board_throughput")


def test_bench_latency_importable() -> None:
    mod = importlib.import_module("bench_latency")
    assert hasattr(mod, "bench_lint_latency")


def test_bench_memory_importable() -> None:
    mod = importlib.import_module("bench_memory")
    assert hasattr(mod, "bench_read_memory")


def test_normalize_throughput_returns_expected_keys() -> None:
    """Verify bench_normalize_throughput returns expected result keys."""
    from bench_throughput import bench_normalize_throughput

    result = bench_normalize_throughput()
    assert "operation" in result
    assert "iterations" in result
    assert "ops_per_second" in result
    assert "avg_latency_ms" in result
    assert float(result["ops_per_second"]) > 0  # type: ignore[arg-type]


def test_board_throughput_returns_expected_keys() -> None:
    from bench_throughput import bench_board_throughput

    result = bench_board_throughput()
    assert result["operation"] == "carddraft_board_round_trip"
    assert "ops_per_second" in result
    assert "avg_latency_ms" in result


def test_lint_latency_percentiles() -> None:
    """Verify bench_lint_latency reports ordered percentiles."""
    from bench_latency import bench_lint_latency

    result = bench_lint_latency()
    assert "p50_ms" in result
    assert "p95_ms" in result
    assert float(result["p95_ms"]) >= float(result["p50_ms"])  # type: ignore[arg-type]


def test_read_memory_returns_expected_keys() -> None:
    from bench_memory import bench_read_memory

    result = bench_read_memory()
    assert "peak_memory_kb" in result
    assert "current_memory_kb" in result


def test_compare_table(tmp_path: Path) -> None:
    from compare import build_table

    assert build_table(tmp_path) is None
    (tmp_path / "latency_baseline.json").write_text(
        '{"operation": "carddraft_lint_latency", "p50_ms": 0.5, "p95_ms": 0.9}', encoding="utf-8"
    )
    table = build_table(tmp_path)
    assert table is not None
    assert table.row_count == 1
