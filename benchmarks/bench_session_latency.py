"""Benchmark: Session save/resume latency — per-request p50/p99.

Measures the per-request latency of saving a session and resuming it from
the returned cookie, using the in-memory store with encryption enabled.
"""
from __future__ import annotations

import json
import sys
import time
from pathlib import Path
from typing import Any

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from kv_cookie_sessions.session.manager import SessionManager
from kv_cookie_sessions.store.memory import InMemoryStore

_WARMUP: int = 200
_ITERATIONS: int = 5_000


class _Request:
    def __init__(self, cookies: dict[str, str] | None = None) -> None:
        self.cookies = cookies or {}


class _Response:
    def __init__(self) -> None:
        self.cookies: dict[str, str] = {}

    def set_cookie(self, key: str, value: str = "", **kwargs: Any) -> None:
        self.cookies[key] = value


def _round_trip(manager: SessionManager, index: int) -> None:
    response = _Response()
    session = manager.new(_Request(), "bench")
    session.values["counter"] = index
    manager.save(_Request(), response, session)
    manager.new(_Request({"bench": response.cookies["bench"]}), "bench")


def bench_session_round_trip_latency() -> dict[str, object]:
    """Benchmark SessionManager save + resume per-request latency.

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms, p50_latency_ms, p99_latency_ms.
    """
    manager = SessionManager(InMemoryStore(), b"h" * 32, b"b" * 32)

    for i in range(_WARMUP):
        _round_trip(manager, i)

    latencies_ms: list[float] = []
    for i in range(_ITERATIONS):
        t0 = time.perf_counter()
        _round_trip(manager, i)
        latencies_ms.append((time.perf_counter() - t0) * 1000)

    sorted_lats = sorted(latencies_ms)
    n = len(sorted_lats)
    total = sum(latencies_ms) / 1000

    result: dict[str, object] = {
        "operation": "session_round_trip_latency",
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "avg_latency_ms": round(sum(latencies_ms) / n, 4),
        "p50_latency_ms": round(sorted_lats[n // 2], 4),
        "p99_latency_ms": round(sorted_lats[min(int(n * 0.99), n - 1)], 4),
    }
    print(
        f"[bench_session_latency] {result['operation']}: "
        f"p50={result['p50_latency_ms']:.4f}ms  "
        f"p99={result['p99_latency_ms']:.4f}ms"
    )
    return result


def run_benchmark() -> dict[str, object]:
    """Entry point returning the benchmark result dict."""
    return bench_session_round_trip_latency()


if __name__ == "__main__":
    result = run_benchmark()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "latency_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(result, fh, indent=2)
    print(f"Results saved to {output_path}")
