"""Micro-benchmarks for DDR parsing and record decoding on synthetic data."""

from __future__ import annotations

import time

from iso8211.data.generator import generate_synthetic_dataset
from iso8211.data.loader import iter_data_records, read_ddr


def benchmark_decode(records: int = 1000, runs: int = 3) -> dict[str, float]:
    data, _ = generate_synthetic_dataset(count=records)
    total_bytes = len(data)
    best = None
    values = 0
    for _ in range(runs):
        start = time.perf_counter()
        ddr = read_ddr(data)
        values = sum(len(record.values) for record in iter_data_records(data, ddr))
        elapsed = time.perf_counter() - start
        best = elapsed if best is None or elapsed < best else best
    mbps = (total_bytes / 1_000_000) / best if best else 0.0
    return {
        "records": records,
        "values": values,
        "bytes": total_bytes,
        "best_seconds": best or 0.0,
        "mbps": mbps,
    }


if __name__ == "__main__":
    result = benchmark_decode()
    print(result)
