"""Summaries over survey logs (CSV or JSONL)."""

from __future__ import annotations

import csv
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import orjson


def _iter_csv(path: Path) -> Iterator[dict[str, str]]:
    with path.open(newline="") as f:
        reader = csv.DictReader(f)
        yield from reader


def _iter_jsonl(path: Path) -> Iterator[dict[str, Any]]:
    with path.open("rb") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            yield orjson.loads(line)


def summarize_log(path: Path) -> dict[str, object]:
    """Compute simple aggregates from a CSV/JSONL log."""
    entries = 0
    records_total = 0
    failed_total = 0
    error_counts: dict[str, int] = {}

    iterator = _iter_csv(path) if path.suffix.lower() == ".csv" else _iter_jsonl(path)

    for entry in iterator:
        # CSV rows are flat strings; JSONL may hold the full survey payload.
        if isinstance(entry.get("evaluation"), dict):
            entry = entry["evaluation"]
        if "records" not in entry:
            continue
        entries += 1
        records_total += int(entry["records"])
        failed_total += int(entry.get("failed") or 0)

        counts_raw = entry.get("error_counts") or {}
        counts = orjson.loads(counts_raw) if isinstance(counts_raw, str) else counts_raw
        for kind, count in counts.items():
            error_counts[kind] = error_counts.get(kind, 0) + int(count)

    ratio = failed_total / records_total if records_total else 0.0
    return {
        "entries": entries,
        "records_total": records_total,
        "failed_total": failed_total,
        "failure_ratio": round(ratio, 4),
        "error_counts": error_counts,
    }
