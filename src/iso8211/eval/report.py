"""Helpers to log survey summaries for trend tracking."""

from __future__ import annotations

import csv
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, cast

import orjson

from iso8211.eval.harness import SurveySummary


def summary_to_row(
    summary: SurveySummary | Mapping[str, object], source: str, tag: str | None = None
) -> dict:
    """Flatten a SurveySummary into a CSV/JSONL-friendly row."""
    if isinstance(summary, Mapping):
        records = int(cast(Any, summary.get("records", 0)) or 0)
        decoded = int(cast(Any, summary.get("decoded", 0)) or 0)
        failed = int(cast(Any, summary.get("failed", 0)) or 0)
        values = int(cast(Any, summary.get("values", 0)) or 0)
        counts_obj: Any = summary.get("error_counts", {})
        counts = dict(counts_obj) if isinstance(counts_obj, Mapping) else {}
        notes = str(summary.get("notes", ""))
    else:
        records = summary.records
        decoded = summary.decoded
        failed = summary.failed
        values = summary.values
        counts = summary.error_counts
        notes = summary.notes
    return {
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "source": source,
        "tag": tag or "",
        "records": records,
        "decoded": decoded,
        "failed": failed,
        "values": values,
        "error_counts": orjson.dumps(counts).decode(),
        "notes": notes,
    }


def append_csv(path: Path, row: dict) -> None:
    """Append a row to a CSV file, writing headers when the file is new."""
    path.parent.mkdir(parents=True, exist_ok=True)
    is_new = not path.exists()
    with path.open("a", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(row.keys()))
        if is_new:
            writer.writeheader()
        writer.writerow(row)


def append_jsonl(path: Path, payload: object) -> None:
    """Append a JSON line (UTF-8) to a log file; dataclasses serialize as objects."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("ab") as f:
        f.write(orjson.dumps(payload) + b"\n")
