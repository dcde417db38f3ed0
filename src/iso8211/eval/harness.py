"""Survey harness: decode a whole file and tally what went right and wrong.

Purpose:
- Give a per-file health check (records decoded, failures by error kind).
- Skip data records whose fields fail to decode and keep going.
- Stop, with a note, at leader or directory damage since the stream cannot be resynchronised.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field

from iso8211.data.generator import generate_synthetic_dataset
from iso8211.data.loader import iter_raw_records, read_ddr
from iso8211.decoder import parse_dr
from iso8211.errors import ISO8211Error
from iso8211.model import DEFAULT_ENCODING

log = logging.getLogger(__name__)


@dataclass
class RecordFailure:
    record: int | None
    kind: str
    message: str
    tag: str | None = None


@dataclass
class SurveySummary:
    records: int
    decoded: int
    failed: int
    values: int
    tag_counts: dict[str, int]
    error_counts: dict[str, int]
    samples: list[RecordFailure] = field(default_factory=list)
    notes: str = ""

    @property
    def failure_ratio(self) -> float:
        return round(self.failed / self.records, 4) if self.records else 0.0


def _failure(exc: ISO8211Error) -> RecordFailure:
    return RecordFailure(record=exc.record, kind=exc.kind, message=exc.message, tag=exc.tag)


def survey_dataset(
    data: bytes,
    *,
    encoding: str = DEFAULT_ENCODING,
    max_records: int | None = None,
    sample_limit: int = 3,
) -> SurveySummary:
    """Decode every data record in ``data`` and summarize the outcome.

    A DDR that cannot be parsed raises; everything after it is tallied.
    """
    ddr = read_ddr(data, encoding=encoding)
    tag_counts: Counter[str] = Counter()
    error_counts: Counter[str] = Counter()
    samples: list[RecordFailure] = []
    records = decoded = values = 0
    notes = "complete"

    def note_failure(exc: ISO8211Error) -> None:
        error_counts[exc.kind] += 1
        if len(samples) < sample_limit:
            samples.append(_failure(exc))

    try:
        for raw in iter_raw_records(data, ddr):
            if max_records is not None and raw.index > max_records:
                notes = f"capped at {max_records} records"
                break
            records += 1
            tag_counts.update(entry.tag for entry in raw.directory)
            try:
                decoded_values = parse_dr(raw.area, raw.directory, ddr.catalogue, encoding=encoding)
            except ISO8211Error as exc:
                exc.record = raw.index
                log.debug("Record %d failed: %s", raw.index, exc)
                note_failure(exc)
                continue
            decoded += 1
            values += len(decoded_values)
    except ISO8211Error as exc:
        records += 1
        note_failure(exc)
        notes = f"stopped at record {exc.record}: {exc.kind}"
        log.warning("Survey stopped: %s", exc)

    return SurveySummary(
        records=records,
        decoded=decoded,
        failed=records - decoded,
        values=values,
        tag_counts=dict(tag_counts),
        error_counts=dict(error_counts),
        samples=samples,
        notes=notes,
    )


def survey_synthetic(count: int = 8, seed: int = 1234) -> dict[str, object]:
    """Generate a synthetic file and return its survey plus generator metadata."""
    data, metadata = generate_synthetic_dataset(count=count, seed=seed)
    summary = survey_dataset(data)
    return {
        "generator": {"count": count, "seed": seed, "bytes": len(data)},
        "evaluation": summary,
        "metadata": metadata,
    }
