from pathlib import Path

import orjson

from iso8211.eval.harness import RecordFailure, SurveySummary
from iso8211.eval.report import append_csv, append_jsonl, summary_to_row
from iso8211.eval.summarize import summarize_log


def _sample_summary() -> SurveySummary:
    return SurveySummary(
        records=4,
        decoded=3,
        failed=1,
        values=40,
        tag_counts={"0001": 4, "SITE": 4},
        error_counts={"FieldOverrun": 1},
        samples=[RecordFailure(record=2, kind="FieldOverrun", message="I(6) needs 6 bytes, 1 left", tag="SNDG")],
        notes="test summary",
    )


def test_summary_to_row_and_csv(tmp_path: Path):
    row = summary_to_row(_sample_summary(), source="US5WA22M.000", tag="test")
    out = tmp_path / "log.csv"
    append_csv(out, row)
    content = out.read_text()
    assert "US5WA22M.000" in content
    assert "error_counts" in content
    assert row["timestamp"].endswith("Z")


def test_summary_to_row_accepts_mapping():
    summary = {"records": 1, "decoded": 1, "error_counts": {"InvalidValue": 0}}
    row = summary_to_row(summary, source="foo")
    assert row["records"] == 1
    assert row["failed"] == 0


def test_append_jsonl(tmp_path: Path):
    path = tmp_path / "log.jsonl"
    append_jsonl(path, {"a": 1})
    assert path.exists()
    assert orjson.loads(path.read_bytes()) == {"a": 1}


def test_append_jsonl_handles_dataclass(tmp_path: Path):
    path = tmp_path / "log.jsonl"
    append_jsonl(path, {"evaluation": _sample_summary()})
    content = path.read_text().strip()
    assert "error_counts" in content
    assert "SNDG" in content


def test_summarize_log_over_csv(tmp_path: Path):
    out = tmp_path / "log.csv"
    append_csv(out, summary_to_row(_sample_summary(), source="a.000", tag="test"))
    append_csv(out, summary_to_row(_sample_summary(), source="b.000", tag="test"))
    agg = summarize_log(out)
    assert agg["entries"] == 2
    assert agg["records_total"] == 8
    assert agg["failed_total"] == 2
    assert agg["error_counts"] == {"FieldOverrun": 2}
    assert agg["failure_ratio"] == 0.25


def test_summarize_log_over_nested_jsonl(tmp_path: Path):
    out = tmp_path / "log.jsonl"
    append_jsonl(out, {"source": "a.000", "evaluation": _sample_summary(), "tag": None})
    agg = summarize_log(out)
    assert agg["entries"] == 1
    assert agg["records_total"] == 4
    assert agg["error_counts"] == {"FieldOverrun": 1}
