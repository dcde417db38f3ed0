from pathlib import Path

import orjson
import pyarrow.ipc as pa_ipc
from typer.testing import CliRunner

from iso8211.cli import app

runner = CliRunner()


def _synthetic(tmp_path: Path, count: int = 3) -> Path:
    path = tmp_path / "sample.000"
    result = runner.invoke(app, ["dataset", "synthetic", str(path), "--count", str(count), "--seed", "4"])
    assert result.exit_code == 0, result.output
    return path


def test_decode_writes_json(tmp_path: Path) -> None:
    path = _synthetic(tmp_path)
    out = tmp_path / "decoded.json"
    result = runner.invoke(app, ["decode", str(path), "--output", str(out)])
    assert result.exit_code == 0, result.output
    payload = orjson.loads(out.read_bytes())
    assert len(payload["records"]) == 3
    assert [f["tag"] for f in payload["fields"]][:2] == ["0000", "0001"]
    site = next(f for f in payload["fields"] if f["tag"] == "SITE")
    assert site["data_type"] == "MIXED"
    assert site["format"] == "(A,I(4),R(7))"


def test_decode_arrow_requires_output(tmp_path: Path) -> None:
    path = _synthetic(tmp_path)
    result = runner.invoke(app, ["decode", str(path), "--format", "arrow"])
    assert result.exit_code != 0

    out = tmp_path / "decoded.arrow"
    result = runner.invoke(app, ["decode", str(path), "-f", "arrow", "-o", str(out), "--max-records", "1"])
    assert result.exit_code == 0, result.output
    with pa_ipc.open_file(out) as reader:
        assert set(reader.read_all().column("record_index").to_pylist()) == {1}


def test_decode_reports_parse_errors(tmp_path: Path) -> None:
    path = tmp_path / "broken.000"
    path.write_bytes(b"not an iso 8211 file at all")
    result = runner.invoke(app, ["decode", str(path)])
    assert result.exit_code == 1
    assert "MalformedLeader" in result.output


def test_describe_lists_catalogue(tmp_path: Path) -> None:
    path = _synthetic(tmp_path)
    result = runner.invoke(app, ["describe", str(path)])
    assert result.exit_code == 0, result.output
    assert "SNDG" in result.output
    assert "DDR" in result.output


def test_survey_run_logs_and_summarizes(tmp_path: Path) -> None:
    path = _synthetic(tmp_path)
    log_csv = tmp_path / "logs" / "survey.csv"
    report = tmp_path / "survey.json"
    result = runner.invoke(
        app,
        ["survey", "run", "--input", str(path), "--output", str(report), "--log-csv", str(log_csv), "--tag", "ci"],
    )
    assert result.exit_code == 0, result.output
    assert orjson.loads(report.read_bytes())["evaluation"]["decoded"] == 3

    result = runner.invoke(app, ["survey", "summarize", str(log_csv)])
    assert result.exit_code == 0, result.output
    assert '"records_total": 3' in result.output


def test_manifest_sample_and_validate(tmp_path: Path) -> None:
    data_path = _synthetic(tmp_path)
    template = tmp_path / "manifest.yaml"
    result = runner.invoke(app, ["manifest", "sample", str(template)])
    assert result.exit_code == 0, result.output
    assert "required_tags" in template.read_text()

    manifest = tmp_path / "real.json"
    manifest.write_bytes(orjson.dumps({"name": "synthetic", "path": str(data_path)}))
    result = runner.invoke(app, ["manifest", "validate", str(manifest), "--strict"])
    assert result.exit_code == 0, result.output


def test_unknown_encoding_is_a_usage_error(tmp_path: Path) -> None:
    path = _synthetic(tmp_path)
    for command in ("decode", "describe"):
        result = runner.invoke(app, [command, str(path), "--encoding", "not-a-codec"])
        assert result.exit_code == 2, result.output
