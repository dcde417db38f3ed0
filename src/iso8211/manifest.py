from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from html import escape
from pathlib import Path
from typing import Any

import yaml

from iso8211.data.loader import ReaderConfig
from iso8211.errors import ISO8211Error
from iso8211.eval.harness import survey_dataset
from iso8211.model import DEFAULT_ENCODING


@dataclass
class Manifest:
    name: str
    path: Path
    encoding: str = DEFAULT_ENCODING
    hash: str | None = None
    notes: str | None = None
    checks: dict[str, Any] | None = None

    @staticmethod
    def from_mapping(payload: dict[str, Any]) -> Manifest:
        return Manifest(
            name=str(payload["name"]),
            path=Path(payload["path"]),
            encoding=str(payload.get("encoding") or DEFAULT_ENCODING),
            hash=payload.get("hash"),
            notes=payload.get("notes"),
            checks=payload.get("checks"),
        )

    def reader_config(self, skip_invalid: bool = True) -> ReaderConfig:
        max_records = (self.checks or {}).get("max_records")
        return ReaderConfig(
            encoding=self.encoding,
            max_records=int(max_records) if max_records else None,
            skip_invalid=skip_invalid,
        )


def _hash_file(path: Path, algo: str = "sha256") -> str:
    h = hashlib.new(algo)
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return f"{algo}:{h.hexdigest()}"


def validate_manifest(manifest: Manifest) -> dict[str, Any]:
    path = manifest.path
    checks = manifest.checks or {}
    result: dict[str, Any] = {
        "name": manifest.name,
        "path": str(path),
        "exists": path.exists(),
        "size_bytes": path.stat().st_size if path.exists() else 0,
        "encoding": manifest.encoding,
        "hash_expected": manifest.hash,
        "hash_actual": None,
        "hash_match": None,
        "records": 0,
        "decoded": 0,
        "failed": 0,
        "error_counts": {},
        "tags": [],
        "warnings": [],
    }
    if not path.exists():
        result["warnings"].append("file_missing")
        return result

    if manifest.hash:
        algo, _hex = (
            manifest.hash.split(":", 1) if ":" in manifest.hash else ("sha256", manifest.hash)
        )
        actual = _hash_file(path, algo=algo)
        result["hash_actual"] = actual
        result["hash_match"] = actual == manifest.hash
        if not result["hash_match"]:
            result["warnings"].append("hash_mismatch")

    try:
        config = manifest.reader_config()
    except ValueError as exc:
        result["warnings"].append("unknown_encoding")
        result["error"] = str(exc)
        return result
    try:
        summary = survey_dataset(
            path.read_bytes(), encoding=config.encoding, max_records=config.max_records
        )
    except ISO8211Error as exc:
        result["warnings"].append("unreadable_ddr")
        result["error"] = str(exc)
        return result

    result["records"] = summary.records
    result["decoded"] = summary.decoded
    result["failed"] = summary.failed
    result["error_counts"] = summary.error_counts
    result["tags"] = sorted(summary.tag_counts)
    if config.max_records:
        result["records_capped"] = config.max_records

    max_ratio = float(checks.get("max_failure_ratio", 0.0))
    if summary.failure_ratio > max_ratio:
        result["warnings"].append("decode_failures")
    missing = sorted(set(checks.get("required_tags") or []) - set(summary.tag_counts))
    if missing:
        result["missing_tags"] = missing
        result["warnings"].append("missing_tags")
    return result


def load_manifest(path: Path) -> Manifest:
    if path.suffix.lower() in {".yml", ".yaml"}:
        payload = yaml.safe_load(path.read_text())
    else:
        payload = json.loads(path.read_text())
    return Manifest.from_mapping(payload)


def sample_manifest() -> dict[str, Any]:
    return {
        "name": "sample_enc",
        "path": "data/real/US5WA22M.000",
        "encoding": DEFAULT_ENCODING,
        "hash": "sha256:<hex>",
        "notes": "edit with real details",
        "checks": {"max_records": 20000, "max_failure_ratio": 0.0, "required_tags": ["0001"]},
    }


def render_validation_html(result: dict[str, Any], output: Path) -> None:
    """Render a simple HTML report for validation results."""
    output.parent.mkdir(parents=True, exist_ok=True)
    warnings = result.get("warnings", [])
    rows = "".join(
        f"<tr><td>{escape(str(k))}</td><td>{escape(str(v))}</td></tr>"
        for k, v in result.items()
        if k not in {"warnings", "error_counts"}
    )
    errors = result.get("error_counts") or {}
    error_rows = "".join(f"<li>{escape(k)}: {v}</li>" for k, v in errors.items())
    html = f"""<!DOCTYPE html>
<html><head><title>ISO 8211 Manifest Validation</title></head>
<body>
<h1>ISO 8211 Manifest Validation Report</h1>
<p><strong>Name:</strong> {escape(str(result.get("name")))}</p>
<p><strong>Warnings:</strong> {", ".join(warnings) if warnings else "None"}</p>
<table border="1" cellpadding="4" cellspacing="0">
{rows}
</table>
<h3>Decode errors</h3>
<ul>{error_rows}</ul>
</body></html>
"""
    output.write_text(html)
