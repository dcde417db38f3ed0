"""Decode a dataset described by a manifest into Arrow/JSONL outputs."""

from __future__ import annotations

import json
from pathlib import Path

from iso8211.data.loader import iter_data_records, read_ddr
from iso8211.export import records_to_arrow, records_to_jsonl
from iso8211.manifest import load_manifest, validate_manifest


def decode_manifest(manifest_path: Path, output_dir: Path, skip_invalid: bool = False) -> dict:
    mf = load_manifest(manifest_path)
    validation = validate_manifest(mf)
    if validation.get("warnings") and not skip_invalid:
        raise RuntimeError(f"Manifest validation warnings: {validation['warnings']}")

    config = mf.reader_config(skip_invalid=skip_invalid)
    data = mf.path.read_bytes()
    ddr = read_ddr(data, encoding=config.encoding)
    records = list(iter_data_records(data, ddr, config))

    output_dir.mkdir(parents=True, exist_ok=True)
    jsonl_path = output_dir / f"{mf.name}.jsonl"
    arrow_path = output_dir / f"{mf.name}.arrow"

    records_to_jsonl(records, jsonl_path)
    rows = records_to_arrow(records, arrow_path)

    return {
        "manifest": mf.name,
        "records": len(records),
        "values": rows,
        "jsonl": str(jsonl_path),
        "arrow": str(arrow_path),
        "validation": validation,
    }


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Decode a dataset described by a manifest.")
    parser.add_argument("manifest", type=Path, help="Path to manifest (json/yaml).")
    parser.add_argument(
        "--output-dir", type=Path, default=Path("artifacts/decoded"), help="Where to write outputs."
    )
    parser.add_argument(
        "--skip-invalid", action="store_true", help="Skip records that fail to decode."
    )
    args = parser.parse_args()

    summary = decode_manifest(args.manifest, args.output_dir, skip_invalid=args.skip_invalid)
    print(json.dumps(summary, indent=2))
