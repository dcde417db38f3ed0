"""Export decoded data records as JSONL or Arrow IPC."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import orjson
import pyarrow as pa

from iso8211.model import DataRecord


def records_to_jsonl(records: Iterable[DataRecord], path: Path, gzip_output: bool = False) -> int:
    """Write one JSON line per data record; returns the number of records written."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if gzip_output:
        import gzip as gzip_lib

        handle = gzip_lib.open(path, "wb")
    else:
        handle = path.open("wb")

    written = 0
    with handle as f:
        for record in records:
            f.write(orjson.dumps(record.as_dict()) + b"\n")
            written += 1
    return written


def records_to_arrow(records: Iterable[DataRecord], path: Path) -> int:
    """Write one Arrow row per decoded value; returns the number of rows written."""
    path.parent.mkdir(parents=True, exist_ok=True)
    columns: dict[str, list] = {
        "record_index": [],
        "field_tag": [],
        "vec_tag": [],
        "data_type": [],
        "value": [],
        "offset": [],
        "size": [],
    }
    for record in records:
        for value in record.values:
            row = value.as_dict()
            columns["record_index"].append(record.index)
            columns["field_tag"].append(row["field_tag"])
            columns["vec_tag"].append(row["vec_tag"])
            columns["data_type"].append(row["data_type"])
            # values are heterogeneous; keep them as JSON to keep the schema flat
            columns["value"].append(orjson.dumps(row["value"]).decode())
            columns["offset"].append(row["offset"])
            columns["size"].append(row["size"])
    table = pa.table(
        {
            "record_index": pa.array(columns["record_index"], type=pa.int64()),
            "field_tag": pa.array(columns["field_tag"], type=pa.string()),
            "vec_tag": pa.array(columns["vec_tag"], type=pa.string()),
            "data_type": pa.array(columns["data_type"], type=pa.string()),
            "value": pa.array(columns["value"], type=pa.string()),
            "offset": pa.array(columns["offset"], type=pa.int64()),
            "size": pa.array(columns["size"], type=pa.int64()),
        }
    )
    with pa.OSFile(str(path), "wb") as sink:
        with pa.ipc.new_file(sink, table.schema) as writer:
            writer.write_table(table)
    return table.num_rows
