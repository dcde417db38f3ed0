import logging
from pathlib import Path

import orjson
import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from iso8211.data.generator import generate_synthetic_dataset
from iso8211.data.loader import ReaderConfig, iter_data_records, read_ddr
from iso8211.errors import ISO8211Error
from iso8211.eval.harness import survey_dataset, survey_synthetic
from iso8211.eval.report import append_csv, append_jsonl, summary_to_row
from iso8211.eval.summarize import summarize_log
from iso8211.export import records_to_arrow, records_to_jsonl
from iso8211.manifest import load_manifest, render_validation_html, sample_manifest, validate_manifest
from iso8211.model import (
    DEFAULT_ENCODING,
    ArrayDescriptor,
    CartesianLabel,
    FieldDescriptor,
    Label,
    VectorLabel,
)

app = typer.Typer(help="Decode ISO/IEC 8211 files into typed field values.")
dataset_app = typer.Typer(help="Dataset helpers (synthetic fixtures).")
survey_app = typer.Typer(help="Decode whole files and track failures by error kind.")
manifest_app = typer.Typer(help="Dataset manifests: validation and templates.")
console = Console()
err_console = Console(stderr=True)
SUPPORTED_FORMATS = {"json", "jsonl", "arrow"}

app.add_typer(dataset_app, name="dataset")
app.add_typer(survey_app, name="survey")
app.add_typer(manifest_app, name="manifest")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log per-record decoding progress."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True)],
    )


def _read_bytes(path: Path) -> bytes:
    if not path.is_file():
        raise typer.BadParameter(f"Input file not found: {path}")
    return path.read_bytes()


def _reader_config(**kwargs) -> ReaderConfig:
    try:
        return ReaderConfig(**kwargs)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--encoding") from exc


def _fail(exc: ISO8211Error) -> typer.Exit:
    console.print(f"[bold red]{exc.kind}[/] {escape(str(exc))}")
    return typer.Exit(code=1)


def _label_text(label: Label) -> str:
    if isinstance(label, VectorLabel):
        return ("*" if label.repeating else "") + "!".join(label.tags)
    if isinstance(label, CartesianLabel):
        return "*".join("!".join(vector) for vector in label.vectors)
    if isinstance(label, ArrayDescriptor):
        return str(list(label.dimensions)) if label.dimensions else "(variable)"
    return ""


def _describe_field(descriptor: FieldDescriptor) -> dict[str, object]:
    return {
        "tag": descriptor.tag,
        "name": descriptor.name,
        "structure": descriptor.structure_type.name,
        "data_type": descriptor.data_type.name if descriptor.data_type else "MIXED",
        "label": _label_text(descriptor.label),
        "format": str(descriptor.format),
        "tag_pairs": [list(pair) for pair in descriptor.tag_pairs],
    }


@app.command()
def decode(
    input: Path = typer.Argument(..., help="ISO 8211 file to decode."),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Optional path to write decoded output."
    ),
    format: str = typer.Option("json", "--format", "-f", help="Output format: json | jsonl | arrow."),
    max_records: int | None = typer.Option(
        None, "--max-records", help="Stop after this many data records."
    ),
    skip_invalid: bool = typer.Option(
        False, "--skip-invalid", help="Skip data records whose fields fail to decode."
    ),
    encoding: str = typer.Option(DEFAULT_ENCODING, "--encoding", help="Character set for A subfields."),
) -> None:
    """Decode every data record using the file's own DDR."""
    fmt = format.lower()
    if fmt not in SUPPORTED_FORMATS:
        raise typer.BadParameter(f"Unsupported format '{format}'. Choose from {SUPPORTED_FORMATS}.")
    if fmt != "json" and output is None:
        raise typer.BadParameter(f"--output is required for {fmt} output.")

    data = _read_bytes(input)
    console.print(f"[bold green]Read[/] {len(data)} bytes from {input}")
    config = _reader_config(encoding=encoding, max_records=max_records, skip_invalid=skip_invalid)
    try:
        ddr = read_ddr(data, encoding=config.encoding)
        records = list(iter_data_records(data, ddr, config))
    except ISO8211Error as exc:
        raise _fail(exc) from exc

    if fmt == "jsonl":
        written = records_to_jsonl(records, output)
        console.print(f"[bold green]Wrote[/] {written} records to {output}")
        return
    if fmt == "arrow":
        rows = records_to_arrow(records, output)
        console.print(f"[bold green]Wrote[/] {rows} values to {output}")
        return

    payload = {
        "input": str(input),
        "bytes": len(data),
        "fields": [_describe_field(d) for d in ddr.catalogue.descriptors],
        "records": [record.as_dict() for record in records],
    }
    if output:
        output.write_bytes(orjson.dumps(payload))
        console.print(f"[bold green]Wrote decoded output[/] to {output}")
    else:
        console.print(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode(), markup=False)


@app.command()
def describe(
    input: Path = typer.Argument(..., help="ISO 8211 file whose DDR should be listed."),
    encoding: str = typer.Option(DEFAULT_ENCODING, "--encoding", help="Character set of the DDR."),
) -> None:
    """List the leader and field catalogue of a file's DDR."""
    config = _reader_config(encoding=encoding)
    data = _read_bytes(input)
    try:
        ddr = read_ddr(data, encoding=config.encoding)
    except ISO8211Error as exc:
        raise _fail(exc) from exc

    leader = ddr.leader
    console.print(
        f"[bold]DDR[/] level {leader.interchange_level}, {leader.record_length} bytes, "
        f"{len(ddr.catalogue)} fields, entry map "
        f"{leader.length_size}/{leader.position_size}/{leader.tag_size}"
    )
    table = Table(title=str(input))
    for column in ("tag", "name", "structure", "type", "label", "format"):
        table.add_column(column)
    for descriptor in ddr.catalogue.descriptors:
        info = _describe_field(descriptor)
        label = info["label"] or " ".join("".join(pair) for pair in descriptor.tag_pairs)
        table.add_row(
            escape(descriptor.tag),
            escape(descriptor.name),
            str(info["structure"]),
            str(info["data_type"]),
            escape(str(label)),
            escape(str(info["format"])),
        )
    console.print(table)


@dataset_app.command("synthetic")
def dataset_synthetic(
    output: Path = typer.Argument(..., help="Path to write the synthetic ISO 8211 file."),
    metadata: Path | None = typer.Option(
        None, "--metadata", "-m", help="Optional path to write JSON metadata about records."
    ),
    count: int = typer.Option(8, "--count", "-c", help="Number of data records to emit."),
    seed: int = typer.Option(1234, "--seed", help="Seed for reproducible generation."),
) -> None:
    """Generate a DDR plus data records exercising vectors, arrays and binary forms."""
    data, meta = generate_synthetic_dataset(count=count, seed=seed)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(data)
    console.print(f"[bold green]Wrote[/] {len(data)} bytes to {output} ({count} records).")

    if metadata:
        metadata.write_bytes(orjson.dumps(meta, option=orjson.OPT_INDENT_2))
        console.print(f"[bold green]Wrote metadata[/] to {metadata}")


@survey_app.command("run")
def survey_run(
    input: Path | None = typer.Option(
        None,
        "--input",
        "-i",
        help="File to survey. If omitted, a synthetic file is generated.",
    ),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Optional path to write the survey JSON."
    ),
    log_csv: Path | None = typer.Option(
        None, "--log-csv", help="Append summary as a CSV row for trend tracking."
    ),
    log_jsonl: Path | None = typer.Option(
        None, "--log-jsonl", help="Append full payload as JSONL for trend tracking."
    ),
    tag: str | None = typer.Option(None, "--tag", help="Optional tag to mark this run."),
    max_records: int | None = typer.Option(None, "--max-records", help="Survey at most this many records."),
    count: int = typer.Option(8, "--count", "-c", help="Records to generate for a synthetic survey."),
    seed: int = typer.Option(1234, "--seed", help="Seed for synthetic generation."),
) -> None:
    """Decode a whole file, skipping bad records, and summarize failures by kind."""
    if input:
        data = _read_bytes(input)
        try:
            summary = survey_dataset(data, max_records=max_records)
        except ISO8211Error as exc:
            raise _fail(exc) from exc
        payload: dict[str, object] = {"source": str(input), "evaluation": summary, "tag": tag}
    else:
        payload = survey_synthetic(count=count, seed=seed)
        payload["tag"] = tag

    summary = payload["evaluation"]
    if log_csv:
        row = summary_to_row(summary, source=str(input or "synthetic"), tag=tag)  # type: ignore[arg-type]
        append_csv(log_csv, row)
        console.print(f"[bold green]Appended CSV log[/] to {log_csv}")

    if log_jsonl:
        append_jsonl(log_jsonl, payload)
        console.print(f"[bold green]Appended JSONL log[/] to {log_jsonl}")

    if output:
        output.write_bytes(orjson.dumps(payload))
        console.print(f"[bold green]Wrote survey report[/] to {output}")
    else:
        console.print(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode(), markup=False)


@survey_app.command("summarize")
def survey_summarize(
    log: Path = typer.Argument(..., help="CSV or JSONL log file produced by survey run."),
) -> None:
    """Summarize log(s) produced by survey logging."""
    summary = summarize_log(log)
    console.print(orjson.dumps(summary, option=orjson.OPT_INDENT_2).decode(), markup=False)


@manifest_app.command("validate")
def manifest_validate(
    manifest: Path = typer.Argument(..., help="Manifest file (.yaml, .yml or .json)."),
    html: Path | None = typer.Option(None, "--html", help="Optional path for an HTML report."),
    strict: bool = typer.Option(False, "--strict", help="Exit non-zero when warnings are raised."),
) -> None:
    """Check a dataset against its manifest: hash, decodability and required tags."""
    result = validate_manifest(load_manifest(manifest))
    console.print(orjson.dumps(result, option=orjson.OPT_INDENT_2).decode(), markup=False)
    if html:
        render_validation_html(result, html)
        console.print(f"[bold green]Wrote HTML report[/] to {html}")
    if strict and result["warnings"]:
        raise typer.Exit(code=1)


@manifest_app.command("sample")
def manifest_sample(
    output: Path = typer.Argument(..., help="Where to write a manifest template (.yaml or .json)."),
) -> None:
    """Write a manifest template to edit with real dataset details."""
    payload = sample_manifest()
    output.parent.mkdir(parents=True, exist_ok=True)
    if output.suffix.lower() in {".yml", ".yaml"}:
        output.write_text(yaml.safe_dump(payload, sort_keys=False))
    else:
        output.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
    console.print(f"[bold green]Wrote manifest template[/] to {output}")


if __name__ == "__main__":
    app()
