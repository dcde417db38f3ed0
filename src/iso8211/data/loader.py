"""Split an ISO 8211 byte stream into its DDR and data records.

The DDR is read first; data records follow back to back, each sized by its
leader's record length. After an 'R' record the following records carry no
leader or directory: each is a bare field area of the same size that reuses
the 'R' record's leader and directory. A '^' where a leader should start marks
end-of-data padding.
"""

from __future__ import annotations

import codecs
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from iso8211.ddr.parser import parse_ddr
from iso8211.decoder import parse_dr
from iso8211.directory import directory_length, parse_ddr_directory, parse_dr_directory
from iso8211.errors import ISO8211Error, MalformedDirectory, MalformedLeader
from iso8211.leader import parse_ddr_leader, parse_dr_leader
from iso8211.model import (
    DEFAULT_ENCODING,
    LEADER_LENGTH,
    DataRecord,
    DescriptiveRecord,
    DirectoryEntry,
    Leader,
)

log = logging.getLogger(__name__)

PADDING = ord("^")


@dataclass
class ReaderConfig:
    encoding: str = DEFAULT_ENCODING
    max_records: int | None = None
    skip_invalid: bool = False

    def __post_init__(self) -> None:
        try:
            codecs.lookup(self.encoding)
        except LookupError as exc:
            raise ValueError(f"unknown character encoding {self.encoding!r}") from exc


@dataclass(frozen=True)
class RawRecord:
    index: int
    offset: int
    leader: Leader
    directory: tuple[DirectoryEntry, ...]
    area: bytes


def _check_layout(leader: Leader, directory: list[DirectoryEntry], offset: int) -> None:
    expected = LEADER_LENGTH + directory_length(directory, leader)
    if leader.base_address != expected:
        raise MalformedDirectory(
            f"base address {leader.base_address} does not follow the directory (expected {expected})",
            offset=offset + 12,
        )
    declared = leader.base_address + sum(entry.length for entry in directory)
    if leader.record_length != declared:
        raise MalformedDirectory(
            f"record length {leader.record_length} does not match base address plus field lengths ({declared})",
            offset=offset,
        )


def read_ddr(data: bytes, *, encoding: str = DEFAULT_ENCODING) -> DescriptiveRecord:
    """Parse the DDR at the start of ``data``."""
    leader = parse_ddr_leader(data[:LEADER_LENGTH])
    if leader.record_length > len(data):
        raise MalformedLeader(
            f"DDR declares {leader.record_length} bytes but only {len(data)} are available", offset=0
        )
    record = data[: leader.record_length]
    directory = parse_ddr_directory(record[LEADER_LENGTH:], leader)
    _check_layout(leader, directory, 0)
    catalogue = parse_ddr(record, leader, directory, encoding=encoding)
    log.debug("DDR: %d fields, record length %d", len(catalogue), leader.record_length)
    return DescriptiveRecord(leader=leader, directory=tuple(directory), catalogue=catalogue)


def iter_raw_records(data: bytes, ddr: DescriptiveRecord) -> Iterator[RawRecord]:
    """Yield each data record's leader, directory and field area."""
    offset = ddr.leader.record_length
    index = 1
    repeated: RawRecord | None = None
    total = len(data)
    while offset < total:
        if data[offset] == PADDING:
            log.debug("Padding at offset %d; %d trailing bytes ignored", offset, total - offset)
            return
        if repeated is not None:
            size = repeated.leader.record_length - repeated.leader.base_address
            if size <= 0:
                raise MalformedLeader("repeated record has no field area", offset=offset, record=index)
            area = data[offset : offset + size]
            if len(area) < size:
                raise MalformedLeader(
                    f"repeated record needs {size} bytes, {len(area)} left", offset=offset, record=index
                )
            yield RawRecord(index, offset, repeated.leader, repeated.directory, area)
            offset += size
            index += 1
            continue

        try:
            leader = parse_dr_leader(data[offset : offset + LEADER_LENGTH], ddr.leader)
            end = offset + leader.record_length
            if end > total:
                raise MalformedLeader(
                    f"record declares {leader.record_length} bytes, {total - offset} left", offset=offset
                )
            record = data[offset:end]
            directory = parse_dr_directory(record[LEADER_LENGTH:], leader)
            _check_layout(leader, directory, offset)
        except ISO8211Error as exc:
            exc.record = index
            raise
        if leader.tag_size != ddr.leader.tag_size:
            log.warning(
                "Record %d uses %d-character tags, DDR uses %d", index, leader.tag_size, ddr.leader.tag_size
            )
        raw = RawRecord(index, offset, leader, tuple(directory), record[leader.base_address :])
        if leader.repeats_structure:
            log.info("Record %d repeats its leader and directory for the records that follow", index)
            repeated = raw
        yield raw
        offset = end
        index += 1


def iter_data_records(
    data: bytes, ddr: DescriptiveRecord | None = None, config: ReaderConfig | None = None
) -> Iterator[DataRecord]:
    """Decode data records one at a time.

    With ``skip_invalid`` a record whose fields fail to decode is logged and
    skipped; leader and directory damage always stops the stream since the
    next record cannot be located.
    """
    cfg = config or ReaderConfig()
    ddr = ddr or read_ddr(data, encoding=cfg.encoding)
    for raw in iter_raw_records(data, ddr):
        if cfg.max_records is not None and raw.index > cfg.max_records:
            return
        try:
            values = parse_dr(raw.area, raw.directory, ddr.catalogue, encoding=cfg.encoding)
        except ISO8211Error as exc:
            exc.record = raw.index
            if not cfg.skip_invalid:
                raise
            log.warning("Skipping record %d: %s", raw.index, exc)
            continue
        yield DataRecord(
            index=raw.index,
            offset=raw.offset,
            leader=raw.leader,
            directory=raw.directory,
            values=tuple(values),
        )


def load_ddf(path: Path, config: ReaderConfig | None = None) -> tuple[DescriptiveRecord, list[DataRecord]]:
    """Load a whole ISO 8211 file from disk."""
    cfg = config or ReaderConfig()
    data = path.read_bytes()
    ddr = read_ddr(data, encoding=cfg.encoding)
    return ddr, list(iter_data_records(data, ddr, cfg))
