"""Directory codec: (tag, length, position) triples closed by a field terminator."""

from __future__ import annotations

from collections.abc import Sequence

from iso8211.errors import MalformedDirectory, TruncatedDirectory
from iso8211.model import FIELD_TERM, DirectoryEntry, Leader


def _decimal(raw: bytes, name: str, tag: str, offset: int) -> int:
    text = raw.decode("ascii", errors="replace")
    if not text.isdigit():
        raise MalformedDirectory(f"field {name} is not decimal: {text!r}", tag=tag, offset=offset)
    return int(text)


def parse_directory(data: bytes, leader: Leader) -> list[DirectoryEntry]:
    """Read directory entries from ``data`` (the bytes right after the leader).

    Reading stops at the first field terminator found where a tag would start;
    anything after it is ignored.
    """
    tag_size, length_size, position_size = leader.tag_size, leader.length_size, leader.position_size
    if not (tag_size and length_size and position_size):
        raise MalformedDirectory("entry map widths must be non-zero")
    entry_size = leader.entry_size

    entries: list[DirectoryEntry] = []
    pos = 0
    while True:
        if pos >= len(data):
            raise TruncatedDirectory("directory ended without a field terminator", offset=pos)
        if data[pos] == FIELD_TERM:
            return entries
        chunk = data[pos : pos + entry_size]
        if len(chunk) < entry_size:
            raise TruncatedDirectory(
                f"directory entry needs {entry_size} bytes, {len(chunk)} left", offset=pos
            )
        try:
            tag = chunk[:tag_size].decode("ascii")
        except UnicodeDecodeError as exc:
            raise MalformedDirectory("tag contains non-ASCII bytes", offset=pos) from exc
        length = _decimal(chunk[tag_size : tag_size + length_size], "length", tag, pos + tag_size)
        position = _decimal(
            chunk[tag_size + length_size :], "position", tag, pos + tag_size + length_size
        )
        entries.append(DirectoryEntry(tag=tag, length=length, position=position))
        pos += entry_size


def parse_ddr_directory(data: bytes, leader: Leader) -> list[DirectoryEntry]:
    return parse_directory(data, leader)


def parse_dr_directory(data: bytes, leader: Leader) -> list[DirectoryEntry]:
    return parse_directory(data, leader)


def directory_length(entries: Sequence[DirectoryEntry], leader: Leader) -> int:
    """Bytes the directory occupies on the wire, terminator included."""
    return len(entries) * leader.entry_size + 1


def encode_directory(entries: Sequence[DirectoryEntry], leader: Leader) -> bytes:
    out = bytearray()
    for entry in entries:
        if len(entry.tag) != leader.tag_size:
            raise ValueError(f"tag {entry.tag!r} does not have width {leader.tag_size}")
        length = f"{entry.length:0{leader.length_size}d}"
        position = f"{entry.position:0{leader.position_size}d}"
        if len(length) != leader.length_size or len(position) != leader.position_size:
            raise ValueError(f"entry {entry.tag!r} does not fit the leader's entry map")
        out += (entry.tag + length + position).encode("ascii")
    out.append(FIELD_TERM)
    return bytes(out)
