"""Synthetic ISO 8211 file builder.

Builds DDRs and DRs byte-for-byte (leader, directory, field area) so tests,
benchmarks and the CLI have real files to chew on. The sample dataset mixes:
- a file-control field with field tag pairs
- a record identifier with a wrapped fixed-width format
- a mixed-type vector (delimited text, fixed integer, fixed float)
- a repeating coordinate vector
- a fixed-extent integer array
- a little-endian binary quality flag
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass

from iso8211.directory import encode_directory
from iso8211.leader import encode_leader
from iso8211.model import FIELD_TERM, LEADER_LENGTH, UNIT_TERM, DirectoryEntry, Leader, LeaderId

UT = chr(UNIT_TERM)
FT = chr(FIELD_TERM)
SITE_NAMES = ["Harbor", "Shoal", "Reef", "Channel", "Inlet", "Spit"]


@dataclass
class FieldSpec:
    """A DDR field declaration: controls are padded to the leader's control length."""

    tag: str
    name: str
    controls: str
    label: str = ""
    format: str = ""

    def body(self, field_control_length: int) -> bytes:
        controls = self.controls.ljust(field_control_length)[:field_control_length]
        text = f"{controls}{self.name}{UT}{self.label}{UT}{self.format}"
        return text.encode("latin-1")


def _width(values: Sequence[int]) -> int:
    return max(1, max((len(str(v)) for v in values), default=1))


def _assemble(
    fields: Sequence[tuple[str, bytes]], tag_size: int, make_leader
) -> bytes:
    """Lay out leader, directory and field area; bodies get their field terminator here."""
    bodies = [(tag, body + bytes([FIELD_TERM])) for tag, body in fields]
    positions, cursor = [], 0
    for _, body in bodies:
        positions.append(cursor)
        cursor += len(body)
    length_size = _width([len(body) for _, body in bodies])
    position_size = _width(positions)
    entries = [
        DirectoryEntry(tag=tag, length=len(body), position=pos)
        for (tag, body), pos in zip(bodies, positions, strict=True)
    ]
    probe = Leader(0, LeaderId.DR, 0, length_size, position_size, tag_size)
    directory = encode_directory(entries, probe)
    base = LEADER_LENGTH + len(directory)
    leader = make_leader(base + cursor, base, length_size, position_size)
    return encode_leader(leader) + directory + b"".join(body for _, body in bodies)


def build_ddr(
    fields: Sequence[FieldSpec],
    *,
    interchange_level: int = 3,
    field_control_length: int = 9,
    tag_size: int = 4,
) -> bytes:
    """Encode a complete data descriptive record."""

    def make_leader(record_length: int, base: int, length_size: int, position_size: int) -> Leader:
        return Leader(
            record_length=record_length,
            leader_id=LeaderId.DDR,
            base_address=base,
            length_size=length_size,
            position_size=position_size,
            tag_size=tag_size,
            interchange_level=interchange_level,
            field_control_length=field_control_length,
            inline_code_extension="E",
            version="1",
        )

    bodies = [(spec.tag, spec.body(field_control_length)) for spec in fields]
    return _assemble(bodies, tag_size, make_leader)


def build_dr(
    fields: Sequence[tuple[str, bytes]], *, tag_size: int = 4, leader_id: LeaderId = LeaderId.DR
) -> bytes:
    """Encode a data record from (tag, body) pairs; bodies exclude the field terminator."""

    def make_leader(record_length: int, base: int, length_size: int, position_size: int) -> Leader:
        return Leader(record_length, leader_id, base, length_size, position_size, tag_size)

    return _assemble(fields, tag_size, make_leader)


SAMPLE_FIELDS = [
    FieldSpec("0000", "SYNTHETIC SURVEY FILE", "0000;&   ", "0001SITESITESNDGSITEGRIDSITEQUAL"),
    FieldSpec("0001", "RECORD IDENTIFIER", "0100;&   ", "", "(I(5))"),
    FieldSpec("SITE", "SITE DESCRIPTION", "1600;&   ", "NAME!CODE!DPTH", "(A,I(4),R(7))"),
    FieldSpec("SNDG", "SOUNDING COORDINATES", "1100;&   ", "*YCOO!XCOO", "(2I(6))"),
    FieldSpec("GRID", "DEPTH GRID", "2100;&   ", "[2,3]", "(I(3))"),
    FieldSpec("QUAL", "QUALITY FLAGS", "0500;&   ", "", "(b12)"),
]


@dataclass
class SiteSpec:
    record_id: int
    name: str
    code: int
    depth: float
    soundings: list[tuple[int, int]]
    grid: list[int]
    quality: int


def _record_fields(spec: SiteSpec) -> list[tuple[str, bytes]]:
    site = f"{spec.name}{UT}{spec.code:04d}{spec.depth:7.2f}".encode("latin-1")
    sndg = "".join(f"{y:06d}{x:06d}" for y, x in spec.soundings).encode("ascii")
    grid = "".join(f"{v:03d}" for v in spec.grid).encode("ascii")
    return [
        ("0001", f"{spec.record_id:05d}".encode("ascii")),
        ("SITE", site),
        ("SNDG", sndg),
        ("GRID", grid),
        ("QUAL", spec.quality.to_bytes(2, "little")),
    ]


def generate_synthetic_dataset(count: int = 8, *, seed: int = 1234) -> tuple[bytes, list[dict]]:
    """Generate a DDR plus ``count`` data records, with the values each record should decode to."""
    rng = random.Random(seed)
    out = bytearray(build_ddr(SAMPLE_FIELDS))
    metadata: list[dict] = []
    for i in range(count):
        spec = SiteSpec(
            record_id=i + 1,
            name=rng.choice(SITE_NAMES),
            code=rng.randint(0, 9999),
            depth=round(rng.uniform(0, 999), 2),
            soundings=[
                (rng.randint(-99999, 99999), rng.randint(-99999, 99999))
                for _ in range(rng.randint(1, 4))
            ],
            grid=[rng.randint(0, 999) for _ in range(6)],
            quality=rng.randint(0, 0xFFFF),
        )
        out += build_dr(_record_fields(spec))
        metadata.append(
            {
                "record_id": spec.record_id,
                "name": spec.name,
                "code": spec.code,
                "depth": spec.depth,
                "soundings": [list(pair) for pair in spec.soundings],
                "grid": spec.grid,
                "quality": spec.quality,
            }
        )
    return bytes(out), metadata
