"""Data model shared by the DDR parser, the DR decoder and the outer layers.

All records are frozen dataclasses holding tuples, so a catalogue built once
from a DDR can be shared read-only across every data record decode.
"""

from __future__ import annotations

import math
import struct
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Union

from iso8211.errors import DuplicateTag

FIELD_TERM = 0x1E
UNIT_TERM = 0x1F
LEADER_LENGTH = 24
DEFAULT_ENCODING = "latin-1"

ByteOrder = Literal["big", "little"]


class LeaderId(str, Enum):
    DDR = "L"
    DR = "D"
    DR_REPEAT = "R"


class StructureType(str, Enum):
    ELEMENTARY = "0"
    VECTOR = "1"
    ARRAY = "2"


class DataType(str, Enum):
    """Subfield types, valued by their format-control letter."""

    CHAR = "A"
    INT = "I"
    FLOAT = "R"
    EXP_FLOAT = "S"
    CHAR_BIT_STRING = "C"
    BITFIELD = "B"
    IGNORE = "X"


# Field-controls data type codes; "6" (mixed) has no single DataType.
DATA_TYPE_CODES: dict[str, DataType | None] = {
    "0": DataType.CHAR,
    "1": DataType.INT,
    "2": DataType.FLOAT,
    "3": DataType.EXP_FLOAT,
    "4": DataType.CHAR_BIT_STRING,
    "5": DataType.BITFIELD,
    "6": None,
}


@dataclass(frozen=True)
class Leader:
    record_length: int
    leader_id: LeaderId
    base_address: int
    length_size: int
    position_size: int
    tag_size: int
    interchange_level: int | None = None
    field_control_length: int = 0
    inline_code_extension: str = " "
    version: str = " "
    application_indicator: str = " "
    extended_charset: str = "   "

    @property
    def is_ddr(self) -> bool:
        return self.leader_id is LeaderId.DDR

    @property
    def repeats_structure(self) -> bool:
        """True for an 'R' data record whose leader and directory carry forward."""
        return self.leader_id is LeaderId.DR_REPEAT

    @property
    def entry_size(self) -> int:
        return self.tag_size + self.length_size + self.position_size


@dataclass(frozen=True)
class DirectoryEntry:
    tag: str
    length: int
    position: int

    @property
    def end(self) -> int:
        return self.position + self.length

    @property
    def is_file_control(self) -> bool:
        return self.tag.strip("0") == ""

    @property
    def is_record_identifier(self) -> bool:
        return self.tag.isdigit() and int(self.tag) == 1

    @property
    def is_reserved(self) -> bool:
        return self.is_file_control or self.is_record_identifier


@dataclass(frozen=True)
class FormatUnit:
    data_type: DataType
    length: int = 0
    delimiter: str | None = None
    binary_form: int | None = None
    byte_order: ByteOrder = "big"

    def __post_init__(self) -> None:
        if self.length and self.delimiter is not None:
            raise ValueError("a format unit is either fixed-width or delimited, not both")

    @property
    def is_fixed(self) -> bool:
        return self.length > 0

    def __str__(self) -> str:
        letter = self.data_type.value
        if self.binary_form is not None:
            prefix = "b" if self.byte_order == "little" else "B"
            return f"{prefix}{self.binary_form}{self.length}"
        if self.length:
            width = self.length * 8 if self.data_type is DataType.BITFIELD else self.length
            return f"{letter}({width})"
        if self.delimiter is not None:
            return f"{letter}({self.delimiter})"
        return letter


@dataclass(frozen=True)
class FormatList:
    """Flattened format units plus the index the repeating tail starts at."""

    units: tuple[FormatUnit, ...] = ()
    repeat_from: int | None = None

    def __len__(self) -> int:
        return len(self.units)

    def __iter__(self) -> Iterator[FormatUnit]:
        return iter(self.units)

    @property
    def repeats(self) -> bool:
        return self.repeat_from is not None

    @property
    def tail(self) -> tuple[FormatUnit, ...]:
        if self.repeat_from is None:
            return ()
        return self.units[self.repeat_from :]

    def __str__(self) -> str:
        def render(units: Sequence[FormatUnit]) -> str:
            return ",".join(str(unit) for unit in units)

        if self.repeat_from is None:
            return render(self.units)
        head, tail = self.units[: self.repeat_from], self.units[self.repeat_from :]
        if not head:
            return f"({render(tail)})"
        return f"({render(head)},({render(tail)}))"


@dataclass(frozen=True)
class VectorLabel:
    tags: tuple[str, ...] = ()
    repeating: bool = False

    def tag_for(self, index: int) -> str:
        if not self.tags:
            return str(index)
        return self.tags[index % len(self.tags)]


@dataclass(frozen=True)
class CartesianLabel:
    rows: tuple[str, ...]
    cols: tuple[str, ...]
    extra: tuple[tuple[str, ...], ...] = ()

    @property
    def vectors(self) -> tuple[tuple[str, ...], ...]:
        return (self.rows, self.cols, *self.extra)

    @property
    def size(self) -> int:
        return math.prod(len(vector) for vector in self.vectors)

    def tag_for(self, index: int) -> str:
        """Tag combination for the element at ``index``; the last vector varies fastest."""
        remaining = index % self.size
        parts: list[str] = []
        for vector in reversed(self.vectors):
            parts.append(vector[remaining % len(vector)])
            remaining //= len(vector)
        return "*".join(reversed(parts))


@dataclass(frozen=True)
class ArrayDescriptor:
    """Array extents, innermost dimension first. Empty means extents travel with the data."""

    dimensions: tuple[int, ...] = ()

    @property
    def is_variable(self) -> bool:
        return not self.dimensions

    def tag_for(self, index: int, dimensions: Sequence[int] | None = None) -> str:
        dims = tuple(dimensions) if dimensions else self.dimensions
        if not dims:
            return str(index)
        remaining = index % math.prod(dims)
        coords = []
        for extent in dims:
            coords.append(remaining % extent)
            remaining //= extent
        return "[" + ",".join(str(c) for c in coords) + "]"


Label = Union[VectorLabel, CartesianLabel, ArrayDescriptor, None]


@dataclass(frozen=True)
class FieldDescriptor:
    tag: str
    name: str
    structure_type: StructureType
    data_type: DataType | None
    label: Label
    format: FormatList
    controls: str = ""
    tag_pairs: tuple[tuple[str, str], ...] = ()


class Catalogue(Mapping[str, FieldDescriptor]):
    """Ordered, read-only tag -> FieldDescriptor mapping built from one DDR."""

    def __init__(self, descriptors: Sequence[FieldDescriptor]) -> None:
        self._descriptors = tuple(descriptors)
        index: dict[str, FieldDescriptor] = {}
        for descriptor in self._descriptors:
            if descriptor.tag in index:
                raise DuplicateTag("tag declared twice in catalogue", tag=descriptor.tag)
            index[descriptor.tag] = descriptor
        self._index = index

    def __getitem__(self, tag: str) -> FieldDescriptor:
        return self._index[tag]

    def __iter__(self) -> Iterator[str]:
        return iter(self._index)

    def __len__(self) -> int:
        return len(self._descriptors)

    @property
    def descriptors(self) -> tuple[FieldDescriptor, ...]:
        return self._descriptors

    def __repr__(self) -> str:
        return f"Catalogue({list(self._index)!r})"


@dataclass(frozen=True)
class BitPattern:
    """Opaque bit payload from a C, B or binary-form subfield."""

    raw: bytes
    bit_length: int
    binary_form: int | None = None
    byte_order: ByteOrder = "big"

    @classmethod
    def from_bit_string(cls, bits: str) -> BitPattern:
        width = (len(bits) + 7) // 8
        raw = int(bits, 2).to_bytes(width, "big") if bits else b""
        return cls(raw=raw, bit_length=len(bits))

    @property
    def bits(self) -> str:
        if not self.bit_length:
            return ""
        return format(int.from_bytes(self.raw, "big"), f"0{self.bit_length}b")[-self.bit_length :]

    def unsigned(self) -> int:
        return int.from_bytes(self.raw, self.byte_order, signed=False)

    def signed(self) -> int:
        return int.from_bytes(self.raw, self.byte_order, signed=True)

    def real(self) -> float:
        if len(self.raw) not in (4, 8):
            raise ValueError(f"cannot read a {len(self.raw)}-byte value as a float")
        code = "f" if len(self.raw) == 4 else "d"
        prefix = "<" if self.byte_order == "little" else ">"
        return struct.unpack(prefix + code, self.raw)[0]

    def interpret(self) -> int | float | BitPattern:
        """Native value for binary forms 1 (unsigned), 2 (signed) and 4 (float)."""
        if self.binary_form == 1:
            return self.unsigned()
        if self.binary_form == 2:
            return self.signed()
        if self.binary_form == 4:
            return self.real()
        return self

    def to_json(self) -> dict[str, object]:
        payload: dict[str, object] = {"bits": self.bits, "hex": self.raw.hex()}
        native = self.interpret()
        if not isinstance(native, BitPattern):
            payload["value"] = native
        return payload


Value = Union[str, int, float, BitPattern, bytes, None]


@dataclass(frozen=True)
class DecodedValue:
    field_tag: str
    vec_tag: str | None
    data_type: DataType
    value: Value
    offset: int
    size: int

    @property
    def native(self) -> Value:
        if isinstance(self.value, BitPattern):
            return self.value.interpret()
        return self.value

    def as_dict(self) -> dict[str, object]:
        value: object = self.value
        if isinstance(value, BitPattern):
            value = value.to_json()
        elif isinstance(value, bytes):
            value = value.hex()
        return {
            "field_tag": self.field_tag,
            "vec_tag": self.vec_tag,
            "data_type": self.data_type.name,
            "value": value,
            "offset": self.offset,
            "size": self.size,
        }


@dataclass(frozen=True)
class DescriptiveRecord:
    leader: Leader
    directory: tuple[DirectoryEntry, ...]
    catalogue: Catalogue


@dataclass(frozen=True)
class DataRecord:
    index: int
    offset: int
    leader: Leader
    directory: tuple[DirectoryEntry, ...]
    values: tuple[DecodedValue, ...] = field(default_factory=tuple)

    @property
    def fields(self) -> dict[str, list[DecodedValue]]:
        grouped: dict[str, list[DecodedValue]] = {}
        for value in self.values:
            grouped.setdefault(value.field_tag, []).append(value)
        return grouped

    def __getitem__(self, tag: str) -> list[DecodedValue]:
        return [value for value in self.values if value.field_tag == tag]

    def as_dict(self) -> dict[str, object]:
        return {
            "index": self.index,
            "offset": self.offset,
            "leader_id": self.leader.leader_id.value,
            "values": [value.as_dict() for value in self.values],
        }
