"""Data record decoder.

Walks each field's bytes with the FormatList from the catalogue and emits one
DecodedValue per consumed unit. Fixed units take exactly their width;
delimited units run to their delimiter (or the next unit terminator) and
consume it. When the unit list is used up the walk wraps to the repeating
tail for as long as bytes remain.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Mapping, Sequence

from iso8211.errors import (
    FieldOverrun,
    FieldUnderrun,
    InvalidValue,
    MalformedDirectory,
    UnknownFieldTag,
    UnsupportedDataType,
    UnterminatedField,
)
from iso8211.model import (
    DEFAULT_ENCODING,
    FIELD_TERM,
    UNIT_TERM,
    ArrayDescriptor,
    BitPattern,
    CartesianLabel,
    DataType,
    DecodedValue,
    DirectoryEntry,
    FieldDescriptor,
    FormatUnit,
    StructureType,
    Value,
    VectorLabel,
)

log = logging.getLogger(__name__)

INT_RE = re.compile(r"^[+-]?\d+$")
FLOAT_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)$")
EXP_FLOAT_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)[eE][+-]?\d+$")
BIT_STRING_RE = re.compile(r"^[01]*$")

_NUMERIC = {
    DataType.INT: (INT_RE, int),
    DataType.FLOAT: (FLOAT_RE, float),
    DataType.EXP_FLOAT: (EXP_FLOAT_RE, float),
}


def decode_unit(unit: FormatUnit, chunk: bytes, *, tag: str, offset: int, encoding: str) -> Value:
    """Convert the bytes of one unit into its typed value."""
    data_type = unit.data_type
    if data_type is DataType.CHAR:
        try:
            return chunk.decode(encoding)
        except UnicodeDecodeError as exc:
            raise InvalidValue(f"character data is not {encoding}", tag=tag, offset=offset + exc.start) from exc
    if data_type in _NUMERIC:
        pattern, convert = _NUMERIC[data_type]
        text = chunk.decode("ascii", errors="replace").strip()
        if not text:
            return None
        if not pattern.match(text):
            raise InvalidValue(f"{text!r} is not a valid {data_type.name} value", tag=tag, offset=offset)
        return convert(text)
    if data_type is DataType.CHAR_BIT_STRING:
        text = chunk.decode("ascii", errors="replace").strip()
        if not BIT_STRING_RE.match(text):
            raise InvalidValue(f"{text!r} is not a bit string", tag=tag, offset=offset)
        return BitPattern.from_bit_string(text)
    if data_type is DataType.BITFIELD:
        return BitPattern(
            raw=bytes(chunk),
            bit_length=8 * len(chunk),
            binary_form=unit.binary_form,
            byte_order=unit.byte_order,
        )
    if data_type is DataType.IGNORE:
        return bytes(chunk)
    raise UnsupportedDataType(f"no decoder for {data_type!r}", tag=tag, offset=offset)


def _read_extents(body: bytes, tag: str) -> tuple[tuple[int, ...], int]:
    """Read an inline array descriptor: count UT extent UT ... extent UT."""
    numbers: list[int] = []
    offset = 0
    expected: int | None = None
    while expected is None or len(numbers) <= expected:
        stop = body.find(UNIT_TERM, offset)
        if stop == -1:
            raise InvalidValue("unterminated array descriptor", tag=tag, offset=offset)
        text = body[offset:stop].decode("ascii", errors="replace").strip()
        if not text.isdigit() or int(text) == 0:
            raise InvalidValue(f"bad array descriptor entry {text!r}", tag=tag, offset=offset)
        numbers.append(int(text))
        offset = stop + 1
        if expected is None:
            expected = numbers[0]
    return tuple(numbers[1:]), offset


def _vec_tag(descriptor: FieldDescriptor, unit_index: int, element: int, extents: tuple[int, ...]) -> str | None:
    label = descriptor.label
    if descriptor.structure_type is StructureType.ELEMENTARY:
        return None
    if isinstance(label, VectorLabel):
        return label.tag_for(unit_index)
    if isinstance(label, CartesianLabel):
        return label.tag_for(element)
    if isinstance(label, ArrayDescriptor):
        return label.tag_for(element, extents)
    return str(unit_index)


def _check_elements(
    descriptor: FieldDescriptor, count: int, extents: tuple[int, ...], *, tag: str, offset: int
) -> None:
    label = descriptor.label
    if isinstance(label, ArrayDescriptor):
        expected = math.prod(extents if label.is_variable else label.dimensions)
    elif isinstance(label, CartesianLabel):
        expected = label.size
    else:
        return
    if count < expected:
        raise FieldOverrun(f"array needs {expected} elements, field holds {count}", tag=tag, offset=offset)
    if count > expected:
        raise FieldUnderrun(f"array holds {expected} elements, field carries {count}", tag=tag, offset=offset)


def decode_field(
    tag: str, raw: bytes, descriptor: FieldDescriptor, *, encoding: str = DEFAULT_ENCODING
) -> list[DecodedValue]:
    """Decode one DR field (its bytes including the closing field terminator)."""
    if not raw or raw[-1] != FIELD_TERM:
        raise UnterminatedField("field does not end with a field terminator", tag=tag, offset=len(raw))
    body = raw[:-1]
    fmt = descriptor.format
    units = fmt.units

    offset = 0
    extents: tuple[int, ...] = ()
    if isinstance(descriptor.label, ArrayDescriptor) and descriptor.label.is_variable:
        extents, offset = _read_extents(body, tag)

    values: list[DecodedValue] = []
    index = 0
    while True:
        if index == len(units):
            if not fmt.repeats:
                if offset < len(body):
                    raise FieldUnderrun(
                        f"{len(body) - offset} bytes left after format {fmt} was exhausted",
                        tag=tag,
                        offset=offset,
                    )
                break
            if offset >= len(body):
                break
            index = fmt.repeat_from
        unit = units[index]
        if unit.is_fixed:
            if offset + unit.length > len(body):
                raise FieldOverrun(
                    f"{unit} needs {unit.length} bytes, {len(body) - offset} left",
                    tag=tag,
                    offset=offset,
                )
            chunk = body[offset : offset + unit.length]
            size = unit.length
        else:
            delimiter = ord(unit.delimiter) if unit.delimiter is not None else UNIT_TERM
            stop = body.find(delimiter, offset)
            if stop == -1:
                chunk = body[offset:]
                size = len(chunk)
            else:
                chunk = body[offset:stop]
                size = len(chunk) + 1
        value = decode_unit(unit, chunk, tag=tag, offset=offset, encoding=encoding)
        values.append(
            DecodedValue(
                field_tag=tag,
                vec_tag=_vec_tag(descriptor, index, len(values), extents),
                data_type=unit.data_type,
                value=value,
                offset=offset,
                size=size,
            )
        )
        offset += size
        index += 1
    _check_elements(descriptor, len(values), extents, tag=tag, offset=offset)
    return values


def parse_dr(
    area: bytes,
    entries: Sequence[DirectoryEntry],
    catalogue: Mapping[str, FieldDescriptor],
    *,
    encoding: str = DEFAULT_ENCODING,
) -> list[DecodedValue]:
    """Decode every field of a data record.

    ``area`` is the record's field area (the bytes from the base address on).
    Every entry is checked against the catalogue and the area before any field
    is decoded.
    """
    for entry in entries:
        if entry.tag not in catalogue:
            raise UnknownFieldTag("data record uses a tag the DDR does not declare", tag=entry.tag)
        if entry.end > len(area):
            raise MalformedDirectory(
                f"field spans bytes {entry.position}-{entry.end} of a {len(area)}-byte field area",
                tag=entry.tag,
                offset=entry.position,
            )

    values: list[DecodedValue] = []
    for entry in entries:
        raw = area[entry.position : entry.end]
        decoded = decode_field(entry.tag, raw, catalogue[entry.tag], encoding=encoding)
        log.debug("Field %s: %d values", entry.tag, len(decoded))
        values.extend(decoded)
    return values
