"""Field descriptor assembler for the data descriptive record.

Each DDR field is laid out as::

    field controls | name UT label UT format controls FT

where the controls are ``field_control_length`` characters (structure code,
data type code, two auxiliary characters, printable FT/UT stand-ins and a
truncated escape sequence). The file-control field (tag 0000) carries field
tag pairs in the label slot instead of a label.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence

from iso8211.ddr.format import parse_format
from iso8211.ddr.label import parse_label
from iso8211.errors import (
    DuplicateTag,
    InvalidFormatSpec,
    InvalidLabel,
    InvalidValue,
    ISO8211Error,
    MalformedDirectory,
    UnknownStructureCode,
    UnsupportedDataType,
    UnterminatedField,
)
from iso8211.model import (
    DATA_TYPE_CODES,
    DEFAULT_ENCODING,
    FIELD_TERM,
    UNIT_TERM,
    ArrayDescriptor,
    Catalogue,
    DataType,
    DirectoryEntry,
    FieldDescriptor,
    FormatList,
    FormatUnit,
    Label,
    Leader,
    StructureType,
    VectorLabel,
)

log = logging.getLogger(__name__)


def _controls(controls: str, fcl: int, tag: str) -> tuple[StructureType, DataType | None]:
    if fcl == 0:
        # interchange level 1: no field controls, character data only
        return StructureType.ELEMENTARY, DataType.CHAR
    if len(controls) < fcl:
        raise UnknownStructureCode(
            f"field controls are truncated: {len(controls)} of {fcl} characters", tag=tag, offset=len(controls)
        )
    try:
        structure = StructureType(controls[0])
    except ValueError:
        raise UnknownStructureCode(f"unknown structure code {controls[0]!r}", tag=tag, offset=0) from None
    code = controls[1:2]
    if code not in DATA_TYPE_CODES:
        raise UnsupportedDataType(f"unknown data type code {code!r}", tag=tag, offset=1)
    return structure, DATA_TYPE_CODES[code]


def _tag_pairs(text: str, tag_size: int, tag: str) -> tuple[tuple[str, str], ...]:
    width = 2 * tag_size
    if len(text) % width:
        raise InvalidLabel(f"field tag pairs {text!r} are not whole {tag_size}-character pairs", tag=tag)
    return tuple(
        (text[i : i + tag_size], text[i + tag_size : i + width]) for i in range(0, len(text), width)
    )


def default_format(structure: StructureType, data_type: DataType | None, label: Label) -> FormatList:
    """Format used when a field declares no format controls: delimited units of the field type."""
    if data_type is None:
        raise InvalidFormatSpec("fields of mixed data type need format controls")
    unit = FormatUnit(data_type)
    if structure is StructureType.ELEMENTARY:
        return FormatList((unit,), None)
    if structure is StructureType.VECTOR and isinstance(label, VectorLabel):
        count = len(label.tags) or 1
        repeat = 0 if label.repeating or not label.tags else None
        return FormatList((unit,) * count, repeat)
    return FormatList((unit,), 0)


def parse_field_descriptor(
    tag: str, raw: bytes, leader: Leader, *, encoding: str = DEFAULT_ENCODING
) -> FieldDescriptor:
    """Build one FieldDescriptor from a DDR field's bytes (terminator included)."""
    if not raw or raw[-1] != FIELD_TERM:
        raise UnterminatedField("DDR field does not end with a field terminator", tag=tag, offset=len(raw))
    try:
        text = raw[:-1].decode(encoding)
    except UnicodeDecodeError as exc:
        raise InvalidValue(f"field is not valid {encoding}: {exc.reason}", tag=tag, offset=exc.start) from None
    fcl = leader.field_control_length
    controls, rest = text[:fcl], text[fcl:]
    structure, data_type = _controls(controls, fcl, tag)

    parts = rest.split(chr(UNIT_TERM), 2)
    parts += [""] * (3 - len(parts))
    name, label_text, format_text = parts

    try:
        tag_pairs: tuple[tuple[str, str], ...] = ()
        if structure is StructureType.ELEMENTARY and tag.strip("0") == "" and label_text:
            tag_pairs = _tag_pairs(label_text, leader.tag_size, tag)
            label: Label = None
        else:
            label = parse_label(label_text, structure)
        fmt = parse_format(format_text)
        if not fmt.units:
            fmt = default_format(structure, data_type, label)
    except ISO8211Error as exc:
        if exc.tag is None:
            exc.tag = tag
        raise

    if structure is StructureType.ARRAY and isinstance(label, ArrayDescriptor) and label.is_variable:
        log.debug("Field %s is a variable array; extents are read from each record", tag)
    return FieldDescriptor(
        tag=tag,
        name=name,
        structure_type=structure,
        data_type=data_type,
        label=label,
        format=fmt,
        controls=controls,
        tag_pairs=tag_pairs,
    )


def parse_ddr(
    record: bytes,
    leader: Leader,
    entries: Sequence[DirectoryEntry],
    *,
    encoding: str = DEFAULT_ENCODING,
) -> Catalogue:
    """Assemble the field catalogue of a DDR.

    ``record`` is the whole DDR (leader included); field positions are taken
    relative to ``leader.base_address``.
    """
    counts = Counter(entry.tag for entry in entries)
    duplicates = [tag for tag, count in counts.items() if count > 1]
    if duplicates:
        raise DuplicateTag(f"DDR declares tag {duplicates[0]!r} {counts[duplicates[0]]} times", tag=duplicates[0])

    area = record[leader.base_address :]
    descriptors: list[FieldDescriptor] = []
    for entry in entries:
        if entry.end > len(area):
            raise MalformedDirectory(
                f"field spans bytes {entry.position}-{entry.end} of a {len(area)}-byte field area",
                tag=entry.tag,
                offset=entry.position,
            )
        raw = area[entry.position : entry.end]
        descriptor = parse_field_descriptor(entry.tag, raw, leader, encoding=encoding)
        log.debug(
            "DDR field %s %r: %s/%s format=%s",
            entry.tag,
            descriptor.name,
            descriptor.structure_type.name,
            descriptor.data_type.name if descriptor.data_type else "MIXED",
            descriptor.format,
        )
        descriptors.append(descriptor)
    return Catalogue(descriptors)
