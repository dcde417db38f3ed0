"""Leader codec: the 24-byte ASCII header that opens every DDR and DR.

DDR layout::

    0-4   record length        12-16 base address of field area
    5     interchange level    17-19 extended character set
    6     leader id ('L')      20    size of field length
    7     inline code ext.     21    size of field position
    8     version              22    reserved ('0')
    9     application ind.     23    size of field tag
    10-11 field control length

A DR only fills record length, leader id ('D' or 'R'), base address and the
entry map (20-23); the other positions are blank.
"""

from __future__ import annotations

from iso8211.errors import MalformedLeader
from iso8211.model import LEADER_LENGTH, Leader, LeaderId


def _text(data: bytes) -> str:
    if len(data) != LEADER_LENGTH:
        raise MalformedLeader(f"leader must be {LEADER_LENGTH} bytes, got {len(data)}", offset=0)
    try:
        return data.decode("ascii")
    except UnicodeDecodeError as exc:
        raise MalformedLeader("leader contains non-ASCII bytes", offset=exc.start) from exc


def _decimal(text: str, start: int, end: int, name: str) -> int:
    chunk = text[start:end]
    if not chunk.isdigit():
        raise MalformedLeader(f"{name} is not decimal: {chunk!r}", offset=start)
    return int(chunk)


def parse_ddr_leader(data: bytes) -> Leader:
    """Decode the leader of a data descriptive record."""
    text = _text(data)
    if text[6] != LeaderId.DDR.value:
        raise MalformedLeader(f"DDR leader id must be 'L', got {text[6]!r}", offset=6)
    level = _decimal(text, 5, 6, "interchange level")
    if level not in (1, 2, 3):
        raise MalformedLeader(f"interchange level must be 1-3, got {level}", offset=5)
    leader = Leader(
        record_length=_decimal(text, 0, 5, "record length"),
        leader_id=LeaderId.DDR,
        base_address=_decimal(text, 12, 17, "base address"),
        length_size=_decimal(text, 20, 21, "size of field length"),
        position_size=_decimal(text, 21, 22, "size of field position"),
        tag_size=_decimal(text, 23, 24, "size of field tag"),
        interchange_level=level,
        field_control_length=_decimal(text, 10, 12, "field control length"),
        inline_code_extension=text[7],
        version=text[8],
        application_indicator=text[9],
        extended_charset=text[17:20],
    )
    for name, offset, width in (
        ("size of field length", 20, leader.length_size),
        ("size of field position", 21, leader.position_size),
        ("size of field tag", 23, leader.tag_size),
    ):
        if width == 0:
            raise MalformedLeader(f"{name} must be non-zero in a DDR", offset=offset)
    return leader


def parse_dr_leader(data: bytes, governing: Leader | None = None) -> Leader:
    """Decode a data record leader.

    Zero entry-map widths are accepted only on an 'R' record and are taken
    from ``governing`` (normally the DDR leader).
    """
    text = _text(data)
    try:
        leader_id = LeaderId(text[6])
    except ValueError:
        raise MalformedLeader(f"DR leader id must be 'D' or 'R', got {text[6]!r}", offset=6) from None
    if leader_id is LeaderId.DDR:
        raise MalformedLeader("DR leader id must be 'D' or 'R', got 'L'", offset=6)

    widths = {}
    for name, attr, offset in (
        ("size of field length", "length_size", 20),
        ("size of field position", "position_size", 21),
        ("size of field tag", "tag_size", 23),
    ):
        width = _decimal(text, offset, offset + 1, name)
        if width == 0:
            if leader_id is not LeaderId.DR_REPEAT:
                raise MalformedLeader(f"{name} is zero in a standalone DR", offset=offset)
            if governing is None:
                raise MalformedLeader(f"{name} is zero and no governing leader is known", offset=offset)
            width = getattr(governing, attr)
        widths[attr] = width

    return Leader(
        record_length=_decimal(text, 0, 5, "record length"),
        leader_id=leader_id,
        base_address=_decimal(text, 12, 17, "base address"),
        **widths,
    )


def encode_leader(leader: Leader) -> bytes:
    """Render a leader back to its 24-byte wire form."""
    for name in ("length_size", "position_size", "tag_size"):
        if not 0 <= getattr(leader, name) <= 9:
            raise ValueError(f"{name} must be a single digit")
    if not 0 <= leader.record_length <= 99999 or not 0 <= leader.base_address <= 99999:
        raise ValueError("record length and base address must fit in five digits")
    entry_map = f"{leader.length_size}{leader.position_size}0{leader.tag_size}"
    if leader.is_ddr:
        if len(leader.extended_charset) != 3:
            raise ValueError("extended character set must be three characters")
        text = (
            f"{leader.record_length:05d}{leader.interchange_level or 3}L"
            f"{leader.inline_code_extension}{leader.version}{leader.application_indicator}"
            f"{leader.field_control_length:02d}{leader.base_address:05d}"
            f"{leader.extended_charset}{entry_map}"
        )
    else:
        text = (
            f"{leader.record_length:05d} {leader.leader_id.value}     "
            f"{leader.base_address:05d}   {entry_map}"
        )
    return text.encode("ascii")
