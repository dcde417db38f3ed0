import pytest

from iso8211.directory import encode_directory, parse_ddr_directory, parse_dr_directory
from iso8211.errors import MalformedDirectory, TruncatedDirectory
from iso8211.model import DirectoryEntry, Leader, LeaderId

LEADER = Leader(record_length=0, leader_id=LeaderId.DR, base_address=0, length_size=2, position_size=3, tag_size=4)


def test_parse_directory_reads_entries_until_terminator() -> None:
    raw = b"000107000SITE21007" + b"\x1e" + b"field area bytes"
    entries = parse_dr_directory(raw, LEADER)
    assert entries == [
        DirectoryEntry("0001", 7, 0),
        DirectoryEntry("SITE", 21, 7),
    ]
    assert entries[0].is_record_identifier
    assert entries[0].is_reserved
    assert not entries[1].is_reserved


def test_parse_directory_is_idempotent_and_encodes_back() -> None:
    raw = b"000009000SNDG25009GRID19034\x1e"
    first = parse_ddr_directory(raw, LEADER)
    assert parse_ddr_directory(raw, LEADER) == first
    assert encode_directory(first, LEADER) == raw


def test_file_control_tag_is_reserved() -> None:
    entry = parse_ddr_directory(b"000045000\x1e", LEADER)[0]
    assert entry.is_file_control


def test_empty_directory_is_just_a_terminator() -> None:
    assert parse_dr_directory(b"\x1e", LEADER) == []


@pytest.mark.parametrize("raw", [b"", b"000107000SITE21007", b"000107000SI"])
def test_missing_terminator_is_truncated(raw: bytes) -> None:
    with pytest.raises(TruncatedDirectory):
        parse_dr_directory(raw, LEADER)


def test_non_decimal_length_is_malformed() -> None:
    with pytest.raises(MalformedDirectory) as excinfo:
        parse_dr_directory(b"00010x000\x1e", LEADER)
    assert excinfo.value.tag == "0001"
    assert excinfo.value.offset == 4
