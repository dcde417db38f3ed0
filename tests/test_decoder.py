import pytest

from iso8211.data.generator import SAMPLE_FIELDS, build_ddr, build_dr
from iso8211.data.loader import read_ddr
from iso8211.ddr.format import parse_format
from iso8211.decoder import decode_field, parse_dr
from iso8211.directory import parse_dr_directory
from iso8211.errors import (
    FieldOverrun,
    FieldUnderrun,
    InvalidValue,
    MalformedDirectory,
    UnknownFieldTag,
    UnterminatedField,
)
from iso8211.leader import parse_dr_leader
from iso8211.model import (
    ArrayDescriptor,
    BitPattern,
    CartesianLabel,
    DataType,
    DirectoryEntry,
    FieldDescriptor,
    StructureType,
    VectorLabel,
)


def _descriptor(fmt: str, structure=StructureType.VECTOR, label=None) -> FieldDescriptor:
    if label is None and structure is StructureType.VECTOR:
        label = VectorLabel()
    return FieldDescriptor("TEST", "TEST FIELD", structure, None, label, parse_format(fmt))


def test_counted_fixed_units_decode_to_integers() -> None:
    descriptor = _descriptor("2I(4)", label=VectorLabel(("YCOO", "XCOO")))
    values = decode_field("TEST", b"00120034\x1e", descriptor)
    assert [v.value for v in values] == [12, 34]
    assert [v.vec_tag for v in values] == ["YCOO", "XCOO"]
    assert [(v.offset, v.size) for v in values] == [(0, 4), (4, 4)]
    assert all(v.data_type is DataType.INT for v in values)


def test_spans_cover_the_field_up_to_its_terminator() -> None:
    descriptor = _descriptor("(A,I(4),R(7))", label=VectorLabel(("NAME", "CODE", "DPTH")))
    raw = b"Harbor\x1f0042  12.50\x1e"
    values = decode_field("SITE", raw, descriptor)
    assert [v.value for v in values] == ["Harbor", 42, 12.5]
    assert sum(v.size for v in values) + 1 == len(raw)
    assert values[0].size == 7  # text plus its unit terminator


def test_repeating_tail_consumes_exact_multiples() -> None:
    descriptor = _descriptor("(I(3))")
    values = decode_field("TEST", b"001002003\x1e", descriptor)
    assert [v.value for v in values] == [1, 2, 3]
    assert [v.vec_tag for v in values] == ["0", "0", "0"]


def test_partial_repeat_overruns() -> None:
    with pytest.raises(FieldOverrun) as excinfo:
        decode_field("TEST", b"0010020030\x1e", _descriptor("(I(3))"))
    assert excinfo.value.tag == "TEST"
    assert excinfo.value.offset == 9


def test_short_field_overruns_fixed_unit() -> None:
    with pytest.raises(FieldOverrun):
        decode_field("TEST", b"0012003\x1e", _descriptor("2I(4)"))


def test_leftover_bytes_without_repeat_underrun() -> None:
    with pytest.raises(FieldUnderrun) as excinfo:
        decode_field("TEST", b"001200349\x1e", _descriptor("2I(4)"))
    assert excinfo.value.offset == 8


def test_tail_after_fixed_head_repeats() -> None:
    descriptor = _descriptor("(A(2),(I(2),R(3)))", label=VectorLabel(("KIND", "IDNT", "VALU")))
    values = decode_field("TEST", b"AB011.5022.5\x1e", descriptor)
    assert [v.value for v in values] == ["AB", 1, 1.5, 2, 2.5]
    assert [v.vec_tag for v in values] == ["KIND", "IDNT", "VALU", "IDNT", "VALU"]


def test_declared_delimiter_and_unit_terminator() -> None:
    values = decode_field("TEST", b"ab,12\x1f\x1e", _descriptor("(A(,),I)"))
    assert [v.value for v in values] == ["ab", 12]
    assert [v.size for v in values] == [3, 3]


def test_empty_numeric_subfield_is_none() -> None:
    values = decode_field("TEST", b"\x1f7\x1e", _descriptor("(I,I)"))
    assert [v.value for v in values] == [None, 7]


@pytest.mark.parametrize(("fmt", "raw"), [("(I(3))", b"1x3\x1e"), ("(S)", b"1.5\x1e"), ("(C(3))", b"102\x1e")])
def test_malformed_values_are_rejected(fmt: str, raw: bytes) -> None:
    with pytest.raises(InvalidValue):
        decode_field("TEST", raw, _descriptor(fmt))


def test_exponent_float_and_ignored_bytes() -> None:
    values = decode_field("TEST", b"\x00\x01-1.5E3\x1e", _descriptor("(X(2),S)"))
    assert values[0].value == b"\x00\x01"
    assert values[1].value == -1500.0


def test_field_without_terminator_is_rejected() -> None:
    with pytest.raises(UnterminatedField):
        decode_field("TEST", b"0012", _descriptor("(I(4))"))


def test_array_descriptor_tags_elements_by_coordinates() -> None:
    descriptor = _descriptor("(I(3))", StructureType.ARRAY, ArrayDescriptor((2, 3)))
    values = decode_field("GRID", b"001002003004005006\x1e", descriptor)
    assert [v.value for v in values] == [1, 2, 3, 4, 5, 6]
    assert [v.vec_tag for v in values] == ["[0,0]", "[1,0]", "[0,1]", "[1,1]", "[0,2]", "[1,2]"]


def test_cartesian_label_tags_elements() -> None:
    label = CartesianLabel(rows=("X", "Y"), cols=("A", "B"))
    values = decode_field("TEST", b"1234\x1e", _descriptor("(I(1))", StructureType.ARRAY, label))
    assert [v.vec_tag for v in values] == ["X*A", "X*B", "Y*A", "Y*B"]


def test_variable_array_reads_extents_from_data() -> None:
    descriptor = _descriptor("(I(2))", StructureType.ARRAY, ArrayDescriptor())
    values = decode_field("VARR", b"2\x1f2\x1f3\x1f010203040506\x1e", descriptor)
    assert len(values) == 6
    assert values[0].offset == 6
    assert values[1].vec_tag == "[1,0]"
    assert values[-1].vec_tag == "[1,2]"


def test_fixed_array_must_fill_its_extents() -> None:
    descriptor = _descriptor("(I(3))", StructureType.ARRAY, ArrayDescriptor((2, 3)))
    with pytest.raises(FieldUnderrun) as excinfo:
        decode_field("GRID", b"001002003004005006007\x1e", descriptor)
    assert excinfo.value.tag == "GRID"
    with pytest.raises(FieldOverrun):
        decode_field("GRID", b"001002003004005\x1e", descriptor)


def test_cartesian_label_counts_its_elements() -> None:
    label = CartesianLabel(rows=("X", "Y"), cols=("A", "B"))
    with pytest.raises(FieldOverrun):
        decode_field("TEST", b"123\x1e", _descriptor("(I(1))", StructureType.ARRAY, label))


def test_variable_array_rejects_extra_elements() -> None:
    descriptor = _descriptor("(I(2))", StructureType.ARRAY, ArrayDescriptor())
    with pytest.raises(FieldUnderrun):
        decode_field("VARR", b"2\x1f2\x1f3\x1f01020304050607\x1e", descriptor)
    with pytest.raises(FieldOverrun):
        decode_field("VARR", b"2\x1f2\x1f3\x1f0102030405\x1e", descriptor)


def test_elementary_values_have_no_vec_tag() -> None:
    values = decode_field("TEST", b"00042\x1e", _descriptor("(I(5))", StructureType.ELEMENTARY))
    assert values[0].vec_tag is None
    assert values[0].value == 42


def test_binary_forms_decode_to_bit_patterns() -> None:
    raw = (0x1234).to_bytes(2, "little") + (-5).to_bytes(4, "little", signed=True) + (7).to_bytes(4, "big")
    values = decode_field("TEST", raw + b"\x1e", _descriptor("(b12,b24,B14)"))
    assert all(isinstance(v.value, BitPattern) for v in values)
    assert [v.native for v in values] == [0x1234, -5, 7]
    assert values[0].value.bits == "0011010000010010"


def test_bit_string_and_bit_field_widths() -> None:
    values = decode_field("TEST", b"1010\xff\x00\x1e", _descriptor("(C(4),B(16))"))
    assert values[0].value.bits == "1010"
    assert values[0].value.bit_length == 4
    assert values[1].value.bit_length == 16
    assert values[1].value.unsigned() == 0xFF00


def _sample_record():
    ddr = read_ddr(build_ddr(SAMPLE_FIELDS))
    raw = build_dr(
        [
            ("0001", b"00007"),
            ("SITE", b"Reef\x1f0815  33.25"),
            ("SNDG", b"000001-00002000003000004"),
            ("GRID", b"001002003004005006"),
            ("QUAL", b"\x01\x02"),
        ]
    )
    leader = parse_dr_leader(raw[:24], ddr.leader)
    entries = parse_dr_directory(raw[24:], leader)
    return ddr, raw[leader.base_address :], entries


def test_parse_dr_decodes_every_field() -> None:
    ddr, area, entries = _sample_record()
    values = parse_dr(area, entries, ddr.catalogue)
    by_tag: dict[str, list] = {}
    for value in values:
        by_tag.setdefault(value.field_tag, []).append(value)
    assert [v.value for v in by_tag["0001"]] == [7]
    assert [v.value for v in by_tag["SITE"]] == ["Reef", 815, 33.25]
    assert [v.value for v in by_tag["SNDG"]] == [1, -2, 3, 4]
    assert [v.vec_tag for v in by_tag["SNDG"]] == ["YCOO", "XCOO", "YCOO", "XCOO"]
    assert by_tag["QUAL"][0].native == 0x0201
    for entry in entries:
        spans = sum(v.size for v in by_tag[entry.tag])
        assert spans + 1 == entry.length


def test_parse_dr_rejects_unknown_tags_before_decoding() -> None:
    ddr, area, entries = _sample_record()
    with pytest.raises(UnknownFieldTag) as excinfo:
        parse_dr(area, [*entries, DirectoryEntry("ZZZZ", 1, 0)], ddr.catalogue)
    assert excinfo.value.tag == "ZZZZ"


def test_parse_dr_rejects_spans_outside_the_area() -> None:
    ddr, area, entries = _sample_record()
    with pytest.raises(MalformedDirectory):
        parse_dr(area, [DirectoryEntry("0001", len(area) + 1, 0)], ddr.catalogue)
