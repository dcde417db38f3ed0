import pytest

from iso8211.ddr.label import parse_label
from iso8211.errors import InvalidLabel
from iso8211.model import ArrayDescriptor, CartesianLabel, StructureType, VectorLabel


def test_elementary_field_has_no_label() -> None:
    assert parse_label("", StructureType.ELEMENTARY) is None
    with pytest.raises(InvalidLabel):
        parse_label("NAME", StructureType.ELEMENTARY)


def test_vector_label_splits_tags() -> None:
    label = parse_label("RCNM!RCID!OBJL", StructureType.VECTOR)
    assert label == VectorLabel(("RCNM", "RCID", "OBJL"))
    assert label.tag_for(4) == "RCID"


def test_leading_star_marks_repeating_vector() -> None:
    label = parse_label("*ATTL!ATVL", StructureType.VECTOR)
    assert label == VectorLabel(("ATTL", "ATVL"), repeating=True)


def test_empty_vector_label_tags_by_index() -> None:
    label = parse_label("", StructureType.VECTOR)
    assert label == VectorLabel()
    assert label.tag_for(3) == "3"


def test_row_col_without_star_is_cartesian() -> None:
    label = parse_label("ROW!COL", StructureType.ARRAY)
    assert label == CartesianLabel(rows=("ROW",), cols=("COL",))


def test_star_separated_vectors_build_cartesian_label() -> None:
    label = parse_label("X!Y*A!B!C*P!Q", StructureType.ARRAY)
    assert isinstance(label, CartesianLabel)
    assert label.rows == ("X", "Y")
    assert label.cols == ("A", "B", "C")
    assert label.extra == (("P", "Q"),)
    assert label.size == 12
    assert label.tag_for(0) == "X*A*P"
    assert label.tag_for(1) == "X*A*Q"
    assert label.tag_for(2) == "X*B*P"
    assert label.tag_for(6) == "Y*A*P"


def test_bracketed_array_descriptor() -> None:
    label = parse_label("[3, 4]", StructureType.ARRAY)
    assert label == ArrayDescriptor((3, 4))
    assert label.tag_for(0) == "[0,0]"
    assert label.tag_for(4) == "[1,1]"


def test_counted_array_descriptor() -> None:
    assert parse_label("2,3,4", StructureType.ARRAY) == ArrayDescriptor((3, 4))


def test_empty_array_label_is_variable() -> None:
    label = parse_label("", StructureType.ARRAY)
    assert isinstance(label, ArrayDescriptor)
    assert label.is_variable


@pytest.mark.parametrize(
    ("text", "structure"),
    [
        ("[3,4]", StructureType.VECTOR),
        ("ROW*COL", StructureType.VECTOR),
        ("A!!B", StructureType.VECTOR),
        ("ROW", StructureType.ARRAY),
        ("3,3,4", StructureType.ARRAY),
        ("[3,0]", StructureType.ARRAY),
        ("A!B*", StructureType.ARRAY),
    ],
)
def test_mismatched_labels_are_rejected(text: str, structure: StructureType) -> None:
    with pytest.raises(InvalidLabel):
        parse_label(text, structure)
