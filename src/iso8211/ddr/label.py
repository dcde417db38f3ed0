"""Label parser: vector tags, cartesian labels and array descriptors."""

from __future__ import annotations

import re

from iso8211.errors import InvalidLabel
from iso8211.model import ArrayDescriptor, CartesianLabel, Label, StructureType, VectorLabel

BRACKETED_RE = re.compile(r"^\[\s*(\d+(?:\s*,\s*\d+)*)\s*\]$")
COUNTED_RE = re.compile(r"^\d+(?:,\d+)+$")
TAG_RE = re.compile(r"^[^!*\[\],]+$")


def _split_tags(body: str, label: str) -> list[str]:
    tags = body.split("!")
    for tag in tags:
        if not TAG_RE.match(tag):
            raise InvalidLabel(f"bad vector tag {tag!r} in label {label!r}")
    return tags


def _vector_label(text: str) -> VectorLabel:
    repeating = text.startswith("*")
    body = text[1:] if repeating else text
    if not body:
        return VectorLabel((), repeating)
    return VectorLabel(tuple(_split_tags(body, text)), repeating)


def _cartesian_label(text: str) -> CartesianLabel:
    if "*" in text:
        pieces = text.split("*")
        if pieces[0] == "":
            pieces = pieces[1:]
        vectors = [tuple(_split_tags(piece, text)) for piece in pieces]
    else:
        vectors = [(tag,) for tag in _split_tags(text, text)]
    if len(vectors) < 2:
        raise InvalidLabel(f"array label {text!r} needs at least two vectors")
    return CartesianLabel(rows=vectors[0], cols=vectors[1], extra=tuple(vectors[2:]))


def _array_label(text: str) -> CartesianLabel | ArrayDescriptor:
    if not text:
        return ArrayDescriptor()
    match = BRACKETED_RE.match(text)
    if match:
        dims = tuple(int(part) for part in re.split(r"\s*,\s*", match.group(1)))
    elif COUNTED_RE.match(text):
        numbers = [int(part) for part in text.split(",")]
        count, dims = numbers[0], tuple(numbers[1:])
        if count != len(dims):
            raise InvalidLabel(f"array descriptor {text!r} declares {count} dimensions")
    else:
        return _cartesian_label(text)
    if 0 in dims:
        raise InvalidLabel(f"array descriptor {text!r} has an empty dimension")
    return ArrayDescriptor(dims)


def parse_label(text: str, structure_type: StructureType) -> Label:
    """Parse a DDR label for a field of the given structure.

    >>> parse_label("ROW!COL", StructureType.ARRAY)
    CartesianLabel(rows=('ROW',), cols=('COL',), extra=())
    """
    if structure_type is StructureType.ELEMENTARY:
        if text:
            raise InvalidLabel(f"elementary field cannot carry label {text!r}")
        return None
    if structure_type is StructureType.VECTOR:
        return _vector_label(text)
    return _array_label(text)
