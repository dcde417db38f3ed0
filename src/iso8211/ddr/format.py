"""Format-control parser.

Turns strings such as ``(A,I(5),2R(8),(b12,A(,)))`` into a flat tuple of
FormatUnit plus the index where the repeating tail begins. Nested groups with
repeat counts are expanded while parsing; only the final group is left open
ended so the decoder can wrap around it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from iso8211.errors import InvalidFormatSpec
from iso8211.model import FIELD_TERM, DataType, FormatList, FormatUnit

TYPE_LETTERS = {dt.value: dt for dt in DataType}


def _is_digit(ch: str) -> bool:
    return len(ch) == 1 and "0" <= ch <= "9"


@dataclass(frozen=True)
class _Repeat:
    count: int
    unit: FormatUnit


@dataclass(frozen=True)
class _Group:
    count: int
    items: tuple[_Item, ...]


_Item = Union[_Repeat, _Group]


class _FormatParser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def _peek(self, ahead: int = 0) -> str:
        index = self.pos + ahead
        return self.text[index] if index < len(self.text) else ""

    def _error(self, message: str) -> InvalidFormatSpec:
        return InvalidFormatSpec(message, spec=self.text, offset=self.pos)

    def parse(self) -> list[_Item]:
        return self._read_items(closing=False)

    def _read_items(self, closing: bool) -> list[_Item]:
        items: list[_Item] = []
        while True:
            ch = self._peek()
            if not ch:
                if closing:
                    raise self._error("missing ')'")
                return items
            if ch == ")":
                if not closing:
                    raise self._error("unbalanced ')'")
                if not items:
                    raise self._error("empty group")
                self.pos += 1
                return items
            if items:
                if ch != ",":
                    raise self._error(f"expected ',' but found {ch!r}")
                self.pos += 1
            items.append(self._read_item())

    def _read_item(self) -> _Item:
        count = self._read_count()
        if self._peek() == "(":
            self.pos += 1
            return _Group(count, tuple(self._read_items(closing=True)))
        return _Repeat(count, self._read_unit())

    def _read_count(self) -> int:
        start = self.pos
        while _is_digit(self._peek()):
            self.pos += 1
        if start == self.pos:
            return 1
        count = int(self.text[start : self.pos])
        if count == 0:
            raise self._error("repeat count must be positive")
        return count

    def _read_unit(self) -> FormatUnit:
        letter = self._peek()
        if not letter:
            raise self._error("missing data type letter")
        if letter == "b" or (letter == "B" and _is_digit(self._peek(1))):
            self.pos += 1
            return self._read_binary_form("little" if letter == "b" else "big")
        data_type = TYPE_LETTERS.get(letter)
        if data_type is None:
            raise self._error(f"unknown data type letter {letter!r}")
        self.pos += 1
        width, delimiter = self._read_size()
        if data_type is DataType.BITFIELD and width:
            if width % 8:
                raise self._error(f"bit field width {width} is not a whole number of bytes")
            width //= 8
        return FormatUnit(data_type, width, delimiter)

    def _read_binary_form(self, byte_order: str) -> FormatUnit:
        form, width = self._peek(), self._peek(1)
        if not (_is_digit(form) and "1" <= form <= "5"):
            raise self._error(f"binary form must be 1-5, got {form!r}")
        if not _is_digit(width):
            raise self._error(f"binary width must be a digit, got {width!r}")
        form_n, width_n = int(form), int(width)
        allowed = (1, 2, 3, 4) if form_n in (1, 2) else (4, 8)
        if width_n not in allowed:
            raise self._error(f"binary form {form_n} cannot be {width_n} bytes wide")
        self.pos += 2
        return FormatUnit(
            DataType.BITFIELD, width_n, binary_form=form_n, byte_order=byte_order  # type: ignore[arg-type]
        )

    def _read_size(self) -> tuple[int, str | None]:
        if self._peek() != "(":
            return 0, None
        close = self.text.find(")", self.pos + 1)
        if close == -1:
            raise self._error("missing ')'")
        content = self.text[self.pos + 1 : close]
        if not content:
            raise self._error("empty width or delimiter")
        digits = [_is_digit(ch) for ch in content]
        if all(digits):
            width = int(content)
            if width == 0:
                raise self._error("width must be positive")
            self.pos = close + 1
            return width, None
        if any(digits):
            raise self._error(f"unit declares both a width and a delimiter: {content!r}")
        if len(content) != 1:
            raise self._error(f"delimiter must be a single character: {content!r}")
        self.pos = close + 1
        return 0, content


def _flatten(item: _Item, out: list[FormatUnit]) -> None:
    if isinstance(item, _Repeat):
        out.extend([item.unit] * item.count)
        return
    for _ in range(item.count):
        for sub in item.items:
            _flatten(sub, out)


def parse_format(text: str) -> FormatList:
    """Parse format controls into a FormatList.

    >>> parse_format("2I(4)").repeat_from is None
    True
    >>> parse_format("(A,(I,R))").repeat_from
    1
    """
    text = text.rstrip(chr(FIELD_TERM))
    if not text:
        return FormatList()
    items = _FormatParser(text).parse()

    wrapped = (
        len(items) == 1
        and isinstance(items[0], _Group)
        and items[0].count == 1
        and text.startswith("(")
        and text.endswith(")")
    )
    if wrapped:
        items = list(items[0].items)  # type: ignore[union-attr]

    units: list[FormatUnit] = []
    last = items[-1]
    if isinstance(last, _Group):
        for item in items[:-1]:
            _flatten(item, units)
        repeat_from: int | None = len(units)
        # the final group is open ended; its own count is ignored
        for sub in last.items:
            _flatten(sub, units)
    else:
        for item in items:
            _flatten(item, units)
        repeat_from = 0 if wrapped else None
    return FormatList(tuple(units), repeat_from)
