"""Error kinds raised while parsing ISO 8211 descriptive and data records.

Every parse call is all-or-nothing for its record: it either returns a complete
result or raises one of these with enough context (field tag, byte offset and,
once the loader attaches it, the record index) to point at the offending bytes.
"""

from __future__ import annotations


class ISO8211Error(ValueError):
    """Base class for every parse and decode failure."""

    kind = "ISO8211Error"

    def __init__(
        self,
        message: str,
        *,
        tag: str | None = None,
        offset: int | None = None,
        record: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.tag = tag
        self.offset = offset
        self.record = record

    def __init_subclass__(cls, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)
        cls.kind = cls.__name__

    def __str__(self) -> str:
        context = []
        if self.record is not None:
            context.append(f"record={self.record}")
        if self.tag is not None:
            context.append(f"tag={self.tag!r}")
        if self.offset is not None:
            context.append(f"offset={self.offset}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"

    def as_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind,
            "message": self.message,
            "tag": self.tag,
            "offset": self.offset,
            "record": self.record,
        }


class MalformedLeader(ISO8211Error):
    """Leader bytes are short or a fixed-width subfield is not valid."""


class TruncatedDirectory(ISO8211Error):
    """Input ended before the directory's field terminator."""


class MalformedDirectory(ISO8211Error):
    """A directory entry is not decimal or points outside the record."""


class InvalidFormatSpec(ISO8211Error):
    """Format controls violate the format grammar."""

    def __init__(self, message: str, *, spec: str = "", **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.spec = spec

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base} in format {self.spec!r}" if self.spec else base


class InvalidLabel(ISO8211Error):
    """Label does not match the field's structure type."""


class UnknownStructureCode(ISO8211Error):
    """Field controls carry a structure code other than 0, 1 or 2."""


class DuplicateTag(ISO8211Error):
    """Two DDR directory entries share a tag."""


class UnknownFieldTag(ISO8211Error):
    """A data record refers to a tag the catalogue does not describe."""


class FieldOverrun(ISO8211Error):
    """A fixed-width unit extends past the end of its field."""


class FieldUnderrun(ISO8211Error):
    """Bytes remain in a field after a non-repeating format is exhausted."""


class UnsupportedDataType(ISO8211Error):
    """Field controls carry a data type code this decoder does not know."""


class UnterminatedField(ISO8211Error):
    """A field's bytes do not end with the field terminator."""


class InvalidValue(ISO8211Error):
    """A subfield or descriptor does not hold a valid value for its type or encoding."""
