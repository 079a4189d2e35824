"""
NDEF Record Models for the NFCPass codec.

This module defines the value types shared by the record decoder and the
record encoder: the NDEF Type Name Format, the closed set of record kinds the
application understands, raw records as they come off (or go onto) a tag,
and the decoder's display-ready output.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Optional


class TypeNameFormat(IntEnum):
    """NDEF Type Name Format (the low 3 bits of a record header)."""
    EMPTY = 0x00
    WELL_KNOWN = 0x01
    MEDIA = 0x02
    ABSOLUTE_URI = 0x03
    EXTERNAL = 0x04
    UNKNOWN = 0x05
    UNCHANGED = 0x06
    RESERVED = 0x07

    @classmethod
    def from_value(cls, value: int) -> 'TypeNameFormat':
        """Maps any integer onto a TNF; only the low 3 bits are significant."""
        return cls(value & 0x07)


class RecordKind(Enum):
    """
    Semantic kind of a record.

    The values are the names stored in a Tag's ``type`` field. UNKNOWN is a
    decode-only sink and is never written back to a tag.
    """
    TEXT = "Text"
    URI = "URI"
    MIME = "MIME"
    UNKNOWN = "Unknown"

    @property
    def is_encodable(self) -> bool:
        return self is not RecordKind.UNKNOWN

    @classmethod
    def from_name(cls, name: str) -> 'RecordKind':
        """Looks a kind up by its stored name, case-insensitively."""
        for kind in cls:
            if kind.value.lower() == str(name).strip().lower():
                return kind
        raise ValueError(f"Unknown record kind: {name!r}")


class RenderMode(Enum):
    """How decoded records are rendered for display."""
    ANNOTATED = "annotated"  # "[Text] ...", "[MIME: ...] ..." prefixes
    LEGACY = "legacy"        # Text or bare hex dump, no prefixes


# Well-known record type markers
TEXT_TYPE = b"T"
URI_TYPE = b"U"
MIME_TEXT_PLAIN = b"text/plain"


@dataclass(frozen=True)
class RawRecord:
    """One NDEF record as read from, or about to be written to, a tag."""
    tnf: TypeNameFormat
    record_type: bytes = b""
    payload: bytes = b""
    record_id: bytes = b""

    def __post_init__(self):
        # Accept plain ints and bytearrays from callers; store canonical types.
        object.__setattr__(self, 'tnf', TypeNameFormat.from_value(int(self.tnf)))
        object.__setattr__(self, 'record_type', bytes(self.record_type))
        object.__setattr__(self, 'payload', bytes(self.payload))
        object.__setattr__(self, 'record_id', bytes(self.record_id))

    @property
    def type_str(self) -> str:
        return self.record_type.decode('utf-8', errors='replace')

    def __str__(self) -> str:
        return (f"RawRecord(TNF: {self.tnf.name}, Type: '{self.type_str}', "
                f"Payload: {self.payload.hex()})")


@dataclass(frozen=True)
class DecodedRecord:
    """
    Output of the record decoder.

    Attributes:
        kind: Semantic kind of the record.
        text: Display rendering. Never empty.
        value: The rendering without any "[...] " annotation. For a readable
            Text record this is exactly the decoded text.
        tnf: The TNF of the source record (kept so UNKNOWN records can still be
            described after decoding).
        record_type: The type bytes of the source record.
    """
    kind: RecordKind
    text: str
    value: str = ""
    tnf: Optional[TypeNameFormat] = None
    record_type: bytes = field(default=b"")

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class EncodableRecord:
    """Input to the record encoder: a writable kind plus its text."""
    kind: RecordKind
    text: str

    @classmethod
    def from_name(cls, kind_name: str, text: str) -> 'EncodableRecord':
        return cls(RecordKind.from_name(kind_name), text)
