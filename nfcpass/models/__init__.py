"""Data models for NDEF records and saved tags."""
from nfcpass.models.ndef_record import (
    DecodedRecord,
    EncodableRecord,
    RawRecord,
    RecordKind,
    RenderMode,
    TypeNameFormat,
)
from nfcpass.models.tag import Tag

__all__ = [
    "DecodedRecord",
    "EncodableRecord",
    "RawRecord",
    "RecordKind",
    "RenderMode",
    "Tag",
    "TypeNameFormat",
]
