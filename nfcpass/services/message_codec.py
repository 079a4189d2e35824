"""
NDEF Message Codec for NFCPass.

Composes the record decoder and encoder over an ordered NDEF message. Decoded
records are joined with a newline for display and storage; this separator is
not part of the wire format. Writing is limited to exactly one record per
message.

Conversion between RawRecord lists and NDEF message octets (record headers,
short-record and chunk flags) is delegated to ndeflib. Records are handled as
generic ``ndef.Record`` objects so ndeflib never interprets payloads; that is
this module's job.
"""

import logging
import re
from typing import Any, Iterable, List, Sequence, Tuple

import ndef  # type: ignore - ndeflib might not have stubs

from ..models.ndef_record import (
    DecodedRecord,
    EncodableRecord,
    RawRecord,
    RecordKind,
    RenderMode,
    TypeNameFormat,
)
from .record_decoder import INVALID_URI, UNREADABLE_TAG, UNREADABLE_TEXT, decode_raw_record
from .record_encoder import EncodingError, EncodingErrorReason, encode_record

logger = logging.getLogger(__name__)

RECORD_SEPARATOR = "\n"

# ndeflib record type string prefixes
_WKT_PREFIX = "urn:nfc:wkt:"
_EXT_PREFIX = "urn:nfc:ext:"
_MEDIA_TYPE_PATTERN = re.compile(r'[a-zA-Z0-9-]+/[a-zA-Z0-9-+.]+')

# Start of a decoded record's line: an annotation, or a bare fallback marker
_RECORD_BOUNDARY_PATTERN = re.compile(
    r'^(?:\[(Text|URI|MIME: [^\]\n]*|Absolute URI|External|Unknown|Well-Known: [^\]\n]*)\] '
    r'|(?:' + '|'.join(re.escape(marker) for marker in (UNREADABLE_TAG, UNREADABLE_TEXT, INVALID_URI)) + r')$)',
    re.MULTILINE,
)


def split_record_type(record_type: str) -> Tuple[TypeNameFormat, bytes]:
    """Maps an ndeflib record type string back to its (TNF, TYPE) pair."""
    if record_type == "":
        return TypeNameFormat.EMPTY, b""
    if record_type.startswith(_WKT_PREFIX):
        return TypeNameFormat.WELL_KNOWN, record_type[len(_WKT_PREFIX):].encode('utf-8')
    if _MEDIA_TYPE_PATTERN.match(record_type):
        return TypeNameFormat.MEDIA, record_type.encode('utf-8')
    if record_type.startswith(_EXT_PREFIX):
        return TypeNameFormat.EXTERNAL, record_type[len(_EXT_PREFIX):].encode('utf-8')
    if record_type == "unknown":
        return TypeNameFormat.UNKNOWN, b""
    if record_type == "unchanged":
        return TypeNameFormat.UNCHANGED, b""
    return TypeNameFormat.ABSOLUTE_URI, record_type.encode('utf-8')


def join_record_type(tnf: TypeNameFormat, record_type: bytes) -> str:
    """Builds the ndeflib record type string for a (TNF, TYPE) pair."""
    type_str = record_type.decode('ascii')
    if tnf is TypeNameFormat.EMPTY:
        return ""
    if tnf is TypeNameFormat.WELL_KNOWN:
        return _WKT_PREFIX + type_str
    if tnf is TypeNameFormat.EXTERNAL:
        return _EXT_PREFIX + type_str
    if tnf is TypeNameFormat.UNKNOWN:
        return "unknown"
    if tnf is TypeNameFormat.UNCHANGED:
        return "unchanged"
    if tnf is TypeNameFormat.RESERVED:
        raise ValueError("Records with the reserved TNF value 7 can not be encoded.")
    return type_str


def _annotation_kind(label: str) -> RecordKind:
    if label == RecordKind.TEXT.value:
        return RecordKind.TEXT
    if label == RecordKind.URI.value:
        return RecordKind.URI
    if label.startswith("MIME: "):
        return RecordKind.MIME
    return RecordKind.UNKNOWN


def writable_value(nfc_data: str, kind: RecordKind) -> str:
    """
    Recovers the value to write from a saved tag's display data.

    A read stores the annotated rendering of every record ("[URI] https://...",
    "[MIME: text/plain] 68656c6c6f", ...), one per line. The value written back
    is the first record of ``kind`` without its annotation; MIME hex dumps are
    turned back into text when they hold valid UTF-8. Data with no matching
    annotation (edited by hand, read in legacy mode, a fallback marker) is
    returned unchanged.
    """
    boundaries = list(_RECORD_BOUNDARY_PATTERN.finditer(nfc_data))
    for i, match in enumerate(boundaries):
        label = match.group(1)
        if label is None or _annotation_kind(label) is not kind:
            continue
        if i + 1 < len(boundaries):
            end = boundaries[i + 1].start() - len(RECORD_SEPARATOR)
        else:
            end = len(nfc_data)
        value = nfc_data[match.end():end]
        if kind is RecordKind.MIME:
            try:
                return bytes.fromhex(value).decode('utf-8')
            except ValueError:
                logger.debug("MIME value is not a UTF-8 hex dump; writing it as text.")
        return value
    return nfc_data


def to_message_bytes(records: Sequence[RawRecord]) -> bytes:
    """
    Serialises raw records into NDEF message octets.

    Raises:
        ndef.EncodeError / ValueError: if a record cannot be represented.
    """
    ndef_records = [
        ndef.Record(join_record_type(r.tnf, r.record_type), r.record_id.decode('latin-1'), r.payload)
        for r in records
    ]
    return b''.join(ndef.message_encoder(ndef_records))


def from_message_bytes(octets: bytes) -> List[RawRecord]:
    """
    Splits NDEF message octets into raw records without interpreting payloads.

    Raises:
        ndef.DecodeError: if the message framing is malformed.
    """
    records = []
    for record in ndef.message_decoder(bytes(octets), known_types={}):
        tnf, record_type = split_record_type(record.type)
        records.append(RawRecord(tnf, record_type, bytes(record.data), record.name.encode('latin-1')))
    return records


class MessageCodec:
    """Decodes NDEF messages for display and encodes values for writing."""

    def __init__(self, mode: RenderMode = RenderMode.ANNOTATED,
                 expand_uri_prefixes: bool = False, text_status_byte: bool = True):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.mode = mode
        self.expand_uri_prefixes = expand_uri_prefixes
        self.text_status_byte = text_status_byte

    @classmethod
    def from_config(cls, app_config: Any) -> 'MessageCodec':
        """Creates a codec from the application configuration."""
        return cls(
            mode=app_config.render_mode,
            expand_uri_prefixes=app_config.EXPAND_URI_PREFIXES,
            text_status_byte=app_config.TEXT_STATUS_BYTE,
        )

    # --- Decoding ---

    def decode_record(self, record: RawRecord) -> DecodedRecord:
        return decode_raw_record(record, self.mode, self.expand_uri_prefixes)

    def decode_records(self, records: Iterable[RawRecord]) -> List[DecodedRecord]:
        return [self.decode_record(record) for record in records]

    def decode_message(self, records: Iterable[RawRecord]) -> str:
        """Decodes each record and joins the renderings with a newline, in order."""
        return RECORD_SEPARATOR.join(decoded.text for decoded in self.decode_records(records))

    def decode_message_bytes(self, octets: bytes) -> str:
        """Decodes NDEF message octets straight to display text. Never raises."""
        try:
            records = from_message_bytes(octets)
        except (ndef.DecodeError, ValueError) as e:
            self.logger.warning(f"Failed to decode NDEF message ({len(octets)} bytes): {e}")
            return UNREADABLE_TAG
        return self.decode_message(records)

    # --- Encoding ---

    def encode(self, kind: RecordKind, text: str) -> RawRecord:
        return encode_record(kind, text, text_status_byte=self.text_status_byte)

    def encode_message(self, kind: RecordKind, text: str) -> List[RawRecord]:
        """Encodes a value as a message; always exactly one record."""
        return [self.encode(kind, text)]

    def encode_records(self, records: Sequence[EncodableRecord]) -> List[RawRecord]:
        """
        Encodes a caller-supplied message.

        Raises:
            EncodingError: unless ``records`` holds exactly one record. Writing
                supports exactly one record per message.
        """
        if not records:
            raise EncodingError(EncodingErrorReason.EMPTY_MESSAGE, "Nothing to write: the message has no records.")
        if len(records) > 1:
            raise EncodingError(EncodingErrorReason.TOO_MANY_RECORDS,
                                f"Write supports exactly one record per message, got {len(records)}.")
        return self.encode_message(records[0].kind, records[0].text)

    def encode_message_bytes(self, kind: RecordKind, text: str) -> bytes:
        """Encodes a value straight to NDEF message octets."""
        return to_message_bytes(self.encode_message(kind, text))
