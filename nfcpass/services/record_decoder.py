"""
NDEF Record Decoder for NFCPass.

Turns one raw NDEF record (TNF, type bytes, payload bytes) into a
display-ready DecodedRecord. Decoding never raises: a corrupt or foreign tag
still has to render something the user can act on, so every malformed payload
resolves to a fallback marker or a hex dump.
"""

import logging
from typing import Dict, Optional, Tuple

from ..models.ndef_record import (
    TEXT_TYPE,
    URI_TYPE,
    DecodedRecord,
    RawRecord,
    RecordKind,
    RenderMode,
    TypeNameFormat,
)

logger = logging.getLogger(__name__)

# Fallback markers
UNREADABLE_TAG = "Unreadable tag"
UNREADABLE_TEXT = "Unreadable Text"
INVALID_URI = "Invalid URI"

# Text record status byte: bit 7 = UTF-16 flag, bit 6 reserved, bits 5..0 = language code length
TEXT_LANG_LENGTH_MASK = 0x3F
# A Text payload needs a status byte, a language code and some content
TEXT_MIN_PAYLOAD_LENGTH = 4

# NFC Forum URI Record Type Definition, identifier codes
URI_PREFIXES: Dict[int, str] = {
    0x00: "",
    0x01: "http://www.",
    0x02: "https://www.",
    0x03: "http://",
    0x04: "https://",
    0x05: "tel:",
    0x06: "mailto:",
    0x07: "ftp://anonymous:anonymous@",
    0x08: "ftp://ftp.",
    0x09: "ftps://",
    0x0A: "sftp://",
    0x0B: "smb://",
    0x0C: "nfs://",
    0x0D: "ftp://",
    0x0E: "dav://",
    0x0F: "news:",
    0x10: "telnet://",
    0x11: "imap:",
    0x12: "rtsp://",
    0x13: "urn:",
    0x14: "pop:",
    0x15: "sip:",
    0x16: "sips:",
    0x17: "tftp:",
    0x18: "btspp://",
    0x19: "btl2cap://",
    0x1A: "btgoep://",
    0x1B: "tcpobex://",
    0x1C: "irdaobex://",
    0x1D: "file://",
    0x1E: "urn:epc:id:",
    0x1F: "urn:epc:tag:",
    0x20: "urn:epc:pat:",
    0x21: "urn:epc:raw:",
    0x22: "urn:epc:",
    0x23: "urn:nfc:",
}


def render_hex(data: bytes) -> str:
    """Renders bytes as lowercase hex, two digits per byte, no separators."""
    return bytes(data).hex()


def parse_text_payload(payload: bytes) -> Tuple[Optional[str], str]:
    """
    Extracts the text of a well-known Text record payload.

    Returns:
        (text, "") on success, or (None, fallback_marker) when the payload is
        too short, the language code runs past the payload, or the text is not
        valid UTF-8.
    """
    if len(payload) < TEXT_MIN_PAYLOAD_LENGTH:
        return None, UNREADABLE_TAG

    lang_code_length = payload[0] & TEXT_LANG_LENGTH_MASK
    text_start = 1 + lang_code_length
    if text_start > len(payload):
        logger.debug(f"Text record language code length {lang_code_length} exceeds payload ({len(payload)} bytes).")
        return None, UNREADABLE_TAG

    try:
        return payload[text_start:].decode('utf-8'), ""
    except UnicodeDecodeError as e:
        logger.debug(f"Text record is not valid UTF-8: {e}")
        return None, UNREADABLE_TEXT


def parse_uri_payload(payload: bytes, expand_prefixes: bool = False) -> str:
    """
    Extracts the URI of a well-known URI record payload.

    The identifier code in byte 0 is ignored unless ``expand_prefixes`` is set,
    in which case its abbreviation is prepended. Undecodable bodies become "".
    """
    try:
        body = payload[1:].decode('utf-8')
    except UnicodeDecodeError:
        body = ""
    if expand_prefixes:
        return URI_PREFIXES.get(payload[0], "") + body
    return body


def _decode_well_known(record_type: bytes, payload: bytes, expand_uri_prefixes: bool) -> DecodedRecord:
    tnf = TypeNameFormat.WELL_KNOWN
    if record_type == TEXT_TYPE:
        text, fallback = parse_text_payload(payload)
        if text is None:
            return DecodedRecord(RecordKind.TEXT, fallback, fallback, tnf, record_type)
        return DecodedRecord(RecordKind.TEXT, f"[Text] {text}", text, tnf, record_type)

    if record_type == URI_TYPE:
        if not payload:
            return DecodedRecord(RecordKind.URI, INVALID_URI, INVALID_URI, tnf, record_type)
        uri = parse_uri_payload(payload, expand_uri_prefixes)
        return DecodedRecord(RecordKind.URI, f"[URI] {uri}", uri, tnf, record_type)

    type_name = record_type.decode('utf-8', errors='replace')
    dump = render_hex(payload)
    return DecodedRecord(RecordKind.UNKNOWN, f"[Well-Known: {type_name}] {dump}", dump, tnf, record_type)


def _decode_annotated(tnf: TypeNameFormat, record_type: bytes, payload: bytes,
                      expand_uri_prefixes: bool) -> DecodedRecord:
    if tnf is TypeNameFormat.WELL_KNOWN:
        return _decode_well_known(record_type, payload, expand_uri_prefixes)

    if tnf is TypeNameFormat.MEDIA:
        try:
            mime_type = record_type.decode('utf-8') or "unknown"
        except UnicodeDecodeError:
            mime_type = "unknown"
        dump = render_hex(payload)
        return DecodedRecord(RecordKind.MIME, f"[MIME: {mime_type}] {dump}", dump, tnf, record_type)

    if tnf is TypeNameFormat.ABSOLUTE_URI:
        try:
            value = payload.decode('utf-8')
        except UnicodeDecodeError:
            value = render_hex(payload)
        return DecodedRecord(RecordKind.UNKNOWN, f"[Absolute URI] {value}", value, tnf, record_type)

    if tnf is TypeNameFormat.EXTERNAL:
        dump = render_hex(payload)
        return DecodedRecord(RecordKind.UNKNOWN, f"[External] {dump}", dump, tnf, record_type)

    # Empty, Unknown, Unchanged and Reserved
    dump = render_hex(payload)
    return DecodedRecord(RecordKind.UNKNOWN, f"[Unknown] {dump}", dump, tnf, record_type)


def _decode_legacy(tnf: TypeNameFormat, record_type: bytes, payload: bytes) -> DecodedRecord:
    if tnf is TypeNameFormat.WELL_KNOWN and record_type == TEXT_TYPE:
        text, fallback = parse_text_payload(payload)
        value = (fallback if text is None else text) or UNREADABLE_TAG
        return DecodedRecord(RecordKind.TEXT, value, value, tnf, record_type)

    kind = RecordKind.UNKNOWN
    if tnf is TypeNameFormat.WELL_KNOWN and record_type == URI_TYPE:
        kind = RecordKind.URI
    elif tnf is TypeNameFormat.MEDIA:
        kind = RecordKind.MIME
    dump = render_hex(payload) or UNREADABLE_TAG
    return DecodedRecord(kind, dump, dump, tnf, record_type)


def decode_record(tnf: int, record_type: bytes, payload: bytes,
                  mode: RenderMode = RenderMode.ANNOTATED,
                  expand_uri_prefixes: bool = False) -> DecodedRecord:
    """
    Decodes one raw NDEF record into a display-ready value.

    Args:
        tnf: Type Name Format of the record (TypeNameFormat or int).
        record_type: The record's type field (e.g. b"T", b"U", b"text/plain").
        payload: The record's payload.
        mode: ANNOTATED adds "[Kind] " prefixes; LEGACY only tells Text apart
            from everything else, which is rendered as a hex dump.
        expand_uri_prefixes: Prepend the URI identifier code's abbreviation.

    Returns:
        A DecodedRecord whose ``text`` is never empty. This function does not raise.
    """
    tnf = TypeNameFormat.from_value(int(tnf))
    record_type = bytes(record_type or b"")
    payload = bytes(payload or b"")

    if mode is RenderMode.LEGACY:
        decoded = _decode_legacy(tnf, record_type, payload)
    else:
        decoded = _decode_annotated(tnf, record_type, payload, expand_uri_prefixes)
    logger.debug(f"Decoded {tnf.name} record of type {record_type!r} as {decoded.kind.value}.")
    return decoded


def decode_raw_record(record: RawRecord, mode: RenderMode = RenderMode.ANNOTATED,
                      expand_uri_prefixes: bool = False) -> DecodedRecord:
    """Convenience wrapper around decode_record() for a RawRecord."""
    return decode_record(record.tnf, record.record_type, record.payload, mode, expand_uri_prefixes)
