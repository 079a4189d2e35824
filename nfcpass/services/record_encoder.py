"""
NDEF Record Encoder for NFCPass.

Builds the raw NDEF record for a Text, URI or MIME value so it can be handed to
whatever writes the tag. Unknown records are decode-only and are refused.
"""

import logging
from enum import Enum

from ..models.ndef_record import (
    MIME_TEXT_PLAIN,
    TEXT_TYPE,
    URI_TYPE,
    RawRecord,
    RecordKind,
    TypeNameFormat,
)

logger = logging.getLogger(__name__)

# URI identifier code for "no abbreviation"
URI_NO_ABBREVIATION = 0x00
MAX_LANG_CODE_LENGTH = 0x3F


class EncodingErrorReason(Enum):
    INVALID_UTF8 = "invalid_utf8"
    UNSUPPORTED_KIND = "unsupported_kind"
    INVALID_LANGUAGE = "invalid_language"
    EMPTY_MESSAGE = "empty_message"
    TOO_MANY_RECORDS = "too_many_records"


class EncodingError(ValueError):
    """Raised when a value cannot be turned into an NDEF record or message."""

    def __init__(self, reason: EncodingErrorReason, message: str):
        super().__init__(message)
        self.reason = reason


def _to_utf8(text: str) -> bytes:
    if not isinstance(text, str):
        raise TypeError(f"text must be str, not {type(text).__name__}")
    try:
        return text.encode('utf-8')
    except UnicodeEncodeError as e:
        raise EncodingError(EncodingErrorReason.INVALID_UTF8,
                            f"Text cannot be represented as UTF-8: {e}") from e


def build_text_payload(text: str, language: str = "", status_byte: bool = True) -> bytes:
    """
    Builds a well-known Text record payload.

    With ``status_byte`` the payload is: status byte (language code length in
    the low 6 bits, UTF-8 encoding) + ASCII language code + UTF-8 text.
    Without it, only the raw UTF-8 text is returned and ``language`` must be empty.
    """
    body = _to_utf8(text)
    if not status_byte:
        if language:
            raise EncodingError(EncodingErrorReason.INVALID_LANGUAGE,
                                "A language code requires the status byte.")
        return body

    try:
        lang = language.encode('ascii')
    except UnicodeEncodeError as e:
        raise EncodingError(EncodingErrorReason.INVALID_LANGUAGE,
                            f"Language code must be ASCII: {language!r}") from e
    if len(lang) > MAX_LANG_CODE_LENGTH:
        raise EncodingError(EncodingErrorReason.INVALID_LANGUAGE,
                            f"Language code can not be more than {MAX_LANG_CODE_LENGTH} octets.")
    return bytes([len(lang)]) + lang + body


def encode_record(kind: RecordKind, text: str, text_status_byte: bool = True) -> RawRecord:
    """
    Encodes a value into one raw NDEF record.

    Args:
        kind: TEXT, URI or MIME.
        text: The value to write.
        text_status_byte: For TEXT, prepend a zero status byte (no language
            code) so the record decodes back to ``text``. When False, the
            payload is the bare UTF-8 text.

    Returns:
        A RawRecord with an empty record identifier.

    Raises:
        EncodingError: for UNKNOWN kind or text that is not representable as UTF-8.
        TypeError: if ``text`` is not a str.
    """
    if kind is RecordKind.TEXT:
        record = RawRecord(TypeNameFormat.WELL_KNOWN, TEXT_TYPE,
                           build_text_payload(text, status_byte=text_status_byte))
    elif kind is RecordKind.URI:
        record = RawRecord(TypeNameFormat.WELL_KNOWN, URI_TYPE,
                           bytes([URI_NO_ABBREVIATION]) + _to_utf8(text))
    elif kind is RecordKind.MIME:
        record = RawRecord(TypeNameFormat.MEDIA, MIME_TEXT_PLAIN, _to_utf8(text))
    elif kind is RecordKind.UNKNOWN:
        raise EncodingError(EncodingErrorReason.UNSUPPORTED_KIND,
                            "Unknown records are read-only and cannot be written to a tag.")
    else:
        raise EncodingError(EncodingErrorReason.UNSUPPORTED_KIND, f"Unsupported record kind: {kind!r}")

    logger.debug(f"Encoded {kind.value} record ({len(record.payload)} payload bytes).")
    return record
