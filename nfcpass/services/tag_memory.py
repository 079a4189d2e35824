"""
Type 2 Tag memory layout helpers.

NTAG/Ultralight style tags keep the NDEF message inside a TLV block in user
memory: an NDEF Message TLV (0x03), optionally preceded by Null TLVs (0x00) and
followed by a Terminator TLV (0xFE). These helpers wrap an encoded message for
writing and find the message again in a user-memory dump.
"""

import logging

logger = logging.getLogger(__name__)

NULL_TLV = 0x00
NDEF_MESSAGE_TLV = 0x03
TERMINATOR_TLV = 0xFE
THREE_BYTE_LENGTH_MARKER = 0xFF
MAX_ONE_BYTE_LENGTH = 0xFE
MAX_TLV_LENGTH = 0xFFFE
PAGE_SIZE_BYTES = 4


class TagMemoryError(ValueError):
    """Raised when an NDEF message cannot be wrapped into a TLV block."""
    pass


def wrap_ndef_tlv(ndef_message: bytes, pad_to_page: bool = False) -> bytes:
    """
    Wraps NDEF message octets into an NDEF Message TLV plus Terminator TLV.

    Length is one byte for messages up to 254 bytes, else 0xFF followed by a
    big-endian 16-bit length. With ``pad_to_page`` the block is padded with
    Null TLVs to a multiple of the 4-byte page size.
    """
    msg_len = len(ndef_message)
    if msg_len > MAX_TLV_LENGTH:
        raise TagMemoryError(f"NDEF message of {msg_len} bytes does not fit in a TLV block.")

    tlv_data = bytearray([NDEF_MESSAGE_TLV])
    if msg_len <= MAX_ONE_BYTE_LENGTH:
        tlv_data.append(msg_len)
    else:
        tlv_data.append(THREE_BYTE_LENGTH_MARKER)
        tlv_data.append((msg_len >> 8) & 0xFF)
        tlv_data.append(msg_len & 0xFF)
    tlv_data.extend(ndef_message)
    tlv_data.append(TERMINATOR_TLV)

    if pad_to_page:
        while len(tlv_data) % PAGE_SIZE_BYTES != 0:
            tlv_data.append(NULL_TLV)
    return bytes(tlv_data)


def find_ndef_message(user_memory: bytes) -> bytes:
    """
    Returns the NDEF message octets found in a user-memory dump.

    Null TLVs are skipped. An empty NDEF TLV, a Terminator TLV, an unknown TLV
    or a truncated block all yield b"" (no message); this function does not raise.
    """
    data = bytes(user_memory)
    i = 0
    while i < len(data):
        tlv_type = data[i]
        if tlv_type == NULL_TLV:
            i += 1
            continue
        if tlv_type == TERMINATOR_TLV:
            logger.debug("Terminator TLV found before any NDEF message.")
            return b""
        if tlv_type != NDEF_MESSAGE_TLV:
            logger.debug(f"Non-NDEF TLV type {tlv_type:#04x} at offset {i}. Assuming no NDEF message.")
            return b""

        if i + 1 >= len(data):
            logger.warning("Malformed NDEF TLV: Type byte found but no Length byte.")
            return b""
        tlv_length = data[i + 1]
        value_start = i + 2
        if tlv_length == THREE_BYTE_LENGTH_MARKER:
            if i + 3 >= len(data):
                logger.warning("Malformed 3-byte NDEF TLV: Not enough bytes for length.")
                return b""
            tlv_length = (data[i + 2] << 8) + data[i + 3]
            value_start = i + 4

        value_end = value_start + tlv_length
        if value_end > len(data):
            logger.warning(f"NDEF TLV length {tlv_length} exceeds available data "
                           f"(len {len(data)} from index {value_start}).")
            return b""
        return data[value_start:value_end]
    return b""
