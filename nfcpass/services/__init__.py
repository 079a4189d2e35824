"""Core services: record codec, tag memory layout, tag store and tag operations."""
from nfcpass.services.message_codec import MessageCodec, writable_value
from nfcpass.services.record_decoder import decode_record, render_hex
from nfcpass.services.record_encoder import EncodingError, encode_record
from nfcpass.services.tag_operations import TagOperationsService
from nfcpass.services.tag_store import SQLiteTagRepository, TagRepository

__all__ = [
    "EncodingError",
    "MessageCodec",
    "SQLiteTagRepository",
    "TagOperationsService",
    "TagRepository",
    "decode_record",
    "encode_record",
    "render_hex",
    "writable_value",
]
