#!/usr/bin/env python3
"""
NFCPass - Command Line Entry Point

Decodes NDEF data read from tags, encodes values for writing, and manages the
list of saved tags. Radio access is left to the caller: data goes in and comes
out as hex strings.
"""

import argparse
import logging
import sys
import traceback
from typing import List, Optional

from .models.ndef_record import EncodableRecord, RecordKind, RenderMode
from .services.message_codec import MessageCodec, to_message_bytes
from .services.record_encoder import EncodingError
from .services.tag_memory import TagMemoryError, find_ndef_message, wrap_ndef_tlv
from .services.tag_operations import TagOperationError, TagOperationsService
from .services.tag_store import SQLiteTagRepository, TagStoreError
from .utils.config import ConfigError, config
from .utils.logging_config import setup_logging_from_config

WRITABLE_KINDS = [kind.value for kind in RecordKind if kind.is_encodable]


def parse_hex(value: str) -> bytes:
    """Parses hex input; spaces, colons and a leading 0x are ignored."""
    cleaned = value.strip()
    if cleaned.lower().startswith("0x"):
        cleaned = cleaned[2:]
    cleaned = cleaned.replace(" ", "").replace(":", "")
    try:
        return bytes.fromhex(cleaned)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not a hex string: {value!r}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="nfcpass", description="NDEF tag codec and saved-tag manager.")
    parser.add_argument("--no-log-file", action="store_true", help="log to stderr only")
    parser.add_argument("--legacy", action="store_true", help="render decoded records without annotations")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("decode", help="decode NDEF message bytes for display")
    p.add_argument("data", type=parse_hex)
    p.add_argument("--tlv", action="store_true", help="input is Type 2 tag user memory (TLV)")

    p = sub.add_parser("encode", help="encode a value as NDEF message bytes")
    p.add_argument("kind", choices=WRITABLE_KINDS)
    p.add_argument("text")
    p.add_argument("--tlv", action="store_true", help="wrap the message in an NDEF TLV block")

    p = sub.add_parser("read", help="save NDEF message bytes read from a tag")
    p.add_argument("data", type=parse_hex)
    p.add_argument("--name")
    p.add_argument("--tlv", action="store_true", help="input is Type 2 tag user memory (TLV)")

    p = sub.add_parser("write", help="encode a saved tag for writing")
    p.add_argument("tag_id")
    p.add_argument("--tlv", action="store_true", help="wrap the message in an NDEF TLV block")

    sub.add_parser("list", help="list saved tags")

    p = sub.add_parser("edit", help="edit a saved tag")
    p.add_argument("tag_id")
    p.add_argument("--name")
    p.add_argument("--data")
    p.add_argument("--type", choices=WRITABLE_KINDS)

    p = sub.add_parser("delete", help="delete a saved tag")
    p.add_argument("tag_id")
    return parser


def setup_global_exception_handler(app_logger: logging.Logger) -> None:
    """Sets up a global exception handler to log unhandled exceptions."""
    def handle_exception(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        app_logger.critical("Unhandled exception caught by global handler:",
                            exc_info=(exc_type, exc_value, exc_traceback))
        print(f"CRITICAL UNHANDLED ERROR: {exc_value}", file=sys.stderr)
        traceback.print_exception(exc_type, exc_value, exc_traceback, file=sys.stderr)

    sys.excepthook = handle_exception


def run_command(args: argparse.Namespace, codec: MessageCodec) -> int:
    if args.command == "decode":
        octets = find_ndef_message(args.data) if args.tlv else args.data
        print(codec.decode_message_bytes(octets))
        return 0

    if args.command == "encode":
        record = EncodableRecord.from_name(args.kind, args.text)
        octets = to_message_bytes(codec.encode_records([record]))
        print((wrap_ndef_tlv(octets) if args.tlv else octets).hex())
        return 0

    service = TagOperationsService(SQLiteTagRepository(config.TAG_STORE_PATH, config.TAG_STORE_KEY), codec)
    try:
        if args.command == "read":
            service.begin_read()
            if args.tlv:
                tag = service.complete_read_memory(args.data, name=args.name)
            else:
                tag = service.complete_read_message(args.data, name=args.name)
            print(f"{tag.id}\t{tag.type.value}\t{tag.name}\n{tag.nfc_data}")
        elif args.command == "write":
            service.begin_write()
            octets = service.prepare_write_for_tag(args.tag_id, tlv=args.tlv)
            service.complete_write()
            print(octets.hex())
        elif args.command == "list":
            for tag in service.list_tags():
                print(f"{tag.id}\t{tag.timestamp.isoformat()}\t{tag.type.value}\t{tag.name}")
        elif args.command == "edit":
            kind = RecordKind.from_name(args.type) if args.type else None
            tag = service.update_tag(args.tag_id, name=args.name, nfc_data=args.data, kind=kind)
            print(tag)
        elif args.command == "delete":
            service.delete_tag(args.tag_id)
    finally:
        service.cleanup()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the NFCPass command line."""
    args = build_parser().parse_args(argv)

    try:
        app_logger = setup_logging_from_config(config, log_to_file=not args.no_log_file)
    except ConfigError as e:
        print(f"CRITICAL CONFIGURATION ERROR: {e}", file=sys.stderr)
        return 1
    setup_global_exception_handler(app_logger)
    app_logger.debug(f"--- Starting {config.APP_NAME} v{config.APP_VERSION} (Env: {config.APP_ENV}) ---")

    codec = MessageCodec.from_config(config)
    if args.legacy:
        codec.mode = RenderMode.LEGACY

    try:
        return run_command(args, codec)
    except EncodingError as e:
        app_logger.error(f"Write failed, value could not be encoded ({e.reason.value}): {e}")
        print(f"Write failed: {e}", file=sys.stderr)
    except TagMemoryError as e:
        app_logger.error(f"Write failed: {e}")
        print(f"Write failed: {e}", file=sys.stderr)
    except (TagOperationError, TagStoreError) as e:
        app_logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
