"""
Tag Operations Service for NFCPass.

This service sits between whatever talks to the NFC radio and the codec. It
enforces the session rule (at most one active session, either a read or a
write), turns completed reads into saved Tags, prepares records for writes,
and handles edits and deletions of saved tags.

The radio itself is not handled here: callers hand in raw records or NDEF
message octets when a read completes, and take raw records or octets back when
a write is about to happen.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Callable, List, Optional, Sequence

import ndef  # type: ignore - ndeflib might not have stubs

from ..models.ndef_record import RawRecord, RecordKind
from ..models.tag import DEFAULT_TAG_NAME, Tag
from .message_codec import RECORD_SEPARATOR, MessageCodec, from_message_bytes, to_message_bytes, writable_value
from .record_decoder import UNREADABLE_TAG
from .tag_memory import find_ndef_message, wrap_ndef_tlv
from .tag_store import TagRepository

logger = logging.getLogger(__name__)


# --- Tag Operation Service Exceptions ---
class TagOperationError(Exception): pass
class SessionBusyError(TagOperationError): pass
class NoActiveSessionError(TagOperationError): pass
class TagNotFoundError(TagOperationError): pass


class SessionType(Enum):
    READ = auto()
    WRITE = auto()


@dataclass
class TagSession:
    """One read or write interaction with a physical tag."""
    session_type: SessionType
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    active: bool = True


ErrorCallback = Callable[[str], None]


class TagOperationsService:
    """Service for reading, writing and managing saved NFC tags."""

    def __init__(self, repository: TagRepository, codec: Optional[MessageCodec] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.repository = repository
        self.codec = codec or MessageCodec()
        self.on_operation_error: Optional[ErrorCallback] = None
        self._session_lock = threading.Lock()
        self._tags_lock = threading.RLock()
        self._session: Optional[TagSession] = None
        self._tags: List[Tag] = self.repository.load()

    def _handle_error(self, error_message: str, error_exception: Optional[Exception] = None):
        full_message = error_message
        if error_exception:
            full_message += f" (Details: {error_exception})"
        self.logger.error(full_message)
        if self.on_operation_error:
            try:
                self.on_operation_error(error_message)
            except Exception as cb_err:
                self.logger.error(f"Error in on_operation_error callback: {cb_err}")

    # --- Sessions ---

    @property
    def active_session(self) -> Optional[TagSession]:
        with self._session_lock:
            return self._session

    def begin_session(self, session_type: SessionType) -> TagSession:
        """Starts a read or write session. Raises SessionBusyError if one is active."""
        with self._session_lock:
            if self._session is not None:
                raise SessionBusyError(
                    f"A {self._session.session_type.name.lower()} session is already active "
                    f"({self._session.session_id})."
                )
            self._session = TagSession(session_type)
            self.logger.info(f"{session_type.name.capitalize()} session {self._session.session_id} started.")
            return self._session

    def begin_read(self) -> TagSession:
        return self.begin_session(SessionType.READ)

    def begin_write(self) -> TagSession:
        return self.begin_session(SessionType.WRITE)

    def invalidate_session(self, error: Optional[str] = None) -> None:
        """Ends the active session, if any. ``error`` is reported to the error callback."""
        with self._session_lock:
            session, self._session = self._session, None
        if session is None:
            return
        session.active = False
        if error:
            self._handle_error(f"{session.session_type.name.capitalize()} session {session.session_id} failed: {error}")
        else:
            self.logger.info(f"{session.session_type.name.capitalize()} session {session.session_id} invalidated.")

    def _require_session(self, session_type: SessionType, operation_name: str) -> TagSession:
        with self._session_lock:
            session = self._session
        if session is None or session.session_type is not session_type:
            raise NoActiveSessionError(
                f"{operation_name} failed: no active {session_type.name.lower()} session."
            )
        return session

    # --- Reading ---

    def complete_read(self, records: Sequence[RawRecord], name: Optional[str] = None) -> Tag:
        """
        Finishes the active read session with the records read from the tag.

        The records are decoded, joined into the tag's data and saved as a new
        Tag; a message with no records is saved as "Unreadable tag". The
        session is invalidated whether or not saving succeeds.
        """
        self._require_session(SessionType.READ, "Complete Read")
        try:
            decoded = self.codec.decode_records(records)
            nfc_data = RECORD_SEPARATOR.join(record.text for record in decoded) or UNREADABLE_TAG
            tag = Tag.from_decoded_records(decoded, nfc_data, name=name)
            self._add_tag(tag)
        except Exception as e:
            self.invalidate_session(error=str(e))
            raise
        self.invalidate_session()
        self.logger.info(f"Read complete: {tag}")
        return tag

    def complete_read_message(self, octets: bytes, name: Optional[str] = None) -> Tag:
        """Finishes the active read session with raw NDEF message octets."""
        self._require_session(SessionType.READ, "Complete Read")
        try:
            records = from_message_bytes(octets)
        except (ndef.DecodeError, ValueError) as e:
            self.logger.warning(f"Unreadable NDEF message: {e}")
            return self._complete_unreadable(name)
        return self.complete_read(records, name=name)

    def complete_read_memory(self, user_memory: bytes, name: Optional[str] = None) -> Tag:
        """Finishes the active read session with a Type 2 tag user-memory dump."""
        return self.complete_read_message(find_ndef_message(user_memory), name=name)

    def _complete_unreadable(self, name: Optional[str]) -> Tag:
        tag = Tag(nfc_data=UNREADABLE_TAG, type=RecordKind.TEXT, name=name or DEFAULT_TAG_NAME)
        try:
            self._add_tag(tag)
        except Exception as e:
            self.invalidate_session(error=str(e))
            raise
        self.invalidate_session()
        return tag

    # --- Writing ---

    def prepare_write(self, kind: RecordKind, text: str) -> List[RawRecord]:
        """
        Encodes the value to write during the active write session.

        Raises:
            NoActiveSessionError: if no write session is active.
            EncodingError: if the value cannot be encoded; the session is invalidated.
        """
        self._require_session(SessionType.WRITE, "Prepare Write")
        try:
            return self.codec.encode_message(kind, text)
        except Exception as e:
            self.invalidate_session(error=f"Could not encode value: {e}")
            raise

    def prepare_write_bytes(self, kind: RecordKind, text: str, tlv: bool = False) -> bytes:
        """Like prepare_write(), but returns NDEF message octets, optionally TLV-wrapped."""
        octets = to_message_bytes(self.prepare_write(kind, text))
        return wrap_ndef_tlv(octets) if tlv else octets

    def prepare_write_for_tag(self, tag_id: str, tlv: bool = False) -> bytes:
        """
        Encodes a saved tag's data for writing to another physical tag.

        The display annotation is stripped first, so reading the written tag
        gives back the same ``nfc_data`` for single-record tags.
        """
        tag = self.get_tag(tag_id)
        return self.prepare_write_bytes(tag.type, writable_value(tag.nfc_data, tag.type), tlv=tlv)

    def complete_write(self) -> None:
        self._require_session(SessionType.WRITE, "Complete Write")
        self.invalidate_session()

    # --- Saved tags ---

    def list_tags(self) -> List[Tag]:
        with self._tags_lock:
            return list(self._tags)

    def get_tag(self, tag_id: str) -> Tag:
        with self._tags_lock:
            for tag in self._tags:
                if tag.id == tag_id:
                    return tag
        raise TagNotFoundError(f"No saved tag with id {tag_id}.")

    def _add_tag(self, tag: Tag) -> None:
        with self._tags_lock:
            self.repository.save(self._tags + [tag])
            self._tags.append(tag)

    def update_tag(self, tag_id: str, *, name: Optional[str] = None, nfc_data: Optional[str] = None,
                   kind: Optional[RecordKind] = None) -> Tag:
        """Edits a saved tag's name, data or kind and saves the list."""
        with self._tags_lock:
            for i, tag in enumerate(self._tags):
                if tag.id == tag_id:
                    updated = Tag(
                        id=tag.id,
                        name=name if name is not None else tag.name,
                        nfc_data=nfc_data if nfc_data is not None else tag.nfc_data,
                        type=kind if kind is not None else tag.type,
                        timestamp=tag.timestamp,
                    )
                    new_tags = self._tags[:i] + [updated] + self._tags[i + 1:]
                    self.repository.save(new_tags)
                    self._tags = new_tags
                    self.logger.info(f"Updated {updated}")
                    return updated
        raise TagNotFoundError(f"No saved tag with id {tag_id}.")

    def delete_tag(self, tag_id: str) -> None:
        """Removes a saved tag and saves the list."""
        with self._tags_lock:
            remaining = [tag for tag in self._tags if tag.id != tag_id]
            if len(remaining) == len(self._tags):
                raise TagNotFoundError(f"No saved tag with id {tag_id}.")
            self.repository.save(remaining)
            self._tags = remaining
        self.logger.info(f"Deleted tag {tag_id}.")

    def cleanup(self) -> None:
        self.invalidate_session()
        self.repository.close()
