"""
Tag Model for the NFCPass application.

A Tag is what the user sees in their saved list: a name, the decoded text of
the NDEF message that was read, the kind of content, and when it was saved.
The codec produces ``nfc_data`` and ``type`` for new tags and consumes them
when a saved tag is written back out.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Union

from .ndef_record import DecodedRecord, RecordKind

logger = logging.getLogger(__name__)

DEFAULT_TAG_NAME = "Scanned Tag"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Union[str, int, float, datetime, None]) -> datetime:
    """
    Parses a stored timestamp.

    Accepts ISO-8601 strings or epoch seconds (int/float or numeric string).
    Naive datetimes are assumed to be UTC.
    """
    if value is None:
        return _now()
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        parsed = datetime.fromtimestamp(float(value), tz=timezone.utc)
    elif isinstance(value, str):
        stripped = value.strip()
        try:
            parsed = datetime.fromtimestamp(float(stripped), tz=timezone.utc)
        except ValueError:
            # fromisoformat() in older interpreters does not accept a trailing "Z"
            if stripped.endswith("Z"):
                stripped = stripped[:-1] + "+00:00"
            parsed = datetime.fromisoformat(stripped)
    else:
        raise ValueError(f"Unsupported timestamp value: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Tag:
    """A saved NFC tag."""
    nfc_data: str
    type: RecordKind = RecordKind.TEXT
    name: str = DEFAULT_TAG_NAME
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=_now)

    def __post_init__(self):
        if isinstance(self.type, str):
            self.type = RecordKind.from_name(self.type)
        if not self.type.is_encodable:
            raise ValueError("Tags can only be stored as Text, URI or MIME.")

    @classmethod
    def from_decoded_records(cls, records: Iterable[DecodedRecord], nfc_data: str,
                             name: Optional[str] = None) -> 'Tag':
        """
        Creates a Tag for a completed read.

        The tag's kind is the kind of the first record that can be written back
        (Text, URI or MIME). Messages with no such record are stored as Text,
        since their ``nfc_data`` is a display string.
        """
        kind = RecordKind.TEXT
        for record in records:
            if record.kind.is_encodable:
                kind = record.kind
                break
        return cls(nfc_data=nfc_data, type=kind, name=name or DEFAULT_TAG_NAME)

    def to_dict(self) -> Dict[str, Any]:
        """Serialises the tag using the persisted JSON field names."""
        return {
            "id": self.id,
            "name": self.name,
            "nfcData": self.nfc_data,
            "type": self.type.value,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Tag':
        """Creates a Tag from its persisted form. Raises KeyError/ValueError on bad input."""
        return cls(
            id=str(uuid.UUID(str(data["id"]))),
            name=data.get("name") or DEFAULT_TAG_NAME,
            nfc_data=data.get("nfcData") or "",
            type=RecordKind.from_name(data.get("type", RecordKind.TEXT.value)),
            timestamp=parse_timestamp(data.get("timestamp")),
        )

    def __str__(self) -> str:
        preview = self.nfc_data if len(self.nfc_data) <= 40 else self.nfc_data[:37] + "..."
        return f"Tag(Name: '{self.name}', Type: {self.type.value}, Data: '{preview}')"
