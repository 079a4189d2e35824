"""NFCPass: NDEF record codec and saved-tag management for NFC tags."""

__version__ = "1.0.0"
