import pytest

from nfcpass.models.ndef_record import RawRecord, RecordKind, TypeNameFormat
from nfcpass.services.record_decoder import UNREADABLE_TAG
from nfcpass.services.record_encoder import EncodingError
from nfcpass.services.tag_memory import wrap_ndef_tlv
from nfcpass.services.tag_operations import (
    NoActiveSessionError,
    SessionBusyError,
    SessionType,
    TagNotFoundError,
    TagOperationsService,
)

URI_MESSAGE = b'\xd1\x01\x14U\x00https://example.com'


def text_record(text):
    return RawRecord(TypeNameFormat.WELL_KNOWN, b"T", b"\x02en" + text.encode('utf-8'))


def uri_record(uri):
    return RawRecord(TypeNameFormat.WELL_KNOWN, b"U", b"\x00" + uri.encode('utf-8'))


class TestSessions:
    def test_one_session_at_a_time(self, service):
        service.begin_read()
        with pytest.raises(SessionBusyError):
            service.begin_write()
        with pytest.raises(SessionBusyError):
            service.begin_read()

    def test_invalidate_frees_the_slot(self, service):
        service.begin_read()
        service.invalidate_session()
        assert service.active_session is None
        assert service.begin_write().session_type is SessionType.WRITE

    def test_invalidate_without_session_is_a_no_op(self, service):
        service.invalidate_session()
        assert service.active_session is None

    def test_error_is_reported_to_callback(self, service):
        errors = []
        service.on_operation_error = errors.append
        service.begin_write()
        service.invalidate_session(error="tag moved away")
        assert len(errors) == 1
        assert "tag moved away" in errors[0]

    def test_failing_callback_does_not_propagate(self, service):
        def broken(message):
            raise RuntimeError("boom")

        service.on_operation_error = broken
        service.begin_read()
        service.invalidate_session(error="lost")
        assert service.active_session is None


class TestReading:
    def test_complete_read_requires_read_session(self, service):
        with pytest.raises(NoActiveSessionError):
            service.complete_read([text_record("hi")])
        service.begin_write()
        with pytest.raises(NoActiveSessionError):
            service.complete_read([text_record("hi")])

    def test_complete_read_saves_tag(self, service):
        service.begin_read()
        tag = service.complete_read([text_record("hello"), uri_record("https://example.com")], name="Desk")
        assert tag.nfc_data == "[Text] hello\n[URI] https://example.com"
        assert tag.type is RecordKind.TEXT
        assert tag.name == "Desk"
        assert service.list_tags() == [tag]
        assert service.active_session is None

    def test_kind_comes_from_first_writable_record(self, service):
        service.begin_read()
        external = RawRecord(TypeNameFormat.EXTERNAL, b"android.com:pkg", b"com.x")
        tag = service.complete_read([external, uri_record("https://a.b")])
        assert tag.type is RecordKind.URI
        assert tag.nfc_data == "[External] 636f6d2e78\n[URI] https://a.b"

    def test_empty_message_is_unreadable(self, service):
        service.begin_read()
        tag = service.complete_read([])
        assert tag.nfc_data == UNREADABLE_TAG
        assert tag.type is RecordKind.TEXT

    def test_complete_read_message(self, service):
        service.begin_read()
        tag = service.complete_read_message(URI_MESSAGE)
        assert tag.nfc_data == "[URI] https://example.com"
        assert tag.type is RecordKind.URI

    def test_malformed_message_is_saved_as_unreadable(self, service):
        service.begin_read()
        tag = service.complete_read_message(URI_MESSAGE[:10], name="Broken")
        assert tag.nfc_data == UNREADABLE_TAG
        assert tag.name == "Broken"
        assert service.active_session is None
        assert service.list_tags() == [tag]

    def test_complete_read_memory(self, service):
        service.begin_read()
        tag = service.complete_read_memory(b"\x00" + wrap_ndef_tlv(URI_MESSAGE, pad_to_page=True))
        assert tag.nfc_data == "[URI] https://example.com"

    def test_blank_memory_is_unreadable(self, service):
        service.begin_read()
        assert service.complete_read_memory(b"\x00" * 16).nfc_data == UNREADABLE_TAG


class TestWriting:
    def test_prepare_write_requires_write_session(self, service):
        with pytest.raises(NoActiveSessionError):
            service.prepare_write(RecordKind.TEXT, "hi")

    def test_prepare_write_returns_one_record(self, service):
        service.begin_write()
        records = service.prepare_write(RecordKind.URI, "https://example.com")
        assert records == [uri_record("https://example.com")]
        assert service.active_session is not None
        service.complete_write()
        assert service.active_session is None

    def test_encoding_failure_invalidates_session(self, service):
        errors = []
        service.on_operation_error = errors.append
        service.begin_write()
        with pytest.raises(EncodingError):
            service.prepare_write(RecordKind.UNKNOWN, "data")
        assert service.active_session is None
        assert len(errors) == 1

    def test_prepare_write_bytes(self, service):
        service.begin_write()
        assert service.prepare_write_bytes(RecordKind.URI, "https://example.com") == URI_MESSAGE

    def test_prepare_write_bytes_tlv(self, service):
        service.begin_write()
        octets = service.prepare_write_bytes(RecordKind.URI, "https://example.com", tlv=True)
        assert octets == wrap_ndef_tlv(URI_MESSAGE)

    @pytest.mark.parametrize("message", [
        URI_MESSAGE,
        b'\xd1\x01\x04T\x00hi!',
        b'\xd2\x0a\x05text/plainhello',
    ])
    def test_saved_tag_writes_back_the_same_message(self, service, message):
        service.begin_read()
        tag = service.complete_read_message(message)

        service.begin_write()
        octets = service.prepare_write_for_tag(tag.id)
        service.complete_write()
        assert octets == message

        service.begin_read()
        copy = service.complete_read_message(octets)
        assert copy.nfc_data == tag.nfc_data
        assert copy.type is tag.type

    def test_write_back_uses_first_record_of_the_tag_kind(self, service):
        service.begin_read()
        external = RawRecord(TypeNameFormat.EXTERNAL, b"android.com:pkg", b"com.x")
        tag = service.complete_read([external, uri_record("https://a.b"), text_record("hi")])

        assert tag.type is RecordKind.URI

        service.begin_write()
        assert service.prepare_write_for_tag(tag.id) == b'\xd1\x01\x0cU\x00https://a.b'

    def test_edited_data_is_written_as_is(self, service):
        service.begin_read()
        tag = service.complete_read_message(URI_MESSAGE)
        service.update_tag(tag.id, nfc_data="https://other.example")

        service.begin_write()
        assert service.prepare_write_for_tag(tag.id) == b'\xd1\x01\x16U\x00https://other.example'

    def test_prepare_write_for_missing_tag(self, service):
        service.begin_write()
        with pytest.raises(TagNotFoundError):
            service.prepare_write_for_tag("missing")

    def test_complete_write_requires_write_session(self, service):
        service.begin_read()
        with pytest.raises(NoActiveSessionError):
            service.complete_write()


class TestSavedTags:
    @pytest.fixture
    def saved(self, service):
        service.begin_read()
        first = service.complete_read([text_record("one")], name="First")
        service.begin_read()
        second = service.complete_read([uri_record("https://two")], name="Second")
        return first, second

    def test_update_name(self, service, saved):
        first, second = saved
        updated = service.update_tag(first.id, name="Renamed")
        assert updated.name == "Renamed"
        assert updated.nfc_data == first.nfc_data
        assert updated.timestamp == first.timestamp
        assert service.list_tags() == [updated, second]

    def test_update_kind_and_data(self, service, saved):
        first, _ = saved
        updated = service.update_tag(first.id, nfc_data="hello", kind=RecordKind.MIME)
        assert updated.type is RecordKind.MIME
        assert updated.nfc_data == "hello"

    def test_update_to_unknown_is_refused(self, service, saved):
        first, _ = saved
        with pytest.raises(ValueError):
            service.update_tag(first.id, kind=RecordKind.UNKNOWN)
        assert service.get_tag(first.id) == first

    def test_delete(self, service, saved):
        first, second = saved
        service.delete_tag(first.id)
        assert service.list_tags() == [second]
        with pytest.raises(TagNotFoundError):
            service.get_tag(first.id)

    def test_missing_ids(self, service, saved):
        with pytest.raises(TagNotFoundError):
            service.update_tag("missing", name="x")
        with pytest.raises(TagNotFoundError):
            service.delete_tag("missing")

    def test_changes_are_persisted(self, service, repository, saved):
        first, second = saved
        service.update_tag(second.id, name="Kept")
        service.delete_tag(first.id)

        reloaded = TagOperationsService(repository)
        assert [tag.name for tag in reloaded.list_tags()] == ["Kept"]
