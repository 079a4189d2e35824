import json

import pytest

from nfcpass.models.ndef_record import RecordKind
from nfcpass.models.tag import Tag
from nfcpass.services.tag_store import SQLiteTagRepository, TagStoreError, tags_from_json, tags_to_json


class TestSQLiteTagRepository:
    def test_empty_store(self, repository):
        assert repository.load() == []

    def test_save_and_load_keeps_order(self, repository):
        tags = [Tag(nfc_data=f"[Text] tag {i}", name=f"Tag {i}") for i in range(3)]
        repository.save(tags)
        assert repository.load() == tags

    def test_persists_across_connections(self, tmp_path):
        path = tmp_path / "store.db"
        tag = Tag(nfc_data="[URI] https://example.com", type=RecordKind.URI)
        first = SQLiteTagRepository(path)
        first.save([tag])
        first.close()

        second = SQLiteTagRepository(path)
        assert second.load() == [tag]
        second.close()

    def test_keys_are_independent(self, tmp_path):
        path = tmp_path / "store.db"
        a = SQLiteTagRepository(path, key="a")
        b = SQLiteTagRepository(path, key="b")
        a.save([Tag(nfc_data="x")])
        assert b.load() == []
        a.close()
        b.close()

    def test_value_is_json_array(self, repository):
        tag = Tag(nfc_data="x", name="N")
        repository.save([tag])
        stored = json.loads(repository.get_value(repository.key))
        assert stored == [tag.to_dict()]

    def test_creates_parent_directory(self, tmp_path):
        repo = SQLiteTagRepository(tmp_path / "nested" / "dir" / "tags.db")
        repo.save([])
        assert (tmp_path / "nested" / "dir" / "tags.db").exists()
        repo.close()


class TestJsonHelpers:
    def test_round_trip(self):
        tags = [Tag(nfc_data="a"), Tag(nfc_data="b", type=RecordKind.MIME)]
        assert tags_from_json(tags_to_json(tags)) == tags

    def test_bad_entries_are_skipped(self):
        good = Tag(nfc_data="ok")
        value = json.dumps([{"name": "no id"}, good.to_dict(), {"id": good.id, "type": "Unknown"}])
        assert tags_from_json(value) == [good]

    def test_invalid_json(self):
        with pytest.raises(TagStoreError):
            tags_from_json("{not json")

    def test_not_an_array(self):
        with pytest.raises(TagStoreError):
            tags_from_json('{"tags": []}')
