import sys
import logging

import pytest

from nfcpass.models.ndef_record import RenderMode
from nfcpass.services.message_codec import MessageCodec
from nfcpass.services.tag_operations import TagOperationsService
from nfcpass.services.tag_store import SQLiteTagRepository


@pytest.fixture
def codec():
    return MessageCodec()


@pytest.fixture
def legacy_codec():
    return MessageCodec(mode=RenderMode.LEGACY)


@pytest.fixture
def repository(tmp_path):
    repo = SQLiteTagRepository(tmp_path / "tags.db")
    yield repo
    repo.close()


@pytest.fixture
def service(repository, codec):
    svc = TagOperationsService(repository, codec)
    yield svc
    svc.invalidate_session()


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Points the CLI at a temporary tag store and keeps logging setup out of the way."""
    import nfcpass.main as cli
    from nfcpass.utils.config import config

    monkeypatch.setattr(config, "TAG_STORE_PATH", tmp_path / "cli.db")
    monkeypatch.setattr(config, "TAG_STORE_KEY", "savedTags")
    monkeypatch.setattr(cli, "setup_logging_from_config",
                        lambda app_config, log_to_file=True: logging.getLogger("nfcpass-test"))
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    return cli
