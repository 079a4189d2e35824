import pytest

from nfcpass.models.ndef_record import RenderMode
from nfcpass.utils.config import Config, ConfigError


@pytest.fixture
def app_config():
    return Config()


class TestValidate:
    def test_invalid_log_level_falls_back_to_info(self, app_config):
        app_config.LOG_LEVEL = "CHATTY"
        app_config.validate()
        assert app_config.LOG_LEVEL == "INFO"

    def test_invalid_render_mode_falls_back_to_annotated(self, app_config):
        app_config.RENDER_MODE = "fancy"
        app_config.validate()
        assert app_config.render_mode is RenderMode.ANNOTATED

    def test_legacy_render_mode(self, app_config):
        app_config.RENDER_MODE = "legacy"
        app_config.validate()
        assert app_config.render_mode is RenderMode.LEGACY

    def test_empty_store_key_falls_back(self, app_config):
        app_config.TAG_STORE_KEY = "  "
        app_config.validate()
        assert app_config.TAG_STORE_KEY == "savedTags"

    def test_status_byte_off_is_kept(self, app_config):
        app_config.TEXT_STATUS_BYTE = False
        app_config.validate()
        assert app_config.TEXT_STATUS_BYTE is False


class TestDirectories:
    def test_ensure_directories(self, app_config, tmp_path):
        app_config.LOG_DIR = tmp_path / "home" / "logs"
        app_config.DATA_DIR = tmp_path / "home" / "data"
        app_config.ensure_directories()
        assert app_config.LOG_DIR.is_dir()
        assert app_config.DATA_DIR.is_dir()

    def test_unwritable_location(self, app_config, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        app_config.LOG_DIR = blocker / "logs"
        app_config.DATA_DIR = blocker / "data"
        with pytest.raises(ConfigError):
            app_config.ensure_directories()


class TestAccessors:
    def test_get(self, app_config):
        assert app_config.get("APP_NAME") == "NFCPass"
        assert app_config.get("NOT_A_SETTING", "fallback") == "fallback"

    def test_environment_checks(self, app_config):
        app_config.APP_ENV = "testing"
        assert app_config.is_testing()
        assert not app_config.is_production()
        assert not app_config.is_development()

    def test_str_mentions_store(self, app_config):
        assert "TAG_STORE_KEY" in str(app_config)
