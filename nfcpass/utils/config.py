"""
Configuration Management for NFCPass.

This module loads application settings from environment variables and .env
files, provides sensible defaults, supports different environments, and
validates the codec options (render mode, Text status byte, URI prefix
expansion) before anything else reads them.
"""

import os
import logging
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv

from ..models.ndef_record import RenderMode

# --- Environment Setup ---
# Default to 'development' if APP_ENV is not set.
APP_ENV_TYPE = Literal["development", "testing", "production"]
APP_ENV: APP_ENV_TYPE = os.getenv("APP_ENV", "development").lower()  # type: ignore

# --- .env Loading ---
# Looked up in the current working directory: .env.<env> first, then .env.
ENV_FILE_NAME = f".env.{APP_ENV}" if APP_ENV != "production" else ".env"
ENV_PATH = Path.cwd() / ENV_FILE_NAME
FALLBACK_ENV_PATH = Path.cwd() / ".env"

if ENV_PATH.exists():
    load_dotenv(dotenv_path=ENV_PATH)
elif FALLBACK_ENV_PATH.exists():
    load_dotenv(dotenv_path=FALLBACK_ENV_PATH)

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in _TRUE_VALUES


class ConfigError(Exception):
    """Custom exception for configuration errors."""
    pass


class Config:
    """
    Application configuration class.

    Loads settings from environment variables and .env files.
    Provides methods for accessing and validating configuration.
    """

    # --- Application Information ---
    APP_NAME: str = "NFCPass"
    APP_VERSION: str = os.getenv("APP_VERSION", "1.0.0")
    APP_ENV: APP_ENV_TYPE = APP_ENV

    # --- Debugging and Logging ---
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO" if APP_ENV == "production" else "DEBUG").upper()
    HOME_DIR: Path = Path(os.getenv("NFCPASS_HOME", str(Path.home() / ".nfcpass"))).expanduser()
    LOG_DIR: Path = HOME_DIR / os.getenv("LOG_DIR_NAME", "logs")
    LOG_FILE_PATH: Path = LOG_DIR / os.getenv("LOG_FILE_NAME", "nfcpass.log")

    # --- Tag Store ---
    DATA_DIR: Path = HOME_DIR / os.getenv("DATA_DIR_NAME", "data")
    TAG_STORE_PATH: Path = DATA_DIR / os.getenv("TAG_STORE_FILE_NAME", "nfcpass.db")
    TAG_STORE_KEY: str = os.getenv("TAG_STORE_KEY", "savedTags")

    # --- Codec Settings ---
    RENDER_MODE: str = os.getenv("NFCPASS_RENDER_MODE", RenderMode.ANNOTATED.value).strip().lower()
    TEXT_STATUS_BYTE: bool = _env_flag("NFCPASS_TEXT_STATUS_BYTE", "true")
    EXPAND_URI_PREFIXES: bool = _env_flag("NFCPASS_EXPAND_URI_PREFIXES", "false")

    def __init__(self):
        self._logger = logging.getLogger(self.__class__.__name__)
        self.validate()

    def ensure_directories(self) -> None:
        """Creates the log and data directories if they don't exist."""
        try:
            self.LOG_DIR.mkdir(parents=True, exist_ok=True)
            self.DATA_DIR.mkdir(parents=True, exist_ok=True)
            self._logger.debug(f"Ensured directories exist: Logs at '{self.LOG_DIR}', Data at '{self.DATA_DIR}'")
        except OSError as e:
            raise ConfigError(f"Cannot create application directories under {self.HOME_DIR}: {e}") from e

    def validate(self) -> None:
        """
        Validates critical configuration settings.
        Logs warnings and falls back to defaults for invalid values.
        """
        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.LOG_LEVEL not in valid_log_levels:
            self._logger.error(f"Invalid LOG_LEVEL: '{self.LOG_LEVEL}'. Defaulting to INFO. Must be one of {valid_log_levels}.")
            self.LOG_LEVEL = "INFO"

        valid_modes = [mode.value for mode in RenderMode]
        if self.RENDER_MODE not in valid_modes:
            self._logger.warning(
                f"Invalid NFCPASS_RENDER_MODE: '{self.RENDER_MODE}'. Defaulting to '{RenderMode.ANNOTATED.value}'."
            )
            self.RENDER_MODE = RenderMode.ANNOTATED.value

        if not self.TAG_STORE_KEY.strip():
            self._logger.warning("TAG_STORE_KEY is empty. Defaulting to 'savedTags'.")
            self.TAG_STORE_KEY = "savedTags"

        if not self.TEXT_STATUS_BYTE:
            self._logger.warning("NFCPASS_TEXT_STATUS_BYTE is off: Text records written now "
                                 "will not decode back to the same text.")

        self._logger.debug(f"Configuration validated for APP_ENV='{self.APP_ENV}'.")

    @property
    def render_mode(self) -> RenderMode:
        return RenderMode(self.RENDER_MODE)

    def get(self, key: str, default: Any = None) -> Any:
        """Retrieves a configuration value by its attribute name."""
        return getattr(self, key, default)

    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    def is_testing(self) -> bool:
        return self.APP_ENV == "testing"

    def __str__(self) -> str:
        return (
            f"Config(APP_NAME='{self.APP_NAME}', VERSION='{self.APP_VERSION}', APP_ENV='{self.APP_ENV}', "
            f"LOG_LEVEL='{self.LOG_LEVEL}', LOG_FILE_PATH='{self.LOG_FILE_PATH}', "
            f"TAG_STORE_PATH='{self.TAG_STORE_PATH}', TAG_STORE_KEY='{self.TAG_STORE_KEY}', "
            f"RENDER_MODE='{self.RENDER_MODE}', TEXT_STATUS_BYTE={self.TEXT_STATUS_BYTE}, "
            f"EXPAND_URI_PREFIXES={self.EXPAND_URI_PREFIXES})"
        )


# --- Global Configuration Instance ---
# Application components import this instance directly: from nfcpass.utils.config import config
config = Config()
