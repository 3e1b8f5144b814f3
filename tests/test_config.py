"""Tests for the centralized configuration module."""

import json
import platform
from pathlib import Path

import pytest

from epub_reader.config import (
    CONFIG_FILE_NAME,
    ENV_HOME,
    AppConfig,
    get_config,
    init_config,
    reset_config,
    theme_from_dict,
    validate_encoding,
)
from epub_reader.errors import ConfigurationError
from epub_reader.sanitizer import DEFAULT_THEME


class TestAppConfigLoad:
    """Tests for AppConfig.load priority resolution."""

    def test_explicit_base_dir(self, temp_dir):
        """An explicit directory wins over the environment."""
        config = AppConfig.load(temp_dir / "explicit")
        assert config.base_dir == temp_dir / "explicit"
        assert config.progress_file == temp_dir / "explicit" / "progress.json"
        assert config.export_dir is None
        assert config.theme == DEFAULT_THEME
        assert config.fallback_encoding == "utf-8"

    def test_environment_variable(self, temp_dir, monkeypatch):
        """The environment variable is used without an explicit directory."""
        monkeypatch.setenv(ENV_HOME, str(temp_dir / "from-env"))
        assert AppConfig.load().base_dir == temp_dir / "from-env"

    def test_platform_default(self, monkeypatch):
        """Without overrides the platform default directory is used."""
        monkeypatch.delenv(ENV_HOME, raising=False)
        base = AppConfig.load().base_dir
        assert base == AppConfig.get_platform_default_base()
        if platform.system() == "Linux":
            assert base == Path.home() / ".epub_reader"

    def test_config_file_values(self, temp_dir):
        """Values in config.json override the defaults."""
        temp_dir.joinpath(CONFIG_FILE_NAME).write_text(
            json.dumps({
                "export_dir": str(temp_dir / "exports"),
                "theme": {"background": "#ffffff", "foreground": "black"},
                "fallback_encoding": "cp1252",
            })
        )
        config = AppConfig.load(temp_dir)
        assert config.export_dir == temp_dir / "exports"
        assert config.theme.background == "#ffffff"
        assert config.theme.foreground == "black"
        assert config.theme.link == DEFAULT_THEME.link
        assert config.fallback_encoding == "cp1252"

    def test_invalid_json_ignored(self, temp_dir):
        """A config file that is not JSON falls back to defaults."""
        temp_dir.joinpath(CONFIG_FILE_NAME).write_text("{oops")
        assert AppConfig.load(temp_dir).theme == DEFAULT_THEME

    def test_invalid_color_rejected(self, temp_dir):
        """Invalid theme colors are configuration errors."""
        temp_dir.joinpath(CONFIG_FILE_NAME).write_text(json.dumps({"theme": {"link": "url(x)"}}))
        with pytest.raises(ConfigurationError) as exc_info:
            AppConfig.load(temp_dir)
        assert exc_info.value.parameter == "theme.link"

    def test_unknown_encoding_rejected(self, temp_dir):
        """Unknown fallback encodings are configuration errors."""
        temp_dir.joinpath(CONFIG_FILE_NAME).write_text(json.dumps({"fallback_encoding": "x-nope"}))
        with pytest.raises(ConfigurationError):
            AppConfig.load(temp_dir)

    @pytest.mark.parametrize("encoding", ["base64", "idna"])
    def test_unusable_encoding_rejected(self, temp_dir, encoding):
        """Codecs that cannot decode documents leniently are rejected."""
        temp_dir.joinpath(CONFIG_FILE_NAME).write_text(json.dumps({"fallback_encoding": encoding}))
        with pytest.raises(ConfigurationError) as exc_info:
            AppConfig.load(temp_dir)
        assert exc_info.value.parameter == "fallback_encoding"

    def test_save_and_reload(self, temp_dir):
        """A saved configuration loads back unchanged."""
        config = AppConfig.load(temp_dir / "home")
        config.export_dir = temp_dir / "out"
        config.theme = theme_from_dict({"muted": "#999"})
        config.save()

        reloaded = AppConfig.load(temp_dir / "home")
        assert reloaded.export_dir == temp_dir / "out"
        assert reloaded.theme.muted == "#999"
        assert (temp_dir / "out").is_dir()


class TestThemeFromDict:
    """Tests for theme_from_dict and validate_encoding."""

    def test_empty(self):
        """No theme data means the default theme."""
        assert theme_from_dict(None) is DEFAULT_THEME
        assert theme_from_dict({}) is DEFAULT_THEME

    def test_unknown_key(self):
        """Unknown theme keys are rejected."""
        with pytest.raises(ConfigurationError):
            theme_from_dict({"border": "#000"})

    def test_validate_encoding(self):
        """Known encodings pass through unchanged."""
        assert validate_encoding("latin-1") == "latin-1"

    def test_validate_encoding_rejects_binary_codecs(self):
        """Binary codecs are not text encodings."""
        with pytest.raises(ConfigurationError):
            validate_encoding("base64")


class TestGlobalConfig:
    """Tests for the global configuration accessors."""

    def test_init_and_get(self, temp_dir):
        """init_config replaces the global instance returned by get_config."""
        config = init_config(temp_dir / "custom")
        assert get_config() is config
        reset_config()
        assert get_config() is not config
