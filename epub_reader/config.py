"""Centralized application configuration for epub_reader.

This module provides:
- AppConfig: Centralized configuration management
- Platform-specific default directories
- Configuration priority: CLI > Environment > Config file > Default
"""

import codecs
import json
import logging
import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigurationError
from .loader import DEFAULT_ENCODING
from .sanitizer import DEFAULT_THEME, ChapterTheme, is_valid_color

logger = logging.getLogger(__name__)

ENV_HOME = "EPUB_READER_HOME"
CONFIG_FILE_NAME = "config.json"
PROGRESS_FILE_NAME = "progress.json"


def theme_from_dict(data: dict[str, Any] | None) -> ChapterTheme:
    """Build a theme from config data, validating every color.

    Raises:
        ConfigurationError: If a color value is not a hex code or color name
    """
    if not data:
        return DEFAULT_THEME
    values = DEFAULT_THEME.to_dict()
    for key, value in data.items():
        if key not in values:
            raise ConfigurationError(f"Unknown theme color '{key}'", parameter=f"theme.{key}")
        if not isinstance(value, str) or not is_valid_color(value):
            raise ConfigurationError(f"Invalid color value: {value!r}", parameter=f"theme.{key}")
        values[key] = value
    return ChapterTheme(**values)


def validate_encoding(name: str) -> str:
    """Accept only text encodings that can decode leniently.

    Raises:
        ConfigurationError: For unknown names, binary codecs such as
            "base64" and codecs without errors="replace" support
    """
    try:
        codecs.lookup(name)
    except (LookupError, TypeError) as e:
        raise ConfigurationError(f"Unknown encoding '{name}'", parameter="fallback_encoding") from e
    try:
        b"".decode(name, errors="replace")
    except (LookupError, UnicodeError) as e:
        raise ConfigurationError(
            f"Encoding '{name}' cannot decode documents", parameter="fallback_encoding"
        ) from e
    return name


@dataclass
class AppConfig:
    """Centralized application configuration."""

    # Directory paths
    base_dir: Path
    progress_file: Path
    export_dir: Path | None = None  # None = ask on the command line

    # Rendering defaults
    theme: ChapterTheme = field(default_factory=lambda: DEFAULT_THEME)
    fallback_encoding: str = DEFAULT_ENCODING

    @classmethod
    def get_platform_default_base(cls) -> Path:
        """Get platform-specific default base directory."""
        system = platform.system()

        if system == "Windows":
            base = os.environ.get("APPDATA", os.path.expanduser("~"))
            return Path(base) / "EpubReader"
        elif system == "Darwin":  # macOS
            return Path.home() / "Library" / "Application Support" / "EpubReader"
        else:  # Linux and others
            return Path.home() / ".epub_reader"

    @classmethod
    def load(cls, base_dir: str | Path | None = None) -> "AppConfig":
        """Load configuration with priority resolution.

        Priority (highest to lowest):
        1. Explicit argument (base_dir parameter)
        2. Environment variable (EPUB_READER_HOME)
        3. Platform default

        Raises:
            ConfigurationError: If config.json holds invalid values
        """
        # Priority 1: Explicit argument
        if base_dir:
            base = Path(base_dir)
        # Priority 2: Environment variable
        elif env_home := os.environ.get(ENV_HOME):
            base = Path(env_home)
        # Priority 3: Platform default
        else:
            base = cls.get_platform_default_base()

        config_file = base / CONFIG_FILE_NAME
        file_config: dict[str, Any] = {}
        if config_file.exists():
            try:
                with open(config_file, encoding="utf-8") as f:
                    file_config = json.load(f)
            except (json.JSONDecodeError, OSError) as e:
                logger.warning("Ignoring unreadable config file %s: %s", config_file, e)
                file_config = {}

        progress_file = Path(file_config.get("progress_file", base / PROGRESS_FILE_NAME))
        export_dir = Path(file_config["export_dir"]) if file_config.get("export_dir") else None

        return cls(
            base_dir=base,
            progress_file=progress_file,
            export_dir=export_dir,
            theme=theme_from_dict(file_config.get("theme")),
            fallback_encoding=validate_encoding(
                file_config.get("fallback_encoding", DEFAULT_ENCODING)
            ),
        )

    def save(self) -> None:
        """Save configuration to disk."""
        self.ensure_dirs()
        config_file = self.base_dir / CONFIG_FILE_NAME
        config_dict = {
            "progress_file": str(self.progress_file),
            "export_dir": str(self.export_dir) if self.export_dir else None,
            "theme": self.theme.to_dict(),
            "fallback_encoding": self.fallback_encoding,
        }
        with open(config_file, "w", encoding="utf-8") as f:
            json.dump(config_dict, f, indent=2)

    def ensure_dirs(self) -> None:
        """Ensure all directories exist."""
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.progress_file.parent.mkdir(parents=True, exist_ok=True)
        if self.export_dir:
            self.export_dir.mkdir(parents=True, exist_ok=True)


# Singleton for global access
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.load()
    return _config


def init_config(base_dir: str | Path | None = None) -> AppConfig:
    """Initialize configuration with optional custom base directory."""
    global _config
    _config = AppConfig.load(base_dir)
    return _config


def reset_config() -> None:
    """Reset the global configuration (mainly for testing)."""
    global _config
    _config = None
