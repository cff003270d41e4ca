"""Application configuration management."""

from __future__ import annotations

import json
import logging
import os
import sys
from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import Any, MutableMapping

CONFIG_DIR_NAME = "Nanning"
DEFAULT_JSON_FILENAME = "settings.json"
DEFAULT_INI_FILENAME = "settings.ini"
DEFAULT_DATABASE_FILENAME = "nanning.db"
DEFAULT_JOURNAL_MODE = "WAL"
JOURNAL_MODES = {"DELETE", "TRUNCATE", "PERSIST", "MEMORY", "WAL", "OFF"}

logger = logging.getLogger(__name__)


def get_user_config_dir(app_name: str = CONFIG_DIR_NAME) -> Path:
    """Return the configuration directory for the current user.

    The directory is created on first use. On Windows the directory is
    under ``%APPDATA%``; otherwise the XDG base directory or ``~/.config``
    is used.
    """
    if sys.platform.startswith("win"):
        base_dir = Path(os.getenv("APPDATA", Path.home()))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", Path.home() / ".config"))
    config_dir = base_dir / app_name
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_user_data_dir(app_name: str = CONFIG_DIR_NAME) -> Path:
    """Return the private data directory for the current user.

    Mirrors :func:`get_user_config_dir` but follows ``%LOCALAPPDATA%`` and
    ``$XDG_DATA_HOME`` (``~/.local/share``) instead.
    """
    if sys.platform.startswith("win"):
        base_dir = Path(os.getenv("LOCALAPPDATA", os.getenv("APPDATA", Path.home())))
    else:
        base_dir = Path(os.getenv("XDG_DATA_HOME", Path.home() / ".local" / "share"))
    data_dir = base_dir / app_name
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


class ConfigManager:
    """Handle loading and saving user configuration settings."""

    def __init__(
        self,
        app_name: str = CONFIG_DIR_NAME,
        *,
        format: str = "json",
        filename: str | None = None,
        config_dir: str | Path | None = None,
    ) -> None:
        self.app_name = app_name
        self.format = format.lower()
        if self.format not in {"json", "ini"}:
            raise ValueError("format must be either 'json' or 'ini'")
        if filename is None:
            filename = (
                DEFAULT_JSON_FILENAME if self.format == "json" else DEFAULT_INI_FILENAME
            )
        if config_dir is None:
            self.config_dir = get_user_config_dir(app_name)
        else:
            self.config_dir = Path(config_dir)
            self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_path = self.config_dir / filename

    def load(self) -> dict[str, Any]:
        """Load configuration from disk.

        Returns an empty dictionary if the configuration file is absent.
        """
        if not self.config_path.exists():
            return {}

        if self.format == "json":
            with self.config_path.open("r", encoding="utf-8") as fh:
                return json.load(fh)

        parser = ConfigParser()
        parser.read(self.config_path, encoding="utf-8")
        return {section: dict(parser.items(section)) for section in parser.sections()}

    def save(self, data: MutableMapping[str, Any]) -> None:
        """Persist configuration data to disk."""
        if self.format == "json":
            with self.config_path.open("w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, sort_keys=True)
                fh.write("\n")
            return

        parser = ConfigParser()
        for section, values in data.items():
            if not isinstance(values, MutableMapping):
                raise ValueError("INI configuration requires mapping values per section")
            parser[section] = {str(key): str(value) for key, value in values.items()}
        with self.config_path.open("w", encoding="utf-8") as fh:
            parser.write(fh)

    def update(self, data: MutableMapping[str, Any]) -> dict[str, Any]:
        """Update the stored configuration with ``data`` and return the result."""
        current = self.load()
        for section, values in data.items():
            if not isinstance(values, MutableMapping):
                if self.format == "ini":
                    raise ValueError(
                        "INI configuration updates require mapping values per section"
                    )
                current[section] = values
                continue
            section_data = current.setdefault(section, {})
            if not isinstance(section_data, dict):
                raise ValueError("Existing section must be a mapping to apply updates")
            section_data.update(values)
        self.save(current)
        return current

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"ConfigManager(app_name={self.app_name!r}, format={self.format!r}, path={self.config_path!s})"


def _coerce_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    if isinstance(value, int):
        return bool(value)
    return default


@dataclass(slots=True)
class StorageSettings:
    """Where and how the local persistence layer keeps its data."""

    data_dir: Path
    database_filename: str = DEFAULT_DATABASE_FILENAME
    journal_mode: str = DEFAULT_JOURNAL_MODE
    search_index: bool = True
    seed_presets: bool = True

    @property
    def database_path(self) -> Path:
        return self.data_dir / "data" / self.database_filename

    @property
    def files_root(self) -> Path:
        """Private root that sandboxed file access is confined to."""
        return self.data_dir / "files"

    @classmethod
    def from_config(
        cls,
        config: ConfigManager | None = None,
        *,
        data_dir: str | Path | None = None,
    ) -> "StorageSettings":
        """Build settings from the ``storage`` section of ``config``.

        Invalid values are logged and replaced with defaults so a damaged
        settings file never blocks startup.
        """

        config = config or ConfigManager()
        data = config.load()
        section = data.get("storage", {}) if isinstance(data, dict) else {}
        if not isinstance(section, dict):
            logger.warning("Ignoring malformed storage configuration section")
            section = {}

        if data_dir is None:
            configured_dir = section.get("data_dir")
            if isinstance(configured_dir, str) and configured_dir.strip():
                data_dir = Path(configured_dir).expanduser()
            else:
                data_dir = get_user_data_dir(config.app_name)

        filename = section.get("database_filename", DEFAULT_DATABASE_FILENAME)
        if not isinstance(filename, str) or not filename.strip() or Path(filename).name != filename:
            logger.warning(
                "Invalid database filename in configuration; using default",
                extra={"value": filename},
            )
            filename = DEFAULT_DATABASE_FILENAME

        journal_mode = str(section.get("journal_mode", DEFAULT_JOURNAL_MODE)).upper()
        if journal_mode not in JOURNAL_MODES:
            logger.warning(
                "Unsupported journal mode in configuration; using default",
                extra={"value": journal_mode},
            )
            journal_mode = DEFAULT_JOURNAL_MODE

        return cls(
            data_dir=Path(data_dir),
            database_filename=filename,
            journal_mode=journal_mode,
            search_index=_coerce_bool(section.get("search_index"), True),
            seed_presets=_coerce_bool(section.get("seed_presets"), True),
        )


__all__ = [
    "ConfigManager",
    "StorageSettings",
    "get_user_config_dir",
    "get_user_data_dir",
]
