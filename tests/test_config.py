from __future__ import annotations

from pathlib import Path
import logging
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from nanning.config import ConfigManager, StorageSettings
from nanning.logging import log_call


def test_storage_settings_defaults(tmp_path: Path) -> None:
    config = ConfigManager(config_dir=tmp_path / "config")
    settings = StorageSettings.from_config(config, data_dir=tmp_path / "profile")
    assert settings.database_path == tmp_path / "profile" / "data" / "nanning.db"
    assert settings.files_root == tmp_path / "profile" / "files"
    assert settings.journal_mode == "WAL"
    assert settings.search_index is True
    assert settings.seed_presets is True


def test_storage_settings_read_from_config(tmp_path: Path) -> None:
    config = ConfigManager(config_dir=tmp_path / "config")
    config.update(
        {
            "storage": {
                "data_dir": str(tmp_path / "elsewhere"),
                "database_filename": "notes.db",
                "journal_mode": "delete",
                "search_index": "false",
                "seed_presets": False,
            }
        }
    )
    settings = StorageSettings.from_config(config)
    assert settings.data_dir == tmp_path / "elsewhere"
    assert settings.database_filename == "notes.db"
    assert settings.journal_mode == "DELETE"
    assert settings.search_index is False
    assert settings.seed_presets is False


def test_storage_settings_ignore_invalid_values(tmp_path: Path) -> None:
    config = ConfigManager(config_dir=tmp_path / "config")
    config.save(
        {
            "storage": {
                "database_filename": "../escape.db",
                "journal_mode": "sideways",
                "search_index": "maybe",
            }
        }
    )
    settings = StorageSettings.from_config(config, data_dir=tmp_path)
    assert settings.database_filename == "nanning.db"
    assert settings.journal_mode == "WAL"
    assert settings.search_index is True


def test_ini_config_round_trip(tmp_path: Path) -> None:
    config = ConfigManager(format="ini", config_dir=tmp_path)
    config.save({"storage": {"journal_mode": "WAL"}})
    assert config.update({"storage": {"seed_presets": "no"}}) == {
        "storage": {"journal_mode": "WAL", "seed_presets": "no"}
    }
    settings = StorageSettings.from_config(config, data_dir=tmp_path)
    assert settings.seed_presets is False


def test_log_call_records_failures(caplog) -> None:
    @log_call(logger=logging.getLogger("nanning.test"))
    def explode(value: int) -> int:
        raise RuntimeError(f"bad {value}")

    with caplog.at_level(logging.DEBUG, logger="nanning.test"):
        try:
            explode(3)
        except RuntimeError:
            pass
    messages = [record.getMessage() for record in caplog.records]
    assert any("Calling" in message and "value=3" in message for message in messages)
    assert any(record.levelno == logging.ERROR for record in caplog.records)


def test_log_call_reports_failed_envelopes(caplog) -> None:
    from nanning.bridge import Result
    from nanning.storage import NotFound

    @log_call(logger=logging.getLogger("nanning.test"))
    def lookup() -> Result:
        return Result.fail(NotFound("Document 'x' not found"))

    with caplog.at_level(logging.DEBUG, logger="nanning.test"):
        result = lookup()
    assert not result.success
    warnings = [record for record in caplog.records if record.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "NotFound" in warnings[0].getMessage()


def test_log_call_summarises_successful_payloads(caplog) -> None:
    from nanning.bridge import Result

    @log_call(logger=logging.getLogger("nanning.test"))
    def listing() -> Result:
        return Result.ok([{"id": "a", "content": "private text"}, {"id": "b"}])

    with caplog.at_level(logging.DEBUG, logger="nanning.test"):
        listing()
    messages = [record.getMessage() for record in caplog.records]
    assert any("succeeded" in message and "2 records" in message for message in messages)
    assert not any("private text" in message for message in messages)
