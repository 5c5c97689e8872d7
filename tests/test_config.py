# tests/test_config.py

from __future__ import annotations

from pathlib import Path

from taskflow.config import Settings


def test_settings_defaults(monkeypatch) -> None:
    for name in ("APP_NAME", "LOG_LEVEL", "CONSOLE_ENABLED", "DATA_DIR", "DB_PATH"):
        monkeypatch.delenv(f"TASKFLOW_{name}", raising=False)

    s = Settings.from_env()
    assert s.app_name == "taskflow"
    assert s.log_level == "INFO"
    assert s.console_enabled is True
    assert s.db_path == Path(".local/taskflow") / "taskflow.sqlite3"


def test_settings_from_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TASKFLOW_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("TASKFLOW_CONSOLE_ENABLED", "off")
    monkeypatch.delenv("TASKFLOW_DB_PATH", raising=False)

    s = Settings.from_env()
    assert s.console_enabled is False
    assert s.db_path == tmp_path / "taskflow.sqlite3"

    monkeypatch.setenv("TASKFLOW_DB_PATH", str(tmp_path / "x.db"))
    assert Settings.from_env().db_path == tmp_path / "x.db"
