"""Tests for app.config — fail-fast environment validation."""

from pathlib import Path

import pytest

from app import config

_VARS = (
    "GOOGLE_DRIVE_FOLDER_ID", "GOOGLE_DRIVE_KEY_PATH", "DATA_DIR", "FOODS_DB_PATH",
    "DRIVE_REFRESH_MINUTES", "DRIVE_CONTENT_CACHE_MB", "DRIVE_TIMEOUT_SECONDS",
    "FOODS_CACHE_TTL_SECONDS", "CORS_ORIGINS",
)


@pytest.fixture()
def env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Valid baseline environment; individual tests break one thing."""
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "_settings", None)

    key = tmp_path / "key.json"
    key.write_text("{}")
    monkeypatch.setenv("GOOGLE_DRIVE_FOLDER_ID", "root-folder")
    monkeypatch.setenv("GOOGLE_DRIVE_KEY_PATH", str(key))
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    return tmp_path


class TestLoad:
    def test_defaults(self, env):
        settings = config.load()
        assert settings.drive_folder_id == "root-folder"
        assert settings.refresh_interval_seconds == 15 * 60
        assert settings.content_cache_bytes == 10 * 1024 * 1024
        assert settings.foods_db == (env / "data").resolve() / "foods.db"
        assert settings.cors_origins == ("https://sportyne-fe.onrender.com",)
        assert (env / "data").is_dir()

    def test_overrides(self, env, monkeypatch):
        monkeypatch.setenv("DRIVE_REFRESH_MINUTES", "5")
        monkeypatch.setenv("DRIVE_CONTENT_CACHE_MB", "1")
        monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
        settings = config.load()
        assert settings.refresh_interval_seconds == 300
        assert settings.content_cache_bytes == 1024 * 1024
        assert settings.cors_origins == ("http://a.test", "http://b.test")

    def test_get_returns_loaded(self, env):
        settings = config.load()
        assert config.get() is settings
        assert config.load() is settings

    def test_get_before_load(self, env):
        with pytest.raises(RuntimeError):
            config.get()


class TestFailFast:
    def test_missing_folder_id(self, env, monkeypatch, capsys):
        monkeypatch.delenv("GOOGLE_DRIVE_FOLDER_ID")
        with pytest.raises(SystemExit):
            config.load()
        assert "GOOGLE_DRIVE_FOLDER_ID" in capsys.readouterr().err

    def test_missing_key_file(self, env, monkeypatch, capsys):
        monkeypatch.setenv("GOOGLE_DRIVE_KEY_PATH", str(env / "nope.json"))
        with pytest.raises(SystemExit):
            config.load()
        assert "GOOGLE_DRIVE_KEY_PATH" in capsys.readouterr().err

    def test_bad_number(self, env, monkeypatch, capsys):
        monkeypatch.setenv("DRIVE_REFRESH_MINUTES", "soon")
        with pytest.raises(SystemExit):
            config.load()
        assert "DRIVE_REFRESH_MINUTES" in capsys.readouterr().err

    def test_all_errors_reported_together(self, env, monkeypatch, capsys):
        monkeypatch.delenv("GOOGLE_DRIVE_FOLDER_ID")
        monkeypatch.delenv("DATA_DIR")
        with pytest.raises(SystemExit):
            config.load()
        err = capsys.readouterr().err
        assert "GOOGLE_DRIVE_FOLDER_ID" in err
        assert "DATA_DIR" in err
