"""
Tests for env.py - settings from the environment.
"""

import os
from pathlib import Path
import pytest

from parentfill.env import Settings, load_env, load_settings
from parentfill.schema import DEFAULT_BATCH_SIZE, DEFAULT_UPDATE_KEY


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in (
        "PARENTFILL_DB",
        "PARENTFILL_BATCH_SIZE",
        "PARENTFILL_UPDATE_KEY",
        "PARENTFILL_LOG_LEVEL",
        "PARENTFILL_LOG_DIR",
    ):
        # setenv first so monkeypatch also undoes values written by load_dotenv
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


class TestLoadSettings:

    def test_defaults(self, clean_env):
        settings = load_settings()

        assert settings == Settings()
        assert settings.batch_size == DEFAULT_BATCH_SIZE
        assert settings.update_key == DEFAULT_UPDATE_KEY
        assert settings.db_path == Path("data/wiki.db")

    def test_overrides(self, clean_env):
        clean_env.setenv("PARENTFILL_DB", "/srv/wiki.db")
        clean_env.setenv("PARENTFILL_BATCH_SIZE", "1000")
        clean_env.setenv("PARENTFILL_UPDATE_KEY", "populate rev_parent_id v2")
        clean_env.setenv("PARENTFILL_LOG_LEVEL", "DEBUG")

        settings = load_settings()

        assert settings.db_path == Path("/srv/wiki.db")
        assert settings.batch_size == 1000
        assert settings.update_key == "populate rev_parent_id v2"
        assert settings.log_level == "DEBUG"

    def test_blank_batch_size_uses_default(self, clean_env):
        clean_env.setenv("PARENTFILL_BATCH_SIZE", "  ")

        assert load_settings().batch_size == DEFAULT_BATCH_SIZE

    def test_bad_batch_size(self, clean_env):
        clean_env.setenv("PARENTFILL_BATCH_SIZE", "lots")

        with pytest.raises(SystemExit, match="PARENTFILL_BATCH_SIZE must be an integer"):
            load_settings()

    def test_errors(self):
        assert Settings().errors() == []
        assert Settings(batch_size=0).errors() == ["Field 'batch_size' must be positive"]


class TestLoadEnv:

    def test_reads_dotenv(self, clean_env, tmp_path):
        (tmp_path / ".env").write_text("PARENTFILL_BATCH_SIZE=42\n")

        load_env()

        assert os.environ["PARENTFILL_BATCH_SIZE"] == "42"
        assert load_settings().batch_size == 42

    def test_missing_dotenv_is_fine(self, clean_env):
        load_env()

        assert "PARENTFILL_BATCH_SIZE" not in os.environ
