"""Tests for environment-driven settings."""

from pathlib import Path

from prompt_mix.config import Settings, DEFAULT_DATA_DIR


class TestSettings:
    def test_defaults(self):
        s = Settings.from_env({})
        assert s.data_dir == DEFAULT_DATA_DIR
        assert s.storage_path == DEFAULT_DATA_DIR / "local_storage.json"
        assert s.port == 8888

    def test_overrides(self, tmp_path):
        s = Settings.from_env({
            "PROMPT_MIX_DATA_DIR": str(tmp_path),
            "PROMPT_MIX_STORAGE_FILE": "slots.json",
            "PROMPT_MIX_PORT": "9001",
            "PROMPT_MIX_LOG_LEVEL": "debug",
        })
        assert s.storage_path == Path(tmp_path) / "slots.json"
        assert s.port == 9001
        assert s.log_level == "DEBUG"
