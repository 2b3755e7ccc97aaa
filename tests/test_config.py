# Area: Shared Tests
# PRD: docs/prd-match-lifecycle.md
"""Tests for daemon configuration loading."""

import json
import os
import tempfile
from unittest.mock import patch

import pytest

from companion_matches._config import DEFAULT_CONFIG, load_config, validate_config
from companion_matches.errors import ConfigError

ENV_KEYS = (
    "COMPANION_DB_PATH",
    "COMPANION_LOG_FILE",
    "COMPANION_LOG_LEVEL",
    "COMPANION_RECOVERY_TIMEOUT_SECS",
    "COMPANION_RECOVERY_CONCURRENCY",
    "COMPANION_RECOVERY_INTERVAL_SECS",
)


class TestLoadConfig:
    """Tests for load_config."""

    @pytest.fixture(autouse=True)
    def clean_env(self):
        """Isolate from the developer's environment and .env file."""
        env = {k: v for k, v in os.environ.items() if k not in ENV_KEYS}
        with patch.dict(os.environ, env, clear=True), \
                patch("companion_matches._config.load_dotenv"):
            yield

    @pytest.fixture
    def config_file(self):
        fd, path = tempfile.mkstemp(suffix=".json")
        os.close(fd)
        yield path
        os.unlink(path)

    def _write(self, path, data):
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f)

    def test_defaults_only(self):
        config = load_config()
        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG
        assert config["recovery"] is not DEFAULT_CONFIG["recovery"]

    def test_file_values_kept_and_defaults_filled(self, config_file):
        self._write(config_file, {
            "db_path": "x.db",
            "recovery": {"timeout_secs": 2.0},
            "packs": {"league": {"subpacks": {"0": {"columns": {"kills": "integer"}}}}},
        })
        config = load_config(config_file)
        assert config["db_path"] == "x.db"
        assert config["recovery"]["timeout_secs"] == 2.0
        assert config["recovery"]["concurrency"] == 4
        assert config["capture"]["default_pre_capture_secs"] == 15.0
        assert "league" in config["packs"]

    def test_env_overrides_file(self, config_file):
        self._write(config_file, {"db_path": "file.db", "recovery": {"concurrency": 2}})
        with patch.dict(os.environ, {
            "COMPANION_DB_PATH": "env.db",
            "COMPANION_RECOVERY_CONCURRENCY": "8",
            "COMPANION_RECOVERY_TIMEOUT_SECS": "1.5",
        }):
            config = load_config(config_file)
        assert config["db_path"] == "env.db"
        assert config["recovery"]["concurrency"] == 8
        assert config["recovery"]["timeout_secs"] == 1.5

    def test_bad_env_value(self):
        with patch.dict(os.environ, {"COMPANION_RECOVERY_CONCURRENCY": "many"}):
            with pytest.raises(ConfigError):
                load_config()

    def test_missing_file(self):
        with pytest.raises(ConfigError):
            load_config("/nonexistent/companion.json")

    def test_invalid_json(self, config_file):
        with open(config_file, "w", encoding="utf-8") as f:
            f.write("{not json")
        with pytest.raises(ConfigError):
            load_config(config_file)

    def test_json_not_object(self, config_file):
        self._write(config_file, [1, 2])
        with pytest.raises(ConfigError):
            load_config(config_file)

    def test_dotenv_is_loaded(self):
        with patch("companion_matches._config.load_dotenv") as mock_load:
            load_config()
        mock_load.assert_called_once()


class TestValidateConfig:
    """Tests for validate_config."""

    def _config(self, **overrides):
        config = json.loads(json.dumps(DEFAULT_CONFIG))
        config.update(overrides)
        return config

    def test_defaults_valid(self):
        validate_config(self._config())

    @pytest.mark.parametrize("recovery", [
        {"timeout_secs": 0, "interval_secs": 60.0, "concurrency": 4, "stuck_after_attempts": 5},
        {"timeout_secs": 5.0, "interval_secs": -1, "concurrency": 4, "stuck_after_attempts": 5},
        {"timeout_secs": 5.0, "interval_secs": 60.0, "concurrency": 1.5, "stuck_after_attempts": 5},
        {"timeout_secs": 5.0, "interval_secs": 60.0, "concurrency": 4, "stuck_after_attempts": True},
    ])
    def test_bad_recovery(self, recovery):
        with pytest.raises(ConfigError):
            validate_config(self._config(recovery=recovery))

    def test_bad_capture(self):
        with pytest.raises(ConfigError):
            validate_config(self._config(capture={
                "default_pre_capture_secs": "15", "default_post_capture_secs": 5.0,
            }))

    def test_bad_db_path(self):
        with pytest.raises(ConfigError):
            validate_config(self._config(db_path=""))

    def test_null_log_file_allowed(self):
        validate_config(self._config(log_file=None))

    def test_bad_packs(self):
        with pytest.raises(ConfigError):
            validate_config(self._config(packs=["league"]))
        with pytest.raises(ConfigError):
            validate_config(self._config(packs={"league": {"subpacks": {"0": {"columns": []}}}}))
