"""
Tests for the config module.
"""

import pytest

from course_watcher.config import (
    DEFAULT_DB_FILE,
    DEFAULT_PARALLELISM,
    ConfigError,
    WatcherConfig,
    build_config,
    find_missing_settings,
    parse_args,
    validate_config,
)


class TestBuildConfig:
    """Tests for flag and environment resolution."""

    def test_defaults(self):
        """Test defaults when neither flags nor environment are set."""
        config = build_config(parse_args([]), environ={})

        assert config.db_path == DEFAULT_DB_FILE
        assert config.telegram_token == ""
        assert config.telegram_thread_id == ""
        assert config.parallelism == DEFAULT_PARALLELISM
        assert config.allowed_domain == "formacionagraria.tenerife.es"

    def test_environment_used(self):
        """Test that environment variables fill unset flags."""
        environ = {
            "DB_FILE": "/data/cursos.db",
            "TELEGRAM_TOKEN": "123:abc",
            "TELEGRAM_CHATID": "-100",
            "TELEGRAM_THREADID": "42",
        }

        config = build_config(parse_args([]), environ=environ)

        assert config.db_path == "/data/cursos.db"
        assert config.telegram_token == "123:abc"
        assert config.telegram_chat_id == "-100"
        assert config.telegram_thread_id == "42"

    def test_flags_override_environment(self):
        """Test that flags take precedence over environment variables."""
        args = parse_args(["--db", "flag.db", "--token", "flag-token", "--chatid", "1"])
        environ = {"DB_FILE": "env.db", "TELEGRAM_TOKEN": "env-token", "TELEGRAM_CHATID": "2"}

        config = build_config(args, environ=environ)

        assert config.db_path == "flag.db"
        assert config.telegram_token == "flag-token"
        assert config.telegram_chat_id == "1"

    def test_blank_values_ignored(self):
        """Test that whitespace-only values count as unset."""
        config = build_config(parse_args(["--token", "  "]), environ={"TELEGRAM_TOKEN": " "})

        assert config.telegram_token == ""

    def test_dry_run_flag(self):
        """Test the --dry-run flag."""
        assert parse_args(["--dry-run"]).dry_run is True
        assert parse_args([]).dry_run is False


class TestValidateConfig:
    """Tests for configuration validation."""

    def test_complete_config_passes(self):
        """Test that a config with credentials validates."""
        validate_config(WatcherConfig(telegram_token="t", telegram_chat_id="c"))

    def test_missing_token_and_chat(self):
        """Test that missing credentials are all reported."""
        config = WatcherConfig()

        assert find_missing_settings(config) == ["TELEGRAM_TOKEN", "TELEGRAM_CHATID"]
        with pytest.raises(ConfigError, match="TELEGRAM_TOKEN"):
            validate_config(config)

    def test_thread_is_optional(self):
        """Test that the thread ID is not required."""
        assert find_missing_settings(WatcherConfig(telegram_token="t", telegram_chat_id="c")) == []

    def test_invalid_parallelism(self):
        """Test that parallelism must be positive."""
        with pytest.raises(ConfigError, match="parallelism"):
            validate_config(WatcherConfig(telegram_token="t", telegram_chat_id="c", parallelism=0))

    def test_negative_delay(self):
        """Test that the request delay cannot be negative."""
        with pytest.raises(ConfigError, match="request_delay"):
            validate_config(WatcherConfig(telegram_token="t", telegram_chat_id="c", request_delay=-1))

    def test_config_error_is_value_error(self):
        """Test that ConfigError can be handled as ValueError."""
        assert issubclass(ConfigError, ValueError)
