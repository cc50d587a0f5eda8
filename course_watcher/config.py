"""
Configuration for the Course Watcher pipeline.

Settings are resolved once at startup from command-line flags, falling back
to environment variables and then to defaults. The resulting WatcherConfig is
passed explicitly to the crawler, the store and the notifier.
"""

import argparse
import os
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence


# Crawl target
DEFAULT_ROOT_URL = "https://formacionagraria.tenerife.es/"
DEFAULT_ALLOWED_DOMAIN = "formacionagraria.tenerife.es"

# Politeness limits
DEFAULT_PARALLELISM = 3
DEFAULT_REQUEST_DELAY = 1.0  # seconds between requests to the same domain
DEFAULT_TIMEOUT = 30  # seconds

DEFAULT_DB_FILE = "cursos.db"


class ConfigError(ValueError):
    """Raised when required configuration is missing or invalid."""


@dataclass
class WatcherConfig:
    """
    Settings for one pipeline run.

    Attributes:
        db_path: Path to the SQLite database holding known courses.
        telegram_token: Telegram bot token.
        telegram_chat_id: Chat that receives notifications.
        telegram_thread_id: Optional forum topic inside the chat.
        root_url: Catalog page the crawl starts from.
        allowed_domain: Only URLs on this host are ever fetched.
        parallelism: Maximum number of requests in flight.
        request_delay: Minimum seconds between requests to one domain.
        timeout: Per-request timeout in seconds.
    """
    db_path: str = DEFAULT_DB_FILE
    telegram_token: str = ""
    telegram_chat_id: str = ""
    telegram_thread_id: str = ""
    root_url: str = DEFAULT_ROOT_URL
    allowed_domain: str = DEFAULT_ALLOWED_DOMAIN
    parallelism: int = DEFAULT_PARALLELISM
    request_delay: float = DEFAULT_REQUEST_DELAY
    timeout: int = DEFAULT_TIMEOUT


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line flags. Unset flags are left as None."""
    parser = argparse.ArgumentParser(
        description="Watch the course catalog and announce new courses on Telegram"
    )
    parser.add_argument("--db", help="Path to the SQLite database (env: DB_FILE)")
    parser.add_argument("--token", help="Telegram bot token (env: TELEGRAM_TOKEN)")
    parser.add_argument("--chatid", help="Telegram chat ID (env: TELEGRAM_CHATID)")
    parser.add_argument("--threadid", help="Telegram thread ID (env: TELEGRAM_THREADID)")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Crawl and update the database but only log the message (env: DRY_RUN)",
    )
    return parser.parse_args(argv)


def _resolve(flag_value: Optional[str], environ: Mapping[str, str], env_name: str, default: str = "") -> str:
    if flag_value is not None and flag_value.strip():
        return flag_value.strip()

    env_value = environ.get(env_name, "")
    if env_value.strip():
        return env_value.strip()

    return default


def build_config(
    args: argparse.Namespace,
    environ: Optional[Mapping[str, str]] = None
) -> WatcherConfig:
    """
    Build the run configuration from parsed flags and the environment.

    Flags take precedence over environment variables.

    Args:
        args: Namespace returned by parse_args.
        environ: Environment mapping. Defaults to os.environ.

    Returns:
        WatcherConfig for this run.
    """
    if environ is None:
        environ = os.environ

    return WatcherConfig(
        db_path=_resolve(args.db, environ, "DB_FILE", DEFAULT_DB_FILE),
        telegram_token=_resolve(args.token, environ, "TELEGRAM_TOKEN"),
        telegram_chat_id=_resolve(args.chatid, environ, "TELEGRAM_CHATID"),
        telegram_thread_id=_resolve(args.threadid, environ, "TELEGRAM_THREADID"),
    )


def find_missing_settings(config: WatcherConfig) -> List[str]:
    """Return the names of required settings that are not set."""
    missing = []
    if not config.telegram_token:
        missing.append("TELEGRAM_TOKEN")
    if not config.telegram_chat_id:
        missing.append("TELEGRAM_CHATID")
    return missing


def validate_config(config: WatcherConfig) -> None:
    """
    Check that the configuration is complete enough to run.

    Raises:
        ConfigError: If a required setting is missing or a limit is invalid.
    """
    missing = find_missing_settings(config)
    if missing:
        raise ConfigError(
            f"Missing required settings: {', '.join(missing)}. "
            "Use the --token/--chatid flags or the matching environment variables"
        )

    if config.parallelism < 1:
        raise ConfigError(f"parallelism must be at least 1, got {config.parallelism}")

    if config.request_delay < 0:
        raise ConfigError(f"request_delay cannot be negative, got {config.request_delay}")
