"""
Notify module for the Course Watcher pipeline.

This module delivers the new-course report through the Telegram Bot API
(sendMessage). Delivery problems are logged and reported as a failed send;
they never abort the pipeline, since the courses are already stored.
"""

from typing import Any, Dict, Optional

import requests

from course_watcher.config import WatcherConfig
from course_watcher.utils import get_logger


# Module logger
logger = get_logger("notify")

# Telegram API configuration
TELEGRAM_API_BASE = "https://api.telegram.org"
TELEGRAM_PARSE_MODE = "Markdown"
TELEGRAM_TIMEOUT = 30  # seconds
TELEGRAM_MAX_MESSAGE_LENGTH = 4096  # characters accepted by sendMessage


class TelegramAPIError(Exception):
    """Custom exception for Telegram API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None, response: Optional[Dict] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


def create_telegram_session() -> requests.Session:
    """
    Create a requests session for the Telegram API.

    Returns:
        Configured requests.Session instance.
    """
    session = requests.Session()
    session.headers.update({
        "User-Agent": "CourseWatcher/1.0"
    })
    return session


def build_api_url(token: str, method: str) -> str:
    """Build the URL of a Bot API method."""
    return f"{TELEGRAM_API_BASE}/bot{token}/{method}"


def build_message_payload(
    chat_id: str,
    text: str,
    thread_id: Optional[str] = None
) -> Dict[str, str]:
    """
    Build the form fields for sendMessage.

    Args:
        chat_id: Target chat.
        text: Message text in legacy Markdown.
        thread_id: Optional forum topic inside the chat.

    Returns:
        Dictionary of form fields.
    """
    payload = {
        "chat_id": chat_id,
        "text": text,
        "parse_mode": TELEGRAM_PARSE_MODE,
    }

    if thread_id:
        payload["message_thread_id"] = thread_id

    return payload


def send_message(
    session: requests.Session,
    token: str,
    payload: Dict[str, str],
    timeout: int = TELEGRAM_TIMEOUT
) -> Dict[str, Any]:
    """
    Call sendMessage once.

    Args:
        session: Configured requests session.
        token: Bot token.
        payload: Form fields from build_message_payload.
        timeout: Request timeout in seconds.

    Returns:
        The sent message object from the API.

    Raises:
        TelegramAPIError: If the request fails or the API rejects it.
    """
    try:
        response = session.post(
            build_api_url(token, "sendMessage"),
            data=payload,
            timeout=timeout
        )
    except requests.exceptions.Timeout:
        raise TelegramAPIError("Telegram API request timeout")
    except requests.exceptions.RequestException as e:
        raise TelegramAPIError(f"Telegram API request failed: {e}")

    try:
        data = response.json()
    except ValueError:
        raise TelegramAPIError(
            f"Telegram API error: HTTP {response.status_code}",
            status_code=response.status_code
        )

    if response.status_code == 401:
        raise TelegramAPIError(
            "Telegram authentication failed. Check TELEGRAM_TOKEN.",
            status_code=401,
            response=data
        )

    if response.status_code == 429:
        retry_after = (data.get("parameters") or {}).get("retry_after")
        raise TelegramAPIError(
            f"Telegram rate limit exceeded (retry after {retry_after}s)",
            status_code=429,
            response=data
        )

    if response.status_code != 200 or not data.get("ok"):
        description = data.get("description", "unknown error")
        raise TelegramAPIError(
            f"Telegram API error: HTTP {response.status_code}: {description}",
            status_code=response.status_code,
            response=data
        )

    return data.get("result", {})


class TelegramNotifier:
    """
    Send text messages to the configured chat.

    Args:
        config: Run configuration holding the bot token and chat identity.
        dry_run: If True, log messages instead of sending them.
    """

    def __init__(self, config: WatcherConfig, dry_run: bool = False):
        self.token = config.telegram_token
        self.chat_id = config.telegram_chat_id
        self.thread_id = config.telegram_thread_id or None
        self.dry_run = dry_run

    def send(self, text: str) -> bool:
        """
        Send a message.

        Returns:
            True if Telegram accepted the message (or in dry run), False otherwise.
        """
        payload = build_message_payload(self.chat_id, text, self.thread_id)

        if len(text) > TELEGRAM_MAX_MESSAGE_LENGTH:
            logger.warning(
                f"Message is {len(text)} characters, over the Telegram limit of "
                f"{TELEGRAM_MAX_MESSAGE_LENGTH}; the send will likely be rejected"
            )

        if self.dry_run:
            logger.info(f"[DRY RUN] Would send message to chat {self.chat_id}")
            logger.debug(f"[DRY RUN] Message:\n{text}")
            return True

        if self.thread_id:
            logger.debug(f"Sending to thread {self.thread_id}")

        session = create_telegram_session()
        try:
            message = send_message(session, self.token, payload)
        except TelegramAPIError as e:
            logger.error(f"Failed to send Telegram message: {e}")
            return False
        finally:
            session.close()

        logger.info(f"Message {message.get('message_id', 'N/A')} sent to chat {self.chat_id}")
        return True


def check_telegram_connection(token: str) -> bool:
    """
    Verify the bot token with getMe.

    Returns:
        True if the token is valid, False otherwise.
    """
    session = create_telegram_session()
    try:
        response = session.get(build_api_url(token, "getMe"), timeout=10)
        data = response.json()
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.warning(f"Telegram connection check failed: {e}")
        return False
    finally:
        session.close()

    if response.status_code == 200 and data.get("ok"):
        bot = data.get("result", {})
        logger.debug(f"Telegram connection OK, bot is @{bot.get('username')}")
        return True

    logger.warning(f"Telegram authentication failed: HTTP {response.status_code}")
    return False
