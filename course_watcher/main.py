#!/usr/bin/env python3
"""
Main orchestration module for the Course Watcher pipeline.

This module coordinates the complete pipeline:
validate config → open store → crawl → format → notify

It handles configuration validation, logging setup, and error handling
for the entire workflow.
"""

import os
import sys
from typing import Optional, Sequence

from course_watcher.config import (
    ConfigError,
    WatcherConfig,
    build_config,
    parse_args,
    validate_config,
)
from course_watcher.crawl import CourseCrawler
from course_watcher.notify import TelegramNotifier, check_telegram_connection
from course_watcher.report import format_new_courses_message
from course_watcher.store import CourseStore, StoreError
from course_watcher.utils import get_logger, setup_logging


# Exit codes
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_ENV_ERROR = 2
EXIT_STORE_ERROR = 3


def run_pipeline(
    config: WatcherConfig,
    dry_run: bool = False,
    notifier: Optional[TelegramNotifier] = None
) -> int:
    """
    Execute the complete course watcher pipeline.

    Pipeline stages:
    1. Validate configuration
    2. Open the course database
    3. Crawl the catalog and reconcile courses
    4. Format and send the notification

    Args:
        config: Run configuration.
        dry_run: If True, log the message instead of sending it.
        notifier: Notifier to use. Defaults to a TelegramNotifier for config.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    logger = get_logger("main")

    logger.info("=" * 60)
    logger.info("Course Watcher Pipeline - Starting")
    logger.info("=" * 60)

    # Stage 1: Validate configuration
    logger.info("[Stage 1/4] Validating configuration...")
    try:
        validate_config(config)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_ENV_ERROR

    if not dry_run and notifier is None:
        logger.info("Verifying Telegram connection...")
        if not check_telegram_connection(config.telegram_token):
            logger.warning("Telegram connection check failed, notifications may fail")

    # Stage 2: Open the course database
    logger.info(f"[Stage 2/4] Opening course database {config.db_path}...")
    store = CourseStore(config.db_path)
    try:
        store.initialize()
    except StoreError as e:
        logger.error(f"Database error: {e}")
        return EXIT_STORE_ERROR

    try:
        # Stage 3: Crawl
        logger.info("[Stage 3/4] Crawling the course catalog...")
        try:
            result = CourseCrawler(config, store).crawl()
        except StoreError as e:
            logger.error(f"Database error during crawl, aborting: {e}")
            return EXIT_STORE_ERROR

        new_courses = result.new_courses
        logger.info(f"Found {len(new_courses)} new course(s)")

        # Stage 4: Notify
        logger.info("[Stage 4/4] Sending notification...")
        message = format_new_courses_message(new_courses)

        if message is None:
            logger.info("No new courses to notify about")
        else:
            for course in new_courses:
                logger.debug(f"Announcing course: {course.title}")

            if notifier is None:
                notifier = TelegramNotifier(config, dry_run=dry_run)

            if notifier.send(message):
                logger.info(f"Notification sent to chat {config.telegram_chat_id}")
            else:
                # The courses are stored, so they will not be announced again
                logger.warning("Notification failed (see logs above)")
    finally:
        store.close()

    # Pipeline complete
    logger.info("=" * 60)
    logger.info("Course Watcher Pipeline - Complete")
    logger.info(
        f"Summary: {result.pages_fetched} page(s) fetched, "
        f"{result.courses_found} course(s) seen, {len(new_courses)} new"
    )
    logger.info("=" * 60)

    return EXIT_SUCCESS


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point for the Course Watcher pipeline.

    Sets up logging, resolves configuration and runs the pipeline with
    proper error handling.

    Returns:
        Exit code for the process.
    """
    args = parse_args(argv)

    # Determine log level from environment
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()

    setup_logging(log_level)
    logger = get_logger("main")

    # Check for dry run mode
    dry_run = args.dry_run or os.environ.get("DRY_RUN", "").lower() in ("true", "1", "yes")

    if dry_run:
        logger.info("Running in DRY RUN mode - notifications will be skipped")

    config = build_config(args)

    try:
        return run_pipeline(config, dry_run=dry_run)

    except KeyboardInterrupt:
        logger.warning("Pipeline interrupted by user")
        return EXIT_FAILURE

    except Exception as e:
        logger.exception(f"Unexpected error in pipeline: {e}")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
