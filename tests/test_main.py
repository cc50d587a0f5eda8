"""
Tests for the pipeline orchestration in main.
"""

import os
from unittest.mock import Mock, patch

import pytest

from course_watcher.config import WatcherConfig
from course_watcher.crawl import CrawlResult
from course_watcher.main import (
    EXIT_ENV_ERROR,
    EXIT_FAILURE,
    EXIT_STORE_ERROR,
    EXIT_SUCCESS,
    main,
    run_pipeline,
)
from course_watcher.models import CourseRecord
from course_watcher.store import StoreError


@pytest.fixture
def config(tmp_path):
    return WatcherConfig(
        db_path=str(tmp_path / "cursos.db"),
        telegram_token="123:abc",
        telegram_chat_id="-100",
        request_delay=0,
    )


@pytest.fixture
def new_course():
    return CourseRecord(
        address="https://formacionagraria.tenerife.es/acfor-fo/actividades/100",
        title="Poda del olivo",
    )


class TestRunPipeline:
    """Tests for run_pipeline."""

    @patch("course_watcher.main.CourseCrawler")
    def test_new_courses_notified(self, mock_crawler_class, config, new_course):
        """Test that new courses are sent as one message."""
        mock_crawler_class.return_value.crawl.return_value = CrawlResult(new_courses=[new_course])
        notifier = Mock()
        notifier.send.return_value = True

        exit_code = run_pipeline(config, notifier=notifier)

        assert exit_code == EXIT_SUCCESS
        notifier.send.assert_called_once()
        message = notifier.send.call_args.args[0]
        assert "*Curso 1:*" in message
        assert "Poda del olivo" in message

    @patch("course_watcher.main.CourseCrawler")
    def test_no_new_courses_no_notification(self, mock_crawler_class, config):
        """Test that the notifier is never invoked when nothing is new."""
        mock_crawler_class.return_value.crawl.return_value = CrawlResult()
        notifier = Mock()

        exit_code = run_pipeline(config, notifier=notifier)

        assert exit_code == EXIT_SUCCESS
        notifier.send.assert_not_called()

    @patch("course_watcher.main.CourseCrawler")
    def test_notification_failure_not_fatal(self, mock_crawler_class, config, new_course):
        """Test that a failed send still ends the run successfully."""
        mock_crawler_class.return_value.crawl.return_value = CrawlResult(new_courses=[new_course])
        notifier = Mock()
        notifier.send.return_value = False

        assert run_pipeline(config, notifier=notifier) == EXIT_SUCCESS

    @patch("course_watcher.main.CourseCrawler")
    def test_missing_credentials_stop_before_crawl(self, mock_crawler_class, tmp_path):
        """Test that missing configuration fails before any crawling."""
        config = WatcherConfig(db_path=str(tmp_path / "cursos.db"))

        assert run_pipeline(config, notifier=Mock()) == EXIT_ENV_ERROR
        mock_crawler_class.assert_not_called()

    @patch("course_watcher.main.CourseCrawler")
    def test_store_init_failure(self, mock_crawler_class, config, tmp_path):
        """Test that an unopenable database fails the run."""
        config.db_path = str(tmp_path / "missing-dir" / "cursos.db")

        assert run_pipeline(config, notifier=Mock()) == EXIT_STORE_ERROR
        mock_crawler_class.assert_not_called()

    @patch("course_watcher.main.CourseCrawler")
    def test_store_read_failure_during_crawl(self, mock_crawler_class, config):
        """Test that a store error during the crawl aborts without notifying."""
        mock_crawler_class.return_value.crawl.side_effect = StoreError("database is locked")
        notifier = Mock()

        assert run_pipeline(config, notifier=notifier) == EXIT_STORE_ERROR
        notifier.send.assert_not_called()

    @patch("course_watcher.main.check_telegram_connection")
    @patch("course_watcher.main.TelegramNotifier")
    @patch("course_watcher.main.CourseCrawler")
    def test_dry_run_skips_connection_check(
        self, mock_crawler_class, mock_notifier_class, mock_check, config, new_course
    ):
        """Test that dry run builds a dry-run notifier and skips the token check."""
        mock_crawler_class.return_value.crawl.return_value = CrawlResult(new_courses=[new_course])

        assert run_pipeline(config, dry_run=True) == EXIT_SUCCESS
        mock_check.assert_not_called()
        mock_notifier_class.assert_called_once_with(config, dry_run=True)


class TestMain:
    """Tests for the command-line entry point."""

    @patch("course_watcher.main.setup_logging")
    @patch("course_watcher.main.run_pipeline")
    def test_flags_reach_pipeline(self, mock_run, mock_logging):
        """Test that command-line flags build the run configuration."""
        mock_run.return_value = EXIT_SUCCESS

        with patch.dict(os.environ, {}, clear=True):
            exit_code = main(["--token", "123:abc", "--chatid", "-100", "--db", "x.db"])

        assert exit_code == EXIT_SUCCESS
        config = mock_run.call_args.args[0]
        assert config.telegram_token == "123:abc"
        assert config.db_path == "x.db"
        assert mock_run.call_args.kwargs["dry_run"] is False

    @patch("course_watcher.main.setup_logging")
    @patch("course_watcher.main.run_pipeline")
    def test_dry_run_from_environment(self, mock_run, mock_logging):
        """Test that DRY_RUN enables dry run mode."""
        mock_run.return_value = EXIT_SUCCESS

        with patch.dict(os.environ, {"DRY_RUN": "true"}, clear=True):
            main([])

        assert mock_run.call_args.kwargs["dry_run"] is True

    @patch("course_watcher.main.setup_logging")
    @patch("course_watcher.main.run_pipeline")
    def test_unexpected_error(self, mock_run, mock_logging):
        """Test that unexpected exceptions map to the failure exit code."""
        mock_run.side_effect = RuntimeError("boom")

        with patch.dict(os.environ, {}, clear=True):
            assert main([]) == EXIT_FAILURE
