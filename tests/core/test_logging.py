"""Tests for structured logging."""

import json
import logging
import threading
from pathlib import Path

import structlog

from odoolens.config.models import LoggingConfig, LogOutputConfig
from odoolens.core.logging import (
    bind_workspace,
    configure_logging,
    get_logger,
    unbind_workspace,
)


def _json_lines(path: Path) -> list[dict[str, object]]:
    return [json.loads(line) for line in path.read_text().splitlines() if line.strip()]


class TestLoggingConfiguration:
    """Logging configuration tests."""

    def setup_method(self) -> None:
        """Reset structlog and stdlib logging before each test."""
        structlog.reset_defaults()
        logging.getLogger().handlers.clear()
        unbind_workspace()

    def teardown_method(self) -> None:
        unbind_workspace()

    def test_given_json_file_output_when_log_then_valid_json(self, tmp_path: Path) -> None:
        """JSON output carries event, level, timestamp and bound keys."""
        # Given
        log_file = tmp_path / "odoolens.log"
        configure_logging(
            config=LoggingConfig(
                level="INFO",
                outputs=[LogOutputConfig(format="json", destination=str(log_file))],
            )
        )
        logger = get_logger("test")

        # When
        logger.info("index_rebuild_complete", models=3)

        # Then
        data = _json_lines(log_file)[-1]
        assert data["event"] == "index_rebuild_complete"
        assert data["models"] == 3
        assert data["level"] == "info"
        assert data["logger"] == "test"
        assert "timestamp" in data

    def test_given_config_object_when_configure_then_takes_precedence(self, tmp_path: Path) -> None:
        """LoggingConfig object takes precedence over simple params."""
        # Given
        log_file = tmp_path / "test.log"
        config = LoggingConfig(
            level="DEBUG",
            outputs=[LogOutputConfig(format="json", destination=str(log_file))],
        )

        # When - config's DEBUG should override the level="ERROR" param
        configure_logging(config=config, json_format=False, level="ERROR")
        get_logger().debug("debug msg")

        # Then
        assert "debug msg" in log_file.read_text()

    def test_given_multi_output_config_when_configure_then_levels_apply_per_output(
        self, tmp_path: Path
    ) -> None:
        """Each output filters by its own level."""
        # Given
        debug_file = tmp_path / "debug.log"
        info_file = tmp_path / "info.log"
        config = LoggingConfig(
            level="DEBUG",
            outputs=[
                LogOutputConfig(format="json", destination=str(info_file), level="INFO"),
                LogOutputConfig(format="json", destination=str(debug_file)),
            ],
        )

        # When
        configure_logging(config=config)
        logger = get_logger()
        logger.debug("debug only")
        logger.info("info msg")

        # Then
        info_content = info_file.read_text()
        assert "info msg" in info_content
        assert "debug only" not in info_content
        debug_content = debug_file.read_text()
        assert "debug only" in debug_content
        assert "info msg" in debug_content

    def test_given_console_format_when_configure_then_stderr_handler(self) -> None:
        """Simple setup installs one stream handler."""
        configure_logging(json_format=False, level="WARNING")
        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert logging.getLogger().level == logging.WARNING

    def test_given_watchfiles_logger_when_configure_then_quieted(self) -> None:
        configure_logging(level="DEBUG")
        assert logging.getLogger("watchfiles.main").level == logging.WARNING

    def test_given_worker_thread_when_log_then_thread_name_recorded(self, tmp_path: Path) -> None:
        """Events from worker threads carry the thread name; main-thread events do not."""
        # Given
        log_file = tmp_path / "threads.log"
        configure_logging(
            config=LoggingConfig(
                outputs=[LogOutputConfig(format="json", destination=str(log_file))],
            )
        )
        worker = threading.Thread(
            target=lambda: get_logger().info("from_worker"), name="odoolens-worker_0"
        )

        # When
        get_logger().info("from_main")
        worker.start()
        worker.join()

        # Then
        main_event, worker_event = _json_lines(log_file)[-2:]
        assert "thread" not in main_event
        assert worker_event["thread"] == "odoolens-worker_0"


class TestWorkspaceBinding:
    """Workspace correlation through structlog contextvars."""

    def setup_method(self) -> None:
        structlog.reset_defaults()
        logging.getLogger().handlers.clear()
        unbind_workspace()

    def teardown_method(self) -> None:
        unbind_workspace()

    def test_given_bound_workspace_when_log_then_event_carries_root(self, tmp_path: Path) -> None:
        # Given
        log_file = tmp_path / "ws.log"
        configure_logging(
            config=LoggingConfig(
                outputs=[LogOutputConfig(format="json", destination=str(log_file))],
            )
        )
        bind_workspace(tmp_path / "addons")

        # When
        get_logger().info("workspace_opened")

        # Then
        assert _json_lines(log_file)[-1]["workspace"] == str(tmp_path / "addons")

    def test_given_unbound_workspace_when_log_then_no_root(self, tmp_path: Path) -> None:
        # Given
        log_file = tmp_path / "ws.log"
        configure_logging(
            config=LoggingConfig(
                outputs=[LogOutputConfig(format="json", destination=str(log_file))],
            )
        )
        bind_workspace(tmp_path)
        unbind_workspace()

        # When
        get_logger().info("workspace_closed")

        # Then
        assert "workspace" not in _json_lines(log_file)[-1]
