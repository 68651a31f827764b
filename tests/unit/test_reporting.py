"""Unit tests for credbundle.reporting and credbundle.utils.cancellation."""
import logging
import threading
from unittest.mock import Mock

import pytest

from credbundle.exceptions import NetworkError, OperationCancelled, RetryExhaustedError
from credbundle.reporting import Reporter
from credbundle.utils.cancellation import CancellationToken


class TestReporter:
    """Test routing of progress and failure messages."""

    @pytest.mark.unit
    def test_info_goes_to_sink(self, capsys):
        sink = Mock()
        Reporter(log_info=sink).info("Downloading from '%s'", "https://x")
        sink.assert_called_once_with("Downloading from 'https://x'")
        assert capsys.readouterr().out == ""

    @pytest.mark.unit
    def test_info_defaults_to_stdout(self, capsys):
        Reporter().info("Unzipping credential bundle")
        assert capsys.readouterr().out == "Unzipping credential bundle\n"

    @pytest.mark.unit
    def test_message_without_args_is_not_formatted(self, capsys):
        Reporter().info("100% done")
        assert capsys.readouterr().out == "100% done\n"

    @pytest.mark.unit
    def test_error_gets_innermost_message(self):
        sink = Mock()
        error = RetryExhaustedError(
            "gave up", [NetworkError("failed", cause=ConnectionRefusedError("refused"))]
        )
        Reporter(log_error=sink).error(error)
        sink.assert_called_once_with("refused")

    @pytest.mark.unit
    def test_error_string(self):
        sink = Mock()
        Reporter(log_error=sink).error("plain")
        sink.assert_called_once_with("plain")

    @pytest.mark.unit
    def test_error_without_sink_is_logged(self, caplog):
        Reporter().error(ValueError("bad"))
        assert "bad" in caplog.text

    @pytest.mark.unit
    def test_sink_messages_are_not_repeated_above_debug(self, caplog):
        shared = logging.getLogger("test.shared")
        reporter = Reporter(log_info=shared.info, log_error=shared.error)

        with caplog.at_level(logging.INFO):
            reporter.info("Unzipping credential bundle")
            reporter.error(OSError("disk full"))

        assert [r.getMessage() for r in caplog.records] == ["Unzipping credential bundle", "disk full"]
        assert {r.name for r in caplog.records} == {"test.shared"}

    @pytest.mark.unit
    def test_debug_record_carries_structured_details(self, caplog):
        error = NetworkError("HTTP error 503", status_code=503, url="https://x")

        with caplog.at_level(logging.DEBUG, logger="credbundle"):
            Reporter(log_error=Mock()).error(error)

        details = [r for r in caplog.records if r.getMessage().startswith("Failure details")]
        assert len(details) == 1
        assert "'error_type': 'NetworkError'" in details[0].getMessage()
        assert details[0].exc_info[1] is error


class TestCancellationToken:
    """Test the cooperative cancellation flag."""

    @pytest.mark.unit
    def test_initial_state(self):
        token = CancellationToken()
        assert token.cancelled is False
        token.raise_if_cancelled()

    @pytest.mark.unit
    def test_cancel(self):
        token = CancellationToken()
        token.cancel("user pressed Ctrl+C")
        assert token.cancelled is True
        with pytest.raises(OperationCancelled, match="user pressed Ctrl"):
            token.raise_if_cancelled()

    @pytest.mark.unit
    def test_wait_returns_early_when_cancelled_from_another_thread(self):
        token = CancellationToken()
        timer = threading.Timer(0.05, token.cancel)
        timer.start()
        try:
            assert token.wait(10) is True
        finally:
            timer.cancel()

    @pytest.mark.unit
    def test_wait_times_out(self):
        assert CancellationToken().wait(0) is False
