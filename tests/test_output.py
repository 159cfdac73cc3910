"""Tests for console output and the activity log."""

import io
import logging
import re
from unittest.mock import Mock

from rich.console import Console

from ftpupdater.output import ActivityIndicator, ActivityLog, OutputFormatter


def _formatter(**kwargs) -> tuple[OutputFormatter, io.StringIO]:
    buffer = io.StringIO()
    console = Console(file=buffer, highlight=False, width=120)
    return OutputFormatter(console=console, **kwargs), buffer


class TestOutputFormatter:
    """Tests for OutputFormatter."""

    def test_info_and_success(self):
        out, buffer = _formatter()

        out.info("hello")
        out.success("done")

        assert "hello" in buffer.getvalue()
        assert "done" in buffer.getvalue()

    def test_quiet_suppresses_messages(self):
        out, buffer = _formatter(quiet=True)

        out.info("hello")
        out.print_summary("Title", [("a", 1)])

        assert buffer.getvalue() == ""

    def test_plain_print_keeps_brackets(self):
        out, buffer = _formatter()

        out.print("[not markup]", markup=False)

        assert "[not markup]" in buffer.getvalue()

    def test_summary_table(self):
        out, buffer = _formatter()

        out.print_summary("Pass Complete", [("Uploaded", 3)])

        assert "Pass Complete" in buffer.getvalue()
        assert "Uploaded" in buffer.getvalue()

    def test_json_mode(self):
        out, buffer = _formatter(json_output=True)

        out.info("not shown")
        out.output_json({"uploads": 2})

        assert "not shown" not in buffer.getvalue()
        assert '"uploads": 2' in buffer.getvalue()


class TestActivityLog:
    """Tests for ActivityLog."""

    def _logger(self, handler: ActivityLog) -> logging.Logger:
        logger = logging.getLogger("ftpupdater.tests.activity")
        logger.handlers = [handler]
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        return logger

    def test_lines_are_time_prefixed(self):
        handler = ActivityLog()
        self._logger(handler).info("upload a.txt success")

        assert re.fullmatch(r"\d{6} upload a.txt success", handler.text())

    def test_keeps_most_recent_lines(self):
        handler = ActivityLog(max_lines=3)
        logger = self._logger(handler)

        for i in range(5):
            logger.info(f"event {i}")

        assert [line.split(" ", 1)[1] for line in handler.lines] == [
            "event 2",
            "event 3",
            "event 4",
        ]

    def test_default_size(self):
        assert ActivityLog().lines.maxlen == 50

    def test_debug_not_collected(self):
        handler = ActivityLog()
        self._logger(handler).debug("noise")

        assert handler.text() == ""

    def test_echo_to_output(self):
        output = Mock()
        handler = ActivityLog(output=output)

        self._logger(handler).info("Started")

        line = output.print.call_args[0][0]
        assert line.endswith(" Started")
        assert output.print.call_args[1] == {"markup": False}


class TestActivityIndicator:
    """Tests for ActivityIndicator."""

    def _output(self, **kwargs) -> Mock:
        output = Mock(quiet=False, json_output=False, **kwargs)
        output.console.status.return_value = Mock()
        return output

    def test_starts_idle_and_stops(self):
        output = self._output()
        status = output.console.status.return_value

        with ActivityIndicator(output):
            output.console.status.assert_called_once_with(ActivityIndicator.IDLE)
            status.start.assert_called_once()

        status.stop.assert_called_once()

    def test_update_switches_text(self):
        output = self._output()
        status = output.console.status.return_value

        with ActivityIndicator(output) as indicator:
            indicator.update(True)
            status.update.assert_called_with(ActivityIndicator.ACTIVE)
            indicator.update(False)
            status.update.assert_called_with(ActivityIndicator.IDLE)

        assert not indicator.active

    def test_update_outside_context_is_remembered(self):
        output = self._output()
        indicator = ActivityIndicator(output)

        indicator.update(True)

        assert indicator.active
        with indicator:
            output.console.status.assert_called_once_with(ActivityIndicator.ACTIVE)

    def test_quiet_shows_nothing(self):
        output = Mock(quiet=True, json_output=False)

        with ActivityIndicator(output) as indicator:
            indicator.update(True)

        output.console.status.assert_not_called()

    def test_rich_console(self):
        out, _ = _formatter()

        with ActivityIndicator(out) as indicator:
            indicator.update(True)

        assert indicator.active
        assert indicator._status is None
