"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet mode suppression rules
- Verbose mode debug output
- JSON and plain format output
- print_table in all three modes
- Global instance management
"""

from __future__ import annotations

import json
import threading

import pytest

from fetchcache.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)
from fetchcache import output as output_module


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture()
def non_tty(monkeypatch):
    """Patch stdout.isatty() to return False."""
    monkeypatch.setattr("fetchcache.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    """Patch stdout.isatty() to return True."""
    monkeypatch.setattr("fetchcache.output._is_tty", lambda: True)


# ------------------------------------------------------------------ #
# OutputFormat resolution
# ------------------------------------------------------------------ #


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        mgr = OutputManager(format=OutputFormat.AUTO)
        assert mgr.format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        mgr = OutputManager(format=OutputFormat.AUTO)
        assert mgr.format == OutputFormat.RICH

    def test_auto_resolves_to_plain_when_no_color(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        mgr = OutputManager(format=OutputFormat.AUTO, no_color=True)
        assert mgr.format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, tty):
        mgr = OutputManager(format=OutputFormat.JSON)
        assert mgr.format == OutputFormat.JSON


# ------------------------------------------------------------------ #
# NO_COLOR / TERM=dumb detection
# ------------------------------------------------------------------ #


class TestColorDisabling:
    def test_no_color_env_any_value(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb_disables_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


# ------------------------------------------------------------------ #
# stdout vs stderr discipline
# ------------------------------------------------------------------ #


class TestStdoutStderrDiscipline:
    def test_print_data_goes_to_stdout(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.print_data("hello world")
        captured = capfd.readouterr()
        assert "hello world" in captured.out
        assert captured.err == ""

    @pytest.mark.parametrize(
        ("method", "prefix"),
        [("info", ""), ("success", ""), ("warning", "Warning: "), ("error", "Error: ")],
    )
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method, prefix):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        getattr(mgr, method)("cache miss")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert f"{prefix}cache miss" in captured.err

    def test_format_response_goes_to_stdout(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.format_response({"key": "value"})
        captured = capfd.readouterr()
        assert '"key"' in captured.out
        assert captured.err == ""

    def test_concurrent_writers_do_not_interleave_lines(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)

        def write(n: int) -> None:
            for i in range(50):
                mgr.print_data(f"worker-{n}-line-{i}")

        threads = [threading.Thread(target=write, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        lines = capfd.readouterr().out.splitlines()
        assert len(lines) == 200
        assert all(line.startswith("worker-") for line in lines)


# ------------------------------------------------------------------ #
# Quiet and verbose modes
# ------------------------------------------------------------------ #


class TestQuietMode:
    def test_quiet_suppresses_info_and_success(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("should not appear")
        mgr.success("should not appear")
        assert capfd.readouterr().err == ""

    def test_quiet_keeps_warning_and_error(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.warning("important warning")
        mgr.error("critical error")
        captured = capfd.readouterr()
        assert "important warning" in captured.err
        assert "critical error" in captured.err

    def test_quiet_keeps_stdout_data(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.print_data("important data")
        assert "important data" in capfd.readouterr().out


class TestVerboseMode:
    def test_debug_hidden_by_default(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.debug("should not appear")
        assert capfd.readouterr().err == ""

    def test_debug_shown_with_verbose(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True)
        mgr.debug("Cache hit [news]")
        assert "[debug] Cache hit [news]" in capfd.readouterr().err

    def test_verbose_flag_exposed(self, non_tty):
        assert OutputManager(verbose=True).is_verbose is True
        assert OutputManager().is_verbose is False


# ------------------------------------------------------------------ #
# Response formatting
# ------------------------------------------------------------------ #


class TestFormatResponse:
    def test_json_string_is_reparsed(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.format_response('{"key": "value"}')
        assert json.loads(capfd.readouterr().out) == {"key": "value"}

    def test_json_plain_string_passes_through(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.format_response("hello world", "text/plain")
        assert capfd.readouterr().out == "hello world\n"

    def test_plain_dict_as_key_value(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.format_response({"name": "Alice", "age": 30})
        assert capfd.readouterr().out.splitlines() == ["name\tAlice", "age\t30"]

    def test_plain_list_of_dicts_as_rows(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.format_response([{"id": 1, "title": "a"}, {"id": 2, "title": "b"}])
        assert capfd.readouterr().out.splitlines() == ["1\ta", "2\tb"]

    def test_rich_dict_renders(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.RICH, no_color=True)
        mgr.format_response({"id": 7})
        out = capfd.readouterr().out
        assert "id" in out
        assert "7" in out


# ------------------------------------------------------------------ #
# Tables
# ------------------------------------------------------------------ #


class TestPrintTable:
    HEADERS = ["metric", "value"]
    ROWS = [["requests", "3"], ["cached", "1"]]

    def test_json_table(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.print_table(self.HEADERS, self.ROWS)
        assert json.loads(capfd.readouterr().out) == [
            {"metric": "requests", "value": "3"},
            {"metric": "cached", "value": "1"},
        ]

    def test_plain_table(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.print_table(self.HEADERS, self.ROWS)
        assert capfd.readouterr().out.splitlines() == [
            "metric\tvalue",
            "requests\t3",
            "cached\t1",
        ]

    def test_rich_table(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.RICH, no_color=True)
        mgr.print_table(self.HEADERS, self.ROWS, title="Cache statistics")
        out = capfd.readouterr().out
        assert "Cache statistics" in out
        assert "requests" in out


# ------------------------------------------------------------------ #
# Global instance management
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_default_is_quiet_and_cached(self, capfd, non_tty):
        first = get_output()
        first.info("hidden")
        assert capfd.readouterr().err == ""
        assert get_output() is first

    def test_set_and_reset(self, non_tty):
        custom = OutputManager(format=OutputFormat.JSON)
        set_output(custom)
        assert get_output() is custom
        reset_output()
        assert output_module._output is None

    def test_convenience_functions_use_global(self, capfd, non_tty):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        output_module.info("via module")
        output_module.warning("careful")
        captured = capfd.readouterr()
        assert "via module" in captured.err
        assert "Warning: careful" in captured.err
