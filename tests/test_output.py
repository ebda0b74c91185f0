"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet and verbose modes
- format_response in JSON and plain modes
- Global instance management
"""

from __future__ import annotations

import json

import pytest

from htmlcache import output as output_module
from htmlcache.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


@pytest.fixture()
def non_tty(monkeypatch):
    monkeypatch.setattr("htmlcache.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    monkeypatch.setattr("htmlcache.output._is_tty", lambda: True)


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.RICH

    def test_no_color_flag_forces_plain_on_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        assert OutputManager(no_color=True).format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


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


class TestStdoutStderrDiscipline:
    """Data goes to stdout; diagnostics, including cache traces, go to stderr."""

    @pytest.fixture()
    def mgr(self, non_tty) -> OutputManager:
        return OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True)

    def test_print_data_goes_to_stdout(self, mgr, capsys):
        mgr.print_data("hello")
        captured = capsys.readouterr()
        assert captured.out == "hello\n"
        assert captured.err == ""

    @pytest.mark.parametrize("method", ["info", "warning", "error", "debug"])
    def test_diagnostics_go_to_stderr(self, mgr, capsys, method):
        getattr(mgr, method)("diagnostic text")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "diagnostic text" in captured.err

    def test_prefixes(self, mgr, capsys):
        mgr.warning("w")
        mgr.error("e")
        mgr.debug("d")
        err = capsys.readouterr().err
        assert "Warning: w" in err
        assert "Error: e" in err
        assert "[debug] d" in err


class TestQuietAndVerbose:
    def test_quiet_suppresses_info_only(self, non_tty, capsys):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("hidden")
        mgr.warning("shown")
        mgr.error("also shown")
        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "shown" in err
        assert "also shown" in err

    def test_debug_needs_verbose(self, non_tty, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).debug("trace")
        assert capsys.readouterr().err == ""


class TestFormatResponse:
    def test_json(self, capsys):
        OutputManager(format=OutputFormat.JSON).format_response({"ttl_ms": 300000})
        assert json.loads(capsys.readouterr().out) == {"ttl_ms": 300000}

    def test_plain_dict_is_tab_separated(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).format_response(
            {"max_entries": None, "debug": False}
        )
        assert capsys.readouterr().out.splitlines() == ["max_entries\tNone", "debug\tFalse"]

    def test_plain_scalar(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).format_response("ok")
        assert capsys.readouterr().out == "ok\n"


class TestGlobalInstance:
    def test_get_output_creates_default(self):
        reset_output()
        assert isinstance(get_output(), OutputManager)

    def test_set_output_installs_instance(self):
        mgr = OutputManager(format=OutputFormat.JSON)
        set_output(mgr)
        assert get_output() is mgr

    def test_convenience_functions_delegate(self, capsys, non_tty):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True))
        output_module.info("i")
        output_module.warning("w")
        output_module.debug("d")
        output_module.format_response({"a": 1})
        captured = capsys.readouterr()
        assert captured.out == "a\t1\n"
        assert "i" in captured.err and "Warning: w" in captured.err
