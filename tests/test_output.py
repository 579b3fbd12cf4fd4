"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- format_response, print_summary and print_table in JSON and plain modes
- Global instance management
"""

from __future__ import annotations

import json

import pytest

from deployli.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
    warning,
)


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture()
def non_tty(monkeypatch):
    """Patch stdout.isatty() to return False."""
    monkeypatch.setattr("deployli.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    """Patch stdout.isatty() to return True."""
    monkeypatch.setattr("deployli.output._is_tty", lambda: True)


# ------------------------------------------------------------------ #
# Format resolution
# ------------------------------------------------------------------ #


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager().format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert OutputManager().format == OutputFormat.RICH

    def test_auto_resolves_to_plain_when_no_color(self, tty, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        assert OutputManager().format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_env(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm")
        assert _should_disable_color() is False


# ------------------------------------------------------------------ #
# Stream discipline
# ------------------------------------------------------------------ #


class TestStdoutStderrDiscipline:
    def test_print_data_goes_to_stdout(self, capsys, non_tty):
        OutputManager(no_color=True).print_data("hello")
        captured = capsys.readouterr()
        assert captured.out == "hello\n"
        assert captured.err == ""

    @pytest.mark.parametrize("method", ["warning", "error"])
    def test_diagnostics_go_to_stderr(self, capsys, non_tty, method):
        getattr(OutputManager(no_color=True), method)("message")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "message" in captured.err

    def test_error_prefix(self, capsys, non_tty):
        OutputManager(no_color=True).error("Stack not found")
        assert capsys.readouterr().err == "Error: Stack not found\n"


# ------------------------------------------------------------------ #
# Structured output
# ------------------------------------------------------------------ #


class TestStructuredOutput:
    def test_json_response(self, capsys):
        OutputManager(format=OutputFormat.JSON).format_response({"stack": "shop-dev"})
        assert json.loads(capsys.readouterr().out) == {"stack": "shop-dev"}

    def test_plain_response_dict(self, capsys):
        OutputManager(format=OutputFormat.PLAIN).format_response({"a": 1, "b": 2})
        assert capsys.readouterr().out == "a\t1\nb\t2\n"

    def test_plain_summary(self, capsys):
        OutputManager(format=OutputFormat.PLAIN).print_summary(
            "Service Information", {"service": "shop", "stage": "dev"}
        )
        assert capsys.readouterr().out == "Service Information\nservice: shop\nstage: dev\n"

    def test_json_summary_drops_title(self, capsys):
        OutputManager(format=OutputFormat.JSON).print_summary("Service Information", {"stage": "dev"})
        assert json.loads(capsys.readouterr().out) == {"stage": "dev"}

    def test_rich_summary_keeps_brackets(self, capsys, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm")
        OutputManager(format=OutputFormat.RICH).print_summary("Stack", {"status": "[FAILED]"})
        assert "[FAILED]" in capsys.readouterr().out

    def test_plain_table(self, capsys):
        OutputManager(format=OutputFormat.PLAIN).print_table(["Output", "Value"], [["Url", "https://x"]])
        assert capsys.readouterr().out == "Output\tValue\nUrl\thttps://x\n"

    def test_json_table(self, capsys):
        OutputManager(format=OutputFormat.JSON).print_table(["Output", "Value"], [["Url", "u"]])
        assert json.loads(capsys.readouterr().out) == [{"Output": "Url", "Value": "u"}]


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_get_output_is_lazy_singleton(self):
        reset_output()
        assert get_output() is get_output()

    def test_set_output_is_used_by_helpers(self, capsys):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        warning("careful")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == "Warning: careful\n"
