"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet and verbose modes
- format_response and print_table in JSON and plain formats
- Global instance management
"""

from __future__ import annotations

import json
import logging

import pytest
from rich.logging import RichHandler

from whatcache import output as output_module
from whatcache.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


@pytest.fixture()
def non_tty(monkeypatch):
    """Patch stdout.isatty() to return False."""
    monkeypatch.setattr("whatcache.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    """Patch stdout.isatty() to return True."""
    monkeypatch.setattr("whatcache.output._is_tty", lambda: True)


# ------------------------------------------------------------------ #
# OutputFormat resolution
# ------------------------------------------------------------------ #


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.RICH

    def test_no_color_flag_forces_plain(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        mgr = OutputManager(format=OutputFormat.AUTO, no_color=True)
        assert mgr.format == OutputFormat.PLAIN

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


# ------------------------------------------------------------------ #
# stdout vs stderr discipline
# ------------------------------------------------------------------ #


class TestStdoutStderrDiscipline:
    @pytest.mark.parametrize("method", ["info", "success", "warning", "error"])
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        getattr(mgr, method)("a message")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "a message" in captured.err

    def test_payload_goes_to_stdout(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.format_response({"key": "value"})
        captured = capfd.readouterr()
        assert '"key"' in captured.out
        assert captured.err == ""

    def test_no_color_prefixes(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.warning("careful")
        mgr.error("broken")
        err = capfd.readouterr().err
        assert "Warning: careful" in err
        assert "Error: broken" in err


class TestQuietAndVerbose:
    def test_quiet_suppresses_info_and_success(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("hidden")
        mgr.success("hidden")
        assert capfd.readouterr().err == ""

    def test_quiet_keeps_warnings_errors_and_data(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.warning("shown warning")
        mgr.error("shown error")
        mgr.print_data("shown data")
        captured = capfd.readouterr()
        assert "shown warning" in captured.err
        assert "shown error" in captured.err
        assert "shown data" in captured.out

    def test_debug_hidden_by_default(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).debug("hidden")
        assert capfd.readouterr().err == ""

    def test_debug_shown_with_verbose(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True)
        mgr.debug("cache miss")
        assert "[debug] cache miss" in capfd.readouterr().err

    def test_log_handler_is_rich(self, non_tty):
        handler = OutputManager().log_handler()
        assert isinstance(handler, RichHandler)
        assert isinstance(handler, logging.Handler)


# ------------------------------------------------------------------ #
# Payload rendering
# ------------------------------------------------------------------ #


class TestFormatResponse:
    def test_json_roundtrips(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        data = {"group": {"id": 72189, "name": "Discovery"}, "torrents": [{"id": 1}]}
        mgr.format_response(data)
        assert json.loads(capfd.readouterr().out) == data

    def test_json_keeps_non_ascii(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.format_response({"name": "Sigur Rós"})
        assert "Sigur Rós" in capfd.readouterr().out

    def test_plain_dict_is_key_tab_value(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.format_response({"id": 100, "tags": ["rock"]})
        lines = capfd.readouterr().out.splitlines()
        assert lines == ["id\t100", 'tags\t["rock"]']

    def test_plain_list_of_dicts_is_tab_separated(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.format_response([{"id": 1, "name": "a"}, {"id": 2, "name": "b"}])
        assert capfd.readouterr().out.splitlines() == ["1\ta", "2\tb"]

    def test_plain_scalar(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.format_response("https://tracker.example/torrents.php?id=1")
        assert capfd.readouterr().out.strip() == "https://tracker.example/torrents.php?id=1"


class TestPrintTable:
    def test_json_records(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.print_table(["setting", "value"], [["records", "3"]])
        assert json.loads(capfd.readouterr().out) == [{"setting": "records", "value": "3"}]

    def test_plain_tsv(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.print_table(["setting", "value"], [["records", "3"], ["enabled", "True"]])
        assert capfd.readouterr().out.splitlines() == [
            "setting\tvalue",
            "records\t3",
            "enabled\tTrue",
        ]

    def test_rich_table_contains_cells(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.RICH, no_color=True)
        mgr.print_table(["setting", "value"], [["records", "3"]], title="Cache")
        out = capfd.readouterr().out
        assert "records" in out
        assert "Cache" in out


# ------------------------------------------------------------------ #
# Global instance management
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_get_output_creates_default(self, non_tty):
        reset_output()
        assert isinstance(get_output(), OutputManager)
        assert get_output() is get_output()

    def test_set_output_installs_instance(self):
        mgr = OutputManager(format=OutputFormat.JSON)
        set_output(mgr)
        assert get_output() is mgr

    def test_module_helpers_delegate(self, capfd, non_tty):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        output_module.info("from helper")
        output_module.format_response({"a": 1})
        captured = capfd.readouterr()
        assert "from helper" in captured.err
        assert "a\t1" in captured.out
