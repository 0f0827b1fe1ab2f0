"""Terminal output for the whatcache CLI.

API payloads and tables go to stdout so they can be piped into ``jq`` or
``cut``.  Everything else (status lines, warnings, errors, debug traces,
and library log records) goes to stderr.

Payloads render in one of three formats: ``json`` (indented JSON),
``plain`` (tab-separated ``key<TAB>value`` lines), or ``rich`` (syntax
highlighted JSON and boxed tables).  ``auto`` picks ``rich`` for an
interactive terminal with colour and ``plain`` otherwise.  ``NO_COLOR``,
``TERM=dumb`` and ``--no-color`` all turn colour off.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


# level -> (plain prefix, rich markup, shown when quiet)
_LEVELS: dict[str, tuple[str, str, bool]] = {
    "info": ("", "{}", False),
    "success": ("", "[green]{}[/green]", False),
    "warning": ("Warning: ", "[yellow]Warning:[/yellow] {}", True),
    "error": ("Error: ", "[bold red]Error:[/bold red] {}", True),
    "debug": ("[debug] ", "[dim]\\[debug] {}[/dim]", True),
}


def _to_json(data: Any, indent: Optional[int] = 2) -> str:
    return json.dumps(data, indent=indent, ensure_ascii=False, default=str)


class OutputManager:
    """Renders payloads to stdout and diagnostics to stderr.

    Args:
        format: Payload format; ``AUTO`` is resolved at construction.
        no_color: Disable colour and markup.
        quiet: Drop ``info`` and ``success`` messages.
        verbose: Show ``debug`` messages.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        if format == OutputFormat.AUTO:
            rich_ok = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich_ok else OutputFormat.PLAIN
        self._format = format
        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format == OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    def log_handler(self) -> logging.Handler:
        """Handler that prints ``logging`` records on this manager's stderr console."""
        return RichHandler(console=self._stderr, show_path=False, markup=False)

    # -- stdout --

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def format_response(self, data: Any) -> None:
        """Render one API payload."""
        if self._format == OutputFormat.JSON:
            self.print_data(_to_json(data))
        elif self._format == OutputFormat.PLAIN:
            for line in _plain_lines(data):
                self.print_data(line)
        elif isinstance(data, (dict, list)):
            self._stdout.print(Syntax(_to_json(data), "json", theme="monokai", word_wrap=True))
        else:
            self._stdout.print(str(data), highlight=False)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Render rows as JSON objects, TSV lines, or a Rich table."""
        if self._format == OutputFormat.JSON:
            self.print_data(_to_json([dict(zip(headers, row)) for row in rows]))
            return
        if self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
            return
        table = Table(*headers, title=title, header_style="bold cyan")
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    # -- stderr --

    def message(self, level: str, text: str) -> None:
        """Write a diagnostic line at *level* (see :data:`_LEVELS`)."""
        prefix, markup, shown_when_quiet = _LEVELS[level]
        if level == "debug" and not self._verbose:
            return
        if self._quiet and not shown_when_quiet:
            return
        if self._no_color:
            print(prefix + text, file=sys.stderr, flush=True)
        else:
            self._stderr.print(markup.format(escape(text)), highlight=False)

    def info(self, text: str) -> None:
        self.message("info", text)

    def success(self, text: str) -> None:
        self.message("success", text)

    def warning(self, text: str) -> None:
        self.message("warning", text)

    def error(self, text: str) -> None:
        self.message("error", text)

    def debug(self, text: str) -> None:
        self.message("debug", text)


def _plain_lines(data: Any) -> list[str]:
    if isinstance(data, dict):
        return [
            f"{key}\t{_to_json(value, None) if isinstance(value, (dict, list)) else value}"
            for key, value in data.items()
        ]
    if isinstance(data, list):
        return [
            "\t".join(str(v) for v in item.values()) if isinstance(item, dict) else str(item)
            for item in data
        ]
    return [str(data)]


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


# -- process-wide instance --

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """The installed :class:`OutputManager`, or a default one."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(text: str) -> None:
    get_output().info(text)


def success(text: str) -> None:
    get_output().success(text)


def warning(text: str) -> None:
    get_output().warning(text)


def error(text: str) -> None:
    get_output().error(text)


def debug(text: str) -> None:
    get_output().debug(text)
