"""Terminal output for the ``authsession`` CLI.

Data a script might consume (the cached header, status fields, identity
maps) goes to **stdout**. Everything addressed to a human (confirmations,
warnings, errors, debug chatter) goes to **stderr**, so piping
``authsession header`` into another tool never picks up noise.

The data format is chosen once per invocation:

* ``JSON`` with ``--json``;
* ``PLAIN`` (tab-separated) with ``--plain``, when stdout is not a TTY, or
  when colour is disabled via ``NO_COLOR``, ``TERM=dumb`` or ``--no-color``;
* ``RICH`` tables otherwise.

:func:`~authsession.app.main_callback` installs the process-wide
:class:`OutputManager` with :func:`set_output`.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.table import Table


class OutputFormat(str, Enum):
    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Formats session data for stdout and diagnostics for stderr.

    Args:
        format: Requested format; ``AUTO`` picks ``RICH`` or ``PLAIN``.
        no_color: Never emit colour or markup.
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

    # --- stdout ---

    def print_data(self, text: str) -> None:
        """Write *text* verbatim to stdout."""
        print(text, file=sys.stdout, flush=True)

    def print_mapping(self, data: dict[str, Any], title: Optional[str] = None) -> None:
        """Print a flat mapping: a JSON object, ``key<TAB>value`` lines, or a table.

        ``None`` values print as empty cells outside JSON mode.
        """
        if self._format == OutputFormat.JSON:
            self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))
            return
        rows = [(str(key), "" if value is None else str(value)) for key, value in data.items()]
        if self._format == OutputFormat.PLAIN:
            for key, value in rows:
                self.print_data(f"{key}\t{value}")
            return
        table = Table(title=title, header_style="bold cyan")
        table.add_column("Field")
        table.add_column("Value")
        for key, value in rows:
            table.add_row(key, value)
        self._stdout.print(table)

    # --- stderr ---

    def _diagnostic(self, message: str, prefix: str = "", style: Optional[str] = None) -> None:
        if self._no_color:
            print(f"{prefix}{message}", file=sys.stderr, flush=True)
        elif style and prefix:
            self._stderr.print(f"[{style}]{prefix}[/{style}]{message}")
        elif style:
            self._stderr.print(f"[{style}]{message}[/{style}]")
        else:
            self._stderr.print(f"{prefix}{message}")

    def info(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message, style="green")

    def warning(self, message: str) -> None:
        """Always shown, even with ``--quiet``."""
        self._diagnostic(message, prefix="Warning: ", style="yellow")

    def error(self, message: str) -> None:
        """Always shown."""
        self._diagnostic(message, prefix="Error: ", style="bold red")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._diagnostic(message, prefix="Debug: " if self._no_color else "", style="dim")


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` (any value, even empty) or ``TERM=dumb`` disables colour."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the process-wide manager, creating a default one on first use."""
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


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
