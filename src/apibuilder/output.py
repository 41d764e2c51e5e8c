"""Diagnostics for apibuilder runs, written to stderr.

The tool produces files, not data, so every message -- progress, status,
warnings and errors -- goes to stderr:

* **Rich markup** when colour is enabled, plain text otherwise.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb`` and the
  ``--no-color`` CLI flag.
* **Verbosity** -- ``--quiet`` hides informational messages, ``--verbose``
  reveals debug messages. Warnings and errors always print.

The module exposes two layers:

1. :class:`OutputManager` -- a stateful object holding the Rich console and
   quiet/verbose flags. Created once in :func:`~apibuilder.app.run` and
   installed via :func:`set_output`.
2. Module-level convenience functions (:func:`info`, :func:`warning`,
   :func:`debug`, etc.) that delegate to the global ``OutputManager`` so
   callers do not need to pass the manager around.
"""

from __future__ import annotations

import os
import sys
from typing import Optional

from rich.console import Console
from rich.markup import escape


class OutputManager:
    """Central manager for all diagnostic output.

    Args:
        no_color: Disable all colour and Rich markup.
        quiet: Suppress informational and success messages.
        verbose: Enable debug-level messages.
    """

    def __init__(
        self,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        self._stderr = Console(
            file=sys.stderr,
            no_color=self._no_color,
            stderr=True,
            highlight=False,
        )

    @property
    def is_quiet(self) -> bool:
        """Whether quiet mode is enabled."""
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        """Whether verbose mode is enabled."""
        return self._verbose

    def info(self, message: str) -> None:
        """Print an informational message. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._emit(message, None)

    def success(self, message: str) -> None:
        """Print a green success message. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._emit(message, "[green]{}[/green]")

    def warning(self, message: str) -> None:
        """Print a yellow warning. NOT suppressed by ``--quiet``."""
        if self._no_color:
            self._plain(f"Warning: {message}")
        else:
            self._stderr.print(f"[yellow]Warning:[/yellow] {escape(message)}")

    def error(self, message: str) -> None:
        """Print a bold-red error. Never suppressed."""
        if self._no_color:
            self._plain(f"Error: {message}")
        else:
            self._stderr.print(f"[bold red]Error:[/bold red] {escape(message)}")

    def debug(self, message: str) -> None:
        """Print a debug message. Only shown when ``--verbose`` is active."""
        if self._verbose:
            if self._no_color:
                self._plain(f"[debug] {message}")
            else:
                self._stderr.print(f"[dim]\\[debug] {escape(message)}[/dim]")

    def progress(self, message: str) -> None:
        """Print a dimmed progress message. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._emit(message, "[dim]{}[/dim]")

    def _emit(self, message: str, markup: Optional[str]) -> None:
        if self._no_color:
            self._plain(message)
        elif markup is None:
            self._stderr.print(escape(message))
        else:
            self._stderr.print(markup.format(escape(message)))

    @staticmethod
    def _plain(text: str) -> None:
        print(text, file=sys.stderr, flush=True)


def _should_disable_color() -> bool:
    """Return True when NO_COLOR is set (any value) or TERM=dumb."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    if os.environ.get("TERM") == "dumb":
        return True
    return False


# ------------------------------------------------------------------ #
# Global output instance (set during app startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global :class:`OutputManager` instance."""
    global _output
    _output = output


def reset_output() -> None:
    """Reset the global :class:`OutputManager` to ``None``.

    Primarily useful in test suites to ensure a clean state between tests.
    """
    global _output
    _output = None


# ------------------------------------------------------------------ #
# Convenience functions that use the global instance
# ------------------------------------------------------------------ #


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


def progress(message: str) -> None:
    get_output().progress(message)
