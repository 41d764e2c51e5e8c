"""Exception hierarchy for apibuilder.

All exceptions inherit from :class:`ApiBuilderError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`apibuilder.exit_codes`.
The command handler :func:`apibuilder.app.run` catches
``ApiBuilderError``, prints the message to stderr and exits with that code.

Subclass hierarchy::

    ApiBuilderError (exit 1)
    +-- SpecParseError
    +-- TemplateMismatchError
    +-- FileSystemError
    +-- AggregatorNotFoundError
    +-- ConfigError
    +-- BatchError
"""

from __future__ import annotations

from pathlib import Path

from apibuilder.exit_codes import EXIT_GENERIC_FAILURE


class ApiBuilderError(Exception):
    """Base exception for all apibuilder errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class SpecParseError(ApiBuilderError):
    """Raised when a route spec is not valid JSON/YAML or misses required keys."""


class TemplateMismatchError(ApiBuilderError):
    """Raised when a route's conditions and its ``{dynamic_conditions}`` token disagree."""


class FileSystemError(ApiBuilderError):
    """Raised on read, write, mkdir or delete failures.

    Args:
        message: Human-readable error description.
        path: The path the failed operation targeted, if known.
    """

    def __init__(self, message: str, path: Path | None = None):
        super().__init__(message)
        self.path = path


class AggregatorNotFoundError(ApiBuilderError):
    """Raised when the aggregator file does not exist.

    Never fatal: the orchestrator reports it as a warning and carries on
    without patching.
    """


class ConfigError(ApiBuilderError):
    """Raised for configuration problems (invalid project config, bad env values)."""


class BatchError(ApiBuilderError):
    """Raised at the end of a best-effort run in which at least one spec failed."""
