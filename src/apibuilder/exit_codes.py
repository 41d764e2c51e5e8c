"""Numeric process exit codes.

Every failure kind exits with :data:`EXIT_GENERIC_FAILURE`; shell wrappers
only need to distinguish success from failure. The constants are referenced
by :class:`~apibuilder.exceptions.ApiBuilderError` and :func:`apibuilder.app.main`.

Example::

    $ apibuilder --clean
    $ echo $?
    0
"""

EXIT_SUCCESS = 0
"""The run completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""A spec, template, file-system or configuration step failed."""

EXIT_CANCELLED = 130
"""The run was interrupted with Ctrl-C."""
