"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~authsession.exceptions.AuthSessionError` subclass.
Shell wrappers around the ``authsession`` CLI can inspect the exit code to
determine the failure class without parsing stderr.

Example::

    $ authsession policy set sometimes
    $ echo $?
    2   # EXIT_INVALID_USAGE -- unknown persistence policy
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_AUTH_FAILURE = 3
"""The authorization process reported a failure."""

EXIT_IO_FAILURE = 6
"""Response metadata could not be read from a connection."""
