"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~htmlcache.exceptions.HtmlCacheError` subclass.
Process supervisors can inspect the exit code of ``htmlcache serve`` to
determine the failure class without parsing stderr.
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_CONFIG_ERROR = 3
"""The cache configuration was rejected at construction."""

EXIT_ORIGIN_ERROR = 5
"""The origin returned a non-success response."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred while contacting the origin."""
