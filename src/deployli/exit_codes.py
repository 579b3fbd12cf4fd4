"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~deployli.exceptions.DeployliError` subclass.
CI pipelines can inspect the exit code to tell a bad invocation from a
failed deployment without parsing stderr.

Example::

    $ deployli deploy function
    $ echo $?
    2   # EXIT_INVALID_USAGE -- the required --function option is missing
"""

EXIT_SUCCESS = 0
"""The command completed successfully, or help/version was displayed."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Unknown command, unexpected argument, or a missing required option."""

EXIT_PROVIDER_REJECTED = 5
"""The cloud provider rejected a request with a non-throttling failure."""

EXIT_PROVIDER_THROTTLED = 6
"""The cloud provider kept throttling a request after every retry."""

EXIT_PLUGIN_ERROR = 10
"""A plugin failed to load."""

EXIT_HOOK_ERROR = 11
"""A lifecycle hook raised while a command was executing."""

EXIT_INTERRUPTED = 130
"""The process was interrupted with Ctrl-C."""
