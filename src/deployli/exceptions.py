"""Exception hierarchy for deployli.

All exceptions inherit from :class:`DeployliError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`deployli.exit_codes`.
Errors propagate untouched through the framework; only
:func:`deployli.app.main` catches ``DeployliError`` and exits with the
appropriate code, while unexpected exceptions produce a crash log and exit
with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    DeployliError (exit 1)
    +-- UsageError           (exit 2)
    +-- ConfigError          (exit 1)
    +-- PluginLoadError      (exit 10)
    +-- HookExecutionError   (exit 11)
    +-- ProviderError        (exit 1)
        +-- ProviderRejected   (exit 5)
        +-- ProviderThrottled  (exit 6)
"""

from __future__ import annotations

from typing import Optional

from deployli.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_HOOK_ERROR,
    EXIT_INVALID_USAGE,
    EXIT_PLUGIN_ERROR,
    EXIT_PROVIDER_REJECTED,
    EXIT_PROVIDER_THROTTLED,
)


class DeployliError(Exception):
    """Base exception for all deployli errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`deployli.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class UsageError(DeployliError):
    """Raised for an unresolved command, stray arguments, or a missing required option.

    Attributes:
        command_path: Segments of the deepest command that did resolve, so
            the entry point can print the matching help. Empty when nothing
            resolved.
    """

    exit_code = EXIT_INVALID_USAGE

    def __init__(self, message: str, command_path: tuple[str, ...] = ()):
        super().__init__(message)
        self.command_path = command_path


class ConfigError(DeployliError):
    """Raised for configuration problems (invalid service file, bad global config)."""

    exit_code = EXIT_GENERIC_FAILURE


class PluginLoadError(DeployliError):
    """Raised when a plugin factory fails while plugins are being loaded.

    Loading stops at the first failure. The original exception is kept on
    :attr:`original` and chained as ``__cause__``.
    """

    exit_code = EXIT_PLUGIN_ERROR

    def __init__(self, message: str, plugin: str = "", original: Optional[BaseException] = None):
        super().__init__(message)
        self.plugin = plugin
        self.original = original


class HookExecutionError(DeployliError):
    """Raised when a lifecycle hook fails; the rest of the sequence is abandoned.

    The message is the hook's own error message. No rollback is attempted,
    so provider-side changes made by earlier hooks stay applied.
    """

    exit_code = EXIT_HOOK_ERROR

    def __init__(self, message: str, event: str = "", original: Optional[BaseException] = None):
        super().__init__(message)
        self.event = event
        self.original = original


class ProviderError(DeployliError):
    """Base class for failures reported by a cloud provider call.

    Attributes:
        status_code: HTTP status reported by the provider, if any.
        code: Provider-specific error code (e.g. ``"ThrottlingException"``).
        original: The exception raised by the provider SDK.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        original: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.original = original


class ProviderRejected(ProviderError):
    """Raised for a non-throttling provider failure. Never retried."""

    exit_code = EXIT_PROVIDER_REJECTED


class ProviderThrottled(ProviderError):
    """Raised when a call is still throttled after the last retry attempt."""

    exit_code = EXIT_PROVIDER_THROTTLED
