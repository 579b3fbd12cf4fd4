"""CLI front-end -- raw token parsing and help/version rendering.

Command-line tokens are parsed once by :func:`process_input` into a
:class:`ProcessedInput`: every token with a leading dash is a flag, the
token after it is the flag's value unless it is itself a flag, and all
remaining tokens are command segments. Flags never carry an implicit
``True``; a flag without a value is simply dropped.

:class:`CLI` then decides whether the invocation is a help or version
request (:meth:`CLI.display_help`) before the framework dispatches it.

Example::

    >>> process_input(["deploy", "function", "-f", "hello"]).options
    mappingproxy({'f': 'hello'})
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Optional

from deployli import __version__
from deployli.models import CommandNode
from deployli.output import get_output
from deployli.registry import CommandRegistry

HELP_TOKENS = frozenset({"help", "--help", "--h"})
VERSION_TOKENS = frozenset({"version", "--version", "--v"})

_USAGE_COLUMN = 44


@dataclass(frozen=True)
class ProcessedInput:
    """Parsed command line.

    Attributes:
        commands: Command segments in the order they were typed.
        options: Flag names (leading dashes stripped) mapped to their values.
            Read-only.
    """

    commands: tuple[str, ...] = ()
    options: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))


def _is_flag(token: str) -> bool:
    return token.startswith("-")


def process_input(tokens: Sequence[str]) -> ProcessedInput:
    """Split raw tokens into command segments and an option map.

    ``-x`` and ``--x`` populate the same key. ``--key=value`` is accepted as
    a shorthand for ``--key value``. When a flag repeats, the last value wins.

    Args:
        tokens: Raw arguments, without the program name.

    Returns:
        A new :class:`ProcessedInput`. The function is pure.
    """
    commands: list[str] = []
    options: dict[str, str] = {}
    items = list(tokens)
    index = 0
    while index < len(items):
        token = items[index]
        index += 1
        if not _is_flag(token):
            commands.append(token)
            continue

        name = token.lstrip("-")
        if not name:
            # A bare "-" or "--" names nothing and takes no value.
            continue
        if "=" in name:
            name, _, value = name.partition("=")
            if name:
                options[name] = value
            continue
        if index < len(items) and not _is_flag(items[index]):
            options[name] = items[index]
            index += 1

    return ProcessedInput(commands=tuple(commands), options=MappingProxyType(options))


class CLI:
    """Help and version handling for one invocation.

    Args:
        tokens: The raw arguments the program was invoked with.
        registry: The merged command tree; may be attached later with
            :meth:`set_registry` once plugins are loaded.
        program: Program name shown in usage lines.
    """

    def __init__(
        self,
        tokens: Sequence[str],
        registry: Optional[CommandRegistry] = None,
        program: str = "deployli",
    ) -> None:
        self._tokens = tuple(tokens)
        self._registry = registry or CommandRegistry({})
        self._program = program

    @property
    def tokens(self) -> tuple[str, ...]:
        """The raw input tokens."""
        return self._tokens

    def set_registry(self, registry: CommandRegistry) -> None:
        """Attach the command tree used to render help."""
        self._registry = registry

    def process_input(self) -> ProcessedInput:
        """Parse this invocation's tokens. See :func:`process_input`."""
        return process_input(self._tokens)

    # ------------------------------------------------------------------
    # Help routing
    # ------------------------------------------------------------------

    def display_help(self, processed: ProcessedInput) -> bool:
        """Render version or help output when the invocation asks for it.

        Version tokens win over help tokens. Help is rendered for the
        deepest command that resolves, or as general help when nothing does.

        Args:
            processed: The parsed form of this invocation's tokens.

        Returns:
            ``True`` if something was rendered and dispatch must not happen.
        """
        if any(token in VERSION_TOKENS for token in self._tokens):
            self.display_version()
            return True

        if not processed.commands or any(token in HELP_TOKENS for token in self._tokens):
            resolution = self._registry.resolve(processed.commands)
            if resolution.node is not None:
                self.display_command_help(resolution.path)
            else:
                self.display_general_help()
            return True

        return False

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def display_version(self) -> None:
        """Print the program version to stdout."""
        get_output().print_data(f"{self._program} {__version__}")

    def display_general_help(self) -> None:
        """Print the list of every available command."""
        out = get_output()
        out.print_data(f"Usage: {self._program} <command> [options]")
        out.print_data("")
        out.print_data("Commands")
        out.print_data('* Append "--help" to any command for contextual help.')
        out.print_data("")
        for path, node in self._registry.walk():
            out.print_data(_dotted(" ".join(path), node.usage))
        out.print_data("")
        out.print_data(f"Run '{self._program} version' to print the installed version.")

    def display_command_help(self, path: Sequence[str]) -> None:
        """Print usage, options and sub-commands of the command at *path*.

        Args:
            path: Segments of a command known to resolve.
        """
        resolution = self._registry.resolve(path)
        node = resolution.node
        if node is None:
            self.display_general_help()
            return

        out = get_output()
        name = " ".join(resolution.path)
        out.print_data(f"Usage: {self._program} {name} [options]")
        out.print_data("")
        out.print_data(_dotted(name, node.usage))
        for line in _option_lines(node):
            out.print_data(line)
        if node.commands:
            out.print_data("")
            out.print_data("Commands")
            for child_name, child in node.commands.items():
                out.print_data(_dotted(f"{name} {child_name}", child.usage))


def _dotted(label: str, usage: str, indent: int = 0) -> str:
    prefix = " " * indent + label + " "
    dots = "." * max(_USAGE_COLUMN - len(prefix), 2)
    return f"{prefix}{dots} {usage}".rstrip()


def _option_lines(node: CommandNode) -> list[str]:
    lines = []
    for name, spec in node.options.items():
        label = f"--{name}"
        if spec.shortcut:
            label += f" / -{spec.shortcut}"
        usage = spec.usage
        if spec.required:
            usage = f"(required) {usage}".rstrip()
        lines.append(_dotted(label, usage, indent=4))
    return lines
