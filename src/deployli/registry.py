"""Command registry -- the merged command tree contributed by plugins.

Every plugin may expose a ``commands`` mapping of top-level command names to
declarations (either :class:`~deployli.models.CommandNode` instances or plain
dicts). :func:`merge_command_maps` folds these contributions into one tree
and :class:`CommandRegistry` resolves command paths against it.

**Merge rules**

* Leaf fields (``usage``, ``lifecycle_events``, ``options``) follow a
  last-write-wins overlay: a later plugin that sets a field replaces the
  earlier value; a later plugin that leaves it empty keeps the earlier one.
* Child ``commands`` maps are unioned recursively, so two plugins can extend
  the same command without clobbering each other's sub-commands.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Optional, Union

from deployli.models import CommandNode, OptionSpec

CommandDeclaration = Union[CommandNode, Mapping[str, Any]]


def to_node(name: str, declaration: CommandDeclaration) -> CommandNode:
    """Validate a plugin declaration and stamp it (and its children) with names."""
    if isinstance(declaration, CommandNode):
        node = declaration
    else:
        node = CommandNode.model_validate(dict(declaration))
    children = {
        child_name: to_node(child_name, child) for child_name, child in node.commands.items()
    }
    return node.model_copy(update={"name": name, "commands": children})


def merge_nodes(base: CommandNode, overlay: CommandNode) -> CommandNode:
    """Overlay *overlay* onto *base* and return a new node.

    Args:
        base: The node built from earlier plugins.
        overlay: The declaration from the plugin loaded next.

    Returns:
        A new :class:`CommandNode`; neither input is modified.
    """
    options: dict[str, OptionSpec] = dict(base.options)
    options.update(overlay.options)

    children = dict(base.commands)
    for name, child in overlay.commands.items():
        children[name] = merge_nodes(children[name], child) if name in children else child

    return CommandNode(
        name=overlay.name or base.name,
        usage=overlay.usage or base.usage,
        lifecycle_events=overlay.lifecycle_events or base.lifecycle_events,
        options=options,
        commands=children,
    )


def merge_command_maps(
    contributions: Iterable[Mapping[str, CommandDeclaration]],
) -> dict[str, CommandNode]:
    """Merge the ``commands`` maps of every plugin, in load order.

    Args:
        contributions: One mapping per plugin, in plugin-load order.

    Returns:
        A mapping of top-level command names to merged nodes.
    """
    merged: dict[str, CommandNode] = {}
    for commands in contributions:
        for name, declaration in commands.items():
            node = to_node(name, declaration)
            merged[name] = merge_nodes(merged[name], node) if name in merged else node
    return merged


@dataclass(frozen=True)
class Resolution:
    """Result of walking the command tree.

    Attributes:
        node: Deepest node reached, or ``None`` when the first segment did
            not match any top-level command.
        path: Segments that matched, from the root to *node*.
        remaining: Trailing segments that did not match a child of *node*.
    """

    node: Optional[CommandNode]
    path: tuple[str, ...]
    remaining: tuple[str, ...]

    @property
    def is_unknown(self) -> bool:
        """True when not even the first segment matched."""
        return self.node is None


class CommandRegistry:
    """Read-only view over the merged command tree.

    Built once per process by
    :meth:`~deployli.plugins.manager.PluginManager.collect_commands`.
    """

    def __init__(self, commands: Mapping[str, CommandNode]) -> None:
        self._commands = dict(commands)

    @property
    def commands(self) -> dict[str, CommandNode]:
        """Top-level commands keyed by name (a copy)."""
        return dict(self._commands)

    def resolve(self, path: Iterable[str]) -> Resolution:
        """Walk the tree by successive *path* segments.

        Args:
            path: Command segments as typed on the command line.

        Returns:
            A :class:`Resolution` with the deepest match and any unmatched
            trailing segments.
        """
        segments = tuple(path)
        children: Mapping[str, CommandNode] = self._commands
        node: Optional[CommandNode] = None
        depth = 0
        for segment in segments:
            child = children.get(segment)
            if child is None:
                break
            node = child
            children = child.commands
            depth += 1
        return Resolution(node=node, path=segments[:depth], remaining=segments[depth:])

    def walk(self) -> Iterable[tuple[tuple[str, ...], CommandNode]]:
        """Yield ``(path, node)`` for every node, depth-first in declaration order."""

        def _walk(prefix: tuple[str, ...], nodes: Mapping[str, CommandNode]):
            for name, node in nodes.items():
                path = prefix + (name,)
                yield path, node
                yield from _walk(path, node.commands)

        yield from _walk((), self._commands)
