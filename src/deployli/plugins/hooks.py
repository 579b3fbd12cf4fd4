"""Lifecycle events, the per-command hook context, and the dispatcher.

This module provides three core components:

* :class:`LifecycleEvent` -- a closed, typed identifier for one point in a
  command's execution. Its string form (``"before:deploy:function:deploy"``)
  is what plugins use as keys in their ``hooks`` mapping.
* :class:`HookContext` -- a mutable dataclass owned by one command
  execution. Every hook receives it; ``artifacts`` is the shared
  accumulation space (e.g. the resource-declaration document built up by
  successive compile hooks).
* :class:`HookRunner` -- computes the canonical event sequence for a command
  and executes every bound hook, across all loaded plugins, strictly in
  order.

For a command at path ``P`` declaring events ``[E1 .. En]`` the sequence is
``before:P:E1, P:E1, after:P:E1, ..., before:P:En, P:En, after:P:En``.
Within one event, hooks fire in plugin-load order. Each hook (including any
awaitable it returns) completes before the next starts, so no two hooks ever
run concurrently.
"""

from __future__ import annotations

import enum
import inspect
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

from deployli.exceptions import DeployliError, HookExecutionError
from deployli.models import CommandNode
from deployli.plugins.base import plugin_hooks, plugin_name

logger = logging.getLogger(__name__)


class Phase(str, enum.Enum):
    """Position of an event relative to the declared lifecycle step."""

    BEFORE = "before"
    DURING = ""
    AFTER = "after"


@dataclass(frozen=True)
class LifecycleEvent:
    """One scheduled lifecycle event.

    Attributes:
        phase: ``BEFORE``, ``DURING`` or ``AFTER``.
        path: Command path, e.g. ``("deploy", "function")``.
        name: The declared lifecycle event name, e.g. ``"deploy"``.
    """

    phase: Phase
    path: tuple[str, ...]
    name: str

    def __str__(self) -> str:
        parts = list(self.path) + [self.name]
        if self.phase is not Phase.DURING:
            parts.insert(0, self.phase.value)
        return ":".join(parts)


def build_event_sequence(path: Sequence[str], node: CommandNode) -> list[LifecycleEvent]:
    """Compute the before/during/after sequence for a resolved command.

    Args:
        path: The command path that resolved to *node*.
        node: The resolved command.

    Returns:
        ``3 * len(node.lifecycle_events)`` events in execution order. Empty
        when the command declares no lifecycle events.
    """
    command_path = tuple(path)
    sequence: list[LifecycleEvent] = []
    for name in node.lifecycle_events:
        for phase in (Phase.BEFORE, Phase.DURING, Phase.AFTER):
            sequence.append(LifecycleEvent(phase=phase, path=command_path, name=name))
    return sequence


@dataclass
class HookContext:
    """Mutable context owned by a single command execution.

    Attributes:
        framework: The running :class:`~deployli.framework.Framework`.
        command_path: Segments of the command being executed.
        options: CLI options, with shortcuts expanded to long names.
        stage: Target stage resolved for this execution.
        region: Target region resolved for this execution.
        artifacts: Accumulation space shared by the hooks of this execution.
        event: The event currently being dispatched.
        hooks_run: Number of hooks that have completed so far.
    """

    framework: Any = None
    command_path: tuple[str, ...] = ()
    options: Mapping[str, str] = field(default_factory=dict)
    stage: str = ""
    region: str = ""
    artifacts: dict[str, Any] = field(default_factory=dict)
    event: Optional[LifecycleEvent] = None
    hooks_run: int = 0


class HookRunner:
    """Executes lifecycle hooks across loaded plugins in registration order.

    The runner is created by
    :meth:`~deployli.plugins.manager.PluginManager.get_hook_runner` and
    holds an immutable snapshot of the plugin list at creation time.
    """

    def __init__(self, plugins: Sequence[Any]) -> None:
        """Initialize the hook runner with a list of plugins.

        Args:
            plugins: Ordered plugin instances. Hooks for the same event are
                executed in the order plugins appear in this list.
        """
        self._plugins = tuple(plugins)

    async def run_command(
        self, path: Sequence[str], node: CommandNode, ctx: HookContext
    ) -> HookContext:
        """Build the event sequence for *node* and run it. See :meth:`run`."""
        return await self.run(build_event_sequence(path, node), ctx)

    async def run(self, events: Sequence[LifecycleEvent], ctx: HookContext) -> HookContext:
        """Fire every hook bound to each event in *events*, one at a time.

        Args:
            events: The event sequence, usually from :func:`build_event_sequence`.
            ctx: Context handed to every hook.

        Returns:
            The same *ctx* instance after all hooks completed.

        Raises:
            HookExecutionError: A hook raised a non-deployli exception. The
                remaining hooks and events are skipped.
            DeployliError: A hook raised a deployli error (for example a
                provider failure); it propagates unchanged.
        """
        for event in events:
            key = str(event)
            for plugin in self._plugins:
                hook = plugin_hooks(plugin).get(key)
                if hook is None:
                    continue
                ctx.event = event
                logger.debug("Running hook '%s' from plugin '%s'", key, plugin_name(plugin))
                try:
                    result = hook(ctx)
                    if inspect.isawaitable(result):
                        await result
                except DeployliError:
                    raise
                except Exception as exc:
                    message = str(exc) or type(exc).__name__
                    raise HookExecutionError(message, event=key, original=exc) from exc
                ctx.hooks_run += 1
        ctx.event = None
        if events and not ctx.hooks_run:
            logger.info("No hooks are bound to any of the %d events dispatched", len(events))
        return ctx
