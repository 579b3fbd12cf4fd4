"""Plugin system for deployli -- loading, command collection, and lifecycle hooks.

Every deployli command is contributed by a plugin, and every piece of work a
command does is a hook some plugin binds to one of its lifecycle events.
Third-party packages register plugins through the ``deployli.plugins``
entry-point group or by listing them under ``plugins:`` in the service file.

Key classes:

* :class:`Plugin` -- Structural protocol a loaded plugin satisfies.
* :class:`PluginManager` -- Discovers, loads, and merges plugin commands.
* :class:`HookRunner` -- Executes hooks across loaded plugins in order.
* :class:`HookContext` -- Mutable dataclass owned by one command execution.
* :class:`LifecycleEvent` / :class:`Phase` -- Typed event identifiers.

:data:`BUILTIN_PLUGINS` lists the core plugin factories loaded first on
every run.

Example:
    Typical usage from the framework::

        from deployli.plugins import PluginManager

        manager = PluginManager(framework, processed.options)
        manager.load(manager.discover_factories(service, global_config))
        registry = manager.collect_commands()
        await manager.get_hook_runner().run_command(path, node, ctx)
"""

from deployli.plugins.aws_info import AwsInfoPlugin
from deployli.plugins.base import Plugin
from deployli.plugins.deploy import DeployPlugin
from deployli.plugins.hooks import HookContext, HookRunner, LifecycleEvent, Phase
from deployli.plugins.info import InfoPlugin
from deployli.plugins.manager import PluginManager

BUILTIN_PLUGINS = [DeployPlugin, InfoPlugin, AwsInfoPlugin]
"""Core plugin factories, loaded before any user plugin."""

__all__ = [
    "BUILTIN_PLUGINS",
    "HookContext",
    "HookRunner",
    "LifecycleEvent",
    "Phase",
    "Plugin",
    "PluginManager",
]
