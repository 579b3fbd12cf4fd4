"""The plugin capability contract.

A deployli plugin is any object produced by a *factory* -- usually the plugin
class itself -- called as ``factory(framework, options)``. There is no base
class to inherit from: a plugin simply exposes, optionally,

* ``commands`` -- a mapping of top-level command names to declarations
  (:class:`~deployli.models.CommandNode` instances or plain dicts), and
* ``hooks`` -- a mapping of lifecycle event names (``"before:deploy:deploy"``,
  ``"deploy:function:deploy"``) to callables taking a
  :class:`~deployli.plugins.hooks.HookContext`. A hook may be a plain
  function or a coroutine function; coroutines are awaited before the next
  hook runs.

Example:
    Minimal plugin extending the ``deploy`` command::

        class Notify:
            def __init__(self, framework, options):
                self.framework = framework
                self.hooks = {"after:deploy:deploy": self.notify}

            async def notify(self, ctx):
                ...
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, Protocol, runtime_checkable

Hook = Callable[..., Any]
PluginFactory = Callable[[Any, Mapping[str, str]], Any]


@runtime_checkable
class Plugin(Protocol):
    """Structural type for loaded plugins. Both attributes are optional in practice."""

    commands: Mapping[str, Any]
    hooks: Mapping[str, Hook]


def plugin_name(plugin: Any) -> str:
    """Return the plugin's ``name`` attribute, falling back to its class name."""
    name = getattr(plugin, "name", None)
    if isinstance(name, str) and name:
        return name
    return type(plugin).__name__


def plugin_commands(plugin: Any) -> Mapping[str, Any]:
    """Return the plugin's command declarations, or an empty mapping."""
    return getattr(plugin, "commands", None) or {}


def plugin_hooks(plugin: Any) -> Mapping[str, Hook]:
    """Return the plugin's hook bindings, or an empty mapping."""
    return getattr(plugin, "hooks", None) or {}
