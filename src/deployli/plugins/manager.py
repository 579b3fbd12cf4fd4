"""Plugin manager -- discovery, loading, and command collection.

This module contains :class:`PluginManager`, the central coordinator for the
plugin system. Plugins are produced by factories called as
``factory(framework, options)`` and kept in one ordered list. Load order is
deterministic:

1. Built-in core plugins (:data:`deployli.plugins.BUILTIN_PLUGINS`).
2. Plugins listed under ``plugins:`` in the service file, in declaration
   order, as ``"package.module:Attribute"`` references.
3. Entry points in the ``deployli.plugins`` group, sorted by name and
   filtered through the global config allow/deny lists::

       [project.entry-points."deployli.plugins"]
       my-plugin = "my_package.plugin:MyPlugin"

Any failure while loading is fatal: loading stops and a
:class:`~deployli.exceptions.PluginLoadError` is raised.
"""

from __future__ import annotations

import importlib
import importlib.metadata
import logging
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from pydantic import ValidationError

from deployli.exceptions import PluginLoadError
from deployli.models import CommandNode, GlobalConfig, ServiceConfig
from deployli.plugins.base import PluginFactory, plugin_commands, plugin_name
from deployli.plugins.hooks import HookRunner
from deployli.registry import CommandRegistry, merge_command_maps

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "deployli.plugins"
"""The entry-point group name used for plugin discovery."""


def import_factory(reference: str) -> PluginFactory:
    """Import a ``"package.module:Attribute"`` reference.

    Args:
        reference: The dotted module path and attribute, separated by ``:``.

    Returns:
        The referenced callable.

    Raises:
        PluginLoadError: If the reference is malformed or cannot be imported.
    """
    module_name, _, attr = reference.partition(":")
    if not module_name or not attr:
        raise PluginLoadError(
            f"Invalid plugin reference '{reference}' (expected 'package.module:Attribute')",
            plugin=reference,
        )
    try:
        module = importlib.import_module(module_name)
        return getattr(module, attr)
    except (ImportError, AttributeError) as exc:
        raise PluginLoadError(
            f"Cannot import plugin '{reference}': {exc}", plugin=reference, original=exc
        ) from exc


class PluginManager:
    """Instantiates plugins in order and exposes their commands and hooks.

    Example:
        Typical usage::

            manager = PluginManager(framework, processed.options)
            manager.load(manager.discover_factories(service, global_config))
            registry = manager.collect_commands()
            runner = manager.get_hook_runner()
    """

    def __init__(self, framework: Any = None, options: Optional[Mapping[str, str]] = None) -> None:
        self._framework = framework
        self._options: Mapping[str, str] = options if options is not None else {}
        self._plugins: list[Any] = []
        self._hook_runner: Optional[HookRunner] = None

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover_factories(
        self, service: ServiceConfig, config: GlobalConfig
    ) -> list[PluginFactory]:
        """Return every plugin factory to load, in load order.

        Args:
            service: The service config whose ``plugins`` list is imported.
            config: The global config whose ``plugins.enabled`` and
                ``plugins.disabled`` lists filter entry points.

        Raises:
            PluginLoadError: If a declared plugin or entry point cannot be
                imported.
        """
        from deployli.plugins import BUILTIN_PLUGINS

        factories: list[PluginFactory] = list(BUILTIN_PLUGINS)
        factories.extend(import_factory(ref) for ref in service.plugins)

        enabled_set = set(config.plugins.enabled)
        disabled_set = set(config.plugins.disabled)
        eps = importlib.metadata.entry_points().select(group=ENTRY_POINT_GROUP)
        for ep in sorted(eps, key=lambda ep: ep.name):
            if enabled_set and ep.name not in enabled_set:
                logger.debug("Plugin '%s' not in enabled list, skipping", ep.name)
                continue
            if ep.name in disabled_set:
                logger.debug("Plugin '%s' is disabled, skipping", ep.name)
                continue
            try:
                factories.append(ep.load())
            except Exception as exc:
                raise PluginLoadError(
                    f"Cannot load entry point '{ep.name}': {exc}", plugin=ep.name, original=exc
                ) from exc
        return factories

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self, factories: Iterable[PluginFactory]) -> list[Any]:
        """Instantiate every factory in the given order.

        Args:
            factories: Plugin factories, called as ``factory(framework, options)``.

        Returns:
            The loaded plugin instances, in load order.

        Raises:
            PluginLoadError: On the first factory that raises. Plugins loaded
                before it stay registered; nothing after it is attempted.
        """
        for factory in factories:
            self.load_plugin(factory)
        return self.get_plugins()

    def load_plugin(self, factory: PluginFactory) -> Any:
        """Instantiate a single plugin and register it.

        Raises:
            PluginLoadError: If the factory raises. The original exception
                message is kept verbatim.
        """
        label = getattr(factory, "__name__", repr(factory))
        try:
            plugin = factory(self._framework, self._options)
        except Exception as exc:
            raise PluginLoadError(str(exc) or type(exc).__name__, plugin=label, original=exc) from exc
        self.add_plugin(plugin)
        return plugin

    def add_plugin(self, plugin: Any) -> None:
        """Register an already-built plugin instance at the end of the load order."""
        self._plugins.append(plugin)
        # Invalidate cached hook runner so it picks up the new plugin.
        self._hook_runner = None
        logger.info("Loaded plugin '%s'", plugin_name(plugin))

    # ------------------------------------------------------------------
    # Querying
    # ------------------------------------------------------------------

    def get_plugins(self) -> list[Any]:
        """Return the loaded plugins in load order (a copy)."""
        return list(self._plugins)

    def collect_commands(self) -> CommandRegistry:
        """Merge the command declarations of every loaded plugin.

        Each plugin's declarations are validated on their own before being
        folded into the tree, so a malformed one is reported against the
        plugin that contributed it.

        Returns:
            A :class:`~deployli.registry.CommandRegistry` over the merged tree.

        Raises:
            PluginLoadError: If a plugin declares a command that does not
                validate as a :class:`~deployli.models.CommandNode`.
        """
        merged: dict[str, CommandNode] = {}
        for plugin in self._plugins:
            name = plugin_name(plugin)
            try:
                contributed = merge_command_maps([plugin_commands(plugin)])
            except (ValidationError, TypeError, AttributeError) as exc:
                raise PluginLoadError(
                    f"Plugin '{name}' declares an invalid command: {exc}",
                    plugin=name,
                    original=exc,
                ) from exc
            merged = merge_command_maps([merged, contributed])
        return CommandRegistry(merged)

    # ------------------------------------------------------------------
    # Hook runner
    # ------------------------------------------------------------------

    def get_hook_runner(self) -> HookRunner:
        """Return the :class:`~deployli.plugins.hooks.HookRunner` for all loaded plugins.

        The runner is lazily created and cached; :meth:`add_plugin`
        invalidates the cache.
        """
        if self._hook_runner is None:
            self._hook_runner = HookRunner(list(self._plugins))
        return self._hook_runner
