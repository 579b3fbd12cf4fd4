"""The framework -- one end-to-end run of the deployli CLI.

:class:`Framework` owns everything a single invocation needs and wires it
together in :meth:`Framework.run`:

1. Parse the raw tokens (:func:`~deployli.cli.process_input`).
2. Load the service and global configs.
3. Register providers and load plugins in their deterministic order.
4. Merge the plugins' command declarations into a
   :class:`~deployli.registry.CommandRegistry`.
5. Render help or version output when asked for, and stop.
6. Resolve the command, validate its options and dispatch its lifecycle
   events through the :class:`~deployli.plugins.hooks.HookRunner`.

Plugins receive the framework as the first argument of their factory and use
it to reach the service config and the providers::

    provider = framework.get_provider("aws")
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Optional

from deployli.cli import CLI, ProcessedInput
from deployli.config import load_global_config, load_service_config, resolve_stage_region
from deployli.exceptions import UsageError
from deployli.models import CommandNode, GlobalConfig, ServiceConfig
from deployli.plugins.base import PluginFactory
from deployli.plugins.hooks import HookContext
from deployli.plugins.manager import PluginManager
from deployli.providers.aws import AwsProvider
from deployli.registry import CommandRegistry

logger = logging.getLogger(__name__)


class Framework:
    """Coordinates config, plugins, command resolution and dispatch.

    Args:
        tokens: Raw command-line arguments, without the program name.
        service: Pre-loaded service config. Loaded from the working
            directory when omitted.
        global_config: Pre-loaded global config. Loaded from the XDG config
            directory when omitted.
        factories: Explicit plugin factories, replacing discovery entirely.
    """

    def __init__(
        self,
        tokens: Sequence[str],
        service: Optional[ServiceConfig] = None,
        global_config: Optional[GlobalConfig] = None,
        factories: Optional[Iterable[PluginFactory]] = None,
    ) -> None:
        self.cli = CLI(tokens)
        self.service = service
        self.global_config = global_config
        self.processed_input: Optional[ProcessedInput] = None
        self.plugin_manager: Optional[PluginManager] = None
        self.registry = CommandRegistry({})
        self._factories = list(factories) if factories is not None else None
        self._providers: dict[str, Any] = {}

    # ------------------------------------------------------------------
    # Providers
    # ------------------------------------------------------------------

    def set_provider(self, name: str, provider: Any) -> None:
        """Register *provider* under *name*, replacing any earlier one."""
        self._providers[name] = provider

    def get_provider(self, name: str) -> Any:
        """Return the provider registered under *name*.

        Raises:
            KeyError: If no such provider is registered.
        """
        try:
            return self._providers[name]
        except KeyError:
            raise KeyError(f"Provider '{name}' is not registered") from None

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self) -> Optional[HookContext]:
        """Execute this invocation.

        Returns:
            The :class:`~deployli.plugins.hooks.HookContext` after every hook
            completed, or ``None`` when help or version output was rendered.

        Raises:
            UsageError: Unknown command, stray arguments, or a missing
                required option.
            PluginLoadError: A plugin failed to load.
            HookExecutionError: A hook failed; remaining events were skipped.
            ProviderError: A provider call failed inside a hook.
            ConfigError: The service or global config is invalid.
        """
        processed = self.cli.process_input()
        self.processed_input = processed

        if self.service is None:
            self.service = load_service_config()
        if self.global_config is None:
            self.global_config = load_global_config()
        if "aws" not in self._providers:
            self.set_provider("aws", AwsProvider(self.service))

        self.plugin_manager = PluginManager(self, processed.options)
        factories = self._factories
        if factories is None:
            factories = self.plugin_manager.discover_factories(self.service, self.global_config)
        self.plugin_manager.load(factories)
        self.registry = self.plugin_manager.collect_commands()
        self.cli.set_registry(self.registry)

        if self.cli.display_help(processed):
            return None

        resolution = self.registry.resolve(processed.commands)
        if resolution.is_unknown:
            raise UsageError(
                f"Command '{processed.commands[0]}' not found. "
                "Run 'deployli help' for a list of all available commands."
            )
        if resolution.remaining:
            raise UsageError(
                f"Unexpected argument '{resolution.remaining[0]}' "
                f"for command '{' '.join(resolution.path)}'.",
                command_path=resolution.path,
            )

        options = self.validate_options(resolution.path, resolution.node, processed.options)
        stage, region = resolve_stage_region(options, self.service)
        ctx = HookContext(
            framework=self,
            command_path=resolution.path,
            options=options,
            stage=stage,
            region=region,
        )
        logger.info(
            "Dispatching '%s' (stage=%s, region=%s)", " ".join(resolution.path), stage, region
        )
        runner = self.plugin_manager.get_hook_runner()
        return await runner.run_command(resolution.path, resolution.node, ctx)

    @staticmethod
    def validate_options(
        path: Sequence[str], node: CommandNode, options: Mapping[str, str]
    ) -> dict[str, str]:
        """Expand shortcuts to long names and check required options.

        Options the command does not declare are passed through unchanged.

        Returns:
            A new options dict keyed by long names where known.

        Raises:
            UsageError: If a required option is missing.
        """
        expanded: dict[str, str] = {}
        for key, value in options.items():
            expanded[node.find_option(key) or key] = value

        for name, spec in node.options.items():
            if spec.required and name not in expanded:
                raise UsageError(
                    f"This command requires the --{name} option.", command_path=tuple(path)
                )
        return expanded
