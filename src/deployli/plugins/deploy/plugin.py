"""Core ``deploy`` command declarations.

``deploy`` runs the full pipeline: the service is packaged, its functions
and events are compiled into the resource-declaration document kept in
:attr:`HookContext.artifacts <deployli.plugins.hooks.HookContext.artifacts>`,
and the stack is deployed. ``deploy function`` redeploys a single function's
code without touching the stack.

Usage::

    deployli deploy --stage prod --region eu-west-1
    deployli deploy --noDeploy
    deployli deploy function -f hello
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from deployli.models import CommandNode, OptionSpec

_STAGE = OptionSpec(usage="Stage of the service", shortcut="s")
_REGION = OptionSpec(usage="Region of the service", shortcut="r")


class DeployPlugin:
    """Declares ``deploy`` and its ``function`` sub-command."""

    name = "deploy"

    def __init__(self, framework: Any, options: Mapping[str, str]) -> None:
        self.framework = framework
        self.options = options
        self.commands = {
            "deploy": CommandNode(
                usage="Deploy the service",
                lifecycle_events=(
                    "cleanup",
                    "initialize",
                    "setupProviderConfiguration",
                    "createDeploymentArtifacts",
                    "compileFunctions",
                    "compileEvents",
                    "deploy",
                ),
                options={
                    "stage": _STAGE,
                    "region": _REGION,
                    "noDeploy": OptionSpec(
                        usage="Build artifacts without deploying", shortcut="n"
                    ),
                },
                commands={
                    "function": CommandNode(
                        usage="Deploy a single function of the service",
                        lifecycle_events=("deploy",),
                        options={
                            "function": OptionSpec(
                                usage="Name of the function", shortcut="f", required=True
                            ),
                            "stage": _STAGE,
                            "region": _REGION,
                        },
                    ),
                },
            ),
        }
