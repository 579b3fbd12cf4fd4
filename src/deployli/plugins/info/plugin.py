"""Core ``info`` command declaration.

Provider plugins bind ``info:info`` to print what is deployed for the
resolved stage and region.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from deployli.models import CommandNode, OptionSpec


class InfoPlugin:
    name = "info"

    def __init__(self, framework: Any, options: Mapping[str, str]) -> None:
        self.framework = framework
        self.options = options
        self.commands = {
            "info": CommandNode(
                usage="Display information about the service",
                lifecycle_events=("info",),
                options={
                    "stage": OptionSpec(usage="Stage of the service", shortcut="s"),
                    "region": OptionSpec(usage="Region of the service", shortcut="r"),
                },
            ),
        }
