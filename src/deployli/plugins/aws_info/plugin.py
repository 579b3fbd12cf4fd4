"""AWS info plugin -- hooks ``info:info`` and prints the CloudFormation stack.

The hook asks the ``aws`` provider for the stack named
``<service>-<stage>`` via ``describeStacks`` and prints the service summary
followed by the stack outputs as a table. The summary is also stored in
``ctx.artifacts["info"]`` so later hooks (e.g. an ``after:info:info``
exporter) can reuse it without a second provider call.

Usage::

    deployli info --stage prod
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from deployli.output import OutputFormat, get_output
from deployli.plugins.hooks import HookContext

logger = logging.getLogger(__name__)


class AwsInfoPlugin:
    """Binds ``info:info`` to a ``describeStacks`` lookup."""

    name = "aws-info"

    def __init__(self, framework: Any, options: Mapping[str, str]) -> None:
        self.framework = framework
        self.options = options
        self.hooks = {"info:info": self.display_stack_info}

    async def display_stack_info(self, ctx: HookContext) -> None:
        """Fetch the stack for the resolved stage/region and print it.

        Raises:
            ProviderRejected: If the stack does not exist or the call fails.
            ProviderThrottled: If the call is still throttled after retries.
        """
        provider = self.framework.get_provider("aws")
        stack_name = provider.get_stack_name(ctx.stage)
        logger.debug("Describing stack '%s' in %s", stack_name, ctx.region)

        result = await provider.request(
            "CloudFormation",
            "describeStacks",
            {"StackName": stack_name},
            ctx.stage,
            ctx.region,
        )
        stacks = result.get("Stacks") or []
        outputs = (stacks[0].get("Outputs") or []) if stacks else []

        summary = {
            "service": provider.service.service,
            "stage": ctx.stage,
            "region": ctx.region,
            "stack": stack_name,
            "status": stacks[0].get("StackStatus", "") if stacks else "",
            "outputs": {o["OutputKey"]: o.get("OutputValue", "") for o in outputs},
        }
        ctx.artifacts["info"] = summary

        out = get_output()
        if out.format == OutputFormat.JSON:
            out.format_response(summary)
            return

        out.print_summary(
            "Service Information",
            {key: summary[key] for key in ("service", "stage", "region", "stack", "status")},
        )
        if outputs:
            out.print_table(
                headers=["Output", "Value", "Description"],
                rows=[
                    [o["OutputKey"], o.get("OutputValue", ""), o.get("Description", "")]
                    for o in outputs
                ],
                title="Stack Outputs",
            )
