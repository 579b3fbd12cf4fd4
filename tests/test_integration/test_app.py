"""End-to-end tests for the deployli entry point via Typer's CliRunner.

These tests run the real Typer app against a service file in an isolated
working directory and check exit codes and rendered output. Provider calls
are answered by a scripted fake client instead of boto3.
"""

from __future__ import annotations

import json
import random
import signal
import subprocess
import sys
import time
from typing import Any

import pytest
from botocore.exceptions import ClientError

from deployli import __version__
from deployli.app import _handle_interrupt, _setup_signal_handlers, app
from deployli.exit_codes import (
    EXIT_HOOK_ERROR,
    EXIT_INTERRUPTED,
    EXIT_INVALID_USAGE,
    EXIT_PLUGIN_ERROR,
    EXIT_PROVIDER_REJECTED,
    EXIT_PROVIDER_THROTTLED,
    EXIT_SUCCESS,
)
from deployli.plugins import BUILTIN_PLUGINS
from deployli.providers.aws import AwsProvider


SERVICE_YML = """\
service: shop
provider:
  name: aws
  region: eu-west-1
  retry:
    max_attempts: 2
    base_delay: 0
"""


# ---------------------------------------------------------------------------
# Test helpers
# ---------------------------------------------------------------------------


def client_error(code: str, message: str, status: int) -> ClientError:
    return ClientError(
        {"Error": {"Code": code, "Message": message}, "ResponseMetadata": {"HTTPStatusCode": status}},
        "DescribeStacks",
    )


class ScriptedClient:
    def __init__(self, script: list[Any]) -> None:
        self.script = script
        self.calls: list[str] = []

    def __getattr__(self, operation: str):
        def _call(**params):
            self.calls.append(operation)
            outcome = self.script.pop(0)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome

        return _call


@pytest.fixture
def scripted_aws(monkeypatch):
    """Make the framework's default ``aws`` provider answer from a script."""
    client = ScriptedClient([])

    async def no_sleep(delay: float) -> None:
        return None

    def _provider(service):
        return AwsProvider(
            service,
            client_factory=lambda name, descriptor: client,
            sleep=no_sleep,
            rng=random.Random(0),
        )

    monkeypatch.setattr("deployli.framework.AwsProvider", _provider)
    return client


@pytest.fixture
def project(service_file, monkeypatch):
    monkeypatch.setenv("DEPLOYLI_OUTPUT", "plain")
    service_file(SERVICE_YML)


class FailingHookPlugin:
    def __init__(self, framework, options):
        self.hooks = {"deploy:createDeploymentArtifacts": self.package}

    def package(self, ctx):
        raise OSError("No space left on device")


class FailingConstructorPlugin:
    def __init__(self, framework, options):
        raise RuntimeError("plugin config 'custom.alerts' is required")


class MalformedCommandPlugin:
    name = "alerts"

    def __init__(self, framework, options):
        self.commands = {"deploy": {"options": 5}}


# ---------------------------------------------------------------------------
# Help and version
# ---------------------------------------------------------------------------


class TestHelpAndVersion:
    def test_version(self, cli_runner, project):
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == EXIT_SUCCESS
        assert result.output.strip() == f"deployli {__version__}"

    def test_version_beats_help(self, cli_runner, project):
        result = cli_runner.invoke(app, ["--version", "--help"])
        assert result.exit_code == EXIT_SUCCESS
        assert "Commands" not in result.output

    def test_no_args_shows_general_help(self, cli_runner, project):
        result = cli_runner.invoke(app, [])
        assert result.exit_code == EXIT_SUCCESS
        assert "deploy function" in result.output
        assert "info" in result.output

    def test_command_help(self, cli_runner, project):
        result = cli_runner.invoke(app, ["deploy", "--help"])
        assert result.exit_code == EXIT_SUCCESS
        assert "--noDeploy" in result.output


# ---------------------------------------------------------------------------
# Usage errors
# ---------------------------------------------------------------------------


class TestUsageErrors:
    def test_unknown_command(self, cli_runner, project):
        result = cli_runner.invoke(app, ["destroy"])
        assert result.exit_code == EXIT_INVALID_USAGE
        assert "Command 'destroy' not found" in result.output
        assert "contextual help" in result.output

    def test_missing_required_option_shows_command_help(self, cli_runner, project):
        result = cli_runner.invoke(app, ["deploy", "function"])
        assert result.exit_code == EXIT_INVALID_USAGE
        assert "requires the --function option" in result.output
        assert "Usage: deployli deploy function" in result.output

    def test_unexpected_argument(self, cli_runner, project):
        result = cli_runner.invoke(app, ["info", "everything"])
        assert result.exit_code == EXIT_INVALID_USAGE
        assert "Unexpected argument 'everything'" in result.output


# ---------------------------------------------------------------------------
# Plugin and hook failures
# ---------------------------------------------------------------------------


class TestPluginFailures:
    def test_hook_failure_exit_code(self, cli_runner, project, monkeypatch):
        monkeypatch.setattr(
            "deployli.plugins.BUILTIN_PLUGINS",
            [*BUILTIN_PLUGINS, FailingHookPlugin],
        )
        result = cli_runner.invoke(app, ["deploy"])
        assert result.exit_code == EXIT_HOOK_ERROR
        assert "No space left on device" in result.output

    def test_plugin_load_failure_exit_code(self, cli_runner, project, monkeypatch):
        monkeypatch.setattr("deployli.plugins.BUILTIN_PLUGINS", [FailingConstructorPlugin])
        result = cli_runner.invoke(app, ["deploy"])
        assert result.exit_code == EXIT_PLUGIN_ERROR
        assert "custom.alerts" in result.output

    def test_malformed_command_declaration_exit_code(self, cli_runner, project, monkeypatch):
        monkeypatch.setattr(
            "deployli.plugins.BUILTIN_PLUGINS",
            [*BUILTIN_PLUGINS, MalformedCommandPlugin],
        )
        result = cli_runner.invoke(app, ["deploy"])
        assert result.exit_code == EXIT_PLUGIN_ERROR
        assert "Plugin 'alerts' declares an invalid command" in result.output

    def test_invalid_service_file(self, cli_runner, service_file):
        service_file("service: [broken\n")
        result = cli_runner.invoke(app, ["deploy"])
        assert result.exit_code == 1
        assert "Cannot parse service file" in result.output


# ---------------------------------------------------------------------------
# info against a scripted provider
# ---------------------------------------------------------------------------


class TestInfo:
    def test_info_renders_stack_outputs(self, cli_runner, project, scripted_aws):
        scripted_aws.script.append(
            {
                "Stacks": [
                    {
                        "StackName": "shop-dev",
                        "StackStatus": "UPDATE_COMPLETE",
                        "Outputs": [
                            {"OutputKey": "ServiceEndpoint", "OutputValue": "https://api.example.com"}
                        ],
                    }
                ]
            }
        )
        result = cli_runner.invoke(app, ["info"])

        assert result.exit_code == EXIT_SUCCESS
        assert "stack: shop-dev" in result.output
        assert "region: eu-west-1" in result.output
        assert "ServiceEndpoint\thttps://api.example.com" in result.output
        assert scripted_aws.calls == ["describe_stacks"]

    def test_info_stage_option(self, cli_runner, project, scripted_aws):
        scripted_aws.script.append({"Stacks": [{"StackStatus": "CREATE_COMPLETE"}]})
        result = cli_runner.invoke(app, ["info", "-s", "prod"])
        assert result.exit_code == EXIT_SUCCESS
        assert "stack: shop-prod" in result.output

    def test_rejected_exit_code(self, cli_runner, project, scripted_aws):
        scripted_aws.script.append(client_error("ValidationError", "Stack with id shop-dev does not exist", 400))
        result = cli_runner.invoke(app, ["info"])
        assert result.exit_code == EXIT_PROVIDER_REJECTED
        assert "does not exist" in result.output
        assert scripted_aws.calls == ["describe_stacks"]

    def test_throttled_exit_code(self, cli_runner, project, scripted_aws):
        throttle = client_error("Throttling", "Rate exceeded", 400)
        scripted_aws.script.extend([throttle, throttle])
        result = cli_runner.invoke(app, ["info"])
        assert result.exit_code == EXIT_PROVIDER_THROTTLED
        assert scripted_aws.calls == ["describe_stacks", "describe_stacks"]

    def test_info_json_output(self, cli_runner, project, scripted_aws, monkeypatch):
        monkeypatch.setenv("DEPLOYLI_OUTPUT", "json")
        scripted_aws.script.append(
            {"Stacks": [{"StackStatus": "CREATE_COMPLETE", "Outputs": [{"OutputKey": "Url", "OutputValue": "u"}]}]}
        )
        result = cli_runner.invoke(app, ["info"])
        assert result.exit_code == EXIT_SUCCESS
        summary = json.loads(result.stdout)
        assert summary["stack"] == "shop-dev"
        assert summary["outputs"] == {"Url": "u"}


# ---------------------------------------------------------------------------
# Commands without bound hooks
# ---------------------------------------------------------------------------


class TestUnboundCommand:
    def test_deploy_without_hooks_warns(self, cli_runner, project):
        result = cli_runner.invoke(app, ["deploy"])
        assert result.exit_code == EXIT_SUCCESS
        assert "No plugin hooks ran for 'deploy'" in result.output

    def test_info_with_hook_does_not_warn(self, cli_runner, project, scripted_aws):
        scripted_aws.script.append({"Stacks": [{"StackStatus": "CREATE_COMPLETE"}]})
        result = cli_runner.invoke(app, ["info"])
        assert result.exit_code == EXIT_SUCCESS
        assert "No plugin hooks ran" not in result.output


# ---------------------------------------------------------------------------
# Ctrl-C
# ---------------------------------------------------------------------------


INTERRUPT_SCRIPT = """\
import asyncio, os, signal, threading, time
from deployli.app import _setup_signal_handlers

_setup_signal_handlers()
threading.Timer(0.3, os.kill, (os.getpid(), signal.SIGINT)).start()
asyncio.run(asyncio.to_thread(time.sleep, 20))
"""


class TestInterrupt:
    def test_handler_exits_130(self, monkeypatch, capsys):
        codes: list[int] = []
        monkeypatch.setattr("deployli.app.os._exit", codes.append)
        _handle_interrupt(signal.SIGINT, None)
        assert codes == [EXIT_INTERRUPTED]
        assert "Cancelled." in capsys.readouterr().err

    def test_handler_is_installed_for_sigint(self, monkeypatch):
        installed: dict[int, Any] = {}
        monkeypatch.setattr("deployli.app.signal.signal", installed.__setitem__)
        _setup_signal_handlers()
        assert installed[signal.SIGINT] is _handle_interrupt

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signal delivery")
    def test_interrupt_does_not_wait_for_worker_thread(self):
        started = time.monotonic()
        proc = subprocess.run(
            [sys.executable, "-c", INTERRUPT_SCRIPT],
            capture_output=True,
            text=True,
            timeout=15,
        )
        assert proc.returncode == EXIT_INTERRUPTED
        assert "Cancelled." in proc.stderr
        assert time.monotonic() - started < 10
