"""deployli -- Infrastructure-as-code CLI driven by lifecycle plugins.

This package turns a declarative service description into a provider
deployment. Every command is declared by a plugin and executed as an ordered
sequence of lifecycle events; other plugins bind hooks to those events and
call the cloud provider through a retrying request pipeline.

Typical workflow::

    deployli deploy --stage dev --region us-east-1
    deployli info --stage prod

Modules:
    app: Typer entry point and the single place that maps errors to exit codes.
    framework: One run of the CLI -- config, plugins, registry, dispatch.
    cli: Token parsing and help/version rendering.
    registry: Merged command tree contributed by plugins.
    plugins: Plugin loading and the lifecycle hook dispatcher.
    providers: Provider request pipelines (AWS).
    models: Pydantic models for command declarations and configuration.
    config: XDG-aware global config and service config loading.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.3.0"
