"""Canonical Pydantic models shared across all deployli modules.

The models fall into two groups:

**Command declarations** -- contributed by plugins and merged by the
:mod:`deployli.registry`:
    :class:`OptionSpec` and :class:`CommandNode`.

**Configuration models** -- loaded by :mod:`deployli.config`:
    :class:`RetryConfig`, :class:`CredentialsConfig`, :class:`ProviderConfig`,
    :class:`ServiceConfig`, :class:`PluginsConfig` and :class:`GlobalConfig`.

All models use Pydantic v2. Command declarations are frozen once built;
configuration models that accept plugin-defined extensions use
``extra="allow"`` so unknown keys are preserved in ``model_extra``.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# --- Command declarations ---


class OptionSpec(BaseModel):
    """A single ``--name value`` option declared on a command.

    Example::

        OptionSpec(usage="Name of the function", shortcut="f", required=True)
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    usage: str = ""
    shortcut: Optional[str] = None
    required: bool = False


class CommandNode(BaseModel):
    """One node of the command tree.

    ``lifecycle_events`` is ordered and drives the dispatcher; ``commands``
    maps child names to nested nodes. Plugins may also declare nodes as plain
    dicts using the camelCase key ``lifecycleEvents``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = ""
    usage: str = ""
    lifecycle_events: tuple[str, ...] = Field(
        default=(),
        validation_alias=AliasChoices("lifecycle_events", "lifecycleEvents"),
    )
    options: dict[str, OptionSpec] = Field(default_factory=dict)
    commands: dict[str, CommandNode] = Field(default_factory=dict)

    def find_option(self, key: str) -> Optional[str]:
        """Return the long option name matching *key* as a name or shortcut."""
        if key in self.options:
            return key
        for name, spec in self.options.items():
            if spec.shortcut == key:
                return name
        return None


CommandNode.model_rebuild()


# --- Service configuration ---


class RetryConfig(BaseModel):
    """Backoff settings for throttled provider calls."""

    max_attempts: int = Field(default=4, ge=1, description="Total attempts per call")
    base_delay: float = Field(default=0.5, ge=0, description="First backoff ceiling in seconds")
    max_delay: float = Field(default=8.0, ge=0, description="Upper bound for a single backoff")


class CredentialsConfig(BaseModel):
    """Static credentials declared in the service file."""

    access_key_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("access_key_id", "accessKeyId")
    )
    secret_access_key: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("secret_access_key", "secretAccessKey")
    )
    session_token: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("session_token", "sessionToken")
    )


class ProviderConfig(BaseModel):
    """The ``provider`` section of the service file."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str = "aws"
    stage: Optional[str] = None
    region: Optional[str] = None
    profile: Optional[str] = None
    timeout: Optional[int] = Field(default=None, ge=1, description="Client timeout in milliseconds")
    credentials: Optional[CredentialsConfig] = None
    deployment_bucket: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("deployment_bucket", "deploymentBucket"),
    )
    retry: RetryConfig = Field(default_factory=RetryConfig)


class ServiceConfig(BaseModel):
    """The parsed service descriptor (``deployli.yml``).

    Only the fields the engine itself reads are declared. Functions,
    resources and anything else are kept verbatim for plugins.
    """

    model_config = ConfigDict(extra="allow")

    service: str = ""
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    plugins: list[str] = Field(default_factory=list)
    functions: dict[str, Any] = Field(default_factory=dict)


# --- Global configuration ---


class PluginsConfig(BaseModel):
    """Explicit allow/deny lists for entry-point plugins."""

    enabled: list[str] = Field(default_factory=list)
    disabled: list[str] = Field(default_factory=list)


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/deployli/config.json``."""

    plugins: PluginsConfig = Field(default_factory=PluginsConfig)
