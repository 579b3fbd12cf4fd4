"""Credential resolution for AWS calls.

:func:`resolve_credentials` walks six sources from most to least specific
and returns a :class:`CredentialDescriptor` built from the first one that is
actually populated:

1. ``provider.credentials`` in the service file.
2. ``AWS_<STAGE>_ACCESS_KEY_ID`` / ``AWS_<STAGE>_SECRET_ACCESS_KEY`` /
   ``AWS_<STAGE>_SESSION_TOKEN`` (stage upper-cased).
3. ``AWS_ACCESS_KEY_ID`` / ``AWS_SECRET_ACCESS_KEY`` / ``AWS_SESSION_TOKEN``.
4. ``provider.profile`` in the service file.
5. ``AWS_<STAGE>_PROFILE``.
6. ``AWS_PROFILE``.

A record whose fields are all empty is skipped, never treated as a match.
When no source is populated the descriptor carries only the region and
boto3 falls back to its own default chain (instance roles, SSO cache...).
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

from deployli.models import ProviderConfig


@dataclass(frozen=True)
class Credentials:
    """A static access key pair, optionally with a session token."""

    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None

    @property
    def is_populated(self) -> bool:
        return bool(self.access_key_id or self.secret_access_key or self.session_token)


@dataclass(frozen=True)
class CredentialDescriptor:
    """What a single provider request authenticates with.

    Attributes:
        region: Target region; always set.
        credentials: Static keys, when a key source won.
        profile: Named profile, when a profile source won.
        source: Human-readable name of the winning source, for logs.
    """

    region: str
    credentials: Optional[Credentials] = None
    profile: Optional[str] = None
    source: str = "default"

    def session_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for :class:`boto3.session.Session`."""
        kwargs: dict[str, Any] = {"region_name": self.region}
        if self.credentials is not None:
            kwargs["aws_access_key_id"] = self.credentials.access_key_id
            kwargs["aws_secret_access_key"] = self.credentials.secret_access_key
            if self.credentials.session_token:
                kwargs["aws_session_token"] = self.credentials.session_token
        elif self.profile:
            kwargs["profile_name"] = self.profile
        return kwargs


def _env_credentials(environ: Mapping[str, str], prefix: str) -> Credentials:
    return Credentials(
        access_key_id=environ.get(f"{prefix}_ACCESS_KEY_ID") or None,
        secret_access_key=environ.get(f"{prefix}_SECRET_ACCESS_KEY") or None,
        session_token=environ.get(f"{prefix}_SESSION_TOKEN") or None,
    )


def resolve_credentials(
    provider: ProviderConfig,
    stage: str,
    region: str,
    environ: Optional[Mapping[str, str]] = None,
) -> CredentialDescriptor:
    """Pick the credentials a request for *stage* and *region* should use.

    Args:
        provider: The service file's ``provider`` section.
        stage: Target stage; selects the ``AWS_<STAGE>_*`` variables.
        region: Target region, attached to every descriptor.
        environ: Environment to read (default: :data:`os.environ`).

    Returns:
        A new :class:`CredentialDescriptor`.
    """
    env = os.environ if environ is None else environ
    stage_prefix = f"AWS_{stage.upper()}"

    if provider.credentials is not None:
        configured = Credentials(
            access_key_id=provider.credentials.access_key_id or None,
            secret_access_key=provider.credentials.secret_access_key or None,
            session_token=provider.credentials.session_token or None,
        )
        if configured.is_populated:
            return CredentialDescriptor(region, credentials=configured, source="provider.credentials")

    for prefix, source in ((stage_prefix, f"{stage_prefix}_*"), ("AWS", "AWS_*")):
        from_env = _env_credentials(env, prefix)
        if from_env.is_populated:
            return CredentialDescriptor(region, credentials=from_env, source=source)

    profiles = (
        (provider.profile, "provider.profile"),
        (env.get(f"{stage_prefix}_PROFILE"), f"{stage_prefix}_PROFILE"),
        (env.get("AWS_PROFILE"), "AWS_PROFILE"),
    )
    for profile, source in profiles:
        if profile:
            return CredentialDescriptor(region, profile=profile, source=source)

    return CredentialDescriptor(region)
