"""AWS request pipeline -- one retrying boto3 call per :meth:`AwsProvider.request`.

Hooks never build boto3 clients themselves. They call::

    result = await framework.get_provider("aws").request(
        "CloudFormation", "describeStacks", {"StackName": name}, stage, region
    )

and the provider:

1. Resolves credentials for the stage and region
   (:func:`~deployli.providers.aws.credentials.resolve_credentials`).
2. Builds a transient client with boto's own retries disabled, honoring
   the ``proxy`` / ``HTTPS_PROXY`` and ``AWS_CLIENT_TIMEOUT`` environment
   variables.
3. Runs the blocking SDK call in a worker thread.
4. Retries throttled calls (HTTP 429 or a known throttling code) with
   exponential backoff and full jitter, up to ``provider.retry.max_attempts``
   attempts in total, then raises
   :class:`~deployli.exceptions.ProviderThrottled`.
5. Raises :class:`~deployli.exceptions.ProviderRejected` on the first
   non-throttling failure. Missing-credential failures get a link to the
   credentials guide appended to their message.
"""

from __future__ import annotations

import asyncio
import logging
import os
import random
import re
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass
from typing import Any, Callable, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError, NoCredentialsError

from deployli.config import resolve_stage_region
from deployli.exceptions import ConfigError, ProviderRejected, ProviderThrottled
from deployli.models import ServiceConfig
from deployli.providers.aws.credentials import CredentialDescriptor, resolve_credentials

logger = logging.getLogger(__name__)

THROTTLING_ERROR_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "ThrottledException",
        "RequestThrottled",
        "RequestThrottledException",
        "RequestLimitExceeded",
        "TooManyRequestsException",
        "ProvisionedThroughputExceededException",
        "SlowDown",
        "PriorRequestNotComplete",
        "EC2ThrottledException",
        "BandwidthLimitExceeded",
    }
)
"""Error codes treated as throttling regardless of the HTTP status."""

MISSING_CREDENTIALS_SIGNATURE = "Missing credentials"
CREDENTIALS_GUIDE_URL = (
    "https://boto3.amazonaws.com/v1/documentation/api/latest/guide/credentials.html"
)

DEPLOYMENT_BUCKET_LOGICAL_ID = "ServerlessDeploymentBucket"

# SDK class names that do not lower-case to the boto3 service name.
_SERVICE_ALIASES = {
    "CloudWatchLogs": "logs",
    "CloudWatchEvents": "events",
    "CognitoIdentityServiceProvider": "cognito-idp",
    "CognitoIdentity": "cognito-identity",
    "ApiGatewayManagementApi": "apigatewaymanagementapi",
    "ResourceGroupsTaggingAPI": "resourcegroupstaggingapi",
}

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

ClientFactory = Callable[[str, CredentialDescriptor], Any]
Sleep = Callable[[float], Awaitable[Any]]


# --- Client construction ---


def service_name(sdk_name: str) -> str:
    """Map an SDK class name (``"CloudFormation"``) to a boto3 service name."""
    return _SERVICE_ALIASES.get(sdk_name, sdk_name.lower())


def operation_name(method: str) -> str:
    """Map a camelCase method (``"describeStacks"``) to boto3's snake_case."""
    return _CAMEL_BOUNDARY.sub("_", method).lower()


def build_client_config(
    timeout_ms: Optional[int] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """Build the botocore client config shared by every request.

    Args:
        timeout_ms: Connect/read timeout in milliseconds. Falls back to the
            ``AWS_CLIENT_TIMEOUT`` environment variable.
        environ: Environment to read (default: :data:`os.environ`).

    Raises:
        ConfigError: If ``AWS_CLIENT_TIMEOUT`` is not an integer.
    """
    env = os.environ if environ is None else environ
    kwargs: dict[str, Any] = {"retries": {"total_max_attempts": 1, "mode": "standard"}}

    proxy = env.get("proxy") or env.get("HTTPS_PROXY") or env.get("https_proxy")
    if proxy:
        kwargs["proxies"] = {"http": proxy, "https": proxy}

    if timeout_ms is None and env.get("AWS_CLIENT_TIMEOUT"):
        try:
            timeout_ms = int(env["AWS_CLIENT_TIMEOUT"])
        except ValueError as exc:
            raise ConfigError(
                f"AWS_CLIENT_TIMEOUT must be a number of milliseconds, got '{env['AWS_CLIENT_TIMEOUT']}'"
            ) from exc
    if timeout_ms:
        kwargs["connect_timeout"] = timeout_ms / 1000
        kwargs["read_timeout"] = timeout_ms / 1000

    return Config(**kwargs)


def default_client_factory(config: Config) -> ClientFactory:
    """Return a factory building boto3 clients from a credential descriptor."""

    def _factory(name: str, descriptor: CredentialDescriptor) -> Any:
        session = boto3.session.Session(**descriptor.session_kwargs())
        return session.client(name, config=config)

    return _factory


# --- Failure classification ---


@dataclass(frozen=True)
class _Failure:
    message: str
    status_code: Optional[int] = None
    code: Optional[str] = None
    missing_credentials: bool = False

    @property
    def throttled(self) -> bool:
        return self.status_code == 429 or self.code in THROTTLING_ERROR_CODES


def _failure_details(exc: Exception) -> _Failure:
    """Extract status, code and message from an SDK (or SDK-like) exception."""
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        message = error.get("Message") or str(exc)
        return _Failure(
            message=message,
            status_code=status,
            code=error.get("Code"),
            missing_credentials=status == 403 and MISSING_CREDENTIALS_SIGNATURE in message,
        )
    if isinstance(exc, NoCredentialsError):
        return _Failure(message=str(exc), code="NoCredentialsError", missing_credentials=True)

    status = getattr(exc, "status_code", None) or getattr(exc, "statusCode", None)
    code = getattr(exc, "code", None)
    message = str(exc) or type(exc).__name__
    return _Failure(
        message=message,
        status_code=status if isinstance(status, int) else None,
        code=code if isinstance(code, str) else None,
        missing_credentials=status == 403 and MISSING_CREDENTIALS_SIGNATURE in message,
    )


# --- Provider ---


class AwsProvider:
    """The ``aws`` provider: credential resolution plus the retrying request pipeline.

    Args:
        service: The loaded service config; ``service.provider`` supplies
            credentials, profile, timeout, deployment bucket and retry
            settings.
        client_factory: Builds a client as ``factory(service_name, descriptor)``.
            Defaults to boto3 sessions.
        sleep: Awaitable used for backoff (default :func:`asyncio.sleep`).
        rng: Random source for jitter.
    """

    name = "aws"

    def __init__(
        self,
        service: ServiceConfig,
        client_factory: Optional[ClientFactory] = None,
        sleep: Optional[Sleep] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._service = service
        self._client_factory = client_factory
        self._sleep = sleep or asyncio.sleep
        self._rng = rng or random.Random()

    @property
    def service(self) -> ServiceConfig:
        return self._service

    def _factory(self) -> ClientFactory:
        if self._client_factory is None:
            config = build_client_config(self._service.provider.timeout)
            self._client_factory = default_client_factory(config)
        return self._client_factory

    def _target(self, stage: Optional[str], region: Optional[str]) -> tuple[str, str]:
        default_stage, default_region = resolve_stage_region({}, self._service)
        return stage or default_stage, region or default_region

    # ------------------------------------------------------------------
    # Credentials and naming
    # ------------------------------------------------------------------

    def get_credentials(self, stage: str, region: str) -> CredentialDescriptor:
        """Resolve the credential descriptor for *stage* and *region*."""
        return resolve_credentials(self._service.provider, stage, region)

    def get_stack_name(self, stage: str) -> str:
        """Return the CloudFormation stack name, ``<service>-<stage>``."""
        return f"{self._service.service}-{stage}"

    async def get_deployment_bucket_name(self, stage: str, region: str) -> str:
        """Return the bucket artifacts are uploaded to.

        The configured ``provider.deployment_bucket`` wins. Otherwise the
        physical id of the stack's ``ServerlessDeploymentBucket`` resource
        is looked up.
        """
        if self._service.provider.deployment_bucket:
            return self._service.provider.deployment_bucket
        result = await self.request(
            "CloudFormation",
            "describeStackResource",
            {
                "StackName": self.get_stack_name(stage),
                "LogicalResourceId": DEPLOYMENT_BUCKET_LOGICAL_ID,
            },
            stage,
            region,
        )
        return result["StackResourceDetail"]["PhysicalResourceId"]

    # ------------------------------------------------------------------
    # Request pipeline
    # ------------------------------------------------------------------

    def backoff_delay(self, attempt: int) -> float:
        """Full-jitter delay to wait after the *attempt*-th throttled call (1-based)."""
        retry = self._service.provider.retry
        ceiling = min(retry.max_delay, retry.base_delay * (2 ** (attempt - 1)))
        return self._rng.uniform(0, ceiling)

    async def request(
        self,
        service: str,
        method: str,
        params: Optional[Mapping[str, Any]] = None,
        stage: Optional[str] = None,
        region: Optional[str] = None,
    ) -> Any:
        """Invoke ``service.method(**params)`` and return its result.

        Args:
            service: SDK service name, e.g. ``"CloudFormation"`` or ``"s3"``.
            method: Operation name, camelCase or snake_case.
            params: Operation parameters.
            stage: Target stage (default: resolved from config/env).
            region: Target region (default: resolved from config/env).

        Raises:
            ProviderThrottled: Still throttled after the last attempt.
            ProviderRejected: Any other failure, raised after one attempt.
        """
        stage, region = self._target(stage, region)
        descriptor = self.get_credentials(stage, region)
        label = f"{service}.{method}"
        kwargs = dict(params or {})

        try:
            client = self._factory()(service_name(service), descriptor)
            call = getattr(client, operation_name(method))
        except Exception as exc:
            raise self._rejected(_failure_details(exc), exc) from exc

        max_attempts = self._service.provider.retry.max_attempts
        logger.info("Calling %s in %s (credentials: %s)", label, region, descriptor.source)
        for attempt in range(1, max_attempts + 1):
            try:
                return await asyncio.to_thread(call, **kwargs)
            except Exception as exc:
                failure = _failure_details(exc)
                if not failure.throttled:
                    raise self._rejected(failure, exc) from exc
                if attempt >= max_attempts:
                    raise ProviderThrottled(
                        f"{label} still throttled after {attempt} attempts: {failure.message}",
                        status_code=failure.status_code,
                        code=failure.code,
                        original=exc,
                    ) from exc
                delay = self.backoff_delay(attempt)
                logger.warning(
                    "%s throttled (attempt %d/%d), retrying in %.2fs",
                    label,
                    attempt,
                    max_attempts,
                    delay,
                )
                await self._sleep(delay)

    @staticmethod
    def _rejected(failure: _Failure, exc: Exception) -> ProviderRejected:
        message = failure.message
        if failure.missing_credentials:
            message = (
                f"{message.rstrip('.')}. AWS provider credentials not found. "
                f"Learn how to set them up: {CREDENTIALS_GUIDE_URL}"
            )
        return ProviderRejected(
            message, status_code=failure.status_code, code=failure.code, original=exc
        )
