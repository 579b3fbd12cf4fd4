"""AWS provider -- credential precedence and the retrying boto3 request pipeline."""

from deployli.providers.aws.credentials import (
    CredentialDescriptor,
    Credentials,
    resolve_credentials,
)
from deployli.providers.aws.provider import AwsProvider

__all__ = ["AwsProvider", "CredentialDescriptor", "Credentials", "resolve_credentials"]
