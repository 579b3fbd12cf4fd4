"""Cloud provider request pipelines, registered on the framework by name."""

from deployli.providers.aws import AwsProvider

__all__ = ["AwsProvider"]
