"""AWS info plugin -- renders the deployed stack's outputs for ``deployli info``."""

from deployli.plugins.aws_info.plugin import AwsInfoPlugin

__all__ = ["AwsInfoPlugin"]
