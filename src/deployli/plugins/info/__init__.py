"""Info plugin -- declares the ``info`` command."""

from deployli.plugins.info.plugin import InfoPlugin

__all__ = ["InfoPlugin"]
