"""Deploy plugin -- declares the ``deploy`` and ``deploy function`` commands.

The plugin only contributes command declarations. The work of each
lifecycle step is done by provider plugins that bind hooks to the events
declared here.
"""

from deployli.plugins.deploy.plugin import DeployPlugin

__all__ = ["DeployPlugin"]
