"""Plugin contracts and loading utilities."""

from livediff.plugins.interfaces import HandlerPlugin, LinkPlugin
from livediff.plugins.loader import PluginLoadError, PluginLoader

__all__ = [
    "HandlerPlugin",
    "LinkPlugin",
    "PluginLoadError",
    "PluginLoader",
]
