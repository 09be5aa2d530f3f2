from .base import BasePlugin, Plugin, PluginCommand, normalize_plugin_command
from .registry import PluginRegistry, PluginType

__all__ = [
    "BasePlugin",
    "Plugin",
    "PluginCommand",
    "PluginRegistry",
    "PluginType",
    "normalize_plugin_command",
]
