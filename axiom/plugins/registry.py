import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from axiom.commands.utils.helpers import CommandNotFoundError
from axiom.helpers import nested, plugin_manager
from axiom.plugins.base import normalize_plugin_command

logger = logging.getLogger(__name__)

PLUGIN_REGISTERED = "plugin-registered"
PLUGIN_UNREGISTERED = "plugin-unregistered"
PLUGINS_INITIALIZED = "plugins-initialized"


class PluginType(str, Enum):
    INTERNAL = "internal"
    EXTERNAL = "external"

    @classmethod
    def coerce(cls, value) -> "PluginType":
        if isinstance(value, cls):
            return value
        return cls.INTERNAL if value == cls.INTERNAL.value else cls.EXTERNAL


class PluginRegistry:
    """
    Keeps the internal (bundled) and external (loaded from disk) plugins.

    Internal plugins shadow external ones with the same id. Listeners are told
    about registrations, removals and initialization so a command registry can
    rebuild itself.
    """

    def __init__(self):
        self._internal_plugins: Dict[str, Any] = {}
        self._external_plugins: Dict[str, Any] = {}
        self._listeners: Dict[str, List[Callable]] = defaultdict(list)

    def on(self, event: str, listener: Callable) -> "PluginRegistry":
        self._listeners[event].append(listener)
        return self

    def off(self, event: str, listener: Callable) -> "PluginRegistry":
        if listener in self._listeners[event]:
            self._listeners[event].remove(listener)
        return self

    def _emit(self, event: str, *payload) -> None:
        for listener in list(self._listeners[event]):
            try:
                listener(*payload)
            except Exception as e:
                logger.warning(f"Listener for {event} failed: {e}")

    def _plugins_of(self, plugin_type) -> Dict[str, Any]:
        if PluginType.coerce(plugin_type) == PluginType.INTERNAL:
            return self._internal_plugins
        return self._external_plugins

    def register_plugin(self, plugin, plugin_type=PluginType.EXTERNAL) -> bool:
        plugin_id = getattr(plugin, "id", None)
        if not plugin or not plugin_id:
            logger.error(f"Invalid plugin: {plugin!r}")
            return False

        plugin_type = PluginType.coerce(plugin_type)
        plugins = self._plugins_of(plugin_type)
        if plugin_id in plugins:
            logger.warning(f"Plugin already registered: {plugin_id}")
            return False

        plugins[plugin_id] = plugin
        logger.info(f"Registered {plugin_type.value} plugin: {plugin_id}")
        self._emit(PLUGIN_REGISTERED, {"id": plugin_id, "type": plugin_type.value})
        return True

    def unregister_plugin(self, plugin_id: str, plugin_type=PluginType.EXTERNAL) -> bool:
        plugin_type = PluginType.coerce(plugin_type)
        plugins = self._plugins_of(plugin_type)
        if plugin_id not in plugins:
            logger.warning(f"Plugin not registered: {plugin_id}")
            return False

        del plugins[plugin_id]
        logger.info(f"Unregistered {plugin_type.value} plugin: {plugin_id}")
        self._emit(PLUGIN_UNREGISTERED, {"id": plugin_id, "type": plugin_type.value})
        return True

    def get_plugin(self, plugin_id: str):
        return self._internal_plugins.get(plugin_id) or self._external_plugins.get(plugin_id)

    def get_internal_plugins(self) -> List[Any]:
        return list(self._internal_plugins.values())

    def get_external_plugins(self) -> List[Any]:
        return list(self._external_plugins.values())

    def get_all_plugins(self) -> List[Any]:
        return self.get_internal_plugins() + self.get_external_plugins()

    def get_enabled_plugins(self) -> List[Any]:
        return [plugin for plugin in self.get_all_plugins() if plugin.is_enabled()]

    def get_all_commands(self) -> List[Any]:
        commands = []
        for plugin in self.get_enabled_plugins():
            commands.extend(plugin.get_commands())
        return commands

    async def initialize(self) -> bool:
        """Initialize every enabled plugin; one failing plugin does not stop the rest."""
        for plugin in self.get_enabled_plugins():
            try:
                await plugin.initialize()
            except Exception as e:
                logger.error(f"Error initializing plugin {plugin.id}: {e}")

        self._emit(PLUGINS_INITIALIZED)
        return True

    def find_command(self, plugin_id: str, command_name: str) -> Optional[Tuple[Any, Any]]:
        """Return ``(plugin, command)`` for an enabled plugin's command, matched by name or id."""
        plugin = self.get_plugin(plugin_id)
        if not plugin or not plugin.is_enabled():
            return None

        for command in plugin.get_commands():
            if command_name in (nested.getter(command, "name"), nested.getter(command, "id")):
                return plugin, command
        return None

    async def execute_command(self, plugin_id: str, command_name: str, args: List[Any]) -> Any:
        found = self.find_command(plugin_id, command_name)
        if not found:
            raise CommandNotFoundError(plugin_id, command_name)

        plugin, _command = found
        return await plugin.execute_command(command_name, args)

    def load_external_plugins(self, paths, reload=False) -> int:
        """
        Replace the external plugins with those loaded from ``paths``.

        Returns:
            Number of external plugins registered
        """
        for plugin_id in list(self._external_plugins):
            self.unregister_plugin(plugin_id, PluginType.EXTERNAL)

        for plugin in plugin_manager.load_plugins(paths or [], reload=reload):
            try:
                for command in plugin.get_commands():
                    normalize_plugin_command(command)
            except (AttributeError, ValueError) as e:
                logger.error(f"Skipping plugin {getattr(plugin, 'id', plugin)!r}: {e}")
                continue
            self.register_plugin(plugin, PluginType.EXTERNAL)

        return len(self._external_plugins)
