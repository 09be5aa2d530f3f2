import logging
from typing import Any, Dict, List, Optional

from axiom.commands.utils.executor import CommandExecutor, soft_failure_notices
from axiom.commands.utils.parser import CommandParser
from axiom.commands.utils.registry import CommandRegistry
from axiom.commands.utils.types import Command, CommandType, CommandUsage
from axiom.helpers.settings import Settings

logger = logging.getLogger(__name__)


class Commands:
    """
    Entry point for a chat front end.

    Wires the parser, command registry, executor and plugin registry together
    and exposes what the input box needs: is this a command, run it, list and
    complete commands.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        model_config=None,
        plugin_registry=None,
        verbose=False,
    ):
        self.settings = settings or Settings()
        self.verbose = verbose

        if model_config is None:
            from axiom.models import ModelSettingsStore

            model_config = ModelSettingsStore(self.settings)
        self.model_config = model_config

        if plugin_registry is None:
            from axiom.plugins.registry import PluginRegistry

            plugin_registry = PluginRegistry()
        self.plugin_registry = plugin_registry

        self.parser = CommandParser()
        self.registry = CommandRegistry(plugin_registry, model_config)

        not_configured, auth_required = soft_failure_notices(self.settings)
        self.executor = CommandExecutor(
            self.registry,
            plugin_registry,
            not_configured_notices=not_configured,
            auth_required_notices=auth_required,
        )

    @classmethod
    def from_settings(cls, project_root=None, settings_fname=None, **kwargs) -> "Commands":
        return cls(Settings.load(project_root, settings_fname), **kwargs)

    def parse(self, inp: str) -> Optional[Command]:
        return self.parser.parse(inp)

    def is_command(self, inp: str) -> bool:
        return self.parse(inp) is not None

    async def run(self, inp: str) -> Any:
        """
        Execute ``inp`` if it is a command.

        Returns:
            The command result, or None when ``inp`` is ordinary chat text
        """
        command = self.parse(inp)
        if command is None:
            return None
        if self.verbose:
            logger.info(f"Running {command.qualified_name} args={command.args} flags={command.flags}")
        return await self.execute(command)

    async def execute(self, command: Command) -> Any:
        return await self.executor.execute(command)

    async def execute_command_string(
        self,
        command_string: str,
        args: Optional[List[Any]] = None,
        flags: Optional[Dict[str, Any]] = None,
    ) -> Any:
        return await self.executor.execute_command_string(command_string, args, flags)

    def get_commands(self, command_type: Optional[CommandType] = None) -> List[str]:
        """Sorted usage syntaxes, optionally only those of one command type."""
        usages = self.registry.get_all_command_usages()
        if command_type is not None:
            usages = [usage for usage in usages if usage.command_type == command_type]
        return sorted(usage.syntax for usage in usages)

    def get_completions(self, text: str) -> List[str]:
        return self.registry.get_completions(text)

    def register_usage(self, usage: CommandUsage) -> bool:
        return self.registry.register_usage(usage)

    def get_all_command_usages(self) -> List[CommandUsage]:
        return self.registry.get_all_command_usages()

    def get_agent_commands(self, agent_id: str) -> List[CommandUsage]:
        return self.registry.get_agent_commands(agent_id)

    def on_commands_changed(self, listener) -> "Commands":
        self.registry.on_commands_changed(listener)
        return self

    async def load_plugins(self, paths=None, reload=False) -> int:
        """
        Load extension plugins, initialize them and rebuild the command tables.

        Args:
            paths: Plugin files or directories; ``plugin-paths`` from the
                settings when omitted

        Returns:
            Number of plugin commands now registered
        """
        if paths is None:
            paths = self.settings.get("plugin-paths", [])
        if isinstance(paths, str):
            paths = [paths]

        loaded = self.plugin_registry.load_external_plugins(paths, reload=reload)
        logger.info(f"Loaded {loaded} external plugins")

        await self.plugin_registry.initialize()
        await self.registry.wait_for_refresh()
        return await self.registry.refresh()
