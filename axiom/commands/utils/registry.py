"""
Registry of command handlers and their help metadata.

Handlers live in a two-level table, agent id -> command name -> handler, with
a parallel table of :class:`CommandUsage` entries. Built-in ``core`` commands
are registered at construction; plugin commands are (re)derived from the
plugin registry by :meth:`CommandRegistry.refresh`.
"""

import asyncio
import difflib
import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, NamedTuple, Optional

from axiom.commands.utils.base_command import CommandContext
from axiom.commands.utils.helpers import (
    CommandNotFoundError,
    maybe_await,
    split_command_id,
)
from axiom.commands.utils.types import (
    CommandHandler,
    CommandPrefix,
    CommandType,
    CommandUsage,
)
from axiom.helpers import nested

logger = logging.getLogger(__name__)

COMMAND_REGISTERED = "command-registered"
COMMAND_UNREGISTERED = "command-unregistered"
COMMANDS_CHANGED = "commands-changed"

PLUGIN_EVENTS = ("plugin-registered", "plugin-unregistered", "plugins-initialized")


class RegistrationFailure(NamedTuple):
    agent_id: str
    command: str
    reason: str


class RegisteredCommand(NamedTuple):
    id: str
    type: CommandType
    description: str
    handler: CommandHandler


class CommandRegistry:
    """Registry for command lookup, help metadata and change notifications."""

    def __init__(self, plugin_registry=None, model_config=None):
        """
        Initialize the registry and seed the built-in commands.

        Args:
            plugin_registry: Source of plugin commands for :meth:`refresh`
            model_config: Model configuration used by ``/model`` and ``/models``
        """
        self._handlers: Dict[str, Dict[str, CommandHandler]] = {}
        self._usages: Dict[str, Dict[str, CommandUsage]] = {}
        self._listeners: Dict[str, List[Callable]] = defaultdict(list)
        self._refresh_lock = asyncio.Lock()
        self._refresh_tasks = set()

        self.context = CommandContext(registry=self, model_config=model_config)
        self.refresh_failures: List[RegistrationFailure] = []
        self.needs_refresh = False

        self._plugin_registry = None
        if plugin_registry is not None:
            self.attach_plugin_registry(plugin_registry)

        self._register_core_commands()

    # Notifications

    def on(self, event: str, listener: Callable) -> "CommandRegistry":
        self._listeners[event].append(listener)
        return self

    def off(self, event: str, listener: Callable) -> "CommandRegistry":
        if listener in self._listeners[event]:
            self._listeners[event].remove(listener)
        return self

    def on_commands_changed(self, listener: Callable[[], Any]) -> "CommandRegistry":
        return self.on(COMMANDS_CHANGED, listener)

    def _emit(self, event: str, *payload) -> None:
        for listener in list(self._listeners[event]):
            try:
                listener(*payload)
            except Exception as e:
                logger.warning(f"Listener for {event} failed: {e}")

    # Registration

    def _register_core_commands(self, notify=True) -> None:
        from axiom.commands.help import HelpCommand, SlashHelpCommand
        from axiom.commands.model import ModelCommand
        from axiom.commands.models import ModelsCommand

        for command_class in (HelpCommand, SlashHelpCommand, ModelCommand, ModelsCommand):
            reason = self._add_handler(
                command_class.AGENT_ID,
                command_class.NORM_NAME,
                command_class.bind(self.context),
                notify=notify,
            )
            if reason is None:
                self.register_usage(command_class.get_usage())

    def _add_handler(self, agent_id, command, handler, notify=True) -> Optional[str]:
        """Store a handler; returns why it was rejected, or None on success."""
        if not agent_id or not command or not handler:
            logger.error(f"Invalid command registration: agent={agent_id!r} command={command!r}")
            return "invalid registration"

        agent_commands = self._handlers.setdefault(agent_id, {})
        if command in agent_commands:
            logger.warning(f"Command already registered: {agent_id}:{command}")
            return "already registered"

        agent_commands[command] = handler
        self._emit(COMMAND_REGISTERED, {"agent_id": agent_id, "command": command})
        if notify:
            self._emit(COMMANDS_CHANGED)
        return None

    def register(self, agent_id: str, command: str, handler: CommandHandler) -> bool:
        """
        Register a handler for ``agent_id:command``.

        The first registration wins: a duplicate is rejected and the existing
        handler is kept.

        Returns:
            True if the handler was stored
        """
        return self._add_handler(agent_id, command, handler) is None

    def unregister(self, agent_id: str, command: str) -> bool:
        agent_commands = self._handlers.get(agent_id)
        if not agent_commands or command not in agent_commands:
            logger.warning(f"Command not registered: {agent_id}:{command}")
            return False

        del agent_commands[command]
        if not agent_commands:
            del self._handlers[agent_id]

        agent_usages = self._usages.get(agent_id, {})
        agent_usages.pop(command, None)
        if agent_id in self._usages and not agent_usages:
            del self._usages[agent_id]

        self._emit(COMMAND_UNREGISTERED, {"agent_id": agent_id, "command": command})
        self._emit(COMMANDS_CHANGED)
        return True

    def register_usage(self, usage: CommandUsage) -> bool:
        """Store help metadata; a later call for the same command replaces it."""
        if not usage or not usage.agent_id or not usage.command:
            logger.error(f"Invalid command usage: {usage!r}")
            return False

        self._usages.setdefault(usage.agent_id, {})[usage.command] = usage
        return True

    def register_command(self, descriptor) -> bool:
        """
        Register a command object carrying its full id.

        ``descriptor`` has an ``id`` (``agent:command`` or a bare core name),
        a registry ``handler(args, flags)`` or a plugin-style ``execute(args)``,
        and optionally a ``description`` and ``prefix``.
        """
        from axiom.plugins.base import normalize_plugin_command

        try:
            command = normalize_plugin_command(descriptor)
        except ValueError as e:
            logger.error(f"Invalid command: {e}")
            return False

        agent_id, command_name = split_command_id(command.name)

        legacy_handler = nested.getter(descriptor, "handler")
        if callable(legacy_handler):

            async def handler(args, flags):
                return await maybe_await(legacy_handler(args, flags))

        else:

            async def handler(args, flags):
                return await command(args)

        if not self.register(agent_id, command_name, handler):
            return False

        prefix = getattr(descriptor, "prefix", None)
        if isinstance(descriptor, dict):
            prefix = descriptor.get("prefix")
        prefix = getattr(prefix, "value", prefix) or CommandPrefix.SLASH.value

        self.register_usage(
            CommandUsage(
                agent_id=agent_id,
                command=command_name,
                description=command.description,
                syntax=command.syntax or f"{prefix}{command.name}",
                examples=command.examples,
            )
        )
        return True

    # Lookup

    def get_handler(self, agent_id: str, command: str) -> Optional[CommandHandler]:
        agent_commands = self._handlers.get(agent_id)
        if not agent_commands:
            return None
        return agent_commands.get(command)

    def has_command(self, command_id: str) -> bool:
        return self.get_handler(*split_command_id(command_id)) is not None

    def get_all_handlers(self) -> Dict[str, Dict[str, CommandHandler]]:
        return self._handlers

    def get_usage(self, agent_id: str, command: str) -> Optional[CommandUsage]:
        return self._usages.get(agent_id, {}).get(command)

    def get_agent_commands(self, agent_id: str) -> List[CommandUsage]:
        return list(self._usages.get(agent_id, {}).values())

    def get_all_command_usages(self) -> List[CommandUsage]:
        return [usage for agent_usages in self._usages.values() for usage in agent_usages.values()]

    def get_commands_by_type(self, command_type: CommandType) -> List[RegisteredCommand]:
        """Registered commands whose usage syntax has the prefix for ``command_type``."""
        commands = []
        for agent_id, handlers in self._handlers.items():
            for command_name, handler in handlers.items():
                usage = self.get_usage(agent_id, command_name)
                if usage and usage.command_type == command_type:
                    commands.append(
                        RegisteredCommand(
                            id=f"{agent_id}:{command_name}",
                            type=command_type,
                            description=usage.description,
                            handler=handler,
                        )
                    )
        return commands

    def get_completions(self, text: str) -> List[str]:
        """Usage syntaxes starting with ``text``, for a command palette."""
        return sorted(
            usage.syntax for usage in self.get_all_command_usages() if usage.syntax.startswith(text)
        )

    def suggest_commands(self, agent_id: str, command: str) -> List[str]:
        candidates = list(self._handlers.get(agent_id, {}))
        return difflib.get_close_matches(command, candidates, n=3, cutoff=0.6)

    async def execute_command(
        self, full_command: str, args: Optional[List[Any]] = None, flags: Optional[dict] = None
    ) -> Any:
        """Run a handler by ``agent:command`` id (bare names are ``core``)."""
        agent_id, command = split_command_id(full_command)

        handler = self.get_handler(agent_id, command)
        if not handler:
            raise CommandNotFoundError(agent_id, command, self.suggest_commands(agent_id, command))

        try:
            return await handler(args or [], flags or {})
        except Exception as e:
            logger.error(f"Error executing {agent_id}:{command}: {e}")
            raise

    # Plugin commands

    def attach_plugin_registry(self, plugin_registry) -> None:
        """Use ``plugin_registry`` as the refresh source and follow its changes."""
        self._plugin_registry = plugin_registry
        subscribe = getattr(plugin_registry, "on", None)
        if callable(subscribe):
            for event in PLUGIN_EVENTS:
                subscribe(event, self._schedule_refresh)

    def _schedule_refresh(self, *_event) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to run on; the owner calls refresh() once it has one.
            self.needs_refresh = True
            logger.debug("Plugin change outside an event loop, refresh deferred")
            return

        task = loop.create_task(self.refresh())
        self._refresh_tasks.add(task)
        task.add_done_callback(self._refresh_tasks.discard)

    async def wait_for_refresh(self) -> None:
        """Wait for refreshes scheduled by plugin registry events."""
        while self._refresh_tasks:
            await asyncio.gather(*list(self._refresh_tasks))

    def _plugin_handler(self, plugin, command_name: str) -> CommandHandler:
        async def handler(args, flags):
            return await plugin.execute_command(command_name, args)

        return handler

    async def refresh(self) -> int:
        """
        Rebuild both tables from the enabled plugins.

        Refreshes are serialized; a call made while one is running waits for it
        and then rebuilds again. Built-in commands are re-seeded and are not
        counted. Commands that cannot be registered are skipped and recorded
        in :attr:`refresh_failures`.

        Returns:
            Number of plugin commands registered
        """
        from axiom.plugins.base import normalize_plugin_command

        async with self._refresh_lock:
            if self._plugin_registry is None:
                return 0

            plugins = await maybe_await(self._plugin_registry.get_enabled_plugins())

            self._handlers.clear()
            self._usages.clear()
            self._register_core_commands(notify=False)

            failures = []
            command_count = 0

            for plugin in plugins:
                plugin_id = getattr(plugin, "id", None)
                try:
                    declared = list(plugin.get_commands())
                except Exception as e:
                    failures.append(RegistrationFailure(plugin_id, "*", f"get_commands failed: {e}"))
                    continue

                for raw in declared:
                    try:
                        command = normalize_plugin_command(raw)
                    except ValueError as e:
                        failures.append(RegistrationFailure(plugin_id, "?", str(e)))
                        continue

                    reason = self._add_handler(
                        plugin_id,
                        command.name,
                        self._plugin_handler(plugin, command.name),
                        notify=False,
                    )
                    if reason:
                        failures.append(RegistrationFailure(plugin_id, command.name, reason))
                        continue

                    self.register_usage(
                        CommandUsage(
                            agent_id=plugin_id,
                            command=command.name,
                            description=command.description,
                            syntax=command.syntax or f"@{plugin_id}:{command.name}",
                            examples=command.examples,
                        )
                    )
                    command_count += 1

            self.refresh_failures = failures
            self.needs_refresh = False

        for failure in failures:
            logger.warning(
                f"Skipped {failure.agent_id}:{failure.command} during refresh: {failure.reason}"
            )
        logger.info(f"Loaded {command_count} plugin commands")

        self._emit(COMMANDS_CHANGED)
        return command_count
