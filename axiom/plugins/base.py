"""Base protocol and helpers for agent plugins (git, jira, build pipelines...)."""

import logging
from dataclasses import dataclass, field
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Protocol,
    runtime_checkable,
)

from axiom.commands.utils.helpers import CommandError, CommandNotFoundError, maybe_await
from axiom.helpers import nested

logger = logging.getLogger(__name__)

# Invoked with the positional args of an ``@agent:command`` call.
PluginCommandRunner = Callable[[List[Any]], Awaitable[Any]]


@dataclass
class PluginCommand:
    """Declaration of a command a plugin exposes under its own agent id.

    Attributes:
        name: Command name, the part after ``@agent:``.
        description: One-line description for help panels.
        syntax: Canonical invocation; ``@<plugin>:<name>`` when omitted.
        examples: Example invocations.
        run: Coroutine function taking the positional args list.
    """

    name: str
    description: str = ""
    syntax: Optional[str] = None
    examples: List[str] = field(default_factory=list)
    run: Optional[PluginCommandRunner] = None

    async def __call__(self, args: List[Any]) -> Any:
        if self.run is None:
            raise CommandError(f"No handler defined for command: {self.name}")
        return await maybe_await(self.run(args))


def normalize_plugin_command(raw) -> PluginCommand:
    """
    Convert a command declaration into a :class:`PluginCommand`.

    Older plugins describe commands as dicts or objects using either ``name``
    or ``id``, and either ``execute(args)`` or ``handler(*args)``. This is the
    one place those shapes are accepted.

    Raises:
        ValueError: If the declaration has neither a name nor an id
    """
    if isinstance(raw, PluginCommand):
        return raw

    name = nested.getter(raw, "name") or nested.getter(raw, "id")
    if not name:
        raise ValueError(f"Command declaration has no name: {raw!r}")

    execute = nested.getter(raw, "execute")
    handler = nested.getter(raw, "handler")

    run = None
    if callable(execute):

        def run(args, _execute=execute):
            return _execute(args)

    elif callable(handler):

        def run(args, _handler=handler):
            return _handler(*args)

    return PluginCommand(
        name=str(name),
        description=nested.getter(raw, "description") or "",
        syntax=nested.getter(raw, "syntax"),
        examples=list(nested.getter(raw, "examples") or []),
        run=run,
    )


@runtime_checkable
class Plugin(Protocol):
    """Interface the command executor and registry rely on.

    Plugins may additionally define ``auth_required_notice()`` returning
    markdown to show (instead of an error) when a command arrives before the
    plugin is initialized, and ``requires_initialization`` to refuse such
    commands outright.
    """

    id: str

    def is_enabled(self) -> bool: ...

    def is_initialized(self) -> bool: ...

    def get_commands(self) -> List[Any]: ...

    async def execute_command(self, name: str, args: List[Any]) -> Any: ...


class BasePlugin:
    """Convenience base class implementing :class:`Plugin`."""

    id: str = None
    name: str = None
    description: str = ""
    requires_initialization: bool = False

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the plugin.

        Args:
            config: Plugin settings; ``enabled: false`` disables the plugin
        """
        if not self.id:
            raise TypeError(f"{type(self).__name__} must define id")
        if self.name is None:
            self.name = self.id

        self.config = config or {}
        self.enabled = nested.getter(self.config, "enabled", True) is not False
        self._initialized = not self.requires_initialization
        self._commands: List[PluginCommand] = []

    async def initialize(self) -> None:
        self._initialized = True

    def is_initialized(self) -> bool:
        return self._initialized

    def is_enabled(self) -> bool:
        return self.enabled

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = enabled

    def get_commands(self) -> List[PluginCommand]:
        return list(self._commands)

    def find_command(self, name: str) -> Optional[PluginCommand]:
        return next((cmd for cmd in self._commands if cmd.name == name), None)

    async def execute_command(self, name: str, args: List[Any]) -> Any:
        command = self.find_command(name)
        if not command:
            raise CommandNotFoundError(self.id, name)

        try:
            return await command(args)
        except Exception as e:
            logger.error(f"Error executing {self.id}:{name}: {e}")
            raise

    def register_command(self, command) -> bool:
        """Add a command, replacing any existing one with the same name."""
        try:
            command = normalize_plugin_command(command)
        except ValueError as e:
            logger.error(f"Invalid command for plugin {self.id}: {e}")
            return False

        self._commands = [cmd for cmd in self._commands if cmd.name != command.name]
        self._commands.append(command)
        return True

    def register_commands(self, commands) -> bool:
        success = True
        for command in commands:
            if not self.register_command(command):
                success = False
        return success

    def create_command(
        self,
        name: str,
        handler: Callable[..., Any],
        description: str = "",
        syntax: Optional[str] = None,
        examples: Optional[List[str]] = None,
    ) -> PluginCommand:
        """Wrap ``handler(*args)`` as an ``@<id>:<name>`` command."""
        return PluginCommand(
            name=name,
            description=description,
            syntax=syntax or f"@{self.id}:{name}",
            examples=examples or [],
            run=lambda args: handler(*args),
        )
