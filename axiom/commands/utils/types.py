from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List

CORE_AGENT_ID = "core"


class CommandPrefix(str, Enum):
    """Leading character that decides how a command is routed."""

    NONE = ""
    AT = "@"  # external systems, dispatched through the plugin registry
    SLASH = "/"  # internal commands, dispatched through the command registry


class CommandType(str, Enum):
    NONE = "none"
    AT = "at"
    SLASH = "slash"

    @classmethod
    def from_prefix(cls, prefix: CommandPrefix) -> "CommandType":
        if prefix == CommandPrefix.AT:
            return cls.AT
        if prefix == CommandPrefix.SLASH:
            return cls.SLASH
        return cls.NONE


# Handlers receive the coerced positional args and the flag mapping.
CommandHandler = Callable[[List[Any], Dict[str, Any]], Awaitable[Any]]


@dataclass
class Command:
    """A parsed, routable command."""

    prefix: CommandPrefix
    kind: CommandType
    agent_id: str
    command: str
    args: List[Any] = field(default_factory=list)
    flags: Dict[str, Any] = field(default_factory=dict)
    raw_input: str = ""

    @property
    def qualified_name(self) -> str:
        prefix = getattr(self.prefix, "value", self.prefix)
        return f"{prefix}{self.agent_id}:{self.command}"


@dataclass
class CommandUsage:
    """Help metadata for a registered command."""

    agent_id: str
    command: str
    description: str = ""
    syntax: str = ""
    examples: List[str] = field(default_factory=list)

    @property
    def command_type(self) -> CommandType:
        if self.syntax.startswith(CommandPrefix.AT.value):
            return CommandType.AT
        if self.syntax.startswith(CommandPrefix.SLASH.value):
            return CommandType.SLASH
        return CommandType.NONE
