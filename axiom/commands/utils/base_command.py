from abc import ABC, ABCMeta, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from axiom.commands.utils.types import CORE_AGENT_ID, CommandHandler, CommandUsage


class CommandMeta(ABCMeta):
    """Metaclass for validating command classes at definition time."""

    def __new__(mcs, name, bases, namespace):
        cls = super().__new__(mcs, name, bases, namespace)

        if name == "BaseCommand":
            return cls

        if not name.endswith("Command"):
            raise TypeError(f"Command class must end with 'Command', got '{name}'")

        if getattr(cls, "NORM_NAME", None) is None:
            raise TypeError("Command class must define NORM_NAME")

        if getattr(cls, "DESCRIPTION", None) is None:
            raise TypeError("Command class must define DESCRIPTION")

        if "execute" not in namespace:
            raise TypeError("Command class must implement execute method")

        return cls


@dataclass
class CommandContext:
    """Collaborators a built-in command may use."""

    registry: Any
    model_config: Optional[Any] = None


class BaseCommand(ABC, metaclass=CommandMeta):
    """Abstract base class for built-in commands."""

    AGENT_ID = CORE_AGENT_ID
    NORM_NAME = None  # Key in the registry (e.g. "help", "model")
    DESCRIPTION = None  # Command description for help
    SYNTAX = None  # Canonical invocation, defaults to "/<NORM_NAME>"
    EXAMPLES: List[str] = []

    @classmethod
    @abstractmethod
    async def execute(cls, context: CommandContext, args: List[Any], flags: Dict[str, Any]):
        """
        Execute the command with given parameters.

        Args:
            context: Registry and model configuration
            args: Coerced positional arguments
            flags: Flag name to coerced value

        Returns:
            Text to show in the chat
        """
        pass

    @classmethod
    def bind(cls, context: CommandContext) -> CommandHandler:
        """Return a registry handler that runs this command with ``context``."""

        async def handler(args, flags):
            return await cls.execute(context, args, flags)

        handler.__qualname__ = f"{cls.__name__}.handler"
        return handler

    @classmethod
    def get_usage(cls) -> CommandUsage:
        return CommandUsage(
            agent_id=cls.AGENT_ID,
            command=cls.NORM_NAME,
            description=cls.DESCRIPTION,
            syntax=cls.SYNTAX or f"/{cls.NORM_NAME}",
            examples=list(cls.EXAMPLES),
        )

    @classmethod
    def get_help(cls) -> str:
        usage = cls.get_usage()
        help_text = f"Command: {usage.syntax}\n"
        help_text += f"Description: {usage.description}\n"
        if usage.examples:
            help_text += "\nExamples:\n"
            for example in usage.examples:
                help_text += f"  {example}\n"
        return help_text
