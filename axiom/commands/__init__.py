"""
Command system for axiom.

Chat input starting with ``@agent:command`` or ``/command`` is parsed into a
:class:`Command`, looked up in the :class:`CommandRegistry` or the plugin
registry, and executed by the :class:`CommandExecutor`.
"""

from .core import Commands
from .help import HelpCommand, SlashHelpCommand
from .model import ModelCommand
from .models import ModelsCommand
from .utils.base_command import BaseCommand, CommandContext
from .utils.executor import CommandExecutor
from .utils.helpers import (
    AgentNotFoundError,
    AuthenticationRequiredError,
    CommandError,
    CommandNotFoundError,
    PluginDisabledError,
    UnsupportedPrefixError,
)
from .utils.parser import CommandParser
from .utils.registry import CommandRegistry, RegistrationFailure
from .utils.types import Command, CommandPrefix, CommandType, CommandUsage

__all__ = [
    "AgentNotFoundError",
    "AuthenticationRequiredError",
    "BaseCommand",
    "Command",
    "CommandContext",
    "CommandError",
    "CommandExecutor",
    "CommandNotFoundError",
    "CommandParser",
    "CommandPrefix",
    "CommandRegistry",
    "CommandType",
    "CommandUsage",
    "Commands",
    "HelpCommand",
    "ModelCommand",
    "ModelsCommand",
    "PluginDisabledError",
    "RegistrationFailure",
    "SlashHelpCommand",
    "UnsupportedPrefixError",
]
