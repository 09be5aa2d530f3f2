import inspect
from typing import List, Optional, Tuple

from axiom.commands.utils.types import CORE_AGENT_ID


class CommandError(Exception):
    """Custom exception for command-specific errors."""

    pass


class AgentNotFoundError(CommandError):
    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        super().__init__(f"Plugin not found: {agent_id}")


class PluginDisabledError(CommandError):
    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        super().__init__(f"Plugin is disabled: {agent_id}")


class AuthenticationRequiredError(CommandError):
    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        super().__init__(f"Plugin requires authentication: {agent_id}")


class CommandNotFoundError(CommandError):
    def __init__(self, agent_id: str, command: str, suggestions: Optional[List[str]] = None):
        self.agent_id = agent_id
        self.command = command
        self.suggestions = suggestions or []
        message = f"Command not found: {agent_id}:{command}"
        if self.suggestions:
            message += f" (did you mean: {', '.join(self.suggestions)}?)"
        super().__init__(message)


class UnsupportedPrefixError(CommandError):
    def __init__(self, prefix):
        self.prefix = prefix
        super().__init__(f"Unsupported command prefix: {prefix!r}")


def split_command_id(command_id: str) -> Tuple[str, str]:
    """
    Split ``agent:command`` into its parts.

    A bare name belongs to the core namespace. Only the first ``:`` separates
    the agent, so ``jira:issue:create`` is command ``issue:create``.
    """
    agent_id, sep, command = command_id.partition(":")
    if not sep:
        return CORE_AGENT_ID, command_id
    return agent_id, command


def soft_failure(content: str, kind: str) -> dict:
    """Build an assistant-style result that the chat renders inline."""
    return {"content": content, "error": True, "type": kind}


async def maybe_await(value):
    """Await ``value`` if it is awaitable, so sync and async callables both work."""
    if inspect.isawaitable(value):
        return await value
    return value
