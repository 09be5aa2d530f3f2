"""
Routes parsed commands to their handlers.

``@`` commands go to a plugin from the plugin registry, ``/`` commands to a
handler from the command registry. Handler errors are logged and re-raised
unchanged.

A few plugin problems are not errors for the user: when an integration is not
set up, or is waiting for credentials, the executor answers with a markdown
notice that the chat renders like any other reply (see :func:`soft_failure`).
"""

import logging
import time
from typing import Any, Dict, List, Mapping, Optional

from axiom.commands.utils.helpers import (
    AgentNotFoundError,
    AuthenticationRequiredError,
    CommandNotFoundError,
    PluginDisabledError,
    UnsupportedPrefixError,
    maybe_await,
    soft_failure,
    split_command_id,
)
from axiom.commands.utils.types import Command, CommandPrefix, CommandType

logger = logging.getLogger(__name__)

PLUGIN_NOT_FOUND = "plugin-not-found"

_JIRA_CONFIG_SNIPPET = """```json
"internalPlugins": {
  "jira": {
    "credentials": {
      "token": "YOUR_API_TOKEN"
    }
  }
}
```"""

DEFAULT_NOT_CONFIGURED_NOTICES = {
    "jira": (
        "# The Jira plugin is not registered\n\n"
        "Add your Jira credentials to the settings file:\n" + _JIRA_CONFIG_SNIPPET
    ),
}

DEFAULT_AUTH_REQUIRED_NOTICES = {
    "jira": (
        "# The Jira plugin needs credentials\n\n"
        "Add your Jira credentials to the settings file:\n" + _JIRA_CONFIG_SNIPPET
    ),
}


def auth_required_type(agent_id: str) -> str:
    return f"{agent_id}-auth-required"


def soft_failure_notices(settings=None):
    """
    Notice tables with the ``soft-failures`` settings applied on top of the defaults.

    Returns:
        ``(not_configured, auth_required)`` dicts keyed by agent id
    """
    not_configured = dict(DEFAULT_NOT_CONFIGURED_NOTICES)
    auth_required = dict(DEFAULT_AUTH_REQUIRED_NOTICES)

    overrides = settings.get("soft-failures", {}) if settings is not None else {}
    for agent_id, notices in (overrides or {}).items():
        if not isinstance(notices, Mapping):
            logger.warning(f"Ignoring soft-failures entry for {agent_id}: not a mapping")
            continue
        for key, table in (("not-configured", not_configured), ("auth-required", auth_required)):
            notice = notices.get(key) or notices.get(key.replace("-", "_"))
            if notice:
                table[agent_id] = str(notice)

    return not_configured, auth_required


class CommandExecutor:
    """Executes :class:`Command` objects against the command and plugin registries."""

    def __init__(
        self,
        command_registry,
        plugin_registry,
        not_configured_notices: Optional[Dict[str, str]] = None,
        auth_required_notices: Optional[Dict[str, str]] = None,
    ):
        self.command_registry = command_registry
        self.plugin_registry = plugin_registry
        self.not_configured_notices = (
            DEFAULT_NOT_CONFIGURED_NOTICES if not_configured_notices is None else not_configured_notices
        )
        self.auth_required_notices = (
            DEFAULT_AUTH_REQUIRED_NOTICES if auth_required_notices is None else auth_required_notices
        )

    async def execute(self, command: Command) -> Any:
        """
        Run ``command`` and return whatever its handler returns.

        Raises:
            UnsupportedPrefixError: If the prefix is neither ``@`` nor ``/``
            CommandError: For unknown, disabled or unauthenticated targets
        """
        start_time = time.perf_counter()

        try:
            if command.prefix == CommandPrefix.AT:
                result = await self._execute_plugin_command(command)
            elif command.prefix == CommandPrefix.SLASH:
                result = await self._execute_internal_command(command)
            else:
                raise UnsupportedPrefixError(command.prefix)
        except Exception as e:
            logger.error(f"Command failed ({command.qualified_name}): {e}")
            raise

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(f"Command completed in {elapsed_ms:.0f}ms: {command.qualified_name}")
        return result

    def _auth_required_notice(self, plugin, agent_id: str) -> Optional[str]:
        provider = getattr(plugin, "auth_required_notice", None)
        if callable(provider):
            notice = provider()
            if isinstance(notice, str) and notice:
                return notice
        return self.auth_required_notices.get(agent_id)

    async def _execute_plugin_command(self, command: Command) -> Any:
        agent_id = command.agent_id
        plugin = self.plugin_registry.get_plugin(agent_id)

        if not plugin:
            notice = self.not_configured_notices.get(agent_id)
            if notice:
                logger.info(f"Plugin {agent_id} is not configured, returning setup notice")
                return soft_failure(notice, PLUGIN_NOT_FOUND)
            raise AgentNotFoundError(agent_id)

        if not plugin.is_enabled():
            raise PluginDisabledError(agent_id)

        if not plugin.is_initialized():
            notice = self._auth_required_notice(plugin, agent_id)
            if notice:
                logger.info(f"Plugin {agent_id} is not initialized, returning auth notice")
                return soft_failure(notice, auth_required_type(agent_id))
            if getattr(plugin, "requires_initialization", False) is True:
                raise AuthenticationRequiredError(agent_id)

        logger.debug(f"Executing plugin command {agent_id}:{command.command}")
        return await maybe_await(plugin.execute_command(command.command, command.args))

    async def _execute_internal_command(self, command: Command) -> Any:
        handler = self.command_registry.get_handler(command.agent_id, command.command)

        if not handler:
            suggest = getattr(self.command_registry, "suggest_commands", None)
            suggestions = suggest(command.agent_id, command.command) if callable(suggest) else []
            raise CommandNotFoundError(command.agent_id, command.command, suggestions)

        logger.debug(f"Executing internal command {command.agent_id}:{command.command}")
        return await handler(command.args, command.flags)

    async def execute_command_string(
        self,
        command_string: str,
        args: Optional[List[Any]] = None,
        flags: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Execute ``@agent:command`` or ``/command`` with explicit args and flags.

        The string is not tokenized; it only names the target.
        """
        if command_string.startswith(CommandPrefix.AT.value):
            prefix = CommandPrefix.AT
        elif command_string.startswith(CommandPrefix.SLASH.value):
            prefix = CommandPrefix.SLASH
        else:
            raise UnsupportedPrefixError(command_string[:1])

        agent_id, command_name = split_command_id(command_string[1:])

        command = Command(
            prefix=prefix,
            kind=CommandType.from_prefix(prefix),
            agent_id=agent_id,
            command=command_name,
            args=list(args or []),
            flags=dict(flags or {}),
            raw_input=command_string,
        )
        return await self.execute(command)
