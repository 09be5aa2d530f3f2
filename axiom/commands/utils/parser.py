"""
Command parser for chat input.

Two kinds of command are recognised:

- ``@agent:command args...`` routes to a plugin (git, jira, build pipeline).
  The ``:`` is what makes ``@`` text a command; ``@explain this`` stays
  ordinary conversation.
- ``/command args...`` or ``/agent:command args...`` routes to an internal
  handler. Without an agent the ``core`` namespace is used.

Arguments are tokenized with shell-like quoting, ``--key=value``/``--flag``
and ``-k value``/``-k`` are collected as flags, and every value is coerced
to a bool, number, JSON value or string.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from axiom.commands.utils.tokenizer import tokenize
from axiom.commands.utils.types import (
    CORE_AGENT_ID,
    Command,
    CommandPrefix,
    CommandType,
)
from axiom.commands.utils.values import coerce_value

logger = logging.getLogger(__name__)


class CommandParser:
    """Turns raw chat input into a :class:`Command`, or ``None`` for plain text."""

    def parse(self, text: Optional[str]) -> Optional[Command]:
        if not text or not text.strip():
            return None

        trimmed = text.strip()

        if trimmed.startswith(CommandPrefix.AT.value):
            if ":" not in trimmed:
                return None
            prefix = CommandPrefix.AT
        elif trimmed.startswith(CommandPrefix.SLASH.value):
            prefix = CommandPrefix.SLASH
        else:
            return None

        tokens = tokenize(trimmed[1:])
        if not tokens:
            return None

        agent_id, command_name = self._extract_agent_and_command(tokens[0], prefix)
        if not agent_id or not command_name:
            logger.debug(f"Not a command, malformed target: {tokens[0]!r}")
            return None

        args, flags = self._extract_args_and_flags(tokens[1:])

        return Command(
            prefix=prefix,
            kind=CommandType.from_prefix(prefix),
            agent_id=agent_id,
            command=command_name,
            args=args,
            flags=flags,
            raw_input=trimmed,
        )

    @staticmethod
    def _extract_agent_and_command(
        token: str, prefix: CommandPrefix
    ) -> Tuple[Optional[str], Optional[str]]:
        parts = token.split(":")

        if len(parts) > 1:
            agent_id = parts[0].strip()
            command_name = ":".join(parts[1:]).strip()
            if not agent_id or not command_name:
                return None, None
            return agent_id, command_name

        # "@foo bar: baz" has its colon outside the target; that is text.
        if prefix == CommandPrefix.AT:
            return None, None

        return CORE_AGENT_ID, token

    @staticmethod
    def _extract_args_and_flags(tokens: List[str]) -> Tuple[List[Any], Dict[str, Any]]:
        args = []
        flags = {}

        i = 0
        while i < len(tokens):
            token = tokens[i]

            if token.startswith("--"):
                key, sep, value = token[2:].partition("=")
                flags[key] = coerce_value(value) if sep else True
            elif token.startswith("-") and len(token) == 2:
                name = token[1:]
                if i + 1 < len(tokens) and not tokens[i + 1].startswith("-"):
                    flags[name] = coerce_value(tokens[i + 1])
                    i += 1
                else:
                    flags[name] = True
            else:
                args.append(coerce_value(token))

            i += 1

        return args, flags

    @staticmethod
    def format_command(command_id: str, command_type: CommandType) -> str:
        """Render ``command_id`` with the prefix for ``command_type``."""
        if not command_id:
            return ""

        if command_type == CommandType.AT:
            return f"{CommandPrefix.AT.value}{command_id}"
        if command_type == CommandType.SLASH:
            return f"{CommandPrefix.SLASH.value}{command_id}"
        return command_id

    def format_command_with_args(
        self,
        command_id: str,
        command_type: CommandType,
        args: Optional[Iterable[Any]] = None,
        flags: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """
        Build a full command line that parses back to the same command.

        Args:
            command_id: ``agent:command`` or a bare core command name
            command_type: Which prefix to use
            args: Positional arguments; ones containing spaces are quoted
            flags: ``True`` renders ``--flag``, anything else ``--key=value``

        Returns:
            The command line string
        """
        parts = [self.format_command(command_id, command_type)]

        for arg in args or []:
            arg = str(arg)
            if " " in arg:
                escaped = arg.replace('"', '\\"')
                parts.append(f'"{escaped}"')
            else:
                parts.append(arg)

        for key, value in (flags or {}).items():
            if value is True:
                parts.append(f"--{key}")
            else:
                parts.append(f"--{key}={value}")

        return " ".join(parts)
