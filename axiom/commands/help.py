from collections import defaultdict
from typing import List

from axiom.commands.utils.base_command import BaseCommand
from axiom.commands.utils.types import CommandType, CommandUsage


def _usages_of_type(context, command_type: CommandType) -> List[CommandUsage]:
    return [
        usage
        for usage in context.registry.get_all_command_usages()
        if usage.command_type == command_type
    ]


class HelpCommand(BaseCommand):
    NORM_NAME = "help"
    DESCRIPTION = "List the @ commands of every agent"
    SYNTAX = "/help"
    EXAMPLES = ["/help"]

    @classmethod
    async def execute(cls, context, args, flags):
        groups = defaultdict(list)
        for usage in _usages_of_type(context, CommandType.AT):
            groups[usage.agent_id].append(usage)

        if not groups:
            return "No @ commands are available. Enable a plugin to add some."

        help_text = "Available @ commands:\n\n"
        for agent_id, usages in groups.items():
            help_text += f"[{agent_id}]\n"
            for usage in usages:
                help_text += f"  {usage.syntax} - {usage.description}\n"
            help_text += "\n"
        return help_text


class SlashHelpCommand(BaseCommand):
    NORM_NAME = "/help"
    DESCRIPTION = "List the / commands"
    SYNTAX = "//help"

    @classmethod
    async def execute(cls, context, args, flags):
        help_text = "Available / commands:\n\n"
        for usage in _usages_of_type(context, CommandType.SLASH):
            help_text += f"{usage.syntax} - {usage.description}\n"
        return help_text
