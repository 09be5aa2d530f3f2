from axiom.commands.utils.base_command import BaseCommand


class ModelsCommand(BaseCommand):
    NORM_NAME = "models"
    DESCRIPTION = "List available models, or search them"
    SYNTAX = "/models [search] [--all]"
    EXAMPLES = ["/models", "/models claude", "/models sonnet --all"]

    @classmethod
    async def execute(cls, context, args, flags):
        model_config = context.model_config
        if model_config is None:
            return "Model configuration is not available."

        active = model_config.get_active_model()

        if args:
            search = str(args[0])
            matches = model_config.search_models(search, include_catalog=bool(flags.get("all")))
            if not matches:
                return f'No models match "{search}".'
            lines = [f'Models which match "{search}":']
            for name in matches:
                marker = " (active)" if name == active else ""
                lines.append(f"- {name}{marker}")
            return "\n".join(lines)

        response = "Available LLM models:\n\n"
        for model in model_config.list_models():
            marker = " (active)" if model.name == active else ""
            provider = f" ({model.provider})" if model.provider else ""
            response += f"- {model.display_name}{provider}{marker}\n  ID: {model.name}\n\n"
        response += "Use /model <model-id> to switch models."
        return response
