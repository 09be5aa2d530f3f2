from axiom.commands.utils.base_command import BaseCommand


class ModelCommand(BaseCommand):
    NORM_NAME = "model"
    DESCRIPTION = "Switch the active LLM model"
    SYNTAX = "/model <model-id>"
    EXAMPLES = ["/model gpt-4o", "/model claude-3-5-sonnet-20241022 --no-save"]

    @classmethod
    async def execute(cls, context, args, flags):
        model_config = context.model_config
        if model_config is None:
            return "Model configuration is not available."

        if not args:
            current = model_config.get_active_model() or "(none)"
            return f"Usage: {cls.SYNTAX} (current model: {current})"

        model_id = str(args[0])
        model_config.set_active_model(model_id, persist=not flags.get("no-save", False))

        message = f"Model switched to '{model_id}'."
        if not model_config.get_model(model_id):
            message += " It is not in the model list; check the id if requests fail."
        return message
