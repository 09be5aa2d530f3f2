import pytest

from axiom.helpers.settings import Settings
from axiom.models import ModelSettings, ModelSettingsStore
from axiom.plugins.base import BasePlugin
from axiom.plugins.registry import PluginRegistry


class GitPlugin(BasePlugin):
    """Small in-memory plugin used across the command tests."""

    id = "git"
    name = "Git"
    description = "Git helpers"

    def __init__(self, config=None):
        super().__init__(config)
        self.calls = []
        self.register_commands(
            [
                self.create_command("status", self.status, "Show the working tree status"),
                self.create_command(
                    "commit",
                    self.commit,
                    "Commit staged changes",
                    syntax="@git:commit <message>",
                    examples=['@git:commit "fix build"'],
                ),
            ]
        )

    async def status(self, *args):
        self.calls.append(("status", args))
        return "clean"

    def commit(self, message=None, *rest):
        self.calls.append(("commit", (message,) + rest))
        return f"committed: {message}"


class JiraPlugin(BasePlugin):
    id = "jira"
    requires_initialization = True

    def __init__(self, config=None):
        super().__init__(config)
        self.register_command(self.create_command("issue", lambda *args: {"issue": list(args)}))


# Model Fixtures
@pytest.fixture
def model_settings():
    """A fixed model list so tests never read the bundled defaults or litellm."""
    return [
        ModelSettings("gpt-4o", provider="openai", description="GPT-4o"),
        ModelSettings("gpt-4", provider="openai"),
        ModelSettings("claude-3-5-sonnet-20241022", provider="anthropic", description="Claude 3.5 Sonnet"),
    ]


@pytest.fixture
def model_config(model_settings):
    return ModelSettingsStore(Settings(), model_settings=model_settings)


# Plugin Fixtures
@pytest.fixture
def git_plugin_class():
    return GitPlugin


@pytest.fixture
def jira_plugin_class():
    return JiraPlugin


@pytest.fixture
def git_plugin():
    return GitPlugin()


@pytest.fixture
def plugin_registry():
    return PluginRegistry()
