import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from axiom.commands.utils.helpers import CommandNotFoundError
from axiom.commands.utils.registry import (
    COMMAND_REGISTERED,
    COMMAND_UNREGISTERED,
    CommandRegistry,
    RegistrationFailure,
)
from axiom.commands.utils.types import CommandType, CommandUsage
from axiom.plugins.base import BasePlugin


async def handler_one(args, flags):
    return "one"


async def handler_two(args, flags):
    return "two"


class BrokenPlugin(BasePlugin):
    id = "broken"

    def get_commands(self):
        raise RuntimeError("boom")


class TestRegistration:
    def test_builtin_commands_are_registered(self):
        registry = CommandRegistry()

        for name in ("help", "/help", "model", "models"):
            assert registry.get_handler("core", name) is not None
            assert registry.get_usage("core", name) is not None

    def test_first_registration_wins(self):
        registry = CommandRegistry()

        assert registry.register("core", "foo", handler_one) is True
        assert registry.register("core", "foo", handler_two) is False
        assert registry.get_handler("core", "foo") is handler_one

    @pytest.mark.parametrize(
        "agent_id,command,handler",
        [("", "foo", handler_one), ("core", "", handler_one), ("core", "foo", None)],
    )
    def test_invalid_registration(self, agent_id, command, handler):
        registry = CommandRegistry()

        assert registry.register(agent_id, command, handler) is False

    def test_get_handler_unknown(self):
        registry = CommandRegistry()

        assert registry.get_handler("nobody", "foo") is None
        assert registry.get_handler("core", "nothing") is None

    def test_unregister(self):
        registry = CommandRegistry()
        registry.register("git", "status", handler_one)
        registry.register_usage(CommandUsage("git", "status", syntax="@git:status"))

        assert registry.unregister("git", "status") is True
        assert registry.get_handler("git", "status") is None
        assert registry.get_usage("git", "status") is None
        assert "git" not in registry.get_all_handlers()
        assert registry.unregister("git", "status") is False

    def test_register_usage_replaces(self):
        registry = CommandRegistry()

        assert registry.register_usage(CommandUsage("git", "log", "old", "@git:log"))
        assert registry.register_usage(CommandUsage("git", "log", "new", "@git:log"))
        assert registry.get_usage("git", "log").description == "new"
        assert registry.get_agent_commands("git") == [registry.get_usage("git", "log")]

    def test_register_usage_rejects_incomplete(self):
        registry = CommandRegistry()

        assert registry.register_usage(CommandUsage("", "log")) is False
        assert registry.register_usage(None) is False

    def test_has_command(self):
        registry = CommandRegistry()
        registry.register("git", "status", handler_one)

        assert registry.has_command("help")
        assert registry.has_command("core:model")
        assert registry.has_command("git:status")
        assert not registry.has_command("git:push")

    def test_register_command_legacy_descriptor(self):
        registry = CommandRegistry()
        assert registry.register_command(
            {"id": "git:stash", "description": "Stash changes", "handler": AsyncMock(), "prefix": "@"}
        )
        assert registry.get_handler("git", "stash") is not None
        assert registry.get_usage("git", "stash").syntax == "@git:stash"
        assert registry.get_usage("git", "stash").description == "Stash changes"

    @pytest.mark.asyncio
    async def test_register_command_handler_gets_args_and_flags(self):
        registry = CommandRegistry()
        received = []

        async def legacy(args, flags):
            received.append((args, flags))
            return "stashed"

        assert registry.register_command({"id": "core:legacy", "handler": legacy})

        assert await registry.execute_command("legacy", ["x"], {"v": True}) == "stashed"
        assert received == [(["x"], {"v": True})]

    @pytest.mark.asyncio
    async def test_register_command_sync_handler(self):
        registry = CommandRegistry()

        assert registry.register_command({"id": "echo", "handler": lambda args, flags: (args, flags)})

        assert await registry.execute_command("echo", [1], {"loud": True}) == ([1], {"loud": True})

    @pytest.mark.asyncio
    async def test_register_command_execute_gets_args(self):
        registry = CommandRegistry()

        assert registry.register_command({"id": "git:log", "execute": lambda args: args[::-1]})

        assert await registry.execute_command("git:log", [1, 2], {"v": True}) == [2, 1]

    def test_register_command_bare_id_is_core(self):
        registry = CommandRegistry()

        assert registry.register_command({"id": "clear", "execute": lambda args: "cleared"})
        assert registry.get_handler("core", "clear") is not None
        assert registry.get_usage("core", "clear").syntax == "/clear"

    def test_register_command_without_id(self):
        registry = CommandRegistry()

        assert registry.register_command({"handler": lambda: None}) is False


class TestLookup:
    def test_get_all_command_usages(self):
        registry = CommandRegistry()
        registry.register_usage(CommandUsage("git", "status", syntax="@git:status"))

        commands = {(u.agent_id, u.command) for u in registry.get_all_command_usages()}
        assert ("git", "status") in commands
        assert ("core", "help") in commands

    def test_get_commands_by_type(self):
        registry = CommandRegistry()
        registry.register("git", "status", handler_one)
        registry.register_usage(CommandUsage("git", "status", "Status", "@git:status"))

        at_commands = registry.get_commands_by_type(CommandType.AT)
        slash_ids = {c.id for c in registry.get_commands_by_type(CommandType.SLASH)}

        assert [c.id for c in at_commands] == ["git:status"]
        assert at_commands[0].description == "Status"
        assert at_commands[0].handler is handler_one
        assert {"core:help", "core:model", "core:models"} <= slash_ids

    def test_get_completions(self):
        registry = CommandRegistry()

        assert registry.get_completions("/mod") == ["/model <model-id>", "/models [search] [--all]"]
        assert registry.get_completions("@") == []


class TestExecuteCommand:
    @pytest.mark.asyncio
    async def test_execute_by_id(self):
        registry = CommandRegistry()
        registry.register("git", "status", handler_one)

        assert await registry.execute_command("git:status") == "one"

    @pytest.mark.asyncio
    async def test_bare_id_runs_core_command(self, model_config):
        registry = CommandRegistry(model_config=model_config)

        result = await registry.execute_command("model")

        assert "current model: gpt-4o" in result

    @pytest.mark.asyncio
    async def test_missing_command_suggests(self):
        registry = CommandRegistry()

        with pytest.raises(CommandNotFoundError) as exc_info:
            await registry.execute_command("core:halp")

        assert "core:halp" in str(exc_info.value)
        assert "help" in exc_info.value.suggestions

    @pytest.mark.asyncio
    async def test_handler_errors_propagate(self):
        registry = CommandRegistry()
        failing = AsyncMock(side_effect=ValueError("bad input"))
        registry.register("core", "fail", failing)

        with pytest.raises(ValueError, match="bad input"):
            await registry.execute_command("fail", ["x"], {"y": 1})

        failing.assert_awaited_once_with(["x"], {"y": 1})


class TestEvents:
    def test_register_events(self):
        registry = CommandRegistry()
        registered = MagicMock()
        changed = MagicMock()
        registry.on(COMMAND_REGISTERED, registered)
        registry.on_commands_changed(changed)

        registry.register("git", "status", handler_one)

        registered.assert_called_once_with({"agent_id": "git", "command": "status"})
        changed.assert_called_once_with()

    def test_rejected_registration_is_silent(self):
        registry = CommandRegistry()
        changed = MagicMock()
        registry.on_commands_changed(changed)

        registry.register("core", "help", handler_one)

        changed.assert_not_called()

    def test_unregister_events(self):
        registry = CommandRegistry()
        registry.register("git", "status", handler_one)
        unregistered = MagicMock()
        registry.on(COMMAND_UNREGISTERED, unregistered)

        registry.unregister("git", "status")

        unregistered.assert_called_once_with({"agent_id": "git", "command": "status"})

    def test_off(self):
        registry = CommandRegistry()
        changed = MagicMock()
        registry.on_commands_changed(changed)
        registry.off("commands-changed", changed)
        registry.off("commands-changed", changed)

        registry.register("git", "status", handler_one)

        changed.assert_not_called()

    def test_listener_errors_are_contained(self):
        registry = CommandRegistry()
        after = MagicMock()
        registry.on_commands_changed(MagicMock(side_effect=RuntimeError("listener")))
        registry.on_commands_changed(after)

        assert registry.register("git", "status", handler_one) is True
        after.assert_called_once_with()


class TestRefresh:
    @pytest.mark.asyncio
    async def test_without_plugin_registry(self):
        registry = CommandRegistry()

        assert await registry.refresh() == 0
        assert registry.has_command("help")

    @pytest.mark.asyncio
    async def test_registers_plugin_commands(self, plugin_registry, git_plugin):
        registry = CommandRegistry()
        plugin_registry.register_plugin(git_plugin)
        registry.attach_plugin_registry(plugin_registry)

        count = await registry.refresh()

        assert count == 2
        assert registry.has_command("git:status")
        assert registry.get_usage("git", "status").syntax == "@git:status"
        assert registry.get_usage("git", "commit").syntax == "@git:commit <message>"
        assert registry.refresh_failures == []

    @pytest.mark.asyncio
    async def test_is_idempotent(self, plugin_registry, git_plugin):
        plugin_registry.register_plugin(git_plugin)
        registry = CommandRegistry(plugin_registry)

        first = await registry.refresh()
        second = await registry.refresh()

        assert first == second == 2

    @pytest.mark.asyncio
    async def test_drops_manual_registrations_and_keeps_builtins(self, plugin_registry):
        registry = CommandRegistry(plugin_registry)
        registry.register("tmp", "thing", handler_one)

        await registry.refresh()

        assert not registry.has_command("tmp:thing")
        assert registry.has_command("help")
        assert registry.get_usage("core", "model") is not None

    @pytest.mark.asyncio
    async def test_skips_disabled_plugins(self, plugin_registry, git_plugin):
        git_plugin.set_enabled(False)
        plugin_registry.register_plugin(git_plugin)
        registry = CommandRegistry(plugin_registry)

        assert await registry.refresh() == 0
        assert not registry.has_command("git:status")

    @pytest.mark.asyncio
    async def test_collects_failures(self, plugin_registry, git_plugin):
        plugin_registry.register_plugin(git_plugin)
        plugin_registry.register_plugin(BrokenPlugin())
        registry = CommandRegistry(plugin_registry)

        count = await registry.refresh()

        assert count == 2
        assert registry.refresh_failures == [
            RegistrationFailure("broken", "*", "get_commands failed: boom")
        ]

    @pytest.mark.asyncio
    async def test_duplicate_plugin_commands_are_reported(self):
        plugin = MagicMock()
        plugin.id = "dup"
        plugin.get_commands.return_value = [{"name": "go"}, {"name": "go"}, {"description": "?"}]
        source = MagicMock(spec=["get_enabled_plugins"])
        source.get_enabled_plugins = AsyncMock(return_value=[plugin])
        registry = CommandRegistry(source)

        count = await registry.refresh()

        assert count == 1
        assert [(f.command, f.reason) for f in registry.refresh_failures] == [
            ("go", "already registered"),
            ("?", "Command declaration has no name: {'description': '?'}"),
        ]

    @pytest.mark.asyncio
    async def test_notifies_once(self, plugin_registry, git_plugin):
        plugin_registry.register_plugin(git_plugin)
        registry = CommandRegistry(plugin_registry)
        changed = MagicMock()
        registry.on_commands_changed(changed)

        await registry.refresh()

        changed.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_concurrent_refreshes_are_serialized(self, plugin_registry, git_plugin):
        plugin_registry.register_plugin(git_plugin)
        registry = CommandRegistry(plugin_registry)

        counts = await asyncio.gather(registry.refresh(), registry.refresh(), registry.refresh())

        assert counts == [2, 2, 2]
        assert sorted(registry.get_all_handlers()["git"]) == ["commit", "status"]

    @pytest.mark.asyncio
    async def test_plugin_handlers_call_the_plugin(self, plugin_registry, git_plugin):
        plugin_registry.register_plugin(git_plugin)
        registry = CommandRegistry(plugin_registry)
        await registry.refresh()

        result = await registry.execute_command("git:commit", ["fix build"])

        assert result == "committed: fix build"
        assert git_plugin.calls == [("commit", ("fix build",))]

    @pytest.mark.asyncio
    async def test_plugin_events_trigger_refresh(self, plugin_registry, git_plugin):
        registry = CommandRegistry(plugin_registry)

        plugin_registry.register_plugin(git_plugin)
        await registry.wait_for_refresh()

        assert registry.has_command("git:status")

        plugin_registry.unregister_plugin("git")
        await registry.wait_for_refresh()

        assert not registry.has_command("git:status")

    def test_plugin_events_without_loop_defer_refresh(self, plugin_registry, git_plugin):
        registry = CommandRegistry(plugin_registry)

        plugin_registry.register_plugin(git_plugin)

        assert registry.needs_refresh is True
        assert not registry.has_command("git:status")
