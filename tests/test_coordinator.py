"""Tests for host hook registration and the interception coordinator."""

import json
from unittest.mock import MagicMock

import pytest
from safetyclawz import __version__
from safetyclawz.audit.pipeline import AuditPipeline
from safetyclawz.config import Settings
from safetyclawz.coordinator import (
    AFTER_TOOL_CALL,
    BEFORE_TOOL_CALL,
    BLOCK_REASON_PREFIX,
    InterceptionCoordinator,
    block_response,
    build_coordinator,
    error_message,
    register_plugin,
)
from safetyclawz.core.errors import AuditWriteError
from safetyclawz.policies.engine import PolicyEngine
from safetyclawz.policies.models import Policy


class FakeHostApi:
    """Records hooks the way an agent host would."""

    def __init__(self, plugin_config=None):
        self.plugin_config = plugin_config
        self.logger = MagicMock()
        self.hooks = {}

    def register_hook(self, hook_name, handler):
        self.hooks[hook_name] = handler


def read_lines(path):
    if not path.exists():
        return []
    return [json.loads(line) for line in path.read_text().splitlines()]


async def break_pipeline(pipeline):
    """Queue a record the unwritable log path cannot take."""
    pipeline.submit_tool_execution("exec", {"command": "first"}, success=True)
    with pytest.raises(AuditWriteError):
        await pipeline.flush()


@pytest.fixture
def coordinator(log_path):
    engine = PolicyEngine(Policy.from_rules(["rm -rf /", "curl.*| bash"], ["~/.ssh"]))
    return InterceptionCoordinator(engine, AuditPipeline(log_path))


class TestBeforeToolCall:
    @pytest.mark.asyncio
    async def test_blocks_dangerous_command(self, coordinator, log_path):
        result = await coordinator.before_tool_call(
            {"toolName": "exec", "params": {"command": "rm -rf /"}}
        )
        await coordinator.close()

        assert result == {
            "block": True,
            "blockReason": f'{BLOCK_REASON_PREFIX}Command contains dangerous pattern "rm -rf /"',
        }
        (entry,) = read_lines(log_path)
        assert entry["decision"]["decision"] == "BLOCK"

    @pytest.mark.asyncio
    async def test_allows_safe_command(self, coordinator, log_path):
        result = await coordinator.before_tool_call(
            {"toolName": "exec", "params": {"command": "echo hello"}}
        )
        await coordinator.close()

        assert result is None
        (entry,) = read_lines(log_path)
        assert entry["decision"]["decision"] == "ALLOW"
        assert entry["decision"]["reason"] == "Command passes all policy checks"

    @pytest.mark.asyncio
    async def test_non_exec_tool_not_audited(self, coordinator, log_path):
        result = await coordinator.before_tool_call(
            {"toolName": "read", "params": {"path": "~/.ssh/id_rsa"}}
        )
        await coordinator.close()

        assert result is None
        assert read_lines(log_path) == []

    @pytest.mark.asyncio
    async def test_missing_params(self, coordinator, log_path):
        result = await coordinator.before_tool_call({"toolName": "exec"})
        await coordinator.close()

        assert result is None
        (entry,) = read_lines(log_path)
        assert entry["params"] == {}

    @pytest.mark.asyncio
    async def test_fail_closed_blocks_while_audit_log_unwritable(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        pipeline = AuditPipeline(blocker / "audit.jsonl")
        await break_pipeline(pipeline)
        coordinator = InterceptionCoordinator(PolicyEngine(Policy()), pipeline, fail_closed=True)

        result = await coordinator.before_tool_call(
            {"toolName": "exec", "params": {"command": "ls"}}
        )

        assert result["block"] is True
        assert result["blockReason"].startswith(f"{BLOCK_REASON_PREFIX}Audit log unavailable:")
        assert pipeline.pending == 2  # the stalled record plus the BLOCK record

    @pytest.mark.asyncio
    async def test_fail_open_allows_while_audit_log_unwritable(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        pipeline = AuditPipeline(blocker / "audit.jsonl")
        await break_pipeline(pipeline)
        coordinator = InterceptionCoordinator(PolicyEngine(Policy()), pipeline, fail_closed=False)

        result = await coordinator.before_tool_call(
            {"toolName": "exec", "params": {"command": "ls"}}
        )

        assert result is None

    @pytest.mark.asyncio
    async def test_recovers_once_audit_log_writable_again(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        path = blocker / "audit.jsonl"
        pipeline = AuditPipeline(path)
        await break_pipeline(pipeline)
        coordinator = InterceptionCoordinator(PolicyEngine(Policy()), pipeline, fail_closed=True)
        event = {"toolName": "exec", "params": {"command": "ls"}}

        assert (await coordinator.before_tool_call(event))["block"] is True

        blocker.unlink()

        assert await coordinator.before_tool_call(event) is None
        assert await coordinator.before_tool_call(event) is None
        assert not pipeline.failed
        await coordinator.close()

        entries = read_lines(path)
        assert entries[0]["params"]["command"] == "first"
        assert entries[1]["decision"]["reason"].startswith("Audit log unavailable:")
        assert [e["decision"]["decision"] for e in entries[1:]] == ["BLOCK", "ALLOW", "ALLOW"]

    @pytest.mark.asyncio
    async def test_audit_sync_writes_before_returning(self, log_path):
        engine = PolicyEngine(Policy.from_rules(["rm"]))
        coordinator = InterceptionCoordinator(engine, AuditPipeline(log_path), audit_sync=True)

        await coordinator.before_tool_call({"toolName": "exec", "params": {"command": "rm x"}})

        assert len(read_lines(log_path)) == 1

    @pytest.mark.asyncio
    async def test_audit_sync_failure_blocks_when_fail_closed(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        engine = PolicyEngine(Policy())
        pipeline = AuditPipeline(blocker / "audit.jsonl")
        coordinator = InterceptionCoordinator(engine, pipeline, audit_sync=True)

        result = await coordinator.before_tool_call(
            {"toolName": "exec", "params": {"command": "ls"}}
        )

        assert result["block"] is True
        assert "Audit log unavailable" in result["blockReason"]


class TestAfterToolCall:
    @pytest.mark.asyncio
    async def test_records_success(self, coordinator, log_path):
        await coordinator.after_tool_call(
            {"toolName": "exec", "params": {"command": "ls"}, "durationMs": 42}
        )
        await coordinator.close()

        (entry,) = read_lines(log_path)
        assert entry["event"] == "tool_execution"
        assert entry["success"] is True
        assert entry["durationMs"] == 42
        assert "error" not in entry

    @pytest.mark.asyncio
    async def test_records_failure_message(self, coordinator, log_path):
        await coordinator.after_tool_call(
            {"toolName": "exec", "params": {}, "error": {"message": "exit status 1"}}
        )
        await coordinator.close()

        (entry,) = read_lines(log_path)
        assert entry["success"] is False
        assert entry["error"] == "exit status 1"

    @pytest.mark.asyncio
    async def test_empty_error_counts_as_success(self, coordinator, log_path):
        await coordinator.after_tool_call({"toolName": "exec", "params": {}, "error": ""})
        await coordinator.after_tool_call({"toolName": "exec", "params": {}, "error": {}})
        await coordinator.close()

        entries = read_lines(log_path)
        assert [e["success"] for e in entries] == [True, True]
        assert all("error" not in e for e in entries)

    @pytest.mark.asyncio
    async def test_audits_every_tool(self, coordinator, log_path):
        await coordinator.after_tool_call({"toolName": "read", "params": {"path": "/tmp/x"}})
        await coordinator.close()

        (entry,) = read_lines(log_path)
        assert entry["toolName"] == "read"


class TestHelpers:
    def test_block_response(self):
        assert block_response("nope") == {"block": True, "blockReason": "SafetyClawz BLOCKED: nope"}

    def test_error_message(self):
        assert error_message(None) is None
        assert error_message("boom") == "boom"
        assert error_message({"message": "bad"}) == "bad"
        assert error_message({"code": 1}) == "{'code': 1}"
        assert error_message(ValueError("oops")) == "oops"


class TestRegisterPlugin:
    def test_registers_both_hooks(self, log_path):
        api = FakeHostApi({"auditLogPath": str(log_path)})

        coordinator = register_plugin(api)

        assert coordinator is not None
        assert set(api.hooks) == {BEFORE_TOOL_CALL, AFTER_TOOL_CALL}
        api.logger.info.assert_called_once_with(f"SafetyClawz: Protection enabled (v{__version__})")
        assert coordinator.pipeline.log_path == log_path

    def test_plugin_config_overrides_settings(self, tmp_path, log_path):
        policy_file = tmp_path / "policy.yaml"
        policy_file.write_text("safeguards:\n  exec:\n    blocked_commands: [reboot]\n")
        api = FakeHostApi(
            {
                "policyFile": str(policy_file),
                "auditLogPath": str(log_path),
                "auditDisabled": True,
                "failClosed": False,
            }
        )

        coordinator = register_plugin(api)

        assert coordinator.engine.policy.blocked_command_rules == ("reboot",)
        assert coordinator.pipeline.disabled is True
        assert coordinator.fail_closed is False

    def test_bad_policy_registers_nothing(self, tmp_path):
        policy_file = tmp_path / "policy.yaml"
        policy_file.write_text("safeguards: [unclosed\n")
        api = FakeHostApi({"policyFile": str(policy_file)})

        coordinator = register_plugin(api)

        assert coordinator is None
        assert api.hooks == {}
        message = api.logger.error.call_args.args[0]
        assert message.startswith("SafetyClawz: Failed to load policy:")

    def test_string_booleans_in_plugin_config(self, log_path):
        api = FakeHostApi(
            {"auditLogPath": str(log_path), "auditDisabled": "false", "failClosed": "false"}
        )

        coordinator = register_plugin(api)

        assert coordinator.pipeline.disabled is False
        assert coordinator.fail_closed is False

    def test_invalid_plugin_config_registers_nothing(self):
        api = FakeHostApi({"auditDisabled": "sometimes"})

        coordinator = register_plugin(api)

        assert coordinator is None
        assert api.hooks == {}
        message = api.logger.error.call_args.args[0]
        assert message.startswith("SafetyClawz: Invalid plugin config:")

    @pytest.mark.asyncio
    async def test_registered_hook_blocks(self, log_path):
        api = FakeHostApi({"auditLogPath": str(log_path)})
        coordinator = register_plugin(api)

        result = await api.hooks[BEFORE_TOOL_CALL](
            {"toolName": "exec", "params": {"command": "cat ~/.ssh/id_rsa"}}, {}
        )
        await coordinator.close()

        assert result["block"] is True
        assert result["blockReason"].startswith(BLOCK_REASON_PREFIX)
        assert read_lines(log_path)[0]["decision"]["triggered_rule"] == "exec.blocked_paths"


class TestBuildCoordinator:
    def test_uses_defaults_when_policy_file_missing(self, tmp_path, log_path):
        settings = Settings(policy_file=str(tmp_path / "missing.yaml"), audit_log_path=str(log_path))

        coordinator = build_coordinator(settings)

        assert "rm -rf /" in coordinator.engine.policy.blocked_command_rules
        assert coordinator.fail_closed is True
        assert coordinator.audit_sync is False
