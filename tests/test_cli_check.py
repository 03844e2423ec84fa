"""Tests for the check and policy commands and the top-level CLI."""

import json
from unittest.mock import patch

import pytest
from safetyclawz.cli.check import check_command
from safetyclawz.cli.policy import _rule_kind, show_policy_command
from safetyclawz.core.errors import ExitCode
from safetyclawz.main import build_parser, main


@pytest.fixture
def policy_file(tmp_path):
    path = tmp_path / "policy.yaml"
    path.write_text(
        "safeguards:\n"
        "  exec:\n"
        "    blocked_commands: [shutdown, 'curl.*| bash', 'rm (-rf']\n"
        "    blocked_paths: ['~/.kube']\n"
    )
    return path


@pytest.fixture
def bad_policy_file(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("safeguards:\n  exec:\n    blocked_commands: rm\n")
    return path


class TestCheckCommand:
    def test_allowed(self, capsys):
        assert check_command("echo hello") == ExitCode.SUCCESS
        assert "ALLOWED" in capsys.readouterr().out

    def test_blocked_with_defaults(self, capsys):
        assert check_command("rm -rf /") == ExitCode.BLOCKED
        assert "BLOCKED" in capsys.readouterr().err

    def test_non_exec_tool_allowed(self):
        assert check_command("rm -rf /", tool_name="read") == ExitCode.SUCCESS

    def test_custom_policy_file(self, policy_file):
        assert check_command("shutdown -h now", policy_file=str(policy_file)) == ExitCode.BLOCKED
        assert check_command("rm -rf /", policy_file=str(policy_file)) == ExitCode.SUCCESS

    def test_bad_policy_is_config_error(self, bad_policy_file, capsys):
        assert check_command("ls", policy_file=str(bad_policy_file)) == ExitCode.CONFIG_ERROR
        assert "must be a list" in capsys.readouterr().err

    def test_json_output(self, capsys):
        check_command("cat ~/.ssh/id_rsa", output_format="json")

        data = json.loads(capsys.readouterr().out)
        assert data["decision"] == "BLOCK"
        assert data["triggered_rule"] == "exec.blocked_paths"
        assert data["policy"] == "built-in defaults"

    def test_audit_writes_line(self, log_path):
        code = check_command("rm -rf /", audit=True, log_file=str(log_path))

        assert code == ExitCode.BLOCKED
        (line,) = log_path.read_text().splitlines()
        assert json.loads(line)["decision"]["decision"] == "BLOCK"

    def test_audit_failure(self, tmp_path, capsys):
        blocker = tmp_path / "blocker"
        blocker.write_text("")

        code = check_command("ls", audit=True, log_file=str(blocker / "audit.jsonl"))

        assert code == ExitCode.AUDIT_ERROR
        assert "Failed to append audit record" in capsys.readouterr().err


class TestPolicyShow:
    def test_table(self, policy_file, capsys):
        assert show_policy_command(str(policy_file)) == ExitCode.SUCCESS

        out = capsys.readouterr().out
        assert "shutdown" in out
        assert "~/.kube" in out

    def test_defaults_json(self, capsys):
        assert show_policy_command(output_format="json") == ExitCode.SUCCESS

        data = json.loads(capsys.readouterr().out)
        assert data["source"] == "built-in defaults"
        assert "rm -rf /" in data["safeguards"]["exec"]["blocked_commands"]

    def test_bad_policy(self, bad_policy_file):
        assert show_policy_command(str(bad_policy_file)) == ExitCode.CONFIG_ERROR

    def test_rule_kind(self):
        assert _rule_kind("shutdown") == "literal"
        assert _rule_kind("curl.*| bash") == "regex"
        assert _rule_kind("rm (-rf") == "literal (invalid regex)"


class TestMain:
    def test_parser_check(self):
        args = build_parser().parse_args(["check", "ls -la", "--tool", "bash_exec", "-f", "json"])

        assert args.command == "check"
        assert args.shell_command == "ls -la"
        assert args.tool == "bash_exec"
        assert args.output_format == "json"

    @pytest.mark.parametrize(
        "argv,expected",
        [
            (["check", "echo hi"], 0),
            (["check", "rm -rf /"], 2),
            (["policy", "show"], 0),
            (["policy"], 12),
            (["audit"], 0),
            ([], 0),
        ],
    )
    def test_exit_codes(self, argv, expected):
        with patch("safetyclawz.main.configure_logging"):
            with pytest.raises(SystemExit) as exc_info:
                main(argv)

        assert exc_info.value.code == expected

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])

        assert exc_info.value.code == 0
        assert "safetyclawz" in capsys.readouterr().out
