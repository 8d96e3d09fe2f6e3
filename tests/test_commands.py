"""End-to-end tests for the galatea CLI."""

from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner

from galatea.commands import cli
from galatea.engine import Ledger


@pytest.fixture
def runner():
    """Create a CliRunner for testing."""
    return CliRunner()


def _task_content(root: Path, name: str) -> Path:
    content = root / "content" / name
    content.mkdir(parents=True)
    (content / "install.sh").write_text('#!/bin/bash\necho "$1" >> calls.log\necho "done $1"\n')
    return content


@pytest.fixture
def workspace(temp_dir, config_file):
    """Definitions for base <- app plus a stack, all backed by local task content."""
    tasks_dir = temp_dir / "tasks"
    tasks_dir.mkdir()
    definitions = {
        "tasks": [
            {
                "name": "base",
                "type": "bash",
                "url": str(_task_content(temp_dir, "base")),
                "description": "Base packages",
                "tags": ["system"],
            },
            {
                "name": "app",
                "type": "bash",
                "url": str(_task_content(temp_dir, "app")),
                "dependencies": ["base"],
            },
            {
                "name": "broken",
                "type": "bash",
                "url": str(temp_dir / "missing.tgz"),
            },
        ],
        "stacks": [{"name": "web", "tasks": ["base", "app"], "tags": ["web"]}],
    }
    (tasks_dir / "defs.conf").write_text(yaml.safe_dump(definitions))
    return temp_dir


def _invoke(runner, config_file, *args, **kwargs):
    return runner.invoke(cli, ["--config", str(config_file), *args], **kwargs)


def _calls(workspace: Path, name: str) -> list[str]:
    log = workspace / "content" / name / "calls.log"
    return log.read_text().split() if log.exists() else []


class TestList:
    def test_lists_stacks_and_tasks(self, runner, workspace, config_file):
        result = _invoke(runner, config_file, "list")
        assert result.exit_code == 0, result.output
        assert "Stacks:" in result.output
        assert "web: missing" in result.output
        assert "[S] app" in result.output

    def test_tag_filter(self, runner, workspace, config_file):
        result = _invoke(runner, config_file, "list", "--tags", "system", "--verbose")
        assert "base" in result.output
        assert "Base packages" in result.output
        assert "[S] app" not in result.output

    def test_stack_reboot_marker(self, runner, workspace, config_file):
        definitions = {
            "tasks": [
                {
                    "name": "kernel",
                    "type": "bash",
                    "url": str(_task_content(workspace, "kernel")),
                    "requires_reboot": True,
                },
            ],
            "stacks": [{"name": "os", "tasks": ["kernel"]}],
        }
        (workspace / "tasks" / "os.conf").write_text(yaml.safe_dump(definitions))

        result = _invoke(runner, config_file, "list")

        assert result.exit_code == 0, result.output
        assert "os 🔄: missing" in result.output
        assert "web: missing" in result.output

    def test_empty(self, runner, config_file):
        result = _invoke(runner, config_file, "list")
        assert result.exit_code == 0
        assert "No tasks or stacks defined." in result.output

    def test_missing_config_file(self, runner, temp_dir):
        result = runner.invoke(cli, ["--config", str(temp_dir / "nope.yaml"), "list"])
        assert result.exit_code == 1
        assert "Config file not found" in result.output


class TestPlan:
    def test_waves_follow_dependencies(self, runner, workspace, config_file):
        result = _invoke(runner, config_file, "plan", "web")
        assert result.exit_code == 0, result.output
        assert "Installation Plan: web" in result.output
        assert "1. base" in result.output
        assert "2. app" in result.output

    def test_unknown_target(self, runner, workspace, config_file):
        result = _invoke(runner, config_file, "plan", "nginx")
        assert result.exit_code == 1
        assert "nginx" in result.output
        assert "galatea list" in result.output


class TestInstall:
    def test_simulate_runs_nothing(self, runner, workspace, config_file, temp_dir):
        result = _invoke(runner, config_file, "install", "app", "--simulate")
        assert result.exit_code == 0, result.output
        assert "(simulated)" in result.output
        assert _calls(workspace, "base") == []
        assert len(Ledger(temp_dir / "state" / "ledger.jsonl")) == 0

    def test_install_records_ledger(self, runner, workspace, config_file, temp_dir):
        result = _invoke(runner, config_file, "install", "web", "--yes")
        assert result.exit_code == 0, result.output
        assert _calls(workspace, "base") == ["install"]
        assert _calls(workspace, "app") == ["install"]
        assert Ledger(temp_dir / "state" / "ledger.jsonl").installed() == {"base", "app"}

        status = _invoke(runner, config_file, "status")
        assert "base: success" in status.output
        assert "Stack web: installed" in status.output

    def test_second_install_is_noop(self, runner, workspace, config_file):
        _invoke(runner, config_file, "install", "base", "--yes")
        result = _invoke(runner, config_file, "install", "base", "--yes")
        assert result.exit_code == 0
        assert "Already installed" in result.output
        assert "Nothing to do." in result.output
        assert _calls(workspace, "base") == ["install"]

    def test_force_reinstalls(self, runner, workspace, config_file):
        _invoke(runner, config_file, "install", "base", "--yes")
        result = _invoke(runner, config_file, "install", "base", "--yes", "--force")
        assert result.exit_code == 0, result.output
        assert _calls(workspace, "base") == ["install", "install"]

    def test_declined_confirmation(self, runner, workspace, config_file):
        result = _invoke(runner, config_file, "install", "base", input="n\n")
        assert result.exit_code == 0
        assert "Installation cancelled." in result.output
        assert _calls(workspace, "base") == []

    def test_failed_task_exits_nonzero(self, runner, workspace, config_file):
        result = _invoke(runner, config_file, "install", "broken", "--yes")
        assert result.exit_code == 1
        assert "Partially failed" in result.output
        assert "source not found" in result.output


class TestUninstall:
    def test_uninstall_runs_cleanup(self, runner, workspace, config_file, temp_dir):
        _invoke(runner, config_file, "install", "app", "--yes")
        result = _invoke(runner, config_file, "uninstall", "app", "--yes")
        assert result.exit_code == 0, result.output
        assert _calls(workspace, "app") == ["install", "uninstall"]
        assert Ledger(temp_dir / "state" / "ledger.jsonl").installed() == {"base"}

    def test_uninstall_not_installed(self, runner, workspace, config_file):
        result = _invoke(runner, config_file, "uninstall", "app", "--yes")
        assert result.exit_code == 0
        assert "Not installed" in result.output


class TestMaintain:
    def test_reset_installed_task(self, runner, workspace, config_file):
        _invoke(runner, config_file, "install", "base", "--yes")
        result = _invoke(runner, config_file, "reset", "base", "--yes")
        assert result.exit_code == 0, result.output
        assert "Reset Plan: base" in result.output
        assert _calls(workspace, "base") == ["install", "reset"]

    def test_remediate_stack(self, runner, workspace, config_file):
        _invoke(runner, config_file, "install", "web", "--yes")
        result = _invoke(runner, config_file, "remediate", "web", "--yes")
        assert result.exit_code == 0, result.output
        assert "Run remediate" in result.output
        assert _calls(workspace, "base") == ["install", "remediate"]
        assert _calls(workspace, "app") == ["install", "remediate"]

    def test_reset_not_installed(self, runner, workspace, config_file):
        result = _invoke(runner, config_file, "reset", "app", "--yes")
        assert result.exit_code == 0
        assert "Not installed" in result.output
        assert "Nothing to do." in result.output
        assert _calls(workspace, "app") == []

    def test_reset_simulate(self, runner, workspace, config_file):
        _invoke(runner, config_file, "install", "base", "--yes")
        result = _invoke(runner, config_file, "reset", "base", "--simulate")
        assert result.exit_code == 0, result.output
        assert "(simulated)" in result.output
        assert _calls(workspace, "base") == ["install"]

    def test_reset_unknown_target(self, runner, workspace, config_file):
        result = _invoke(runner, config_file, "reset", "nginx", "--yes")
        assert result.exit_code == 1
        assert "galatea list" in result.output


class TestStatus:
    def test_nothing_installed(self, runner, workspace, config_file):
        result = _invoke(runner, config_file, "status")
        assert result.exit_code == 0
        assert "Nothing installed." in result.output


class TestSources:
    def test_add_list_remove(self, runner, config_file):
        url = "https://example.com/tasks/security.zip"
        result = _invoke(runner, config_file, "sources", "add", url)
        assert result.exit_code == 0, result.output
        assert yaml.safe_load(config_file.read_text())["task_sources"] == [url]

        result = _invoke(runner, config_file, "sources", "add", url)
        assert "already configured" in result.output

        result = _invoke(runner, config_file, "sources", "list")
        assert "Task sources:" in result.output
        assert url in result.output

        result = _invoke(runner, config_file, "sources", "remove", url)
        assert result.exit_code == 0
        assert yaml.safe_load(config_file.read_text())["task_sources"] == []

    def test_remove_unknown(self, runner, config_file):
        result = _invoke(runner, config_file, "sources", "remove", "https://example.com/x.zip")
        assert result.exit_code == 1

    def test_sync_local_definitions(self, runner, config_file, temp_dir):
        remote = temp_dir / "remote" / "extra.conf"
        remote.parent.mkdir()
        remote.write_text("tasks: []\n")
        _invoke(runner, config_file, "sources", "add", str(remote))

        result = _invoke(runner, config_file, "sources", "sync")
        assert result.exit_code == 0, result.output
        assert (temp_dir / "tasks" / "extra.conf").is_file()

        result = _invoke(runner, config_file, "sources", "sync")
        assert "All sources already present." in result.output


class TestConfig:
    def test_init_writes_config_and_examples(self, runner, temp_dir):
        target = temp_dir / "new" / "galatea.yaml"
        with patch("galatea.config.get_data_dir", return_value=temp_dir / "data"):
            result = runner.invoke(cli, ["config", "init", "--path", str(target)])
        assert result.exit_code == 0, result.output
        assert target.exists()
        assert (temp_dir / "data" / "tasks" / "example_tasks.conf").exists()
        assert (temp_dir / "data" / "stacks" / "example_stacks.conf").exists()

    def test_init_existing_without_force(self, runner, config_file):
        result = runner.invoke(cli, ["config", "init", "--path", str(config_file)])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_init_force_backs_up(self, runner, config_file):
        original = config_file.read_text()
        with patch("galatea.config.get_data_dir", return_value=config_file.parent / "data"):
            result = runner.invoke(
                cli, ["config", "init", "--path", str(config_file), "--force", "--no-examples"]
            )
        assert result.exit_code == 0, result.output
        assert config_file.with_suffix(".yaml.bak").read_text() == original

    def test_show(self, runner, config_file, temp_dir):
        result = _invoke(runner, config_file, "config", "show")
        assert result.exit_code == 0
        assert f"tasks_dir: {temp_dir / 'tasks'}" in result.output


class TestLedgerCommand:
    def test_compact(self, runner, workspace, config_file):
        _invoke(runner, config_file, "install", "base", "--yes")
        _invoke(runner, config_file, "install", "base", "--yes", "--force")
        result = _invoke(runner, config_file, "ledger", "compact")
        assert result.exit_code == 0, result.output
        assert "1 active record(s)" in result.output


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "galatea" in result.output
