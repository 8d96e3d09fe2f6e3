"""Tests for the definition file loader."""

import logging

import pytest

from galatea.config import Config
from galatea.data_loader import (
    create_example_stacks,
    create_example_tasks,
    definition_files,
    load_definition_file,
    load_definitions,
    parse_stack,
    parse_task,
)
from galatea.engine import DefinitionStore, ScriptKind
from galatea.errors import ConfigError


def _config(temp_dir) -> Config:
    return Config(
        tasks_dir=str(temp_dir / "tasks"),
        stacks_dir=str(temp_dir / "stacks"),
        state_dir=str(temp_dir / "state"),
        cache_dir=str(temp_dir / "cache"),
    )


class TestParseTask:
    def test_minimal(self):
        task = parse_task({"name": "t", "type": "bash", "url": "https://x/t.tgz"})
        assert task.kind == ScriptKind.SHELL
        assert task.source == "https://x/t.tgz"
        assert task.dependencies == []
        assert task.requires_reboot is False
        assert task.cleanup_command is None

    @pytest.mark.parametrize(
        "value,kind",
        [("ansible", ScriptKind.PLAYBOOK), ("A", ScriptKind.PLAYBOOK), ("mixed", ScriptKind.MIXED), ("b", ScriptKind.SHELL)],
    )
    def test_type_aliases(self, value, kind):
        assert parse_task({"name": "t", "type": value, "url": "u"}).kind == kind

    def test_full(self):
        task = parse_task({
            "name": "svc",
            "type": "ansible",
            "url": "https://x/svc.zip",
            "description": "A service",
            "cleanup_command": "systemctl stop svc",
            "dependencies": ["base"],
            "tags": ["service"],
            "requires_reboot": True,
        })
        assert task.dependencies == ["base"]
        assert task.tags == ["service"]
        assert task.requires_reboot is True
        assert task.cleanup_command == "systemctl stop svc"

    @pytest.mark.parametrize("field", ["name", "type", "url"])
    def test_missing_required(self, field):
        data = {"name": "t", "type": "bash", "url": "u"}
        del data[field]
        with pytest.raises(ConfigError, match=f"missing required field: {field}"):
            parse_task(data)

    def test_invalid_type(self):
        with pytest.raises(ConfigError, match="invalid type"):
            parse_task({"name": "t", "type": "powershell", "url": "u"})

    def test_bad_dependency_list(self):
        with pytest.raises(ConfigError, match="dependencies"):
            parse_task({"name": "t", "type": "bash", "url": "u", "dependencies": "base"})

    def test_bad_reboot_flag(self):
        with pytest.raises(ConfigError, match="requires_reboot"):
            parse_task({"name": "t", "type": "bash", "url": "u", "requires_reboot": "yes"})


class TestParseStack:
    def test_stack(self):
        stack = parse_stack({"name": "s", "tasks": ["a", "b"], "requires_reboot": True})
        assert stack.members == ["a", "b"]
        assert stack.requires_reboot

    def test_tasks_required(self):
        with pytest.raises(ConfigError, match="tasks"):
            parse_stack({"name": "s"})


class TestFiles:
    def test_bad_entry_skipped_rest_loaded(self, temp_dir, caplog):
        path = temp_dir / "mixed.conf"
        path.write_text(
            "tasks:\n"
            "  - name: good\n"
            "    type: bash\n"
            "    url: u\n"
            "  - name: bad\n"
            "    type: bash\n"
            "stacks:\n"
            "  - name: s\n"
            "    tasks: [good]\n"
        )
        with caplog.at_level(logging.WARNING):
            tasks, stacks = load_definition_file(path)
        assert [t.name for t in tasks] == ["good"]
        assert [s.name for s in stacks] == ["s"]
        assert "Task 'bad' missing required field: url" in caplog.text

    def test_invalid_yaml_raises(self, temp_dir):
        path = temp_dir / "broken.yaml"
        path.write_text("tasks: [\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_definition_file(path)

    def test_empty_file(self, temp_dir):
        path = temp_dir / "empty.yml"
        path.write_text("")
        assert load_definition_file(path) == ([], [])

    def test_only_definition_suffixes(self, temp_dir):
        for name in ("a.conf", "b.yaml", "c.yml", "d.txt", "e.json"):
            (temp_dir / name).write_text("")
        assert [p.name for p in definition_files(temp_dir)] == ["a.conf", "b.yaml", "c.yml"]

    def test_load_definitions_skips_broken_files(self, temp_dir):
        config = _config(temp_dir)
        (temp_dir / "tasks").mkdir()
        (temp_dir / "tasks" / "a.yaml").write_text("tasks:\n  - {name: a, type: bash, url: u}\n")
        (temp_dir / "tasks" / "b.yaml").write_text("::: not yaml [")
        tasks, stacks = load_definitions(config)
        assert [t.name for t in tasks] == ["a"]
        assert stacks == []

    def test_shared_directory_read_once(self, temp_dir):
        config = _config(temp_dir)
        config.stacks_dir = config.tasks_dir
        (temp_dir / "tasks").mkdir()
        (temp_dir / "tasks" / "a.yaml").write_text("tasks:\n  - {name: a, type: bash, url: u}\n")
        tasks, _ = load_definitions(config)
        assert len(tasks) == 1


class TestExamples:
    def test_examples_load_cleanly(self, temp_dir):
        config = _config(temp_dir)
        assert create_example_tasks(temp_dir / "tasks") is not None
        assert create_example_stacks(temp_dir / "stacks") is not None

        tasks, stacks = load_definitions(config)
        store = DefinitionStore()
        assert store.load(tasks, stacks) == []
        assert store.task_names() == ["example_ansible_task", "example_bash_task", "example_mixed_task"]
        assert store.stack_names() == ["base_system", "monitoring", "web_server"]
        assert store.get_task("example_ansible_task").cleanup_command == "systemctl stop example_service"

    def test_examples_not_written_over_existing(self, temp_dir):
        tasks_dir = temp_dir / "tasks"
        tasks_dir.mkdir()
        (tasks_dir / "mine.conf").write_text("tasks: []\n")
        assert create_example_tasks(tasks_dir) is None
