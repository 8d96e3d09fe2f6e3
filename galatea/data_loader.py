"""Loader for task and stack definition files.

Definition files live in the configured tasks and stacks directories and use
the ``.conf``, ``.yaml`` or ``.yml`` extension. Each holds YAML with a
top-level ``tasks:`` and/or ``stacks:`` list:

    tasks:
      - name: firewall
        type: bash
        url: https://example.com/tasks/firewall.tgz
        dependencies: [base_packages]

    stacks:
      - name: web_server
        tasks: [firewall, nginx]
        requires_reboot: true

Validation is per entry: a malformed entry is logged and skipped, and the
rest of the file still loads. Name collisions and dangling references are
not checked here; that is the definition store's job.
"""

import logging
from pathlib import Path

import yaml

from galatea.config import Config
from galatea.engine.models import ScriptKind, Stack, Task
from galatea.errors import ConfigError, format_field_error

_logging = logging.getLogger(__name__)

DEFINITION_SUFFIXES = (".conf", ".yaml", ".yml")


def _require_str_field(data: dict, field: str, entity_name: str) -> None:
    """Validate required string field.

    Args:
        data: Raw dict
        field: Field name to validate
        entity_name: Entity name for error messages

    Raises:
        ConfigError: If field missing, not str, or empty
    """
    if field not in data:
        raise ConfigError(f"{entity_name} missing required field: {field}")
    if not isinstance(data[field], str) or not data[field].strip():
        raise ConfigError(format_field_error(entity_name, field, "must be a non-empty string"))


def _optional_field(data: dict, field: str, entity_name: str, field_type: type) -> None:
    """Validate optional field with type check.

    Raises:
        ConfigError: If field present, not None, and wrong type
    """
    if field in data and data[field] is not None:
        if not isinstance(data[field], field_type):
            type_name = field_type.__name__
            raise ConfigError(format_field_error(entity_name, field, f"must be a {type_name} or null"))


def _validate_string_list(data: dict, field: str, entity_name: str, required: bool = False) -> None:
    """Validate list contains only non-empty strings.

    Raises:
        ConfigError: If field not a list or contains invalid strings
    """
    if field not in data or data[field] is None:
        if required:
            raise ConfigError(f"{entity_name} missing required field: {field}")
        return
    if not isinstance(data[field], list):
        raise ConfigError(format_field_error(entity_name, field, "must be an array"))
    for i, item in enumerate(data[field]):
        if not isinstance(item, str) or not item.strip():
            raise ConfigError(
                f"{entity_name} {field}[{i}] must be a non-empty string"
            )


def _entity_label(kind: str, data: dict, index: int) -> str:
    name = data.get("name")
    if isinstance(name, str) and name.strip():
        return f"{kind} '{name}'"
    return f"{kind} #{index + 1}"


def parse_task(data: dict, entity_name: str = "Task") -> Task:
    """Build a Task from one raw ``tasks:`` entry.

    Raises:
        ConfigError: If a field is missing or malformed
    """
    for field in ("name", "type", "url"):
        _require_str_field(data, field, entity_name)
    for field in ("description", "cleanup_command"):
        _optional_field(data, field, entity_name, str)
    _optional_field(data, "requires_reboot", entity_name, bool)
    _validate_string_list(data, "dependencies", entity_name)
    _validate_string_list(data, "tags", entity_name)

    try:
        kind = ScriptKind.parse(data["type"])
    except ValueError as e:
        raise ConfigError(f"{entity_name} has invalid type: {e}") from e

    return Task(
        name=data["name"].strip(),
        kind=kind,
        source=data["url"].strip(),
        description=data.get("description") or "",
        dependencies=list(data.get("dependencies") or []),
        tags=list(data.get("tags") or []),
        requires_reboot=bool(data.get("requires_reboot") or False),
        cleanup_command=data.get("cleanup_command"),
    )


def parse_stack(data: dict, entity_name: str = "Stack") -> Stack:
    """Build a Stack from one raw ``stacks:`` entry.

    Raises:
        ConfigError: If a field is missing or malformed
    """
    _require_str_field(data, "name", entity_name)
    _optional_field(data, "description", entity_name, str)
    _optional_field(data, "requires_reboot", entity_name, bool)
    _validate_string_list(data, "tasks", entity_name, required=True)
    _validate_string_list(data, "dependencies", entity_name)
    _validate_string_list(data, "tags", entity_name)

    return Stack(
        name=data["name"].strip(),
        members=list(data["tasks"]),
        description=data.get("description") or "",
        dependencies=list(data.get("dependencies") or []),
        tags=list(data.get("tags") or []),
        requires_reboot=bool(data.get("requires_reboot") or False),
    )


def _read_definition_file(path: Path) -> dict:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Definition file {path} must contain a mapping")
    return data


def load_definition_file(path: Path) -> tuple[list[Task], list[Stack]]:
    """Parse one definition file, skipping entries that fail validation.

    Raises:
        ConfigError: If the file cannot be read or is not a YAML mapping
    """
    data = _read_definition_file(path)
    tasks: list[Task] = []
    stacks: list[Stack] = []

    for key, kind, parse, bucket in (
        ("tasks", "Task", parse_task, tasks),
        ("stacks", "Stack", parse_stack, stacks),
    ):
        entries = data.get(key)
        if entries is None:
            continue
        if not isinstance(entries, list):
            raise ConfigError(f"{path}: '{key}' must be an array")
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                _logging.warning(f"{path}: {kind.lower()} #{index + 1} must be an object, skipping")
                continue
            label = _entity_label(kind, entry, index)
            try:
                bucket.append(parse(entry, label))
            except ConfigError as e:
                _logging.warning(f"{path}: {e}, skipping")

    _logging.debug(f"Loaded {len(tasks)} tasks and {len(stacks)} stacks from {path}")
    return tasks, stacks


def definition_files(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(
        p for p in directory.iterdir()
        if p.is_file() and p.suffix in DEFINITION_SUFFIXES
    )


def load_directory(directory: Path) -> tuple[list[Task], list[Stack]]:
    tasks: list[Task] = []
    stacks: list[Stack] = []
    for path in definition_files(directory):
        try:
            file_tasks, file_stacks = load_definition_file(path)
        except ConfigError as e:
            _logging.error(str(e))
            continue
        tasks.extend(file_tasks)
        stacks.extend(file_stacks)
    return tasks, stacks


def load_definitions(config: Config) -> tuple[list[Task], list[Stack]]:
    """Load every definition from the configured tasks and stacks directories.

    Returns:
        (tasks, stacks) in file order; a directory listed twice is read once
    """
    tasks: list[Task] = []
    stacks: list[Stack] = []
    seen: set[Path] = set()
    for directory in (Path(config.tasks_dir), Path(config.stacks_dir)):
        resolved = directory.expanduser().resolve()
        if resolved in seen:
            continue
        seen.add(resolved)
        dir_tasks, dir_stacks = load_directory(directory.expanduser())
        tasks.extend(dir_tasks)
        stacks.extend(dir_stacks)
    _logging.info(f"Loaded {len(tasks)} task and {len(stacks)} stack definitions")
    return tasks, stacks


EXAMPLE_TASKS = """\
# Example task definitions

tasks:
  - name: example_bash_task
    type: bash
    description: "Example bash task that installs a package"
    url: "https://example.com/tasks/bash_task.tgz"
    requires_reboot: false
    tags:
      - example
      - bash

  - name: example_ansible_task
    type: ansible
    description: "Example ansible task that configures a service"
    url: "https://example.com/tasks/ansible_task.zip"
    cleanup_command: "systemctl stop example_service"
    requires_reboot: true
    tags:
      - example
      - ansible
      - service

  - name: example_mixed_task
    type: mixed
    description: "Example mixed task that can use both bash and ansible"
    url: "https://example.com/tasks/mixed_task.tar.gz"
    dependencies:
      - example_bash_task
    tags:
      - example
      - mixed
"""

EXAMPLE_STACKS = """\
# Example stack definitions

stacks:
  - name: base_system
    description: "Base system configuration"
    tasks:
      - example_bash_task
    requires_reboot: false
    tags:
      - system
      - base

  - name: web_server
    description: "Web server setup"
    tasks:
      - example_bash_task
      - example_ansible_task
    requires_reboot: true
    tags:
      - web
      - server

  - name: monitoring
    description: "System monitoring"
    tasks:
      - example_mixed_task
    requires_reboot: false
    tags:
      - monitoring
      - system
"""


def _write_example(directory: Path, filename: str, content: str) -> Path | None:
    if definition_files(directory):
        return None
    path = directory / filename
    try:
        directory.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Could not write example definitions {path}: {e}") from e
    _logging.info(f"Created example definitions: {path}")
    return path


def create_example_tasks(directory: Path) -> Path | None:
    """Write example task definitions if ``directory`` holds none."""
    return _write_example(directory, "example_tasks.conf", EXAMPLE_TASKS)


def create_example_stacks(directory: Path) -> Path | None:
    """Write example stack definitions if ``directory`` holds none."""
    return _write_example(directory, "example_stacks.conf", EXAMPLE_STACKS)


__all__ = [
    "DEFINITION_SUFFIXES",
    "EXAMPLE_TASKS",
    "EXAMPLE_STACKS",
    "create_example_stacks",
    "create_example_tasks",
    "definition_files",
    "load_definition_file",
    "load_definitions",
    "load_directory",
    "parse_stack",
    "parse_task",
]
