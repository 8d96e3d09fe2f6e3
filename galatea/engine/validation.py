"""Integrity and prerequisite checks run before a task is handed to the runner."""

import shutil
from pathlib import Path

from .models import ScriptKind

SHELL_ENTRY_POINTS = ("install.sh",)
PLAYBOOK_ENTRY_POINTS = ("playbook.yml", "playbook.yaml")


def find_entry_point(directory: Path, names: tuple[str, ...]) -> Path | None:
    """Find the first file named in ``names``, searching subdirectories too."""
    if not directory.is_dir():
        return None
    for name in names:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    for child in sorted(p for p in directory.iterdir() if p.is_dir()):
        found = find_entry_point(child, names)
        if found:
            return found
    return None


def is_ansible_available() -> bool:
    return shutil.which("ansible-playbook") is not None


def validate_content(kind: ScriptKind, path: Path) -> str | None:
    """Check fetched task content is runnable.

    Args:
        kind: The task's script kind
        path: Local content (directory, or a single script/playbook file)

    Returns:
        None when valid, otherwise a description of the problem
    """
    if not path.exists():
        return f"content not found: {path}"

    if path.is_file():
        has_shell = path.suffix == ".sh"
        has_playbook = path.suffix in (".yml", ".yaml")
    else:
        has_shell = find_entry_point(path, SHELL_ENTRY_POINTS) is not None
        has_playbook = find_entry_point(path, PLAYBOOK_ENTRY_POINTS) is not None

    if kind == ScriptKind.SHELL and not has_shell:
        return f"no {SHELL_ENTRY_POINTS[0]} in {path}"
    if kind == ScriptKind.PLAYBOOK:
        if not has_playbook:
            return f"no playbook.yml in {path}"
        if not is_ansible_available():
            return "ansible-playbook is not installed"
    if kind == ScriptKind.MIXED:
        if not (has_shell or has_playbook):
            return f"neither install.sh nor playbook.yml in {path}"
        if not has_shell and not is_ansible_available():
            return "ansible-playbook is not installed and no install.sh fallback exists"
    return None


__all__ = [
    "SHELL_ENTRY_POINTS",
    "PLAYBOOK_ENTRY_POINTS",
    "find_entry_point",
    "is_ansible_available",
    "validate_content",
]
