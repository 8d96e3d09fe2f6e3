"""Async command execution and the script/playbook runner."""

import asyncio
import logging
from pathlib import Path

from galatea.engine.models import CommandResult, ExecutionUnit, ScriptKind
from galatea.engine.validation import (
    PLAYBOOK_ENTRY_POINTS,
    SHELL_ENTRY_POINTS,
    find_entry_point,
    is_ansible_available,
)

DEFAULT_TIMEOUT = 30
INSTALL_TIMEOUT = 600

_logging = logging.getLogger(__name__)


async def _communicate(process, timeout: int, label: str) -> CommandResult:
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        _ = await process.wait()
        _logging.error(f"Command timed out after {timeout} seconds: {label}")
        return CommandResult(
            exit_code=1,
            stderr=f"Command timed out after {timeout} seconds",
            timed_out=True,
        )
    exit_code = process.returncode if process.returncode is not None else 1
    return CommandResult(
        exit_code=exit_code,
        stdout=stdout.decode(errors="replace").strip(),
        stderr=stderr.decode(errors="replace").strip(),
        retryable=exit_code != 0,
    )


async def run_command_async(
    command: str, timeout: int = DEFAULT_TIMEOUT, debug: bool = False, cwd: Path | None = None
) -> CommandResult:
    """Run a shell command asynchronously and capture its result."""
    process = None
    try:
        if debug:
            _logging.debug(f"Running command: {command}")
        process = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
        )
        result = await _communicate(process, timeout, command)
        if result.stderr and debug:
            _logging.debug(f"stderr: {result.stderr}")
        return result
    except OSError as e:
        _logging.error(f"Command execution failed: {type(e).__name__}: {e} | Command: {command}")
        return CommandResult(exit_code=1, stderr=f"Error: {e}")
    finally:
        if process:
            transport = getattr(process, "_transport", None)
            if transport:
                transport.close()


async def run_exec_async(
    argv: list[str], timeout: int = DEFAULT_TIMEOUT, cwd: Path | None = None
) -> CommandResult:
    """Run a program without a shell and capture its result."""
    process = None
    label = " ".join(argv)
    try:
        _logging.debug(f"Executing: {label}")
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
        )
        return await _communicate(process, timeout, label)
    except OSError as e:
        _logging.error(f"Command execution failed: {type(e).__name__}: {e} | Command: {label}")
        return CommandResult(exit_code=1, stderr=f"Error: {e}")
    finally:
        if process:
            transport = getattr(process, "_transport", None)
            if transport:
                transport.close()


class ScriptRunner:
    """Runs shell scripts and Ansible playbooks on the local host."""

    def __init__(self, debug: bool = False):
        self.debug = debug

    async def run(self, unit: ExecutionUnit, timeout: int = INSTALL_TIMEOUT) -> CommandResult:
        if unit.kind == ScriptKind.SHELL:
            return await self._run_shell(unit, timeout)
        if unit.kind == ScriptKind.PLAYBOOK:
            return await self._run_playbook(unit, timeout)

        result = await self._run_playbook(unit, timeout)
        if result.ok or result.timed_out:
            return result
        _logging.warning(
            f"Playbook failed for mixed unit {unit.path}, falling back to shell script"
        )
        return await self._run_shell(unit, timeout)

    async def run_command(self, command: str, timeout: int = INSTALL_TIMEOUT) -> CommandResult:
        _logging.info(f"Running command: {command}")
        return await run_command_async(command, timeout=timeout, debug=self.debug)

    async def _run_shell(self, unit: ExecutionUnit, timeout: int) -> CommandResult:
        script = unit.path
        if script.is_dir():
            script = find_entry_point(script, SHELL_ENTRY_POINTS)
        if script is None or not script.is_file():
            return CommandResult(exit_code=1, stderr=f"Script not found in {unit.path}")
        _logging.info(f"Running shell script {script} with args {unit.args}")
        return await run_exec_async(
            ["bash", str(script), *unit.args], timeout=timeout, cwd=script.parent
        )

    async def _run_playbook(self, unit: ExecutionUnit, timeout: int) -> CommandResult:
        playbook = unit.path
        if playbook.is_dir():
            playbook = find_entry_point(playbook, PLAYBOOK_ENTRY_POINTS)
        if playbook is None or not playbook.is_file():
            return CommandResult(exit_code=1, stderr=f"Playbook not found in {unit.path}")
        _logging.info(f"Running playbook {playbook} with tag {unit.action}")
        return await run_exec_async(
            [
                "ansible-playbook",
                "-i",
                "localhost,",
                "--connection=local",
                f"--tags={unit.action}",
                str(playbook),
            ],
            timeout=timeout,
            cwd=playbook.parent,
        )


__all__ = [
    "DEFAULT_TIMEOUT",
    "INSTALL_TIMEOUT",
    "SHELL_ENTRY_POINTS",
    "PLAYBOOK_ENTRY_POINTS",
    "CommandResult",
    "ExecutionUnit",
    "ScriptRunner",
    "find_entry_point",
    "is_ansible_available",
    "run_command_async",
    "run_exec_async",
]
