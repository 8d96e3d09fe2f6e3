"""Pytest fixtures and test doubles for galatea tests."""

import asyncio
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from galatea.engine import (
    CommandResult,
    DefinitionStore,
    Executor,
    ExecutorSettings,
    ExecutionUnit,
    Ledger,
    Orchestrator,
    ScriptKind,
    Stack,
    Task,
)
from galatea.errors import FetchError


def make_task(name: str, deps: list[str] | None = None, **kwargs) -> Task:
    kwargs.setdefault("kind", ScriptKind.SHELL)
    kwargs.setdefault("source", f"https://example.com/tasks/{name}.tgz")
    return Task(name=name, dependencies=list(deps or []), **kwargs)


def make_stack(name: str, members: list[str], deps: list[str] | None = None, **kwargs) -> Stack:
    return Stack(name=name, members=list(members), dependencies=list(deps or []), **kwargs)


class FakeRunner:
    """Runner double: records every invocation and replays scripted results.

    ``results[name]`` is a list of CommandResults consumed one per call; once
    exhausted (or when absent) the call succeeds.
    """

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.results: dict[str, list[CommandResult]] = {}
        self.calls: list[tuple[str, str]] = []
        self.commands: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def script(self, name: str, *results: CommandResult) -> None:
        self.results[name] = list(results)

    def names(self, action: str = "install") -> list[str]:
        return [name for name, act in self.calls if act == action]

    async def _invoke(self, name: str) -> CommandResult:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            queue = self.results.get(name)
            if queue:
                return queue.pop(0)
            return CommandResult(exit_code=0, stdout=f"{name} ok")
        finally:
            self.in_flight -= 1

    async def run(self, unit: ExecutionUnit, timeout: int) -> CommandResult:
        name = unit.path.name
        self.calls.append((name, unit.action))
        return await self._invoke(name)

    async def run_command(self, command: str, timeout: int) -> CommandResult:
        self.commands.append(command)
        return await self._invoke(command)


class FakeFetcher:
    """Fetcher double that materializes a runnable shell task per name."""

    def __init__(self, root: Path):
        self.root = root
        self.failures: dict[str, int] = {}
        self.cached: set[str] = set()
        self.fetched: list[str] = []
        self.crashes: set[str] = set()

    def is_cached(self, name: str, locator: str) -> bool:
        return name in self.cached

    async def fetch(self, name: str, locator: str) -> Path:
        self.fetched.append(name)
        if name in self.crashes:
            raise RuntimeError(f"fetcher crashed on {name}")
        if self.failures.get(name, 0) > 0:
            self.failures[name] -= 1
            raise FetchError(f"download failed for {locator}")
        content = self.root / name
        content.mkdir(parents=True, exist_ok=True)
        (content / "install.sh").write_text("#!/bin/bash\necho $1\n")
        self.cached.add(name)
        return content


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def ledger(temp_dir: Path) -> Ledger:
    return Ledger(temp_dir / "state" / "ledger.jsonl")


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def make_runner():
    """Factory for runner doubles that take ``delay`` seconds per call."""

    def _make(delay: float = 0.0) -> FakeRunner:
        return FakeRunner(delay=delay)

    return _make


@pytest.fixture
def fake_fetcher(temp_dir: Path) -> FakeFetcher:
    return FakeFetcher(temp_dir / "content")


@pytest.fixture
def settings() -> ExecutorSettings:
    return ExecutorSettings(concurrency=4, retries=2, retry_delay=0, task_timeout=5)


@pytest.fixture
def scenario_store() -> DefinitionStore:
    """T1 <- T2, with stack S1 = {T1, T2} requiring a reboot."""
    store = DefinitionStore()
    errors = store.load(
        [make_task("T1"), make_task("T2", ["T1"])],
        [make_stack("S1", ["T1", "T2"], requires_reboot=True)],
    )
    assert errors == []
    return store


@pytest.fixture
def make_executor(ledger, fake_runner, fake_fetcher, settings):
    def _make(store: DefinitionStore) -> Executor:
        return Executor(store, ledger, fake_runner, fake_fetcher, settings)

    return _make


@pytest.fixture
def make_orchestrator(ledger, fake_runner, fake_fetcher, settings):
    def _make(store: DefinitionStore) -> Orchestrator:
        return Orchestrator(store, ledger, fake_runner, fake_fetcher, settings)

    return _make


@pytest.fixture
def config_file(temp_dir: Path) -> Path:
    """A galatea.yaml pointing every directory into the temp dir."""
    import yaml

    data = {
        "tasks_dir": str(temp_dir / "tasks"),
        "stacks_dir": str(temp_dir / "stacks"),
        "state_dir": str(temp_dir / "state"),
        "cache_dir": str(temp_dir / "cache"),
        "retry_delay": 0,
    }
    path = temp_dir / "galatea.yaml"
    path.write_text(yaml.safe_dump(data))
    return path
