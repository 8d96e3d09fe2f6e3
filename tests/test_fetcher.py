"""Tests for source fetching."""

import shutil
from unittest.mock import AsyncMock, patch

import pytest

from galatea.engine import CommandResult
from galatea.errors import FetchError
from galatea.fetcher import SourceFetcher, is_archive, locator_filename


def _archive(temp_dir, name="task"):
    src = temp_dir / "src" / name
    src.mkdir(parents=True)
    (src / "install.sh").write_text("#!/bin/bash\nexit 0\n")
    base = shutil.make_archive(str(temp_dir / name), "gztar", root_dir=src)
    return temp_dir / base


def test_locator_filename():
    assert locator_filename("https://example.com/tasks/web.tgz?x=1") == "web.tgz"
    assert locator_filename("/srv/tasks/base.zip") == "base.zip"
    with pytest.raises(FetchError):
        locator_filename("https://example.com/")


def test_is_archive():
    assert is_archive("a.tar.gz")
    assert is_archive("a.ZIP")
    assert not is_archive("tasks.conf")


@pytest.mark.asyncio
async def test_local_directory_used_in_place(temp_dir):
    fetcher = SourceFetcher(temp_dir / "cache")
    content = temp_dir / "task"
    content.mkdir()
    assert fetcher.is_cached("task", str(content))
    assert await fetcher.fetch("task", str(content)) == content


@pytest.mark.asyncio
async def test_local_archive_unpacked_into_cache(temp_dir):
    archive = _archive(temp_dir)
    fetcher = SourceFetcher(temp_dir / "cache")

    assert not fetcher.is_cached("task", f"file://{archive}")
    path = await fetcher.fetch("task", f"file://{archive}")

    assert path == temp_dir / "cache" / "task"
    assert (path / "install.sh").is_file()
    assert fetcher.is_cached("task", f"file://{archive}")


@pytest.mark.asyncio
async def test_missing_local_file(temp_dir):
    fetcher = SourceFetcher(temp_dir / "cache")
    with pytest.raises(FetchError, match="not found"):
        await fetcher.fetch("task", str(temp_dir / "nope.tgz"))


@pytest.mark.asyncio
async def test_corrupt_archive(temp_dir):
    bad = temp_dir / "bad.zip"
    bad.write_text("not a zip")
    fetcher = SourceFetcher(temp_dir / "cache")
    with pytest.raises(FetchError, match="cannot unpack"):
        await fetcher.fetch("bad", str(bad))
    assert not (temp_dir / "cache" / "bad").exists()


@pytest.mark.asyncio
async def test_download_uses_curl(temp_dir):
    archive = _archive(temp_dir)

    async def fake_exec(argv, timeout, cwd=None):
        destination = argv[argv.index("-o") + 1]
        shutil.copy(archive, destination)
        return CommandResult(0)

    fetcher = SourceFetcher(temp_dir / "cache", timeout=7)
    with patch("galatea.fetcher.run_exec_async", new=AsyncMock(side_effect=fake_exec)) as mock_exec:
        path = await fetcher.fetch("task", "https://example.com/tasks/task.tar.gz")

    argv = mock_exec.call_args.args[0]
    assert argv[:2] == ["curl", "-fsSL"]
    assert argv[argv.index("--max-time") + 1] == "7"
    assert argv[-1] == "https://example.com/tasks/task.tar.gz"
    assert (path / "install.sh").is_file()


@pytest.mark.asyncio
async def test_download_failure(temp_dir):
    failed = CommandResult(22, stderr="404 Not Found")
    fetcher = SourceFetcher(temp_dir / "cache")
    with patch("galatea.fetcher.run_exec_async", new=AsyncMock(return_value=failed)):
        with pytest.raises(FetchError, match="404"):
            await fetcher.fetch("task", "https://example.com/tasks/task.tgz")


@pytest.mark.asyncio
async def test_unsupported_scheme(temp_dir):
    with pytest.raises(FetchError, match="unsupported"):
        await SourceFetcher(temp_dir / "cache").fetch("t", "ftp://example.com/t.tgz")


@pytest.mark.asyncio
async def test_sync_sources(temp_dir):
    defs = temp_dir / "remote.conf"
    defs.write_text("tasks: []\n")
    archive = _archive(temp_dir, "bundle")
    target = temp_dir / "tasks"
    fetcher = SourceFetcher(temp_dir / "cache")

    fetched = await fetcher.sync_sources([str(defs), f"file://{archive}"], target)

    assert (target / "remote.conf").is_file()
    assert (target / "install.sh").is_file()
    assert len(fetched) == 2
    assert await fetcher.sync_sources([str(defs), f"file://{archive}"], target) == []


def _truncate(path):
    data = path.read_bytes()
    path.write_bytes(data[: len(data) // 2])
    return path


@pytest.mark.asyncio
async def test_truncated_archive(temp_dir):
    src = temp_dir / "src" / "big"
    src.mkdir(parents=True)
    (src / "install.sh").write_text("#!/bin/bash\nexit 0\n")
    (src / "payload.bin").write_bytes(bytes(range(256)) * 512)
    archive = _truncate(temp_dir / shutil.make_archive(str(temp_dir / "big"), "gztar", root_dir=src))
    fetcher = SourceFetcher(temp_dir / "cache")

    with pytest.raises(FetchError, match="cannot unpack"):
        await fetcher.fetch("big", str(archive))
    assert not (temp_dir / "cache" / "big").exists()


@pytest.mark.asyncio
async def test_sync_sources_truncated_archive(temp_dir):
    archive = _truncate(_archive(temp_dir, "bundle"))
    fetcher = SourceFetcher(temp_dir / "cache")
    with pytest.raises(FetchError, match="cannot install source"):
        await fetcher.sync_sources([f"file://{archive}"], temp_dir / "tasks")
