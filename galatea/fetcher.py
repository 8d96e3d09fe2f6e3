"""Source fetching: turn a task or definition locator into local content.

Remote locators are downloaded with ``curl``; archives are unpacked with
``shutil.unpack_archive``. Local directories are used in place.
"""

import logging
import shutil
import tarfile
import tempfile
import zipfile
from pathlib import Path
from urllib.parse import unquote, urlparse

from galatea.errors import FetchError
from galatea.execution import run_exec_async

_logging = logging.getLogger(__name__)

ARCHIVE_SUFFIXES = (".zip", ".tar.gz", ".tgz", ".tar", ".tar.bz2", ".tar.xz")
REMOTE_SCHEMES = ("http", "https")
# Truncated or corrupt archives surface as any of these while unpacking.
UNPACK_ERRORS = (
    OSError,
    EOFError,
    ValueError,
    shutil.ReadError,
    tarfile.TarError,
    zipfile.BadZipFile,
)


def is_archive(name: str) -> bool:
    return name.lower().endswith(ARCHIVE_SUFFIXES)


def locator_filename(locator: str) -> str:
    """Return the last path component of a URL or path."""
    path = urlparse(locator).path if "://" in locator else locator
    name = Path(unquote(path)).name
    if not name:
        raise FetchError(f"cannot derive a file name from '{locator}'")
    return name


def _local_path(locator: str) -> Path | None:
    if locator.startswith("file://"):
        return Path(unquote(urlparse(locator).path))
    if "://" not in locator:
        return Path(locator).expanduser()
    return None


class SourceFetcher:
    """Fetches task payloads into a per-task cache directory."""

    def __init__(self, cache_dir: Path | str, timeout: int = 60):
        self.cache_dir = Path(cache_dir)
        self.timeout = timeout

    def content_dir(self, name: str) -> Path:
        return self.cache_dir / name

    def is_cached(self, name: str, locator: str) -> bool:
        local = _local_path(locator)
        if local is not None and local.is_dir():
            return True
        target = self.content_dir(name)
        return target.is_dir() and any(target.iterdir())

    async def fetch(self, name: str, locator: str) -> Path:
        """Return a local directory (or file) holding the task's content.

        Args:
            name: Task name, used as the cache key
            locator: Local path, file:// URL or http(s):// URL

        Returns:
            Path to the content

        Raises:
            FetchError: If the locator cannot be fetched or unpacked
        """
        local = _local_path(locator)
        if local is not None and local.is_dir():
            return local

        target = self.content_dir(name)
        if self.is_cached(name, locator):
            _logging.debug(f"Using cached content for {name}: {target}")
            return target

        if local is not None:
            if not local.is_file():
                raise FetchError(f"source not found for {name}: {local}")
            return self._materialize(local, target)

        with tempfile.TemporaryDirectory(prefix="galatea-") as tmp:
            downloaded = await self.download(locator, Path(tmp))
            return self._materialize(downloaded, target)

    async def download(self, url: str, directory: Path) -> Path:
        scheme = urlparse(url).scheme
        if scheme not in REMOTE_SCHEMES:
            raise FetchError(f"unsupported source scheme '{scheme}' in {url}")

        destination = directory / locator_filename(url)
        _logging.info(f"Downloading {url}")
        result = await run_exec_async(
            [
                "curl",
                "-fsSL",
                "--max-time",
                str(self.timeout),
                "-o",
                str(destination),
                url,
            ],
            timeout=self.timeout + 5,
        )
        if not result.ok or not destination.exists():
            raise FetchError(
                f"download failed for {url}: {result.stderr or f'exit code {result.exit_code}'}"
            )
        return destination

    def _materialize(self, source_file: Path, target: Path) -> Path:
        try:
            if target.exists():
                shutil.rmtree(target)
            target.mkdir(parents=True)
            if is_archive(source_file.name):
                shutil.unpack_archive(str(source_file), str(target))
            else:
                shutil.copy2(source_file, target / source_file.name)
        except UNPACK_ERRORS as e:
            shutil.rmtree(target, ignore_errors=True)
            raise FetchError(f"cannot unpack {source_file.name}: {e}") from e
        _logging.info(f"Fetched {source_file.name} into {target}")
        return target

    async def sync_sources(self, locators: list[str], target_dir: Path) -> list[Path]:
        """Bring definition sources into ``target_dir``.

        Plain definition files are copied as-is, archives are unpacked into
        the directory. Sources whose file is already present are skipped.

        Returns:
            Paths of the sources that were fetched this time
        """
        target_dir.mkdir(parents=True, exist_ok=True)
        fetched = []
        for locator in locators:
            filename = locator_filename(locator)
            marker = target_dir / f".{filename}.fetched" if is_archive(filename) else target_dir / filename
            if marker.exists():
                _logging.debug(f"Source already present: {filename}")
                continue

            local = _local_path(locator)
            with tempfile.TemporaryDirectory(prefix="galatea-") as tmp:
                if local is not None:
                    if not local.is_file():
                        raise FetchError(f"source not found: {local}")
                    source_file = local
                else:
                    source_file = await self.download(locator, Path(tmp))

                try:
                    if is_archive(filename):
                        shutil.unpack_archive(str(source_file), str(target_dir))
                        marker.write_text(locator + "\n", encoding="utf-8")
                    else:
                        shutil.copy2(source_file, marker)
                except UNPACK_ERRORS as e:
                    raise FetchError(f"cannot install source {filename}: {e}") from e
            fetched.append(marker)
            _logging.info(f"Fetched source {locator}")
        return fetched


__all__ = [
    "ARCHIVE_SUFFIXES",
    "SourceFetcher",
    "is_archive",
    "locator_filename",
]
