"""Durable installation ledger.

The ledger is an append-only JSON-lines journal. Each line is either a
``record`` entry carrying a full installation record or a ``remove`` entry
naming a task. Replaying the journal from the top yields the active records:
a later ``record`` for a name supersedes an earlier one, a ``remove`` drops it.

Every append is flushed and fsynced before the call returns, so a record the
executor has been told about survives a crash.
"""

import fcntl
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from galatea.errors import LedgerError, LedgerErrorKind, NotFoundError

from .models import CleanupRef, InstallationRecord, Outcome, ScriptKind

_logging = logging.getLogger(__name__)

MAX_OUTPUT_CHARS = 4000


class Ledger:
    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._records: dict[str, InstallationRecord] = {}
        self._sequence = 0
        self._write_lock = threading.Lock()
        self._locks_guard = threading.Lock()
        self._name_locks: dict[str, threading.Lock] = {}
        self.reload()

    def reload(self) -> None:
        """Rebuild the in-memory view by replaying the journal.

        Raises:
            LedgerError: CORRUPT if any line cannot be parsed
        """
        records: dict[str, InstallationRecord] = {}
        sequence = 0

        if self.path.exists():
            try:
                lines = self.path.read_text(encoding="utf-8").splitlines()
            except (OSError, UnicodeDecodeError) as e:
                raise LedgerError(LedgerErrorKind.CORRUPT, f"cannot read {self.path}: {e}") from e

            for lineno, line in enumerate(lines, 1):
                if not line.strip():
                    continue
                try:
                    entry = json.loads(line)
                    op = entry.pop("op")
                    if op == "record":
                        record = InstallationRecord.from_dict(entry)
                        records[record.task_name] = record
                        sequence = max(sequence, record.sequence)
                    elif op == "remove":
                        records.pop(entry["task_name"], None)
                    else:
                        raise ValueError(f"unknown op '{op}'")
                except (json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as e:
                    raise LedgerError(
                        LedgerErrorKind.CORRUPT, f"{self.path} line {lineno}: {e}"
                    ) from e

        self._records = records
        self._sequence = sequence

    @contextmanager
    def _lock_for(self, name: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._name_locks.setdefault(name, threading.Lock())
        with lock:
            yield

    def _append(self, entry: dict) -> None:
        line = json.dumps(entry, sort_keys=True) + "\n"
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise LedgerError(LedgerErrorKind.WRITE_FAILED, f"{self.path}: {e}") from e

    def record(
        self,
        task_name: str,
        outcome: Outcome,
        cleanup: CleanupRef | None = None,
        exit_code: int | None = None,
        output: str = "",
        kind: ScriptKind | None = None,
        content_path: str | None = None,
    ) -> InstallationRecord:
        """Durably record the outcome of installing ``task_name``.

        A new record supersedes any earlier one for the same name, so there is
        at most one active record per task. ``kind`` and ``content_path`` name
        the script the task was installed from, for later reset and remediate
        runs.
        """
        with self._lock_for(task_name):
            with self._write_lock:
                record = InstallationRecord(
                    task_name=task_name,
                    outcome=outcome,
                    exit_code=exit_code,
                    output=output[-MAX_OUTPUT_CHARS:],
                    cleanup=cleanup,
                    kind=kind,
                    content_path=content_path,
                    sequence=self._sequence + 1,
                )
                self._append({"op": "record", **record.to_dict()})
                self._sequence = record.sequence
            self._records[task_name] = record
        _logging.debug(f"Ledger: recorded {task_name} as {outcome.value}")
        return record

    def remove(self, task_name: str) -> None:
        with self._lock_for(task_name):
            if task_name not in self._records:
                raise NotFoundError(f"no ledger record for '{task_name}'")
            with self._write_lock:
                self._append({"op": "remove", "task_name": task_name})
            del self._records[task_name]
        _logging.debug(f"Ledger: removed {task_name}")

    def get(self, task_name: str) -> InstallationRecord | None:
        return self._records.get(task_name)

    def is_satisfied(self, task_name: str) -> bool:
        record = self._records.get(task_name)
        return record is not None and record.outcome == Outcome.SUCCESS

    def satisfied(self) -> set[str]:
        return {name for name in self._records if self.is_satisfied(name)}

    def installed(self) -> set[str]:
        """Names with any active record, whatever the outcome."""
        return set(self._records)

    def list(self) -> list[InstallationRecord]:
        return sorted(self._records.values(), key=lambda r: r.sequence)

    def compact(self) -> None:
        """Atomically rewrite the journal with only the active records."""
        with self._write_lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    prefix=".ledger-", suffix=".tmp", dir=self.path.parent
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        for record in self.list():
                            f.write(json.dumps({"op": "record", **record.to_dict()}, sort_keys=True) + "\n")
                        f.flush()
                        os.fsync(f.fileno())
                    os.replace(tmp_name, self.path)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
            except OSError as e:
                raise LedgerError(LedgerErrorKind.WRITE_FAILED, f"compaction failed: {e}") from e
        _logging.info(f"Compacted ledger to {len(self._records)} records")

    @contextmanager
    def exclusive(self) -> Iterator["Ledger"]:
        """Hold an inter-process lock on the ledger for the duration of a run.

        The journal is replayed after the lock is taken, so the run starts
        from what is on disk.

        Raises:
            LedgerError: LOCKED if another process holds the lock
        """
        lock_path = self.path.with_suffix(".lock")
        try:
            lock_path.parent.mkdir(parents=True, exist_ok=True)
            handle = open(lock_path, "a")
        except OSError as e:
            raise LedgerError(LedgerErrorKind.WRITE_FAILED, f"cannot open {lock_path}: {e}") from e
        try:
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                raise LedgerError(
                    LedgerErrorKind.LOCKED, f"another run holds {lock_path}"
                ) from None
            try:
                self.reload()
                yield self
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        finally:
            handle.close()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, task_name: str) -> bool:
        return task_name in self._records


__all__ = ["Ledger", "MAX_OUTPUT_CHARS"]
