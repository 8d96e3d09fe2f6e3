"""galatea: dependency-aware installer for shell and Ansible tasks."""

import logging
from datetime import datetime
from pathlib import Path

__version__ = "0.3.0"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def log_file_path(log_dir: str | Path) -> Path:
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return Path(log_dir).expanduser() / f"galatea_{stamp}.log"


def setup_logging(debug: bool = False, log_file: Path | None = None) -> None:
    """Configure the root logger for the CLI.

    Console output is WARNING and above unless ``debug`` is set. When
    ``log_file`` is given everything from INFO up (DEBUG with ``debug``) is
    also written there.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_galatea", False):
            root.removeHandler(handler)
            handler.close()

    level = logging.DEBUG if debug else logging.WARNING
    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    console._galatea = True
    root.addHandler(console)

    root.setLevel(logging.DEBUG if debug else logging.INFO if log_file else logging.WARNING)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG if debug else logging.INFO)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler._galatea = True
        root.addHandler(file_handler)


__all__ = [
    "__version__",
    "log_file_path",
    "setup_logging",
]
