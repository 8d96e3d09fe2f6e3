"""Configuration loading and validation."""

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path

import yaml

from galatea.errors import ConfigError
from galatea.paths import get_config_search_paths, get_data_dir, get_user_config_path

_logging = logging.getLogger(__name__)


DEFAULT_DOWNLOAD_TIMEOUT = 60
DEFAULT_TASK_TIMEOUT = 600
DEFAULT_CONCURRENCY = 4
DEFAULT_RETRIES = 2
DEFAULT_RETRY_DELAY = 2.0


def _default_dir(name: str) -> str:
    return str(get_data_dir() / name)


@dataclass
class Config:
    """Root configuration for a galatea installation."""
    tasks_dir: str = field(default_factory=lambda: _default_dir("tasks"))
    stacks_dir: str = field(default_factory=lambda: _default_dir("stacks"))
    state_dir: str = field(default_factory=lambda: _default_dir("state"))
    cache_dir: str = field(default_factory=lambda: _default_dir("cache"))
    download_timeout: int = DEFAULT_DOWNLOAD_TIMEOUT
    task_timeout: int = DEFAULT_TASK_TIMEOUT
    concurrency: int = DEFAULT_CONCURRENCY
    retries: int = DEFAULT_RETRIES
    retry_delay: float = DEFAULT_RETRY_DELAY
    rollback_failed: bool = False
    task_sources: list[str] = field(default_factory=list)
    stack_sources: list[str] = field(default_factory=list)
    log_dir: str | None = None
    config_file_path: Path | None = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        for name in ("tasks_dir", "stacks_dir", "state_dir", "cache_dir"):
            value = getattr(self, name)
            if not value or not isinstance(value, str):
                raise ValueError(f"{name} must be a non-empty string")
        for name in ("download_timeout", "task_timeout", "concurrency"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer")
        if isinstance(self.retries, bool) or not isinstance(self.retries, int) or self.retries < 0:
            raise ValueError("retries must be a non-negative integer")
        if isinstance(self.retry_delay, bool) or not isinstance(self.retry_delay, (int, float)) or self.retry_delay < 0:
            raise ValueError("retry_delay must be a non-negative number")
        if not isinstance(self.rollback_failed, bool):
            raise ValueError("rollback_failed must be a boolean")
        for name in ("task_sources", "stack_sources"):
            value = getattr(self, name)
            if not isinstance(value, list) or not all(
                isinstance(item, str) and item.strip() for item in value
            ):
                raise ValueError(f"{name} must be a list of non-empty strings")

    def has_sources(self) -> bool:
        return bool(self.task_sources or self.stack_sources)

    @property
    def ledger_path(self) -> Path:
        return Path(self.state_dir) / "ledger.jsonl"

    def add_task_source(self, url: str) -> bool:
        if url in self.task_sources:
            return False
        self.task_sources.append(url)
        return True

    def add_stack_source(self, url: str) -> bool:
        if url in self.stack_sources:
            return False
        self.stack_sources.append(url)
        return True

    def remove_task_source(self, url: str) -> bool:
        before = len(self.task_sources)
        self.task_sources = [u for u in self.task_sources if u != url]
        return len(self.task_sources) < before

    def remove_stack_source(self, url: str) -> bool:
        before = len(self.stack_sources)
        self.stack_sources = [u for u in self.stack_sources if u != url]
        return len(self.stack_sources) < before

    def to_dict(self) -> dict:
        data = asdict(self)
        data.pop("config_file_path", None)
        if data["log_dir"] is None:
            data.pop("log_dir")
        return data


_KNOWN_KEYS = {f for f in Config.__dataclass_fields__ if f != "config_file_path"}


def validate_config(data: dict) -> Config:
    """Validate and convert raw dict to Config dataclass.

    Args:
        data: Raw dict from yaml.safe_load() containing config data

    Returns:
        Config object with defaults applied for missing keys

    Raises:
        ConfigError: If validation fails, naming the offending key
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config must be a YAML mapping, got {type(data).__name__}")

    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"Unknown config key(s): {', '.join(unknown)}")

    try:
        return Config(**data)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid config: {e}") from e


def _read_config_file(path: Path) -> Config:
    try:
        text = path.read_text(encoding="utf-8")
    except PermissionError:
        raise ConfigError(f"Permission denied reading config file: {path}")
    except UnicodeDecodeError:
        raise ConfigError(f"Config file is not valid UTF-8: {path}")
    except OSError as e:
        raise ConfigError(f"Error reading config file {path}: {e}")

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Config syntax error in {path}: {e}") from e

    config = validate_config(raw)
    config.config_file_path = path
    return config


def load_config(path: str | Path | None = None) -> Config:
    """Load configuration from the first existing candidate file.

    An explicit path must exist. Without one, the search path is walked and,
    when nothing is found, defaults are written to the user config path.

    Args:
        path: Optional explicit config file path

    Returns:
        Loaded Config

    Raises:
        ConfigError: If the chosen file cannot be read or is invalid
    """
    candidates = get_config_search_paths(path)

    if path is not None and not candidates[0].exists():
        raise ConfigError(f"Config file not found: {candidates[0]}")

    for candidate in candidates:
        if candidate.exists():
            _logging.info(f"Loading configuration from {candidate}")
            return _read_config_file(candidate)

    config = Config()
    default_path = get_user_config_path()
    try:
        save_config(config, default_path)
        config.config_file_path = default_path
        _logging.info(f"Created default configuration at {default_path}")
    except ConfigError as e:
        _logging.warning(f"Could not save default configuration: {e}")
    return config


def save_config(config: Config, path: Path | None = None) -> Path:
    """Write configuration as YAML, returning the path written."""
    target = path or config.config_file_path or get_user_config_path()
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        raise ConfigError(f"Could not write config file {target}: {e}") from e
    return target


def ensure_directories(config: Config) -> None:
    """Create the task, stack, state and cache directories if missing."""
    for directory in (config.tasks_dir, config.stacks_dir, config.state_dir, config.cache_dir):
        try:
            Path(directory).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigError(f"Could not create directory {directory}: {e}") from e


def create_example_config(path: Path) -> Path:
    """Write an example configuration with sample sources."""
    config = Config()
    config.add_task_source("https://example.com/tasks/security.zip")
    config.add_task_source("https://example.com/tasks/monitoring.zip")
    config.add_stack_source("https://example.com/stacks/web_server.zip")
    return save_config(config, path)


__all__ = [
    "Config",
    "DEFAULT_DOWNLOAD_TIMEOUT",
    "DEFAULT_TASK_TIMEOUT",
    "DEFAULT_CONCURRENCY",
    "DEFAULT_RETRIES",
    "DEFAULT_RETRY_DELAY",
    "validate_config",
    "load_config",
    "save_config",
    "ensure_directories",
    "create_example_config",
]
