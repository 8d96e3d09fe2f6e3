"""Tests for config loading, validation and paths."""

from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from galatea.config import (
    DEFAULT_CONCURRENCY,
    Config,
    create_example_config,
    ensure_directories,
    load_config,
    save_config,
    validate_config,
)
from galatea.errors import ConfigError
from galatea.paths import CONFIG_ENV_VAR, get_config_search_paths


class TestValidateConfig:
    def test_empty_uses_defaults(self):
        config = validate_config({})
        assert config.concurrency == DEFAULT_CONCURRENCY
        assert config.task_timeout == 600
        assert config.download_timeout == 60
        assert config.retries == 2
        assert config.retry_delay == 2.0
        assert config.rollback_failed is False
        assert config.tasks_dir.endswith("tasks")

    def test_none_is_empty(self):
        assert validate_config(None) == Config()

    def test_unknown_key_rejected(self):
        with pytest.raises(ConfigError, match="Unknown config key"):
            validate_config({"concurency": 3})

    def test_non_mapping_rejected(self):
        with pytest.raises(ConfigError, match="mapping"):
            validate_config(["a"])

    @pytest.mark.parametrize(
        "data,key",
        [
            ({"concurrency": 0}, "concurrency"),
            ({"task_timeout": "ten"}, "task_timeout"),
            ({"retries": -1}, "retries"),
            ({"retry_delay": -0.5}, "retry_delay"),
            ({"rollback_failed": "yes"}, "rollback_failed"),
            ({"task_sources": ["ok", ""]}, "task_sources"),
            ({"tasks_dir": ""}, "tasks_dir"),
        ],
    )
    def test_invalid_values_name_the_key(self, data, key):
        with pytest.raises(ConfigError, match=key):
            validate_config(data)

    def test_bool_is_not_an_int(self):
        with pytest.raises(ConfigError):
            validate_config({"concurrency": True})


class TestSources:
    def test_add_and_remove(self):
        config = Config()
        assert config.add_task_source("https://example.com/a.zip")
        assert not config.add_task_source("https://example.com/a.zip")
        assert config.add_stack_source("https://example.com/s.zip")
        assert config.has_sources()
        assert config.remove_task_source("https://example.com/a.zip")
        assert not config.remove_task_source("https://example.com/a.zip")
        assert config.task_sources == []


class TestLoadSave:
    def test_round_trip(self, temp_dir):
        config = Config(tasks_dir=str(temp_dir / "t"), concurrency=8)
        config.add_task_source("https://example.com/a.zip")
        path = save_config(config, temp_dir / "galatea.yaml")

        loaded = load_config(path)
        assert loaded.concurrency == 8
        assert loaded.task_sources == ["https://example.com/a.zip"]
        assert loaded.config_file_path == path

    def test_log_dir_omitted_when_unset(self, temp_dir):
        path = save_config(Config(), temp_dir / "galatea.yaml")
        assert "log_dir" not in yaml.safe_load(path.read_text())

    def test_explicit_missing_path(self, temp_dir):
        with pytest.raises(ConfigError, match="not found"):
            load_config(temp_dir / "missing.yaml")

    def test_syntax_error(self, temp_dir):
        path = temp_dir / "galatea.yaml"
        path.write_text("tasks_dir: [unclosed\n")
        with pytest.raises(ConfigError, match="syntax"):
            load_config(path)

    def test_first_existing_candidate_wins(self, temp_dir):
        first = temp_dir / "missing.yaml"
        second = save_config(Config(concurrency=3), temp_dir / "second.yaml")
        third = save_config(Config(concurrency=5), temp_dir / "third.yaml")
        with patch("galatea.config.get_config_search_paths", return_value=[first, second, third]):
            assert load_config().concurrency == 3

    def test_defaults_written_when_nothing_found(self, temp_dir):
        user_path = temp_dir / "user" / "galatea.yaml"
        with patch("galatea.config.get_config_search_paths", return_value=[temp_dir / "none.yaml"]), \
                patch("galatea.config.get_user_config_path", return_value=user_path):
            config = load_config()
        assert user_path.exists()
        assert config.config_file_path == user_path

    def test_example_config(self, temp_dir):
        path = create_example_config(temp_dir / "example.yaml")
        config = load_config(path)
        assert len(config.task_sources) == 2
        assert len(config.stack_sources) == 1

    def test_ensure_directories(self, temp_dir):
        config = Config(
            tasks_dir=str(temp_dir / "a"),
            stacks_dir=str(temp_dir / "b"),
            state_dir=str(temp_dir / "c"),
            cache_dir=str(temp_dir / "d"),
        )
        ensure_directories(config)
        assert all((temp_dir / n).is_dir() for n in "abcd")
        assert config.ledger_path == temp_dir / "c" / "ledger.jsonl"


class TestSearchPaths:
    def test_explicit_only(self):
        assert get_config_search_paths("/tmp/x.yaml") == [Path("/tmp/x.yaml")]

    def test_env_var_first(self, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV_VAR, "/srv/galatea.yaml")
        paths = get_config_search_paths()
        assert paths[0] == Path("/srv/galatea.yaml")
        assert paths[1] == Path("/etc/galatea/galatea.yaml")

    def test_without_env_var(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        paths = get_config_search_paths()
        assert paths[0] == Path("/etc/galatea/galatea.yaml")
        assert paths[-1].name == "galatea.yaml"
