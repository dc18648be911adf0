"""Tests for resolver config loading."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from resultrefs.config import ResolverConfig, load_config
from resultrefs.templates import DEFAULT_SYNTAX


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "resultrefs.yaml"
    config = {
        "strict_duplicates": True,
        "syntax": {
            "task_part": "tasks",
            "result_part": "results",
            "forms": {
                "dot": {
                    "base": "{task_part}.{task}.{result_part}.{result}",
                    "key_suffix": ".{key}",
                },
            },
        },
    }
    path.write_text(yaml.dump(config))
    return path


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    for name in (
        "RESULTREFS_STRICT_DUPLICATES",
        "RESULTREFS_TASK_PART",
        "RESULTREFS_RESULT_PART",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = ResolverConfig()
    assert config.strict_duplicates is False
    assert config.syntax.task_part == "tasks"
    assert config.syntax.result_part == "results"
    assert list(config.syntax.forms) == ["dot", "double_quoted", "single_quoted"]


def test_load_config(config_path):
    config = load_config(config_path)
    assert config.strict_duplicates is True
    assert list(config.syntax.forms) == ["dot"]
    assert config.syntax.forms["dot"].key_suffix == ".{key}"


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    config = load_config(path)
    assert config == ResolverConfig()


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_invalid_schema(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text(yaml.dump({"syntax": {"forms": {}}}))
    with pytest.raises(ValidationError):
        load_config(path)


@pytest.mark.parametrize("raw, expected", [("1", True), ("yes", True), ("false", False), ("0", False)])
def test_env_strict_override(config_path, monkeypatch, raw, expected):
    monkeypatch.setenv("RESULTREFS_STRICT_DUPLICATES", raw)
    assert load_config(config_path).strict_duplicates is expected


def test_env_syntax_overrides(config_path, monkeypatch):
    monkeypatch.setenv("RESULTREFS_TASK_PART", "steps")
    monkeypatch.setenv("RESULTREFS_RESULT_PART", "outputs")
    config = load_config(config_path)
    assert config.syntax.task_part == "steps"
    assert config.syntax.result_part == "outputs"


def test_env_overrides_do_not_leak(tmp_path, monkeypatch):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    monkeypatch.setenv("RESULTREFS_TASK_PART", "steps")
    config = load_config(path)
    assert config.syntax.task_part == "steps"
    assert list(config.syntax.forms) == ["dot", "double_quoted", "single_quoted"]
    assert DEFAULT_SYNTAX.task_part == "tasks"
    assert ResolverConfig().syntax.task_part == "tasks"


def test_loaded_config_is_frozen(config_path):
    config = load_config(config_path)
    with pytest.raises(ValidationError):
        config.strict_duplicates = False
    with pytest.raises(ValidationError):
        config.syntax.result_part = "outputs"
