"""Unit tests for environment-driven settings and run context helpers."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from rcmlet.context import find_workspace_root, invocation_env, merge_env, parse_key_value_args
from rcmlet.settings import Settings

SETTINGS_VARS = ("RCM_WORKSPACE", "RCM_TIMEOUT", "RCM_PARALLEL_JOBS", "RCM_LOG_LEVEL")


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> pytest.MonkeyPatch:
    """Unset every RCM_ setting and point the workspace at tmp_path."""
    for var in SETTINGS_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("RCM_WORKSPACE", str(tmp_path))
    return monkeypatch


def test_defaults(clean_env, tmp_path: Path) -> None:
    s = Settings.from_env()

    assert s.workspace == tmp_path.resolve()
    assert s.timeout is None
    assert s.parallel_jobs == 1
    assert s.log_level == "WARNING"


def test_values_are_parsed(clean_env) -> None:
    clean_env.setenv("RCM_TIMEOUT", "90")
    clean_env.setenv("RCM_PARALLEL_JOBS", "4")
    clean_env.setenv("RCM_LOG_LEVEL", "debug")

    s = Settings.from_env()

    assert s.timeout == 90.0
    assert s.parallel_jobs == 4
    assert s.log_level == "DEBUG"


def test_blank_values_count_as_unset(clean_env) -> None:
    clean_env.setenv("RCM_TIMEOUT", "")
    clean_env.setenv("RCM_PARALLEL_JOBS", "")

    s = Settings.from_env()

    assert s.timeout is None
    assert s.parallel_jobs == 1


def test_workspace_defaults_to_nearest_rcm_dir(clean_env, tmp_path: Path) -> None:
    (tmp_path / ".rcm").mkdir()
    nested = tmp_path / "src" / "pkg"
    nested.mkdir(parents=True)
    clean_env.delenv("RCM_WORKSPACE")
    clean_env.chdir(nested)

    assert Settings.from_env().workspace == tmp_path.resolve()


@pytest.mark.parametrize(
    "name,value",
    [
        ("RCM_TIMEOUT", "soon"),
        ("RCM_TIMEOUT", "0"),
        ("RCM_PARALLEL_JOBS", "0"),
        ("RCM_PARALLEL_JOBS", "two"),
        ("RCM_LOG_LEVEL", "LOUD"),
    ],
)
def test_invalid_values_name_the_variable(clean_env, name: str, value: str) -> None:
    clean_env.setenv(name, value)

    with pytest.raises(ValueError, match=name):
        Settings.from_env()


def test_settings_are_frozen(clean_env) -> None:
    s = Settings.from_env()

    with pytest.raises(ValidationError):
        s.parallel_jobs = 8


def test_workspace_root_is_nearest_rcm_ancestor(tmp_path: Path) -> None:
    (tmp_path / ".rcm").mkdir()
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)

    assert find_workspace_root(nested) == tmp_path.resolve()


def test_workspace_root_falls_back_to_start(tmp_path: Path) -> None:
    assert find_workspace_root(tmp_path) == tmp_path.resolve()


def test_merge_env_later_layers_win() -> None:
    assert merge_env({"A": "1", "B": "1"}, None, {"A": "2"}) == {"A": "2", "B": "1"}


def test_key_value_args_keep_everything_after_first_equals() -> None:
    assert parse_key_value_args(["URL=http://x/?a=b", "EMPTY="]) == {"URL": "http://x/?a=b", "EMPTY": ""}


@pytest.mark.parametrize("arg", ["NOEQUALS", "=value", "  =x"])
def test_key_value_args_reject_malformed_pairs(arg: str) -> None:
    with pytest.raises(ValueError):
        parse_key_value_args([arg])


def test_invocation_env_exports_named_environment() -> None:
    assert invocation_env(["A=1"], "prod") == {"RCM_ENV": "prod", "A": "1"}
    assert invocation_env() == {}
