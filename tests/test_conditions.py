"""Unit tests for condition evaluation."""

from __future__ import annotations

from pathlib import Path

import pytest

from rcmlet.conditions import ConditionEvaluator
from rcmlet.context import current_platform
from rcmlet.dsl import if_command, if_env, if_file, if_package, if_platform
from rcmlet.errors import ConditionCheckError
from rcmlet.model import Condition


def test_file_exists_resolves_against_workspace(evaluator: ConditionEvaluator, workspace: Path) -> None:
    (workspace / "Cargo.toml").write_text("[package]\n", encoding="utf-8")

    assert evaluator.evaluate(if_file("Cargo.toml"), workspace) is True
    assert evaluator.evaluate(if_file("package.json"), workspace) is False


def test_file_exists_accepts_absolute_paths(evaluator: ConditionEvaluator, workspace: Path, tmp_path: Path) -> None:
    outside = tmp_path / "elsewhere.txt"
    outside.write_text("x", encoding="utf-8")

    assert evaluator.evaluate(if_file(str(outside)), workspace) is True


def test_file_exists_matches_directories(evaluator: ConditionEvaluator, workspace: Path) -> None:
    (workspace / ".git").mkdir()

    assert evaluator.evaluate(if_file(".git"), workspace) is True


def test_command_exists_uses_path_lookup(evaluator: ConditionEvaluator, workspace: Path) -> None:
    assert evaluator.evaluate(if_command("git"), workspace) is True
    assert evaluator.evaluate(if_command("definitely-not-installed"), workspace) is False


def test_env_var_checks_process_environment(workspace: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RCM_TEST_PRESENT", "")
    monkeypatch.delenv("RCM_TEST_ABSENT", raising=False)
    ev = ConditionEvaluator()

    # presence is what counts, an empty value still satisfies the check
    assert ev.evaluate(if_env("RCM_TEST_PRESENT"), workspace) is True
    assert ev.evaluate(if_env("RCM_TEST_ABSENT"), workspace) is False


def test_env_var_uses_injected_environment(workspace: Path) -> None:
    ev = ConditionEvaluator(environ={"CI": "1"})

    assert ev.evaluate(if_env("CI"), workspace) is True
    assert ev.evaluate(if_env("HOME"), workspace) is False


def test_platform_compares_canonical_name(evaluator: ConditionEvaluator, workspace: Path) -> None:
    assert evaluator.evaluate(if_platform("linux"), workspace) is True
    assert evaluator.evaluate(if_platform("windows"), workspace) is False


def test_platform_defaults_to_running_os() -> None:
    assert ConditionEvaluator().platform == current_platform()


def test_package_installed_is_a_path_lookup(evaluator: ConditionEvaluator, workspace: Path) -> None:
    assert evaluator.evaluate(if_package("curl"), workspace) is True
    assert evaluator.evaluate(if_package("libssl-dev"), workspace) is False


def test_unknown_kind_raises(evaluator: ConditionEvaluator, workspace: Path) -> None:
    with pytest.raises(ConditionCheckError) as exc:
        evaluator.evaluate(Condition(kind="MoonPhase", value="full"), workspace, action="howl")

    assert exc.value.action == "howl"
    assert exc.value.kind == "MoonPhase"


@pytest.mark.parametrize("value", ["", "   "])
def test_empty_value_raises(evaluator: ConditionEvaluator, workspace: Path, value: str) -> None:
    with pytest.raises(ConditionCheckError, match="empty value"):
        evaluator.evaluate(Condition(kind="FileExists", value=value), workspace)
