# src/rcmlet/dsl.py
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from .model import Action, Condition, ConditionKind, Constraints, Spec


# ---------------------------------------------------------------------
# Condition helpers
# ---------------------------------------------------------------------

def if_file(path: str) -> Condition:
    return Condition(kind=ConditionKind.FILE_EXISTS.value, value=path)


def if_command(command: str) -> Condition:
    return Condition(kind=ConditionKind.COMMAND_EXISTS.value, value=command)


def if_env(var: str) -> Condition:
    return Condition(kind=ConditionKind.ENV_VAR.value, value=var)


def if_platform(platform: str) -> Condition:
    return Condition(kind=ConditionKind.PLATFORM.value, value=platform)


def if_package(name: str) -> Condition:
    """Best effort: only checks that a command with this name is on PATH."""
    return Condition(kind=ConditionKind.PACKAGE_INSTALLED.value, value=name)


# ---------------------------------------------------------------------
# Action helper
# ---------------------------------------------------------------------

def action(
    name: str,
    command: str,
    *args: str,
    cwd: str | None = None,
    env: Optional[Dict[str, str]] = None,
    when: Optional[Sequence[Condition]] = None,
    parallel: bool = False,
    needs: Optional[List[str]] = None,
    timeout: float | None = None,
) -> Action:
    """Create an action: action("build", "cargo", "build", cwd=".")."""
    return Action(
        name=name,
        command=command,
        args=list(args),
        working_dir=cwd,
        env={k: str(v) for k, v in (env or {}).items()},
        conditions=list(when or []),
        parallel=parallel,
        needs=needs or [],
        timeout=timeout,
    )


# ---------------------------------------------------------------------
# Functional Spec helper
# ---------------------------------------------------------------------

def spec(
    target: str,
    *actions: Action,
    version: str | None = None,
    manager: str | None = None,
    dependencies: Optional[List[str]] = None,
    environment: Optional[Dict[str, str]] = None,
    platforms: Optional[List[str]] = None,
    min_memory_mb: int | None = None,
    required_commands: Optional[List[str]] = None,
    required_env_vars: Optional[List[str]] = None,
) -> Spec:
    return Spec(
        target=target,
        version=version,
        manager=manager,
        dependencies=dependencies or [],
        actions=list(actions),
        environment=environment or {},
        constraints=Constraints(
            platforms=platforms or [],
            min_memory_mb=min_memory_mb,
            required_commands=required_commands or [],
            required_env_vars=required_env_vars or [],
        ),
    )


# ---------------------------------------------------------------------
# Builder API
# ---------------------------------------------------------------------

class SpecBuilder:
    def __init__(self, target: str):
        self.target = target
        self._version: Optional[str] = None
        self._manager: Optional[str] = None
        self._dependencies: list[str] = []
        self._actions: list[Action] = []
        self._environment: dict[str, str] = {}
        self._platforms: list[str] = []
        self._min_memory_mb: Optional[int] = None
        self._required_commands: list[str] = []
        self._required_env_vars: list[str] = []

    def version(self, constraint: str):
        self._version = constraint
        return self

    def managed_by(self, manager: str):
        self._manager = manager
        return self

    def depends_on(self, *targets: str):
        self._dependencies.extend(targets)
        return self

    def define_action(self, name: str, command: str, *args: str, **kwargs):
        self._actions.append(action(name, command, *args, **kwargs))
        return self

    def with_env(self, **env):
        self._environment.update({k: str(v) for k, v in env.items()})
        return self

    def on_platforms(self, *platforms: str):
        self._platforms.extend(platforms)
        return self

    def min_memory(self, mb: int):
        self._min_memory_mb = mb
        return self

    def define_requirements(self, *commands: str):
        self._required_commands.extend(commands)
        return self

    def require_env(self, *names: str):
        self._required_env_vars.extend(names)
        return self

    def build(self) -> Spec:
        return spec(
            self.target,
            *self._actions,
            version=self._version,
            manager=self._manager,
            dependencies=self._dependencies,
            environment=self._environment,
            platforms=self._platforms,
            min_memory_mb=self._min_memory_mb,
            required_commands=self._required_commands,
            required_env_vars=self._required_env_vars,
        )


def build(target: str) -> SpecBuilder:
    """Convenience: build('cargo').define_action(...).build()"""
    return SpecBuilder(target)
