# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from .errors import ActionExecutionError


# ---------------------------------------------------------------------
# Spec schema (what lives in .rcm/let/<target>.json)
# ---------------------------------------------------------------------

class ConditionKind(str, Enum):
    FILE_EXISTS = "FileExists"
    COMMAND_EXISTS = "CommandExists"
    ENV_VAR = "EnvVar"
    PLATFORM = "Platform"
    PACKAGE_INSTALLED = "PackageInstalled"


class _Schema(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class Condition(_Schema):
    """
    A boolean guard evaluated before an action runs.

    kind is kept as a plain string so a spec mentioning a kind this version
    does not know still loads; evaluating it raises ConditionCheckError.
    """
    kind: str = Field(validation_alias=AliasChoices("kind", "condition_type"))
    value: str

    @field_validator("kind", mode="before")
    @classmethod
    def enum_to_str(cls, v):
        return v.value if isinstance(v, ConditionKind) else v

    @property
    def known_kind(self) -> Optional[ConditionKind]:
        try:
            return ConditionKind(self.kind)
        except ValueError:
            return None


class Action(_Schema):
    """A single guarded external-command step."""
    name: str
    command: str
    args: List[str] = Field(default_factory=list)
    working_dir: Optional[str] = Field(
        default=None,
        alias="workingDir",
        validation_alias=AliasChoices("workingDir", "working_dir"),
    )
    env: Dict[str, str] = Field(default_factory=dict)
    conditions: List[Condition] = Field(default_factory=list)

    # Only consulted by the worker-pool scheduler (see dag.py).
    parallel: bool = False
    needs: List[str] = Field(default_factory=list)

    timeout: Optional[float] = Field(default=None, gt=0)


class Constraints(_Schema):
    platforms: List[str] = Field(default_factory=list)
    min_memory_mb: Optional[int] = Field(
        default=None,
        alias="minMemoryMb",
        validation_alias=AliasChoices("minMemoryMb", "min_memory_mb"),
    )
    required_commands: List[str] = Field(
        default_factory=list,
        alias="requiredCommands",
        validation_alias=AliasChoices("requiredCommands", "required_commands"),
    )
    required_env_vars: List[str] = Field(
        default_factory=list,
        alias="requiredEnvVars",
        validation_alias=AliasChoices("requiredEnvVars", "required_env_vars"),
    )


class Spec(_Schema):
    """
    A named provisioning target: ordered actions, environment defaults and
    spec-wide constraints.

    Declared action order is execution order. `dependencies` is
    informational and never resolved by the engine.
    """
    target: str
    version: Optional[str] = None
    manager: Optional[str] = None
    dependencies: List[str] = Field(default_factory=list)
    actions: List[Action] = Field(default_factory=list)
    environment: Dict[str, str] = Field(default_factory=dict)
    constraints: Constraints = Field(default_factory=Constraints)

    @model_validator(mode="after")
    def check_actions(self) -> "Spec":
        # Import here to avoid circular import
        from .dag import build_dag

        # raises ValueError on duplicate names and bad `needs` references
        build_dag(self.actions)
        return self

    def action(self, name: str) -> Optional[Action]:
        for a in self.actions:
            if a.name == name:
                return a
        return None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


# ---------------------------------------------------------------------
# Run results
# ---------------------------------------------------------------------

class OutcomeStatus(str, Enum):
    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class RunStatus(str, Enum):
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class ActionOutcome:
    action: str
    status: OutcomeStatus
    reason: Optional[str] = None          # why it was skipped
    command: Optional[str] = None
    args: List[str] = field(default_factory=list)
    stdout: str = ""
    stderr: str = ""
    exit_code: Optional[int] = None
    error: Optional[ActionExecutionError] = None
    duration: Optional[float] = None

    @property
    def skipped(self) -> bool:
        return self.status is OutcomeStatus.SKIPPED

    @property
    def succeeded(self) -> bool:
        return self.status is OutcomeStatus.SUCCEEDED

    @property
    def failed(self) -> bool:
        return self.status is OutcomeStatus.FAILED


@dataclass
class RunResult:
    """Aggregated result of one engine run, outcomes in declared order."""
    target: str
    outcomes: List[ActionOutcome] = field(default_factory=list)
    not_run: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not any(o.failed for o in self.outcomes)

    @property
    def status(self) -> RunStatus:
        return RunStatus.COMPLETED if self.success else RunStatus.ABORTED

    @property
    def failed(self) -> Optional[ActionOutcome]:
        for o in self.outcomes:
            if o.failed:
                return o
        return None

    def outcome(self, name: str) -> Optional[ActionOutcome]:
        for o in self.outcomes:
            if o.action == name:
                return o
        return None


# ---------------------------------------------------------------------
# Plan (dry run) report
# ---------------------------------------------------------------------

@dataclass
class ConditionCheck:
    kind: str
    value: str
    met: bool
    error: Optional[str] = None


@dataclass
class PlanEntry:
    name: str
    command: str
    args: List[str]
    working_dir: str
    selected: bool
    conditions: List[ConditionCheck] = field(default_factory=list)

    @property
    def would_run(self) -> bool:
        return self.selected and all(c.met for c in self.conditions)


@dataclass
class PlanReport:
    target: str
    version: Optional[str]
    manager: Optional[str]
    dependencies: List[str]
    platform: str
    entries: List[PlanEntry] = field(default_factory=list)
    environment: Dict[str, str] = field(default_factory=dict)
    violations: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    stages: List[List[str]] = field(default_factory=list)

    @property
    def runnable(self) -> bool:
        return not self.violations
