# engine.py
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, List, Mapping, Optional

from .conditions import ConditionEvaluator
from .context import RunContext, merge_env, physical_memory_mb
from .dag import build_dag, run_graph, topo_levels
from .errors import ConditionCheckError, ConstraintViolation
from .model import (
    Action,
    ActionOutcome,
    Condition,
    ConditionCheck,
    OutcomeStatus,
    PlanEntry,
    PlanReport,
    RunResult,
    Spec,
)
from .process import ProcessRunner
from .runner import ActionRunner
from .store import SpecStore

log = logging.getLogger(__name__)

# Coarse CLI verbs -> conventional action names inside a spec.
VERB_ACTIONS = {
    "deploy": "install",
    "build": "build",
    "test": "test",
    "clean": "clean",
    "update": "update",
}


class WorkflowEngine:
    """
    Interprets a stored spec into a series of guarded subprocess calls.

      execute(): load -> check constraints -> merge env -> run actions in
                 declared order, stopping at the first failure
      plan():    the same evaluation without spawning anything

    With max_workers > 1 (and no action filter) actions are scheduled over a
    bounded pool using the explicit graph from dag.py.
    """

    def __init__(
        self,
        workspace_root: str | Path,
        *,
        store: Optional[SpecStore] = None,
        evaluator: Optional[ConditionEvaluator] = None,
        process_runner: Optional[ProcessRunner] = None,
        timeout: Optional[float] = None,
        max_workers: int = 1,
        on_outcome: Optional[Callable[[ActionOutcome], None]] = None,
    ):
        self.workspace_root = Path(workspace_root).expanduser().resolve()
        self.store = store or SpecStore(self.workspace_root)
        self.evaluator = evaluator or ConditionEvaluator()
        self.runner = ActionRunner(self.evaluator, process_runner)
        self.timeout = timeout
        self.max_workers = max(1, int(max_workers))
        self.on_outcome = on_outcome

    # ------------------------------------------------------------------
    # Constraints
    # ------------------------------------------------------------------

    def constraint_violations(self, spec: Spec, base_env: Mapping[str, str]) -> List[ConstraintViolation]:
        c = spec.constraints
        platform = self.evaluator.platform
        found: List[ConstraintViolation] = []

        if c.platforms and platform not in c.platforms:
            found.append(ConstraintViolation(
                target=spec.target,
                constraint="platform",
                value=platform,
                message=f"Target {spec.target} not supported on platform: {platform} (allowed: {', '.join(c.platforms)})",
            ))

        for cmd in c.required_commands:
            if not self.evaluator.has_command(cmd):
                found.append(ConstraintViolation(
                    target=spec.target,
                    constraint="required_command",
                    value=cmd,
                    message=f"Required command not found: {cmd}",
                ))

        for var in c.required_env_vars:
            if var not in base_env and var not in os.environ:
                found.append(ConstraintViolation(
                    target=spec.target,
                    constraint="required_env_var",
                    value=var,
                    message=f"Required environment variable not set: {var}",
                ))

        return found

    def memory_warning(self, spec: Spec) -> Optional[str]:
        wanted = spec.constraints.min_memory_mb
        if not wanted:
            return None
        have = physical_memory_mb()
        if have is not None and have < wanted:
            return f"{spec.target} suggests at least {wanted} MB of memory, this machine reports {have} MB"
        return None

    # ------------------------------------------------------------------
    # Execute
    # ------------------------------------------------------------------

    def execute(
        self,
        target: str,
        action_filter: Optional[str] = None,
        invocation_env: Optional[Mapping[str, str]] = None,
    ) -> RunResult:
        """
        Run target's spec.

        Raises SpecNotFound / SpecParseError / ConstraintViolation before any
        process is spawned, and ConditionCheckError at the point a condition
        cannot be evaluated. An action failure does not raise: it ends the run
        and is reported on the returned RunResult.
        """
        spec = self.store.load(target)
        base_env = merge_env(spec.environment, invocation_env)

        violations = self.constraint_violations(spec, base_env)
        if violations:
            raise violations[0]

        warning = self.memory_warning(spec)
        if warning:
            log.warning(warning)

        ctx = RunContext(
            workspace_root=self.workspace_root,
            environment=base_env,
            timeout=self.timeout,
            target=spec.target,
        )

        if action_filter is not None and spec.action(action_filter) is None:
            log.warning("no action named '%s' in spec %s; nothing to run", action_filter, spec.target)

        if self.max_workers > 1 and action_filter is None:
            return self._execute_graph(spec, ctx)
        return self._execute_sequential(spec, ctx, action_filter)

    def _execute_sequential(self, spec: Spec, ctx: RunContext, action_filter: Optional[str]) -> RunResult:
        result = RunResult(target=spec.target)

        for i, action in enumerate(spec.actions):
            if action_filter is not None and action.name != action_filter:
                result.outcomes.append(ActionOutcome(
                    action=action.name,
                    status=OutcomeStatus.SKIPPED,
                    reason="filtered",
                ))
                continue

            outcome = self._run_one(action, ctx)
            result.outcomes.append(outcome)

            if outcome.failed:
                result.not_run = [a.name for a in spec.actions[i + 1:]]
                break

        return result

    def _run_one(self, action: Action, ctx: RunContext) -> ActionOutcome:
        outcome = self.runner.run(action, ctx.environment, ctx)
        if self.on_outcome is not None:
            self.on_outcome(outcome)
        return outcome

    def _execute_graph(self, spec: Spec, ctx: RunContext) -> RunResult:
        outcomes, not_run = run_graph(
            spec.actions,
            lambda action: self._run_one(action, ctx),
            max_workers=self.max_workers,
        )
        return RunResult(
            target=spec.target,
            outcomes=[outcomes[a.name] for a in spec.actions if a.name in outcomes],
            not_run=not_run,
        )

    # ------------------------------------------------------------------
    # Plan
    # ------------------------------------------------------------------

    def plan(
        self,
        target: str,
        action_filter: Optional[str] = None,
        invocation_env: Optional[Mapping[str, str]] = None,
    ) -> PlanReport:
        """
        Dry run: evaluate constraints and conditions and report what would
        run. Constraint violations are reported, not raised; nothing is spawned.
        """
        spec = self.store.load(target)
        base_env = merge_env(spec.environment, invocation_env)

        report = PlanReport(
            target=spec.target,
            version=spec.version,
            manager=spec.manager,
            dependencies=list(spec.dependencies),
            platform=self.evaluator.platform,
            environment=base_env,
            violations=[v.message for v in self.constraint_violations(spec, base_env)],
        )

        warning = self.memory_warning(spec)
        if warning:
            report.warnings.append(warning)
        if action_filter is not None and spec.action(action_filter) is None:
            report.warnings.append(f"no action named '{action_filter}' in spec {spec.target}")

        for action in spec.actions:
            selected = action_filter is None or action.name == action_filter
            entry = PlanEntry(
                name=action.name,
                command=action.command,
                args=list(action.args),
                working_dir=str(self.runner.working_dir(action, self.workspace_root)),
                selected=selected,
            )
            if selected:
                entry.conditions = [self._check(action.name, c) for c in action.conditions]
            report.entries.append(entry)

        if self.max_workers > 1 and action_filter is None:
            adj, indeg = build_dag(spec.actions)
            report.stages = topo_levels(adj, indeg)

        return report

    def _check(self, action: str, condition: Condition) -> ConditionCheck:
        try:
            met = self.evaluator.evaluate(condition, self.workspace_root, action=action)
        except ConditionCheckError as e:
            return ConditionCheck(kind=condition.kind, value=condition.value, met=False, error=e.message)
        return ConditionCheck(kind=condition.kind, value=condition.value, met=met)


def action_for_verbs(**verbs: bool) -> Optional[str]:
    """
    Map CLI verb flags to an action filter. At most one verb may be set;
    none means "every action".
    """
    chosen = [verb for verb, on in verbs.items() if on]
    unknown = [v for v in chosen if v not in VERB_ACTIONS]
    if unknown:
        raise ValueError(f"Unknown verb(s): {', '.join(unknown)}")
    if len(chosen) > 1:
        raise ValueError(f"Only one of --{', --'.join(VERB_ACTIONS)} may be given (got: {', '.join(chosen)})")
    return VERB_ACTIONS[chosen[0]] if chosen else None
