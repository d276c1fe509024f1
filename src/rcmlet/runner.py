# runner.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

from .conditions import ConditionEvaluator
from .context import RunContext, merge_env, resolve_path
from .errors import ActionExecutionError
from .model import Action, ActionOutcome, OutcomeStatus
from .process import ProcessRunner, SubprocessRunner

log = logging.getLogger(__name__)


TOOL_HINTS = {
    "rcm": "Install rcm or fix PATH.",
    "npm": "Install Node.js (includes npm) or fix PATH.",
    "node": "Install Node.js or fix PATH.",
    "cargo": "Install Rust via rustup (https://rustup.rs) or fix PATH.",
    "rustup": "Install rustup (https://rustup.rs) or fix PATH.",
    "php": "Install PHP or fix PATH.",
    "composer": "Install Composer or fix PATH.",
    "ffmpeg": "Install FFmpeg or fix PATH.",
    "git": "Install Git or fix PATH.",
    "curl": "Install curl or fix PATH.",
}


def hint_for(command: str) -> Optional[str]:
    return TOOL_HINTS.get(Path(command).name)


class ActionRunner:
    """
    Executes one guarded action:

      1. every condition must hold, otherwise the action is skipped
      2. working dir = action.working_dir (relative to the workspace) or the workspace
      3. env = merged run env overridden by action.env
      4. spawn, capture output, classify by exit status

    No retries. ConditionCheckError from the evaluator propagates.
    """

    def __init__(
        self,
        evaluator: Optional[ConditionEvaluator] = None,
        process_runner: Optional[ProcessRunner] = None,
    ):
        self.evaluator = evaluator or ConditionEvaluator()
        self.process_runner = process_runner or SubprocessRunner()

    def working_dir(self, action: Action, workspace_root: Path) -> Path:
        if action.working_dir:
            return resolve_path(action.working_dir, Path(workspace_root)).resolve()
        return Path(workspace_root).resolve()

    def unmet_condition(self, action: Action, workspace_root: Path) -> Optional[str]:
        """Describe the first condition that does not hold, or None if all do."""
        for condition in action.conditions:
            if not self.evaluator.evaluate(condition, workspace_root, action=action.name):
                return f"condition not met: {condition.kind}={condition.value}"
        return None

    def run(self, action: Action, merged_env: Dict[str, str], ctx: RunContext) -> ActionOutcome:
        reason = self.unmet_condition(action, ctx.workspace_root)
        if reason is not None:
            log.info("skipping action '%s': %s", action.name, reason)
            return ActionOutcome(action=action.name, status=OutcomeStatus.SKIPPED, reason=reason)

        cwd = self.working_dir(action, ctx.workspace_root)
        env = merge_env(merged_env, action.env)
        timeout = action.timeout if action.timeout is not None else ctx.timeout

        log.info("executing action '%s': %s %s", action.name, action.command, " ".join(action.args))
        log.debug("cwd=%s timeout=%s env_keys=%s", cwd, timeout, sorted(env))

        result = self.process_runner.run(
            action.command,
            list(action.args),
            cwd=cwd,
            env=env,
            timeout=timeout,
        )

        outcome = ActionOutcome(
            action=action.name,
            status=OutcomeStatus.SUCCEEDED,
            command=action.command,
            args=list(action.args),
            stdout=result.stdout,
            stderr=result.stderr,
            exit_code=result.exit_code,
            duration=result.duration,
        )

        if not result.ok:
            outcome.status = OutcomeStatus.FAILED
            outcome.error = ActionExecutionError(
                action=action.name,
                command=action.command,
                argv=list(action.args),
                exit_code=result.exit_code,
                stdout=result.stdout,
                stderr=result.stderr,
                error=result.error,
                target=ctx.target,
            )
            log.warning("action '%s' failed: %s", action.name, result.error or f"exit={result.exit_code}")

        return outcome
