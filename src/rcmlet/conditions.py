# conditions.py
from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional

from .context import current_platform, resolve_path
from .errors import ConditionCheckError
from .model import Condition, ConditionKind

log = logging.getLogger(__name__)


def command_exists(command: str) -> bool:
    """True iff `command` resolves to an executable on the current PATH."""
    return shutil.which(command) is not None


class ConditionEvaluator:
    """
    Decides whether a condition currently holds.

    Routine "not found" situations evaluate to False. Only a condition that
    cannot be evaluated at all (unknown kind, empty value) raises
    ConditionCheckError.

    EnvVar looks at the process environment, not at the environment that
    will be handed to the action.
    """

    def __init__(
        self,
        *,
        environ: Optional[Mapping[str, str]] = None,
        platform: Optional[str] = None,
        which: Callable[[str], bool] = command_exists,
    ):
        self._environ = environ
        self._platform = platform
        self._which = which
        self._checks: Dict[ConditionKind, Callable[[str, Path], bool]] = {
            ConditionKind.FILE_EXISTS: self._file_exists,
            ConditionKind.COMMAND_EXISTS: self._command_exists,
            ConditionKind.ENV_VAR: self._env_var,
            ConditionKind.PLATFORM: self._platform_matches,
            ConditionKind.PACKAGE_INSTALLED: self._package_installed,
        }

    @property
    def platform(self) -> str:
        return self._platform or current_platform()

    def has_command(self, command: str) -> bool:
        return self._which(command)

    def evaluate(self, condition: Condition, workspace_root: Path, *, action: str = "") -> bool:
        kind = condition.known_kind
        if kind is None:
            raise ConditionCheckError(
                action=action,
                kind=condition.kind,
                value=condition.value,
                message=f"Unsupported condition kind: {condition.kind!r}",
            )
        if not condition.value or not condition.value.strip():
            raise ConditionCheckError(
                action=action,
                kind=condition.kind,
                value=condition.value,
                message=f"{condition.kind} condition has an empty value",
            )

        met = self._checks[kind](condition.value, Path(workspace_root))
        log.debug("condition %s=%r -> %s", condition.kind, condition.value, met)
        return met

    # -----------------------------------------------------------------

    def _file_exists(self, value: str, root: Path) -> bool:
        try:
            return resolve_path(value, root).exists()
        except (OSError, ValueError, RuntimeError):
            # unreadable parent, embedded NUL, unresolvable ~user
            return False

    def _command_exists(self, value: str, root: Path) -> bool:
        return self._which(value)

    def _env_var(self, value: str, root: Path) -> bool:
        environ = os.environ if self._environ is None else self._environ
        return value in environ

    def _platform_matches(self, value: str, root: Path) -> bool:
        return value == self.platform

    def _package_installed(self, value: str, root: Path) -> bool:
        # Known limitation: no package manager is queried.
        log.debug("PackageInstalled(%r) approximated by a PATH lookup", value)
        return self._which(value)
