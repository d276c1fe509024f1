# errors.py
from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional


class LetError(Exception):
    """Base class for every failure raised by the LET engine."""

    def __post_init__(self) -> None:
        # Exception.args mirrors the fields in order; copy and pickle rebuild from it
        super().__init__(*(getattr(self, f.name) for f in fields(self)))


@dataclass(eq=False)
class SpecNotFound(LetError):
    target: str
    path: Path

    def __str__(self) -> str:
        return f"No LET spec found for target: {self.target}\npath={self.path}"


@dataclass(eq=False)
class SpecParseError(LetError):
    target: str
    path: Path
    message: str

    def __str__(self) -> str:
        return f"Failed to parse LET spec for target: {self.target}\npath={self.path}\n{self.message}"


@dataclass(eq=False)
class ConstraintViolation(LetError):
    """
    A spec-wide precondition does not hold.

    constraint is one of "platform", "required_command", "required_env_var".
    """
    target: str
    constraint: str
    value: str
    message: str

    def __str__(self) -> str:
        return f"{self.message}\ntarget={self.target}\nconstraint={self.constraint}\nvalue={self.value}"


@dataclass(eq=False)
class ConditionCheckError(LetError):
    """A condition could not be evaluated at all (as opposed to evaluating to false)."""
    action: str
    kind: str
    value: str
    message: str

    def __str__(self) -> str:
        return f"{self.message}\naction={self.action}\ncondition={self.kind}={self.value!r}"


@dataclass(eq=False)
class ActionExecutionError(LetError):
    """
    Structured failure of one external command, with enough context to
    diagnose which tool failed and why.
    """
    action: str
    command: str
    argv: List[str] = field(default_factory=list)
    exit_code: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None      # spawn error or deadline expiry
    target: Optional[str] = None

    @property
    def command_line(self) -> str:
        return " ".join([self.command, *self.argv])

    def __str__(self) -> str:
        if self.error:
            head = f"Action '{self.action}' could not run: {self.error}"
        else:
            head = f"Action '{self.action}' failed (exit={self.exit_code})"
        lines = [head, f"command={self.command_line}"]
        if self.target:
            lines.append(f"target={self.target}")
        if self.stdout:
            lines.append(f"stdout:\n{self.stdout.rstrip()}")
        if self.stderr:
            lines.append(f"stderr:\n{self.stderr.rstrip()}")
        return "\n".join(lines)
