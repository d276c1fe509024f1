"""Console output formatting utilities for rcm-let."""

from __future__ import annotations

import sys
from typing import Optional

from rcmlet.model import ActionOutcome, PlanReport, RunResult
from rcmlet.runner import hint_for


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_run_started(
        self,
        target: str,
        workspace: str,
        action_filter: Optional[str] = None,
    ) -> None:
        """Print run start information."""
        print("\nRUN STARTED")
        print(f"Target: {target}")
        print(f"Workspace: {workspace}")
        print(f"Actions: {action_filter or 'all'}")
        print()

    def print_outcome(self, outcome: ActionOutcome) -> None:
        """Print one action outcome, including captured output on success."""
        if outcome.skipped:
            if outcome.reason != "filtered" or self.debug:
                print(f"ACTION: {outcome.action}")
                print(f"STATUS: skipped ({outcome.reason})")
            return

        print(f"\nACTION: {outcome.action}")
        if outcome.succeeded:
            if outcome.stdout:
                print(outcome.stdout.rstrip())
            if outcome.stderr:
                print(outcome.stderr.rstrip(), file=sys.stderr)
            print("STATUS: success")
            return

        err = outcome.error
        self.print_failure(
            outcome.action,
            reason=str(err) if err else "unknown error",
            exit_code=outcome.exit_code,
            hint=hint_for(outcome.command or "") if err and err.error else None,
        )

    def print_failure(
        self,
        name: str,
        reason: str,
        exit_code: Optional[int] = None,
        hint: Optional[str] = None,
    ) -> None:
        """
        Print failure message.

        Args:
            name: Action name
            reason: Failure reason/error message
            exit_code: Optional exit code
            hint: Optional hint for user
        """
        print(f"ACTION FAILED: {name}")
        if exit_code is not None:
            print(f"Exit code: {exit_code}")
        if hint:
            print(f"Hint: {hint}")
        print(reason, file=sys.stderr)

    def print_results(self, result: RunResult) -> None:
        """Print final results summary."""
        print("\n" + "=" * 40)
        print(f"RESULTS ({result.status.value.upper()})")
        print("=" * 40)
        for outcome in result.outcomes:
            print(f"  {outcome.action}: {outcome.status.value.upper()}")
        for name in result.not_run:
            print(f"  {name}: NOT RUN")

    def print_plan(self, report: PlanReport) -> None:
        """Print a dry-run report."""
        print(f"=== LET Plan for target: {report.target} ===")
        print(f"Target: {report.target}")
        if report.version:
            print(f"Version: {report.version}")
        if report.manager:
            print(f"Manager: {report.manager}")
        if report.dependencies:
            print(f"Dependencies: {', '.join(report.dependencies)}")
        print(f"Platform: {report.platform}")

        print("\nActions:")
        for entry in report.entries:
            if not entry.selected:
                continue
            marker = "run" if entry.would_run else "skip"
            print(f"  - {entry.name}: {' '.join([entry.command, *entry.args])} [{marker}]")
            if self.debug:
                print(f"    cwd: {entry.working_dir}")
            for check in entry.conditions:
                mark = "✓" if check.met else "✗"
                line = f"    Condition: {check.kind} = {check.value} [{mark}]"
                if check.error:
                    line += f" ({check.error})"
                print(line)

        if report.stages:
            print("\nStages:")
            for i, stage in enumerate(report.stages, 1):
                print(f"  {i}: {', '.join(stage)}")

        print("\nEnvironment:")
        for key, value in sorted(report.environment.items()):
            print(f"  {key}={value}")

        if report.violations:
            print("\nConstraint violations:")
            for v in report.violations:
                print(f"  ✗ {v}")
        for w in report.warnings:
            print(f"\nWarning: {w}")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
