# process.py
from __future__ import annotations

import os
import shutil
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol


@dataclass
class ProcessResult:
    """
    What happened to one spawned command.

    error is set when the process could not be started or was killed on its
    deadline; exit_code is None in both cases.
    """
    exit_code: Optional[int]
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None
    timed_out: bool = False
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None and self.exit_code == 0


class ProcessRunner(Protocol):
    def run(
        self,
        command: str,
        args: List[str],
        *,
        cwd: Path,
        env: Dict[str, str],
        timeout: Optional[float] = None,
    ) -> ProcessResult: ...


def _text(data) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


class SubprocessRunner:
    """
    Spawns commands with subprocess, capturing stdout/stderr in full.

    The child inherits this process's environment with `env` layered on top.
    On deadline expiry subprocess kills the child before we return.
    """

    def run(
        self,
        command: str,
        args: List[str],
        *,
        cwd: Path,
        env: Dict[str, str],
        timeout: Optional[float] = None,
    ) -> ProcessResult:
        full_env = os.environ.copy()
        full_env.update(env)

        # resolve against the PATH the child will see (.cmd/.bat shims on Windows)
        exe = shutil.which(command, path=full_env.get("PATH")) or command

        start = time.monotonic()
        try:
            proc = subprocess.run(
                [exe, *args],
                shell=False,
                cwd=str(cwd),
                env=full_env,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            return ProcessResult(
                exit_code=None,
                stdout=_text(e.stdout),
                stderr=_text(e.stderr),
                error=f"timed out after {timeout}s",
                timed_out=True,
                duration=time.monotonic() - start,
            )
        except (OSError, ValueError) as e:
            # missing executable, missing cwd, permission denied,
            # NUL bytes or "=" in an env name
            return ProcessResult(
                exit_code=None,
                error=f"failed to execute command: {e}",
                duration=time.monotonic() - start,
            )

        return ProcessResult(
            exit_code=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
            duration=time.monotonic() - start,
        )
