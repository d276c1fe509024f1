# context.py
from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional

# Reserved variable carrying the named environment/profile of a run (--env).
RUN_ENV_VAR = "RCM_ENV"

_PLATFORM_ALIASES = {
    "darwin": "macos",
    "win32": "windows",
    "cygwin": "windows",
}


def current_platform() -> str:
    """
    Canonical identifier of the running OS: linux, macos, windows, freebsd, ...
    """
    plat = sys.platform
    if plat in _PLATFORM_ALIASES:
        return _PLATFORM_ALIASES[plat]
    if plat.startswith("linux"):
        return "linux"
    if plat.startswith("freebsd"):
        return "freebsd"
    return plat


def physical_memory_mb() -> Optional[int]:
    """Best-effort total physical memory; None where the OS does not say."""
    try:
        pages = os.sysconf("SC_PHYS_PAGES")
        page_size = os.sysconf("SC_PAGE_SIZE")
    except (AttributeError, ValueError, OSError):
        return None
    if pages <= 0 or page_size <= 0:
        return None
    return int(pages * page_size // (1024 * 1024))


def resolve_path(value: str, root: Path) -> Path:
    """Resolve value against root unless it is already absolute."""
    p = Path(value).expanduser()
    if p.is_absolute():
        return p
    return root / p


def merge_env(*layers: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Merge environment maps; later layers win key-by-key."""
    merged: Dict[str, str] = {}
    for layer in layers:
        if layer:
            merged.update({k: str(v) for k, v in layer.items()})
    return merged


def parse_key_value_args(args: Iterable[str]) -> Dict[str, str]:
    """
    Parse repeated `key=value` arguments. Raises ValueError on a pair without
    '=' or with an empty key.
    """
    parsed: Dict[str, str] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Invalid key=value argument: {arg}")
        parsed[key.strip()] = value
    return parsed


def invocation_env(
    args: Iterable[str] = (),
    run_env: Optional[str] = None,
) -> Dict[str, str]:
    """
    Environment supplied by the caller of a run: the reserved RCM_ENV
    variable (if a named environment was given) and explicit k=v pairs.
    """
    env: Dict[str, str] = {}
    if run_env:
        env[RUN_ENV_VAR] = run_env
    env.update(parse_key_value_args(args))
    return env


@dataclass(frozen=True)
class RunContext:
    """
    Everything an evaluator or runner call needs to know about the run,
    passed explicitly instead of being read from process globals.
    """
    workspace_root: Path
    environment: Dict[str, str] = field(default_factory=dict)
    timeout: Optional[float] = None
    target: Optional[str] = None


def find_workspace_root(start: str | Path | None = None) -> Path:
    """
    Nearest ancestor of start (default: cwd) that holds a `.rcm` directory,
    or start itself when none does.
    """
    here = Path(start or os.getcwd()).expanduser().resolve()
    for candidate in (here, *here.parents):
        if (candidate / ".rcm").is_dir():
            return candidate
    return here
