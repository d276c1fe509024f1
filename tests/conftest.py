"""Test configuration and fixtures."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import pytest

from rcmlet.conditions import ConditionEvaluator
from rcmlet.engine import WorkflowEngine
from rcmlet.model import Spec
from rcmlet.process import ProcessResult
from rcmlet.store import SpecStore

# Commands the stubbed PATH lookup reports as installed.
KNOWN_COMMANDS = {"git", "cargo", "curl", "ok-tool"}


@dataclass
class Call:
    command: str
    args: List[str]
    cwd: Path
    env: Dict[str, str]
    timeout: Optional[float]


Responder = Union[ProcessResult, Callable[[Call], ProcessResult]]


class FakeProcessRunner:
    """Records every spawn instead of starting a process."""

    def __init__(self) -> None:
        self.calls: List[Call] = []
        self.results: Dict[str, Responder] = {}
        self._lock = threading.Lock()

    @property
    def commands(self) -> List[str]:
        return [c.command for c in self.calls]

    def run(self, command, args, *, cwd, env, timeout=None) -> ProcessResult:
        call = Call(command=command, args=list(args), cwd=Path(cwd), env=dict(env), timeout=timeout)
        with self._lock:
            self.calls.append(call)
        responder = self.results.get(command)
        if responder is None:
            return ProcessResult(exit_code=0, stdout=f"{command} ok\n")
        if callable(responder):
            return responder(call)
        return responder


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Provide an empty workspace root."""
    root = tmp_path / "ws"
    root.mkdir()
    return root


@pytest.fixture
def store(workspace: Path) -> SpecStore:
    return SpecStore(workspace)


@pytest.fixture
def fake_runner() -> FakeProcessRunner:
    return FakeProcessRunner()


@pytest.fixture
def evaluator() -> ConditionEvaluator:
    """Evaluator pinned to linux with a stubbed PATH."""
    return ConditionEvaluator(platform="linux", which=lambda cmd: cmd in KNOWN_COMMANDS)


@pytest.fixture
def save_spec(store: SpecStore) -> Callable[[Spec], Spec]:
    def _save(spec: Spec) -> Spec:
        store.save(spec)
        return spec
    return _save


@pytest.fixture
def make_engine(workspace, store, evaluator, fake_runner) -> Callable[..., WorkflowEngine]:
    def _make(**kwargs) -> WorkflowEngine:
        kwargs.setdefault("store", store)
        kwargs.setdefault("evaluator", evaluator)
        kwargs.setdefault("process_runner", fake_runner)
        return WorkflowEngine(workspace, **kwargs)
    return _make
