from .dsl import action, build, if_command, if_env, if_file, if_package, if_platform, spec, SpecBuilder
from .engine import WorkflowEngine
from .model import Action, Condition, ConditionKind, Constraints, RunResult, Spec
from .store import SpecStore

__all__ = [
    "action", "build", "if_command", "if_env", "if_file", "if_package", "if_platform", "spec", "SpecBuilder",
    "WorkflowEngine", "Action", "Condition", "ConditionKind", "Constraints", "RunResult", "Spec", "SpecStore",
]
