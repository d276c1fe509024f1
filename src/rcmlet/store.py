# store.py
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import ValidationError

from .defaults import default_specs
from .errors import SpecNotFound, SpecParseError
from .model import Spec

log = logging.getLogger(__name__)

SPECS_SUBDIR = Path(".rcm") / "let"


def is_valid_target(target: str) -> bool:
    """A target doubles as a file name, so it must be a plain, visible name."""
    if not target or target.startswith("."):
        return False
    return not any(sep in target for sep in ("/", "\\", os.sep))


class SpecStore:
    """
    Workspace-scoped, human-editable spec storage: one JSON document per
    target at <workspace>/.rcm/let/<target>.json.
    """

    def __init__(self, workspace_root: str | Path, specs_dir: str | Path | None = None):
        self.workspace_root = Path(workspace_root).expanduser().resolve()
        self.specs_dir = Path(specs_dir) if specs_dir else self.workspace_root / SPECS_SUBDIR

    def path_for(self, target: str) -> Path:
        return self.specs_dir / f"{target}.json"

    def exists(self, target: str) -> bool:
        return is_valid_target(target) and self.path_for(target).is_file()

    def targets(self) -> List[str]:
        if not self.specs_dir.is_dir():
            return []
        return sorted(
            p.stem for p in self.specs_dir.glob("*.json")
            if p.is_file() and is_valid_target(p.stem)
        )

    # ------------------------------------------------------------------

    def load(self, target: str) -> Spec:
        """
        Load the spec stored for target.

        Raises:
          SpecNotFound:   no file for that target
          SpecParseError: the file is not a valid spec for that target
        """
        path = self.path_for(target)
        if not is_valid_target(target) or not path.is_file():
            raise SpecNotFound(target=target, path=path)

        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SpecParseError(target=target, path=path, message=f"Failed to read spec: {e}") from e

        try:
            spec = Spec.model_validate_json(content)
        except ValidationError as e:
            raise SpecParseError(target=target, path=path, message=_describe(e)) from e

        if spec.target != target:
            raise SpecParseError(
                target=target,
                path=path,
                message=f"Spec declares target {spec.target!r} but is stored as {target!r}",
            )

        log.debug("loaded spec %s from %s (%d actions)", target, path, len(spec.actions))
        return spec

    def save(self, spec: Spec) -> Path:
        """
        Write spec to its file. The document is written to a temporary file
        first and renamed into place, so readers never see a torn file; the
        last writer wins.
        """
        if not is_valid_target(spec.target):
            raise ValueError(f"Invalid target name for storage: {spec.target!r}")

        self.specs_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(spec.target)
        tmp = path.with_name(f".{path.name}.{os.getpid()}.tmp")
        try:
            tmp.write_text(spec.to_json() + "\n", encoding="utf-8")
            tmp.replace(path)
        finally:
            if tmp.exists():
                tmp.unlink(missing_ok=True)
        return path

    def ensure_defaults(self, specs: Optional[Iterable[Spec]] = None) -> List[str]:
        """
        Seed built-in specs for targets that have no file yet. Existing files
        are never touched, even if they are user-modified or broken.

        Returns the targets that were written.
        """
        written: List[str] = []
        for spec in specs if specs is not None else default_specs():
            if self.exists(spec.target):
                continue
            self.save(spec)
            written.append(spec.target)
        if written:
            log.info("seeded default specs: %s", ", ".join(written))
        return written


def _describe(err: ValidationError) -> str:
    lines = []
    for item in err.errors():
        loc = ".".join(str(p) for p in item.get("loc", ())) or "<root>"
        lines.append(f"{loc}: {item.get('msg')}")
    return "\n".join(lines) if lines else str(err)

