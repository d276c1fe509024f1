# settings.py
from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .context import find_workspace_root

ENV_PREFIX = "RCM_"


class Settings(BaseSettings):
    """
    Engine configuration read from the environment:

      RCM_WORKSPACE      workspace root (default: nearest dir holding .rcm, else cwd)
      RCM_TIMEOUT        default per-action deadline in seconds (default: none)
      RCM_PARALLEL_JOBS  worker count (default: 1, strictly sequential)
      RCM_LOG_LEVEL      logging level (default: WARNING)

    Blank values count as unset.
    """

    workspace: Path = Field(default_factory=find_workspace_root)
    timeout: Optional[float] = Field(default=None, gt=0)
    parallel_jobs: int = Field(default=1, ge=1)
    log_level: Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"] = "WARNING"

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    @field_validator("workspace")
    @classmethod
    def resolve_workspace(cls, v: Path) -> Path:
        return v.expanduser().resolve()

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_level(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Load settings, reporting bad values by their environment variable
        name. Raises ValueError.
        """
        try:
            return cls()
        except ValidationError as e:
            problems = []
            for item in e.errors():
                field = str(item["loc"][0]) if item.get("loc") else "?"
                problems.append(f"{ENV_PREFIX}{field.upper()}: {item['msg']}")
            raise ValueError("Invalid settings:\n  " + "\n  ".join(problems)) from None
