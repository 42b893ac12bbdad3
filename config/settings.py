"""Configuration settings using pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings


_REPO_ROOT = Path(__file__).resolve().parents[1]


def _resolve_repo_path(path: Path) -> Path:
    if path.is_absolute():
        return path
    return (_REPO_ROOT / path).resolve()


class PlanEngineSettings(BaseSettings):
    """Settings for the recovery plan engine.

    ``engine_version`` is written into every plan's metadata; bump it whenever
    a rule change would alter the output for an existing configuration.
    """

    engine_version: str = "v1"
    default_category: str = "general_outpatient"
    template_path: Path = Field(
        default=Path("data/templates/general_outpatient.v1.json"),
        validation_alias=AliasChoices("PLAN_ENGINE_TEMPLATE_PATH", "RECOVERY_TEMPLATE_FILE"),
    )
    log_level: str = "INFO"
    structured_logging: bool = True

    model_config = {"env_prefix": "PLAN_ENGINE_", "extra": "ignore", "populate_by_name": True}

    @model_validator(mode="after")
    def _resolve_paths(self) -> "PlanEngineSettings":
        self.template_path = _resolve_repo_path(self.template_path)
        return self
