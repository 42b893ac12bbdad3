"""Module library entries.

A module is a vetted unit of recovery content (education, tracking, red flags,
milestones) referenced by a stable id from plan days.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class ModuleType(str, Enum):
    """Closed set of module content types."""

    EDUCATION = "education"
    TASK = "task"
    TRACKING = "tracking"
    MILESTONE = "milestone"
    RED_FLAG = "red_flag"


# Short forms used by older stored libraries ("kind": "track").
_LEGACY_KINDS = {
    "track": ModuleType.TRACKING.value,
    "edu": ModuleType.EDUCATION.value,
}


class ModuleDefinition(BaseModel):
    """Immutable catalog entry supplied with the plan template."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(min_length=1)
    type: ModuleType = Field(validation_alias=AliasChoices("type", "kind"))
    title: str
    body: str = ""
    severity: str | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _map_legacy_kind(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _LEGACY_KINDS.get(value, value)
        return value


__all__ = ["ModuleDefinition", "ModuleType"]
