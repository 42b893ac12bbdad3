"""Clinic override policy and the audit events produced while enforcing it.

A policy only requires, forbids or caps modules that already exist in the
vetted library; it cannot introduce new content.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_MODULES_PER_DAY_LIMIT = 50


class RequiredByPhase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    early: tuple[str, ...] | None = None
    mid: tuple[str, ...] | None = None
    late: tuple[str, ...] | None = None


class ClinicOverridePolicy(BaseModel):
    """Validated clinic override policy.

    Unknown keys are rejected so that a typo in a stored policy is reported
    instead of being silently ignored.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    version: int | None = Field(default=None, gt=0, strict=True)
    note: str | None = None
    required_module_ids: tuple[str, ...] | None = Field(default=None, alias="requiredModuleIds")
    forbidden_module_ids: tuple[str, ...] | None = Field(default=None, alias="forbiddenModuleIds")
    required_by_phase: RequiredByPhase | None = Field(default=None, alias="requiredByPhase")
    required_by_day: dict[str, tuple[str, ...]] | None = Field(default=None, alias="requiredByDay")
    max_modules_per_day: int | None = Field(
        default=None,
        ge=1,
        le=MAX_MODULES_PER_DAY_LIMIT,
        strict=True,
        alias="maxModulesPerDay",
    )

    @field_validator("required_by_day", mode="before")
    @classmethod
    def _stringify_day_keys(cls, value: Any) -> Any:
        # JSON objects always have string keys; Python callers may pass ints.
        if isinstance(value, dict):
            return {
                (str(key) if isinstance(key, int) and not isinstance(key, bool) else key): item
                for key, item in value.items()
            }
        return value


class ClinicOverridesInvalidEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["clinic_overrides_invalid"] = "clinic_overrides_invalid"
    message: str
    issues: tuple[dict[str, str], ...] | None = None


class ClinicUnknownModuleIgnoredEvent(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["clinic_unknown_module_ignored"] = "clinic_unknown_module_ignored"
    module_id: str = Field(alias="moduleId")
    reason: str


class ClinicForbidRemovedEvent(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["clinic_forbid_removed"] = "clinic_forbid_removed"
    day: int
    module_id: str = Field(alias="moduleId")
    reason: str


class ClinicRequireAddedEvent(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["clinic_require_added"] = "clinic_require_added"
    day: int
    module_id: str = Field(alias="moduleId")
    reason: str


class ClinicCapTrimmedEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["clinic_cap_trimmed"] = "clinic_cap_trimmed"
    day: int
    removed: tuple[str, ...]
    max: int
    reason: str


ClinicAuditEvent = Annotated[
    Union[
        ClinicOverridesInvalidEvent,
        ClinicUnknownModuleIgnoredEvent,
        ClinicForbidRemovedEvent,
        ClinicRequireAddedEvent,
        ClinicCapTrimmedEvent,
    ],
    Field(discriminator="type"),
]


class ClinicOverridesMeta(BaseModel):
    """Policy identification copied into plan metadata (never the policy body)."""

    model_config = ConfigDict(frozen=True)

    version: int | None = None
    note: str | None = None


__all__ = [
    "ClinicAuditEvent",
    "ClinicCapTrimmedEvent",
    "ClinicForbidRemovedEvent",
    "ClinicOverridePolicy",
    "ClinicOverridesInvalidEvent",
    "ClinicOverridesMeta",
    "ClinicRequireAddedEvent",
    "ClinicUnknownModuleIgnoredEvent",
    "MAX_MODULES_PER_DAY_LIMIT",
    "RequiredByPhase",
]
