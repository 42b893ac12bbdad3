"""Generated plan document (schema version 2)."""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .clinic_policy import ClinicAuditEvent, ClinicOverridesMeta
from .configuration import PlanConfiguration
from .days import PLAN_DAY_COUNT, ResolvedDayBlock
from .modules import ModuleDefinition

SCHEMA_VERSION = 2


class ClinicPolicyFlag(BaseModel):
    model_config = ConfigDict(frozen=True)

    present: bool = False


class PlanMeta(BaseModel):
    """Provenance and audit information attached to every generated plan."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    engine_version: str = Field(alias="engineVersion")
    category: str
    schema_version: Literal[2] = Field(default=SCHEMA_VERSION, alias="schemaVersion")
    config: PlanConfiguration
    applied_rules: tuple[str, ...] = Field(default=(), alias="appliedRules")
    clinic_overrides: ClinicOverridesMeta = Field(
        default_factory=ClinicOverridesMeta, alias="clinicOverrides"
    )
    clinic_audit_events: tuple[ClinicAuditEvent, ...] = Field(default=(), alias="clinicAuditEvents")


class GeneratedPlan(BaseModel):
    """Complete output of the plan engine: always 21 resolved days."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str
    disclaimer: str = ""
    schema_version: Literal[2] = Field(default=SCHEMA_VERSION, alias="schemaVersion")
    modules: dict[str, ModuleDefinition] = Field(default_factory=dict)
    clinic_policy: ClinicPolicyFlag = Field(default_factory=ClinicPolicyFlag, alias="clinicPolicy")
    days: tuple[ResolvedDayBlock, ...]
    meta: PlanMeta

    @model_validator(mode="after")
    def _has_every_day(self) -> "GeneratedPlan":
        numbers = [block.day for block in self.days]
        if numbers != list(range(PLAN_DAY_COUNT)):
            raise ValueError(f"plan must contain days 0..{PLAN_DAY_COUNT - 1} in order")
        return self

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-compatible plan document with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self, indent: int | None = None) -> str:
        """Canonical JSON: identical plans always serialize to identical bytes."""
        return json.dumps(self.to_dict(), sort_keys=True, indent=indent, ensure_ascii=False)


__all__ = ["ClinicPolicyFlag", "GeneratedPlan", "PlanMeta", "SCHEMA_VERSION"]
