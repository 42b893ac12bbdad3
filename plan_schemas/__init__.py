"""Public schema exports for the recovery plan engine."""

from .clinic_policy import (
    ClinicAuditEvent,
    ClinicCapTrimmedEvent,
    ClinicForbidRemovedEvent,
    ClinicOverridePolicy,
    ClinicOverridesInvalidEvent,
    ClinicOverridesMeta,
    ClinicRequireAddedEvent,
    ClinicUnknownModuleIgnoredEvent,
    RequiredByPhase,
)
from .configuration import PlanConfiguration
from .days import PLAN_DAY_COUNT, DayBlock, Phase, ResolvedDayBlock, phase_for_day
from .modules import ModuleDefinition, ModuleType
from .plan import SCHEMA_VERSION, ClinicPolicyFlag, GeneratedPlan, PlanMeta

__all__ = [
    "ClinicAuditEvent",
    "ClinicCapTrimmedEvent",
    "ClinicForbidRemovedEvent",
    "ClinicOverridePolicy",
    "ClinicOverridesInvalidEvent",
    "ClinicOverridesMeta",
    "ClinicPolicyFlag",
    "ClinicRequireAddedEvent",
    "ClinicUnknownModuleIgnoredEvent",
    "DayBlock",
    "GeneratedPlan",
    "ModuleDefinition",
    "ModuleType",
    "PLAN_DAY_COUNT",
    "Phase",
    "PlanConfiguration",
    "PlanMeta",
    "ResolvedDayBlock",
    "RequiredByPhase",
    "SCHEMA_VERSION",
    "phase_for_day",
]
