# Recovery plan rules domain module
from .template_normalizer import TemplateSkeleton, normalize_template
from .rule_resolver import RuleResolution, resolve_rules
from .clinic_overrides import (
    EnforcementResult,
    enforce_clinic_overrides,
    enforce_plan_json,
    parse_clinic_policy,
)
from .module_resolver import ModuleResolution, resolve_modules
from .scheduling import Placement, ScheduleKind
from .plan_engine import (
    PlanEngine,
    PlanGeneration,
    generate_plan,
    parse_plan_configuration,
    run_pipeline,
)

__all__ = [
    # Stage 1: template normalization
    "TemplateSkeleton",
    "normalize_template",
    # Stage 2: configuration rules
    "RuleResolution",
    "resolve_rules",
    "Placement",
    "ScheduleKind",
    # Stage 3: clinic overrides
    "EnforcementResult",
    "enforce_clinic_overrides",
    "enforce_plan_json",
    "parse_clinic_policy",
    # Stage 4: module resolution
    "ModuleResolution",
    "resolve_modules",
    # Pipeline
    "PlanEngine",
    "PlanGeneration",
    "generate_plan",
    "parse_plan_configuration",
    "run_pipeline",
]
