"""Plan engine: runs the recovery plan pipeline end to end.

Stages, each a pure function returning a new value:

    template ──normalize_template──▶ skeleton
             ──resolve_rules──────▶ after rules
             ──enforce_clinic_overrides──▶ after enforcement
             ──resolve_modules────▶ GeneratedPlan

Identical inputs always produce an identical plan (``GeneratedPlan.to_json``
is byte-stable), which callers rely on for idempotent regeneration. Storage,
lookup and the one-plan-per-activation guarantee belong to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from pydantic import ValidationError

from app.common.exceptions import (
    PlanConfigurationError,
    PlanEngineError,
    UnknownReferenceWarning,
    issues_from_validation_error,
)
from config.settings import PlanEngineSettings
from observability.logging_config import get_logger
from observability.metrics import MetricsClient, get_metrics_client
from observability.timing import timed
from plan_schemas.clinic_policy import ClinicAuditEvent
from plan_schemas.configuration import PlanConfiguration
from plan_schemas.plan import ClinicPolicyFlag, GeneratedPlan, PlanMeta

from .clinic_overrides import EnforcementResult, enforce_clinic_overrides
from .module_resolver import ModuleResolution, resolve_modules
from .rule_resolver import RuleResolution, resolve_rules
from .template_normalizer import TemplateSkeleton, normalize_template

logger = get_logger("plan_engine")

DEFAULT_ENGINE_VERSION = "v1"


def parse_plan_configuration(raw: Any) -> PlanConfiguration:
    """Validate the six categorical answers.

    Raises:
        PlanConfigurationError: if the configuration is not an object, misses a
            field, carries an unknown value or has extra keys.
    """
    if isinstance(raw, PlanConfiguration):
        return raw
    if not isinstance(raw, Mapping):
        raise PlanConfigurationError(
            "Plan configuration must be an object",
            issues=[{"loc": "<root>", "msg": "Input should be an object", "type": "dict_type"}],
        )
    try:
        return PlanConfiguration.model_validate(dict(raw))
    except ValidationError as exc:
        raise PlanConfigurationError(
            f"Plan configuration is invalid ({exc.error_count()} issue(s))",
            issues=issues_from_validation_error(exc),
        ) from exc


@dataclass(frozen=True)
class PlanGeneration:
    """Every intermediate stage value of one pipeline run."""

    skeleton: TemplateSkeleton
    rules: RuleResolution
    enforcement: EnforcementResult
    resolution: ModuleResolution
    plan: GeneratedPlan

    @property
    def audit_events(self) -> tuple[ClinicAuditEvent, ...]:
        return self.enforcement.events

    @property
    def unknown_references(self) -> tuple[UnknownReferenceWarning, ...]:
        return self.rules.unknown_references + self.resolution.unknown_references


def run_pipeline(
    template: Any,
    config: PlanConfiguration | Mapping[str, Any],
    overrides: Any = None,
    *,
    category: str,
    engine_version: str = DEFAULT_ENGINE_VERSION,
) -> PlanGeneration:
    """Run all four stages and return their outputs.

    Raises:
        ConfigurationError: if the template is missing or malformed.
        PlanConfigurationError: if ``config`` is a mapping that fails validation.
    """
    plan_config = parse_plan_configuration(config)

    skeleton = normalize_template(template)
    rules = resolve_rules(skeleton.days, plan_config, skeleton.modules)
    enforcement = enforce_clinic_overrides(rules.days, skeleton.modules, overrides)
    resolution = resolve_modules(enforcement.days, skeleton.modules)

    plan = GeneratedPlan(
        title=skeleton.title,
        disclaimer=skeleton.disclaimer,
        modules=dict(skeleton.modules),
        clinic_policy=ClinicPolicyFlag(present=bool(overrides)),
        days=resolution.days,
        meta=PlanMeta(
            engine_version=engine_version,
            category=category,
            config=plan_config,
            applied_rules=rules.applied_rules,
            clinic_overrides=enforcement.clinic_overrides,
            clinic_audit_events=enforcement.events,
        ),
    )
    return PlanGeneration(
        skeleton=skeleton,
        rules=rules,
        enforcement=enforcement,
        resolution=resolution,
        plan=plan,
    )


def generate_plan(
    template: Any,
    config: PlanConfiguration | Mapping[str, Any],
    overrides: Any = None,
    *,
    category: str,
    engine_version: str = DEFAULT_ENGINE_VERSION,
) -> GeneratedPlan:
    """Generate a 21-day recovery plan. See ``run_pipeline``."""
    return run_pipeline(
        template, config, overrides, category=category, engine_version=engine_version
    ).plan


class PlanEngine:
    """Configured entry point used by services and tools.

    Wraps the pure pipeline with settings (engine version, default category),
    structured logging and metrics.

    Attributes:
        settings: Engine settings
        metrics: Metrics client; defaults to the process-wide client
    """

    def __init__(
        self,
        settings: PlanEngineSettings | None = None,
        metrics: MetricsClient | None = None,
    ):
        self.settings = settings or PlanEngineSettings()
        self.metrics = metrics

    @property
    def version(self) -> str:
        """Return the engine version written into plan metadata."""
        return self.settings.engine_version

    def run(
        self,
        template: Any,
        config: PlanConfiguration | Mapping[str, Any],
        overrides: Any = None,
        *,
        category: str | None = None,
    ) -> PlanGeneration:
        category = category or self.settings.default_category
        metrics = self.metrics or get_metrics_client()
        tags = {"category": category, "engine_version": self.version}

        try:
            with timed("plan_engine.generate", tags, client=metrics):
                generation = run_pipeline(
                    template,
                    config,
                    overrides,
                    category=category,
                    engine_version=self.version,
                )
        except PlanEngineError as exc:
            metrics.incr("plan_engine.failures", {**tags, "error": type(exc).__name__})
            logger.error(
                "Recovery plan generation failed",
                extra={"category": category, "error_type": type(exc).__name__, "error": str(exc)},
            )
            raise

        unknown_count = len(generation.unknown_references)
        metrics.incr("plan_engine.plans_generated", tags)
        metrics.observe("plan_engine.clinic_audit_events", len(generation.audit_events), tags)
        if unknown_count:
            metrics.incr("plan_engine.unknown_module_refs", tags, value=unknown_count)

        logger.info(
            "Recovery plan generated",
            extra={
                "category": category,
                "engine_version": self.version,
                "applied_rules": len(generation.plan.meta.applied_rules),
                "clinic_policy_present": generation.plan.clinic_policy.present,
                "clinic_audit_events": len(generation.audit_events),
                "unknown_module_refs": unknown_count,
            },
        )
        return generation

    def generate(
        self,
        template: Any,
        config: PlanConfiguration | Mapping[str, Any],
        overrides: Any = None,
        *,
        category: str | None = None,
    ) -> GeneratedPlan:
        """Generate a plan; ``category`` defaults to the configured category."""
        return self.run(template, config, overrides, category=category).plan


__all__ = [
    "DEFAULT_ENGINE_VERSION",
    "PlanEngine",
    "PlanGeneration",
    "generate_plan",
    "parse_plan_configuration",
    "run_pipeline",
]
