"""Clinic override enforcement.

A clinic may layer a policy over the generated schedule: require modules
globally, per phase or per day, forbid modules, and cap the number of modules
shown per day. Enforcement is fail-open: an invalid policy or an incompatible
plan leaves the plan untouched and records a diagnostic event, because a clinic
misconfiguration must not stop a patient from receiving a plan.

Per-day order:
1. remove forbidden ids
2. add required ids (global, then phase, then day) known to the library
3. drop ids missing from the library
4. remove forbidden ids again, so forbidden beats required (audited
   with reason ``forbiddenModuleIds.overridesRequired``)
5. trim to ``maxModulesPerDay`` keeping the first N ids
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from pydantic import ValidationError

from app.common.exceptions import (
    ConfigurationError,
    PolicyValidationError,
    issues_from_validation_error,
)
from observability.logging_config import get_logger
from plan_schemas.clinic_policy import (
    ClinicAuditEvent,
    ClinicCapTrimmedEvent,
    ClinicForbidRemovedEvent,
    ClinicOverridePolicy,
    ClinicOverridesInvalidEvent,
    ClinicOverridesMeta,
    ClinicRequireAddedEvent,
    ClinicUnknownModuleIgnoredEvent,
)
from plan_schemas.days import DayBlock, Phase
from plan_schemas.modules import ModuleDefinition
from plan_schemas.plan import SCHEMA_VERSION

from .module_resolver import resolve_modules
from .template_normalizer import load_module_library

logger = get_logger("plan_rules.clinic_overrides")

INVALID_POLICY_MESSAGE = "Clinic override policy failed validation; ignoring overrides."
INCOMPATIBLE_PLAN_MESSAGE = "Plan shape is not compatible with enforcement; ignoring overrides."
FORBIDDEN_OVER_REQUIRED_REASON = "forbiddenModuleIds.overridesRequired"


@dataclass(frozen=True)
class EnforcementResult:
    """Day blocks after enforcement plus the audit trail.

    ``enforced`` is False whenever enforcement was skipped (no policy, invalid
    policy, or an unsupported plan), in which case ``days`` is the input.
    """

    days: tuple[DayBlock, ...]
    clinic_overrides: ClinicOverridesMeta = field(default_factory=ClinicOverridesMeta)
    events: tuple[ClinicAuditEvent, ...] = ()
    enforced: bool = False


@dataclass(frozen=True)
class _KnownRequirements:
    global_ids: tuple[str, ...]
    by_phase: dict[Phase, tuple[str, ...]]
    by_day: dict[str, tuple[str, ...]]


def parse_clinic_policy(raw: Any) -> ClinicOverridePolicy:
    """Validate a stored clinic policy.

    Raises:
        PolicyValidationError: if the policy is not an object or violates the
            policy schema.
    """
    if isinstance(raw, ClinicOverridePolicy):
        return raw
    if not isinstance(raw, Mapping):
        raise PolicyValidationError(
            "Clinic override policy must be an object",
            issues=[{"loc": "<root>", "msg": "Input should be an object", "type": "dict_type"}],
        )
    try:
        return ClinicOverridePolicy.model_validate(dict(raw))
    except ValidationError as exc:
        raise PolicyValidationError(
            f"Clinic override policy is invalid ({exc.error_count()} issue(s))",
            issues=issues_from_validation_error(exc),
        ) from exc


def _unique(ids: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(ids))


def _filter_known(
    ids: Sequence[str] | None,
    modules: Mapping[str, ModuleDefinition],
    reason: str,
    events: list[ClinicAuditEvent],
) -> tuple[str, ...]:
    known: list[str] = []
    for module_id in ids or ():
        if module_id in modules:
            known.append(module_id)
        else:
            events.append(ClinicUnknownModuleIgnoredEvent(module_id=module_id, reason=reason))
            logger.warning(
                "Unknown module ignored",
                extra={"module_id": module_id, "reason": reason, "source": "clinic_policy"},
            )
    return _unique(known)


def _known_requirements(
    policy: ClinicOverridePolicy,
    modules: Mapping[str, ModuleDefinition],
    events: list[ClinicAuditEvent],
) -> _KnownRequirements:
    global_ids = _filter_known(policy.required_module_ids, modules, "requiredModuleIds", events)
    by_phase_raw = policy.required_by_phase
    by_phase = {
        phase: _filter_known(
            getattr(by_phase_raw, phase.value) if by_phase_raw else None,
            modules,
            f"requiredByPhase.{phase.value}",
            events,
        )
        for phase in Phase
    }
    by_day = {
        day_key: _filter_known(ids, modules, f"requiredByDay.{day_key}", events)
        for day_key, ids in (policy.required_by_day or {}).items()
    }
    return _KnownRequirements(global_ids=global_ids, by_phase=by_phase, by_day=by_day)


def _add_required(
    ids: list[str],
    required: Sequence[str],
    day: int,
    reason: str,
    events: list[ClinicAuditEvent],
) -> list[str]:
    present = set(ids)
    for module_id in required:
        if module_id not in present:
            ids.append(module_id)
            present.add(module_id)
            events.append(ClinicRequireAddedEvent(day=day, module_id=module_id, reason=reason))
    return ids


def _enforce_day(
    block: DayBlock,
    policy: ClinicOverridePolicy,
    requirements: _KnownRequirements,
    forbidden: frozenset[str],
    modules: Mapping[str, ModuleDefinition],
    events: list[ClinicAuditEvent],
) -> DayBlock:
    day = block.day
    ids = list(_unique(block.module_ids))

    if forbidden:
        for module_id in ids:
            if module_id in forbidden:
                events.append(
                    ClinicForbidRemovedEvent(day=day, module_id=module_id, reason="forbiddenModuleIds")
                )
        ids = [module_id for module_id in ids if module_id not in forbidden]

    ids = _add_required(ids, requirements.global_ids, day, "requiredModuleIds", events)
    ids = _add_required(
        ids, requirements.by_phase[block.phase], day, f"requiredByPhase.{block.phase.value}", events
    )
    ids = _add_required(
        ids, requirements.by_day.get(str(day), ()), day, f"requiredByDay.{day}", events
    )

    ids = [module_id for module_id in ids if module_id in modules]

    # Forbidden wins even when the same id is also required.
    if forbidden:
        for module_id in ids:
            if module_id in forbidden:
                events.append(
                    ClinicForbidRemovedEvent(
                        day=day, module_id=module_id, reason=FORBIDDEN_OVER_REQUIRED_REASON
                    )
                )
        ids = [module_id for module_id in ids if module_id not in forbidden]

    cap = policy.max_modules_per_day
    if cap is not None and len(ids) > cap:
        removed = tuple(ids[cap:])
        ids = ids[:cap]
        events.append(
            ClinicCapTrimmedEvent(day=day, removed=removed, max=cap, reason="maxModulesPerDay")
        )

    return block.with_module_ids(ids)


def _invalid_policy_event(exc: PolicyValidationError) -> ClinicOverridesInvalidEvent:
    logger.warning(
        INVALID_POLICY_MESSAGE,
        extra={"issue_count": len(exc.issues), "error": str(exc)},
    )
    return ClinicOverridesInvalidEvent(message=INVALID_POLICY_MESSAGE, issues=tuple(exc.issues))


def enforce_clinic_overrides(
    days: Sequence[DayBlock],
    modules: Mapping[str, ModuleDefinition],
    overrides: Any,
    *,
    schema_version: Any = SCHEMA_VERSION,
) -> EnforcementResult:
    """Apply a clinic override policy to resolved day blocks.

    Args:
        days: Day blocks produced by rule resolution.
        modules: Module library of the plan.
        overrides: Raw policy mapping, a ClinicOverridePolicy, or None.
        schema_version: Schema version of the plan being enforced; only
            version 2 plans are enforced.

    Returns:
        EnforcementResult. Never raises for policy problems.
    """
    original = tuple(days)
    if not overrides:
        return EnforcementResult(days=original)

    try:
        policy = parse_clinic_policy(overrides)
    except PolicyValidationError as exc:
        return EnforcementResult(days=original, events=(_invalid_policy_event(exc),))

    if schema_version != SCHEMA_VERSION:
        logger.info(
            "Clinic overrides skipped for unsupported plan schema",
            extra={"schema_version": schema_version},
        )
        return EnforcementResult(days=original)

    events: list[ClinicAuditEvent] = []
    requirements = _known_requirements(policy, modules, events)
    forbidden = frozenset(policy.forbidden_module_ids or ())

    enforced = tuple(
        _enforce_day(block, policy, requirements, forbidden, modules, events) for block in original
    )

    logger.info(
        "Clinic overrides enforced",
        extra={"policy_version": policy.version, "event_count": len(events)},
    )
    return EnforcementResult(
        days=enforced,
        clinic_overrides=ClinicOverridesMeta(version=policy.version, note=policy.note),
        events=tuple(events),
        enforced=True,
    )


def _event_dicts(events: Iterable[ClinicAuditEvent]) -> list[dict[str, Any]]:
    return [event.model_dump(mode="json", by_alias=True) for event in events]


def enforce_plan_json(plan_json: Any, overrides: Any) -> tuple[Any, tuple[ClinicAuditEvent, ...]]:
    """Re-apply a clinic policy to a previously generated plan document.

    Used when a clinic changes its policy after plans were stored. The plan is
    returned unchanged (with a diagnostic event) when the policy is invalid, the
    document lacks a ``days`` list or a ``modules`` object, or its module
    library fails the same checks as a template library (including key == id).
    On success the
    returned document is a new dict with enforced ``moduleIds``, refreshed
    ``modulesResolved`` and updated clinic metadata.
    """
    if not overrides:
        return plan_json, ()

    try:
        policy = parse_clinic_policy(overrides)
    except PolicyValidationError as exc:
        return plan_json, (_invalid_policy_event(exc),)

    incompatible = (ClinicOverridesInvalidEvent(message=INCOMPATIBLE_PLAN_MESSAGE),)
    if (
        not isinstance(plan_json, Mapping)
        or not isinstance(plan_json.get("days"), list)
        or not isinstance(plan_json.get("modules"), Mapping)
    ):
        logger.warning(INCOMPATIBLE_PLAN_MESSAGE)
        return plan_json, incompatible

    try:
        modules = load_module_library(plan_json["modules"])
    except ConfigurationError as exc:
        logger.warning(INCOMPATIBLE_PLAN_MESSAGE, extra={"source": exc.source, "error": str(exc)})
        return plan_json, incompatible
    try:
        days = tuple(DayBlock.model_validate(value) for value in plan_json["days"])
    except ValidationError as exc:
        logger.warning(INCOMPATIBLE_PLAN_MESSAGE, extra={"issue_count": exc.error_count()})
        return plan_json, incompatible

    result = enforce_clinic_overrides(
        days, modules, policy, schema_version=plan_json.get("schemaVersion")
    )
    if not result.enforced:
        return plan_json, result.events

    resolution = resolve_modules(result.days, modules)
    meta = dict(plan_json.get("meta") or {})
    meta["clinicOverrides"] = result.clinic_overrides.model_dump(mode="json")
    meta["clinicAuditEvents"] = _event_dicts(result.events)

    enforced_json = dict(plan_json)
    enforced_json["days"] = [block.model_dump(mode="json", by_alias=True) for block in resolution.days]
    enforced_json["meta"] = meta
    enforced_json["clinicPolicy"] = {"present": True}
    return enforced_json, result.events


__all__ = [
    "EnforcementResult",
    "FORBIDDEN_OVER_REQUIRED_REASON",
    "INCOMPATIBLE_PLAN_MESSAGE",
    "INVALID_POLICY_MESSAGE",
    "enforce_clinic_overrides",
    "enforce_plan_json",
    "parse_clinic_policy",
]
