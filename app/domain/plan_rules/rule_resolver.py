"""Rule resolution: maps the plan configuration onto module placements.

Rule reference (applied in this order):
- global:     track_sleep on every day
- region:     track_swelling daily (leg_foot, face_neck) or early days only
              (arm_hand, torso)
- incision:   edu_wound early+mid; rf_infection early, plus mid for open
              wounds and drains
- mobility:   edu_mobility mid for limited / non_weight_bearing
- discomfort: rf_worsening early+mid when escalating
- followup:   edu_followup on the two reminder days before the expected visit
- duration:   edu_longterm on late days for extended recoveries

Every rule reports the tokens it fired; the trace is deduplicated keeping the
first occurrence. Resolution depends on the configuration only.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Sequence

from app.common.exceptions import UnknownReferenceWarning
from observability.logging_config import get_logger
from plan_schemas.configuration import PlanConfiguration
from plan_schemas.days import DayBlock, Phase
from plan_schemas.modules import ModuleDefinition

from .scheduling import Placement, apply_placements, every_day, in_phases, on_days

logger = get_logger("plan_rules.rule_resolver")

DAILY_SWELLING_REGIONS = frozenset({"leg_foot", "face_neck"})
EARLY_SWELLING_REGIONS = frozenset({"arm_hand", "torso"})
INFECTION_RISK_INCISIONS = frozenset({"open_wound", "drains_present"})
MOBILITY_EDUCATION_IMPACTS = frozenset({"limited", "non_weight_bearing"})
EXTENDED_DURATIONS = frozenset({"extended_22_42", "extended_22_plus"})
FOLLOW_UP_REMINDER_DAYS: dict[str, tuple[int, int]] = {
    "within_7_days": (5, 6),
    "within_14_days": (12, 13),
    "within_30_days": (19, 20),
}


@dataclass(frozen=True)
class RuleOutcome:
    """Trace tokens and placements produced by one rule."""

    tokens: tuple[str, ...]
    placements: tuple[Placement, ...] = ()


@dataclass(frozen=True)
class RuleResolution:
    """Day blocks after rule application, with the applied-rule trace."""

    days: tuple[DayBlock, ...]
    applied_rules: tuple[str, ...]
    unknown_references: tuple[UnknownReferenceWarning, ...] = ()


def _global_rule(config: PlanConfiguration) -> RuleOutcome:
    return RuleOutcome(("global:add_track_sleep_daily",), (every_day("track_sleep"),))


def _region_rule(config: PlanConfiguration) -> RuleOutcome:
    region = config.recovery_region
    tokens = [f"region:{region}"]
    placements: list[Placement] = []
    if region in DAILY_SWELLING_REGIONS:
        placements.append(every_day("track_swelling"))
        tokens.append("region:add_track_swelling_daily")
    elif region in EARLY_SWELLING_REGIONS:
        placements.append(in_phases("track_swelling", Phase.EARLY))
        tokens.append("region:add_track_swelling_early")
    return RuleOutcome(tuple(tokens), tuple(placements))


def _incision_rule(config: PlanConfiguration) -> RuleOutcome:
    status = config.incision_status
    placements = [in_phases("edu_wound", Phase.EARLY, Phase.MID)]
    if status in INFECTION_RISK_INCISIONS:
        placements.append(in_phases("rf_infection", Phase.EARLY, Phase.MID))
        token = "incision:rf_infection_early_mid"
    else:
        placements.append(in_phases("rf_infection", Phase.EARLY))
        token = "incision:rf_infection_early"
    return RuleOutcome((f"incision:{status}", token), tuple(placements))


def _mobility_rule(config: PlanConfiguration) -> RuleOutcome:
    impact = config.mobility_impact
    if impact in MOBILITY_EDUCATION_IMPACTS:
        return RuleOutcome(
            (f"mobility:{impact}", "mobility:add_edu_mobility_mid"),
            (in_phases("edu_mobility", Phase.MID),),
        )
    return RuleOutcome((f"mobility:{impact}",))


def _discomfort_rule(config: PlanConfiguration) -> RuleOutcome:
    pattern = config.discomfort_pattern
    if pattern == "escalating":
        return RuleOutcome(
            (f"discomfort:{pattern}", "discomfort:rf_worsening_early_mid"),
            (in_phases("rf_worsening", Phase.EARLY, Phase.MID),),
        )
    return RuleOutcome((f"discomfort:{pattern}",))


def _follow_up_rule(config: PlanConfiguration) -> RuleOutcome:
    expectation = config.follow_up_expectation
    reminder_days = FOLLOW_UP_REMINDER_DAYS.get(expectation)
    if reminder_days is None:
        return RuleOutcome((f"followup:{expectation}",))
    return RuleOutcome(
        (f"followup:{expectation}", "followup:add_edu_followup_reminder_days"),
        (on_days("edu_followup", *reminder_days),),
    )


def _duration_rule(config: PlanConfiguration) -> RuleOutcome:
    duration = config.recovery_duration
    if duration in EXTENDED_DURATIONS:
        return RuleOutcome(
            (f"duration:{duration}", "duration:add_edu_longterm_late"),
            (in_phases("edu_longterm", Phase.LATE),),
        )
    return RuleOutcome((f"duration:{duration}",))


PLAN_RULES: tuple[tuple[str, Callable[[PlanConfiguration], RuleOutcome]], ...] = (
    ("global", _global_rule),
    ("region", _region_rule),
    ("incision", _incision_rule),
    ("mobility", _mobility_rule),
    ("discomfort", _discomfort_rule),
    ("followup", _follow_up_rule),
    ("duration", _duration_rule),
)


def dedupe_ids(ids: Iterable[object]) -> tuple[str, ...]:
    """Strip, drop empties and duplicates, keeping first-seen order."""
    seen: set[str] = set()
    out: list[str] = []
    for value in ids:
        if not isinstance(value, str):
            continue
        key = value.strip()
        if not key or key in seen:
            continue
        seen.add(key)
        out.append(key)
    return tuple(out)


def _close_day(
    block: DayBlock,
    modules: Mapping[str, ModuleDefinition],
) -> tuple[DayBlock, list[UnknownReferenceWarning]]:
    unknown: list[UnknownReferenceWarning] = []
    kept: list[str] = []
    for module_id in dedupe_ids(block.module_ids):
        if module_id in modules:
            kept.append(module_id)
        else:
            unknown.append(UnknownReferenceWarning(module_id, source="rule_resolution", day=block.day))
    return block.with_module_ids(kept), unknown


def resolve_rules(
    days: Sequence[DayBlock],
    config: PlanConfiguration,
    modules: Mapping[str, ModuleDefinition],
) -> RuleResolution:
    """Apply every plan rule to the day skeleton.

    Args:
        days: Normalized 21-day skeleton.
        config: Validated plan configuration.
        modules: Module library; ids missing from it are dropped after the
            rules run.

    Returns:
        RuleResolution with deduplicated, library-closed day blocks and the
        ordered applied-rule trace.
    """
    tokens: list[str] = []
    placements: list[Placement] = []
    for _rule_id, rule in PLAN_RULES:
        outcome = rule(config)
        tokens.extend(outcome.tokens)
        placements.extend(outcome.placements)

    scheduled = apply_placements(days, placements)

    closed: list[DayBlock] = []
    unknown: list[UnknownReferenceWarning] = []
    for block in scheduled:
        closed_block, dropped = _close_day(block, modules)
        closed.append(closed_block)
        unknown.extend(dropped)

    for warning in unknown:
        logger.warning(
            "Unknown module ignored",
            extra={"module_id": warning.module_id, "day": warning.day, "source": warning.source},
        )

    return RuleResolution(
        days=tuple(closed),
        applied_rules=dedupe_ids(tokens),
        unknown_references=tuple(unknown),
    )


__all__ = [
    "EXTENDED_DURATIONS",
    "FOLLOW_UP_REMINDER_DAYS",
    "PLAN_RULES",
    "RuleOutcome",
    "RuleResolution",
    "dedupe_ids",
    "resolve_rules",
]
