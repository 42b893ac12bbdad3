"""Template normalization: the first stage of plan generation.

Stored templates are allowed to be sparse. A template may list only the first
few days, list them out of order, or carry malformed entries. This stage turns
any such template into a validated module library plus exactly 21 well-formed
day blocks sorted by day.

Rules applied to each supplied day entry:
- ``day`` is floored and clamped to 0..20; entries without a usable number
  fall back to their list index (entries past index 20 are skipped)
- ``phase`` is always derived from the day, replacing missing, invalid or
  inconsistent values
- ``title`` defaults to "Day N"
- ``moduleIds``/``boxItems`` keep only string members

When the same day number appears more than once, the last entry wins.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from pydantic import ValidationError

from app.common.exceptions import ConfigurationError
from observability.logging_config import get_logger
from plan_schemas.days import FIRST_DAY, LAST_DAY, PLAN_DAY_COUNT, DayBlock, Phase, phase_for_day
from plan_schemas.modules import ModuleDefinition

logger = get_logger("plan_rules.template_normalizer")

DEFAULT_PLAN_TITLE = "Recovery Plan"
DEFAULT_EARLY_MODULE_IDS = ("checkin_overall", "track_pain", "rf_emergency", "rf_worsening")
DEFAULT_EARLY_BOX_ITEMS = ("box_gauze", "box_tape", "box_coldpack")

_DEFAULT_DAY_TITLES = {
    Phase.EARLY: "Getting organized",
    Phase.MID: "Build consistency",
    Phase.LATE: "Maintain progress",
}


@dataclass(frozen=True)
class TemplateSkeleton:
    """Normalized template: module library plus the 21-day skeleton."""

    title: str
    disclaimer: str
    modules: Mapping[str, ModuleDefinition]
    days: tuple[DayBlock, ...]


def _string_items(value: Any) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(item for item in value if isinstance(item, str))


def _day_number(value: Any, index: int) -> int | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
        return max(FIRST_DAY, min(LAST_DAY, math.floor(value)))
    if FIRST_DAY <= index <= LAST_DAY:
        return index
    return None


def normalize_day(raw: Any, index: int) -> DayBlock | None:
    """Normalize one stored day entry; returns None when it cannot be placed."""
    entry = raw if isinstance(raw, Mapping) else {}

    day = _day_number(entry.get("day"), index)
    if day is None:
        logger.info("Template day entry skipped", extra={"index": index, "reason": "no_day_number"})
        return None

    phase = phase_for_day(day)
    supplied_phase = entry.get("phase")
    if supplied_phase is not None and supplied_phase != phase.value:
        logger.info(
            "Template day phase replaced",
            extra={"day": day, "supplied": str(supplied_phase), "phase": phase.value},
        )

    title = entry.get("title")
    if not isinstance(title, str):
        title = f"Day {day}"

    return DayBlock(
        day=day,
        phase=phase,
        title=title,
        module_ids=_string_items(entry.get("moduleIds")),
        box_items=_string_items(entry.get("boxItems")),
    )


def default_day(day: int) -> DayBlock:
    """Day block used for days the template does not supply."""
    phase = phase_for_day(day)
    early = phase is Phase.EARLY
    return DayBlock(
        day=day,
        phase=phase,
        title=f"Day {day}: {_DEFAULT_DAY_TITLES[phase]}",
        module_ids=DEFAULT_EARLY_MODULE_IDS if early else (),
        box_items=DEFAULT_EARLY_BOX_ITEMS if early else (),
    )


def fill_plan_days(days: Iterable[DayBlock]) -> tuple[DayBlock, ...]:
    """Return exactly one block per day 0..20, later duplicates replacing earlier ones."""
    by_day: dict[int, DayBlock] = {}
    for block in days:
        by_day[block.day] = block
    return tuple(by_day.get(day) or default_day(day) for day in range(PLAN_DAY_COUNT))


def load_module_library(raw: Any) -> Mapping[str, ModuleDefinition]:
    """Validate the template's module dictionary.

    The library is vetted content, so a malformed entry is a template defect
    and raises ConfigurationError rather than being skipped.
    """
    if raw is None:
        logger.warning("Template has no module library; every module reference will be dropped")
        return MappingProxyType({})
    if not isinstance(raw, Mapping):
        raise ConfigurationError("Template 'modules' must be an object keyed by module id", source="modules")

    library: dict[str, ModuleDefinition] = {}
    for key, entry in raw.items():
        if not isinstance(entry, Mapping):
            raise ConfigurationError(f"Module '{key}' must be an object", source=f"modules.{key}")
        data = dict(entry)
        data.setdefault("id", key)
        try:
            module = ModuleDefinition.model_validate(data)
        except ValidationError as exc:
            raise ConfigurationError(
                f"Module '{key}' failed validation ({exc.error_count()} issue(s))",
                source=f"modules.{key}",
            ) from exc
        if module.id != key:
            raise ConfigurationError(
                f"Module key '{key}' does not match its id '{module.id}'",
                source=f"modules.{key}",
            )
        library[key] = module
    return MappingProxyType(library)


def normalize_template(raw: Any) -> TemplateSkeleton:
    """Normalize a stored template into a ``TemplateSkeleton``.

    Raises:
        ConfigurationError: if the template is missing, is not an object, or
            carries a malformed ``days`` list or module library.
    """
    if raw is None:
        raise ConfigurationError("Plan template is missing", source="template")
    if not isinstance(raw, Mapping):
        raise ConfigurationError("Plan template must be an object", source="template")

    raw_days = raw.get("days")
    if raw_days is None:
        raw_days = []
    elif not isinstance(raw_days, (list, tuple)):
        raise ConfigurationError("Template 'days' must be a list", source="days")

    modules = load_module_library(raw.get("modules"))

    supplied = [normalize_day(entry, index) for index, entry in enumerate(raw_days)]
    days = fill_plan_days(block for block in supplied if block is not None)

    title = raw.get("title")
    disclaimer = raw.get("disclaimer")
    return TemplateSkeleton(
        title=title if isinstance(title, str) else DEFAULT_PLAN_TITLE,
        disclaimer=disclaimer if isinstance(disclaimer, str) else "",
        modules=modules,
        days=days,
    )


__all__ = [
    "DEFAULT_EARLY_BOX_ITEMS",
    "DEFAULT_EARLY_MODULE_IDS",
    "DEFAULT_PLAN_TITLE",
    "TemplateSkeleton",
    "default_day",
    "fill_plan_days",
    "load_module_library",
    "normalize_day",
    "normalize_template",
]
