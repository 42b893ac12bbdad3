"""Module resolution: expands day module ids into full module content."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

from app.common.exceptions import UnknownReferenceWarning
from observability.logging_config import get_logger
from plan_schemas.days import DayBlock, ResolvedDayBlock
from plan_schemas.modules import ModuleDefinition

logger = get_logger("plan_rules.module_resolver")


@dataclass(frozen=True)
class ModuleResolution:
    days: tuple[ResolvedDayBlock, ...]
    unknown_references: tuple[UnknownReferenceWarning, ...] = ()


def resolve_day(
    block: DayBlock,
    modules: Mapping[str, ModuleDefinition],
) -> tuple[ResolvedDayBlock, list[UnknownReferenceWarning]]:
    """Attach ``modulesResolved`` to one day, keeping ``moduleIds`` as-is."""
    resolved: list[ModuleDefinition] = []
    unknown: list[UnknownReferenceWarning] = []
    for module_id in block.module_ids:
        module = modules.get(module_id)
        if module is None:
            unknown.append(UnknownReferenceWarning(module_id, source="module_resolution", day=block.day))
            continue
        resolved.append(module)
    resolved_block = ResolvedDayBlock(
        day=block.day,
        phase=block.phase,
        title=block.title,
        module_ids=block.module_ids,
        box_items=block.box_items,
        modules_resolved=tuple(resolved),
    )
    return resolved_block, unknown


def resolve_modules(
    days: Sequence[DayBlock],
    modules: Mapping[str, ModuleDefinition],
) -> ModuleResolution:
    """Resolve every day's module ids against the module library.

    Ids missing from the library are left out of ``modulesResolved`` and
    logged. Earlier stages already drop such ids, so this only happens for
    hand-built inputs.
    """
    resolved_days: list[ResolvedDayBlock] = []
    unknown: list[UnknownReferenceWarning] = []
    for block in days:
        resolved_block, dropped = resolve_day(block, modules)
        resolved_days.append(resolved_block)
        unknown.extend(dropped)

    for warning in unknown:
        logger.warning(
            "Unknown module ignored",
            extra={"module_id": warning.module_id, "day": warning.day, "source": warning.source},
        )

    return ModuleResolution(days=tuple(resolved_days), unknown_references=tuple(unknown))


__all__ = ["ModuleResolution", "resolve_day", "resolve_modules"]
