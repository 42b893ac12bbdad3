"""Placement of modules onto plan days.

Every rule expresses its effect as placements. A placement names a module and
one of a closed set of schedule kinds; each kind maps to a pure predicate over
a day block.

Dispatch is on the schedule shape, not on ``ModuleType``: the same module type
is placed daily by one rule and per phase by another, so the type alone does
not determine the days.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Sequence

from plan_schemas.days import DayBlock, Phase


class ScheduleKind(str, Enum):
    EVERY_DAY = "every_day"
    PHASES = "phases"
    DAYS = "days"


@dataclass(frozen=True)
class Placement:
    """A module scheduled onto the days selected by ``kind``."""

    module_id: str
    kind: ScheduleKind
    phases: tuple[Phase, ...] = ()
    days: tuple[int, ...] = ()


def _every_day(placement: Placement, block: DayBlock) -> bool:
    return True


def _in_phases(placement: Placement, block: DayBlock) -> bool:
    return block.phase in placement.phases


def _on_days(placement: Placement, block: DayBlock) -> bool:
    return block.day in placement.days


_SCHEDULERS: dict[ScheduleKind, Callable[[Placement, DayBlock], bool]] = {
    ScheduleKind.EVERY_DAY: _every_day,
    ScheduleKind.PHASES: _in_phases,
    ScheduleKind.DAYS: _on_days,
}


def every_day(module_id: str) -> Placement:
    return Placement(module_id, ScheduleKind.EVERY_DAY)


def in_phases(module_id: str, *phases: Phase) -> Placement:
    return Placement(module_id, ScheduleKind.PHASES, phases=tuple(phases))


def on_days(module_id: str, *days: int) -> Placement:
    return Placement(module_id, ScheduleKind.DAYS, days=tuple(days))


def is_scheduled(placement: Placement, block: DayBlock) -> bool:
    """Return True when ``placement`` selects ``block``."""
    return _SCHEDULERS[placement.kind](placement, block)


def apply_placements(
    days: Iterable[DayBlock],
    placements: Sequence[Placement],
) -> tuple[DayBlock, ...]:
    """Append each placement's module to the days it selects.

    Placements are applied in sequence order, so a day's new ids follow the
    order in which the rules fired. Returns new day blocks; the input is not
    modified.
    """
    out: list[DayBlock] = []
    for block in days:
        added = [p.module_id for p in placements if is_scheduled(p, block)]
        out.append(block.with_module_ids(block.module_ids + tuple(added)) if added else block)
    return tuple(out)


__all__ = [
    "Placement",
    "ScheduleKind",
    "apply_placements",
    "every_day",
    "in_phases",
    "is_scheduled",
    "on_days",
]
