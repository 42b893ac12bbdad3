"""Day blocks of the 21-day plan and the day → phase mapping."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .modules import ModuleDefinition

FIRST_DAY = 0
LAST_DAY = 20
PLAN_DAY_COUNT = LAST_DAY - FIRST_DAY + 1

# Last day (inclusive) of each non-final phase.
EARLY_PHASE_LAST_DAY = 3
MID_PHASE_LAST_DAY = 10


class Phase(str, Enum):
    """Coarse recovery period derived from the day index."""

    EARLY = "early"
    MID = "mid"
    LATE = "late"


def phase_for_day(day: int) -> Phase:
    """Return the phase a day belongs to (0-3 early, 4-10 mid, 11-20 late)."""
    if day <= EARLY_PHASE_LAST_DAY:
        return Phase.EARLY
    if day <= MID_PHASE_LAST_DAY:
        return Phase.MID
    return Phase.LATE


class DayBlock(BaseModel):
    """One day of the plan, referencing modules by id.

    Instances are immutable; stages produce modified copies through
    ``with_module_ids``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    day: int = Field(ge=FIRST_DAY, le=LAST_DAY)
    phase: Phase
    title: str
    module_ids: tuple[str, ...] = Field(default=(), alias="moduleIds")
    box_items: tuple[str, ...] = Field(default=(), alias="boxItems")

    @model_validator(mode="after")
    def _phase_matches_day(self) -> "DayBlock":
        expected = phase_for_day(self.day)
        if self.phase != expected:
            raise ValueError(
                f"day {self.day} belongs to phase '{expected.value}', got '{self.phase.value}'"
            )
        return self

    def with_module_ids(self, module_ids: tuple[str, ...] | list[str]) -> "DayBlock":
        return self.model_copy(update={"module_ids": tuple(module_ids)})


class ResolvedDayBlock(DayBlock):
    """A day block carrying the expanded module content next to the ids."""

    modules_resolved: tuple[ModuleDefinition, ...] = Field(default=(), alias="modulesResolved")


__all__ = [
    "DayBlock",
    "EARLY_PHASE_LAST_DAY",
    "FIRST_DAY",
    "LAST_DAY",
    "MID_PHASE_LAST_DAY",
    "PLAN_DAY_COUNT",
    "Phase",
    "ResolvedDayBlock",
    "phase_for_day",
]
