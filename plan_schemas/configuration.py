"""Categorical plan configuration captured from the patient or clinic.

All six fields are required and carry no defaults: a missing answer is a
validation error for the caller, never something the engine fills in.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

RecoveryRegion = Literal[
    "head_neck",
    "face_neck",
    "chest",
    "torso",
    "abdomen",
    "back",
    "arm_hand",
    "leg_foot",
    "general",
]

RecoveryDuration = Literal[
    "short_3_7",
    "medium_8_14",
    "standard_15_21",
    "extended_22_42",
    "extended_22_plus",
]

MobilityImpact = Literal[
    "none",
    "limited",
    "assistive_device",
    "non_weight_bearing",
]

IncisionStatus = Literal[
    "none",
    "intact_dressings",
    "minor_drainage",
    "open_wound",
    "drains_present",
]

DiscomfortPattern = Literal[
    "expected_soreness",
    "sharp_with_movement",
    "throbbing",
    "burning_or_nerve",
    "escalating",
]

FollowUpExpectation = Literal[
    "none_scheduled",
    "within_7_days",
    "within_14_days",
    "within_21_days",
    "within_30_days",
    "unknown",
]


class PlanConfiguration(BaseModel):
    """The six answers that drive rule resolution."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    recovery_region: RecoveryRegion
    recovery_duration: RecoveryDuration
    mobility_impact: MobilityImpact
    incision_status: IncisionStatus
    discomfort_pattern: DiscomfortPattern
    follow_up_expectation: FollowUpExpectation


__all__ = [
    "DiscomfortPattern",
    "FollowUpExpectation",
    "IncisionStatus",
    "MobilityImpact",
    "PlanConfiguration",
    "RecoveryDuration",
    "RecoveryRegion",
]
