"""Tests for template normalization."""

from __future__ import annotations

import pytest

from app.common.exceptions import ConfigurationError
from app.domain.plan_rules.template_normalizer import (
    DEFAULT_EARLY_BOX_ITEMS,
    DEFAULT_EARLY_MODULE_IDS,
    DEFAULT_PLAN_TITLE,
    default_day,
    normalize_day,
    normalize_template,
)
from plan_schemas import ModuleType, Phase

MODULES = {
    "track_pain": {"id": "track_pain", "type": "tracking", "title": "Track pain"},
    "edu_wound": {"id": "edu_wound", "type": "education", "title": "Wound care"},
}


def _template(days, modules=MODULES, **extra):
    return {"title": "Test plan", "modules": modules, "days": days, **extra}


class TestSparseTemplates:
    def test_always_returns_21_sorted_days(self, template):
        skeleton = normalize_template(template)
        assert [block.day for block in skeleton.days] == list(range(21))

    def test_phase_derived_from_day(self, template):
        skeleton = normalize_template(template)
        for block in skeleton.days:
            expected = Phase.EARLY if block.day <= 3 else Phase.MID if block.day <= 10 else Phase.LATE
            assert block.phase is expected

    def test_supplied_days_are_kept(self, template):
        skeleton = normalize_template(template)
        assert skeleton.days[0].title == "Day 0: Getting started"
        assert skeleton.days[0].module_ids == (
            "checkin_overall",
            "track_pain",
            "rf_emergency",
            "rf_worsening",
        )

    def test_missing_days_get_defaults(self):
        skeleton = normalize_template(_template([{"day": 5, "moduleIds": ["track_pain"]}]))
        assert skeleton.days[0].module_ids == DEFAULT_EARLY_MODULE_IDS
        assert skeleton.days[0].box_items == DEFAULT_EARLY_BOX_ITEMS
        assert skeleton.days[0].title == "Day 0: Getting organized"
        assert skeleton.days[7].module_ids == ()
        assert skeleton.days[7].title == "Day 7: Build consistency"
        assert skeleton.days[15].title == "Day 15: Maintain progress"
        assert skeleton.days[5].module_ids == ("track_pain",)

    def test_empty_days_list(self):
        skeleton = normalize_template(_template([]))
        assert len(skeleton.days) == 21
        assert skeleton.days[3].module_ids == DEFAULT_EARLY_MODULE_IDS
        assert skeleton.days[4].module_ids == ()

    def test_missing_days_key(self):
        skeleton = normalize_template({"modules": MODULES})
        assert len(skeleton.days) == 21
        assert skeleton.title == DEFAULT_PLAN_TITLE
        assert skeleton.disclaimer == ""


class TestDayEntries:
    @pytest.mark.parametrize(
        ("raw_day", "expected"),
        [(42, 20), (-3, 0), (2.7, 2), (20.9, 20)],
    )
    def test_day_is_floored_and_clamped(self, raw_day, expected):
        block = normalize_day({"day": raw_day}, index=0)
        assert block.day == expected

    @pytest.mark.parametrize("raw_day", [None, "5", True, float("nan"), float("inf")])
    def test_unusable_day_falls_back_to_index(self, raw_day):
        block = normalize_day({"day": raw_day}, index=6)
        assert block.day == 6

    def test_entry_past_last_index_without_day_is_skipped(self):
        assert normalize_day({"title": "late"}, index=21) is None

    def test_index_fallback_in_template(self):
        skeleton = normalize_template(_template([{"title": "A"}, {"title": "B"}]))
        assert skeleton.days[0].title == "A"
        assert skeleton.days[1].title == "B"

    def test_invalid_phase_is_replaced(self):
        block = normalize_day({"day": 8, "phase": "early"}, index=0)
        assert block.phase is Phase.MID

    def test_missing_title_defaults(self):
        assert normalize_day({"day": 9, "title": 12}, index=0).title == "Day 9"

    def test_non_string_items_are_dropped(self):
        block = normalize_day(
            {"day": 1, "moduleIds": ["track_pain", 3, None, {"id": "x"}], "boxItems": "box_gauze"},
            index=0,
        )
        assert block.module_ids == ("track_pain",)
        assert block.box_items == ()

    def test_non_mapping_entry_becomes_empty_day(self):
        skeleton = normalize_template(_template(["junk"]))
        assert skeleton.days[0].title == "Day 0"
        assert skeleton.days[0].module_ids == ()

    def test_duplicate_day_last_entry_wins(self):
        skeleton = normalize_template(
            _template([{"day": 1, "title": "first"}, {"day": 1, "title": "second"}])
        )
        assert skeleton.days[1].title == "second"

    def test_default_day_for_late_phase(self):
        block = default_day(18)
        assert block.phase is Phase.LATE
        assert block.module_ids == ()
        assert block.box_items == ()


class TestModuleLibrary:
    def test_modules_validated(self, template):
        skeleton = normalize_template(template)
        assert skeleton.modules["rf_emergency"].type is ModuleType.RED_FLAG
        assert skeleton.modules["rf_emergency"].severity == "emergency"

    def test_id_defaults_to_key(self):
        skeleton = normalize_template(_template([], modules={"task_x": {"type": "task", "title": "X"}}))
        assert skeleton.modules["task_x"].id == "task_x"

    def test_missing_library_is_empty(self):
        skeleton = normalize_template({"days": []})
        assert dict(skeleton.modules) == {}


class TestMalformedTemplates:
    @pytest.mark.parametrize("raw", [None, [], "template", 3])
    def test_missing_or_non_object_template(self, raw):
        with pytest.raises(ConfigurationError):
            normalize_template(raw)

    def test_days_must_be_a_list(self):
        with pytest.raises(ConfigurationError) as exc_info:
            normalize_template(_template({"0": {}}))
        assert exc_info.value.source == "days"

    def test_modules_must_be_a_mapping(self):
        with pytest.raises(ConfigurationError):
            normalize_template(_template([], modules=["track_pain"]))

    def test_invalid_module_entry(self):
        with pytest.raises(ConfigurationError) as exc_info:
            normalize_template(_template([], modules={"x": {"id": "x", "type": "video", "title": "X"}}))
        assert exc_info.value.source == "modules.x"

    def test_module_key_must_match_id(self):
        with pytest.raises(ConfigurationError):
            normalize_template(_template([], modules={"a": {"id": "b", "type": "task", "title": "B"}}))
