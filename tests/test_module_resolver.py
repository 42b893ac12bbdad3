"""Tests for module resolution."""

from __future__ import annotations

from app.domain.plan_rules.module_resolver import resolve_day, resolve_modules
from plan_schemas import DayBlock, ModuleDefinition, Phase, ResolvedDayBlock

LIBRARY = {
    "track_pain": ModuleDefinition(id="track_pain", type="tracking", title="Track pain"),
    "edu_wound": ModuleDefinition(id="edu_wound", type="education", title="Wound care"),
}


class TestResolveModules:
    def test_modules_resolved_in_id_order(self):
        block = DayBlock(day=1, phase=Phase.EARLY, title="Day 1", module_ids=("edu_wound", "track_pain"))
        resolved, unknown = resolve_day(block, LIBRARY)
        assert isinstance(resolved, ResolvedDayBlock)
        assert [m.title for m in resolved.modules_resolved] == ["Wound care", "Track pain"]
        assert resolved.module_ids == block.module_ids
        assert unknown == []

    def test_unknown_ids_left_out_of_resolved_content(self):
        block = DayBlock(day=12, phase=Phase.LATE, title="Day 12", module_ids=("ghost", "track_pain"))
        result = resolve_modules([block], LIBRARY)
        assert [m.id for m in result.days[0].modules_resolved] == ["track_pain"]
        assert result.days[0].module_ids == ("ghost", "track_pain")
        assert [(w.module_id, w.source, w.day) for w in result.unknown_references] == [
            ("ghost", "module_resolution", 12)
        ]

    def test_serialized_with_camel_case_keys(self):
        block = DayBlock(day=0, phase=Phase.EARLY, title="Day 0", module_ids=("track_pain",))
        dumped = resolve_modules([block], LIBRARY).days[0].model_dump(mode="json", by_alias=True)
        assert dumped["moduleIds"] == ["track_pain"]
        assert dumped["modulesResolved"][0]["type"] == "tracking"
        assert dumped["boxItems"] == []
