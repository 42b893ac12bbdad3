"""Tests for the Rich renderers and the ops command line tools."""

from __future__ import annotations

import importlib.util
import json
from pathlib import Path

import pytest
from rich.console import Console

from app.common.plan_cli import print_plan_summary, print_policy_report
from app.domain.plan_rules import generate_plan, parse_clinic_policy

TOOLS_DIR = Path(__file__).resolve().parents[1] / "ops" / "tools"


def _load_tool(name: str):
    spec = importlib.util.spec_from_file_location(f"ops_tools_{name}", TOOLS_DIR / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _recording_console() -> Console:
    return Console(record=True, width=320, color_system=None)


class TestRenderers:
    def test_plan_summary_lists_days_and_rules(self, template, leg_config):
        plan = generate_plan(template, leg_config, category="general_outpatient")
        console = _recording_console()
        print_plan_summary(console, plan, show_titles=True)
        text = console.export_text()
        assert "Recovery days" in text
        assert "Day 0: Getting started" in text
        assert "global:add_track_sleep_daily" in text
        assert "Clinic audit events" not in text

    def test_plan_summary_shows_audit_events(self, template, leg_config):
        plan = generate_plan(
            template, leg_config, {"version": 5, "maxModulesPerDay": 2}, category="general_outpatient"
        )
        console = _recording_console()
        print_plan_summary(console, plan)
        text = console.export_text()
        assert "Clinic policy: version=5" in text
        assert "clinic_cap_trimmed" in text
        assert "maxModulesPerDay" in text

    def test_policy_report(self):
        policy = parse_clinic_policy(
            {
                "version": 2,
                "note": "ortho",
                "forbiddenModuleIds": ["track_swelling"],
                "requiredByDay": {"5": ["edu_followup"]},
                "maxModulesPerDay": 6,
            }
        )
        console = _recording_console()
        print_policy_report(console, policy)
        text = console.export_text()
        assert "Policy version: 2" in text
        assert "track_swelling" in text
        assert "required (day 5)" in text
        assert "max per day" in text


class TestGeneratePlanTool:
    @pytest.fixture
    def tool(self, monkeypatch):
        module = _load_tool("generate_plan")
        monkeypatch.setattr(module, "configure_cli_logging", lambda *args, **kwargs: None)
        monkeypatch.setattr(module, "configure_logging", lambda *args, **kwargs: None)
        return module

    @pytest.fixture
    def config_file(self, tmp_path, leg_config):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(leg_config), encoding="utf-8")
        return path

    def test_json_output(self, tool, config_file, tmp_path, capsys):
        policy = tmp_path / "policy.json"
        policy.write_text(json.dumps({"forbiddenModuleIds": ["track_sleep"]}), encoding="utf-8")
        exit_code = tool.main(["--config", str(config_file), "--overrides", str(policy), "--json"])
        assert exit_code == 0
        document = json.loads(capsys.readouterr().out)
        assert len(document["days"]) == 21
        assert document["clinicPolicy"]["present"] is True
        assert "track_sleep" not in document["days"][0]["moduleIds"]

    def test_invalid_config_returns_error(self, tool, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"recovery_region": "leg_foot"}), encoding="utf-8")
        assert tool.main(["--config", str(path)]) == 1

    def test_missing_template_returns_error(self, tool, config_file, tmp_path):
        assert tool.main(["--config", str(config_file), "--template", str(tmp_path / "none.json")]) == 1

    def test_undecodable_config_returns_error(self, tool, tmp_path):
        path = tmp_path / "config.json"
        path.write_bytes(b'{"recovery_region": "\xff"}')
        assert tool.main(["--config", str(path)]) == 1

    def test_undecodable_overrides_return_error(self, tool, config_file, tmp_path):
        policy = tmp_path / "policy.json"
        policy.write_bytes(b'{"note": "\xff"}')
        assert tool.main(["--config", str(config_file), "--overrides", str(policy)]) == 1


class TestValidateClinicPolicyTool:
    @pytest.fixture
    def tool(self):
        return _load_tool("validate_clinic_policy")

    def test_valid_policy(self, tool, tmp_path, capsys):
        path = tmp_path / "policy.json"
        path.write_text(json.dumps({"version": 1, "maxModulesPerDay": 4}), encoding="utf-8")
        assert tool.main(["--policy", str(path)]) == 0
        assert "Policy OK" in capsys.readouterr().out

    def test_invalid_policy(self, tool, tmp_path, capsys):
        path = tmp_path / "policy.json"
        path.write_text(json.dumps({"maxModulesPerDay": 99}), encoding="utf-8")
        assert tool.main(["--policy", str(path)]) == 1
        assert "maxModulesPerDay" in capsys.readouterr().out

    def test_missing_policy_file(self, tool, tmp_path):
        assert tool.main(["--policy", str(tmp_path / "missing.json")]) == 1

    def test_undecodable_policy(self, tool, tmp_path, capsys):
        path = tmp_path / "policy.json"
        path.write_bytes(b'{"note": "\xff"}')
        assert tool.main(["--policy", str(path)]) == 1
        assert "unicode_decode" in capsys.readouterr().out
