"""Tests for engine settings and JSON document loading."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from app.common.exceptions import ConfigurationError, PolicyValidationError
from app.domain.template_library import load_clinic_policy, load_template, template_checksum
from config.settings import PlanEngineSettings

_TEMPLATE_VARS = ("PLAN_ENGINE_TEMPLATE_PATH", "RECOVERY_TEMPLATE_FILE")


@pytest.fixture
def clean_env(monkeypatch):
    for name in _TEMPLATE_VARS + ("PLAN_ENGINE_ENGINE_VERSION", "PLAN_ENGINE_DEFAULT_CATEGORY"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestPlanEngineSettings:
    def test_defaults(self, clean_env):
        settings = PlanEngineSettings()
        assert settings.engine_version == "v1"
        assert settings.default_category == "general_outpatient"
        assert settings.template_path.is_absolute()
        assert settings.template_path.name == "general_outpatient.v1.json"
        assert settings.template_path.is_file()

    def test_prefixed_environment(self, clean_env):
        clean_env.setenv("PLAN_ENGINE_ENGINE_VERSION", "v2")
        clean_env.setenv("PLAN_ENGINE_DEFAULT_CATEGORY", "dental")
        settings = PlanEngineSettings()
        assert settings.engine_version == "v2"
        assert settings.default_category == "dental"

    @pytest.mark.parametrize("variable", _TEMPLATE_VARS)
    def test_template_path_variables(self, clean_env, tmp_path, variable):
        target = tmp_path / "template.json"
        clean_env.setenv(variable, str(target))
        assert PlanEngineSettings().template_path == target

    def test_relative_template_path_resolved_against_repo(self, clean_env):
        settings = PlanEngineSettings(template_path=Path("data/templates/general_outpatient.v1.json"))
        assert settings.template_path.is_file()


class TestLoadTemplate:
    def test_default_template(self, clean_env):
        document = load_template()
        assert document["category"] == "general_outpatient"
        assert "track_sleep" in document["modules"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_template(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_template(path)

    def test_undecodable_bytes(self, tmp_path):
        path = tmp_path / "latin1.json"
        path.write_bytes(b'{"title": "\xff\xfe"}')
        with pytest.raises(ConfigurationError) as exc_info:
            load_template(path)
        assert exc_info.value.source == str(path)

    def test_non_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(ConfigurationError) as exc_info:
            load_template(path)
        assert exc_info.value.source == str(path)


class TestLoadClinicPolicy:
    def test_returns_raw_document(self, tmp_path):
        path = tmp_path / "policy.json"
        path.write_text(json.dumps({"maxModulesPerDay": 0}), encoding="utf-8")
        assert load_clinic_policy(path) == {"maxModulesPerDay": 0}

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "policy.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(PolicyValidationError) as exc_info:
            load_clinic_policy(path)
        assert exc_info.value.issues[0]["type"] == "json_invalid"

    def test_undecodable_bytes(self, tmp_path):
        path = tmp_path / "policy.json"
        path.write_bytes(b'{"note": "\xff"}')
        with pytest.raises(PolicyValidationError) as exc_info:
            load_clinic_policy(path)
        assert exc_info.value.issues[0]["type"] == "unicode_decode"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_clinic_policy(tmp_path / "missing.json")


class TestTemplateChecksum:
    def test_independent_of_key_order(self):
        assert template_checksum({"a": 1, "b": [1, 2]}) == template_checksum({"b": [1, 2], "a": 1})

    def test_changes_with_content(self):
        assert template_checksum({"a": 1}) != template_checksum({"a": 2})
