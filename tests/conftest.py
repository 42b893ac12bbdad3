"""Shared fixtures for the plan engine tests."""

from __future__ import annotations

import copy
import json
from pathlib import Path

import pytest

from observability.metrics import InMemoryMetricsClient, reset_metrics_client, set_metrics_client

REPO_ROOT = Path(__file__).resolve().parents[1]
TEMPLATE_PATH = REPO_ROOT / "data" / "templates" / "general_outpatient.v1.json"


@pytest.fixture(scope="session")
def _template_document() -> dict:
    return json.loads(TEMPLATE_PATH.read_text(encoding="utf-8"))


@pytest.fixture
def template(_template_document) -> dict:
    """A fresh copy of the bundled general outpatient template."""
    return copy.deepcopy(_template_document)


@pytest.fixture
def basic_config() -> dict:
    """Configuration that triggers only the unconditional rules."""
    return {
        "recovery_region": "general",
        "recovery_duration": "standard_15_21",
        "mobility_impact": "none",
        "incision_status": "intact_dressings",
        "discomfort_pattern": "expected_soreness",
        "follow_up_expectation": "none_scheduled",
    }


@pytest.fixture
def leg_config() -> dict:
    """Lower-limb recovery with an open wound and a follow-up within a week."""
    return {
        "recovery_region": "leg_foot",
        "recovery_duration": "standard_15_21",
        "mobility_impact": "limited",
        "incision_status": "open_wound",
        "discomfort_pattern": "escalating",
        "follow_up_expectation": "within_7_days",
    }


@pytest.fixture
def metrics():
    """Install an in-memory metrics client for the duration of a test."""
    client = InMemoryMetricsClient()
    set_metrics_client(client)
    yield client
    reset_metrics_client()
