"""Exception hierarchy for the recovery plan engine."""

from __future__ import annotations

from typing import Any, Sequence


class PlanEngineError(Exception):
    """Base error for plan generation."""

    pass


class ConfigurationError(PlanEngineError):
    """Plan template is missing or malformed. Fatal: no plan is produced."""

    def __init__(self, message: str, source: str | None = None):
        self.source = source
        super().__init__(message)


class PlanConfigurationError(PlanEngineError):
    """The categorical plan configuration failed validation."""

    def __init__(self, message: str, issues: Sequence[dict[str, str]] | None = None):
        self.issues = list(issues or [])
        super().__init__(message)


class PolicyValidationError(PlanEngineError):
    """Clinic override policy failed validation.

    Raised by the policy parser; the enforcer recovers from it by skipping
    enforcement.
    """

    def __init__(self, message: str, issues: Sequence[dict[str, str]] | None = None):
        self.issues = list(issues or [])
        super().__init__(message)


class UnknownReferenceWarning(UserWarning):
    """A module id that is not in the module library.

    Collected on stage results and logged; never raised.
    """

    def __init__(self, module_id: str, source: str, day: int | None = None):
        self.module_id = module_id
        self.source = source
        self.day = day
        where = f" on day {day}" if day is not None else ""
        super().__init__(f"Unknown module '{module_id}' ignored ({source}{where})")

    def to_dict(self) -> dict[str, Any]:
        return {"moduleId": self.module_id, "source": self.source, "day": self.day}


def issues_from_validation_error(exc: Any) -> list[dict[str, str]]:
    """Flatten a pydantic ValidationError into JSON-safe issue records."""
    issues: list[dict[str, str]] = []
    for error in exc.errors(include_url=False):
        issues.append(
            {
                "loc": ".".join(str(part) for part in error.get("loc", ())) or "<root>",
                "msg": str(error.get("msg", "")),
                "type": str(error.get("type", "")),
            }
        )
    return issues
