"""JSON loaders for plan templates and clinic policies.

Tools and tests read templates from disk; services pass already-loaded
documents straight to the plan engine.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

from app.common.exceptions import ConfigurationError, PolicyValidationError
from config.settings import PlanEngineSettings

logger = logging.getLogger(__name__)


def _read_json(target: Path) -> Any:
    with target.open(encoding="utf-8") as handle:
        return json.load(handle)


def load_template(path: str | Path | None = None) -> dict[str, Any]:
    """Load a plan template document.

    Defaults to ``PlanEngineSettings().template_path``.

    Raises:
        ConfigurationError: if the file is missing, is not valid UTF-8 JSON,
            or does not contain a JSON object.
    """
    target = Path(path) if path is not None else PlanEngineSettings().template_path
    if not target.is_file():
        raise ConfigurationError(f"Plan template not found: {target}", source=str(target))
    try:
        document = _read_json(target)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Plan template is not valid UTF-8 JSON: {target}: {exc}", source=str(target)) from exc
    if not isinstance(document, dict):
        raise ConfigurationError(f"Plan template must be a JSON object: {target}", source=str(target))
    logger.debug("Loaded plan template %s (sha256=%s)", target, template_checksum(document))
    return document


def load_clinic_policy(path: str | Path) -> Any:
    """Load a clinic override policy document without validating it.

    Validation happens during enforcement so that an invalid policy fails
    open there.

    Raises:
        FileNotFoundError: if the file does not exist.
        PolicyValidationError: if the file is not valid UTF-8 JSON.
    """
    target = Path(path)
    try:
        return _read_json(target)
    except json.JSONDecodeError as exc:
        raise PolicyValidationError(
            f"Clinic override policy is not valid JSON: {target}",
            issues=[{"loc": f"line {exc.lineno}", "msg": exc.msg, "type": "json_invalid"}],
        ) from exc
    except UnicodeDecodeError as exc:
        raise PolicyValidationError(
            f"Clinic override policy is not valid UTF-8: {target}",
            issues=[{"loc": f"byte {exc.start}", "msg": exc.reason, "type": "unicode_decode"}],
        ) from exc


def template_checksum(document: Any) -> str:
    """SHA256 of the canonical JSON form of a document."""
    canonical = json.dumps(document, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


__all__ = ["load_clinic_policy", "load_template", "template_checksum"]
