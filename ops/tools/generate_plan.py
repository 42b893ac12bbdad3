#!/usr/bin/env python3
"""
Generate a 21-day recovery plan from a template, a plan configuration and an
optional clinic override policy.

Usage:
    python ops/tools/generate_plan.py --config config.json
    python ops/tools/generate_plan.py --config config.json --overrides clinic.json --json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from rich.console import Console

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.common.exceptions import PlanEngineError
from app.common.plan_cli import configure_cli_logging, print_plan_summary
from app.domain.plan_rules import PlanEngine
from app.domain.template_library import load_clinic_policy, load_template
from config.settings import PlanEngineSettings
from observability.logging_config import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--config", type=Path, required=True, help="JSON file with the six plan configuration answers")
    parser.add_argument("--template", type=Path, default=None, help="Plan template JSON (defaults to PLAN_ENGINE_TEMPLATE_PATH)")
    parser.add_argument("--overrides", type=Path, default=None, help="Clinic override policy JSON")
    parser.add_argument("--category", default=None, help="Plan category recorded in metadata")
    parser.add_argument("--json", action="store_true", help="Print the canonical plan JSON instead of a table")
    parser.add_argument("--titles", action="store_true", help="Include day titles in the table")
    parser.add_argument("--log-level", default=None, help="Logging level (defaults to PLAN_ENGINE_LOG_LEVEL)")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = PlanEngineSettings()
    level = args.log_level or settings.log_level
    if args.json:
        # Keep stdout machine-readable; logs go to stderr.
        configure_logging(level, structured=settings.structured_logging, force=True)
    else:
        configure_cli_logging(level)
    console = Console()
    err_console = Console(stderr=True)

    try:
        template = load_template(args.template or settings.template_path)
        config = json.loads(args.config.read_text(encoding="utf-8"))
        overrides = load_clinic_policy(args.overrides) if args.overrides else None
        plan = PlanEngine(settings).generate(template, config, overrides, category=args.category)
    except (PlanEngineError, OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        err_console.print(f"[red]ERROR:[/red] {exc}")
        return 1

    if args.json:
        sys.stdout.write(plan.to_json(indent=2) + "\n")
    else:
        print_plan_summary(console, plan, show_titles=args.titles)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
