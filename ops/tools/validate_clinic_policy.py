#!/usr/bin/env python3
"""
Validate a clinic override policy file.

Prints the parsed policy on success. On failure prints each issue and exits
with status 1; the plan engine itself would ignore such a policy.

Usage:
    python ops/tools/validate_clinic_policy.py --policy data/clinic/policy.json
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from rich.console import Console

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.common.exceptions import PolicyValidationError
from app.common.plan_cli import print_policy_report
from app.domain.plan_rules import parse_clinic_policy
from app.domain.template_library import load_clinic_policy


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--policy", type=Path, required=True, help="Path to the clinic policy JSON file")
    args = parser.parse_args(argv)

    console = Console()
    if not args.policy.is_file():
        console.print(f"ERROR: Policy file not found at {args.policy}")
        return 1

    try:
        policy = parse_clinic_policy(load_clinic_policy(args.policy))
    except PolicyValidationError as exc:
        console.print(f"[red]Policy invalid:[/red] {exc}")
        for issue in exc.issues:
            console.print(f"  - {issue['loc']}: {issue['msg']} ({issue['type']})")
        return 1

    print_policy_report(console, policy)
    console.print(f"Policy OK: {args.policy}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
