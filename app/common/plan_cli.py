"""Helpers for rendering generated plans in CLI contexts."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from plan_schemas.clinic_policy import ClinicOverridePolicy
from plan_schemas.plan import GeneratedPlan


def configure_cli_logging(level: str = "INFO", console: Console | None = None) -> logging.Logger:
    """Route root logging through Rich for interactive tools."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(level.upper())

    handler = RichHandler(console=console or Console(stderr=True), show_time=False, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    return root


def print_plan_summary(console: Console, plan: GeneratedPlan, *, show_titles: bool = False) -> None:
    """Render a generated plan as a day table followed by its audit trail."""

    meta = plan.meta
    console.print(f"[bold]{plan.title}[/bold]")
    console.print(f"Category: {meta.category}  Engine: {meta.engine_version}  Schema: v{plan.schema_version}")

    table = Table(title="Recovery days", show_lines=False)
    table.add_column("Day", justify="right", style="cyan", no_wrap=True)
    table.add_column("Phase")
    if show_titles:
        table.add_column("Title")
    table.add_column("Modules")
    table.add_column("Box items")

    for block in plan.days:
        row = [str(block.day), block.phase.value]
        if show_titles:
            row.append(block.title)
        row.append(", ".join(block.module_ids) or "-")
        row.append(", ".join(block.box_items) or "-")
        table.add_row(*row)

    console.print(table)

    console.print(f"Applied rules: {', '.join(meta.applied_rules) or '-'}")

    overrides = meta.clinic_overrides
    if plan.clinic_policy.present:
        console.print(f"Clinic policy: version={overrides.version} note={overrides.note or '-'}")
    if meta.clinic_audit_events:
        events = Table(title="Clinic audit events")
        events.add_column("Type", style="magenta")
        events.add_column("Day", justify="right")
        events.add_column("Module(s)")
        events.add_column("Reason")
        for event in meta.clinic_audit_events:
            day = getattr(event, "day", None)
            if hasattr(event, "removed"):
                modules = ", ".join(event.removed)
            else:
                modules = getattr(event, "module_id", "") or ""
            reason = getattr(event, "reason", None) or getattr(event, "message", "")
            events.add_row(event.type, "" if day is None else str(day), modules, reason)
        console.print(events)


def print_policy_report(console: Console, policy: ClinicOverridePolicy) -> None:
    """Render a validated clinic policy."""

    console.print(f"Policy version: {policy.version if policy.version is not None else '-'}")
    if policy.note:
        console.print(f"Note: {policy.note}")

    table = Table(title="Clinic override policy")
    table.add_column("Constraint", style="cyan")
    table.add_column("Modules")

    table.add_row("required", ", ".join(policy.required_module_ids or ()) or "-")
    table.add_row("forbidden", ", ".join(policy.forbidden_module_ids or ()) or "-")
    by_phase = policy.required_by_phase
    for phase in ("early", "mid", "late"):
        ids = getattr(by_phase, phase) if by_phase else None
        if ids:
            table.add_row(f"required ({phase})", ", ".join(ids))
    for day_key, ids in sorted((policy.required_by_day or {}).items(), key=lambda item: item[0]):
        table.add_row(f"required (day {day_key})", ", ".join(ids) or "-")
    if policy.max_modules_per_day is not None:
        table.add_row("max per day", str(policy.max_modules_per_day))

    console.print(table)


__all__ = ["configure_cli_logging", "print_plan_summary", "print_policy_report"]
